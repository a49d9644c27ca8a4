"""
Batch Runner

Runs a scripted sequence of command/expectation steps against a router,
with optional pauses to let replication or key expiry settle.
"""

import time
import logging
from dataclasses import dataclass
from datetime import timedelta
from typing import Any, Callable, Iterable, List, Optional, Sequence


@dataclass
class Pause:
    """Block the batch for a number of seconds"""
    seconds: float


@dataclass
class CommandStep:
    """Run command (name followed by arguments) and check the outcome against expect"""
    command: Sequence[Any]
    expect: Any

    def __str__(self) -> str:
        return " ".join(str(part) for part in self.command)


def to_step(step: Any):
    """Coerce a timedelta, number or (command, expect) pair into a step"""
    if isinstance(step, (Pause, CommandStep)):
        return step
    if isinstance(step, timedelta):
        return Pause(step.total_seconds())
    if isinstance(step, (int, float)) and not isinstance(step, bool):
        return Pause(float(step))
    command, expect = step
    return CommandStep(tuple(command), expect)


class BatchRunner:
    """
    Sequential step runner.

    The first failing step aborts the batch; its error propagates unchanged.
    """

    def __init__(self, router, sleep: Optional[Callable[[float], None]] = None):
        self.router = router
        self.sleep = sleep or time.sleep
        self.steps_run = 0

        self.logger = logging.getLogger("raftroute.batch")

    def run(self, steps: Iterable[Any]) -> None:
        """
        Run every step in order.

        Raises:
            ExpectationError: A command did not return what was expected
        """
        for step in map(to_step, steps):
            if isinstance(step, Pause):
                self.logger.debug(f"Pausing for {step.seconds:.3f}s")
                self.sleep(step.seconds)
            else:
                self.router.do_expect(step.expect, step.command[0], *step.command[1:])
            self.steps_run += 1

    def run_flat(self, commands: List[Sequence[Any]]) -> None:
        """
        Run a flat list alternating commands and single-item expectations.

        A command whose first element is a duration is a pause and its
        paired entry is ignored.
        """
        if len(commands) % 2:
            raise ValueError("Flat batch must pair every command with an expectation")

        steps = []
        for command, expect in zip(commands[0::2], commands[1::2]):
            if isinstance(command[0], (timedelta, int, float)) and not isinstance(command[0], bool):
                steps.append(to_step(command[0]))
            else:
                steps.append(CommandStep(tuple(command), expect[0]))
        self.run(steps)
