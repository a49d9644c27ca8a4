"""
Startup Probe

Blocks until a freshly launched node is in its expected place in the
cluster: the bootstrap node must accept and apply writes, a joining node
must answer writes with a leader redirect. Polls on a fixed interval until
a wall-clock deadline.
"""

import time
import logging
from enum import Enum
from typing import Callable, Optional

import redis

from .matching import normalize
from .messages import REDIRECT_PREFIX, Reply, ReplyError, StartupError, StartupTimeout
from .node import NodeHandle


PROBE_KEY = "please"
PROBE_VALUE = "allow"


class ProbeState(Enum):
    """Lifecycle of a startup probe"""
    PROBING = "probing"
    READY = "ready"
    TIMED_OUT = "timed_out"


class StartupProbe:
    """
    Startup synchronization for one node.

    Errors seen while probing are remembered but never abort the probe; the
    last one is raised if the deadline passes.
    """

    def __init__(self, node: NodeHandle,
                 timeout: Optional[float] = None,
                 interval: Optional[float] = None,
                 clock: Callable[[], float] = time.monotonic,
                 sleep: Callable[[float], None] = time.sleep):
        self.node = node
        self.timeout = node.config.startup_timeout if timeout is None else timeout
        self.interval = node.config.poll_interval if interval is None else interval
        self.clock = clock
        self.sleep = sleep

        self.state = ProbeState.PROBING
        self.attempts = 0
        self.last_error: Optional[Exception] = None

        self.logger = logging.getLogger("raftroute.startup")

    def _probe_leader(self) -> bool:
        """Write then delete a throwaway key"""
        reply = self.node.do("SET", PROBE_KEY, PROBE_VALUE)
        if reply.is_error:
            self.last_error = ReplyError(reply)
            return False
        if normalize(reply) != "OK":
            self.last_error = StartupError("not OK")
            return False

        reply = self.node.do("DEL", PROBE_KEY)
        if reply.is_error:
            self.last_error = ReplyError(reply)
            return False
        if reply != Reply.integer(1):
            self.last_error = StartupError("not 1")
            return False
        return True

    def _probe_follower(self) -> bool:
        """A follower must refuse the write with a leader redirect"""
        reply = self.node.do("SET", PROBE_KEY, PROBE_VALUE)
        if not reply.is_error:
            self.last_error = StartupError("not TRY")
            return False
        if not reply.value.startswith(REDIRECT_PREFIX):
            self.last_error = ReplyError(reply)
            return False
        return True

    def probe_once(self) -> bool:
        """Run a single probe; transport errors count as a failed attempt"""
        self.attempts += 1
        try:
            if self.node.is_bootstrap:
                return self._probe_leader()
            return self._probe_follower()
        except redis.RedisError as e:
            self.last_error = e
            return False

    def run(self) -> None:
        """
        Probe until the node is ready or the deadline passes.

        Raises:
            Exception: The last error observed, or StartupTimeout if none
        """
        start = self.clock()
        while True:
            if self.clock() - start > self.timeout:
                self.state = ProbeState.TIMED_OUT
                self.logger.warning(
                    f"Node {self.node.port} not ready after {self.attempts} attempts: "
                    f"{self.last_error or 'timeout'}"
                )
                if self.last_error is not None:
                    raise self.last_error
                raise StartupTimeout()

            if self.probe_once():
                self.state = ProbeState.READY
                self.logger.info(f"Node {self.node.port} ready after {self.attempts} attempts")
                return

            self.sleep(self.interval)


def wait_for_startup(node: NodeHandle, **kwargs) -> None:
    """Block until node is ready, see StartupProbe"""
    StartupProbe(node, **kwargs).run()
