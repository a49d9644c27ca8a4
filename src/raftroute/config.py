"""
Harness Configuration

Settings shared by the node handles, startup probe, router and bootstrap
helpers, plus the logging setup for test runs.
"""

import os
import sys
import logging
from dataclasses import dataclass
from typing import Optional, Tuple


LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


@dataclass
class HarnessConfig:
    """
    Configuration for a test cluster.

    Attributes:
        host: Address every node listens on
        socket_timeout: Per-operation socket timeout in seconds (None blocks)
        startup_timeout: Deadline for a node's startup probe in seconds
        poll_interval: Pause between startup probe attempts in seconds
        data_root: Directory holding the per-node data directories
        data_dir_prefix: Name prefix of per-node data directories
        port_range: Half-open range random node ports are drawn from
        max_redirects: Redirect hop limit, None for unbounded
        print_log: Send harness logs to stderr
    """
    host: str = "127.0.0.1"
    socket_timeout: Optional[float] = None
    startup_timeout: float = 5.0
    poll_interval: float = 0.1
    data_root: str = "."
    data_dir_prefix: str = "data-mock-"
    port_range: Tuple[int, int] = (20000, 40000)
    max_redirects: Optional[int] = None
    print_log: bool = False

    def __post_init__(self):
        if self.startup_timeout <= 0:
            raise ValueError("startup_timeout must be positive")
        if self.poll_interval < 0:
            raise ValueError("poll_interval cannot be negative")
        if self.max_redirects is not None and self.max_redirects < 1:
            raise ValueError("max_redirects must be at least 1")
        low, high = self.port_range
        if not 0 < low < high <= 65536:
            raise ValueError(f"Invalid port range: {self.port_range}")

    @classmethod
    def from_env(cls, environ=None) -> "HarnessConfig":
        """
        Build a configuration from environment variables.

        PRINTLOG=1 turns on log output. RAFTROUTE_HOST, RAFTROUTE_DATA_ROOT,
        RAFTROUTE_STARTUP_TIMEOUT, RAFTROUTE_SOCKET_TIMEOUT and
        RAFTROUTE_MAX_REDIRECTS override the defaults.
        """
        env = os.environ if environ is None else environ
        kwargs = {"print_log": env.get("PRINTLOG") == "1"}

        if "RAFTROUTE_HOST" in env:
            kwargs["host"] = env["RAFTROUTE_HOST"]
        if "RAFTROUTE_DATA_ROOT" in env:
            kwargs["data_root"] = env["RAFTROUTE_DATA_ROOT"]
        if "RAFTROUTE_STARTUP_TIMEOUT" in env:
            kwargs["startup_timeout"] = float(env["RAFTROUTE_STARTUP_TIMEOUT"])
        if "RAFTROUTE_SOCKET_TIMEOUT" in env:
            kwargs["socket_timeout"] = float(env["RAFTROUTE_SOCKET_TIMEOUT"])
        if "RAFTROUTE_MAX_REDIRECTS" in env:
            kwargs["max_redirects"] = int(env["RAFTROUTE_MAX_REDIRECTS"])

        return cls(**kwargs)


def configure_logging(config: HarnessConfig, level: int = logging.DEBUG) -> logging.Logger:
    """
    Route harness logs according to the configuration.

    Logs go to stderr only when print_log is set; otherwise the harness
    attaches no output of its own.
    """
    logger = logging.getLogger("raftroute")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)

    if config.print_log:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt='%H:%M:%S'))
        logger.addHandler(handler)
        logger.setLevel(level)
    else:
        logger.addHandler(logging.NullHandler())

    return logger
