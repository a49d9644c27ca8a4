"""
Raft Cluster Command Router

Client-side harness for Raft-replicated, Redis-protocol key/value clusters:
- Node handles with pipelined command dispatch
- A cluster router that follows "TRY <port>" leader redirects
- Reply normalization and expectation matching for tests
- Startup synchronization and cluster bootstrap helpers

Consensus, command application and persistence are provided by the servers
under test.
"""

from .messages import (
    Reply,
    ReplyKind,
    Expectation,
    ExpectationKind,
    RaftRouteError,
    ClusterError,
    StartupError,
    StartupTimeout,
    ReplyError,
    TooManyRedirects,
    ExpectationError
)
from .config import HarnessConfig, configure_logging
from .node import NodeHandle
from .startup import StartupProbe, ProbeState, wait_for_startup
from .matching import normalize, canonical, check, approx, round_half_up
from .batch import BatchRunner, Pause, CommandStep
from .cluster import ClusterRouter
from .bootstrap import open_node, open_cluster, cleanup, random_port, data_dir_for

__version__ = "1.0.0"
__all__ = [
    "Reply",
    "ReplyKind",
    "Expectation",
    "ExpectationKind",
    "RaftRouteError",
    "ClusterError",
    "StartupError",
    "StartupTimeout",
    "ReplyError",
    "TooManyRedirects",
    "ExpectationError",
    "HarnessConfig",
    "configure_logging",
    "NodeHandle",
    "StartupProbe",
    "ProbeState",
    "wait_for_startup",
    "normalize",
    "canonical",
    "check",
    "approx",
    "round_half_up",
    "BatchRunner",
    "Pause",
    "CommandStep",
    "ClusterRouter",
    "open_node",
    "open_cluster",
    "cleanup",
    "random_port",
    "data_dir_for"
]
