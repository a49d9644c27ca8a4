"""
Test Cluster Bootstrap

Launches ephemeral cluster members through an external launcher, waits for
each one to settle into its role, and sweeps their data directories after
a run.

A launcher is any callable taking (data_dir, addr, join_addr) and returning
(consensus_node, state_machine); both must provide close(). An empty
join_addr means the node starts a new cluster.
"""

import os
import random
import shutil
import logging
from typing import Any, Callable, List, Optional, Tuple

from .cluster import ClusterRouter
from .config import HarnessConfig
from .messages import ClusterError
from .node import NodeHandle
from .startup import StartupProbe


NodeLauncher = Callable[[str, str, str], Tuple[Any, Any]]

logger = logging.getLogger("raftroute.bootstrap")


def random_port(config: Optional[HarnessConfig] = None) -> int:
    """Pick a random client port from the configured range"""
    config = config or HarnessConfig()
    low, high = config.port_range
    return random.randrange(low, high)


def data_dir_for(port: int, config: Optional[HarnessConfig] = None) -> str:
    """Path of the persistent-state directory for the node on port"""
    config = config or HarnessConfig()
    return os.path.join(config.data_root, f"{config.data_dir_prefix}{port}")


def open_node(launcher: NodeLauncher, join: Optional[NodeHandle] = None,
              port: Optional[int] = None,
              config: Optional[HarnessConfig] = None) -> NodeHandle:
    """
    Launch one node and wait until it is ready.

    Args:
        launcher: Starts the consensus node and state machine
        join: Existing member to join through, None to start a new cluster
        port: Client port, random when omitted
        config: Harness configuration

    Returns:
        NodeHandle: A ready node, owning its consensus node and state machine

    Raises:
        Exception: Whatever the launcher or the startup probe raised; the
        node is closed first
    """
    config = config or HarnessConfig()
    if port is None:
        port = random_port(config)

    addr = f":{port}"
    join_addr = f":{join.port}" if join is not None else ""
    data_dir = data_dir_for(port, config)

    logger.info(f"Starting test server at port {port}")
    consensus, machine = launcher(data_dir, addr, join_addr)

    node = NodeHandle(port, join_addr, consensus, machine, config)
    try:
        StartupProbe(node).run()
    except Exception:
        node.close()
        raise
    return node


def open_cluster(count: int, launcher: NodeLauncher,
                 ports: Optional[List[int]] = None,
                 config: Optional[HarnessConfig] = None) -> ClusterRouter:
    """
    Launch a cluster: the first node bootstraps, the rest join it.

    Args:
        count: Number of nodes
        launcher: Starts each node's consensus node and state machine
        ports: Client ports to use, random when omitted
        config: Harness configuration

    Returns:
        ClusterRouter: Router owning all the nodes
    """
    if count < 1:
        raise ClusterError("Cluster must have at least one node")
    if ports is not None and len(ports) != count:
        raise ClusterError(f"Expected {count} ports, got {len(ports)}")

    config = config or HarnessConfig()
    logger.info(f"Starting Raft cluster of {count} servers")

    nodes: List[NodeHandle] = []
    try:
        for i in range(count):
            join = nodes[0] if nodes else None
            port = ports[i] if ports is not None else None
            nodes.append(open_node(launcher, join, port, config))
    except Exception:
        for node in reversed(nodes):
            node.close()
        raise

    return ClusterRouter(nodes, config)


def cleanup(root: Optional[str] = None, config: Optional[HarnessConfig] = None) -> List[str]:
    """
    Remove every test data directory under root.

    Returns:
        list: Names of the removed directories
    """
    config = config or HarnessConfig()
    root = config.data_root if root is None else root

    removed = []
    for name in sorted(os.listdir(root)):
        path = os.path.join(root, name)
        if name.startswith(config.data_dir_prefix) and os.path.isdir(path):
            shutil.rmtree(path)
            removed.append(name)

    logger.info(f"Cleanup removed {len(removed)} data directories from {root}")
    return removed
