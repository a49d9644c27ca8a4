"""
Cluster Router

Client-side routing for a Raft-replicated key/value cluster:
- Sticky routing to the member that last served a command
- Transparent chasing of "TRY <port>" leader redirects
- Expectation checks and batches on top of routed commands

Followers answer writes with a pointer to the leader instead of serving
them. The router follows that pointer until it gets a non-redirect reply,
so callers only ever see final outcomes.
"""

import random
import logging
from typing import Any, Iterable, List, Optional

import redis

from .batch import BatchRunner
from .config import HarnessConfig
from .matching import check
from .messages import ClusterError, Reply, TooManyRedirects
from .node import NodeHandle


class ClusterRouter:
    """
    Routes commands across the members of one test cluster.

    current is routing state only: it is always None or one of nodes, and is
    updated before every attempt so it names the node being tried.
    """

    def __init__(self, nodes: List[NodeHandle], config: Optional[HarnessConfig] = None):
        """
        Initialize the router.

        Args:
            nodes: Cluster members, owned by the router from here on
            config: Harness configuration
        """
        if not nodes:
            raise ClusterError("Cluster must have at least one node")

        self.nodes = list(nodes)
        self.current: Optional[NodeHandle] = None
        self.config = config or self.nodes[0].config
        self.redirects_followed = 0

        self.logger = logging.getLogger("raftroute.cluster")
        self.logger.info(f"Router over {len(self.nodes)} nodes: {[n.port for n in self.nodes]}")

    @classmethod
    def from_ports(cls, ports: Iterable[int],
                   config: Optional[HarnessConfig] = None) -> "ClusterRouter":
        """Attach to an already running cluster by client port"""
        config = config or HarnessConfig()
        return cls([NodeHandle(port, config=config) for port in ports], config)

    def node_for_port(self, port: int) -> Optional[NodeHandle]:
        """Find the member serving the given port"""
        for node in self.nodes:
            if node.port == port:
                return node
        return None

    def do(self, name: str, *args: Any) -> Reply:
        """
        Run a command on the cluster, following leader redirects.

        Starts at the sticky node, or a random member when there is none.

        Returns:
            Reply: The first non-redirect reply. Protocol errors are returned
            as error replies, as is a redirect to a port outside the cluster.

        Raises:
            redis.RedisError: A node could not be reached; never retried
            TooManyRedirects: The configured hop limit was exceeded
        """
        node = self.current
        if node is None:
            node = random.choice(self.nodes)

        hops = 0
        while True:
            self.current = node
            reply = node.do(name, *args)

            port = reply.redirect_port
            if port is None:
                return reply

            target = self.node_for_port(port)
            if target is None:
                self.logger.warning(f"Node {node.port} redirected to unknown port {port}")
                return reply

            hops += 1
            self.redirects_followed += 1
            if self.config.max_redirects is not None and hops > self.config.max_redirects:
                raise TooManyRedirects(hops - 1, reply)

            self.logger.debug(f"{name} redirected from {node.port} to {target.port}")
            node = target

    def do_expect(self, expect: Any, name: str, *args: Any) -> None:
        """
        Run a command and check its outcome.

        Raises:
            ExpectationError: The reply did not match expect
        """
        try:
            outcome = self.do(name, *args)
        except redis.RedisError as e:
            outcome = e
        check(outcome, expect)

    def do_batch(self, steps: Iterable[Any]) -> None:
        """Run a sequence of command steps and pauses, see BatchRunner"""
        BatchRunner(self).run(steps)

    def reset_conn(self) -> None:
        """Drop the sticky node and its connection"""
        if self.current is not None:
            self.current.reset_conn()
            self.current = None

    def close(self) -> None:
        """Close every member, even if closing an earlier one fails"""
        self.current = None
        self._close_from(0)
        self.logger.info("Cluster closed")

    def _close_from(self, index: int) -> None:
        if index >= len(self.nodes):
            return
        try:
            self.nodes[index].close()
        finally:
            self._close_from(index + 1)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    def __str__(self) -> str:
        current = self.current.port if self.current else None
        return f"ClusterRouter({len(self.nodes)} nodes, current={current})"
