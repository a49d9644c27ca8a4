"""
Node Handle

One cluster member as seen by the test harness: its port, the address it
joined through, the consensus node and state machine backing it, and a
single lazily-opened connection used for pipelined command dispatch.

Teardown order is connection, state machine, consensus node.
"""

import logging
from typing import Any, List, Optional, Sequence, Union

import redis
from redis._parsers import _RESP2Parser
from redis.backoff import NoBackoff
from redis.connection import Connection
from redis.retry import Retry

from .config import HarnessConfig
from .messages import Reply


# A pipeline slot holds either a reply or the error raised while reading it
PipelineResult = Union[Reply, Exception]


class VerbatimErrorParser(_RESP2Parser):
    """
    RESP2 parser that keeps error replies exactly as the server sent them.

    The stock parser strips codes such as "ERR " and maps some errors to
    other exception types; error sentinels compare against the full text.
    """

    @classmethod
    def parse_error(cls, response):
        return redis.ResponseError(response)


class NodeHandle:
    """
    Handle on a single Raft-replicated key/value node.

    The connection is opened on first use and kept open across calls until
    close() or reset_conn(). Commands are written back to back and flushed
    once, then exactly one reply is read per command in submission order.
    """

    def __init__(self, port: int, join: str = "",
                 consensus: Any = None, machine: Any = None,
                 config: Optional[HarnessConfig] = None):
        """
        Initialize a node handle.

        Args:
            port: Port the node serves clients on
            join: Address the node joined through, empty for the first node
            consensus: Consensus node backing this member (closed last)
            machine: State machine backing this member
            config: Harness configuration
        """
        self.port = port
        self.join = join
        self.consensus = consensus
        self.machine = machine
        self.config = config or HarnessConfig()
        self.conn: Optional[Connection] = None

        self.logger = logging.getLogger(f"raftroute.node.{port}")

    @property
    def is_bootstrap(self) -> bool:
        """True for the node that started the cluster (no join address)"""
        return self.join == ""

    def _connect(self) -> Connection:
        if self.conn is None:
            conn = Connection(
                host=self.config.host,
                port=self.port,
                socket_timeout=self.config.socket_timeout,
                socket_connect_timeout=self.config.socket_timeout,
                protocol=2,
                parser_class=VerbatimErrorParser,
                retry=Retry(NoBackoff(), 0),
            )
            conn.connect()
            self.conn = conn
            self.logger.debug(f"Connected to {self.config.host}:{self.port}")
        return self.conn

    def do_pipeline(self, commands: Sequence[Sequence[Any]]) -> List[PipelineResult]:
        """
        Send several commands in one pipelined round trip.

        Args:
            commands: Commands as sequences of name followed by arguments

        Returns:
            list: One entry per command, in order. Error replies are Reply
            values; a slot whose read failed holds the raised exception.

        Raises:
            redis.RedisError: Opening the connection or writing failed. No
            partial results are returned in that case.
        """
        conn = self._connect()

        try:
            packed = conn.pack_commands([tuple(command) for command in commands])
            conn.send_packed_command(packed)
        except redis.RedisError:
            self._drop_conn()
            raise

        results: List[PipelineResult] = []
        for _ in commands:
            try:
                results.append(Reply.from_wire(conn.read_response()))
            except redis.ResponseError as e:
                results.append(Reply.error(str(e)))
            except redis.RedisError as e:
                self.logger.debug(f"Reading reply failed: {e}")
                results.append(e)
        return results

    def do(self, name: str, *args: Any) -> Reply:
        """
        Send a single command and return its reply.

        Raises:
            redis.RedisError: The command could not be sent or its reply
            could not be read
        """
        results = self.do_pipeline([(name,) + args])
        if len(results) != 1:
            raise redis.RedisError("invalid number of responses")
        result = results[0]
        if isinstance(result, Exception):
            raise result
        return result

    def _drop_conn(self) -> None:
        conn, self.conn = self.conn, None
        if conn is not None:
            conn.disconnect()

    def reset_conn(self) -> None:
        """Close the connection; the next command reconnects"""
        self._drop_conn()

    def close(self) -> None:
        """Release the connection, state machine and consensus node in that order"""
        try:
            self._drop_conn()
        finally:
            try:
                if self.machine is not None:
                    self.machine.close()
            finally:
                if self.consensus is not None:
                    self.consensus.close()
        self.logger.info(f"Node on port {self.port} closed")

    def __str__(self) -> str:
        role = "bootstrap" if self.is_bootstrap else f"join={self.join}"
        return f"NodeHandle(port={self.port}, {role})"
