"""
Reply and Expectation Data Structures

This module defines the values that flow through the router:
- Reply: a protocol reply as a tagged union (status, error, integer, bulk, array)
- Expectation: what a test expects back (literal, error sentinel, transform)
- The exception hierarchy used by the harness

Protocol errors are ordinary Reply values. Only transport failures, startup
failures and failed expectations are raised as exceptions.
"""

from dataclasses import dataclass
from typing import Any, Callable, List, Optional, Tuple
from enum import Enum

import redis


REDIRECT_PREFIX = "TRY "


class ReplyKind(Enum):
    """Shapes a server reply can take"""
    STATUS = "status"
    ERROR = "error"
    INTEGER = "integer"
    BULK = "bulk"
    ARRAY = "array"


@dataclass
class Reply:
    """
    A single reply read off the wire.

    value holds:
    - STATUS / ERROR: the text
    - INTEGER: an int
    - BULK: bytes, or None for a nil bulk
    - ARRAY: a list of Reply
    """
    kind: ReplyKind
    value: Any

    @classmethod
    def status(cls, text: str) -> "Reply":
        return cls(ReplyKind.STATUS, text)

    @classmethod
    def error(cls, text: str) -> "Reply":
        return cls(ReplyKind.ERROR, text)

    @classmethod
    def integer(cls, number: int) -> "Reply":
        return cls(ReplyKind.INTEGER, number)

    @classmethod
    def bulk(cls, payload: Optional[bytes]) -> "Reply":
        return cls(ReplyKind.BULK, payload)

    @classmethod
    def array(cls, items: List["Reply"]) -> "Reply":
        return cls(ReplyKind.ARRAY, items)

    @classmethod
    def from_wire(cls, raw: Any) -> "Reply":
        """
        Convert a raw redis-py value into a Reply.

        redis-py hands back bytes for both status and bulk replies, so
        bytes become BULK; str only shows up with decoded connections and
        becomes STATUS. Error elements nested in arrays arrive as
        ResponseError instances rather than being raised.
        """
        if isinstance(raw, Reply):
            return raw
        if raw is None:
            return cls.bulk(None)
        if isinstance(raw, redis.RedisError):
            return cls.error(str(raw))
        if isinstance(raw, (bytes, bytearray)):
            return cls.bulk(bytes(raw))
        if isinstance(raw, str):
            return cls.status(raw)
        if isinstance(raw, bool):
            return cls.integer(int(raw))
        if isinstance(raw, int):
            return cls.integer(raw)
        if isinstance(raw, (list, tuple)):
            return cls.array([cls.from_wire(item) for item in raw])
        # RESP3 doubles and the like
        return cls.status(str(raw))

    @property
    def is_error(self) -> bool:
        return self.kind == ReplyKind.ERROR

    @property
    def is_nil(self) -> bool:
        return self.kind == ReplyKind.BULK and self.value is None

    @property
    def is_redirect(self) -> bool:
        return self.redirect_port is not None

    @property
    def redirect_port(self) -> Optional[int]:
        """
        Port named by a leader redirect, or None if this is not one.

        A redirect is an error reply of the form "TRY <port>". The target
        may also be written as an address (":port" or "host:port"), in which
        case the last field is the port.
        """
        if self.kind != ReplyKind.ERROR or not self.value.startswith(REDIRECT_PREFIX):
            return None
        target = self.value[len(REDIRECT_PREFIX):].rpartition(":")[2]
        if not (target.isascii() and target.isdecimal()):
            return None
        return int(target)

    def __str__(self) -> str:
        if self.kind == ReplyKind.ARRAY:
            return f"Reply(array, {len(self.value)} items)"
        return f"Reply({self.kind.value}, {self.value!r})"


class ExpectationKind(Enum):
    """How an expectation is compared against a reply"""
    LITERAL = "literal"
    ERROR = "error"
    TRANSFORM = "transform"


# Maps a normalized actual value to (actual, expected) for comparison
TransformFn = Callable[[Any], Tuple[Any, Any]]


@dataclass
class Expectation:
    """
    What a command is expected to return.

    - LITERAL: compared with the normalized reply by canonical text
    - ERROR: passes when the command fails with exactly this error text
    - TRANSFORM: a function producing the (actual, expected) pair to compare
    """
    kind: ExpectationKind
    value: Any

    @classmethod
    def literal(cls, value: Any) -> "Expectation":
        return cls(ExpectationKind.LITERAL, value)

    @classmethod
    def error(cls, text: str) -> "Expectation":
        return cls(ExpectationKind.ERROR, text)

    @classmethod
    def transform(cls, fn: TransformFn) -> "Expectation":
        return cls(ExpectationKind.TRANSFORM, fn)

    @classmethod
    def coerce(cls, value: Any) -> "Expectation":
        """Wrap a bare value: callables become transforms, the rest literals"""
        if isinstance(value, Expectation):
            return value
        if callable(value):
            return cls.transform(value)
        return cls.literal(value)

    def __str__(self) -> str:
        if self.kind == ExpectationKind.TRANSFORM:
            return "Expectation(transform)"
        return f"Expectation({self.kind.value}, {self.value!r})"


class RaftRouteError(Exception):
    """Base class for harness errors"""


class ClusterError(RaftRouteError):
    """Cluster could not be formed or addressed"""


class StartupError(RaftRouteError):
    """A startup probe got a successful but unexpected reply"""


class StartupTimeout(StartupError):
    """Startup deadline elapsed without any error being observed"""

    def __init__(self, message: str = "timeout"):
        super().__init__(message)


class ReplyError(RaftRouteError):
    """A protocol error reply raised as an exception"""

    def __init__(self, reply: Reply):
        super().__init__(reply.value)
        self.reply = reply


class TooManyRedirects(RaftRouteError):
    """Redirect chain exceeded the configured hop limit"""

    def __init__(self, hops: int, last: Reply):
        super().__init__(f"gave up after {hops} redirects, last reply: {last.value}")
        self.hops = hops
        self.last = last


class ExpectationError(RaftRouteError):
    """A reply did not match its expectation"""

    def __init__(self, expected: Any, actual: Any):
        super().__init__(f"expected '{expected}', got '{actual}'")
        self.expected = expected
        self.actual = actual
