"""
Response Normalization and Expectation Matching

normalize() turns a Reply into plain Python values that compare cleanly:
text for every scalar, lists for arrays, "nil" for a nil nested inside an
array and None for a nil at the top level.

check() compares a command outcome against an Expectation using the
canonical text of both sides, so "1" and 1 are equal and nested arrays
compare structurally through their rendering.
"""

from typing import Any, Union

from .messages import (
    Expectation, ExpectationError, ExpectationKind, Reply, ReplyError,
    ReplyKind, TransformFn
)


NIL_MARKER = "nil"


def _scalar_text(reply: Reply) -> str:
    if reply.kind == ReplyKind.BULK:
        return reply.value.decode("utf-8", "surrogateescape")
    return str(reply.value)


def _normalize_item(reply: Reply) -> Any:
    if reply.kind == ReplyKind.ARRAY:
        return [_normalize_item(item) for item in reply.value]
    if reply.is_nil:
        return NIL_MARKER
    return _scalar_text(reply)


def normalize(value: Any) -> Any:
    """
    Rewrite a reply into comparison-friendly form.

    Accepts a Reply or a raw redis-py value. Normalizing an already
    normalized value returns it unchanged.
    """
    reply = Reply.from_wire(value)
    if reply.is_nil:
        return None
    return _normalize_item(reply)


def canonical(value: Any) -> str:
    """Canonical text used for the final comparison"""
    if value is None:
        return "<nil>"
    if isinstance(value, Reply):
        return canonical(normalize(value))
    if isinstance(value, (bytes, bytearray)):
        return bytes(value).decode("utf-8", "surrogateescape")
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float):
        if value.is_integer() and abs(value) < 1e21:
            return str(int(value))
        return repr(value)
    if isinstance(value, (list, tuple)):
        return "[" + " ".join(canonical(item) for item in value) + "]"
    return str(value)


def round_half_up(value: float, decimals: int) -> float:
    """
    Round by scaling, adding one half and truncating toward zero.

    This is half-up only for non-negative values: round_half_up(2.345, 2)
    is 2.35 but round_half_up(-2.345, 2) is -2.34. Approximate assertions
    depend on exactly this behavior.
    """
    pow_ = 1.0
    for _ in range(decimals):
        pow_ *= 10
    return float(int(value * pow_ + 0.5)) / pow_


def approx(expected: float, decimals: int) -> Expectation:
    """
    Expectation that a reply parses as a float equal to expected once both
    are rounded to the given number of decimals.
    """
    rounded = round_half_up(expected, decimals)

    def compare(actual: Any):
        text = actual if isinstance(actual, str) else canonical(actual)
        try:
            number = float(text)
        except ValueError:
            return actual, rounded
        return round_half_up(number, decimals), rounded

    return Expectation.transform(compare)


def check(outcome: Union[Reply, Exception], expect: Any) -> None:
    """
    Check a command outcome against an expectation.

    Args:
        outcome: The reply, or the exception raised by the call
        expect: An Expectation, or a bare value coerced into one

    Raises:
        ExpectationError: The reply did not match
        ReplyError: The command failed with an unexpected error reply
        Exception: The transport error in outcome, when not expected
    """
    expectation = Expectation.coerce(expect)

    failure = None
    if isinstance(outcome, Exception):
        failure = outcome
    elif outcome.is_error:
        failure = ReplyError(outcome)

    if failure is not None:
        if expectation.kind == ExpectationKind.ERROR and str(failure) == expectation.value:
            return
        raise failure

    if expectation.kind == ExpectationKind.ERROR:
        raise ExpectationError(expectation.value, canonical(normalize(outcome)))

    actual = normalize(outcome)
    expected = expectation.value
    if expectation.kind == ExpectationKind.TRANSFORM:
        transform: TransformFn = expectation.value
        actual, expected = transform(actual)

    if canonical(actual) != canonical(expected):
        raise ExpectationError(canonical(expected), canonical(actual))
