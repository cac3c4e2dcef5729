"""Conversion of intervals given as integers or timedeltas to milliseconds."""

from datetime import timedelta

__all__ = ["to_millis"]

_U64_MAX = 2**64 - 1
_ONE_MS = timedelta(milliseconds=1)


def to_millis(value: int | timedelta) -> int:
    """Return ``value`` as a whole number of milliseconds.

    Integers are taken as milliseconds already. Timedeltas are truncated to
    whole milliseconds. The result must be a non-negative value that fits in
    an unsigned 64-bit integer, otherwise ``ValueError`` is raised.
    """
    if isinstance(value, bool):
        raise TypeError("a boolean is not an interval")
    if isinstance(value, timedelta):
        if value < timedelta(0):
            raise ValueError("Timestamp must be a non-negative integer")
        millis = value // _ONE_MS
    elif isinstance(value, int):
        millis = value
    else:
        raise TypeError(f"cannot convert {type(value).__name__} to milliseconds")

    if millis < 0:
        raise ValueError("Timestamp must be a non-negative integer")
    if millis > _U64_MAX:
        raise ValueError(f"{millis} does not fit in an unsigned 64-bit integer")
    return millis