"""Wildcard / exact / interval matching over year, month and day."""

from __future__ import annotations

from almanac.domain.models import Date, RangeBit, RangePattern


def matches_bit(bit: RangeBit, value: int) -> bool:
    """Match one component.

    ``None`` matches anything, an ``int`` must equal ``value`` and a
    ``(min, max)`` pair is inclusive with ``None`` leaving that side open.
    """
    if bit is None:
        return True
    if isinstance(bit, int):
        return value == bit
    low, high = bit
    if low is not None and value < low:
        return False
    if high is not None and value > high:
        return False
    return True


def matches_range_pattern(pattern: RangePattern, target: Date) -> bool:
    return (
        matches_bit(pattern.year, target.year)
        and matches_bit(pattern.month, target.month)
        and matches_bit(pattern.day, target.day)
    )
