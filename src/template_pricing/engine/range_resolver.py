"""
Range Resolver - first-match lookup over ordered [min, max] ranges.

Used for height tiers and for both pricing grid axes. Ranges are evaluated
in configuration order and are never re-sorted: merchants may put a narrow
range before a broader one to override part of it.
"""
from dataclasses import dataclass
from typing import Generic, Iterable, Optional, Sequence, TypeVar

T = TypeVar('T')


@dataclass(frozen=True)
class OrderedRange(Generic[T]):
    """An inclusive [min, max] range mapped to a value."""
    min: float
    max: float
    value: T

    def contains(self, query: float) -> bool:
        return self.min <= query <= self.max


def resolve_index(ranges: Sequence[OrderedRange[T]], query: float) -> Optional[int]:
    """Index of the first range containing `query`, or None."""
    for i, r in enumerate(ranges):
        if r.contains(query):
            return i
    return None


def resolve(ranges: Iterable[OrderedRange[T]], query: float) -> Optional[OrderedRange[T]]:
    """
    First range containing `query` (inclusive at both ends), or None.

    None is a normal outcome; callers decide the fallback. The matching
    range is returned rather than its value so a None value stays
    distinguishable from no match.
    """
    for r in ranges:
        if r.contains(query):
            return r
    return None
