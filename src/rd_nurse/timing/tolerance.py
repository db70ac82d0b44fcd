"""Scale-relative float comparison.

Every time comparison in the checker goes through :func:`almost_equal`
rather than ``==``. The test is relative, so precision degrades gracefully
for large magnitudes and two zeros compare equal.
"""

from __future__ import annotations

from bisect import bisect_left, bisect_right
from collections.abc import Callable, Iterable, Sequence
from typing import TypeVar

T = TypeVar("T")
U = TypeVar("U")

# |a - b| * SCALE <= |a| + |b|
SCALE = 4096


def almost_equal(a: float, b: float) -> bool:
    """Return True if ``a`` and ``b`` are equal up to relative tolerance."""
    return abs(a - b) * SCALE <= abs(a) + abs(b)


def includes(
    values: Iterable[T],
    value: U,
    equal: Callable[[T, U], bool] = almost_equal,
) -> bool:
    """Return True if any element of ``values`` equals ``value`` under ``equal``."""
    return any(equal(elem, value) for elem in values)


def unique(values: Iterable[T], equal: Callable[[T, T], bool] = almost_equal) -> list[T]:
    """Drop adjacent near-duplicates.

    Only neighbours are compared, so callers sort first.

    Args:
        values: Sorted values.
        equal: Equality predicate applied to adjacent pairs.

    Returns:
        New list where no two adjacent elements are equal under ``equal``.
    """
    result: list[T] = []
    for value in values:
        if not result or not equal(result[-1], value):
            result.append(value)
    return result


def near(sorted_values: Sequence[float], value: float) -> range:
    """Index range of ``sorted_values`` that may be tolerance-equal to ``value``.

    The window is a superset of the matches; callers still apply
    :func:`almost_equal` to each candidate.
    """
    # Solving |a - b| * 4096 <= |a| + |b| for b gives |a - b| <= 2|a| / 4095.
    radius = 2 * abs(value) / (SCALE - 1)
    radius += radius * 1e-9
    lo = bisect_left(sorted_values, value - radius)
    hi = bisect_right(sorted_values, value + radius)
    return range(lo, hi)


def matches(sorted_values: Sequence[float], value: float) -> list[int]:
    """Indices of all elements of ``sorted_values`` tolerance-equal to ``value``."""
    return [i for i in near(sorted_values, value) if almost_equal(sorted_values[i], value)]
