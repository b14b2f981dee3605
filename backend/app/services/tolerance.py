"""
Tolerance-aware float and point comparison.

Every floating point comparison in the slicing kernel goes through
this module so that sorting, deduplication and coplanarity checks all
agree on when two values are "the same".  A single hybrid policy is
used:

1. ``|a - b| <= tolerance`` (absolute check), otherwise
2. ``|a - b| <= relative_epsilon * max(|a|, |b|)`` (relative fallback
   catching rounding on large-magnitude coordinates, where an absolute
   tolerance can be smaller than one unit in the last place).

The tolerance is always passed in explicitly.  Callers that want the
configured default resolve it once via
:func:`app.services.settings.resolve_tolerance` and hand the same value
to every comparison of a given operation.

Tolerance based ordering is not strictly transitive: with points
spaced just under the tolerance apart, ``a == b`` and ``b == c`` can
hold while ``a < c``.  Sorting remains well defined for the inputs the
kernel produces (at most six points per triangle, clustered around at
most three distinct locations) but callers should not rely on
transitivity for arbitrary point clouds.
"""

from __future__ import annotations

import enum
import functools
import sys
from typing import Any, Callable

from .geometry_types import Point

MACHINE_EPSILON: float = sys.float_info.epsilon


class Ordering(enum.IntEnum):
    """Three-way comparison result compatible with ``functools.cmp_to_key``."""

    LESS = -1
    EQUAL = 0
    GREATER = 1


def approx_equal(
    a: float,
    b: float,
    tolerance: float,
    relative_epsilon: float = MACHINE_EPSILON,
) -> bool:
    """Return ``True`` if ``a`` and ``b`` are equal within tolerance.

    Args:
        a: First value.
        b: Second value.
        tolerance: Maximum absolute difference treated as equal.
        relative_epsilon: Scale factor for the relative fallback check.

    Returns:
        Whether the values compare equal under the hybrid policy.
    """
    diff = abs(a - b)
    if diff <= tolerance:
        return True
    return diff <= relative_epsilon * max(abs(a), abs(b))


def _cmp_raw(a: float, b: float) -> Ordering:
    if a < b:
        return Ordering.LESS
    if a > b:
        return Ordering.GREATER
    return Ordering.EQUAL


def compare_xyz(a: Point, b: Point, tolerance: float) -> Ordering:
    """Lexicographically compare two points by x, then y, then z.

    The first axis on which the points are *not* approximately equal
    decides the result using a raw numeric comparison.  When all three
    axes are approximately equal the points compare ``EQUAL``.
    """
    if not approx_equal(a.x, b.x, tolerance):
        return _cmp_raw(a.x, b.x)
    if not approx_equal(a.y, b.y, tolerance):
        return _cmp_raw(a.y, b.y)
    if not approx_equal(a.z, b.z, tolerance):
        return _cmp_raw(a.z, b.z)
    return Ordering.EQUAL


def points_approx_equal(a: Point, b: Point, tolerance: float) -> bool:
    """Component-wise approximate equality of two points.

    Equivalent to ``compare_xyz(a, b, tolerance) == Ordering.EQUAL``.
    """
    return (
        approx_equal(a.x, b.x, tolerance)
        and approx_equal(a.y, b.y, tolerance)
        and approx_equal(a.z, b.z, tolerance)
    )


def xyz_sort_key(tolerance: float) -> Callable[[Point], Any]:
    """Return a ``sorted``/``list.sort`` key ordering points by :func:`compare_xyz`."""
    return functools.cmp_to_key(lambda a, b: int(compare_xyz(a, b, tolerance)))
