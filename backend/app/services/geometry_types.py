"""
Value types shared by the slicing services.

A ``Point`` is an immutable 3D coordinate.  Edges and triangles are
plain tuples of points so that callers can build them with ordinary
tuple syntax; the order of the points is significant (it defines the
edge direction and the triangle winding).  The vector helpers mirror
the small tuple-based helpers used elsewhere in the slicing code but
operate on ``Point`` instances and always return new points.

Dataclass equality on ``Point`` is bit-exact.  Slicing code never uses
it to decide whether two points coincide; that decision is always made
through :mod:`app.services.tolerance`.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Iterable, Iterator, Sequence, Tuple


@dataclass(frozen=True)
class Point:
    """Immutable 3D point (or vector).

    Attributes:
        x: Coordinate along the x axis.
        y: Coordinate along the y axis.  Layer heights are measured
            along this axis.
        z: Coordinate along the z axis.
    """

    x: float
    y: float
    z: float

    def __iter__(self) -> Iterator[float]:
        yield self.x
        yield self.y
        yield self.z

    def with_y(self, y: float) -> "Point":
        """Return a copy of this point with ``y`` replaced."""
        return replace(self, y=y)

    def as_tuple(self) -> Tuple[float, float, float]:
        return (self.x, self.y, self.z)

    @classmethod
    def from_iterable(cls, values: Iterable[float]) -> "Point":
        """Build a point from any iterable of exactly three numbers.

        Raises:
            ValueError: If ``values`` does not contain exactly three items.
        """
        coords = [float(v) for v in values]
        if len(coords) != 3:
            raise ValueError(f"a point needs exactly 3 coordinates, got {len(coords)}")
        return cls(coords[0], coords[1], coords[2])


Edge = Tuple[Point, Point]
Triangle = Tuple[Point, Point, Point]


def as_point(value: "Point | Sequence[float]") -> Point:
    """Coerce ``value`` into a :class:`Point`.

    ``Point`` instances are returned unchanged; any other 3-sequence
    (tuple, list, numpy row) is converted.
    """
    if isinstance(value, Point):
        return value
    return Point.from_iterable(value)


def sub(a: Point, b: Point) -> Point:
    """Subtract two vectors (a - b)."""
    return Point(a.x - b.x, a.y - b.y, a.z - b.z)


def add(a: Point, b: Point) -> Point:
    """Add two vectors."""
    return Point(a.x + b.x, a.y + b.y, a.z + b.z)


def scale(a: Point, s: float) -> Point:
    """Scale a vector by ``s``."""
    return Point(a.x * s, a.y * s, a.z * s)


def triangle_edges(triangle: Triangle) -> Tuple[Edge, Edge, Edge]:
    """Return the three edges of ``triangle`` in winding order.

    The edges are ``(v0, v1)``, ``(v1, v2)`` and ``(v2, v0)``.
    """
    v0, v1, v2 = triangle
    return ((v0, v1), (v1, v2), (v2, v0))
