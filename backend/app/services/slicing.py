"""
Plane slicing kernel for layer-based fabrication.

The slicing plane is always horizontal: a layer height ``h`` selects
the plane ``y = h``.  Two pure functions form the kernel:

- :func:`slice_segment` intersects one edge with the plane and returns
  zero, one or two points.
- :func:`slice_triangle` runs :func:`slice_segment` over the three
  edges of a triangle in winding order, then sorts and deduplicates
  the combined points with the tolerance comparator.  A transversal
  cut yields a two point chord, a coplanar triangle yields its three
  vertices and a triangle that only touches the plane at a vertex
  yields that single vertex.

Every point returned by the kernel has its ``y`` coordinate assigned
exactly to the requested height rather than recomputed from the
interpolation, so points produced by neighbouring edges (and
neighbouring triangles) agree bit for bit on ``y``.

On top of the kernel, :func:`slice_mesh` and
:func:`slice_mesh_at_heights` decode flat vertex/index buffers with
numpy, prefilter triangles by their y-range and collect the kernel
results per height in triangle order.  Debug statistics are logged
when the ``SLICE_DEBUG`` environment variable is set.

The kernel functions never raise for finite inputs.  Validation of
buffers and heights happens in the mesh helpers, which raise
``ValueError`` subclasses before any slicing takes place.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import List, Sequence, Tuple

import numpy as np

from .geometry_types import (
    Edge,
    Point,
    Triangle,
    add,
    as_point,
    scale,
    sub,
    triangle_edges,
)
from .settings import resolve_tolerance, slice_debug_enabled
from .tolerance import MACHINE_EPSILON, approx_equal, points_approx_equal, xyz_sort_key

logger = logging.getLogger(__name__)


# Public symbols exported by this module.
__all__ = [
    # Kernel
    "slice_segment",
    "slice_triangle",
    # Mesh batch helpers
    "SliceSegment",
    "MeshSlice",
    "MeshBufferError",
    "index_array",
    "triangles_from_buffers",
    "slice_mesh",
    "slice_mesh_at_heights",
]


def slice_segment(
    edge: Edge | Sequence[Sequence[float]],
    height: float,
    tolerance: float | None = None,
) -> List[Point]:
    """Intersect an edge with the horizontal plane ``y = height``.

    - If the edge lies in the plane, both endpoints are returned in
      ``(start, end)`` order.
    - If the edge crosses the plane (endpoints included), the single
      intersection point is returned.
    - Otherwise (parallel and offset, or crossing outside the edge's
      extent) the result is empty.

    Args:
        edge: ``(start, end)`` pair of points.
        height: Layer height of the slicing plane.
        tolerance: Comparison tolerance; ``None`` selects the
            configured default.

    Returns:
        A list of 0, 1 or 2 points, each with ``y == height`` exactly.
    """
    tol = resolve_tolerance(tolerance)
    start, end = (as_point(p) for p in edge)
    direction = sub(end, start)

    is_parallel = approx_equal(direction.y, 0.0, tol)
    if is_parallel and approx_equal(start.y, height, tol):
        return [start.with_y(height), end.with_y(height)]
    if not is_parallel:
        t = (height - start.y) / direction.y
        if 0.0 <= t <= 1.0:
            return [add(start, scale(direction, t)).with_y(height)]
    return []


def _dedup_sorted(points: List[Point], tol: float) -> List[Point]:
    # Each point is compared with the last one kept.
    unique: List[Point] = []
    for p in points:
        if unique and points_approx_equal(unique[-1], p, tol):
            continue
        unique.append(p)
    return unique


def slice_triangle(
    triangle: Triangle | Sequence[Sequence[float]],
    height: float,
    tolerance: float | None = None,
) -> List[Point]:
    """Intersect a triangle with the horizontal plane ``y = height``.

    The triangle is decomposed into its edges ``(v0, v1)``, ``(v1, v2)``
    and ``(v2, v0)``; the points returned by :func:`slice_segment` for
    each edge are concatenated, sorted by ``(x, y, z)`` with
    :func:`~app.services.tolerance.compare_xyz` and deduplicated with the
    same tolerance.

    Args:
        triangle: ``(v0, v1, v2)`` vertices in winding order.
        height: Layer height of the slicing plane.
        tolerance: Comparison tolerance; ``None`` selects the
            configured default.

    Returns:
        The sorted, deduplicated intersection points: empty when the
        plane misses the triangle, one point when it only touches a
        vertex, two points for a chord and three points (the vertices)
        when every vertex lies within tolerance of the plane; those
        vertices are returned with ``y`` set to ``height``.
    """
    tol = resolve_tolerance(tolerance)
    vertices = tuple(as_point(v) for v in triangle)

    ys = [v.y for v in vertices]
    y_min = min(ys)
    y_max = max(ys)
    if height < y_min and not approx_equal(height, y_min, tol):
        return []
    if height > y_max and not approx_equal(height, y_max, tol):
        return []

    points: List[Point] = []
    if all(approx_equal(y, height, tol) for y in ys):
        # Coplanar: an edge whose rise exceeds the tolerance would
        # otherwise add an interpolated point between the vertices.
        points = [v.with_y(height) for v in vertices]
    else:
        for edge in triangle_edges(vertices):
            points.extend(slice_segment(edge, height, tol))

    points.sort(key=xyz_sort_key(tol))
    return _dedup_sorted(points, tol)


# --- Mesh batch helpers ---


class MeshBufferError(ValueError):
    """Raised when vertex/index buffers cannot be decoded into triangles."""


@dataclass
class SliceSegment:
    """A chord produced by slicing one triangle transversally.

    ``p1`` precedes ``p2`` in ``(x, y, z)`` order.  Both lie on the
    slicing plane.
    """

    p1: Point
    p2: Point


@dataclass
class MeshSlice:
    """Slicing results for one layer height.

    Attributes:
        height: The layer height that was sliced.
        triangle_count: Number of triangles in the mesh.
        segments: One chord per transversally cut triangle, in triangle
            order.
        coplanar_faces: Sorted vertices of each triangle lying in the
            plane, in triangle order.
        touching_vertices: Vertices of triangles that only touch the
            plane at a single point, in triangle order.
    """

    height: float
    triangle_count: int = 0
    segments: List[SliceSegment] = field(default_factory=list)
    coplanar_faces: List[Tuple[Point, ...]] = field(default_factory=list)
    touching_vertices: List[Point] = field(default_factory=list)


def index_array(indices: Sequence[int]) -> np.ndarray:
    """Convert an index buffer to a flat int64 array.

    Raises:
        MeshBufferError: If an entry is not an integer representable
            as int64.
    """
    try:
        return np.asarray(indices, dtype=np.int64).reshape(-1)
    except (OverflowError, TypeError, ValueError) as exc:
        raise MeshBufferError(f"index buffer is not a valid int64 array: {exc}") from exc


def triangles_from_buffers(vertices: Sequence[float], indices: Sequence[int]) -> np.ndarray:
    """Decode flat vertex and index buffers into a triangle array.

    Args:
        vertices: Flat list of vertex coordinates (x0, y0, z0, x1, ...).
            An ``(n, 3)`` nested list or array is accepted as well.
        indices: Flat list of integer indices; every three entries form
            a triangle.

    Returns:
        A float array of shape ``(triangle_count, 3, 3)``.

    Raises:
        MeshBufferError: If either buffer length is not a multiple of
            three, an index is out of range or a coordinate is not
            finite.
    """
    verts = np.asarray(vertices, dtype=float)
    if verts.size % 3 != 0:
        raise MeshBufferError(
            f"vertex buffer length {verts.size} is not a multiple of 3"
        )
    verts = verts.reshape(-1, 3)
    if not np.all(np.isfinite(verts)):
        raise MeshBufferError("vertex buffer contains non-finite coordinates")

    idx = index_array(indices)
    if idx.size % 3 != 0:
        raise MeshBufferError(
            f"index buffer length {idx.size} is not a multiple of 3"
        )
    if idx.size and (idx.min() < 0 or idx.max() >= len(verts)):
        raise MeshBufferError(
            f"index buffer references vertices outside 0..{len(verts) - 1}"
        )
    return verts[idx.reshape(-1, 3)]


def _check_finite(name: str, value: float) -> None:
    if not math.isfinite(value):
        raise ValueError(f"{name} must be finite, got {value!r}")


def _candidate_triangles(triangles: np.ndarray, height: float, tol: float) -> np.ndarray:
    """Indices of triangles whose y-range may reach ``height``.

    The bounds are widened by twice the hybrid tolerance so that no
    triangle accepted by :func:`slice_triangle` is filtered out here.
    """
    ys = triangles[:, :, 1]
    y_min = ys.min(axis=1)
    y_max = ys.max(axis=1)
    slack_low = 2.0 * np.maximum(tol, MACHINE_EPSILON * np.maximum(abs(height), np.abs(y_min)))
    slack_high = 2.0 * np.maximum(tol, MACHINE_EPSILON * np.maximum(abs(height), np.abs(y_max)))
    mask = (height >= y_min - slack_low) & (height <= y_max + slack_high)
    return np.nonzero(mask)[0]


def _slice_triangle_array(triangles: np.ndarray, height: float, tol: float) -> MeshSlice:
    result = MeshSlice(height=height, triangle_count=len(triangles))
    if not len(triangles):
        return result
    candidates = _candidate_triangles(triangles, height, tol)
    # np.nonzero yields ascending indices, so results follow triangle order.
    for i in candidates:
        tri = tuple(Point(float(r[0]), float(r[1]), float(r[2])) for r in triangles[i])
        pts = slice_triangle(tri, height, tol)
        if not pts:
            continue
        if len(pts) == 1:
            result.touching_vertices.append(pts[0])
        elif len(pts) == 2:
            result.segments.append(SliceSegment(p1=pts[0], p2=pts[1]))
        else:
            result.coplanar_faces.append(tuple(pts))
    if slice_debug_enabled():
        logger.debug(
            "slice_mesh: height=%s triangles=%d candidates=%d segments=%d coplanar=%d touching=%d",
            height,
            result.triangle_count,
            len(candidates),
            len(result.segments),
            len(result.coplanar_faces),
            len(result.touching_vertices),
        )
    return result


def _resolve_checked_tolerance(tolerance: float | None) -> float:
    tol = resolve_tolerance(tolerance)
    _check_finite("tolerance", tol)
    if tol < 0.0:
        raise ValueError(f"tolerance must be non-negative, got {tol!r}")
    return tol


def slice_mesh(
    vertices: Sequence[float],
    indices: Sequence[int],
    height: float,
    tolerance: float | None = None,
) -> MeshSlice:
    """Slice every triangle of a mesh at one layer height.

    Args:
        vertices: Flat vertex buffer (see :func:`triangles_from_buffers`).
        indices: Flat triangle index buffer.
        height: Layer height of the slicing plane.
        tolerance: Comparison tolerance; ``None`` selects the
            configured default.

    Returns:
        A :class:`MeshSlice` with the per-triangle results grouped by
        kind, in triangle order.

    Raises:
        MeshBufferError: If the buffers are malformed.
        ValueError: If ``height`` or ``tolerance`` is invalid.
    """
    tol = _resolve_checked_tolerance(tolerance)
    _check_finite("height", height)
    triangles = triangles_from_buffers(vertices, indices)
    return _slice_triangle_array(triangles, float(height), tol)


def slice_mesh_at_heights(
    vertices: Sequence[float],
    indices: Sequence[int],
    heights: Sequence[float],
    tolerance: float | None = None,
) -> List[MeshSlice]:
    """Slice a mesh at each of ``heights``, in the order given.

    The buffers are decoded once and every height is sliced with the
    same resolved tolerance.  Choosing the heights is up to the caller.

    Raises:
        MeshBufferError: If the buffers are malformed.
        ValueError: If a height or the tolerance is invalid.
    """
    tol = _resolve_checked_tolerance(tolerance)
    for h in heights:
        _check_finite("height", h)
    triangles = triangles_from_buffers(vertices, indices)
    return [_slice_triangle_array(triangles, float(h), tol) for h in heights]
