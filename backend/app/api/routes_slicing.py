"""
API routes for slicing edges, triangles and meshes.

The endpoints are thin wrappers around the slicing kernel in
``app.services.slicing``.  They convert between the pydantic request
models and kernel ``Point`` values, reject non-finite inputs (the
kernel itself assumes finite coordinates) and, for whole meshes, reuse
previously computed layers through the slice cache.
"""

from __future__ import annotations

import logging
import math
from typing import Dict, Iterable, List

from fastapi import APIRouter, HTTPException

from .models import (
    MeshLayer,
    MeshSliceRequest,
    MeshSliceResponse,
    SegmentSliceRequest,
    SegmentSliceResponse,
    SlicePoint,
    TriangleSliceRequest,
    TriangleSliceResponse,
)
from ..services.geometry_types import Point
from ..services.settings import resolve_tolerance
from ..services.slice_cache import (
    SliceCacheKey,
    compute_mesh_digest,
    get_mesh_slice_from_cache,
    put_mesh_slice_in_cache,
)
from ..services.slicing import (
    MeshBufferError,
    MeshSlice,
    slice_mesh_at_heights,
    slice_segment,
    slice_triangle,
)

logger = logging.getLogger(__name__)

router = APIRouter()

# Result kinds keyed by the number of points returned by slice_triangle.
TRIANGLE_RESULT_KINDS: Dict[int, str] = {
    0: "miss",
    1: "vertex",
    2: "chord",
    3: "coplanar",
}


def _to_point(p: SlicePoint) -> Point:
    return Point(p.x, p.y, p.z)


def _to_model(p: Point) -> SlicePoint:
    return SlicePoint(x=p.x, y=p.y, z=p.z)


def _require_finite_points(points: Iterable[SlicePoint]) -> None:
    for p in points:
        if not (math.isfinite(p.x) and math.isfinite(p.y) and math.isfinite(p.z)):
            raise HTTPException(status_code=400, detail=f"Non-finite coordinate in point {p}")


def _require_finite_height(height: float) -> None:
    if not math.isfinite(height):
        raise HTTPException(status_code=400, detail=f"Height must be finite, got {height}")


def _checked_tolerance(tolerance: float | None) -> float:
    tol = resolve_tolerance(tolerance)
    if not math.isfinite(tol) or tol < 0.0:
        raise HTTPException(
            status_code=400,
            detail=f"Tolerance must be finite and non-negative, got {tol}",
        )
    return tol


@router.post("/slice/segment", response_model=SegmentSliceResponse)
async def slice_segment_endpoint(body: SegmentSliceRequest) -> SegmentSliceResponse:
    """Intersect one edge with the plane ``y = height``."""
    _require_finite_points(body.edge)
    _require_finite_height(body.height)
    tol = _checked_tolerance(body.tolerance)
    start, end = (_to_point(p) for p in body.edge)
    points = slice_segment((start, end), body.height, tol)
    return SegmentSliceResponse(height=body.height, points=[_to_model(p) for p in points])


@router.post("/slice/triangle", response_model=TriangleSliceResponse)
async def slice_triangle_endpoint(body: TriangleSliceRequest) -> TriangleSliceResponse:
    """Intersect one triangle with the plane ``y = height``.

    The ``kind`` field classifies the result by its number of points.
    A result with more than three points (an edge within tolerance of
    the plane whose endpoints sit just off it, next to steep edges) is
    reported as ``coplanar``.
    """
    _require_finite_points(body.triangle)
    _require_finite_height(body.height)
    tol = _checked_tolerance(body.tolerance)
    v0, v1, v2 = (_to_point(p) for p in body.triangle)
    points = slice_triangle((v0, v1, v2), body.height, tol)
    kind = TRIANGLE_RESULT_KINDS.get(len(points), "coplanar")
    return TriangleSliceResponse(
        height=body.height,
        points=[_to_model(p) for p in points],
        kind=kind,
    )


def _layer_to_model(layer: MeshSlice) -> MeshLayer:
    return MeshLayer(
        height=layer.height,
        segments=[[_to_model(seg.p1), _to_model(seg.p2)] for seg in layer.segments],
        coplanarFaces=[[_to_model(p) for p in face] for face in layer.coplanar_faces],
        touchingVertices=[_to_model(p) for p in layer.touching_vertices],
    )


@router.post("/slice/mesh", response_model=MeshSliceResponse)
async def slice_mesh_endpoint(body: MeshSliceRequest) -> MeshSliceResponse:
    """Slice a mesh at each requested height.

    Layers already computed for the same buffers, height and tolerance
    are served from the slice cache; the remaining heights are sliced
    in a single batch.  Layers are returned in request order.
    """
    for h in body.heights:
        _require_finite_height(h)
    tol = _checked_tolerance(body.tolerance)

    try:
        digest = compute_mesh_digest(body.vertices, body.indices)
    except MeshBufferError as exc:
        raise HTTPException(status_code=400, detail=f"Invalid mesh buffers: {exc}")
    layers: Dict[float, MeshSlice] = {}
    missing: List[float] = []
    for h in body.heights:
        if h in layers or h in missing:
            continue
        cached = get_mesh_slice_from_cache(SliceCacheKey(digest, float(h), tol))
        if cached is not None:
            layers[h] = cached
        else:
            missing.append(h)
    cache_hits = len(layers)

    if missing:
        try:
            computed = slice_mesh_at_heights(body.vertices, body.indices, missing, tol)
        except MeshBufferError as exc:
            raise HTTPException(status_code=400, detail=f"Invalid mesh buffers: {exc}")
        except Exception as exc:
            logger.exception("mesh slice error: %s", exc)
            raise HTTPException(status_code=500, detail=f"Failed to slice mesh: {exc}")
        for h, layer in zip(missing, computed):
            put_mesh_slice_in_cache(SliceCacheKey(digest, float(h), tol), layer)
            layers[h] = layer

    ordered = [layers[h] for h in body.heights]
    metadata = {
        "triangleCount": ordered[0].triangle_count,
        "tolerance": tol,
        "cacheHits": cache_hits,
        "totalSegments": sum(len(layer.segments) for layer in ordered),
    }
    return MeshSliceResponse(
        layers=[_layer_to_model(layer) for layer in ordered],
        metadata=metadata,
    )
