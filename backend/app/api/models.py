"""
Pydantic data models for the slicing API.

These models define the shapes of requests and responses used by the
backend.  Coordinates are accepted and returned as ``{x, y, z}``
objects; the layer height always refers to the ``y`` axis.  Finiteness
of coordinates, heights and tolerances is checked by the route
handlers, which answer with a 400 error.
"""

from __future__ import annotations

from typing import Any, Dict, List, Literal

from pydantic import BaseModel, Field


class SlicePoint(BaseModel):
    """Single 3D point."""

    x: float
    y: float
    z: float


class SegmentSliceRequest(BaseModel):
    """Request body for slicing a single edge."""

    edge: List[SlicePoint] = Field(
        ..., min_length=2, max_length=2, description="Start and end point of the edge"
    )
    height: float = Field(..., description="Layer height (y coordinate) of the slicing plane")
    tolerance: float | None = Field(
        default=None,
        description="Comparison tolerance; the server default is used when omitted",
    )


class SegmentSliceResponse(BaseModel):
    """Response returned after slicing an edge."""

    height: float = Field(..., description="Layer height that was sliced")
    points: List[SlicePoint] = Field(
        ..., description="Zero, one or two intersection points"
    )


class TriangleSliceRequest(BaseModel):
    """Request body for slicing a single triangle."""

    triangle: List[SlicePoint] = Field(
        ..., min_length=3, max_length=3, description="Vertices in winding order"
    )
    height: float = Field(..., description="Layer height (y coordinate) of the slicing plane")
    tolerance: float | None = Field(
        default=None,
        description="Comparison tolerance; the server default is used when omitted",
    )


class TriangleSliceResponse(BaseModel):
    """Response returned after slicing a triangle."""

    height: float = Field(..., description="Layer height that was sliced")
    points: List[SlicePoint] = Field(
        ..., description="Intersection points sorted by (x, y, z) with duplicates removed"
    )
    kind: Literal["miss", "vertex", "chord", "coplanar"] = Field(
        ...,
        description=(
            "Classification of the result: 'miss' (no points), 'vertex' (the plane "
            "touches a single vertex), 'chord' (two points) or 'coplanar' (three "
            "vertices)"
        ),
    )


class MeshSliceRequest(BaseModel):
    """Request body for slicing a whole mesh at one or more heights."""

    vertices: List[float] = Field(..., description="Flat list of vertex positions (x, y, z …)")
    indices: List[int] = Field(..., description="Index buffer defining the mesh triangles")
    heights: List[float] = Field(
        ..., min_length=1, description="Layer heights to slice at, in the order to report them"
    )
    tolerance: float | None = Field(
        default=None,
        description="Comparison tolerance; the server default is used when omitted",
    )


class MeshLayer(BaseModel):
    """Per-height result of a mesh slice."""

    height: float = Field(..., description="Layer height that was sliced")
    segments: List[List[SlicePoint]] = Field(
        ..., description="One two-point chord per transversally cut triangle, in triangle order"
    )
    coplanarFaces: List[List[SlicePoint]] = Field(
        default_factory=list,
        description="Sorted vertices of triangles lying in the plane, in triangle order",
    )
    touchingVertices: List[SlicePoint] = Field(
        default_factory=list,
        description="Vertices of triangles that touch the plane at a single point",
    )


class MeshSliceResponse(BaseModel):
    """Response returned after slicing a mesh."""

    layers: List[MeshLayer] = Field(..., description="One entry per requested height")
    metadata: Dict[str, Any] = Field(
        ..., description="Additional metadata such as triangle count, tolerance and cache usage"
    )
