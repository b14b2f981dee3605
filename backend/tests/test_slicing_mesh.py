"""
Tests for the mesh batch helpers defined in slicing.py.

These tests construct a simple unit cube mesh in pure Python and
slice it at several layer heights.  The expected number of chords,
coplanar faces and vertex contacts per layer is asserted, as well as
buffer validation and deterministic ordering.
"""

from __future__ import annotations

import sys
from pathlib import Path
import math
import pytest

import numpy as np

# Make the backend package importable when running tests directly via pytest
sys.path.append(str(Path(__file__).resolve().parents[1]))

from app.services.geometry_types import Point
from app.services.slicing import (
    MeshBufferError,
    slice_mesh,
    slice_mesh_at_heights,
    slice_triangle,
    triangles_from_buffers,
)


def create_unit_cube_mesh() -> tuple[list[float], list[int]]:
    """Construct vertices and indices for a unit cube with corners at (0,0,0) and (1,1,1).

    The cube is composed of 12 triangles (two per face).  Vertices are
    returned as a flat list of floats and indices as a flat list of ints.
    """
    verts = [
        0.0, 0.0, 0.0,  # 0
        1.0, 0.0, 0.0,  # 1
        1.0, 1.0, 0.0,  # 2
        0.0, 1.0, 0.0,  # 3
        0.0, 0.0, 1.0,  # 4
        1.0, 0.0, 1.0,  # 5
        1.0, 1.0, 1.0,  # 6
        0.0, 1.0, 1.0,  # 7
    ]
    idx = [
        0, 1, 2, 0, 2, 3,  # z=0 face
        4, 5, 6, 4, 6, 7,  # z=1 face
        0, 1, 5, 0, 5, 4,  # y=0 face
        3, 2, 6, 3, 6, 7,  # y=1 face
        0, 4, 7, 0, 7, 3,  # x=0 face
        1, 2, 6, 1, 6, 5,  # x=1 face
    ]
    return verts, idx


def test_triangles_from_buffers_shape() -> None:
    verts, idx = create_unit_cube_mesh()
    tris = triangles_from_buffers(verts, idx)
    assert tris.shape == (12, 3, 3)
    assert tris[0].tolist() == [[0.0, 0.0, 0.0], [1.0, 0.0, 0.0], [1.0, 1.0, 0.0]]


def test_triangles_from_buffers_accepts_nested_vertices() -> None:
    verts, idx = create_unit_cube_mesh()
    nested = np.array(verts).reshape(-1, 3).tolist()
    assert np.array_equal(triangles_from_buffers(nested, idx), triangles_from_buffers(verts, idx))


@pytest.mark.parametrize(
    "vertices, indices",
    [
        ([0.0, 0.0, 0.0, 1.0], [0, 0, 0]),  # vertex buffer not a multiple of 3
        ([0.0, 0.0, 0.0], [0, 0]),  # index buffer not a multiple of 3
        ([0.0, 0.0, 0.0], [0, 0, 1]),  # index out of range
        ([0.0, 0.0, 0.0], [0, 0, -1]),  # negative index
        ([0.0, math.nan, 0.0], [0, 0, 0]),  # non-finite coordinate
        ([0.0, math.inf, 0.0], [0, 0, 0]),
    ],
)
def test_triangles_from_buffers_rejects_malformed_buffers(vertices, indices) -> None:
    with pytest.raises(MeshBufferError):
        triangles_from_buffers(vertices, indices)


def test_cube_mid_slice_produces_two_chords_per_side_face() -> None:
    verts, idx = create_unit_cube_mesh()
    layer = slice_mesh(verts, idx, 0.5, 1e-6)
    assert layer.height == 0.5
    assert layer.triangle_count == 12
    # Four side faces, each split into two triangles cut by the plane
    assert len(layer.segments) == 8
    assert layer.coplanar_faces == []
    assert layer.touching_vertices == []
    for seg in layer.segments:
        assert seg.p1.y == 0.5 and seg.p2.y == 0.5
        for i in range(3):
            assert 0.0 <= seg.p1.as_tuple()[i] <= 1.0
            assert 0.0 <= seg.p2.as_tuple()[i] <= 1.0
    # First triangle (z=0 face) yields the chord from its diagonal to x=1
    assert layer.segments[0].p1 == Point(0.5, 0.5, 0.0)
    assert layer.segments[0].p2 == Point(1.0, 0.5, 0.0)


def test_cube_bottom_slice_classifies_degenerate_contacts() -> None:
    verts, idx = create_unit_cube_mesh()
    layer = slice_mesh(verts, idx, 0.0, 1e-6)
    # The y=0 face lies in the plane
    assert len(layer.coplanar_faces) == 2
    for face in layer.coplanar_faces:
        assert len(face) == 3
        assert all(p.y == 0.0 for p in face)
    # Side triangles either share an edge with the plane or touch one vertex
    assert len(layer.segments) == 4
    assert len(layer.touching_vertices) == 4


def test_cube_slice_above_mesh_is_empty() -> None:
    verts, idx = create_unit_cube_mesh()
    layer = slice_mesh(verts, idx, 2.0, 1e-6)
    assert layer.triangle_count == 12
    assert layer.segments == []
    assert layer.coplanar_faces == []
    assert layer.touching_vertices == []


def test_slice_mesh_matches_per_triangle_kernel() -> None:
    """The y-range prefilter never drops a triangle the kernel would accept."""
    verts, idx = create_unit_cube_mesh()
    tris = triangles_from_buffers(verts, idx)
    for height in (0.0, 1e-7, -1e-7, 0.3, 1.0, 1.0 + 1e-7):
        layer = slice_mesh(verts, idx, height, 1e-6)
        expected = 0
        for tri in tris:
            pts = slice_triangle(tuple(Point(*map(float, row)) for row in tri), height, 1e-6)
            if pts:
                expected += 1
        got = len(layer.segments) + len(layer.coplanar_faces) + len(layer.touching_vertices)
        assert got == expected


def test_slice_mesh_at_heights_preserves_order() -> None:
    verts, idx = create_unit_cube_mesh()
    heights = [0.75, 0.25, 0.5]
    layers = slice_mesh_at_heights(verts, idx, heights, 1e-6)
    assert [layer.height for layer in layers] == heights
    assert all(len(layer.segments) == 8 for layer in layers)
    # Deterministic: repeating the batch gives identical results
    assert slice_mesh_at_heights(verts, idx, heights, 1e-6) == layers


def test_slice_mesh_empty_index_buffer() -> None:
    layer = slice_mesh([0.0, 0.0, 0.0], [], 0.0, 1e-6)
    assert layer.triangle_count == 0
    assert layer.segments == []


@pytest.mark.parametrize("height", [math.nan, math.inf, -math.inf])
def test_slice_mesh_rejects_non_finite_height(height: float) -> None:
    verts, idx = create_unit_cube_mesh()
    with pytest.raises(ValueError):
        slice_mesh(verts, idx, height, 1e-6)


@pytest.mark.parametrize("tolerance", [-1e-6, math.nan])
def test_slice_mesh_rejects_invalid_tolerance(tolerance: float) -> None:
    verts, idx = create_unit_cube_mesh()
    with pytest.raises(ValueError):
        slice_mesh_at_heights(verts, idx, [0.5], tolerance)


def test_nearly_level_triangle_is_a_three_vertex_coplanar_face() -> None:
    verts = [0.0, -0.9e-6, 0.0, 1.0, 0.9e-6, 0.0, 0.0, 0.0, 1.0]
    layer = slice_mesh(verts, [0, 1, 2], 0.0, 1e-6)
    assert layer.coplanar_faces == [(Point(0.0, 0.0, 0.0), Point(0.0, 0.0, 1.0), Point(1.0, 0.0, 0.0))]
    assert layer.segments == []


@pytest.mark.parametrize("indices", [[0, 0, 2**70], [0, 0, -(2**70)]])
def test_index_outside_int64_is_a_buffer_error(indices) -> None:
    with pytest.raises(MeshBufferError):
        triangles_from_buffers([0.0, 0.0, 0.0], indices)
