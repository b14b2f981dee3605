"""
Simple in‑memory caching layer for mesh slices.

Slicing a large mesh at many heights is the expensive part of a slice
request, and clients often resend the same mesh with the same
heights.  This module caches :class:`~app.services.slicing.MeshSlice`
results keyed by a digest of the mesh buffers, the layer height and
the tolerance used.

The cache is implemented as an ``OrderedDict`` to provide
least‑recently‑used (LRU) eviction.  Its capacity is read from the
``SLICE_CACHE_ENTRIES`` setting on every insertion.

Usage::

    from .slice_cache import SliceCacheKey, compute_mesh_digest, get_mesh_slice_from_cache, put_mesh_slice_in_cache
    key = SliceCacheKey(mesh_digest=compute_mesh_digest(verts, idx), height=0.5, tolerance=1e-6)
    layer = get_mesh_slice_from_cache(key)
    if layer is None:
        layer = slice_mesh(verts, idx, 0.5, 1e-6)
        put_mesh_slice_in_cache(key, layer)

"""

from __future__ import annotations

import hashlib
import logging
from collections import OrderedDict
from dataclasses import dataclass
from threading import RLock
from typing import Optional, Sequence

import numpy as np

from .settings import get_cache_capacity, slice_debug_enabled
from .slicing import MeshSlice, index_array

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SliceCacheKey:
    """Unique identifier for a cached mesh slice.

    Attributes:
        mesh_digest: Digest of the vertex and index buffers (see
            :func:`compute_mesh_digest`).
        height: Layer height of the slice.
        tolerance: Tolerance the slice was computed with.
    """

    mesh_digest: str
    height: float
    tolerance: float


def compute_mesh_digest(vertices: Sequence[float], indices: Sequence[int]) -> str:
    """Return a SHA-1 hex digest identifying a mesh's buffers.

    Vertices are hashed as float64 and indices as int64 so that the
    digest does not depend on the container type used by the caller.

    Raises:
        MeshBufferError: If an index does not fit in int64.
    """
    h = hashlib.sha1()
    h.update(np.ascontiguousarray(vertices, dtype=np.float64).tobytes())
    h.update(b"|")
    h.update(np.ascontiguousarray(index_array(indices)).tobytes())
    return h.hexdigest()


# Underlying storage for the slice cache.  A reentrant lock protects
# the dictionary to allow safe concurrent access from request handlers.
_cache: "OrderedDict[SliceCacheKey, MeshSlice]" = OrderedDict()
_lock = RLock()


def get_mesh_slice_from_cache(key: SliceCacheKey) -> Optional[MeshSlice]:
    """Retrieve a cached mesh slice if available.

    Args:
        key: Cache key identifying the slice.

    Returns:
        The cached :class:`MeshSlice`, otherwise ``None``.
    """
    with _lock:
        layer = _cache.get(key)
        if layer is not None:
            # Move the key to the end to mark it as recently used
            _cache.move_to_end(key)
    if slice_debug_enabled():
        logger.debug(
            "slice cache %s: height=%s digest=%s",
            "hit" if layer is not None else "miss",
            key.height,
            key.mesh_digest[:12],
        )
    return layer


def put_mesh_slice_in_cache(key: SliceCacheKey, layer: MeshSlice) -> None:
    """Store a mesh slice in the cache.

    Least recently used entries are evicted until the cache fits the
    configured capacity.

    Args:
        key: Cache key identifying the slice.
        layer: The slice result to cache.
    """
    capacity = get_cache_capacity()
    with _lock:
        _cache[key] = layer
        _cache.move_to_end(key)
        while len(_cache) > capacity:
            _cache.popitem(last=False)


def clear_slice_cache() -> None:
    """Drop every cached entry."""
    with _lock:
        _cache.clear()


def slice_cache_size() -> int:
    """Return the number of cached entries."""
    with _lock:
        return len(_cache)
