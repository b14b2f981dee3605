"""
Runtime settings for the slicing services.

Settings are read from environment variables each time they are
requested, so tests and deployments can change them without reloading
modules.  Invalid values never abort a request: they are logged and
replaced by the built-in default.

Recognised variables:

- ``SLICE_TOLERANCE``: default absolute tolerance used when a caller
  does not pass one explicitly (float, default ``1e-6``).
- ``SLICE_CACHE_ENTRIES``: maximum number of mesh slices held by the
  slice cache (int, default ``32``).
- ``SLICE_DEBUG``: when set to a truthy value, services emit debug
  logs describing the work they do.
"""

from __future__ import annotations

import logging
import math
import os

logger = logging.getLogger(__name__)

DEFAULT_TOLERANCE: float = 1e-6
DEFAULT_CACHE_ENTRIES: int = 32

_FALSY = {"", "0", "false", "no", "off"}


def slice_debug_enabled() -> bool:
    """Return ``True`` when ``SLICE_DEBUG`` is set to a truthy value."""
    return os.getenv("SLICE_DEBUG", "").strip().lower() not in _FALSY


def get_default_tolerance() -> float:
    """Return the configured default tolerance.

    Falls back to :data:`DEFAULT_TOLERANCE` when ``SLICE_TOLERANCE`` is
    unset, unparsable, negative or not finite.
    """
    raw = os.getenv("SLICE_TOLERANCE")
    if raw is None or not raw.strip():
        return DEFAULT_TOLERANCE
    try:
        value = float(raw)
    except ValueError:
        logger.warning("Ignoring unparsable SLICE_TOLERANCE=%r", raw)
        return DEFAULT_TOLERANCE
    if not math.isfinite(value) or value < 0.0:
        logger.warning("Ignoring out-of-range SLICE_TOLERANCE=%r", raw)
        return DEFAULT_TOLERANCE
    return value


def get_cache_capacity() -> int:
    """Return the configured slice cache capacity (at least 1)."""
    raw = os.getenv("SLICE_CACHE_ENTRIES")
    if raw is None or not raw.strip():
        return DEFAULT_CACHE_ENTRIES
    try:
        value = int(raw)
    except ValueError:
        logger.warning("Ignoring unparsable SLICE_CACHE_ENTRIES=%r", raw)
        return DEFAULT_CACHE_ENTRIES
    if value < 1:
        logger.warning("Ignoring out-of-range SLICE_CACHE_ENTRIES=%r", raw)
        return DEFAULT_CACHE_ENTRIES
    return value


def resolve_tolerance(tolerance: float | None) -> float:
    """Return ``tolerance`` or the configured default when it is ``None``."""
    if tolerance is None:
        return get_default_tolerance()
    return tolerance
