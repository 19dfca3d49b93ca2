"""Centralized cache constants.

Cache time presets offered by the widget cache settings panel, plus the
sentinels used by key derivation and the default sweep cadence.
"""

from typing import Dict, Optional, Union

# =============================================================================
# CACHE TIME PRESETS (milliseconds)
# =============================================================================

CACHE_TIMES: Dict[str, int] = {
    "SHORT": 30 * 1000,
    "MEDIUM": 5 * 60 * 1000,
    "LONG": 15 * 60 * 1000,
    "VERY_LONG": 60 * 60 * 1000,
    "DISABLED": 0,
}

# Upper bounds (inclusive, seconds) used to map an arbitrary TTL onto a preset
_PRESET_CEILINGS = (
    ("SHORT", 30),
    ("MEDIUM", 300),
    ("LONG", 900),
    ("VERY_LONG", 3600),
)

# =============================================================================
# KEY DERIVATION / SWEEP
# =============================================================================

KEY_FIELD_ERROR = "<error>"
KEY_FALLBACK_MARKER = "fallback"

DEFAULT_SWEEP_INTERVAL_SECONDS = 60.0


def classify_cache_time(cache_time_ms: Optional[int]) -> str:
    """Map a TTL onto the closest preset bucket.

    Falsy values and anything longer than an hour report ``DISABLED``, the
    same way the settings panel shows them.
    """
    if not cache_time_ms:
        return "DISABLED"
    seconds = cache_time_ms / 1000
    for name, ceiling in _PRESET_CEILINGS:
        if seconds <= ceiling:
            return name
    return "DISABLED"


def is_custom_cache_time(cache_time_ms: Optional[int]) -> bool:
    """True when the TTL is not exactly one of the presets."""
    preset = classify_cache_time(cache_time_ms)
    if preset == "DISABLED":
        return not cache_time_ms
    return cache_time_ms != CACHE_TIMES[preset]


def preset_cache_time(preset: str) -> Optional[int]:
    """Resolve a preset name to milliseconds. ``DISABLED`` means no caching."""
    if preset == "DISABLED":
        return None
    return CACHE_TIMES[preset]


def custom_cache_time(seconds: Union[str, int, None]) -> Optional[int]:
    """Convert a user-entered number of seconds to milliseconds."""
    try:
        return int(seconds) * 1000
    except (TypeError, ValueError):
        return None


def format_cache_time(cache_time_ms: Optional[int]) -> str:
    """Human-readable TTL, e.g. ``45s``, ``5m``, ``2h``."""
    if not cache_time_ms:
        return "No caching"
    if cache_time_ms < 60_000:
        return f"{round(cache_time_ms / 1000)}s"
    if cache_time_ms < 3_600_000:
        return f"{round(cache_time_ms / 60_000)}m"
    return f"{round(cache_time_ms / 3_600_000)}h"
