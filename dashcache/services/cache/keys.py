"""Deterministic cache key derivation.

Format: ``{prefix}:{k1}:{v1}|{k2}:{v2}|...`` with parameter names sorted and
each value encoded as canonical JSON (sorted object keys, no extra whitespace),
so two parameter dicts with the same contents always map to the same key.
"""

import json
from typing import Any, Mapping

from dashcache.constants import KEY_FALLBACK_MARKER, KEY_FIELD_ERROR
from dashcache.core.logging import get_logger
from dashcache.models.cache import now_ms

logger = get_logger(__name__)


def encode_value(value: Any) -> str:
    """Canonical JSON for one parameter value. Raises on unserializable input."""
    return json.dumps(value, sort_keys=True, separators=(",", ":"))


def derive_key(prefix: str, params: Mapping[str, Any]) -> str:
    """Build the cache key for ``prefix`` and ``params``.

    Never raises. A value that cannot be encoded is replaced by
    ``<error>`` for that field only; any other failure yields
    ``{prefix}:fallback-{now_ms}``, which is never reused, so that call is
    simply not cached.
    """
    try:
        parts = []
        for name in sorted(params.keys(), key=str):
            try:
                encoded = encode_value(params[name])
            except (TypeError, ValueError, RecursionError) as e:
                logger.warning("Failed to encode cache key field", prefix=prefix,
                               field=str(name), error=str(e))
                encoded = KEY_FIELD_ERROR
            parts.append(f"{name}:{encoded}")

        cache_key = f"{prefix}:{'|'.join(parts)}"
        logger.debug("Derived cache key", cache_key=cache_key)
        return cache_key

    except Exception as e:
        logger.error("Failed to derive cache key", prefix=str(prefix), error=str(e))
        return f"{prefix}:{KEY_FALLBACK_MARKER}-{now_ms()}"
