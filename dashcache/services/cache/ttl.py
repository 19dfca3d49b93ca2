"""Effective TTL resolution for a widget instance.

Order of precedence:
    1. ``cacheTimeMs`` on the persisted widget config (``0`` disables caching)
    2. the registry default for the widget type
    3. the registry default for a type inferred from the config's shape

Resolution never raises; ``None`` means "do not cache".
"""

from typing import Any, Callable, Mapping, Optional, Protocol, Tuple

from pydantic import BaseModel, ValidationError

from dashcache.core.logging import get_logger
from dashcache.models.cache import WidgetCacheConfig

logger = get_logger(__name__)


class WidgetLookup(Protocol):
    def lookup(self, widget_id: str) -> Any: ...


def _has_coordinates(config: Mapping[str, Any]) -> bool:
    return "lat" in config and "lon" in config


# Ordered (name, predicate, inferred widget type); first match wins.
# Used when a persisted widget has lost its type tag.
INFERENCE_RULES: Tuple[Tuple[str, Callable[[Mapping[str, Any]], bool], str], ...] = (
    ("coordinates+us-scale", lambda c: _has_coordinates(c) and c.get("scale") == "us", "air-quality"),
    ("coordinates+kmh-units", lambda c: _has_coordinates(c) and c.get("units") == "kmh", "wind-focus"),
    ("coordinates+official-mode", lambda c: _has_coordinates(c) and c.get("mode") == "official", "sun-phases"),
)


def _as_mapping(config: Any) -> Mapping[str, Any]:
    if config is None:
        return {}
    if isinstance(config, BaseModel):
        return config.model_dump(by_alias=True, exclude_none=True)
    if isinstance(config, Mapping):
        return config
    raise TypeError(f"unsupported widget config type: {type(config).__name__}")


def explicit_cache_time(config: Mapping[str, Any]) -> Optional[int]:
    """``cacheTimeMs`` (or ``cache_time_ms``) when present and a valid TTL.

    A value that is not a non-negative integer is logged and treated as absent.
    """
    for field_name in ("cacheTimeMs", "cache_time_ms"):
        value = config.get(field_name)
        if value is None:
            continue
        try:
            return WidgetCacheConfig.model_validate({"cacheTimeMs": value}).cache_time_ms
        except ValidationError:
            logger.warning("Ignoring invalid cache time in widget config", field=field_name, value=repr(value))
    return None


def infer_widget_type(config: Mapping[str, Any]) -> Optional[str]:
    """Guess a widget type from config fields, or None."""
    for name, predicate, widget_type in INFERENCE_RULES:
        if predicate(config):
            logger.debug("Inferred widget type from config", rule=name, widget_type=widget_type)
            return widget_type
    return None


def registry_default(registry: Optional[WidgetLookup], widget_type: Optional[str]) -> Optional[int]:
    """Default TTL of an API-backed widget type, or None."""
    if registry is None or not widget_type:
        return None
    try:
        definition = registry.lookup(widget_type)
    except Exception as e:
        logger.warning("Widget registry lookup failed", widget_type=widget_type, error=str(e))
        return None
    if definition is None:
        return None

    uses_external_apis = getattr(definition, "uses_external_apis", False)
    default = getattr(definition, "default_cache_time_ms", None)
    if uses_external_apis and default:
        return default
    return None


def resolve_ttl(config: Any, widget_type_id: Optional[str],
                registry: Optional[WidgetLookup]) -> Optional[int]:
    """Effective cache TTL in milliseconds for a widget, or None."""
    try:
        fields = _as_mapping(config)

        explicit = explicit_cache_time(fields)
        if explicit is not None:
            logger.debug("Using config cache time", widget_type=widget_type_id, ttl_ms=explicit)
            return explicit

        default = registry_default(registry, widget_type_id)
        if default:
            logger.debug("Using registry cache time", widget_type=widget_type_id, ttl_ms=default)
            return default

        inferred = infer_widget_type(fields)
        default = registry_default(registry, inferred)
        if default:
            logger.debug("Using inferred cache time", widget_type=inferred, ttl_ms=default)
            return default

        return None

    except Exception as e:
        logger.warning("Failed to resolve cache time", widget_type=widget_type_id, error=str(e))
        return None
