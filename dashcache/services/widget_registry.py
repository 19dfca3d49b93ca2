"""Widget registry.

Holds the definitions of the dashboard widget types. The cache only cares
about two fields: whether a widget calls external APIs, and the TTL it should
use when its persisted config does not specify one.
"""

from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, Field

from dashcache.constants import CACHE_TIMES
from dashcache.core.logging import get_logger

logger = get_logger(__name__)


class WidgetAlreadyRegistered(Exception):
    """A widget with the same id has already been registered."""

    def __init__(self, widget_id: str):
        self.widget_id = widget_id
        super().__init__(f"Widget '{widget_id}' already registered")


class WidgetDefinition(BaseModel):
    """Registry entry for one widget type."""

    id: str
    title: str
    category: Literal["shortcuts", "helpers", "analytics", "actions", "other"] = "other"
    version: str = "1.0.0"
    uses_external_apis: bool = False
    default_cache_time_ms: Optional[int] = Field(default=None, ge=0)


class WidgetRegistry:
    """In-process map of widget id -> definition."""

    def __init__(self):
        self._widgets: Dict[str, WidgetDefinition] = {}

    def register(self, definition: WidgetDefinition) -> None:
        if definition.id in self._widgets:
            raise WidgetAlreadyRegistered(definition.id)
        self._widgets[definition.id] = definition

    def get(self, widget_id: str) -> Optional[WidgetDefinition]:
        return self._widgets.get(widget_id)

    def lookup(self, widget_id: str) -> Optional[WidgetDefinition]:
        """Alias of ``get`` used by TTL resolution."""
        return self.get(widget_id)

    def list(self) -> List[WidgetDefinition]:
        return list(self._widgets.values())

    def __contains__(self, widget_id: object) -> bool:
        return widget_id in self._widgets

    def __len__(self) -> int:
        return len(self._widgets)


# Built-in widgets backed by third-party APIs, with their default TTLs
BUILTIN_WIDGETS: List[WidgetDefinition] = [
    WidgetDefinition(id="weather", title="Weather", category="helpers",
                     uses_external_apis=True, default_cache_time_ms=CACHE_TIMES["LONG"]),
    WidgetDefinition(id="air-quality", title="Air Quality", category="helpers",
                     uses_external_apis=True, default_cache_time_ms=CACHE_TIMES["LONG"]),
    WidgetDefinition(id="wind-focus", title="Wind Focus", category="helpers",
                     uses_external_apis=True, default_cache_time_ms=CACHE_TIMES["MEDIUM"]),
    WidgetDefinition(id="sun-phases", title="Sun Phases", category="helpers",
                     uses_external_apis=True, default_cache_time_ms=CACHE_TIMES["VERY_LONG"]),
    WidgetDefinition(id="precip-nowcast", title="Precipitation Nowcast", category="helpers",
                     uses_external_apis=True, default_cache_time_ms=CACHE_TIMES["MEDIUM"]),
    WidgetDefinition(id="currency-converter", title="Currency Converter", category="helpers",
                     uses_external_apis=True, default_cache_time_ms=CACHE_TIMES["VERY_LONG"]),
    WidgetDefinition(id="ip-network", title="IP & Network", category="analytics",
                     uses_external_apis=True, default_cache_time_ms=CACHE_TIMES["LONG"]),
    WidgetDefinition(id="quotes", title="Quotes", category="other",
                     uses_external_apis=True, default_cache_time_ms=CACHE_TIMES["VERY_LONG"]),
    WidgetDefinition(id="steam-profile", title="Steam Profile", category="analytics",
                     uses_external_apis=True, default_cache_time_ms=CACHE_TIMES["LONG"]),
    WidgetDefinition(id="steam-backlog", title="Steam Backlog", category="analytics",
                     uses_external_apis=True, default_cache_time_ms=CACHE_TIMES["LONG"]),
    WidgetDefinition(id="jellyfin", title="Jellyfin", category="other",
                     uses_external_apis=True, default_cache_time_ms=CACHE_TIMES["MEDIUM"]),
    WidgetDefinition(id="karakeep", title="Karakeep", category="other",
                     uses_external_apis=True, default_cache_time_ms=CACHE_TIMES["MEDIUM"]),
    WidgetDefinition(id="llm-models", title="LLM Models", category="analytics",
                     uses_external_apis=True, default_cache_time_ms=CACHE_TIMES["VERY_LONG"]),
    WidgetDefinition(id="notes", title="Notes", category="helpers"),
    WidgetDefinition(id="tasks", title="Tasks", category="actions"),
]


def register_builtin_widgets(registry: WidgetRegistry) -> WidgetRegistry:
    """Register built-in widgets, skipping ids that are already present."""
    for definition in BUILTIN_WIDGETS:
        try:
            registry.register(definition)
        except WidgetAlreadyRegistered:
            logger.debug("Built-in widget already registered", widget_id=definition.id)
    return registry


def create_widget_registry() -> WidgetRegistry:
    """Registry preloaded with the built-in widgets."""
    return register_builtin_widgets(WidgetRegistry())
