"""Widget cache diagnostics routes."""

from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from dashcache.constants import classify_cache_time, format_cache_time
from dashcache.core.container import container
from dashcache.core.logging import get_logger
from dashcache.services.cache import CacheEngine, resolve_ttl
from dashcache.services.widget_registry import WidgetRegistry

logger = get_logger(__name__)
router = APIRouter(prefix="/api/cache", tags=["cache"])


class ResolveTtlRequest(BaseModel):
    widget_type: Optional[str] = None
    config: Dict[str, Any] = {}


@router.get("/stats")
async def get_stats(cache: CacheEngine = Depends(lambda: container.cache())):
    """Memory tier size and keys."""
    stats = cache.get_stats()
    return {
        "success": True,
        **stats.to_dict(),
        "durable": cache.durable_available,
        "preloaded": cache.preloaded,
    }


@router.get("/debug")
async def debug_cache(cache: CacheEngine = Depends(lambda: container.cache())):
    """Per-entry age / remaining / ttl snapshot."""
    return {"success": True, "entries": cache.debug()}


@router.get("/entries/{key:path}")
async def get_entry_info(key: str, cache: CacheEngine = Depends(lambda: container.cache())):
    """Diagnostic info for a single key."""
    info = cache.get_info(key)
    if info is None:
        raise HTTPException(status_code=404, detail=f"Cache key not found: {key}")
    return {"success": True, "key": key, **info.to_dict()}


@router.delete("/entries/{key:path}")
async def clear_entry(key: str, cache: CacheEngine = Depends(lambda: container.cache())):
    """Drop one key from both tiers."""
    cache.clear(key)
    return {"success": True, "key": key}


@router.delete("")
async def clear_all(cache: CacheEngine = Depends(lambda: container.cache())):
    """Drop every entry from both tiers."""
    cache.clear()
    return {"success": True}


@router.post("/ttl")
async def resolve_effective_ttl(
    request: ResolveTtlRequest,
    registry: WidgetRegistry = Depends(lambda: container.widget_registry())
):
    """Effective TTL a widget instance would be cached with."""
    ttl_ms = resolve_ttl(request.config, request.widget_type, registry)
    return {
        "success": True,
        "widget_type": request.widget_type,
        "ttl_ms": ttl_ms,
        "preset": classify_cache_time(ttl_ms),
        "label": format_cache_time(ttl_ms),
    }
