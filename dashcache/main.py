"""
FastAPI host for the dashboard widget cache.

Owns the cache engine lifecycle and exposes diagnostics endpoints.
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import ORJSONResponse

from dashcache.core.container import container
from dashcache.core.logging import configure_logging, get_logger
from dashcache.routers import cache

settings = container.settings()
configure_logging(settings)
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan management."""
    logger.info("Starting widget cache service")
    await container.cache().startup()
    logger.info("Services started successfully")
    yield

    await container.cache().destroy()
    logger.info("Services shutdown complete")


app = FastAPI(
    title="Dashboard Widget Cache",
    version="1.0.0",
    description="Two-tier TTL cache for dashboard widget API responses",
    lifespan=lifespan,
    default_response_class=ORJSONResponse
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(cache.router)


@app.get("/health")
async def health():
    """Cache tier status."""
    engine = container.cache()
    return {
        "status": "ok",
        "durable": engine.durable_available,
        "preloaded": engine.preloaded,
        "entries": len(engine.memory),
    }
