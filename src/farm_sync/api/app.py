from typing import Any

from fastapi import FastAPI, Query
from fastapi.middleware.cors import CORSMiddleware

from farm_sync.api.dependencies import HandlerDep, lifespan
from farm_sync.config import settings
from farm_sync.dto import (
    AnimalListResponse,
    CacheStatsResponse,
    HealthCheckResponse,
    InvalidateCacheRequest,
    InvalidateCacheResponse,
    ResourceResponse,
)

app = FastAPI(
    title="Farm Sync API",
    description="Cached, deduplicated reads of the farm backend for dashboard screens",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,  # type: ignore[arg-type]
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/")
async def root() -> dict[str, Any]:
    """Root endpoint with API information."""
    return {
        "name": "Farm Sync API",
        "version": "0.1.0",
        "description": "Cached, deduplicated reads of the farm backend for dashboard screens",
        "endpoints": {
            "animals": "/animals",
            "resources": "/resources/{resource}",
            "cache": "/cache",
            "health": "/health",
            "docs": "/docs",
        },
    }


@app.get("/health", response_model=HealthCheckResponse)
async def health(handler: HandlerDep) -> dict:
    """Health check endpoint."""
    return await handler.health_check()


@app.get("/animals", response_model=AnimalListResponse)
async def list_animals(handler: HandlerDep) -> AnimalListResponse:
    """Get the canonical animal collection, fetching it on first use."""
    return await handler.list_animals()


@app.post("/animals/refresh", response_model=AnimalListResponse)
async def refresh_animals(handler: HandlerDep) -> AnimalListResponse:
    """Refetch the animal collection from the backend."""
    return await handler.refresh_animals()


@app.get("/animals/{animal_id}")
async def get_animal(animal_id: str, handler: HandlerDep) -> dict:
    """Get a single animal from the collection."""
    return await handler.get_animal(animal_id)


@app.get("/resources/{resource}", response_model=ResourceResponse)
async def get_resource(
    resource: str,
    handler: HandlerDep,
    ttl_ms: int | None = Query(None, ge=1, description="Override the default TTL"),
) -> ResourceResponse:
    """Get ``api/<resource>`` through the keyed TTL cache."""
    return await handler.get_resource(resource, ttl_ms)


@app.post("/cache/invalidate", response_model=InvalidateCacheResponse)
async def invalidate_cache(request: InvalidateCacheRequest, handler: HandlerDep) -> InvalidateCacheResponse:
    """Invalidate every cache key matching a prefix or regular expression."""
    return await handler.invalidate(request)


@app.delete("/cache", response_model=InvalidateCacheResponse)
async def clear_cache(handler: HandlerDep) -> InvalidateCacheResponse:
    """Clear all keyed cache entries."""
    return await handler.clear_cache()


@app.get("/cache/stats", response_model=CacheStatsResponse)
async def get_stats(handler: HandlerDep) -> CacheStatsResponse:
    """Get cache statistics."""
    return await handler.get_stats()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "farm_sync.api.app:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.api_reload,
    )
