"""Cache maintenance routes for the admin dashboard."""

from fastapi import APIRouter, Depends

from core.cache import FileCacheService
from core.container import container
from core.logging import get_logger

logger = get_logger(__name__)
router = APIRouter(prefix="/api/cache", tags=["cache"])


@router.get("/stats")
async def get_cache_stats(
    cache: FileCacheService = Depends(lambda: container.cache())
):
    """Valid, expired and corrupt record counts plus disk usage."""
    stats = await cache.get_stats()
    if stats is None:
        return {"success": False, "error": "Cache directory is not readable"}
    return {"success": True, "stats": stats.to_dict()}


@router.post("/cleanup")
async def cleanup_expired(
    cache: FileCacheService = Depends(lambda: container.cache())
):
    """Run an expired-entry sweep now."""
    removed = await cache.clean_expired()
    return {"success": True, "removed": removed}


@router.delete("")
async def clear_cache(
    cache: FileCacheService = Depends(lambda: container.cache())
):
    """Drop every cached entry."""
    removed = await cache.clear()
    logger.info("Cache cleared via API", removed=removed)
    return {"success": True, "removed": removed}


@router.delete("/{key:path}")
async def delete_cache_key(
    key: str,
    cache: FileCacheService = Depends(lambda: container.cache())
):
    deleted = await cache.delete(key)
    return {"success": True, "deleted": deleted}


@router.get("/ttl/{category}")
async def get_category_ttl(
    category: str,
    cache: FileCacheService = Depends(lambda: container.cache())
):
    return {"category": category, "ttl_ms": cache.get_ttl(category)}
