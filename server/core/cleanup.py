"""Periodic sweep of expired cache records.

The file cache only removes expired records lazily on read; this service
runs the eager sweep on a fixed interval for the lifetime of the app.
"""
import asyncio
from typing import Optional, TYPE_CHECKING

from core.logging import get_logger

if TYPE_CHECKING:
    from core.config import Settings
    from core.cache import FileCacheService

logger = get_logger(__name__)


class CleanupService:
    """Background task that calls ``FileCacheService.clean_expired``."""

    def __init__(self, cache: "FileCacheService", settings: "Settings"):
        self.cache = cache
        self.settings = settings
        self._running = False
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._running

    async def start(self) -> None:
        """Start the cleanup service background task."""
        if self._running:
            return
        self._running = True
        self._task = asyncio.create_task(self._cleanup_loop())
        logger.info("Cleanup service started", interval=self.settings.cleanup_interval)

    async def stop(self) -> None:
        """Stop the cleanup service gracefully."""
        self._running = False
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        logger.info("Cleanup service stopped")

    async def _cleanup_loop(self) -> None:
        """Main cleanup loop - runs at configured interval."""
        while self._running:
            try:
                await self.run_once()
            except Exception as e:
                logger.error("Cleanup failed", error=str(e))
            await asyncio.sleep(self.settings.cleanup_interval)

    async def run_once(self) -> dict:
        """Run one sweep and return counts."""
        results = {"expired_cache": await self.cache.clean_expired()}
        if results["expired_cache"] > 0:
            logger.info("Cleanup completed", **results)
        return results
