"""File-backed TTL cache used by the vendor API wrappers.

Every key maps to one JSON record under the configured cache root. The cache
is an optimization layer only: no public method raises on storage failures.
Errors are logged where they happen and the call degrades to a miss or no-op.
"""

import asyncio
import functools
import hashlib
import json
import os
import time
import uuid
from contextlib import suppress
from pathlib import Path
from typing import Any, Callable, List, Mapping, Optional

from pydantic import ValidationError

from core.config import Settings
from core.logging import get_logger, log_cache_operation
from models.cache import CacheEntry, CacheStats, LoadResult

logger = get_logger(__name__)

RECORD_SUFFIX = ".json"


def _now_ms() -> int:
    return int(time.time() * 1000)


def _format_param(value: Any) -> str:
    if value is True:
        return "true"
    if value is False:
        return "false"
    if value is None:
        return "null"
    return str(value)


def _read_entry(path: Path) -> LoadResult:
    try:
        raw = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return LoadResult(missing=True, error="record not found")
    except (OSError, UnicodeDecodeError) as e:
        return LoadResult(error=str(e))

    try:
        return LoadResult(entry=CacheEntry.model_validate_json(raw))
    except ValidationError as e:
        return LoadResult(error=f"malformed record: {e.error_count()} validation error(s)")


def _check_payload_keys(value: Any) -> None:
    # json.dumps would silently stringify these, so the payload would not round-trip
    if isinstance(value, dict):
        for name, item in value.items():
            if not isinstance(name, str):
                raise TypeError(f"payload has non-string key {name!r}")
            _check_payload_keys(item)
    elif isinstance(value, (list, tuple)):
        for item in value:
            _check_payload_keys(item)


def _write_entry(path: Path, entry: CacheEntry) -> None:
    _check_payload_keys(entry.payload)
    # Serialize before touching the filesystem so a bad payload leaves the old record intact
    data = json.dumps(entry.model_dump(), indent=2, ensure_ascii=False, allow_nan=False)
    tmp_path = path.with_name(f"{path.name}.{uuid.uuid4().hex}.tmp")
    try:
        tmp_path.write_text(data, encoding="utf-8")
        os.replace(tmp_path, path)
    except OSError:
        with suppress(OSError):
            tmp_path.unlink()
        raise


def _unlink(path: Path) -> bool:
    try:
        path.unlink()
        return True
    except FileNotFoundError:
        return False


class FileCacheService:
    """Async filesystem cache with per-entry TTL.

    Records are named by the sha256 of the key, so arbitrary keys are safe
    as filenames. Expired entries are removed lazily by ``get`` and eagerly
    by ``clean_expired``; both use ``CacheEntry.is_expired``.
    """

    def __init__(self, settings: Settings):
        self.settings = settings
        self.cache_dir = Path(settings.cache_dir)
        self._dir_ready = False

    async def startup(self):
        """Prepare the cache root."""
        if await self.ensure_cache_dir():
            logger.info("File cache initialized", cache_dir=str(self.cache_dir))

    async def ensure_cache_dir(self) -> bool:
        """Create the cache root if needed. Safe to call repeatedly."""
        try:
            await self._run(functools.partial(self.cache_dir.mkdir, parents=True, exist_ok=True))
            self._dir_ready = True
        except OSError as e:
            logger.error("Error creating cache directory", cache_dir=str(self.cache_dir), error=str(e))
            self._dir_ready = False
        return self._dir_ready

    async def get(self, key: str) -> Optional[Any]:
        """Get an unexpired payload, or None."""
        path = self._path_for(key)
        try:
            result = await self._run(_read_entry, path)

            if not result.ok:
                if not result.missing:
                    logger.warning("Unreadable cache record treated as miss",
                                   key=key, path=str(path), error=result.error)
                log_cache_operation(logger, "get", key, hit=False)
                return None

            entry = result.entry
            if entry.key != key or entry.is_expired(_now_ms()):
                await self.delete(key)
                log_cache_operation(logger, "get", key, hit=False, expired=True)
                return None

            log_cache_operation(logger, "get", key, hit=True)
            return entry.payload

        except Exception as e:
            logger.error("Cache get failed", key=key, error=str(e))
            return None

    async def set(self, key: str, value: Any, ttl_ms: Optional[int] = None) -> bool:
        """Store a payload, replacing any previous entry for the key.

        The payload must be JSON-serializable with string dict keys; anything
        else is logged and reported as a failed write (False).
        """
        try:
            ttl = self.settings.cache_ttl_default if ttl_ms is None else max(0, int(ttl_ms))
            created_at = _now_ms()
            entry = CacheEntry(
                key=key,
                payload=value,
                created_at=created_at,
                ttl_ms=ttl,
                expires_at=created_at + ttl
            )

            if not self._dir_ready:
                await self.ensure_cache_dir()

            await self._run(_write_entry, self._path_for(key), entry)
            log_cache_operation(logger, "set", key, ttl_ms=ttl)
            return True

        except Exception as e:
            logger.error("Cache set failed", key=key, error=str(e))
            # Root may have been removed underneath us; retry mkdir on next write
            self._dir_ready = False
            return False

    async def delete(self, key: str) -> bool:
        """Delete the entry for a key. Missing entries are not an error."""
        try:
            deleted = await self._run(_unlink, self._path_for(key))
            log_cache_operation(logger, "delete", key, deleted=deleted)
            return deleted

        except Exception as e:
            logger.error("Cache delete failed", key=key, error=str(e))
            return False

    async def clear(self) -> int:
        """Remove every record. Returns the number removed."""
        paths = await self._list_records()
        if paths is None:
            return 0

        removed = 0
        for path in paths:
            try:
                if await self._run(_unlink, path):
                    removed += 1
            except OSError as e:
                logger.warning("Failed to remove cache record", path=str(path), error=str(e))

        logger.info("Cache cleared", removed=removed)
        return removed

    async def clean_expired(self) -> int:
        """Remove expired and unreadable records. Returns the number removed."""
        paths = await self._list_records()
        if paths is None:
            return 0

        now = _now_ms()
        cleaned = 0
        for path in paths:
            result = await self._run(_read_entry, path)
            if result.missing:
                continue
            if result.ok and not result.entry.is_expired(now):
                continue
            if not result.ok:
                logger.warning("Removing unreadable cache record", path=str(path), error=result.error)

            try:
                if await self._run(_unlink, path):
                    cleaned += 1
            except OSError as e:
                logger.warning("Failed to remove expired cache record", path=str(path), error=str(e))

        if cleaned > 0:
            logger.info("Cleaned expired cache entries", count=cleaned)
        return cleaned

    async def get_stats(self) -> Optional[CacheStats]:
        """Aggregate valid, expired and corrupt record counts plus bytes on disk."""
        paths = await self._list_records()
        if paths is None:
            return None

        now = _now_ms()
        stats = CacheStats()
        for path in paths:
            try:
                size = await self._run(lambda p=path: p.stat().st_size)
            except OSError:
                # Removed between listing and stat
                continue

            result = await self._run(_read_entry, path)
            if result.missing:
                continue

            stats.total_size += size
            if not result.ok:
                stats.corrupt_entries += 1
                stats.expired_entries += 1
            elif result.entry.is_expired(now):
                stats.expired_entries += 1
            else:
                stats.valid_entries += 1

        stats.total_entries = stats.valid_entries + stats.expired_entries
        return stats

    @staticmethod
    def generate_key(prefix: str, params: Optional[Mapping[str, Any]] = None) -> str:
        """Build an order-independent key from a prefix and parameters."""
        params = params or {}
        pairs = "&".join(
            f"{name}={_format_param(params[name])}"
            for name in sorted(params, key=str)
        )
        return f"{prefix}_{pairs}"

    def get_ttl(self, category: Optional[str]) -> int:
        """TTL in milliseconds for a data category, or the default."""
        ttls = self.settings.cache_ttls
        if not isinstance(category, str) or not category:
            return ttls["default"]
        return ttls.get(category) or ttls["default"]

    def _path_for(self, key: str) -> Path:
        digest = hashlib.sha256(key.encode("utf-8")).hexdigest()
        return self.cache_dir / f"{digest}{RECORD_SUFFIX}"

    async def _list_records(self) -> Optional[List[Path]]:
        try:
            return await self._run(self._scan_records)
        except OSError as e:
            logger.error("Error listing cache directory", cache_dir=str(self.cache_dir), error=str(e))
            return None

    def _scan_records(self) -> List[Path]:
        if not self.cache_dir.exists():
            return []
        with os.scandir(self.cache_dir) as entries:
            return sorted(
                Path(entry.path) for entry in entries
                if entry.is_file() and entry.name.endswith(RECORD_SUFFIX)
            )

    async def _run(self, func: Callable, *args):
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, func, *args)
