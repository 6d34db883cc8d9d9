"""Key-value stores for the result cache and source state records."""

import asyncio
import json
import os
from datetime import UTC, datetime, timedelta
from pathlib import Path
from typing import Any

from now_playing.config import Settings
from now_playing.exceptions import StoreException
from now_playing.logging_config import get_logger, log_with_context

logger = get_logger(__name__)

RESULT_CACHE_NAMESPACE = "result_cache"
APPLE_STATE_NAMESPACE = "apple_state"


class StoreEntry:
    """A stored value with optional expiration time."""

    def __init__(self, value: Any, expires_at: datetime | None):
        self.value = value
        self.expires_at = expires_at

    def is_expired(self, now: datetime | None = None) -> bool:
        """Check if entry has expired. Entries without expiry never do."""
        if self.expires_at is None:
            return False
        return (now or datetime.now(UTC)) >= self.expires_at


def _expiry(ttl_seconds: int | None) -> datetime | None:
    if ttl_seconds is None:
        return None
    return datetime.now(UTC) + timedelta(seconds=ttl_seconds)


class MemoryStore:
    """In-memory key-value store with TTL support.

    Safe for concurrent coroutines using asyncio.Lock. Contents are lost
    on restart.
    """

    def __init__(self, namespace: str):
        self.namespace = namespace
        self._entries: dict[str, StoreEntry] = {}
        self._lock = asyncio.Lock()

    async def get(self, key: str) -> Any | None:
        """Get stored value if present and not expired.

        Args:
            key: Store key

        Returns:
            Stored value or None if not found/expired
        """
        async with self._lock:
            entry = self._entries.get(key)
            if entry and not entry.is_expired():
                log_with_context(
                    logger,
                    "debug",
                    "Store hit",
                    namespace=self.namespace,
                    store_key=key,
                    event_type="store_hit",
                )
                return entry.value

            if entry:
                del self._entries[key]
                log_with_context(
                    logger,
                    "debug",
                    "Store entry expired",
                    namespace=self.namespace,
                    store_key=key,
                    event_type="store_expired",
                )

            return None

    async def put(self, key: str, value: Any, ttl_seconds: int | None = None) -> None:
        """Store value, optionally expiring after ttl_seconds.

        Args:
            key: Store key
            value: Value to store
            ttl_seconds: Time to live in seconds, None to keep indefinitely
        """
        async with self._lock:
            self._entries[key] = StoreEntry(value, _expiry(ttl_seconds))
            log_with_context(
                logger,
                "debug",
                "Store set",
                namespace=self.namespace,
                store_key=key,
                ttl_seconds=ttl_seconds,
                event_type="store_set",
            )

    async def delete(self, key: str) -> None:
        """Remove key if present."""
        async with self._lock:
            if self._entries.pop(key, None) is not None:
                log_with_context(
                    logger,
                    "debug",
                    "Store key deleted",
                    namespace=self.namespace,
                    store_key=key,
                    event_type="store_delete",
                )


class JsonFileStore:
    """Key-value store persisted as one JSON document per namespace.

    Each entry is saved as {"value": ..., "expires_at": iso | null}. Writes go
    to a temporary file that replaces the document, so a crash never leaves a
    half-written file behind. Values must be JSON serializable.
    """

    def __init__(self, namespace: str, directory: Path):
        self.namespace = namespace
        self.path = Path(directory) / f"{namespace}.json"
        self._lock = asyncio.Lock()

    def _read(self) -> dict[str, dict[str, Any]]:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            raise StoreException(
                f"Failed to read store {self.namespace}: {e}",
                details={"path": str(self.path)},
            ) from e
        if not isinstance(data, dict):
            raise StoreException(
                f"Store {self.namespace} does not contain a JSON object",
                details={"path": str(self.path)},
            )
        return data

    def _write(self, data: dict[str, dict[str, Any]]) -> None:
        tmp_path = self.path.with_suffix(".json.tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path.write_text(json.dumps(data, indent=2), encoding="utf-8")
            os.replace(tmp_path, self.path)
        except (OSError, TypeError, ValueError) as e:
            raise StoreException(
                f"Failed to write store {self.namespace}: {e}",
                details={"path": str(self.path)},
            ) from e

    def _entry_of(self, key: str, raw: Any) -> StoreEntry:
        try:
            expires_at = raw.get("expires_at")
            expiry = datetime.fromisoformat(expires_at) if expires_at else None
            if expiry is not None and expiry.tzinfo is None:
                expiry = expiry.replace(tzinfo=UTC)
            return StoreEntry(raw["value"], expiry)
        except (AttributeError, KeyError, TypeError, ValueError) as e:
            raise StoreException(
                f"Invalid entry {key!r} in store {self.namespace}: {e}",
                details={"path": str(self.path)},
            ) from e

    async def get(self, key: str) -> Any | None:
        """Get stored value if present and not expired."""
        async with self._lock:
            data = await asyncio.to_thread(self._read)
            raw = data.get(key)
            if raw is None:
                return None

            entry = self._entry_of(key, raw)
            if entry.is_expired():
                del data[key]
                await asyncio.to_thread(self._write, data)
                log_with_context(
                    logger,
                    "debug",
                    "Store entry expired",
                    namespace=self.namespace,
                    store_key=key,
                    event_type="store_expired",
                )
                return None

            log_with_context(
                logger,
                "debug",
                "Store hit",
                namespace=self.namespace,
                store_key=key,
                event_type="store_hit",
            )
            return entry.value

    async def put(self, key: str, value: Any, ttl_seconds: int | None = None) -> None:
        """Store value, optionally expiring after ttl_seconds."""
        async with self._lock:
            data = await asyncio.to_thread(self._read)
            expires_at = _expiry(ttl_seconds)
            data[key] = {"value": value, "expires_at": expires_at.isoformat() if expires_at else None}
            await asyncio.to_thread(self._write, data)
            log_with_context(
                logger,
                "debug",
                "Store set",
                namespace=self.namespace,
                store_key=key,
                ttl_seconds=ttl_seconds,
                event_type="store_set",
            )

    async def delete(self, key: str) -> None:
        """Remove key if present."""
        async with self._lock:
            data = await asyncio.to_thread(self._read)
            if data.pop(key, None) is not None:
                await asyncio.to_thread(self._write, data)
                log_with_context(
                    logger,
                    "debug",
                    "Store key deleted",
                    namespace=self.namespace,
                    store_key=key,
                    event_type="store_delete",
                )


def create_store(namespace: str, settings: Settings) -> MemoryStore | JsonFileStore:
    """Create the store for a namespace using the configured backend."""
    if settings.store_backend == "file":
        return JsonFileStore(namespace, settings.store_dir)
    return MemoryStore(namespace)
