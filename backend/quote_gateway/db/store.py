"""
Quote Gateway - Durable Store

Keyed document collections shared by the provider registry, the rate-limit
ledger and the second cache tier. Two backends:

- RedisStore: one hash per collection, JSON documents as field values
- FileStore: one JSON file per collection under a data directory

Collections used by the gateway: api_config, rate_limits, cache_data.
"""
import asyncio
import json
import os
import uuid
from abc import ABC, abstractmethod
from collections import defaultdict
from pathlib import Path
from typing import Any, Optional

from loguru import logger

from quote_gateway.config import Settings
from quote_gateway.db.redis_client import RedisClient
from quote_gateway.utils.exceptions import StorageError, StorageUnavailableError


API_CONFIG = "api_config"
RATE_LIMITS = "rate_limits"
CACHE_DATA = "cache_data"


class DurableStore(ABC):
    """Abstract keyed document store."""

    backend: str = ""

    async def initialize(self) -> None:
        """Open connections / create directories."""

    async def close(self) -> None:
        """Release resources."""

    @abstractmethod
    async def get(self, collection: str, key: str) -> Optional[dict[str, Any]]:
        """Return the document stored under key, or None."""

    @abstractmethod
    async def put(self, collection: str, key: str, document: dict[str, Any]) -> None:
        """Upsert a document."""

    @abstractmethod
    async def delete(self, collection: str, key: str) -> None:
        """Remove a document if present."""

    @abstractmethod
    async def items(self, collection: str) -> dict[str, dict[str, Any]]:
        """All documents of a collection keyed by key."""

    @abstractmethod
    async def clear(self, collection: str) -> int:
        """Remove every document of a collection; returns how many were removed."""


class FileStore(DurableStore):
    """
    JSON-file backed store.

    Each write rewrites the collection file through a temporary file and an
    atomic rename, so a crash never leaves a half-written collection.
    """

    backend = "file"

    def __init__(self, data_dir: str | Path):
        self.data_dir = Path(data_dir)
        self._locks: dict[str, asyncio.Lock] = defaultdict(asyncio.Lock)

    async def initialize(self) -> None:
        await asyncio.to_thread(self.data_dir.mkdir, parents=True, exist_ok=True)
        logger.info(f"File store ready at {self.data_dir}")

    def _path(self, collection: str) -> Path:
        return self.data_dir / f"{collection}.json"

    def _read(self, collection: str) -> dict[str, dict[str, Any]]:
        path = self._path(collection)
        if not path.exists():
            return {}
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            raise StorageError(f"Cannot read {path}: {e}") from e
        return data if isinstance(data, dict) else {}

    def _write(self, collection: str, data: dict[str, dict[str, Any]]) -> None:
        path = self._path(collection)
        path.parent.mkdir(parents=True, exist_ok=True)
        temp_path = path.parent / f".{path.stem}.{uuid.uuid4().hex[:8]}.tmp"
        try:
            with open(temp_path, "w", encoding="utf-8") as f:
                json.dump(data, f, ensure_ascii=False, indent=2)
            os.replace(temp_path, path)
        except OSError as e:
            temp_path.unlink(missing_ok=True)
            raise StorageError(f"Cannot write {path}: {e}") from e

    def _read_for_write(self, collection: str) -> dict[str, dict[str, Any]]:
        # An unreadable file is replaced by the next write
        try:
            return self._read(collection)
        except StorageError as e:
            logger.warning(f"{e}; rewriting {collection} from scratch")
            return {}

    async def get(self, collection: str, key: str) -> Optional[dict[str, Any]]:
        async with self._locks[collection]:
            data = await asyncio.to_thread(self._read, collection)
        return data.get(key)

    async def put(self, collection: str, key: str, document: dict[str, Any]) -> None:
        async with self._locks[collection]:
            data = await asyncio.to_thread(self._read_for_write, collection)
            data[key] = document
            await asyncio.to_thread(self._write, collection, data)

    async def delete(self, collection: str, key: str) -> None:
        async with self._locks[collection]:
            data = await asyncio.to_thread(self._read_for_write, collection)
            if data.pop(key, None) is not None:
                await asyncio.to_thread(self._write, collection, data)

    async def items(self, collection: str) -> dict[str, dict[str, Any]]:
        async with self._locks[collection]:
            return await asyncio.to_thread(self._read, collection)

    async def clear(self, collection: str) -> int:
        async with self._locks[collection]:
            data = await asyncio.to_thread(self._read, collection)
            await asyncio.to_thread(self._write, collection, {})
        return len(data)


class RedisStore(DurableStore):
    """Redis-hash backed store."""

    backend = "redis"

    def __init__(self, client: RedisClient, key_prefix: str = "quote_gateway"):
        self._client = client
        self.key_prefix = key_prefix

    async def initialize(self) -> None:
        await self._client.initialize()

    async def close(self) -> None:
        await self._client.close()

    def _key(self, collection: str) -> str:
        return f"{self.key_prefix}:{collection}"

    async def get(self, collection: str, key: str) -> Optional[dict[str, Any]]:
        try:
            raw = await self._client.hget(self._key(collection), key)
        except Exception as e:
            raise StorageError(f"Redis read failed: {e}") from e
        return json.loads(raw) if raw else None

    async def put(self, collection: str, key: str, document: dict[str, Any]) -> None:
        try:
            await self._client.hset(self._key(collection), key, json.dumps(document))
        except Exception as e:
            raise StorageError(f"Redis write failed: {e}") from e

    async def delete(self, collection: str, key: str) -> None:
        try:
            await self._client.hdel(self._key(collection), key)
        except Exception as e:
            raise StorageError(f"Redis delete failed: {e}") from e

    async def items(self, collection: str) -> dict[str, dict[str, Any]]:
        try:
            raw = await self._client.hgetall(self._key(collection))
        except Exception as e:
            raise StorageError(f"Redis read failed: {e}") from e
        return {key: json.loads(value) for key, value in raw.items()}

    async def clear(self, collection: str) -> int:
        try:
            removed = await self._client.hlen(self._key(collection))
            await self._client.delete(self._key(collection))
        except Exception as e:
            raise StorageError(f"Redis clear failed: {e}") from e
        return removed


async def create_store(config: Settings) -> DurableStore:
    """
    Build and initialize the durable store selected by STORAGE_BACKEND.

    "auto" tries Redis first and falls back to the file store when Redis
    cannot be reached; "redis" fails hard instead.
    """
    if config.STORAGE_BACKEND in ("auto", "redis"):
        store = RedisStore(RedisClient(config.redis_url), key_prefix=config.REDIS_KEY_PREFIX)
        try:
            await store.initialize()
            return store
        except Exception as e:
            if config.STORAGE_BACKEND == "redis":
                raise StorageUnavailableError(f"Redis unavailable: {e}") from e
            logger.warning(f"Redis unavailable ({e}), falling back to file store")

    store = FileStore(config.DATA_DIR)
    await store.initialize()
    return store
