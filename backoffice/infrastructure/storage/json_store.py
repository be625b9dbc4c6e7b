"""JSON document store: one collection per file, atomic replace on write, per-store write lock."""

import asyncio
import copy
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Generic, Optional, TypeVar

from pydantic import TypeAdapter, ValidationError

from backoffice.infrastructure.storage.paths import atomic_write, ensure_file
from backoffice.infrastructure.storage.write_lock import WriteLock

T = TypeVar("T")
R = TypeVar("R")

logger = logging.getLogger(__name__)


class StoreContentError(RuntimeError):
    """Raised when an update would overwrite stored content that failed to parse."""

    def __init__(self, path: Path, error: Optional[Exception]) -> None:
        self.path = path
        self.error = error
        self.message = f"Refusing to overwrite unreadable store {path}"
        super().__init__(self.message)


@dataclass(frozen=True)
class ReadResult(Generic[T]):
    """Outcome of a read: the parsed value, or the fallback plus the error that forced it."""

    value: T
    fallback_used: bool = False
    error: Optional[Exception] = None


class JsonStore(Generic[T]):
    """
    Persisted collection backed by a single JSON file.
    Reads are not serialized; writes go through the store's WriteLock and replace
    the file atomically, so a reader sees either the old or the new document.
    Unparseable content is masked by the default value and left on disk as is.
    """

    def __init__(
        self,
        path: Path,
        default: T,
        schema: Any = Any,
        lock: Optional[WriteLock] = None,
    ) -> None:
        self.path = path
        self._default = default
        self._adapter: TypeAdapter[T] = TypeAdapter(schema)
        self.lock = lock or WriteLock()

    def _fallback(self) -> T:
        return copy.deepcopy(self._default)

    def _serialize(self, data: T) -> bytes:
        return self._adapter.dump_json(data, indent=2)

    async def ensure(self) -> None:
        """Create the file with the default content if it does not exist."""
        await asyncio.to_thread(ensure_file, self.path, self._serialize(self._default))

    async def _read_raw(self) -> bytes:
        await self.ensure()
        return await asyncio.to_thread(self.path.read_bytes)

    def _parse(self, raw: bytes) -> ReadResult[T]:
        try:
            value = self._adapter.validate_json(raw)
        except ValidationError as e:
            return ReadResult(value=self._fallback(), fallback_used=True, error=e)
        return ReadResult(value=value)

    async def read_result(self) -> ReadResult[T]:
        return self._parse(await self._read_raw())

    async def read(self) -> T:
        result = await self.read_result()
        if result.fallback_used:
            logger.warning(
                "json_store_fallback",
                extra={"path": str(self.path), "error": str(result.error)},
            )
        return result.value

    async def _write_unlocked(self, data: T) -> None:
        await self.ensure()
        await asyncio.to_thread(atomic_write, self.path, self._serialize(data))

    async def write(self, data: T) -> None:
        await self.lock.run(lambda: self._write_unlocked(data))

    async def update(self, fn: Callable[[T], R]) -> R:
        """
        Read, let fn mutate the value in place, write it back; all under the write lock.
        Returns fn's result. If fn raises, nothing is written.
        Content that fails to parse is never replaced: StoreContentError is raised
        instead, unless the file is blank.
        """

        async def _apply() -> R:
            raw = await self._read_raw()
            parsed = self._parse(raw)
            if parsed.fallback_used and raw.strip():
                logger.error(
                    "json_store_update_refused",
                    extra={"path": str(self.path), "error": str(parsed.error)},
                )
                raise StoreContentError(self.path, parsed.error)
            data = parsed.value
            result = fn(data)
            await self._write_unlocked(data)
            return result

        return await self.lock.run(_apply)
