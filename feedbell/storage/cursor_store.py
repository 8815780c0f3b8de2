import asyncio
import json
import logging
from pathlib import Path
from typing import Any, Dict, Optional, Protocol, Union

log = logging.getLogger(__name__)

Scalar = Union[int, bool, str]


def feed_keys(kind: str, identity) -> tuple:
    base = f"{kind}-{identity}"
    return base, f"{base}-updated-id"


def status_key(kind: str, identity) -> str:
    return f"{kind}-{identity}-status"


class CursorStore(Protocol):
    async def get(self, key: str) -> Optional[Scalar]: ...

    async def set(self, key: str, value: Scalar) -> None: ...

    async def snapshot(self) -> Dict[str, Scalar]: ...


class MemoryCursorStore:
    def __init__(self, initial: Optional[Dict[str, Scalar]] = None):
        self._data: Dict[str, Scalar] = dict(initial or {})

    async def get(self, key: str) -> Optional[Scalar]:
        return self._data.get(key)

    async def set(self, key: str, value: Scalar) -> None:
        self._data[key] = value

    async def snapshot(self) -> Dict[str, Scalar]:
        return dict(self._data)


class JsonFileCursorStore:
    """Cursor values kept in one JSON object on disk.

    Every set rewrites the file through a temp file and an atomic replace, so a
    crash leaves either the old or the new state, never a torn one.
    """

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)
        self._data: Optional[Dict[str, Any]] = None
        self._lock = asyncio.Lock()

    async def get(self, key: str) -> Optional[Scalar]:
        async with self._lock:
            data = await self._load()
            return data.get(key)

    async def set(self, key: str, value: Scalar) -> None:
        if not isinstance(value, (int, bool, str)):
            raise TypeError(f"cursor value for {key!r} must be a scalar, got {type(value).__name__}")
        async with self._lock:
            updated = dict(await self._load())
            updated[key] = value
            await asyncio.to_thread(self._flush, updated)
            self._data = updated

    async def snapshot(self) -> Dict[str, Scalar]:
        async with self._lock:
            return dict(await self._load())

    async def _load(self) -> Dict[str, Any]:
        if self._data is None:
            self._data = await asyncio.to_thread(self._read)
        return self._data

    def _read(self) -> Dict[str, Any]:
        if not self.path.exists():
            return {}
        with self.path.open("r", encoding="utf-8") as f:
            data = json.load(f)
        if not isinstance(data, dict):
            raise ValueError(f"cursor file {self.path} does not hold a JSON object")
        log.info("Loaded %d cursor keys from %s", len(data), self.path)
        return data

    def _flush(self, data: Dict[str, Any]):
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_suffix(".tmp")
        with tmp.open("w", encoding="utf-8") as f:
            json.dump(data, f, ensure_ascii=False, indent=2, sort_keys=True)
        tmp.replace(self.path)
