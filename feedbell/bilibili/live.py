import asyncio
import logging
from typing import Any, Dict, Optional

from feedbell.bilibili.api_client import BilibiliClient
from feedbell.core.errors import SourceError
from feedbell.core.models import LiveSignal
from feedbell.core.rules import dig

log = logging.getLogger(__name__)

SHORT_ID_LIMIT = 10000
LIVE_STATUS_LIVE = 1


class RoomIdResolver:
    """Short room alias -> long room id. The mapping never changes, so entries are never evicted."""

    def __init__(self, client: BilibiliClient):
        self._client = client
        self._cache: Dict[int, int] = {}
        self._lock = asyncio.Lock()

    def cached(self, room_id: int) -> Optional[int]:
        return self._cache.get(room_id)

    async def resolve(self, room_id: int) -> int:
        if room_id >= SHORT_ID_LIMIT:
            return room_id
        async with self._lock:
            if room_id in self._cache:
                return self._cache[room_id]
            payload = await self._client.room_init(room_id)
            long_id = dig(_data(payload, "room_init"), "room_id")
            if not isinstance(long_id, int):
                raise SourceError(f"room_init for {room_id} has no room_id")
            self._cache[room_id] = long_id
            log.info("Resolved short room id %s -> %s", room_id, long_id)
            return long_id


def _data(payload: Any, what: str) -> Dict[str, Any]:
    if not isinstance(payload, dict):
        raise SourceError(f"{what} response is not an object")
    code = payload.get("code", 0)
    if code != 0:
        raise SourceError(f"{what} returned code={code} message={payload.get('message') or payload.get('msg')!r}")
    data = payload.get("data")
    if not isinstance(data, dict):
        raise SourceError(f"{what} response has no data object")
    return data


def normalize_live(room_id: int, room_payload: Dict[str, Any], anchor_payload: Dict[str, Any]) -> LiveSignal:
    room = _data(room_payload, "get_info")
    anchor = dig(_data(anchor_payload, "get_anchor_in_room"), "info") or {}
    return LiveSignal(
        room_id=room_id,
        is_live=room.get("live_status") == LIVE_STATUS_LIVE,
        title=room.get("title") or "",
        start_time=room.get("live_time") or "",
        cover_image_url=room.get("user_cover") or "",
        streamer_name=anchor.get("uname") or str(room.get("uid") or room_id),
        uid=anchor.get("uid") or room.get("uid"),
    )


class LiveStatusSource:
    def __init__(self, client: BilibiliClient, resolver: RoomIdResolver):
        self.client = client
        self.resolver = resolver

    async def fetch(self, room_id: int) -> LiveSignal:
        long_id = await self.resolver.resolve(room_id)
        room_payload = await self.client.room_info(long_id)
        anchor_payload = await self.client.anchor_in_room(long_id)
        return normalize_live(long_id, room_payload, anchor_payload)
