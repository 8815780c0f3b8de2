import logging
from typing import Any, Dict

import httpx

from feedbell.core.errors import SourceError

log = logging.getLogger(__name__)

DYNAMIC_URL = "https://api.vc.bilibili.com/dynamic_svr/v1/dynamic_svr/space_history"
ROOM_INIT_URL = "https://api.live.bilibili.com/room/v1/Room/room_init"
ROOM_INFO_URL = "https://api.live.bilibili.com/room/v1/Room/get_info"
ANCHOR_URL = "https://api.live.bilibili.com/live_user/v1/UserInfo/get_anchor_in_room"


class BilibiliClient:
    """One method per upstream endpoint; each returns the decoded JSON body."""

    def __init__(self, http: httpx.AsyncClient):
        self._http = http

    async def _get(self, url: str, params: Dict[str, Any], referer: str) -> Dict[str, Any]:
        r = await self._http.get(url, params=params, headers={"Referer": referer})
        r.raise_for_status()
        try:
            return r.json()
        except ValueError as e:
            raise SourceError(f"{url} returned a non-JSON body") from e

    async def space_history(self, uid: int) -> Dict[str, Any]:
        return await self._get(DYNAMIC_URL, {"host_uid": uid}, f"https://space.bilibili.com/{uid}")

    async def room_init(self, room_id: int) -> Dict[str, Any]:
        return await self._get(ROOM_INIT_URL, {"id": room_id}, f"https://live.bilibili.com/{room_id}")

    async def room_info(self, room_id: int) -> Dict[str, Any]:
        return await self._get(ROOM_INFO_URL, {"room_id": room_id, "from": "room"}, f"https://live.bilibili.com/{room_id}")

    async def anchor_in_room(self, room_id: int) -> Dict[str, Any]:
        return await self._get(ANCHOR_URL, {"roomid": room_id}, f"https://live.bilibili.com/{room_id}")
