import asyncio
import logging
import re
from typing import Any, Dict, List
from urllib.parse import parse_qs, urlparse

import httpx

from feedbell.core.errors import SourceError
from feedbell.core.models import CanonicalUpdate
from feedbell.core.rules import dig
from feedbell.weibo.feed import normalize_weibo_feed

log = logging.getLogger(__name__)

INDEX_URL = "https://m.weibo.cn/api/container/getIndex"
WEIBO_USER_AGENT = "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/86.0.4240.183 Safari/537.36"


def uid_from_profile_url(profile_url: str) -> str:
    url = urlparse(profile_url)
    uid = (parse_qs(url.query).get("uid") or [None])[0]
    if uid:
        return uid
    m = re.search(r"/(?:u/)?(\d+)/?$", url.path)
    if m:
        return m.group(1)
    raise SourceError(f"cannot find a uid in profile url {profile_url!r}")


class WeiboClient:
    """Weibo mobile API on top of an already logged-in session cookie."""

    def __init__(self, http: httpx.AsyncClient, cookie: str):
        self._http = http
        self._headers = {"Cookie": cookie, "User-Agent": WEIBO_USER_AGENT, "Referer": "https://m.weibo.cn/"}
        self._container_ids: Dict[str, str] = {}
        self._lock = asyncio.Lock()

    async def _index(self, params: Dict[str, Any]) -> Dict[str, Any]:
        r = await self._http.get(INDEX_URL, params=params, headers=self._headers)
        r.raise_for_status()
        try:
            return r.json()
        except ValueError as e:
            raise SourceError("weibo index returned a non-JSON body, is the cookie still valid?") from e

    async def container_id(self, uid: str) -> str:
        async with self._lock:
            if uid in self._container_ids:
                return self._container_ids[uid]
            payload = await self._index({"type": "uid", "value": uid})
            tabs = dig(payload, "data", "tabsInfo", "tabs") or []
            for tab in tabs:
                if isinstance(tab, dict) and tab.get("tab_type") == "weibo" and tab.get("containerid"):
                    self._container_ids[uid] = str(tab["containerid"])
                    log.info("Weibo uid=%s container id %s", uid, self._container_ids[uid])
                    return self._container_ids[uid]
        raise SourceError(f"no weibo tab container id for uid={uid}")

    async def feed(self, uid: str) -> Dict[str, Any]:
        cid = await self.container_id(uid)
        return await self._index({"type": "uid", "value": uid, "containerid": cid})


class WeiboFeedSource:
    def __init__(self, client: WeiboClient):
        self.client = client

    async def fetch(self, uid: str) -> List[CanonicalUpdate]:
        return normalize_weibo_feed(await self.client.feed(uid))
