import json
import logging
from typing import Any, Dict, List, Optional, Sequence

import httpx

from feedbell.core.errors import ChannelError
from feedbell.notify.pipeline import Photo

log = logging.getLogger(__name__)

API_BASE = "https://api.telegram.org"
PARSE_MODE = "HTML"


class TelegramChannel:
    """One chat reached through the Bot API. Photos may be URLs or raw bytes."""

    def __init__(self, http: httpx.AsyncClient, token: str, chat_id: str):
        self._http = http
        self._token = token
        self.chat_id = chat_id
        self.address = f"telegram:{chat_id}"

    async def _call(self, method: str, data: Dict[str, Any], files: Optional[Dict[str, Any]] = None) -> Any:
        url = f"{API_BASE}/bot{self._token}/{method}"
        if files:
            r = await self._http.post(url, data=data, files=files)
        else:
            r = await self._http.post(url, json=data)
        try:
            body = r.json()
        except ValueError:
            # the request URL carries the bot token, keep it out of the error
            raise ChannelError(self.address, f"{method} HTTP {r.status_code}") from None
        if not body.get("ok"):
            raise ChannelError(self.address, f"{method} rejected ({r.status_code}): {body.get('description')}")
        return body.get("result")

    async def send_text(self, text: str) -> None:
        await self._call("sendMessage", {"chat_id": self.chat_id, "text": text, "parse_mode": PARSE_MODE})

    async def send_photo(self, photo: Photo, caption: Optional[str]) -> None:
        data: Dict[str, Any] = {"chat_id": self.chat_id}
        if caption:
            data.update(caption=caption, parse_mode=PARSE_MODE)
        if isinstance(photo, bytes):
            await self._call("sendPhoto", data, files={"photo": ("photo.jpg", photo, "image/jpeg")})
        else:
            data["photo"] = photo
            await self._call("sendPhoto", data)

    async def send_photo_group(self, photos: Sequence[Photo], caption: Optional[str]) -> None:
        media: List[Dict[str, Any]] = []
        files: Dict[str, Any] = {}
        for i, photo in enumerate(photos):
            if isinstance(photo, bytes):
                name = f"photo{i}"
                files[name] = (f"{name}.jpg", photo, "image/jpeg")
                item = {"type": "photo", "media": f"attach://{name}"}
            else:
                item = {"type": "photo", "media": photo}
            if i == 0 and caption:
                item.update(caption=caption, parse_mode=PARSE_MODE)
            media.append(item)
        if files:
            await self._call("sendMediaGroup", {"chat_id": self.chat_id, "media": json.dumps(media)}, files=files)
        else:
            await self._call("sendMediaGroup", {"chat_id": self.chat_id, "media": media})
