import asyncio
import io
import logging

import httpx
from PIL import Image

log = logging.getLogger(__name__)

JPEG_QUALITY = 90


def reencode_jpeg(data: bytes) -> bytes:
    with Image.open(io.BytesIO(data)) as img:
        if img.mode != "RGB":
            img = img.convert("RGB")
        out = io.BytesIO()
        img.save(out, format="JPEG", quality=JPEG_QUALITY)
        return out.getvalue()


class ImageFetcher:
    """Downloads a photo and normalizes it to JPEG so channels that refuse remote URLs can take the bytes."""

    def __init__(self, http: httpx.AsyncClient):
        self._http = http

    async def fetch(self, url: str) -> bytes:
        r = await self._http.get(url)
        r.raise_for_status()
        data = await asyncio.to_thread(reencode_jpeg, r.content)
        log.debug("Fetched %s (%d bytes, %d after re-encode)", url, len(r.content), len(data))
        return data
