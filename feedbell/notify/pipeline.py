"""Fan a composed message out to every channel with tiered fallback.

Per channel the delivery walks an explicit tier list and stops at the first
tier that goes through:

    url   -> photos referenced by remote URL, text as caption
    bytes -> photos downloaded, re-encoded and uploaded in-line
    text  -> the text alone

A message without photos only has the text tier. A channel that fails every
tier gets a failed outcome; the other channels are unaffected.
"""
import asyncio
import logging
from dataclasses import dataclass
from typing import List, Optional, Protocol, Sequence, Union

from feedbell.core.models import ComposedMessage, DeliveryOutcome
from feedbell.metrics.registry import deliveries_total, delivery_failures_total

log = logging.getLogger(__name__)

MEDIA_GROUP_MAX = 10
CAPTION_MAX = 1024

Photo = Union[str, bytes]


class Channel(Protocol):
    address: str

    async def send_text(self, text: str) -> None: ...

    async def send_photo(self, photo: Photo, caption: Optional[str]) -> None: ...

    async def send_photo_group(self, photos: Sequence[Photo], caption: Optional[str]) -> None: ...


class PhotoFetcher(Protocol):
    async def fetch(self, url: str) -> bytes: ...


@dataclass
class _Delivery:
    channel: Channel
    message: ComposedMessage
    text_sent: bool = False
    photos_sent: int = 0

    @property
    def photo_urls(self) -> List[str]:
        if self.message.photos:
            return list(self.message.photos)
        if self.message.single_photo:
            return [self.message.single_photo]
        return []

    @property
    def pending_urls(self) -> List[str]:
        return self.photo_urls[self.photos_sent:]


def _chunks(items: Sequence[Photo], size: int):
    for i in range(0, len(items), size):
        yield items[i:i + size]


class DeliveryPipeline:
    def __init__(self, fetcher: PhotoFetcher):
        self.fetcher = fetcher

    async def send(self, channels: Sequence[Channel], message: ComposedMessage) -> List[DeliveryOutcome]:
        """Deliver to all channels concurrently; one outcome per channel, in input order."""
        return list(await asyncio.gather(*(self._deliver_isolated(c, message) for c in channels)))

    async def _deliver_isolated(self, channel: Channel, message: ComposedMessage) -> DeliveryOutcome:
        address = str(getattr(channel, "address", channel))
        try:
            return await self.deliver(channel, message)
        except Exception as e:
            log.exception("Delivery to %s crashed", address)
            delivery_failures_total.labels(channel=address).inc()
            return DeliveryOutcome(channel=address, delivered=False, error=f"{type(e).__name__}: {e}")

    def tiers(self, delivery: _Delivery):
        if delivery.photo_urls:
            return [("url", self._via_url), ("bytes", self._via_bytes), ("text", self._via_text)]
        return [("text", self._via_text)]

    async def deliver(self, channel: Channel, message: ComposedMessage) -> DeliveryOutcome:
        delivery = _Delivery(channel=channel, message=message)
        outcome = DeliveryOutcome(channel=channel.address, delivered=False)
        for tier, attempt in self.tiers(delivery):
            outcome.attempts.append(tier)
            try:
                await attempt(delivery)
            except Exception as e:
                outcome.error = f"{type(e).__name__}: {e}"
                log.warning("Tier %s rejected by %s: %s", tier, channel.address, outcome.error)
                continue
            outcome.delivered = True
            outcome.tier = tier
            deliveries_total.labels(channel=channel.address, tier=tier).inc()
            return outcome
        log.error("All delivery tiers failed for %s, last error: %s", channel.address, outcome.error)
        delivery_failures_total.labels(channel=channel.address).inc()
        return outcome

    async def _via_url(self, delivery: _Delivery):
        await self._send_photos(delivery, delivery.pending_urls)

    async def _via_bytes(self, delivery: _Delivery):
        photos = [await self.fetcher.fetch(url) for url in delivery.pending_urls]
        await self._send_photos(delivery, photos)

    async def _via_text(self, delivery: _Delivery):
        if delivery.text_sent:
            return
        await delivery.channel.send_text(delivery.message.text)
        delivery.text_sent = True

    async def _send_photos(self, delivery: _Delivery, photos: Sequence[Photo]):
        """Send the photos not yet delivered; chunks accepted by an earlier tier are not repeated."""
        text = delivery.message.text
        # Oversized albums and long texts do not reliably show a caption, so the text goes on its own.
        separate = len(delivery.photo_urls) > MEDIA_GROUP_MAX or len(text) > CAPTION_MAX
        if separate and not delivery.text_sent:
            await delivery.channel.send_text(text)
            delivery.text_sent = True
        for chunk in _chunks(photos, MEDIA_GROUP_MAX):
            caption = text if not separate and delivery.photos_sent == 0 else None
            if len(chunk) == 1:
                await delivery.channel.send_photo(chunk[0], caption)
            else:
                await delivery.channel.send_photo_group(chunk, caption)
            delivery.photos_sent += len(chunk)
            if caption:
                delivery.text_sent = True
