import logging
from typing import List, Protocol, Sequence

from feedbell.core.models import CanonicalUpdate, LiveSignal
from feedbell.detection.feed_detector import FeedDetector
from feedbell.detection.live_detector import LiveDetector
from feedbell.metrics.registry import live_state, updates_detected_total
from feedbell.notify.composer import compose_live, compose_update
from feedbell.notify.pipeline import Channel, DeliveryPipeline
from feedbell.storage.cursor_store import CursorStore

log = logging.getLogger(__name__)


class FeedSource(Protocol):
    async def fetch(self, identity) -> List[CanonicalUpdate]: ...


class LiveSource(Protocol):
    async def fetch(self, room_id: int) -> LiveSignal: ...


class FeedCheck:
    def __init__(self, kind: str, identity, source: FeedSource, store: CursorStore,
                 pipeline: DeliveryPipeline, channels: Sequence[Channel]):
        self.kind = kind
        self.identity = identity
        self.source = source
        self.pipeline = pipeline
        self.channels = list(channels)
        self.detector = FeedDetector(store, kind, identity)

    def key(self) -> str:
        return f"{self.kind}-{self.identity}"

    async def _dispatch(self, update: CanonicalUpdate):
        message = compose_update(self.kind, self.identity, update)
        outcomes = await self.pipeline.send(self.channels, message)
        failed = [o.channel for o in outcomes if not o.delivered]
        if failed:
            log.warning("%s item id=%s not delivered to %s", self.key(), update.id, ", ".join(failed))

    async def run(self) -> List[CanonicalUpdate]:
        updates = await self.source.fetch(self.identity)
        fresh = await self.detector.detect(updates, self._dispatch)
        if fresh:
            updates_detected_total.labels(source=self.key()).inc(len(fresh))
        return fresh


class LiveCheck:
    kind = "live"

    def __init__(self, room_id: int, source: LiveSource, store: CursorStore,
                 pipeline: DeliveryPipeline, channels: Sequence[Channel]):
        self.identity = room_id
        self.source = source
        self.pipeline = pipeline
        self.channels = list(channels)
        self.detector = LiveDetector(store, self.kind, room_id)

    def key(self) -> str:
        return f"{self.kind}-{self.identity}"

    async def run(self) -> List[LiveSignal]:
        signal = await self.source.fetch(self.identity)
        live_state.labels(room=str(self.identity)).set(1 if signal.is_live else 0)
        if not await self.detector.update(signal.is_live):
            return []
        log.info("Room %s went live: %s", signal.room_id, signal.title)
        updates_detected_total.labels(source=self.key()).inc()
        await self.pipeline.send(self.channels, compose_live(signal))
        return [signal]
