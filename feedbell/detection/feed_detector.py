"""Cursor state machine deciding which feed items are new.

Per tracked source two keys are kept: ``<kind>-<identity>`` holds the newest
timestamp seen, ``<kind>-<identity>-updated-id`` the id of the newest item at
that point. The read-compare-write against them is not atomic: exactly one
check per source may be in flight, which the poller guarantees by finishing a
round before it starts the next one.
"""
import logging
from typing import Awaitable, Callable, List, Sequence

from feedbell.core.models import CanonicalUpdate
from feedbell.storage.cursor_store import CursorStore, feed_keys

log = logging.getLogger(__name__)

Dispatch = Callable[[CanonicalUpdate], Awaitable[None]]


class FeedDetector:
    def __init__(self, store: CursorStore, kind: str, identity):
        self.store = store
        self.kind = kind
        self.identity = identity
        self.timestamp_key, self.id_key = feed_keys(kind, identity)

    async def detect(self, updates: Sequence[CanonicalUpdate], dispatch: Dispatch) -> List[CanonicalUpdate]:
        """Dispatch every new item oldest first, then advance the cursor.

        Returns the dispatched items. A failing dispatch is logged and the
        cursor moves forward regardless.
        """
        if not updates:
            return []
        newest = max(updates, key=lambda u: u.timestamp)
        last_ts = await self.store.get(self.timestamp_key)

        if last_ts is None:
            log.info("Seeding cursor %s=%s (%s=%s), nothing dispatched on first run",
                     self.timestamp_key, newest.timestamp, self.id_key, newest.id)
            await self.store.set(self.timestamp_key, newest.timestamp)
            await self.store.set(self.id_key, newest.id)
            return []

        last_id = await self.store.get(self.id_key)
        fresh = [u for u in reversed(updates) if u.timestamp > int(last_ts) and u.id != last_id]
        fresh.sort(key=lambda u: u.timestamp)
        if not fresh:
            return []

        log.info("%s %s: %d new item(s) after %s", self.kind, self.identity, len(fresh), last_ts)
        for update in fresh:
            try:
                await dispatch(update)
            except Exception:
                log.exception("Dispatch failed for %s %s item id=%s; cursor still advances",
                              self.kind, self.identity, update.id)

        await self.store.set(self.timestamp_key, max(newest.timestamp, int(last_ts)))
        await self.store.set(self.id_key, newest.id)
        return fresh
