import logging

from feedbell.storage.cursor_store import CursorStore, status_key

log = logging.getLogger(__name__)


class LiveDetector:
    def __init__(self, store: CursorStore, kind: str, identity):
        self.store = store
        self.key = status_key(kind, identity)

    async def update(self, now_live: bool) -> bool:
        """Persist the current state and report whether it is an offline -> live edge.

        An unknown previous state is seeded without notifying.
        """
        prev = await self.store.get(self.key)
        await self.store.set(self.key, bool(now_live))
        if prev is None:
            log.info("Seeding %s=%s", self.key, bool(now_live))
            return False
        changed = bool(prev) != bool(now_live)
        if changed:
            log.info("%s changed %s -> %s", self.key, bool(prev), bool(now_live))
        return changed and now_live
