import asyncio
import json

import pytest

from feedbell.storage.cursor_store import JsonFileCursorStore, MemoryCursorStore, feed_keys, status_key


def test_key_layout() -> None:
    assert feed_keys("dynamic", 7) == ("dynamic-7", "dynamic-7-updated-id")
    assert status_key("live", 6) == "live-6-status"


def test_json_store_survives_restart(tmp_path) -> None:
    path = tmp_path / "state" / "cursors.json"

    async def write():
        store = JsonFileCursorStore(path)
        assert await store.get("dynamic-7") is None
        await store.set("dynamic-7", 110)
        await store.set("live-6-status", True)

    async def read():
        store = JsonFileCursorStore(path)
        return await store.get("dynamic-7"), await store.get("live-6-status"), await store.snapshot()

    asyncio.run(write())
    ts, live, snapshot = asyncio.run(read())

    assert ts == 110
    assert live is True
    assert snapshot == {"dynamic-7": 110, "live-6-status": True}
    assert json.loads(path.read_text(encoding="utf-8")) == snapshot
    assert not path.with_suffix(".tmp").exists()


def test_json_store_rejects_non_scalars(tmp_path) -> None:
    store = JsonFileCursorStore(tmp_path / "cursors.json")
    with pytest.raises(TypeError):
        asyncio.run(store.set("dynamic-7", [1, 2]))


def test_json_store_refuses_foreign_file(tmp_path) -> None:
    path = tmp_path / "cursors.json"
    path.write_text("[1, 2]", encoding="utf-8")
    with pytest.raises(ValueError):
        asyncio.run(JsonFileCursorStore(path).get("x"))


def test_memory_store_snapshot_is_a_copy() -> None:
    store = MemoryCursorStore({"a": 1})

    async def run():
        snap = await store.snapshot()
        snap["a"] = 2
        return await store.get("a")

    assert asyncio.run(run()) == 1


def test_failed_write_leaves_value_unchanged(tmp_path) -> None:
    blocker = tmp_path / "not-a-dir"
    blocker.write_text("", encoding="utf-8")
    store = JsonFileCursorStore(blocker / "cursors.json")

    async def run():
        with pytest.raises(OSError):
            await store.set("dynamic-7", 110)
        return await store.get("dynamic-7"), await store.snapshot()

    assert asyncio.run(run()) == (None, {})
