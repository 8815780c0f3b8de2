from fastapi import APIRouter, HTTPException
from typing import Dict, Union

from feedbell.storage.cursor_store import CursorStore

router = APIRouter(prefix="/cursors", tags=["cursors"])

_store: CursorStore | None = None

@router.get("", response_model=Dict[str, Union[bool, int, str]])
async def list_cursors():
    if _store is None:
        raise HTTPException(503, "Cursor store not available")
    return await _store.snapshot()

@router.get("/{key}")
async def get_cursor(key: str):
    if _store is None:
        raise HTTPException(503, "Cursor store not available")
    value = await _store.get(key)
    if value is None:
        raise HTTPException(404, f"No cursor stored under {key}")
    return {"key": key, "value": value}

def set_store(store: CursorStore | None):
    global _store
    _store = store
