from fastapi import APIRouter
from pydantic import BaseModel
from typing import List
from feedbell.metrics.registry import sources_total

router = APIRouter(prefix="/system", tags=["system"])

_checks: list = []

class Health(BaseModel):
    status: str

class TrackedSource(BaseModel):
    key: str
    kind: str
    identity: str

@router.get('/health', response_model=Health)
async def health():
    return Health(status='ok')

@router.get('/sources', response_model=List[TrackedSource])
async def sources():
    sources_total.set(len(_checks))
    return [TrackedSource(key=c.key(), kind=c.kind, identity=str(c.identity)) for c in _checks]

def set_checks(checks):
    global _checks
    _checks = list(checks)
