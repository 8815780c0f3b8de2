from fastapi import APIRouter, HTTPException
from pydantic import BaseModel, Field
from typing import List, Optional, Dict
from feedbell.config.settings import settings

router = APIRouter(prefix="/settings", tags=["settings"])

dynamic_overrides: Dict[str, str] = {}

class SettingsView(BaseModel):
    poll_interval_min_sec: int
    poll_interval_max_sec: int
    dynamic_uid: Optional[int]
    live_room_id: Optional[int]
    weibo_profile_url: Optional[str]
    chat_ids: List[str]
    admin_chat_ids: List[str]
    http_timeout_sec: float
    log_format: str
    metrics_port: int
    api_port: int
    overrides: Dict[str, str]

class SettingsPatch(BaseModel):
    poll_interval_min_sec: Optional[int] = Field(None, ge=10, le=3600)
    poll_interval_max_sec: Optional[int] = Field(None, ge=10, le=3600)

@router.get("", response_model=SettingsView)
async def get_settings():
    return SettingsView(
        poll_interval_min_sec=settings.poll_interval_min_sec,
        poll_interval_max_sec=settings.poll_interval_max_sec,
        dynamic_uid=settings.dynamic_uid,
        live_room_id=settings.live_room_id,
        weibo_profile_url=settings.weibo_profile_url,
        chat_ids=settings.chat_ids,
        admin_chat_ids=settings.admin_chat_ids,
        http_timeout_sec=settings.http_timeout_sec,
        log_format=settings.log_format,
        metrics_port=settings.metrics_port,
        api_port=settings.api_port,
        overrides=dynamic_overrides,
    )

@router.patch("", response_model=SettingsView)
async def patch_settings(patch: SettingsPatch):
    low = patch.poll_interval_min_sec if patch.poll_interval_min_sec is not None else settings.poll_interval_min_sec
    high = patch.poll_interval_max_sec if patch.poll_interval_max_sec is not None else settings.poll_interval_max_sec
    if low > high:
        raise HTTPException(422, "poll_interval_min_sec must not exceed poll_interval_max_sec")
    if patch.poll_interval_min_sec is not None:
        settings.poll_interval_min_sec = patch.poll_interval_min_sec  # type: ignore[attr-defined]
        dynamic_overrides["poll_interval_min_sec"] = str(patch.poll_interval_min_sec)
    if patch.poll_interval_max_sec is not None:
        settings.poll_interval_max_sec = patch.poll_interval_max_sec  # type: ignore[attr-defined]
        dynamic_overrides["poll_interval_max_sec"] = str(patch.poll_interval_max_sec)
    return await get_settings()
