from typing import List, Optional
import re
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_USER_AGENT = "Mozilla/5.0 (X11; Linux x86_64; rv:98.0) Gecko/20100101 Firefox/98.0"


def _split_ids(raw: str) -> List[str]:
    parts = re.split(r"[,\n\s]+", raw.strip()) if raw else []
    return [p for p in (s.strip() for s in parts) if p]


class Settings(BaseSettings):
    dynamic_uid: Optional[int] = Field(default=None, alias="FEEDBELL_DYNAMIC")
    live_room_id: Optional[int] = Field(default=None, alias="FEEDBELL_LIVE")
    weibo_profile_url: Optional[str] = Field(default=None, alias="FEEDBELL_WEIBO_PROFILE_URL")
    weibo_cookie: Optional[str] = Field(default=None, alias="FEEDBELL_WEIBO_COOKIE")
    telegram_token: Optional[str] = Field(default=None, alias="TELEGRAM_BOT_TOKEN")
    chat_ids_raw: str = Field(default="", alias="FEEDBELL_CHAT_IDS")
    admin_chat_ids_raw: str = Field(default="", alias="FEEDBELL_ADMIN_CHAT_IDS")
    state_path: str = Field(default="data/cursors.json", alias="FEEDBELL_STATE_PATH")
    poll_interval_min_sec: int = Field(default=60, alias="POLL_INTERVAL_MIN_SEC")
    poll_interval_max_sec: int = Field(default=180, alias="POLL_INTERVAL_MAX_SEC")
    http_timeout_sec: float = Field(default=30, alias="HTTP_TIMEOUT_SEC")
    user_agent: str = Field(default=DEFAULT_USER_AGENT, alias="HTTP_USER_AGENT")
    log_format: str = Field(default="plain", alias="LOG_FORMAT")
    metrics_port: int = Field(default=9100, alias="METRICS_PORT")
    api_port: int = Field(default=8000, alias="API_PORT")

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False, extra="ignore", populate_by_name=True)

    @property
    def chat_ids(self) -> List[str]:
        return _split_ids(self.chat_ids_raw)

    @property
    def admin_chat_ids(self) -> List[str]:
        return _split_ids(self.admin_chat_ids_raw)

    def has_sources(self) -> bool:
        return bool(self.dynamic_uid or self.live_room_id or (self.weibo_profile_url and self.weibo_cookie))

settings = Settings()
