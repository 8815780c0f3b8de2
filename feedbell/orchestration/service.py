import logging
import asyncio
import sys
import json
import httpx
import uvicorn
from prometheus_client import start_http_server
from feedbell.bilibili.api_client import BilibiliClient
from feedbell.bilibili.dynamic import DynamicFeedSource
from feedbell.bilibili.live import LiveStatusSource, RoomIdResolver
from feedbell.weibo.api_client import WeiboClient, WeiboFeedSource, uid_from_profile_url
from feedbell.notify.images import ImageFetcher
from feedbell.notify.pipeline import DeliveryPipeline
from feedbell.notify.telegram import TelegramChannel
from feedbell.orchestration.checks import FeedCheck, LiveCheck
from feedbell.orchestration.poller import Poller
from feedbell.storage.cursor_store import JsonFileCursorStore
from feedbell.metrics.registry import sources_total
from feedbell.config.settings import Settings, settings
from feedbell.core.errors import SourceError
from feedbell.api.server import app, set_runtime

log = logging.getLogger(__name__)


class ConfigError(Exception):
    pass


class JsonFormatter(logging.Formatter):
    def format(self, record):
        base = {
            'time': self.formatTime(record),
            'level': record.levelname,
            'logger': record.name,
            'msg': record.getMessage(),
        }
        if record.exc_info:
            base['exc'] = self.formatException(record.exc_info)
        return json.dumps(base, ensure_ascii=False)


def setup_logging(cfg: Settings):
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    if cfg.log_format == 'json':
        root = logging.getLogger()
        for h in list(root.handlers):
            root.removeHandler(h)
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(JsonFormatter())
        root.addHandler(handler)
        root.setLevel(logging.INFO)
    # httpx logs every request at INFO, including the bot token in the URL
    logging.getLogger("httpx").setLevel(logging.WARNING)


def build_http(cfg: Settings) -> httpx.AsyncClient:
    return httpx.AsyncClient(timeout=cfg.http_timeout_sec, headers={"User-Agent": cfg.user_agent}, follow_redirects=True)


def build_checks(cfg: Settings, http: httpx.AsyncClient, store, pipeline: DeliveryPipeline, channels) -> list:
    checks = []
    bili = BilibiliClient(http)
    if cfg.dynamic_uid:
        checks.append(FeedCheck("dynamic", cfg.dynamic_uid, DynamicFeedSource(bili), store, pipeline, channels))
    if cfg.live_room_id:
        source = LiveStatusSource(bili, RoomIdResolver(bili))
        checks.append(LiveCheck(cfg.live_room_id, source, store, pipeline, channels))
    if cfg.weibo_profile_url:
        if not cfg.weibo_cookie:
            raise ConfigError("FEEDBELL_WEIBO_PROFILE_URL is set but FEEDBELL_WEIBO_COOKIE is missing")
        uid = uid_from_profile_url(cfg.weibo_profile_url)
        checks.append(FeedCheck("weibo", uid, WeiboFeedSource(WeiboClient(http, cfg.weibo_cookie)), store, pipeline, channels))
    return checks


def build_poller(cfg: Settings, http: httpx.AsyncClient, store) -> Poller:
    if not cfg.has_sources():
        raise ConfigError(
            "Set FEEDBELL_DYNAMIC to check dynamics, FEEDBELL_LIVE to check live status, "
            "or FEEDBELL_WEIBO_PROFILE_URL and FEEDBELL_WEIBO_COOKIE to check weibo"
        )
    if not cfg.telegram_token or not cfg.chat_ids:
        raise ConfigError("TELEGRAM_BOT_TOKEN and FEEDBELL_CHAT_IDS are required")
    pipeline = DeliveryPipeline(ImageFetcher(http))
    channels = [TelegramChannel(http, cfg.telegram_token, cid) for cid in cfg.chat_ids]
    admin_channels = [TelegramChannel(http, cfg.telegram_token, cid) for cid in cfg.admin_chat_ids]
    checks = build_checks(cfg, http, store, pipeline, channels)
    sources_total.set(len(checks))
    log.info("Tracking %s, delivering to %s", ", ".join(c.key() for c in checks), ", ".join(c.address for c in channels))
    return Poller(checks, pipeline, admin_channels)


async def run_once(cfg: Settings = settings) -> list:
    store = JsonFileCursorStore(cfg.state_path)
    async with build_http(cfg) as http:
        poller = build_poller(cfg, http, store)
        return await poller.run_round()


async def main():
    setup_logging(settings)
    store = JsonFileCursorStore(settings.state_path)
    async with build_http(settings) as http:
        try:
            poller = build_poller(settings, http, store)
        except (ConfigError, SourceError) as e:
            log.error("%s", e)
            sys.exit(1)
        set_runtime(store, poller.checks)
        if settings.metrics_port:
            start_http_server(settings.metrics_port)
        tasks = [poller.run()]
        if settings.api_port:
            # Run poller and API server concurrently
            async def run_api():
                config = uvicorn.Config(app, host="0.0.0.0", port=settings.api_port, log_level="info", lifespan="on")
                server = uvicorn.Server(config)
                await server.serve()
            tasks.append(run_api())
        await asyncio.gather(*tasks)

if __name__ == "__main__":
    asyncio.run(main())
