from datetime import datetime, timedelta, timezone

from feedbell.core.models import CanonicalUpdate, ComposedMessage, LiveSignal

CIVIL_TZ = timezone(timedelta(hours=8))
TIME_FORMAT = "%Y-%m-%d %H:%M:%S"

SOURCE_LABELS = {
    "dynamic": "发布了新动态",
    "weibo": "发布了新微博",
}

LIVE_ROOM_URL = "https://live.bilibili.com/{}"


def escape_markup(text: str) -> str:
    # Full-width brackets keep the channel's HTML subset parseable.
    return text.replace("<", "＜").replace(">", "＞")


def format_time(timestamp: int) -> str:
    return datetime.fromtimestamp(timestamp, tz=CIVIL_TZ).strftime(TIME_FORMAT)


def compose_update(kind: str, identity, update: CanonicalUpdate) -> ComposedMessage:
    author = escape_markup(update.display_author(identity))
    label = SOURCE_LABELS.get(kind, "有新内容")
    text = (
        f"<b>{author}</b> {label}！\n"
        f"时间：{format_time(update.timestamp)}\n\n"
        f"{escape_markup(update.display_description())}\n\n"
        f"{update.permalink}"
    )
    return ComposedMessage(text=text, photos=tuple(update.pictures))


def compose_live(signal: LiveSignal) -> ComposedMessage:
    text = (
        f"<b>{escape_markup(signal.streamer_name)}</b> 开播了！\n"
        f"标题：{escape_markup(signal.title)}\n"
        f"开播时间：{escape_markup(signal.start_time)}\n\n"
        f"{LIVE_ROOM_URL.format(signal.room_id)}"
    )
    return ComposedMessage(text=text, single_photo=signal.cover_image_url or None)


def compose_error_report(source_key: str, error: BaseException) -> ComposedMessage:
    return ComposedMessage(text=f"<b>{escape_markup(source_key)}</b> check failed: {escape_markup(repr(error))}")
