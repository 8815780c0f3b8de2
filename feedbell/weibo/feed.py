import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from bs4 import BeautifulSoup

from feedbell.core.errors import SourceError
from feedbell.core.models import CanonicalUpdate
from feedbell.core.rules import dig, first_match

log = logging.getLogger(__name__)

PERMALINK = "https://m.weibo.cn/detail/{}"
CREATED_AT_FORMAT = "%a %b %d %H:%M:%S %z %Y"
MBLOG_CARD_TYPE = 9


def clean_text(text: Optional[str]) -> Optional[str]:
    """Weibo markup to plain text: line breaks kept, links and emoji icons reduced to their text."""
    if not text:
        return None
    soup = BeautifulSoup(text, "html.parser")
    for br in soup.find_all("br"):
        br.replace_with("\n")
    return soup.get_text().strip() or None


def _pic_urls(mblog: Optional[Dict[str, Any]]) -> Optional[List[str]]:
    pics = dig(mblog, "pics")
    if not isinstance(pics, list):
        return None
    urls = []
    for pic in pics:
        url = first_match((lambda p: p["large"]["url"], lambda p: p["url"]), pic)
        if url:
            urls.append(url)
    return urls


def _repost_text(mblog: Dict[str, Any]) -> Optional[str]:
    own = clean_text(mblog.get("text"))
    retweeted = mblog.get("retweeted_status")
    if not own or not isinstance(retweeted, dict):
        return None
    origin_text = clean_text(retweeted.get("text"))
    if not origin_text:
        return own
    origin_author = dig(retweeted, "user", "screen_name")
    tail = f"{origin_author}: {origin_text}" if origin_author else origin_text
    return f"{own} // {tail}"


AUTHOR_RULES = (
    lambda m: m["user"]["screen_name"],
)

DESCRIPTION_RULES = (
    _repost_text,
    lambda m: clean_text(m["text"]),
    lambda m: clean_text(m["raw_text"]),
)

PICTURE_RULES = (
    _pic_urls,
    lambda m: _pic_urls(m["retweeted_status"]),
)


def parse_created_at(value: str) -> int:
    return int(datetime.strptime(value, CREATED_AT_FORMAT).timestamp())


def to_update(mblog: Dict[str, Any]) -> CanonicalUpdate:
    mid = int(mblog["id"])
    return CanonicalUpdate(
        id=mid,
        timestamp=parse_created_at(mblog["created_at"]),
        permalink=PERMALINK.format(mid),
        author=first_match(AUTHOR_RULES, mblog),
        description=first_match(DESCRIPTION_RULES, mblog),
        pictures=tuple(first_match(PICTURE_RULES, mblog) or ()),
    )


def normalize_weibo_feed(payload: Dict[str, Any]) -> List[CanonicalUpdate]:
    """Container index payload -> updates, newest first. Pinned posts are left out."""
    if not isinstance(payload, dict):
        raise SourceError("weibo feed response is not an object")
    if payload.get("ok") != 1:
        raise SourceError(f"weibo feed returned ok={payload.get('ok')} msg={payload.get('msg')!r}")
    cards = dig(payload, "data", "cards") or []
    if not isinstance(cards, list):
        raise SourceError("weibo feed cards is not a list")

    updates: List[CanonicalUpdate] = []
    for i, card in enumerate(cards):
        if not isinstance(card, dict) or card.get("card_type") != MBLOG_CARD_TYPE:
            continue
        mblog = card.get("mblog")
        if not isinstance(mblog, dict):
            log.warning("Skipping weibo card index=%d: no mblog", i)
            continue
        if mblog.get("isTop"):
            continue
        try:
            updates.append(to_update(mblog))
        except (ValueError, KeyError, TypeError) as e:
            log.warning("Skipping weibo card index=%d id=%s: %s", i, mblog.get("id"), e)
    return updates
