"""Normalize the bilibili ``space_history`` feed into canonical updates.

Each card carries its payload twice-encoded: ``card`` is a JSON string, and a
repost nests the original post as another JSON string under ``origin``. The
same information lives in different places for originals and reposts, so
each output field is resolved by an ordered rule list (first non-empty wins).
"""
import json
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from feedbell.core.errors import SourceError
from feedbell.core.models import CanonicalUpdate
from feedbell.core.rules import dig, first_match

log = logging.getLogger(__name__)

PERMALINK = "https://t.bilibili.com/{}"


@dataclass
class CardContext:
    desc: Dict[str, Any]
    card: Dict[str, Any]
    origin: Optional[Dict[str, Any]] = None


def _short_link(payload: Optional[Dict[str, Any]]) -> str:
    link = first_match((lambda p: p["short_link_v2"], lambda p: p["short_link"]), payload)
    return f"({link})" if link else ""


def _with_origin(ctx: CardContext) -> Optional[str]:
    content = dig(ctx.card, "item", "content")
    if not content:
        return None
    origin_tail = first_match(ORIGIN_DESCRIPTION_RULES, ctx.origin)
    return f"{content} // {origin_tail}" if origin_tail else content


def _titled(payload: Optional[Dict[str, Any]]) -> Optional[str]:
    title = dig(payload, "title")
    return f"{title}{_short_link(payload)}" if title else None


def _picture_urls(pictures) -> Optional[List[str]]:
    if not isinstance(pictures, list):
        return None
    return [p["img_src"] for p in pictures if isinstance(p, dict) and p.get("img_src")]


AUTHOR_RULES = (
    lambda ctx: ctx.card["user"]["name"],
    lambda ctx: ctx.card["user"]["uname"],
    lambda ctx: ctx.desc["user_profile"]["info"]["uname"],
)

ORIGIN_DESCRIPTION_RULES = (
    lambda origin: origin["item"]["description"],
    _titled,
)

DESCRIPTION_RULES = (
    lambda ctx: ctx.card["item"]["description"],
    _with_origin,
    lambda ctx: _titled(ctx.card) if not ctx.card.get("item") else None,
)

PICTURE_RULES = (
    lambda ctx: _picture_urls(ctx.card["item"]["pictures"]),
    lambda ctx: [ctx.card["item"]["pic"]] if ctx.card["item"]["pic"] else None,
    lambda ctx: _picture_urls(ctx.origin["item"]["pictures"]),
)


def _parse_card(raw_card: Dict[str, Any]) -> CardContext:
    desc = raw_card.get("desc")
    if not isinstance(desc, dict):
        raise ValueError("card has no desc object")
    card = json.loads(raw_card["card"])
    if not isinstance(card, dict):
        raise ValueError("card payload is not an object")
    origin = None
    if card.get("origin"):
        origin = json.loads(card["origin"])
    return CardContext(desc=desc, card=card, origin=origin)


def to_update(ctx: CardContext) -> CanonicalUpdate:
    dynamic_id = int(ctx.desc["dynamic_id"])
    return CanonicalUpdate(
        id=dynamic_id,
        timestamp=int(ctx.desc["timestamp"]),
        permalink=PERMALINK.format(dynamic_id),
        author=first_match(AUTHOR_RULES, ctx),
        description=first_match(DESCRIPTION_RULES, ctx),
        pictures=tuple(first_match(PICTURE_RULES, ctx) or ()),
    )


def normalize_dynamic_feed(payload: Dict[str, Any]) -> List[CanonicalUpdate]:
    """Turn a whole feed response into updates, keeping the source's newest-first order.

    A card whose embedded JSON is broken is dropped with a warning; a response
    without the expected envelope fails the whole call.
    """
    if not isinstance(payload, dict):
        raise SourceError("dynamic feed response is not an object")
    code = payload.get("code", 0)
    if code != 0:
        raise SourceError(f"dynamic feed returned code={code} message={payload.get('message')!r}")
    data = payload.get("data")
    if not isinstance(data, dict):
        raise SourceError("dynamic feed response has no data object")
    cards = data.get("cards") or []
    if not isinstance(cards, list):
        raise SourceError("dynamic feed cards is not a list")

    updates: List[CanonicalUpdate] = []
    for i, raw_card in enumerate(cards):
        try:
            updates.append(to_update(_parse_card(raw_card)))
        except (ValueError, KeyError, TypeError, AttributeError) as e:
            log.warning("Skipping dynamic card index=%d id=%s: %s", i, dig(raw_card, "desc", "dynamic_id"), e)
    return updates


class DynamicFeedSource:
    def __init__(self, client):
        self.client = client

    async def fetch(self, uid: int) -> List[CanonicalUpdate]:
        return normalize_dynamic_feed(await self.client.space_history(uid))
