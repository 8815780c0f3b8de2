import json
import logging

import pytest

from feedbell.bilibili.dynamic import normalize_dynamic_feed
from feedbell.core.errors import SourceError


def _card(dynamic_id, timestamp, inner, uname=None):
    desc = {"dynamic_id": dynamic_id, "timestamp": timestamp}
    if uname:
        desc["user_profile"] = {"info": {"uid": 42, "uname": uname}}
    return {"desc": desc, "card": inner if isinstance(inner, str) else json.dumps(inner)}


def _feed(*cards):
    return {"code": 0, "data": {"cards": list(cards)}}


def test_original_post_uses_own_fields() -> None:
    inner = {
        "user": {"uid": 42, "name": "Alice"},
        "item": {"description": "hello", "pictures": [{"img_src": "https://i0/a.jpg"}, {"img_src": "https://i0/b.jpg"}]},
    }
    [update] = normalize_dynamic_feed(_feed(_card(900, 1700000000, inner)))

    assert update.id == 900
    assert update.timestamp == 1700000000
    assert update.author == "Alice"
    assert update.description == "hello"
    assert update.pictures == ("https://i0/a.jpg", "https://i0/b.jpg")
    assert update.permalink == "https://t.bilibili.com/900"


def test_repost_appends_origin_description_and_borrows_pictures() -> None:
    origin = {"item": {"description": "original text", "pictures": [{"img_src": "https://i0/o.jpg"}]}}
    inner = {"user": {"uid": 42, "uname": "Bob"}, "item": {"content": "look at this"}, "origin": json.dumps(origin)}
    [update] = normalize_dynamic_feed(_feed(_card(901, 1700000001, inner)))

    assert update.author == "Bob"
    assert update.description == "look at this // original text"
    assert update.pictures == ("https://i0/o.jpg",)


def test_repost_of_titled_origin_prefers_short_link_v2() -> None:
    origin = {"title": "A video", "short_link": "https://b23.tv/old", "short_link_v2": "https://b23.tv/new"}
    inner = {"user": {"uid": 42}, "item": {"content": "watch"}, "origin": json.dumps(origin)}
    [update] = normalize_dynamic_feed(_feed(_card(902, 1700000002, inner)))

    assert update.description == "watch // A video(https://b23.tv/new)"


def test_repost_of_titled_origin_falls_back_to_short_link() -> None:
    origin = {"title": "A video", "short_link": "https://b23.tv/old"}
    inner = {"item": {"content": "watch"}, "origin": json.dumps(origin)}
    [update] = normalize_dynamic_feed(_feed(_card(903, 1700000003, inner)))

    assert update.description == "watch // A video(https://b23.tv/old)"


def test_title_only_card_renders_title_with_link() -> None:
    inner = {"title": "My video", "short_link_v2": "https://b23.tv/abc"}
    [update] = normalize_dynamic_feed(_feed(_card(904, 1700000004, inner, uname="Carol")))

    assert update.description == "My video(https://b23.tv/abc)"
    assert update.author == "Carol"
    assert update.pictures == ()


def test_title_without_any_link_has_no_parentheses() -> None:
    [update] = normalize_dynamic_feed(_feed(_card(905, 1700000005, {"title": "Plain"})))
    assert update.description == "Plain"


def test_legacy_pic_field_is_wrapped() -> None:
    inner = {"item": {"content": "one pic", "pic": "https://i0/legacy.jpg"}}
    [update] = normalize_dynamic_feed(_feed(_card(906, 1700000006, inner)))
    assert update.pictures == ("https://i0/legacy.jpg",)


def test_missing_author_and_description_fall_back_at_display_time() -> None:
    [update] = normalize_dynamic_feed(_feed(_card(907, 1700000007, {"item": {}})))

    assert update.author is None
    assert update.description is None
    assert update.display_author(12345) == "12345"
    assert update.display_description() == "None"


def test_broken_card_json_is_skipped_and_order_kept(caplog) -> None:
    caplog.set_level(logging.WARNING)
    feed = _feed(
        _card(3, 300, {"item": {"description": "newest"}}),
        _card(2, 200, "{not json"),
        _card(1, 100, {"item": {"description": "oldest"}}),
    )
    updates = normalize_dynamic_feed(feed)

    assert [u.id for u in updates] == [3, 1]
    assert "Skipping dynamic card" in caplog.text


def test_broken_origin_json_drops_only_that_card() -> None:
    feed = _feed(
        _card(2, 200, {"item": {"content": "x"}, "origin": "{broken"}),
        _card(1, 100, {"item": {"description": "ok"}}),
    )
    assert [u.id for u in normalize_dynamic_feed(feed)] == [1]


def test_null_cards_means_empty_feed() -> None:
    assert normalize_dynamic_feed({"code": 0, "data": {"cards": None}}) == []


@pytest.mark.parametrize("payload", [
    {"code": -352, "message": "risk control"},
    {"code": 0, "data": None},
    {"code": 0, "data": {"cards": "nope"}},
    ["not", "a", "dict"],
])
def test_bad_envelope_fails_whole_call(payload) -> None:
    with pytest.raises(SourceError):
        normalize_dynamic_feed(payload)
