import asyncio
import logging
from datetime import datetime, timezone

import httpx
import pytest

from feedbell.core.errors import SourceError
from feedbell.weibo.api_client import WeiboClient, WeiboFeedSource, uid_from_profile_url
from feedbell.weibo.feed import clean_text, normalize_weibo_feed

CREATED_AT = "Sat Oct 17 10:00:00 +0800 2026"
CREATED_TS = int(datetime(2026, 10, 17, 2, 0, tzinfo=timezone.utc).timestamp())


def _mblog(mid, **extra):
    mblog = {"id": str(mid), "created_at": CREATED_AT, "user": {"screen_name": "Dora"}, "text": f"post {mid}"}
    mblog.update(extra)
    return {"card_type": 9, "mblog": mblog}


def test_normalizes_mblog_cards() -> None:
    payload = {"ok": 1, "data": {"cards": [
        _mblog(5002, text="hi<br />there &amp; <a href='x'>#tag#</a>",
               pics=[{"url": "https://wx/s1.jpg", "large": {"url": "https://wx/l1.jpg"}}, {"url": "https://wx/s2.jpg"}]),
        {"card_type": 11, "card_group": []},
    ]}}
    [update] = normalize_weibo_feed(payload)

    assert update.id == 5002
    assert update.timestamp == CREATED_TS
    assert update.author == "Dora"
    assert update.description == "hi\nthere & #tag#"
    assert update.pictures == ("https://wx/l1.jpg", "https://wx/s2.jpg")
    assert update.permalink == "https://m.weibo.cn/detail/5002"


def test_clean_text_flattens_weibo_markup() -> None:
    text = (
        '<a href="/n/Eve">@Eve</a> 新歌上线<span class="url-icon">'
        '<img alt="[笑cry]" src="https://h5.sinaimg.cn/m/emoticon/icon/default/d_xiaoku.png" style="width:1em; height:1em;" />'
        '</span><br />试听 &amp; 下载：<a href="https://weibo.cn/sinaurl?u=x"><span class="surl-text">网页链接</span></a>'
    )
    assert clean_text(text) == "@Eve 新歌上线\n试听 & 下载：网页链接"


def test_clean_text_of_empty_markup_is_none() -> None:
    assert clean_text("") is None
    assert clean_text('<span class="url-icon"><img alt="[doge]" /></span>') is None


def test_repost_appends_retweeted_text_and_pictures() -> None:
    retweeted = {"text": "origin", "user": {"screen_name": "Eve"}, "pics": [{"url": "https://wx/o.jpg"}]}
    [update] = normalize_weibo_feed({"ok": 1, "data": {"cards": [_mblog(1, text="mine", retweeted_status=retweeted)]}})

    assert update.description == "mine // Eve: origin"
    assert update.pictures == ("https://wx/o.jpg",)


def test_pinned_and_malformed_cards_are_skipped(caplog) -> None:
    caplog.set_level(logging.WARNING)
    payload = {"ok": 1, "data": {"cards": [
        _mblog(9, isTop=1),
        _mblog(8, created_at="yesterday"),
        _mblog(7),
    ]}}
    assert [u.id for u in normalize_weibo_feed(payload)] == [7]
    assert "Skipping weibo card" in caplog.text


def test_not_ok_response_fails() -> None:
    with pytest.raises(SourceError):
        normalize_weibo_feed({"ok": 0, "msg": "login required"})


@pytest.mark.parametrize("url,uid", [
    ("https://m.weibo.cn/profile/info?uid=123456", "123456"),
    ("https://weibo.com/u/7654321", "7654321"),
    ("https://m.weibo.cn/u/111/", "111"),
])
def test_uid_from_profile_url(url, uid) -> None:
    assert uid_from_profile_url(url) == uid


def test_uid_from_profile_url_without_uid() -> None:
    with pytest.raises(SourceError):
        uid_from_profile_url("https://weibo.com/someone")


def test_container_id_is_resolved_once_and_reused() -> None:
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(dict(request.url.params))
        assert request.headers["Cookie"] == "SUB=abc"
        if "containerid" in request.url.params:
            assert request.url.params["containerid"] == "1076031234"
            return httpx.Response(200, json={"ok": 1, "data": {"cards": [_mblog(1)]}})
        return httpx.Response(200, json={"ok": 1, "data": {"tabsInfo": {"tabs": [
            {"tab_type": "profile", "containerid": "2302831234"},
            {"tab_type": "weibo", "containerid": "1076031234"},
        ]}}})

    async def run():
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as http:
            source = WeiboFeedSource(WeiboClient(http, "SUB=abc"))
            first = await source.fetch("1234")
            second = await source.fetch("1234")
            return first, second

    first, second = asyncio.run(run())
    assert [u.id for u in first] == [1]
    assert first == second
    assert len(calls) == 3
    assert "containerid" not in calls[0]


def test_missing_weibo_tab_is_a_source_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"ok": 1, "data": {"tabsInfo": {"tabs": []}}})

    async def run():
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as http:
            await WeiboClient(http, "SUB=abc").container_id("1234")

    with pytest.raises(SourceError):
        asyncio.run(run())
