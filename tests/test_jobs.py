import asyncio
import re
from zoneinfo import ZoneInfo

import pytest

from chanbot.bot.jobs import OperationExecutor, extract_title, filter_matches
from chanbot.bot.operations import (
    CheckDuplicateUrl,
    FetchTitle,
    GrantOperator,
    GrantVoice,
    Invite,
    LogUrl,
    RewriteUrl,
    RunTemplatedFetch,
)
from chanbot.db.sqlite import UrlSeen
from chanbot.shared.exceptions import FetchError, PersistenceError
from chanbot.shared.rewrite import URLRewriteTable
from chanbot.shared.runtime_config import RuntimeConfig
from conftest import FakeFetcher, FakeStore, FakeTransport

UTC = ZoneInfo("UTC")
# 2024-01-01 00:00:00 UTC
TS_2024 = 1704067200


class Harness:
    def __init__(self, pages=None, store=None) -> None:
        self.transport = FakeTransport()
        self.fetcher = FakeFetcher(pages)
        self.store = store or FakeStore()
        self.messages: list[tuple[str, str]] = []
        self.ops: list = []
        self.executor = OperationExecutor(
            self.transport,
            self.fetcher,
            lambda _path: self.store,
            post_message=lambda m: self.messages.append((m.target, m.text)),
            post_op=self.ops.append,
        )

    def run(self, op) -> None:
        asyncio.run(self.executor.execute(op))


def _html(title: str) -> tuple[str, str]:
    return f"<html><head><title>{title}</title></head><body></body></html>", "text/html"


def test_title_is_quoted_and_whitespace_collapsed() -> None:
    h = Harness({"https://e.example/": _html("  Example\n\t  Page  ")})

    h.run(FetchTitle(url="https://e.example/", channel="#chan"))

    assert h.messages == [("#chan", '"Example Page"')]


def test_title_equal_to_url_is_suppressed() -> None:
    h = Harness({"https://e.example/": _html("https://e.example/")})

    h.run(FetchTitle(url="https://e.example/", channel="#chan"))

    assert h.messages == []


def test_long_title_is_truncated() -> None:
    h = Harness({"https://e.example/": _html("x" * 500)})

    h.run(FetchTitle(url="https://e.example/", channel="#chan"))

    assert h.messages == [("#chan", '"' + "x" * 396 + '..."')]


def test_title_of_exact_limit_is_kept() -> None:
    h = Harness({"https://e.example/": _html("y" * 400)})

    h.run(FetchTitle(url="https://e.example/", channel="#chan"))

    assert h.messages == [("#chan", '"' + "y" * 400 + '"')]


def test_non_text_content_is_ignored() -> None:
    h = Harness({"https://e.example/a.png": ("\x89PNG", "image/png")})

    h.run(FetchTitle(url="https://e.example/a.png", channel="#chan"))

    assert h.messages == []


def test_fetch_failure_propagates() -> None:
    h = Harness()

    with pytest.raises(FetchError):
        h.run(FetchTitle(url="https://missing.example/", channel="#chan"))
    assert h.messages == []


def test_templated_fetch_replies_each_filter_match(write_config) -> None:
    command = RuntimeConfig.build(write_config()).url_command("w")
    h = Harness(
        {"https://wx.example/oulu": ("<p><b>-5 C</b> and <b>snow</b></p>", "text/html")}
    )

    h.run(RunTemplatedFetch(command=command, arg="oulu", channel="#chan"))

    assert h.fetcher.requested == ["https://wx.example/oulu"]
    assert h.messages == [("#chan", "--> -5 C"), ("#chan", "--> snow")]


def test_filter_without_group_uses_whole_match() -> None:
    assert filter_matches(re.compile(r"\d+"), "a 1 b 22") == ["1", "22"]
    assert filter_matches(re.compile(r"v=(\d+)"), "v=1 v=22") == ["1", "22"]


def test_extract_title_missing() -> None:
    assert extract_title("<html><body>no title</body></html>") is None
    assert extract_title("<title>T</title>") == "T"


def test_extract_title_with_several_child_nodes() -> None:
    title = extract_title("<html><head><title>Foo<!-- build 7 --> Bar</title></head></html>")

    assert title is not None
    assert title.startswith("Foo")
    assert title.endswith("Bar")


def test_duplicate_seen_once() -> None:
    store = FakeStore(seen=UrlSeen(count=1, first_seen=TS_2024, last_seen=TS_2024))
    h = Harness(store=store)

    h.run(
        CheckDuplicateUrl(
            db_path="db", url="https://e.example/", channel="#chan", tz=UTC, expire_days=7
        )
    )

    assert store.queries == [("https://e.example/", "#chan", 7 * 86400)]
    assert h.messages == [("#chan", "Old URL, seen 2024-01-01 00:00:00 UTC")]


def test_duplicate_seen_many_times_in_channel_timezone() -> None:
    store = FakeStore(seen=UrlSeen(count=3, first_seen=TS_2024, last_seen=TS_2024 + 3600))
    h = Harness(store=store)

    h.run(
        CheckDuplicateUrl(
            db_path="db",
            url="https://e.example/",
            channel="#chan",
            tz=ZoneInfo("Europe/Helsinki"),
            expire_days=7,
        )
    )

    assert h.messages == [
        (
            "#chan",
            "Old URL, seen 3 times, first 2024-01-01 02:00:00 EET "
            "and last 2024-01-01 03:00:00 EET",
        )
    ]


def test_duplicate_not_seen_is_silent() -> None:
    h = Harness(store=FakeStore(seen=None))

    h.run(
        CheckDuplicateUrl(
            db_path="db", url="https://e.example/", channel="#chan", tz=UTC, expire_days=7
        )
    )

    assert h.messages == []


def test_log_url_inserts_record() -> None:
    h = Harness()

    h.run(
        LogUrl(db_path="db", url="https://e.example/", channel="#chan", nick="u", ts=TS_2024)
    )

    assert len(h.store.inserted) == 1
    record = h.store.inserted[0]
    assert (record.ts, record.channel, record.nick, record.url) == (
        TS_2024,
        "#chan",
        "u",
        "https://e.example/",
    )


def test_log_url_drops_record_after_persistence_error() -> None:
    h = Harness(store=FakeStore(fail=PersistenceError("database is locked")))

    h.run(
        LogUrl(db_path="db", url="https://e.example/", channel="#chan", nick="u", ts=TS_2024)
    )

    assert h.messages == []


def test_rewrite_reannounces_and_queues_title() -> None:
    h = Harness()
    table = URLRewriteTable([(r"^https://twitter\.com/(.*)$", r"https://nitter.example/\1")])

    h.run(RewriteUrl(url="https://twitter.com/a/status/1", channel="#links", table=table))

    assert h.messages == [("#links", "https://nitter.example/a/status/1")]
    assert h.ops == [FetchTitle(url="https://nitter.example/a/status/1", channel="#links")]


def test_rewrite_without_match_does_nothing() -> None:
    h = Harness()

    h.run(RewriteUrl(url="https://e.example/", channel="#links", table=URLRewriteTable()))

    assert h.messages == []
    assert h.ops == []


def test_irc_operations_reach_transport() -> None:
    h = Harness()

    async def scenario() -> None:
        await h.executor.execute(GrantVoice(channel="#chan", nick="a"))
        await h.executor.execute(GrantOperator(channel="#chan", nick="b"))
        await h.executor.execute(Invite(nick="c", channel="#chan"))

    asyncio.run(scenario())

    assert h.transport.calls == [
        ("mode", "#chan", "+v", "a"),
        ("mode", "#chan", "+o", "b"),
        ("invite", "c", "#chan"),
    ]


def test_unknown_operation_is_rejected() -> None:
    h = Harness()

    with pytest.raises(TypeError):
        h.run(object())
