from __future__ import annotations

import copy
from pathlib import Path
from typing import Any, Callable

import pytest
import yaml

from chanbot.bot.core import ChanBot
from chanbot.bot.events import Prefix, PrivmsgEvent
from chanbot.db.sqlite import UrlRecord, UrlSeen
from chanbot.shared.config import Config
from chanbot.shared.exceptions import FetchError

BASE_CONFIG: dict[str, Any] = {
    "irc": {
        "server": "irc.example.net",
        "nickname": "chanbot",
        "channels": ["#chan"],
    },
    "bot": {
        "channel": "#chan",
        "privileged_nicks": {"admin": True, "nobody": False},
        "url_regex": r"(https?://[^\s]+)",
        "url_blacklist": ["https://ignored.example/"],
        "url_fetch_channels": {"*": True},
        "url_log_channels": {"#chan": True},
        "url_dup_complain_channels": {"#chan": False, "#dups": True},
        "url_mut_channels": {"#links": True},
        "url_cmd_channels": {"#chan": True},
        "url_dup_timezone": {"#dups": "Europe/Helsinki"},
        "mode_o_acl": [r"^alice@.*\.example\.org$", r"^bob@"],
        "auto_o_acl": [r"^ops@trusted\.example$"],
        "invite_deny_host": [r"\.spam\.example$"],
        "invite_deny_nick": [r"^troll"],
        "url_cmd_list": {
            "w": {
                "url_tmpl": "https://wx.example/{{ arg }}",
                "output_filter": r"<b>([^<]+)</b>",
            }
        },
        "url_mut_list": [
            [r"^https://twitter\.com/(.*)$", r"https://nitter.example/\1"],
        ],
    },
    "log": {"path": "logs/test.log", "level": "DEBUG"},
}


class FakeTransport:
    def __init__(self, nickname: str = "chanbot", events: list | None = None) -> None:
        self.nickname = nickname
        self._events = list(events or [])
        self.calls: list[tuple] = []

    async def events(self):
        for event in self._events:
            yield event

    async def send_privmsg(self, target: str, text: str) -> None:
        self.calls.append(("privmsg", target, text))

    async def send_mode(self, channel: str, mode: str, nick: str) -> None:
        self.calls.append(("mode", channel, mode, nick))

    async def send_invite(self, nick: str, channel: str) -> None:
        self.calls.append(("invite", nick, channel))

    async def send_nick(self, nick: str) -> None:
        self.calls.append(("nick", nick))

    async def send_join(self, channel: str) -> None:
        self.calls.append(("join", channel))


class FakeFetcher:
    def __init__(self, pages: dict[str, tuple[str, str]] | None = None) -> None:
        self.pages = dict(pages or {})
        self.requested: list[str] = []
        self.closed = False

    async def get_body(self, url: str) -> tuple[str, str]:
        self.requested.append(url)
        if url not in self.pages:
            raise FetchError(f"HTTP 404 from {url}")
        return self.pages[url]

    async def get_text_body(self, url: str) -> tuple[str, str] | None:
        body, content_type = await self.get_body(url)
        if not content_type.startswith("text/"):
            return None
        return body, content_type

    async def close(self) -> None:
        self.closed = True


class FakeStore:
    def __init__(self, seen: UrlSeen | None = None, fail: Exception | None = None) -> None:
        self.seen = seen
        self.fail = fail
        self.inserted: list[UrlRecord] = []
        self.queries: list[tuple[str, str, int]] = []

    async def insert(self, record: UrlRecord) -> int:
        if self.fail is not None:
            raise self.fail
        self.inserted.append(record)
        return len(self.inserted)

    async def query(self, url: str, channel: str, window_secs: int, now=None):
        self.queries.append((url, channel, window_secs))
        return self.seen

    async def close(self) -> None:
        pass


def drain(queue) -> list:
    items = []
    while not queue._queue.empty():
        items.append(queue._queue.get_nowait())
    return items


def privmsg(nick: str, target: str, text: str, userhost: str | None = None) -> PrivmsgEvent:
    user, _, host = (userhost or f"{nick}@{nick}.example.org").partition("@")
    return PrivmsgEvent(prefix=Prefix(nick=nick, user=user, host=host), target=target, text=text)


@pytest.fixture
def write_config(tmp_path: Path) -> Callable[..., Config]:
    path = tmp_path / "config.yaml"

    def _write(**bot_overrides: Any) -> Config:
        data = copy.deepcopy(BASE_CONFIG)
        data["bot"]["url_log_db"] = str(tmp_path / "url.db")
        data["bot"].update(bot_overrides)
        path.write_text(yaml.safe_dump(data), encoding="utf-8")
        return Config(str(path))

    return _write


@pytest.fixture
def store() -> FakeStore:
    return FakeStore()


@pytest.fixture
def fetcher() -> FakeFetcher:
    return FakeFetcher()


@pytest.fixture
def make_bot(write_config, store, fetcher) -> Callable[..., tuple[ChanBot, FakeTransport]]:
    def _make(**bot_overrides: Any) -> tuple[ChanBot, FakeTransport]:
        transport = FakeTransport()
        bot = ChanBot(
            write_config(**bot_overrides),
            transport,
            fetcher=fetcher,
            store_factory=lambda _path: store,
            op_delay=0,
            msg_delay=0,
        )
        return bot, transport

    return _make
