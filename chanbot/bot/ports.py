from collections.abc import AsyncIterator
from typing import Protocol

from ..db.sqlite import UrlRecord, UrlSeen
from .events import TransportEvent

__all__ = ("Fetcher", "Transport", "UrlStore")


class Transport(Protocol):
    @property
    def nickname(self) -> str: ...

    def events(self) -> AsyncIterator[TransportEvent]: ...

    async def send_privmsg(self, target: str, text: str) -> None: ...

    async def send_mode(self, channel: str, mode: str, nick: str) -> None: ...

    async def send_invite(self, nick: str, channel: str) -> None: ...

    async def send_nick(self, nick: str) -> None: ...

    async def send_join(self, channel: str) -> None: ...


class Fetcher(Protocol):
    async def get_body(self, url: str) -> tuple[str, str]: ...

    async def get_text_body(self, url: str) -> tuple[str, str] | None: ...

    async def close(self) -> None: ...


class UrlStore(Protocol):
    async def insert(self, record: UrlRecord) -> int: ...

    async def query(
        self, url: str, channel: str, window_secs: int, now: int | None = None
    ) -> UrlSeen | None: ...

    async def close(self) -> None: ...
