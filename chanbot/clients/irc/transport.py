"""IRC transport: pydle client that exposes the inbound stream as events."""

import asyncio
from collections.abc import AsyncIterator

import pydle
from loguru import logger

from ...bot.events import (
    JoinEvent,
    NickEvent,
    Prefix,
    PrivmsgEvent,
    RawEvent,
    TransportEvent,
)
from ...shared.config import IRCConfig
from ...shared.exceptions import TransportError

__all__ = ("IRCTransport", "event_from_message")

_DISCONNECTED = object()


def event_from_message(
    command: str | int, source: str | None, params: list[str]
) -> TransportEvent:
    prefix = Prefix.parse(source) if source and "!" in source else None
    if isinstance(command, int):
        command = str(command).zfill(3)
    command = str(command).upper()
    params_t = tuple(str(p) for p in params)
    if command == "PRIVMSG" and len(params_t) >= 2:
        return PrivmsgEvent(
            prefix=prefix, params=params_t, target=params_t[0], text=params_t[1]
        )
    if command == "JOIN" and params_t:
        return JoinEvent(prefix=prefix, params=params_t, channel=params_t[0])
    if command == "NICK" and params_t:
        return NickEvent(prefix=prefix, params=params_t, new_nick=params_t[0])
    return RawEvent(prefix=prefix, command=command, params=params_t)


class IRCTransport(pydle.Client):
    RECONNECT_ON_ERROR = False

    def __init__(self, config: IRCConfig, **kwargs):
        kwargs.setdefault("username", config.username)
        kwargs.setdefault("realname", config.realname)
        if config.sasl_username and config.sasl_password:
            kwargs.setdefault("sasl_username", config.sasl_username)
            kwargs.setdefault("sasl_password", config.sasl_password)
        super().__init__(config.nickname, **kwargs)
        self._irc_config = config
        self._inbound: asyncio.Queue = asyncio.Queue()

    async def start(self) -> None:
        cfg = self._irc_config
        logger.info(f"Connecting to {cfg.server}:{cfg.port} (tls={cfg.tls})")
        try:
            await self.connect(
                hostname=cfg.server,
                port=cfg.port,
                password=cfg.password,
                tls=cfg.tls,
                tls_verify=cfg.tls_verify,
            )
        except OSError as e:
            raise TransportError(f"IRC connect failed: {e}") from e

    async def on_connect(self):
        await super().on_connect()
        logger.info(f"IRC connected to {self._irc_config.server} as {self.nickname}")
        for channel in self._irc_config.channels:
            await self.join(channel)

    async def on_disconnect(self, expected: bool) -> None:
        await super().on_disconnect(expected)
        logger.warning(f"IRC disconnected (expected={expected})")
        self._inbound.put_nowait(_DISCONNECTED)

    async def on_raw(self, message):
        try:
            event = event_from_message(
                message.command, getattr(message, "source", None), list(message.params)
            )
            logger.trace(f"IRC <<< {event!r}")
            self._inbound.put_nowait(event)
        except Exception as e:
            if isinstance(e, asyncio.CancelledError):
                raise
            logger.warning(f"Unparsable IRC message {message!r}: {e}")
        await super().on_raw(message)

    async def events(self) -> AsyncIterator[TransportEvent]:
        while True:
            item = await self._inbound.get()
            if item is _DISCONNECTED:
                raise TransportError("IRC connection closed")
            yield item

    async def send_privmsg(self, target: str, text: str) -> None:
        await self.message(target, text)

    async def send_mode(self, channel: str, mode: str, nick: str) -> None:
        await self.rawmsg("MODE", channel, mode, nick)

    async def send_invite(self, nick: str, channel: str) -> None:
        await self.rawmsg("INVITE", nick, channel)

    async def send_nick(self, nick: str) -> None:
        await self.set_nickname(nick)

    async def send_join(self, channel: str) -> None:
        await self.join(channel)

    async def close(self) -> None:
        if self.connected:
            await self.disconnect(expected=True)
