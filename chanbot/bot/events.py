from dataclasses import dataclass, field

from ..shared.constants import NONE

__all__ = (
    "JoinEvent",
    "NickEvent",
    "Prefix",
    "PrivmsgEvent",
    "RawEvent",
    "TransportEvent",
)


@dataclass(frozen=True, slots=True)
class Prefix:
    nick: str = NONE
    user: str = NONE
    host: str = NONE

    @classmethod
    def parse(cls, source: str | None) -> "Prefix":
        if not source:
            return cls()
        nick, sep, rest = source.partition("!")
        if not sep:
            return cls(nick=nick or NONE)
        user, sep, host = rest.partition("@")
        return cls(nick=nick or NONE, user=user or NONE, host=(host if sep else "") or NONE)


@dataclass(frozen=True, slots=True, kw_only=True)
class TransportEvent:
    prefix: Prefix | None = None
    command: str = ""
    params: tuple[str, ...] = field(default_factory=tuple)


@dataclass(frozen=True, slots=True, kw_only=True)
class JoinEvent(TransportEvent):
    channel: str
    command: str = "JOIN"


@dataclass(frozen=True, slots=True, kw_only=True)
class PrivmsgEvent(TransportEvent):
    target: str
    text: str
    command: str = "PRIVMSG"


@dataclass(frozen=True, slots=True, kw_only=True)
class NickEvent(TransportEvent):
    new_nick: str
    command: str = "NICK"


@dataclass(frozen=True, slots=True, kw_only=True)
class RawEvent(TransportEvent):
    pass
