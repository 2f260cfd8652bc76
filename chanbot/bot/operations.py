from dataclasses import dataclass
from datetime import tzinfo

from ..shared.rewrite import URLRewriteTable
from ..shared.runtime_config import UrlCommand

__all__ = (
    "ChangeNick",
    "CheckDuplicateUrl",
    "FetchTitle",
    "GrantOperator",
    "GrantVoice",
    "Invite",
    "JoinChannel",
    "LogUrl",
    "Operation",
    "OutboundMessage",
    "RewriteUrl",
    "RunTemplatedFetch",
)


@dataclass(frozen=True, slots=True)
class GrantVoice:
    channel: str
    nick: str


@dataclass(frozen=True, slots=True)
class GrantOperator:
    channel: str
    nick: str


@dataclass(frozen=True, slots=True)
class Invite:
    nick: str
    channel: str


@dataclass(frozen=True, slots=True)
class ChangeNick:
    nick: str


@dataclass(frozen=True, slots=True)
class JoinChannel:
    channel: str


@dataclass(frozen=True, slots=True)
class CheckDuplicateUrl:
    db_path: str
    url: str
    channel: str
    tz: tzinfo
    expire_days: int


@dataclass(frozen=True, slots=True)
class FetchTitle:
    url: str
    channel: str


@dataclass(frozen=True, slots=True)
class LogUrl:
    db_path: str
    url: str
    channel: str
    nick: str
    ts: int


@dataclass(frozen=True, slots=True)
class RunTemplatedFetch:
    command: UrlCommand
    arg: str
    channel: str


@dataclass(frozen=True, slots=True)
class RewriteUrl:
    url: str
    channel: str
    table: URLRewriteTable


@dataclass(frozen=True, slots=True)
class OutboundMessage:
    target: str
    text: str


Operation = (
    GrantVoice
    | GrantOperator
    | Invite
    | ChangeNick
    | JoinChannel
    | CheckDuplicateUrl
    | FetchTitle
    | LogUrl
    | RunTemplatedFetch
    | RewriteUrl
)
