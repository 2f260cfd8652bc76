import os
import re
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Protocol
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import jinja2
from loguru import logger

from .acl import PatternACL
from .config import AppConfig, BotSettings
from .constants import DEFAULT_EXPIRE_DAYS, DEFAULT_TIMEZONE
from .exceptions import ConfigurationError
from .rewrite import URLRewriteTable
from .utils import get_wild

__all__ = ("ConfigLoader", "RuntimeConfig", "UrlCommand")

_TEMPLATE_ENV = jinja2.Environment(
    undefined=jinja2.StrictUndefined,
    autoescape=False,
    keep_trailing_newline=False,
)


class ConfigLoader(Protocol):
    config_path: str

    def read(self) -> AppConfig: ...

    def commit(self, model: AppConfig) -> None: ...


@dataclass(frozen=True, slots=True)
class UrlCommand:
    name: str
    source: str
    template: jinja2.Template
    output_filter: re.Pattern[str]

    def render(self, arg: str) -> str:
        return self.template.render(arg=arg, args=arg.split())


def _expand_path(value: str) -> str:
    return os.path.expandvars(os.path.expanduser(value))


def _freeze(mapping: dict) -> MappingProxyType:
    return MappingProxyType(dict(mapping))


def _compile_url_commands(settings: BotSettings) -> dict[str, UrlCommand]:
    commands: dict[str, UrlCommand] = {}
    for name, cmd in settings.url_cmd_list.items():
        try:
            output_filter = re.compile(cmd.output_filter)
        except re.error as e:
            raise ConfigurationError(
                f"invalid output filter for url command {name!r}: {e}"
            ) from e
        try:
            template = _TEMPLATE_ENV.from_string(cmd.url_tmpl)
            template.render(arg="x", args=["x"])
        except jinja2.TemplateError as e:
            raise ConfigurationError(
                f"invalid url template for url command {name!r}: {e}"
            ) from e
        except Exception as e:
            raise ConfigurationError(
                f"url template for url command {name!r} failed to render: "
                f"{type(e).__name__}: {e}"
            ) from e
        commands[name] = UrlCommand(
            name=name,
            source=cmd.url_tmpl,
            template=template,
            output_filter=output_filter,
        )
    return commands


def _parse_timezones(settings: BotSettings) -> dict[str, ZoneInfo]:
    zones: dict[str, ZoneInfo] = {}
    for channel, name in settings.url_dup_timezone.items():
        try:
            zones[channel] = ZoneInfo(name)
        except (ZoneInfoNotFoundError, ValueError, OSError) as e:
            raise ConfigurationError(
                f'error parsing url_dup_timezone "{channel}": "{name}" - {e}'
            ) from e
    return zones


@dataclass(frozen=True, slots=True)
class RuntimeConfig:
    """Validated, compiled view of the reloadable ``bot`` config section.

    A snapshot is never mutated. Reloading builds a fresh instance and the
    dispatcher swaps it in; handlers keep the snapshot they started with.
    """

    version: int
    source_path: str
    channel: str
    irc_log_dir: str
    url_log_db: str
    privileged_nicks: MappingProxyType
    url_re: re.Pattern[str]
    url_blacklist: tuple[str, ...]
    url_fetch_channels: MappingProxyType
    url_cmd_channels: MappingProxyType
    url_mut_channels: MappingProxyType
    url_log_channels: MappingProxyType
    url_dup_complain_channels: MappingProxyType
    url_dup_expire_days: MappingProxyType
    url_dup_timezone: MappingProxyType
    cmd_dumpacl: str
    cmd_invite: str
    cmd_join: str
    cmd_mode_o: str
    cmd_mode_v: str
    cmd_nick: str
    cmd_reload: str
    cmd_say: str
    mode_o_acl: PatternACL
    auto_o_acl: PatternACL
    invite_deny_host_acl: PatternACL
    invite_deny_nick_acl: PatternACL
    url_rewrite: URLRewriteTable
    url_cmds: MappingProxyType = field(default_factory=lambda: MappingProxyType({}))

    @classmethod
    def build(cls, loader: ConfigLoader, version: int = 1) -> "RuntimeConfig":
        logger.info(f"Reading config file {loader.config_path}")
        app_config = loader.read()
        try:
            config = cls.from_settings(
                app_config.bot, version=version, source_path=loader.config_path
            )
        except ConfigurationError as e:
            raise ConfigurationError(
                f"Could not parse runtime config {loader.config_path}: {e}"
            ) from e
        loader.commit(app_config)
        return config

    @classmethod
    def from_settings(
        cls, settings: BotSettings, *, version: int = 1, source_path: str = ""
    ) -> "RuntimeConfig":
        try:
            url_re = re.compile(settings.url_regex)
        except re.error as e:
            raise ConfigurationError(f"invalid url_regex: {e}") from e
        config = cls(
            version=version,
            source_path=source_path,
            channel=settings.channel,
            irc_log_dir=_expand_path(settings.irc_log_dir),
            url_log_db=_expand_path(settings.url_log_db),
            privileged_nicks=_freeze(settings.privileged_nicks),
            url_re=url_re,
            url_blacklist=tuple(settings.url_blacklist),
            url_fetch_channels=_freeze(settings.url_fetch_channels),
            url_cmd_channels=_freeze(settings.url_cmd_channels),
            url_mut_channels=_freeze(settings.url_mut_channels),
            url_log_channels=_freeze(settings.url_log_channels),
            url_dup_complain_channels=_freeze(settings.url_dup_complain_channels),
            url_dup_expire_days=_freeze(settings.url_dup_expire_days),
            url_dup_timezone=_freeze(_parse_timezones(settings)),
            cmd_dumpacl=settings.cmd_dumpacl,
            cmd_invite=settings.cmd_invite,
            cmd_join=settings.cmd_join,
            cmd_mode_o=settings.cmd_mode_o,
            cmd_mode_v=settings.cmd_mode_v,
            cmd_nick=settings.cmd_nick,
            cmd_reload=settings.cmd_reload,
            cmd_say=settings.cmd_say,
            mode_o_acl=PatternACL(settings.mode_o_acl),
            auto_o_acl=PatternACL(settings.auto_o_acl),
            invite_deny_host_acl=PatternACL(settings.invite_deny_host),
            invite_deny_nick_acl=PatternACL(settings.invite_deny_nick),
            url_rewrite=URLRewriteTable(settings.url_mut_list),
            url_cmds=_freeze(_compile_url_commands(settings)),
        )
        logger.info(
            f"New runtime config v{version} created: "
            f"{len(config.mode_o_acl)} +o rules, {len(config.auto_o_acl)} auto +o rules, "
            f"{len(config.url_rewrite)} rewrite rules, {len(config.url_cmds)} url commands"
        )
        return config

    def is_privileged(self, nick: str) -> bool:
        return self.privileged_nicks.get(nick) is True

    def channel_enabled(self, feature: MappingProxyType, channel: str) -> bool:
        return bool(get_wild(feature, channel, False))

    def expire_days(self, channel: str) -> int:
        return int(get_wild(self.url_dup_expire_days, channel, DEFAULT_EXPIRE_DAYS))

    def timezone(self, channel: str) -> ZoneInfo:
        return get_wild(self.url_dup_timezone, channel, ZoneInfo(DEFAULT_TIMEZONE))

    def url_command(self, name: str) -> UrlCommand | None:
        return self.url_cmds.get(name)
