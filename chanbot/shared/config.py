import os
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ValidationError, field_validator

from .config_keys import ConfigKeys
from .constants import DEFAULT_EXPIRE_DAYS
from .exceptions import ConfigurationError

__all__ = (
    "AppConfig",
    "BotSettings",
    "Config",
    "IRCConfig",
    "LogConfig",
    "UrlCommandConfig",
)

_MISSING = object()

_ENV_TO_KEY = {
    "CHANBOT_IRC_SERVER": ConfigKeys.IRC_SERVER,
    "CHANBOT_IRC_PORT": ConfigKeys.IRC_PORT,
    "CHANBOT_IRC_TLS": ConfigKeys.IRC_TLS,
    "CHANBOT_IRC_TLS_VERIFY": ConfigKeys.IRC_TLS_VERIFY,
    "CHANBOT_IRC_NICKNAME": ConfigKeys.IRC_NICKNAME,
    "CHANBOT_IRC_USERNAME": ConfigKeys.IRC_USERNAME,
    "CHANBOT_IRC_REALNAME": ConfigKeys.IRC_REALNAME,
    "CHANBOT_IRC_PASSWORD": ConfigKeys.IRC_PASSWORD,
    "CHANBOT_IRC_SASL_USERNAME": ConfigKeys.IRC_SASL_USERNAME,
    "CHANBOT_IRC_SASL_PASSWORD": ConfigKeys.IRC_SASL_PASSWORD,
    "CHANBOT_CHANNEL": ConfigKeys.BOT_CHANNEL,
    "CHANBOT_IRC_LOG_DIR": ConfigKeys.BOT_IRC_LOG_DIR,
    "CHANBOT_URL_LOG_DB": ConfigKeys.BOT_URL_LOG_DB,
    "CHANBOT_LOG_PATH": ConfigKeys.LOG_PATH,
    "CHANBOT_LOG_LEVEL": ConfigKeys.LOG_LEVEL,
}


def _set_dotted(config: dict[str, Any], dotted: str, value: Any) -> None:
    cur: dict[str, Any] = config
    parts = dotted.split(".")
    for key in parts[:-1]:
        nxt = cur.get(key)
        if not isinstance(nxt, dict):
            nxt = {}
            cur[key] = nxt
        cur = nxt
    cur[parts[-1]] = value


def _get_dotted(config: dict[str, Any], dotted: str) -> Any:
    cur: Any = config
    for key in dotted.split("."):
        if not isinstance(cur, dict):
            return None
        cur = cur.get(key)
    return cur


class IRCConfig(BaseModel):
    server: str
    port: int = 6697
    tls: bool = True
    tls_verify: bool = True
    nickname: str
    username: str | None = None
    realname: str | None = None
    password: str | None = None
    sasl_username: str | None = None
    sasl_password: str | None = None
    channels: list[str] = []

    @field_validator("nickname")
    @classmethod
    def _validate_nickname(cls, v: str) -> str:
        s = v.strip()
        if not s or " " in s:
            raise ValueError("IRC nickname must be a single non-empty word")
        return s

    @field_validator("port")
    @classmethod
    def _validate_port(cls, v: int) -> int:
        if not (0 < v < 65536):
            raise ValueError("IRC port must be between 1 and 65535")
        return v


class UrlCommandConfig(BaseModel):
    url_tmpl: str
    output_filter: str


class BotSettings(BaseModel):
    irc_log_dir: str = "logs/irc"
    channel: str
    privileged_nicks: dict[str, bool] = {}

    url_regex: str = r"(https?://[^\s]+)"
    url_log_db: str = "data/url.db"
    url_blacklist: list[str] = []

    url_fetch_channels: dict[str, bool] = {}
    url_cmd_channels: dict[str, bool] = {}
    url_mut_channels: dict[str, bool] = {}
    url_log_channels: dict[str, bool] = {}
    url_dup_complain_channels: dict[str, bool] = {}
    url_dup_expire_days: dict[str, int] = {"*": DEFAULT_EXPIRE_DAYS}
    url_dup_timezone: dict[str, str] = {}

    cmd_dumpacl: str = "dumpacl"
    cmd_invite: str = "invite"
    cmd_join: str = "join"
    cmd_mode_o: str = "op"
    cmd_mode_v: str = "voice"
    cmd_nick: str = "nick"
    cmd_reload: str = "reload"
    cmd_say: str = "say"

    mode_o_acl: list[str] = []
    auto_o_acl: list[str] = []
    invite_deny_host: list[str] = []
    invite_deny_nick: list[str] = []

    url_cmd_list: dict[str, UrlCommandConfig] = {}
    url_mut_list: list[tuple[str, str]] = []

    @field_validator("channel")
    @classmethod
    def _validate_channel(cls, v: str) -> str:
        s = v.strip()
        if not s:
            raise ValueError("default channel must not be empty")
        return s

    @field_validator(
        "cmd_dumpacl",
        "cmd_invite",
        "cmd_join",
        "cmd_mode_o",
        "cmd_mode_v",
        "cmd_nick",
        "cmd_reload",
        "cmd_say",
    )
    @classmethod
    def _validate_command(cls, v: str) -> str:
        s = v.strip()
        if not s or any(c.isspace() for c in s):
            raise ValueError("command keyword must be a single non-empty word")
        return s

    @field_validator("url_dup_expire_days")
    @classmethod
    def _validate_expire_days(cls, v: dict[str, int]) -> dict[str, int]:
        for channel, days in v.items():
            if days < 0:
                raise ValueError(f"url_dup_expire_days[{channel}] must be >= 0")
        return v


class LogConfig(BaseModel):
    path: str = "logs/chanbot.log"
    level: str = "INFO"

    @field_validator("level")
    @classmethod
    def _validate_level(cls, v: str) -> str:
        s = v.strip().upper()
        if s not in {"TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"unknown log level: {v}")
        return s


class AppConfig(BaseModel):
    irc: IRCConfig
    bot: BotSettings
    log: LogConfig = LogConfig()


class Config:
    def __init__(self, config_path: str | None = None):
        self.config_path = config_path or os.environ.get(
            "CHANBOT_CONFIG", "config.yaml"
        )
        self._model: AppConfig | None = None
        self.data: dict[str, Any] = {}

    @property
    def model(self) -> AppConfig:
        if self._model is None:
            raise ConfigurationError("config has not been loaded")
        return self._model

    def read(self) -> AppConfig:
        """Parse and validate the config file without installing it."""
        merged = self._load_yaml_config(Path(self.config_path))
        self._apply_env_overrides(merged)
        return self._validate_model(merged)

    def commit(self, model: AppConfig) -> None:
        self._model = model
        self.data = model.model_dump()

    def load(self) -> AppConfig:
        model = self.read()
        self.commit(model)
        return model

    @staticmethod
    def _load_yaml_config(config_path: Path) -> dict[str, Any]:
        if not config_path.exists():
            raise ConfigurationError(f"config file not found: {config_path}")
        if not config_path.is_file():
            raise ConfigurationError(f"config path is not a file: {config_path}")
        try:
            raw = config_path.read_text(encoding="utf-8")
        except UnicodeDecodeError as e:
            raise ConfigurationError(f"Config file decode error: {e}") from e
        except OSError as e:
            raise ConfigurationError(f"Config file read error: {e}") from e
        try:
            loaded = yaml.safe_load(raw) or {}
        except yaml.YAMLError as e:
            raise ConfigurationError(f"YAML config parse error: {e}") from e
        if not isinstance(loaded, dict):
            raise ConfigurationError("config file root node must be an object")
        return loaded

    @staticmethod
    def _apply_env_overrides(config: dict[str, Any]) -> None:
        for env_name, key in _ENV_TO_KEY.items():
            if (env_value := os.environ.get(env_name)) is not None:
                _set_dotted(config, key, env_value)

    @staticmethod
    def _validate_model(config: dict[str, Any]) -> AppConfig:
        try:
            return AppConfig.model_validate(config)
        except ValidationError as e:
            raise ConfigurationError(str(e)) from e

    def get(self, key: str, default: Any = _MISSING) -> Any:
        if self._model is None:
            if default is not _MISSING:
                return default
            return None
        value = _get_dotted(self.data, key)
        if value is None and default is not _MISSING:
            return default
        return value
