from importlib import import_module
from typing import Any

_EXPORTS: dict[str, tuple[str, str]] = {
    "ChanBot": (".bot.core", "ChanBot"),
    "BotRunner": (".app.main", "BotRunner"),
    "Config": (".shared.config", "Config"),
    "ConfigKeys": (".shared.config_keys", "ConfigKeys"),
    "RuntimeConfig": (".shared.runtime_config", "RuntimeConfig"),
    "PatternACL": (".shared.acl", "PatternACL"),
    "URLRewriteTable": (".shared.rewrite", "URLRewriteTable"),
    "HandlerRegistry": (".bot.registry", "HandlerRegistry"),
    "OperationQueue": (".bot.queues", "OperationQueue"),
    "MessageQueue": (".bot.queues", "MessageQueue"),
    "OperationExecutor": (".bot.jobs", "OperationExecutor"),
    "HTTPFetcher": (".clients.http.fetch", "HTTPFetcher"),
    "IRCTransport": (".clients.irc.transport", "IRCTransport"),
    "UrlLogDB": (".db.sqlite", "UrlLogDB"),
}

__all__ = list(_EXPORTS)


def __getattr__(name: str) -> Any:
    try:
        module_name, attr_name = _EXPORTS[name]
    except KeyError:
        raise AttributeError(name) from None
    value = getattr(import_module(module_name, __name__), attr_name)
    globals()[name] = value
    return value


def __dir__() -> list[str]:
    return sorted(set(globals()) | set(_EXPORTS))
