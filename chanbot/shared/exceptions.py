__all__ = (
    "ChanBotError",
    "ConfigurationError",
    "PatternError",
    "TransportError",
    "FetchError",
    "PersistenceError",
)


class ChanBotError(Exception):
    """Base error"""


class ConfigurationError(ChanBotError):
    """Configuration error"""


class PatternError(ConfigurationError):
    """Invalid regular expression in an ACL or rewrite rule"""


class TransportError(ChanBotError):
    """Chat transport error"""


class FetchError(ChanBotError):
    """Remote fetch error"""


class PersistenceError(ChanBotError):
    """URL history store error"""
