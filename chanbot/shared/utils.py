import re
from collections.abc import Mapping
from datetime import datetime, tzinfo
from typing import Any, TypeVar

from loguru import logger
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_fixed,
)

from .constants import TITLE_CUT_LEN, TITLE_MAX_LEN, TS_FORMAT, WILDCARD

__all__ = (
    "collapse_whitespace",
    "format_ts",
    "get_wild",
    "retry_async",
    "split_command",
    "truncate_text",
)

_T = TypeVar("_T")

_WS_RE = re.compile(r"\s+")


def get_wild(mapping: Mapping[str, _T], key: str, default: _T | None = None) -> _T | None:
    if key in mapping:
        return mapping[key]
    return mapping.get(WILDCARD, default)


def collapse_whitespace(text: str) -> str:
    return _WS_RE.sub(" ", text).strip()


def truncate_text(
    text: str, max_len: int = TITLE_MAX_LEN, cut_len: int = TITLE_CUT_LEN
) -> str:
    if len(text) <= max_len:
        return text
    return f"{text[:cut_len]}..."


def split_command(text: str) -> tuple[str, str]:
    parts = text.strip().split(maxsplit=1)
    if not parts:
        return "", ""
    if len(parts) == 1:
        return parts[0], ""
    return parts[0], parts[1]


def format_ts(ts: float, tz: tzinfo) -> str:
    return datetime.fromtimestamp(ts, tz).strftime(TS_FORMAT)


def retry_async(max_retries=3, retryable_exceptions=None, delay: float = 1.0):
    kwargs: dict[str, Any] = {
        "stop": stop_after_attempt(max_retries),
        "wait": wait_fixed(delay),
        "reraise": True,
        "before_sleep": lambda retry_state: logger.info(
            f"Retry attempt #{retry_state.attempt_number}..."
        ),
    }
    if retryable_exceptions:
        kwargs["retry"] = retry_if_exception_type(retryable_exceptions)
    return retry(**kwargs)
