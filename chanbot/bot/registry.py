from collections.abc import Callable
from typing import TYPE_CHECKING

from loguru import logger

from .events import PrivmsgEvent, TransportEvent

if TYPE_CHECKING:
    from .core import ChanBot

__all__ = ("CommandHandler", "EventObserver", "HandlerRegistry")

CommandHandler = Callable[["ChanBot", PrivmsgEvent, str, str], bool]
EventObserver = Callable[["ChanBot", TransportEvent], bool]


class HandlerRegistry:
    def __init__(self) -> None:
        self._privileged: dict[str, CommandHandler] = {}
        self._open: dict[str, CommandHandler] = {}
        self._channel: dict[str, CommandHandler] = {}
        self._observers: list[EventObserver] = []

    def clear(self) -> None:
        self._privileged.clear()
        self._open.clear()
        self._channel.clear()
        self._observers.clear()

    def register_privileged(self, keyword: str, handler: CommandHandler) -> None:
        self._register(self._privileged, "privileged", keyword, handler)

    def register_open(self, keyword: str, handler: CommandHandler) -> None:
        self._register(self._open, "open", keyword, handler)

    def register_channel(self, keyword: str, handler: CommandHandler) -> None:
        self._register(self._channel, "channel", keyword, handler)

    def register_observer(self, observer: EventObserver) -> None:
        self._observers.append(observer)

    @staticmethod
    def _register(
        table: dict[str, CommandHandler],
        kind: str,
        keyword: str,
        handler: CommandHandler,
    ) -> None:
        if keyword in table:
            logger.warning(f"Replacing {kind} handler for {keyword!r}")
        table[keyword] = handler

    def privileged(self, keyword: str) -> CommandHandler | None:
        return self._privileged.get(keyword)

    def open(self, keyword: str) -> CommandHandler | None:
        return self._open.get(keyword)

    def channel(self, keyword: str) -> CommandHandler | None:
        return self._channel.get(keyword)

    @property
    def observers(self) -> tuple[EventObserver, ...]:
        return tuple(self._observers)

    def __len__(self) -> int:
        return (
            len(self._privileged)
            + len(self._open)
            + len(self._channel)
            + len(self._observers)
        )
