import asyncio
import time
from collections.abc import Callable
from dataclasses import dataclass

from loguru import logger

from ..clients.http.fetch import HTTPFetcher
from ..db.sqlite import UrlLogDB
from ..shared.constants import MSG_THROTTLE, NONE, OP_THROTTLE
from ..shared.exceptions import TransportError
from ..shared.runtime_config import ConfigLoader, RuntimeConfig
from ..shared.utils import split_command
from .commands import setup_handlers
from .events import NickEvent, Prefix, PrivmsgEvent, TransportEvent
from .jobs import OperationExecutor
from .operations import (
    CheckDuplicateUrl,
    FetchTitle,
    LogUrl,
    Operation,
    OutboundMessage,
    RewriteUrl,
    RunTemplatedFetch,
)
from .ports import Fetcher, Transport, UrlStore
from .queues import MessageQueue, OperationQueue
from .registry import HandlerRegistry

__all__ = ("ChanBot", "SenderContext")


@dataclass(frozen=True, slots=True)
class SenderContext:
    nick: str = NONE
    user: str = NONE
    host: str = NONE

    @property
    def userhost(self) -> str:
        return f"{self.user}@{self.host}"

    @classmethod
    def from_prefix(cls, prefix: Prefix | None) -> "SenderContext":
        if prefix is None:
            return cls()
        return cls(nick=prefix.nick, user=prefix.user, host=prefix.host)


class ChanBot:
    def __init__(
        self,
        loader: ConfigLoader,
        transport: Transport,
        *,
        fetcher: Fetcher | None = None,
        store_factory: Callable[[str], UrlStore] | None = None,
        op_delay: float = OP_THROTTLE,
        msg_delay: float = MSG_THROTTLE,
    ):
        self.loader = loader
        self.transport = transport
        self.config = RuntimeConfig.build(loader)
        self.registry = setup_handlers(HandlerRegistry(), self.config)
        self.sender = SenderContext()
        self.mynick = transport.nickname
        self.executor = OperationExecutor(
            transport,
            fetcher or HTTPFetcher(),
            store_factory or UrlLogDB,
            post_message=self.msg_queue_put,
            post_op=self.op_queue_put,
        )
        self.op_queue = OperationQueue(self.executor.execute, op_delay)
        self.msg_queue = MessageQueue(self._send_message, msg_delay)
        logger.info(f"Bot initialized as {self.mynick}")

    def op_queue_put(self, op: Operation) -> None:
        self.op_queue.put(op)

    def msg_queue_put(self, msg: OutboundMessage) -> None:
        self.msg_queue.put(msg)

    async def _send_message(self, msg: OutboundMessage) -> None:
        await self.transport.send_privmsg(msg.target, msg.text)

    def new_op(self, op: Operation) -> None:
        logger.debug(f"New op: {op!r}")
        self.op_queue.put(op)

    def new_msg(self, target: str, text: str) -> None:
        logger.info(f"{target} <{self.mynick}> {text}")
        self.msg_queue.put(OutboundMessage(target=target, text=text))

    def reload(self) -> RuntimeConfig:
        config = RuntimeConfig.build(self.loader, version=self.config.version + 1)
        registry = setup_handlers(HandlerRegistry(), config)
        self.config, self.registry = config, registry
        logger.info(f"Runtime config v{config.version} installed")
        return config

    def dispatch(self, event: TransportEvent) -> bool:
        self.sender = SenderContext.from_prefix(event.prefix)
        config, registry = self.config, self.registry

        observed = False
        for observer in registry.observers:
            try:
                if observer(self, event):
                    observed = True
                    break
            except Exception:
                name = getattr(observer, "__name__", repr(observer))
                logger.exception(f"Observer {name} failed on {event.command}")

        if isinstance(event, PrivmsgEvent):
            if event.target.lower() == self.mynick.lower():
                return self._handle_privmsg(event, config, registry) or observed
            return self._handle_chanmsg(event, config, registry) or observed
        if isinstance(event, NickEvent):
            if self.sender.nick == self.mynick:
                logger.info(f"My nick changed: {self.mynick} --> {event.new_nick}")
                self.mynick = event.new_nick
                return True
        if event.command == "001" and event.params:
            self.mynick = event.params[0]
            logger.info(f"Registered as {self.mynick}")
        return observed

    def _handle_privmsg(
        self, msg: PrivmsgEvent, config: RuntimeConfig, registry: HandlerRegistry
    ) -> bool:
        sender = self.sender
        cmd, args = split_command(msg.text)
        logger.info(f"*** Privmsg from {sender.nick} ({sender.userhost}): {cmd} {args}")
        try:
            if config.is_privileged(sender.nick):
                handler = registry.privileged(cmd)
                if handler is not None and handler(self, msg, cmd, args):
                    return True
            handler = registry.open(cmd)
            if handler is not None and handler(self, msg, cmd, args):
                return True
        except Exception:
            logger.exception(f"Command {cmd!r} from {sender.nick} failed")
        return False

    def _handle_chanmsg(
        self, msg: PrivmsgEvent, config: RuntimeConfig, registry: HandlerRegistry
    ) -> bool:
        channel = msg.target
        nick = self.sender.nick
        cmd, args = split_command(msg.text)
        logger.debug(f"{channel} <{nick}> {cmd} {args}")

        if (handler := registry.channel(cmd)) is not None:
            try:
                return handler(self, msg, cmd, args)
            except Exception:
                logger.exception(f"Channel command {cmd!r} from {nick} failed")
                return False

        if cmd.startswith("!") and config.channel_enabled(config.url_cmd_channels, channel):
            if (url_cmd := config.url_command(cmd[1:])) is not None:
                self.new_op(RunTemplatedFetch(command=url_cmd, arg=args, channel=channel))
                return True

        found_url = False
        for url in self._find_urls(msg.text, config):
            found_url = True
            logger.info(f"*** ({nick} at {channel}) detected url: {url}")
            if url.startswith(config.url_blacklist):
                logger.info("*** Blacklisted URL. Ignored.")
                continue
            self._queue_url_jobs(url, channel, nick, config)
        return found_url

    @staticmethod
    def _find_urls(text: str, config: RuntimeConfig) -> list[str]:
        url_re = config.url_re
        if url_re.groups:
            return [m.group(1) for m in url_re.finditer(text) if m.group(1)]
        return [m.group(0) for m in url_re.finditer(text)]

    def _queue_url_jobs(
        self, url: str, channel: str, nick: str, config: RuntimeConfig
    ) -> None:
        if config.channel_enabled(config.url_log_channels, channel):
            db_path = config.url_log_db
            if config.channel_enabled(config.url_dup_complain_channels, channel):
                self.new_op(
                    CheckDuplicateUrl(
                        db_path=db_path,
                        url=url,
                        channel=channel,
                        tz=config.timezone(channel),
                        expire_days=config.expire_days(channel),
                    )
                )
            self.new_op(
                LogUrl(
                    db_path=db_path,
                    url=url,
                    channel=channel,
                    nick=nick,
                    ts=int(time.time()),
                )
            )
        if config.channel_enabled(config.url_fetch_channels, channel):
            self.new_op(FetchTitle(url=url, channel=channel))
        if config.channel_enabled(config.url_mut_channels, channel):
            self.new_op(RewriteUrl(url=url, channel=channel, table=config.url_rewrite))

    async def run(self) -> None:
        self.op_queue.start()
        self.msg_queue.start()
        logger.info("Bot started")
        try:
            async for event in self.transport.events():
                try:
                    self.dispatch(event)
                except Exception:
                    logger.exception(f"Failed to dispatch {event.command}")
        finally:
            await self.op_queue.stop()
            await self.msg_queue.stop()
        raise TransportError("transport event stream ended")

    async def stop(self) -> None:
        await self.op_queue.stop()
        await self.msg_queue.stop()
        try:
            await self.executor.close()
        except Exception as e:
            if isinstance(e, asyncio.CancelledError):
                raise
            logger.warning(f"Error closing executor: {e}")
        logger.info("Bot stopped")
