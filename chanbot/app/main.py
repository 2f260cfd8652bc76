import asyncio
import signal
import sys
from pathlib import Path

from dotenv import load_dotenv
from loguru import logger

from ..bot.core import ChanBot
from ..clients.irc.transport import IRCTransport
from ..shared.config import Config
from ..shared.config_keys import ConfigKeys
from ..shared.constants import RECONNECT_DELAY
from ..shared.exceptions import ConfigurationError, TransportError

__all__ = ("BotRunner", "main", "setup_logging")


def setup_logging(level: str, log_path: str | None = None) -> None:
    logger.remove()
    logger.add(sys.stderr, level=level)
    if log_path:
        path = Path(log_path)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise ConfigurationError(f"failed to create log directory: {path}") from e
        logger.add(
            path,
            level=level,
            rotation="10 MB",
            compression="zip",
            enqueue=True,
        )


class BotRunner:
    def __init__(
        self,
        config_path: str | None = None,
        *,
        log_level: str | None = None,
        reconnect_delay: float = RECONNECT_DELAY,
    ):
        self.config_path = config_path
        self.log_level = log_level
        self.reconnect_delay = reconnect_delay
        self.bot: ChanBot | None = None
        self.transport: IRCTransport | None = None
        self.shutdown_event: asyncio.Event | None = None
        self._shutdown_called = False

    async def run(self) -> None:
        self.shutdown_event = asyncio.Event()
        load_dotenv()
        config = Config(self.config_path)
        config.load()
        setup_logging(
            self.log_level or config.get(ConfigKeys.LOG_LEVEL),
            config.get(ConfigKeys.LOG_PATH),
        )
        logger.info("Starting bot...")
        self._setup_signals()
        first_time = True
        try:
            while not self.shutdown_event.is_set():
                if not first_time:
                    logger.error(f"Sleeping {self.reconnect_delay}s...")
                    if await self._wait_shutdown(self.reconnect_delay):
                        break
                    logger.error("Retrying start")
                first_time = False
                try:
                    await self._run_once(config)
                except (TransportError, OSError) as e:
                    logger.error(f"Connection lost: {e}")
                finally:
                    await self._teardown()
        finally:
            try:
                await asyncio.shield(self.shutdown())
            except asyncio.CancelledError:
                raise
            except Exception:
                logger.exception("Error during shutdown")

    async def _run_once(self, config: Config) -> None:
        self.transport = IRCTransport(config.model.irc)
        self.bot = ChanBot(config, self.transport)
        await self.transport.start()
        run_task = asyncio.create_task(self.bot.run())
        stop_task = asyncio.create_task(self.shutdown_event.wait())
        try:
            await asyncio.wait(
                {run_task, stop_task}, return_when=asyncio.FIRST_COMPLETED
            )
        finally:
            for task in (run_task, stop_task):
                if not task.done():
                    task.cancel()
            await asyncio.gather(run_task, stop_task, return_exceptions=True)
        if run_task.done() and not run_task.cancelled():
            run_task.result()

    async def _wait_shutdown(self, delay: float) -> bool:
        try:
            await asyncio.wait_for(self.shutdown_event.wait(), timeout=delay)
        except asyncio.TimeoutError:
            return False
        return True

    async def _teardown(self) -> None:
        bot, self.bot = self.bot, None
        transport, self.transport = self.transport, None
        if bot is not None:
            await bot.stop()
        if transport is not None:
            try:
                await transport.close()
            except Exception as e:
                if isinstance(e, asyncio.CancelledError):
                    raise
                logger.warning(f"Error closing IRC transport: {e}")

    def _setup_signals(self) -> None:
        signals = (
            (signal.SIGINT, signal.SIGTERM, signal.SIGHUP)
            if sys.platform != "win32"
            else (signal.SIGINT, signal.SIGTERM)
        )
        loop = asyncio.get_running_loop()

        def signal_handler(sig, _):
            logger.info(
                f"Received signal {signal.Signals(sig).name}; preparing to shut down..."
            )
            if self.shutdown_event and not self.shutdown_event.is_set():
                loop.call_soon_threadsafe(self.shutdown_event.set)

        for sig in signals:
            try:
                signal.signal(sig, signal_handler)
            except Exception:
                logger.warning(f"Failed to register signal handler: {sig}")

    async def shutdown(self) -> None:
        if self._shutdown_called:
            return
        self._shutdown_called = True
        logger.info("Shutting down bot...")
        await self._teardown()
        logger.info("Bot shut down")


def main(config_path: str | None = None, log_level: str | None = None) -> int:
    try:
        asyncio.run(BotRunner(config_path, log_level=log_level).run())
        logger.info("Bye")
        return 0
    except KeyboardInterrupt:
        return 130
    except ConfigurationError as e:
        logger.error(f"Startup error: {e}")
        return 2
    except Exception:
        logger.exception("Unhandled exception during startup")
        return 1
