import asyncio
import re
from collections.abc import Callable

from bs4 import BeautifulSoup
from loguru import logger

from ..db.sqlite import UrlRecord
from ..shared.exceptions import PersistenceError
from ..shared.utils import collapse_whitespace, format_ts, truncate_text
from .operations import (
    ChangeNick,
    CheckDuplicateUrl,
    FetchTitle,
    GrantOperator,
    GrantVoice,
    Invite,
    JoinChannel,
    LogUrl,
    Operation,
    OutboundMessage,
    RewriteUrl,
    RunTemplatedFetch,
)
from .ports import Fetcher, Transport, UrlStore

__all__ = ("OperationExecutor", "extract_title", "filter_matches")


def extract_title(html: str) -> str | None:
    soup = BeautifulSoup(html, "html.parser")
    if soup.title is None:
        return None
    return soup.title.get_text() or None


def filter_matches(pattern: re.Pattern[str], body: str) -> list[str]:
    results = []
    for match in pattern.finditer(body):
        results.append(match.group(1) if pattern.groups else match.group(0))
    return results


class OperationExecutor:
    """Runs queued operations against the transport and remote services.

    Replies produced by enrichment jobs go through ``post_message`` and
    follow-up work through ``post_op``, so both stay throttled.
    """

    def __init__(
        self,
        transport: Transport,
        fetcher: Fetcher,
        store_factory: Callable[[str], UrlStore],
        *,
        post_message: Callable[[OutboundMessage], None],
        post_op: Callable[[Operation], None],
    ):
        self.transport = transport
        self.fetcher = fetcher
        self.store_factory = store_factory
        self.post_message = post_message
        self.post_op = post_op
        self._stores: dict[str, UrlStore] = {}
        self._handlers = {
            GrantVoice: self._grant_voice,
            GrantOperator: self._grant_operator,
            Invite: self._invite,
            ChangeNick: self._change_nick,
            JoinChannel: self._join_channel,
            CheckDuplicateUrl: self.check_duplicate_url,
            FetchTitle: self.fetch_title,
            LogUrl: self.log_url,
            RunTemplatedFetch: self.run_templated_fetch,
            RewriteUrl: self.rewrite_url,
        }

    async def execute(self, op: Operation) -> None:
        handler = self._handlers.get(type(op))
        if handler is None:
            raise TypeError(f"unsupported operation: {op!r}")
        await handler(op)

    async def close(self) -> None:
        stores, self._stores = self._stores, {}
        for store in stores.values():
            try:
                await store.close()
            except Exception as e:
                if isinstance(e, asyncio.CancelledError):
                    raise
                logger.warning(f"Error closing URL store: {e}")
        await self.fetcher.close()

    def _store(self, db_path: str) -> UrlStore:
        store = self._stores.get(db_path)
        if store is None:
            store = self.store_factory(db_path)
            self._stores[db_path] = store
        return store

    def _say(self, target: str, text: str) -> None:
        self.post_message(OutboundMessage(target=target, text=text))

    async def _grant_voice(self, op: GrantVoice) -> None:
        await self.transport.send_mode(op.channel, "+v", op.nick)

    async def _grant_operator(self, op: GrantOperator) -> None:
        await self.transport.send_mode(op.channel, "+o", op.nick)

    async def _invite(self, op: Invite) -> None:
        await self.transport.send_invite(op.nick, op.channel)

    async def _change_nick(self, op: ChangeNick) -> None:
        await self.transport.send_nick(op.nick)

    async def _join_channel(self, op: JoinChannel) -> None:
        await self.transport.send_join(op.channel)

    async def fetch_title(self, op: FetchTitle) -> None:
        fetched = await self.fetcher.get_text_body(op.url)
        if fetched is None:
            return
        body, _ = fetched
        title = extract_title(body)
        if title is None:
            logger.debug(f"No title found at {op.url}")
            return
        title = collapse_whitespace(title)
        if not title or title == op.url:
            return
        self._say(op.channel, f'"{truncate_text(title)}"')

    async def run_templated_fetch(self, op: RunTemplatedFetch) -> None:
        url = op.command.render(op.arg)
        logger.info(f"URL cmd: !{op.command.name} --> {url}")
        body, _ = await self.fetcher.get_body(url)
        for result in filter_matches(op.command.output_filter, body):
            self._say(op.channel, f"--> {result}")

    async def check_duplicate_url(self, op: CheckDuplicateUrl) -> None:
        seen = await self._store(op.db_path).query(
            op.url, op.channel, op.expire_days * 86400
        )
        if seen is None or seen.count < 1:
            return
        first = format_ts(seen.first_seen, op.tz)
        if seen.count == 1:
            text = f"Old URL, seen {first}"
        else:
            last = format_ts(seen.last_seen, op.tz)
            text = f"Old URL, seen {seen.count} times, first {first} and last {last}"
        self._say(op.channel, text)

    async def log_url(self, op: LogUrl) -> None:
        record = UrlRecord(ts=op.ts, channel=op.channel, nick=op.nick, url=op.url)
        try:
            rowid = await self._store(op.db_path).insert(record)
        except PersistenceError as e:
            logger.error(f"Dropping URL log record for {op.url}: {e}")
            return
        logger.info(f"Urllog: inserted row {rowid}")

    async def rewrite_url(self, op: RewriteUrl) -> None:
        result = op.table.rewrite(op.url)
        if result is None:
            return
        i, new_url = result
        logger.info(f"URL rewrite rule #{i}: {op.url} --> {new_url}")
        self._say(op.channel, new_url)
        self.post_op(FetchTitle(url=new_url, channel=op.channel))
