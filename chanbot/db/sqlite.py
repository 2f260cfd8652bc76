import asyncio
import time
from dataclasses import dataclass
from pathlib import Path

import aiosqlite
from loguru import logger

from ..shared.constants import DB_RETRY_COUNT, DB_RETRY_SLEEP
from ..shared.exceptions import PersistenceError
from ..shared.utils import retry_async

__all__ = ("UrlLogDB", "UrlRecord", "UrlSeen")


@dataclass(frozen=True, slots=True)
class UrlRecord:
    ts: int
    channel: str
    nick: str
    url: str


@dataclass(frozen=True, slots=True)
class UrlSeen:
    count: int
    first_seen: int
    last_seen: int


class UrlLogDB:
    def __init__(
        self,
        db_path: str,
        *,
        retry_count: int = DB_RETRY_COUNT,
        retry_delay: float = DB_RETRY_SLEEP,
    ):
        self.db_path = Path(db_path)
        self.retry_count = retry_count
        self.retry_delay = retry_delay
        self._conn: aiosqlite.Connection | None = None
        self._lock = asyncio.Lock()

    async def __aenter__(self):
        await self.initialize()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()
        return False

    async def initialize(self) -> None:
        await self._connection()

    async def _connection(self) -> aiosqlite.Connection:
        async with self._lock:
            if self._conn is None:
                self.db_path.parent.mkdir(parents=True, exist_ok=True)
                conn = await aiosqlite.connect(
                    self.db_path, timeout=30.0, isolation_level=None
                )
                await conn.execute("PRAGMA journal_mode=WAL")
                await conn.execute("PRAGMA busy_timeout=30000")
                await self._execute_schema(conn)
                self._conn = conn
                logger.info(f"URL log DB opened: {self.db_path}")
            return self._conn

    async def close(self) -> None:
        if self._conn is not None:
            await self._conn.close()
            self._conn = None
            logger.debug(f"URL log DB closed: {self.db_path}")

    @staticmethod
    async def _execute_schema(conn: aiosqlite.Connection) -> None:
        schema_statements = [
            """
            CREATE TABLE IF NOT EXISTS url (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                seen INTEGER NOT NULL,
                channel TEXT NOT NULL,
                nick TEXT NOT NULL,
                url TEXT NOT NULL
            )
            """,
            """
            CREATE TABLE IF NOT EXISTS url_changed (
                last INTEGER NOT NULL
            )
            """,
        ]
        index_statements = [
            "CREATE INDEX IF NOT EXISTS url_seen ON url(seen)",
            "CREATE INDEX IF NOT EXISTS url_channel ON url(channel)",
            "CREATE INDEX IF NOT EXISTS url_url ON url(url)",
        ]
        await conn.execute("BEGIN")
        try:
            for statement in schema_statements:
                await conn.execute(statement)
            for index_sql in index_statements:
                await conn.execute(index_sql)
            async with conn.execute("SELECT COUNT(*) FROM url_changed") as cursor:
                row = await cursor.fetchone()
            if not row or not row[0]:
                await conn.execute("INSERT INTO url_changed (last) VALUES (0)")
            await conn.commit()
        except aiosqlite.Error:
            await conn.rollback()
            raise

    async def _insert_once(self, record: UrlRecord) -> int:
        conn = await self._connection()
        await conn.execute("BEGIN")
        try:
            async with conn.execute(
                "INSERT INTO url (id, seen, channel, nick, url) VALUES (NULL, ?, ?, ?, ?)",
                (record.ts, record.channel, record.nick, record.url),
            ) as cursor:
                rowid = cursor.lastrowid
            await conn.execute("UPDATE url_changed SET last = ?", (int(time.time()),))
            await conn.commit()
        except aiosqlite.Error:
            await conn.rollback()
            raise
        return int(rowid or 0)

    async def insert(self, record: UrlRecord) -> int:
        insert = retry_async(
            max_retries=self.retry_count,
            retryable_exceptions=aiosqlite.Error,
            delay=self.retry_delay,
        )(self._insert_once)
        try:
            rowid = await insert(record)
        except aiosqlite.Error as e:
            raise PersistenceError(
                f"failed to log url after {self.retry_count} attempts: {e}"
            ) from e
        logger.debug(f"URL logged to {self.db_path}: {record.url} (id {rowid})")
        return rowid

    async def query(
        self, url: str, channel: str, window_secs: int, now: int | None = None
    ) -> UrlSeen | None:
        if now is None:
            now = int(time.time())
        since = now - window_secs
        try:
            conn = await self._connection()
            async with conn.execute(
                "SELECT COUNT(*), MIN(seen), MAX(seen) FROM url "
                "WHERE url = ? AND channel = ? AND seen > ?",
                (url, channel, since),
            ) as cursor:
                row = await cursor.fetchone()
        except aiosqlite.Error as e:
            raise PersistenceError(f"url history query failed: {e}") from e
        if not row or not row[0]:
            return None
        count, first_seen, last_seen = row
        return UrlSeen(count=int(count), first_seen=int(first_seen), last_seen=int(last_seen))
