import asyncio

import aiohttp
from loguru import logger
from yarl import URL

from ...shared.constants import CONNECT_TIMEOUT, REQUEST_TIMEOUT, USER_AGENT
from ...shared.exceptions import FetchError

__all__ = ("HTTPFetcher",)


class HTTPFetcher:
    def __init__(
        self,
        *,
        connect_timeout: float = CONNECT_TIMEOUT,
        total_timeout: float = REQUEST_TIMEOUT,
        verify_ssl: bool = False,
    ) -> None:
        self.__session: aiohttp.ClientSession | None = None
        self.__connector: aiohttp.TCPConnector | None = None
        self.user_agent = USER_AGENT
        self._timeout = aiohttp.ClientTimeout(
            total=total_timeout, connect=connect_timeout
        )
        self._verify_ssl = verify_ssl
        self._default_headers = {
            "User-Agent": self.user_agent,
        }

    @property
    def _connector(self) -> aiohttp.TCPConnector:
        if self.__connector is None or self.__connector.closed:
            self.__connector = aiohttp.TCPConnector(ssl=self._verify_ssl)
        return self.__connector

    @property
    def session(self) -> aiohttp.ClientSession:
        if self.__session is None or self.__session.closed:
            self.__session = aiohttp.ClientSession(
                headers=self._default_headers,
                timeout=self._timeout,
                connector=self._connector,
                connector_owner=True,
            )
        return self.__session

    async def close(self) -> None:
        if self.__session and not self.__session.closed:
            try:
                await self.__session.close()
            except Exception as e:
                if isinstance(e, asyncio.CancelledError):
                    raise
                logger.warning(f"Error closing session: {e}")
        if self.__connector and not self.__connector.closed:
            try:
                await self.__connector.close()
            except Exception as e:
                if isinstance(e, asyncio.CancelledError):
                    raise
                logger.warning(f"Error closing connector: {e}")
        self.__session = self.__connector = None
        logger.debug("HTTP session closed")

    @staticmethod
    def _validate_url(url: str) -> URL:
        try:
            parsed = URL(url)
        except (TypeError, ValueError) as e:
            raise FetchError(f"invalid url {url!r}: {e}") from e
        if parsed.scheme not in ("http", "https") or not parsed.host:
            raise FetchError(f"unsupported url {url!r}")
        return parsed

    async def _fetch(self, url: str, text_only: bool) -> tuple[str, str] | None:
        target = self._validate_url(url)
        logger.debug(f"Fetching {target}")
        try:
            async with self.session.get(target, allow_redirects=True) as response:
                response.raise_for_status()
                content_type = response.headers.get("Content-Type", "")
                if text_only and not content_type.lower().startswith("text/"):
                    logger.info(
                        f"Ignoring non-text content type {content_type!r} from {url}"
                    )
                    return None
                body = await response.text(errors="replace")
        except aiohttp.ClientResponseError as e:
            raise FetchError(f"HTTP {e.status} from {url}") from e
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise FetchError(f"fetch failed for {url}: {e!r}") from e
        return body, content_type

    async def get_body(self, url: str) -> tuple[str, str]:
        return await self._fetch(url, text_only=False)

    async def get_text_body(self, url: str) -> tuple[str, str] | None:
        """Fetch ``url`` unless the response headers announce non-text content."""
        return await self._fetch(url, text_only=True)
