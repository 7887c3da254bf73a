"""
HTTP remote source.

Fetches posts from a JSONPlaceholder-style REST API with aiohttp:

    GET {base_url}/posts       -> JSON array of {id, userId, title, body}
    GET {base_url}/posts/{id}  -> single JSON object of the same shape
"""

from __future__ import annotations

import asyncio
import json
import logging
import time
from typing import Any

import aiohttp

from ..config import RemoteConfig, TimeoutConfig
from ..exceptions import NetworkFailureError, PostNotFoundError
from ..models import Post
from .base import RemoteSource

logger = logging.getLogger(__name__)

POSTS_ENDPOINT = "posts"


def client_timeout(timeouts: TimeoutConfig) -> aiohttp.ClientTimeout:
    """Translate millisecond settings into an aiohttp timeout."""
    return aiohttp.ClientTimeout(
        total=timeouts.request_ms / 1000,
        connect=timeouts.connect_ms / 1000,
        sock_read=timeouts.socket_ms / 1000,
    )


class HttpRemoteSource(RemoteSource):
    """
    Remote source backed by an aiohttp client session.

    The session is created lazily on first use. A session passed in by the
    caller is used as-is and left open on ``close()``.

    Example:
        >>> async with HttpRemoteSource(RemoteConfig()) as remote:
        ...     posts = await remote.fetch_all()
    """

    def __init__(
        self,
        config: RemoteConfig | None = None,
        session: aiohttp.ClientSession | None = None,
    ) -> None:
        """Initialize the remote source.

        Args:
            config: Remote configuration (base URL and timeouts)
            session: Optional shared aiohttp session
        """
        self.config = config or RemoteConfig()
        self.base_url = self.config.base_url.rstrip("/")
        self._timeout = client_timeout(self.config.timeouts)
        self._session = session
        self._owns_session = session is None

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=self._timeout,
                headers={"Accept": "application/json"},
            )
            self._owns_session = True
        return self._session

    async def fetch_all(self) -> list[Post]:
        data = await self._get_json(POSTS_ENDPOINT)
        url = self._url(POSTS_ENDPOINT)
        if not isinstance(data, list):
            raise NetworkFailureError(
                url, reason=f"expected a JSON array, got {type(data).__name__}"
            )
        return [self._decode(url, item) for item in data]

    async def fetch_by_id(self, post_id: int) -> Post:
        path = f"{POSTS_ENDPOINT}/{post_id}"
        data = await self._get_json(path, post_id=post_id)
        return self._decode(self._url(path), data)

    def _url(self, path: str) -> str:
        return f"{self.base_url}/{path}"

    def _decode(self, url: str, item: Any) -> Post:
        try:
            return Post.from_remote(item)
        except ValueError as e:
            raise NetworkFailureError(url, reason=f"invalid post payload: {e}", cause=e) from e

    async def _get_json(self, path: str, post_id: int | None = None) -> Any:
        """GET a path and decode its JSON body.

        Raises:
            PostNotFoundError: On HTTP 404 for a single-post request
            NetworkFailureError: On any other failure
        """
        url = self._url(path)
        session = self._get_session()
        started = time.monotonic()
        logger.debug(f"GET {url}")

        try:
            async with session.get(url, timeout=self._timeout) as response:
                elapsed_ms = int((time.monotonic() - started) * 1000)
                logger.debug(
                    f"GET {url} -> {response.status} ({elapsed_ms} ms)",
                    extra={"endpoint": url, "status": response.status, "elapsed_ms": elapsed_ms},
                )

                if response.status == 404 and post_id is not None:
                    raise PostNotFoundError(post_id)
                if not 200 <= response.status < 300:
                    raise NetworkFailureError(url, status=response.status, reason=response.reason)

                body = await response.read()
        except (PostNotFoundError, NetworkFailureError):
            raise
        except asyncio.TimeoutError as e:
            raise NetworkFailureError(url, reason="request timed out", cause=e) from e
        except aiohttp.ClientError as e:
            raise NetworkFailureError(url, reason=str(e) or type(e).__name__, cause=e) from e

        try:
            return json.loads(body)
        except ValueError as e:
            raise NetworkFailureError(url, reason=f"invalid JSON body: {e}", cause=e) from e

    async def close(self) -> None:
        """Close the HTTP session if this source created it."""
        if self._session is not None and self._owns_session and not self._session.closed:
            await self._session.close()
        self._session = None

    async def __aenter__(self) -> HttpRemoteSource:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()
