import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, Optional

import aiohttp

from errors import TransportError


class ApiClient:
    def __init__(
        self,
        base_url: str,
        verify_ssl: bool = True,
        timeout_seconds: float = 30.0,
        retries: int = 3,
        backoff_base: float = 0.5,
        chunk_size: int = 65536,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.verify_ssl = verify_ssl
        self.timeout_seconds = timeout_seconds
        self.retries = retries
        self.backoff_base = backoff_base
        self.chunk_size = chunk_size

        # Client session resources are created in async context within stream

    async def _open(self, session: aiohttp.ClientSession, params: Dict[str, Any]) -> aiohttp.ClientResponse:
        attempt = 0
        while True:
            attempt += 1
            try:
                response = await session.get(self.base_url, params=params, ssl=self.verify_ssl)
                if response.status >= 500:
                    response.release()
                    raise aiohttp.ClientResponseError(
                        request_info=response.request_info,
                        history=response.history,
                        status=response.status,
                        message=f"Server error {response.status}",
                    )
                if response.status >= 400:
                    response.release()
                    raise TransportError(
                        f"GET {self.base_url} returned HTTP {response.status}",
                        status=response.status,
                    )
                return response
            except (aiohttp.ClientConnectionError, aiohttp.ClientResponseError, asyncio.TimeoutError) as e:
                status = e.status if isinstance(e, aiohttp.ClientResponseError) else None
                if attempt > self.retries:
                    logging.error("Request to %s failed after %s retries: %s", self.base_url, self.retries, e)
                    raise TransportError(f"GET {self.base_url} failed", e, status=status) from e
                sleep_s = self.backoff_base * (2 ** (attempt - 1))
                logging.warning(
                    "Error requesting %s (attempt %s/%s): %s. Retrying in %.1fs",
                    self.base_url,
                    attempt,
                    self.retries,
                    e,
                    sleep_s,
                )
                await asyncio.sleep(sleep_s)

    async def _iter_body(self, response: aiohttp.ClientResponse) -> AsyncIterator[bytes]:
        try:
            async for chunk in response.content.iter_chunked(self.chunk_size):
                yield chunk
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise TransportError("Response body stream failed", e) from e

    @asynccontextmanager
    async def stream(self, params: Optional[Dict[str, Any]] = None) -> AsyncIterator[AsyncIterator[bytes]]:
        """
        Open the upstream request and yield its body as an async byte stream.

        Only the request itself is retried; a failure once the body has
        started streaming is raised as TransportError.
        """
        params = params or {}
        timeout = aiohttp.ClientTimeout(total=self.timeout_seconds)
        async with aiohttp.ClientSession(timeout=timeout) as session:
            logging.info("Requesting %s with params %s", self.base_url, params)
            response = await self._open(session, params)
            try:
                yield self._iter_body(response)
            finally:
                response.release()
