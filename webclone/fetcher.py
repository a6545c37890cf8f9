"""Time- and size-bounded HTTP GET built on httpx."""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Dict, List, Optional

import httpx

from .config import DEFAULT_MAX_SIZE, DEFAULT_TIMEOUT, CrawlConfig
from .errors import (
    FetchTimeoutError,
    ForbiddenHostError,
    HTTPStatusError,
    NetworkFailureError,
    TooLargeError,
)
from .guard import is_blocked_host
from .models import FetchResult

logger = logging.getLogger("webclone")


async def _refuse_internal_hosts(request: httpx.Request) -> None:
    # Runs for every request, including redirect hops and sub-resources.
    if is_blocked_host(request.url.host):
        raise ForbiddenHostError(request.url.host)


def _decode_body(body: bytes, response: httpx.Response) -> str:
    encoding = response.charset_encoding or "utf-8"
    try:
        return body.decode(encoding, errors="replace")
    except LookupError:
        logger.debug("Unknown charset %s for %s; decoding as UTF-8", encoding, response.url)
        return body.decode("utf-8", errors="replace")


class Fetcher:
    """Shared async client that enforces a timeout and a maximum body size."""

    def __init__(
        self,
        timeout: float = DEFAULT_TIMEOUT,
        max_size: int = DEFAULT_MAX_SIZE,
        headers: Optional[Dict[str, str]] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        guard_hosts: bool = True,
    ) -> None:
        self.timeout = timeout
        self.max_size = max_size
        hooks = {"request": [_refuse_internal_hosts]} if guard_hosts else {}
        self._client = httpx.AsyncClient(
            headers=headers or CrawlConfig().request_headers(),
            follow_redirects=True,
            timeout=timeout,
            transport=transport,
            event_hooks=hooks,
        )

    @classmethod
    def from_config(
        cls,
        config: CrawlConfig,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> "Fetcher":
        return cls(
            timeout=config.timeout,
            max_size=config.max_size,
            headers=config.request_headers(),
            transport=transport,
        )

    async def __aenter__(self) -> "Fetcher":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def fetch(self, url: str) -> FetchResult:
        """GET ``url`` and return its decoded body.

        Raises FetchTimeoutError, TooLargeError, HTTPStatusError or
        NetworkFailureError. Nothing is retried.
        """
        start = time.perf_counter()
        try:
            result = await asyncio.wait_for(self._get(url), timeout=self.timeout)
        except asyncio.TimeoutError as exc:
            raise FetchTimeoutError(f"Request timeout after {self.timeout:g}s", url) from exc
        except httpx.TimeoutException as exc:
            raise FetchTimeoutError(f"Request timeout: {exc}", url) from exc
        except httpx.HTTPError as exc:
            message = str(exc) or exc.__class__.__name__
            raise NetworkFailureError(message, url) from exc
        logger.debug(
            "Fetched %s (%d chars) in %.2fs",
            url,
            len(result.text),
            time.perf_counter() - start,
        )
        return result

    async def _get(self, url: str) -> FetchResult:
        async with self._client.stream("GET", url) as response:
            if not response.is_success:
                raise HTTPStatusError(response.status_code, response.reason_phrase, url)

            declared = response.headers.get("content-length", "").strip()
            if declared.isdigit() and int(declared) > self.max_size:
                raise TooLargeError(int(declared), self.max_size, url)

            chunks: List[bytes] = []
            total = 0
            async for chunk in response.aiter_bytes():
                total += len(chunk)
                if total > self.max_size:
                    raise TooLargeError(total, self.max_size, url)
                chunks.append(chunk)

            return FetchResult(
                url=str(response.url),
                status_code=response.status_code,
                headers=dict(response.headers),
                text=_decode_body(b"".join(chunks), response),
            )
