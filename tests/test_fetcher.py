"""Tests for the bounded HTTP fetcher."""

import asyncio

import httpx
import pytest

from webclone.errors import (
    FetchTimeoutError,
    ForbiddenHostError,
    HTTPStatusError,
    NetworkFailureError,
    TooLargeError,
)
from webclone.fetcher import Fetcher

MB = 1024 * 1024


class TrackingStream(httpx.AsyncByteStream):
    """Response body that records whether anyone read it."""

    def __init__(self, chunks):
        self.chunks = chunks
        self.read = False

    async def __aiter__(self):
        self.read = True
        for chunk in self.chunks:
            yield chunk

    async def aclose(self):
        pass


@pytest.mark.asyncio
async def test_returns_text_and_headers(site):
    site.add("example.com/", "<html><title>hi</title></html>")
    async with Fetcher(transport=site.transport) as fetcher:
        result = await fetcher.fetch("https://example.com/")
    assert result.status_code == 200
    assert result.text == "<html><title>hi</title></html>"
    assert result.headers["content-type"].startswith("text/html")


@pytest.mark.asyncio
async def test_sends_browser_user_agent(site):
    site.add("example.com/", "ok")
    async with Fetcher(transport=site.transport) as fetcher:
        await fetcher.fetch("https://example.com/")
    user_agent = site.requests[0].headers["user-agent"]
    assert user_agent.startswith("Mozilla/5.0")
    assert "Chrome" in user_agent


@pytest.mark.asyncio
async def test_declared_length_over_limit_fails_without_reading_body(site):
    stream = TrackingStream([b"x"])
    site.add(
        "example.com/huge",
        lambda request: httpx.Response(
            200, headers={"Content-Length": str(60 * MB)}, stream=stream
        ),
    )
    async with Fetcher(max_size=50 * MB, transport=site.transport) as fetcher:
        with pytest.raises(TooLargeError) as excinfo:
            await fetcher.fetch("https://example.com/huge")
    assert excinfo.value.size == 60 * MB
    assert not stream.read


@pytest.mark.asyncio
async def test_ten_megabytes_under_fifty_megabyte_cap_succeeds(site):
    body = b"a" * (10 * MB)
    site.add("example.com/big", lambda request: httpx.Response(200, content=body))
    async with Fetcher(max_size=50 * MB, transport=site.transport) as fetcher:
        result = await fetcher.fetch("https://example.com/big")
    assert len(result.text) == 10 * MB


@pytest.mark.asyncio
async def test_undeclared_length_is_enforced_while_streaming(site):
    stream = TrackingStream([b"a" * 600, b"b" * 600])
    site.add("example.com/chunked", lambda request: httpx.Response(200, stream=stream))
    async with Fetcher(max_size=1000, transport=site.transport) as fetcher:
        with pytest.raises(TooLargeError):
            await fetcher.fetch("https://example.com/chunked")


@pytest.mark.asyncio
async def test_non_2xx_raises_http_status(site):
    async with Fetcher(transport=site.transport) as fetcher:
        with pytest.raises(HTTPStatusError) as excinfo:
            await fetcher.fetch("https://example.com/missing")
    assert excinfo.value.status_code == 404
    assert "HTTP 404" in str(excinfo.value)


@pytest.mark.asyncio
async def test_slow_response_times_out():
    async def slow(request):
        await asyncio.sleep(5)
        return httpx.Response(200, text="late")

    async with Fetcher(timeout=0.05, transport=httpx.MockTransport(slow)) as fetcher:
        with pytest.raises(FetchTimeoutError):
            await fetcher.fetch("https://slow.example.com/")


@pytest.mark.asyncio
async def test_connection_failure_is_network_failure(site):
    site.add("nowhere.example/", httpx.ConnectError("[Errno -2] Name or service not known"))
    async with Fetcher(transport=site.transport) as fetcher:
        with pytest.raises(NetworkFailureError) as excinfo:
            await fetcher.fetch("https://nowhere.example/")
    assert "Name or service not known" in str(excinfo.value)


@pytest.mark.asyncio
async def test_redirect_to_internal_host_is_refused(site):
    site.add(
        "example.com/go",
        lambda request: httpx.Response(302, headers={"Location": "http://127.0.0.1/admin"}),
    )
    async with Fetcher(transport=site.transport) as fetcher:
        with pytest.raises(ForbiddenHostError):
            await fetcher.fetch("https://example.com/go")
    assert all(request.url.host != "127.0.0.1" for request in site.requests)


@pytest.mark.asyncio
async def test_decodes_declared_charset(site):
    site.add(
        "example.com/latin",
        lambda request: httpx.Response(
            200,
            content="café".encode("latin-1"),
            headers={"Content-Type": "text/html; charset=iso-8859-1"},
        ),
    )
    async with Fetcher(transport=site.transport) as fetcher:
        result = await fetcher.fetch("https://example.com/latin")
    assert result.text == "café"
