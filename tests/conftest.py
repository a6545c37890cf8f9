"""Shared fixtures: a fake website served through httpx.MockTransport."""

from typing import Callable, Dict, List, Union

import httpx
import pytest

EXAMPLE_HTML = """<!doctype html>
<html>
<head>
    <title>Example Domain</title>

    <meta charset="utf-8" />
    <meta http-equiv="Content-type" content="text/html; charset=utf-8" />
    <meta name="viewport" content="width=device-width, initial-scale=1" />
    <style type="text/css">
    body {
        background-color: #f0f0f2;
        margin: 0;
        padding: 0;
    }
    /* layout */
    div {
        width: 600px;
        margin: 5em auto;
    }
    </style>
</head>

<body>
<div>
    <h1>Example Domain</h1>
    <p>This domain is for use in illustrative examples in documents.</p>
    <p><a href="https://www.iana.org/domains/example">More information...</a></p>
</div>
</body>
</html>
"""

Route = Union[str, httpx.Response, Exception, Callable[[httpx.Request], httpx.Response]]


class FakeSite:
    """Routes keyed by ``host + path``; unknown paths answer 404."""

    def __init__(self) -> None:
        self.routes: Dict[str, Route] = {}
        self.requests: List[httpx.Request] = []

    def add(self, key: str, route: Route) -> None:
        self.routes[key] = route

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        key = f"{request.url.host}{request.url.path or '/'}"
        route = self.routes.get(key)
        if route is None:
            return httpx.Response(404, text="not found")
        if isinstance(route, Exception):
            raise route
        if callable(route):
            return route(request)
        if isinstance(route, httpx.Response):
            return route
        content_type = "text/html; charset=utf-8"
        if key.endswith(".css"):
            content_type = "text/css"
        elif key.endswith(".js"):
            content_type = "application/javascript"
        return httpx.Response(200, text=route, headers={"Content-Type": content_type})

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    @property
    def requested_urls(self) -> List[str]:
        return [str(request.url) for request in self.requests]


@pytest.fixture
def site() -> FakeSite:
    return FakeSite()


@pytest.fixture
def example_html() -> str:
    return EXAMPLE_HTML
