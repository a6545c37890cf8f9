"""MCP server exposing webclone fetch/preview tools."""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from mcp.server.fastmcp import FastMCP

from .config import CrawlConfig
from .errors import WebcloneError, describe_error
from .ingest import ingest_website
from .models import CSSFile, JSFile, ParseOptions
from .preview import build_preview_url
from .serializer import safe_response, serialize_content

logger = logging.getLogger("webclone.mcp")
logger.setLevel(logging.ERROR)

mcp = FastMCP(name="webclone")


@mcp.tool()
async def fetch_website(url: str, include_assets: bool = True) -> Dict[str, Any]:
    """Fetch a web page and split it into HTML, CSS, JS and an asset list."""
    config = CrawlConfig.from_env()
    options = ParseOptions(include_external_assets=include_assets)
    try:
        content = await ingest_website(url, options, config)
    except WebcloneError as exc:
        raise RuntimeError(describe_error(exc)) from exc
    return safe_response(serialize_content(content, config))


@mcp.tool()
async def preview(
    html: str,
    css: Optional[List[Dict[str, Any]]] = None,
    js: Optional[List[Dict[str, Any]]] = None,
) -> str:
    """Render HTML with its stylesheets and scripts into a data: URL."""
    css_files = [CSSFile.from_dict(item) for item in css or []]
    js_files = [JSFile.from_dict(item) for item in js or []]
    return build_preview_url(html, css_files, js_files)


def main() -> None:
    """Entry point for running the MCP server."""
    logging.basicConfig(level=logging.ERROR)
    mcp.run()


if __name__ == "__main__":
    main()
