"""High-level orchestration: URL in, WebsiteContent out."""

from __future__ import annotations

import asyncio
import logging
import time
from datetime import datetime, timezone
from typing import Optional

from bs4 import BeautifulSoup

from .config import CrawlConfig
from .extractor import (
    extract_assets,
    extract_css,
    extract_favicon,
    extract_js,
    extract_metadata,
)
from .fetcher import Fetcher
from .guard import validate_url
from .models import ParseOptions, WebsiteContent
from .normalizer import process_html

logger = logging.getLogger("webclone")


async def _extract_assets(soup, base_url, options, limit):
    return extract_assets(soup, base_url, options, limit=limit)


async def parse_document(
    html: str,
    url: str,
    options: ParseOptions,
    fetcher: Fetcher,
    config: CrawlConfig,
    base_url: Optional[str] = None,
) -> WebsiteContent:
    """Split an already fetched page into markup, stylesheets, scripts and assets.

    References resolve against ``base_url`` (the post-redirect URL) when given.
    """
    soup = BeautifulSoup(html, "html.parser")
    base_url = base_url or url

    css_files, js_files, assets = await asyncio.gather(
        extract_css(soup, base_url, options, fetcher),
        extract_js(soup, base_url, options, fetcher),
        _extract_assets(soup, base_url, options, config.asset_limit),
    )

    metadata = extract_metadata(soup)
    favicon = extract_favicon(soup, base_url)
    clean_html = process_html(soup, options)

    return WebsiteContent(
        url=url,
        title=metadata.title,
        favicon=favicon,
        html=clean_html,
        css=css_files,
        js=js_files,
        assets=assets,
        metadata=metadata,
        parsed_at=datetime.now(timezone.utc),
    )


async def ingest_website(
    url: str,
    options: Optional[ParseOptions] = None,
    config: Optional[CrawlConfig] = None,
    fetcher: Optional[Fetcher] = None,
) -> WebsiteContent:
    """Validate, fetch and decompose a page.

    Only the main document fetch is bounded as a whole. Stylesheet and script
    fetches each carry their own timeout, with no overall deadline.
    """
    options = options or ParseOptions()
    config = config or CrawlConfig()
    normalized_url = validate_url(url)

    owns_fetcher = fetcher is None
    if fetcher is None:
        fetcher = Fetcher.from_config(config)

    start = time.perf_counter()
    try:
        logger.info("Fetching website: %s", normalized_url)
        response = await fetcher.fetch(normalized_url)
        content = await parse_document(
            response.text,
            normalized_url,
            options,
            fetcher,
            config,
            base_url=response.url,
        )
    finally:
        if owns_fetcher:
            await fetcher.aclose()

    logger.info(
        "Parsed %s (%r): %d chars of HTML, %d CSS, %d JS, %d assets in %.2fs",
        content.url,
        content.title,
        len(content.html),
        len(content.css),
        len(content.js),
        len(content.assets),
        time.perf_counter() - start,
    )
    return content
