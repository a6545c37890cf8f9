"""Stylesheet, script, asset and metadata extraction from a parsed page."""

from __future__ import annotations

import asyncio
import logging
import mimetypes
import re
from typing import Awaitable, List, Optional, Sequence, Tuple
from urllib.parse import urljoin, urlparse

import filetype
from bs4 import BeautifulSoup, Tag

from .fetcher import Fetcher
from .models import Asset, CSSFile, FetchResult, JSFile, ParseOptions, WebsiteMetadata

logger = logging.getLogger("webclone")

CSS_COMMENT_PATTERN = re.compile(r"/\*[\s\S]*?\*/")
WHITESPACE_PATTERN = re.compile(r"\s+")
FONT_HINTS = (".woff", ".ttf")
FAVICON_RELS = ("icon", "shortcut icon", "apple-touch-icon")
DEFAULT_SCRIPT_TYPE = "text/javascript"


def clean_css(css: str) -> str:
    """Drop comments and collapse whitespace."""
    css = CSS_COMMENT_PATTERN.sub("", css)
    return WHITESPACE_PATTERN.sub(" ", css).strip()


def clean_js(js: str) -> str:
    return js.strip()


def resolve_url(reference: str, base_url: str) -> str:
    """Resolve ``reference`` against ``base_url``; raise ValueError if unusable."""
    reference = reference.strip()
    if not reference:
        raise ValueError("empty URL reference")
    absolute = urljoin(base_url, reference)
    parsed = urlparse(absolute)
    # .port raises ValueError for malformed ports.
    parsed.port
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise ValueError(f"unsupported URL {absolute!r}")
    return absolute


def filename_from_url(url: str) -> Optional[str]:
    """Last path segment of ``url``, or None for directory-style paths."""
    try:
        path = urlparse(url).path
    except ValueError:
        return None
    name = path.rsplit("/", 1)[-1]
    return name or None


def guess_mime_type(filename: str) -> Optional[str]:
    """Best-effort MIME type from a file extension."""
    mime, _ = mimetypes.guess_type(filename, strict=False)
    if mime:
        return mime
    _, dot, extension = filename.rpartition(".")
    if not dot or not extension:
        return None
    kind = filetype.get_type(ext=extension.lower())
    return kind.mime if kind else None


def rel_values(tag: Tag) -> List[str]:
    rel = tag.get("rel") or []
    if isinstance(rel, str):
        rel = rel.split()
    return [value.lower() for value in rel]


def is_stylesheet_link(tag: Tag) -> bool:
    return tag.name == "link" and "stylesheet" in rel_values(tag) and bool(tag.get("href"))


def is_external_script(tag: Tag) -> bool:
    return tag.name == "script" and tag.has_attr("src")


async def _settle(tasks: Sequence[Awaitable[FetchResult]]) -> List[object]:
    """Run every fetch to completion; failures come back in their own slot."""
    return list(await asyncio.gather(*tasks, return_exceptions=True))


async def extract_css(
    soup: BeautifulSoup,
    base_url: str,
    options: ParseOptions,
    fetcher: Fetcher,
) -> List[CSSFile]:
    """Collect inline <style> blocks and fetch linked stylesheets concurrently."""
    css_files: List[CSSFile] = []

    if options.include_inline_styles:
        for index, style in enumerate(soup.find_all("style"), start=1):
            css_files.append(
                CSSFile(
                    id=f"inline-style-{index}",
                    name=f"inline-style-{index}.css",
                    content=clean_css(style.string or style.get_text()),
                    source="inline",
                    media=style.get("media") or "all",
                )
            )

    if not options.include_external_assets:
        return css_files

    pending: List[Tuple[str, str]] = []
    tasks = []
    for link in soup.find_all(is_stylesheet_link):
        href = link["href"]
        try:
            css_url = resolve_url(href, base_url)
        except ValueError as exc:
            logger.warning("Failed to fetch CSS from %s: %s", href, exc)
            continue
        pending.append((css_url, link.get("media") or "all"))
        tasks.append(fetcher.fetch(css_url))

    for (css_url, media), outcome in zip(pending, await _settle(tasks)):
        if isinstance(outcome, BaseException):
            logger.warning("Failed to fetch CSS from %s: %s", css_url, outcome)
            continue
        number = len(css_files) + 1
        css_files.append(
            CSSFile(
                id=f"external-css-{number}",
                name=filename_from_url(css_url) or f"external-{number}.css",
                content=clean_css(outcome.text),
                source="external",
                url=css_url,
                media=media,
            )
        )
    return css_files


async def extract_js(
    soup: BeautifulSoup,
    base_url: str,
    options: ParseOptions,
    fetcher: Fetcher,
) -> List[JSFile]:
    """Collect inline scripts and fetch ``<script src>`` targets concurrently."""
    js_files: List[JSFile] = []

    if options.include_inline_scripts:
        counter = 0
        for script in soup.find_all("script"):
            if script.has_attr("src"):
                continue
            content = script.string or script.get_text()
            if not content.strip():
                continue
            counter += 1
            js_files.append(
                JSFile(
                    id=f"inline-script-{counter}",
                    name=f"inline-script-{counter}.js",
                    content=clean_js(content),
                    source="inline",
                    type=script.get("type") or DEFAULT_SCRIPT_TYPE,
                )
            )

    if not options.include_external_assets:
        return js_files

    pending: List[Tuple[str, str]] = []
    tasks = []
    for script in soup.find_all(is_external_script):
        src = script.get("src") or ""
        try:
            js_url = resolve_url(src, base_url)
        except ValueError as exc:
            logger.warning("Failed to fetch JS from %s: %s", src, exc)
            continue
        pending.append((js_url, script.get("type") or DEFAULT_SCRIPT_TYPE))
        tasks.append(fetcher.fetch(js_url))

    for (js_url, script_type), outcome in zip(pending, await _settle(tasks)):
        if isinstance(outcome, BaseException):
            logger.warning("Failed to fetch JS from %s: %s", js_url, outcome)
            continue
        number = len(js_files) + 1
        js_files.append(
            JSFile(
                id=f"external-js-{number}",
                name=filename_from_url(js_url) or f"external-{number}.js",
                content=clean_js(outcome.text),
                source="external",
                url=js_url,
                type=script_type,
            )
        )
    return js_files


def _link_asset_type(link: Tag, href: str) -> Optional[str]:
    rel = rel_values(link)
    lowered = href.lower()
    if "preload" not in rel and "font" not in rel and not any(h in lowered for h in FONT_HINTS):
        return None
    if (link.get("as") or "").lower() == "image":
        return "image"
    return "font"


def extract_assets(
    soup: BeautifulSoup,
    base_url: str,
    options: ParseOptions,
    limit: Optional[int] = None,
) -> List[Asset]:
    """List image and font references. Nothing is downloaded."""
    assets: List[Asset] = []
    if not options.include_external_assets:
        return assets

    candidates: List[Tuple[str, str]] = []
    for img in soup.find_all("img", src=True):
        src = img["src"].strip()
        if src and not src.startswith("data:"):
            candidates.append(("image", src))
    for link in soup.find_all("link", href=True):
        href = link["href"].strip()
        asset_type = _link_asset_type(link, href)
        if asset_type and not href.startswith("data:"):
            candidates.append((asset_type, href))

    for asset_type, reference in candidates:
        if limit is not None and len(assets) >= limit:
            logger.info("Asset limit of %d reached; ignoring the rest", limit)
            break
        try:
            asset_url = resolve_url(reference, base_url)
        except ValueError:
            logger.warning("Invalid %s URL: %s", asset_type, reference)
            continue
        number = len(assets) + 1
        prefix = "image" if asset_type == "image" else "font"
        name = filename_from_url(asset_url) or f"{prefix}-{number}"
        assets.append(
            Asset(
                id=f"asset-{number}",
                type=asset_type,
                original_url=asset_url,
                name=name,
                mime_type=guess_mime_type(name) or f"{prefix}/*",
            )
        )
    return assets


def _meta_content(soup: BeautifulSoup, **attrs) -> Optional[str]:
    tag = soup.find("meta", attrs=attrs)
    if tag and tag.get("content"):
        return tag["content"].strip()
    return None


def _http_equiv(soup: BeautifulSoup, name: str) -> Optional[str]:
    tag = soup.find(
        "meta",
        attrs={"http-equiv": lambda value: bool(value) and value.lower() == name},
    )
    if tag and tag.get("content"):
        return tag["content"].strip()
    return None


def extract_metadata(soup: BeautifulSoup) -> WebsiteMetadata:
    """Title, description, charset and friends from the document head."""
    title: Optional[str] = None
    if soup.title and soup.title.get_text().strip():
        title = soup.title.get_text().strip()
    if not title:
        title = _meta_content(soup, property="og:title") or "Untitled"

    charset: Optional[str] = None
    charset_tag = soup.find("meta", charset=True)
    if charset_tag and charset_tag.get("charset"):
        charset = charset_tag["charset"].strip()
    if not charset:
        content_type = _http_equiv(soup, "content-type") or ""
        if "charset=" in content_type:
            charset = content_type.split("charset=", 1)[1].strip() or None

    language: Optional[str] = None
    html_tag = soup.find("html")
    if html_tag and html_tag.get("lang"):
        language = html_tag["lang"].strip()
    if not language:
        language = _http_equiv(soup, "content-language")

    canonical: Optional[str] = None
    for link in soup.find_all("link", href=True):
        if "canonical" in rel_values(link):
            canonical = link["href"].strip()
            break

    return WebsiteMetadata(
        title=title,
        description=_meta_content(soup, name="description")
        or _meta_content(soup, property="og:description"),
        viewport=_meta_content(soup, name="viewport"),
        charset=charset or "UTF-8",
        language=language,
        author=_meta_content(soup, name="author"),
        canonical=canonical,
    )


def extract_favicon(soup: BeautifulSoup, base_url: str) -> Optional[str]:
    """Absolute URL of the first icon link, if any."""
    for wanted in FAVICON_RELS:
        for link in soup.find_all("link", href=True):
            if " ".join(rel_values(link)) == wanted:
                try:
                    return resolve_url(link["href"], base_url)
                except ValueError:
                    return None
    return None
