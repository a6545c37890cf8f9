"""Zip export of edited website content."""

from __future__ import annotations

import io
import json
import logging
import re
import zipfile
from datetime import datetime, timezone
from html import escape
from typing import Dict, List, Optional, Sequence, Union
from urllib.parse import urlparse

from bs4 import BeautifulSoup

from .models import CSSFile, JSFile, WebsiteContent
from .utils import safe_filename

logger = logging.getLogger("webclone")

GENERATOR = "webclone"
HOST_UNSAFE_PATTERN = re.compile(r"[^a-zA-Z0-9]")


def _attr(value: str) -> str:
    return escape(value or "", quote=True)


def _assign_names(
    files: Sequence[Union[CSSFile, JSFile]],
    stem: str,
    extension: str,
) -> List[str]:
    """Archive file names for ``files``, unique within their folder."""
    names: List[str] = []
    taken = set()
    for index, item in enumerate(files, start=1):
        name = safe_filename(item.name, f"{stem}-{index}{extension}")
        candidate = name
        counter = 2
        while candidate.lower() in taken:
            base, dot, ext = name.rpartition(".")
            candidate = f"{base}-{counter}.{ext}" if dot else f"{name}-{counter}"
            counter += 1
        taken.add(candidate.lower())
        names.append(candidate)
    return names


def _body_content(html: str) -> str:
    soup = BeautifulSoup(html, "html.parser")
    if soup.body is not None:
        return soup.body.decode_contents()
    return html


def build_main_html(content: WebsiteContent) -> str:
    """index.html with <link>/<script> tags pointing at the exported files."""
    metadata = content.metadata
    css_names = _assign_names(content.css, "style", ".css")
    js_names = _assign_names(content.js, "script", ".js")

    css_links = []
    for css, name in zip(content.css, css_names):
        media = f' media="{_attr(css.media)}"' if css.media and css.media != "all" else ""
        css_links.append(f'  <link rel="stylesheet" href="css/{_attr(name)}"{media}>')

    js_tags = []
    for js, name in zip(content.js, js_names):
        script_type = f' type="{_attr(js.type)}"' if js.type and js.type != "text/javascript" else ""
        js_tags.append(f'  <script src="js/{_attr(name)}"{script_type}></script>')

    head_extra = []
    if metadata.description:
        head_extra.append(f'  <meta name="description" content="{_attr(metadata.description)}">')
    if metadata.author:
        head_extra.append(f'  <meta name="author" content="{_attr(metadata.author)}">')
    if content.favicon:
        head_extra.append(f'  <link rel="icon" href="{_attr(content.favicon)}">')

    lines = [
        "<!DOCTYPE html>",
        f'<html lang="{_attr(metadata.language or "en")}">',
        "<head>",
        f'  <meta charset="{_attr(metadata.charset or "UTF-8")}">',
        '  <meta name="viewport" content="'
        f'{_attr(metadata.viewport or "width=device-width, initial-scale=1.0")}">',
        f"  <title>{escape(content.title or '')}</title>",
        *head_extra,
        "",
        f'  <meta name="generator" content="{GENERATOR}">',
        f'  <meta name="original-url" content="{_attr(content.url)}">',
        "",
        *css_links,
        "</head>",
        "<body>",
        _body_content(content.html),
        "",
        *js_tags,
        "</body>",
        "</html>",
    ]
    return "\n".join(lines)


def _count_assets(content: WebsiteContent) -> Dict[str, int]:
    images = sum(1 for asset in content.assets if asset.type == "image")
    fonts = sum(1 for asset in content.assets if asset.type == "font")
    return {"images": images, "fonts": fonts, "other": len(content.assets) - images - fonts}


def build_assets_readme(content: WebsiteContent) -> str:
    counts = _count_assets(content)
    return (
        "# Assets\n\n"
        "This folder contains the asset manifest for the website.\n"
        "Original assets can be downloaded from the URLs listed in assets-manifest.json\n\n"
        "## Asset Types\n"
        f"- Images: {counts['images']}\n"
        f"- Fonts: {counts['fonts']}\n"
        f"- Other: {counts['other']}\n"
    )


def build_readme(content: WebsiteContent, exported_at: datetime) -> str:
    """Top-level README describing the archive layout."""
    css_names = _assign_names(content.css, "style", ".css")
    js_names = _assign_names(content.js, "script", ".js")
    lines = [
        f"# {content.title}",
        "",
        f"This website was exported from **{content.url}** using {GENERATOR}.",
        "",
        "## Export Information",
        "",
        f"- **Original URL**: {content.url}",
        f"- **Exported**: {exported_at.strftime('%Y-%m-%d %H:%M:%S %Z').strip()}",
        f"- **Title**: {content.title}",
    ]
    if content.metadata.description:
        lines.append(f"- **Description**: {content.metadata.description}")
    lines += [
        "",
        "## File Structure",
        "",
        "- `index.html` - Main HTML file",
        "- `css/` - Stylesheet files",
        "- `js/` - JavaScript files",
        "- `assets/` - Asset manifest (if included)",
        "- `metadata.json` - Website metadata and export information",
        "",
        f"## CSS Files ({len(content.css)})",
        "",
    ]
    for css, name in zip(content.css, css_names):
        media = f" ({css.media})" if css.media and css.media != "all" else ""
        lines.append(f"- `{name}` - {css.source} stylesheet{media}")
    lines += ["", f"## JavaScript Files ({len(content.js)})", ""]
    for js, name in zip(content.js, js_names):
        script_type = f" ({js.type})" if js.type and js.type != "text/javascript" else ""
        lines.append(f"- `{name}` - {js.source} script{script_type}")
    if content.assets:
        lines += ["", f"## Assets ({len(content.assets)})", ""]
        for asset in content.assets:
            lines.append(f"- `{asset.name}` - {asset.type} ({asset.original_url})")
    lines += [
        "",
        "## Usage",
        "",
        "1. Open `index.html` in a web browser",
        "2. Ensure all files remain in their respective folders",
        "3. For full functionality, serve from a web server rather than opening directly in browser",
        "",
        "## Notes",
        "",
        "- This export contains the website as it was at the time of capture",
        "- External resources may need to be downloaded separately",
        "- Some functionality may require a web server environment",
        "",
    ]
    return "\n".join(lines)


def build_metadata(content: WebsiteContent, exported_at: datetime) -> str:
    return json.dumps(
        {
            "originalUrl": content.url,
            "title": content.title,
            "exportedAt": exported_at.isoformat().replace("+00:00", "Z"),
            "metadata": content.metadata.to_dict(),
        },
        indent=2,
        ensure_ascii=False,
    )


def build_asset_manifest(content: WebsiteContent) -> str:
    manifest = [
        {
            "name": asset.name,
            "type": asset.type,
            "originalUrl": asset.original_url,
            "mimeType": asset.mime_type,
        }
        for asset in content.assets
    ]
    return json.dumps(manifest, indent=2, ensure_ascii=False)


def export_filename(content: WebsiteContent, exported_at: datetime) -> str:
    """``website-<host>-<YYYY-MM-DD>.zip``, one dash per non-alphanumeric host character."""
    host = HOST_UNSAFE_PATTERN.sub("-", urlparse(content.url).hostname or "site")
    return f"website-{host}-{exported_at.strftime('%Y-%m-%d')}.zip"


def build_export_archive(
    content: WebsiteContent,
    include_assets: bool,
    exported_at: Optional[datetime] = None,
) -> bytes:
    """Zip the content. Identical input and ``exported_at`` give identical bytes."""
    exported_at = exported_at or datetime.now(timezone.utc)
    if exported_at.tzinfo is None:
        exported_at = exported_at.replace(tzinfo=timezone.utc)
    # Zip timestamps cannot predate 1980.
    stamp = max(exported_at.timetuple()[:6], (1980, 1, 1, 0, 0, 0))

    entries: List[tuple] = [("index.html", build_main_html(content))]
    for css, name in zip(content.css, _assign_names(content.css, "style", ".css")):
        entries.append((f"css/{name}", css.content))
    for js, name in zip(content.js, _assign_names(content.js, "script", ".js")):
        entries.append((f"js/{name}", js.content))
    if include_assets and content.assets:
        entries.append(("assets/assets-manifest.json", build_asset_manifest(content)))
        entries.append(("assets/README.md", build_assets_readme(content)))
    entries.append(("metadata.json", build_metadata(content, exported_at)))
    entries.append(("README.md", build_readme(content, exported_at)))

    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w") as archive:
        for path, text in entries:
            info = zipfile.ZipInfo(path, date_time=stamp)
            info.compress_type = zipfile.ZIP_DEFLATED
            info.external_attr = 0o644 << 16
            archive.writestr(info, text.encode("utf-8"), compresslevel=9)
    data = buffer.getvalue()
    logger.info("Exported %s as %d files (%d bytes)", content.url, len(entries), len(data))
    return data
