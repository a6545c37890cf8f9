"""Data models used throughout the ingestion pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional

SOURCES = ("inline", "external")
ASSET_TYPES = ("image", "font", "video", "audio", "other")


def _check_source(source: str) -> None:
    if source not in SOURCES:
        raise ValueError(f"source must be 'inline' or 'external', got {source!r}")


def _drop_none(data: Dict[str, Any]) -> Dict[str, Any]:
    return {key: value for key, value in data.items() if value is not None}


@dataclass
class ParseOptions:
    """Switches controlling what the extractor keeps."""

    include_inline_styles: bool = True
    include_inline_scripts: bool = True
    include_external_assets: bool = True
    sanitize_content: bool = True
    preserve_comments: bool = False


@dataclass
class FetchResult:
    """Body and headers of a successful GET."""

    url: str
    status_code: int
    headers: Mapping[str, str]
    text: str


@dataclass
class CSSFile:
    """One stylesheet, either embedded in the page or fetched by URL."""

    id: str
    name: str
    content: str
    source: str
    url: Optional[str] = None
    media: str = "all"

    def __post_init__(self) -> None:
        _check_source(self.source)

    def to_dict(self) -> Dict[str, Any]:
        return _drop_none(
            {
                "id": self.id,
                "name": self.name,
                "content": self.content,
                "source": self.source,
                "url": self.url,
                "media": self.media,
            }
        )

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "CSSFile":
        return cls(
            id=str(data.get("id") or ""),
            name=str(data.get("name") or ""),
            content=str(data.get("content") or ""),
            source=data.get("source") or "inline",
            url=data.get("url"),
            media=data.get("media") or "all",
        )


@dataclass
class JSFile:
    """One script, either embedded in the page or fetched by URL."""

    id: str
    name: str
    content: str
    source: str
    url: Optional[str] = None
    type: str = "text/javascript"

    def __post_init__(self) -> None:
        _check_source(self.source)

    def to_dict(self) -> Dict[str, Any]:
        return _drop_none(
            {
                "id": self.id,
                "name": self.name,
                "content": self.content,
                "source": self.source,
                "url": self.url,
                "type": self.type,
            }
        )

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "JSFile":
        return cls(
            id=str(data.get("id") or ""),
            name=str(data.get("name") or ""),
            content=str(data.get("content") or ""),
            source=data.get("source") or "inline",
            url=data.get("url"),
            type=data.get("type") or "text/javascript",
        )


@dataclass
class Asset:
    """Reference to an image, font or other resource. Never downloaded."""

    id: str
    type: str
    original_url: str
    name: str
    mime_type: Optional[str] = None
    size: Optional[int] = None
    local_url: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return _drop_none(
            {
                "id": self.id,
                "type": self.type,
                "originalUrl": self.original_url,
                "localUrl": self.local_url,
                "name": self.name,
                "size": self.size,
                "mimeType": self.mime_type,
            }
        )

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Asset":
        asset_type = data.get("type") or "other"
        if asset_type not in ASSET_TYPES:
            asset_type = "other"
        return cls(
            id=str(data.get("id") or ""),
            type=asset_type,
            original_url=str(data.get("originalUrl") or ""),
            name=str(data.get("name") or ""),
            mime_type=data.get("mimeType"),
            size=data.get("size"),
            local_url=data.get("localUrl"),
        )


@dataclass
class WebsiteMetadata:
    """Page-level descriptive data pulled from <head>."""

    title: str
    description: Optional[str] = None
    viewport: Optional[str] = None
    charset: str = "UTF-8"
    language: Optional[str] = None
    author: Optional[str] = None
    canonical: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "title": self.title or "",
            "description": self.description or "",
            "viewport": self.viewport or "",
            "charset": self.charset or "UTF-8",
            "language": self.language or "",
            "author": self.author or "",
            "canonical": self.canonical or "",
        }

    @classmethod
    def from_dict(cls, data: Optional[Mapping[str, Any]]) -> "WebsiteMetadata":
        data = data or {}
        return cls(
            title=data.get("title") or "",
            description=data.get("description") or None,
            viewport=data.get("viewport") or None,
            charset=data.get("charset") or "UTF-8",
            language=data.get("language") or None,
            author=data.get("author") or None,
            canonical=data.get("canonical") or None,
        )


@dataclass
class WebsiteContent:
    """A fully ingested page: cleaned HTML plus its hoisted resources."""

    url: str
    title: str
    html: str
    metadata: WebsiteMetadata
    favicon: Optional[str] = None
    css: List[CSSFile] = field(default_factory=list)
    js: List[JSFile] = field(default_factory=list)
    assets: List[Asset] = field(default_factory=list)
    parsed_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> Dict[str, Any]:
        """Wire shape. ``parsedAt`` stays a datetime; the serializer converts it."""
        return {
            "url": self.url,
            "title": self.title or "",
            "favicon": self.favicon,
            "html": self.html or "",
            "css": [css.to_dict() for css in self.css],
            "js": [js.to_dict() for js in self.js],
            "assets": [asset.to_dict() for asset in self.assets],
            "metadata": self.metadata.to_dict(),
            "parsedAt": self.parsed_at,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "WebsiteContent":
        parsed_at = data.get("parsedAt")
        if isinstance(parsed_at, str):
            try:
                parsed_at = datetime.fromisoformat(parsed_at.replace("Z", "+00:00"))
            except ValueError:
                parsed_at = None
        if not isinstance(parsed_at, datetime):
            parsed_at = datetime.now(timezone.utc)
        metadata = WebsiteMetadata.from_dict(data.get("metadata"))
        return cls(
            url=str(data.get("url") or ""),
            title=str(data.get("title") or metadata.title or ""),
            html=str(data.get("html") or ""),
            metadata=metadata,
            favicon=data.get("favicon") or None,
            css=[CSSFile.from_dict(item) for item in data.get("css") or []],
            js=[JSFile.from_dict(item) for item in data.get("js") or []],
            assets=[Asset.from_dict(item) for item in data.get("assets") or []],
            parsed_at=parsed_at,
        )
