"""HTTP API: fetch a website, render previews and export archives."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import httpx
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, Response
from pydantic import BaseModel

from .config import CrawlConfig
from .errors import WebcloneError, describe_error, status_for
from .export import build_export_archive, export_filename
from .fetcher import Fetcher
from .guard import validate_url
from .ingest import ingest_website
from .models import CSSFile, JSFile, ParseOptions, WebsiteContent
from .preview import build_preview_url
from .serializer import safe_response, serialize_content

logger = logging.getLogger("webclone.app")

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "POST, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type",
}


class FetchWebsiteRequest(BaseModel):
    url: Optional[str] = None
    includeAssets: Optional[bool] = None


class PreviewRequest(BaseModel):
    html: Optional[str] = None
    css: List[Dict[str, Any]] = []
    js: List[Dict[str, Any]] = []


class ExportRequest(BaseModel):
    content: Optional[Dict[str, Any]] = None
    includeAssets: bool = False


def _failure(message: str, status_code: int) -> JSONResponse:
    return JSONResponse({"success": False, "error": message}, status_code=status_code)


def _timestamp() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def _cors_preflight() -> Response:
    return Response(status_code=200, headers=CORS_HEADERS)


def create_app(
    config: Optional[CrawlConfig] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> FastAPI:
    """Build the API. ``transport`` replaces the network in tests."""
    config = config or CrawlConfig.from_env()
    app = FastAPI(title="webclone")

    @app.exception_handler(RequestValidationError)
    async def invalid_body(request: Request, exc: RequestValidationError) -> JSONResponse:
        logger.warning("Rejected malformed body for %s: %s", request.url.path, exc.errors())
        return _failure("Invalid request body", 400)

    @app.post("/fetch-website")
    async def fetch_website(body: FetchWebsiteRequest) -> JSONResponse:
        if not body.url or not body.url.strip():
            return _failure("URL is required", 400)
        try:
            url = validate_url(body.url)
        except WebcloneError as exc:
            return _failure(describe_error(exc), status_for(exc))

        options = ParseOptions(include_external_assets=body.includeAssets is not False)
        try:
            async with Fetcher.from_config(config, transport=transport) as fetcher:
                content = await ingest_website(url, options, config, fetcher)
            data = serialize_content(content, config)
        except WebcloneError as exc:
            logger.error("Error fetching website %s: %s", url, exc)
            return _failure(describe_error(exc), status_for(exc))
        except Exception as exc:  # pylint: disable=broad-except
            logger.exception("Unexpected error fetching website %s", url)
            return _failure(describe_error(exc), 500)

        return JSONResponse(safe_response({"success": True, "data": data}))

    @app.options("/fetch-website")
    async def fetch_website_preflight() -> Response:
        return _cors_preflight()

    @app.post("/preview")
    async def preview(body: PreviewRequest) -> JSONResponse:
        if not body.html:
            return _failure("HTML content is required", 400)
        try:
            css_files = [CSSFile.from_dict(item) for item in body.css]
            js_files = [JSFile.from_dict(item) for item in body.js]
            preview_url = build_preview_url(body.html, css_files, js_files)
        except Exception:  # pylint: disable=broad-except
            logger.exception("Error generating preview")
            return _failure("Failed to generate preview", 500)
        return JSONResponse({"success": True, "previewUrl": preview_url})

    @app.options("/preview")
    async def preview_preflight() -> Response:
        return _cors_preflight()

    @app.post("/export")
    async def export(body: ExportRequest) -> Response:
        if not body.content:
            return _failure("Website content is required", 400)
        try:
            content = WebsiteContent.from_dict(body.content)
            exported_at = datetime.now(timezone.utc)
            archive = build_export_archive(content, body.includeAssets, exported_at)
            filename = export_filename(content, exported_at)
        except Exception:  # pylint: disable=broad-except
            logger.exception("Error exporting website")
            return _failure("Failed to export website", 500)
        return Response(
            content=archive,
            media_type="application/zip",
            headers={"Content-Disposition": f'attachment; filename="{filename}"'},
        )

    @app.options("/export")
    async def export_preflight() -> Response:
        return _cors_preflight()

    @app.get("/test")
    async def test_get() -> Dict[str, Any]:
        return {"success": True, "message": "API is working correctly", "timestamp": _timestamp()}

    @app.post("/test")
    async def test_post() -> Dict[str, Any]:
        return {
            "success": True,
            "message": "POST endpoint is working correctly",
            "timestamp": _timestamp(),
        }

    return app


app = create_app()
