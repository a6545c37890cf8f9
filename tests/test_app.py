"""HTTP API tests with the network replaced by a fake site."""

import base64
import io
import zipfile

import httpx
import pytest
from fastapi.testclient import TestClient

from webclone.app import create_app
from webclone.config import CrawlConfig


@pytest.fixture
def client(site):
    return TestClient(create_app(CrawlConfig(), transport=site.transport))


class TestFetchWebsite:
    def test_missing_url(self, client):
        response = client.post("/fetch-website", json={})
        assert response.status_code == 400
        assert response.json() == {"success": False, "error": "URL is required"}

    def test_malformed_body(self, client):
        response = client.post("/fetch-website", json={"url": ["not", "a", "string"]})
        assert response.status_code == 400
        assert response.json()["success"] is False

    def test_internal_host_forbidden_without_request(self, client, site):
        response = client.post("/fetch-website", json={"url": "http://127.0.0.1:8080"})
        assert response.status_code == 403
        assert response.json() == {
            "success": False,
            "error": "Access to internal networks is not allowed",
        }
        assert site.requests == []

    def test_invalid_url(self, client):
        response = client.post("/fetch-website", json={"url": "http://exa mple.com"})
        assert response.status_code == 400
        assert response.json()["error"] == "Invalid URL format"

    def test_success(self, client, site, example_html):
        site.add("example.com/", example_html)
        response = client.post("/fetch-website", json={"url": "example.com"})
        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        data = body["data"]
        assert data["url"] == "https://example.com"
        assert data["title"] == "Example Domain"
        assert [css["source"] for css in data["css"]] == ["inline"]
        assert data["js"] == []
        assert data["parsedAt"].endswith("Z")

    def test_upstream_404_is_mapped(self, client):
        response = client.post("/fetch-website", json={"url": "https://example.com/missing"})
        assert response.status_code == 500
        assert response.json() == {"success": False, "error": "Website not found (404)"}

    def test_unreachable_host_is_mapped(self, client, site):
        site.add("down.example.org/", httpx.ConnectError("getaddrinfo ENOTFOUND down.example.org"))
        response = client.post("/fetch-website", json={"url": "down.example.org"})
        assert response.status_code == 500
        assert response.json()["error"] == "Website not found or unreachable"

    def test_include_assets_false_skips_sub_resources(self, client, site):
        site.add("example.com/", '<link rel="stylesheet" href="/a.css"><img src="/b.png">')
        response = client.post("/fetch-website", json={"url": "example.com", "includeAssets": False})
        data = response.json()["data"]
        assert data["css"] == []
        assert data["assets"] == []
        assert len(site.requests) == 1


class TestPreview:
    def test_requires_html(self, client):
        response = client.post("/preview", json={"css": [], "js": []})
        assert response.status_code == 400
        assert response.json()["error"] == "HTML content is required"

    def test_returns_data_url(self, client):
        response = client.post(
            "/preview",
            json={
                "html": "<p>Hello</p>",
                "css": [{"id": "a", "name": "a.css", "content": "p{}", "source": "inline"}],
                "js": [{"id": "b", "name": "b.js", "content": "go();", "source": "external"}],
            },
        )
        assert response.status_code == 200
        url = response.json()["previewUrl"]
        document = base64.b64decode(url.split(",", 1)[1]).decode("utf-8")
        assert "<p>Hello</p>" in document
        assert "go();" in document


class TestExport:
    def test_requires_content(self, client):
        response = client.post("/export", json={})
        assert response.status_code == 400
        assert response.json()["error"] == "Website content is required"

    def test_returns_zip(self, client):
        content = {
            "url": "https://example.com",
            "title": "Example Domain",
            "html": "<body><h1>Example Domain</h1></body>",
            "css": [{"id": "c", "name": "site.css", "content": "h1{}", "source": "inline"}],
            "js": [],
            "assets": [],
            "metadata": {"title": "Example Domain", "charset": "UTF-8"},
            "parsedAt": "2024-01-01T00:00:00Z",
        }
        response = client.post("/export", json={"content": content})
        assert response.status_code == 200
        assert response.headers["content-type"] == "application/zip"
        disposition = response.headers["content-disposition"]
        assert disposition.startswith('attachment; filename="website-example-com-')
        names = zipfile.ZipFile(io.BytesIO(response.content)).namelist()
        assert "index.html" in names
        assert "css/site.css" in names


@pytest.mark.parametrize("path", ["/fetch-website", "/preview", "/export"])
def test_cors_preflight(client, path):
    response = client.options(path)
    assert response.status_code == 200
    assert response.headers["access-control-allow-origin"] == "*"
    assert "POST" in response.headers["access-control-allow-methods"]
    assert response.headers["access-control-allow-headers"] == "Content-Type"


def test_health_endpoints(client):
    get = client.get("/test")
    assert get.status_code == 200
    assert get.json()["message"] == "API is working correctly"
    post = client.post("/test")
    assert post.json()["message"] == "POST endpoint is working correctly"
    assert post.json()["success"] is True
