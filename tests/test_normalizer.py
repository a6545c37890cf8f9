"""Tests for markup cleanup and sanitizing."""

import lxml.html
import pytest
from bs4 import BeautifulSoup
from lxml.etree import ParserError

from webclone.errors import MarkupError
from webclone.models import ParseOptions
from webclone.normalizer import process_html, sanitize_fragment, sanitize_html

PAGE = """<html><head>
<title>Shop</title>
<link rel="stylesheet" href="/main.css">
<link rel="icon" href="/favicon.ico">
<style>body { color: red }</style>
<script src="/app.js"></script>
</head>
<body>
<!-- navigation -->
<nav><a href="/home" onclick="track()">Home</a></nav>
<a href="javascript:alert(1)">bad</a>
<script>console.log("inline")</script>
<iframe src="https://ads.example.net/"></iframe>
<form action="/search"><input name="q"></form>
</body></html>
"""


def _process(options):
    return process_html(BeautifulSoup(PAGE, "html.parser"), options)


def test_resource_tags_leave_the_markup():
    html = _process(ParseOptions())
    assert "<style" not in html
    assert "<script" not in html
    assert 'rel="stylesheet"' not in html
    assert 'href="/favicon.ico"' in html
    assert "<title>Shop</title>" in html


def test_comments_removed_unless_preserved():
    assert "navigation" not in _process(ParseOptions())
    assert "<!-- navigation -->" in _process(ParseOptions(preserve_comments=True))


def test_sanitizing_strips_handlers_and_javascript_urls():
    html = _process(ParseOptions())
    assert html.startswith("<!DOCTYPE html>")
    assert "onclick" not in html
    assert "javascript:" not in html
    assert "<iframe" not in html
    assert '<a href="/home">Home</a>' in html
    assert "<form" in html


def test_unsanitized_output_keeps_handlers():
    html = _process(ParseOptions(sanitize_content=False))
    assert "onclick" in html
    assert not html.startswith("<!DOCTYPE html>")
    assert "<script" not in html


def test_sanitize_html_empty_input():
    assert sanitize_html("") == ""
    assert sanitize_html("   \n") == ""


def test_sanitize_fragment_keeps_scripts_and_styles():
    fragment = (
        'Hello <b onmouseover="x()">world</b>'
        "<style>p { margin: 0 }</style>"
        "<script>var ready = true;</script>"
        '<object data="movie.swf"></object>'
    )
    cleaned = sanitize_fragment(fragment)
    assert cleaned.startswith("Hello <b>world</b>")
    assert "<style>p { margin: 0 }</style>" in cleaned
    assert "<script>var ready = true;</script>" in cleaned
    assert "onmouseover" not in cleaned
    assert "<object" not in cleaned


def test_sanitize_fragment_reduces_document_to_body():
    cleaned = sanitize_fragment("<html><head><title>t</title></head><body><p>hi</p></body></html>")
    assert cleaned == "<p>hi</p>"


XHTML_PAGE = """<?xml version="1.0" encoding="UTF-8"?>
<!DOCTYPE html PUBLIC "-//W3C//DTD XHTML 1.0 Strict//EN" "http://www.w3.org/TR/xhtml1/DTD/xhtml1-strict.dtd">
<html xmlns="http://www.w3.org/1999/xhtml" lang="en">
<head><title>X</title></head>
<body><p>Hello XHTML</p></body>
</html>
"""


def test_sanitize_html_accepts_xml_declaration():
    cleaned = sanitize_html(XHTML_PAGE)
    assert "<p>Hello XHTML</p>" in cleaned
    assert "<?xml" not in cleaned


def test_process_html_keeps_xhtml_body():
    html = process_html(BeautifulSoup(XHTML_PAGE, "html.parser"), ParseOptions())
    assert "Hello XHTML" in html


def test_sanitize_html_keeps_non_ascii_text():
    assert "café – naïve" in sanitize_html("<p>café – naïve</p>")


def test_unparseable_markup_raises(monkeypatch):
    def refuse(*args, **kwargs):
        raise ParserError("Document is empty")

    monkeypatch.setattr(lxml.html, "document_fromstring", refuse)
    with pytest.raises(MarkupError):
        sanitize_html("<p>anything</p>")
