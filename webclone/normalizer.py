"""HTML cleanup: detach hoisted resources, strip comments, sanitize."""

from __future__ import annotations

import html as html_lib
import logging

import lxml.html
from bs4 import BeautifulSoup, Comment
from lxml.etree import ParserError
from lxml_html_clean import Cleaner

from .errors import MarkupError
from .extractor import is_external_script, is_stylesheet_link
from .models import ParseOptions

logger = logging.getLogger("webclone")


def _document_cleaner(preserve_comments: bool) -> Cleaner:
    return Cleaner(
        scripts=True,
        javascript=True,
        comments=not preserve_comments,
        style=False,
        inline_style=False,
        links=False,
        meta=False,
        page_structure=False,
        processing_instructions=True,
        embedded=True,
        frames=True,
        forms=False,
        annoying_tags=False,
        remove_unknown_tags=False,
        safe_attrs_only=False,
    )


def _fragment_cleaner() -> Cleaner:
    # Preview markup keeps its <script> and <style> elements.
    return Cleaner(
        scripts=False,
        javascript=True,
        comments=False,
        style=False,
        inline_style=False,
        links=False,
        meta=False,
        page_structure=False,
        processing_instructions=True,
        embedded=True,
        frames=True,
        forms=False,
        annoying_tags=False,
        remove_unknown_tags=False,
        safe_attrs_only=False,
    )


def _utf8_parser() -> lxml.html.HTMLParser:
    # lxml refuses str input that carries an XML encoding declaration, so
    # markup is handed over as UTF-8 bytes.
    return lxml.html.HTMLParser(encoding="utf-8")


def sanitize_html(markup: str, preserve_comments: bool = False) -> str:
    """Sanitize a whole document and return it with an HTML5 doctype.

    Raises MarkupError when lxml cannot build a document from ``markup``.
    """
    if not markup.strip():
        return ""
    try:
        document = lxml.html.document_fromstring(markup.encode("utf-8"), parser=_utf8_parser())
    except (ParserError, ValueError) as exc:
        raise MarkupError(f"Could not parse HTML for sanitizing: {exc}") from exc
    _document_cleaner(preserve_comments)(document)
    return "<!DOCTYPE html>\n" + lxml.html.tostring(document, encoding="unicode", method="html")


def sanitize_fragment(markup: str) -> str:
    """Sanitize body-level markup. Full documents are reduced to their body."""
    try:
        wrapper = lxml.html.fragment_fromstring(
            (markup or "").encode("utf-8"),
            create_parent="div",
            parser=_utf8_parser(),
        )
    except (ParserError, ValueError) as exc:
        raise MarkupError(f"Could not parse HTML fragment for sanitizing: {exc}") from exc
    _fragment_cleaner()(wrapper)
    parts = [html_lib.escape(wrapper.text or "", quote=False)]
    parts.extend(lxml.html.tostring(child, encoding="unicode", method="html") for child in wrapper)
    return "".join(parts)


def process_html(soup: BeautifulSoup, options: ParseOptions) -> str:
    """Remove tags represented elsewhere and return the editable HTML.

    Mutates ``soup``; call it after the extractors have run.
    """
    for tag in soup.find_all(is_stylesheet_link):
        tag.decompose()
    for tag in soup.find_all(is_external_script):
        tag.decompose()

    # Inline blocks are either hoisted into css/js or excluded by the
    # options; in both cases they leave the markup.
    for tag in soup.find_all(["style", "script"]):
        tag.decompose()

    if not options.preserve_comments:
        for comment in soup.find_all(string=lambda text: isinstance(text, Comment)):
            comment.extract()

    markup = soup.decode()
    if options.sanitize_content:
        sanitized = sanitize_html(markup, preserve_comments=options.preserve_comments)
        logger.debug("Sanitized markup: %d -> %d chars", len(markup), len(sanitized))
        markup = sanitized
    return markup
