"""Standalone preview documents delivered as base64 data URLs."""

from __future__ import annotations

import base64
import json
import logging
import re
from typing import Iterable, List

from .models import CSSFile, JSFile
from .normalizer import sanitize_fragment

logger = logging.getLogger("webclone")

FILE_SEPARATOR = "\n\n/* Next File */\n\n"
MAX_INTERVALS = 100
MAX_TIMEOUTS = 1000
MIN_INTERVAL_MS = 16

SCRIPT_CLOSE_PATTERN = re.compile(r"</(script)", re.IGNORECASE)
STYLE_CLOSE_PATTERN = re.compile(r"</(style)", re.IGNORECASE)

CONTENT_SECURITY_POLICY = " ".join(
    [
        "default-src 'self' data: https:;",
        "script-src 'self' 'unsafe-inline' 'unsafe-eval' https:;",
        "style-src 'self' 'unsafe-inline' https:;",
        "img-src 'self' data: https: http:;",
        "font-src 'self' data: https:;",
        "connect-src 'self' https:;",
        "frame-src 'none';",
        "object-src 'none';",
        "base-uri 'self';",
    ]
)

RUNTIME_GUARD = f"""
    const originalError = console.error;
    console.error = function(...args) {{
      originalError.apply(console, args);
      const errorDiv = document.createElement('div');
      errorDiv.style.cssText = 'position:fixed;bottom:10px;left:10px;background:#ef4444;'
        + 'color:white;padding:8px 12px;border-radius:4px;font-family:monospace;'
        + 'font-size:12px;z-index:999998;max-width:300px;word-wrap:break-word;';
      errorDiv.textContent = 'JS Error: ' + args.join(' ');
      document.body.appendChild(errorDiv);
      setTimeout(() => {{
        if (errorDiv.parentNode) {{
          errorDiv.parentNode.removeChild(errorDiv);
        }}
      }}, 5000);
    }};

    let intervalCount = 0;
    let timeoutCount = 0;
    const originalSetInterval = window.setInterval;
    const originalSetTimeout = window.setTimeout;

    window.setInterval = function(fn, delay, ...rest) {{
      if (++intervalCount > {MAX_INTERVALS}) {{
        console.error('Too many intervals created, blocking to prevent infinite loops');
        return -1;
      }}
      return originalSetInterval(fn, Math.max(delay || 0, {MIN_INTERVAL_MS}), ...rest);
    }};

    window.setTimeout = function(fn, delay, ...rest) {{
      if (++timeoutCount > {MAX_TIMEOUTS}) {{
        console.error('Too many timeouts created, blocking to prevent infinite loops');
        return -1;
      }}
      return originalSetTimeout(fn, Math.max(delay || 0, 0), ...rest);
    }};

    window.eval = function() {{
      console.error('eval() is blocked in preview mode');
      return undefined;
    }};
"""

PREVIEW_STYLES = """
    * {
      box-sizing: border-box;
    }

    html, body {
      margin: 0;
      padding: 0;
      min-height: 100vh;
    }
"""

PREVIEW_BADGE_STYLES = """
    body::before {
      content: 'PREVIEW MODE';
      position: fixed;
      top: 0;
      right: 0;
      background: rgba(59, 130, 246, 0.9);
      color: white;
      padding: 4px 8px;
      font-size: 10px;
      font-family: monospace;
      z-index: 999999;
      pointer-events: none;
      border-bottom-left-radius: 4px;
    }
"""


def _escape_inline(text: str, pattern: re.Pattern) -> str:
    return pattern.sub(r"<\\/\1", text)


def combine_css(css_files: Iterable[CSSFile]) -> str:
    return FILE_SEPARATOR.join(
        _escape_inline(css.content, STYLE_CLOSE_PATTERN) for css in css_files
    )


def wrap_script(js: JSFile) -> str:
    """Guard one script so its errors do not stop the ones after it."""
    label = json.dumps(f"Error in {js.name}:")
    body = _escape_inline(js.content, SCRIPT_CLOSE_PATTERN)
    return f"""
      try {{
        {body}
      }} catch (error) {{
        console.warn({label}, error);
      }}
    """


def combine_js(js_files: Iterable[JSFile]) -> str:
    # ES modules cannot run inside a try block; they are left out.
    scripts: List[str] = [wrap_script(js) for js in js_files if js.type != "module"]
    return FILE_SEPARATOR.join(scripts)


def build_preview_document(html: str, css_files: List[CSSFile], js_files: List[JSFile]) -> str:
    """Wrap sanitized markup, styles and guarded scripts in one document."""
    body = sanitize_fragment(html)
    return f"""<!DOCTYPE html>
<html lang="en">
<head>
  <meta charset="UTF-8">
  <meta name="viewport" content="width=device-width, initial-scale=1.0">
  <title>Preview</title>
  <meta http-equiv="Content-Security-Policy" content="{CONTENT_SECURITY_POLICY}">
  <style>
{PREVIEW_STYLES}
    {combine_css(css_files)}
{PREVIEW_BADGE_STYLES}
  </style>
</head>
<body>
  {body}

  <script>
{RUNTIME_GUARD}
    {combine_js(js_files)}
  </script>
</body>
</html>"""


def build_preview_url(html: str, css_files: List[CSSFile], js_files: List[JSFile]) -> str:
    """Return the preview document as a ``data:text/html;base64,...`` URL."""
    document = build_preview_document(html, css_files, js_files)
    encoded = base64.b64encode(document.encode("utf-8")).decode("ascii")
    logger.debug("Built preview document of %d chars", len(document))
    return f"data:text/html;base64,{encoded}"
