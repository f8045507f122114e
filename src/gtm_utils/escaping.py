"""Context-aware escaping for values interpolated into GTM snippets."""

from __future__ import annotations

import html
import json
from typing import Any

# json.dumps already escapes U+2028/U+2029 because ensure_ascii is on by default.
_SCRIPT_UNSAFE_CHARS = "<>&'"
_SCRIPT_ESCAPES = {ord(ch): "\\u%04x" % ord(ch) for ch in _SCRIPT_UNSAFE_CHARS}


def json_for_script(value: Any) -> str:
    """Serialize `value` to JSON that is safe to embed inside a <script> element.

    Characters that could terminate the script element or open an HTML
    comment/entity are replaced with their JSON unicode escapes, so the
    output still parses to the same value with `JSON.parse` or `json.loads`.
    """
    return json.dumps(value).translate(_SCRIPT_ESCAPES)


def js_string_literal(value: str) -> str:
    """Return `value` as a quoted JavaScript string literal safe for inline scripts."""
    return json_for_script(str(value))


def esc_attr(value: Any) -> str:
    """Escape a value for use inside a double- or single-quoted HTML attribute."""
    return html.escape(str(value), quote=True)
