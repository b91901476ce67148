"""Cookie codec - read raw cookie headers and encode/decode the session cookie.

The session cookie is stored as a percent-encoded JSON object, matching what
a browser's ``encodeURIComponent(JSON.stringify(...))`` would produce, so that
values written by this component and by client-side code stay interchangeable.
"""

from __future__ import annotations

import json
import re
from typing import Any
from urllib.parse import quote, unquote_to_bytes, urlparse

from dubtrack.exceptions import CookieDecodeError

# Characters encodeURIComponent leaves untouched beyond quote()'s defaults
_URI_COMPONENT_SAFE = "!*'()"

_BAD_PERCENT_ESCAPE = re.compile(r"%(?![0-9A-Fa-f]{2})")


def _reject_constant(name: str) -> Any:
    raise CookieDecodeError(f"Cookie is not valid JSON: bare {name} is not allowed")


def read_named_cookie(cookie_header: str | None, name: str) -> str | None:
    """Return the raw value of ``name`` from a ``Cookie`` header string.

    The name must match exactly (case-sensitive) and be at the start of the
    header or preceded by a space. The value runs up to the next ``;``.

    Args:
        cookie_header: Raw header, e.g. ``"dub_id=click123; other=value"``.
        name: Cookie name to look up.

    Returns:
        The undecoded cookie value, or None if the cookie is not present.
    """
    if not cookie_header:
        return None
    match = re.search(rf"(^| ){re.escape(name)}=([^;]+)", cookie_header)
    return match.group(2) if match else None


def encode_session_cookie(record: dict[str, Any]) -> str:
    """Serialize a session record to a cookie-safe string."""
    serialized = json.dumps(record, separators=(",", ":"), ensure_ascii=False)
    return quote(serialized, safe=_URI_COMPONENT_SAFE)


def decode_session_cookie(raw: str) -> Any:
    """Decode a session cookie value produced by encode_session_cookie().

    Args:
        raw: Percent-encoded JSON string.

    Returns:
        The parsed JSON value. Callers decide whether it is a usable record.

    Raises:
        CookieDecodeError: If the value has malformed percent escapes, is not
            valid UTF-8, or is not valid JSON (including bare NaN/Infinity).
    """
    if _BAD_PERCENT_ESCAPE.search(raw):
        raise CookieDecodeError(f"Malformed percent-encoding in cookie: {raw!r}")

    try:
        text = unquote_to_bytes(raw).decode("utf-8")
    except UnicodeDecodeError as e:
        raise CookieDecodeError("Cookie is not valid UTF-8 once decoded") from e

    try:
        return json.loads(text, parse_constant=_reject_constant)
    except json.JSONDecodeError as e:
        raise CookieDecodeError(f"Cookie is not valid JSON: {e}") from e


def is_valid_http_url(value: str) -> bool:
    """Return True if value is an absolute http:// or https:// URL."""
    try:
        parsed = urlparse(value)
    except (AttributeError, TypeError, ValueError):
        return False
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)
