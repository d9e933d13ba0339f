"""Helpers for safe debug logging.

The bridge username is the only credential the Hue API has, and it is part
of every request path, so it must be scrubbed from anything logged.
"""

from __future__ import annotations

from typing import Any


def redact_url(url: str, secret: str) -> str:
    """Replace every occurrence of *secret* in *url*."""
    if not secret:
        return url
    return url.replace(secret, "<redacted>")


def truncate_for_log(value: Any, *, max_string: int = 256) -> str:
    """Short ``repr`` of a response body for log lines."""
    text = value if isinstance(value, str) else repr(value)
    if len(text) > max_string:
        return f"{text[:max_string]}…<truncated>"
    return text
