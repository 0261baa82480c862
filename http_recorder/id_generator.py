"""Transaction identifier generation.

Identifiers look like ``<epoch-millis>__<METHOD>_<slugified-path>`` so that
recording files sort by capture time. No collision detection is done: two
captures of the same method and path within the same millisecond get the
same identifier.
"""

import re
import time
from typing import Optional
from urllib.parse import urlsplit

_NON_WORD_RE = re.compile(r"[^\w\s-]", re.ASCII)
_SEPARATORS_RE = re.compile(r"[\s_-]+", re.ASCII)
_EDGE_HYPHENS_RE = re.compile(r"^-+|-+$")


def slugify(text: str) -> str:
    """Convert a URL path into a filesystem and id safe slug.

    Args:
        text: Text to convert, usually a URL path

    Returns:
        Lowercase slug made of [a-z0-9-] only

    Examples:
        >>> slugify("/repos/octo_cat/Hello-World/issues")
        'repos-octo-cat-hello-world-issues'
        >>> slugify("/")
        ''
    """
    slug = text.lower().strip()
    slug = slug.replace("/", "-")
    slug = _NON_WORD_RE.sub("", slug)
    slug = _SEPARATORS_RE.sub("-", slug)
    return _EDGE_HYPHENS_RE.sub("", slug)


def generateTransactionId(method: str, url: str, timestampMs: int) -> str:
    """Build a transaction id from a request and its capture time.

    Args:
        method: HTTP method, upper-cased in the result
        url: Full request URL, only its path takes part in the id
        timestampMs: Capture time as epoch milliseconds

    Returns:
        Transaction id string
    """
    path = urlsplit(url).path
    return f"{timestampMs}__{method.upper()}_{slugify(path)}"


def generateTransactionIdNow(method: str, url: str, nowMs: Optional[int] = None) -> str:
    """Build a transaction id for the current moment."""
    if nowMs is None:
        nowMs = time.time_ns() // 1_000_000
    return generateTransactionId(method, url, nowMs)
