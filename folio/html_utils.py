"""HTML utility functions for Folio.

This module provides HTML manipulation utilities including escaping,
URL absolutization, and tag stripping.

Functions:
    escape_html: Escape special HTML/XML characters in a string.
    strip_tags: Remove markup from an HTML fragment.
    join_root_url: Join a base URL with a path.
    absolutize_html_urls: Prefix root-relative URLs in HTML.
"""

from __future__ import annotations

import re

# URL attribute regex pattern for finding href, src, action attributes
_URL_ATTR_RE = re.compile(
    r'(?P<prefix>\b(?:href|src|action)=["\'])(?P<url>[^"\']+)(?P<suffix>["\'])'
)

_TAG_RE = re.compile(r"<[^>]+>")

# URL prefixes that should not be modified
_URL_SKIP_PREFIXES = (
    "http://",
    "https://",
    "//",
    "mailto:",
    "tel:",
    "data:",
    "#",
    "javascript:",
)


def escape_html(text: str) -> str:
    """Escape special HTML characters in a string.

    Examples:
        >>> escape_html('Tom & "Jerry"')
        'Tom &amp; &quot;Jerry&quot;'
    """
    return (
        text.replace("&", "&amp;")
        .replace("<", "&lt;")
        .replace(">", "&gt;")
        .replace('"', "&quot;")
    )


def strip_tags(html: str) -> str:
    """Remove tags from an HTML fragment and collapse whitespace."""
    return " ".join(_TAG_RE.sub("", html).split())


def join_root_url(root_url: str, path: str) -> str:
    """Safely join a root URL and a path, avoiding double slashes.

    Examples:
        >>> join_root_url('https://example.com/', 'about/')
        'https://example.com/about/'
    """
    if not root_url:
        return path
    base = root_url.rstrip("/")
    suffix = path if path.startswith("/") else f"/{path}"
    return f"{base}{suffix}"


def absolutize_html_urls(html: str, root_url: str) -> str:
    """Prefix root-relative URLs in HTML with ``root_url``.

    Processes href, src, and action attributes. Absolute and
    protocol-relative URLs, anchors, mailto/tel/data links and javascript:
    URLs are left unchanged, as are document-relative URLs.

    Examples:
        >>> absolutize_html_urls('<a href="/about/">About</a>', '/blog')
        '<a href="/blog/about/">About</a>'
    """
    if not root_url:
        return html

    def repl(match: re.Match) -> str:
        url = match.group("url")
        if not url or url.startswith(_URL_SKIP_PREFIXES) or not url.startswith("/"):
            return match.group(0)
        absolute = join_root_url(root_url, url)
        return f"{match.group('prefix')}{absolute}{match.group('suffix')}"

    return _URL_ATTR_RE.sub(repl, html)
