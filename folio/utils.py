"""Utility functions for Folio.

String processing, path handling and date handling shared across the
Folio code base.

Key functions:
    slugify: Convert names to URL slugs.
    titleize: Convert filenames to human-readable titles.
    extract_date_from_name: Extract a date from a filename prefix.
    parse_date: Turn a front matter value into an aware datetime.
    expand_tokens: Fill ``:year``-style placeholders in a pattern.
    first_paragraph: Plain-text summary of a Markdown body.
    ensure_clean_dir: Ensure a directory exists and is empty.
"""

from __future__ import annotations

import re
import shutil
from datetime import date, datetime, tzinfo
from pathlib import Path

_DATE_PREFIX_RE = re.compile(r"^(\d{4})-(\d{1,2})-(\d{1,2})(?:-|$)")
_TOKEN_RE = re.compile(r":([a-z_]+)")
_MD_LINK_RE = re.compile(r"!?\[([^\]]*)\]\([^)]*\)")
_MD_EMPHASIS_RE = re.compile(r"(\*\*|__|\*|_|~~|`)")
_HTML_TAG_RE = re.compile(r"<[^>]+>")
_FENCE_RE = re.compile(r"^(```|~~~).*?^\1[ \t]*$", re.MULTILINE | re.DOTALL)

DATE_FORMATS = (
    "%Y-%m-%d %H:%M:%S %z",
    "%Y-%m-%d %H:%M %z",
    "%Y-%m-%d %H:%M:%S",
    "%Y-%m-%d %H:%M",
    "%Y/%m/%d %H:%M:%S",
    "%Y/%m/%d %H:%M",
    "%Y/%m/%d",
)

DOCUMENT_SUFFIXES = {".md", ".markdown", ".html"}


def strip_date_prefix(name: str) -> str:
    """Remove a ``YYYY-MM-DD-`` prefix from a filename stem."""
    parts = name.split("-")
    if len(parts) >= 4 and all(p.isdigit() for p in parts[:3]):
        return "-".join(parts[3:])
    return name


def slugify(name: str) -> str:
    """Convert a name to a slug, dropping any date prefix.

    Non-ASCII letters are kept so titles in any script produce readable URLs.

    Args:
        name: Filename stem, title or taxonomy name.

    Returns:
        URL-friendly slug.

    Examples:
        >>> slugify("2024-01-15-Hello World")
        'hello-world'
    """
    cleaned = strip_date_prefix(name.strip())
    cleaned = re.sub(r"[^\w]+", "-", cleaned.lower())
    cleaned = cleaned.replace("_", "-")
    cleaned = re.sub(r"-{2,}", "-", cleaned).strip("-")
    return cleaned or "index"


def titleize(filename: str) -> str:
    """Convert a filename to a human-readable title.

    Removes date prefixes (YYYY-MM-DD), replaces hyphens and underscores
    with spaces, and capitalizes each word.

    Examples:
        >>> titleize("2024-01-15-hello-world.md")
        'Hello World'
    """
    base = strip_date_prefix(Path(filename).stem)
    words = re.split(r"[\s\-_]+", base)
    return " ".join(word.capitalize() for word in words if word) or "Untitled"


def extract_date_from_name(name: str) -> datetime | None:
    """Extract a date from a filename with YYYY-MM-DD prefix.

    Args:
        name: Filename stem (without extension).

    Returns:
        Naive datetime at midnight if a valid date prefix is found, None otherwise.
    """
    match = _DATE_PREFIX_RE.match(name)
    if not match:
        return None
    try:
        return datetime(int(match.group(1)), int(match.group(2)), int(match.group(3)))
    except ValueError:
        return None


def localize(value: datetime, tz: tzinfo) -> datetime:
    """Attach ``tz`` to a naive datetime, or convert an aware one into ``tz``."""
    if value.tzinfo is None:
        return value.replace(tzinfo=tz)
    return value.astimezone(tz)


def parse_date(value: object, tz: tzinfo) -> datetime:
    """Turn a front matter date into an aware datetime in ``tz``.

    Accepts YAML timestamps (``datetime``), plain dates, ISO 8601 strings and
    the ``YYYY-MM-DD HH:MM[:SS] [+ZZZZ]`` form common in blog front matter.

    Raises:
        ValueError: If the value cannot be read as a date.
    """
    if isinstance(value, datetime):
        return localize(value, tz)
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day, tzinfo=tz)
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"Unrecognised date: {value!r}")
    text = value.strip()
    try:
        return localize(datetime.fromisoformat(text), tz)
    except ValueError:
        pass
    for fmt in DATE_FORMATS:
        try:
            return localize(datetime.strptime(text, fmt), tz)
        except ValueError:
            continue
    raise ValueError(f"Unrecognised date: {value!r}")


def expand_tokens(pattern: str, when: datetime, values: dict[str, str]) -> str:
    """Fill ``:token`` placeholders in a permalink or filename pattern.

    Date tokens (year, month, day, i_month, i_day, hour, minute, second) come
    from ``when``; any other token is looked up in ``values``. Unknown tokens
    are left untouched.
    """
    tokens = {
        "year": f"{when.year:04d}",
        "month": f"{when.month:02d}",
        "day": f"{when.day:02d}",
        "i_month": str(when.month),
        "i_day": str(when.day),
        "hour": f"{when.hour:02d}",
        "minute": f"{when.minute:02d}",
        "second": f"{when.second:02d}",
    }
    tokens.update(values)

    def repl(match: re.Match) -> str:
        return tokens.get(match.group(1), match.group(0))

    return _TOKEN_RE.sub(repl, pattern)


def markdown_to_text(text: str) -> str:
    """Reduce a Markdown fragment to plain text."""
    text = _MD_LINK_RE.sub(lambda m: m.group(1), text)
    text = _HTML_TAG_RE.sub("", text)
    text = _MD_EMPHASIS_RE.sub("", text)
    return " ".join(text.split())


def first_paragraph(text: str, limit: int = 160) -> str:
    """Extract the first prose paragraph of a Markdown body as plain text.

    Headings, images, fenced code, horizontal rules and comments are
    skipped. The result is truncated to ``limit`` characters.
    """
    text = _FENCE_RE.sub("", text)
    paragraphs = [p.strip() for p in text.split("\n\n") if p.strip()]
    for para in paragraphs:
        if para.startswith(("#", "![", "---", "{:", "<!--")):
            continue
        cleaned = markdown_to_text(para.lstrip("> "))
        if cleaned:
            return cleaned[:limit].rstrip()
    return ""


def ensure_clean_dir(path: Path) -> None:
    """Ensure a directory exists and is empty.

    If the directory exists, removes all contents. Creates the
    directory if it doesn't exist.
    """
    if path.exists():
        shutil.rmtree(str(path), ignore_errors=True)
        if path.exists():
            # Fallback for stubborn directories
            for item in path.rglob("*"):
                if item.is_file():
                    item.unlink()
            for item in sorted(
                [p for p in path.rglob("*") if p.is_dir()], reverse=True
            ):
                item.rmdir()
            path.rmdir()
    path.mkdir(parents=True, exist_ok=True)


def is_hidden_path(path: Path) -> bool:
    """Check if any component of a relative path starts with ``_`` or ``.``."""
    return any(part.startswith(("_", ".")) for part in path.parts)


def is_markdown(path: Path) -> bool:
    """Check if a path is a Markdown file (.md or .markdown)."""
    return path.suffix.lower() in (".md", ".markdown")


def is_html(path: Path) -> bool:
    """Check if a path is a plain HTML file."""
    return path.suffix.lower() == ".html"


def is_document(path: Path) -> bool:
    """Check if a path is a content document Folio renders into a page."""
    return path.suffix.lower() in DOCUMENT_SUFFIXES and not path.name.startswith(".")
