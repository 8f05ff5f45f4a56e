"""Front matter and metadata extraction for Folio.

Each content document starts with a YAML block between ``---`` lines. This
module splits that block from the body and derives the document metadata
from it. Each extractor handles a single kind of metadata, and
CompositeMetadataExtractor runs them all and merges the results.

Key classes:
- FrontmatterExtractor: Splits YAML front matter from the body.
- TitleExtractor: Title from front matter, first heading or filename.
- DateExtractor: Publication and update dates.
- TaxonomyExtractor: Categories and tags.
- MediaPathExtractor: Media-asset path prefix.
- ExcerptExtractor: Excerpt source and plain-text description.
"""

from __future__ import annotations

import re
from datetime import datetime, tzinfo
from pathlib import Path
from typing import Any
from zoneinfo import ZoneInfo

import yaml

from .errors import FrontMatterError
from .utils import extract_date_from_name, first_paragraph, localize, parse_date, titleize

FRONTMATTER_RE = re.compile(
    r"\A---[ \t]*\r?\n(.*?)^---[ \t]*(?:\r?\n|\Z)", re.DOTALL | re.MULTILINE
)
MORE_RE = re.compile(r"<!--\s*more\s*-->", re.IGNORECASE)


def extract_frontmatter(text: str, path: Path | None = None) -> tuple[dict[str, Any], str]:
    """Extract YAML front matter from content.

    Args:
        text: Raw file content.
        path: Source file, used in error messages.

    Returns:
        Tuple of (front matter dict, remaining content).

    Raises:
        FrontMatterError: If the block is not valid YAML or not a mapping.
    """
    text = text.lstrip("\ufeff")
    match = FRONTMATTER_RE.match(text)
    if not match:
        return {}, text
    try:
        data = yaml.safe_load(match.group(1))
    except yaml.YAMLError as exc:
        mark = getattr(exc, "problem_mark", None)
        # +2: one for 1-based lines, one for the opening delimiter
        line = mark.line + 2 if mark is not None else None
        problem = getattr(exc, "problem", None) or str(exc)
        raise FrontMatterError(f"invalid YAML front matter: {problem}", path, line) from exc
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise FrontMatterError("front matter must be a mapping of keys to values", path, 1)
    return data, text[match.end() :]


def _as_list(value: Any) -> list:
    if value is None or value == "":
        return []
    if isinstance(value, (list, tuple)):
        return list(value)
    return [value]


class FrontmatterExtractor:
    """Splits YAML front matter from the document body."""

    def extract(self, content: str, path: Path) -> dict[str, Any]:
        frontmatter, body = extract_frontmatter(content, path)
        return {"frontmatter": frontmatter, "body": body}


class TitleExtractor:
    """Extracts the document title.

    Uses the ``title`` key, then the first level-1 heading of the body, then
    the titleized filename. Either fallback records a warning.
    """

    def extract(self, frontmatter: dict[str, Any], body: str, path: Path) -> dict[str, Any]:
        title = frontmatter.get("title")
        if title is not None and str(title).strip():
            return {"title": str(title).strip()}
        warnings = ["missing title in front matter"]
        for line in body.splitlines():
            stripped = line.strip()
            if stripped.startswith("# "):
                return {"title": stripped[2:].strip(), "warnings": warnings}
        return {"title": titleize(path.name), "warnings": warnings}


class DateExtractor:
    """Extracts publication and update dates.

    The ``date`` key wins, then a ``YYYY-MM-DD-`` filename prefix, then the
    file modification time. Every date is converted to the site timezone so
    any two documents can be ordered.

    Attributes:
        tz: Site timezone.
    """

    def __init__(self, tz: tzinfo | None = None):
        self.tz = tz or ZoneInfo("UTC")

    def extract(self, frontmatter: dict[str, Any], body: str, path: Path) -> dict[str, Any]:
        result: dict[str, Any] = {}
        raw = frontmatter.get("date")
        if raw not in (None, ""):
            result["date"] = self._parse(raw, path, "date")
        else:
            named = extract_date_from_name(path.stem)
            if named is not None:
                result["date"] = localize(named, self.tz)
            else:
                result["date"] = datetime.fromtimestamp(path.stat().st_mtime, self.tz)
            result["warnings"] = ["missing date in front matter"]

        raw_updated = frontmatter.get("updated", frontmatter.get("last_modified_at"))
        if raw_updated not in (None, ""):
            result["updated"] = self._parse(raw_updated, path, "updated")
        else:
            result["updated"] = None
        return result

    def _parse(self, value: Any, path: Path, key: str) -> datetime:
        try:
            return parse_date(value, self.tz)
        except ValueError as exc:
            raise FrontMatterError(f"'{key}' is not a valid date: {value!r}", path) from exc


class TaxonomyExtractor:
    """Extracts categories and tags.

    ``categories`` (or ``category``) is either a flat list, read as one
    hierarchy (``[Programming, Python]`` means Programming / Python), or a
    list of lists, read as several hierarchies. ``tags`` (or ``tag``) is a
    string or a list.
    """

    def extract(self, frontmatter: dict[str, Any], body: str, path: Path) -> dict[str, Any]:
        raw_categories = _as_list(frontmatter.get("categories", frontmatter.get("category")))
        if any(isinstance(item, (list, tuple)) for item in raw_categories):
            candidates = [_as_list(item) for item in raw_categories]
        else:
            candidates = [raw_categories] if raw_categories else []

        categories: list[tuple[str, ...]] = []
        for candidate in candidates:
            names = tuple(str(name).strip() for name in candidate if str(name).strip())
            if names and names not in categories:
                categories.append(names)

        tags: list[str] = []
        for tag in _as_list(frontmatter.get("tags", frontmatter.get("tag"))):
            name = str(tag).strip()
            if name and name not in tags:
                tags.append(name)
        return {"categories": categories, "tags": tags}


class MediaPathExtractor:
    """Extracts the media-asset path prefix (``media_subpath`` or ``img_path``)."""

    def extract(self, frontmatter: dict[str, Any], body: str, path: Path) -> dict[str, Any]:
        value = frontmatter.get("media_subpath", frontmatter.get("img_path"))
        media_path = str(value).strip() if value else ""
        return {"media_path": media_path or None}


class ExcerptExtractor:
    """Extracts the excerpt source and a plain-text description.

    Text above a ``<!-- more -->`` marker is the excerpt. The description is
    the ``description`` key, or the first prose paragraph, truncated to
    ``limit`` characters.
    """

    def __init__(self, limit: int = 160):
        self.limit = limit

    def extract(self, frontmatter: dict[str, Any], body: str, path: Path) -> dict[str, Any]:
        parts = MORE_RE.split(body, maxsplit=1)
        excerpt_source = parts[0].strip() if len(parts) == 2 else ""
        description = frontmatter.get("description")
        if description is not None and str(description).strip():
            description = " ".join(str(description).split())[: self.limit].rstrip()
        else:
            description = first_paragraph(excerpt_source or body, self.limit)
        return {"excerpt_source": excerpt_source, "description": description}


class CompositeMetadataExtractor:
    """Combines the front matter split with the metadata extractors.

    The front matter is split off first; every extractor then sees the parsed
    front matter and the remaining body. Results are merged in order, except
    ``warnings`` which accumulate.
    """

    def __init__(
        self,
        extractors: list | None = None,
        frontmatter_extractor: FrontmatterExtractor | None = None,
        tz: tzinfo | None = None,
    ):
        """Initialize with a list of extractors.

        Args:
            extractors: Extractor instances. If None, uses the defaults.
            frontmatter_extractor: Optional custom front matter splitter.
            tz: Site timezone handed to the default DateExtractor.
        """
        self._frontmatter = frontmatter_extractor or FrontmatterExtractor()
        if extractors is None:
            self._extractors = [
                TitleExtractor(),
                DateExtractor(tz),
                TaxonomyExtractor(),
                MediaPathExtractor(),
                ExcerptExtractor(),
            ]
        else:
            self._extractors = list(extractors)

    def add_extractor(self, extractor) -> None:
        self._extractors.append(extractor)

    def extract(self, content: str, path: Path) -> dict[str, Any]:
        """Extract all metadata from a raw document.

        Raises:
            FrontMatterError: If the front matter or one of its values is malformed.
        """
        result: dict[str, Any] = self._frontmatter.extract(content, path)
        result["warnings"] = []
        for extractor in self._extractors:
            extracted = dict(extractor.extract(result["frontmatter"], result["body"], path))
            result["warnings"].extend(extracted.pop("warnings", []))
            result.update(extracted)
        return result
