"""Content processing for Folio.

This module discovers content documents in the source directory, extracts
their metadata, renders their bodies and creates Document objects.

Key classes:
- Document: Dataclass representing a post or page.
- FileContentLoader: Sorts source files into posts, drafts, pages and static files.
- PermalinkBuilder: Derives URLs for posts and pages.
- DefaultDocumentBuilder: Builds a Document from a source file.
- ContentProcessor: Facade loading every document of a site.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path, PurePosixPath
from typing import Any

from .config import resolve_timezone
from .errors import BuildError
from .frontmatter import CompositeMetadataExtractor
from .renderers import Heading, RendererRegistry, rewrite_media_path
from .utils import expand_tokens, is_document, is_hidden_path, slugify

POSTS_DIR = "_posts"
DRAFTS_DIR = "_drafts"


@dataclass(eq=False)
class Document:
    """A content document: a dated post or a standalone page.

    Attributes:
        title: Human-readable title.
        date: Publication date, aware and in the site timezone.
        updated: Last modification date from front matter, if any.
        categories: Category paths, e.g. ``[("Programming", "Python")]``.
        tags: Tag names in front matter order.
        body: Markup source without front matter.
        content: Rendered HTML.
        excerpt: Rendered HTML of the text above ``<!-- more -->``.
        description: Plain-text summary.
        media_path: Prefix for relative media sources.
        url: Site-relative URL path.
        slug: URL-friendly slug.
        layout: Layout template name.
        kind: ``"post"`` or ``"page"``.
        draft: Whether the document comes from ``_drafts``.
        published: ``published`` front matter flag.
        pinned: ``pin`` front matter flag.
        image: Cover image URL, if any.
        path: Source file.
        source_rel: Source file relative to the source directory.
        frontmatter: Raw front matter mapping.
        toc: Headings for the table of contents.
        warnings: Problems found while reading the front matter.
        prev: Next older post.
        next: Next newer post.
    """

    title: str
    date: datetime
    categories: list[tuple[str, ...]]
    tags: list[str]
    body: str
    content: str
    excerpt: str
    description: str
    url: str
    slug: str
    layout: str
    kind: str
    path: Path
    source_rel: str
    updated: datetime | None = None
    media_path: str | None = None
    draft: bool = False
    published: bool = True
    pinned: bool = False
    image: str | None = None
    frontmatter: dict[str, Any] = field(default_factory=dict)
    toc: list[Heading] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    prev: Document | None = field(default=None, repr=False)
    next: Document | None = field(default=None, repr=False)

    @property
    def is_post(self) -> bool:
        return self.kind == "post"

    @property
    def summary(self) -> str:
        """HTML shown in listings: the excerpt, else the full content."""
        return self.excerpt or self.content

    @property
    def lastmod(self) -> datetime:
        return self.updated or self.date

    def __repr__(self) -> str:  # pragma: no cover - for debugging
        return f"Document({self.kind}, {self.source_rel!r}, url={self.url!r})"


@dataclass
class SourceFiles:
    """Source files sorted by role."""

    posts: list[Path] = field(default_factory=list)
    drafts: list[Path] = field(default_factory=list)
    pages: list[Path] = field(default_factory=list)
    static: list[Path] = field(default_factory=list)


@dataclass
class SiteContent:
    """Everything the content processor found in the source directory."""

    posts: list[Document]
    pages: list[Document]
    static_files: list[Path]
    warnings: list[str] = field(default_factory=list)


class FileContentLoader:
    """Discovers source files in a blog's source directory.

    - ``_posts/**``: posts
    - ``_drafts/**``: drafts
    - other Markdown/HTML files: pages
    - everything else: static files copied as-is

    Anything else under a ``_`` or ``.`` prefixed directory, or named with
    one of those prefixes, is ignored.
    """

    def __init__(self, source_dir: Path):
        self.source_dir = source_dir

    def scan(self) -> SourceFiles:
        found = SourceFiles()
        if not self.source_dir.exists():
            return found
        for path in sorted(self.source_dir.rglob("*")):
            if path.is_dir():
                continue
            rel = path.relative_to(self.source_dir)
            top = rel.parts[0]
            if top in (POSTS_DIR, DRAFTS_DIR):
                if is_document(path) and not is_hidden_path(rel.relative_to(top)):
                    (found.posts if top == POSTS_DIR else found.drafts).append(path)
                continue
            if is_hidden_path(rel):
                continue
            if is_document(path):
                found.pages.append(path)
            else:
                found.static.append(path)
        return found


def normalize_url(url: str) -> str:
    """Make a URL path root-relative and end it with ``/`` unless it names a file."""
    cleaned = "/" + "/".join(part for part in url.split("/") if part)
    if cleaned == "/":
        return cleaned
    last = cleaned.rsplit("/", 1)[-1]
    if "." in last:
        return cleaned
    return f"{cleaned}/"


class PermalinkBuilder:
    """Derives URLs for posts and pages.

    Post URLs expand the configured ``permalink`` pattern; page URLs follow
    the page's location in the source directory. A ``permalink`` key in the
    front matter overrides both.

    Attributes:
        pattern: Permalink pattern for posts.
    """

    def __init__(self, pattern: str = ":year/:month/:day/:title/"):
        self.pattern = pattern

    def post_url(
        self,
        date: datetime,
        slug: str,
        categories: list[tuple[str, ...]],
        override: str | None = None,
    ) -> str:
        category = "/".join(slugify(name) for name in categories[0]) if categories else "uncategorized"
        values = {"title": slug, "name": slug, "category": category}
        return normalize_url(expand_tokens(override or self.pattern, date, values))

    def page_url(self, rel: Path, override: str | None = None, date: datetime | None = None) -> str:
        if override:
            return normalize_url(expand_tokens(override, date or datetime.now(), {}))
        parts = list(PurePosixPath(rel.as_posix()).parent.parts)
        stem = rel.stem
        if stem != "index":
            parts.append(stem)
        return normalize_url("/".join(parts))


class DefaultDocumentBuilder:
    """Builds Document objects from source files.

    Attributes:
        source_dir: Directory containing the blog sources.
        config: Site configuration.
        renderer_registry: Registry of content renderers.
        metadata_extractor: Composite metadata extractor.
        permalinks: Permalink builder.
    """

    def __init__(
        self,
        source_dir: Path,
        config: dict[str, Any],
        renderer_registry: RendererRegistry | None = None,
        metadata_extractor: CompositeMetadataExtractor | None = None,
    ):
        self.source_dir = source_dir
        self.config = config
        highlight_code = bool((config.get("highlight") or {}).get("enable", True))
        self.renderer_registry = renderer_registry or RendererRegistry(highlight_code)
        self.metadata_extractor = metadata_extractor or CompositeMetadataExtractor(
            tz=resolve_timezone(config.get("timezone", "UTC"))
        )
        self.permalinks = PermalinkBuilder(config.get("permalink") or ":year/:month/:day/:title/")

    def build(self, path: Path, kind: str = "post", draft: bool = False) -> Document:
        """Build a Document from a source file.

        Args:
            path: Path to the source file.
            kind: ``"post"`` or ``"page"``.
            draft: Whether the file comes from ``_drafts``.

        Raises:
            FrontMatterError: If the front matter is malformed.
        """
        rel = path.relative_to(self.source_dir)
        raw = path.read_text(encoding="utf-8")
        metadata = self.metadata_extractor.extract(raw, path)
        frontmatter: dict[str, Any] = metadata["frontmatter"]
        body: str = metadata["body"]
        media_path = metadata.get("media_path")

        renderer = self.renderer_registry.get_renderer(path)
        content, toc = renderer.render(body, media_path)
        excerpt = ""
        if metadata.get("excerpt_source"):
            excerpt, _ = renderer.render(metadata["excerpt_source"], media_path)

        slug = slugify(str(frontmatter.get("slug") or path.stem))
        if kind == "page" and path.stem == "index" and len(rel.parts) > 1:
            slug = slugify(rel.parent.name)
        categories = metadata.get("categories", [])
        override = frontmatter.get("permalink")
        override = str(override) if override else None
        if kind == "post":
            url = self.permalinks.post_url(metadata["date"], slug, categories, override)
        else:
            url = self.permalinks.page_url(rel, override, metadata["date"])

        warnings = list(metadata.get("warnings", []))
        if kind == "page" or draft:
            # Pages are not listed by date, and drafts get their date on publish.
            warnings = [w for w in warnings if "date" not in w]

        return Document(
            title=metadata["title"],
            date=metadata["date"],
            updated=metadata.get("updated"),
            categories=categories,
            tags=metadata.get("tags", []),
            body=body,
            content=content,
            excerpt=excerpt,
            description=metadata.get("description", ""),
            media_path=media_path,
            url=url,
            slug=slug,
            layout=str(frontmatter.get("layout") or kind),
            kind=kind,
            draft=draft,
            published=frontmatter.get("published", True) is not False,
            pinned=bool(frontmatter.get("pin") or frontmatter.get("sticky")),
            image=self._cover_image(frontmatter, media_path),
            path=path,
            source_rel=rel.as_posix(),
            frontmatter=frontmatter,
            toc=toc,
            warnings=warnings,
        )

    def _cover_image(self, frontmatter: dict[str, Any], media_path: str | None) -> str | None:
        image = frontmatter.get("image")
        if isinstance(image, dict):
            image = image.get("path")
        if not image:
            return None
        return rewrite_media_path(str(image), media_path)


class ContentProcessor:
    """Facade for loading every document of a site.

    Attributes:
        source_dir: Directory containing the blog sources.
    """

    def __init__(
        self,
        source_dir: Path,
        config: dict[str, Any],
        content_loader: FileContentLoader | None = None,
        document_builder: DefaultDocumentBuilder | None = None,
    ):
        self.source_dir = source_dir
        self._content_loader = content_loader or FileContentLoader(source_dir)
        self._document_builder = document_builder or DefaultDocumentBuilder(source_dir, config)

    def load(self, include_drafts: bool = False) -> SiteContent:
        """Load and render all documents.

        Args:
            include_drafts: Include ``_drafts`` and ``published: false`` posts.

        Returns:
            SiteContent with posts, pages, static files and warnings.

        Raises:
            FrontMatterError: If a document's front matter is malformed.
            BuildError: If two documents resolve to the same URL.
        """
        files = self._content_loader.scan()
        build = self._document_builder.build
        posts = [build(path, "post") for path in files.posts]
        if include_drafts:
            posts.extend(build(path, "post", draft=True) for path in files.drafts)
        else:
            posts = [post for post in posts if post.published]
        pages = [build(path, "page") for path in files.pages]

        self._check_urls(posts + pages)
        warnings = [
            f"{doc.source_rel}: {warning}"
            for doc in posts
            if not doc.draft
            for warning in doc.warnings
        ]
        return SiteContent(posts=posts, pages=pages, static_files=files.static, warnings=warnings)

    @staticmethod
    def _check_urls(documents: list[Document]) -> None:
        seen: dict[str, Document] = {}
        for doc in documents:
            if ".." in doc.url.split("/"):
                raise BuildError(doc.path, f"URL {doc.url} leaves the site root")
            other = seen.get(doc.url)
            if other is not None:
                raise BuildError(
                    doc.path,
                    f"URL {doc.url} is also produced by {other.source_rel}",
                )
            seen[doc.url] = doc
