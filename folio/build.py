"""Site building functionality for Folio.

This module contains the core logic for building a blog from its sources.
It loads configuration, processes content, renders documents and listing
pages through the theme, copies assets and writes the feeds.

Key functions:
- build_site: Main function to build the entire site.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable

from jinja2 import TemplateError, TemplateSyntaxError

from .assets import AssetPipeline
from .collections import PostCollection, build_category_index, build_tag_index, link_neighbours
from .config import CONFIG_FILENAME, load_config, load_theme_config, resolve_theme_dirs
from .content import ContentProcessor, Document
from .errors import BuildError, ConfigError, FrontMatterError
from .feeds import create_default_feed_registry
from .html_utils import absolutize_html_urls
from .listings import ListingContext, ListingPage, create_default_listing_registry
from .templates import TemplateEngine
from .utils import ensure_clean_dir


@dataclass
class BuildResult:
    """Result of a site build operation.

    Attributes:
        posts: Posts in the site, newest first.
        pages: Standalone pages.
        listings: Generated listing pages.
        output_dir: Directory where the site was built.
        config: Configuration the site was built with.
        warnings: Non-fatal problems found in the content.
        feeds: Feed files written (e.g. ``rss.xml``).
    """

    posts: list[Document]
    pages: list[Document]
    listings: list[ListingPage]
    output_dir: Path
    config: dict[str, Any] = field(default_factory=dict)
    warnings: list[str] = field(default_factory=list)
    feeds: list[str] = field(default_factory=list)


def build_site(
    project_root: Path,
    include_drafts: bool = False,
    root_url: str | None = None,
    clean_output: bool = True,
    output_dir_override: Path | None = None,
) -> BuildResult:
    """Build the entire static site.

    Args:
        project_root: Root directory of the blog project.
        include_drafts: Whether to include drafts and unpublished posts.
        root_url: Optional base URL that replaces ``url`` for links (used by
            the preview server).
        clean_output: Whether to wipe the output directory before building.
        output_dir_override: Optional path to write the build output instead
            of the configured public directory.

    Returns:
        BuildResult describing the built site.

    Raises:
        ConfigError: If the configuration or theme is invalid.
        BuildError: If a source file cannot be built.
    """
    config = load_config(project_root)
    if root_url is not None:
        # The preview server serves the output folder at the host root.
        config["url"] = root_url.rstrip("/")
        config["root"] = "/"
    theme_dirs = resolve_theme_dirs(project_root, config)
    theme_config = load_theme_config(project_root, config, theme_dirs)

    source_dir = project_root / config["source_dir"]
    if not source_dir.is_dir():
        raise ConfigError(f"Expected source directory at {source_dir}")
    output_dir = output_dir_override or (project_root / config["public_dir"])

    try:
        content = ContentProcessor(source_dir, config).load(include_drafts=include_drafts)
    except FrontMatterError as exc:
        message = exc.message if exc.line is None else f"line {exc.line}: {exc.message}"
        raise BuildError(exc.path or source_dir, message, exc) from exc

    posts = PostCollection(content.posts).sorted()
    link_neighbours(posts)
    categories = build_category_index(posts, config["category_dir"])
    tags = build_tag_index(posts, config["tag_dir"])

    engine = TemplateEngine(theme_dirs, config, theme_config)
    engine.update_site(posts, content.pages, categories, tags)

    listings = create_default_listing_registry().generate_all(
        ListingContext(posts=posts, categories=categories, tags=tags, config=config)
    )
    listings = [listing for listing in listings if engine.has_layout(listing.layout)]
    _check_listing_urls(listings, list(posts) + content.pages)

    if clean_output:
        ensure_clean_dir(output_dir)
    else:
        output_dir.mkdir(parents=True, exist_ok=True)

    site_base = _site_base(config, root_url)
    for doc in list(posts) + content.pages:
        rendered = _render(engine.render_document, doc, doc.path)
        _write_page(output_dir, doc.url, _prefix_urls(rendered, site_base))
    config_path = project_root / CONFIG_FILENAME
    for listing in listings:
        rendered = _render(engine.render_listing, listing, config_path)
        _write_page(output_dir, listing.url, _prefix_urls(rendered, site_base))

    AssetPipeline(theme_dirs, source_dir, content.static_files, output_dir).run()
    feeds = create_default_feed_registry().generate_all(
        output_dir, posts.published(), content.pages, listings, config
    )
    return BuildResult(
        posts=list(posts),
        pages=content.pages,
        listings=listings,
        output_dir=output_dir,
        config=config,
        warnings=content.warnings,
        feeds=feeds,
    )


def _site_base(config: dict[str, Any], root_url: str | None) -> str:
    """Prefix applied to root-relative URLs in rendered HTML."""
    if root_url:
        return root_url.rstrip("/")
    return config["root"].rstrip("/")


def _prefix_urls(html: str, site_base: str) -> str:
    return absolutize_html_urls(html, site_base) if site_base else html


def _check_listing_urls(listings: list[ListingPage], documents: list[Document]) -> None:
    taken = {doc.url: doc for doc in documents}
    for listing in listings:
        doc = taken.get(listing.url)
        if doc is not None:
            raise BuildError(
                doc.path,
                f"URL {doc.url} is also used by the generated '{listing.layout}' page",
            )


def _render(render: Callable[[Any], str], item: Any, source_path: Path) -> str:
    """Run a template render, turning template failures into BuildError."""
    try:
        return render(item)
    except TemplateSyntaxError as exc:
        where = Path(exc.filename) if exc.filename else source_path
        raise BuildError(
            where,
            f"Template syntax error on line {exc.lineno}: {exc.message}",
            exc,
        ) from exc
    except TemplateError as exc:
        raise BuildError(source_path, _format_error_message(exc), exc) from exc
    except (TypeError, AttributeError, ValueError, KeyError) as exc:
        raise BuildError(source_path, _format_error_message(exc), exc) from exc


def _format_error_message(exc: Exception) -> str:
    """Format an exception into a user-friendly error message."""
    error_type = type(exc).__name__
    error_msg = str(exc)

    if error_type == "UndefinedError":
        return f"Undefined variable: {error_msg}"
    if error_type == "TemplateNotFound":
        return f"Template not found: {error_msg}"
    if error_type == "TypeError":
        return f"Type error: {error_msg}"
    if error_type == "AttributeError":
        return f"Attribute error: {error_msg}"

    return f"{error_type}: {error_msg}"


def _write_page(output_dir: Path, url: str, rendered: str) -> Path:
    """Write rendered HTML for ``url``.

    Directory-style URLs become ``<url>/index.html``; URLs naming a file
    (``/404.html``) are written as that file.
    """
    url_path = url.strip("/")
    if url_path.endswith((".html", ".htm", ".xml")):
        target = output_dir / url_path
    else:
        target = output_dir / url_path / "index.html"
    target.parent.mkdir(parents=True, exist_ok=True)
    with open(target, "w", encoding="utf-8") as f:
        f.write(rendered)
    return target
