"""Template rendering engine for Folio.

This module uses Jinja2 to render documents and listing pages through the
active theme's layouts.

Key class:
- TemplateEngine: Loads layouts and provides context to templates.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any

from jinja2 import Environment, FileSystemLoader, TemplateNotFound, select_autoescape
from markupsafe import Markup
from pygments.formatters import HtmlFormatter
from pygments.util import ClassNotFound

from .collections import PostCollection, TaxonomyIndex
from .config import absolute_url
from .content import Document
from .html_utils import escape_html
from .listings import ListingPage
from .renderers import Heading

__all__ = ["SiteView", "TemplateEngine", "render_toc"]

LAYOUT_SUFFIXES = (".html.jinja", ".jinja", ".html")


def render_toc(page: Document) -> Markup:
    """Render a table of contents as nested HTML from page headings.

    Generates properly nested ``<ul><li><a href="#id">text</a></li></ul>``
    structure based on heading levels.
    """
    toc = getattr(page, "toc", None)
    if not toc:
        return Markup("")
    return _render_toc_from_headings(toc)


def _render_toc_from_headings(headings: list[Heading]) -> Markup:
    html_parts: list[str] = []
    level_stack: list[int] = []

    for heading in headings:
        level = heading.level

        # Close nested lists if going to a shallower level
        while level_stack and level_stack[-1] > level:
            level_stack.pop()
            html_parts.append("</li></ul>")

        if level_stack and level_stack[-1] == level:
            html_parts.append("</li>")
        elif not level_stack or level > level_stack[-1]:  # pragma: no branch
            html_parts.append("<ul>")
            level_stack.append(level)

        html_parts.append(
            f'<li><a href="#{escape_html(heading.id)}">{escape_html(heading.text)}</a>'
        )

    while level_stack:
        level_stack.pop()
        html_parts.append("</li></ul>")

    return Markup("".join(html_parts))


@dataclass
class SiteView:
    """The ``site`` variable available to every template."""

    posts: PostCollection
    pages: list[Document]
    categories: TaxonomyIndex
    tags: TaxonomyIndex


class TemplateEngine:
    """Template rendering engine using Jinja2.

    Layouts are looked up in each theme's ``layout/`` folder in order, so a
    project theme can override any layout of the built-in theme.

    Attributes:
        theme_dirs: Theme folders in lookup order.
        config: Site configuration.
        theme: Merged theme configuration.
        env: Jinja2 environment.
        site: Posts, pages and taxonomies, once set by update_site().
    """

    def __init__(
        self,
        theme_dirs: list[Path],
        config: dict[str, Any],
        theme: dict[str, Any] | None = None,
    ):
        self.theme_dirs = theme_dirs
        self.config = config
        self.theme = theme or {}
        self.env = Environment(
            loader=FileSystemLoader([d / "layout" for d in theme_dirs]),
            autoescape=select_autoescape(["html", "xml", "html.jinja"]),
            enable_async=False,
        )
        self.site = SiteView(
            posts=PostCollection([]), pages=[], categories=TaxonomyIndex([]), tags=TaxonomyIndex([])
        )
        self._install_globals()

    def _install_globals(self) -> None:
        self.env.globals["config"] = self.config
        self.env.globals["theme"] = self.theme
        self.env.globals["site"] = self.site
        self.env.globals["url_for"] = self._url_for
        self.env.globals["full_url"] = self._full_url
        self.env.globals["render_toc"] = render_toc
        self.env.globals["pygments_css"] = self._pygments_css
        self.env.globals["now"] = datetime.now
        self.env.filters["date"] = self._format_date

    def _pygments_css(self) -> str:
        """Return Pygments CSS for the configured highlight style."""
        style = str((self.config.get("highlight") or {}).get("style") or "default")
        try:
            return HtmlFormatter(style=style).get_style_defs(".highlight")
        except ClassNotFound:
            return HtmlFormatter().get_style_defs(".highlight")

    def _format_date(self, value: datetime | None, fmt: str | None = None) -> str:
        if value is None:
            return ""
        return value.strftime(fmt or str(self.config.get("date_format") or "%Y-%m-%d"))

    @staticmethod
    def _url_for(path: str) -> str:
        """Return a site-relative URL; ``root`` is applied when pages are written."""
        if path.startswith(("http://", "https://", "//")):
            return path
        return path if path.startswith("/") else f"/{path}"

    def _full_url(self, path: str) -> str:
        return absolute_url(self.config, path)

    def update_site(
        self,
        posts: PostCollection,
        pages: list[Document],
        categories: TaxonomyIndex,
        tags: TaxonomyIndex,
    ) -> None:
        self.site = SiteView(posts=posts, pages=list(pages), categories=categories, tags=tags)
        self.env.globals["site"] = self.site

    def render_document(self, doc: Document) -> str:
        """Render a post or page with its layout."""
        context = {
            "page": doc,
            "page_content": Markup(doc.content),
            "frontmatter": doc.frontmatter,
        }
        return self._resolve_layout_template(doc.layout).render(**context)

    def render_listing(self, listing: ListingPage) -> str:
        """Render a generated listing page with its layout."""
        context = {
            "page": listing,
            "posts": listing.posts,
            "pagination": listing.pagination,
            "page_content": Markup(""),
            "frontmatter": {},
            **listing.extra,
        }
        return self._resolve_layout_template(listing.layout).render(**context)

    def has_layout(self, layout: str) -> bool:
        for suffix in LAYOUT_SUFFIXES:
            try:
                self.env.get_template(f"{layout}{suffix}")
                return True
            except TemplateNotFound:
                continue
        return False

    def _resolve_layout_template(self, layout: str):
        """Resolve a layout, falling back to ``page`` then ``default``.

        With no layout at all the page body is rendered on its own.
        """
        candidates = [layout] + [name for name in ("page", "default") if name != layout]
        for name in candidates:
            for suffix in LAYOUT_SUFFIXES:
                try:
                    return self.env.get_template(f"{name}{suffix}")
                except TemplateNotFound:
                    continue
        return self.env.from_string("{{ page_content }}")

    def render_string(self, template: str, context: dict[str, Any]) -> str:
        return self.env.from_string(template).render(**context)
