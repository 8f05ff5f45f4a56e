"""Feed generation for Folio.

This module generates the RSS feed and the sitemap from the built site.
Feed generation is separate from build orchestration, and new formats can
be added by registering another FeedGenerator.

Classes:
    FeedGenerator: Abstract base class for feed generators.
    SitemapGenerator: Generates sitemap.xml files.
    RSSGenerator: Generates the RSS 2.0 feed.
    FeedRegistry: Registry for managing feed generators.

Functions:
    create_default_feed_registry: Create a registry with default generators.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Sequence
from datetime import datetime, timezone
from email.utils import format_datetime
from pathlib import Path
from typing import TYPE_CHECKING, Any

from .config import absolute_url
from .html_utils import absolutize_html_urls, escape_html

if TYPE_CHECKING:
    from .content import Document
    from .listings import ListingPage


class FeedGenerator(ABC):
    """Abstract base class for feed generators."""

    @property
    @abstractmethod
    def filename(self) -> str:
        """Return the output filename for this feed."""
        ...

    @abstractmethod
    def generate(
        self,
        posts: Sequence[Document],
        pages: Sequence[Document],
        listings: Sequence[ListingPage],
        config: dict[str, Any],
    ) -> str | None:
        """Generate feed content.

        Returns:
            Feed content as a string, or None if the feed is disabled or
            cannot be generated (e.g. no site ``url`` configured).
        """
        ...

    def write(
        self,
        output_dir: Path,
        posts: Sequence[Document],
        pages: Sequence[Document],
        listings: Sequence[ListingPage],
        config: dict[str, Any],
    ) -> bool:
        """Generate and write the feed; return False when it was skipped."""
        content = self.generate(posts, pages, listings, config)
        if content is None:
            return False
        (output_dir / self.filename).write_text(content, encoding="utf-8")
        return True


class SitemapGenerator(FeedGenerator):
    """Generates sitemap.xml for search engine indexing.

    Lists every post, page and first listing page with its last
    modification date. Requires ``url`` in the site config.
    """

    @property
    def filename(self) -> str:
        return "sitemap.xml"

    def generate(self, posts, pages, listings, config) -> str | None:
        if not config.get("url") or not (config.get("sitemap") or {}).get("enable", True):
            return None

        entries: list[tuple[str, datetime | None]] = []
        for doc in list(posts) + list(pages):
            if doc.frontmatter.get("sitemap", True) is False:
                continue
            entries.append((doc.url, doc.lastmod))
        for listing in listings:
            if listing.in_sitemap:
                entries.append((listing.url, listing.lastmod))

        lines = [
            '<?xml version="1.0" encoding="UTF-8"?>',
            '<urlset xmlns="http://www.sitemaps.org/schemas/sitemap/0.9">',
        ]
        for url, lastmod in entries:
            loc = escape_html(absolute_url(config, url))
            if lastmod is not None:
                lines.append(
                    f"  <url><loc>{loc}</loc><lastmod>{lastmod.strftime('%Y-%m-%d')}</lastmod></url>"
                )
            else:
                lines.append(f"  <url><loc>{loc}</loc></url>")
        lines.append("</urlset>")
        return "\n".join(lines) + "\n"


class RSSGenerator(FeedGenerator):
    """Generates an RSS 2.0 feed of the newest posts.

    ``feed.limit`` caps the number of items (0 for all). Item descriptions
    hold the excerpt (or the description when there is none); with
    ``feed.content`` set they hold the full post. Requires ``url``.
    """

    @property
    def filename(self) -> str:
        return "rss.xml"

    def generate(self, posts, pages, listings, config) -> str | None:
        options = config.get("feed") or {}
        base_url = config.get("url")
        if not base_url or not options.get("enable", True):
            return None

        ordered = sorted(
            (p for p in posts if not p.draft and p.published), key=lambda p: p.date, reverse=True
        )
        limit = int(options.get("limit") or 0)
        if limit > 0:
            ordered = ordered[:limit]
        site_base = absolute_url(config, "/").rstrip("/")

        items = []
        for post in ordered:
            link = escape_html(absolute_url(config, post.url))
            if options.get("content"):
                body = post.content
            else:
                body = post.excerpt or escape_html(post.description or post.title)
            body = absolutize_html_urls(body, site_base)
            categories = "".join(
                f"<category>{escape_html(name)}</category>"
                for name in [" / ".join(path) for path in post.categories] + post.tags
            )
            items.append(
                f"<item><title>{escape_html(post.title)}</title><link>{link}</link>"
                f'<guid isPermaLink="true">{link}</guid>'
                f"<description>{escape_html(body)}</description>"
                f"{categories}<pubDate>{format_datetime(post.date)}</pubDate></item>"
            )

        build_date = format_datetime(datetime.now(timezone.utc))
        rss = [
            '<?xml version="1.0" encoding="UTF-8"?>',
            '<rss version="2.0"><channel>',
            f"<title>{escape_html(str(config.get('title') or ''))}</title>",
            f"<link>{escape_html(site_base)}/</link>",
            f"<description>{escape_html(str(config.get('description') or config.get('subtitle') or ''))}</description>",
            f"<language>{escape_html(str(config.get('language') or 'en'))}</language>",
            f"<lastBuildDate>{build_date}</lastBuildDate>",
        ]
        rss.extend(items)
        rss.append("</channel></rss>")
        return "\n".join(rss) + "\n"


class FeedRegistry:
    """Registry for managing feed generators."""

    def __init__(self) -> None:
        self._generators: list[FeedGenerator] = []

    def register(self, generator: FeedGenerator) -> None:
        self._generators.append(generator)

    def generate_all(
        self,
        output_dir: Path,
        posts: Sequence[Document],
        pages: Sequence[Document],
        listings: Sequence[ListingPage],
        config: dict[str, Any],
    ) -> list[str]:
        """Generate all registered feeds and return the filenames written."""
        generated = []
        for generator in self._generators:
            if generator.write(output_dir, posts, pages, listings, config):
                generated.append(generator.filename)
        return generated


def create_default_feed_registry() -> FeedRegistry:
    """Create a registry with the sitemap and RSS generators."""
    registry = FeedRegistry()
    registry.register(SitemapGenerator())
    registry.register(RSSGenerator())
    return registry
