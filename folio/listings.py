"""Generated listing pages for Folio.

Besides the documents themselves, a blog has pages that only list posts:
the paginated home page, the archive, and one page per category and tag.
Each kind is produced by a ListingGenerator; the ListingRegistry runs them
all during a build.

Classes:
    ListingPage: A generated page.
    ListingContext: The site data generators work from.
    ListingGenerator: Abstract base class for generators.
    IndexGenerator, ArchiveGenerator, CategoryGenerator, TagGenerator,
    NotFoundGenerator: The built-in generators.
    ListingRegistry: Registry running every generator.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from .collections import Pagination, PostCollection, TaxonomyIndex, paginate


@dataclass(eq=False)
class ListingPage:
    """A page generated from the post list rather than from a source file.

    Attributes:
        url: Site-relative URL.
        layout: Layout template name.
        title: Page title.
        posts: Posts shown on this page.
        pagination: Pagination state, for paginated listings.
        extra: Additional template variables (e.g. the taxonomy shown).
        in_sitemap: Whether the page belongs in sitemap.xml.
    """

    url: str
    layout: str
    title: str
    posts: PostCollection
    pagination: Pagination | None = None
    extra: dict[str, Any] = field(default_factory=dict)
    in_sitemap: bool = True

    kind = "listing"

    @property
    def lastmod(self) -> datetime | None:
        if not self.posts:
            return None
        return max(post.lastmod for post in self.posts)


@dataclass
class ListingContext:
    """Site data handed to listing generators."""

    posts: PostCollection
    categories: TaxonomyIndex
    tags: TaxonomyIndex
    config: dict[str, Any]

    @property
    def per_page(self) -> int:
        return int(self.config.get("per_page") or 0)

    @property
    def pagination_dir(self) -> str:
        return str(self.config.get("pagination_dir") or "page")


class ListingGenerator(ABC):
    """Abstract base class for listing generators."""

    @abstractmethod
    def generate(self, context: ListingContext) -> list[ListingPage]:
        """Return the listing pages this generator contributes."""
        ...

    @staticmethod
    def _paginated(
        context: ListingContext,
        posts: PostCollection,
        base_url: str,
        layout: str,
        title: str,
        extra: dict[str, Any] | None = None,
    ) -> list[ListingPage]:
        pages = []
        for pagination in paginate(posts, context.per_page, base_url, context.pagination_dir):
            pages.append(
                ListingPage(
                    url=pagination.url,
                    layout=layout,
                    title=title,
                    posts=PostCollection(pagination.items),
                    pagination=pagination,
                    extra=dict(extra or {}),
                    in_sitemap=pagination.number == 1,
                )
            )
        return pages


class IndexGenerator(ListingGenerator):
    """Paginated home page, pinned posts first."""

    def generate(self, context: ListingContext) -> list[ListingPage]:
        title = str(context.config.get("title") or "")
        return self._paginated(context, context.posts.pinned_first(), "/", "index", title)


class ArchiveGenerator(ListingGenerator):
    """Single archive page grouping every post by year."""

    def generate(self, context: ListingContext) -> list[ListingPage]:
        archive_dir = str(context.config.get("archive_dir") or "archives")
        return [
            ListingPage(
                url=f"/{archive_dir}/",
                layout="archive",
                title="Archives",
                posts=context.posts.sorted(),
                extra={"years": context.posts.by_year()},
            )
        ]


class CategoryGenerator(ListingGenerator):
    """Category overview plus a paginated page per category."""

    def generate(self, context: ListingContext) -> list[ListingPage]:
        category_dir = str(context.config.get("category_dir") or "categories")
        pages = [
            ListingPage(
                url=f"/{category_dir}/",
                layout="categories",
                title="Categories",
                posts=context.posts.sorted(),
                extra={"taxonomies": context.categories},
            )
        ]
        for category in context.categories.values():
            pages.extend(
                self._paginated(
                    context,
                    category.posts,
                    category.url,
                    "category",
                    category.full_name,
                    {"taxonomy": category},
                )
            )
        return pages


class TagGenerator(ListingGenerator):
    """Tag overview plus a paginated page per tag."""

    def generate(self, context: ListingContext) -> list[ListingPage]:
        tag_dir = str(context.config.get("tag_dir") or "tags")
        pages = [
            ListingPage(
                url=f"/{tag_dir}/",
                layout="tags",
                title="Tags",
                posts=context.posts.sorted(),
                extra={"taxonomies": context.tags},
            )
        ]
        for tag in context.tags.values():
            pages.extend(
                self._paginated(context, tag.posts, tag.url, "tag", tag.name, {"taxonomy": tag})
            )
        return pages


class NotFoundGenerator(ListingGenerator):
    """The ``404.html`` page static hosts serve for missing paths."""

    def generate(self, context: ListingContext) -> list[ListingPage]:
        return [
            ListingPage(
                url="/404.html",
                layout="404",
                title="Page not found",
                posts=context.posts.latest(5),
                in_sitemap=False,
            )
        ]


class ListingRegistry:
    """Registry running every listing generator."""

    def __init__(self) -> None:
        self._generators: list[ListingGenerator] = []

    def register(self, generator: ListingGenerator) -> None:
        self._generators.append(generator)

    def generate_all(self, context: ListingContext) -> list[ListingPage]:
        pages: list[ListingPage] = []
        for generator in self._generators:
            pages.extend(generator.generate(context))
        return pages


def create_default_listing_registry() -> ListingRegistry:
    """Create a registry with the home, archive, category, tag and 404 generators."""
    registry = ListingRegistry()
    registry.register(IndexGenerator())
    registry.register(ArchiveGenerator())
    registry.register(CategoryGenerator())
    registry.register(TagGenerator())
    registry.register(NotFoundGenerator())
    return registry
