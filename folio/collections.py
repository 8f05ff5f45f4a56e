"""Post collections, taxonomies and pagination.

Classes:
- PostCollection: Ordered, filterable sequence of posts.
- Taxonomy / TaxonomyIndex: Tags and category paths with their posts.
- Pagination: One page of a paginated listing.

Functions:
- build_tag_index / build_category_index: Group posts by tag or category.
- link_neighbours: Set ``prev`` / ``next`` between posts.
- paginate: Split posts into pages.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

from .content import Document
from .utils import slugify


class PostCollection(Sequence[Document]):
    """Lightweight helper for working with lists of posts in templates and code."""

    def __init__(self, posts: Iterable[Document]):
        self._posts = list(posts)

    def __iter__(self) -> Iterator[Document]:
        return iter(self._posts)

    def __len__(self) -> int:
        return len(self._posts)

    def __getitem__(self, item):
        if isinstance(item, slice):
            return PostCollection(self._posts[item])
        return self._posts[item]

    def sorted(self, reverse: bool = True) -> PostCollection:
        """Sort by date, newest first by default; equal dates list A to Z by title."""
        by_title = sorted(self._posts, key=lambda p: p.title.lower())
        # Stable sort keeps the title order within a date in both directions.
        return PostCollection(sorted(by_title, key=lambda p: p.date, reverse=reverse))

    def pinned_first(self) -> PostCollection:
        ordered = self.sorted()
        return PostCollection([p for p in ordered if p.pinned] + [p for p in ordered if not p.pinned])

    def latest(self, count: int = 5) -> PostCollection:
        return self.sorted()[:count]

    def published(self) -> PostCollection:
        return PostCollection(p for p in self._posts if not p.draft and p.published)

    def drafts(self) -> PostCollection:
        return PostCollection(p for p in self._posts if p.draft or not p.published)

    def with_tag(self, tag: str) -> PostCollection:
        return PostCollection(p for p in self._posts if tag in p.tags)

    def in_category(self, category: str | Sequence[str]) -> PostCollection:
        """Posts filed under ``category`` or any of its subcategories.

        ``category`` is a path tuple or a ``/``-separated string.
        """
        if isinstance(category, str):
            wanted = tuple(part.strip() for part in category.split("/") if part.strip())
        else:
            wanted = tuple(category)
        depth = len(wanted)
        return PostCollection(
            p for p in self._posts if any(path[:depth] == wanted for path in p.categories)
        )

    def by_year(self) -> list[tuple[int, PostCollection]]:
        """Group posts by year, newest year and newest post first."""
        groups: dict[int, list[Document]] = {}
        for post in self.sorted():
            groups.setdefault(post.date.year, []).append(post)
        return [(year, PostCollection(posts)) for year, posts in groups.items()]

    def __repr__(self) -> str:  # pragma: no cover - for debugging
        return f"PostCollection({len(self._posts)} posts)"


def link_neighbours(posts: Iterable[Document]) -> None:
    """Point every post at its chronological neighbours.

    ``prev`` is the next older post and ``next`` the next newer one.
    """
    ordered = PostCollection(posts).sorted()
    for index, post in enumerate(ordered):
        post.next = ordered[index - 1] if index > 0 else None
        post.prev = ordered[index + 1] if index + 1 < len(ordered) else None


@dataclass
class Taxonomy:
    """A tag or a category with the posts filed under it.

    Attributes:
        name: Display name (the last segment for nested categories).
        path: Names from the top-level category down to this one.
        slug: Slash-separated slug path.
        url: Site-relative URL of the taxonomy page.
        posts: Posts filed under it, newest first.
        children: Direct subcategories.
    """

    name: str
    path: tuple[str, ...]
    slug: str
    url: str
    posts: PostCollection = field(default_factory=lambda: PostCollection([]))
    children: list[Taxonomy] = field(default_factory=list)

    @property
    def depth(self) -> int:
        return len(self.path)

    @property
    def full_name(self) -> str:
        return " / ".join(self.path)

    def __len__(self) -> int:
        return len(self.posts)


class TaxonomyIndex(Mapping[str, Taxonomy]):
    """Mapping of slug path to Taxonomy, ordered by name."""

    def __init__(self, taxonomies: Iterable[Taxonomy]):
        ordered = sorted(taxonomies, key=lambda t: tuple(name.lower() for name in t.path))
        self._mapping = {t.slug: t for t in ordered}

    def __getitem__(self, key: str) -> Taxonomy:
        return self._mapping[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._mapping)

    def __len__(self) -> int:
        return len(self._mapping)

    def roots(self) -> list[Taxonomy]:
        return [t for t in self._mapping.values() if t.depth == 1]

    def find(self, name: str) -> Taxonomy | None:
        """Look a taxonomy up by full name or slug, then by display name.

        Spellings that differ only in case or punctuation (``Python`` and
        ``python``) share an entry, so the name is finally slugified.
        """
        if name in self._mapping:
            return self._mapping[name]
        for taxonomy in self._mapping.values():
            if taxonomy.full_name == name:
                return taxonomy
        for taxonomy in self._mapping.values():
            if taxonomy.name == name:
                return taxonomy
        slug = "/".join(slugify(part) for part in name.split(" / "))
        return self._mapping.get(slug)

    def __repr__(self) -> str:  # pragma: no cover - for debugging
        return f"TaxonomyIndex({len(self._mapping)} entries)"


def build_tag_index(posts: Iterable[Document], tag_dir: str = "tags") -> TaxonomyIndex:
    """Build the tag index. Tags whose slugs collide share one entry."""
    found: dict[str, Taxonomy] = {}
    members: dict[str, list[Document]] = {}
    for post in PostCollection(posts).sorted():
        for tag in post.tags:
            slug = slugify(tag)
            if slug not in found:
                found[slug] = Taxonomy(name=tag, path=(tag,), slug=slug, url=f"/{tag_dir}/{slug}/")
            if post not in members.setdefault(slug, []):
                members[slug].append(post)
    for slug, taxonomy in found.items():
        taxonomy.posts = PostCollection(members[slug])
    return TaxonomyIndex(found.values())


def build_category_index(
    posts: Iterable[Document], category_dir: str = "categories"
) -> TaxonomyIndex:
    """Build the category index.

    A post filed under ``("Programming", "Python")`` is listed under both
    ``programming`` and ``programming/python``.
    """
    found: dict[str, Taxonomy] = {}
    members: dict[str, list[Document]] = {}
    for post in PostCollection(posts).sorted():
        for category_path in post.categories:
            parent: Taxonomy | None = None
            for depth in range(1, len(category_path) + 1):
                path = category_path[:depth]
                slug = "/".join(slugify(name) for name in path)
                taxonomy = found.get(slug)
                if taxonomy is None:
                    taxonomy = Taxonomy(
                        name=path[-1], path=path, slug=slug, url=f"/{category_dir}/{slug}/"
                    )
                    found[slug] = taxonomy
                    if parent is not None:
                        parent.children.append(taxonomy)
                if post not in members.setdefault(slug, []):
                    members[slug].append(post)
                parent = taxonomy
    for slug, taxonomy in found.items():
        taxonomy.posts = PostCollection(members[slug])
        taxonomy.children.sort(key=lambda child: child.name.lower())
    return TaxonomyIndex(found.values())


def page_url(base_url: str, number: int, pagination_dir: str = "page") -> str:
    """URL of listing page ``number``; page 1 lives at ``base_url`` itself."""
    base = base_url if base_url.endswith("/") else f"{base_url}/"
    if number <= 1:
        return base
    return f"{base}{pagination_dir}/{number}/"


@dataclass
class Pagination:
    """One page of a paginated listing.

    Attributes:
        items: Items shown on this page.
        number: 1-based page number.
        total: Number of pages.
        base_url: URL of the first page.
        pagination_dir: Path segment before the page number.
    """

    items: list[Any]
    number: int
    total: int
    base_url: str
    pagination_dir: str = "page"

    @property
    def url(self) -> str:
        return page_url(self.base_url, self.number, self.pagination_dir)

    @property
    def has_prev(self) -> bool:
        return self.number > 1

    @property
    def has_next(self) -> bool:
        return self.number < self.total

    @property
    def prev_url(self) -> str | None:
        return page_url(self.base_url, self.number - 1, self.pagination_dir) if self.has_prev else None

    @property
    def next_url(self) -> str | None:
        return page_url(self.base_url, self.number + 1, self.pagination_dir) if self.has_next else None

    def page_urls(self) -> list[tuple[int, str]]:
        return [(n, page_url(self.base_url, n, self.pagination_dir)) for n in range(1, self.total + 1)]


def paginate(
    items: Sequence[Any],
    per_page: int,
    base_url: str,
    pagination_dir: str = "page",
) -> list[Pagination]:
    """Split ``items`` into pages of ``per_page``.

    ``per_page <= 0`` puts everything on one page. An empty sequence still
    yields one (empty) page so the listing URL exists.
    """
    items = list(items)
    if per_page <= 0 or not items:
        chunks = [items]
    else:
        chunks = [items[i : i + per_page] for i in range(0, len(items), per_page)]
    total = len(chunks)
    return [
        Pagination(items=chunk, number=n, total=total, base_url=base_url, pagination_dir=pagination_dir)
        for n, chunk in enumerate(chunks, start=1)
    ]
