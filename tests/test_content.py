from datetime import datetime
from pathlib import Path
from zoneinfo import ZoneInfo

import pytest

from folio.config import load_config
from folio.content import (
    ContentProcessor,
    DefaultDocumentBuilder,
    FileContentLoader,
    PermalinkBuilder,
    normalize_url,
)
from folio.errors import BuildError, FrontMatterError

UTC = ZoneInfo("UTC")


def write(path: Path, text: str) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")
    return path


def make_source(tmp_path: Path) -> Path:
    source = tmp_path / "source"
    write(
        source / "_posts" / "2024-01-15-hello.md",
        "---\ntitle: Hello\ndate: 2024-01-15 10:00:00\ncategories: [Programming, Python]\n"
        "tags: [python, intro]\n---\nIntro paragraph.\n\n<!-- more -->\n\n## Details\n\nMore.\n",
    )
    write(
        source / "_posts" / "2024-02-01-hidden.md",
        "---\ntitle: Hidden\ndate: 2024-02-01\npublished: false\n---\nSecret.\n",
    )
    write(source / "_drafts" / "idea.md", "---\ntitle: Idea\n---\nNot yet.\n")
    write(source / "about" / "index.md", "---\ntitle: About\n---\nAbout me.\n")
    write(source / "contact.html", "---\ntitle: Contact\n---\n<p>Mail me</p>\n")
    write(source / "assets" / "img" / "logo.svg", "<svg/>")
    write(source / "CNAME", "blog.example.com\n")
    write(source / "_partials" / "ignored.md", "ignored")
    write(source / ".hidden.md", "ignored")
    return source


def test_file_content_loader_sorts_files_by_role(tmp_path):
    source = make_source(tmp_path)
    files = FileContentLoader(source).scan()
    rel = lambda paths: [p.relative_to(source).as_posix() for p in paths]  # noqa: E731

    assert rel(files.posts) == ["_posts/2024-01-15-hello.md", "_posts/2024-02-01-hidden.md"]
    assert rel(files.drafts) == ["_drafts/idea.md"]
    assert rel(files.pages) == ["about/index.md", "contact.html"]
    assert rel(files.static) == ["CNAME", "assets/img/logo.svg"]


def test_file_content_loader_handles_missing_source(tmp_path):
    files = FileContentLoader(tmp_path / "missing").scan()
    assert files.posts == [] and files.pages == [] and files.static == []


def test_normalize_url():
    assert normalize_url("") == "/"
    assert normalize_url("about") == "/about/"
    assert normalize_url("//a//b/") == "/a/b/"
    assert normalize_url("/404.html") == "/404.html"


def test_permalink_builder():
    builder = PermalinkBuilder(":year/:month/:day/:title/")
    when = datetime(2024, 1, 5, tzinfo=UTC)
    assert builder.post_url(when, "hello", []) == "/2024/01/05/hello/"
    assert builder.post_url(when, "hello", [], override="/custom/path") == "/custom/path/"

    by_category = PermalinkBuilder(":category/:title.html")
    assert by_category.post_url(when, "x", [("Programming", "Python")]) == "/programming/python/x.html"
    assert by_category.post_url(when, "x", []) == "/uncategorized/x.html"

    assert builder.page_url(Path("about/index.md")) == "/about/"
    assert builder.page_url(Path("docs/setup.md")) == "/docs/setup/"
    assert builder.page_url(Path("about/index.md"), override="/me/") == "/me/"


def test_document_builder_builds_posts(tmp_path):
    source = make_source(tmp_path)
    builder = DefaultDocumentBuilder(source, load_config(tmp_path))
    post = builder.build(source / "_posts" / "2024-01-15-hello.md")

    assert post.title == "Hello"
    assert post.slug == "hello"
    assert post.url == "/2024/01/15/hello/"
    assert post.date == datetime(2024, 1, 15, 10, 0, tzinfo=UTC)
    assert post.categories == [("Programming", "Python")]
    assert post.tags == ["python", "intro"]
    assert post.layout == "post"
    assert post.is_post
    assert post.excerpt.strip() == "<p>Intro paragraph.</p>"
    assert post.summary == post.excerpt
    assert '<h2 id="details">Details</h2>' in post.content
    assert [h.id for h in post.toc] == ["details"]
    assert post.description == "Intro paragraph."
    assert post.source_rel == "_posts/2024-01-15-hello.md"
    assert post.warnings == []
    assert post.lastmod == post.date


def test_document_builder_builds_pages_and_reads_flags(tmp_path):
    source = make_source(tmp_path)
    write(
        source / "_posts" / "2024-03-01-flags.md",
        "---\ntitle: Flags\ndate: 2024-03-01\nslug: Custom Slug\nlayout: wide\npin: true\n"
        "media_subpath: /assets/img/flags\nimage: cover.png\nupdated: 2024-03-05\n---\nBody\n",
    )
    builder = DefaultDocumentBuilder(source, load_config(tmp_path))

    page = builder.build(source / "about" / "index.md", kind="page")
    assert page.url == "/about/"
    assert page.slug == "about"
    assert page.layout == "page"
    assert not page.is_post

    flags = builder.build(source / "_posts" / "2024-03-01-flags.md")
    assert flags.slug == "custom-slug"
    assert flags.url == "/2024/03/01/custom-slug/"
    assert flags.layout == "wide"
    assert flags.pinned
    assert flags.image == "/assets/img/flags/cover.png"
    assert flags.lastmod == datetime(2024, 3, 5, tzinfo=UTC)

    hidden = builder.build(source / "_posts" / "2024-02-01-hidden.md")
    assert hidden.published is False


def test_document_builder_uses_site_timezone(tmp_path):
    source = make_source(tmp_path)
    (tmp_path / "_config.yml").write_text("timezone: Asia/Tokyo\n", encoding="utf-8")
    post = DefaultDocumentBuilder(source, load_config(tmp_path)).build(
        source / "_posts" / "2024-01-15-hello.md"
    )
    assert post.date.tzinfo == ZoneInfo("Asia/Tokyo")
    assert post.date.hour == 10


def test_document_builder_drops_date_warnings_for_pages_and_drafts(tmp_path):
    source = make_source(tmp_path)
    builder = DefaultDocumentBuilder(source, load_config(tmp_path))
    assert builder.build(source / "about" / "index.md", kind="page").warnings == []
    assert builder.build(source / "_drafts" / "idea.md", draft=True).warnings == []


def test_content_processor_filters_drafts_and_unpublished(tmp_path):
    source = make_source(tmp_path)
    config = load_config(tmp_path)

    content = ContentProcessor(source, config).load()
    assert [p.title for p in content.posts] == ["Hello"]
    assert sorted(p.title for p in content.pages) == ["About", "Contact"]
    assert [p.name for p in content.static_files] == ["CNAME", "logo.svg"]

    with_drafts = ContentProcessor(source, config).load(include_drafts=True)
    assert sorted(p.title for p in with_drafts.posts) == ["Hello", "Hidden", "Idea"]
    assert [p.title for p in with_drafts.posts if p.draft] == ["Idea"]


def test_content_processor_collects_warnings(tmp_path):
    source = make_source(tmp_path)
    write(source / "_posts" / "2024-04-01-no-front-matter.md", "Just words.\n")
    content = ContentProcessor(source, load_config(tmp_path)).load()

    assert content.warnings == [
        "_posts/2024-04-01-no-front-matter.md: missing title in front matter",
        "_posts/2024-04-01-no-front-matter.md: missing date in front matter",
    ]
    post = next(p for p in content.posts if p.slug == "no-front-matter")
    assert post.title == "No Front Matter"
    assert post.date == datetime(2024, 4, 1, tzinfo=UTC)


def test_content_processor_rejects_duplicate_urls(tmp_path):
    source = make_source(tmp_path)
    write(
        source / "_posts" / "2024-01-15-copy.md",
        "---\ntitle: Copy\ndate: 2024-01-15\nslug: hello\n---\nDuplicate.\n",
    )
    with pytest.raises(BuildError, match="is also produced by"):
        ContentProcessor(source, load_config(tmp_path)).load()


def test_content_processor_rejects_urls_leaving_the_site(tmp_path):
    source = make_source(tmp_path)
    write(source / "escape.md", "---\ntitle: Escape\npermalink: /../outside/\n---\nx\n")
    with pytest.raises(BuildError, match="leaves the site root"):
        ContentProcessor(source, load_config(tmp_path)).load()


def test_malformed_front_matter_raises(tmp_path):
    source = make_source(tmp_path)
    write(source / "_posts" / "2024-05-01-bad.md", "---\ntitle: [oops\n---\nBody\n")
    with pytest.raises(FrontMatterError) as excinfo:
        ContentProcessor(source, load_config(tmp_path)).load()
    assert excinfo.value.path == source / "_posts" / "2024-05-01-bad.md"
