from datetime import datetime
from pathlib import Path
from zoneinfo import ZoneInfo

import pytest

from folio.build import build_site
from folio.config import load_config
from folio.errors import ScaffoldError
from folio.frontmatter import extract_frontmatter
from folio.scaffold import find_draft, init_project, new_document, publish_draft

NOW = datetime(2024, 3, 5, 9, 30, 15, tzinfo=ZoneInfo("UTC"))


@pytest.fixture(autouse=True)
def skip_git_init(monkeypatch):
    monkeypatch.setenv("FOLIO_SKIP_GIT_INIT", "1")


def test_init_project_creates_skeleton(tmp_path):
    target = init_project(tmp_path / "blog")

    assert (target / "_config.yml").exists()
    assert (target / ".gitignore").exists()
    assert not (target / "gitignore").exists()
    assert (target / "scaffolds" / "post.md").exists()
    assert (target / "source" / "about" / "index.md").exists()
    assert (target / "source" / "_drafts").is_dir()
    assert (target / "source" / "assets" / "img").is_dir()

    [welcome] = list((target / "source" / "_posts").glob("*-hello-world.md"))
    frontmatter, body = extract_frontmatter(welcome.read_text(encoding="utf-8"))
    assert frontmatter["title"] == "Hello World"
    assert frontmatter["date"]
    assert "<!-- more -->" in body


def test_init_project_refuses_non_empty_directory(tmp_path):
    (tmp_path / "blog").mkdir()
    (tmp_path / "blog" / "notes.txt").write_text("x", encoding="utf-8")
    with pytest.raises(ScaffoldError, match="non-empty"):
        init_project(tmp_path / "blog")


def test_initialized_project_builds(tmp_path):
    target = init_project(tmp_path / "blog")
    result = build_site(target)
    assert [p.title for p in result.posts] == ["Hello World"]
    assert result.warnings == []
    assert (result.output_dir / "about" / "index.html").exists()
    assert (result.output_dir / "index.html").exists()
    about = (result.output_dir / "about" / "index.html").read_text(encoding="utf-8")
    assert '<blockquote class="prompt-tip">' in about


def test_new_document_post(tmp_path):
    target = init_project(tmp_path / "blog")
    path = new_document(target, 'Say "Hi": again', now=NOW)

    assert path == target / "source" / "_posts" / "2024-03-05-say-hi-again.md"
    frontmatter, _ = extract_frontmatter(path.read_text(encoding="utf-8"))
    assert frontmatter["title"] == 'Say "Hi": again'
    assert str(frontmatter["date"]).startswith("2024-03-05 09:30:15")
    assert frontmatter["tags"] == []

    with pytest.raises(ScaffoldError, match="already exists"):
        new_document(target, 'Say "Hi": again', now=NOW)


def test_new_document_page_draft_and_custom_layout(tmp_path):
    target = init_project(tmp_path / "blog")

    page = new_document(target, "Projects", "page", now=NOW)
    assert page == target / "source" / "projects" / "index.md"

    draft = new_document(target, "Half an idea", "draft", slug="idea", now=NOW)
    assert draft == target / "source" / "_drafts" / "idea.md"
    assert "date:" not in draft.read_text(encoding="utf-8")

    (target / "scaffolds" / "photo.md").write_text(
        "---\ntitle: {{ title | quote }}\ndate: {{ date }}\n---\n", encoding="utf-8"
    )
    photo = new_document(target, "Sunset", "photo", now=NOW)
    frontmatter, _ = extract_frontmatter(photo.read_text(encoding="utf-8"))
    assert frontmatter["layout"] == "photo"
    assert photo.parent.name == "_posts"


def test_new_document_requires_title(tmp_path):
    with pytest.raises(ScaffoldError, match="title is required"):
        new_document(tmp_path, "   ")


def test_new_document_honours_new_post_name(tmp_path):
    target = init_project(tmp_path / "blog")
    config = load_config(target)
    config["new_post_name"] = ":year/:title.md"
    path = new_document(target, "Nested", config=config, now=NOW)
    assert path == target / "source" / "_posts" / "2024" / "nested.md"


def test_publish_draft_moves_file_and_stamps_date(tmp_path):
    target = init_project(tmp_path / "blog")
    draft = new_document(target, "Idea", "draft", now=NOW)
    assert find_draft(target, "idea", load_config(target)) == draft
    assert find_draft(target, "idea.md", load_config(target)) == draft

    published = publish_draft(target, "Idea", now=NOW)

    assert not draft.exists()
    assert published == target / "source" / "_posts" / "2024-03-05-idea.md"
    frontmatter, _ = extract_frontmatter(published.read_text(encoding="utf-8"))
    assert frontmatter["title"] == "Idea"
    assert str(frontmatter["date"]).startswith("2024-03-05 09:30:15")


def test_publish_draft_keeps_existing_date_and_handles_bare_files(tmp_path):
    target = init_project(tmp_path / "blog")
    drafts = target / "source" / "_drafts"
    (drafts / "dated.md").write_text("---\ntitle: Dated\ndate: 2020-01-01\n---\nBody\n", encoding="utf-8")
    (drafts / "bare.md").write_text("Just a body\n", encoding="utf-8")

    dated = publish_draft(target, "dated", now=NOW)
    frontmatter, _ = extract_frontmatter(dated.read_text(encoding="utf-8"))
    assert str(frontmatter["date"]) == "2020-01-01"

    bare = publish_draft(target, "bare", now=NOW)
    frontmatter, body = extract_frontmatter(bare.read_text(encoding="utf-8"))
    assert "date" in frontmatter
    assert body.strip() == "Just a body"


def test_publish_draft_unknown_name(tmp_path):
    target = init_project(tmp_path / "blog")
    with pytest.raises(ScaffoldError, match="No draft named 'ghost'"):
        publish_draft(target, "ghost")


def test_git_init_runs_when_enabled(monkeypatch, tmp_path):
    import subprocess

    from folio import scaffold

    monkeypatch.delenv("FOLIO_SKIP_GIT_INIT")
    calls = []
    monkeypatch.setattr(scaffold.shutil, "which", lambda name: "/usr/bin/git")
    monkeypatch.setattr(
        scaffold.subprocess,
        "run",
        lambda cmd, **kwargs: calls.append((cmd, kwargs["cwd"])),
    )
    target = init_project(tmp_path / "blog")
    assert calls == [(["/usr/bin/git", "init"], target)]

    def failing(cmd, **kwargs):
        raise subprocess.CalledProcessError(1, cmd)

    monkeypatch.setattr(scaffold.subprocess, "run", failing)
    init_project(tmp_path / "other")
    assert (tmp_path / "other" / "_config.yml").exists()


def test_skeleton_files_ship_with_package():
    from folio.scaffold import SKELETON_DIR

    assert (SKELETON_DIR / "_config.yml").exists()
    assert {p.name for p in (SKELETON_DIR / "scaffolds").iterdir()} == {"post.md", "page.md", "draft.md"}
    assert Path(SKELETON_DIR / "gitignore").read_text(encoding="utf-8").startswith("public/")
