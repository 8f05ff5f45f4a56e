"""Project and document scaffolding for Folio.

Key functions:
- init_project: Create a new blog project.
- new_document: Create a post, page or draft from a scaffold.
- publish_draft: Move a draft into ``_posts`` with a publication date.
"""

from __future__ import annotations

import json
import os
import re
import shutil
import subprocess
from datetime import datetime
from pathlib import Path
from typing import Any

from jinja2 import Environment

from .config import load_config, resolve_timezone
from .content import DRAFTS_DIR, POSTS_DIR
from .errors import ScaffoldError
from .frontmatter import FRONTMATTER_RE
from .utils import expand_tokens, slugify

SKELETON_DIR = Path(__file__).parent / "skeleton"

# Files stored without their leading dot so they survive packaging.
_DOTFILES = {"gitignore": ".gitignore"}

WELCOME_BODY = """\
Welcome to your new blog! This post lives in `source/_posts/`. Edit it, or
create a new one with:

```bash
folio new "My first real post"
```

<!-- more -->

## Writing posts

Every post starts with a front matter block that gives it a title, a date,
categories and tags. The body is Markdown: headings, lists, block quotes,
images and fenced code blocks all work.

```python
def hello(name):
    return f"Hello, {name}!"
```

> Run `folio server` to preview the site with live reload.
{: .prompt-info }
"""

_DATE_LINE_RE = re.compile(r"^date:.*$\n?", re.MULTILINE)


def _scaffold_env() -> Environment:
    env = Environment(keep_trailing_newline=True)
    env.filters["quote"] = lambda value: json.dumps(str(value), ensure_ascii=False)
    return env


def _format_date(value: datetime) -> str:
    return value.strftime("%Y-%m-%d %H:%M:%S %z").strip()


def init_project(target: Path) -> Path:
    """Create a new blog project in ``target``.

    Raises:
        ScaffoldError: If ``target`` exists and is not empty.
    """
    target = target.resolve()
    if target.exists() and any(target.iterdir()):
        raise ScaffoldError(f"Refusing to initialize into non-empty directory: {target}")

    for src_path in SKELETON_DIR.rglob("*"):
        if src_path.is_dir():
            continue
        rel_path = src_path.relative_to(SKELETON_DIR)
        dest_path = target / rel_path.parent / _DOTFILES.get(rel_path.name, rel_path.name)
        dest_path.parent.mkdir(parents=True, exist_ok=True)
        shutil.copy2(src_path, dest_path)

    config = load_config(target)
    source_dir = target / config["source_dir"]
    for folder in (POSTS_DIR, DRAFTS_DIR):
        (source_dir / folder).mkdir(parents=True, exist_ok=True)
    (source_dir / "assets" / "img").mkdir(parents=True, exist_ok=True)

    welcome = new_document(target, "Hello World", "post", config=config)
    with open(welcome, "a", encoding="utf-8") as f:
        f.write(WELCOME_BODY)

    _try_git_init(target)
    return target


def _try_git_init(root: Path) -> None:
    """Initialize a git repository if git is available."""
    if os.environ.get("FOLIO_SKIP_GIT_INIT") == "1":
        return
    git_bin = shutil.which("git")
    if not git_bin:
        return
    try:
        subprocess.run([git_bin, "init"], cwd=root, check=True, capture_output=True)
    except (OSError, subprocess.CalledProcessError):
        # Non-fatal: user can run git init manually
        pass


def _read_scaffold(project_root: Path, layout: str) -> str:
    """Return the scaffold text for ``layout``.

    Project scaffolds win over the packaged ones; unknown layouts use the
    post scaffold.
    """
    for folder in (project_root / "scaffolds", SKELETON_DIR / "scaffolds"):
        candidate = folder / f"{layout}.md"
        if candidate.exists():
            return candidate.read_text(encoding="utf-8")
    if layout != "post":
        return _read_scaffold(project_root, "post")
    raise ScaffoldError("No post scaffold found")


def new_document(
    project_root: Path,
    title: str,
    layout: str | None = None,
    config: dict[str, Any] | None = None,
    slug: str | None = None,
    now: datetime | None = None,
) -> Path:
    """Create a new document from a scaffold.

    Posts go to ``_posts/`` named by ``new_post_name``, drafts to
    ``_drafts/<slug>.md`` and pages to ``<slug>/index.md``. Any other layout
    name creates a post using the scaffold of that name.

    Args:
        project_root: Root directory of the blog project.
        title: Title of the document.
        layout: ``post``, ``page``, ``draft`` or a custom scaffold name.
        config: Site configuration; loaded from the project when omitted.
        slug: Slug to use instead of one derived from the title.
        now: Creation time; defaults to the current time in the site timezone.

    Returns:
        Path of the created file.

    Raises:
        ScaffoldError: If the title is empty or the target already exists.
    """
    if not title or not title.strip():
        raise ScaffoldError("A title is required")
    config = config or load_config(project_root)
    layout = layout or str(config.get("default_layout") or "post")
    now = now or datetime.now(resolve_timezone(config.get("timezone", "UTC")))
    now = now.replace(microsecond=0)
    slug = slugify(slug or title)
    source_dir = project_root / config["source_dir"]

    if layout == "page":
        target = source_dir / slug / "index.md"
    elif layout == "draft":
        target = source_dir / DRAFTS_DIR / f"{slug}.md"
    else:
        filename = expand_tokens(str(config.get("new_post_name")), now, {"title": slug})
        target = source_dir / POSTS_DIR / filename
    if target.exists():
        raise ScaffoldError(f"File already exists: {target.relative_to(project_root)}")

    template = _scaffold_env().from_string(_read_scaffold(project_root, layout))
    text = template.render(title=title.strip(), date=_format_date(now), layout=layout, slug=slug)
    if layout not in ("post", "page", "draft") and "layout:" not in text:
        text = text.replace("---\n", f"---\nlayout: {layout}\n", 1)
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_text(text, encoding="utf-8")
    return target


def find_draft(project_root: Path, name: str, config: dict[str, Any]) -> Path:
    """Locate a draft by file name, stem or slug.

    Raises:
        ScaffoldError: If no draft matches.
    """
    drafts_dir = project_root / config["source_dir"] / DRAFTS_DIR
    candidates = [drafts_dir / name, drafts_dir / f"{name}.md"]
    for candidate in candidates:
        if candidate.is_file():
            return candidate
    wanted = slugify(Path(name).stem)
    if drafts_dir.is_dir():
        for path in sorted(drafts_dir.glob("*.md")):
            if slugify(path.stem) == wanted:
                return path
    raise ScaffoldError(f"No draft named '{name}' in {drafts_dir.relative_to(project_root)}")


def publish_draft(
    project_root: Path,
    name: str,
    config: dict[str, Any] | None = None,
    now: datetime | None = None,
) -> Path:
    """Move a draft into ``_posts``, stamping its publication date.

    An existing non-empty ``date`` in the draft's front matter is kept.

    Returns:
        Path of the published post.

    Raises:
        ScaffoldError: If the draft is missing or the post already exists.
    """
    config = config or load_config(project_root)
    now = now or datetime.now(resolve_timezone(config.get("timezone", "UTC")))
    now = now.replace(microsecond=0)
    draft = find_draft(project_root, name, config)
    text = draft.read_text(encoding="utf-8")

    match = FRONTMATTER_RE.match(text)
    stamp = f"date: {_format_date(now)}\n"
    if match is None:
        text = f"---\n{stamp}---\n\n{text}"
    else:
        block = match.group(1)
        existing = re.search(r"^date:[ \t]*(\S.*)$", block, re.MULTILINE)
        if existing is None:
            block = _DATE_LINE_RE.sub("", block) + stamp
            text = f"---\n{block}---\n{text[match.end():]}"

    slug = slugify(draft.stem)
    filename = expand_tokens(str(config.get("new_post_name")), now, {"title": slug})
    target = project_root / config["source_dir"] / POSTS_DIR / filename
    if target.exists():
        raise ScaffoldError(f"File already exists: {target.relative_to(project_root)}")
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_text(text, encoding="utf-8")
    draft.unlink()
    return target
