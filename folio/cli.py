"""Command-line interface for Folio.

This module defines the CLI commands using Click framework.
It provides commands for creating blogs and posts, building the site,
previewing it with live reload and deploying it.

Commands:
- init: Scaffold a new blog project.
- new: Create a post, page or draft.
- publish: Move a draft into _posts.
- generate (build): Build the site into the public directory.
- server (serve): Run the preview server with live reload.
- clean: Remove the public directory.
- deploy: Push the built site to its deploy target.
- list: Print posts, pages, tags or categories.
"""

from __future__ import annotations

import shutil
from pathlib import Path

import click
import questionary

from . import __version__
from .errors import BuildError, FolioError


@click.group()
@click.version_option(version=__version__, prog_name="folio")
def cli():
    """Folio static blog generator."""


@cli.command()
@click.argument("name")
def init(name: str):
    """Scaffold a new blog project."""
    from .scaffold import init_project

    try:
        target = init_project(Path(name))
    except FolioError as exc:
        _fail(exc)
    click.echo(f"New Folio blog created at {target}")


@cli.command()
@click.argument("title", required=False)
@click.option("--layout", "-l", default=None, help="Scaffold to use: post, page, draft or a custom one")
@click.option("--slug", "-s", default=None, help="Slug to use instead of one derived from the title")
def new(title: str | None, layout: str | None, slug: str | None):
    """Create a new post, page or draft."""
    from .config import load_config
    from .scaffold import new_document

    project_root = Path.cwd()
    try:
        config = load_config(project_root)
        if title is None:
            layout, title = _prompt_document(layout or str(config.get("default_layout") or "post"))
        path = new_document(project_root, title, layout, config=config, slug=slug)
    except FolioError as exc:
        _fail(exc)
    click.echo(f"Created {path.relative_to(project_root)}")


@cli.command()
@click.argument("draft")
def publish(draft: str):
    """Move a draft into _posts with today's date."""
    from .scaffold import publish_draft

    project_root = Path.cwd()
    try:
        path = publish_draft(project_root, draft)
    except FolioError as exc:
        _fail(exc)
    click.echo(f"Published {path.relative_to(project_root)}")


@cli.command()
@click.option("--drafts", is_flag=True, help="Include drafts and unpublished posts")
def generate(drafts: bool):
    """Build the site into the public directory."""
    project_root = Path.cwd()
    _generate(project_root, drafts)


@cli.command()
@click.option("--drafts", is_flag=True, help="Include drafts and unpublished posts")
@click.option(
    "--port",
    type=int,
    required=False,
    help="Port to run the preview server (overrides _config.yml port)",
)
@click.option(
    "--ws-port",
    type=int,
    required=False,
    help="Port for the live reload websocket server (overrides _config.yml ws_port)",
)
def server(drafts: bool, port: int | None, ws_port: int | None):
    """Run the preview server with live reload."""
    project_root = Path.cwd()
    from .server import DevServer

    try:
        dev_server = DevServer(project_root, http_port=port, ws_port=ws_port)
        dev_server.start(include_drafts=drafts)
    except BuildError as exc:
        _report_build_error(exc, project_root)
    except FolioError as exc:
        _fail(exc)


@cli.command()
def clean():
    """Remove the public directory."""
    from .config import load_config

    project_root = Path.cwd()
    try:
        config = load_config(project_root)
    except FolioError as exc:
        _fail(exc)
    public_dir = project_root / config["public_dir"]
    if public_dir.exists():
        shutil.rmtree(public_dir)
        click.echo(f"Removed {public_dir.name}/")
    else:
        click.echo("Nothing to clean")


@cli.command()
@click.option("--generate", "-g", "regenerate", is_flag=True, help="Build the site before deploying")
def deploy(regenerate: bool):
    """Push the public directory to the configured repository."""
    from .config import load_config
    from .deploy import deploy_site

    project_root = Path.cwd()
    if regenerate:
        _generate(project_root, drafts=False)
    try:
        config = load_config(project_root)
        message = deploy_site(project_root, config)
    except FolioError as exc:
        _fail(exc)
    branch = config["deploy"].get("branch") or "gh-pages"
    click.echo(f"Deployed to {branch}: {message}")


@cli.command(name="list")
@click.argument("kind", type=click.Choice(["posts", "pages", "tags", "categories"]))
@click.option("--drafts", is_flag=True, help="Include drafts and unpublished posts")
def list_content(kind: str, drafts: bool):
    """List posts, pages, tags or categories."""
    from .collections import PostCollection, build_category_index, build_tag_index
    from .config import load_config
    from .content import ContentProcessor

    project_root = Path.cwd()
    try:
        config = load_config(project_root)
        content = ContentProcessor(project_root / config["source_dir"], config).load(include_drafts=drafts)
    except FolioError as exc:
        _fail(exc)
    posts = PostCollection(content.posts).sorted()

    if kind == "posts":
        rows = [
            (post.date.strftime("%Y-%m-%d"), post.title + (" (draft)" if post.draft else ""), post.url)
            for post in posts
        ]
    elif kind == "pages":
        rows = [(page.source_rel, page.title, page.url) for page in sorted(content.pages, key=lambda p: p.url)]
    elif kind == "tags":
        rows = [(str(len(tag)), tag.name, tag.url) for tag in build_tag_index(posts, config["tag_dir"]).values()]
    else:
        index = build_category_index(posts, config["category_dir"])
        rows = [(str(len(category)), category.full_name, category.url) for category in index.values()]

    if not rows:
        click.echo(f"No {kind} found")
        return
    widths = [max(len(row[i]) for row in rows) for i in range(2)]
    for row in rows:
        click.echo(f"{row[0]:<{widths[0]}}  {row[1]:<{widths[1]}}  {row[2]}")
    click.echo(click.style(f"{len(rows)} {kind}", dim=True))


def _generate(project_root: Path, drafts: bool) -> None:
    from .build import build_site

    try:
        result = build_site(project_root, include_drafts=drafts)
    except BuildError as exc:
        _report_build_error(exc, project_root)
    except FolioError as exc:
        _fail(exc)
    for warning in result.warnings:
        click.echo(click.style(f"Warning: {warning}", fg="yellow"), err=True)
    click.echo(
        f"Generated {len(result.posts)} posts, {len(result.pages)} pages and "
        f"{len(result.listings)} listing pages into {result.output_dir}"
    )


def _report_build_error(exc: BuildError, project_root: Path) -> None:
    """Display a build failure and exit with status 1."""
    try:
        rel_path = exc.source_path.relative_to(project_root)
    except ValueError:
        rel_path = exc.source_path
    click.echo(click.style("Build failed:", fg="red", bold=True), err=True)
    click.echo(click.style(f"  File: {rel_path}", fg="yellow"), err=True)
    click.echo(click.style(f"  Error: {exc.message}", fg="white"), err=True)
    raise SystemExit(1) from None


def _fail(exc: FolioError) -> None:
    click.echo(click.style(f"Error: {exc}", fg="red"), err=True)
    raise SystemExit(1) from None


def _prompt_document(default_layout: str) -> tuple[str, str]:
    """Ask for the layout and title of a new document."""
    choices = ["post", "page", "draft"]
    if default_layout not in choices:
        choices.insert(0, default_layout)
    layout = questionary.select(
        "Layout:",
        choices=choices,
        default=default_layout,
        style=_questionary_style(),
    ).ask()
    if layout is None:
        raise click.Abort()

    title = questionary.text(
        "Title:",
        validate=lambda x: len(x.strip()) > 0 or "Title cannot be empty",
        style=_questionary_style(),
    ).ask()
    if title is None:
        raise click.Abort()
    return layout, title.strip()


def _questionary_style():
    """Return consistent questionary style."""
    return questionary.Style(
        [
            ("qmark", "fg:cyan bold"),
            ("question", "bold"),
            ("answer", "fg:cyan"),
            ("pointer", "fg:cyan bold"),
            ("highlighted", "fg:cyan bold"),
            ("selected", "fg:cyan"),
        ]
    )


cli.add_command(generate, name="build")
cli.add_command(server, name="serve")


def main():
    """Entry point for the CLI application."""
    cli()
