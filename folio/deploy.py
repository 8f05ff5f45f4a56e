"""Deployment of the built site to a static pages branch.

The public directory is mirrored into a ``.deploy_git`` work tree, committed,
and force-pushed to the configured repository and branch, the layout GitHub
Pages and similar hosts serve from.
"""

from __future__ import annotations

import shutil
import subprocess
from datetime import datetime
from pathlib import Path
from typing import Any, Callable

from .errors import DeployError

DEPLOY_DIR = ".deploy_git"

Runner = Callable[..., subprocess.CompletedProcess]


def _git(git_bin: str, args: list[str], cwd: Path, runner: Runner) -> subprocess.CompletedProcess:
    try:
        result = runner([git_bin, *args], cwd=cwd, capture_output=True, text=True)
    except OSError as exc:
        raise DeployError(f"Could not run git {args[0]}: {exc}") from exc
    if result.returncode != 0:
        detail = (result.stderr or result.stdout or "").strip()
        raise DeployError(f"git {args[0]} failed: {detail}")
    return result


def _mirror(public_dir: Path, work_dir: Path) -> None:
    """Replace everything in ``work_dir`` except ``.git`` with ``public_dir``."""
    for child in work_dir.iterdir():
        if child.name == ".git":
            continue
        if child.is_dir():
            shutil.rmtree(child)
        else:
            child.unlink()
    shutil.copytree(public_dir, work_dir, dirs_exist_ok=True)
    # Keep GitHub Pages from running its own Jekyll build over the output.
    (work_dir / ".nojekyll").touch()


def deploy_site(
    project_root: Path,
    config: dict[str, Any],
    runner: Runner = subprocess.run,
    now: datetime | None = None,
) -> str:
    """Commit the public directory and push it to the deploy target.

    Args:
        project_root: Root directory of the blog project.
        config: Site configuration; ``deploy.repo`` is required.
        runner: Callable used to run git, ``subprocess.run`` by default.
        now: Time substituted for ``{now}`` in the commit message.

    Returns:
        The commit message used.

    Raises:
        DeployError: If the target is not configured, git is missing, there
            is nothing to deploy, or a git command fails.
    """
    options = config.get("deploy") or {}
    repo = str(options.get("repo") or "").strip()
    if not repo:
        raise DeployError("No deploy.repo configured in _config.yml")
    branch = str(options.get("branch") or "gh-pages")

    git_bin = shutil.which("git")
    if not git_bin:
        raise DeployError("git is not installed or not on PATH")

    public_dir = project_root / config.get("public_dir", "public")
    if not public_dir.is_dir() or not any(public_dir.iterdir()):
        raise DeployError(f"Nothing to deploy in {public_dir.name}/; run `folio generate` first")

    work_dir = project_root / DEPLOY_DIR
    if not (work_dir / ".git").exists():
        work_dir.mkdir(parents=True, exist_ok=True)
        _git(git_bin, ["init"], work_dir, runner)

    _mirror(public_dir, work_dir)

    stamp = (now or datetime.now()).strftime("%Y-%m-%d %H:%M:%S")
    message = str(options.get("message") or "Site updated: {now}").replace("{now}", stamp)
    _git(git_bin, ["add", "--all"], work_dir, runner)
    status = _git(git_bin, ["status", "--porcelain"], work_dir, runner)
    if (status.stdout or "").strip():
        _git(git_bin, ["commit", "-m", message], work_dir, runner)
    _git(git_bin, ["push", "--force", repo, f"HEAD:{branch}"], work_dir, runner)
    return message
