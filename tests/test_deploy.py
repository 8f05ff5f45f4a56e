import subprocess
from datetime import datetime
from pathlib import Path

import pytest

from folio import deploy
from folio.deploy import DEPLOY_DIR, deploy_site
from folio.errors import DeployError


class FakeGit:
    """Records git invocations and answers with canned results."""

    def __init__(self, status="M index.html\n", fail=None):
        self.calls = []
        self.status = status
        self.fail = fail

    def __call__(self, cmd, cwd=None, **kwargs):
        args = cmd[1:]
        self.calls.append(args)
        if args[0] == "init":
            (Path(cwd) / ".git").mkdir()
        if args[0] == self.fail:
            return subprocess.CompletedProcess(cmd, 1, "", "remote rejected")
        stdout = self.status if args[0] == "status" else ""
        return subprocess.CompletedProcess(cmd, 0, stdout, "")


def make_project(tmp_path, deploy_options=None):
    public = tmp_path / "public"
    public.mkdir()
    (public / "index.html").write_text("<p>home</p>", encoding="utf-8")
    (public / "css").mkdir()
    (public / "css" / "style.css").write_text("body{}", encoding="utf-8")
    options = {"repo": "git@example.com:me/me.github.io.git"}
    options.update(deploy_options or {})
    return {"public_dir": "public", "deploy": options}


@pytest.fixture(autouse=True)
def fake_git_binary(monkeypatch):
    monkeypatch.setattr(deploy.shutil, "which", lambda name: "/usr/bin/git")


def test_deploy_site_commits_and_pushes(tmp_path):
    config = make_project(tmp_path)
    runner = FakeGit()

    message = deploy_site(tmp_path, config, runner=runner, now=datetime(2024, 3, 5, 9, 30))

    assert message == "Site updated: 2024-03-05 09:30:00"
    assert runner.calls == [
        ["init"],
        ["add", "--all"],
        ["status", "--porcelain"],
        ["commit", "-m", "Site updated: 2024-03-05 09:30:00"],
        ["push", "--force", "git@example.com:me/me.github.io.git", "HEAD:gh-pages"],
    ]
    work_dir = tmp_path / DEPLOY_DIR
    assert (work_dir / "index.html").read_text(encoding="utf-8") == "<p>home</p>"
    assert (work_dir / "css" / "style.css").exists()
    assert (work_dir / ".nojekyll").exists()


def test_deploy_site_reuses_work_tree_and_drops_stale_files(tmp_path):
    config = make_project(tmp_path, {"branch": "pages", "message": "Deploy {now}"})
    work_dir = tmp_path / DEPLOY_DIR
    (work_dir / ".git").mkdir(parents=True)
    (work_dir / ".git" / "HEAD").write_text("ref: refs/heads/pages\n", encoding="utf-8")
    (work_dir / "old.html").write_text("stale", encoding="utf-8")
    (work_dir / "old_dir").mkdir()
    runner = FakeGit()

    message = deploy_site(tmp_path, config, runner=runner, now=datetime(2024, 1, 1))

    assert message == "Deploy 2024-01-01 00:00:00"
    assert ["init"] not in runner.calls
    assert runner.calls[-1][-1] == "HEAD:pages"
    assert not (work_dir / "old.html").exists()
    assert not (work_dir / "old_dir").exists()
    assert (work_dir / ".git" / "HEAD").exists()


def test_deploy_site_skips_commit_when_nothing_changed(tmp_path):
    config = make_project(tmp_path)
    runner = FakeGit(status="")
    deploy_site(tmp_path, config, runner=runner)
    assert [call[0] for call in runner.calls] == ["init", "add", "status", "push"]


def test_deploy_site_reports_git_failures(tmp_path):
    config = make_project(tmp_path)
    with pytest.raises(DeployError, match="git push failed: remote rejected"):
        deploy_site(tmp_path, config, runner=FakeGit(fail="push"))


def test_deploy_site_reports_runner_oserror(tmp_path):
    config = make_project(tmp_path)

    def broken(cmd, **kwargs):
        raise OSError("exec format error")

    with pytest.raises(DeployError, match="Could not run git init"):
        deploy_site(tmp_path, config, runner=broken)


def test_deploy_site_requires_repo(tmp_path):
    config = make_project(tmp_path)
    config["deploy"] = {}
    with pytest.raises(DeployError, match="No deploy.repo"):
        deploy_site(tmp_path, config, runner=FakeGit())


def test_deploy_site_requires_git(monkeypatch, tmp_path):
    config = make_project(tmp_path)
    monkeypatch.setattr(deploy.shutil, "which", lambda name: None)
    with pytest.raises(DeployError, match="git is not installed"):
        deploy_site(tmp_path, config, runner=FakeGit())


def test_deploy_site_requires_generated_output(tmp_path):
    config = {"public_dir": "public", "deploy": {"repo": "origin"}}
    with pytest.raises(DeployError, match="Nothing to deploy"):
        deploy_site(tmp_path, config, runner=FakeGit())
    (tmp_path / "public").mkdir()
    with pytest.raises(DeployError, match="Nothing to deploy"):
        deploy_site(tmp_path, config, runner=FakeGit())
