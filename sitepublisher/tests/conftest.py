"""Shared fixtures and helpers for the test suite."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
import shutil
import subprocess
from typing import Mapping

import pytest


requires_git = pytest.mark.skipif(shutil.which("git") is None, reason="git executable is not available")


def git(*args: str, cwd: Path | None = None) -> str:
    """Run git and return its stripped stdout, failing the test on error."""

    result = subprocess.run(
        ["git", *args],
        cwd=cwd,
        check=True,
        text=True,
        stdout=subprocess.PIPE,
        stderr=subprocess.PIPE,
    )
    return result.stdout.strip()


def write_tree(root: Path, files: Mapping[str, str]) -> None:
    """Create ``files`` (relative path to text) beneath ``root``."""

    for name, content in files.items():
        path = root / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")


def tree_of(root: Path) -> set[str]:
    """Return every file below ``root`` as a POSIX relative path, ignoring ``.git``."""

    return {
        path.relative_to(root).as_posix()
        for path in root.rglob("*")
        if path.is_file() and ".git" not in path.relative_to(root).parts
    }


def init_repo(path: Path, files: Mapping[str, str] | None = None, *, message: str = "Initial commit") -> str:
    """Initialise a git repository at ``path`` with one commit and return its SHA."""

    path.mkdir(parents=True, exist_ok=True)
    git("init", "-q", cwd=path)
    write_tree(path, files or {"README.md": "# project\n"})
    git("add", "--all", cwd=path)
    git("commit", "-q", "-m", message, cwd=path)
    return git("rev-parse", "HEAD", cwd=path)


@dataclass(slots=True)
class RemoteRepos:
    """Local bare repositories standing in for GitHub remotes."""

    root: Path

    @property
    def url_template(self) -> str:
        return str(self.root / "{repository}.git")

    def path(self, repository: str) -> Path:
        return self.root / f"{repository}.git"

    def create(self, repository: str, branch: str, files: Mapping[str, str]) -> Path:
        bare = self.path(repository)
        bare.parent.mkdir(parents=True, exist_ok=True)
        git("init", "-q", "--bare", str(bare))
        self.commit(repository, branch, files, message="Initial commit", new_branch=True)
        return bare

    def commit(
        self,
        repository: str,
        branch: str,
        files: Mapping[str, str],
        *,
        message: str,
        new_branch: bool = False,
    ) -> str:
        """Push a commit writing ``files`` onto ``branch``."""

        scratch = self.root / "_scratch"
        if scratch.exists():
            shutil.rmtree(scratch)
        if new_branch:
            scratch.mkdir(parents=True)
            git("init", "-q", cwd=scratch)
            git("symbolic-ref", "HEAD", f"refs/heads/{branch}", cwd=scratch)
            git("remote", "add", "origin", str(self.path(repository)), cwd=scratch)
        else:
            git("clone", "-q", "--branch", branch, str(self.path(repository)), str(scratch))
        write_tree(scratch, files)
        git("add", "--all", cwd=scratch)
        git("commit", "-q", "-m", message, cwd=scratch)
        git("push", "-q", "origin", branch, cwd=scratch)
        sha = git("rev-parse", "HEAD", cwd=scratch)
        shutil.rmtree(scratch)
        return sha

    def files(self, repository: str, branch: str) -> set[str]:
        listing = git("--git-dir", str(self.path(repository)), "ls-tree", "-r", "--name-only", branch)
        return set(listing.splitlines())

    def messages(self, repository: str, branch: str) -> list[str]:
        log = git("--git-dir", str(self.path(repository)), "log", "--format=%s", branch)
        return log.splitlines()

    def reject_pushes(self, repository: str) -> None:
        hook = self.path(repository) / "hooks" / "pre-receive"
        hook.write_text("#!/bin/sh\necho 'pushes are disabled' >&2\nexit 1\n", encoding="utf-8")
        hook.chmod(0o755)


@pytest.fixture(autouse=True)
def isolated_git_env(tmp_path_factory: pytest.TempPathFactory, monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep git away from the developer's configuration and give it an identity."""

    home = tmp_path_factory.mktemp("home")
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.setenv("GIT_CONFIG_NOSYSTEM", "1")
    monkeypatch.setenv("GIT_AUTHOR_NAME", "Site Publisher")
    monkeypatch.setenv("GIT_AUTHOR_EMAIL", "publisher@example.com")
    monkeypatch.setenv("GIT_COMMITTER_NAME", "Site Publisher")
    monkeypatch.setenv("GIT_COMMITTER_EMAIL", "publisher@example.com")
    monkeypatch.delenv("SITEPUBLISHER_REPOS_DIR", raising=False)
    monkeypatch.delenv("SITEPUBLISHER_LOG_LEVEL", raising=False)


@pytest.fixture
def remotes(tmp_path: Path) -> RemoteRepos:
    root = tmp_path / "remotes"
    root.mkdir()
    return RemoteRepos(root=root)


@pytest.fixture
def site_source(tmp_path: Path) -> Path:
    """A source tree with a ``dist/`` build output and a top-level README."""

    root = tmp_path / "source"
    write_tree(
        root,
        {
            "dist/index.html": "<h1>hello</h1>\n",
            "dist/css/app.css": "body { color: black; }\n",
            "README.md": "# site\n",
            "src/app.js": "console.log('not published');\n",
        },
    )
    return root
