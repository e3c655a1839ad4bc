"""Tests running :class:`GitCommandLine` against local bare repositories."""

from __future__ import annotations

from pathlib import Path

import pytest

from conftest import RemoteRepos, git, init_repo, requires_git, tree_of
from sitepublisher.models.target import TargetDescriptor
from sitepublisher.services.exceptions import VCSError
from sitepublisher.services.vcs import GitCommandLine, find_repository_root, resolve_revision
from sitepublisher.services.workspace import WorkspacePreparer


pytestmark = requires_git

REPO = "octo/octo.github.io"


def _target(branch: str = "gh-pages") -> TargetDescriptor:
    return TargetDescriptor(
        name="production",
        repository=REPO,
        branch=branch,
        files=("dist/*",),
        commit_message="Publish",
    )


@pytest.fixture
def vcs(remotes: RemoteRepos) -> GitCommandLine:
    remotes.create(REPO, "gh-pages", {"index.html": "v1\n", "css/site.css": "body {}\n"})
    return GitCommandLine(url_template=remotes.url_template)


def test_default_remote_url_points_at_github() -> None:
    assert GitCommandLine().remote_url(REPO) == "git@github.com:octo/octo.github.io.git"


def test_clone_checks_out_requested_branch(tmp_path: Path, vcs: GitCommandLine) -> None:
    wc = vcs.clone(REPO, "gh-pages", tmp_path / "repos" / REPO)

    assert wc.metadata_path.is_dir()
    assert tree_of(wc.path) == {"index.html", "css/site.css"}
    assert git("rev-parse", "--abbrev-ref", "HEAD", cwd=wc.path) == "gh-pages"


def test_clone_of_unknown_branch_is_wrapped(tmp_path: Path, vcs: GitCommandLine) -> None:
    with pytest.raises(VCSError) as excinfo:
        vcs.clone(REPO, "does-not-exist", tmp_path / "wc")

    assert excinfo.value.repository == REPO
    assert excinfo.value.operation == "clone"


def test_open_refuses_directory_without_metadata(tmp_path: Path, vcs: GitCommandLine) -> None:
    plain = tmp_path / "plain"
    plain.mkdir()
    (plain / "index.html").write_text("not a repo")

    with pytest.raises(VCSError) as excinfo:
        vcs.open(REPO, "gh-pages", plain)

    assert excinfo.value.operation == "open"


def test_preparing_twice_leaves_identical_tracked_files(tmp_path: Path, vcs: GitCommandLine) -> None:
    path = tmp_path / "wc"
    preparer = WorkspacePreparer(vcs)

    first = preparer.prepare(_target(), path)
    first_files = git("ls-files", cwd=path)
    second = preparer.prepare(_target(), path)

    assert first.cloned is True
    assert second.cloned is False
    assert second.pull is not None and second.pull.updated is False
    assert git("ls-files", cwd=path) == first_files


def test_prepare_resets_local_divergence_to_remote_tip(
    tmp_path: Path, vcs: GitCommandLine, remotes: RemoteRepos
) -> None:
    path = tmp_path / "wc"
    preparer = WorkspacePreparer(vcs)
    wc = preparer.prepare(_target(), path).working_copy

    (path / "index.html").write_text("local edit\n")
    (path / "untracked.txt").write_text("leftover\n")
    (path / "build").mkdir()
    (path / "build" / "tmp.js").write_text("leftover\n")
    vcs.stage(wc)
    vcs.commit(wc, "Unpushed local commit")
    (path / "index.html").write_text("dirty again\n")
    (path / "untracked.txt").write_text("leftover\n")
    remote_tip = remotes.commit(REPO, "gh-pages", {"about.html": "about\n"}, message="Remote update")

    prepared = preparer.prepare(_target(), path)

    assert prepared.pull is not None and prepared.pull.updated is True
    assert git("rev-parse", "HEAD", cwd=path) == remote_tip
    assert tree_of(path) == {"index.html", "css/site.css", "about.html"}
    assert (path / "index.html").read_text() == "v1\n"


def test_stage_commit_and_push_publish_deletions(tmp_path: Path, vcs: GitCommandLine, remotes: RemoteRepos) -> None:
    wc = vcs.clone(REPO, "gh-pages", tmp_path / "wc")
    (wc.path / "css" / "site.css").unlink()
    (wc.path / "new.html").write_text("new\n")

    vcs.stage(wc)
    commit_id = vcs.commit(wc, "Replace stylesheet")
    vcs.push(wc)

    assert commit_id == git("rev-parse", "HEAD", cwd=wc.path)
    assert remotes.files(REPO, "gh-pages") == {"index.html", "new.html"}
    assert remotes.messages(REPO, "gh-pages")[0] == "Replace stylesheet"


def test_commit_without_changes_is_still_recorded(tmp_path: Path, vcs: GitCommandLine) -> None:
    wc = vcs.clone(REPO, "gh-pages", tmp_path / "wc")
    before = git("rev-parse", "HEAD", cwd=wc.path)

    vcs.stage(wc)
    after = vcs.commit(wc, "Republish identical output")

    assert after != before


def test_rejected_push_is_wrapped(tmp_path: Path, vcs: GitCommandLine, remotes: RemoteRepos) -> None:
    wc = vcs.clone(REPO, "gh-pages", tmp_path / "wc")
    (wc.path / "index.html").write_text("v2\n")
    vcs.stage(wc)
    vcs.commit(wc, "Update")
    remotes.reject_pushes(REPO)

    with pytest.raises(VCSError) as excinfo:
        vcs.push(wc)

    assert excinfo.value.operation == "push"
    assert "pushes are disabled" in excinfo.value.detail


def test_source_repository_helpers(tmp_path: Path) -> None:
    root = tmp_path / "project"
    sha = init_repo(root, {"README.md": "# project\n", "docs/guide.md": "guide\n"})

    assert find_repository_root(root / "docs").resolve() == root.resolve()
    assert resolve_revision("HEAD", root) == sha


def test_source_helpers_fail_outside_a_repository(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    outside = tmp_path / "nowhere"
    outside.mkdir()
    monkeypatch.setenv("GIT_CEILING_DIRECTORIES", str(tmp_path))

    with pytest.raises(VCSError) as excinfo:
        find_repository_root(outside)

    assert excinfo.value.operation == "rev-parse"
