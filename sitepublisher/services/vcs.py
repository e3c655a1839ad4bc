"""Version-control capability used by the publish pipeline and its git implementation."""

from __future__ import annotations

from dataclasses import dataclass
import logging
from pathlib import Path
import subprocess
from typing import Protocol

from sitepublisher.models.target import GITHUB_REMOTE_TEMPLATE
from sitepublisher.models.vcs import METADATA_DIR, PullResult, WorkingCopy
from sitepublisher.services.exceptions import VCSError


logger = logging.getLogger(__name__)


class VersionControl(Protocol):
    """Operations on a single working copy tracking one remote branch."""

    def clone(self, repository: str, branch: str, path: Path) -> WorkingCopy:
        """Clone ``branch`` of ``repository`` into ``path``."""

    def open(self, repository: str, branch: str, path: Path) -> WorkingCopy:
        """Adopt an existing working copy at ``path``."""

    def clean(self, wc: WorkingCopy) -> None:
        """Remove untracked files and directories."""

    def checkout(self, wc: WorkingCopy, branch: str, *, force: bool = True) -> None:
        """Switch to ``branch``, discarding local modifications when ``force`` is set."""

    def pull(self, wc: WorkingCopy, *, force: bool = True) -> PullResult:
        """Bring the working copy to the remote branch tip."""

    def stage(self, wc: WorkingCopy, pathspec: str = ".") -> None:
        """Stage additions, modifications and deletions under ``pathspec``."""

    def commit(self, wc: WorkingCopy, message: str) -> str:
        """Record the staged tree and return the new commit id."""

    def push(self, wc: WorkingCopy) -> None:
        """Push the branch to its remote."""


def _run(
    args: list[str],
    *,
    cwd: Path | None,
    repository: str,
    operation: str,
    git_executable: str = "git",
) -> subprocess.CompletedProcess[str]:
    """Execute a git command and raise :class:`VCSError` on a non-zero exit."""

    logger.debug("Running git %s (cwd=%s)", " ".join(args), cwd)
    try:
        result = subprocess.run(
            [git_executable, *args],
            cwd=cwd,
            text=True,
            check=False,
            capture_output=True,
        )
    except OSError as exc:
        raise VCSError(repository, operation, str(exc)) from exc
    if result.returncode != 0:
        detail = result.stderr.strip() or result.stdout.strip() or f"exit status {result.returncode}"
        raise VCSError(repository, operation, detail)
    return result


@dataclass(slots=True)
class GitCommandLine:
    """:class:`VersionControl` backed by the ``git`` executable.

    ``url_template`` maps an ``owner/name`` repository identifier to the remote
    URL; it defaults to GitHub over SSH.
    """

    url_template: str = GITHUB_REMOTE_TEMPLATE
    git_executable: str = "git"

    def remote_url(self, repository: str) -> str:
        return self.url_template.format(repository=repository)

    def clone(self, repository: str, branch: str, path: Path) -> WorkingCopy:
        path = Path(path)
        url = self.remote_url(repository)
        logger.debug("Cloning repo %s to %s", repository, path)
        path.parent.mkdir(parents=True, exist_ok=True)
        self._git(
            ["clone", "--branch", branch, "--single-branch", url, str(path)],
            cwd=None,
            repository=repository,
            operation="clone",
        )
        return WorkingCopy(path=path, repository=repository, branch=branch)

    def open(self, repository: str, branch: str, path: Path) -> WorkingCopy:
        path = Path(path)
        logger.debug("Opening repo %s at path %s", repository, path)
        # rev-parse alone would happily resolve an enclosing repository
        if not (path / METADATA_DIR).exists():
            raise VCSError(repository, "open", f"{path} is not a git working copy")
        self._git(["rev-parse", "--git-dir"], cwd=path, repository=repository, operation="open")
        return WorkingCopy(path=path, repository=repository, branch=branch)

    def clean(self, wc: WorkingCopy) -> None:
        logger.debug("Cleaning %s", wc.repository)
        self._git(["clean", "-f", "-d"], cwd=wc.path, repository=wc.repository, operation="clean")

    def checkout(self, wc: WorkingCopy, branch: str, *, force: bool = True) -> None:
        logger.debug("Checking out branch %s in %s", branch, wc.repository)
        args = ["checkout"]
        if force:
            args.append("--force")
        args.append(branch)
        self._git(args, cwd=wc.path, repository=wc.repository, operation="checkout")

    def pull(self, wc: WorkingCopy, *, force: bool = True) -> PullResult:
        logger.debug("Pulling changes from remote for %s", wc.repository)
        fetch = ["fetch"]
        if force:
            fetch.append("--force")
        fetch += ["origin", wc.branch]
        self._git(fetch, cwd=wc.path, repository=wc.repository, operation="pull")

        before = self._revision(wc, "HEAD")
        after = self._revision(wc, "FETCH_HEAD")
        if before == after:
            logger.debug("Repo %s already up to date at %s", wc.repository, before)
            return PullResult(updated=False, before=before, after=after)

        if force:
            self._git(["reset", "--hard", after], cwd=wc.path, repository=wc.repository, operation="pull")
        else:
            self._git(["merge", "--ff-only", after], cwd=wc.path, repository=wc.repository, operation="pull")
        return PullResult(updated=True, before=before, after=after)

    def stage(self, wc: WorkingCopy, pathspec: str = ".") -> None:
        self._git(["add", "--all", "--", pathspec], cwd=wc.path, repository=wc.repository, operation="add")

    def commit(self, wc: WorkingCopy, message: str) -> str:
        self._git(
            ["commit", "--allow-empty", "-m", message],
            cwd=wc.path,
            repository=wc.repository,
            operation="commit",
        )
        return self._revision(wc, "HEAD", operation="commit")

    def push(self, wc: WorkingCopy) -> None:
        self._git(["push", "origin", wc.branch], cwd=wc.path, repository=wc.repository, operation="push")

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    def _revision(self, wc: WorkingCopy, ref: str, *, operation: str = "pull") -> str:
        result = self._git(["rev-parse", ref], cwd=wc.path, repository=wc.repository, operation=operation)
        return result.stdout.strip()

    def _git(
        self,
        args: list[str],
        *,
        cwd: Path | None,
        repository: str,
        operation: str,
    ) -> subprocess.CompletedProcess[str]:
        return _run(
            args,
            cwd=cwd,
            repository=repository,
            operation=operation,
            git_executable=self.git_executable,
        )


def find_repository_root(cwd: Path | None = None) -> Path:
    """Return the top-level directory of the git repository containing ``cwd``."""

    result = _run(["rev-parse", "--show-toplevel"], cwd=cwd, repository="source", operation="rev-parse")
    return Path(result.stdout.strip())


def resolve_revision(ref: str, cwd: Path | None = None) -> str:
    """Return the full SHA of ``ref`` in the repository containing ``cwd``."""

    result = _run(["rev-parse", ref], cwd=cwd, repository="source", operation=f"rev-parse {ref}")
    return result.stdout.strip()


__all__ = [
    "GitCommandLine",
    "VersionControl",
    "find_repository_root",
    "resolve_revision",
]
