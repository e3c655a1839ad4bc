"""In-memory :class:`~sitepublisher.services.vcs.VersionControl` for exercising the pipeline offline.

Remote branches live in memory as lists of tree snapshots. Working copies are
real directories so the content stager can operate on them unchanged; their
history is tracked here rather than in ``.git``.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
import hashlib
import os
from pathlib import Path
import shutil

from sitepublisher.models.vcs import METADATA_DIR, PullResult, WorkingCopy
from sitepublisher.services.exceptions import VCSError


Tree = dict[str, bytes]


@dataclass(slots=True, frozen=True)
class Snapshot:
    """A commit: id, message and the full file tree it records."""

    id: str
    message: str
    tree: Mapping[str, bytes]


@dataclass(slots=True)
class _LocalState:
    repository: str
    branch: str
    history: list[Snapshot] = field(default_factory=list)
    index: Tree | None = None

    @property
    def head(self) -> Snapshot | None:
        return self.history[-1] if self.history else None

    @property
    def head_tree(self) -> Mapping[str, bytes]:
        return self.head.tree if self.head else {}


def _commit_id(parent: str | None, message: str, tree: Mapping[str, bytes]) -> str:
    digest = hashlib.sha1()
    digest.update((parent or "").encode())
    digest.update(message.encode("utf-8"))
    for name in sorted(tree):
        digest.update(name.encode("utf-8"))
        digest.update(tree[name])
    return digest.hexdigest()


def _as_bytes(value: bytes | str) -> bytes:
    return value if isinstance(value, bytes) else value.encode("utf-8")


def _walk_tree(root: Path) -> Tree:
    """Read every file under ``root`` except the metadata directory."""

    tree: Tree = {}
    for dirpath, dirnames, filenames in os.walk(root):
        dirnames[:] = sorted(d for d in dirnames if not (Path(dirpath) == root and d == METADATA_DIR))
        for filename in sorted(filenames):
            file_path = Path(dirpath, filename)
            tree[file_path.relative_to(root).as_posix()] = file_path.read_bytes()
    return tree


@dataclass(slots=True)
class InMemoryVersionControl:
    """Fake version control recording every call in :attr:`calls`.

    Operations named in :attr:`fail_on` raise :class:`VCSError` after being
    recorded, which lets tests stop the pipeline at any VCS step.
    """

    fail_on: set[str] = field(default_factory=set)
    calls: list[str] = field(default_factory=list, init=False)
    _remotes: dict[tuple[str, str], list[Snapshot]] = field(default_factory=dict, init=False)
    _local: dict[Path, _LocalState] = field(default_factory=dict, init=False)

    # ------------------------------------------------------------------
    # Remote setup and inspection
    # ------------------------------------------------------------------
    def add_remote(
        self,
        repository: str,
        branch: str,
        files: Mapping[str, bytes | str],
        *,
        message: str = "Initial commit",
    ) -> Snapshot:
        """Push a new snapshot of ``files`` onto ``branch`` of ``repository``."""

        history = self._remotes.setdefault((repository, branch), [])
        tree = {name: _as_bytes(content) for name, content in files.items()}
        parent = history[-1].id if history else None
        snapshot = Snapshot(id=_commit_id(parent, message, tree), message=message, tree=tree)
        history.append(snapshot)
        return snapshot

    def remote_history(self, repository: str, branch: str) -> list[Snapshot]:
        return list(self._remotes.get((repository, branch), []))

    def history(self, path: Path) -> list[Snapshot]:
        """Commits recorded in the working copy at ``path``, oldest first."""

        state = self._local.get(Path(path).resolve())
        return list(state.history) if state else []

    # ------------------------------------------------------------------
    # VersionControl
    # ------------------------------------------------------------------
    def clone(self, repository: str, branch: str, path: Path) -> WorkingCopy:
        self._record("clone", repository)
        history = self._remotes.get((repository, branch))
        if history is None:
            raise VCSError(repository, "clone", f"remote branch {branch} not found")

        path = Path(path)
        path.mkdir(parents=True, exist_ok=True)
        (path / METADATA_DIR).mkdir(exist_ok=True)
        state = _LocalState(repository=repository, branch=branch, history=list(history))
        self._local[path.resolve()] = state
        self._materialize(path, {}, state.head_tree)
        return WorkingCopy(path=path, repository=repository, branch=branch)

    def open(self, repository: str, branch: str, path: Path) -> WorkingCopy:
        self._record("open", repository)
        path = Path(path)
        state = self._local.get(path.resolve())
        if state is None or not (path / METADATA_DIR).is_dir():
            raise VCSError(repository, "open", f"{path} is not a git working copy")
        return WorkingCopy(path=path, repository=repository, branch=branch)

    def clean(self, wc: WorkingCopy) -> None:
        self._record("clean", wc.repository)
        state = self._state(wc, "clean")
        tracked = state.head_tree
        for name in _walk_tree(wc.path):
            if name not in tracked:
                (wc.path / name).unlink()
        self._prune_empty_dirs(wc.path)

    def checkout(self, wc: WorkingCopy, branch: str, *, force: bool = True) -> None:
        self._record("checkout", wc.repository)
        state = self._state(wc, "checkout")
        if branch != state.branch:
            raise VCSError(wc.repository, "checkout", f"branch {branch} is not tracked")
        if force:
            self._materialize(wc.path, state.head_tree, state.head_tree)
        state.index = None

    def pull(self, wc: WorkingCopy, *, force: bool = True) -> PullResult:
        self._record("pull", wc.repository)
        state = self._state(wc, "pull")
        remote = self._remotes.get((wc.repository, state.branch), [])
        before = state.head.id if state.head else None
        after = remote[-1].id if remote else None
        if before == after:
            return PullResult(updated=False, before=before, after=after)

        local_ids = [snapshot.id for snapshot in state.history]
        if not force and local_ids != [snapshot.id for snapshot in remote[: len(local_ids)]]:
            raise VCSError(wc.repository, "pull", "non-fast-forward update")

        old_tree = state.head_tree
        state.history = list(remote)
        state.index = None
        self._materialize(wc.path, old_tree, state.head_tree)
        return PullResult(updated=True, before=before, after=after)

    def stage(self, wc: WorkingCopy, pathspec: str = ".") -> None:
        self._record("stage", wc.repository)
        state = self._state(wc, "add")
        state.index = _walk_tree(wc.path)

    def commit(self, wc: WorkingCopy, message: str) -> str:
        self._record("commit", wc.repository)
        state = self._state(wc, "commit")
        tree = state.index if state.index is not None else dict(state.head_tree)
        parent = state.head.id if state.head else None
        snapshot = Snapshot(id=_commit_id(parent, message, tree), message=message, tree=tree)
        state.history.append(snapshot)
        state.index = None
        return snapshot.id

    def push(self, wc: WorkingCopy) -> None:
        self._record("push", wc.repository)
        state = self._state(wc, "push")
        self._remotes[(wc.repository, state.branch)] = list(state.history)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    def _record(self, operation: str, repository: str) -> None:
        self.calls.append(operation)
        if operation in self.fail_on:
            raise VCSError(repository, operation, "injected failure")

    def _state(self, wc: WorkingCopy, operation: str) -> _LocalState:
        state = self._local.get(Path(wc.path).resolve())
        if state is None:
            raise VCSError(wc.repository, operation, f"{wc.path} is not a git working copy")
        return state

    @staticmethod
    def _materialize(root: Path, old: Iterable[str], new: Mapping[str, bytes]) -> None:
        """Replace tracked files ``old`` with the tree ``new``."""

        for name in old:
            if name not in new:
                (root / name).unlink(missing_ok=True)
        for name, content in new.items():
            target = root / name
            if target.is_dir():
                shutil.rmtree(target)
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(content)
        InMemoryVersionControl._prune_empty_dirs(root)

    @staticmethod
    def _prune_empty_dirs(root: Path) -> None:
        for dirpath, dirnames, filenames in os.walk(root, topdown=False):
            current = Path(dirpath)
            if current == root or METADATA_DIR in current.relative_to(root).parts:
                continue
            if not any(current.iterdir()):
                current.rmdir()


__all__ = ["InMemoryVersionControl", "Snapshot"]
