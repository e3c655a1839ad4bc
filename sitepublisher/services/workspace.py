"""Bring a target repository's local working copy to a clean, up-to-date state."""

from __future__ import annotations

from dataclasses import dataclass
import logging
from pathlib import Path

from sitepublisher.models.target import TargetDescriptor
from sitepublisher.models.vcs import PullResult, WorkingCopy
from sitepublisher.services.vcs import VersionControl


logger = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class PreparedWorkspace:
    """A ready working copy and how it got that way."""

    working_copy: WorkingCopy
    cloned: bool
    pull: PullResult | None = None


def needs_clone(path: Path) -> bool:
    """Return ``True`` when ``path`` is absent or an empty directory."""

    path = Path(path)
    if not path.exists():
        return True
    return path.is_dir() and not any(path.iterdir())


@dataclass(slots=True)
class WorkspacePreparer:
    """Clone the target repository, or reset an existing working copy to the remote tip."""

    vcs: VersionControl

    def prepare(self, target: TargetDescriptor, path: Path) -> PreparedWorkspace:
        """Return a working copy at ``path`` mirroring the tip of ``target.branch``.

        Any failing step raises :class:`~sitepublisher.services.exceptions.VCSError`;
        nothing is retried.
        """

        path = Path(path)
        if needs_clone(path):
            logger.debug("Target repo %s does not exist, cloning...", target.repository)
            working_copy = self.vcs.clone(target.repository, target.branch, path)
            logger.debug("Successfully cloned repo %s", target.repository)
            return PreparedWorkspace(working_copy=working_copy, cloned=True)

        logger.debug("Target repo %s exists, opening and setting up", target.repository)
        working_copy = self.vcs.open(target.repository, target.branch, path)
        self.vcs.clean(working_copy)
        self.vcs.checkout(working_copy, target.branch, force=True)
        pull = self.vcs.pull(working_copy, force=True)
        if not pull.updated:
            logger.debug("Repo %s already up to date", target.repository)
        logger.debug("Successfully opened repo %s", target.repository)
        return PreparedWorkspace(working_copy=working_copy, cloned=False, pull=pull)


__all__ = ["PreparedWorkspace", "WorkspacePreparer", "needs_clone"]
