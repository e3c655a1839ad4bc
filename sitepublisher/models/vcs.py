"""Data structures describing local working copies of target repositories."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path


METADATA_DIR = ".git"


@dataclass(slots=True, frozen=True)
class WorkingCopy:
    """A local directory bound to exactly one remote branch of one repository."""

    path: Path
    repository: str
    branch: str

    @property
    def metadata_path(self) -> Path:
        return self.path / METADATA_DIR


@dataclass(slots=True, frozen=True)
class PullResult:
    """Outcome of synchronising a working copy with its remote branch.

    ``updated`` is ``False`` when the remote had nothing new; that is a
    successful pull, not an error.
    """

    updated: bool
    before: str | None = None
    after: str | None = None
