"""The ordered set of file copies that populates a target working copy."""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass, field
from pathlib import Path, PurePosixPath


@dataclass(slots=True, frozen=True)
class FileCopy:
    """Copy ``source`` (absolute) to ``destination`` (relative to the working copy)."""

    source: Path
    destination: PurePosixPath
    pattern: str


@dataclass(slots=True, frozen=True)
class FileCopyPlan:
    """Copies in the order they will be applied.

    Overlapping patterns are kept as-is: when two entries share a destination
    the later one overwrites the earlier one.
    """

    entries: tuple[FileCopy, ...] = field(default_factory=tuple)

    def __iter__(self) -> Iterator[FileCopy]:
        return iter(self.entries)

    def __len__(self) -> int:
        return len(self.entries)

    @property
    def destinations(self) -> list[PurePosixPath]:
        """Unique destinations in first-seen order."""

        return list(dict.fromkeys(entry.destination for entry in self.entries))
