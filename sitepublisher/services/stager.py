"""Populate a target working copy with the configured build output.

File selection follows a simple placement rule: a pattern spanning
subdirectories (``build/*``) drops its first path segment at the destination,
while a bare filename pattern (``README.md``) lands at the working-copy root.
"""

from __future__ import annotations

import glob
import logging
from pathlib import Path, PurePosixPath
import shutil
from typing import Iterable, Iterator

from sitepublisher.models.plan import FileCopy, FileCopyPlan
from sitepublisher.models.vcs import METADATA_DIR
from sitepublisher.services.exceptions import FilesystemError, GlobPatternError


logger = logging.getLogger(__name__)

CNAME_FILENAME = "CNAME"


def empty_working_copy(path: Path) -> list[str]:
    """Remove every top-level entry of ``path`` except the ``.git`` metadata.

    Returns the names that were removed. The first failure raises
    :class:`FilesystemError`; entries already removed stay removed.
    """

    root = Path(path)
    logger.debug("Emptying directory %s", root)
    try:
        entries = sorted(root.iterdir())
    except OSError as exc:
        raise FilesystemError(root, f"failed to read items in target dir: {exc}") from exc

    removed: list[str] = []
    for entry in entries:
        if entry.name == METADATA_DIR:
            continue
        try:
            if entry.is_dir() and not entry.is_symlink():
                shutil.rmtree(entry)
            else:
                entry.unlink()
        except OSError as exc:
            raise FilesystemError(entry, f"failed to remove: {exc}") from exc
        removed.append(entry.name)
    return removed


def _normalise_pattern(pattern: str) -> PurePosixPath:
    if not pattern or not pattern.strip():
        raise GlobPatternError(pattern, "pattern is empty")
    normalised = PurePosixPath(pattern.strip())
    if normalised.is_absolute():
        raise GlobPatternError(pattern, "pattern must be relative to the source root")
    if ".." in normalised.parts:
        raise GlobPatternError(pattern, "pattern must not leave the source root")
    if not normalised.parts:
        raise GlobPatternError(pattern, "pattern does not name any file")
    return normalised


def destination_for(pattern: str, match: str | PurePosixPath) -> PurePosixPath:
    """Return where ``match`` (relative to the source root) lands in the working copy."""

    components = _normalise_pattern(pattern).parts
    matched = PurePosixPath(match)
    if len(components) == 1:
        return matched
    return PurePosixPath(*matched.parts[1:])


def _expand(pattern: str, normalised: PurePosixPath, source_root: Path) -> list[str]:
    try:
        matches = glob.glob(str(normalised), root_dir=source_root, include_hidden=True)
    except (OSError, ValueError) as exc:
        raise GlobPatternError(pattern, str(exc)) from exc
    return sorted(PurePosixPath(match).as_posix() for match in matches)


def _files_under(source_root: Path, relative: str) -> Iterator[PurePosixPath]:
    """Yield ``relative`` itself, or every file beneath it when it is a directory.

    Anything inside or named ``.git`` is skipped, whether it is a metadata
    directory or a gitfile left by a worktree or submodule.
    """

    matched = PurePosixPath(relative)
    if METADATA_DIR in matched.parts:
        logger.debug("Skipping repository metadata %s", matched)
        return
    candidate = source_root / relative
    if not candidate.is_dir():
        yield matched
        return
    for child in sorted(candidate.rglob("*")):
        child_relative = PurePosixPath(child.relative_to(source_root).as_posix())
        if METADATA_DIR in child_relative.parts or child.is_dir():
            continue
        yield child_relative


def resolve_files(patterns: Iterable[str], source_root: Path) -> FileCopyPlan:
    """Expand ``patterns`` in order against ``source_root`` into a copy plan.

    Matches are not de-duplicated across patterns: when two patterns produce
    the same destination the later copy overwrites the earlier one.
    """

    source_root = Path(source_root)
    entries: list[FileCopy] = []
    for pattern in patterns:
        normalised = _normalise_pattern(pattern)
        matches = _expand(pattern, normalised, source_root)
        if not matches:
            logger.warning("File pattern %r did not match anything in %s", pattern, source_root)
            continue

        for match in matches:
            for relative in _files_under(source_root, match):
                destination = destination_for(pattern, relative)
                if not destination.parts:
                    raise GlobPatternError(pattern, f"match {relative} has no destination path")
                entries.append(FileCopy(source=source_root / relative, destination=destination, pattern=pattern))

    return FileCopyPlan(entries=tuple(entries))


def copy_files(plan: FileCopyPlan, destination_root: Path) -> int:
    """Copy every planned file (contents and permission bits) under ``destination_root``.

    Stops at the first failure. Returns the number of files copied.
    """

    destination_root = Path(destination_root)
    copied = 0
    for entry in plan:
        target = destination_root / entry.destination
        logger.debug("Copying %s...", entry.source)
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            shutil.copy(entry.source, target)
        except OSError as exc:
            raise FilesystemError(entry.source, f"failed to copy {entry.source} to {target}: {exc}") from exc
        copied += 1
    return copied


def write_custom_domain_file(path: Path, domain: str | None) -> bool:
    """Write ``CNAME`` with exactly ``domain`` when one is configured."""

    if not domain:
        return False
    cname_path = Path(path) / CNAME_FILENAME
    try:
        cname_path.write_bytes(domain.encode("utf-8"))
    except OSError as exc:
        raise FilesystemError(cname_path, f"failed to write CNAME file: {exc}") from exc
    return True


__all__ = [
    "CNAME_FILENAME",
    "copy_files",
    "destination_for",
    "empty_working_copy",
    "resolve_files",
    "write_custom_domain_file",
]
