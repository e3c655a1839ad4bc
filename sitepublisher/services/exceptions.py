"""Exception hierarchy raised by the publish pipeline."""

from __future__ import annotations

from pathlib import Path


class PublisherError(Exception):
    """Base class for every failure surfaced by the publisher."""


class VCSError(PublisherError):
    """A version-control operation failed for a target repository."""

    def __init__(self, repository: str, operation: str, detail: str = "") -> None:
        self.repository = repository
        self.operation = operation
        self.detail = detail
        message = f"git {operation} failed for repo {repository}"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)


class FilesystemError(PublisherError):
    """Reading, removing, copying or writing a path failed."""

    def __init__(self, path: Path | str, detail: str = "") -> None:
        self.path = Path(path)
        self.detail = detail
        message = f"filesystem operation failed for {self.path}"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)


class GlobPatternError(PublisherError):
    """A configured file pattern could not be resolved."""

    def __init__(self, pattern: str, detail: str = "") -> None:
        self.pattern = pattern
        self.detail = detail
        message = f"invalid file pattern {pattern!r}"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)


class PreRunError(PublisherError):
    """The pre-run command could not be started or exited non-zero."""

    def __init__(self, command: str, returncode: int | None, detail: str = "") -> None:
        self.command = command
        self.returncode = returncode
        self.detail = detail
        if returncode is None:
            message = f"preRun command {command!r} could not be executed"
        else:
            message = f"preRun command {command!r} exited with status {returncode}"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)


class ConfigError(PublisherError):
    """The publisher configuration file is missing or invalid."""

    def __init__(self, path: Path | str, detail: str) -> None:
        self.path = Path(path)
        self.detail = detail
        super().__init__(f"invalid config {self.path}: {detail}")


class PublishStepError(PublisherError):
    """A pipeline step failed; the underlying error is chained as ``__cause__``."""

    def __init__(self, target: str, step: str, cause: BaseException) -> None:
        self.target = target
        self.step = step
        super().__init__(f"target {target!r} failed at step {step}: {cause}")


__all__ = [
    "ConfigError",
    "FilesystemError",
    "GlobPatternError",
    "PreRunError",
    "PublishStepError",
    "PublisherError",
    "VCSError",
]
