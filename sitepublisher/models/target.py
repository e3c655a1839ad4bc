"""Immutable descriptions of a publish target and the invocation context."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType


GITHUB_REMOTE_TEMPLATE = "git@github.com:{repository}.git"


@dataclass(slots=True, frozen=True)
class TargetDescriptor:
    """A named destination: repository, branch, file selection and metadata."""

    name: str
    repository: str
    branch: str
    files: tuple[str, ...]
    commit_message: str
    pre_run_command: str | None = None
    custom_domain: str | None = None

    @property
    def remote_url(self) -> str:
        """SSH remote for the repository on GitHub."""

        return GITHUB_REMOTE_TEMPLATE.format(repository=self.repository)


def _freeze(values: Mapping[str, str]) -> Mapping[str, str]:
    return MappingProxyType(dict(values))


@dataclass(slots=True, frozen=True)
class PublishContext:
    """Per-invocation paths and the variables used to render configuration."""

    source_root: Path
    working_copy_path: Path
    variables: Mapping[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "source_root", Path(self.source_root))
        object.__setattr__(self, "working_copy_path", Path(self.working_copy_path))
        object.__setattr__(self, "variables", _freeze(self.variables))
