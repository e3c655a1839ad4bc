"""Schema of the ``publisher.yml`` configuration file."""

from __future__ import annotations

from pathlib import Path
import re

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr, field_validator

from sitepublisher.models.target import TargetDescriptor
from sitepublisher.services.exceptions import ConfigError


DEFAULT_BRANCH = "gh-pages"
_REPOSITORY_RE = re.compile(r"^[A-Za-z0-9_.-]+/[A-Za-z0-9_.-]+$")


def _strip_optional(value: str | None) -> str | None:
    if value is None:
        return None
    stripped = str(value).strip()
    return stripped or None


class TargetConfig(BaseModel):
    """One entry under ``targets``; ``files``/``preRunScript``/``commitMessage`` override the globals."""

    model_config = ConfigDict(populate_by_name=True, extra="forbid")

    github_repo: str = Field(alias="githubRepo")
    branch: str = DEFAULT_BRANCH
    custom_url: str | None = Field(default=None, alias="customURL")
    files: list[str] | None = None
    pre_run_script: str | None = Field(default=None, alias="preRunScript")
    commit_message: str | None = Field(default=None, alias="commitMessage")

    @field_validator("github_repo")
    @classmethod
    def _validate_repo(cls, value: str) -> str:
        value = value.strip()
        if not _REPOSITORY_RE.match(value):
            raise ValueError("githubRepo must look like 'owner/name'")
        if any(part in {".", ".."} for part in value.split("/")):
            raise ValueError("githubRepo owner and name cannot be '.' or '..'")
        return value

    @field_validator("branch")
    @classmethod
    def _validate_branch(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("branch cannot be empty")
        return value

    @field_validator("custom_url", "pre_run_script")
    @classmethod
    def _strip(cls, value: str | None) -> str | None:
        return _strip_optional(value)


class PublisherConfig(BaseModel):
    """Top-level configuration: shared settings plus the named targets."""

    model_config = ConfigDict(populate_by_name=True, extra="forbid")

    pre_run_script: str | None = Field(default=None, alias="preRunScript")
    files: list[str] = Field(default_factory=list)
    commit_message: str | None = Field(default=None, alias="commitMessage")
    targets: dict[str, TargetConfig] = Field(min_length=1)

    _source: Path | None = PrivateAttr(default=None)

    @field_validator("pre_run_script")
    @classmethod
    def _strip(cls, value: str | None) -> str | None:
        return _strip_optional(value)

    @field_validator("files")
    @classmethod
    def _validate_files(cls, value: list[str]) -> list[str]:
        return [pattern.strip() for pattern in value if pattern and pattern.strip()]

    @property
    def source(self) -> Path | None:
        return self._source

    def with_source(self, path: Path) -> "PublisherConfig":
        self._source = Path(path)
        return self

    def resolve_target(self, name: str) -> TargetDescriptor:
        """Merge the shared settings into target ``name`` and freeze the result."""

        source = self._source or Path("publisher.yml")
        target = self.targets.get(name)
        if target is None:
            valid = ", ".join(sorted(self.targets))
            raise ConfigError(source, f"{name} is not a valid deployment target (choose from: {valid})")

        files = target.files if target.files is not None else self.files
        files = [pattern.strip() for pattern in files if pattern and pattern.strip()]
        if not files:
            raise ConfigError(source, f"target {name} does not list any files to publish")

        commit_message = target.commit_message or self.commit_message
        if not commit_message or not commit_message.strip():
            raise ConfigError(source, f"target {name} has no commit message")

        # an explicit empty preRunScript on the target disables the shared one
        if "pre_run_script" in target.model_fields_set:
            pre_run = target.pre_run_script
        else:
            pre_run = self.pre_run_script

        return TargetDescriptor(
            name=name,
            repository=target.github_repo,
            branch=target.branch,
            files=tuple(files),
            commit_message=commit_message,
            pre_run_command=pre_run,
            custom_domain=target.custom_url,
        )
