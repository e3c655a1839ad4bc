"""Data structures returned by the publish orchestrator."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from sitepublisher.models.plan import FileCopyPlan
from sitepublisher.models.vcs import PullResult, WorkingCopy


class PublishStep(str, Enum):
    """Pipeline stages, in execution order."""

    PREPARE = "prepare"
    EMPTY = "empty"
    PRE_RUN = "pre_run"
    STAGE_FILES = "stage_files"
    WRITE_METADATA = "write_metadata"
    VCS_ADD = "vcs_add"
    VCS_COMMIT = "vcs_commit"
    VCS_PUSH = "vcs_push"


@dataclass(slots=True)
class PublishResult:
    """Outcome of a successful publish."""

    target: str
    working_copy: WorkingCopy
    cloned: bool
    pull: PullResult | None = None
    pre_run_executed: bool = False
    plan: FileCopyPlan = field(default_factory=FileCopyPlan)
    cname_written: bool = False
    commit_id: str | None = None
    completed_steps: list[PublishStep] = field(default_factory=list)
