"""Orchestration layer that prepares, fills, commits and pushes a target working copy."""
from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field
import logging
from pathlib import Path
from typing import Protocol

from sitepublisher.models.publisher import PublishResult, PublishStep
from sitepublisher.models.target import PublishContext, TargetDescriptor
from sitepublisher.services import stager
from sitepublisher.services.exceptions import PublisherError, PublishStepError
from sitepublisher.services.prerun import CommandRunner
from sitepublisher.services.vcs import VersionControl
from sitepublisher.services.workspace import PreparedWorkspace, WorkspacePreparer


logger = logging.getLogger(__name__)


class SupportsPreparation(Protocol):
    """Subset of :class:`WorkspacePreparer` relied on by the pipeline."""

    def prepare(self, target: TargetDescriptor, path: Path) -> PreparedWorkspace:
        """Return a working copy mirroring the remote branch tip."""


class SupportsCommandExecution(Protocol):
    """Protocol describing the pre-run command runner."""

    def run(self, command: str, cwd: Path) -> None:
        """Run ``command`` in ``cwd``, raising when it fails."""


@dataclass(slots=True)
class PublishPipeline:
    """Publish one target: PREPARE, EMPTY, PRE_RUN, STAGE_FILES, WRITE_METADATA, VCS_ADD, VCS_COMMIT, VCS_PUSH.

    Steps run strictly in that order. The first failure raises
    :class:`PublishStepError` naming the target and step, chained to the
    underlying error. Nothing is rolled back: the next run's PREPARE step
    restores the working copy from the remote.
    """

    vcs: VersionControl
    preparer: SupportsPreparation | None = None
    runner: SupportsCommandExecution = field(default_factory=CommandRunner)

    def __post_init__(self) -> None:
        if self.preparer is None:
            self.preparer = WorkspacePreparer(self.vcs)

    def publish(
        self,
        target: TargetDescriptor,
        context: PublishContext,
        *,
        skip_pre_run: bool = False,
    ) -> PublishResult:
        """Execute every step for ``target`` and return what was done."""

        with self._step(target, PublishStep.PREPARE):
            prepared = self.preparer.prepare(target, context.working_copy_path)
        working_copy = prepared.working_copy
        result = PublishResult(
            target=target.name,
            working_copy=working_copy,
            cloned=prepared.cloned,
            pull=prepared.pull,
            completed_steps=[PublishStep.PREPARE],
        )

        with self._step(target, PublishStep.EMPTY):
            stager.empty_working_copy(working_copy.path)
        result.completed_steps.append(PublishStep.EMPTY)

        if skip_pre_run:
            logger.debug("Skipping preRun step")
        elif target.pre_run_command:
            logger.info("Executing preRun script...")
            with self._step(target, PublishStep.PRE_RUN):
                self.runner.run(target.pre_run_command, context.source_root)
            result.pre_run_executed = True
            result.completed_steps.append(PublishStep.PRE_RUN)

        logger.info("Copying files...")
        with self._step(target, PublishStep.STAGE_FILES):
            plan = stager.resolve_files(target.files, context.source_root)
            stager.copy_files(plan, working_copy.path)
        result.plan = plan
        result.completed_steps.append(PublishStep.STAGE_FILES)

        with self._step(target, PublishStep.WRITE_METADATA):
            result.cname_written = stager.write_custom_domain_file(working_copy.path, target.custom_domain)
        result.completed_steps.append(PublishStep.WRITE_METADATA)

        logger.debug("Staging files...")
        with self._step(target, PublishStep.VCS_ADD):
            self.vcs.stage(working_copy, ".")
        result.completed_steps.append(PublishStep.VCS_ADD)

        logger.debug("Committing files...")
        with self._step(target, PublishStep.VCS_COMMIT):
            result.commit_id = self.vcs.commit(working_copy, target.commit_message)
        result.completed_steps.append(PublishStep.VCS_COMMIT)

        logger.info("Pushing to branch %s in repo %s", target.branch, target.repository)
        with self._step(target, PublishStep.VCS_PUSH):
            self.vcs.push(working_copy)
        result.completed_steps.append(PublishStep.VCS_PUSH)

        return result

    @staticmethod
    @contextmanager
    def _step(target: TargetDescriptor, step: PublishStep) -> Iterator[None]:
        try:
            yield
        except (PublisherError, OSError) as exc:
            raise PublishStepError(target.name, step.value, exc) from exc


__all__ = ["PublishPipeline", "SupportsCommandExecution", "SupportsPreparation"]
