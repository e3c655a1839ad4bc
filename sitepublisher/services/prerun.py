"""Run the configured pre-run command (usually a build) in the source repository."""

from __future__ import annotations

from dataclasses import dataclass
import logging
from pathlib import Path
import subprocess

from sitepublisher.services.exceptions import PreRunError


logger = logging.getLogger(__name__)


@dataclass(slots=True)
class CommandRunner:
    """Execute a command line with ``cwd`` set, streaming its output to ours."""

    def run(self, command: str, cwd: Path) -> None:
        args = command.split()
        if not args:
            raise PreRunError(command, None, "command is empty")

        logger.debug("Executing %s in %s", args, cwd)
        try:
            completed = subprocess.run(args, cwd=cwd, check=False)
        except (OSError, ValueError) as exc:
            raise PreRunError(command, None, str(exc)) from exc
        if completed.returncode != 0:
            raise PreRunError(command, completed.returncode)


__all__ = ["CommandRunner"]
