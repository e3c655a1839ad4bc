"""Publish the current repository's build output to a configured target repository.

Typical use from the root of a project with a ``publisher.yml``::

    sitepublisher --target production --tag v1.2.0

The target repository is cloned (or refreshed) under ``SITEPUBLISHER_REPOS_DIR``
(default ``~/.sitepublisher/repos``), emptied, filled with the files matched by
the configured patterns, committed and pushed.

Logging defaults to INFO; pass ``--verbose`` or set ``SITEPUBLISHER_LOG_LEVEL``.
"""
from __future__ import annotations

import argparse
import logging
import os
from pathlib import Path

from sitepublisher.models.target import PublishContext
from sitepublisher.services.config_loader import (
    DEFAULT_CONFIG_PATH,
    build_variables,
    load_config,
    working_copy_path,
)
from sitepublisher.services.exceptions import PublisherError, PublishStepError
from sitepublisher.services.pipeline import PublishPipeline
from sitepublisher.services.vcs import GitCommandLine, VersionControl, find_repository_root, resolve_revision


LOGGER = logging.getLogger("sitepublisher.publish")


def _configure_logging(verbose: bool) -> None:
    if verbose:
        level = logging.DEBUG
    else:
        level_name = os.getenv("SITEPUBLISHER_LOG_LEVEL", "INFO").upper()
        level = getattr(logging, level_name, logging.INFO)
    logging.basicConfig(level=level, format="%(asctime)s [%(levelname)s] %(name)s: %(message)s")


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Publish build output to a GitHub Pages style repository.")
    parser.add_argument(
        "-p",
        "--path",
        type=Path,
        default=DEFAULT_CONFIG_PATH,
        help="The path to the publisher.yml config file.",
    )
    parser.add_argument("--skip-prerun", action="store_true", help="Skip preRun step.")
    parser.add_argument(
        "-t",
        "--tag",
        default="",
        help="Value exposed to the config as TAG.",
    )
    parser.add_argument("-T", "--target", required=True, help="The target to deploy.")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enables verbose logging.")
    return parser.parse_args(argv)


def run(
    argv: list[str] | None = None,
    *,
    vcs: VersionControl | None = None,
    cwd: Path | None = None,
) -> int:
    args = _parse_args(argv)
    _configure_logging(args.verbose)

    try:
        source_root = find_repository_root(cwd)
        sha = resolve_revision("HEAD", source_root)
        variables = build_variables(sha, args.tag)

        LOGGER.debug("Reading %s config", args.path)
        config_path = args.path if args.path.is_absolute() else (cwd or Path.cwd()) / args.path
        config = load_config(config_path, variables)
        target = config.resolve_target(args.target)

        context = PublishContext(
            source_root=source_root,
            working_copy_path=working_copy_path(target.repository),
            variables=variables,
        )
        pipeline = PublishPipeline(vcs=vcs or GitCommandLine())
        result = pipeline.publish(target, context, skip_pre_run=args.skip_prerun)
    except PublishStepError as exc:
        LOGGER.error("Publishing target %s failed at step %s: %s", exc.target, exc.step, exc.__cause__)
        LOGGER.debug("Failure details", exc_info=True)
        return 1
    except PublisherError as exc:
        LOGGER.error("%s", exc)
        LOGGER.debug("Failure details", exc_info=True)
        return 1

    LOGGER.info("Published %d files to %s (%s)", len(result.plan), target.repository, result.commit_id)
    LOGGER.info("Successfully published to GitHub Pages! Enjoy!")
    return 0


def main() -> None:
    raise SystemExit(run())


if __name__ == "__main__":  # pragma: no cover - script entry point
    main()
