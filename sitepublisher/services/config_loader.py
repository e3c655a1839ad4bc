"""Load ``publisher.yml``: render template variables, parse YAML, validate."""

from __future__ import annotations

from collections.abc import Mapping
from datetime import datetime
import os
from pathlib import Path
from typing import Any

from jinja2 import Environment, StrictUndefined, TemplateError
from pydantic import ValidationError
import yaml

from sitepublisher.models.config import PublisherConfig
from sitepublisher.services.exceptions import ConfigError


DEFAULT_CONFIG_PATH = Path("publisher.yml")
DEFAULT_COMMIT_MESSAGE = "Publish {{ SHA }}"
DATE_FORMAT = "%m-%d-%Y"
REPOS_DIR_ENV = "SITEPUBLISHER_REPOS_DIR"


def build_variables(sha: str, tag: str | None = None, now: datetime | None = None) -> dict[str, str]:
    """Return the ``SHA``/``TAG``/``DATE`` variables available to the config template."""

    moment = now or datetime.now().astimezone()
    return {
        "SHA": sha,
        "TAG": tag or "",
        "DATE": moment.strftime(DATE_FORMAT),
    }


def _environment() -> Environment:
    return Environment(undefined=StrictUndefined, keep_trailing_newline=True, autoescape=False)


def render_template(text: str, variables: Mapping[str, str], *, source: Path) -> str:
    try:
        return _environment().from_string(text).render(**variables)
    except TemplateError as exc:
        raise ConfigError(source, f"template error: {exc}") from exc


def _format_validation_error(exc: ValidationError) -> str:
    problems = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ()))
        problems.append(f"{location}: {error.get('msg')}" if location else str(error.get("msg")))
    return "; ".join(problems)


def parse_config(text: str, variables: Mapping[str, str], *, source: Path = DEFAULT_CONFIG_PATH) -> PublisherConfig:
    """Render ``text`` with ``variables`` and validate it as a :class:`PublisherConfig`."""

    rendered = render_template(text, variables, source=source)
    try:
        payload: Any = yaml.safe_load(rendered)
    except yaml.YAMLError as exc:
        raise ConfigError(source, f"could not parse YAML: {exc}") from exc

    if not isinstance(payload, dict):
        raise ConfigError(source, "top level must be a mapping")

    try:
        config = PublisherConfig.model_validate(payload)
    except ValidationError as exc:
        raise ConfigError(source, _format_validation_error(exc)) from exc

    if config.commit_message is None:
        config.commit_message = render_template(DEFAULT_COMMIT_MESSAGE, variables, source=source)
    return config.with_source(source)


def load_config(path: Path, variables: Mapping[str, str]) -> PublisherConfig:
    """Read and parse the configuration file at ``path``."""

    path = Path(path)
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigError(path, f"could not read file: {exc}") from exc
    return parse_config(text, variables, source=path)


def default_repos_dir() -> Path:
    """Directory holding target working copies, overridable via ``SITEPUBLISHER_REPOS_DIR``."""

    override = os.getenv(REPOS_DIR_ENV)
    if override:
        return Path(override).expanduser()
    return Path.home() / ".sitepublisher" / "repos"


def working_copy_path(repository: str, repos_dir: Path | None = None) -> Path:
    """Return ``<repos dir>/<owner>/<name>`` for ``repository``."""

    return (repos_dir or default_repos_dir()) / repository


__all__ = [
    "DEFAULT_COMMIT_MESSAGE",
    "build_variables",
    "default_repos_dir",
    "load_config",
    "parse_config",
    "render_template",
    "working_copy_path",
]
