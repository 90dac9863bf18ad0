"""Locate, parse and validate the optional ``rendmail.yaml`` configuration.

What:
  Provide :func:`load_config`, which resolves the configuration file from an
  explicit path, the ``RENDMAIL_CONFIG_PATH`` environment variable, or
  well-known locations, and returns a validated :class:`RendmailConfig`.

Why:
  Delivery agent recipes (``.procmailrc``, ``fdm.conf``) are awkward places to
  maintain long glob lists. A YAML file keeps the policy in one reviewable
  place while CLI flags remain available for overrides.

How:
  Candidate paths are deduplicated in precedence order. The first existing file
  is read, parsed with :func:`yaml.safe_load`, and validated by pydantic.
  Failures are wrapped in :class:`ConfigLoadError` subclasses carrying the path.

Interfaces:
  :class:`ConfigLoadError`, :class:`ConfigFileError`, :func:`load_config`,
  :func:`build_rewrite_options`, :func:`split_list`.

Invariants:
  - A missing file is only an error when the caller asked for it explicitly.
  - Nothing is cached; each CLI invocation reads the file at most once.
"""
from __future__ import annotations

import os
from datetime import datetime
from pathlib import Path
from typing import Any, Iterable, Optional, Sequence, Tuple

import yaml
from pydantic import ValidationError as _PydanticValidationError

from ..core.media_policy import BINARY_DELETE_TYPES, BINARY_KEEP_TYPES
from .schema import RendmailConfig, RewriteOptions


CONFIG_ENV = "RENDMAIL_CONFIG_PATH"
DEFAULT_LOCATIONS: Tuple[Path, ...] = (
    Path("~/.config/rendmail/rendmail.yaml"),
    Path("/etc/rendmail/rendmail.yaml"),
)


class ConfigLoadError(Exception):
    """Base error for configuration problems detected before a message is read.

    What:
      Signals that rendmail cannot start with the supplied settings.

    Why:
      The CLI maps configuration problems to exit status 2, distinct from
      failures while processing a message.

    How:
      Plain :class:`Exception` subclass; messages include the offending path or
      option.
    """


class ConfigFileError(ConfigLoadError):
    """Raised when ``rendmail.yaml`` is missing, unreadable or invalid."""


def _candidate_paths(path: Optional[Path]) -> Iterable[Path]:
    """Yield configuration locations from most to least specific, without duplicates."""

    seen: set[Path] = set()
    env_path = os.environ.get(CONFIG_ENV)
    for candidate in (path, Path(env_path) if env_path else None, *DEFAULT_LOCATIONS):
        if candidate is None:
            continue
        candidate = candidate.expanduser()
        if candidate not in seen:
            seen.add(candidate)
            yield candidate


def _parse_config_payload(text: str, source: Path) -> dict[str, Any]:
    try:
        payload = yaml.safe_load(text) or {}
    except yaml.YAMLError as exc:
        raise ConfigFileError(f"Invalid YAML in {source}: {exc}") from exc
    if not isinstance(payload, dict):
        raise ConfigFileError(f"{source} must contain a mapping at the top-level")
    return payload


def _load_from_path(path: Path) -> RendmailConfig:
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigFileError(f"Unable to read configuration file {path}: {exc}") from exc
    payload = _parse_config_payload(text, path)
    try:
        return RendmailConfig.model_validate(payload)
    except _PydanticValidationError as exc:
        raise ConfigFileError(f"Invalid configuration in {path}: {exc}") from exc


def load_config(path: Optional[Path | str] = None) -> RendmailConfig:
    """Resolve and validate the rendmail configuration.

    What:
      Returns the settings from the first configuration file found, or the
      built-in defaults when there is none.

    Why:
      Most installations run without a file; those that have one should not
      need to pass ``--config`` from every recipe.

    How:
      An explicit ``path`` must exist. Otherwise ``RENDMAIL_CONFIG_PATH`` and
      :data:`DEFAULT_LOCATIONS` are tried in order.

    Args:
      path: Optional explicit location passed via ``--config``.

    Raises:
      ConfigFileError: If the explicit file is missing or any file found is
        unreadable, not YAML, or fails validation.
    """

    requested = Path(path).expanduser() if path is not None else None
    if requested is not None and not requested.exists():
        raise ConfigFileError(f"Configuration file missing: {requested}")
    for candidate in _candidate_paths(requested):
        if candidate.is_file():
            return _load_from_path(candidate)
    return RendmailConfig()


def split_list(value: str) -> list[str]:
    """Split a comma-separated option, trimming items and dropping empty ones."""

    return [item.strip() for item in value.split(",") if item.strip()]


def build_rewrite_options(
    config: RendmailConfig,
    *,
    now: datetime,
    delete_types: Optional[Sequence[str]] = None,
    keep_types: Optional[Sequence[str]] = None,
    delete_binary: Optional[bool] = None,
    decode_subject: Optional[bool] = None,
    strict: Optional[bool] = None,
    verbose: Optional[bool] = None,
) -> RewriteOptions:
    """Merge CLI overrides (``None`` meaning "not given") onto ``config``.

    Explicit ``delete_types``/``keep_types`` on the command line replace a
    ``delete_binary`` setting from the file; combining them with an explicit
    ``delete_binary=True`` is an error, as is a file that sets both.

    Raises:
      ConfigLoadError: If the binary presets are combined with explicit globs,
        or a glob is malformed.
    """

    cli_globs = bool(delete_types) or bool(keep_types)
    if delete_binary is None:
        binary = config.delete_binary and not cli_globs
        conflict = binary and bool(config.delete_types or config.keep_types)
    else:
        binary = delete_binary
        conflict = binary and cli_globs
    if conflict:
        raise ConfigLoadError("--delete-binary is incompatible with --delete-types and --keep-types")

    if binary:
        delete, keep = list(BINARY_DELETE_TYPES), list(BINARY_KEEP_TYPES)
    else:
        delete = list(config.delete_types if delete_types is None else delete_types)
        keep = list(config.keep_types if keep_types is None else keep_types)

    try:
        return RewriteOptions(
            delete_media_types=tuple(delete),
            keep_media_types=tuple(keep),
            now=now,
            decode_subject=config.decode_subject if decode_subject is None else decode_subject,
            strict=config.strict if strict is None else strict,
            verbose=config.verbose if verbose is None else verbose,
            max_depth=config.max_depth,
        )
    except _PydanticValidationError as exc:
        raise ConfigLoadError(f"Invalid rewrite options: {exc}") from exc
