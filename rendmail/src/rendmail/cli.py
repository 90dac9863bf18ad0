"""Rendmail command-line filter for mail delivery agents.

What:
  Provide a Typer-based entry point that reads one message from stdin, rewrites
  it with :func:`rendmail.core.engine.rewrite_message`, and writes the result to
  stdout, optionally saving the untouched original to a backup directory.

Why:
  Delivery agents such as procmail (``:0 fw``) and fdm (``action rewrite``)
  pipe each message through a filter command and keep their own copy when the
  filter exits non-zero. The CLI translates flags and the optional
  ``rendmail.yaml`` into :class:`~rendmail.config.schema.RewriteOptions` and maps
  failures onto exit codes the agents understand.

How:
  Resolve the reference time, load configuration, merge flag overrides, wrap
  stdin in a :class:`~rendmail.utils.backup.TeeReader` when a backup directory
  is configured, and run the engine. The tee is drained afterwards so the
  backup holds the whole input even if rewriting failed midway.

Interfaces:
  ``app`` (Typer application), ``rewrite``, ``main``.

Invariants & Safety:
  - Exit codes: ``0`` success, ``1`` processing or backup failure, ``2`` usage
    or configuration error.
  - Diagnostics go to stderr only; stdout carries nothing but the message.
"""
from __future__ import annotations

import io
import logging
import re
from datetime import datetime
from pathlib import Path
from typing import Optional

import typer

from .config.loader import ConfigLoadError, build_rewrite_options, load_config, split_list
from .core.engine import rewrite_message
from .core.errors import RewriteError
from .utils.backup import BackupError, TeeReader, drain, open_backup_file


app = typer.Typer(
    help="Reads an email message from stdin and rewrites it to stdout.",
    add_completion=False,
)

LOGGER = logging.getLogger("rendmail.cli")

_UTC_SUFFIX = re.compile(r"[zZ]$")


def parse_fake_now(value: str) -> datetime:
    """Parse an RFC 3339 timestamp such as ``2021-02-18T21:54:42.123Z``.

    Raises:
      ValueError: If the value is not RFC 3339 or lacks a UTC offset.
    """

    parsed = datetime.fromisoformat(_UTC_SUFFIX.sub("+00:00", value.strip()))
    if parsed.tzinfo is None:
        raise ValueError(f"missing UTC offset in {value!r}")
    return parsed


def _optional_list(value: Optional[str]) -> Optional[list[str]]:
    return None if value is None else split_list(value)


@app.command()
def rewrite(
    backup_dir: Optional[Path] = typer.Option(
        None,
        "--backup-dir",
        help="Directory to which the original, unmodified message will be saved",
    ),
    delete_binary: Optional[bool] = typer.Option(
        None,
        "--delete-binary/--no-delete-binary",
        help="Delete common binary attachments from the message",
    ),
    delete_types: Optional[str] = typer.Option(
        None,
        "--delete-types",
        help="Comma-separated globs of attachment media types to delete",
    ),
    keep_types: Optional[str] = typer.Option(
        None,
        "--keep-types",
        help="Comma-separated glob overrides for --delete-types",
    ),
    decode_subject: Optional[bool] = typer.Option(
        None,
        "--decode-subject/--no-decode-subject",
        help="Add an ASCII X-Rendmail-Subject field after Subject",
    ),
    strict: Optional[bool] = typer.Option(
        None,
        "--strict/--no-strict",
        help="Fail on malformed messages instead of passing the rest through",
    ),
    verbose: Optional[bool] = typer.Option(
        None,
        "--verbose/--no-verbose",
        help="Write diagnostics to stderr",
    ),
    fake_now: Optional[str] = typer.Option(
        None,
        "--fake-now",
        help="Hardcoded RFC 3339 time (only used for testing)",
    ),
    config_path: Optional[Path] = typer.Option(
        None,
        "--config",
        help="Path to rendmail.yaml (defaults to $RENDMAIL_CONFIG_PATH or standard locations)",
    ),
) -> None:
    """Rewrite one message from stdin to stdout.

    What:
      Deletes attachments matching the configured media-type globs and
      optionally decodes the Subject, leaving every other byte unchanged.

    Why:
      Intended to run as a delivery-agent filter; a non-zero exit tells the
      agent to deliver its own unmodified copy instead.

    How:
      Builds :class:`RewriteOptions` from ``rendmail.yaml`` and flags, sets up
      the optional backup tee, runs the engine, then drains and closes the
      backup.
    """

    try:
        now = parse_fake_now(fake_now) if fake_now else datetime.now().astimezone()
    except ValueError as exc:
        LOGGER.error("fake_now_invalid: %s", exc)
        raise typer.Exit(code=2) from exc

    try:
        config = load_config(config_path)
        options = build_rewrite_options(
            config,
            now=now,
            delete_types=_optional_list(delete_types),
            keep_types=_optional_list(keep_types),
            delete_binary=delete_binary,
            decode_subject=decode_subject,
            strict=strict,
            verbose=verbose,
        )
    except ConfigLoadError as exc:
        LOGGER.error("config_invalid: %s", exc)
        raise typer.Exit(code=2) from exc

    stdin = typer.get_binary_stream("stdin")
    stdout = typer.get_binary_stream("stdout")
    target = backup_dir if backup_dir is not None else config.backup_dir

    source = stdin
    backup_handle = None
    if target:
        try:
            backup_handle, backup_path = open_backup_file(Path(target), now)
        except BackupError as exc:
            LOGGER.error("backup_open_failed: %s", exc)
            raise typer.Exit(code=1) from exc
        source = io.BufferedReader(TeeReader(stdin, backup_handle))

    code = 0
    try:
        rewrite_message(source, stdout, options)
        stdout.flush()
    except (RewriteError, OSError) as exc:
        LOGGER.error("rewrite_failed: %s", exc)
        code = 1
    finally:
        if backup_handle is not None:
            # Drain so the unread portion reaches the backup after an error.
            try:
                drain(source)
            except OSError as exc:
                LOGGER.error("backup_write_failed path=%s error=%s", backup_path, exc)
                code = 1
            try:
                backup_handle.close()
            except OSError as exc:
                LOGGER.error("backup_close_failed path=%s error=%s", backup_path, exc)
                code = 1

    if code:
        raise typer.Exit(code=code)


def main() -> None:
    """Execute the Typer application entry point."""

    app()


if __name__ == "__main__":  # pragma: no cover
    main()
