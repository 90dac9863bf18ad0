"""Keep an untouched copy of the incoming message on disk.

What:
  Provide :class:`TeeReader`, a raw stream that copies every byte it reads to a
  sink, and :func:`open_backup_file`, which creates a uniquely named file in
  the backup directory.

Why:
  Deleting attachments is irreversible. Operators who want a safety net can
  point ``--backup-dir`` at a directory and get the exact input message,
  regardless of how far the rewrite got before an error.

How:
  The tee sits *below* the reader's buffer, so the backup receives bytes in
  the order they are pulled from stdin. After the rewrite, :func:`drain`
  reads whatever the engine left unconsumed so the backup is always complete.

Interfaces:
  :class:`BackupError`, :class:`TeeReader`, :func:`drain`, :func:`backup_prefix`,
  :func:`open_backup_file`.
"""
from __future__ import annotations

import io
import tempfile
from datetime import datetime, timezone
from pathlib import Path
from typing import BinaryIO, Tuple


class BackupError(OSError):
    """Raised when the backup copy cannot be created or completed."""


class TeeReader(io.RawIOBase):
    """Raw reader that mirrors everything read from ``source`` into ``sink``."""

    def __init__(self, source: BinaryIO, sink: BinaryIO) -> None:
        super().__init__()
        self._source = source
        self._sink = sink

    def readable(self) -> bool:
        return True

    def readinto(self, buffer) -> int:  # type: ignore[override]
        data = self._source.read(len(buffer))
        if not data:
            return 0
        try:
            self._sink.write(data)
        except OSError as exc:
            raise BackupError(f"Failed writing backup: {exc}") from exc
        buffer[: len(data)] = data
        return len(data)


def drain(stream: BinaryIO, chunk_size: int = 64 * 1024) -> None:
    """Read and discard everything left in ``stream``.

    Used on the buffered reader stacked over a :class:`TeeReader` so the bytes
    the engine never consumed still reach the backup.
    """

    while stream.read(chunk_size):
        pass


def backup_prefix(now: datetime) -> str:
    """Return the UTC timestamp prefix for backup names, e.g. ``20210218-215442.123``.

    Trailing zeros in the milliseconds are dropped, as is the fraction when it
    is zero.
    """

    utc = now.astimezone(timezone.utc)
    prefix = utc.strftime("%Y%m%d-%H%M%S")
    fraction = f"{utc.microsecond // 1000:03d}".rstrip("0")
    if fraction:
        prefix += "." + fraction
    return prefix


def open_backup_file(backup_dir: Path, now: datetime) -> Tuple[BinaryIO, Path]:
    """Create a new, uniquely named backup file inside ``backup_dir``.

    Raises:
      BackupError: If the file cannot be created.
    """

    try:
        handle = tempfile.NamedTemporaryFile(
            mode="wb",
            dir=Path(backup_dir),
            prefix=backup_prefix(now) + "-",
            delete=False,
        )
    except OSError as exc:
        raise BackupError(f"Failed creating file in {backup_dir}: {exc}") from exc
    return handle, Path(handle.name)
