"""Shared helpers: JSON diagnostics on stderr and the backup tee."""

from .backup import BackupError, TeeReader, open_backup_file
from .logging import JsonLogger, get_logger

__all__ = [
    "get_logger",
    "JsonLogger",
    "BackupError",
    "TeeReader",
    "open_backup_file",
]
