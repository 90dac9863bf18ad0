"""Pydantic models describing rewrite options and the rendmail config file."""
from __future__ import annotations

from datetime import datetime
from typing import List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..core.media_policy import validate_glob


DEFAULT_MAX_DEPTH = 64
"""Deepest multipart nesting accepted before the message is treated as malformed."""


def _local_now() -> datetime:
    return datetime.now().astimezone()


class RewriteOptions(BaseModel):
    """Immutable settings for a single :func:`~rendmail.core.engine.rewrite_message` run.

    Globs are validated on construction, so a malformed pattern is reported
    before any input is consumed.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    delete_media_types: Tuple[str, ...] = ()
    keep_media_types: Tuple[str, ...] = ()
    now: datetime = Field(default_factory=_local_now)
    decode_subject: bool = False
    strict: bool = False
    verbose: bool = False
    max_depth: int = Field(default=DEFAULT_MAX_DEPTH, gt=0)

    @field_validator("delete_media_types", "keep_media_types")
    @classmethod
    def _validate_globs(cls, value: Tuple[str, ...]) -> Tuple[str, ...]:
        for pattern in value:
            validate_glob(pattern)
        return value


class RendmailConfig(BaseModel):
    """Root document of ``rendmail.yaml``; every key mirrors a CLI option."""

    model_config = ConfigDict(extra="forbid")

    delete_types: List[str] = Field(default_factory=list)
    keep_types: List[str] = Field(default_factory=list)
    delete_binary: bool = False
    decode_subject: bool = False
    strict: bool = False
    verbose: bool = False
    backup_dir: Optional[str] = None
    max_depth: int = Field(default=DEFAULT_MAX_DEPTH, gt=0)

    @field_validator("delete_types", "keep_types")
    @classmethod
    def _validate_globs(cls, value: List[str]) -> List[str]:
        for pattern in value:
            validate_glob(pattern)
        return value
