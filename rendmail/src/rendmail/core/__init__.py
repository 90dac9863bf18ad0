"""Rewrite engine and the message-format helpers it is built from.

What:
  Expose the engine entry point together with the error type and the
  media-type policy helpers used by configuration validation.

Why:
  ``rendmail.config`` imports the glob validator from this package while the
  engine refers back to the configuration models. Resolving names on first
  access keeps either side importable on its own.

How:
  ``__getattr__`` maps each public name to the submodule that owns it and
  imports that submodule when the name is first requested.

Interfaces:
  ``rewrite_message``, ``MessageRewriter``, ``RewriteError``, ``ErrorKind``,
  ``FoldingLineReader``, ``should_delete``, ``validate_glob``.
"""

from __future__ import annotations

from typing import Any

__all__ = [
    "rewrite_message",
    "MessageRewriter",
    "RewriteError",
    "ErrorKind",
    "FoldingLineReader",
    "should_delete",
    "validate_glob",
]


def __getattr__(name: str) -> Any:
    """Import the owning submodule of ``name`` lazily.

    Raises:
      AttributeError: If ``name`` is not part of the public surface.
    """

    if name in {"rewrite_message", "MessageRewriter"}:
        from . import engine

        return getattr(engine, name)
    if name in {"RewriteError", "ErrorKind"}:
        from . import errors

        return getattr(errors, name)
    if name == "FoldingLineReader":
        from . import reader

        return reader.FoldingLineReader
    if name in {"should_delete", "validate_glob"}:
        from . import media_policy

        return getattr(media_policy, name)
    raise AttributeError(name)
