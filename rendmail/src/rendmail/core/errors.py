"""Error taxonomy separating transport failures from malformed messages.

What:
  Declare the single :class:`RewriteError` exception raised by the rewrite
  engine together with the :class:`ErrorKind` tag that classifies it.

Why:
  The recovery policy depends entirely on which kind of failure occurred. A
  broken pipe must abort immediately, whereas a message that violates the MIME
  structure can be salvaged by copying the remaining bytes verbatim. Encoding
  the distinction as an explicit tag lets the recovery branch test one field
  instead of relying on every producer choosing the right subclass.

How:
  ``RewriteError`` stores ``kind`` alongside the human readable message. The
  :func:`transport_error` and :func:`format_error` helpers build correctly
  tagged instances so call sites stay short.

Interfaces:
  :class:`ErrorKind`, :class:`RewriteError`, :func:`transport_error`,
  :func:`format_error`.

Invariants & Safety:
  - Every ``OSError`` raised while reading input or writing output surfaces as
    ``ErrorKind.TRANSPORT`` with the original exception chained.
  - ``ErrorKind.MESSAGE_FORMAT`` is only ever produced by structural checks on
    bytes that were already read successfully.
"""
from __future__ import annotations

from enum import Enum


class ErrorKind(Enum):
    """Classify a :class:`RewriteError`."""

    TRANSPORT = "transport"
    MESSAGE_FORMAT = "message-format"


class RewriteError(Exception):
    """Raised when a message cannot be rewritten.

    What:
      Carries a :class:`ErrorKind` tag and a description of the failure.

    Why:
      Callers decide between aborting and salvaging based on ``kind``; the CLI
      maps both kinds onto a non-zero exit status when they escape.

    How:
      Behaves like a regular exception whose ``str()`` is the description.
    """

    def __init__(self, kind: ErrorKind, message: str) -> None:
        super().__init__(message)
        self.kind = kind
        self.message = message

    @property
    def is_format_error(self) -> bool:
        return self.kind is ErrorKind.MESSAGE_FORMAT

    def __repr__(self) -> str:
        return f"RewriteError({self.kind.value!r}, {self.message!r})"


def transport_error(exc: OSError) -> RewriteError:
    """Wrap an I/O failure from the input or output stream."""

    return RewriteError(ErrorKind.TRANSPORT, str(exc) or exc.__class__.__name__)


def format_error(message: str) -> RewriteError:
    """Describe bytes that do not satisfy the header/MIME structure."""

    return RewriteError(ErrorKind.MESSAGE_FORMAT, message)
