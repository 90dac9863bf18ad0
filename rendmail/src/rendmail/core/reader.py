"""Line reader that understands RFC 5322 folding without losing bytes.

What:
  Provide :class:`FoldingLineReader`, which pulls physical lines from a binary
  stream and groups continuation lines into logical header lines while keeping
  every original byte available for re-emission.

Why:
  Rewriting must be byte-exact. Generic mail parsers unfold and normalise
  header lines as they read them, which makes it impossible to reproduce the
  original terminators, folding whitespace, or malformed input. This reader
  returns the raw physical lines next to the unfolded value so the engine can
  inspect one and write the other.

How:
  Wrap the source in :class:`io.BufferedReader` when it cannot ``peek``. Lines
  are read with ``readline`` (terminator included). Folding decisions peek a
  single byte and only consume the next line when it starts with SP or HTAB.

Interfaces:
  :class:`FoldedLine`, :class:`FoldingLineReader`, :func:`trim_crlf`.

Invariants & Safety:
  - At most one byte of lookahead is ever inspected and a negative folding
    decision never consumes it.
  - ``OSError`` from the underlying stream is re-raised as a transport
    :class:`~rendmail.core.errors.RewriteError`.
"""
from __future__ import annotations

import io
import shutil
from typing import BinaryIO, List, NamedTuple, Optional

from .errors import transport_error


_FOLD_BYTES = (b" ", b"\t")


class FoldedLine(NamedTuple):
    """One logical header line.

    ``lines`` holds the original physical lines including terminators;
    ``unfolded`` is their concatenation with each trailing CRLF/LF removed.
    """

    lines: List[bytes]
    unfolded: bytes


def trim_crlf(line: bytes) -> bytes:
    """Remove a trailing ``\\r\\n`` or ``\\n`` from ``line``.

    A lone ``\\r`` is left untouched; Maildir files on Unix routinely carry
    bare ``\\n`` terminators and anything else is passed through as data.
    """

    if line.endswith(b"\n"):
        line = line[:-1]
        if line.endswith(b"\r"):
            line = line[:-1]
    return line


class FoldingLineReader:
    """Sequential reader over a single message.

    What:
      Exposes :meth:`read_line` for body copying, :meth:`read_folded_line` for
      header parsing, and :meth:`copy_remaining` for lenient recovery.

    Why:
      The rewrite engine needs two views of the same byte stream (raw lines for
      bodies, logical lines for headers) without ever re-reading or skipping
      data.

    How:
      Holds a buffered stream with ``peek`` support. All reads go through that
      one object so buffered bytes are never lost between the different views.
    """

    def __init__(self, stream: BinaryIO) -> None:
        if not hasattr(stream, "peek"):
            stream = io.BufferedReader(stream)  # type: ignore[arg-type]
        self._stream = stream

    def read_line(self) -> bytes:
        """Return the next physical line including its terminator.

        What:
          Reads up to and including the next ``\\n``.

        Why:
          Body copying works on physical lines and must write them back
          exactly as read.

        How:
          Delegates to ``readline``. An unterminated final line is returned
          once; subsequent calls (and calls at a line boundary at the end of the
          stream) return ``b""``.

        Returns:
          The raw line, or ``b""`` at end of input.

        Raises:
          RewriteError: Transport error when the stream fails.
        """

        try:
            return self._stream.readline()
        except OSError as exc:
            raise transport_error(exc) from exc

    def _peek_byte(self) -> bytes:
        try:
            return self._stream.peek(1)[:1]
        except OSError as exc:
            raise transport_error(exc) from exc

    def read_folded_line(self) -> Optional[FoldedLine]:
        """Return the next logical (possibly folded) header line.

        What:
          Reads one physical line plus every immediately following line that
          starts with a space or tab (RFC 5322 section 2.2.3).

        Why:
          Header fields may span several physical lines. The engine parses the
          unfolded value but writes the original lines verbatim.

        How:
          Read the first line; stop if it is blank. Otherwise peek one byte at a
          time and pull continuation lines while the peeked byte is SP or HTAB.
          Only terminators are removed when building ``unfolded``; the leading
          whitespace of continuation lines is kept.

        Returns:
          A :class:`FoldedLine`, or ``None`` at end of input.

        Raises:
          RewriteError: Transport error when the stream fails.
        """

        first = self.read_line()
        if not first:
            return None
        lines = [first]
        unfolded = trim_crlf(first)
        if not unfolded:
            return FoldedLine(lines, unfolded)

        while self._peek_byte() in _FOLD_BYTES:
            line = self.read_line()
            lines.append(line)
            unfolded += trim_crlf(line)
        return FoldedLine(lines, unfolded)

    def copy_remaining(self, output: BinaryIO) -> None:
        """Stream every unread byte (buffered or not) to ``output``."""

        try:
            shutil.copyfileobj(self._stream, output)
        except OSError as exc:
            raise transport_error(exc) from exc
