"""Streaming rewrite engine for a single RFC 5322 / MIME message.

What:
  Copy a message from an input stream to an output stream byte for byte while
  (a) replacing MIME parts whose media type matches the deletion policy with a
  ``message/external-body`` placeholder and (b) optionally adding an ASCII
  ``X-Rendmail-Subject`` field after ``Subject``.

Why:
  Mail archives grow mostly through attachments, yet the text of old messages
  is worth keeping. Round-tripping through a MIME library would re-encode
  headers, normalise line endings and drop malformed structure, so the engine
  walks the message itself and writes back the exact bytes it read.

How:
  :class:`MessageRewriter` recursively processes message parts. Each part runs
  a small :class:`PartState` machine: the header is copied field by field
  (inspecting ``Content-Type`` and ``Subject``), a multipart body is walked
  part by part using its boundary, and the remaining body is copied up to the
  enclosing delimiter. :func:`rewrite_message` applies the recovery policy:
  message-format errors in lenient mode stop interpretation and the rest of the
  input is copied unchanged.

Interfaces:
  :class:`PartState`, :class:`HeaderData`, :class:`MessageRewriter`,
  :func:`rewrite_message`, :func:`deletion_placeholder`.

Invariants & Safety:
  - Apart from the deletion placeholder and ``X-Rendmail-Subject`` lines, every
    output byte is an input byte, in input order.
  - Only the first ``Content-Type`` field of a part is interpreted.
  - A part's body is walked as multipart only when it is ``multipart/*`` and
    not marked for deletion.
  - Nesting deeper than ``options.max_depth`` is a message-format error.
"""
from __future__ import annotations

from dataclasses import dataclass
from email.utils import format_datetime
from enum import Enum
from typing import TYPE_CHECKING, BinaryIO, List, Optional

from ..utils.logging import JsonLogger, get_logger
from .errors import RewriteError, format_error, transport_error
from .folding import fold_header_field
from .headers import (
    DEFAULT_CONTENT_TYPE,
    ContentType,
    HeaderFieldError,
    parse_content_type,
    parse_header_field,
)
from .media_policy import should_delete
from .reader import FoldingLineReader
from .transliterate import decode_header_value

if TYPE_CHECKING:
    from ..config.schema import RewriteOptions


DELETED_ACCESS_TYPE = "x-rendmail-deleted"
SUBJECT_FIELD = "X-Rendmail-Subject"

# Header bytes are ASCII in practice; surrogateescape keeps stray 8-bit bytes
# reversible and lets them fall out of transliteration as non-ASCII.
_HEADER_ENCODING = "utf-8"
_HEADER_ERRORS = "surrogateescape"


class PartState(Enum):
    """Processing stage of one message part."""

    READING_HEADER = "reading-header"
    READING_MULTIPART = "reading-multipart"
    READING_BODY = "reading-body"
    DONE = "done"


@dataclass
class HeaderData:
    """What :meth:`MessageRewriter.copy_header` learned about a part."""

    content_type: ContentType = DEFAULT_CONTENT_TYPE
    delete_part: bool = False


def deletion_placeholder(options: "RewriteOptions", term: bytes) -> bytes:
    """Return the header lines that replace a deleted part's Content-Type.

    Modelled on what mutt writes when deleting an attachment (RFC 1521 7.3.3),
    followed by the blank line that ends the synthesised header.
    """

    lines = (
        f"Content-Type: message/external-body; access-type={DELETED_ACCESS_TYPE};",
        f'\texpiration="{format_datetime(options.now)}"',
        "",
    )
    return b"".join(line.encode("ascii") + term for line in lines)


class MessageRewriter:
    """Recursive copier for one message.

    What:
      Holds the reader, the output stream and the options for a single run and
      exposes :meth:`copy_message_part`, :meth:`copy_header` and
      :meth:`copy_body`.

    Why:
      Grouping the shared state keeps the recursive methods' signatures down to
      what actually varies per part: the delimiter and the nesting depth.

    How:
      All writes funnel through :meth:`_write` so output failures surface as
      transport errors. Diagnostics go to a :class:`JsonLogger` and are only
      emitted when ``options.verbose`` is set.
    """

    def __init__(
        self,
        reader: FoldingLineReader,
        output: BinaryIO,
        options: "RewriteOptions",
        *,
        logger: Optional[JsonLogger] = None,
    ) -> None:
        self._reader = reader
        self._output = output
        self._options = options
        self._logger = logger or get_logger("rendmail.engine")

    def _write(self, data: bytes) -> None:
        try:
            self._output.write(data)
        except OSError as exc:
            raise transport_error(exc) from exc

    def _verbose(self, message: str, **kwargs: object) -> None:
        if self._options.verbose:
            self._logger.info(message, **kwargs)

    def copy_message_part(self, delim: bytes, depth: int = 0) -> bool:
        """Copy one part (header, blank line, body) terminated by ``delim``.

        What:
          Processes either the whole message (``delim == b""``) or a MIME body
          part that ends at the next line starting with ``delim``.

        Why:
          RFC 2046 body parts have the same syntax as a full message, so one
          routine handles every nesting level.

        How:
          Steps through :class:`PartState`. A non-deleted ``multipart/*`` part
          requires a non-empty ``boundary``; its preamble is copied up to the
          first ``--boundary`` line, then nested parts are copied recursively
          until a closing ``--boundary--`` line is seen. Finally the remaining
          body (or epilogue) is copied up to ``delim``.

        Args:
          delim: Enclosing delimiter (``--boundary``) or ``b""`` at top level.
          depth: Multipart nesting level of this part.

        Returns:
          ``True`` if the part ended with a closing delimiter or, at top level,
          at end of input.

        Raises:
          RewriteError: On transport failures or malformed structure.
        """

        state = PartState.READING_HEADER
        header = HeaderData()
        end = False
        while state is not PartState.DONE:
            if state is PartState.READING_HEADER:
                header = self.copy_header()
                if header.content_type.is_multipart and not header.delete_part:
                    state = PartState.READING_MULTIPART
                else:
                    state = PartState.READING_BODY
            elif state is PartState.READING_MULTIPART:
                self._copy_multipart(header, depth)
                state = PartState.READING_BODY
            else:
                end = self.copy_body(delim, header.delete_part)
                state = PartState.DONE
        return end

    def _copy_multipart(self, header: HeaderData, depth: int) -> None:
        # RFC 2046 5.1.1 caps boundaries at 70 characters, but longer ones show
        # up in real mail, so only emptiness is rejected.
        boundary = header.content_type.params.get("boundary", "")
        if not boundary:
            raise format_error(f"invalid boundary {boundary!r}")
        if depth >= self._options.max_depth:
            raise format_error(f"multipart nesting too deep (limit {self._options.max_depth})")
        sub_delim = b"--" + boundary.encode(_HEADER_ENCODING, _HEADER_ERRORS)

        # Preamble, e.g. "This is a multi-part message in MIME format."
        if self.copy_body(sub_delim, False):
            return
        while not self.copy_message_part(sub_delim, depth + 1):
            pass

    def copy_header(self) -> HeaderData:
        """Copy a part's header, including the blank line that ends it.

        What:
          Writes every header line verbatim while recording the first
          Content-Type, deciding on deletion, and appending
          ``X-Rendmail-Subject`` after ``Subject`` when enabled.

        Why:
          The header is the only place where the engine makes decisions; the
          body is either copied or skipped wholesale.

        How:
          Reads logical lines through the folding reader. The line terminator
          style is taken from the first physical line. When a part is marked for
          deletion the placeholder and a blank line are written immediately, so
          the original header lines that follow become part of the (discarded)
          body.

        Returns:
          :class:`HeaderData` for the part.

        Raises:
          RewriteError: ``missing body`` at end of input, ``malformed header
            field`` for a line without a colon (raised after the line has been
            written), or a transport error.
        """

        data = HeaderData()
        term: Optional[bytes] = None
        seen_content_type = False

        while True:
            folded = self._reader.read_folded_line()
            if folded is None:
                raise format_error("missing body")

            if term is None:
                term = b"\r\n" if folded.lines[0].endswith(b"\r\n") else b"\n"

            if not folded.unfolded:
                self._write(folded.lines[0])
                return data

            extra_lines: List[bytes] = []
            pending: Optional[RewriteError] = None
            line = folded.unfolded.decode(_HEADER_ENCODING, _HEADER_ERRORS)
            try:
                name, value = parse_header_field(line)
            except HeaderFieldError as exc:
                # Usually a missing blank line between header and body.
                pending = format_error(f"malformed header field {line!r}: {exc}")
            else:
                if name == "Content-Type" and not seen_content_type:
                    seen_content_type = True
                    self._handle_content_type(data, value, term)
                elif name == "Subject" and self._options.decode_subject:
                    extra_lines = self._subject_lines(value, term)

            for raw in folded.lines:
                self._write(raw)
            for raw in extra_lines:
                self._write(raw)

            if pending is not None:
                raise pending

    def _handle_content_type(self, data: HeaderData, value: str, term: bytes) -> None:
        content_type = parse_content_type(value)
        if content_type is None:
            self._verbose("Ignoring invalid Content-Type", value=value)
            # RFC 2045 5.2: assume the default for syntactically invalid fields.
            content_type = DEFAULT_CONTENT_TYPE
        data.content_type = content_type
        data.delete_part = should_delete(
            content_type.media_type,
            self._options.delete_media_types,
            self._options.keep_media_types,
        )
        if data.delete_part:
            self._verbose("Deleting part", media_type=content_type.media_type)
            self._write(deletion_placeholder(self._options, term))

    def _subject_lines(self, value: str, term: bytes) -> List[bytes]:
        decoded, ok = decode_header_value(value)
        if not ok or not decoded or decoded == value:
            return []
        lines = fold_header_field(f"{SUBJECT_FIELD}: {decoded}", term.decode("ascii"))
        return [line.encode("ascii") for line in lines]

    def copy_body(self, delim: bytes, delete_part: bool) -> bool:
        """Copy body lines up to and including the next line starting with ``delim``.

        What:
          Writes body lines (or drops them when ``delete_part`` is set); the
          delimiter line itself is always written.

        Why:
          Delimiters must survive deletion so the enclosing multipart stays
          well-formed.

        How:
          Reads physical lines until one begins with ``delim``. An empty
          ``delim`` never matches, so the top-level body runs to end of input.

        Returns:
          ``True`` if the delimiter line was a closing delimiter (followed by
          ``--``) or if end of input was reached with an empty ``delim``.

        Raises:
          RewriteError: ``EOF while looking for delimiter`` when the input ends
            before a non-empty ``delim``, or a transport error.
        """

        while True:
            line = self._reader.read_line()
            if not line:
                if delim:
                    # Truncated multipart or missing closing delimiter.
                    shown = delim.decode(_HEADER_ENCODING, _HEADER_ERRORS)
                    raise format_error(f"EOF while looking for delimiter {shown!r}")
                return True

            is_delim = bool(delim) and line.startswith(delim)
            if not delete_part or is_delim:
                self._write(line)
            if is_delim:
                return line[len(delim):].startswith(b"--")


def rewrite_message(
    input_stream: BinaryIO,
    output: BinaryIO,
    options: "RewriteOptions",
    *,
    logger: Optional[JsonLogger] = None,
) -> None:
    """Read one message from ``input_stream`` and write the rewritten form to ``output``.

    What:
      Runs :class:`MessageRewriter` over the top-level message and applies the
      strict/lenient recovery policy.

    Why:
      Real mailboxes contain messages that violate the format in too many ways
      to special-case. Dropping content is worse than leaving it unprocessed,
      so by default the engine salvages everything it cannot interpret.

    How:
      Message-format errors in non-strict mode are logged (when verbose) and the
      remaining unread input, including bytes already buffered by the reader,
      is copied verbatim. Transport errors and strict-mode format errors
      propagate.

    Args:
      input_stream: Binary stream positioned at the start of the message.
      output: Binary stream receiving the rewritten message.
      options: Immutable run configuration.
      logger: Optional diagnostics sink (defaults to stderr JSON lines).

    Raises:
      RewriteError: Transport failures, or format errors when ``options.strict``.
    """

    reader = FoldingLineReader(input_stream)
    logger = logger or get_logger("rendmail.engine")
    rewriter = MessageRewriter(reader, output, options, logger=logger)
    try:
        rewriter.copy_message_part(b"")
    except RewriteError as exc:
        if not exc.is_format_error or options.strict:
            raise
        if options.verbose:
            logger.warning("Ignoring error", error=exc.message)
        reader.copy_remaining(output)
