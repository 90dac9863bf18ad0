"""
Module: tests/unit/test_reader.py

What:
    Exercise :class:`FoldingLineReader` on physical and logical (folded) lines.

Why:
    Byte-exact rewriting depends on the reader handing back every input byte,
    terminators included, while still exposing unfolded header values.

How:
    Feed in-memory byte streams and compare the sequence of returned values
    with the expected one, using ``b""``/``None`` to mark end of input.
"""

import io

import pytest

from rendmail.core.errors import ErrorKind, RewriteError
from rendmail.core.reader import FoldedLine, FoldingLineReader, trim_crlf


def _read_all_lines(data: bytes):
    reader = FoldingLineReader(io.BytesIO(data))
    lines = []
    while True:
        line = reader.read_line()
        lines.append(line)
        if not line:
            return lines


@pytest.mark.parametrize(
    "data, expected",
    [
        (b"", [b""]),
        (b"\n", [b"\n", b""]),
        (b"\r\n", [b"\r\n", b""]),
        (b"abc", [b"abc", b""]),
        (b"abc def\n", [b"abc def\n", b""]),
        (b"abc\r\ndef\r\n", [b"abc\r\n", b"def\r\n", b""]),
        (b"abc\ndef\n", [b"abc\n", b"def\n", b""]),
        (b"abc\ndef", [b"abc\n", b"def", b""]),
        (b"abc\r\n\r\n", [b"abc\r\n", b"\r\n", b""]),
        (b"abc\n\n\n", [b"abc\n", b"\n", b"\n", b""]),
    ],
)
def test_read_line_keeps_terminators(data: bytes, expected) -> None:
    """
    What:
        Every physical line comes back with its original terminator, followed
        by a single ``b""`` at end of input.

    Why:
        An unterminated last line must be returned exactly once and never be
        confused with end of input.
    """

    assert _read_all_lines(data) == expected


def test_read_folded_line_groups_continuations() -> None:
    """
    What:
        Continuation lines starting with SP or HTAB are grouped with their
        predecessor; ``unfolded`` drops terminators only.

    Why:
        The engine parses ``unfolded`` but writes ``lines`` verbatim, so both
        views must describe exactly the same bytes.

    How:
        Read a header block with tab, space, LF and CRLF folding until ``None``.
    """

    data = (
        b"A folded line\n\tusing a tab\n"
        b"A folded line \n  using two spaces\n"
        b"A line with a carriage return\r\n"
        b"A folded line with CRLF and \r\n a space\r\n"
        b"\n"
        b"A single line\n"
    )
    reader = FoldingLineReader(io.BytesIO(data))
    results = []
    while True:
        folded = reader.read_folded_line()
        results.append(folded)
        if folded is None:
            break

    assert results == [
        FoldedLine([b"A folded line\n", b"\tusing a tab\n"], b"A folded line\tusing a tab"),
        FoldedLine(
            [b"A folded line \n", b"  using two spaces\n"], b"A folded line   using two spaces"
        ),
        FoldedLine([b"A line with a carriage return\r\n"], b"A line with a carriage return"),
        FoldedLine(
            [b"A folded line with CRLF and \r\n", b" a space\r\n"],
            b"A folded line with CRLF and  a space",
        ),
        FoldedLine([b"\n"], b""),
        FoldedLine([b"A single line\n"], b"A single line"),
        None,
    ]


def test_blank_line_is_never_folded() -> None:
    """A blank line ends the header even when the body starts with whitespace."""

    reader = FoldingLineReader(io.BytesIO(b"\n  indented body\n"))

    assert reader.read_folded_line() == FoldedLine([b"\n"], b"")
    assert reader.read_line() == b"  indented body\n"


def test_copy_remaining_includes_buffered_bytes() -> None:
    """
    What:
        After a partial read, :meth:`copy_remaining` emits everything not yet
        returned, including bytes already pulled into the reader's buffer.

    Why:
        Lenient recovery relies on this to pass the rest of a malformed message
        through unchanged.
    """

    reader = FoldingLineReader(io.BytesIO(b"Subject: x\n\tmore\nrest\nof message"))
    reader.read_folded_line()
    out = io.BytesIO()

    reader.copy_remaining(out)

    assert out.getvalue() == b"rest\nof message"


def test_stream_failure_is_transport_error() -> None:
    """An ``OSError`` from the source is reported as ``ErrorKind.TRANSPORT``."""

    class _Broken(io.RawIOBase):
        def readable(self) -> bool:
            return True

        def readinto(self, buffer) -> int:
            raise OSError("device gone")

    reader = FoldingLineReader(io.BufferedReader(_Broken()))

    with pytest.raises(RewriteError) as excinfo:
        reader.read_line()
    assert excinfo.value.kind is ErrorKind.TRANSPORT
    assert "device gone" in excinfo.value.message


@pytest.mark.parametrize(
    "line, expected",
    [
        (b"abc\r\n", b"abc"),
        (b"abc\n", b"abc"),
        (b"abc", b"abc"),
        (b"abc\r", b"abc\r"),
        (b"\r\n", b""),
    ],
)
def test_trim_crlf(line: bytes, expected: bytes) -> None:
    assert trim_crlf(line) == expected
