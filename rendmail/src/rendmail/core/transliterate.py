"""Decode RFC 2047 header values into plain 7-bit ASCII.

What:
  Provide :func:`decode_header_value`, which turns a raw header value such as
  ``=?ISO-8859-1?Q?Andr=E9?= Pirard`` into ``Andre Pirard``.

Why:
  Mail filters and terminal clients that only understand ASCII cannot match on
  encoded subjects. An ASCII rendition that keeps base letters (dropping only
  accents) stays readable and greppable.

How:
  Encoded words are located with a regular expression. Each payload is
  checked strictly (padded base64 alphabet for ``B``, ``=XX`` hex escapes and
  printable characters for ``Q``) before it is decoded with :mod:`base64` or
  :func:`binascii.a2b_qp`, and only then converted from its charset.
  Whitespace between adjacent encoded words is dropped (RFC 2047 section 6.2).
  The decoded text is NFD-normalised, nonspacing marks are removed, the result
  is NFC-normalised, and finally everything outside printable ASCII (plus TAB)
  is discarded.

Interfaces:
  :data:`SUPPORTED_CHARSETS`, :func:`decode_encoded_words`,
  :func:`strip_to_ascii`, :func:`decode_header_value`.

Invariants & Safety:
  - A decodable word in an unsupported charset fails the whole value; callers
    never receive a partially decoded string.
  - A word whose payload is not valid Q/B data keeps its ``=?`` literally and
    scanning resumes right after it, whatever its charset.
"""
from __future__ import annotations

import base64
import binascii
import re
import unicodedata
from typing import Optional, Tuple


SUPPORTED_CHARSETS = {
    "utf-8": "utf-8",
    "iso-8859-1": "latin-1",
    "us-ascii": "ascii",
    "windows-1252": "cp1252",
}
"""Declared RFC 2047 charsets mapped to Python codec names."""

_ENCODED_WORD = re.compile(r"=\?([^?]*)\?([bBqQ])\?(.*?)\?=")
_WORD_GAP = re.compile(r"[ \t\r\n]*")
# Printable ASCII except "=", or an "=XX" escape.
_Q_PAYLOAD = re.compile(r"(?:[\t -<>-~]|=[0-9A-Fa-f]{2})*")


class UnsupportedCharsetError(LookupError):
    """Raised when an encoded word declares a charset outside the supported set."""


def _decode_payload(encoding: str, text: str) -> Optional[bytes]:
    """Return the raw bytes of a ``B`` or ``Q`` payload, or ``None`` if it is corrupt."""

    if encoding in "bB":
        try:
            return base64.b64decode(text, validate=True)
        except ValueError:
            return None
    if not _Q_PAYLOAD.fullmatch(text):
        return None
    return binascii.a2b_qp(text, header=True)


def _convert(payload: bytes, charset: str) -> str:
    codec = SUPPORTED_CHARSETS.get(charset.lower())
    if codec is None:
        raise UnsupportedCharsetError(charset)
    return payload.decode(codec, "replace")


def decode_encoded_words(value: str) -> str:
    """Replace every RFC 2047 encoded word in ``value`` with its text.

    What:
      Decodes ``=?charset?Q?...?=`` and ``=?charset?B?...?=`` words anywhere in
      the value, leaving surrounding text untouched.

    Why:
      Subjects routinely mix encoded and plain runs, and some agents put
      encoded words directly inside parentheses or quotes.

    How:
      Searches for words left to right. A corrupt payload leaves its ``=?`` in
      place and the search restarts two characters later. Text between two
      successfully decoded words is skipped when it is nothing but whitespace;
      otherwise it is copied.

    Raises:
      UnsupportedCharsetError: If a word with a valid payload uses a charset
        outside :data:`SUPPORTED_CHARSETS`.
    """

    pieces = []
    pos = 0
    between_words = False
    while True:
        match = _ENCODED_WORD.search(value, pos)
        if match is None:
            break
        payload = _decode_payload(match.group(2), match.group(3))
        if payload is None:
            pieces.append(value[pos:match.start() + 2])
            pos = match.start() + 2
            between_words = False
            continue
        gap = value[pos:match.start()]
        if not (between_words and _WORD_GAP.fullmatch(gap)):
            pieces.append(gap)
        pieces.append(_convert(payload, match.group(1)))
        pos = match.end()
        between_words = True
    pieces.append(value[pos:])
    return "".join(pieces)


def strip_to_ascii(text: str) -> str:
    """Remove diacritics and drop anything that is not printable ASCII or TAB."""

    decomposed = unicodedata.normalize("NFD", text)
    without_marks = "".join(ch for ch in decomposed if unicodedata.category(ch) != "Mn")
    composed = unicodedata.normalize("NFC", without_marks)
    # RFC 5322 2.2: field bodies are printable US-ASCII plus SP and HTAB.
    return "".join(ch for ch in composed if 32 <= ord(ch) <= 126 or ch == "\t")


def decode_header_value(value: str) -> Tuple[str, bool]:
    """Transliterate a raw header value into 7-bit ASCII.

    What:
      Returns ``(ascii_text, True)`` on success or ``("", False)`` when the
      value cannot be decoded.

    Why:
      The engine emits ``X-Rendmail-Subject`` only when a trustworthy ASCII
      version exists; a failure flag is clearer than an empty string, which is
      also a legitimate result.

    How:
      Calls :func:`decode_encoded_words` then :func:`strip_to_ascii`.

    Args:
      value: Unfolded header value, still RFC 2047 encoded.
    """

    try:
        decoded = decode_encoded_words(value)
    except UnsupportedCharsetError:
        return "", False
    return strip_to_ascii(decoded), True
