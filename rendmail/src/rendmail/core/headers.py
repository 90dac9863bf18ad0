"""Header field helpers: name canonicalisation and Content-Type parsing.

What:
  Split logical header lines into canonical names and values, and turn a
  ``Content-Type`` value into a :class:`ContentType` descriptor.

Why:
  The engine only needs to recognise two fields (``Content-Type`` and
  ``Subject``) regardless of how the sender cased them, and it needs the media
  type and ``boundary`` parameter to walk multipart bodies. Everything else is
  copied without interpretation.

How:
  Field names are canonicalised word by word (``content-TYPE`` becomes
  ``Content-Type``). Content-Type values are parsed
  by the stdlib :mod:`email.headerregistry` machinery, which handles quoting,
  comments and RFC 2231 continuations; a value the parser had to repair falls
  back to the RFC 2045 default.

Interfaces:
  :class:`ContentType`, :data:`DEFAULT_CONTENT_TYPE`, :class:`HeaderFieldError`,
  :func:`canonical_header_key`, :func:`parse_header_field`,
  :func:`parse_content_type`.

Invariants & Safety:
  - :data:`DEFAULT_CONTENT_TYPE` is immutable and shared by every part.
  - Parsing never raises for a malformed Content-Type; it returns ``None`` so
    the caller decides how to report it.
"""
from __future__ import annotations

import re
from email import errors as email_errors
from email import policy
from types import MappingProxyType
from typing import Mapping, NamedTuple, Optional, Tuple


class ContentType(NamedTuple):
    """Media type (lower-cased ``type/subtype``) plus its parameters."""

    media_type: str
    params: Mapping[str, str]

    @property
    def is_multipart(self) -> bool:
        return self.media_type.startswith("multipart/")


# RFC 2045 5.2, "Content-Type Defaults".
DEFAULT_CONTENT_TYPE = ContentType("text/plain", MappingProxyType({"charset": "us-ascii"}))

_TOKEN_CHARS = frozenset(
    "!#$%&'*+-.^_`|~0123456789"
    "abcdefghijklmnopqrstuvwxyz"
    "ABCDEFGHIJKLMNOPQRSTUVWXYZ"
)
_TRAILING_SEPARATORS = re.compile(r"[;\s]+$")
_HEADER_FACTORY = policy.default.header_factory


class HeaderFieldError(ValueError):
    """Raised when a logical header line is not ``name: value``."""


def canonical_header_key(name: str) -> str:
    """Return ``name`` with each hyphen-separated word capitalised.

    Names containing characters outside the RFC 7230 token set (spaces, for
    instance) are returned unchanged, so ``"Content-Type "`` never matches
    ``"Content-Type"``.
    """

    if not name or any(ch not in _TOKEN_CHARS for ch in name):
        return name
    chars = []
    upper = True
    for ch in name:
        chars.append(ch.upper() if upper else ch.lower())
        upper = ch == "-"
    return "".join(chars)


def parse_header_field(line: str) -> Tuple[str, str]:
    """Split ``"from: Bob <b@example.org>"`` into ``("From", "Bob <b@example.org>")``.

    Raises:
      HeaderFieldError: If the line has no colon.
    """

    name, sep, value = line.partition(":")
    if not sep:
        raise HeaderFieldError("missing colon")
    return canonical_header_key(name), value.lstrip(" \t")


def parse_content_type(value: str) -> Optional[ContentType]:
    """Parse a ``Content-Type`` field value.

    What:
      Returns the lower-cased media type and a read-only parameter mapping, or
      ``None`` when the value is not syntactically valid.

    Why:
      RFC 2045 recommends treating an invalid Content-Type like a missing one;
      the engine needs to know it happened so it can log it in verbose mode.

    How:
      Trailing separators are dropped (``text/plain;`` is common and harmless),
      the value is run through the stdlib header registry. The registry repairs
      what it cannot parse (``text/plain`` for a bad media type, dropped or
      truncated parameters) and records a defect, so any defect, or a parsed
      media type that differs from the declared one, means the value is
      rejected. Parameter names come back lower-cased with quoting removed.

    Args:
      value: Unfolded field value.
    """

    cleaned = _TRAILING_SEPARATORS.sub("", value)
    declared = cleaned.split(";", 1)[0].strip().lower()
    try:
        header = _HEADER_FACTORY("Content-Type", cleaned)
    except (email_errors.HeaderParseError, ValueError, IndexError):
        return None
    if header.defects or header.content_type != declared:
        return None
    return ContentType(header.content_type, MappingProxyType(dict(header.params)))
