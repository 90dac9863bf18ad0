"""Glob-based policy deciding which MIME parts get deleted.

What:
  Offer :func:`should_delete`, which compares a media type against ordered
  delete globs and keep-override globs, plus the presets used by the
  ``--delete-binary`` flag.

Why:
  Operators describe attachments in terms of media-type patterns
  (``image/*``) rather than exact types. Keeping the decision in a pure
  function makes the ordering contract explicit and trivially testable.

How:
  Globs are matched segment by segment (``type`` and ``subtype``) with
  :func:`fnmatch.fnmatchcase`, so ``*`` never crosses the ``/`` separator.
  Only the first delete glob that matches is checked against the keep globs.

Interfaces:
  :class:`GlobPatternError`, :func:`validate_glob`, :func:`match_media_type`,
  :func:`should_delete`, :data:`BINARY_DELETE_TYPES`,
  :data:`BINARY_KEEP_TYPES`.

Invariants & Safety:
  - Matching is case-sensitive; media types arrive lower-cased from the
    Content-Type parser.
  - The outcome depends on delete-glob order: the first matching delete glob
    wins even when a later one is more specific.
  - Malformed patterns raise :class:`GlobPatternError` instead of silently
    matching nothing.
"""
from __future__ import annotations

import re
from fnmatch import fnmatchcase
from typing import Iterable, Sequence


BINARY_DELETE_TYPES: tuple[str, ...] = (
    "application/*",
    "audio/*",
    "image/*",
    "video/*",
)
"""Media types removed by ``--delete-binary``."""

# application/ covers plenty of textual formats, so those are kept explicitly.
BINARY_KEEP_TYPES: tuple[str, ...] = (
    "application/ecmascript",
    "application/ics",
    "application/javascript",
    "application/json",
    "application/pgp-*",  # signature, encrypted, keys
    "application/pkcs7-signature",
    "application/rtf",
    "application/xml",
    "application/*+json",
    "application/*+xml",
    "application/x-csh",
    "application/x-dia-diagram",
    "application/x-ecmascript",
    "application/x-httpd-php",
    "application/x-javascript",
    "application/x-perl",
    "application/x-ruby",
    "application/x-sh",
)
"""Overrides for ``BINARY_DELETE_TYPES``."""


# fnmatch has no escape syntax; turn "\*" into the equivalent one-char class.
_ESCAPED = re.compile(r"\\(.)")


class GlobPatternError(ValueError):
    """Raised for syntactically invalid media-type globs."""


def validate_glob(pattern: str) -> str:
    """Return ``pattern`` unchanged if it is a well-formed glob.

    What:
      Rejects unterminated ``[...]`` classes, empty classes, and a dangling
      trailing backslash.

    Why:
      :mod:`fnmatch` treats a broken class as literal text, which would turn a
      typo in the delete list into a rule that never fires. Surfacing the error
      at configuration time keeps mistakes visible.

    How:
      Walks the pattern once, tracking escapes and bracket state.

    Raises:
      GlobPatternError: If the pattern is malformed.
    """

    i = 0
    while i < len(pattern):
        char = pattern[i]
        if char == "\\":
            if i + 1 >= len(pattern):
                raise GlobPatternError(f"syntax error in pattern {pattern!r}: trailing backslash")
            i += 2
            continue
        if char == "[":
            j = i + 1
            if j < len(pattern) and pattern[j] in "!^":
                j += 1
            start = j
            while j < len(pattern) and pattern[j] != "]":
                if pattern[j] == "\\":
                    j += 1
                j += 1
            if j >= len(pattern):
                raise GlobPatternError(f"syntax error in pattern {pattern!r}: unterminated '['")
            if j == start:
                raise GlobPatternError(f"syntax error in pattern {pattern!r}: empty character class")
            i = j + 1
            continue
        i += 1
    return pattern


def match_media_type(pattern: str, media_type: str) -> bool:
    """Return ``True`` if ``media_type`` matches the shell-style ``pattern``.

    ``*`` and ``?`` never match ``/``; the pattern and the media type must have
    the same number of ``/``-separated segments.
    """

    validate_glob(pattern)
    pattern_parts = pattern.split("/")
    type_parts = media_type.split("/")
    if len(pattern_parts) != len(type_parts):
        return False
    return all(
        fnmatchcase(value, _translate(part))
        for part, value in zip(pattern_parts, type_parts)
    )


def _unescape(match: re.Match[str]) -> str:
    char = match[1]
    return f"[{char}]" if char in "*?[" else char


def _translate(part: str) -> str:
    # fnmatch negates classes with "[!", filepath-style globs also accept "[^".
    return _ESCAPED.sub(_unescape, part).replace("[^", "[!")


def should_delete(
    media_type: str,
    delete_globs: Sequence[str],
    keep_globs: Iterable[str],
) -> bool:
    """Decide whether a part of type ``media_type`` should be deleted.

    What:
      Returns ``True`` when a delete glob matches and no keep glob overrides it.

    Why:
      Keep globs let operators carve exceptions (``application/json``) out of
      broad deletions (``application/*``).

    How:
      Iterate the delete globs in order. On the first match, return ``False``
      if any keep glob matches and ``True`` otherwise. If nothing matches,
      return ``False``.

    Args:
      media_type: Lower-cased ``type/subtype``.
      delete_globs: Ordered delete patterns.
      keep_globs: Override patterns.

    Raises:
      GlobPatternError: If an evaluated pattern is malformed.
    """

    keep = tuple(keep_globs)
    for pattern in delete_globs:
        if match_media_type(pattern, media_type):
            return not any(match_media_type(k, media_type) for k in keep)
    return False
