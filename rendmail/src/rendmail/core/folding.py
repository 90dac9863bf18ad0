"""Wrap synthesised header lines to RFC 5322 line lengths."""
from __future__ import annotations

import re
from typing import List


MAX_LINE_LENGTH = 78
"""RFC 5322 2.1.1: lines SHOULD be no more than 78 characters excluding CRLF."""

# Any run of spaces/tabs followed by a run of anything else.
_TOKEN = re.compile(r"[ \t]*[^ \t]+")


def fold_header_field(unfolded: str, term: str) -> List[str]:
    """Fold a logical header line into physical lines ending in ``term``.

    What:
      Splits ``unfolded`` (e.g. ``"X-Rendmail-Subject: some words"``) into lines
      no longer than :data:`MAX_LINE_LENGTH` where possible.

    Why:
      The engine synthesises header fields whose length it does not control;
      long unfolded lines trip up strict MTAs and line-oriented filters.

    How:
      Each token keeps its leading whitespace, so the first token placed on a
      new line already carries the folding indent. Tokens are packed greedily;
      a token longer than the limit gets a line of its own.

    Args:
      unfolded: Header line without terminator. Must contain a non-space
        character; empty or all-whitespace input yields no lines.
      term: ``"\\n"`` or ``"\\r\\n"``, matching the surrounding message.

    Returns:
      Physical lines, each terminated with ``term``.
    """

    folded: List[str] = []
    for token in _TOKEN.findall(unfolded):
        if not folded:
            folded.append(token)
        elif len(folded[-1]) + len(token) <= MAX_LINE_LENGTH:
            folded[-1] += token
        else:
            folded[-1] += term
            folded.append(token)
    if folded:
        folded[-1] += term
    return folded
