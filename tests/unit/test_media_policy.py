"""
Module: tests/unit/test_media_policy.py

What:
    Cover the media-type glob matcher, the delete/keep decision and the
    ``--delete-binary`` presets.

Why:
    The decision table is the only place where operator configuration turns
    into data loss; its ordering contract must not drift.

How:
    Table-driven assertions against :func:`should_delete` plus targeted checks
    for glob syntax errors.
"""

import pytest

from rendmail.core.media_policy import (
    BINARY_DELETE_TYPES,
    BINARY_KEEP_TYPES,
    GlobPatternError,
    match_media_type,
    should_delete,
    validate_glob,
)


@pytest.mark.parametrize(
    "media_type, delete, keep, expected",
    [
        ("text/plain", [], [], False),
        ("text/plain", ["audio/*", "image/*"], [], False),
        ("image/jpeg", ["audio/*", "image/*"], [], True),
        ("image/jpeg", ["audio/*", "image/*"], ["image/png"], True),
        ("image/jpeg", ["audio/*", "image/*"], ["image/png", "image/jpeg"], False),
    ],
)
def test_should_delete_decision_table(media_type, delete, keep, expected) -> None:
    assert should_delete(media_type, delete, keep) is expected


def test_first_matching_delete_glob_wins() -> None:
    """
    What:
        Once a delete glob matches, keep globs decide; later delete globs are
        not consulted.

    Why:
        Operators depend on the documented ordering contract; making it
        order-independent would be a behaviour change.
    """

    assert should_delete("image/png", ["image/*", "image/png"], ["image/*"]) is False
    assert should_delete("image/png", ["*/*"], ["text/*"]) is True


@pytest.mark.parametrize(
    "pattern, media_type, expected",
    [
        ("image/*", "image/png", True),
        ("*", "image/png", False),
        ("*/*", "image/png", True),
        ("image/p?g", "image/png", True),
        ("image/[pj]*", "image/jpeg", True),
        ("image/[^p]*", "image/png", False),
        ("image/[!p]*", "image/jpeg", True),
        ("application/*+xml", "application/atom+xml", True),
        ("application/x\\*", "application/x*", True),
        ("application/x\\*", "application/xyz", False),
        ("IMAGE/*", "image/png", False),
    ],
)
def test_match_media_type(pattern: str, media_type: str, expected: bool) -> None:
    """``*`` stays inside one segment and matching is case-sensitive."""

    assert match_media_type(pattern, media_type) is expected


@pytest.mark.parametrize("pattern", ["image/[", "image/[]", "image/png\\", "[!"])
def test_malformed_glob_raises(pattern: str) -> None:
    """
    What:
        Broken character classes and dangling escapes are rejected both by
        :func:`validate_glob` and during evaluation.

    Why:
        A typo must surface as an error rather than a rule that silently never
        matches.
    """

    with pytest.raises(GlobPatternError):
        validate_glob(pattern)
    with pytest.raises(GlobPatternError):
        should_delete("image/png", [pattern, "image/*"], [])


def test_malformed_glob_after_match_is_not_evaluated() -> None:
    """Patterns are only checked when evaluated; unreached globs do not raise."""

    assert should_delete("text/plain", ["image/*"], ["image/["]) is False
    assert should_delete("image/png", ["*/*", "image/["], []) is True


@pytest.mark.parametrize(
    "media_type, expected",
    [
        ("image/jpeg", True),
        ("video/mp4", True),
        ("audio/ogg", True),
        ("application/pdf", True),
        ("application/octet-stream", True),
        ("application/json", False),
        ("application/pgp-signature", False),
        ("application/ld+json", False),
        ("application/atom+xml", False),
        ("text/plain", False),
        ("text/html", False),
    ],
)
def test_binary_presets(media_type: str, expected: bool) -> None:
    """The ``--delete-binary`` presets remove binary attachments but keep textual ones."""

    assert should_delete(media_type, BINARY_DELETE_TYPES, BINARY_KEEP_TYPES) is expected
