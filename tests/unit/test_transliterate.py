"""
Module: tests/unit/test_transliterate.py

What:
    Verify RFC 2047 decoding and ASCII transliteration of header values.

Why:
    ``X-Rendmail-Subject`` is only useful if it is predictable: accents are
    stripped, other non-ASCII text disappears, and unsupported charsets fail
    the whole value.

How:
    Examples from RFC 2047 section 8 plus a few edge cases, compared against
    the ``(text, ok)`` pair returned by :func:`decode_header_value`.
"""

import pytest

from rendmail.core.transliterate import (
    UnsupportedCharsetError,
    decode_encoded_words,
    decode_header_value,
    strip_to_ascii,
)


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("", ("", True)),
        (" ", (" ", True)),
        ("regular text", ("regular text", True)),
        ("¡confirmación, 再见, hi!", ("confirmacion, , hi!", True)),
        ("=?iso-8859-1?q?this=20is=20some=20text?=", ("this is some text", True)),
        ("=?US-ASCII?Q?Keith_Moore?= <moore@cs.utk.edu>", ("Keith Moore <moore@cs.utk.edu>", True)),
        # The slashed o has no decomposition, so it is dropped rather than simplified.
        (
            "=?ISO-8859-1?Q?Keld_J=F8rn_Simonsen?= <keld@dkuug.dk>",
            ("Keld Jrn Simonsen <keld@dkuug.dk>", True),
        ),
        (
            "=?ISO-8859-1?Q?Andr=E9?= Pirard <PIRARD@vm1.ulg.ac.be>",
            ("Andre Pirard <PIRARD@vm1.ulg.ac.be>", True),
        ),
        (
            "=?ISO-8859-1?Q?Olle_J=E4rnefors?= <ojarnef@admin.kth.se>",
            ("Olle Jarnefors <ojarnef@admin.kth.se>", True),
        ),
        (
            "=?ISO-8859-1?Q?Patrik_F=E4ltstr=F6m?= <paf@nada.kth.se>",
            ("Patrik Faltstrom <paf@nada.kth.se>", True),
        ),
        ("(=?ISO-8859-1?Q?a?=)", ("(a)", True)),
        ("(=?ISO-8859-1?Q?a?= b)", ("(a b)", True)),
        ("(=?ISO-8859-1?Q?a?= =?ISO-8859-1?Q?b?=)", ("(ab)", True)),
        ("(=?ISO-8859-1?Q?a?=  =?ISO-8859-1?Q?b?=)", ("(ab)", True)),
        ("(=?ISO-8859-1?Q?a?=\r\n    =?ISO-8859-1?Q?b?=)", ("(ab)", True)),
        ("(=?ISO-8859-1?Q?a_b?=)", ("(a b)", True)),
        ("(=?ISO-8859-1?Q?a?= =?ISO-8859-2?Q?_b?=)", ("", False)),
        # Corrupt payloads stay literal, before the charset is even looked at.
        ("=?utf-8?q?a=ZZ?=", ("=?utf-8?q?a=ZZ?=", True)),
        ("=?utf-8?b?w6k*?=", ("=?utf-8?b?w6k*?=", True)),
        ("=?koi8-r?Q?a=ZZ?= =?utf-8?Q?b?=", ("=?koi8-r?Q?a=ZZ?= b", True)),
    ],
)
def test_decode_header_value(raw: str, expected) -> None:
    assert decode_header_value(raw) == expected


def test_base64_and_utf8_words() -> None:
    """
    What:
        Base64 words decode as well as quoted-printable ones, and UTF-8 accents
        are reduced to their base letters.

    Why:
        Most current mail user agents send UTF-8 subjects in ``B`` encoding.
    """

    # "Café crème" in UTF-8, base64 encoded.
    assert decode_header_value("=?UTF-8?B?Q2Fmw6kgY3LDqG1l?=") == ("Cafe creme", True)
    assert decode_header_value("=?windows-1252?Q?=93quoted=94?=") == ("quoted", True)


def test_unsupported_charset_raises_from_word_decoder() -> None:
    with pytest.raises(UnsupportedCharsetError):
        decode_encoded_words("=?koi8-r?Q?abc?=")


def test_text_between_words_is_kept_when_not_whitespace() -> None:
    """Only whitespace-only gaps between two encoded words are removed."""

    assert decode_encoded_words("=?utf-8?Q?a?= - =?utf-8?Q?b?=") == "a - b"
    assert decode_encoded_words("x =?utf-8?Q?a?= y") == "x a y"


def test_strip_to_ascii_keeps_tab_and_drops_controls() -> None:
    assert strip_to_ascii("a\tb\x07cé\n") == "a\tbce"
