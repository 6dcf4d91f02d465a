"""
Module: tests/unit/test_headers.py

What:
    Cover RFC 2047 encoded-word decoding, RFC 2231 extended values and the
    reassembly of continued MIME parameters.

Why:
    Attachment names and subjects are the most visible symptoms of decoding
    bugs; each layer is tested on its own and in combination.
"""

from email.header import Header

import pytest

from mailreader.mime.headers import (
    decode_header_value,
    decode_rfc2231,
    is_url_encoded,
    resolve_parameters,
)


@pytest.mark.parametrize("charset", ["utf-8", "iso-8859-1", "windows-1252"])
def test_encoded_word_round_trip(charset):
    text = "Quarterly report, final"
    encoded = Header(text, charset).encode()
    assert decode_header_value(encoded, "UTF-8") == text


def test_q_encoded_latin1():
    assert decode_header_value("=?ISO-8859-1?Q?caf=E9?=") == "café"


def test_mixed_literal_and_encoded_runs_keep_order():
    assert decode_header_value("Re: =?UTF-8?B?w6l0w6k=?= summer") == "Re: été summer"


def test_adjacent_encoded_words_are_joined():
    assert decode_header_value("=?UTF-8?Q?a?= =?UTF-8?Q?b?=") == "ab"


def test_literal_runs_are_kept_verbatim():
    assert decode_header_value(r"Re: files in C:\Users\bob =?utf-8?q?caf=C3=A9?=") == r"Re: files in C:\Users\bob café"
    assert decode_header_value(r"path C:\u00e9 =?utf-8?q?x?=") == r"path C:\u00e9 x"


def test_q_underscore_is_space_and_malformed_words_stay_verbatim():
    assert decode_header_value("=?utf-8?Q?two_words?=") == "two words"
    assert decode_header_value("=?utf-8?X?abc?= tail") == "=?utf-8?X?abc?= tail"


def test_default_pseudo_charset_is_latin1():
    assert decode_header_value("=?default?Q?caf=E9?=") == "café"


def test_unknown_charset_keeps_bytes():
    assert decode_header_value("=?x-bogus?Q?abc?=") == "abc"


def test_plain_and_empty_values():
    assert decode_header_value("Hello") == "Hello"
    assert decode_header_value("") == ""
    assert decode_header_value(None) == ""


def test_is_url_encoded():
    assert is_url_encoded("%E2%82%AC.txt")
    assert not is_url_encoded("plain.txt")
    assert not is_url_encoded("a b%20")


def test_rfc2231_utf8_value():
    assert decode_rfc2231("utf-8''%E2%82%AC%20rates.txt") == "€ rates.txt"


def test_rfc2231_latin1_value_with_language():
    assert decode_rfc2231("iso-8859-1'en'caf%E9.txt") == "café.txt"


@pytest.mark.parametrize("value", ["report.pdf", "utf-8''plain", "utf-8'en'has space%20"])
def test_rfc2231_non_extended_values_are_unchanged(value):
    assert decode_rfc2231(value) == value


def test_continuations_are_concatenated():
    assert resolve_parameters([("name*0", "foo"), ("name*1", "bar")]) == {"name": "foobar"}


def test_continuations_are_sorted_by_index():
    resolved = resolve_parameters([], [("filename*1", "bar"), ("filename*0", "foo")])
    assert resolved["filename"] == "foobar"


def test_extended_continuations_stay_raw_until_rfc2231_decoding():
    resolved = resolve_parameters(
        [],
        [("filename*0*", "utf-8''%E2%82%AC"), ("filename*1*", "%20rates.txt")],
    )
    assert resolved["filename"] == "utf-8''%E2%82%AC%20rates.txt"
    assert decode_rfc2231(resolved["filename"]) == "€ rates.txt"


def test_single_extended_attribute():
    resolved = resolve_parameters([("name*", "utf-8''%C3%A9.txt")])
    assert resolved == {"name": "utf-8''%C3%A9.txt"}


def test_disposition_parameters_override_and_names_are_lowercased():
    resolved = resolve_parameters(
        [("NAME", "a.txt"), ("Charset", "us-ascii")],
        [("name", "b.txt")],
    )
    assert resolved == {"name": "b.txt", "charset": "us-ascii"}


def test_plain_values_are_rfc2047_decoded():
    resolved = resolve_parameters([("name", "=?UTF-8?Q?r=C3=A9sum=C3=A9.pdf?=")])
    assert resolved["name"] == "résumé.pdf"
