"""Header value decoding: RFC 2047 encoded words and RFC 2231 parameters.

What:
  Decode subjects, display names and attachment filenames into the configured
  target charset, and merge a part's Content-Type and Content-Disposition
  parameters into one lookup table.

Why:
  Filenames reach us in three layers of encoding: RFC 2231 continuations split
  across ``filename*0``, ``filename*1``..., an optional
  ``charset'lang'percent-data`` prefix, and RFC 2047 encoded words produced by
  clients that ignore RFC 2231. Each layer can be malformed.

How:
  :func:`decode_header_value` splits encoded words from literal runs with a
  regular expression and hands every decoded word to
  :func:`~mailreader.mime.charset.convert_charset`; literal text is never
  re-encoded. :func:`decode_rfc2231` recognises the extended value form.
  :func:`resolve_parameters` reassembles continuation fragments by index
  before any decoding happens.

Interfaces:
  :func:`decode_header_value`, :func:`decode_rfc2231`, :func:`is_url_encoded`,
  :func:`resolve_parameters`.

Invariants & Safety:
  - No function in this module raises on malformed header data.
"""
from __future__ import annotations

import binascii
import re
from typing import Dict, Iterable, List, Optional, Tuple
from urllib.parse import unquote_to_bytes

from .charset import DEFAULT_CHARSET, convert_charset, to_text
from .transfer import decode_base64_lenient

_ENCODED_WORD = re.compile(r"=\?(?P<charset>[^?\s]+)\?(?P<encoding>[QqBb])\?(?P<text>[^?\s]*)\?=")
_RFC2231_VALUE = re.compile(r"^(.*?)'.*?'(.*?)$", re.DOTALL)
_URL_INVALID = re.compile(r"[^%a-zA-Z0-9\-_.+]")
_URL_ESCAPE = re.compile(r"%[a-zA-Z0-9]{2}")
_CONTINUATION = re.compile(r"^(?P<name>[^*]+)\*(?P<index>\d+)?\*?$")


def _element_charset(charset: Optional[str]) -> Optional[str]:
    if charset is None:
        return None
    # RFC 2231 allows a language suffix inside encoded words: =?utf-8*en?Q?...?=
    label = charset.split("*", 1)[0]
    if label.lower() == "default":
        return DEFAULT_CHARSET
    return label


def _decode_word(encoding: str, text: str) -> bytes:
    data = text.encode("ascii", errors="ignore")
    if encoding.upper() == "B":
        return decode_base64_lenient(data)
    return binascii.a2b_qp(data, header=True)


def decode_header_value(value: Optional[str], target_charset: str = "UTF-8") -> str:
    """Decode RFC 2047 encoded words in ``value`` into ``target_charset`` text.

    What:
      Converts ``=?charset?Q|B?text?=`` elements and the literal text between
      them, concatenating everything in its original order.

    How:
      Encoded words are located with a regular expression; the literal runs
      between them are kept as the original ``str``, except whitespace that
      only separates two encoded words, which RFC 2047 says to drop. Each word
      is Q- or B-decoded and goes through :func:`convert_charset`; the
      pseudo-charset ``default`` is read as ISO-8859-1.

    Args:
      value: Raw header value; ``None`` and ``""`` decode to ``""``.
      target_charset: Charset the resulting text is normalised through.

    Returns:
      The decoded text. Malformed encoded words are left verbatim.
    """

    if not value:
        return ""
    pieces: List[str] = []
    position = 0
    for match in _ENCODED_WORD.finditer(value):
        literal = value[position:match.start()]
        if literal and not (position and literal.isspace()):
            pieces.append(literal)
        payload = _decode_word(match.group("encoding"), match.group("text"))
        label = _element_charset(match.group("charset")) or DEFAULT_CHARSET
        pieces.append(to_text(convert_charset(payload, label, target_charset), target_charset))
        position = match.end()
    pieces.append(value[position:])
    return "".join(pieces)


def is_url_encoded(value: str) -> bool:
    """Return ``True`` when ``value`` looks percent-encoded.

    The value may only contain URL-safe characters and must carry at least one
    ``%XX`` escape.
    """

    return not _URL_INVALID.search(value) and bool(_URL_ESCAPE.search(value))


def decode_rfc2231(value: str, target_charset: str = "UTF-8") -> str:
    """Decode an RFC 2231 extended value ``charset'lang'percent-data``.

    Args:
      value: Parameter value, already reassembled from continuations.
      target_charset: Charset the decoded text is normalised through.

    Returns:
      The decoded text, or ``value`` unchanged when it is not in extended form
      or its data portion is not percent-encoded.
    """

    match = _RFC2231_VALUE.match(value)
    if not match:
        return value
    charset, data = match.group(1), match.group(2)
    if not is_url_encoded(data):
        return value
    raw = unquote_to_bytes(data)
    if not charset:
        return to_text(raw, target_charset)
    return to_text(convert_charset(raw, charset, target_charset), target_charset)


def _split_attribute(attribute: str) -> Tuple[str, Optional[int]]:
    match = _CONTINUATION.match(attribute.strip())
    if not match:
        return attribute.strip().lower(), None
    index = match.group("index")
    return match.group("name").lower(), int(index) if index is not None else None


def _merge(parameters: Iterable[Tuple[str, str]], target_charset: str) -> Dict[str, str]:
    plain: Dict[str, str] = {}
    fragments: Dict[str, List[Tuple[int, int, str]]] = {}
    for position, (attribute, value) in enumerate(parameters):
        name, index = _split_attribute(attribute)
        extended = attribute.strip().endswith("*")
        if index is None and not extended:
            plain[name] = decode_header_value(value.strip(), target_charset) if value.strip() else ""
            continue
        fragments.setdefault(name, []).append((index or 0, position, value))
    for name, pieces in fragments.items():
        # sort by continuation index, keeping server order for duplicate indices
        plain[name] = "".join(value for _, _, value in sorted(pieces))
    return plain


def resolve_parameters(
    parameters: Iterable[Tuple[str, str]],
    dparameters: Iterable[Tuple[str, str]] = (),
    target_charset: str = "UTF-8",
) -> Dict[str, str]:
    """Merge Content-Type and Content-Disposition parameters.

    What:
      Builds one case-insensitive ``attribute -> value`` table for a part.

    How:
      Attribute names are lower-cased. Continuation fragments (``name*0``,
      ``name*1*``, ...) and extended attributes (``name*``) are collected per
      base name and concatenated in ascending index order; their values stay
      raw so :func:`decode_rfc2231` can process the combined string. Plain
      values pass through :func:`decode_header_value`. Disposition parameters
      override Content-Type parameters of the same name.

    Args:
      parameters: Content-Type ``(attribute, value)`` pairs.
      dparameters: Content-Disposition ``(attribute, value)`` pairs.
      target_charset: Charset used for RFC 2047 decoding of plain values.

    Returns:
      Mapping from lower-case attribute to value.
    """

    resolved = _merge(parameters, target_charset)
    resolved.update(_merge(dparameters, target_charset))
    return resolved
