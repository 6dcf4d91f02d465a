"""Content-Transfer-Encoding decoding for single MIME parts.

What:
  Turn the raw bytes the server returns for one body section into the octets
  they encode, given the part's transfer-encoding code.

Why:
  Servers and senders routinely produce slightly broken base64 (stray CRLFs,
  trailing garbage, missing padding). A reader that gives up on such a part
  loses the whole message, so decoding has to be total.

How:
  Base64 input is filtered down to the base64 alphabet and decoded in whole
  4-character quanta, dropping any dangling tail. Quoted-printable goes through
  :mod:`quopri`. Every other encoding is passed through untouched.

Interfaces:
  :func:`decode_transfer`, :func:`decode_base64_lenient`.

Invariants & Safety:
  - No code path raises on malformed input.
"""
from __future__ import annotations

import binascii
import quopri
import re

from .structure import TransferEncoding

_NON_BASE64 = re.compile(rb"[^A-Za-z0-9+/=]")


def decode_base64_lenient(data: bytes) -> bytes:
    """Decode base64 while ignoring noise and truncated input.

    Characters outside the alphabet are removed first. Padding that appears in
    the middle of the stream (concatenated encodings) terminates a segment
    rather than the whole decode.
    """

    cleaned = _NON_BASE64.sub(b"", data)
    decoded = bytearray()
    for segment in cleaned.split(b"="):
        if not segment:
            continue
        usable = len(segment) - len(segment) % 4
        remainder = len(segment) % 4
        # A 2 or 3 character tail is a legitimately unpadded final quantum.
        if remainder in (2, 3):
            chunk = segment + b"=" * (4 - remainder)
        else:
            chunk = segment[:usable]
        try:
            decoded += binascii.a2b_base64(chunk)
        except binascii.Error:
            decoded += _decode_quanta(chunk)
    return bytes(decoded)


def _decode_quanta(chunk: bytes) -> bytes:
    out = bytearray()
    for start in range(0, len(chunk) - len(chunk) % 4, 4):
        try:
            out += binascii.a2b_base64(chunk[start : start + 4])
        except binascii.Error:
            continue
    return bytes(out)


def decode_transfer(data: bytes, encoding: int) -> bytes:
    """Undo the transfer encoding of ``data``.

    Args:
      data: Raw section bytes as returned by the server.
      encoding: Transfer-encoding code (see :class:`TransferEncoding`); unknown
        codes are treated like ``OTHER``.

    Returns:
      The decoded octets. Never raises.
    """

    if encoding == TransferEncoding.BASE64:
        return decode_base64_lenient(data)
    if encoding == TransferEncoding.QUOTED_PRINTABLE:
        try:
            return quopri.decodestring(data)
        except (ValueError, binascii.Error):  # pragma: no cover - quopri is lenient
            return data
    return data
