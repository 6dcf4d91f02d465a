"""Best-effort charset conversion for untrusted mail content.

What:
  Convert byte strings between charsets, tolerating unknown charset names and
  invalid byte sequences.

Why:
  Charset labels in mail are attacker-controlled and frequently wrong
  (``"utf8"``, ``"x-unknown"``, ``"windows-1252 "``, quoted names). A reader
  must degrade to something displayable instead of aborting the message.

How:
  The primary pass decodes with the Python codec named by the label and
  re-encodes into the target, discarding invalid sequences (iconv's
  ``//IGNORE`` behaviour). When the label is not a known codec the secondary
  pass retries with a normalised alias. When neither resolves, the input bytes
  are returned untouched.

Interfaces:
  :func:`convert_charset`, :func:`to_text`, :func:`normalize_charset`,
  :data:`DEFAULT_CHARSET`.

Invariants & Safety:
  - :func:`convert_charset` and :func:`to_text` never raise.
"""
from __future__ import annotations

import codecs
import re
from email.charset import ALIASES
from typing import Optional

from ..utils.logging import get_logger

DEFAULT_CHARSET = "iso-8859-1"
"""Charset substituted for the RFC 2047 pseudo-charset ``default``."""

LOGGER = get_logger("mailreader.mime.charset")

_WINDOWS_CODEPAGE = re.compile(r"^(?:windows|win|cp|ms)[-_ ]?(\d{3,4})$")


def _codec_name(charset: str) -> Optional[str]:
    try:
        return codecs.lookup(charset).name
    except (LookupError, ValueError):
        return None


def normalize_charset(charset: str) -> Optional[str]:
    """Map a sloppy charset label to a Python codec name, or ``None``.

    Handles surrounding quotes and whitespace, ``x-``/``x-mac-`` prefixes,
    the aliases known to :mod:`email.charset` and Windows code page spellings
    such as ``windows 1252`` or ``cp-1251``.
    """

    label = charset.strip().strip("\"'").strip().lower()
    if not label:
        return None
    candidates = [label]
    if label.startswith("x-mac-"):
        candidates.append("mac-" + label[len("x-mac-"):])
    if label.startswith("x-"):
        candidates.append(label[2:])
    if label in ALIASES:
        candidates.append(ALIASES[label])
    codepage = _WINDOWS_CODEPAGE.match(label)
    if codepage:
        candidates.append(f"cp{codepage.group(1)}")
    for candidate in candidates:
        name = _codec_name(candidate)
        if name is not None:
            return name
    return None


def _same_charset(left: str, right: str) -> bool:
    if left.strip().lower() == right.strip().lower():
        return True
    left_name = normalize_charset(left)
    return left_name is not None and left_name == normalize_charset(right)


def _transcode(data: bytes, source: str, target: str) -> bytes:
    return data.decode(source, errors="ignore").encode(target, errors="ignore")


def convert_charset(data: bytes, from_charset: Optional[str], to_charset: str = "UTF-8") -> bytes:
    """Convert ``data`` from ``from_charset`` to ``to_charset``.

    What:
      Returns ``data`` re-encoded in the target charset, dropping sequences
      that are invalid in the source or unrepresentable in the target.

    How:
      Identity when the source label is empty or names the target. Otherwise
      the codec named by the label is tried, then the normalised alias; if
      both fail the original bytes come back unmodified.

    Args:
      data: Bytes to convert.
      from_charset: Declared charset label, possibly malformed.
      to_charset: Target charset (the configured server encoding).

    Returns:
      Converted bytes, or ``data`` when no conversion was possible.
    """

    if not from_charset or not from_charset.strip() or _same_charset(from_charset, to_charset):
        return data
    try:
        return _transcode(data, from_charset, to_charset)
    except (LookupError, ValueError, TypeError):
        pass
    source = normalize_charset(from_charset)
    target = normalize_charset(to_charset)
    if source is not None and target is not None:
        try:
            return _transcode(data, source, target)
        except (LookupError, ValueError, TypeError):
            pass
    LOGGER.warning("charset conversion skipped", charset=from_charset, target=to_charset)
    return data


def to_text(data: bytes, charset: str = "UTF-8") -> str:
    """Decode ``data`` for display, discarding invalid sequences.

    Unknown charsets fall back to UTF-8.
    """

    codec = normalize_charset(charset) or "utf-8"
    return data.decode(codec, errors="ignore")
