"""Envelope parsing: raw header blob to :class:`~mailreader.core.mail.MailHeader`.

What:
  Parse the header section of a message into recipients and scalar fields,
  then normalise them into the envelope the rest of mailreader works with.

Why:
  Addresses, display names and subjects arrive in several encodings and with
  inconsistent casing. Callers want lower-case addresses mapped to readable
  names and one date format.

How:
  :func:`parse_headers` uses :mod:`email` with the ``compat32`` policy so
  encoded words are left for :func:`~mailreader.mime.headers.decode_header_value`.
  :func:`build_header` turns the parsed :class:`HeaderStruct` into a
  :class:`~mailreader.core.mail.MailHeader`.

Interfaces:
  :class:`Recipient`, :class:`HeaderStruct`, :func:`parse_headers`,
  :func:`build_header`, :func:`parse_date_time`,
  :func:`get_header_field_value`.

Invariants & Safety:
  - Missing headers yield empty collections or ``None``, never errors.
"""
from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from email.parser import HeaderParser
from email.policy import compat32
from email.utils import getaddresses, parsedate_to_datetime
from typing import Dict, Iterable, List, Optional, Tuple

from ..mime.headers import decode_header_value
from .mail import MailHeader

_FOLD = re.compile(r"\r?\n(?=[ \t])")
_MAILFROM = re.compile(r"smtp\.mailfrom=([^\s;]+)", re.IGNORECASE)

_FLAG_FIELDS = {
    "\\seen": "is_seen",
    "\\answered": "is_answered",
    "\\recent": "is_recent",
    "\\flagged": "is_flagged",
    "\\deleted": "is_deleted",
    "\\draft": "is_draft",
}

_INFO_FIELDS = (
    ("mime_version", "MIME-Version"),
    ("content_type", "Content-Type"),
    ("x_mailer", "X-Mailer"),
    ("organization", "Organization"),
    ("priority", "X-Priority"),
    ("importance", "Importance"),
    ("x_original_to", "X-Original-To"),
)


@dataclass(frozen=True)
class Recipient:
    """One address from an address header, split like an IMAP envelope."""

    mailbox: str
    host: Optional[str] = None
    personal: Optional[str] = None

    @property
    def address(self) -> str:
        if self.host:
            return f"{self.mailbox}@{self.host}".lower()
        return self.mailbox.lower()


@dataclass
class HeaderStruct:
    """Envelope headers with encoded words still in place."""

    subject: Optional[str] = None
    date: Optional[str] = None
    message_id: Optional[str] = None
    from_: List[Recipient] = field(default_factory=list)
    sender: List[Recipient] = field(default_factory=list)
    to: List[Recipient] = field(default_factory=list)
    cc: List[Recipient] = field(default_factory=list)
    bcc: List[Recipient] = field(default_factory=list)
    reply_to: List[Recipient] = field(default_factory=list)


def _unfold(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    return _FOLD.sub("", str(value)).strip()


def _recipients(values: Iterable[str]) -> List[Recipient]:
    recipients: List[Recipient] = []
    for personal, address in getaddresses([_unfold(value) or "" for value in values]):
        if not address:
            continue
        mailbox, _, host = address.rpartition("@")
        if not mailbox:
            mailbox, host = host, ""
        recipients.append(Recipient(mailbox=mailbox, host=host or None, personal=personal or None))
    return recipients


def header_text(blob: bytes) -> str:
    """Decode a header blob for display and regex scanning."""

    return blob.decode("utf-8", errors="replace")


def parse_headers(blob: bytes) -> HeaderStruct:
    """Parse the header section ``blob`` into a :class:`HeaderStruct`."""

    message = HeaderParser(policy=compat32).parsestr(header_text(blob))
    return HeaderStruct(
        subject=_unfold(message.get("Subject")),
        date=_unfold(message.get("Date")),
        message_id=_unfold(message.get("Message-ID")),
        from_=_recipients(message.get_all("From", [])),
        sender=_recipients(message.get_all("Sender", [])),
        to=_recipients(message.get_all("To", [])),
        cc=_recipients(message.get_all("Cc", [])),
        bcc=_recipients(message.get_all("Bcc", [])),
        reply_to=_recipients(message.get_all("Reply-To", [])),
    )


def parse_date_time(value: Optional[str]) -> str:
    """Normalise an RFC 5322 date to RFC 3339.

    Missing values become the current UTC time; unparseable values are
    returned unchanged.
    """

    if not value or not value.strip():
        return datetime.now(timezone.utc).isoformat()
    try:
        parsed = parsedate_to_datetime(value)
    except (TypeError, ValueError, IndexError):
        return value
    if parsed is None:
        return value
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.isoformat()


def get_header_field_value(header_raw: str, name: str) -> Optional[str]:
    """Return the first ``name:`` value in ``header_raw`` (case-insensitive)."""

    match = re.search(rf"^{re.escape(name)}:(.*)$", header_raw, re.IGNORECASE | re.MULTILINE)
    if not match:
        return None
    return match.group(1).strip() or None


def _address_map(recipients: Iterable[Recipient], charset: str) -> Dict[str, Optional[str]]:
    result: Dict[str, Optional[str]] = {}
    for recipient in recipients:
        name = decode_header_value(recipient.personal, charset) if recipient.personal else None
        result[recipient.address] = name or None
    return result


def _address_string(addresses: Dict[str, Optional[str]]) -> str:
    return ", ".join(f"{name} <{address}>" if name else address for address, name in addresses.items())


def _first(recipients: List[Recipient], charset: str) -> Tuple[Optional[str], Optional[str], Optional[str]]:
    if not recipients:
        return None, None, None
    head = recipients[0]
    name = decode_header_value(head.personal, charset) if head.personal else None
    return head.host.lower() if head.host else None, name or None, head.address


def _apply_flags(header: MailHeader, flags: Iterable[object]) -> None:
    for flag in flags:
        text = flag.decode("ascii", errors="ignore") if isinstance(flag, bytes) else str(flag)
        attribute = _FLAG_FIELDS.get(text.lower())
        if attribute:
            setattr(header, attribute, True)


def build_header(
    uid: int,
    blob: bytes,
    struct: HeaderStruct,
    flags: Iterable[object] = (),
    server_encoding: str = "UTF-8",
) -> MailHeader:
    """Build the normalised envelope of message ``uid``.

    What:
      Decodes subject and display names, lower-cases addresses and fills the
      informational header fields.

    How:
      ``From`` falls back to the ``smtp.mailfrom=`` value of
      ``Authentication-Results`` when the header is missing. Flags may be
      ``bytes`` (as :mod:`imapclient` returns them) or ``str``.

    Args:
      uid: Message UID.
      blob: Raw header section.
      struct: Result of :func:`parse_headers` for ``blob``.
      flags: IMAP system flags of the message.
      server_encoding: Target charset for decoded text.

    Returns:
      The populated :class:`MailHeader`.
    """

    header_raw = header_text(blob)
    header = MailHeader(uid=uid, header_raw=header_raw)
    header.date = parse_date_time(struct.date)
    header.subject = decode_header_value(struct.subject, server_encoding) if struct.subject else None
    header.message_id = struct.message_id

    header.from_host, header.from_name, header.from_address = _first(struct.from_, server_encoding)
    if header.from_address is None:
        fallback = _MAILFROM.search(header_raw)
        if fallback:
            header.from_address = fallback.group(1).lower()
            header.from_host = header.from_address.rpartition("@")[2] or None
    header.sender_host, header.sender_name, header.sender_address = _first(struct.sender, server_encoding)

    header.to = _address_map(struct.to, server_encoding)
    header.to_string = _address_string(header.to)
    header.cc = _address_map(struct.cc, server_encoding)
    header.cc_string = _address_string(header.cc)
    header.bcc = _address_map(struct.bcc, server_encoding)
    header.reply_to = _address_map(struct.reply_to, server_encoding)

    _apply_flags(header, flags)
    for attribute, name in _INFO_FIELDS:
        setattr(header, attribute, get_header_field_value(header_raw, name))
    return header
