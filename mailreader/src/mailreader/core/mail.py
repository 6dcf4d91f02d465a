"""Mail objects assembled from headers and walked body parts.

What:
  Define the lazily fetched :class:`DataPartInfo` chunk, the envelope
  :class:`MailHeader` and the full :class:`Mail` with its text bodies,
  attachments and inline-image post-processing.

Why:
  Body sections are only downloaded when a caller reads them, and the walker
  needs one explicit object to append chunks and attachments to in
  depth-first order.

How:
  The walker calls :meth:`Mail.add_data_part` and :meth:`Mail.add_attachment`.
  :attr:`Mail.text_plain` and :attr:`Mail.text_html` concatenate their chunks
  on first access and memoise the result. ``cid:`` references in the HTML body
  are rewritten by :meth:`Mail.replace_internal_links` and
  :meth:`Mail.embed_image_attachments`.

Interfaces:
  :class:`DataPartInfo`, :class:`MailHeader`, :class:`Mail`.

Invariants & Safety:
  - A chunk is fetched at most once; later reads hit the memo.
  - Post-processing never touches attachments that are not referenced by the
    HTML body.
"""
from __future__ import annotations

import base64
import os
import re
from dataclasses import dataclass, field, fields
from typing import Callable, Dict, List, Optional, Tuple

from ..mime.charset import convert_charset, to_text
from ..mime.structure import PartKind
from ..mime.transfer import decode_transfer
from .attachment import Attachment

Fetcher = Callable[[int, str, bool], bytes]
"""``(uid, part_path, peek) -> raw section bytes``."""

_PLACEHOLDER = re.compile(r"""=\s*["'](cid:([\w.%*@-]+))["']""", re.IGNORECASE)


@dataclass
class DataPartInfo:
    """Lazy handle on one body section.

    Attributes:
      uid: UID of the owning message.
      part: Dotted section path; ``""`` addresses the whole body.
      encoding: Transfer-encoding code of the section.
      fetcher: Callable that downloads the raw section.
      peek: Fetch with ``BODY.PEEK`` so ``\\Seen`` is left alone.
      charset: Declared charset; when set the decoded bytes are converted to
        ``target_charset``.
      target_charset: Configured server encoding.
    """

    uid: int
    part: str
    encoding: int
    fetcher: Fetcher = field(repr=False, compare=False)
    peek: bool = False
    charset: Optional[str] = None
    target_charset: str = "UTF-8"
    _data: Optional[bytes] = field(default=None, init=False, repr=False, compare=False)

    def fetch(self) -> bytes:
        """Download, transfer-decode and charset-convert the section once.

        Raises:
          Whatever the fetcher raises; transport errors are not absorbed.
        """

        if self._data is None:
            data = decode_transfer(self.fetcher(self.uid, self.part, self.peek), self.encoding)
            if self.charset and self.charset.strip():
                data = convert_charset(data, self.charset, self.target_charset)
            self._data = data
        return self._data


@dataclass
class MailHeader:
    """Envelope fields of one message.

    Address maps (``to``, ``cc``, ``bcc``, ``reply_to``) go from lower-case
    ``local@host`` to the decoded display name (or ``None``) in header order.
    """

    uid: int = 0
    date: Optional[str] = None
    header_raw: str = ""
    subject: Optional[str] = None
    message_id: Optional[str] = None
    from_host: Optional[str] = None
    from_name: Optional[str] = None
    from_address: Optional[str] = None
    sender_host: Optional[str] = None
    sender_name: Optional[str] = None
    sender_address: Optional[str] = None
    to: Dict[str, Optional[str]] = field(default_factory=dict)
    to_string: str = ""
    cc: Dict[str, Optional[str]] = field(default_factory=dict)
    cc_string: str = ""
    bcc: Dict[str, Optional[str]] = field(default_factory=dict)
    reply_to: Dict[str, Optional[str]] = field(default_factory=dict)
    is_seen: bool = False
    is_answered: bool = False
    is_recent: bool = False
    is_flagged: bool = False
    is_deleted: bool = False
    is_draft: bool = False
    mime_version: Optional[str] = None
    content_type: Optional[str] = None
    x_mailer: Optional[str] = None
    organization: Optional[str] = None
    priority: Optional[str] = None
    importance: Optional[str] = None
    x_original_to: Optional[str] = None


@dataclass
class Mail(MailHeader):
    """A fully walked message: envelope, text bodies and attachments."""

    attachments: Dict[str, Attachment] = field(default_factory=dict)
    has_attachments: bool = False
    _plain_parts: List[Tuple[DataPartInfo, bool]] = field(default_factory=list, init=False, repr=False)
    _html_parts: List[DataPartInfo] = field(default_factory=list, init=False, repr=False)
    _text_plain: Optional[str] = field(default=None, init=False, repr=False)
    _text_html: Optional[str] = field(default=None, init=False, repr=False)

    @classmethod
    def from_header(cls, header: MailHeader) -> "Mail":
        return cls(**{item.name: getattr(header, item.name) for item in fields(MailHeader)})

    # -- accumulation -----------------------------------------------------

    def add_data_part(self, info: DataPartInfo, kind: PartKind) -> None:
        """Append a body chunk; embedded messages land in the plain body trimmed."""

        if kind == PartKind.HTML:
            self._html_parts.append(info)
            self._text_html = None
        elif kind in (PartKind.PLAIN_TEXT, PartKind.EMBEDDED_MESSAGE):
            self._plain_parts.append((info, kind == PartKind.EMBEDDED_MESSAGE))
            self._text_plain = None
        else:
            raise ValueError(f"{kind} does not contribute body text")

    def add_attachment(self, attachment: Attachment) -> None:
        """Register ``attachment``; a repeated id keeps earlier data chunks.

        The newer record's metadata wins and its chunks are appended after the
        ones already collected under the same id.
        """

        previous = self.attachments.get(attachment.id)
        if previous is not None:
            for info in attachment.data_parts:
                previous.add_data_part(info)
            attachment.data_parts = previous.data_parts
        self.attachments[attachment.id] = attachment
        self.has_attachments = True

    def remove_attachment(self, attachment_id: str) -> None:
        self.attachments.pop(attachment_id, None)
        self.has_attachments = bool(self.attachments)

    # -- bodies -----------------------------------------------------------

    def _decode(self, info: DataPartInfo) -> str:
        return to_text(info.fetch(), info.target_charset)

    @property
    def text_plain(self) -> str:
        if self._text_plain is None:
            self._text_plain = "".join(
                self._decode(info).strip() if trim else self._decode(info) for info, trim in self._plain_parts
            )
        return self._text_plain

    @property
    def text_html(self) -> str:
        if self._text_html is None:
            self._text_html = "".join(self._decode(info) for info in self._html_parts)
        return self._text_html

    def load_bodies(self) -> None:
        """Fetch and decode every body chunk now instead of on first access."""

        _ = self.text_plain, self.text_html

    # -- inline images ----------------------------------------------------

    def get_internal_links_placeholders(self) -> Dict[str, str]:
        """Map each ``cid:`` id referenced by the HTML body to its ``cid:ID`` text.

        Only attribute values (``src="cid:..."``) count; the first occurrence
        of an id wins.
        """

        placeholders: Dict[str, str] = {}
        for match in _PLACEHOLDER.finditer(self.text_html):
            placeholders.setdefault(match.group(2), match.group(1))
        return placeholders

    @staticmethod
    def _substitute(html: str, placeholder: str, replacement: str) -> str:
        pattern = re.compile(re.escape(placeholder) + r"""(?=["'])""")
        return pattern.sub(lambda _: replacement, html)

    def replace_internal_links(self, base_uri: str) -> str:
        """Return the HTML body with ``cid:`` links pointing below ``base_uri``.

        Persisted attachments are addressed by the base name of their file,
        others by their display name. The mail itself is left unchanged.
        """

        base = base_uri.rstrip("/\\") + "/"
        html = self.text_html
        placeholders = self.get_internal_links_placeholders()
        for attachment in self.attachments.values():
            placeholder = placeholders.get(attachment.content_id or "")
            if placeholder is None:
                continue
            name = os.path.basename(str(attachment.file_path)) if attachment.file_path else attachment.name
            html = self._substitute(html, placeholder, base + name)
        return html

    def embed_image_attachments(self) -> None:
        """Inline referenced image attachments as ``data:`` URIs.

        Each embedded attachment is removed from :attr:`attachments`; the
        rewritten HTML replaces the memoised :attr:`text_html`.
        """

        html = self.text_html
        placeholders = self.get_internal_links_placeholders()
        for attachment in list(self.attachments.values()):
            placeholder = placeholders.get(attachment.content_id or "")
            if placeholder is None or not attachment.is_embeddable_image:
                continue
            encoded = base64.b64encode(attachment.get_contents()).decode("ascii")
            html = self._substitute(html, placeholder, f"data:{attachment.mime_type};base64,{encoded}")
            self.remove_attachment(attachment.id)
        self._text_html = html
