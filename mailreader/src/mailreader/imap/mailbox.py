"""Fetch messages by UID and assemble them into :class:`~mailreader.core.mail.Mail`.

What:
  Orchestrate header parsing, BODYSTRUCTURE retrieval, the part tree walk and
  optional attachment persistence for one message at a time.

How:
  :class:`Mailbox` depends only on the :class:`MailTransport` protocol, so an
  :class:`~mailreader.imap.client.ImapMailboxClient` and the in-memory fakes
  used by the tests are interchangeable.

Interfaces:
  :class:`MailTransport`, :class:`Mailbox`.

Invariants & Safety:
  - Transport errors propagate unchanged; MIME problems never raise.
"""
from __future__ import annotations

from pathlib import Path
from typing import Iterable, Optional, Protocol, Union

from ..config.loader import get_runtime_config
from ..config.schema import MailSettings
from ..core.attachment import Attachment, build_file_path, sanitize_filename
from ..core.envelope import build_header, parse_headers
from ..core.mail import Mail, MailHeader
from ..mime.structure import PartStructure
from ..mime.walker import ROOT_PATH, PartTreeWalker
from ..utils.logging import JsonLogger, get_logger


class MailTransport(Protocol):
    """The fetch operations :class:`Mailbox` needs from an IMAP session."""

    def fetch_structure(self, uid: int) -> PartStructure: ...

    def fetch_raw_part(self, uid: int, path: str, peek: bool) -> bytes: ...

    def fetch_header_blob(self, uid: int) -> bytes: ...

    def fetch_flags(self, uid: int) -> Iterable[object]: ...

    def fetch_raw_message(self, uid: int, peek: bool = True) -> bytes: ...


class Mailbox:
    """Read messages from one selected IMAP folder.

    Args:
      transport: Connected session implementing :class:`MailTransport`.
      settings: Decoding and persistence options; defaults to the ``mail``
        section of the runtime configuration.
      logger: Structured logger shared with the walker.
    """

    def __init__(
        self,
        transport: MailTransport,
        settings: Optional[MailSettings] = None,
        logger: Optional[JsonLogger] = None,
    ) -> None:
        self._transport = transport
        self._settings = settings or get_runtime_config().mail
        self._logger = logger or get_logger("mailreader.imap.mailbox")

    @property
    def settings(self) -> MailSettings:
        return self._settings

    def get_mail_header(self, uid: int) -> MailHeader:
        """Fetch and normalise the envelope of message ``uid``."""

        blob = self._transport.fetch_header_blob(uid)
        flags = self._transport.fetch_flags(uid)
        return build_header(uid, blob, parse_headers(blob), flags, self._settings.server_encoding)

    def get_mail(self, uid: int, mark_as_seen: bool = True) -> Mail:
        """Fetch message ``uid`` with its bodies and attachments.

        What:
          Builds the envelope, walks the BODYSTRUCTURE tree and, when an
          attachments directory is configured, writes every attachment to it.

        How:
          The walker records lazy chunks; text bodies are resolved before
          returning, attachment sections only when persistence is configured
          or their contents are read.

        Args:
          uid: Message UID in the selected folder.
          mark_as_seen: When ``False`` every fetch uses ``BODY.PEEK``.

        Returns:
          The assembled :class:`Mail`.

        Raises:
          ImapTransportError: Propagated from the transport.
          OSError: If an attachment cannot be written.
        """

        mail = Mail.from_header(self.get_mail_header(uid))
        structure = self._transport.fetch_structure(uid)
        walker = PartTreeWalker(
            self._transport.fetch_raw_part,
            server_encoding=self._settings.server_encoding,
            attachments_ignore=self._settings.attachments_ignore,
            logger=self._logger,
        )
        walker.walk(mail, structure, ROOT_PATH, mark_as_seen)
        mail.load_bodies()
        if self._settings.attachments_dir:
            for attachment in mail.attachments.values():
                self._persist(uid, attachment, Path(self._settings.attachments_dir))
        self._logger.info("mail fetched", uid=uid, attachments=len(mail.attachments))
        return mail

    def _persist(self, uid: int, attachment: Attachment, directory: Path) -> None:
        safe_id = sanitize_filename(attachment.id) or "attachment"
        name = sanitize_filename(attachment.name)
        if not name.strip("."):
            name = safe_id
        file_name = name if self._settings.attachment_filename_mode else f"{uid}_{safe_id}_{name}"
        attachment.save_to_disk(build_file_path(directory, file_name))

    def get_raw_mail(self, uid: int, mark_as_seen: bool = True) -> bytes:
        """Return the complete RFC 5322 source of message ``uid``."""

        return self._transport.fetch_raw_message(uid, peek=not mark_as_seen)

    def save_mail(self, uid: int, filename: Union[str, Path]) -> Path:
        """Write the raw source of ``uid`` to ``filename`` without marking it seen."""

        target = Path(filename)
        target.write_bytes(self.get_raw_mail(uid, mark_as_seen=False))
        return target
