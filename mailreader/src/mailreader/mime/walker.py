"""Recursive reconstruction of a message from its BODYSTRUCTURE tree.

What:
  Visit every node of a :class:`PartStructure` tree, decide what each leaf
  contributes (plain text, HTML, embedded message, attachment or nothing) and
  record the contribution on a :class:`~mailreader.core.mail.Mail`.

Why:
  Real-world mail nests ``multipart/alternative`` inside ``multipart/related``
  inside ``multipart/mixed``, forwards whole messages as ``message/rfc822``
  and marks attachments inconsistently. Centralising the classification keeps
  the rules auditable and the body order deterministic.

How:
  :meth:`PartTreeWalker.walk` performs a depth-first traversal in sibling
  order. Containers only recurse. Each leaf gets a lazy
  :class:`~mailreader.core.mail.DataPartInfo`, its parameters are resolved,
  its identity derived and :meth:`PartTreeWalker.classify` picks exactly one
  :class:`PartKind`. Nothing is fetched during the walk itself.

Interfaces:
  :class:`PartTreeWalker`.

Invariants & Safety:
  - Only leaves contribute; a leaf contributes to exactly one destination.
  - Body order equals depth-first sibling order.
  - Malformed MIME data never raises; transport errors surface when a chunk
    is fetched.
"""
from __future__ import annotations

from typing import Dict, Optional

from ..core.attachment import Attachment
from ..core.mail import DataPartInfo, Fetcher, Mail
from ..utils.ids import new_attachment_id
from ..utils.logging import JsonLogger, get_logger
from .headers import decode_header_value, decode_rfc2231, resolve_parameters
from .structure import PartKind, PartStructure, PartType

ROOT_PATH = ""


def _content_id(structure: PartStructure) -> Optional[str]:
    if not structure.has_id:
        return None
    return (structure.id or "").strip().strip("<>").strip() or None


def child_path(parent: PartStructure, path: str, index: int) -> str:
    """Return the section path of child ``index`` (0-based) of ``parent``.

    ``message/rfc822`` wrappers do not add a numbering level.
    """

    if parent.type == PartType.MESSAGE and parent.subtype == "RFC822":
        return path
    return f"{path}.{index + 1}" if path else str(index + 1)


class PartTreeWalker:
    """Classify body parts and accumulate them on a mail.

    Args:
      fetcher: ``(uid, path, peek) -> bytes`` used by the created chunks.
      server_encoding: Charset text bodies are converted into.
      attachments_ignore: Skip attachment records entirely; the mail still
        reports that it has attachments.
      logger: Destination for per-part debug decisions.
    """

    def __init__(
        self,
        fetcher: Fetcher,
        *,
        server_encoding: str = "UTF-8",
        attachments_ignore: bool = False,
        logger: Optional[JsonLogger] = None,
    ) -> None:
        self._fetcher = fetcher
        self._server_encoding = server_encoding
        self._attachments_ignore = attachments_ignore
        self._logger = logger or get_logger("mailreader.mime.walker")

    def walk(self, mail: Mail, structure: PartStructure, path: str = ROOT_PATH, mark_as_seen: bool = True) -> None:
        """Walk ``structure`` and record every leaf on ``mail``.

        Args:
          mail: Accumulator receiving body chunks and attachments.
          structure: Node to visit; the root for a full message.
          path: Section path of ``structure``; ``""`` for the whole body.
          mark_as_seen: When ``False`` chunks are fetched with ``BODY.PEEK``.
        """

        if structure.is_container:
            for index, child in enumerate(structure.parts):
                self.walk(mail, child, child_path(structure, path, index), mark_as_seen)
            return

        parameters = resolve_parameters(structure.parameters, structure.dparameters, self._server_encoding)
        attachment_id = self.identify(structure, parameters, path)
        kind = self.classify(structure, attachment_id)
        info = DataPartInfo(
            uid=mail.uid,
            part=path,
            encoding=structure.encoding,
            fetcher=self._fetcher,
            peek=not mark_as_seen,
            target_charset=self._server_encoding,
        )

        if kind == PartKind.ATTACHMENT:
            mail.has_attachments = True
            if self._attachments_ignore:
                self._logger.debug("attachment skipped", uid=mail.uid, part=path)
                return
            mail.add_attachment(self._build_attachment(structure, parameters, attachment_id or "", info))
        elif kind in (PartKind.PLAIN_TEXT, PartKind.HTML, PartKind.EMBEDDED_MESSAGE):
            info.charset = parameters.get("charset") or None
            mail.add_data_part(info, kind)
        else:
            self._logger.debug("part discarded", uid=mail.uid, part=path, mime_type=structure.mime_type)

    @staticmethod
    def identify(structure: PartStructure, parameters: Dict[str, str], path: str) -> Optional[str]:
        """Return the attachment id of a leaf, or ``None`` for body content."""

        if path == ROOT_PATH and structure.type == PartType.TEXT:
            return None
        content_id = _content_id(structure)
        if content_id:
            return content_id
        if parameters.get("filename") or parameters.get("name"):
            return new_attachment_id()
        return None

    @staticmethod
    def classify(structure: PartStructure, attachment_id: Optional[str]) -> PartKind:
        """Decide once what a node contributes."""

        if structure.is_container:
            return PartKind.CONTAINER
        if attachment_id:
            return PartKind.ATTACHMENT
        if structure.type == PartType.TEXT:
            return PartKind.PLAIN_TEXT if structure.subtype == "PLAIN" else PartKind.HTML
        if structure.type == PartType.MESSAGE:
            return PartKind.EMBEDDED_MESSAGE
        return PartKind.DISCARDED

    def _display_name(self, structure: PartStructure, parameters: Dict[str, str], attachment_id: str) -> str:
        raw = parameters.get("filename") or parameters.get("name")
        if not raw:
            return f"{attachment_id}.{structure.subtype.lower()}"
        return decode_rfc2231(decode_header_value(raw, self._server_encoding), self._server_encoding)

    def _build_attachment(
        self,
        structure: PartStructure,
        parameters: Dict[str, str],
        attachment_id: str,
        info: DataPartInfo,
    ) -> Attachment:
        return Attachment(
            id=attachment_id,
            name=self._display_name(structure, parameters, attachment_id),
            content_id=_content_id(structure),
            disposition=structure.disposition,
            type=structure.type,
            subtype=structure.subtype,
            encoding=structure.encoding,
            size=structure.size,
            description=structure.description,
            charset=parameters.get("charset") or None,
            data_parts=[info],
        )
