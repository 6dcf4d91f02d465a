"""Attachment records produced while walking a message.

What:
  Describe one attachment (or inline image) of a fetched message and offer the
  helpers needed to read its bytes and persist it to disk.

Why:
  A single logical attachment can be spread over several body sections that
  share one Content-ID. Keeping the section fetchers on the record lets the
  caller decide when the bytes are actually downloaded.

How:
  :class:`Attachment` stores metadata plus the ordered :class:`DataPartInfo`
  chunks; :meth:`Attachment.get_contents` concatenates them on demand.
  :func:`sanitize_filename` and :func:`build_file_path` turn untrusted display
  names into safe file names inside a target directory.

Interfaces:
  :class:`Attachment`, :func:`sanitize_filename`, :func:`build_file_path`,
  :data:`MAX_LENGTH_FILEPATH`.

Invariants & Safety:
  - Sanitised names never contain path separators, so files cannot escape the
    configured attachments directory.
"""
from __future__ import annotations

import mimetypes
import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, List, Optional, Union

from ..mime.structure import PartType, TransferEncoding
from ..utils.logging import get_logger

if TYPE_CHECKING:  # pragma: no cover
    from .mail import DataPartInfo

LOGGER = get_logger("mailreader.core.attachment")

MAX_LENGTH_FILEPATH = 255

_WHITESPACE = re.compile(r"\s")
_DISALLOWED = re.compile(r"[^\w.]")
_UNDERSCORES = re.compile(r"_+")


def sanitize_filename(name: str) -> str:
    """Reduce ``name`` to letters, digits, ``_`` and ``.``.

    Whitespace becomes ``_``, everything else outside that set is dropped,
    runs of ``_`` collapse and leading/trailing ``_`` are trimmed.
    """

    cleaned = _WHITESPACE.sub("_", name)
    cleaned = _DISALLOWED.sub("", cleaned)
    cleaned = _UNDERSCORES.sub("_", cleaned)
    return cleaned.strip("_")


def build_file_path(directory: Union[str, Path], file_name: str, max_length: int = MAX_LENGTH_FILEPATH) -> Path:
    """Join ``directory`` and ``file_name``, truncating over-long paths.

    When the joined path exceeds ``max_length`` characters the stem is cut so
    the extension survives.
    """

    path = os.path.join(str(directory), file_name)
    if len(path) <= max_length:
        return Path(path)
    stem, extension = os.path.splitext(path)
    return Path(stem[: max(max_length - len(extension), 0)] + extension)


@dataclass
class Attachment:
    """One attachment or inline resource of a message.

    Attributes:
      id: Content-ID without angle brackets, or a synthesised numeric id.
      name: Decoded display name.
      content_id: Content-ID when the part had one, else ``None``.
      disposition: Lower-case disposition (``"inline"``/``"attachment"``).
      type: Primary MIME type code.
      subtype: Upper-case MIME subtype.
      encoding: Transfer encoding of the underlying sections.
      size: Encoded size reported by the server.
      description: Content-Description, if any.
      charset: Declared charset; informative only, bytes are never converted.
      data_parts: Section fetchers in discovery order.
      file_path: Where the bytes were written, once persisted.
    """

    id: str
    name: str
    content_id: Optional[str] = None
    disposition: Optional[str] = None
    type: PartType = PartType.APPLICATION
    subtype: str = "OCTET-STREAM"
    encoding: TransferEncoding = TransferEncoding.SEVEN_BIT
    size: Optional[int] = None
    description: Optional[str] = None
    charset: Optional[str] = None
    data_parts: List["DataPartInfo"] = field(default_factory=list, repr=False)
    file_path: Optional[Path] = None

    @property
    def mime_type(self) -> str:
        if self.type == PartType.OTHER:
            guessed, _ = mimetypes.guess_type(self.name)
            return guessed or "application/octet-stream"
        return f"{self.type.name.lower()}/{self.subtype.lower()}"

    @property
    def is_embeddable_image(self) -> bool:
        return bool(self.content_id) and self.mime_type.startswith("image/")

    def add_data_part(self, info: "DataPartInfo") -> None:
        self.data_parts.append(info)

    def get_contents(self) -> bytes:
        """Fetch and concatenate every section of the attachment."""

        return b"".join(part.fetch() for part in self.data_parts)

    def save_to_disk(self, path: Union[str, Path, None] = None) -> Path:
        """Write the attachment bytes to ``path`` (or :attr:`file_path`).

        Args:
          path: Destination file. Defaults to the previously assigned
            :attr:`file_path`.

        Returns:
          The path written to; also stored in :attr:`file_path`.

        Raises:
          ValueError: If neither ``path`` nor :attr:`file_path` is set.
          OSError: If the file cannot be written.
        """

        target = Path(path) if path is not None else self.file_path
        if target is None:
            raise ValueError(f"attachment {self.id} has no file path")
        target.write_bytes(self.get_contents())
        self.file_path = target
        LOGGER.debug("attachment saved", attachment_id=self.id, path=str(target))
        return target
