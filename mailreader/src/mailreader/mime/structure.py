"""Typed model of an IMAP BODYSTRUCTURE tree.

What:
  Define :class:`PartStructure`, the read-only description of one MIME body
  part (type, encoding, parameters, disposition, children), plus the
  conversion from the nested tuples ``imapclient`` returns for a
  ``BODYSTRUCTURE`` fetch.

Why:
  The walker should reason about named fields and small integer codes rather
  than positional tuple slots whose layout differs between multipart, text,
  ``message/rfc822`` and other leaves.

How:
  :func:`structure_from_bodystructure` inspects the first slot: a list or tuple
  means a multipart node, otherwise a single part whose extension data starts
  at a type-dependent offset (RFC 3501, section 7.4.2). Byte strings are
  decoded as UTF-8 with replacement so odd server output never raises.

Interfaces:
  :class:`PartType`, :class:`TransferEncoding`, :class:`PartKind`,
  :class:`PartStructure`,
  :func:`structure_from_bodystructure`.

Invariants & Safety:
  - ``subtype`` is upper-cased, ``disposition`` lower-cased.
  - A node is a container exactly when ``parts`` is non-empty.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, IntEnum
from typing import Any, List, Optional, Sequence, Tuple


class PartType(IntEnum):
    """Primary body type codes, numbered like c-client's ``TYPE*`` constants."""

    TEXT = 0
    MULTIPART = 1
    MESSAGE = 2
    APPLICATION = 3
    AUDIO = 4
    IMAGE = 5
    VIDEO = 6
    MODEL = 7
    OTHER = 8

    @classmethod
    def from_name(cls, name: Optional[str]) -> "PartType":
        try:
            return cls[(name or "").upper()]
        except KeyError:
            return cls.OTHER


class TransferEncoding(IntEnum):
    """Content-Transfer-Encoding codes, numbered like c-client's ``ENC*``."""

    SEVEN_BIT = 0
    EIGHT_BIT = 1
    BINARY = 2
    BASE64 = 3
    QUOTED_PRINTABLE = 4
    OTHER = 5

    @classmethod
    def from_name(cls, name: Optional[str]) -> "TransferEncoding":
        return _ENCODING_NAMES.get((name or "7bit").strip().lower(), cls.OTHER)


class PartKind(Enum):
    """What a single node contributes to the reconstructed mail."""

    CONTAINER = "container"
    ATTACHMENT = "attachment"
    PLAIN_TEXT = "plain_text"
    HTML = "html"
    EMBEDDED_MESSAGE = "embedded_message"
    DISCARDED = "discarded"


_ENCODING_NAMES = {
    "7bit": TransferEncoding.SEVEN_BIT,
    "8bit": TransferEncoding.EIGHT_BIT,
    "binary": TransferEncoding.BINARY,
    "base64": TransferEncoding.BASE64,
    "quoted-printable": TransferEncoding.QUOTED_PRINTABLE,
}

Parameter = Tuple[str, str]


@dataclass(frozen=True)
class PartStructure:
    """Server-reported description of one MIME body part, without its bytes.

    Attributes:
      type: Primary type code.
      subtype: Upper-case subtype, e.g. ``"PLAIN"`` or ``"RFC822"``.
      encoding: Transfer-encoding code.
      parameters: Content-Type parameters in server order.
      dparameters: Content-Disposition parameters in server order; may hold
        RFC 2231 continuation fragments such as ``filename*0*``.
      id: Raw Content-ID, angle brackets included when the server sent them.
      description: Content-Description.
      disposition: Lower-case disposition type (``"inline"``/``"attachment"``).
      size: Encoded size in octets as reported by the server.
      parts: Child structures; empty for leaves.
    """

    type: PartType = PartType.TEXT
    subtype: str = "PLAIN"
    encoding: TransferEncoding = TransferEncoding.SEVEN_BIT
    parameters: Tuple[Parameter, ...] = ()
    dparameters: Tuple[Parameter, ...] = ()
    id: Optional[str] = None
    description: Optional[str] = None
    disposition: Optional[str] = None
    size: Optional[int] = None
    parts: Tuple["PartStructure", ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        object.__setattr__(self, "subtype", (self.subtype or "").upper())

    @property
    def has_id(self) -> bool:
        return bool(self.id and self.id.strip())

    @property
    def is_container(self) -> bool:
        return bool(self.parts)

    @property
    def mime_type(self) -> str:
        return f"{self.type.name.lower()}/{self.subtype.lower()}"


def _text(value: Any) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    return str(value)


def _pairs(value: Any) -> Tuple[Parameter, ...]:
    """Turn a flat ``(k1, v1, k2, v2, ...)`` parameter list into pairs."""

    if not isinstance(value, (list, tuple)):
        return ()
    items = list(value)
    pairs: List[Parameter] = []
    for index in range(0, len(items) - 1, 2):
        key = _text(items[index])
        if key is None:
            continue
        pairs.append((key, _text(items[index + 1]) or ""))
    return tuple(pairs)


def _disposition(value: Any) -> Tuple[Optional[str], Tuple[Parameter, ...]]:
    if not isinstance(value, (list, tuple)) or not value:
        return None, ()
    kind = _text(value[0])
    params = _pairs(value[1]) if len(value) > 1 else ()
    return (kind.lower() if kind else None), params


def _slot(node: Sequence[Any], index: int) -> Any:
    return node[index] if len(node) > index else None


def _size(value: Any) -> Optional[int]:
    try:
        return int(value) if value is not None else None
    except (TypeError, ValueError):
        return None


def _split_multipart(body: Sequence[Any]) -> Tuple[Sequence[Any], Sequence[Any]]:
    """Separate children from the multipart subtype and extension data.

    ``BodyData`` groups the children into a list in the first slot; the raw
    tuples nested in ``message/rfc822`` parts list them as leading tuples.
    """

    if isinstance(body[0], list):
        return body[0], body[1:]
    index = 0
    while index < len(body) and isinstance(body[index], tuple):
        index += 1
    return body[:index], body[index:]


def structure_from_bodystructure(body: Sequence[Any]) -> PartStructure:
    """Convert an ``imapclient`` BODYSTRUCTURE response into :class:`PartStructure`.

    What:
      Accepts either :class:`imapclient.response_types.BodyData` or the plain
      nested tuples found inside ``message/rfc822`` parts.

    How:
      Multipart bodies start with the list of children followed by subtype
      and extension data (parameters, disposition). Single parts follow the
      ``type subtype params id description encoding size`` layout; ``text``
      adds a line count, ``message/rfc822`` adds envelope, body and line count
      before the extension data.

    Args:
      body: BODYSTRUCTURE node.

    Returns:
      The typed tree rooted at ``body``.
    """

    if body and isinstance(body[0], (list, tuple)):
        raw_children, rest = _split_multipart(body)
        disposition, dparameters = _disposition(_slot(rest, 2))
        return PartStructure(
            type=PartType.MULTIPART,
            subtype=(_text(_slot(rest, 0)) or "MIXED").upper(),
            parameters=_pairs(_slot(rest, 1)),
            dparameters=dparameters,
            disposition=disposition,
            parts=tuple(structure_from_bodystructure(child) for child in raw_children),
        )

    part_type = PartType.from_name(_text(_slot(body, 0)))
    subtype = (_text(_slot(body, 1)) or "").upper()
    children: Tuple[PartStructure, ...] = ()
    if part_type == PartType.TEXT:
        extension = 9
    elif part_type == PartType.MESSAGE and subtype == "RFC822":
        embedded = _slot(body, 8)
        if isinstance(embedded, (list, tuple)) and embedded:
            children = (structure_from_bodystructure(embedded),)
        extension = 11
    else:
        extension = 8
    disposition, dparameters = _disposition(_slot(body, extension))
    return PartStructure(
        type=part_type,
        subtype=subtype,
        encoding=TransferEncoding.from_name(_text(_slot(body, 5))),
        parameters=_pairs(_slot(body, 2)),
        dparameters=dparameters,
        id=_text(_slot(body, 3)),
        description=_text(_slot(body, 4)),
        disposition=disposition,
        size=_size(_slot(body, 6)),
        parts=children,
    )
