"""MIME decoding primitives: structure model, transfer, charset and headers.

The recursive :class:`~mailreader.mime.walker.PartTreeWalker` lives in
:mod:`mailreader.mime.walker`; it depends on :mod:`mailreader.core` and is
therefore not re-exported here.
"""

from .charset import DEFAULT_CHARSET, convert_charset, normalize_charset, to_text
from .headers import decode_header_value, decode_rfc2231, is_url_encoded, resolve_parameters
from .structure import PartKind, PartStructure, PartType, TransferEncoding, structure_from_bodystructure
from .transfer import decode_base64_lenient, decode_transfer

__all__ = [
    "DEFAULT_CHARSET",
    "convert_charset",
    "normalize_charset",
    "to_text",
    "decode_header_value",
    "decode_rfc2231",
    "is_url_encoded",
    "resolve_parameters",
    "PartKind",
    "PartStructure",
    "PartType",
    "TransferEncoding",
    "structure_from_bodystructure",
    "decode_base64_lenient",
    "decode_transfer",
]
