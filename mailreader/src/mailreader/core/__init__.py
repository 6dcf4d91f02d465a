"""Domain objects for fetched mail: envelopes, bodies and attachments."""

from .attachment import Attachment, build_file_path, sanitize_filename
from .envelope import HeaderStruct, Recipient, build_header, parse_date_time, parse_headers
from .mail import DataPartInfo, Mail, MailHeader

__all__ = [
    "Attachment",
    "build_file_path",
    "sanitize_filename",
    "HeaderStruct",
    "Recipient",
    "build_header",
    "parse_date_time",
    "parse_headers",
    "DataPartInfo",
    "Mail",
    "MailHeader",
]
