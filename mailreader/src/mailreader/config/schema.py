"""Pydantic models describing the mailreader runtime configuration."""
from __future__ import annotations

import codecs
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class ValidationError(ValueError):
    """Raised when configuration data does not satisfy the schema."""


class ImapSettings(BaseModel):
    """Connection parameters for the IMAP server."""

    model_config = ConfigDict(extra="forbid")

    host: str
    port: int = Field(default=993, gt=0, lt=65536)
    ssl: bool = True
    username: str
    password: str = Field(repr=False)
    default_mailbox: str = "INBOX"
    timeout: float = Field(default=30.0, gt=0)


class MailSettings(BaseModel):
    """How fetched messages are decoded and where attachments go."""

    model_config = ConfigDict(extra="forbid")

    server_encoding: str = "UTF-8"
    attachments_dir: Optional[str] = None
    attachment_filename_mode: bool = False
    attachments_ignore: bool = False

    @field_validator("server_encoding")
    @classmethod
    def _known_encoding(cls, value: str) -> str:
        # Body text is re-encoded into this charset, so it has to be a real codec.
        try:
            codecs.lookup(value)
        except LookupError as exc:
            raise ValidationError(f"unknown server_encoding {value!r}") from exc
        return value


class RuntimeConfig(BaseModel):
    """Root configuration loaded from ``config.yaml``."""

    model_config = ConfigDict(extra="forbid")

    version: int = 1
    imap: ImapSettings
    mail: MailSettings = Field(default_factory=MailSettings)
