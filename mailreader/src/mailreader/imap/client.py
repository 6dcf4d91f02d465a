"""Read-only IMAP session over ``imapclient``.

What:
  Wrap the third-party ``imapclient`` library with configuration defaults and
  the handful of UID fetches the MIME walker needs: BODYSTRUCTURE, single
  body sections, the header block, flags and the full raw message.

Why:
  The walker should only see bytes and typed structures. Connection setup,
  section naming (``BODY[TEXT]`` versus ``BODY.PEEK[1.2]``) and the translation
  of socket and protocol failures into one exception family belong here.

How:
  :class:`ImapMailboxClient` is a context manager that connects, logs in and
  selects the configured folder in :meth:`~ImapMailboxClient.__enter__`. Each
  fetch goes through :meth:`~ImapMailboxClient._fetch_one`, which converts
  ``imapclient`` and ``OSError`` failures into :class:`ImapTransportError`.

Interfaces:
  :class:`ImapConfig`, :class:`ImapMailboxClient`, :class:`ImapTransportError`,
  :class:`ImapConnectionError`.

Invariants & Safety:
  - All operations are UID based; sequence numbers are never used.
  - The connection is owned by the caller through ``with``; nothing is cached
    at module level.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple

from imapclient import IMAPClient
from imapclient.exceptions import IMAPClientError

from ..config.loader import get_runtime_config
from ..config.schema import ImapSettings
from ..mime.structure import PartStructure, structure_from_bodystructure
from ..utils.logging import get_logger

LOGGER = get_logger("mailreader.imap.client")


class ImapTransportError(RuntimeError):
    """Raised when the IMAP server or the network fails a request."""


class ImapConnectionError(ImapTransportError):
    """Raised when connecting, logging in or selecting the folder fails."""


@dataclass
class ImapConfig:
    """Connection parameters for one IMAP account.

    What:
      Captures host credentials and the folder messages are read from.

    How:
      Dataclass fields mirror :class:`~mailreader.config.schema.ImapSettings`;
      :meth:`__post_init__` fills a missing ``folder`` from the runtime
      configuration.

    Attributes:
      host: IMAP hostname.
      username: Login credential.
      password: Password or app-specific token.
      port: IMAP port (defaults to 993).
      ssl: Whether to use TLS.
      folder: Mailbox to select.
      timeout: Socket timeout in seconds.
    """

    host: str
    username: str
    password: str = field(repr=False)
    port: int = 993
    ssl: bool = True
    folder: Optional[str] = None
    timeout: Optional[float] = 30.0

    def __post_init__(self) -> None:
        if self.folder is None:
            self.folder = get_runtime_config().imap.default_mailbox

    @classmethod
    def from_settings(cls, settings: ImapSettings, *, folder: Optional[str] = None) -> "ImapConfig":
        return cls(
            host=settings.host,
            username=settings.username,
            password=settings.password,
            port=settings.port,
            ssl=settings.ssl,
            folder=folder or settings.default_mailbox,
            timeout=settings.timeout,
        )


def _section_key(section: str) -> bytes:
    # Servers answer BODY.PEEK[x] requests under BODY[x].
    return f"BODY[{section}]".encode("ascii")


class ImapMailboxClient:
    """Context manager owning one ``imapclient.IMAPClient`` connection.

    What:
      Implements the transport used by :class:`~mailreader.imap.mailbox.Mailbox`.

    How:
      Connects lazily in :meth:`__enter__` and exposes fetch helpers that each
      issue a single ``UID FETCH`` for one message.
    """

    def __init__(self, config: ImapConfig):
        self._config = config
        self._client: Optional[IMAPClient] = None

    def __enter__(self) -> "ImapMailboxClient":
        """Connect, log in and select the configured folder.

        Raises:
          ImapConnectionError: If any of the three steps fails.
        """

        try:
            self._client = IMAPClient(
                self._config.host,
                port=self._config.port,
                ssl=self._config.ssl,
                timeout=self._config.timeout,
            )
            self._client.login(self._config.username, self._config.password)
            self._client.select_folder(self._config.folder)
        except (IMAPClientError, OSError) as exc:
            LOGGER.error("imap connection failed", host=self._config.host, error=type(exc).__name__)
            self._client = None
            raise ImapConnectionError(f"cannot open {self._config.folder!r} on {self._config.host}: {exc}") from exc
        LOGGER.debug("imap connected", host=self._config.host, folder=self._config.folder)
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        if self._client is None:
            return
        try:
            self._client.logout()
        except (IMAPClientError, OSError) as error:
            LOGGER.warning("imap logout failed", error=type(error).__name__)
        finally:
            self._client = None

    @property
    def client(self) -> IMAPClient:
        """Return the connected ``IMAPClient``.

        Raises:
          ImapConnectionError: If accessed outside the ``with`` block.
        """

        if self._client is None:
            raise ImapConnectionError("IMAP client not connected")
        return self._client

    @property
    def config(self) -> ImapConfig:
        return self._config

    def _fetch_one(self, uid: int, items: Tuple[str, ...]) -> Dict[bytes, Any]:
        try:
            response = self.client.fetch([uid], list(items))
        except (IMAPClientError, OSError) as exc:
            raise ImapTransportError(f"fetch of {', '.join(items)} for UID {uid} failed: {exc}") from exc
        data = response.get(uid)
        if data is None:
            raise ImapTransportError(f"message UID {uid} not found in {self._config.folder!r}")
        return data

    def fetch_structure(self, uid: int) -> PartStructure:
        data = self._fetch_one(uid, ("BODYSTRUCTURE",))
        return structure_from_bodystructure(data[b"BODYSTRUCTURE"])

    def fetch_raw_part(self, uid: int, path: str, peek: bool) -> bytes:
        """Return the raw bytes of section ``path``; ``""`` is the whole body.

        ``peek`` selects ``BODY.PEEK`` so the ``\\Seen`` flag is not set.
        """

        section = path or "TEXT"
        command = "BODY.PEEK" if peek else "BODY"
        data = self._fetch_one(uid, (f"{command}[{section}]",))
        return data.get(_section_key(section)) or b""

    def fetch_header_blob(self, uid: int) -> bytes:
        data = self._fetch_one(uid, ("BODY.PEEK[HEADER]",))
        return data.get(_section_key("HEADER")) or b""

    def fetch_flags(self, uid: int) -> Tuple[bytes, ...]:
        data = self._fetch_one(uid, ("FLAGS",))
        return tuple(data.get(b"FLAGS") or ())

    def fetch_raw_message(self, uid: int, peek: bool = True) -> bytes:
        command = "BODY.PEEK[]" if peek else "BODY[]"
        data = self._fetch_one(uid, (command,))
        return data.get(_section_key("")) or b""
