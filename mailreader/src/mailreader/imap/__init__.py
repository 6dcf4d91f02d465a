"""Facade for the IMAP integration layer.

What:
  Surface the :class:`~mailreader.imap.client.ImapMailboxClient` session, its
  :class:`~mailreader.imap.client.ImapConfig` and the
  :class:`~mailreader.imap.mailbox.Mailbox` that turns UIDs into mail objects.

Interfaces:
  ``ImapConfig``, ``ImapMailboxClient``, ``ImapTransportError``,
  ``ImapConnectionError``, ``Mailbox``, ``MailTransport``.

Invariants & Safety:
  - Consumers operate in UID-first mode; sequence numbers are never exposed.
"""

from .client import ImapConfig, ImapConnectionError, ImapMailboxClient, ImapTransportError
from .mailbox import Mailbox, MailTransport

__all__ = [
    "ImapConfig",
    "ImapConnectionError",
    "ImapMailboxClient",
    "ImapTransportError",
    "Mailbox",
    "MailTransport",
]
