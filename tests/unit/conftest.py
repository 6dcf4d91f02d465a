"""Pytest fixtures for unit tests requiring IMAP fakes.

What:
  Ensure ``tests/unit`` is importable and expose an ``imap_client`` fixture
  backed by :class:`FakeImapBackend`.

How:
  Monkeypatch ``mailreader.imap.client.IMAPClient`` so the adapter talks to the
  fake backend, then yield the connected client together with the backend.

Interfaces:
  :func:`imap_backend`, :func:`imap_client` (pytest fixtures).
"""

import sys
from pathlib import Path

import pytest

from mailreader.imap.client import ImapConfig, ImapMailboxClient

UNIT_DIR = Path(__file__).resolve().parent
if str(UNIT_DIR) not in sys.path:
    sys.path.insert(0, str(UNIT_DIR))

from fakes import FakeImapBackend


@pytest.fixture
def imap_backend(monkeypatch: pytest.MonkeyPatch) -> FakeImapBackend:
    """Install a fresh fake backend in place of ``IMAPClient``."""

    backend = FakeImapBackend()
    monkeypatch.setattr("mailreader.imap.client.IMAPClient", lambda host, **kwargs: backend)
    return backend


@pytest.fixture
def imap_client(imap_backend: FakeImapBackend):
    """Yield ``(ImapMailboxClient, FakeImapBackend)`` inside the client's context manager."""

    config = ImapConfig(host="localhost", username="user", password="pass")
    with ImapMailboxClient(config) as client:
        yield client, imap_backend
