"""
Module: tests/unit/test_imap_client.py

What:
    Exercise :class:`ImapMailboxClient` against :class:`FakeImapBackend`:
    section naming, ``BODY.PEEK`` usage, folder selection and the translation
    of ``imapclient`` failures into :class:`ImapTransportError`.

How:
    The ``imap_client`` fixture patches ``IMAPClient`` so the adapter's real
    code paths run against in-memory messages.
"""

import pytest
from imapclient.exceptions import IMAPClientError, LoginError
from imapclient.response_types import BodyData

from mailreader.imap.client import (
    ImapConfig,
    ImapConnectionError,
    ImapMailboxClient,
    ImapTransportError,
)
from mailreader.mime.structure import PartType

STRUCTURE = BodyData.create(
    (
        (b"text", b"plain", (b"charset", b"utf-8"), None, None, b"7bit", 5, 1, None, None, None, None),
        (b"image", b"png", None, b"<logo>", None, b"base64", 8, None, None, None, None),
        b"related",
        None,
        None,
        None,
        None,
    )
)


def store(backend, uid=10):
    backend.add_message(
        uid,
        STRUCTURE,
        {"HEADER": b"Subject: hi\r\n\r\n", "TEXT": b"whole body", "1": b"hello", "2": b"iVBORw==", "": b"raw source"},
        flags=[b"\\Recent"],
    )


def test_connect_selects_configured_folder(imap_client):
    client, backend = imap_client

    assert backend.logged_in
    assert backend.selected == "INBOX"
    assert client.config.folder == "INBOX"


def test_exit_logs_out(imap_backend):
    with ImapMailboxClient(ImapConfig(host="localhost", username="u", password="p", folder="Archive")):
        assert imap_backend.selected == "Archive"
    assert imap_backend.logged_out


def test_fetch_structure_returns_typed_tree(imap_client):
    client, backend = imap_client
    store(backend)

    structure = client.fetch_structure(10)

    assert structure.subtype == "RELATED"
    assert [part.type for part in structure.parts] == [PartType.TEXT, PartType.IMAGE]
    assert structure.parts[1].id == "<logo>"


def test_fetch_raw_part_peek_leaves_seen_flag_alone(imap_client):
    client, backend = imap_client
    store(backend)

    assert client.fetch_raw_part(10, "1", peek=True) == b"hello"
    assert backend.requests[-1] == ((10,), ("BODY.PEEK[1]",))
    assert client.fetch_flags(10) == (b"\\Recent",)


def test_fetch_raw_part_root_uses_text_section_and_marks_seen(imap_client):
    client, backend = imap_client
    store(backend)

    assert client.fetch_raw_part(10, "", peek=False) == b"whole body"
    assert backend.requests[-1] == ((10,), ("BODY[TEXT]",))
    assert b"\\Seen" in client.fetch_flags(10)


def test_header_and_raw_message(imap_client):
    client, backend = imap_client
    store(backend)

    assert client.fetch_header_blob(10) == b"Subject: hi\r\n\r\n"
    assert client.fetch_raw_message(10) == b"raw source"
    assert backend.requests[-1] == ((10,), ("BODY.PEEK[]",))


def test_missing_message_raises_transport_error(imap_client):
    client, _ = imap_client

    with pytest.raises(ImapTransportError, match="UID 99"):
        client.fetch_structure(99)


def test_protocol_errors_are_translated(imap_client):
    client, backend = imap_client
    store(backend)
    backend.fail_fetch = True

    with pytest.raises(ImapTransportError) as excinfo:
        client.fetch_raw_part(10, "1", peek=True)
    assert isinstance(excinfo.value.__cause__, IMAPClientError)


def test_login_failure_raises_connection_error(imap_backend):
    imap_backend.fail_login = True

    with pytest.raises(ImapConnectionError) as excinfo:
        with ImapMailboxClient(ImapConfig(host="localhost", username="u", password="bad")):
            pass
    assert isinstance(excinfo.value.__cause__, LoginError)
    assert not imap_backend.logged_out


def test_client_outside_context_raises():
    client = ImapMailboxClient(ImapConfig(host="localhost", username="u", password="p"))

    with pytest.raises(ImapConnectionError):
        client.fetch_flags(1)


def test_config_repr_hides_password():
    assert "secret" not in repr(ImapConfig(host="h", username="u", password="secret"))
