"""
Module: tests/unit/test_walker.py

What:
    Drive :class:`PartTreeWalker` over hand-built structure trees served by
    :class:`FakeTransport` and assert on the reconstructed bodies,
    attachments and fetched section paths.

Why:
    Section numbering, body order and the attachment/body split are the
    behaviours most likely to regress when the classification rules change.

How:
    Each test builds a :class:`PartStructure` tree, walks it into a fresh
    :class:`Mail` and only then reads the lazily fetched bodies.

Invariants & Safety Rules:
    - Nothing is fetched during the walk itself.
    - Transport errors are not absorbed.
"""

import base64

import pytest

from fakes import FakeTransport

from mailreader.core.mail import Mail
from mailreader.imap.client import ImapTransportError
from mailreader.mime.structure import PartKind, PartStructure, PartType, TransferEncoding
from mailreader.mime.walker import PartTreeWalker, child_path

UID = 7


def text(subtype="PLAIN", charset="utf-8", encoding=TransferEncoding.SEVEN_BIT, **kwargs):
    parameters = kwargs.pop("parameters", (("charset", charset),) if charset else ())
    return PartStructure(type=PartType.TEXT, subtype=subtype, encoding=encoding, parameters=parameters, **kwargs)


def multipart(subtype, *parts):
    return PartStructure(type=PartType.MULTIPART, subtype=subtype, parts=tuple(parts))


def leaf(part_type, subtype, **kwargs):
    return PartStructure(type=part_type, subtype=subtype, **kwargs)


def walk(structure, parts, *, mark_as_seen=True, **options):
    transport = FakeTransport().add(UID, structure, parts)
    mail = Mail(uid=UID)
    PartTreeWalker(transport.fetch_raw_part, **options).walk(mail, structure, "", mark_as_seen)
    return mail, transport


def test_single_part_quoted_printable_latin1():
    structure = text(charset="iso-8859-1", encoding=TransferEncoding.QUOTED_PRINTABLE)
    mail, transport = walk(structure, {"": b"caf=E9"})

    assert mail.text_plain == "café"
    assert mail.text_html == ""
    assert transport.calls == [(UID, "", False)]


def test_mixed_with_binary_attachment():
    structure = multipart(
        "MIXED",
        text(),
        leaf(
            PartType.APPLICATION,
            "OCTET-STREAM",
            encoding=TransferEncoding.BASE64,
            disposition="attachment",
            dparameters=(("filename", "bar.bin"),),
        ),
    )
    mail, _ = walk(structure, {"1": b"foo", "2": base64.b64encode(b"\x00\x01binary")})

    assert mail.text_plain == "foo"
    assert mail.has_attachments
    [attachment] = mail.attachments.values()
    assert attachment.name == "bar.bin"
    assert attachment.disposition == "attachment"
    assert attachment.content_id is None
    assert attachment.id.isdigit()
    assert attachment.get_contents() == b"\x00\x01binary"


def test_bodies_follow_depth_first_sibling_order():
    structure = multipart(
        "MIXED",
        multipart("ALTERNATIVE", text(), text("HTML")),
        text(),
        text("HTML"),
    )
    parts = {"1.1": b"a", "1.2": b"<b>A</b>", "2": b"b", "3": b"<i>B</i>"}
    mail, _ = walk(structure, parts)

    assert mail.text_plain == "ab"
    assert mail.text_html == "<b>A</b><i>B</i>"


def test_reordering_siblings_reorders_output():
    structure = multipart("MIXED", text(), text())
    mail, _ = walk(structure, {"1": b"first ", "2": b"second"})
    swapped = multipart("MIXED", *reversed(structure.parts))
    swapped_mail, _ = walk(swapped, {"1": b"second", "2": b" first"})

    assert mail.text_plain == "first second"
    assert swapped_mail.text_plain == "second first"


def test_rfc822_wrapper_does_not_add_numbering_level():
    embedded = multipart("ALTERNATIVE", text(), text("HTML"))
    wrapper = leaf(PartType.MESSAGE, "RFC822", parts=(embedded,))
    structure = multipart("MIXED", text(), wrapper)
    mail, transport = walk(structure, {"1": b"outer ", "2.1": b"inner", "2.2": b"<p>inner</p>"})

    assert mail.text_plain == "outer inner"
    assert mail.text_html == "<p>inner</p>"
    assert [path for _, path, _ in transport.calls] == ["1", "2.1", "2.2"]


def test_lowercase_subtypes_are_classified_like_uppercase():
    embedded = multipart("alternative", text("plain"), text("html"))
    wrapper = leaf(PartType.MESSAGE, "rfc822", parts=(embedded,))
    structure = multipart("mixed", wrapper)
    mail, transport = walk(structure, {"1.1": b"plain body", "1.2": b"<p>html</p>"})

    assert mail.text_plain == "plain body"
    assert mail.text_html == "<p>html</p>"
    assert [path for _, path, _ in transport.calls] == ["1.1", "1.2"]


def test_child_path_numbering():
    mixed = multipart("MIXED", text())
    wrapper = leaf(PartType.MESSAGE, "RFC822", parts=(mixed,))

    assert child_path(mixed, "", 0) == "1"
    assert child_path(mixed, "3.2", 1) == "3.2.2"
    assert child_path(wrapper, "4", 0) == "4"


def test_root_text_with_filename_is_body_not_attachment():
    structure = text(parameters=(("charset", "utf-8"), ("name", "notes.txt")))
    mail, _ = walk(structure, {"": b"hello"})

    assert mail.text_plain == "hello"
    assert mail.attachments == {}
    assert not mail.has_attachments


def test_root_non_text_with_filename_is_attachment():
    structure = leaf(PartType.APPLICATION, "PDF", parameters=(("name", "scan.pdf"),))
    mail, transport = walk(structure, {"": b"%PDF-1.4"})

    [attachment] = mail.attachments.values()
    assert attachment.name == "scan.pdf"
    assert attachment.get_contents() == b"%PDF-1.4"
    assert transport.calls == [(UID, "", False)]


def test_leaf_is_either_body_or_attachment():
    inline_text = text(id="<note@x>", disposition="inline")
    structure = multipart("MIXED", text(), inline_text)
    mail, _ = walk(structure, {"1": b"body", "2": b"attached text"})

    assert mail.text_plain == "body"
    assert list(mail.attachments) == ["note@x"]
    assert mail.attachments["note@x"].get_contents() == b"attached text"


def test_peek_flag_is_threaded_through_recursion():
    structure = multipart("MIXED", text(), multipart("ALTERNATIVE", text(), text("HTML")))
    mail, transport = walk(structure, {"1": b"a", "2.1": b"b", "2.2": b"c"}, mark_as_seen=False)

    assert mail.text_plain == "ab"
    assert mail.text_html == "c"
    assert {peek for _, _, peek in transport.calls} == {True}


def test_walk_does_not_fetch_until_bodies_are_read():
    structure = multipart("MIXED", text(), text("HTML"))
    mail, transport = walk(structure, {"1": b"a", "2": b"b"})

    assert transport.calls == []
    assert mail.text_plain == "a"
    assert mail.text_plain == "a"
    assert transport.calls == [(UID, "1", False)]


def test_unidentified_exotic_leaf_is_discarded():
    structure = multipart("MIXED", text(), leaf(PartType.APPLICATION, "OCTET-STREAM"))
    mail, transport = walk(structure, {"1": b"only text", "2": b"\x00"})

    assert mail.text_plain == "only text"
    assert mail.attachments == {}
    assert [path for _, path, _ in transport.calls] == ["1"]


def test_embedded_message_leaf_is_trimmed_into_plain_text():
    status = leaf(PartType.MESSAGE, "DELIVERY-STATUS")
    structure = multipart("REPORT", text(), status)
    mail, _ = walk(structure, {"1": b"Bounce.\n", "2": b"\r\n  Status: 5.0.0\r\n\r\n"})

    assert mail.text_plain == "Bounce.\nStatus: 5.0.0"


def test_html_charset_is_converted():
    structure = text("HTML", charset="iso-8859-1")
    mail, _ = walk(structure, {"": b"<p>caf\xe9</p>"})

    assert mail.text_html == "<p>café</p>"


def test_attachment_bytes_are_not_charset_converted():
    structure = multipart(
        "MIXED",
        text(),
        text(charset="iso-8859-1", parameters=(("charset", "iso-8859-1"), ("name", "latin.txt"))),
    )
    mail, _ = walk(structure, {"1": b"", "2": b"caf\xe9"})

    [attachment] = mail.attachments.values()
    assert attachment.charset == "iso-8859-1"
    assert attachment.get_contents() == b"caf\xe9"


def test_duplicate_content_ids_merge_chunks():
    first = leaf(PartType.IMAGE, "PNG", id="<img1>", parameters=(("name", "one.png"),))
    second = leaf(PartType.IMAGE, "PNG", id=" <img1> ", parameters=(("name", "two.png"),))
    mail, _ = walk(multipart("RELATED", text("HTML"), first, second), {"1": b"", "2": b"AB", "3": b"CD"})

    assert list(mail.attachments) == ["img1"]
    attachment = mail.attachments["img1"]
    assert attachment.name == "two.png"
    assert attachment.content_id == "img1"
    assert attachment.get_contents() == b"ABCD"


def test_empty_content_id_is_not_kept_as_cid():
    image = leaf(PartType.IMAGE, "PNG", id="<>", parameters=(("name", "chart.png"),))
    mail, _ = walk(multipart("MIXED", text(), image), {"1": b"", "2": b"PNG"})

    [attachment] = mail.attachments.values()
    assert attachment.id.isdigit()
    assert attachment.content_id is None
    assert not attachment.is_embeddable_image


def test_nameless_attachment_gets_synthesised_name():
    image = leaf(PartType.IMAGE, "GIF", id="<logo@example.org>")
    mail, _ = walk(multipart("RELATED", text("HTML"), image), {"1": b"", "2": b"GIF89a"})

    assert mail.attachments["logo@example.org"].name == "logo@example.org.gif"


def test_rfc2231_filename_is_decoded():
    attachment_part = leaf(
        PartType.APPLICATION,
        "PDF",
        disposition="attachment",
        dparameters=(("filename*0*", "utf-8''%E2%82%AC"), ("filename*1*", "%20rates.pdf")),
    )
    mail, _ = walk(multipart("MIXED", text(), attachment_part), {"1": b"", "2": b""})

    [attachment] = mail.attachments.values()
    assert attachment.name == "€ rates.pdf"


def test_rfc2047_filename_is_decoded():
    attachment_part = leaf(PartType.APPLICATION, "PDF", parameters=(("name", "=?UTF-8?Q?r=C3=A9sum=C3=A9.pdf?="),))
    mail, _ = walk(multipart("MIXED", text(), attachment_part), {"1": b"", "2": b""})

    [attachment] = mail.attachments.values()
    assert attachment.name == "résumé.pdf"


def test_attachments_ignore_skips_records():
    structure = multipart("MIXED", text(), leaf(PartType.APPLICATION, "PDF", parameters=(("name", "a.pdf"),)))
    mail, transport = walk(structure, {"1": b"text", "2": b"pdf"}, attachments_ignore=True)

    assert mail.text_plain == "text"
    assert mail.attachments == {}
    assert mail.has_attachments
    assert [path for _, path, _ in transport.calls] == ["1"]


def test_malformed_parts_degrade_without_raising():
    structure = multipart(
        "MIXED",
        text(charset="not-a-charset", encoding=TransferEncoding.BASE64),
        leaf(PartType.OTHER, "", parameters=(("name*1", "x"),)),
    )
    mail, _ = walk(structure, {"1": b"aGVsbG8=!!garbage", "2": b""})

    assert mail.text_plain.startswith("hello")
    assert len(mail.attachments) == 1


def test_transport_errors_propagate():
    structure = multipart("MIXED", text(), text("HTML"))
    transport = FakeTransport(error=ImapTransportError("connection reset")).add(UID, structure, {})
    mail = Mail(uid=UID)
    PartTreeWalker(transport.fetch_raw_part).walk(mail, structure)

    with pytest.raises(ImapTransportError):
        _ = mail.text_plain


@pytest.mark.parametrize(
    "structure, attachment_id, kind",
    [
        (multipart("MIXED", text()), None, PartKind.CONTAINER),
        (text(), "x", PartKind.ATTACHMENT),
        (text(), None, PartKind.PLAIN_TEXT),
        (text("HTML"), None, PartKind.HTML),
        (text("ENRICHED"), None, PartKind.HTML),
        (leaf(PartType.MESSAGE, "RFC822"), None, PartKind.EMBEDDED_MESSAGE),
        (leaf(PartType.AUDIO, "OGG"), None, PartKind.DISCARDED),
    ],
)
def test_classify(structure, attachment_id, kind):
    assert PartTreeWalker.classify(structure, attachment_id) == kind
