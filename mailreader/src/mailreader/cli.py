"""mailreader command-line interface.

What:
  Provide a Typer-based entry point that fetches one message by UID and prints
  either a JSON summary of the reconstructed mail (``show``) or its raw source
  (``raw``).

Why:
  Operators debugging a decoding problem want to see what the library makes
  of a specific message without writing a script.

How:
  Load the runtime configuration, open an
  :class:`~mailreader.imap.client.ImapMailboxClient` and hand it to
  :class:`~mailreader.imap.mailbox.Mailbox`. Configuration and transport
  errors are logged and turned into exit code ``1``.

Interfaces:
  ``app`` (Typer application), ``show``, ``raw``, ``main``.

Invariants & Safety:
  - Exit codes follow shell expectations (``0`` success, ``1`` failure).
  - Only the command output is written to ``stdout``; logs go to ``stderr``.
"""
from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, Optional

import typer

from .config.loader import ConfigLoadError, load_runtime_config
from .config.schema import RuntimeConfig
from .core.mail import Mail
from .imap.client import ImapConfig, ImapMailboxClient, ImapTransportError
from .imap.mailbox import Mailbox
from .utils.ids import new_run_id
from .utils.logging import get_logger

app = typer.Typer(help="Fetch and decode IMAP messages")

LOGGER = get_logger("mailreader.cli")


def _load(config_path: Optional[Path]) -> RuntimeConfig:
    try:
        return load_runtime_config(config_path, reload=config_path is not None)
    except ConfigLoadError as exc:
        LOGGER.error("runtime_load_failed", error=str(exc))
        typer.echo(f"error: {exc}", err=True)
        raise typer.Exit(code=1) from exc


def _open(runtime: RuntimeConfig, folder: Optional[str]) -> ImapMailboxClient:
    return ImapMailboxClient(ImapConfig.from_settings(runtime.imap, folder=folder))


def summarize(mail: Mail) -> Dict[str, Any]:
    """Return the JSON-serialisable view printed by ``show``."""

    return {
        "uid": mail.uid,
        "date": mail.date,
        "subject": mail.subject,
        "from": {"name": mail.from_name, "address": mail.from_address},
        "to": mail.to,
        "cc": mail.cc,
        "message_id": mail.message_id,
        "seen": mail.is_seen,
        "text_plain": mail.text_plain,
        "text_html": mail.text_html,
        "attachments": [
            {
                "id": attachment.id,
                "name": attachment.name,
                "mime_type": attachment.mime_type,
                "content_id": attachment.content_id,
                "file_path": str(attachment.file_path) if attachment.file_path else None,
            }
            for attachment in mail.attachments.values()
        ],
    }


@app.command("show")
def show(
    uid: int = typer.Argument(..., help="UID of the message in the selected folder"),
    *,
    peek: bool = typer.Option(False, "--peek", help="Do not set the \\Seen flag"),
    config_path: Optional[Path] = typer.Option(None, "--config", help="Path to config.yaml"),
    folder: Optional[str] = typer.Option(None, help="Override the configured mailbox"),
    embed_images: bool = typer.Option(False, "--embed-images", help="Inline cid: images as data URIs"),
) -> None:
    """Print the decoded envelope, bodies and attachment list of one message."""

    runtime = _load(config_path)
    run_id = new_run_id()
    try:
        with _open(runtime, folder) as client:
            mail = Mailbox(client, runtime.mail, logger=LOGGER).get_mail(uid, mark_as_seen=not peek)
            if embed_images:
                mail.embed_image_attachments()
            summary = summarize(mail)
    except ImapTransportError as exc:
        LOGGER.error("show_failed", run_id=run_id, uid=uid, error=str(exc))
        typer.echo(f"error: {exc}", err=True)
        raise typer.Exit(code=1) from exc
    typer.echo(json.dumps(summary, ensure_ascii=False, indent=2))


@app.command("raw")
def raw(
    uid: int = typer.Argument(..., help="UID of the message in the selected folder"),
    *,
    config_path: Optional[Path] = typer.Option(None, "--config", help="Path to config.yaml"),
    folder: Optional[str] = typer.Option(None, help="Override the configured mailbox"),
) -> None:
    """Write the raw RFC 5322 source of one message to stdout without marking it seen."""

    runtime = _load(config_path)
    try:
        with _open(runtime, folder) as client:
            data = Mailbox(client, runtime.mail, logger=LOGGER).get_raw_mail(uid, mark_as_seen=False)
    except ImapTransportError as exc:
        LOGGER.error("raw_failed", uid=uid, error=str(exc))
        typer.echo(f"error: {exc}", err=True)
        raise typer.Exit(code=1) from exc
    typer.echo(data, nl=False)


def main() -> None:
    """Execute the Typer application entry point."""

    app()


if __name__ == "__main__":  # pragma: no cover
    main()
