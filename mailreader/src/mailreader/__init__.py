"""
Module: mailreader.__init__

What:
  Aggregate package exports for mailreader, a library that fetches messages
  over IMAP and rebuilds their text bodies and attachments from the MIME
  structure.

How:
  Provide an explicit ``__all__`` that enumerates the public subpackages.

Interfaces:
  - config: Configuration schema and loader.
  - core: Mail, envelope and attachment models.
  - imap: IMAP session and the ``Mailbox`` orchestration.
  - mime: Transfer, charset and header decoding plus the part tree walker.
  - utils: Structured logging and identifier helpers.
"""

__all__ = [
    "config",
    "core",
    "imap",
    "mime",
    "utils",
]
