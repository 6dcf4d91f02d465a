"""Expose the public utility surface for mailreader.

What:
  Re-export logging and identifier helpers that other packages import without
  knowing the underlying module layout.

Interfaces:
  ``get_logger``, ``JsonLogger``, ``new_attachment_id``, ``new_run_id``.
"""

from .ids import new_attachment_id, new_run_id
from .logging import JsonLogger, get_logger

__all__ = [
    "get_logger",
    "JsonLogger",
    "new_attachment_id",
    "new_run_id",
]
