"""Generate identifiers for attachments and CLI runs.

What:
  Provide minimal helpers for synthesising attachment ids when a MIME part has
  no Content-ID and run ids for log correlation.

Why:
  Attachment ids only need to be unique within one message, so a short random
  decimal string is enough.

How:
  Uses :mod:`secrets` for randomness. Attachment ids concatenate two random
  non-negative integers.

Interfaces:
  :func:`new_attachment_id`, :func:`new_run_id`.

Invariants & Safety:
  - Attachment ids consist of decimal digits only, so they are safe inside
    file names.
"""
from __future__ import annotations

import secrets
from datetime import datetime, timezone

_RANDOM_INT_BOUND = 2**31


def new_attachment_id() -> str:
    """Return a pseudo-random id for an attachment lacking a Content-ID.

    Returns:
      Two concatenated random integers, e.g. ``"18467041711681692777"``.
    """

    return f"{secrets.randbelow(_RANDOM_INT_BOUND)}{secrets.randbelow(_RANDOM_INT_BOUND)}"


def new_run_id() -> str:
    """Return a unique identifier for CLI invocations.

    What:
      Emits an ISO8601 timestamp suffixed with a six-hex-character random token.

    Returns:
      Unique identifier string (e.g., ``2024-01-01T00:00:00+00:00#1a2b3c``).
    """

    timestamp = datetime.now(timezone.utc).isoformat()
    suffix = secrets.token_hex(3)
    return f"{timestamp}#{suffix}"
