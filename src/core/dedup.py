"""Fingerprints for recognizing one message seen by several identities."""

from __future__ import annotations

import hashlib
import re
from typing import Optional


def _collapse_whitespace(text: str) -> str:
    return re.sub(r"\s+", " ", text).strip()


def normalize_for_fingerprint(text: str) -> str:
    """Normalize text for deterministic fingerprinting."""

    return _collapse_whitespace(text).lower()


def compute_delivery_fingerprint(
    channel_key: str,
    sender_id: Optional[str],
    sent_at: str,
    text: str,
    shared_message_id: Optional[str] = None,
) -> str:
    """Return a hash identifying the same message across bot accounts.

    Message ids are not shared between accounts in every chat type, so the
    fingerprint uses the channel, the sender, the send time and the text.
    Where every account sees the same id, pass it as ``shared_message_id``
    so two identical messages sent within the same second stay distinct.
    """

    parts = [channel_key, sender_id or "", sent_at, normalize_for_fingerprint(text)]
    if shared_message_id is not None:
        parts.append(shared_message_id)
    payload = "\n".join(parts)
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()
