"""Mention extraction (core domain)."""

from __future__ import annotations

import re
from typing import List

from core.models import Message

# <at id="123" .../> (id anywhere among the attributes) and <at>123</at>,
# matched in one pass to keep text order.
_MARKUP_MENTION = re.compile(r"""<at\s+(?:[^>]*?\s)?id=["']([^"']+)["'][^>]*/>|<at>(\d+)</at>""")


def _markup_ids(text: str) -> List[str]:
    return [m.group(1) or m.group(2) for m in _MARKUP_MENTION.finditer(text)]


def extract_mentions(message: Message, self_id: str) -> List[str]:
    """Return every identity id addressed by the message.

    Sources are read in a fixed order and each id is kept at its first
    position:
    - the structural "you were mentioned" flag (only ever means ``self_id``)
    - inline mention elements
    - the reply target
    - textual ``<at .../>`` markup
    """

    signals = message.mention_signals
    candidates: List[str] = []
    if signals.structural_self_flag:
        candidates.append(self_id)
    candidates.extend(signals.inline_mention_ids)
    if signals.reply_target_id:
        candidates.append(signals.reply_target_id)
    candidates.extend(_markup_ids(signals.raw_markup_text or ""))

    mentioned: List[str] = []
    for candidate in candidates:
        candidate = str(candidate)
        if candidate and candidate not in mentioned:
            mentioned.append(candidate)
    return mentioned
