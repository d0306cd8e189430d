"""Helpers for working with channel record keys."""

from __future__ import annotations

from typing import Optional

TOPIC_SUFFIX = "#topic:"


def build_channel_key(platform: str, channel_id: str, topic_id: Optional[int] = None) -> str:
    """Return the store key for a channel, adding a topic suffix when needed."""

    base = f"{platform}:{channel_id}"
    if topic_id is None:
        return base
    return f"{base}{TOPIC_SUFFIX}{topic_id}"
