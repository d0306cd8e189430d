from __future__ import annotations

from core.channel_keys import TOPIC_SUFFIX, build_channel_key


def test_build_channel_key() -> None:
    assert build_channel_key("telegram", "-100123") == "telegram:-100123"
    assert build_channel_key("telegram", "-100123", 7) == f"telegram:-100123{TOPIC_SUFFIX}7"
