from __future__ import annotations

from core.mentions import extract_mentions
from core.models import MentionSignals, Message, Origin


def _message(signals: MentionSignals) -> Message:
    return Message(
        channel_key="telegram:-100",
        content="hello",
        origin=Origin(guild_id="-100", user_id="1", channel_id="-100", is_direct=False),
        mention_signals=signals,
    )


def test_no_signals_means_no_mentions() -> None:
    assert extract_mentions(_message(MentionSignals()), "A999") == []


def test_inline_mention_of_other_bot() -> None:
    message = _message(MentionSignals(inline_mention_ids=("B123",)))
    assert extract_mentions(message, "A999") == ["B123"]


def test_structural_flag_only_asserts_self() -> None:
    message = _message(MentionSignals(structural_self_flag=True))
    assert extract_mentions(message, "A999") == ["A999"]


def test_sources_are_ordered_and_deduplicated() -> None:
    message = _message(
        MentionSignals(
            structural_self_flag=True,
            inline_mention_ids=("B1", "A999", "C3"),
            reply_target_id="B1",
            raw_markup_text='hey <at id="D4"/> and <at>55</at> and <at id="C3"/>',
        )
    )
    assert extract_mentions(message, "A999") == ["A999", "B1", "C3", "D4", "55"]


def test_markup_patterns_keep_text_order() -> None:
    message = _message(MentionSignals(raw_markup_text='<at>77</at> then <at id="x1"/>'))
    assert extract_mentions(message, "A") == ["77", "x1"]


def test_wrapping_tag_requires_numeric_body() -> None:
    message = _message(MentionSignals(raw_markup_text="<at>bob</at>"))
    assert extract_mentions(message, "A") == []


def test_extraction_is_repeatable() -> None:
    message = _message(
        MentionSignals(
            inline_mention_ids=("B", "C"),
            reply_target_id="C",
            raw_markup_text='<at id="B"/>',
        )
    )
    first = extract_mentions(message, "A")
    assert extract_mentions(message, "A") == first == ["B", "C"]


def test_self_closing_tag_with_extra_attributes() -> None:
    trailing = _message(MentionSignals(raw_markup_text='<at id="B123" name="Bob"/> look'))
    leading = _message(MentionSignals(raw_markup_text="<at name='Bob' id='B123' />"))
    assert extract_mentions(trailing, "A") == ["B123"]
    assert extract_mentions(leading, "A") == ["B123"]


def test_attribute_ending_in_id_is_not_an_id() -> None:
    message = _message(MentionSignals(raw_markup_text='<at data-id="B123" name="Bob"/>'))
    assert extract_mentions(message, "A") == []
