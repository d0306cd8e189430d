from __future__ import annotations

from typing import Optional

import pytest

import core.processor as processor_module
from core.config import EngineConfig, FilterBlock, IdentityConfig, KeywordPolicy
from core.models import AssigneeChange, Classification, Delivery, Identity, MentionSignals, Message, Origin
from core.ports import StoreUnavailableError
from core.processor import ArbitrationProcessor
from core.registry import IdentityRegistry

A = Identity(platform="telegram", self_id="A")
B = Identity(platform="telegram", self_id="B")
STRANGER = Identity(platform="telegram", self_id="Z")


class FakeStore:
    def __init__(self, assignees: Optional[dict[str, str]] = None) -> None:
        self.assignees: dict[str, str] = dict(assignees or {})
        self.writes: list[tuple[str, str]] = []
        self.unavailable = False

    def get_assignee(self, channel_key: str) -> str:
        return self.assignees.get(channel_key, "")

    def set_assignee(self, channel_key: str, assignee: str) -> None:
        if self.unavailable:
            raise StoreUnavailableError("store is down")
        self.writes.append((channel_key, assignee))
        self.assignees[channel_key] = assignee


class FakeSink:
    def __init__(self) -> None:
        self.changes: list[AssigneeChange] = []

    def record_change(self, change: AssigneeChange) -> None:
        self.changes.append(change)


def _message(
    content: str = "hello",
    *,
    is_direct: bool = False,
    signals: Optional[MentionSignals] = None,
) -> Message:
    return Message(
        channel_key="telegram:-100",
        content=content,
        origin=Origin(guild_id="-100", user_id="42", channel_id="-100", is_direct=is_direct),
        mention_signals=signals or MentionSignals(),
    )


def _processor(
    configs: list[IdentityConfig],
    store: FakeStore,
    sink: Optional[FakeSink] = None,
    engine: Optional[EngineConfig] = None,
) -> ArbitrationProcessor:
    return ArbitrationProcessor(
        registry=IdentityRegistry(configs),
        store=store,
        sink=sink or FakeSink(),
        engine_config=engine or EngineConfig(),
    )


def test_owner_keeps_channel_when_both_respond() -> None:
    store = FakeStore({"telegram:-100": "A"})
    sink = FakeSink()
    processor = _processor([IdentityConfig(identity=A), IdentityConfig(identity=B)], store, sink)

    message = _message()
    result = processor.handle([Delivery(B, message), Delivery(A, message)])

    assert result is not None
    assert result.final == "A"
    assert store.writes == []
    assert sink.changes == []


def test_pass_follows_configuration_order_not_arrival_order() -> None:
    store = FakeStore()
    processor = _processor([IdentityConfig(identity=A), IdentityConfig(identity=B)], store)

    message = _message()
    processor.handle([Delivery(B, message), Delivery(A, message)])

    assert store.assignees["telegram:-100"] == "A"


def test_second_identical_pass_writes_nothing() -> None:
    store = FakeStore()
    sink = FakeSink()
    processor = _processor([IdentityConfig(identity=A)], store, sink)

    deliveries = [Delivery(A, _message())]
    processor.handle(deliveries)
    processor.handle(deliveries)

    assert store.writes == [("telegram:-100", "A")]
    assert len(sink.changes) == 1


def test_mention_hands_channel_to_addressed_bot() -> None:
    store = FakeStore({"telegram:-100": "A"})
    sink = FakeSink()
    processor = _processor([IdentityConfig(identity=A), IdentityConfig(identity=B)], store, sink)

    message = _message(signals=MentionSignals(inline_mention_ids=("B",)))
    processor.handle([Delivery(A, message), Delivery(B, message)])

    # Released then claimed, but written once.
    assert store.writes == [("telegram:-100", "B")]
    assert [(c.identity, c.previous, c.new, c.reason) for c in sink.changes] == [
        (A, "A", "", "mentioned-other"),
        (B, "", "B", "mentioned-self"),
    ]


def test_unconfigured_identity_is_not_managed() -> None:
    store = FakeStore()
    processor = _processor([IdentityConfig(identity=A, enabled=False)], store)

    result = processor.handle([Delivery(STRANGER, _message())])

    assert result is None
    assert store.writes == []


def test_direct_messages_are_left_alone_by_default() -> None:
    store = FakeStore()
    processor = _processor([IdentityConfig(identity=A)], store)

    assert processor.handle([Delivery(A, _message(is_direct=True))]) is None
    assert store.writes == []


def test_direct_messages_can_be_managed() -> None:
    store = FakeStore()
    processor = _processor(
        [IdentityConfig(identity=A)],
        store,
        engine=EngineConfig(manage_direct_messages=True),
    )

    processor.handle([Delivery(A, _message(is_direct=True))])

    assert store.assignees["telegram:-100"] == "A"


def test_classification_error_is_isolated(monkeypatch: pytest.MonkeyPatch) -> None:
    real_classify = processor_module.classify

    def flaky_classify(message, config):
        if config.identity == A:
            raise RuntimeError("boom")
        return real_classify(message, config)

    monkeypatch.setattr(processor_module, "classify", flaky_classify)
    store = FakeStore({"telegram:-100": "A"})
    processor = _processor([IdentityConfig(identity=A), IdentityConfig(identity=B)], store)

    message = _message()
    decisions = processor.classify_all([Delivery(A, message), Delivery(B, message)])
    assert decisions[0].failed
    assert decisions[0].classification == Classification.SKIP
    assert decisions[1].classification == Classification.RESPOND

    processor.handle([Delivery(A, message), Delivery(B, message)])
    assert store.assignees["telegram:-100"] == "B"


def test_skip_releases_ownership() -> None:
    store = FakeStore({"telegram:-100": "A"})
    config = IdentityConfig(identity=A, keyword_policy=KeywordPolicy.STRICT)
    processor = _processor([config], store)

    processor.handle([Delivery(A, _message())])

    assert store.assignees["telegram:-100"] == ""


def test_restore_puts_back_original_assignees() -> None:
    store = FakeStore({"telegram:-100": "B"})
    processor = _processor(
        [IdentityConfig(identity=A, keyword_filter=FilterBlock(enabled=True, rules=("x",)))],
        store,
    )

    processor.handle([Delivery(A, _message("x marks"))])
    processor.handle([Delivery(A, _message("nothing"))])
    assert store.assignees["telegram:-100"] == ""

    assert processor.restore() == 1
    assert store.assignees["telegram:-100"] == "B"
    assert processor.restore() == 0


def test_restore_is_skipped_when_store_is_unavailable() -> None:
    store = FakeStore()
    processor = _processor([IdentityConfig(identity=A)], store)
    processor.handle([Delivery(A, _message())])

    store.unavailable = True
    assert processor.restore() == 0
    assert store.assignees["telegram:-100"] == "A"
