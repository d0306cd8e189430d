"""Core domain models.

These dataclasses are shared across the core and adapters to avoid tight
coupling to any integration-specific types.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Tuple


@dataclass(frozen=True)
class Identity:
    """One configured bot account, keyed by platform and account id."""

    platform: str
    self_id: str

    def __str__(self) -> str:
        return f"{self.platform}:{self.self_id}"


@dataclass(frozen=True)
class Origin:
    """Where a message came from."""

    guild_id: Optional[str]
    user_id: Optional[str]
    channel_id: Optional[str]
    is_direct: bool


@dataclass(frozen=True)
class MentionSignals:
    """Every addressing signal a transport may carry."""

    structural_self_flag: bool = False
    inline_mention_ids: Tuple[str, ...] = ()
    reply_target_id: Optional[str] = None
    raw_markup_text: str = ""


@dataclass(frozen=True)
class Message:
    """Normalized, read-only message view consumed by the decision engine."""

    channel_key: str
    content: str
    origin: Origin
    command: Optional[str] = None
    mention_signals: MentionSignals = field(default_factory=MentionSignals)


@dataclass(frozen=True)
class Delivery:
    """A message as it was received by one identity."""

    identity: Identity
    message: Message


class Classification(str, Enum):
    RESPOND = "respond"
    SKIP = "skip"
    YIELD = "yield"


@dataclass(frozen=True)
class DecisionTrace:
    """Stage-by-stage record of one (message, identity) evaluation.

    Stages that never ran are left as ``None``.
    """

    identity: Identity
    classification: Classification
    reason: str
    source_passed: Optional[bool] = None
    mentions: Tuple[str, ...] = ()
    command_passed: Optional[bool] = None
    keyword_passed: Optional[bool] = None

    def describe(self) -> str:
        stages = [
            f"source={_stage(self.source_passed)}",
            f"mentions=[{', '.join(self.mentions)}]",
            f"command={_stage(self.command_passed)}",
            f"keyword={_stage(self.keyword_passed)}",
        ]
        return f"{self.identity} -> {self.classification.value} ({self.reason}); {' '.join(stages)}"


def _stage(value: Optional[bool]) -> str:
    if value is None:
        return "-"
    return "pass" if value else "fail"


@dataclass(frozen=True)
class Decision:
    """Classification plus the trace explaining it."""

    classification: Classification
    trace: DecisionTrace
    # Set when classification blew up; the identity is not managed this pass.
    failed: bool = False

    @property
    def identity(self) -> Identity:
        return self.trace.identity

    @property
    def reason(self) -> str:
        return self.trace.reason


@dataclass(frozen=True)
class AssigneeChange:
    """A single assignee mutation, reported to the log sink."""

    channel_key: str
    identity: Identity
    previous: str
    new: str
    reason: str
