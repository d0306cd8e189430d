"""Assignee arbitration (core domain).

Arbitration runs after every attached identity has been classified for the
message, so deference never depends on which bot's event arrived first.
Decisions are walked in configuration order against a running assignee:

- respond: claim the channel unless it is already ours, or it belongs to
  another identity that also responds to this same message
- skip / yield: give the channel up if we hold it
- anything else: leave it alone

Each identity produces at most one change, and a change is only produced
when the value actually moves.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Sequence

from core.models import AssigneeChange, Classification, Decision

UNASSIGNED = ""


@dataclass(frozen=True)
class ArbitrationResult:
    """Outcome of one arbitration pass for a channel."""

    channel_key: str
    previous: str
    final: str
    changes: List[AssigneeChange]

    @property
    def changed(self) -> bool:
        return self.previous != self.final


def arbitrate(channel_key: str, decisions: Sequence[Decision], current_assignee: str) -> ArbitrationResult:
    """Decide the channel assignee for one message.

    ``decisions`` must be in configuration order. Decisions flagged as
    failed never move the assignee and never count as the holder still
    qualifying.
    """

    responders = {
        decision.identity.self_id
        for decision in decisions
        if decision.classification == Classification.RESPOND and not decision.failed
    }
    previous = current_assignee or UNASSIGNED
    current = previous
    changes: List[AssigneeChange] = []

    for decision in decisions:
        if decision.failed:
            continue
        self_id = decision.identity.self_id

        if decision.classification == Classification.RESPOND:
            if current == self_id:
                continue
            if current and current in responders:
                # First claim wins while its holder still qualifies.
                continue
            new = self_id
        elif current == self_id:
            new = UNASSIGNED
        else:
            continue

        changes.append(
            AssigneeChange(
                channel_key=channel_key,
                identity=decision.identity,
                previous=current,
                new=new,
                reason=decision.reason,
            )
        )
        current = new

    return ArbitrationResult(channel_key=channel_key, previous=previous, final=current, changes=changes)
