from __future__ import annotations

from core.arbitration import arbitrate
from core.models import Classification, Decision, DecisionTrace, Identity

A = Identity(platform="telegram", self_id="A")
B = Identity(platform="telegram", self_id="B")
C = Identity(platform="telegram", self_id="C")


def _decision(identity: Identity, classification: Classification, reason: str = "test", failed: bool = False) -> Decision:
    trace = DecisionTrace(identity=identity, classification=classification, reason=reason)
    return Decision(classification=classification, trace=trace, failed=failed)


def test_respond_claims_unassigned_channel() -> None:
    result = arbitrate("ch", [_decision(A, Classification.RESPOND, "keyword matched")], "")
    assert result.final == "A"
    assert len(result.changes) == 1
    change = result.changes[0]
    assert (change.previous, change.new, change.identity, change.reason) == ("", "A", A, "keyword matched")


def test_already_assigned_respond_is_a_no_op() -> None:
    decisions = [_decision(A, Classification.RESPOND)]
    first = arbitrate("ch", decisions, "")
    second = arbitrate("ch", decisions, first.final)
    assert second.changes == []
    assert not second.changed


def test_skip_or_yield_releases_own_channel() -> None:
    for classification in (Classification.SKIP, Classification.YIELD):
        result = arbitrate("ch", [_decision(A, classification)], "A")
        assert result.final == ""
        assert result.changes[0].new == ""


def test_skip_does_not_touch_someone_elses_channel() -> None:
    result = arbitrate("ch", [_decision(A, Classification.SKIP)], "B")
    assert result.final == "B"
    assert result.changes == []


def test_current_owner_that_still_responds_is_not_overridden() -> None:
    decisions = [_decision(A, Classification.RESPOND), _decision(B, Classification.RESPOND)]
    result = arbitrate("ch", decisions, "A")
    assert result.final == "A"
    assert result.changes == []


def test_deference_holds_when_owner_is_evaluated_later() -> None:
    decisions = [_decision(A, Classification.RESPOND), _decision(B, Classification.RESPOND)]
    result = arbitrate("ch", decisions, "B")
    assert result.final == "B"
    assert result.changes == []


def test_first_claim_wins_within_a_pass() -> None:
    decisions = [_decision(A, Classification.RESPOND), _decision(B, Classification.RESPOND)]
    result = arbitrate("ch", decisions, "")
    assert result.final == "A"
    assert [change.identity for change in result.changes] == [A]


def test_owner_that_stops_qualifying_is_replaced() -> None:
    decisions = [_decision(A, Classification.YIELD), _decision(B, Classification.RESPOND)]
    result = arbitrate("ch", decisions, "A")
    assert result.final == "B"
    assert [(c.previous, c.new) for c in result.changes] == [("A", ""), ("", "B")]


def test_owner_outside_the_pass_is_overridden() -> None:
    result = arbitrate("ch", [_decision(A, Classification.RESPOND)], "C")
    assert result.final == "A"


def test_failed_decision_never_moves_the_assignee() -> None:
    result = arbitrate("ch", [_decision(A, Classification.SKIP, failed=True)], "A")
    assert result.final == "A"
    assert result.changes == []


def test_failed_owner_does_not_count_as_still_qualifying() -> None:
    decisions = [_decision(A, Classification.SKIP, failed=True), _decision(B, Classification.RESPOND)]
    result = arbitrate("ch", decisions, "A")
    assert result.final == "B"


def test_at_most_one_change_per_identity() -> None:
    decisions = [
        _decision(A, Classification.SKIP),
        _decision(B, Classification.RESPOND),
        _decision(C, Classification.RESPOND),
    ]
    result = arbitrate("ch", decisions, "A")
    identities = [change.identity for change in result.changes]
    assert len(identities) == len(set(identities))
    assert result.final == "B"
