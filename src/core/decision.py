"""Per-identity classification (core domain).

Stages run in a strict order and the first one that decides wins:
1) identity disabled -> skip
2) source filter -> skip when blocked
3) mentions -> respond when addressed, yield when someone else is
4) command filter (command messages)
5) keyword filter (everything else)
"""

from __future__ import annotations

from core.config import FilterBlock, IdentityConfig, KeywordPolicy
from core.filters import evaluate_command, evaluate_keywords, evaluate_source
from core.mentions import extract_mentions
from core.models import Classification, Decision, DecisionTrace, Message

REASON_DISABLED = "disabled"
REASON_SOURCE_BLOCKED = "source blocked"
REASON_MENTIONED_SELF = "mentioned-self"
REASON_MENTIONED_OTHER = "mentioned-other"
REASON_COMMAND_PERMITTED = "command permitted"
REASON_COMMAND_REJECTED = "command not permitted"
REASON_KEYWORD_MATCHED = "keyword matched"
REASON_KEYWORD_REJECTED = "keyword not matched"
REASON_NO_KEYWORDS = "no keywords configured"
REASON_KEYWORD_FILTER_OFF = "keyword filter disabled"
REASON_KEYWORD_FILTER_OFF_STRICT = "keyword filter disabled (constrained mode)"


def _keyword_reason(block: FilterBlock, policy: KeywordPolicy, passed: bool) -> str:
    if not block.enabled:
        return REASON_KEYWORD_FILTER_OFF if policy == KeywordPolicy.PERMISSIVE else REASON_KEYWORD_FILTER_OFF_STRICT
    if not block.rules:
        return REASON_NO_KEYWORDS
    return REASON_KEYWORD_MATCHED if passed else REASON_KEYWORD_REJECTED


def classify(message: Message, config: IdentityConfig) -> Decision:
    """Classify one message for one identity."""

    identity = config.identity

    def done(classification: Classification, reason: str, **stages) -> Decision:
        trace = DecisionTrace(identity=identity, classification=classification, reason=reason, **stages)
        return Decision(classification=classification, trace=trace)

    if not config.enabled:
        return done(Classification.SKIP, REASON_DISABLED)

    source_passed = evaluate_source(message.origin, config.source_filter)
    if not source_passed:
        return done(Classification.SKIP, REASON_SOURCE_BLOCKED, source_passed=False)

    mentions = tuple(extract_mentions(message, identity.self_id))
    if mentions:
        if identity.self_id in mentions:
            return done(Classification.RESPOND, REASON_MENTIONED_SELF, source_passed=True, mentions=mentions)
        return done(Classification.YIELD, REASON_MENTIONED_OTHER, source_passed=True, mentions=mentions)

    if message.command:
        passed = evaluate_command(message.command, config.command_filter)
        return done(
            Classification.RESPOND if passed else Classification.SKIP,
            REASON_COMMAND_PERMITTED if passed else REASON_COMMAND_REJECTED,
            source_passed=True,
            command_passed=passed,
        )

    passed = evaluate_keywords(message.content, config.keyword_filter, config.keyword_policy)
    return done(
        Classification.RESPOND if passed else Classification.SKIP,
        _keyword_reason(config.keyword_filter, config.keyword_policy, passed),
        source_passed=True,
        keyword_passed=passed,
    )
