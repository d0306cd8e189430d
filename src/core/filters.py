"""Source, command and keyword filter evaluation (core domain).

Each evaluator is a pure predicate over one filter block. A disabled block
never looks at its rules.
"""

from __future__ import annotations

import logging
from typing import Union

from core.config import FilterBlock, FilterMode, KeywordPolicy, SourceRule
from core.models import Origin

LOGGER = logging.getLogger(__name__)


def _as_bool(value: Union[str, bool]) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() == "true"


def source_rule_matches(rule: SourceRule, origin: Origin) -> bool:
    """Return whether a single source rule matches the origin.

    Unknown kinds never match.
    """

    if rule.kind == "guild":
        return origin.guild_id == str(rule.value)
    if rule.kind == "user":
        return origin.user_id == str(rule.value)
    if rule.kind == "channel":
        return origin.channel_id == str(rule.value)
    if rule.kind == "private":
        return origin.is_direct == _as_bool(rule.value)
    LOGGER.debug("Ignoring source rule with unknown kind %r", rule.kind)
    return False


def evaluate_source(origin: Origin, block: FilterBlock) -> bool:
    """Return True when the origin is allowed by the source filter.

    A disabled block or an empty rule list means no restriction.
    """

    if not block.enabled or not block.rules:
        return True
    matched = any(source_rule_matches(rule, origin) for rule in block.rules)
    if block.mode == FilterMode.WHITELIST:
        return matched
    return not matched


def evaluate_command(command: str, block: FilterBlock) -> bool:
    """Return True when the command may be answered.

    An enabled filter with no commands rejects everything. Otherwise the
    list is an allow-list regardless of the configured mode.
    """

    if not block.enabled:
        return True
    if not block.rules:
        return False
    allowed = [name for name in block.rules if name != ""]
    return command in allowed


def evaluate_keywords(content: str, block: FilterBlock, policy: KeywordPolicy) -> bool:
    """Return True when a non-command message should be answered."""

    if not block.enabled:
        return policy == KeywordPolicy.PERMISSIVE
    if not block.rules:
        return False
    matched = any(keyword in content for keyword in block.rules)
    if block.mode == FilterMode.WHITELIST:
        return matched
    return not matched
