"""Core configuration dataclasses.

We keep config file loading outside the core, but these dataclasses define
the shape the core expects so adapters and app layers can build safely.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Iterable, List, Optional, Tuple, Union

from core.models import Identity

LOGGER = logging.getLogger(__name__)


class FilterMode(str, Enum):
    WHITELIST = "whitelist"
    BLACKLIST = "blacklist"


class KeywordPolicy(str, Enum):
    """What a disabled keyword filter means for non-command messages.

    PERMISSIVE passes everything through so a later responder decides.
    STRICT is the older behaviour where only keyword hits get through, which
    makes a disabled filter block every non-command message.
    """

    PERMISSIVE = "unconstrained"
    STRICT = "constrained"


class CommandListPolicy(str, Enum):
    """How a non-empty command list is applied.

    The configured mode is kept for reporting only: the list is always an
    allow-list, whatever mode it is tagged with.
    """

    MEMBERSHIP = "membership"


SOURCE_KINDS = ("guild", "user", "channel", "private")


@dataclass(frozen=True)
class SourceRule:
    """One source filter entry; ``kind`` is not validated here."""

    kind: str
    value: Union[str, bool]


@dataclass(frozen=True)
class FilterBlock:
    """A toggleable filter: (enabled, mode, ordered rules)."""

    enabled: bool = False
    mode: FilterMode = FilterMode.WHITELIST
    rules: Tuple = ()


@dataclass(frozen=True)
class IdentityConfig:
    """Per-identity settings, looked up by (platform, self_id)."""

    identity: Identity
    enabled: bool = True
    source_filter: FilterBlock = field(default_factory=FilterBlock)
    command_filter: FilterBlock = field(default_factory=FilterBlock)
    keyword_filter: FilterBlock = field(default_factory=FilterBlock)
    keyword_policy: KeywordPolicy = KeywordPolicy.PERMISSIVE
    command_policy: CommandListPolicy = CommandListPolicy.MEMBERSHIP
    # Name of the environment variable holding this bot's login token.
    token_env: Optional[str] = None


@dataclass(frozen=True)
class EngineConfig:
    """Pass-level switches for the processor."""

    manage_direct_messages: bool = False
    restore_on_shutdown: bool = False


def _parse_mode(raw: object, default: FilterMode) -> FilterMode:
    if raw is None:
        return default
    try:
        return FilterMode(str(raw).lower())
    except ValueError as exc:
        raise ValueError(f"Unsupported filter mode: {raw}") from exc


def _parse_keyword_policy(raw: object) -> KeywordPolicy:
    if raw is None:
        return KeywordPolicy.PERMISSIVE
    try:
        return KeywordPolicy(str(raw).lower())
    except ValueError as exc:
        raise ValueError(f"Unsupported response mode: {raw}") from exc


def _build_block(
    raw: Optional[dict],
    rules_key: str,
    default_mode: FilterMode,
    convert: Callable[[Any], Any],
) -> FilterBlock:
    raw = raw or {}
    return FilterBlock(
        enabled=bool(raw.get("enabled", False)),
        mode=_parse_mode(raw.get("mode"), default_mode),
        rules=tuple(convert(entry) for entry in raw.get(rules_key, []) or []),
    )


def _source_rule(entry: dict) -> SourceRule:
    if not isinstance(entry, dict):
        raise ValueError(f"Source filter entries must be objects, got {entry!r}")
    kind = str(entry.get("type", entry.get("kind", ""))).lower()
    if kind not in SOURCE_KINDS:
        # Kept so the evaluator can report it; it never matches.
        LOGGER.warning("Unknown source filter kind %r", kind)
    return SourceRule(kind=kind, value=entry.get("value", ""))


def build_identity_config(raw: dict) -> IdentityConfig:
    """Normalize one raw bot entry from config.json."""

    platform = str(raw.get("platform") or "").strip()
    self_id = str(raw.get("self_id") or raw.get("selfId") or "").strip()
    if not platform or not self_id:
        raise ValueError("Each bot entry needs a platform and a self_id")

    return IdentityConfig(
        identity=Identity(platform=platform, self_id=self_id),
        enabled=bool(raw.get("enabled", True)),
        source_filter=_build_block(raw.get("source_filter"), "rules", FilterMode.WHITELIST, _source_rule),
        command_filter=_build_block(raw.get("command_filter"), "commands", FilterMode.BLACKLIST, str),
        keyword_filter=_build_block(raw.get("keyword_filter"), "keywords", FilterMode.WHITELIST, str),
        keyword_policy=_parse_keyword_policy(raw.get("mode")),
        token_env=raw.get("token_env"),
    )


def build_identity_configs(raw_bots: Iterable[dict]) -> List[IdentityConfig]:
    """Normalize the ``bots`` list, keeping configuration order.

    Later duplicates of the same identity are dropped so lookups stay
    unambiguous.
    """

    configs: List[IdentityConfig] = []
    seen: set[Identity] = set()
    for raw in raw_bots:
        config = build_identity_config(raw)
        if config.identity in seen:
            LOGGER.warning("Duplicate configuration for %s ignored", config.identity)
            continue
        seen.add(config.identity)
        configs.append(config)
    return configs
