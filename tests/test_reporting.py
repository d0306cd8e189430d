from __future__ import annotations

from rich.console import Console

from adapters.reporting import (
    build_bots_table,
    build_config_table,
    format_identity_label,
    summarize_command_filter,
    summarize_keyword_filter,
    summarize_source_filter,
)
from core.config import FilterBlock, FilterMode, IdentityConfig, KeywordPolicy, SourceRule
from core.models import Identity

A = Identity("telegram", "111")
B = Identity("telegram", "222")


def _render(renderable) -> str:
    console = Console(record=True, width=200)
    console.print(renderable)
    return console.export_text()


def test_format_identity_label_with_username() -> None:
    assert format_identity_label(A, {"111": "helper_bot"}) == "@helper_bot (telegram:111)"
    assert format_identity_label(B, {"111": "helper_bot"}) == "telegram:222"


def test_filter_summaries() -> None:
    assert summarize_source_filter(FilterBlock()) == "off"
    assert (
        summarize_source_filter(
            FilterBlock(enabled=True, mode=FilterMode.BLACKLIST, rules=(SourceRule("private", True),))
        )
        == "blacklist: private=True"
    )
    assert summarize_command_filter(FilterBlock(enabled=True)).startswith("on: (none")
    assert summarize_keyword_filter(FilterBlock(), KeywordPolicy.STRICT) == "off (no messages)"
    assert summarize_keyword_filter(FilterBlock(), KeywordPolicy.PERMISSIVE) == "off (all messages)"


def test_bots_table_shows_status() -> None:
    configs = [IdentityConfig(identity=A), IdentityConfig(identity=B, enabled=False)]
    text = _render(build_bots_table(configs, {A: True}, {"111": "helper_bot"}))
    assert "@helper_bot (telegram:111)" in text
    assert "online" in text
    assert "offline" in text


def test_config_table_lists_bots_in_order() -> None:
    configs = [
        IdentityConfig(identity=B, keyword_policy=KeywordPolicy.STRICT),
        IdentityConfig(identity=A, command_filter=FilterBlock(enabled=True, rules=("status",))),
    ]
    text = _render(build_config_table(configs))
    assert text.index("telegram:222") < text.index("telegram:111")
    assert "constrained" in text
    assert "status" in text
