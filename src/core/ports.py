"""Ports (interfaces) used by the core processor.

Ports define the minimal contracts for the channel store and the change log
so that the core can be reused with different backends.
"""

from __future__ import annotations

from typing import Protocol

from core.models import AssigneeChange


class StoreUnavailableError(RuntimeError):
    """Raised by store adapters when the backing store cannot be reached."""


class ChannelStorePort(Protocol):
    """Access to the single assignee field of each channel record.

    An empty string means nobody owns the channel.
    """

    def get_assignee(self, channel_key: str) -> str:
        ...

    def set_assignee(self, channel_key: str, assignee: str) -> None:
        ...


class ChangeSinkPort(Protocol):
    """Receives every assignee change for auditing."""

    def record_change(self, change: AssigneeChange) -> None:
        ...
