"""Lookup of identity configurations by (platform, self_id)."""

from __future__ import annotations

from typing import Iterable, List, Optional

from core.config import IdentityConfig
from core.models import Identity


class IdentityRegistry:
    """Ordered, read-only view over the configured identities."""

    def __init__(self, configs: Iterable[IdentityConfig]) -> None:
        self._configs = list(configs)
        self._by_identity = {config.identity: config for config in self._configs}
        self._order = {config.identity: index for index, config in enumerate(self._configs)}

    def __len__(self) -> int:
        return len(self._configs)

    def config_for(self, platform: str, self_id: str) -> Optional[IdentityConfig]:
        return self._by_identity.get(Identity(platform=platform, self_id=str(self_id)))

    def identities(self) -> List[IdentityConfig]:
        """Return every configured identity in configuration order."""

        return list(self._configs)

    def position(self, identity: Identity) -> int:
        """Configuration index, used to order a pass deterministically."""

        return self._order.get(identity, len(self._configs))
