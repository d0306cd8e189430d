"""Core arbitration pass.

This module is integration-agnostic. It only relies on ports for the channel
store and the change log, enabling other hosts or adapters without changes
here.
"""

from __future__ import annotations

import logging
from typing import Dict, List, Optional, Sequence, Tuple

from core.arbitration import ArbitrationResult, arbitrate
from core.config import EngineConfig, IdentityConfig
from core.decision import classify
from core.models import Classification, Decision, DecisionTrace, Delivery
from core.ports import ChangeSinkPort, ChannelStorePort, StoreUnavailableError
from core.registry import IdentityRegistry

LOGGER = logging.getLogger(__name__)

REASON_EVALUATION_ERROR = "evaluation error"


class ArbitrationProcessor:
    """Classifies every attached identity for a message, then arbitrates."""

    def __init__(
        self,
        registry: IdentityRegistry,
        store: ChannelStorePort,
        sink: ChangeSinkPort,
        engine_config: EngineConfig,
    ) -> None:
        self._registry = registry
        self._store = store
        self._sink = sink
        self._engine = engine_config
        # channel_key -> assignee before our first change, for teardown restore
        self._baseline: Dict[str, str] = {}

    def _classify_safely(self, delivery: Delivery, config: IdentityConfig) -> Decision:
        try:
            return classify(delivery.message, config)
        except Exception:
            LOGGER.exception("Classification failed for %s", config.identity)
            trace = DecisionTrace(
                identity=config.identity,
                classification=Classification.SKIP,
                reason=REASON_EVALUATION_ERROR,
            )
            return Decision(classification=Classification.SKIP, trace=trace, failed=True)

    def _attached(self, deliveries: Sequence[Delivery]) -> List[Tuple[Delivery, IdentityConfig]]:
        attached: List[Tuple[Delivery, IdentityConfig]] = []
        seen = set()
        for delivery in deliveries:
            identity = delivery.identity
            if identity in seen:
                continue
            seen.add(identity)
            config = self._registry.config_for(identity.platform, identity.self_id)
            if config is None:
                # Unconfigured bots are never managed.
                LOGGER.debug("No configuration for %s, not managing", identity)
                continue
            attached.append((delivery, config))
        attached.sort(key=lambda pair: self._registry.position(pair[1].identity))
        return attached

    def classify_all(self, deliveries: Sequence[Delivery]) -> List[Decision]:
        """Phase one: classify each attached identity in configuration order."""

        decisions = []
        for delivery, config in self._attached(deliveries):
            decision = self._classify_safely(delivery, config)
            LOGGER.debug("%s", decision.trace.describe())
            decisions.append(decision)
        return decisions

    def handle(self, deliveries: Sequence[Delivery]) -> Optional[ArbitrationResult]:
        """Run one full pass for a message seen by one or more identities."""

        if not deliveries:
            return None
        message = deliveries[0].message

        if message.origin.is_direct and not self._engine.manage_direct_messages:
            return None

        decisions = self.classify_all(deliveries)
        if not decisions:
            return None

        # Phase two: one read, one decision, at most one write.
        current = self._store.get_assignee(message.channel_key)
        result = arbitrate(message.channel_key, decisions, current)
        if not result.changes:
            return result

        if result.changed:
            self._baseline.setdefault(result.channel_key, result.previous)
            self._store.set_assignee(result.channel_key, result.final)

        for change in result.changes:
            self._sink.record_change(change)
            LOGGER.info(
                "Assignee for %s: %r -> %r by %s (%s)",
                change.channel_key,
                change.previous,
                change.new,
                change.identity,
                change.reason,
            )
        return result

    def restore(self) -> int:
        """Put back the assignee each touched channel had before this run.

        Returns the number of channels restored. If the store is unreachable
        the whole restoration is skipped.
        """

        if not self._baseline:
            return 0
        try:
            for channel_key, assignee in self._baseline.items():
                self._store.set_assignee(channel_key, assignee)
        except StoreUnavailableError:
            LOGGER.warning("Channel store unavailable, skipping assignee restoration", exc_info=True)
            return 0
        restored = len(self._baseline)
        self._baseline.clear()
        LOGGER.info("Restored assignees for %s channels", restored)
        return restored
