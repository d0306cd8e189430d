"""Group the copies of one message received by several bot clients.

Every bot account gets its own update for the same group message. The
batcher collects those deliveries for a short window and hands them to the
processor as a single pass, so arbitration sees every attached identity at
once.
"""

from __future__ import annotations

import asyncio
import logging
from collections import OrderedDict
from typing import Callable, Dict, List, Optional

from core.models import Delivery

LOGGER = logging.getLogger(__name__)

PassHandler = Callable[[List[Delivery]], object]


class DeliveryBatcher:
    """Collects deliveries per message fingerprint, then runs one pass."""

    def __init__(self, handler: PassHandler, window_seconds: float, remember: int = 1024) -> None:
        self._handler = handler
        self._window = window_seconds
        self._remember = remember
        self._pending: Dict[str, List[Delivery]] = {}
        self._timers: Dict[str, asyncio.Task] = {}
        self._done: "OrderedDict[str, None]" = OrderedDict()

    @property
    def pending(self) -> int:
        return len(self._pending)

    async def submit(self, fingerprint: str, delivery: Delivery) -> None:
        if fingerprint in self._done:
            # The pass already ran; a lone late copy could not defer properly.
            LOGGER.debug("Late delivery for %s dropped (%s)", delivery.identity, fingerprint[:12])
            return

        batch = self._pending.get(fingerprint)
        if batch is None:
            self._pending[fingerprint] = [delivery]
            self._timers[fingerprint] = asyncio.ensure_future(self._flush_later(fingerprint))
            return
        batch.append(delivery)

    async def _flush_later(self, fingerprint: str) -> None:
        await asyncio.sleep(self._window)
        self._timers.pop(fingerprint, None)
        self._flush(fingerprint)

    def _flush(self, fingerprint: str) -> Optional[object]:
        deliveries = self._pending.pop(fingerprint, None)
        if not deliveries:
            return None
        self._done[fingerprint] = None
        while len(self._done) > self._remember:
            self._done.popitem(last=False)
        try:
            return self._handler(deliveries)
        except Exception:
            # The message stays unmanaged; the next one will correct the owner.
            LOGGER.exception("Arbitration pass failed for %s", deliveries[0].message.channel_key)
            return None

    async def drain(self) -> None:
        """Run every pending pass immediately (used on shutdown)."""

        timers = list(self._timers.values())
        self._timers.clear()
        for timer in timers:
            timer.cancel()
        await asyncio.gather(*timers, return_exceptions=True)
        for fingerprint in list(self._pending):
            self._flush(fingerprint)
