"""Poll the contract's round lifecycle logs and feed them to the engine.

``LockRound`` and ``EndRound`` logs become ``RoundLocked`` and
``RoundEnded`` events on the engine queue. Each (kind, epoch) pair is
delivered at most once even if overlapping block ranges are re-read. Only
the last few epochs are remembered; older logs are ignored.
"""

import asyncio
import logging

from prediction_tools.apps.staking_bot.events import (
    EngineEvent,
    ProviderFailure,
    RoundEnded,
    RoundLocked,
)
from prediction_tools.clients.prediction.client import PredictionClient
from prediction_tools.clients.prediction.exceptions import ProviderError
from prediction_tools.clients.prediction.models import RoundEvent, RoundEventKind

logger = logging.getLogger(__name__)

_SEEN_EPOCH_MARGIN = 2


class RoundEventWatcher:
    """Turn polled contract logs into engine events.

    Args:
        client: Contract client used to read logs.
        queue: Engine event queue.
        poll_seconds: Delay between polls.

    """

    def __init__(
        self,
        client: PredictionClient,
        queue: asyncio.Queue[EngineEvent],
        poll_seconds: float = 3,
    ) -> None:
        """Initialize the watcher."""
        self._client = client
        self._queue = queue
        self._poll_seconds = poll_seconds
        self._next_block: int | None = None
        self._seen: set[tuple[RoundEventKind, int]] = set()
        self._latest_epoch = 0

    async def poll_once(self) -> int:
        """Read new logs once and enqueue the resulting events.

        The first call only records the chain head, so rounds that ended
        before startup are not replayed.

        Returns:
            Number of events enqueued.

        """
        try:
            if self._next_block is None:
                self._next_block = await self._client.get_block_number() + 1
                logger.info("Watching round events from block %d", self._next_block)
                return 0
            events, next_block = await self._client.get_round_events(self._next_block)
        except ProviderError as exc:
            logger.warning("Round event poll failed", exc_info=True)
            await self._queue.put(ProviderFailure(exc))
            return 0

        self._next_block = next_block
        delivered = 0
        for event in events:
            key = (event.kind, event.epoch)
            if key in self._seen or event.epoch < self._latest_epoch - _SEEN_EPOCH_MARGIN:
                continue
            self._remember(key)
            await self._queue.put(self._to_engine_event(event))
            delivered += 1
        return delivered

    async def run(self) -> None:
        """Poll forever; cancel the task to stop."""
        while True:
            await self.poll_once()
            await asyncio.sleep(self._poll_seconds)

    def _remember(self, key: tuple[RoundEventKind, int]) -> None:
        """Record a delivered event and forget epochs older than the margin."""
        self._seen.add(key)
        epoch = key[1]
        if epoch > self._latest_epoch:
            self._latest_epoch = epoch
            floor = epoch - _SEEN_EPOCH_MARGIN
            self._seen = {k for k in self._seen if k[1] >= floor}

    @staticmethod
    def _to_engine_event(event: RoundEvent) -> EngineEvent:
        """Map a contract log to an engine event."""
        if event.kind is RoundEventKind.LOCK:
            logger.info("Round #%d locked at %d", event.epoch, event.price)
            return RoundLocked(epoch=event.epoch, lock_price=event.price)
        logger.info("Round #%d ended at %d", event.epoch, event.price)
        return RoundEnded(epoch=event.epoch)
