"""Fixed pool of stake streams and the aggregate staking state.

The registry owns exactly ``max_streams`` streams for the whole process
lifetime, picks which one bets next by round-robin, and applies the
counter updates computed by the staking policy.
"""

import logging
from collections.abc import Iterator
from dataclasses import dataclass, field

from prediction_tools.apps.staking_bot.bet_ledger import BetLedger
from prediction_tools.apps.staking_bot.models import Stream, StreamUpdate
from prediction_tools.core.models import Position

logger = logging.getLogger(__name__)


class StreamRegistry:
    """Own the stream pool and rotate bets fairly across it.

    Args:
        count: Number of streams to create.
        base_amount: Initial stake for every stream in wei.

    """

    def __init__(self, count: int, base_amount: int) -> None:
        """Create ``count`` streams in ``ACTIVE(FLAT)`` at the base amount.

        Args:
            count: Number of streams to create.
            base_amount: Initial stake for every stream in wei.

        Raises:
            ValueError: If ``count`` is less than 1.

        """
        if count < 1:
            msg = f"count must be >= 1, got {count}"
            raise ValueError(msg)
        self._streams = tuple(Stream(id=i + 1, current_amount=base_amount) for i in range(count))
        self._by_id = {s.id: s for s in self._streams}
        self._cursor = 0

    def get(self, stream_id: int) -> Stream:
        """Return the stream with the given id.

        Raises:
            KeyError: If no stream has that id.

        """
        return self._by_id[stream_id]

    def select_stream_for_bet(self, epoch: int, ledger: BetLedger) -> Stream | None:
        """Return the next eligible stream for ``epoch``, or ``None``.

        A stream is eligible when it is active, has no stake at the epoch and
        did not place the last bet at the epoch. Eligible streams are taken in
        turn using a cursor that only ever increases, so no stream is
        favoured as streams enter and leave cooldown.

        Args:
            epoch: Round about to be bet on.
            ledger: Ledger of placed stakes.

        Returns:
            The selected stream, or ``None`` if none is eligible.

        """
        available = [
            s
            for s in self._streams
            if s.active and s.last_epoch != epoch and not ledger.has_stake(epoch, s.id)
        ]
        available_ids = {s.id for s in available}
        for stream in self._streams:
            logger.debug("Stream #%d available: %s", stream.id, stream.id in available_ids)

        if not available:
            logger.debug("No available streams for epoch %d", epoch)
            return None

        selected = available[self._cursor % len(available)]
        self._cursor += 1
        logger.debug("Selected stream #%d for epoch %d", selected.id, epoch)
        return selected

    def mark_placed(self, stream: Stream, epoch: int) -> None:
        """Record that ``stream`` placed a stake at ``epoch``."""
        stream.last_epoch = epoch
        stream.total_bets += 1

    def apply(self, update: StreamUpdate, position: Position) -> Stream:
        """Apply a settled-stake update and remember the staked side.

        Args:
            update: New counter values from the staking policy.
            position: Side the settled stake backed.

        Returns:
            The updated stream.

        """
        stream = self._by_id[update.stream_id]
        stream.current_amount = update.current_amount
        stream.loss_count = update.loss_count
        stream.consecutive_losses = update.consecutive_losses
        stream.max_consecutive_losses = update.max_consecutive_losses
        stream.daily_max_consecutive_losses = update.daily_max_consecutive_losses
        stream.stats_day = update.stats_day
        stream.win_count = update.win_count
        stream.total_wins = update.total_wins
        stream.active = update.active
        stream.cooldown_remaining = update.cooldown_remaining
        stream.position_history.append(position)
        return stream

    @property
    def streams(self) -> tuple[Stream, ...]:
        """Return every stream in id order."""
        return self._streams

    def __iter__(self) -> Iterator[Stream]:
        """Iterate over streams in id order."""
        return iter(self._streams)


@dataclass
class StakingState:
    """The mutable state shared by the decision loop and settlement.

    Only the engine's serialized event handler writes to it; other
    components receive it for reading.
    """

    registry: StreamRegistry
    ledger: BetLedger = field(default_factory=BetLedger)
