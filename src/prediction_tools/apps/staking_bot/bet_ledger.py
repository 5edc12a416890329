"""Append-only record of every stake placed by the bot.

The only permitted mutations after a stake is recorded are setting its
settlement result once and flipping ``claimed`` to ``True`` once.
"""

import logging

from prediction_tools.apps.staking_bot.models import Stake

logger = logging.getLogger(__name__)


class DuplicateStakeError(ValueError):
    """Raise when a second stake is recorded for the same epoch and stream."""


class BetLedger:
    """In-memory ledger of stakes keyed by ``(epoch, stream_id)``."""

    def __init__(self) -> None:
        """Initialize an empty ledger."""
        self._stakes: list[Stake] = []
        self._index: dict[tuple[int, int], Stake] = {}

    def record(self, stake: Stake) -> None:
        """Append a newly placed stake.

        Args:
            stake: Stake confirmed on chain.

        Raises:
            DuplicateStakeError: If the stream already has a stake at the epoch.

        """
        key = (stake.epoch, stake.stream_id)
        if key in self._index:
            msg = f"Stream #{stake.stream_id} already has a stake in round #{stake.epoch}"
            raise DuplicateStakeError(msg)
        self._stakes.append(stake)
        self._index[key] = stake

    def has_stake(self, epoch: int, stream_id: int) -> bool:
        """Return whether the stream has a stake at the epoch."""
        return (epoch, stream_id) in self._index

    def has_unclaimed(self, epoch: int) -> bool:
        """Return whether any stream holds an unclaimed stake at the epoch."""
        return any(s.epoch == epoch and not s.claimed for s in self._stakes)

    def stakes_for(self, epoch: int) -> list[Stake]:
        """Return the stakes placed in a round, in placement order."""
        return [s for s in self._stakes if s.epoch == epoch]

    def unsettled_epochs(self, up_to: int) -> list[int]:
        """Return epochs up to ``up_to`` that still hold unsettled stakes, ascending."""
        return sorted({s.epoch for s in self._stakes if not s.settled and s.epoch <= up_to})

    def unclaimed_wins(self) -> list[Stake]:
        """Return settled winning stakes whose reward has not been claimed."""
        return [s for s in self._stakes if s.won and not s.claimed]

    def mark_claimed(self, epochs: list[int]) -> list[Stake]:
        """Flag every unclaimed winning stake in ``epochs`` as claimed.

        Args:
            epochs: Rounds included in a successful claim.

        Returns:
            The stakes newly marked as claimed.

        """
        wanted = set(epochs)
        marked: list[Stake] = []
        for stake in self._stakes:
            if stake.epoch in wanted and stake.won and not stake.claimed:
                stake.claimed = True
                marked.append(stake)
        logger.debug("Marked %d stakes claimed for epochs %s", len(marked), sorted(wanted))
        return marked

    @property
    def stakes(self) -> list[Stake]:
        """Return all recorded stakes in placement order."""
        return list(self._stakes)

    def __len__(self) -> int:
        """Return the number of recorded stakes."""
        return len(self._stakes)
