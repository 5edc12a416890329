"""Reward claiming for winning stakes.

Two policies are supported:

- ``IMMEDIATE``: claim every pending win right after its round settles.
- ``STREAK``: let wins accumulate and batch-claim them once
  ``claim_streak_length`` are pending, saving gas on runs of wins.

A failed claim leaves the stakes unclaimed so the next trigger retries
them; a claimed stake is never submitted again.
"""

import logging

from prediction_tools.apps.staking_bot import messages
from prediction_tools.apps.staking_bot.bet_ledger import BetLedger
from prediction_tools.apps.staking_bot.models import ClaimPolicy
from prediction_tools.clients.prediction.client import PredictionClient
from prediction_tools.clients.prediction.exceptions import ClaimError
from prediction_tools.core.protocols import Notifier

logger = logging.getLogger(__name__)


class ClaimScheduler:
    """Decide when to claim and submit claims for pending wins.

    Args:
        client: Contract client used to submit claims.
        ledger: Ledger of placed stakes.
        notifier: Sink for claim reports.
        policy: Claim policy chosen at startup.
        streak_length: Pending wins that trigger a ``STREAK`` claim.

    """

    def __init__(
        self,
        client: PredictionClient,
        ledger: BetLedger,
        notifier: Notifier,
        policy: ClaimPolicy = ClaimPolicy.IMMEDIATE,
        streak_length: int = 3,
    ) -> None:
        """Initialize the claim scheduler."""
        self._client = client
        self._ledger = ledger
        self._notifier = notifier
        self._policy = policy
        self._streak_length = streak_length

    def pending_epochs(self) -> list[int]:
        """Return the distinct epochs with unclaimed winning stakes, ascending."""
        return sorted({stake.epoch for stake in self._ledger.unclaimed_wins()})

    def should_claim(self) -> bool:
        """Return whether the policy calls for a claim now."""
        pending = self._ledger.unclaimed_wins()
        if not pending:
            return False
        if self._policy is ClaimPolicy.STREAK:
            return len(pending) >= self._streak_length
        return True

    async def maybe_claim(self) -> bool:
        """Claim all pending wins if the policy calls for it.

        Returns:
            ``True`` if a claim transaction was confirmed.

        """
        if not self.should_claim():
            return False
        return await self.claim(self.pending_epochs())

    async def claim(self, epochs: list[int]) -> bool:
        """Submit one claim for the unclaimed winning stakes in ``epochs``.

        Epochs are de-duplicated and those without an unclaimed win are
        dropped before submission.

        Args:
            epochs: Candidate rounds to claim.

        Returns:
            ``True`` if a claim transaction was confirmed.

        """
        claimable = {stake.epoch for stake in self._ledger.unclaimed_wins()}
        to_claim = sorted(set(epochs) & claimable)
        if not to_claim:
            logger.debug("Nothing to claim for epochs %s", epochs)
            return False

        try:
            tx_hash = await self._client.claim(to_claim)
        except ClaimError as exc:
            logger.warning("Claim failed for rounds %s", to_claim, exc_info=True)
            self._notifier.notify(messages.failure(f"Claim failed for rounds {to_claim}", exc))
            return False

        marked = self._ledger.mark_claimed(to_claim)
        logger.info("Claimed %d stakes in rounds %s: %s", len(marked), to_claim, tx_hash)
        self._notifier.notify(messages.claimed(to_claim, tx_hash))
        return True
