"""Bankroll tracking and per-bet stake limits.

Read the wallet balance and contract minimum bet, and derive the base
stake, ``max_bet_amount`` and the binding per-bet ceiling from them. The
staking policy always reads ``snapshot`` so it clamps against the latest
bankroll rather than a value cached at decision time.
"""

import logging
import time
from collections.abc import Callable

from prediction_tools.apps.staking_bot.models import RiskState, StrategyConfig
from prediction_tools.clients.prediction.client import PredictionClient
from prediction_tools.core.models import scale_amount

logger = logging.getLogger(__name__)


def derive_risk_state(
    bankroll: int,
    min_bet_amount: int,
    config: StrategyConfig,
    refreshed_at: int,
) -> RiskState:
    """Build a risk snapshot from a balance and the contract minimum.

    Args:
        bankroll: Wallet balance in wei.
        min_bet_amount: Contract minimum bet in wei.
        config: Strategy configuration with the risk fractions.
        refreshed_at: Unix seconds of the balance read.

    Returns:
        The derived ``RiskState``.

    """
    max_bet = scale_amount(bankroll, config.max_risk_fraction)
    hard_cap = scale_amount(bankroll, config.hard_cap_fraction)
    return RiskState(
        bankroll=bankroll,
        min_bet_amount=min_bet_amount,
        base_bet_amount=scale_amount(min_bet_amount, config.base_bet_multiplier),
        max_bet_amount=max_bet,
        ceiling=min(max_bet, hard_cap),
        refreshed_at=refreshed_at,
    )


class RiskGovernor:
    """Keep the latest risk snapshot for the staking engine.

    Args:
        client: Contract client used for balance and minimum-bet reads.
        config: Strategy configuration with the risk fractions.
        clock: Source of the current Unix time in seconds.

    """

    def __init__(
        self,
        client: PredictionClient,
        config: StrategyConfig,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """Initialize the governor with an empty snapshot.

        Args:
            client: Contract client used for balance and minimum-bet reads.
            config: Strategy configuration with the risk fractions.
            clock: Source of the current Unix time in seconds.

        """
        self._client = client
        self._config = config
        self._clock = clock
        self._snapshot = derive_risk_state(0, 0, config, 0)

    async def refresh(self) -> RiskState:
        """Re-read the balance and minimum bet and replace the snapshot.

        Returns:
            The new snapshot.

        Raises:
            ProviderError: When either read fails; the previous snapshot is kept.

        """
        bankroll = await self._client.get_balance()
        min_bet = await self._client.get_min_bet_amount()
        self._snapshot = derive_risk_state(bankroll, min_bet, self._config, int(self._clock()))
        logger.info(
            "Bankroll %d wei, max bet %d wei, ceiling %d wei",
            self._snapshot.bankroll,
            self._snapshot.max_bet_amount,
            self._snapshot.ceiling,
        )
        return self._snapshot

    @property
    def snapshot(self) -> RiskState:
        """Return the latest risk snapshot."""
        return self._snapshot
