"""Apply round outcomes to stakes and their streams.

Each pass first computes every stream transition for the round without
touching state, then applies them together. Nothing awaits between the
two steps, so a failure can never leave a round half-settled.
"""

import logging
import time
from collections.abc import Callable
from datetime import UTC, date, datetime

from prediction_tools.apps.staking_bot import messages
from prediction_tools.apps.staking_bot.models import (
    RiskState,
    SettlementOutcome,
    Stake,
    StrategyConfig,
)
from prediction_tools.apps.staking_bot.risk_governor import RiskGovernor
from prediction_tools.apps.staking_bot.staking_policy import clamp, settle_stream
from prediction_tools.apps.staking_bot.stream_registry import StakingState
from prediction_tools.clients.prediction.client import PredictionClient
from prediction_tools.clients.prediction.exceptions import ProviderError
from prediction_tools.clients.prediction.models import Round
from prediction_tools.core.models import Position
from prediction_tools.core.protocols import Notifier

logger = logging.getLogger(__name__)

_FINALISATION_GRACE_SECONDS = 300


def stake_won(stake: Stake, round_: Round) -> bool:
    """Return whether ``stake`` won ``round_``.

    An equal close and lock price (a push) is a loss, and so is a round
    the oracle never finalised.
    """
    if not round_.oracle_called:
        return False
    if stake.position is Position.UP:
        return round_.close_price > round_.lock_price
    return round_.close_price < round_.lock_price


def estimate_reward(stake: Stake, round_: Round) -> int:
    """Return the stake's pro-rata share of the prize pool in wei.

    Raises:
        ZeroDivisionError: When the stake's side of the pool is empty.

    """
    side = round_.bull_amount if stake.position is Position.UP else round_.bear_amount
    return stake.amount * round_.prize_pool // side


class SettlementEngine:
    """Settle stakes round by round and report the results.

    Args:
        client: Contract client used to read finished rounds.
        state: Stream registry and ledger to update.
        config: Strategy configuration.
        risk: Governor holding the latest risk snapshot.
        notifier: Sink for result reports.
        clock: Source of the current Unix time in seconds.

    """

    def __init__(  # noqa: PLR0913
        self,
        client: PredictionClient,
        state: StakingState,
        config: StrategyConfig,
        risk: RiskGovernor,
        notifier: Notifier,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """Initialize the settlement engine."""
        self._client = client
        self._state = state
        self._config = config
        self._risk = risk
        self._notifier = notifier
        self._clock = clock

    async def settle_through(self, epoch: int) -> list[SettlementOutcome]:
        """Settle every unsettled round up to and including ``epoch``.

        Rounds are processed in ascending order. If a round cannot be read,
        or its oracle has not been called yet, the pass stops there so later
        rounds are never applied ahead of an earlier one; they are retried
        on the next round end. A round still unfinalised
        ``_FINALISATION_GRACE_SECONDS`` after its close time is treated as
        cancelled and settled as a loss.

        Args:
            epoch: Round that just ended.

        Returns:
            Outcomes of every stake settled in this pass.

        """
        outcomes: list[SettlementOutcome] = []
        for pending in self._state.ledger.unsettled_epochs(epoch):
            try:
                round_ = await self._client.get_round(pending)
            except ProviderError as exc:
                logger.warning("Could not read round #%d for settlement", pending, exc_info=True)
                self._notifier.notify(messages.failure(f"Settlement of round #{pending}", exc))
                break
            if not round_.oracle_called and not self._abandoned(round_):
                logger.warning("Round #%d not finalised yet, deferring settlement", pending)
                self._notifier.notify(messages.settlement_deferred(pending))
                break
            outcomes.extend(self.settle_round(round_))
        return outcomes

    def settle_round(self, round_: Round) -> list[SettlementOutcome]:
        """Settle the unsettled stakes of one finished round.

        Args:
            round_: Finished round.

        Returns:
            One outcome per stake settled.

        """
        stakes = [s for s in self._state.ledger.stakes_for(round_.epoch) if not s.settled]
        if not stakes:
            return []

        risk = self._risk.snapshot
        today = self._today()
        registry = self._state.registry
        outcomes: list[SettlementOutcome] = []
        for stake in stakes:
            won = stake_won(stake, round_)
            stream = registry.get(stake.stream_id)
            update = settle_stream(stream, won=won, config=self._config, risk=risk, today=today)
            outcomes.append(
                SettlementOutcome(
                    stake=stake,
                    won=won,
                    reward=self._reward(stake, round_) if won else None,
                    update=update,
                    deactivated=stream.active and not update.active,
                )
            )

        for outcome in outcomes:
            registry.apply(outcome.update, outcome.stake.position)
            outcome.stake.won = outcome.won
        self._clamp_streams(risk)

        for outcome in outcomes:
            self._report(outcome)
        self._notifier.notify(
            messages.streams_status(round_.epoch, registry, self._config.flat_bet_count)
        )
        return outcomes

    def _report(self, outcome: SettlementOutcome) -> None:
        """Log and notify the result of one settled stake."""
        stake = outcome.stake
        update = outcome.update
        logger.info(
            "Round #%d stream #%d %s: next stake %d wei, loss streak %d",
            stake.epoch,
            stake.stream_id,
            "WON" if outcome.won else "LOST",
            update.current_amount,
            update.consecutive_losses,
        )
        self._notifier.notify(messages.bet_result(outcome))
        if update.clamped:
            self._report_clamp(update.stream_id, update.requested_amount, update.current_amount)
        if outcome.deactivated:
            logger.warning(
                "Stream #%d deactivated after %d consecutive losses",
                update.stream_id,
                update.consecutive_losses,
            )

    def _clamp_streams(self, risk: RiskState) -> None:
        """Cap every stream, including those with nothing settled, to the ceiling."""
        for stream in self._state.registry:
            allowed = clamp(stream.current_amount, risk)
            if allowed < stream.current_amount:
                self._report_clamp(stream.id, stream.current_amount, allowed)
                stream.current_amount = allowed

    def _report_clamp(self, stream_id: int, requested: int, allowed: int) -> None:
        """Log and notify a stake reduced by the ceiling."""
        logger.warning("Stream #%d stake capped from %d to %d wei", stream_id, requested, allowed)
        self._notifier.notify(messages.stake_clamped(stream_id, requested, allowed))

    def _abandoned(self, round_: Round) -> bool:
        """Return whether an unfinalised round is past its finalisation grace period."""
        return self._clock() >= round_.close_timestamp + _FINALISATION_GRACE_SECONDS

    @staticmethod
    def _reward(stake: Stake, round_: Round) -> int | None:
        """Return the estimated reward, or ``None`` if it cannot be computed."""
        try:
            return estimate_reward(stake, round_)
        except ZeroDivisionError:
            logger.warning("Could not estimate reward for round #%d", round_.epoch)
            return None

    def _today(self) -> date:
        """Return the current UTC date."""
        return datetime.fromtimestamp(self._clock(), UTC).date()
