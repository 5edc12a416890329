"""Stake sizing state machine for a single stream.

Pure functions: they read a stream, the strategy configuration and the
latest risk snapshot and return new values, leaving the stream untouched.
The caller applies the result, which lets a settlement pass compute every
transition before mutating anything.

Sizing phases:

- FLAT (``loss_count < flat_bet_count``): stake the base amount.
- ESCALATING (progressive strategy only): each loss beyond the flat
  threshold multiplies the previous stake by ``martingale_multiplier``
  (rounded down to whole wei).

Every amount is clamped to the risk ceiling.
"""

import logging
from datetime import date

from prediction_tools.apps.staking_bot.models import (
    BetDecision,
    RiskState,
    StrategyConfig,
    StrategyKind,
    Stream,
    StreamUpdate,
)
from prediction_tools.apps.staking_bot.protocols import PositionPicker
from prediction_tools.clients.prediction.models import Round
from prediction_tools.core.models import scale_amount

logger = logging.getLogger(__name__)


def base_amount(config: StrategyConfig, risk: RiskState) -> int:
    """Return the flat stake for the configured strategy.

    The progressive strategy stakes the fixed ``base_bet_amount``; the
    flat-percentage strategy stakes a fraction of the bankroll, never less
    than the contract minimum.

    Args:
        config: Strategy configuration.
        risk: Latest risk snapshot.

    Returns:
        Base stake in wei.

    """
    if config.kind is StrategyKind.FLAT_PERCENTAGE:
        return max(risk.min_bet_amount, scale_amount(risk.bankroll, config.flat_bet_fraction))
    return risk.base_bet_amount


def clamp(amount: int, risk: RiskState) -> int:
    """Return ``amount`` limited to the risk ceiling."""
    return min(amount, risk.ceiling)


def decide(
    stream: Stream,
    round_: Round,
    picker: PositionPicker,
    risk: RiskState,
) -> BetDecision:
    """Choose side and size for the stream's next stake.

    The stream's amount is clamped again against the latest ceiling, since
    the bankroll may have shrunk since the last settlement.

    Args:
        stream: Stream about to bet.
        round_: Round being bet on.
        picker: Side-selection heuristic.
        risk: Latest risk snapshot.

    Returns:
        The stake decision.

    """
    position = picker.pick(round_, stream)
    return BetDecision(
        position=position,
        amount=clamp(stream.current_amount, risk),
        requested_amount=stream.current_amount,
    )


def settle_stream(
    stream: Stream,
    *,
    won: bool,
    config: StrategyConfig,
    risk: RiskState,
    today: date,
) -> StreamUpdate:
    """Compute the stream's counters after one settled stake.

    A win resets the stake to base and clears both loss counters. A loss
    increments them, escalates the stake once the flat threshold is passed
    (progressive strategy only) and deactivates the stream into cooldown
    when the losing streak reaches ``max_consecutive_losses``.

    Args:
        stream: Stream the stake belonged to.
        won: Whether the stake won.
        config: Strategy configuration.
        risk: Latest risk snapshot.
        today: Current UTC date, used to roll the daily streak maximum.

    Returns:
        The stream's new counter values.

    """
    base = base_amount(config, risk)
    daily_max = stream.daily_max_consecutive_losses if stream.stats_day == today else 0

    if won:
        return StreamUpdate(
            stream_id=stream.id,
            current_amount=clamp(base, risk),
            requested_amount=base,
            loss_count=0,
            consecutive_losses=0,
            max_consecutive_losses=stream.max_consecutive_losses,
            daily_max_consecutive_losses=daily_max,
            stats_day=today,
            win_count=stream.win_count + 1,
            total_wins=stream.total_wins + 1,
            active=stream.active,
            cooldown_remaining=stream.cooldown_remaining,
        )

    loss_count = stream.loss_count + 1
    consecutive = stream.consecutive_losses + 1
    if config.kind is StrategyKind.PROGRESSIVE_MARTINGALE and loss_count > config.flat_bet_count:
        requested = scale_amount(stream.current_amount, config.martingale_multiplier)
    else:
        requested = base

    deactivate = stream.active and consecutive >= config.max_consecutive_losses
    return StreamUpdate(
        stream_id=stream.id,
        current_amount=clamp(requested, risk),
        requested_amount=requested,
        loss_count=loss_count,
        consecutive_losses=consecutive,
        max_consecutive_losses=max(stream.max_consecutive_losses, consecutive),
        daily_max_consecutive_losses=max(daily_max, consecutive),
        stats_day=today,
        win_count=0,
        total_wins=stream.total_wins,
        active=stream.active and not deactivate,
        cooldown_remaining=config.cooldown_rounds if deactivate else stream.cooldown_remaining,
    )


def reset_stream(stream: Stream, config: StrategyConfig, risk: RiskState) -> int:
    """Return a stream to ``ACTIVE(FLAT)`` at the base amount.

    Args:
        stream: Stream to reset in place.
        config: Strategy configuration.
        risk: Latest risk snapshot.

    Returns:
        The base amount before clamping. It is above the stream's new
        ``current_amount`` when the ceiling reduced it.

    """
    requested = base_amount(config, risk)
    stream.active = True
    stream.cooldown_remaining = 0
    stream.current_amount = clamp(requested, risk)
    if stream.current_amount < requested:
        logger.warning(
            "Stream #%d reset stake capped from %d to %d wei",
            stream.id,
            requested,
            stream.current_amount,
        )
    stream.loss_count = 0
    stream.consecutive_losses = 0
    return requested
