"""Human-readable notification texts.

Messages use Telegram's HTML parse mode, so free text coming from errors
is escaped before it is embedded.
"""

import html
from collections.abc import Iterable
from decimal import Decimal

from prediction_tools.apps.staking_bot.models import (
    BetDecision,
    SettlementOutcome,
    Stream,
    StreamPhase,
)
from prediction_tools.clients.prediction.models import Round
from prediction_tools.core.models import Position, format_bnb

_ORACLE_DECIMALS = 8


def bet_placed(stream: Stream, epoch: int, decision: BetDecision, tx_hash: str) -> str:
    """Describe a confirmed stake."""
    return (
        f"🎲 Stream #{stream.id} bet {format_bnb(decision.amount)} BNB on "
        f"{decision.position.value} (#{epoch}) | Tx: {tx_hash}"
    )


def bet_result(outcome: SettlementOutcome) -> str:
    """Describe the result of one settled stake."""
    stake = outcome.stake
    emoji = "✅" if outcome.won else "❌"
    verdict = "WON" if outcome.won else "LOST"
    reward = (
        f"{format_bnb(outcome.reward)} BNB" if outcome.reward is not None else "unavailable"
    )
    lines = [
        f"{emoji} Stream #{stake.stream_id} {verdict} round #{stake.epoch}",
        f"💰 Bet: {format_bnb(stake.amount)} BNB on {stake.position.value}",
        f"📉 Loss Streak: {outcome.update.consecutive_losses}",
    ]
    if outcome.won:
        lines.append(f"🏆 Estimated reward: {reward}")
    if outcome.deactivated:
        lines.append(
            f"🧊 Stream #{stake.stream_id} paused for {outcome.update.cooldown_remaining} rounds"
        )
    return "\n".join(lines)


def streams_status(epoch: int, streams: Iterable[Stream], flat_bet_count: int) -> str:
    """Summarise every stream after a round settles."""
    blocks = []
    for stream in streams:
        phase = stream.phase(flat_bet_count)
        state = (
            f"cooldown ({stream.cooldown_remaining} rounds)"
            if phase is StreamPhase.COOLDOWN
            else phase.value
        )
        blocks.append(
            f"📊 Stream #{stream.id}: {format_bnb(stream.current_amount)} BNB [{state}]\n"
            f"📉 Losses: {stream.loss_count} (max {stream.max_consecutive_losses}, "
            f"today {stream.daily_max_consecutive_losses})\n"
            f"🏅 Wins: {stream.total_wins}/{stream.total_bets}"
        )
    body = "\n\n".join(blocks)
    return f"🔄 Streams status after round #{epoch}:\n\n{body}"


def format_price(price: int) -> str:
    """Render an oracle fixed-point price with two decimals."""
    return f"{Decimal(price).scaleb(-_ORACLE_DECIMALS):.2f}"


def round_locked(round_: Round, lock_price: int) -> str:
    """Summarise pool sizes and payouts when a round locks."""
    return (
        f"🔒 Round #{round_.epoch} locked at {format_price(lock_price)}\n"
        f"📊 Total bets: {format_bnb(round_.total_amount)} BNB\n"
        f"🐂 {Position.UP.value}: {format_bnb(round_.bull_amount)} BNB | "
        f"Payout: x{round_.bull_payout}\n"
        f"🐻 {Position.DOWN.value}: {format_bnb(round_.bear_amount)} BNB | "
        f"Payout: x{round_.bear_payout}\n"
        f"🏦 Treasury fee: {format_bnb(round_.treasury_fee)} BNB"
    )


def stake_clamped(stream_id: int, requested: int, allowed: int) -> str:
    """Report that the risk ceiling reduced a stake."""
    return (
        f"⚠️ Stream #{stream_id} stake capped: requested {format_bnb(requested)} BNB, "
        f"allowed {format_bnb(allowed)} BNB"
    )


def stake_below_minimum(stream_id: int, epoch: int, amount: int, min_bet: int) -> str:
    """Report a skipped bet whose capped stake is under the contract minimum."""
    return (
        f"⏭️ Stream #{stream_id} skipped round #{epoch}: stake {format_bnb(amount)} BNB "
        f"is below the minimum bet {format_bnb(min_bet)} BNB"
    )


def settlement_deferred(epoch: int) -> str:
    """Report a round whose result is not final yet."""
    return f"⏳ Round #{epoch} is not finalised yet; settlement will be retried"


def stream_reactivated(stream: Stream) -> str:
    """Report that a stream finished its cooldown."""
    return (
        f"▶️ Stream #{stream.id} reactivated at {format_bnb(stream.current_amount)} BNB"
    )


def claimed(epochs: list[int], tx_hash: str) -> str:
    """Report a successful claim."""
    rounds = ", ".join(f"#{e}" for e in epochs)
    return f"🏆 Claimed reward for rounds {rounds} | Tx: {tx_hash}"


def failure(context: str, error: BaseException) -> str:
    """Report a recoverable failure."""
    detail = getattr(error, "msg", None) or str(error) or type(error).__name__
    return f"⚠️ {html.escape(context)}: {html.escape(str(detail))}"
