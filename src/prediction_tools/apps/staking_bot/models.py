"""Data models for the prediction staking bot.

Define the immutable strategy configuration and risk snapshot, the mutable
``Stream`` lanes and ``Stake`` records the engine evolves round by round,
and the result objects produced by settlement and by a complete run.
Amounts are integer wei; multipliers and fractions are ``Decimal``.
"""

from collections import deque
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from enum import Enum

from prediction_tools.core.models import ONE, ZERO, Position

POSITION_HISTORY_LENGTH = 5

_DEFAULT_MAX_STREAMS = 2
_DEFAULT_FLAT_BET_COUNT = 3
_DEFAULT_FLAT_BET_FRACTION = Decimal("0.01")
_DEFAULT_BASE_BET_MULTIPLIER = ONE
_DEFAULT_MARTINGALE_MULTIPLIER = Decimal("2.1")
_DEFAULT_MAX_RISK_FRACTION = Decimal("0.25")
_DEFAULT_HARD_CAP_FRACTION = Decimal("0.10")
_DEFAULT_MAX_CONSECUTIVE_LOSSES = 10
_DEFAULT_COOLDOWN_ROUNDS = 5
_DEFAULT_BET_WINDOW_SECONDS = 11
_DEFAULT_MIN_LIQUIDITY = 10**18
_DEFAULT_CLAIM_STREAK_LENGTH = 3
_DEFAULT_TICK_SECONDS = 1
_DEFAULT_BALANCE_REFRESH = 60
_DEFAULT_EVENT_POLL = 3


class StrategyKind(Enum):
    """How a stream sizes its stakes."""

    FLAT_PERCENTAGE = "flat_percentage"
    PROGRESSIVE_MARTINGALE = "progressive_martingale"


class ClaimPolicy(Enum):
    """When winning stakes are claimed."""

    IMMEDIATE = "immediate"
    STREAK = "streak"


class StreamPhase(Enum):
    """Position of a stream in its sizing state machine."""

    FLAT = "flat"
    ESCALATING = "escalating"
    COOLDOWN = "cooldown"


@dataclass(frozen=True)
class StrategyConfig:
    """Immutable staking strategy configuration, loaded once at startup.

    Args:
        kind: Sizing strategy for every stream.
        max_streams: Number of independent stake streams.
        flat_bet_count: Losses a stream absorbs at the base amount before
            escalating.
        flat_bet_fraction: Bankroll fraction staked per bet by the
            ``FLAT_PERCENTAGE`` strategy.
        base_bet_multiplier: Base stake as a multiple of the contract's
            minimum bet.
        martingale_multiplier: Factor applied to the stake for each loss
            beyond ``flat_bet_count``.
        max_risk_fraction: Bankroll fraction defining ``max_bet_amount``.
        hard_cap_fraction: Absolute bankroll fraction no stake may exceed.
        max_consecutive_losses: Losing streak that sends a stream to cooldown.
        cooldown_rounds: Round locks a deactivated stream sits out.
        bet_window_seconds: Seconds before lock in which a bet may be placed.
        min_liquidity: Pool size in wei below which the side is picked at
            random.
        position_picker: Name of the side-selection heuristic.
        claim_policy: When winnings are claimed.
        claim_streak_length: Unclaimed wins that trigger a batch claim under
            the ``STREAK`` policy.
        exclusive_rounds: Allow at most one stake per round across all
            streams (the contract accepts one bet per wallet per round).
        tick_seconds: Decision loop interval.
        balance_refresh_seconds: Interval between scheduled bankroll reads.
        event_poll_seconds: Interval between round event log polls.

    Raises:
        ValueError: If a parameter is outside its valid range.

    """

    kind: StrategyKind = StrategyKind.PROGRESSIVE_MARTINGALE
    max_streams: int = _DEFAULT_MAX_STREAMS
    flat_bet_count: int = _DEFAULT_FLAT_BET_COUNT
    flat_bet_fraction: Decimal = _DEFAULT_FLAT_BET_FRACTION
    base_bet_multiplier: Decimal = _DEFAULT_BASE_BET_MULTIPLIER
    martingale_multiplier: Decimal = _DEFAULT_MARTINGALE_MULTIPLIER
    max_risk_fraction: Decimal = _DEFAULT_MAX_RISK_FRACTION
    hard_cap_fraction: Decimal = _DEFAULT_HARD_CAP_FRACTION
    max_consecutive_losses: int = _DEFAULT_MAX_CONSECUTIVE_LOSSES
    cooldown_rounds: int = _DEFAULT_COOLDOWN_ROUNDS
    bet_window_seconds: int = _DEFAULT_BET_WINDOW_SECONDS
    min_liquidity: int = _DEFAULT_MIN_LIQUIDITY
    position_picker: str = "larger_pool"
    claim_policy: ClaimPolicy = ClaimPolicy.IMMEDIATE
    claim_streak_length: int = _DEFAULT_CLAIM_STREAK_LENGTH
    exclusive_rounds: bool = True
    tick_seconds: int = _DEFAULT_TICK_SECONDS
    balance_refresh_seconds: int = _DEFAULT_BALANCE_REFRESH
    event_poll_seconds: int = _DEFAULT_EVENT_POLL

    def __post_init__(self) -> None:
        """Validate parameter ranges."""
        if self.max_streams < 1:
            msg = f"max_streams must be >= 1, got {self.max_streams}"
            raise ValueError(msg)
        if self.flat_bet_count < 0:
            msg = f"flat_bet_count must be >= 0, got {self.flat_bet_count}"
            raise ValueError(msg)
        if self.martingale_multiplier < ONE:
            msg = f"martingale_multiplier must be >= 1, got {self.martingale_multiplier}"
            raise ValueError(msg)
        for name in ("flat_bet_fraction", "max_risk_fraction", "hard_cap_fraction"):
            value: Decimal = getattr(self, name)
            if not (ZERO < value <= ONE):
                msg = f"{name} must be in (0, 1], got {value}"
                raise ValueError(msg)
        if self.base_bet_multiplier < ONE:
            msg = f"base_bet_multiplier must be >= 1, got {self.base_bet_multiplier}"
            raise ValueError(msg)
        if self.max_consecutive_losses < 1:
            msg = f"max_consecutive_losses must be >= 1, got {self.max_consecutive_losses}"
            raise ValueError(msg)
        if self.cooldown_rounds < 1:
            msg = f"cooldown_rounds must be >= 1, got {self.cooldown_rounds}"
            raise ValueError(msg)
        if self.bet_window_seconds < 1:
            msg = f"bet_window_seconds must be >= 1, got {self.bet_window_seconds}"
            raise ValueError(msg)
        if self.claim_streak_length < 1:
            msg = f"claim_streak_length must be >= 1, got {self.claim_streak_length}"
            raise ValueError(msg)


@dataclass(frozen=True)
class RiskState:
    """Bankroll snapshot and the stake limits derived from it.

    Args:
        bankroll: Wallet balance in wei.
        min_bet_amount: Contract minimum bet in wei.
        base_bet_amount: Flat stake in wei.
        max_bet_amount: ``bankroll * max_risk_fraction``.
        ceiling: Binding per-bet cap: the lower of ``max_bet_amount`` and
            ``bankroll * hard_cap_fraction``.
        refreshed_at: Unix seconds of the balance read.

    """

    bankroll: int
    min_bet_amount: int
    base_bet_amount: int
    max_bet_amount: int
    ceiling: int
    refreshed_at: int


@dataclass
class Stake:
    """One wager placed by a stream.

    At most one Stake exists per ``(epoch, stream_id)``. ``claimed`` flips
    from ``False`` to ``True`` once and never reverts; ``won`` is ``None``
    until the round is settled.
    """

    epoch: int
    position: Position
    amount: int
    stream_id: int
    tx_hash: str = ""
    placed_at: int = 0
    claimed: bool = False
    won: bool | None = None

    @property
    def settled(self) -> bool:
        """Return whether the round outcome has been applied."""
        return self.won is not None


def _position_history() -> deque[Position]:
    """Create an empty bounded position history."""
    return deque(maxlen=POSITION_HISTORY_LENGTH)


@dataclass
class Stream:
    """An independent progressive-staking lane.

    Only the mutable counters change over the process lifetime; streams
    are never created or destroyed after startup.
    """

    id: int
    current_amount: int
    loss_count: int = 0
    consecutive_losses: int = 0
    max_consecutive_losses: int = 0
    daily_max_consecutive_losses: int = 0
    stats_day: date | None = None
    active: bool = True
    cooldown_remaining: int = 0
    win_count: int = 0
    total_bets: int = 0
    total_wins: int = 0
    last_epoch: int | None = None
    position_history: deque[Position] = field(default_factory=_position_history)

    def phase(self, flat_bet_count: int) -> StreamPhase:
        """Return the stream's sizing phase for the given flat threshold."""
        if not self.active:
            return StreamPhase.COOLDOWN
        if self.loss_count < flat_bet_count:
            return StreamPhase.FLAT
        return StreamPhase.ESCALATING


@dataclass(frozen=True)
class StreamUpdate:
    """New counter values for one stream after a settled stake.

    Produced by the staking policy without touching the stream, so every
    update of a settlement pass can be computed before any is applied.
    """

    stream_id: int
    current_amount: int
    requested_amount: int
    loss_count: int
    consecutive_losses: int
    max_consecutive_losses: int
    daily_max_consecutive_losses: int
    stats_day: date
    win_count: int
    total_wins: int
    active: bool
    cooldown_remaining: int

    @property
    def clamped(self) -> bool:
        """Return whether the risk ceiling reduced the requested amount."""
        return self.current_amount < self.requested_amount


@dataclass(frozen=True)
class BetDecision:
    """Side and size chosen for the next stake of a stream."""

    position: Position
    amount: int
    requested_amount: int

    @property
    def clamped(self) -> bool:
        """Return whether the risk ceiling reduced the stream's amount."""
        return self.amount < self.requested_amount


@dataclass(frozen=True)
class SettlementOutcome:
    """Result of settling one stake.

    Args:
        stake: The settled stake.
        won: Whether the stake won.
        reward: Estimated payout in wei, or ``None`` if it could not be
            computed.
        update: Stream counters after the result.
        deactivated: Whether this loss sent the stream into cooldown.

    """

    stake: Stake
    won: bool
    reward: int | None
    update: StreamUpdate
    deactivated: bool


@dataclass(frozen=True)
class StakingRunResult:
    """Summary of a completed staking engine run.

    Args:
        initial_bankroll: Balance when the engine started.
        final_bankroll: Balance at the last refresh.
        stakes: Every stake recorded during the run.
        streams: Final stream states.
        events_processed: Number of queue events handled.

    """

    initial_bankroll: int
    final_bankroll: int
    stakes: tuple[Stake, ...]
    streams: tuple[Stream, ...]
    events_processed: int

    @property
    def wins(self) -> int:
        """Return the number of winning stakes."""
        return sum(1 for stake in self.stakes if stake.won)

    @property
    def losses(self) -> int:
        """Return the number of settled losing stakes."""
        return sum(1 for stake in self.stakes if stake.won is False)
