"""Typed data models for prediction contract data.

Provide frozen dataclasses that insulate the rest of the codebase from the
raw tuples and attribute dicts returned by ``web3``. Amounts are integer
wei and prices are the oracle's fixed-point integers.
"""

from dataclasses import dataclass
from enum import Enum

TREASURY_FEE_BPS = 300
_BPS_DENOMINATOR = 10_000


@dataclass(frozen=True)
class Round:
    """Snapshot of one prediction round keyed by epoch.

    Rounds are created by the operator on a fixed cadence and become
    immutable once the oracle has been called at close.

    Args:
        epoch: Round identifier.
        start_timestamp: Unix seconds when the round opened for bets.
        lock_timestamp: Unix seconds when betting closes.
        close_timestamp: Unix seconds when the outcome price is fixed.
        lock_price: Oracle price at lock (0 before lock).
        close_price: Oracle price at close (0 before close).
        total_amount: Total wei staked in the round.
        bull_amount: Wei staked on UP.
        bear_amount: Wei staked on DOWN.
        oracle_called: Whether the close price has been finalised.

    """

    epoch: int
    start_timestamp: int
    lock_timestamp: int
    close_timestamp: int
    lock_price: int
    close_price: int
    total_amount: int
    bull_amount: int
    bear_amount: int
    oracle_called: bool

    def can_bet(self, now: int) -> bool:
        """Return whether the contract would still accept a bet at ``now``."""
        return now < self.lock_timestamp and not self.oracle_called

    def is_open(self, now: int) -> bool:
        """Return whether the round is in its open betting phase at ``now``."""
        return self.start_timestamp <= now < self.lock_timestamp and not self.oracle_called

    @property
    def treasury_fee(self) -> int:
        """Return the treasury's cut of the total pool in wei."""
        return self.total_amount * TREASURY_FEE_BPS // _BPS_DENOMINATOR

    @property
    def prize_pool(self) -> int:
        """Return the pool shared among winners after the treasury fee."""
        return self.total_amount - self.treasury_fee

    @property
    def bull_payout(self) -> int:
        """Return the whole-number payout multiple for UP, 0 if nobody bet UP."""
        return self.prize_pool // self.bull_amount if self.bull_amount > 0 else 0

    @property
    def bear_payout(self) -> int:
        """Return the whole-number payout multiple for DOWN, 0 if nobody bet DOWN."""
        return self.prize_pool // self.bear_amount if self.bear_amount > 0 else 0


class RoundEventKind(Enum):
    """Lifecycle notification emitted by the prediction contract."""

    LOCK = "LockRound"
    END = "EndRound"


@dataclass(frozen=True)
class RoundEvent:
    """A decoded round lifecycle log entry.

    Args:
        kind: Whether the round was locked or ended.
        epoch: Round the event refers to.
        price: Oracle price reported with the event.
        block_number: Block the log was emitted in.
        log_index: Position of the log within the block.

    """

    kind: RoundEventKind
    epoch: int
    price: int
    block_number: int
    log_index: int
