"""Tests for staking bot data models."""

import dataclasses
from datetime import date
from decimal import Decimal

import pytest

from prediction_tools.apps.staking_bot.models import (
    POSITION_HISTORY_LENGTH,
    BetDecision,
    ClaimPolicy,
    Stake,
    StakingRunResult,
    StrategyConfig,
    StrategyKind,
    Stream,
    StreamPhase,
    StreamUpdate,
)
from prediction_tools.core.models import Position

_DEFAULT_MAX_STREAMS = 2
_DEFAULT_COOLDOWN = 5


class TestStrategyConfig:
    """Test StrategyConfig defaults and validation."""

    def test_defaults(self) -> None:
        """Use the documented defaults."""
        config = StrategyConfig()
        assert config.kind is StrategyKind.PROGRESSIVE_MARTINGALE
        assert config.max_streams == _DEFAULT_MAX_STREAMS
        assert config.martingale_multiplier == Decimal("2.1")
        assert config.cooldown_rounds == _DEFAULT_COOLDOWN
        assert config.claim_policy is ClaimPolicy.IMMEDIATE
        assert config.exclusive_rounds is True

    def test_frozen(self) -> None:
        """Reject mutation."""
        with pytest.raises(dataclasses.FrozenInstanceError):
            StrategyConfig().max_streams = 3  # type: ignore[misc]

    @pytest.mark.parametrize(
        ("field", "value", "match"),
        [
            ("max_streams", 0, "max_streams"),
            ("flat_bet_count", -1, "flat_bet_count"),
            ("martingale_multiplier", Decimal("0.9"), "martingale_multiplier"),
            ("max_risk_fraction", Decimal(0), "max_risk_fraction"),
            ("hard_cap_fraction", Decimal("1.5"), "hard_cap_fraction"),
            ("base_bet_multiplier", Decimal("0.5"), "base_bet_multiplier"),
            ("max_consecutive_losses", 0, "max_consecutive_losses"),
            ("cooldown_rounds", 0, "cooldown_rounds"),
            ("bet_window_seconds", 0, "bet_window_seconds"),
            ("claim_streak_length", 0, "claim_streak_length"),
        ],
    )
    def test_rejects_out_of_range(self, field: str, value: object, match: str) -> None:
        """Raise ValueError for parameters outside their range."""
        with pytest.raises(ValueError, match=match):
            StrategyConfig(**{field: value})  # type: ignore[arg-type]


class TestStream:
    """Test Stream phase and history."""

    def test_phase_flat_then_escalating(self) -> None:
        """Be FLAT below the threshold and ESCALATING at or above it."""
        stream = Stream(id=1, current_amount=10, loss_count=2)
        assert stream.phase(3) is StreamPhase.FLAT
        stream.loss_count = 3
        assert stream.phase(3) is StreamPhase.ESCALATING

    def test_inactive_is_cooldown(self) -> None:
        """Report COOLDOWN whenever inactive."""
        stream = Stream(id=1, current_amount=10, active=False, cooldown_remaining=2)
        assert stream.phase(3) is StreamPhase.COOLDOWN

    def test_position_history_is_bounded(self) -> None:
        """Keep only the most recent positions."""
        stream = Stream(id=1, current_amount=10)
        for _ in range(POSITION_HISTORY_LENGTH + 3):
            stream.position_history.append(Position.UP)
        assert len(stream.position_history) == POSITION_HISTORY_LENGTH

    def test_histories_are_independent(self) -> None:
        """Give each stream its own history."""
        first = Stream(id=1, current_amount=10)
        second = Stream(id=2, current_amount=10)
        first.position_history.append(Position.DOWN)
        assert len(second.position_history) == 0


class TestStake:
    """Test Stake settlement flag."""

    def test_unsettled_by_default(self) -> None:
        """Start unsettled and unclaimed."""
        stake = Stake(epoch=1, position=Position.UP, amount=10, stream_id=1)
        assert not stake.settled
        assert not stake.claimed

    def test_loss_is_settled(self) -> None:
        """Count a recorded loss as settled."""
        stake = Stake(epoch=1, position=Position.UP, amount=10, stream_id=1, won=False)
        assert stake.settled


class TestClampFlags:
    """Test clamped properties."""

    def test_bet_decision_clamped(self) -> None:
        """Flag decisions reduced by the ceiling."""
        assert BetDecision(Position.UP, amount=5, requested_amount=8).clamped
        assert not BetDecision(Position.UP, amount=8, requested_amount=8).clamped

    def test_stream_update_clamped(self) -> None:
        """Flag updates reduced by the ceiling."""
        update = StreamUpdate(
            stream_id=1,
            current_amount=40,
            requested_amount=44,
            loss_count=5,
            consecutive_losses=5,
            max_consecutive_losses=5,
            daily_max_consecutive_losses=5,
            stats_day=date(2026, 1, 1),
            win_count=0,
            total_wins=0,
            active=True,
            cooldown_remaining=0,
        )
        assert update.clamped


class TestStakingRunResult:
    """Test run summary counters."""

    def test_wins_and_losses(self) -> None:
        """Count wins and settled losses, ignoring pending stakes."""
        stakes = (
            Stake(epoch=1, position=Position.UP, amount=1, stream_id=1, won=True),
            Stake(epoch=2, position=Position.UP, amount=1, stream_id=2, won=False),
            Stake(epoch=3, position=Position.UP, amount=1, stream_id=1),
        )
        result = StakingRunResult(
            initial_bankroll=100,
            final_bankroll=90,
            stakes=stakes,
            streams=(),
            events_processed=7,
        )
        assert result.wins == 1
        assert result.losses == 1
