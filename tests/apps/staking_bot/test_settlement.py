"""Tests for the settlement engine."""

from datetime import UTC, datetime
from unittest.mock import AsyncMock, MagicMock

import pytest

from prediction_tools.apps.staking_bot.models import RiskState, Stake, StrategyConfig
from prediction_tools.apps.staking_bot.settlement import (
    SettlementEngine,
    estimate_reward,
    stake_won,
)
from prediction_tools.apps.staking_bot.stream_registry import StakingState, StreamRegistry
from prediction_tools.clients.prediction.exceptions import ProviderError
from prediction_tools.clients.prediction.models import Round
from prediction_tools.core.models import Position

_BASE = 10
_ONE_BNB = 10**18
_LOCK_PRICE = 60_000_000_000
_NOW = datetime(2026, 5, 1, 12, tzinfo=UTC).timestamp()
_RISK = RiskState(
    bankroll=1_000_000,
    min_bet_amount=_BASE,
    base_bet_amount=_BASE,
    max_bet_amount=250_000,
    ceiling=100_000,
    refreshed_at=0,
)


class FakeNotifier:
    """Record notifications."""

    def __init__(self) -> None:
        """Initialize with no messages."""
        self.messages: list[str] = []

    def notify(self, message: str) -> None:
        """Record the message."""
        self.messages.append(message)


def _make_round(
    epoch: int,
    close_price: int,
    *,
    bull: int = _ONE_BNB,
    bear: int = _ONE_BNB,
    oracle_called: bool = True,
    close_timestamp: int = 600,
) -> Round:
    """Create a finished round with the given close price."""
    return Round(
        epoch=epoch,
        start_timestamp=0,
        lock_timestamp=300,
        close_timestamp=close_timestamp,
        lock_price=_LOCK_PRICE,
        close_price=close_price,
        total_amount=bull + bear,
        bull_amount=bull,
        bear_amount=bear,
        oracle_called=oracle_called,
    )


def _make_engine(
    rounds: dict[int, Round] | None = None,
    streams: int = 2,
    config: StrategyConfig | None = None,
) -> tuple[SettlementEngine, StakingState, FakeNotifier, AsyncMock]:
    """Create a settlement engine over a fresh state.

    Args:
        rounds: Rounds returned by the mock client, keyed by epoch.
        streams: Number of streams.
        config: Strategy configuration.

    Returns:
        The engine, its state, the notifier and the mock client.

    """
    client = AsyncMock()
    known = rounds or {}

    async def get_round(epoch: int) -> Round:
        if epoch not in known:
            raise ProviderError(f"round {epoch} unavailable")
        return known[epoch]

    client.get_round = AsyncMock(side_effect=get_round)
    state = StakingState(registry=StreamRegistry(streams, _BASE))
    notifier = FakeNotifier()
    risk = MagicMock()
    risk.snapshot = _RISK
    engine = SettlementEngine(
        client, state, config or StrategyConfig(), risk, notifier, clock=lambda: _NOW
    )
    return engine, state, notifier, client


def _place(state: StakingState, epoch: int, stream_id: int, position: Position) -> Stake:
    """Record a stake as the engine would after a confirmed bet."""
    stream = state.registry.get(stream_id)
    stake = Stake(
        epoch=epoch, position=position, amount=stream.current_amount, stream_id=stream_id
    )
    state.ledger.record(stake)
    state.registry.mark_placed(stream, epoch)
    return stake


class TestStakeWon:
    """Test the win rule."""

    def test_up_wins_on_higher_close(self) -> None:
        """Win UP when the close is above the lock."""
        stake = Stake(epoch=1, position=Position.UP, amount=1, stream_id=1)
        assert stake_won(stake, _make_round(1, _LOCK_PRICE + 1))
        assert not stake_won(stake, _make_round(1, _LOCK_PRICE - 1))

    def test_down_wins_on_lower_close(self) -> None:
        """Win DOWN when the close is below the lock."""
        stake = Stake(epoch=1, position=Position.DOWN, amount=1, stream_id=1)
        assert stake_won(stake, _make_round(1, _LOCK_PRICE - 1))

    @pytest.mark.parametrize("position", [Position.UP, Position.DOWN])
    def test_push_is_loss(self, position: Position) -> None:
        """Lose both sides when the price is unchanged."""
        stake = Stake(epoch=1, position=position, amount=1, stream_id=1)
        assert not stake_won(stake, _make_round(1, _LOCK_PRICE))

    def test_unfinalised_round_is_loss(self) -> None:
        """Lose when the oracle was never called."""
        stake = Stake(epoch=1, position=Position.UP, amount=1, stream_id=1)
        assert not stake_won(stake, _make_round(1, _LOCK_PRICE + 1, oracle_called=False))


class TestEstimateReward:
    """Test reward estimation."""

    def test_pro_rata_share(self) -> None:
        """Pay the stake's share of the prize pool."""
        stake = Stake(epoch=1, position=Position.UP, amount=_ONE_BNB, stream_id=1)
        round_ = _make_round(1, 0, bull=_ONE_BNB, bear=_ONE_BNB)
        assert estimate_reward(stake, round_) == round_.prize_pool

    def test_empty_side_raises(self) -> None:
        """Raise ZeroDivisionError when the stake's side is empty."""
        stake = Stake(epoch=1, position=Position.DOWN, amount=1, stream_id=1)
        with pytest.raises(ZeroDivisionError):
            estimate_reward(stake, _make_round(1, 0, bear=0))


class TestSettleThrough:
    """Test settlement passes."""

    @pytest.mark.asyncio
    async def test_two_stream_scenario(self) -> None:
        """Keep the winner at base and move the loser to one loss at base."""
        engine, state, notifier, _ = _make_engine(
            {100: _make_round(100, _LOCK_PRICE + 1)}
        )
        first = _place(state, 100, 1, Position.UP)
        second = _place(state, 100, 2, Position.DOWN)

        outcomes = await engine.settle_through(100)

        assert [o.won for o in outcomes] == [True, False]
        assert first.won is True
        assert second.won is False
        stream_1 = state.registry.get(1)
        stream_2 = state.registry.get(2)
        assert (stream_1.current_amount, stream_1.loss_count) == (_BASE, 0)
        assert (stream_2.current_amount, stream_2.loss_count) == (_BASE, 1)
        assert list(stream_1.position_history) == [Position.UP]
        assert len(notifier.messages) == 3  # noqa: PLR2004
        assert "Streams status after round #100" in notifier.messages[-1]

    @pytest.mark.asyncio
    async def test_catches_up_on_earlier_rounds(self) -> None:
        """Settle every earlier unsettled round in ascending order."""
        engine, state, _, client = _make_engine(
            {
                100: _make_round(100, _LOCK_PRICE - 1),
                101: _make_round(101, _LOCK_PRICE - 1),
            },
            streams=1,
        )
        _place(state, 100, 1, Position.UP)
        _place(state, 101, 1, Position.UP)

        await engine.settle_through(101)

        assert [c.args[0] for c in client.get_round.await_args_list] == [100, 101]
        assert state.registry.get(1).loss_count == 2  # noqa: PLR2004

    @pytest.mark.asyncio
    async def test_stops_at_unreadable_round(self) -> None:
        """Leave the failed round and later ones unsettled and report it."""
        engine, state, notifier, _ = _make_engine(
            {101: _make_round(101, _LOCK_PRICE + 1)}, streams=1
        )
        first = _place(state, 100, 1, Position.UP)
        second = _place(state, 101, 1, Position.UP)

        outcomes = await engine.settle_through(101)

        assert outcomes == []
        assert not first.settled
        assert not second.settled
        assert state.registry.get(1).loss_count == 0
        assert any("Settlement of round #100" in m for m in notifier.messages)

    @pytest.mark.asyncio
    async def test_settled_round_not_reapplied(self) -> None:
        """Apply each stake's result only once."""
        engine, state, _, _ = _make_engine({100: _make_round(100, _LOCK_PRICE - 1)})
        _place(state, 100, 1, Position.UP)

        await engine.settle_through(100)
        await engine.settle_through(100)

        assert state.registry.get(1).loss_count == 1

    @pytest.mark.asyncio
    async def test_deactivation_reported(self) -> None:
        """Report the cooldown when a loss ends the streak allowance."""
        config = StrategyConfig(max_consecutive_losses=1, cooldown_rounds=3)
        engine, state, notifier, _ = _make_engine(
            {100: _make_round(100, _LOCK_PRICE - 1)}, streams=1, config=config
        )
        _place(state, 100, 1, Position.UP)

        outcomes = await engine.settle_through(100)

        assert outcomes[0].deactivated
        assert not state.registry.get(1).active
        assert any("paused for 3 rounds" in m for m in notifier.messages)

    @pytest.mark.asyncio
    async def test_clamp_reported(self) -> None:
        """Report a stake reduced by the ceiling."""
        config = StrategyConfig(flat_bet_count=0)
        engine, state, notifier, _ = _make_engine(
            {100: _make_round(100, _LOCK_PRICE - 1)}, streams=1, config=config
        )
        state.registry.get(1).current_amount = _RISK.ceiling
        _place(state, 100, 1, Position.UP)

        outcomes = await engine.settle_through(100)

        assert outcomes[0].update.current_amount == _RISK.ceiling
        assert any("stake capped" in m for m in notifier.messages)

    @pytest.mark.asyncio
    async def test_reward_estimate_failure_degrades_report(self) -> None:
        """Still settle a win whose reward cannot be estimated."""
        engine, state, notifier, _ = _make_engine(
            {100: _make_round(100, _LOCK_PRICE + 1, bull=0)}, streams=1
        )
        stake = _place(state, 100, 1, Position.UP)

        outcomes = await engine.settle_through(100)

        assert stake.won is True
        assert outcomes[0].reward is None
        assert any("Estimated reward: unavailable" in m for m in notifier.messages)

    @pytest.mark.asyncio
    async def test_caps_streams_with_nothing_settled(self) -> None:
        """Cap idle and paused streams to the ceiling after every pass."""
        engine, state, notifier, _ = _make_engine(
            {100: _make_round(100, _LOCK_PRICE + 1)}, streams=3
        )
        _place(state, 100, 1, Position.UP)
        idle = state.registry.get(2)
        idle.current_amount = 300_000
        paused = state.registry.get(3)
        paused.current_amount = 300_000
        paused.active = False
        paused.cooldown_remaining = 2

        await engine.settle_through(100)

        assert all(s.current_amount <= _RISK.max_bet_amount for s in state.registry)
        assert idle.current_amount == _RISK.ceiling
        assert paused.current_amount == _RISK.ceiling
        assert any("Stream #2 stake capped" in m for m in notifier.messages)
        assert any("Stream #3 stake capped" in m for m in notifier.messages)

    @pytest.mark.asyncio
    async def test_defers_unfinalised_round(self) -> None:
        """Retry a round whose oracle has not been called instead of losing it."""
        rounds = {
            100: _make_round(
                100, _LOCK_PRICE + 1, oracle_called=False, close_timestamp=int(_NOW)
            )
        }
        engine, state, notifier, _ = _make_engine(rounds, streams=1)
        stake = _place(state, 100, 1, Position.UP)

        assert await engine.settle_through(100) == []
        assert not stake.settled
        assert state.registry.get(1).loss_count == 0
        assert any("not finalised" in m for m in notifier.messages)

        rounds[100] = _make_round(100, _LOCK_PRICE + 1)
        outcomes = await engine.settle_through(100)

        assert [o.won for o in outcomes] == [True]
        assert state.ledger.unclaimed_wins() == [stake]

    @pytest.mark.asyncio
    async def test_abandoned_round_settles_as_loss(self) -> None:
        """Settle a round left unfinalised past its grace period as a loss."""
        engine, state, _, _ = _make_engine(
            {100: _make_round(100, _LOCK_PRICE + 1, oracle_called=False)}, streams=1
        )
        stake = _place(state, 100, 1, Position.UP)

        await engine.settle_through(100)

        assert stake.won is False
        assert state.registry.get(1).loss_count == 1
