"""Tests for the risk governor."""

from decimal import Decimal
from unittest.mock import AsyncMock

import pytest

from prediction_tools.apps.staking_bot.models import StrategyConfig
from prediction_tools.apps.staking_bot.risk_governor import RiskGovernor, derive_risk_state
from prediction_tools.clients.prediction.exceptions import ProviderError

_BANKROLL = 10**18
_MIN_BET = 10**15
_NOW = 1_700_000_000


class TestDeriveRiskState:
    """Test limit derivation."""

    def test_hard_cap_binds(self) -> None:
        """Use the hard cap when it is below the risk fraction."""
        risk = derive_risk_state(_BANKROLL, _MIN_BET, StrategyConfig(), _NOW)
        assert risk.max_bet_amount == _BANKROLL // 4
        assert risk.ceiling == _BANKROLL // 10
        assert risk.base_bet_amount == _MIN_BET
        assert risk.refreshed_at == _NOW

    def test_risk_fraction_binds(self) -> None:
        """Use max_bet_amount when it is below the hard cap."""
        config = StrategyConfig(max_risk_fraction=Decimal("0.05"))
        risk = derive_risk_state(_BANKROLL, _MIN_BET, config, _NOW)
        assert risk.ceiling == risk.max_bet_amount == _BANKROLL // 20

    def test_base_multiplier(self) -> None:
        """Scale the base stake from the contract minimum."""
        config = StrategyConfig(base_bet_multiplier=Decimal(2))
        risk = derive_risk_state(_BANKROLL, _MIN_BET, config, _NOW)
        assert risk.base_bet_amount == 2 * _MIN_BET

    def test_empty_wallet(self) -> None:
        """Derive a zero ceiling from a zero bankroll."""
        risk = derive_risk_state(0, _MIN_BET, StrategyConfig(), _NOW)
        assert risk.ceiling == 0


class TestRiskGovernor:
    """Test snapshot refreshes."""

    @pytest.mark.asyncio
    async def test_refresh_replaces_snapshot(self) -> None:
        """Read balance and minimum bet into a new snapshot."""
        client = AsyncMock()
        client.get_balance = AsyncMock(return_value=_BANKROLL)
        client.get_min_bet_amount = AsyncMock(return_value=_MIN_BET)
        governor = RiskGovernor(client, StrategyConfig(), clock=lambda: _NOW)

        risk = await governor.refresh()

        assert governor.snapshot is risk
        assert risk.bankroll == _BANKROLL

    @pytest.mark.asyncio
    async def test_failed_refresh_keeps_snapshot(self) -> None:
        """Propagate the read error and keep the previous snapshot."""
        client = AsyncMock()
        client.get_balance = AsyncMock(side_effect=[_BANKROLL, ProviderError("rpc down")])
        client.get_min_bet_amount = AsyncMock(return_value=_MIN_BET)
        governor = RiskGovernor(client, StrategyConfig(), clock=lambda: _NOW)
        first = await governor.refresh()

        with pytest.raises(ProviderError, match="rpc down"):
            await governor.refresh()

        assert governor.snapshot is first
