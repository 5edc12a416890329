"""CLI commands for the wallet and the effective configuration.

Provide ``balance`` (wallet balance, contract minimum bet and the stake
limits derived from them) and ``status`` (the strategy as loaded from
``settings.yaml``, without touching the chain).
"""

import asyncio
import time

import typer

from prediction_tools.apps.prediction.cli._helpers import build_client, load_config, load_wallet
from prediction_tools.apps.staking_bot.config import load_strategy_config
from prediction_tools.apps.staking_bot.models import StrategyConfig
from prediction_tools.apps.staking_bot.risk_governor import derive_risk_state
from prediction_tools.clients.prediction.exceptions import ProviderError
from prediction_tools.core.config import ConfigError
from prediction_tools.core.models import format_bnb


def _strategy() -> StrategyConfig:
    """Load the strategy configuration, exiting on a config error."""
    try:
        return load_strategy_config(load_config())
    except ConfigError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from exc


def balance() -> None:
    """Show the wallet balance, minimum bet and current stake limits."""
    asyncio.run(_balance())


async def _balance() -> None:
    """Fetch and display the balance and derived limits."""
    config = _strategy()
    client = build_client(load_wallet(load_config(), require_key=True))
    try:
        async with client:
            bankroll = await client.get_balance()
            min_bet = await client.get_min_bet_amount()
    except ProviderError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from exc

    risk = derive_risk_state(bankroll, min_bet, config, int(time.time()))
    typer.echo(f"Wallet: {client.address}")
    typer.echo(f"Balance: {format_bnb(risk.bankroll)} BNB")
    typer.echo(f"Min bet: {format_bnb(risk.min_bet_amount)} BNB")
    typer.echo(f"Base stake: {format_bnb(risk.base_bet_amount)} BNB")
    typer.echo(f"Max bet: {format_bnb(risk.max_bet_amount)} BNB")
    typer.echo(f"Stake ceiling: {format_bnb(risk.ceiling)} BNB")


def status() -> None:
    """Print the effective strategy configuration."""
    config = _strategy()
    typer.echo(f"{'Strategy':<24} {config.kind.value}")
    typer.echo(f"{'Streams':<24} {config.max_streams}")
    typer.echo(f"{'Flat bets':<24} {config.flat_bet_count}")
    typer.echo(f"{'Flat bet fraction':<24} {config.flat_bet_fraction}")
    typer.echo(f"{'Base bet multiplier':<24} {config.base_bet_multiplier}")
    typer.echo(f"{'Martingale multiplier':<24} {config.martingale_multiplier}")
    typer.echo(f"{'Max risk fraction':<24} {config.max_risk_fraction}")
    typer.echo(f"{'Hard cap fraction':<24} {config.hard_cap_fraction}")
    typer.echo(f"{'Max consecutive losses':<24} {config.max_consecutive_losses}")
    typer.echo(f"{'Cooldown rounds':<24} {config.cooldown_rounds}")
    typer.echo(f"{'Bet window':<24} {config.bet_window_seconds}s")
    typer.echo(f"{'Min liquidity':<24} {format_bnb(config.min_liquidity)} BNB")
    typer.echo(f"{'Position picker':<24} {config.position_picker}")
    typer.echo(f"{'Claim policy':<24} {config.claim_policy.value}")
    typer.echo(f"{'Claim streak length':<24} {config.claim_streak_length}")
    typer.echo(f"{'Exclusive rounds':<24} {config.exclusive_rounds}")
