"""CLI command for running the staking bot with real funds.

Load the strategy from ``settings.yaml``, apply command-line overrides and
start the ``StakingEngine``. Require ``--confirm-live`` to prevent
accidental betting, and display a warning banner with the effective
configuration and wallet balance before starting.
"""

import asyncio
import random
from typing import Annotated

import typer

from prediction_tools.apps.prediction.cli._helpers import (
    build_client,
    build_notifier,
    configure_logging,
    load_config,
    load_wallet,
)
from prediction_tools.apps.staking_bot.config import WalletSettings, load_strategy_config
from prediction_tools.apps.staking_bot.engine import StakingEngine
from prediction_tools.apps.staking_bot.models import StakingRunResult, StrategyConfig
from prediction_tools.apps.staking_bot.position_pickers import PICKER_NAMES
from prediction_tools.clients.prediction.exceptions import PredictionError
from prediction_tools.core.config import ConfigError, ConfigLoader
from prediction_tools.core.models import format_bnb


def run(  # noqa: PLR0913
    kind: Annotated[
        str | None,
        typer.Option(help="Sizing strategy: flat_percentage or progressive_martingale"),
    ] = None,
    streams: Annotated[int | None, typer.Option(help="Number of independent streams")] = None,
    flat_bets: Annotated[
        int | None, typer.Option(help="Losses at base stake before escalating")
    ] = None,
    multiplier: Annotated[
        str | None, typer.Option(help="Stake multiplier per loss after the flat phase")
    ] = None,
    max_losses: Annotated[
        int | None, typer.Option(help="Losing streak that pauses a stream")
    ] = None,
    cooldown: Annotated[
        int | None, typer.Option(help="Round locks a paused stream sits out")
    ] = None,
    window: Annotated[
        int | None, typer.Option(help="Seconds before lock in which to bet")
    ] = None,
    picker: Annotated[
        str | None, typer.Option(help=f"Position picker: {', '.join(PICKER_NAMES)}")
    ] = None,
    claim_policy: Annotated[
        str | None, typer.Option(help="Claim policy: immediate or streak")
    ] = None,
    seed: Annotated[int | None, typer.Option(help="Seed for the picker's random choices")] = None,
    max_events: Annotated[
        int | None, typer.Option(help="Stop after N events (None = unlimited)")
    ] = None,
    confirm_live: Annotated[  # noqa: FBT002
        bool, typer.Option("--confirm-live", help="Required flag to bet real funds")
    ] = False,
    verbose: Annotated[  # noqa: FBT002
        bool, typer.Option("--verbose", "-v", help="Enable debug logging")
    ] = False,
) -> None:
    """Run the staking bot with real funds.

    Sign and send bet and claim transactions from the configured wallet.
    Require ``--confirm-live`` to prevent accidental execution.
    """
    if not confirm_live:
        typer.echo("Error: --confirm-live is required to run the staking bot.", err=True)
        typer.echo("This flag prevents accidental betting with real funds.", err=True)
        raise typer.Exit(code=1)

    configure_logging(verbose=verbose)
    loader = load_config()
    try:
        config = load_strategy_config(
            loader,
            kind=kind,
            max_streams=streams,
            flat_bet_count=flat_bets,
            martingale_multiplier=multiplier,
            max_consecutive_losses=max_losses,
            cooldown_rounds=cooldown,
            bet_window_seconds=window,
            position_picker=picker,
            claim_policy=claim_policy,
        )
    except ConfigError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from exc

    wallet = load_wallet(loader, require_key=True)
    rng = random.Random(seed) if seed is not None else None  # noqa: S311

    _display_banner(config, wallet.contract_address)
    asyncio.run(_run(loader, wallet, config, rng, max_events))


def _display_banner(config: StrategyConfig, contract_address: str) -> None:
    """Display the live betting warning banner and configuration.

    Args:
        config: Effective strategy configuration.
        contract_address: Prediction contract being used.

    """
    typer.echo("")
    typer.echo("=" * 60)
    typer.echo("  LIVE BETTING MODE -- real funds at risk")
    typer.echo("=" * 60)
    typer.echo("")
    typer.echo(f"Contract: {contract_address}")
    typer.echo(f"Strategy: {config.kind.value}")
    typer.echo(f"Streams: {config.max_streams}")
    typer.echo(f"Flat bets: {config.flat_bet_count}, multiplier x{config.martingale_multiplier}")
    typer.echo(
        f"Pause after {config.max_consecutive_losses} losses for {config.cooldown_rounds} rounds"
    )
    typer.echo(f"Bet window: {config.bet_window_seconds}s before lock")
    typer.echo(f"Picker: {config.position_picker}, claim policy: {config.claim_policy.value}")


def _display_results(result: StakingRunResult) -> None:
    """Display the run summary.

    Args:
        result: Completed run result.

    """
    typer.echo("\n--- Staking Results ---")
    typer.echo(f"Events processed: {result.events_processed}")
    typer.echo(f"Initial bankroll: {format_bnb(result.initial_bankroll)} BNB")
    typer.echo(f"Final bankroll:   {format_bnb(result.final_bankroll)} BNB")
    typer.echo(f"Stakes: {len(result.stakes)} ({result.wins} won, {result.losses} lost)")
    for stream in result.streams:
        typer.echo(
            f"  Stream #{stream.id}: {stream.total_wins}/{stream.total_bets} won, "
            f"max losing streak {stream.max_consecutive_losses}"
        )


async def _run(
    loader: ConfigLoader,
    wallet: WalletSettings,
    config: StrategyConfig,
    rng: random.Random | None,
    max_events: int | None,
) -> None:
    """Run the engine asynchronously and close the clients on exit.

    Args:
        loader: Configuration source for the notifier.
        wallet: Wallet settings for the contract client.
        config: Strategy configuration.
        rng: Random source for the position picker.
        max_events: Maximum number of events to process.

    """
    notifier = build_notifier(loader)
    client = build_client(wallet)
    try:
        async with client:
            balance = await client.get_balance()
            typer.echo(f"Wallet: {client.address}")
            typer.echo(f"Balance: {format_bnb(balance)} BNB")
            typer.echo("")

            engine = StakingEngine(client, config, notifier, rng=rng)
            result = await engine.run(max_events=max_events)
    except PredictionError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from exc
    finally:
        await notifier.close()

    _display_results(result)
