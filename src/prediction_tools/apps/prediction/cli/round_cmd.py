"""CLI command for inspecting the live and upcoming rounds.

Read-only: no private key is needed.
"""

import asyncio
import time
from datetime import UTC, datetime

import typer

from prediction_tools.apps.prediction.cli._helpers import build_client, load_config, load_wallet
from prediction_tools.apps.staking_bot.bet_window import read_candidate_rounds
from prediction_tools.clients.prediction.exceptions import ProviderError
from prediction_tools.clients.prediction.models import Round
from prediction_tools.core.models import Position, format_bnb


def round_() -> None:
    """Print the current round and the one after it."""
    asyncio.run(_round())


def _format_ts(ts: int) -> str:
    """Format a Unix timestamp as a UTC time of day, or ``-`` when unset."""
    if ts == 0:
        return "-"
    return datetime.fromtimestamp(ts, tz=UTC).strftime("%H:%M:%S")


def _display_round(label: str, round_: Round, now: int) -> None:
    """Print one round's timing and pools.

    Args:
        label: Heading for the round.
        round_: Round to display.
        now: Current Unix time in seconds.

    """
    status = "open" if round_.is_open(now) else ("closed" if round_.oracle_called else "locked")
    if round_.start_timestamp == 0:
        status = "not started"
    typer.echo(f"{label} #{round_.epoch} [{status}]")
    typer.echo(
        f"  Start {_format_ts(round_.start_timestamp)}  Lock {_format_ts(round_.lock_timestamp)}"
        f"  Close {_format_ts(round_.close_timestamp)}"
    )
    if round_.lock_timestamp > now:
        typer.echo(f"  Locks in {round_.lock_timestamp - now}s")
    typer.echo(f"  Pool: {format_bnb(round_.total_amount)} BNB")
    typer.echo(
        f"  {Position.UP.value}: {format_bnb(round_.bull_amount)} BNB (x{round_.bull_payout})"
        f"  {Position.DOWN.value}: {format_bnb(round_.bear_amount)} BNB (x{round_.bear_payout})"
    )


async def _round() -> None:
    """Fetch and display the current and next rounds."""
    client = build_client(load_wallet(load_config(), require_key=False))
    try:
        async with client:
            current, upcoming = await read_candidate_rounds(client)
    except ProviderError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from exc

    now = int(time.time())
    _display_round("Current round", current, now)
    if upcoming.start_timestamp:
        _display_round("Next round", upcoming, now)
