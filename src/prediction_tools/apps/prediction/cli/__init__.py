"""CLI subpackage for the prediction staking bot.

Create the Typer application and register all command modules.
"""

import typer

from prediction_tools.apps.prediction.cli.round_cmd import round_
from prediction_tools.apps.prediction.cli.run_cmd import run
from prediction_tools.apps.prediction.cli.wallet_cmd import balance, status

app = typer.Typer(help="Prediction market staking bot")

app.command()(run)
app.command(name="round")(round_)
app.command()(balance)
app.command()(status)

__all__ = ["app"]
