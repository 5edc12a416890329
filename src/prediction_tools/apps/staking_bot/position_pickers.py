"""Side-selection heuristics and their registry.

The heuristics read pool sizes, not prices: they are liquidity policies,
not predictions. Each takes an injected ``random.Random`` so tests can
seed the tie-breaks.
"""

import random
from typing import Any

import typer

from prediction_tools.apps.staking_bot.models import Stream
from prediction_tools.apps.staking_bot.protocols import PositionPicker
from prediction_tools.clients.prediction.models import Round
from prediction_tools.core.models import Position

PICKER_NAMES = ("larger_pool", "payout", "random")

_POSITIONS = (Position.UP, Position.DOWN)


class RandomPicker:
    """Back either side with equal probability."""

    def __init__(self, rng: random.Random | None = None) -> None:
        """Initialize with an optional random source."""
        self._rng = rng or random.Random()  # noqa: S311

    @property
    def name(self) -> str:
        """Return the picker name."""
        return "random"

    def pick(self, round_: Round, stream: Stream) -> Position:  # noqa: ARG002
        """Return a uniformly random side."""
        return self._rng.choice(_POSITIONS)


class LargerPoolPicker:
    """Back the side that already holds more stake.

    Late counter-bets are assumed smaller than the existing pool, so the
    larger side is less exposed to last-moment adverse selection. When the
    round's total pool is below ``min_liquidity`` the pool split is noise
    and the side is chosen at random; equal pools are also broken at random.

    Args:
        min_liquidity: Total pool in wei below which the choice is random.
        rng: Random source for the random branches.

    """

    def __init__(self, min_liquidity: int, rng: random.Random | None = None) -> None:
        """Initialize the larger-pool picker.

        Args:
            min_liquidity: Total pool in wei below which the choice is random.
            rng: Random source for the random branches.

        Raises:
            ValueError: If ``min_liquidity`` is negative.

        """
        if min_liquidity < 0:
            msg = f"min_liquidity must be >= 0, got {min_liquidity}"
            raise ValueError(msg)
        self._min_liquidity = min_liquidity
        self._rng = rng or random.Random()  # noqa: S311

    @property
    def name(self) -> str:
        """Return the picker name."""
        return "larger_pool"

    def pick(self, round_: Round, stream: Stream) -> Position:  # noqa: ARG002
        """Return the side with the larger pool, or a random side on thin books."""
        if round_.total_amount < self._min_liquidity or round_.bull_amount == round_.bear_amount:
            return self._rng.choice(_POSITIONS)
        return Position.UP if round_.bull_amount > round_.bear_amount else Position.DOWN


class PayoutPicker:
    """Back the side with the higher payout multiple.

    If the stream's last two stakes were on the same side, switch to the
    other side instead. With no stake on either side the payouts tie and
    the side is chosen at random.
    """

    def __init__(self, rng: random.Random | None = None) -> None:
        """Initialize with an optional random source."""
        self._rng = rng or random.Random()  # noqa: S311

    @property
    def name(self) -> str:
        """Return the picker name."""
        return "payout"

    def pick(self, round_: Round, stream: Stream) -> Position:
        """Return the flipped side after a repeat, else the better-paying side."""
        history = stream.position_history
        if len(history) >= 2 and history[-1] == history[-2]:  # noqa: PLR2004
            return history[-1].opposite
        if round_.bull_payout == round_.bear_payout:
            return self._rng.choice(_POSITIONS)
        return Position.UP if round_.bull_payout > round_.bear_payout else Position.DOWN


def build_position_picker(name: str, **kwargs: Any) -> PositionPicker:
    """Build a position picker from a name and parameters.

    Args:
        name: Picker identifier (must be one of ``PICKER_NAMES``).
        **kwargs: Picker parameters. Supported keys:
            - ``min_liquidity``: Thin-book threshold in wei (larger_pool).
            - ``rng``: ``random.Random`` instance shared by the picker.

    Returns:
        A configured ``PositionPicker`` instance.

    Raises:
        typer.BadParameter: If the picker name is not recognised.

    """
    rng: random.Random | None = kwargs.get("rng")
    if name == "larger_pool":
        return LargerPoolPicker(min_liquidity=int(kwargs.get("min_liquidity", 0)), rng=rng)
    if name == "payout":
        return PayoutPicker(rng=rng)
    if name == "random":
        return RandomPicker(rng=rng)
    msg = f"Unknown position picker: {name}. Available: {', '.join(PICKER_NAMES)}"
    raise typer.BadParameter(msg)
