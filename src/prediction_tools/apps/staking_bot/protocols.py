"""Protocol for side-selection heuristics.

Define the ``PositionPicker`` interface that decouples the staking state
machine from the heuristic choosing which outcome to back, so the heuristic
can be swapped without touching sizing or settlement.
"""

from typing import Protocol, runtime_checkable

from prediction_tools.apps.staking_bot.models import Stream
from prediction_tools.clients.prediction.models import Round
from prediction_tools.core.models import Position


@runtime_checkable
class PositionPicker(Protocol):
    """Heuristic choosing the outcome a stream backs in a round."""

    @property
    def name(self) -> str:
        """Return the picker name."""
        ...

    def pick(self, round_: Round, stream: Stream) -> Position:
        """Return the outcome to back.

        Args:
            round_: Current snapshot of the round being bet on.
            stream: Stream placing the stake (read only).

        Returns:
            The ``Position`` to stake on.

        """
        ...
