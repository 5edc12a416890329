"""Structural protocols for pluggable collaborators.

Define the ``Notifier`` and ``RoundDataProvider`` interfaces that decouple
the staking engine from the concrete chat transport and contract client.
Any class whose shape matches these protocols can be used without explicit
inheritance (structural subtyping).
"""

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from prediction_tools.clients.prediction.models import Round


@runtime_checkable
class Notifier(Protocol):
    """Outbound sink for human-readable status messages.

    Implementors must not raise and must not block the caller on delivery:
    a message is handed off and the call returns immediately.
    """

    def notify(self, message: str) -> None:
        """Queue a message for delivery."""
        ...


@runtime_checkable
class RoundDataProvider(Protocol):
    """Async read-only accessor for prediction market rounds."""

    async def get_current_epoch(self) -> int:
        """Return the epoch number of the round currently running."""
        ...

    async def get_round(self, epoch: int) -> "Round":
        """Return the snapshot of the round with the given epoch."""
        ...
