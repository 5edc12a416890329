"""Typed events consumed by the staking engine's single event queue."""

from dataclasses import dataclass
from typing import TypeAlias


@dataclass(frozen=True)
class Tick:
    """Periodic trigger for the decision loop."""


@dataclass(frozen=True)
class RoundLocked:
    """A round stopped accepting bets."""

    epoch: int
    lock_price: int


@dataclass(frozen=True)
class RoundEnded:
    """A round closed and its outcome price is final."""

    epoch: int


@dataclass(frozen=True)
class ProviderFailure:
    """A background producer failed to read from the chain."""

    error: Exception


@dataclass(frozen=True)
class RefreshBankroll:
    """Scheduled request to re-read the wallet balance."""


EngineEvent: TypeAlias = Tick | RoundLocked | RoundEnded | ProviderFailure | RefreshBankroll
