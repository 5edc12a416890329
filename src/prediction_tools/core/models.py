"""Core value types shared across the prediction tools application.

Define the outcome ``Position`` enum and the decimal constants used by the
sizing arithmetic. Monetary amounts travel through the system as integer
wei; rational parameters (multipliers, fractions) use ``Decimal``.
"""

from decimal import ROUND_DOWN, Decimal
from enum import Enum

ZERO = Decimal(0)
ONE = Decimal(1)
WEI_PER_BNB = Decimal(10**18)


class Position(Enum):
    """Outcome a stake backs: UP (price closes higher) or DOWN (lower)."""

    UP = "Bull"
    DOWN = "Bear"

    @property
    def opposite(self) -> "Position":
        """Return the other outcome."""
        return Position.DOWN if self is Position.UP else Position.UP


def scale_amount(amount: int, factor: Decimal) -> int:
    """Multiply a wei amount by a decimal factor, rounding toward zero.

    Args:
        amount: Amount in wei.
        factor: Non-negative scaling factor.

    Returns:
        ``floor(amount * factor)`` as an integer number of wei.

    """
    return int((Decimal(amount) * factor).to_integral_value(rounding=ROUND_DOWN))


def format_bnb(amount: int) -> str:
    """Render a wei amount as a BNB string with trailing zeros stripped."""
    value = (Decimal(amount) / WEI_PER_BNB).normalize()
    return f"{value:f}"
