"""Round targeting and the late-entry bet window.

Bets are placed only in the last ``bet_window_seconds`` before a round
locks, when the pool split is close to final.
"""

from prediction_tools.apps.staking_bot.bet_ledger import BetLedger
from prediction_tools.clients.prediction.models import Round
from prediction_tools.core.protocols import RoundDataProvider


async def read_candidate_rounds(provider: RoundDataProvider) -> tuple[Round, Round]:
    """Return the current round and the one after it.

    Raises:
        ProviderError: When any of the reads fails.

    """
    epoch = await provider.get_current_epoch()
    current = await provider.get_round(epoch)
    upcoming = await provider.get_round(epoch + 1)
    return current, upcoming


def select_target_round(current: Round, upcoming: Round | None, now: int) -> Round:
    """Return the round a bet should go to at ``now``.

    The round after the current epoch is preferred while it is open;
    otherwise the current round is the target.

    Args:
        current: Round at ``currentEpoch``.
        upcoming: Round at ``currentEpoch + 1``, if it exists yet.
        now: Current Unix time in seconds.

    Returns:
        The target round.

    """
    if upcoming is not None and upcoming.is_open(now):
        return upcoming
    return current


def in_bet_window(round_: Round, now: int, window_seconds: int) -> bool:
    """Return whether ``now`` lies in ``[lock - window_seconds, lock)``."""
    return round_.lock_timestamp - window_seconds <= now < round_.lock_timestamp


def is_bettable(
    round_: Round,
    now: int,
    window_seconds: int,
    ledger: BetLedger,
    *,
    exclusive: bool,
) -> bool:
    """Return whether a new stake may be placed on ``round_`` at ``now``.

    Args:
        round_: Candidate round.
        now: Current Unix time in seconds.
        window_seconds: Length of the bet window before lock.
        ledger: Ledger of placed stakes.
        exclusive: Reject rounds that already hold an unclaimed stake from
            any stream.

    Returns:
        ``True`` if the round is open, inside the window and not blocked
        by an existing stake.

    """
    if not round_.is_open(now) or not in_bet_window(round_, now, window_seconds):
        return False
    return not (exclusive and ledger.has_unclaimed(round_.epoch))
