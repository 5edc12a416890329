"""Tests for prediction contract data models."""

import dataclasses

import pytest

from prediction_tools.clients.prediction.exceptions import (
    ClaimError,
    InsufficientBalanceError,
    PredictionError,
    ProviderError,
    SubmissionError,
)
from prediction_tools.clients.prediction.models import Round

_ONE_BNB = 10**18
_START = 1_000
_LOCK = 1_300


def _make_round(
    bull: int = 2 * _ONE_BNB,
    bear: int = _ONE_BNB,
    *,
    oracle_called: bool = False,
) -> Round:
    """Create a Round with the given pools."""
    return Round(
        epoch=1,
        start_timestamp=_START,
        lock_timestamp=_LOCK,
        close_timestamp=_LOCK + 300,
        lock_price=0,
        close_price=0,
        total_amount=bull + bear,
        bull_amount=bull,
        bear_amount=bear,
        oracle_called=oracle_called,
    )


class TestRound:
    """Test Round timing and payout helpers."""

    def test_frozen(self) -> None:
        """Reject mutation."""
        with pytest.raises(dataclasses.FrozenInstanceError):
            _make_round().epoch = 2  # type: ignore[misc]

    def test_is_open_window(self) -> None:
        """Be open from start up to, but excluding, lock."""
        round_ = _make_round()
        assert not round_.is_open(_START - 1)
        assert round_.is_open(_START)
        assert round_.is_open(_LOCK - 1)
        assert not round_.is_open(_LOCK)

    def test_closed_round_not_open(self) -> None:
        """Never be open once the oracle was called."""
        assert not _make_round(oracle_called=True).is_open(_START)

    def test_can_bet_before_lock(self) -> None:
        """Accept bets before lock only."""
        round_ = _make_round()
        assert round_.can_bet(_LOCK - 1)
        assert not round_.can_bet(_LOCK)

    def test_treasury_fee_and_prize_pool(self) -> None:
        """Take a 3% treasury fee from the total."""
        round_ = _make_round(bull=_ONE_BNB, bear=_ONE_BNB)
        assert round_.treasury_fee == 2 * _ONE_BNB * 3 // 100
        assert round_.prize_pool == 2 * _ONE_BNB - round_.treasury_fee

    def test_payouts(self) -> None:
        """Return whole-number payout multiples."""
        round_ = _make_round(bull=_ONE_BNB, bear=3 * _ONE_BNB)
        assert round_.bull_payout == 3  # noqa: PLR2004
        assert round_.bear_payout == 1

    def test_empty_side_payout_is_zero(self) -> None:
        """Return 0 for a side nobody backed."""
        round_ = _make_round(bull=0, bear=_ONE_BNB)
        assert round_.bull_payout == 0


class TestExceptions:
    """Test the exception hierarchy."""

    @pytest.mark.parametrize(
        "error",
        [
            ProviderError("rpc down"),
            SubmissionError("reverted", epoch=5),
            ClaimError("reverted", epochs=[1, 2]),
            InsufficientBalanceError(required=10, available=5),
        ],
    )
    def test_subclasses_share_base(self, error: PredictionError) -> None:
        """Derive every client error from PredictionError."""
        assert isinstance(error, PredictionError)
        assert error.msg

    def test_submission_error_carries_epoch(self) -> None:
        """Keep the epoch and the raw message."""
        error = SubmissionError("reverted", epoch=5)
        assert error.epoch == 5  # noqa: PLR2004
        assert error.msg == "reverted"
        assert "[epoch 5]" in str(error)

    def test_claim_error_copies_epochs(self) -> None:
        """Copy the epochs list."""
        epochs = [1, 2]
        error = ClaimError("boom", epochs=epochs)
        epochs.append(3)
        assert error.epochs == [1, 2]
