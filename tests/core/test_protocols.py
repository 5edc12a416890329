"""Tests for core protocols."""

from prediction_tools.clients.prediction.models import Round
from prediction_tools.clients.telegram.client import LoggingNotifier
from prediction_tools.core.protocols import Notifier, RoundDataProvider


class FakeProvider:
    """A class that structurally satisfies RoundDataProvider."""

    async def get_current_epoch(self) -> int:
        """Return a fixed epoch."""
        return 1

    async def get_round(self, epoch: int) -> Round:
        """Return an empty round."""
        return Round(epoch, 0, 0, 0, 0, 0, 0, 0, 0, oracle_called=False)


class FakeNotifier:
    """A class that structurally satisfies Notifier."""

    def __init__(self) -> None:
        """Initialize with no messages."""
        self.messages: list[str] = []

    def notify(self, message: str) -> None:
        """Record the message."""
        self.messages.append(message)


class BadProvider:
    """Missing get_round method."""

    async def get_current_epoch(self) -> int:
        """Return a fixed epoch."""
        return 1


class TestRoundDataProvider:
    """Tests for RoundDataProvider protocol."""

    def test_structural_match(self) -> None:
        """Test that FakeProvider satisfies RoundDataProvider."""
        assert isinstance(FakeProvider(), RoundDataProvider)

    def test_structural_mismatch(self) -> None:
        """Test that BadProvider does not satisfy RoundDataProvider."""
        assert not isinstance(BadProvider(), RoundDataProvider)


class TestNotifier:
    """Tests for Notifier protocol."""

    def test_fake_notifier_matches(self) -> None:
        """Test that FakeNotifier satisfies Notifier."""
        assert isinstance(FakeNotifier(), Notifier)

    def test_logging_notifier_matches(self) -> None:
        """Test that the fallback notifier satisfies Notifier."""
        assert isinstance(LoggingNotifier(), Notifier)

    def test_object_does_not_match(self) -> None:
        """Test that a plain object does not satisfy Notifier."""
        assert not isinstance(object(), Notifier)
