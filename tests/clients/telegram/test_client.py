"""Tests for the Telegram notifier."""

import asyncio
import logging
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest

from prediction_tools.clients.telegram.client import LoggingNotifier, TelegramNotifier
from prediction_tools.clients.telegram.exceptions import TelegramAPIError

_STATUS_OK = 200
_STATUS_FORBIDDEN = 403
_TOKEN = "123:abc"
_CHAT_ID = "42"


def _response(status: int, text: str = "") -> MagicMock:
    """Create a mock httpx response."""
    response = MagicMock()
    response.status_code = status
    response.text = text
    return response


class TestTelegramNotifier:
    """Test suite for TelegramNotifier."""

    @pytest.fixture
    def notifier(self) -> TelegramNotifier:
        """Create a notifier against a test base URL."""
        return TelegramNotifier(_TOKEN, _CHAT_ID, base_url="https://telegram.example.com/")

    @pytest.mark.asyncio
    async def test_send_message_posts_html(self, notifier: TelegramNotifier) -> None:
        """Post the chat id, text and HTML parse mode to sendMessage."""
        post = AsyncMock(return_value=_response(_STATUS_OK))
        with patch.object(notifier._http_client, "post", new=post):
            await notifier.send_message("<b>hi</b>")

        url = post.call_args[0][0]
        assert url == f"https://telegram.example.com/bot{_TOKEN}/sendMessage"
        assert post.call_args[1]["json"] == {
            "chat_id": _CHAT_ID,
            "text": "<b>hi</b>",
            "parse_mode": "HTML",
        }

    @pytest.mark.asyncio
    async def test_send_message_error_status(self, notifier: TelegramNotifier) -> None:
        """Raise TelegramAPIError on a 4xx response."""
        post = AsyncMock(return_value=_response(_STATUS_FORBIDDEN, "bot was blocked"))
        with (
            patch.object(notifier._http_client, "post", new=post),
            pytest.raises(TelegramAPIError) as exc_info,
        ):
            await notifier.send_message("hi")
        assert exc_info.value.status_code == _STATUS_FORBIDDEN

    @pytest.mark.asyncio
    async def test_notify_delivers_in_background(self, notifier: TelegramNotifier) -> None:
        """Return immediately and deliver when the loop runs."""
        post = AsyncMock(return_value=_response(_STATUS_OK))
        with patch.object(notifier._http_client, "post", new=post):
            notifier.notify("hello")
            post.assert_not_called()
            await notifier.close()

        post.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_notify_failure_is_logged(
        self,
        notifier: TelegramNotifier,
        caplog: pytest.LogCaptureFixture,
    ) -> None:
        """Log delivery failures instead of raising."""
        post = AsyncMock(side_effect=httpx.ConnectError("no route"))
        with (
            caplog.at_level(logging.WARNING),
            patch.object(notifier._http_client, "post", new=post),
        ):
            notifier.notify("hello")
            await asyncio.sleep(0)
            await notifier.close()

        assert "Failed to send Telegram notification" in caplog.text

    def test_notify_without_loop_drops_message(
        self,
        notifier: TelegramNotifier,
        caplog: pytest.LogCaptureFixture,
    ) -> None:
        """Drop the message with a warning outside an event loop."""
        with caplog.at_level(logging.WARNING):
            notifier.notify("orphan")
        assert "dropping notification" in caplog.text


class TestLoggingNotifier:
    """Test suite for LoggingNotifier."""

    def test_logs_message(self, caplog: pytest.LogCaptureFixture) -> None:
        """Write the message to the log."""
        with caplog.at_level(logging.INFO):
            LoggingNotifier().notify("round won")
        assert "NOTIFY round won" in caplog.text

    @pytest.mark.asyncio
    async def test_close_is_noop(self) -> None:
        """Close without error."""
        await LoggingNotifier().close()
