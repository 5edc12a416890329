"""Fire-and-forget chat notifications via the Telegram Bot API.

``TelegramNotifier.notify`` hands each message to a background task that
posts it with ``httpx``; delivery failures are logged and never reach the
caller. ``LoggingNotifier`` is the drop-in used when no bot token is
configured.
"""

import asyncio
import logging
from typing import Any

import httpx

from prediction_tools.clients.telegram.exceptions import TelegramAPIError

logger = logging.getLogger(__name__)

_HTTP_BAD_REQUEST = 400


class TelegramNotifier:
    """Send HTML-formatted messages to a single Telegram chat.

    Args:
        bot_token: Bot token issued by @BotFather.
        chat_id: Chat that receives every message.
        base_url: Telegram Bot API base URL.
        timeout: Request timeout in seconds.

    """

    BASE_URL = "https://api.telegram.org"

    def __init__(
        self,
        bot_token: str,
        chat_id: str,
        base_url: str = BASE_URL,
        timeout: float = 10.0,
    ) -> None:
        """Initialize the notifier.

        Args:
            bot_token: Bot token issued by @BotFather.
            chat_id: Chat that receives every message.
            base_url: Telegram Bot API base URL.
            timeout: Request timeout in seconds.

        """
        self._url = f"{base_url.rstrip('/')}/bot{bot_token}/sendMessage"
        self._chat_id = chat_id
        self._http_client = httpx.AsyncClient(timeout=timeout)
        self._pending: set[asyncio.Task[None]] = set()

    async def send_message(self, text: str) -> None:
        """Post a message and wait for the API to accept it.

        Args:
            text: HTML-formatted message body.

        Raises:
            TelegramAPIError: When the API rejects the message.
            httpx.HTTPError: When the request cannot be sent.

        """
        payload: dict[str, Any] = {
            "chat_id": self._chat_id,
            "text": text,
            "parse_mode": "HTML",
        }
        response = await self._http_client.post(self._url, json=payload)
        if response.status_code >= _HTTP_BAD_REQUEST:
            raise TelegramAPIError(msg=response.text, status_code=response.status_code)

    def notify(self, message: str) -> None:
        """Schedule a message for delivery without waiting for it.

        Args:
            message: HTML-formatted message body.

        """
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.warning("No running event loop, dropping notification: %s", message)
            return
        task = loop.create_task(self._deliver(message))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _deliver(self, message: str) -> None:
        """Send one message, logging instead of raising on failure."""
        try:
            await self.send_message(message)
        except (TelegramAPIError, httpx.HTTPError):
            logger.warning("Failed to send Telegram notification", exc_info=True)

    async def close(self) -> None:
        """Wait for in-flight messages and close the HTTP client."""
        if self._pending:
            await asyncio.gather(*self._pending, return_exceptions=True)
        await self._http_client.aclose()


class LoggingNotifier:
    """Write notifications to the log when no chat transport is configured."""

    def notify(self, message: str) -> None:
        """Log the message at INFO level."""
        logger.info("NOTIFY %s", message)

    async def close(self) -> None:
        """Nothing to release."""
