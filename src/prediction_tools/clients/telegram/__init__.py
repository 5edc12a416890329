"""Telegram Bot API client used as the bot's notification sink."""

from prediction_tools.clients.telegram.client import LoggingNotifier, TelegramNotifier
from prediction_tools.clients.telegram.exceptions import TelegramAPIError, TelegramError

__all__ = [
    "LoggingNotifier",
    "TelegramAPIError",
    "TelegramError",
    "TelegramNotifier",
]
