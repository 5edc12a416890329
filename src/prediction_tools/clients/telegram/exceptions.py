"""Exception hierarchy for Telegram Bot API errors."""


class TelegramError(Exception):
    """Base exception for all Telegram client errors."""


class TelegramAPIError(TelegramError):
    """Error returned by a Telegram Bot API call.

    Args:
        msg: Human-readable description of the error.
        status_code: HTTP status code from the API response.

    """

    def __init__(self, msg: str, status_code: int) -> None:
        """Initialize Telegram API error.

        Args:
            msg: Human-readable description of the error.
            status_code: HTTP status code from the API response.

        """
        super().__init__(f"[{status_code}] {msg}")
        self.msg = msg
        self.status_code = status_code
