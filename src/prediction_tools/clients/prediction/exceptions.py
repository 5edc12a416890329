"""Exception hierarchy for prediction contract client errors.

Provide a base exception class with specialised errors that carry a
human-readable ``msg`` attribute. Each subclass maps to one failure class
the staking engine handles differently.
"""


class PredictionError(Exception):
    """Base exception for all prediction contract client errors.

    Args:
        msg: Human-readable description of the error.

    """

    def __init__(self, msg: str) -> None:
        """Initialize the error with a message.

        Args:
            msg: Human-readable description of the error.

        """
        super().__init__(msg)
        self.msg = msg


class ProviderError(PredictionError):
    """A read from the RPC node or the contract failed."""


class SubmissionError(PredictionError):
    """A bet transaction was rejected, reverted, or timed out.

    Args:
        msg: Human-readable description of the error.
        epoch: Round the bet was intended for.

    """

    def __init__(self, msg: str, epoch: int) -> None:
        """Initialize the submission error.

        Args:
            msg: Human-readable description of the error.
            epoch: Round the bet was intended for.

        """
        super().__init__(f"[epoch {epoch}] {msg}")
        self.msg = msg
        self.epoch = epoch


class ClaimError(PredictionError):
    """A claim transaction failed; the included stakes stay unclaimed.

    Args:
        msg: Human-readable description of the error.
        epochs: Rounds included in the failed claim.

    """

    def __init__(self, msg: str, epochs: list[int]) -> None:
        """Initialize the claim error.

        Args:
            msg: Human-readable description of the error.
            epochs: Rounds included in the failed claim.

        """
        super().__init__(f"[epochs {epochs}] {msg}")
        self.msg = msg
        self.epochs = list(epochs)


class InsufficientBalanceError(PredictionError):
    """The wallet cannot cover the requested stake.

    Args:
        required: Stake amount in wei.
        available: Wallet balance in wei.

    """

    def __init__(self, required: int, available: int) -> None:
        """Initialize the insufficient balance error.

        Args:
            required: Stake amount in wei.
            available: Wallet balance in wei.

        """
        super().__init__(f"Insufficient balance: need {required} wei, have {available} wei")
        self.required = required
        self.available = available
