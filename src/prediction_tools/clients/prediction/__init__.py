"""Prediction market contract client for BNB Smart Chain rounds."""

from prediction_tools.clients.prediction.client import PredictionClient
from prediction_tools.clients.prediction.exceptions import (
    ClaimError,
    InsufficientBalanceError,
    PredictionError,
    ProviderError,
    SubmissionError,
)
from prediction_tools.clients.prediction.models import Round, RoundEvent, RoundEventKind

__all__ = [
    "ClaimError",
    "InsufficientBalanceError",
    "PredictionClient",
    "PredictionError",
    "ProviderError",
    "Round",
    "RoundEvent",
    "RoundEventKind",
    "SubmissionError",
]
