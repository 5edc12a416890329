"""Shared test configuration and fixtures."""

import os
from collections.abc import Iterator
from unittest.mock import patch

import pytest

import prediction_tools.core.config as config_module

_ISOLATED_ENV_VARS = (
    "WALLET_PRIVATE_KEY",
    "TELEGRAM_BOT_TOKEN",
    "RECEIVER_TELEGRAM_ID",
)


@pytest.fixture(autouse=True)
def _isolate_config() -> Iterator[None]:  # pyright: ignore[reportUnusedFunction]
    """Hide real credentials and reset the config singleton around each test.

    ``settings.yaml`` reads the wallet key and Telegram credentials from the
    environment, so a developer's ``.env`` would otherwise leak into tests
    that load the real configuration.
    """
    clean = {k: v for k, v in os.environ.items() if k not in _ISOLATED_ENV_VARS}
    config_module._config = None
    with (
        patch.dict(os.environ, clean, clear=True),
        patch("prediction_tools.core.config.load_dotenv"),
    ):
        yield
    config_module._config = None
