"""Shared helpers for prediction bot CLI commands.

Centralise logging setup, configuration loading and client construction
so every command turns a bad configuration into the same error exit.
"""

import logging

import typer

from prediction_tools.apps.staking_bot.config import (
    WalletSettings,
    load_telegram_settings,
    load_wallet_settings,
)
from prediction_tools.clients.prediction.client import PredictionClient
from prediction_tools.clients.telegram.client import LoggingNotifier, TelegramNotifier
from prediction_tools.core.config import ConfigError, ConfigLoader, get_config


def configure_logging(*, verbose: bool) -> None:
    """Enable INFO logging, or DEBUG when ``verbose`` is set."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
        datefmt="%H:%M:%S",
    )


def load_config() -> ConfigLoader:
    """Return the global configuration, exiting on a config error.

    Raises:
        typer.Exit: When the configuration files cannot be loaded.

    """
    try:
        return get_config()
    except ConfigError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from exc


def load_wallet(loader: ConfigLoader, *, require_key: bool) -> WalletSettings:
    """Return validated wallet settings, exiting on a config error.

    Args:
        loader: Configuration source.
        require_key: Whether a private key must be configured.

    Raises:
        typer.Exit: When the wallet settings are invalid.

    """
    try:
        return load_wallet_settings(loader, require_key=require_key)
    except ConfigError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from exc


def build_client(settings: WalletSettings) -> PredictionClient:
    """Build a contract client from wallet settings."""
    return PredictionClient(
        rpc_url=settings.rpc_url,
        contract_address=settings.contract_address,
        private_key=settings.private_key,
        chain_id=settings.chain_id,
    )


def build_notifier(loader: ConfigLoader) -> TelegramNotifier | LoggingNotifier:
    """Return a Telegram notifier when configured, else a logging one."""
    settings = load_telegram_settings(loader)
    if settings.enabled:
        return TelegramNotifier(settings.bot_token, settings.chat_id)
    typer.echo("Telegram not configured; notifications go to the log.")
    return LoggingNotifier()
