"""Build the bot's typed settings from the YAML configuration.

Read the ``wallet``, ``telegram``, ``strategy`` and ``engine`` sections of
a ``ConfigLoader``, apply command-line overrides and convert every value
to its typed form. Any invalid value raises ``ConfigError`` so the bot
refuses to start on a bad configuration.
"""

import re
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Any

from prediction_tools.apps.staking_bot.models import ClaimPolicy, StrategyConfig, StrategyKind
from prediction_tools.apps.staking_bot.position_pickers import PICKER_NAMES
from prediction_tools.core.config import ConfigError, ConfigLoader
from prediction_tools.core.models import WEI_PER_BNB, scale_amount

_ADDRESS_PATTERN = re.compile(r"^0x[0-9a-fA-F]{40}$")

_INT_KEYS = (
    "max_streams",
    "flat_bet_count",
    "max_consecutive_losses",
    "cooldown_rounds",
    "bet_window_seconds",
    "claim_streak_length",
)
_DECIMAL_KEYS = (
    "flat_bet_fraction",
    "base_bet_multiplier",
    "martingale_multiplier",
    "max_risk_fraction",
    "hard_cap_fraction",
)
_ENGINE_KEYS = ("tick_seconds", "balance_refresh_seconds", "event_poll_seconds")


@dataclass(frozen=True)
class WalletSettings:
    """Connection and signing settings for the betting wallet.

    Attributes:
        rpc_url: BNB Smart Chain JSON-RPC endpoint.
        chain_id: Chain id the transactions are signed for.
        contract_address: Prediction contract address.
        private_key: Wallet private key, or ``None`` for read-only use.

    """

    rpc_url: str
    chain_id: int
    contract_address: str
    private_key: str | None = None


@dataclass(frozen=True)
class TelegramSettings:
    """Bot credentials for chat notifications; empty when disabled."""

    bot_token: str = ""
    chat_id: str = ""

    @property
    def enabled(self) -> bool:
        """Return whether both the token and the chat id are set."""
        return bool(self.bot_token and self.chat_id)


def _as_int(key: str, value: Any) -> int:
    try:
        return int(value)
    except (TypeError, ValueError) as exc:
        msg = f"{key} must be an integer, got {value!r}"
        raise ConfigError(msg) from exc


def _as_decimal(key: str, value: Any) -> Decimal:
    try:
        return Decimal(str(value))
    except InvalidOperation as exc:
        msg = f"{key} must be a decimal number, got {value!r}"
        raise ConfigError(msg) from exc


def _as_bool(key: str, value: Any) -> bool:
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in {"true", "yes", "1"}:
        return True
    if text in {"false", "no", "0"}:
        return False
    msg = f"{key} must be a boolean, got {value!r}"
    raise ConfigError(msg)


def load_strategy_config(loader: ConfigLoader, **overrides: Any) -> StrategyConfig:
    """Build a ``StrategyConfig`` from the ``strategy`` and ``engine`` sections.

    Args:
        loader: Configuration source.
        **overrides: Values taking precedence over the file, keyed like the
            ``strategy`` section. ``None`` values are ignored.

    Returns:
        The validated strategy configuration.

    Raises:
        ConfigError: If any value is missing its expected type or range.

    """
    raw: dict[str, Any] = {**loader.get_section("strategy"), **loader.get_section("engine")}
    raw.update({k: v for k, v in overrides.items() if v is not None})

    kwargs: dict[str, Any] = {}
    for key in _INT_KEYS + _ENGINE_KEYS:
        if key in raw:
            kwargs[key] = _as_int(key, raw[key])
    for key in _DECIMAL_KEYS:
        if key in raw:
            kwargs[key] = _as_decimal(key, raw[key])
    if "min_liquidity_bnb" in raw:
        liquidity = _as_decimal("min_liquidity_bnb", raw["min_liquidity_bnb"])
        kwargs["min_liquidity"] = scale_amount(1, liquidity * WEI_PER_BNB)
    if "exclusive_rounds" in raw:
        kwargs["exclusive_rounds"] = _as_bool("exclusive_rounds", raw["exclusive_rounds"])

    try:
        if "kind" in raw:
            kwargs["kind"] = StrategyKind(str(raw["kind"]))
        if "claim_policy" in raw:
            kwargs["claim_policy"] = ClaimPolicy(str(raw["claim_policy"]))
    except ValueError as exc:
        raise ConfigError(str(exc)) from exc

    if "position_picker" in raw:
        picker = str(raw["position_picker"])
        if picker not in PICKER_NAMES:
            msg = f"position_picker must be one of {', '.join(PICKER_NAMES)}, got {picker!r}"
            raise ConfigError(msg)
        kwargs["position_picker"] = picker

    try:
        return StrategyConfig(**kwargs)
    except ValueError as exc:
        raise ConfigError(str(exc)) from exc


def load_wallet_settings(loader: ConfigLoader, *, require_key: bool = True) -> WalletSettings:
    """Build ``WalletSettings`` from the ``wallet`` section.

    Args:
        loader: Configuration source.
        require_key: Fail when no private key is configured. Read-only
            commands pass ``False``.

    Returns:
        The validated wallet settings.

    Raises:
        ConfigError: If the RPC URL is empty, the contract address is not a
            20-byte hex address, or the private key is malformed.

    """
    section = loader.get_section("wallet")
    rpc_url = str(section.get("rpc_url") or "")
    if not rpc_url:
        raise ConfigError("wallet.rpc_url is not configured")
    address = str(section.get("contract_address") or "")
    if not _ADDRESS_PATTERN.match(address):
        msg = f"wallet.contract_address is not a valid address: {address!r}"
        raise ConfigError(msg)

    private_key: str | None = None
    if require_key or section.get("private_key"):
        private_key = loader.get_private_key()

    return WalletSettings(
        rpc_url=rpc_url,
        chain_id=_as_int("wallet.chain_id", section.get("chain_id", 56)),
        contract_address=address,
        private_key=private_key,
    )


def load_telegram_settings(loader: ConfigLoader) -> TelegramSettings:
    """Build ``TelegramSettings`` from the ``telegram`` section."""
    section = loader.get_section("telegram")
    return TelegramSettings(
        bot_token=str(section.get("bot_token") or ""),
        chat_id=str(section.get("chat_id") or ""),
    )
