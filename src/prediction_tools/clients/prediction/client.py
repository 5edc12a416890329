"""Typed async facade for the prediction market contract.

Wrap the synchronous ``web3`` adapter in ``asyncio.to_thread()`` so the
event loop is never blocked by RPC round-trips or receipt polling, and
convert raw contract tuples into typed dataclasses.
"""

import asyncio
import logging
from typing import Any

from prediction_tools.clients.prediction import _contract_adapter
from prediction_tools.clients.prediction.exceptions import (
    InsufficientBalanceError,
    ProviderError,
)
from prediction_tools.clients.prediction.models import Round, RoundEvent, RoundEventKind
from prediction_tools.core.models import Position

logger = logging.getLogger(__name__)

# Indices into the raw ``rounds(epoch)`` tuple
_EPOCH = 0
_START = 1
_LOCK = 2
_CLOSE = 3
_LOCK_PRICE = 4
_CLOSE_PRICE = 5
_TOTAL = 8
_BULL = 9
_BEAR = 10
_ORACLE_CALLED = 13


class PredictionClient:
    """Typed async client for a PancakeSwap-style prediction contract.

    Provide round reads, balance reads, bet submission, reward claims and
    round lifecycle log polling. Without a private key the client is
    read-only; write methods raise ``ProviderError``.

    Args:
        rpc_url: BNB Smart Chain JSON-RPC endpoint URL.
        contract_address: Address of the prediction contract.
        private_key: Hex private key of the betting wallet.
        chain_id: Chain id embedded in signed transactions.

    """

    def __init__(
        self,
        rpc_url: str,
        contract_address: str,
        private_key: str | None = None,
        chain_id: int | None = None,
    ) -> None:
        """Initialize the prediction client.

        Args:
            rpc_url: BNB Smart Chain JSON-RPC endpoint URL.
            contract_address: Address of the prediction contract.
            private_key: Hex private key of the betting wallet, or ``None``
                for a read-only client.
            chain_id: Chain id embedded in signed transactions.

        """
        self._chain_id = chain_id
        self._w3, self._contract = _contract_adapter.connect(rpc_url, contract_address)
        self._private_key = private_key
        self._address: str | None = (
            _contract_adapter.account_address(self._w3, private_key) if private_key else None
        )
        self._tx_lock = asyncio.Lock()

    @property
    def address(self) -> str | None:
        """Return the wallet address, or ``None`` for a read-only client."""
        return self._address

    def _require_wallet(self) -> tuple[str, str]:
        """Return the private key and address, raising when not configured.

        Raises:
            ProviderError: When the client was created without a private key.

        """
        if self._private_key is None or self._address is None:
            raise ProviderError("Wallet private key is required for this operation")
        return self._private_key, self._address

    async def get_current_epoch(self) -> int:
        """Return the epoch of the round currently running.

        Raises:
            ProviderError: When the RPC call fails.

        """
        return await asyncio.to_thread(_contract_adapter.current_epoch, self._contract)

    async def get_round(self, epoch: int) -> Round:
        """Return the snapshot of the round with the given epoch.

        Args:
            epoch: Round identifier.

        Raises:
            ProviderError: When the RPC call fails or the tuple is malformed.

        """
        raw = await asyncio.to_thread(_contract_adapter.read_round, self._contract, epoch)
        return self._parse_round(raw)

    async def get_min_bet_amount(self) -> int:
        """Return the contract's minimum bet in wei."""
        return await asyncio.to_thread(_contract_adapter.min_bet_amount, self._contract)

    async def get_balance(self) -> int:
        """Return the wallet's BNB balance in wei.

        Raises:
            ProviderError: When the wallet is not configured or the read fails.

        """
        _, address = self._require_wallet()
        return await asyncio.to_thread(_contract_adapter.balance_of, self._w3, address)

    async def ensure_balance(self, amount: int) -> int:
        """Return the balance after checking it covers ``amount``.

        Raises:
            InsufficientBalanceError: When the balance is below ``amount``.
            ProviderError: When the balance cannot be read.

        """
        balance = await self.get_balance()
        if balance < amount:
            raise InsufficientBalanceError(required=amount, available=balance)
        return balance

    async def claimable(self, epoch: int) -> bool:
        """Return whether the wallet has an unclaimed reward for ``epoch``."""
        _, address = self._require_wallet()
        return await asyncio.to_thread(
            _contract_adapter.claimable, self._contract, epoch, address
        )

    async def submit_bet(self, epoch: int, position: Position, amount: int) -> str:
        """Submit a bet and wait for its confirmation.

        Transactions are serialised through a lock so concurrent callers
        never race on the account nonce.

        Args:
            epoch: Round to bet on.
            position: Outcome to back.
            amount: Stake in wei.

        Returns:
            The confirmed transaction hash.

        Raises:
            SubmissionError: When the bet is rejected, reverted or times out.

        """
        private_key, _ = self._require_wallet()
        async with self._tx_lock:
            return await asyncio.to_thread(
                _contract_adapter.send_bet,
                self._w3,
                self._contract,
                private_key,
                epoch,
                position,
                amount,
                self._chain_id,
            )

    async def claim(self, epochs: list[int]) -> str:
        """Claim rewards for ``epochs`` in a single transaction.

        Args:
            epochs: Rounds to claim.

        Returns:
            The confirmed transaction hash.

        Raises:
            ClaimError: When the claim is rejected, reverted or times out.

        """
        private_key, _ = self._require_wallet()
        async with self._tx_lock:
            return await asyncio.to_thread(
                _contract_adapter.send_claim,
                self._w3,
                self._contract,
                private_key,
                list(epochs),
                self._chain_id,
            )

    async def get_block_number(self) -> int:
        """Return the latest block number."""
        return await asyncio.to_thread(_contract_adapter.block_number, self._w3)

    async def get_round_events(self, from_block: int) -> tuple[list[RoundEvent], int]:
        """Return round lifecycle events emitted since ``from_block``.

        Args:
            from_block: First block to scan (inclusive).

        Returns:
            Tuple of events in chain order and the next block to scan.

        Raises:
            ProviderError: When the logs cannot be read.

        """
        raw_logs, next_block = await asyncio.to_thread(
            _contract_adapter.fetch_round_logs, self._w3, self._contract, from_block
        )
        events = [self._parse_event(name, entry) for name, entry in raw_logs]
        events.sort(key=lambda ev: (ev.block_number, ev.log_index))
        return events, next_block

    async def close(self) -> None:
        """Release client resources (the HTTP provider needs no explicit close)."""

    async def __aenter__(self) -> "PredictionClient":
        """Enter async context manager."""
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        """Exit async context manager."""
        await self.close()

    @staticmethod
    def _parse_round(raw: list[Any]) -> Round:
        """Convert a raw ``rounds(epoch)`` tuple into a typed Round.

        Args:
            raw: Tuple in contract field order.

        Returns:
            Typed Round dataclass.

        Raises:
            ProviderError: When the tuple is too short or has bad values.

        """
        try:
            return Round(
                epoch=int(raw[_EPOCH]),
                start_timestamp=int(raw[_START]),
                lock_timestamp=int(raw[_LOCK]),
                close_timestamp=int(raw[_CLOSE]),
                lock_price=int(raw[_LOCK_PRICE]),
                close_price=int(raw[_CLOSE_PRICE]),
                total_amount=int(raw[_TOTAL]),
                bull_amount=int(raw[_BULL]),
                bear_amount=int(raw[_BEAR]),
                oracle_called=bool(raw[_ORACLE_CALLED]),
            )
        except (IndexError, TypeError, ValueError) as exc:
            raise ProviderError(f"Malformed round data: {raw!r}") from exc

    @staticmethod
    def _parse_event(name: str, entry: Any) -> RoundEvent:
        """Convert a decoded ``web3`` log into a typed RoundEvent.

        Args:
            name: Event name (``LockRound`` or ``EndRound``).
            entry: Decoded log attribute dict.

        Returns:
            Typed RoundEvent dataclass.

        """
        args = entry["args"]
        return RoundEvent(
            kind=RoundEventKind(name),
            epoch=int(args["epoch"]),
            price=int(args["price"]),
            block_number=int(entry["blockNumber"]),
            log_index=int(entry["logIndex"]),
        )
