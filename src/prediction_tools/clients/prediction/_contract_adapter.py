"""Isolated bridge to the prediction contract via ``web3``.

This is the **only** module that talks to ``web3`` directly. Functions are
synchronous and return primitive types or raw contract tuples, which the
async facade converts into typed dataclasses. Every failure is converted
into the matching ``PredictionError`` subclass so callers never see a
``web3`` exception.
"""

import logging
from typing import Any

from web3 import Web3
from web3.contract import Contract
from web3.types import Nonce, TxParams, Wei

from prediction_tools.clients.prediction.exceptions import (
    ClaimError,
    ProviderError,
    SubmissionError,
)
from prediction_tools.core.models import Position

_logger = logging.getLogger(__name__)

_BET_GAS = 200_000
_CLAIM_GAS = 300_000
_TX_RECEIPT_TIMEOUT = 60
_GAS_PRICE_MULTIPLIER = 1.1
_MAX_LOG_BLOCK_RANGE = 2_000

_UINT256 = "uint256"

# Minimum ABI for the PancakeSwap Prediction V2 contract
PREDICTION_ABI: list[dict[str, Any]] = [
    {
        "name": "currentEpoch",
        "type": "function",
        "stateMutability": "view",
        "inputs": [],
        "outputs": [{"name": "", "type": _UINT256}],
    },
    {
        "name": "minBetAmount",
        "type": "function",
        "stateMutability": "view",
        "inputs": [],
        "outputs": [{"name": "", "type": _UINT256}],
    },
    {
        "name": "rounds",
        "type": "function",
        "stateMutability": "view",
        "inputs": [{"name": "", "type": _UINT256}],
        "outputs": [
            {"name": "epoch", "type": _UINT256},
            {"name": "startTimestamp", "type": _UINT256},
            {"name": "lockTimestamp", "type": _UINT256},
            {"name": "closeTimestamp", "type": _UINT256},
            {"name": "lockPrice", "type": "int256"},
            {"name": "closePrice", "type": "int256"},
            {"name": "lockOracleId", "type": _UINT256},
            {"name": "closeOracleId", "type": _UINT256},
            {"name": "totalAmount", "type": _UINT256},
            {"name": "bullAmount", "type": _UINT256},
            {"name": "bearAmount", "type": _UINT256},
            {"name": "rewardBaseCalAmount", "type": _UINT256},
            {"name": "rewardAmount", "type": _UINT256},
            {"name": "oracleCalled", "type": "bool"},
        ],
    },
    {
        "name": "claimable",
        "type": "function",
        "stateMutability": "view",
        "inputs": [
            {"name": "epoch", "type": _UINT256},
            {"name": "user", "type": "address"},
        ],
        "outputs": [{"name": "", "type": "bool"}],
    },
    {
        "name": "betBull",
        "type": "function",
        "stateMutability": "payable",
        "inputs": [{"name": "epoch", "type": _UINT256}],
        "outputs": [],
    },
    {
        "name": "betBear",
        "type": "function",
        "stateMutability": "payable",
        "inputs": [{"name": "epoch", "type": _UINT256}],
        "outputs": [],
    },
    {
        "name": "claim",
        "type": "function",
        "stateMutability": "nonpayable",
        "inputs": [{"name": "epochs", "type": "uint256[]"}],
        "outputs": [],
    },
    {
        "name": "LockRound",
        "type": "event",
        "anonymous": False,
        "inputs": [
            {"name": "epoch", "type": _UINT256, "indexed": True},
            {"name": "roundId", "type": _UINT256, "indexed": True},
            {"name": "price", "type": "int256", "indexed": False},
        ],
    },
    {
        "name": "EndRound",
        "type": "event",
        "anonymous": False,
        "inputs": [
            {"name": "epoch", "type": _UINT256, "indexed": True},
            {"name": "roundId", "type": _UINT256, "indexed": True},
            {"name": "price", "type": "int256", "indexed": False},
        ],
    },
]

_EVENT_NAMES = ("LockRound", "EndRound")


def _safe_read(action: str, fn: Any, *args: Any) -> Any:
    """Execute a read-only RPC call with standardised error handling.

    Args:
        action: Human-readable description for error messages (e.g.
            ``"read round 1234"``).
        fn: The callable to invoke.
        *args: Positional arguments forwarded to *fn*.

    Returns:
        The raw result from *fn*.

    Raises:
        ProviderError: When the call fails for any reason.

    """
    try:
        return fn(*args)
    except Exception as exc:
        raise ProviderError(f"Failed to {action}: {exc}") from exc


def connect(rpc_url: str, contract_address: str) -> tuple[Web3, Contract]:
    """Create a ``Web3`` instance and a bound prediction contract.

    Args:
        rpc_url: BNB Smart Chain JSON-RPC endpoint URL.
        contract_address: Address of the prediction contract.

    Returns:
        Tuple of the ``Web3`` instance and the contract object.

    """
    w3 = Web3(Web3.HTTPProvider(rpc_url))
    contract = w3.eth.contract(
        address=Web3.to_checksum_address(contract_address),
        abi=PREDICTION_ABI,
    )
    return w3, contract


def account_address(w3: Web3, private_key: str) -> str:
    """Derive the checksummed address owning ``private_key``."""
    return str(w3.eth.account.from_key(private_key).address)


def current_epoch(contract: Contract) -> int:
    """Read the contract's current epoch."""
    return int(_safe_read("read current epoch", contract.functions.currentEpoch().call))


def min_bet_amount(contract: Contract) -> int:
    """Read the contract's minimum bet amount in wei."""
    return int(_safe_read("read min bet amount", contract.functions.minBetAmount().call))


def read_round(contract: Contract, epoch: int) -> list[Any]:
    """Read the raw ``rounds(epoch)`` tuple."""
    return list(_safe_read(f"read round {epoch}", contract.functions.rounds(epoch).call))


def claimable(contract: Contract, epoch: int, address: str) -> bool:
    """Return whether ``address`` can claim a reward for ``epoch``."""
    return bool(
        _safe_read(
            f"read claimable for round {epoch}",
            contract.functions.claimable(epoch, address).call,
        )
    )


def block_number(w3: Web3) -> int:
    """Read the latest block number."""
    return int(_safe_read("read block number", lambda: w3.eth.block_number))


def balance_of(w3: Web3, address: str) -> int:
    """Read the native BNB balance of ``address`` in wei."""
    return int(_safe_read("read wallet balance", w3.eth.get_balance, address))


def _send(
    w3: Web3,
    private_key: str,
    fn: Any,
    *,
    value: int,
    gas: int,
    chain_id: int | None = None,
) -> str:
    """Sign, send and confirm a contract transaction.

    Use the network's gas price plus a small buffer and the pending nonce of
    the signing account.

    Returns:
        The transaction hash as a hex string.

    Raises:
        RuntimeError: When the transaction is mined but reverted.

    """
    account = w3.eth.account.from_key(private_key)
    nonce = w3.eth.get_transaction_count(account.address, "pending")
    tx_params: TxParams = {
        "from": account.address,
        "value": Wei(value),
        "gas": gas,
        "gasPrice": Wei(int(w3.eth.gas_price * _GAS_PRICE_MULTIPLIER)),
        "nonce": Nonce(nonce),
    }
    if chain_id is not None:
        tx_params["chainId"] = chain_id
    tx = fn.build_transaction(tx_params)
    signed = w3.eth.account.sign_transaction(tx, private_key=private_key)
    tx_hash = w3.eth.send_raw_transaction(signed.raw_transaction)
    receipt = w3.eth.wait_for_transaction_receipt(tx_hash, timeout=_TX_RECEIPT_TIMEOUT)
    if receipt["status"] != 1:
        msg = f"transaction {tx_hash.hex()} reverted"
        raise RuntimeError(msg)
    _logger.info("Confirmed tx %s (gas used: %d)", tx_hash.hex(), receipt["gasUsed"])
    return str(tx_hash.hex())


def send_bet(
    w3: Web3,
    contract: Contract,
    private_key: str,
    epoch: int,
    position: Position,
    amount: int,
    chain_id: int | None = None,
) -> str:
    """Place a bet on ``position`` for ``epoch`` and wait for confirmation.

    Raises:
        SubmissionError: When the transaction cannot be sent or reverts.

    """
    method = contract.functions.betBull if position is Position.UP else contract.functions.betBear
    try:
        return _send(
            w3, private_key, method(epoch), value=amount, gas=_BET_GAS, chain_id=chain_id
        )
    except Exception as exc:
        raise SubmissionError(str(exc), epoch) from exc


def send_claim(
    w3: Web3,
    contract: Contract,
    private_key: str,
    epochs: list[int],
    chain_id: int | None = None,
) -> str:
    """Claim rewards for ``epochs`` in one transaction and wait for confirmation.

    Raises:
        ClaimError: When the transaction cannot be sent or reverts.

    """
    try:
        return _send(
            w3,
            private_key,
            contract.functions.claim(epochs),
            value=0,
            gas=_CLAIM_GAS,
            chain_id=chain_id,
        )
    except Exception as exc:
        raise ClaimError(str(exc), epochs) from exc


def fetch_round_logs(
    w3: Web3,
    contract: Contract,
    from_block: int,
) -> tuple[list[tuple[str, Any]], int]:
    """Fetch ``LockRound`` and ``EndRound`` logs emitted since ``from_block``.

    The scanned range is capped so a long outage does not produce a single
    oversized ``eth_getLogs`` request; the remainder is picked up by the next
    call.

    Args:
        w3: Connected ``Web3`` instance.
        contract: Prediction contract.
        from_block: First block to scan (inclusive).

    Returns:
        Tuple of ``(event_name, raw_log)`` pairs and the next block to scan.

    Raises:
        ProviderError: When the block number or logs cannot be read.

    """
    latest = block_number(w3)
    if from_block > latest:
        return [], from_block
    to_block = min(latest, from_block + _MAX_LOG_BLOCK_RANGE - 1)

    logs: list[tuple[str, Any]] = []
    for name in _EVENT_NAMES:
        event = getattr(contract.events, name)()
        raw = _safe_read(
            f"read {name} logs in blocks {from_block}-{to_block}",
            lambda ev=event: ev.get_logs(from_block=from_block, to_block=to_block),
        )
        logs.extend((name, entry) for entry in raw)
    return logs, to_block + 1
