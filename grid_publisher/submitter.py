"""Sign, broadcast and confirm Key Manager transactions.

Every call to :meth:`TransactionSubmitter.submit` broadcasts at most one
transaction and never retries. Terminal states map onto the error taxonomy in
:mod:`grid_publisher.errors`:

* confirmed -> :class:`TransactionReceipt`
* refused before inclusion -> :class:`SubmissionRejected`
* mined but reverted -> :class:`ExecutionReverted`
* no confirmation in time -> :class:`ConfirmationTimeout` (broadcast happened,
  outcome unknown)
* endpoint unreachable -> :class:`NetworkError`

Cancelling the awaiting task after broadcast does not retract the
transaction; the hash is logged before the cancellation propagates.
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional, Protocol, TypeVar

import requests
from eth_account.signers.local import LocalAccount
from web3 import HTTPProvider, Web3
from web3.exceptions import TimeExhausted, Web3Exception

from .errors import (
    ConfirmationTimeout,
    ExecutionReverted,
    NetworkError,
    SubmissionError,
    SubmissionRejected,
)
from .metrics import CONFIRMATION_SECONDS, PUBLISH_TOTAL

logger = logging.getLogger(__name__)

T = TypeVar("T")

_CONNECTION_ERRORS = (ConnectionError, requests.exceptions.ConnectionError, requests.exceptions.Timeout)


@dataclass(frozen=True)
class TransactionReceipt:
    """Confirmation of an included transaction."""

    transaction_id: str
    confirmation_block: int
    gas_used: Optional[int] = None


class RpcProvider(Protocol):
    """Subset of JSON-RPC calls needed to publish and read the grid."""

    def chain_id(self) -> int:  # pragma: no cover - protocol
        ...

    def get_transaction_count(self, address: str) -> int:  # pragma: no cover - protocol
        ...

    def estimate_gas(self, tx: Dict[str, Any]) -> int:  # pragma: no cover - protocol
        ...

    def gas_price(self) -> int:  # pragma: no cover - protocol
        ...

    def submit_transaction(self, signed_tx: bytes) -> str:  # pragma: no cover - protocol
        """Broadcast raw signed bytes and return the transaction hash."""

    def wait_for_confirmation(self, transaction_id: str) -> Dict[str, Any]:  # pragma: no cover - protocol
        """Block until inclusion; return at least ``blockNumber`` and ``status``."""

    def call(self, tx: Dict[str, Any]) -> bytes:  # pragma: no cover - protocol
        """Execute a read-only call and return the raw result."""


def _to_hex(value: Any) -> str:
    if isinstance(value, (bytes, bytearray)):
        return Web3.to_hex(bytes(value))
    if hasattr(value, "hex") and callable(value.hex):
        text = value.hex()
        return text if text.startswith("0x") else "0x" + text
    return str(value)


def _raw_transaction(signed: Any) -> bytes:
    raw = getattr(signed, "raw_transaction", None)
    if raw is None:  # pragma: no cover - eth-account < 0.13
        raw = signed.rawTransaction
    return bytes(raw)


class Web3RpcProvider:
    """:class:`RpcProvider` backed by a ``web3.Web3`` HTTP client."""

    def __init__(self, web3: Web3, *, confirmation_timeout: float = 120.0, poll_latency: float = 1.0) -> None:
        self._web3 = web3
        self._confirmation_timeout = confirmation_timeout
        self._poll_latency = poll_latency

    @classmethod
    def from_endpoint(
        cls,
        rpc_url: str,
        *,
        request_timeout: float = 30.0,
        confirmation_timeout: float = 120.0,
    ) -> "Web3RpcProvider":
        logger.debug("Initialising Web3 client", extra={"rpc_url": rpc_url})
        web3 = Web3(HTTPProvider(rpc_url, request_kwargs={"timeout": request_timeout}))
        return cls(web3, confirmation_timeout=confirmation_timeout)

    def _rpc(self, action: str, func: Callable[[], T]) -> T:
        try:
            return func()
        except _CONNECTION_ERRORS as exc:
            raise NetworkError(f"RPC endpoint unreachable during {action}: {exc}") from exc
        except (Web3Exception, ValueError) as exc:
            raise SubmissionRejected(f"RPC endpoint rejected {action}: {exc}") from exc

    def chain_id(self) -> int:
        return int(self._rpc("eth_chainId", lambda: self._web3.eth.chain_id))

    def get_transaction_count(self, address: str) -> int:
        return int(self._rpc("eth_getTransactionCount", lambda: self._web3.eth.get_transaction_count(address, "pending")))

    def estimate_gas(self, tx: Dict[str, Any]) -> int:
        return int(self._rpc("eth_estimateGas", lambda: self._web3.eth.estimate_gas(tx)))

    def gas_price(self) -> int:
        return int(self._rpc("eth_gasPrice", lambda: self._web3.eth.gas_price))

    def submit_transaction(self, signed_tx: bytes) -> str:
        tx_hash = self._rpc("eth_sendRawTransaction", lambda: self._web3.eth.send_raw_transaction(signed_tx))
        return _to_hex(tx_hash)

    def wait_for_confirmation(self, transaction_id: str) -> Dict[str, Any]:
        try:
            receipt = self._web3.eth.wait_for_transaction_receipt(
                transaction_id,
                timeout=self._confirmation_timeout,
                poll_latency=self._poll_latency,
            )
        except TimeExhausted as exc:
            raise ConfirmationTimeout(
                f"Transaction {transaction_id} not confirmed within {self._confirmation_timeout}s",
                transaction_id=transaction_id,
            ) from exc
        except _CONNECTION_ERRORS as exc:
            raise NetworkError(
                f"RPC endpoint unreachable while waiting for {transaction_id}: {exc}",
                transaction_id=transaction_id,
            ) from exc
        except (Web3Exception, ValueError) as exc:
            raise ConfirmationTimeout(
                f"Lost track of broadcast transaction {transaction_id}: {exc}",
                transaction_id=transaction_id,
            ) from exc
        return dict(receipt)

    def call(self, tx: Dict[str, Any]) -> bytes:
        return bytes(self._rpc("eth_call", lambda: self._web3.eth.call(tx)))


class TransactionSubmitter:
    """Builds, signs and broadcasts one transaction per :meth:`submit` call."""

    def __init__(self, provider: RpcProvider, *, expected_chain_id: Optional[int] = None) -> None:
        self._provider = provider
        self._expected_chain_id = expected_chain_id

    async def _call(self, func: Callable[..., T], *args: Any) -> T:
        return await asyncio.to_thread(func, *args)

    async def _prepare(self, outer_payload: bytes, controller_address: str, sender: str) -> Dict[str, Any]:
        chain_id = await self._call(self._provider.chain_id)
        if self._expected_chain_id is not None and chain_id != self._expected_chain_id:
            raise SubmissionRejected(f"Chain ID mismatch: expected {self._expected_chain_id} got {chain_id}")
        try:
            target = Web3.to_checksum_address(controller_address)
        except (TypeError, ValueError) as exc:
            raise SubmissionRejected(f"Invalid controller address {controller_address!r}") from exc
        tx: Dict[str, Any] = {
            "from": sender,
            "to": target,
            "data": Web3.to_hex(outer_payload),
            "value": 0,
            "chainId": chain_id,
        }
        tx["nonce"] = await self._call(self._provider.get_transaction_count, sender)
        tx["gas"] = await self._call(self._provider.estimate_gas, dict(tx))
        tx["gasPrice"] = await self._call(self._provider.gas_price)
        return tx

    async def submit(
        self,
        outer_payload: bytes,
        controller_address: str,
        credentials: LocalAccount,
    ) -> TransactionReceipt:
        """Broadcast ``outer_payload`` to ``controller_address`` and await confirmation.

        A :class:`ConfirmationTimeout` means the transaction was broadcast and
        its outcome is unknown. Callers must not resubmit without checking.
        """

        try:
            tx = await self._prepare(outer_payload, controller_address, credentials.address)
        except SubmissionError as exc:
            PUBLISH_TOTAL.labels(outcome=_outcome(exc)).inc()
            raise
        try:
            signed = credentials.sign_transaction(tx)
        except (TypeError, ValueError) as exc:
            PUBLISH_TOTAL.labels(outcome="rejected").inc()
            raise SubmissionRejected(f"Unable to sign transaction: {exc}") from exc

        try:
            tx_hash = await self._call(self._provider.submit_transaction, _raw_transaction(signed))
        except SubmissionError as exc:
            PUBLISH_TOTAL.labels(outcome=_outcome(exc)).inc()
            raise
        logger.info(
            "Broadcast transaction",
            extra={"tx_hash": tx_hash, "to": tx["to"], "nonce": tx["nonce"], "gas": tx["gas"]},
        )

        started = time.monotonic()
        try:
            receipt = await self._call(self._provider.wait_for_confirmation, tx_hash)
        except asyncio.CancelledError:
            PUBLISH_TOTAL.labels(outcome="cancelled").inc()
            logger.warning(
                "Cancelled while awaiting confirmation; transaction %s was already broadcast", tx_hash,
                extra={"tx_hash": tx_hash},
            )
            raise
        except SubmissionError as exc:
            if exc.transaction_id is None:
                exc.transaction_id = tx_hash
            PUBLISH_TOTAL.labels(outcome=_outcome(exc)).inc()
            raise
        CONFIRMATION_SECONDS.observe(time.monotonic() - started)

        block_number = receipt.get("blockNumber")
        if block_number is None:
            PUBLISH_TOTAL.labels(outcome="timed_out").inc()
            raise ConfirmationTimeout(f"Transaction {tx_hash} has no block number", transaction_id=tx_hash)
        if receipt.get("status", 1) == 0:
            PUBLISH_TOTAL.labels(outcome="reverted").inc()
            raise ExecutionReverted(f"Transaction {tx_hash} reverted in block {block_number}", transaction_id=tx_hash)

        result = TransactionReceipt(
            transaction_id=tx_hash,
            confirmation_block=int(block_number),
            gas_used=_optional_int(receipt.get("gasUsed")),
        )
        PUBLISH_TOTAL.labels(outcome="confirmed").inc()
        logger.info("Confirmed transaction", extra={"tx_hash": tx_hash, "block": result.confirmation_block})
        return result


def _optional_int(value: Any) -> Optional[int]:
    if value is None:
        return None
    return int(value)


def _outcome(exc: SubmissionError) -> str:
    if isinstance(exc, ConfirmationTimeout):
        return "timed_out"
    if isinstance(exc, NetworkError):
        return "network_failed"
    if isinstance(exc, ExecutionReverted):
        return "reverted"
    return "rejected"


__all__ = ["RpcProvider", "TransactionReceipt", "TransactionSubmitter", "Web3RpcProvider"]
