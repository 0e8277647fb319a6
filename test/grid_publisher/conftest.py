"""Shared fixtures for grid publisher tests."""

from __future__ import annotations

import hashlib
from typing import Any, Dict, List, Optional

import pytest
from eth_abi import decode as abi_decode
from eth_abi import encode as abi_encode
from eth_utils import to_bytes

from grid_publisher.calls import EXECUTE_SELECTOR, GET_DATA_SELECTOR, SET_DATA_SELECTOR
from grid_publisher.config import PublisherConfig
from grid_publisher.errors import ConfirmationTimeout, NetworkError, SubmissionRejected

TEST_KEY = "0x" + "11" * 32
CONTROLLER = "0x" + "22" * 20
PROFILE = "0x" + "33" * 20


class FakeLedger:
    """In-memory node that applies ``execute(setData(...))`` calls to a profile store."""

    def __init__(
        self,
        *,
        chain_id: int = 4201,
        reject: Optional[str] = None,
        revert: bool = False,
        timeout: bool = False,
        unreachable: bool = False,
    ) -> None:
        self._chain_id = chain_id
        self.reject = reject
        self.revert = revert
        self.timeout = timeout
        self.unreachable = unreachable
        self.storage: Dict[bytes, bytes] = {}
        self.prepared: List[Dict[str, Any]] = []
        self.broadcasts: List[bytes] = []
        self.polls = 0
        self.block_number = 1_000
        self._pending: Dict[str, Dict[str, Any]] = {}

    def chain_id(self) -> int:
        return self._chain_id

    def get_transaction_count(self, address: str) -> int:
        return len(self.broadcasts)

    def estimate_gas(self, tx: Dict[str, Any]) -> int:
        self.prepared.append(dict(tx))
        return 120_000

    def gas_price(self) -> int:
        return 1_000_000_000

    def submit_transaction(self, signed_tx: bytes) -> str:
        if self.unreachable:
            raise NetworkError("connection refused")
        if self.reject:
            raise SubmissionRejected(self.reject)
        self.broadcasts.append(signed_tx)
        tx_hash = "0x" + hashlib.sha256(signed_tx).hexdigest()
        self._pending[tx_hash] = self.prepared[-1]
        return tx_hash

    def wait_for_confirmation(self, transaction_id: str) -> Dict[str, Any]:
        if self.timeout:
            raise ConfirmationTimeout("not mined")
        self.polls += 1
        self.block_number += 1
        tx = self._pending.pop(transaction_id)
        if self.revert:
            return {"blockNumber": self.block_number, "status": 0, "gasUsed": 21_000}
        self._apply(to_bytes(hexstr=tx["data"]))
        return {"blockNumber": self.block_number, "status": 1, "gasUsed": 95_000}

    def call(self, tx: Dict[str, Any]) -> bytes:
        data = to_bytes(hexstr=tx["data"])
        assert data[:4] == GET_DATA_SELECTOR
        (slot,) = abi_decode(["bytes32"], data[4:])
        return abi_encode(["bytes"], [self.storage.get(slot, b"")])

    def _apply(self, calldata: bytes) -> None:
        assert calldata[:4] == EXECUTE_SELECTOR
        (inner,) = abi_decode(["bytes"], calldata[4:])
        assert inner[:4] == SET_DATA_SELECTOR
        slot, value = abi_decode(["bytes32", "bytes"], inner[4:])
        self.storage[slot] = value


@pytest.fixture
def ledger() -> FakeLedger:
    return FakeLedger()


@pytest.fixture
def make_ledger():
    return FakeLedger


@pytest.fixture
def publisher_config() -> PublisherConfig:
    return PublisherConfig(
        signing_key=TEST_KEY,
        controller_address=CONTROLLER,
        profile_address=PROFILE,
        rpc_endpoint="http://localhost:8545",
    )


@pytest.fixture
def twitter_grid() -> Dict[str, Any]:
    return {
        "isEditable": True,
        "items": [{"type": "external", "id": "twitter", "title": "Twitter", "url": "https://twitter.com"}],
    }
