"""Call payloads for writing the grid slot through the Key Manager.

Writes to a Universal Profile are routed through its LSP6 Key Manager: the
profile's ``setData(bytes32,bytes)`` call is built first and then passed as
the single argument of the Key Manager's ``execute(bytes)`` call.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Union

from eth_abi import decode as abi_decode
from eth_abi import encode as abi_encode
from eth_abi.exceptions import DecodingError as AbiDecodingError
from eth_abi.exceptions import EncodingError as AbiEncodingError
from eth_utils import function_signature_to_4byte_selector, is_hexstr, to_bytes

from .codec import EncodedURI
from .constants import EXECUTE_SIGNATURE, GET_DATA_SIGNATURE, SET_DATA_SIGNATURE
from .errors import DecodingError, EncodingError

logger = logging.getLogger(__name__)

SET_DATA_SELECTOR = function_signature_to_4byte_selector(SET_DATA_SIGNATURE)
GET_DATA_SELECTOR = function_signature_to_4byte_selector(GET_DATA_SIGNATURE)
EXECUTE_SELECTOR = function_signature_to_4byte_selector(EXECUTE_SIGNATURE)

SlotLike = Union[bytes, bytearray, str]


def normalize_slot(slot: SlotLike) -> bytes:
    """Return ``slot`` as exactly 32 raw bytes."""

    if isinstance(slot, str):
        if not slot.startswith("0x") or not is_hexstr(slot):
            raise EncodingError(f"Data key must be a 0x-prefixed hex string, got {slot!r}")
        slot = to_bytes(hexstr=slot)
    if not isinstance(slot, (bytes, bytearray)):
        raise EncodingError(f"Data key must be bytes, got {type(slot).__name__}")
    if len(slot) != 32:
        raise EncodingError(f"Data key must be exactly 32 bytes, got {len(slot)}")
    return bytes(slot)


def _encode_call(selector: bytes, types: list[str], args: list) -> bytes:
    try:
        return selector + abi_encode(types, args)
    except AbiEncodingError as exc:
        raise EncodingError(f"Unable to encode call arguments: {exc}") from exc


@dataclass(frozen=True)
class SetData:
    """``setData(bytes32 dataKey, bytes dataValue)`` on the profile."""

    slot: bytes
    value: bytes

    def encode(self) -> bytes:
        return _encode_call(SET_DATA_SELECTOR, ["bytes32", "bytes"], [normalize_slot(self.slot), bytes(self.value)])


@dataclass(frozen=True)
class ExecuteOnBehalf:
    """``execute(bytes payload)`` on the Key Manager, forwarding ``inner``."""

    inner: Union[SetData, bytes]

    def inner_bytes(self) -> bytes:
        if isinstance(self.inner, SetData):
            return self.inner.encode()
        return bytes(self.inner)

    def encode(self) -> bytes:
        return _encode_call(EXECUTE_SELECTOR, ["bytes"], [self.inner_bytes()])


CallPayload = Union[SetData, ExecuteOnBehalf]


def set_data_call(slot: SlotLike, uri: EncodedURI) -> SetData:
    return SetData(slot=normalize_slot(slot), value=uri.to_bytes())


def build_inner_call(slot: SlotLike, uri: EncodedURI) -> bytes:
    """Calldata for the profile's ``setData`` writing ``uri`` to ``slot``."""

    return set_data_call(slot, uri).encode()


def build_outer_call(slot: SlotLike, uri: EncodedURI) -> bytes:
    """Calldata for the Key Manager's ``execute`` wrapping :func:`build_inner_call`."""

    outer = ExecuteOnBehalf(set_data_call(slot, uri)).encode()
    logger.debug("Built execute payload", extra={"calldata_bytes": len(outer)})
    return outer


def build_get_data_call(slot: SlotLike) -> bytes:
    return _encode_call(GET_DATA_SELECTOR, ["bytes32"], [normalize_slot(slot)])


def decode_get_data_result(raw: bytes) -> bytes:
    """Decode the ``bytes`` returned by ``getData``; empty input means an unset slot."""

    if not raw:
        return b""
    try:
        (value,) = abi_decode(["bytes"], bytes(raw))
    except (AbiDecodingError, ValueError) as exc:
        raise DecodingError(f"Unable to decode getData result: {exc}") from exc
    return value


__all__ = [
    "CallPayload",
    "EXECUTE_SELECTOR",
    "ExecuteOnBehalf",
    "GET_DATA_SELECTOR",
    "SET_DATA_SELECTOR",
    "SetData",
    "build_get_data_call",
    "build_inner_call",
    "build_outer_call",
    "decode_get_data_result",
    "normalize_slot",
    "set_data_call",
]
