"""Fixed identifiers for the LSP28 grid data slot and the contracts that hold it."""

from __future__ import annotations

from typing import Final

# LSP28TheGrid data key on the Universal Profile (ERC725Y).
GRID_DATA_KEY: Final[bytes] = bytes.fromhex(
    "31cf14955c5b0052c1491ec06644438ec7c14454be5eb6cb9ce4e4edef647423"
)

SET_DATA_SIGNATURE: Final[str] = "setData(bytes32,bytes)"
GET_DATA_SIGNATURE: Final[str] = "getData(bytes32)"
EXECUTE_SIGNATURE: Final[str] = "execute(bytes)"

MEDIA_TYPE: Final[str] = "application/json"
TRANSFER_ENCODING: Final[str] = "base64"
URI_SCHEME: Final[str] = "data"

DEFAULT_RPC_URL: Final[str] = "https://rpc.mainnet.lukso.network"

__all__ = [
    "DEFAULT_RPC_URL",
    "EXECUTE_SIGNATURE",
    "GET_DATA_SIGNATURE",
    "GRID_DATA_KEY",
    "MEDIA_TYPE",
    "SET_DATA_SIGNATURE",
    "TRANSFER_ENCODING",
    "URI_SCHEME",
]
