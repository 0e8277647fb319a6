"""Publish LSP28 grid documents to a Universal Profile through its Key Manager."""

from .calls import ExecuteOnBehalf, SetData, build_inner_call, build_outer_call
from .codec import EncodedURI, decode, encode
from .config import PublisherConfig
from .constants import GRID_DATA_KEY
from .errors import (
    ConfigurationError,
    ConfirmationTimeout,
    DecodingError,
    EncodingError,
    ExecutionReverted,
    GridPublisherError,
    NetworkError,
    SubmissionRejected,
    VerificationError,
)
from .models import EXAMPLE_GRID, ExternalItem, GridDocument, GridItem, IframeItem, MiniAppItem
from .publisher import Publication, fetch_grid, prepare_publication, publish_grid
from .submitter import RpcProvider, TransactionReceipt, TransactionSubmitter, Web3RpcProvider

__all__ = [
    "ConfigurationError",
    "ConfirmationTimeout",
    "DecodingError",
    "EXAMPLE_GRID",
    "EncodedURI",
    "EncodingError",
    "ExecuteOnBehalf",
    "ExecutionReverted",
    "ExternalItem",
    "GRID_DATA_KEY",
    "GridDocument",
    "GridItem",
    "GridPublisherError",
    "IframeItem",
    "MiniAppItem",
    "NetworkError",
    "Publication",
    "PublisherConfig",
    "RpcProvider",
    "SetData",
    "SubmissionRejected",
    "TransactionReceipt",
    "TransactionSubmitter",
    "VerificationError",
    "Web3RpcProvider",
    "build_inner_call",
    "build_outer_call",
    "decode",
    "encode",
    "fetch_grid",
    "prepare_publication",
    "publish_grid",
]
