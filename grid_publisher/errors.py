"""Error taxonomy for grid publication."""

from __future__ import annotations

from typing import Any, Optional


class GridPublisherError(RuntimeError):
    """Base class for every failure surfaced by :mod:`grid_publisher`."""


class EncodingError(GridPublisherError):
    """Raised when a document or call payload cannot be encoded."""


class DecodingError(EncodingError):
    """Raised when a stored value is not a decodable grid URI."""


class ConfigurationError(GridPublisherError):
    """Raised when required publisher settings are missing or invalid."""


class SubmissionError(GridPublisherError):
    """Common parent for failures raised while submitting a transaction."""

    def __init__(self, message: str, *, transaction_id: Optional[str] = None) -> None:
        super().__init__(message)
        self.transaction_id = transaction_id


class SubmissionRejected(SubmissionError):
    """The RPC endpoint refused the transaction before inclusion."""


class ExecutionReverted(SubmissionRejected):
    """The transaction was mined but reverted; the stored value is unchanged."""


class ConfirmationTimeout(SubmissionError):
    """The transaction was broadcast but no confirmation arrived in time.

    The outcome is unknown: the transaction may still be included later.
    """


class NetworkError(SubmissionError):
    """The RPC endpoint could not be reached."""


class VerificationError(GridPublisherError):
    """The written value could not be confirmed by reading the profile back.

    Raised after the transaction was confirmed; ``receipt`` holds its receipt.
    """

    def __init__(self, message: str, *, receipt: Optional[Any] = None) -> None:
        super().__init__(message)
        self.receipt = receipt

    @property
    def transaction_id(self) -> Optional[str]:
        return getattr(self.receipt, "transaction_id", None)


__all__ = [
    "ConfigurationError",
    "ConfirmationTimeout",
    "DecodingError",
    "EncodingError",
    "ExecutionReverted",
    "GridPublisherError",
    "NetworkError",
    "SubmissionError",
    "SubmissionRejected",
    "VerificationError",
]
