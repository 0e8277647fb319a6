"""End-to-end grid publication: encode, wrap, submit, optionally verify."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Mapping, Optional, Union

from .calls import SlotLike, build_get_data_call, build_inner_call, build_outer_call, decode_get_data_result, normalize_slot
from .codec import EncodedURI, decode, encode
from .config import PublisherConfig
from .constants import GRID_DATA_KEY
from .errors import ConfigurationError, EncodingError, SubmissionError, VerificationError
from .models import GridDocument
from .submitter import RpcProvider, TransactionReceipt, TransactionSubmitter, Web3RpcProvider

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Publication:
    """Everything derived from a document before anything is signed."""

    slot: bytes
    uri: EncodedURI
    inner_call: bytes
    outer_call: bytes


def prepare_publication(
    document: Union[GridDocument, Mapping[str, Any]],
    slot: SlotLike = GRID_DATA_KEY,
) -> Publication:
    uri = encode(document)
    inner = build_inner_call(slot, uri)
    outer = build_outer_call(slot, uri)
    return Publication(slot=normalize_slot(slot), uri=uri, inner_call=inner, outer_call=outer)


def provider_for(config: PublisherConfig) -> Web3RpcProvider:
    return Web3RpcProvider.from_endpoint(
        config.rpc_endpoint,
        request_timeout=config.request_timeout,
        confirmation_timeout=config.confirmation_timeout,
    )


def read_slot(provider: RpcProvider, profile_address: str, slot: SlotLike = GRID_DATA_KEY) -> bytes:
    raw = provider.call({"to": profile_address, "data": "0x" + build_get_data_call(slot).hex()})
    return decode_get_data_result(raw)


async def publish_grid(
    document: Union[GridDocument, Mapping[str, Any]],
    config: PublisherConfig,
    *,
    provider: Optional[RpcProvider] = None,
    verify: bool = False,
) -> TransactionReceipt:
    """Write ``document`` to the grid slot of the configured profile.

    Raises :class:`~grid_publisher.errors.EncodingError` before anything is
    sent, or one of the submission errors once signing has started.
    """

    if verify and not config.profile_address:
        raise ConfigurationError("profile_address is required to verify the written value")
    publication = prepare_publication(document)
    logger.info(
        "Publishing grid",
        extra={"controller": config.controller_address, "uri_length": len(publication.uri.payload)},
    )
    rpc = provider or provider_for(config)
    submitter = TransactionSubmitter(rpc, expected_chain_id=config.chain_id)
    receipt = await submitter.submit(publication.outer_call, config.controller_address, config.account())

    if verify:
        try:
            stored = await asyncio.to_thread(read_slot, rpc, config.profile_address, publication.slot)
        except (SubmissionError, EncodingError) as exc:
            raise VerificationError(
                f"Transaction {receipt.transaction_id} confirmed but the stored value could not be read back: {exc}",
                receipt=receipt,
            ) from exc
        if stored != publication.uri.to_bytes():
            raise VerificationError(
                f"Stored grid value does not match transaction {receipt.transaction_id}", receipt=receipt
            )
        logger.info("Verified stored grid value", extra={"tx_hash": receipt.transaction_id})
    return receipt


def fetch_grid(config: PublisherConfig, *, provider: Optional[RpcProvider] = None) -> Optional[GridDocument]:
    """Read and decode the grid currently stored on the profile; ``None`` when unset."""

    if not config.profile_address:
        raise ConfigurationError("profile_address is required to read the grid")
    rpc = provider or provider_for(config)
    stored = read_slot(rpc, config.profile_address)
    if not stored:
        return None
    return decode(stored)


__all__ = ["Publication", "fetch_grid", "prepare_publication", "provider_for", "publish_grid", "read_slot"]
