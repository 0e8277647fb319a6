import asyncio

import pytest

from grid_publisher import publisher
from grid_publisher.codec import encode
from grid_publisher.config import PublisherConfig
from grid_publisher.constants import GRID_DATA_KEY
from grid_publisher.errors import ConfigurationError, EncodingError, SubmissionRejected, VerificationError
from grid_publisher.models import EXAMPLE_GRID


def test_prepare_publication_orders_stages(twitter_grid) -> None:
    publication = publisher.prepare_publication(twitter_grid)

    assert publication.slot == GRID_DATA_KEY
    assert publication.uri == encode(twitter_grid)
    assert publication.inner_call in publication.outer_call


def test_publish_then_fetch_round_trip(ledger, publisher_config, twitter_grid) -> None:
    receipt = asyncio.run(publisher.publish_grid(twitter_grid, publisher_config, provider=ledger))

    assert receipt.confirmation_block == 1_001
    fetched = publisher.fetch_grid(publisher_config, provider=ledger)
    assert fetched is not None
    assert fetched.to_payload() == twitter_grid


def test_publish_with_verification_reads_slot_back(ledger, publisher_config) -> None:
    receipt = asyncio.run(publisher.publish_grid(EXAMPLE_GRID, publisher_config, provider=ledger, verify=True))

    assert receipt.transaction_id.startswith("0x")
    assert ledger.storage[GRID_DATA_KEY] == encode(EXAMPLE_GRID).to_bytes()


def test_verification_mismatch_raises(ledger, publisher_config) -> None:
    original_apply = ledger._apply

    def tamper(calldata: bytes) -> None:
        original_apply(calldata)
        ledger.storage[GRID_DATA_KEY] = b"data:application/json;base64,e30="

    ledger._apply = tamper

    with pytest.raises(VerificationError):
        asyncio.run(publisher.publish_grid(EXAMPLE_GRID, publisher_config, provider=ledger, verify=True))


def test_verification_requires_profile_address(ledger, publisher_config) -> None:
    config = publisher_config.model_copy(update={"profile_address": None})

    with pytest.raises(ConfigurationError):
        asyncio.run(publisher.publish_grid(EXAMPLE_GRID, config, provider=ledger, verify=True))

    assert ledger.broadcasts == []


def test_invalid_document_fails_before_submission(ledger, publisher_config) -> None:
    with pytest.raises(EncodingError):
        asyncio.run(publisher.publish_grid({"items": [{"id": "x"}]}, publisher_config, provider=ledger))

    assert ledger.prepared == []
    assert ledger.broadcasts == []


def test_rejected_publication_keeps_previous_grid(make_ledger, publisher_config, twitter_grid) -> None:
    ledger = make_ledger()
    asyncio.run(publisher.publish_grid(EXAMPLE_GRID, publisher_config, provider=ledger))
    ledger.reject = "unauthorised: missing SETDATA permission"

    with pytest.raises(SubmissionRejected):
        asyncio.run(publisher.publish_grid(twitter_grid, publisher_config, provider=ledger))

    fetched = publisher.fetch_grid(publisher_config, provider=ledger)
    assert fetched is not None
    assert fetched.to_payload() == EXAMPLE_GRID.to_payload()


def test_fetch_returns_none_for_unset_slot(ledger, publisher_config) -> None:
    assert publisher.fetch_grid(publisher_config, provider=ledger) is None


def test_fetch_requires_profile_address(ledger, publisher_config) -> None:
    config = publisher_config.model_copy(update={"profile_address": None})

    with pytest.raises(ConfigurationError):
        publisher.fetch_grid(config, provider=ledger)


def test_provider_for_uses_configured_endpoint(publisher_config: PublisherConfig) -> None:
    provider = publisher.provider_for(publisher_config)

    assert provider._web3.provider.endpoint_uri == "http://localhost:8545"


def test_failed_read_back_reports_confirmed_transaction(ledger, publisher_config) -> None:
    def unreachable_call(tx):
        raise SubmissionRejected("eth_call refused")

    ledger.call = unreachable_call

    with pytest.raises(VerificationError) as excinfo:
        asyncio.run(publisher.publish_grid(EXAMPLE_GRID, publisher_config, provider=ledger, verify=True))

    assert not isinstance(excinfo.value, SubmissionRejected)
    assert excinfo.value.receipt.confirmation_block == 1_001
    assert excinfo.value.transaction_id == excinfo.value.receipt.transaction_id
    assert ledger.storage[GRID_DATA_KEY] == encode(EXAMPLE_GRID).to_bytes()
