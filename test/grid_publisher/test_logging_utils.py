import json
import logging

import pytest

from grid_publisher.logging_utils import StructuredJsonFormatter, configure_logging


def test_json_formatter_includes_extra_fields() -> None:
    record = logging.LogRecord("grid_publisher.submitter", logging.INFO, __file__, 1, "Broadcast %s", ("tx",), None)
    record.tx_hash = "0xabc"

    payload = json.loads(StructuredJsonFormatter().format(record))

    assert payload["message"] == "Broadcast tx"
    assert payload["level"] == "INFO"
    assert payload["data"] == {"tx_hash": "0xabc"}


def test_configure_logging_replaces_handlers(tmp_path) -> None:
    log_file = tmp_path / "audit.jsonl"

    configure_logging(str(log_file), level=logging.DEBUG)
    logger = configure_logging(None, level=logging.WARNING)

    assert logger.name == "grid_publisher"
    assert logger.level == logging.WARNING
    assert len(logger.handlers) == 1


def test_configure_logging_accepts_level_names() -> None:
    assert configure_logging(None, level="debug").level == logging.DEBUG


def test_configure_logging_rejects_unknown_level_names() -> None:
    with pytest.raises(ValueError):
        configure_logging(None, level="chatty")
