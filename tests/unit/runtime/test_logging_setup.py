import json
import logging
import sys

import pytest
from loguru import logger

from identity_core.runtime.logging_setup import configure_logging


@pytest.fixture
def restore_loguru():
    yield
    logger.remove()
    logger.add(sys.stderr)


def test_json_file_sink_receives_messages(test_config, tmp_path, restore_loguru):
    log_file = tmp_path / "logs" / "identity.log"
    test_config.logging.file = str(log_file)
    test_config.logging.format = "json"

    configure_logging(test_config)
    logger.info("Created user {}", "abc")
    logger.complete()
    logger.remove()

    records = [json.loads(line) for line in log_file.read_text().splitlines()]
    assert any(r["record"]["message"] == "Created user abc" for r in records)


def test_stdlib_records_are_intercepted(test_config, tmp_path, restore_loguru):
    log_file = tmp_path / "identity.log"
    test_config.logging.file = str(log_file)

    configure_logging(test_config)
    logging.getLogger("identity_core.test").warning("from stdlib")
    logger.complete()
    logger.remove()

    assert "from stdlib" in log_file.read_text()
