"""Tests for loguru component loggers."""

import pytest
from loguru import logger

from factgate.adapters.pattern_validator import PatternValidator
from factgate.config.logging import SERVICE_NAME, get_logger


# ── Fixtures ──────────────────────────────────────────────────────────────


@pytest.fixture
def records():
    captured = []
    handler_id = logger.add(lambda message: captured.append(message.record), level="DEBUG")
    yield captured
    logger.remove(handler_id)


class TestGetLogger:
    def test_binds_component_and_service(self, records: list) -> None:
        get_logger("ResultCache").debug("entry stored")

        extra = records[0]["extra"]
        assert extra["component"] == "ResultCache"
        assert extra["service"] == SERVICE_NAME
        assert "adapter" not in extra

    def test_binds_extra_context(self, records: list) -> None:
        get_logger("AdapterRegistry", adapter="kb").info("registered")

        assert records[0]["extra"]["adapter"] == "kb"
        assert records[0]["message"] == "registered"

    def test_builtin_adapter_logger_carries_adapter_name(self, records: list) -> None:
        PatternValidator(name="patterns-v2").logger.warning("library reloaded")

        assert records[0]["extra"]["component"] == "PatternValidator"
        assert records[0]["extra"]["adapter"] == "patterns-v2"
