"""Tests for FactGateSettings loading and validation."""

import pytest

from factgate.config.settings import AdapterConfig, FactGateSettings, load_settings
from factgate.verification.errors import InvalidConfiguration
from factgate.verification.schemas import AggregationStrategy, FallbackStrategy


class TestDefaults:
    def test_empty_environment_is_usable(self) -> None:
        settings = load_settings()

        assert settings.default_timeout == 5.0
        assert settings.request_timeout == 10.0
        assert settings.max_concurrency == 10
        assert settings.strategy == AggregationStrategy.WEIGHTED_AVERAGE
        assert settings.fallback_strategy == FallbackStrategy.PARTIAL
        assert settings.cache_ttl == 300.0
        assert settings.cache_max_entries == 1000
        assert settings.failure_threshold == 5
        assert settings.cooldown_duration == 30.0
        assert settings.retry_max_attempts == 1
        assert settings.precheck_availability is False
        assert settings.builtin_adapters == ["contradiction-detector", "pattern-validator"]
        assert settings.adapters == {}

    def test_overrides(self) -> None:
        settings = load_settings(strategy="majority-vote", fallback_strategy="fail", cache_ttl=0)

        assert settings.strategy == AggregationStrategy.MAJORITY_VOTE
        assert settings.fallback_strategy == FallbackStrategy.FAIL
        assert settings.cache_ttl == 0


class TestEnvironment:
    def test_env_prefix(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("FACTGATE_DEFAULT_TIMEOUT", "2.5")
        monkeypatch.setenv("FACTGATE_MAX_CONCURRENCY", "3")
        monkeypatch.setenv("FACTGATE_FALLBACK_STRATEGY", "ignore")

        settings = FactGateSettings()

        assert settings.default_timeout == 2.5
        assert settings.max_concurrency == 3
        assert settings.fallback_strategy == FallbackStrategy.IGNORE

    def test_adapter_overrides_from_json(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("FACTGATE_ADAPTERS", '{"kb": {"weight": 2.0, "timeout": 1.5}}')

        settings = load_settings()

        assert settings.adapters["kb"].weight == 2.0
        assert settings.adapters["kb"].timeout == 1.5
        assert settings.adapters["kb"].enabled is True

    def test_invalid_env_value(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("FACTGATE_REQUEST_TIMEOUT", "-1")

        with pytest.raises(InvalidConfiguration):
            load_settings()


class TestValidation:
    @pytest.mark.parametrize(
        "overrides",
        [
            {"default_timeout": 0},
            {"max_concurrency": 0},
            {"cache_ttl": -5},
            {"cache_max_entries": 0},
            {"failure_threshold": 0},
            {"retry_max_attempts": 0},
            {"strategy": "coin-flip"},
            {"fallback_strategy": "panic"},
        ],
    )
    def test_invalid_values_raise_invalid_configuration(self, overrides: dict) -> None:
        with pytest.raises(InvalidConfiguration) as exc_info:
            load_settings(**overrides)

        assert exc_info.value.context["errors"]

    def test_adapter_config_bounds(self) -> None:
        assert AdapterConfig().weight == 1.0
        assert AdapterConfig().timeout is None

        with pytest.raises(InvalidConfiguration):
            load_settings(adapters={"kb": {"weight": -1.0}})
        with pytest.raises(InvalidConfiguration):
            load_settings(adapters={"kb": {"timeout": 0}})
