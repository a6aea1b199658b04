"""Tests for configuration loading and logging context."""

import logging

import pytest

from claimsync.utils.config import Config
from claimsync.utils.errors import ConfigurationError, ErrorType
from claimsync.utils.logging import ContextFilter, clear_context, get_context, log_context, set_context

SAMPLE_YAML = """
app:
  environment: staging
sync:
  pacing_delay_ms: 250
  retry:
    max_attempts: 4
    base_delay: 0.5
carriers:
  state-farm:
    carrier_name: State Farm
    is_test_mode: false
    supports_direct_filing: true
"""


def test_defaults_from_empty_mapping():
    config = Config.from_dict({})

    assert config.environment == "development"
    assert config.is_production is False
    assert config.http.timeout == 30.0
    assert config.sync.pacing_delay_ms == 100
    assert config.sync.pacing_delay == 0.1
    assert config.sync.retry.max_attempts == 3
    assert config.storage.claims_path == ""
    assert config.logging.level == "INFO"
    assert config.carriers == {}


def test_environment_overrides():
    config = Config.from_dict(
        {"sync": {"pacing_delay_ms": 100}},
        environ={
            "APP_ENV": "production",
            "CARRIER_SYNC_PACING_MS": "500",
            "CARRIER_HTTP_TIMEOUT": "12.5",
            "CLAIMS_STORE_PATH": "/tmp/claims.json",
            "LOG_LEVEL": "DEBUG",
        },
    )

    assert config.is_production is True
    assert config.sync.pacing_delay == 0.5
    assert config.http.timeout == 12.5
    assert config.storage.claims_path == "/tmp/claims.json"
    assert config.logging.level == "DEBUG"


def test_carrier_secrets_come_from_environment():
    config = Config.from_dict(
        {"carriers": {"state-farm": {"carrier_name": "State Farm", "client_id": "from-file"}}},
        environ={"STATE_FARM_CLIENT_SECRET": "s3cret", "STATE_FARM_WEBHOOK_SECRET": "whsec"},
    )

    carrier = config.carriers["state-farm"]
    assert carrier.client_id == "from-file"
    assert carrier.client_secret == "s3cret"
    assert carrier.webhook_secret == "whsec"
    assert carrier.is_active is True
    assert carrier.supports_direct_filing is False


def test_invalid_number_raises_configuration_error():
    with pytest.raises(ConfigurationError) as excinfo:
        Config.from_dict({"sync": {"pacing_delay_ms": "fast"}})

    assert excinfo.value.context.error_type == ErrorType.CONFIG_INVALID
    assert "sync.pacing_delay_ms" in str(excinfo.value)


def test_load_from_yaml(tmp_path, monkeypatch):
    path = tmp_path / "config.yaml"
    path.write_text(SAMPLE_YAML)
    monkeypatch.delenv("APP_ENV", raising=False)
    monkeypatch.delenv("CARRIER_SYNC_PACING_MS", raising=False)
    monkeypatch.setenv("STATE_FARM_API_KEY", "key-123")

    config = Config.load(str(path))

    assert config.environment == "staging"
    assert config.sync.pacing_delay_ms == 250
    assert config.sync.retry.max_attempts == 4
    assert config.sync.retry.base_delay == 0.5
    assert config.carriers["state-farm"].is_test_mode is False
    assert config.carriers["state-farm"].api_key == "key-123"


def test_log_context_is_scoped():
    clear_context()
    set_context(carrier_code="mock")

    with log_context(claim_id="claim-1"):
        assert get_context() == {"carrier_code": "mock", "claim_id": "claim-1"}
    assert get_context() == {"carrier_code": "mock"}

    clear_context()
    assert get_context() == {}


def test_context_filter_adds_fields():
    record = logging.LogRecord("claimsync", logging.INFO, __file__, 1, "msg", None, None)
    with log_context(claim_id="claim-7"):
        ContextFilter().filter(record)

    assert record.claim_id == "claim-7"
