import pytest
from pydantic import ValidationError

from herald.config.resolver import ResolverConfig


def test_defaults():
    config = ResolverConfig()
    assert config.binary_header_prefix == "ce-"
    assert config.legacy_enabled is True
    assert config.max_batch_size is None
    assert config.log_level == "INFO"
    assert config.json_logs is False


def test_prefix_is_lowercased():
    assert ResolverConfig(binary_header_prefix="X-CE-").binary_header_prefix == "x-ce-"


def test_invalid_values():
    with pytest.raises(ValidationError):
        ResolverConfig(binary_header_prefix="")
    with pytest.raises(ValidationError):
        ResolverConfig(max_batch_size=0)


def test_from_env(monkeypatch):
    monkeypatch.setenv("HERALD_BINARY_HEADER_PREFIX", "X-Event-")
    monkeypatch.setenv("HERALD_LEGACY_ENABLED", "false")
    monkeypatch.setenv("HERALD_MAX_BATCH_SIZE", "10")
    monkeypatch.setenv("HERALD_LOG_LEVEL", "DEBUG")
    monkeypatch.setenv("HERALD_JSON_LOGS", "yes")

    config = ResolverConfig.from_env()
    assert config.binary_header_prefix == "x-event-"
    assert config.legacy_enabled is False
    assert config.max_batch_size == 10
    assert config.log_level == "DEBUG"
    assert config.json_logs is True


def test_from_env_overrides_win(monkeypatch):
    monkeypatch.setenv("HERALD_MAX_BATCH_SIZE", "10")
    config = ResolverConfig.from_env({"max_batch_size": 3})
    assert config.max_batch_size == 3


def test_from_env_unset(monkeypatch):
    for name in ("HERALD_BINARY_HEADER_PREFIX", "HERALD_LEGACY_ENABLED", "HERALD_MAX_BATCH_SIZE",
                 "HERALD_LOG_LEVEL", "HERALD_JSON_LOGS"):
        monkeypatch.delenv(name, raising=False)
    assert ResolverConfig.from_env() == ResolverConfig()
