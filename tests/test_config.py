"""
sessionhooks Test Suite - Configuration Tests
"""

import os

import pytest
import yaml

from sessionhooks.core.config import (
    SessionHooksConfig,
    WebhookDeliveryConfig,
    get_config,
    load_config,
    reset_config,
)
from sessionhooks.core.exceptions import ConfigurationError


@pytest.fixture(autouse=True)
def clean_config():
    """Reset the cached config between tests."""
    reset_config()
    yield
    reset_config()


@pytest.fixture
def sample_config_path(tmp_path):
    """Create a temporary config.yaml."""
    config_data = {
        "sessionhooks": {
            "version": "1.0-test",
            "delivery": {
                "workers": 3,
                "queue_capacity": 50,
                "max_retries": 2,
                "retry_delay_seconds": 0.5,
                "backoff": "exponential",
                "request_timeout_seconds": 10,
                "skip_event_types": ["AppState", "Presence"],
            },
            "logging": {"level": "DEBUG", "json_format": True},
            "store": {"persistence_path": str(tmp_path / "webhooks.json")},
        }
    }
    config_path = tmp_path / "config.yaml"
    with open(config_path, "w") as f:
        yaml.dump(config_data, f)
    return config_path


class TestLoadConfig:
    def test_load_from_yaml(self, sample_config_path):
        config = load_config(sample_config_path)
        assert config.version == "1.0-test"
        assert config.delivery.workers == 3
        assert config.delivery.queue_capacity == 50
        assert config.delivery.max_retries == 2
        assert config.delivery.retry_delay_seconds == 0.5
        assert config.delivery.backoff == "exponential"
        assert config.delivery.request_timeout_seconds == 10.0
        assert config.delivery.skip_event_types == ("AppState", "Presence")

    def test_logging_and_store_sections(self, sample_config_path, tmp_path):
        config = load_config(sample_config_path)
        assert config.logging.level == "DEBUG"
        assert config.logging.json_format is True
        assert config.store.persistence_path == str(tmp_path / "webhooks.json")

    def test_default_values_when_no_file(self, tmp_path):
        config = load_config(tmp_path / "nonexistent.yaml")
        assert config.delivery == WebhookDeliveryConfig()
        assert config.delivery.workers == 5
        assert config.delivery.queue_capacity == 1000
        assert config.delivery.max_retries == 3
        assert config.delivery.retry_delay_seconds == 2.0
        assert config.delivery.skip_event_types == ("AppState",)

    def test_config_is_frozen(self):
        config = SessionHooksConfig()
        with pytest.raises(Exception):
            config.delivery.workers = 10

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / "bad.yaml"
        path.write_text("sessionhooks: [unclosed")
        with pytest.raises(ConfigurationError):
            load_config(path)

    @pytest.mark.parametrize("delivery,key", [
        ({"workers": 0}, "delivery.workers"),
        ({"queue_capacity": 0}, "delivery.queue_capacity"),
        ({"max_retries": -1}, "delivery.max_retries"),
        ({"backoff": "random"}, "delivery.backoff"),
        ({"retry_delay_seconds": -1}, "delivery.retry_delay_seconds"),
        ({"request_timeout_seconds": 0}, "delivery.request_timeout_seconds"),
    ])
    def test_validation(self, tmp_path, delivery, key):
        path = tmp_path / "bad.yaml"
        with open(path, "w") as f:
            yaml.dump({"sessionhooks": {"delivery": delivery}}, f)

        with pytest.raises(ConfigurationError) as exc_info:
            load_config(path)
        assert exc_info.value.config_key == key

    @pytest.mark.parametrize("delivery,key", [
        ({"workers": "five"}, "delivery.workers"),
        ({"retry_delay_seconds": "soon"}, "delivery.retry_delay_seconds"),
        ({"history_size": [1, 2]}, "delivery.history_size"),
        ({"max_retries": True}, "delivery.max_retries"),
    ])
    def test_non_numeric_yaml_values(self, tmp_path, delivery, key):
        path = tmp_path / "bad.yaml"
        with open(path, "w") as f:
            yaml.dump({"sessionhooks": {"delivery": delivery}}, f)

        with pytest.raises(ConfigurationError) as exc_info:
            load_config(path)
        assert exc_info.value.config_key == key

    def test_log_sink_from_yaml(self, tmp_path):
        path = tmp_path / "config.yaml"
        with open(path, "w") as f:
            yaml.dump({"sessionhooks": {"logging": {"sink": "/var/log/hooks.log"}}}, f)

        assert load_config(path).logging.sink == "/var/log/hooks.log"


class TestEnvironmentOverrides:
    def test_malformed_int_override(self, sample_config_path):
        os.environ["SESSIONHOOKS_WORKERS"] = "many"
        try:
            with pytest.raises(ConfigurationError) as exc_info:
                load_config(sample_config_path)
            assert exc_info.value.config_key == "SESSIONHOOKS_WORKERS"
        finally:
            del os.environ["SESSIONHOOKS_WORKERS"]

    def test_malformed_float_override(self, tmp_path):
        os.environ["SESSIONHOOKS_REQUEST_TIMEOUT_SECONDS"] = "30s"
        try:
            with pytest.raises(ConfigurationError) as exc_info:
                load_config(tmp_path / "nonexistent.yaml")
            assert exc_info.value.config_key == "SESSIONHOOKS_REQUEST_TIMEOUT_SECONDS"
        finally:
            del os.environ["SESSIONHOOKS_REQUEST_TIMEOUT_SECONDS"]

    def test_workers_override(self, sample_config_path):
        os.environ["SESSIONHOOKS_WORKERS"] = "8"
        try:
            config = load_config(sample_config_path)
            assert config.delivery.workers == 8
        finally:
            del os.environ["SESSIONHOOKS_WORKERS"]

    def test_retry_delay_override(self, sample_config_path):
        os.environ["SESSIONHOOKS_RETRY_DELAY_SECONDS"] = "1.5"
        try:
            config = load_config(sample_config_path)
            assert config.delivery.retry_delay_seconds == 1.5
        finally:
            del os.environ["SESSIONHOOKS_RETRY_DELAY_SECONDS"]

    def test_skip_event_types_override(self, sample_config_path):
        os.environ["SESSIONHOOKS_SKIP_EVENT_TYPES"] = "AppState, HistorySync"
        try:
            config = load_config(sample_config_path)
            assert config.delivery.skip_event_types == ("AppState", "HistorySync")
        finally:
            del os.environ["SESSIONHOOKS_SKIP_EVENT_TYPES"]

    def test_log_json_override(self, tmp_path):
        os.environ["SESSIONHOOKS_LOG_JSON"] = "true"
        try:
            config = load_config(tmp_path / "nonexistent.yaml")
            assert config.logging.json_format is True
        finally:
            del os.environ["SESSIONHOOKS_LOG_JSON"]


class TestConfigCache:
    def test_get_config_is_cached(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        first = get_config()
        assert get_config() is first
        reset_config()
        assert get_config() is not first
