"""
sessionhooks Configuration System
==================================
Centralized, validated configuration with environment variable overrides.
"""

import os
from pathlib import Path
from typing import Optional
from dataclasses import dataclass, field

import yaml

from sessionhooks.core.exceptions import ConfigurationError


BACKOFF_STRATEGIES = ("linear", "fixed", "exponential")


@dataclass(frozen=True)
class WebhookDeliveryConfig:
    """Delivery worker pool, queue and retry tuning."""
    workers: int = 5
    queue_capacity: int = 1000
    max_retries: int = 3  # retries after the first attempt
    retry_delay_seconds: float = 2.0
    backoff: str = "linear"  # "linear" | "fixed" | "exponential"
    max_retry_delay_seconds: float = 300.0
    request_timeout_seconds: float = 30.0
    enqueue_timeout_seconds: float = 0.0  # 0 = drop immediately when full
    idle_poll_seconds: float = 0.5
    shutdown_grace_seconds: float = 5.0
    history_size: int = 1000
    user_agent: str = "sessionhooks-webhook/1.0"
    skip_event_types: tuple[str, ...] = ("AppState",)


@dataclass(frozen=True)
class LoggingConfig:
    level: str = "INFO"
    json_format: bool = False
    sink: Optional[str] = None  # log file path; None = stderr


@dataclass(frozen=True)
class StoreConfig:
    persistence_path: Optional[str] = None


@dataclass(frozen=True)
class SessionHooksConfig:
    """Root configuration for the webhook pipeline."""

    version: str = "1.0"
    delivery: WebhookDeliveryConfig = field(default_factory=WebhookDeliveryConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    store: StoreConfig = field(default_factory=StoreConfig)


def _env_override(key: str, default):
    """Check for SESSIONHOOKS_<KEY> environment variable override."""
    env_key = f"SESSIONHOOKS_{key.upper()}"
    val = os.environ.get(env_key)
    if val is None:
        return default
    # Type coercion based on the default's type
    if isinstance(default, bool):
        return val.lower() in ("true", "1", "yes")
    if isinstance(default, (int, float)):
        try:
            return type(default)(val)
        except ValueError:
            raise ConfigurationError(
                env_key, f"cannot parse '{val}' as {type(default).__name__}"
            )
    if isinstance(default, (list, tuple)):
        return tuple(v.strip() for v in val.split(",") if v.strip())
    return val


def _number(config_key: str, value, kind):
    """Coerce a YAML value to int or float, rejecting non-numeric input."""
    if isinstance(value, bool) or not isinstance(value, (int, float, str)):
        raise ConfigurationError(config_key, f"must be a number, got {value!r}")
    try:
        return kind(value)
    except ValueError:
        raise ConfigurationError(config_key, f"must be a number, got {value!r}")


def _validate_delivery(delivery: WebhookDeliveryConfig) -> None:
    if delivery.workers < 1:
        raise ConfigurationError("delivery.workers", f"must be >= 1, got {delivery.workers}")
    if delivery.queue_capacity < 1:
        raise ConfigurationError(
            "delivery.queue_capacity", f"must be >= 1, got {delivery.queue_capacity}"
        )
    if delivery.max_retries < 0:
        raise ConfigurationError(
            "delivery.max_retries", f"must be >= 0, got {delivery.max_retries}"
        )
    if delivery.backoff not in BACKOFF_STRATEGIES:
        raise ConfigurationError(
            "delivery.backoff",
            f"unknown strategy '{delivery.backoff}'",
            {"supported": list(BACKOFF_STRATEGIES)},
        )
    for name in (
        "retry_delay_seconds",
        "max_retry_delay_seconds",
        "enqueue_timeout_seconds",
        "shutdown_grace_seconds",
    ):
        if getattr(delivery, name) < 0:
            raise ConfigurationError(f"delivery.{name}", "must not be negative")
    if delivery.request_timeout_seconds <= 0:
        raise ConfigurationError("delivery.request_timeout_seconds", "must be positive")
    if delivery.idle_poll_seconds <= 0:
        raise ConfigurationError("delivery.idle_poll_seconds", "must be positive")


def load_config(path: Optional[Path] = None) -> SessionHooksConfig:
    """
    Load configuration from YAML file with environment variable overrides.

    Priority: ENV > YAML > defaults.

    Args:
        path: Path to config.yaml. If None, searches ./config.yaml.

    Returns:
        Validated SessionHooksConfig instance.

    Raises:
        ConfigurationError: If a value is out of range or the YAML is malformed.
    """
    if path is None:
        candidate = Path("config.yaml")
        if candidate.exists():
            path = candidate

    raw = {}
    if path is not None and Path(path).exists():
        with open(path) as f:
            try:
                loaded = yaml.safe_load(f) or {}
            except yaml.YAMLError as e:
                raise ConfigurationError("config_file", f"invalid YAML: {e}", {"path": str(path)})
            raw = loaded.get("sessionhooks") or {}

    defaults = WebhookDeliveryConfig()

    # Build delivery config
    dlv_raw = raw.get("delivery") or {}
    skip_raw = dlv_raw.get("skip_event_types", defaults.skip_event_types)

    def yaml_int(name):
        return _number(f"delivery.{name}", dlv_raw.get(name, getattr(defaults, name)), int)

    def yaml_float(name):
        return _number(f"delivery.{name}", dlv_raw.get(name, getattr(defaults, name)), float)

    delivery = WebhookDeliveryConfig(
        workers=_env_override("WORKERS", yaml_int("workers")),
        queue_capacity=_env_override("QUEUE_CAPACITY", yaml_int("queue_capacity")),
        max_retries=_env_override("MAX_RETRIES", yaml_int("max_retries")),
        retry_delay_seconds=_env_override("RETRY_DELAY_SECONDS", yaml_float("retry_delay_seconds")),
        backoff=_env_override("BACKOFF", dlv_raw.get("backoff", defaults.backoff)),
        max_retry_delay_seconds=_env_override("MAX_RETRY_DELAY_SECONDS", yaml_float("max_retry_delay_seconds")),
        request_timeout_seconds=_env_override("REQUEST_TIMEOUT_SECONDS", yaml_float("request_timeout_seconds")),
        enqueue_timeout_seconds=_env_override("ENQUEUE_TIMEOUT_SECONDS", yaml_float("enqueue_timeout_seconds")),
        idle_poll_seconds=yaml_float("idle_poll_seconds"),
        shutdown_grace_seconds=_env_override("SHUTDOWN_GRACE_SECONDS", yaml_float("shutdown_grace_seconds")),
        history_size=yaml_int("history_size"),
        user_agent=dlv_raw.get("user_agent", defaults.user_agent),
        skip_event_types=_env_override("SKIP_EVENT_TYPES", tuple(skip_raw or ())),
    )
    _validate_delivery(delivery)

    # Build logging config
    log_raw = raw.get("logging") or {}
    logging_cfg = LoggingConfig(
        level=_env_override("LOG_LEVEL", log_raw.get("level", "INFO")),
        json_format=_env_override("LOG_JSON", log_raw.get("json_format", False)),
        sink=_env_override("LOG_FILE", log_raw.get("sink")),
    )

    # Build store config
    store_raw = raw.get("store") or {}
    store = StoreConfig(
        persistence_path=_env_override("STORE_PATH", store_raw.get("persistence_path")),
    )

    return SessionHooksConfig(
        version=raw.get("version", "1.0"),
        delivery=delivery,
        logging=logging_cfg,
        store=store,
    )


# Module-level cache (lazy-loaded)
_CONFIG: Optional[SessionHooksConfig] = None


def get_config() -> SessionHooksConfig:
    """Get or initialize the cached config."""
    global _CONFIG
    if _CONFIG is None:
        _CONFIG = load_config()
    return _CONFIG


def reset_config():
    """Reset the cached config (useful for testing)."""
    global _CONFIG
    _CONFIG = None
