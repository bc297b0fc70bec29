"""Core infrastructure: configuration, error taxonomy, logging."""

from .config import (
    SessionHooksConfig,
    WebhookDeliveryConfig,
    LoggingConfig,
    StoreConfig,
    load_config,
    get_config,
    reset_config,
)
from .logging_config import configure_logging

__all__ = [
    "SessionHooksConfig",
    "WebhookDeliveryConfig",
    "LoggingConfig",
    "StoreConfig",
    "load_config",
    "get_config",
    "reset_config",
    "configure_logging",
]
