"""
sessionhooks - Event Dispatch and Webhook Delivery
===================================================

Delivers provider events of chat sessions to externally registered HTTP
webhooks.

Main Packages:
    - core: configuration, error taxonomy, logging setup
    - events: event registry, dispatcher, delivery workers, manager, store

Quick Start:
    from sessionhooks import RawEvent, build_container, load_config

    container = build_container(load_config())
    await container.manager.start()
    await container.manager.dispatch_event(RawEvent("Message", payload), "session-1")

Version: 1.0.0
"""

__version__ = "1.0.0"

from sessionhooks.core.config import SessionHooksConfig, WebhookDeliveryConfig, load_config
from sessionhooks.core.logging_config import configure_logging
from sessionhooks.container import Container, build_container, build_test_container
from sessionhooks.events import (
    EventType,
    InMemoryWebhookConfigStore,
    RawEvent,
    WebhookConfig,
    WebhookEvent,
    WebhookManager,
)

__all__ = [
    "__version__",
    "SessionHooksConfig",
    "WebhookDeliveryConfig",
    "load_config",
    "configure_logging",
    "Container",
    "build_container",
    "build_test_container",
    "EventType",
    "InMemoryWebhookConfigStore",
    "RawEvent",
    "WebhookConfig",
    "WebhookEvent",
    "WebhookManager",
]
