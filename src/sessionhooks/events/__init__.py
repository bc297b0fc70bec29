"""
sessionhooks Event Dispatch & Webhook Delivery
==============================================

This module provides:
- Event type registry: the closed set of provider event tags
- EventDispatcher: raw provider events to per-subscription delivery jobs
- WebhookDeliveryService: bounded queue, worker pool, signed HTTP delivery
- WebhookManager: lifecycle facade, test deliveries and stats
- WebhookConfigStore: subscription lookup protocol and an in-memory store

Usage:
    ```python
    from sessionhooks.events import (
        InMemoryWebhookConfigStore, RawEvent, WebhookManager,
    )

    store = InMemoryWebhookConfigStore()
    await store.register(
        url="https://example.com/webhook",
        events=["Message", "Connected"],
        session_id="session-1",
        secret="my_secret",
    )

    manager = WebhookManager(store)
    await manager.start()
    await manager.dispatch_event(RawEvent("Message", {"text": "hi"}), "session-1")
    ```
"""

from .event_types import (
    ALL_EVENTS,
    SUPPORTED_EVENT_TYPES,
    EventType,
    is_valid_event_type,
    normalize_event_type,
    validate_events,
)
from .models import (
    DeliveryJob,
    DeliveryOutcome,
    DeliveryStatus,
    RawEvent,
    TestWebhookResult,
    WebhookConfig,
    WebhookEvent,
    WebhookStats,
)
from .matcher import match_subscriptions
from .signature import WebhookSignature
from .store import InMemoryWebhookConfigStore, WebhookConfigStore
from .delivery import WebhookDeliveryService
from .dispatcher import EventDispatcher, EventProcessor, convert_payload
from .manager import ManagerState, WebhookManager

__all__ = [
    # Registry
    "ALL_EVENTS",
    "SUPPORTED_EVENT_TYPES",
    "EventType",
    "is_valid_event_type",
    "normalize_event_type",
    "validate_events",
    # Models
    "DeliveryJob",
    "DeliveryOutcome",
    "DeliveryStatus",
    "RawEvent",
    "TestWebhookResult",
    "WebhookConfig",
    "WebhookEvent",
    "WebhookStats",
    # Matching and signing
    "match_subscriptions",
    "WebhookSignature",
    # Store
    "InMemoryWebhookConfigStore",
    "WebhookConfigStore",
    # Pipeline
    "WebhookDeliveryService",
    "EventDispatcher",
    "EventProcessor",
    "convert_payload",
    "ManagerState",
    "WebhookManager",
]
