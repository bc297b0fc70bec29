"""
WebhookManager - Lifecycle Facade for Event Webhooks
=====================================================

Single entry point for the rest of the application:

    - start()/stop() the delivery workers (both idempotent)
    - dispatch_event() from the provider event handler, a no-op while stopped
    - test_webhook() for an explicit, synchronous delivery to one subscription
    - get_stats() for operators

Example:
    ```python
    manager = WebhookManager(store, WebhookDeliveryConfig(workers=2))
    await manager.start()

    await manager.dispatch_event(RawEvent("Message", payload), "session-1")
    result = await manager.test_webhook(config_id, "Message", {"text": "ping"})

    await manager.stop()
    ```
"""

from __future__ import annotations

import asyncio
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional

import aiohttp
from loguru import logger

from sessionhooks.core.config import WebhookDeliveryConfig
from sessionhooks.core.exceptions import (
    InvalidEventTypeError,
    ManagerNotStartedError,
    WebhookNotFoundError,
)

from .delivery import WebhookDeliveryService
from .dispatcher import EventDispatcher, EventProcessor
from .event_types import normalize_event_type
from .models import RawEvent, TestWebhookResult, WebhookEvent, WebhookStats
from .store import WebhookConfigStore


TEST_SESSION_ID = "test-session"


class ManagerState(str, Enum):
    STOPPED = "stopped"
    STARTING = "starting"
    RUNNING = "running"
    STOPPING = "stopping"


class WebhookManager:
    """
    Owns the delivery service and the dispatcher built on top of it.

    State transitions are serialized by a lock, so concurrent start() and
    stop() calls observe each other's result.
    """

    def __init__(
        self,
        store: WebhookConfigStore,
        config: Optional[WebhookDeliveryConfig] = None,
        http_session: Optional[aiohttp.ClientSession] = None,
    ):
        self._store = store
        self._config = config or WebhookDeliveryConfig()
        self._delivery = WebhookDeliveryService(self._config, http_session=http_session)
        self._dispatcher = EventDispatcher(
            store,
            self._delivery,
            skip_event_types=self._config.skip_event_types,
        )
        self._state = ManagerState.STOPPED
        self._state_lock = asyncio.Lock()

    @property
    def state(self) -> ManagerState:
        return self._state

    @property
    def delivery(self) -> WebhookDeliveryService:
        return self._delivery

    @property
    def dispatcher(self) -> EventDispatcher:
        return self._dispatcher

    def is_started(self) -> bool:
        return self._state == ManagerState.RUNNING

    # ======================================================================
    # Lifecycle
    # ======================================================================

    async def start(self) -> None:
        async with self._state_lock:
            if self._state != ManagerState.STOPPED:
                logger.warning(f"[WebhookManager] Already {self._state.value}, ignoring start")
                return

            self._state = ManagerState.STARTING
            try:
                await self._delivery.start()
            except Exception:
                self._state = ManagerState.STOPPED
                raise
            self._state = ManagerState.RUNNING

        logger.info(f"[WebhookManager] Started with {self._config.workers} workers")

    async def stop(self) -> None:
        async with self._state_lock:
            if self._state != ManagerState.RUNNING:
                logger.warning(f"[WebhookManager] Not running ({self._state.value}), ignoring stop")
                return

            self._state = ManagerState.STOPPING
            try:
                await self._delivery.stop()
            finally:
                self._state = ManagerState.STOPPED

        logger.info("[WebhookManager] Stopped")

    # ======================================================================
    # Dispatch
    # ======================================================================

    def add_processor(self, processor: EventProcessor) -> None:
        self._dispatcher.add_processor(processor)

    async def dispatch_event(self, raw_event: RawEvent, session_id: str) -> Optional[WebhookEvent]:
        """
        Forward a provider event to the dispatcher.

        Returns None without touching the queue while the manager is not
        running. Only PayloadConversionError propagates.
        """
        if self._state != ManagerState.RUNNING:
            logger.debug(
                f"[WebhookManager] Not running, ignoring {raw_event.type_name} "
                f"event for session {session_id}"
            )
            return None

        return await self._dispatcher.dispatch_event(raw_event, session_id)

    async def test_webhook(
        self,
        config_id: str,
        event_type: str,
        test_data: Optional[Dict[str, Any]] = None,
    ) -> TestWebhookResult:
        """
        Deliver a synthetic event to one subscription and report the result.

        The subscription's enabled flag and event list are not consulted, and
        the delivery queue is not used.

        Raises:
            ManagerNotStartedError: If the manager is not running
            WebhookNotFoundError: If the store has no such subscription
            InvalidEventTypeError: If event_type is not a registered type
        """
        if self._state != ManagerState.RUNNING:
            raise ManagerNotStartedError("test_webhook")

        config = await self._store.get_by_id(config_id)
        if config is None:
            raise WebhookNotFoundError(config_id)

        normalized = normalize_event_type(event_type)
        if normalized is None:
            raise InvalidEventTypeError(str(event_type))

        event = WebhookEvent(
            id=f"test-{config_id}",
            session_id=TEST_SESSION_ID,
            type=normalized,
            timestamp=datetime.now(timezone.utc),
            data=dict(test_data) if test_data else {},
        )

        logger.info(f"[WebhookManager] Sending test {normalized} event to {config_id}")
        outcome = await self._delivery.deliver_event(event, config)
        return TestWebhookResult.from_outcome(outcome)

    # ======================================================================
    # Statistics
    # ======================================================================

    def get_stats(self) -> WebhookStats:
        return WebhookStats(
            started=self.is_started(),
            workers=self._delivery.workers,
            queue_size=self._delivery.queue_size,
            queue_capacity=self._delivery.queue_capacity,
            max_retries=self._delivery.max_retries,
            retry_delay=self._delivery.retry_delay,
        )
