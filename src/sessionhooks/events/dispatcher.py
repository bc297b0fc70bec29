"""
EventDispatcher - Raw Provider Events to Delivery Jobs
=======================================================

Turns a tagged provider event into a normalized ``WebhookEvent`` and hands one
delivery job per matching subscription to the delivery service.

Pipeline:
    1. Skip list (high-volume sync events such as "AppState")
    2. Registry check; unknown types are dropped with a debug trace
    3. JSON round trip of the payload into a plain JSON object
    4. WebhookEvent with a fresh id and timestamp
    5. Event processors (chat-platform integrations and the like)
    6. Subscription lookup and matching
    7. Submission to the delivery service

Only payload conversion errors reach the caller. Store, processor and queue
problems are logged and the event is delivered as far as possible.
"""

from __future__ import annotations

import base64
import dataclasses
import json
from datetime import date, datetime
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Protocol, runtime_checkable

from loguru import logger

from sessionhooks.core.exceptions import PayloadConversionError, StoreUnavailableError

from .delivery import WebhookDeliveryService
from .event_types import EventType, is_valid_event_type
from .matcher import match_subscriptions
from .models import RawEvent, WebhookConfig, WebhookEvent
from .store import WebhookConfigStore


# Event types worth an INFO line per dispatch; the rest are logged at DEBUG
VERBOSE_EVENT_TYPES = frozenset({
    EventType.MESSAGE.value,
    EventType.CONNECTED.value,
    EventType.DISCONNECTED.value,
})


@runtime_checkable
class EventProcessor(Protocol):
    """Hook run on every normalized event before subscriptions are matched."""

    async def process_webhook_event(self, event: WebhookEvent) -> None:
        ...


class _PayloadEncoder(json.JSONEncoder):
    """JSON encoder for the value types provider payloads commonly carry."""

    def default(self, o: Any) -> Any:
        if isinstance(o, (datetime, date)):
            return o.isoformat()
        if isinstance(o, Enum):
            return o.value
        if dataclasses.is_dataclass(o) and not isinstance(o, type):
            return dataclasses.asdict(o)
        if isinstance(o, (set, frozenset)):
            return list(o)
        if isinstance(o, (bytes, bytearray)):
            return base64.b64encode(bytes(o)).decode("ascii")
        to_dict = getattr(o, "to_dict", None)
        if callable(to_dict):
            return to_dict()
        return super().default(o)


def convert_payload(event_type: str, payload: Any) -> Dict[str, Any]:
    """
    Render a provider payload as a generic JSON object.

    Raises:
        PayloadConversionError: If the payload cannot be encoded or does not
            encode to a JSON object.
    """
    if payload is None:
        return {}

    try:
        encoded = json.dumps(payload, cls=_PayloadEncoder, allow_nan=False)
    except (TypeError, ValueError, RecursionError) as e:
        raise PayloadConversionError(event_type, str(e)) from e

    data = json.loads(encoded)
    if not isinstance(data, dict):
        raise PayloadConversionError(
            event_type,
            f"payload encodes to {type(data).__name__}, expected an object",
        )
    return data


class EventDispatcher:
    """
    Stateless apart from its collaborators and the processor list.

    Example:
        ```python
        dispatcher = EventDispatcher(store, delivery)
        event = await dispatcher.dispatch_event(
            RawEvent(EventType.MESSAGE, {"text": "hi"}),
            session_id="session-1",
        )
        ```
    """

    def __init__(
        self,
        store: WebhookConfigStore,
        delivery: WebhookDeliveryService,
        skip_event_types: Iterable[str] = (EventType.APP_STATE.value,),
    ):
        self._store = store
        self._delivery = delivery
        self._skip_event_types = frozenset(skip_event_types)
        self._processors: List[EventProcessor] = []

    @property
    def processors(self) -> List[EventProcessor]:
        return list(self._processors)

    def add_processor(self, processor: EventProcessor) -> None:
        self._processors.append(processor)
        logger.info(f"[EventDispatcher] Added event processor {type(processor).__name__}")

    async def dispatch_event(self, raw_event: RawEvent, session_id: str) -> Optional[WebhookEvent]:
        """
        Normalize an event and queue it for every matching subscription.

        Returns:
            The built WebhookEvent, or None if the event was skipped or its
            type is not registered.

        Raises:
            PayloadConversionError: If the payload is not JSON-representable
        """
        event_type = raw_event.type_name

        if event_type in self._skip_event_types:
            return None

        if not is_valid_event_type(event_type):
            logger.debug(f"[EventDispatcher] Dropping unsupported event type '{event_type}'")
            return None

        data = convert_payload(event_type, raw_event.payload)
        event = WebhookEvent.create(session_id, event_type, data)

        level = "INFO" if event_type in VERBOSE_EVENT_TYPES else "DEBUG"
        logger.log(
            level,
            f"[EventDispatcher] Dispatching {event_type} event {event.id} "
            f"for session {session_id}",
        )

        await self._run_processors(event)

        configs = await self._lookup(session_id)
        matches = match_subscriptions(event_type, session_id, configs)
        if not matches:
            logger.debug(
                f"[EventDispatcher] No subscriptions for {event_type} "
                f"in session {session_id}"
            )
            return event

        queued = 0
        for config in matches:
            if await self._delivery.submit(event, config):
                queued += 1

        logger.debug(
            f"[EventDispatcher] Queued event {event.id} for {queued}/{len(matches)} webhooks"
        )
        return event

    async def _run_processors(self, event: WebhookEvent) -> None:
        for processor in self._processors:
            try:
                await processor.process_webhook_event(event)
            except Exception as e:
                logger.error(
                    f"[EventDispatcher] Processor {type(processor).__name__} failed "
                    f"on event {event.id}: {e}"
                )

    async def _lookup(self, session_id: str) -> List[WebhookConfig]:
        try:
            return list(await self._store.get_by_session_and_global(session_id))
        except StoreUnavailableError as e:
            logger.warning(f"[EventDispatcher] {e}")
            return []
        except Exception as e:
            logger.error(
                f"[EventDispatcher] Failed to load webhooks for session {session_id}: {e}"
            )
            return []
