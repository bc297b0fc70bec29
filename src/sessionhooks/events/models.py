"""
Webhook Data Model
==================

Value types shared by the dispatcher, the delivery service and the manager.

WebhookConfig snapshots are owned by the external config store; this package
only reads them. WebhookEvent and DeliveryJob live for the duration of one
dispatch and are never persisted.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Union

from .event_types import ALL_EVENTS, EventType


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _parse_datetime(value: Any) -> datetime:
    if isinstance(value, datetime):
        return value
    if isinstance(value, str):
        return datetime.fromisoformat(value)
    return _utcnow()


# =============================================================================
# Subscription
# =============================================================================

@dataclass
class WebhookConfig:
    """
    A webhook subscription.

    Attributes:
        id: Opaque identifier
        url: Target URL for delivery
        session_id: Session scope; None means global (matches every session)
        secret: Shared secret for request signing; empty disables signing
        events: Subscribed event types, may contain the "All" wildcard
        enabled: Whether the subscription receives deliveries
        created_at: When the subscription was created
        updated_at: Last configuration update
    """
    id: str
    url: str
    session_id: Optional[str] = None
    secret: str = ""
    events: List[str] = field(default_factory=list)
    enabled: bool = True
    created_at: datetime = field(default_factory=_utcnow)
    updated_at: datetime = field(default_factory=_utcnow)

    def is_global(self) -> bool:
        return self.session_id is None

    def has_event(self, event_type: Union[str, EventType]) -> bool:
        """True if the subscription lists the type or the wildcard."""
        if isinstance(event_type, EventType):
            event_type = event_type.value
        return any(e == ALL_EVENTS or e == event_type for e in self.events)

    def to_dict(self, scrub_secret: bool = True) -> Dict[str, Any]:
        """Convert to dictionary, optionally hiding the secret."""
        secret = self.secret
        if scrub_secret and secret:
            secret = "***"
        return {
            "id": self.id,
            "url": self.url,
            "session_id": self.session_id,
            "secret": secret,
            "events": list(self.events),
            "enabled": self.enabled,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "WebhookConfig":
        """Create from dictionary representation."""
        return cls(
            id=data["id"],
            url=data["url"],
            session_id=data.get("session_id"),
            secret=data.get("secret") or "",
            events=list(data.get("events") or []),
            enabled=data.get("enabled", True),
            created_at=_parse_datetime(data.get("created_at")),
            updated_at=_parse_datetime(data.get("updated_at")),
        )


# =============================================================================
# Events
# =============================================================================

@dataclass
class RawEvent:
    """
    Tagged provider event handed to the dispatcher.

    The producer names the type explicitly; the payload is any structure
    that can be rendered as a JSON object.
    """
    type: Union[str, EventType]
    payload: Any = None

    @property
    def type_name(self) -> str:
        if isinstance(self.type, EventType):
            return self.type.value
        return str(self.type)


@dataclass
class WebhookEvent:
    """Normalized event ready for delivery."""
    id: str
    session_id: str
    type: str
    timestamp: datetime
    data: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def create(
        cls,
        session_id: str,
        event_type: Union[str, EventType],
        data: Optional[Dict[str, Any]] = None,
    ) -> "WebhookEvent":
        """Build an event with a fresh id and the current timestamp."""
        if isinstance(event_type, EventType):
            event_type = event_type.value
        return cls(
            id=str(uuid.uuid4()),
            session_id=session_id,
            type=event_type,
            timestamp=_utcnow(),
            data=data if data is not None else {},
        )

    def to_payload(self) -> Dict[str, Any]:
        """Outbound webhook body."""
        return {
            "event": self.type,
            "sessionID": self.session_id,
            "timestamp": int(self.timestamp.timestamp()),
            "data": self.data,
        }

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "session_id": self.session_id,
            "type": self.type,
            "timestamp": self.timestamp.isoformat(),
            "data": self.data,
        }


# =============================================================================
# Delivery
# =============================================================================

class DeliveryStatus(str, Enum):
    """Classification of one delivery attempt."""
    DELIVERED = "delivered"
    RETRYABLE_FAILURE = "retryable_failure"
    PERMANENT_FAILURE = "permanent_failure"


@dataclass
class DeliveryOutcome:
    """
    Result of a single HTTP delivery attempt.

    Used for logging, the recent-outcomes history and test deliveries; never
    persisted.
    """
    status: DeliveryStatus
    status_code: Optional[int] = None
    latency: float = 0.0  # seconds
    reason: Optional[str] = None
    response_body: Optional[str] = None
    attempt: int = 1

    @property
    def success(self) -> bool:
        return self.status == DeliveryStatus.DELIVERED

    @property
    def retryable(self) -> bool:
        return self.status == DeliveryStatus.RETRYABLE_FAILURE

    @classmethod
    def delivered(cls, status_code: int, latency: float, response_body: Optional[str] = None) -> "DeliveryOutcome":
        return cls(DeliveryStatus.DELIVERED, status_code, latency, None, response_body)

    @classmethod
    def retryable_failure(
        cls,
        reason: str,
        latency: float = 0.0,
        status_code: Optional[int] = None,
        response_body: Optional[str] = None,
    ) -> "DeliveryOutcome":
        return cls(DeliveryStatus.RETRYABLE_FAILURE, status_code, latency, reason, response_body)

    @classmethod
    def permanent_failure(
        cls,
        reason: str,
        latency: float = 0.0,
        status_code: Optional[int] = None,
        response_body: Optional[str] = None,
    ) -> "DeliveryOutcome":
        return cls(DeliveryStatus.PERMANENT_FAILURE, status_code, latency, reason, response_body)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "status": self.status.value,
            "status_code": self.status_code,
            "latency_ms": round(self.latency * 1000, 3),
            "reason": self.reason,
            "response_body": self.response_body,
            "attempt": self.attempt,
        }


@dataclass
class DeliveryJob:
    """
    One (event, subscription) pair plus its retry state.

    Attributes:
        event: Event being delivered
        config: Subscription snapshot taken at dispatch time
        attempt: HTTP attempts made so far
        next_eligible_at: Earliest time of the next attempt (set on retry)
        last_error: Reason of the most recent failed attempt
    """
    event: WebhookEvent
    config: WebhookConfig
    attempt: int = 0
    next_eligible_at: Optional[datetime] = None
    last_error: Optional[str] = None
    id: str = field(default_factory=lambda: f"dlv_{uuid.uuid4().hex[:12]}")


# =============================================================================
# Operator views
# =============================================================================

@dataclass(frozen=True)
class WebhookStats:
    """Read-only snapshot of the delivery subsystem."""
    started: bool
    workers: int
    queue_size: int
    queue_capacity: int
    max_retries: int
    retry_delay: float  # seconds

    def to_dict(self) -> Dict[str, Any]:
        return {
            "started": self.started,
            "workers": self.workers,
            "queue_size": self.queue_size,
            "queue_capacity": self.queue_capacity,
            "max_retries": self.max_retries,
            "retry_delay": f"{self.retry_delay:g}s",
        }


@dataclass(frozen=True)
class TestWebhookResult:
    """Outcome of an explicit test delivery."""
    __test__ = False  # not a pytest test class

    success: bool
    status_code: Optional[int]
    latency_ms: float
    error: Optional[str] = None

    @classmethod
    def from_outcome(cls, outcome: DeliveryOutcome) -> "TestWebhookResult":
        return cls(
            success=outcome.success,
            status_code=outcome.status_code,
            latency_ms=round(outcome.latency * 1000, 3),
            error=None if outcome.success else (outcome.reason or "delivery failed"),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "status_code": self.status_code,
            "latency_ms": self.latency_ms,
            "error": self.error,
        }
