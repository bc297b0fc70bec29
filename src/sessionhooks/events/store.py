"""
Webhook Config Store
====================

The dispatch pipeline reads subscriptions through the ``WebhookConfigStore``
protocol. Production deployments back it with their own database layer; the
``InMemoryWebhookConfigStore`` here serves the composition root, scripts and
tests, with optional JSON file persistence.

Lookups always return copies, so callers hold value snapshots that later
mutations of the store do not affect.
"""

from __future__ import annotations

import asyncio
import dataclasses
import json
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, List, Optional, Protocol, Sequence, runtime_checkable
from urllib.parse import urlparse

import aiofiles
from loguru import logger

from sessionhooks.core.exceptions import ValidationError

from .event_types import validate_events
from .models import WebhookConfig


@runtime_checkable
class WebhookConfigStore(Protocol):
    """Read interface the dispatcher and manager depend on."""

    async def get_by_session_and_global(self, session_id: str) -> List[WebhookConfig]:
        """Subscriptions scoped to ``session_id`` followed by all global ones."""
        ...

    async def get_by_id(self, config_id: str) -> Optional[WebhookConfig]:
        ...


def _snapshot(config: WebhookConfig) -> WebhookConfig:
    return dataclasses.replace(config, events=list(config.events))


def _validate(url: str, events: Sequence[str]) -> None:
    if not url:
        raise ValidationError("url", "must not be empty")
    parsed = urlparse(url)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise ValidationError("url", "must be an absolute http(s) URL", url)
    if not events:
        raise ValidationError("events", "webhook must listen to at least one event")
    invalid = validate_events(events)
    if invalid:
        raise ValidationError("events", f"invalid events: {invalid}", invalid)


class InMemoryWebhookConfigStore:
    """
    Insertion-ordered subscription store.

    Example:
        ```python
        store = InMemoryWebhookConfigStore()
        config = await store.register(
            url="https://example.com/hooks",
            events=["Message", "Connected"],
            session_id="session-1",
            secret="shared-secret",
        )
        ```
    """

    def __init__(self, persistence_path: Optional[str] = None):
        self._persistence_path = Path(persistence_path) if persistence_path else None
        self._webhooks: Dict[str, WebhookConfig] = {}
        self._save_lock = asyncio.Lock()

    # ======================================================================
    # WebhookConfigStore protocol
    # ======================================================================

    async def get_by_session_and_global(self, session_id: str) -> List[WebhookConfig]:
        scoped = [w for w in self._webhooks.values() if w.session_id == session_id]
        global_ = [w for w in self._webhooks.values() if w.is_global()]
        return [_snapshot(w) for w in scoped + global_]

    async def get_by_id(self, config_id: str) -> Optional[WebhookConfig]:
        config = self._webhooks.get(config_id)
        return _snapshot(config) if config else None

    # ======================================================================
    # Management
    # ======================================================================

    async def register(
        self,
        url: str,
        events: Sequence[str],
        session_id: Optional[str] = None,
        secret: str = "",
        enabled: bool = True,
    ) -> WebhookConfig:
        """
        Register a new subscription.

        Raises:
            ValidationError: If the URL is not absolute http(s) or the event
                list is empty or names unknown types.
        """
        events = [str(getattr(e, "value", e)) for e in events]
        _validate(url, events)

        config = WebhookConfig(
            id=str(uuid.uuid4()),
            url=url,
            session_id=session_id,
            secret=secret or "",
            events=events,
            enabled=enabled,
        )
        self._webhooks[config.id] = config
        await self._save()

        logger.info(
            f"[WebhookStore] Registered webhook {config.id} to {url} "
            f"(session={session_id or 'global'}, events={events})"
        )
        return _snapshot(config)

    async def put(self, config: WebhookConfig) -> WebhookConfig:
        """Insert or replace a prebuilt config, keeping its id."""
        _validate(config.url, config.events)
        self._webhooks[config.id] = _snapshot(config)
        await self._save()
        return _snapshot(config)

    async def update(
        self,
        config_id: str,
        url: Optional[str] = None,
        events: Optional[Sequence[str]] = None,
        secret: Optional[str] = None,
        enabled: Optional[bool] = None,
    ) -> Optional[WebhookConfig]:
        """Update fields of a subscription. Returns None if the id is unknown."""
        current = self._webhooks.get(config_id)
        if current is None:
            return None

        new_events = [str(getattr(e, "value", e)) for e in events] if events is not None else current.events
        new_url = url if url is not None else current.url
        _validate(new_url, new_events)

        updated = dataclasses.replace(
            current,
            url=new_url,
            events=list(new_events),
            secret=secret if secret is not None else current.secret,
            enabled=enabled if enabled is not None else current.enabled,
            updated_at=datetime.now(timezone.utc),
        )
        self._webhooks[config_id] = updated
        await self._save()

        logger.info(f"[WebhookStore] Updated webhook {config_id}")
        return _snapshot(updated)

    async def delete(self, config_id: str) -> bool:
        if config_id not in self._webhooks:
            return False
        del self._webhooks[config_id]
        await self._save()
        logger.info(f"[WebhookStore] Deleted webhook {config_id}")
        return True

    async def list_webhooks(self, enabled_only: bool = False) -> List[WebhookConfig]:
        webhooks = list(self._webhooks.values())
        if enabled_only:
            webhooks = [w for w in webhooks if w.enabled]
        return [_snapshot(w) for w in webhooks]

    def __len__(self) -> int:
        return len(self._webhooks)

    # ======================================================================
    # Persistence
    # ======================================================================

    async def load(self) -> int:
        """Load subscriptions from disk. Returns the number loaded."""
        if not self._persistence_path or not self._persistence_path.exists():
            return 0

        try:
            async with aiofiles.open(self._persistence_path, "r") as f:
                content = await f.read()
            data = json.loads(content)

            for webhook_data in data.get("webhooks", []):
                config = WebhookConfig.from_dict(webhook_data)
                self._webhooks[config.id] = config

        except (OSError, ValueError, KeyError) as e:
            logger.error(f"[WebhookStore] Failed to load webhooks: {e}")
            return 0

        logger.info(
            f"[WebhookStore] Loaded {len(self._webhooks)} webhooks "
            f"from {self._persistence_path}"
        )
        return len(self._webhooks)

    async def _save(self) -> None:
        if not self._persistence_path:
            return

        async with self._save_lock:
            try:
                self._persistence_path.parent.mkdir(parents=True, exist_ok=True)

                data = {
                    "version": "1.0",
                    "updated_at": datetime.now(timezone.utc).isoformat(),
                    "webhooks": [
                        w.to_dict(scrub_secret=False)
                        for w in self._webhooks.values()
                    ],
                }

                async with aiofiles.open(self._persistence_path, "w") as f:
                    await f.write(json.dumps(data, indent=2))

            except OSError as e:
                logger.error(f"[WebhookStore] Failed to save webhooks: {e}")
