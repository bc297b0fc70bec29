"""Subscription matching for dispatched events."""

from __future__ import annotations

from typing import Iterable, List, Set, Union

from .event_types import EventType
from .models import WebhookConfig


def match_subscriptions(
    event_type: Union[str, EventType],
    session_id: str,
    configs: Iterable[WebhookConfig],
) -> List[WebhookConfig]:
    """
    Return the subscriptions that should receive an event.

    A config matches when it is enabled, is global or scoped to
    ``session_id``, and lists ``event_type`` or the "All" wildcard.
    Input order is preserved and each config id appears at most once.
    """
    if isinstance(event_type, EventType):
        event_type = event_type.value

    matches: List[WebhookConfig] = []
    seen: Set[str] = set()

    for config in configs:
        if not config.enabled:
            continue
        if not config.is_global() and config.session_id != session_id:
            continue
        if not config.has_event(event_type):
            continue
        if config.id in seen:
            continue
        seen.add(config.id)
        matches.append(config)

    return matches
