"""
Dependency Injection Container
==============================
Builds and wires the webhook pipeline.
The manager is constructed explicitly and passed to whoever needs it;
there is no process-wide instance.
"""

from dataclasses import dataclass
from typing import Optional

from sessionhooks.core.config import SessionHooksConfig
from sessionhooks.core.logging_config import configure_logging
from sessionhooks.events.manager import WebhookManager
from sessionhooks.events.store import InMemoryWebhookConfigStore, WebhookConfigStore


@dataclass
class Container:
    """
    Container holding all wired application dependencies.
    """
    config: SessionHooksConfig
    store: WebhookConfigStore
    manager: WebhookManager


def build_container(
    config: SessionHooksConfig,
    store: Optional[WebhookConfigStore] = None,
    setup_logging: bool = True,
) -> Container:
    """
    Build and wire all application dependencies.

    Args:
        config: Validated SessionHooksConfig instance.
        store: Subscription store. Defaults to an in-memory store persisted
            to ``config.store.persistence_path`` when one is configured; call
            its ``load()`` before starting the manager.
        setup_logging: Apply ``config.logging`` to loguru. Off for tests that
            capture log records themselves.

    Returns:
        Container with the manager constructed but not started.
    """
    if setup_logging:
        configure_logging(
            config.logging.level,
            config.logging.json_format,
            sink=config.logging.sink,
        )

    if store is None:
        store = InMemoryWebhookConfigStore(config.store.persistence_path)

    manager = WebhookManager(store, config.delivery)

    return Container(config=config, store=store, manager=manager)


def build_test_container(config: Optional[SessionHooksConfig] = None) -> Container:
    """
    Build a container for testing around a fresh in-memory store.

    Args:
        config: Optional test config. If None, uses defaults (no YAML, no env).
    """
    if config is None:
        config = SessionHooksConfig()

    return build_container(config, InMemoryWebhookConfigStore(), setup_logging=False)
