"""
Tests for the in-memory webhook config store.
"""

import json

import pytest

from sessionhooks.core.exceptions import ValidationError
from sessionhooks.events import InMemoryWebhookConfigStore, WebhookConfig, WebhookConfigStore


@pytest.fixture
def store():
    return InMemoryWebhookConfigStore()


class TestRegister:

    async def test_register_returns_config(self, store):
        config = await store.register(
            url="https://example.com/hook",
            events=["Message"],
            session_id="abc",
            secret="s",
        )
        assert config.id
        assert config.session_id == "abc"
        assert config.enabled
        assert len(store) == 1

    @pytest.mark.parametrize("url", ["", "ftp://example.com", "example.com/hook", "http://"])
    async def test_invalid_url_rejected(self, store, url):
        with pytest.raises(ValidationError):
            await store.register(url=url, events=["Message"])

    async def test_empty_events_rejected(self, store):
        with pytest.raises(ValidationError):
            await store.register(url="https://example.com", events=[])

    async def test_unknown_events_rejected(self, store):
        with pytest.raises(ValidationError) as exc_info:
            await store.register(url="https://example.com", events=["Message", "Bogus"])
        assert exc_info.value.field == "events"


class TestLookups:

    async def test_protocol_conformance(self, store):
        assert isinstance(store, WebhookConfigStore)

    async def test_session_and_global(self, store):
        scoped = await store.register(url="https://a.example", events=["All"], session_id="abc")
        await store.register(url="https://b.example", events=["All"], session_id="other")
        global_ = await store.register(url="https://c.example", events=["All"])

        configs = await store.get_by_session_and_global("abc")

        assert [c.id for c in configs] == [scoped.id, global_.id]

    async def test_get_by_id(self, store):
        config = await store.register(url="https://a.example", events=["Message"])
        assert (await store.get_by_id(config.id)).url == "https://a.example"
        assert await store.get_by_id("missing") is None

    async def test_returns_snapshots(self, store):
        config = await store.register(url="https://a.example", events=["Message"])

        snapshot = await store.get_by_id(config.id)
        snapshot.events.append("Presence")
        snapshot.enabled = False

        fresh = await store.get_by_id(config.id)
        assert fresh.events == ["Message"]
        assert fresh.enabled


class TestMutations:

    async def test_update(self, store):
        config = await store.register(url="https://a.example", events=["Message"])

        updated = await store.update(config.id, events=["Presence"], enabled=False)

        assert updated.events == ["Presence"]
        assert not updated.enabled
        assert updated.url == "https://a.example"
        assert await store.update("missing", enabled=False) is None

    async def test_update_validates(self, store):
        config = await store.register(url="https://a.example", events=["Message"])
        with pytest.raises(ValidationError):
            await store.update(config.id, url="not a url")

    async def test_delete_and_list(self, store):
        a = await store.register(url="https://a.example", events=["Message"])
        await store.register(url="https://b.example", events=["Message"], enabled=False)

        assert len(await store.list_webhooks()) == 2
        assert len(await store.list_webhooks(enabled_only=True)) == 1

        assert await store.delete(a.id)
        assert not await store.delete(a.id)
        assert len(store) == 1

    async def test_put_keeps_id_and_replaces(self, store):
        config = WebhookConfig(
            id="hook-1", url="https://a.example", session_id="abc", events=["Message"],
        )

        stored = await store.put(config)
        config.events.append("Presence")

        assert stored.id == "hook-1"
        fetched = await store.get_by_id("hook-1")
        assert fetched.events == ["Message"]
        assert fetched.session_id == "abc"

        await store.put(WebhookConfig(id="hook-1", url="https://b.example", events=["All"]))

        assert len(store) == 1
        replaced = await store.get_by_id("hook-1")
        assert replaced.url == "https://b.example"
        assert replaced.is_global()

    async def test_put_validates(self, store):
        with pytest.raises(ValidationError):
            await store.put(WebhookConfig(id="hook-1", url="ftp://a.example", events=["Message"]))
        assert len(store) == 0


class TestPersistence:

    async def test_save_and_load(self, tmp_path):
        path = tmp_path / "webhooks" / "webhooks.json"
        store = InMemoryWebhookConfigStore(str(path))
        config = await store.register(
            url="https://a.example", events=["Message"], session_id="abc", secret="s",
        )

        data = json.loads(path.read_text())
        assert data["webhooks"][0]["id"] == config.id
        assert data["webhooks"][0]["secret"] == "s"

        reloaded = InMemoryWebhookConfigStore(str(path))
        assert await reloaded.load() == 1
        restored = await reloaded.get_by_id(config.id)
        assert restored.secret == "s"
        assert restored.session_id == "abc"

    async def test_load_missing_file(self, tmp_path):
        store = InMemoryWebhookConfigStore(str(tmp_path / "missing.json"))
        assert await store.load() == 0

    async def test_load_corrupt_file(self, tmp_path):
        path = tmp_path / "webhooks.json"
        path.write_text("{not json")
        store = InMemoryWebhookConfigStore(str(path))
        assert await store.load() == 0
