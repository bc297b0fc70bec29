"""
Tests for subscription matching.
"""

from sessionhooks.events import EventType, WebhookConfig, match_subscriptions


def make_config(config_id, events, session_id=None, enabled=True):
    return WebhookConfig(
        id=config_id,
        url=f"https://example.com/{config_id}",
        session_id=session_id,
        events=list(events),
        enabled=enabled,
    )


class TestMatchSubscriptions:

    def test_global_wildcard_matches_any_session(self):
        configs = [make_config("g", ["All"])]
        matches = match_subscriptions("Connected", "abc", configs)
        assert [c.id for c in matches] == ["g"]

    def test_scoped_config_ignores_other_event_types(self):
        configs = [make_config("s", ["Message"], session_id="abc")]
        assert match_subscriptions("Presence", "abc", configs) == []

    def test_scoped_config_ignores_other_sessions(self):
        configs = [make_config("s", ["Message"], session_id="abc")]
        assert match_subscriptions("Message", "xyz", configs) == []
        assert len(match_subscriptions("Message", "abc", configs)) == 1

    def test_disabled_config_never_matches(self):
        configs = [
            make_config("off", ["All"], enabled=False),
            make_config("off-scoped", ["Message"], session_id="abc", enabled=False),
        ]
        assert match_subscriptions("Message", "abc", configs) == []

    def test_explicit_event_list(self):
        configs = [make_config("c", ["Message", "Receipt"])]
        assert len(match_subscriptions("Receipt", "abc", configs)) == 1
        assert match_subscriptions("Presence", "abc", configs) == []

    def test_enum_event_type(self):
        configs = [make_config("c", ["Message"])]
        assert len(match_subscriptions(EventType.MESSAGE, "abc", configs)) == 1

    def test_order_preserved_and_duplicates_removed(self):
        scoped = make_config("scoped", ["Message"], session_id="abc")
        global_a = make_config("global-a", ["All"])
        global_b = make_config("global-b", ["Message"])
        configs = [scoped, global_a, global_b, global_a]

        matches = match_subscriptions("Message", "abc", configs)

        assert [c.id for c in matches] == ["scoped", "global-a", "global-b"]

    def test_empty_input(self):
        assert match_subscriptions("Message", "abc", []) == []

    def test_input_is_not_mutated(self):
        configs = [make_config("a", ["Message"]), make_config("b", ["Presence"])]
        match_subscriptions("Message", "abc", configs)
        assert [c.id for c in configs] == ["a", "b"]
