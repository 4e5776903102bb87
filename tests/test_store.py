"""Tests for policy stores, override editing and snapshot loading."""

from __future__ import annotations

from unittest import mock

import pytest
import redis

from conftest import RecordingHandler
from firejail_launcher.config import Settings
from firejail_launcher.context import LauncherContext
from firejail_launcher.errors import ConfigurationUnavailable
from firejail_launcher.interceptor import ShellAppLaunch
from firejail_launcher.models import BYPASS, IsolationLevel, PolicyState
from firejail_launcher.store import (
    ENABLED_KEY,
    LEVEL_KEY,
    OVERRIDES_KEY,
    MemoryPolicyStore,
    RedisPolicyStore,
    clear_app_override,
    create_store,
    load_overrides,
    load_policy_state,
    set_app_override,
)


# ======================================================================
# MemoryPolicyStore
# ======================================================================


class TestMemoryPolicyStore:
    def test_default_values(self, store):
        assert store.get_boolean(ENABLED_KEY) is True
        assert store.get_uint(LEVEL_KEY) == 0
        assert store.get_mapping(OVERRIDES_KEY) == {}

    def test_missing_key_unavailable(self):
        with pytest.raises(ConfigurationUnavailable):
            MemoryPolicyStore({}).get_boolean(ENABLED_KEY)

    def test_wrong_type_unavailable(self):
        store = MemoryPolicyStore({ENABLED_KEY: "yes", LEVEL_KEY: -1, OVERRIDES_KEY: [1]})
        with pytest.raises(ConfigurationUnavailable):
            store.get_boolean(ENABLED_KEY)
        with pytest.raises(ConfigurationUnavailable):
            store.get_uint(LEVEL_KEY)
        with pytest.raises(ConfigurationUnavailable):
            store.get_mapping(OVERRIDES_KEY)

    def test_set_uint_rejects_negative(self, store):
        with pytest.raises(ValueError):
            store.set_uint(LEVEL_KEY, -1)

    def test_initial_values_are_copied(self):
        overrides = {"org.gnome.gedit": 1}
        store = MemoryPolicyStore({OVERRIDES_KEY: overrides})
        overrides["org.gnome.gedit"] = 2
        assert store.get_mapping(OVERRIDES_KEY) == {"org.gnome.gedit": 1}

    def test_notifies_only_subscribers_of_key(self, store):
        seen: list[str] = []
        store.connect(LEVEL_KEY, seen.append)
        store.set_boolean(ENABLED_KEY, False)
        store.set_uint(LEVEL_KEY, 2)
        assert seen == [LEVEL_KEY]

    def test_disconnect(self, store):
        seen: list[str] = []
        handler_id = store.connect(ENABLED_KEY, seen.append)
        store.disconnect(handler_id)
        store.disconnect(handler_id)  # unknown id is a no-op
        store.set_boolean(ENABLED_KEY, False)
        assert seen == []

    def test_failing_subscriber_does_not_stop_others(self, store, caplog):
        seen: list[str] = []

        def broken(_key: str) -> None:
            raise RuntimeError("boom")

        store.connect(ENABLED_KEY, broken)
        store.connect(ENABLED_KEY, seen.append)
        store.set_boolean(ENABLED_KEY, False)
        assert seen == [ENABLED_KEY]
        assert "raised" in caplog.text


class TestOverrideEditing:
    def test_set_level_and_bypass(self, store):
        set_app_override(store, "org.gnome.gedit", IsolationLevel.PARANOID)
        set_app_override(store, "org.mozilla.firefox", BYPASS)
        assert store.get_mapping(OVERRIDES_KEY) == {
            "org.gnome.gedit": 2,
            "org.mozilla.firefox": 99,
        }

    def test_clear(self, store):
        set_app_override(store, "org.gnome.gedit", IsolationLevel.STRICT)
        clear_app_override(store, "org.gnome.gedit")
        assert store.get_mapping(OVERRIDES_KEY) == {}

    def test_clear_missing_does_not_notify(self, store):
        seen: list[str] = []
        store.connect(OVERRIDES_KEY, seen.append)
        clear_app_override(store, "org.gnome.gedit")
        assert seen == []

    def test_single_notification_per_edit(self, store):
        seen: list[str] = []
        store.connect(OVERRIDES_KEY, seen.append)
        set_app_override(store, "org.gnome.gedit", IsolationLevel.STRICT)
        assert seen == [OVERRIDES_KEY]


# ======================================================================
# Loading
# ======================================================================


class TestLoadPolicyState:
    def test_reads_all_keys(self):
        store = MemoryPolicyStore(
            {
                ENABLED_KEY: False,
                LEVEL_KEY: 2,
                OVERRIDES_KEY: {"org.mozilla.firefox": 99, "org.gnome.gedit": 1},
            }
        )
        state = load_policy_state(store)
        assert state == PolicyState(
            enabled_globally=False,
            default_level=IsolationLevel.PARANOID,
            overrides={"org.mozilla.firefox": BYPASS, "org.gnome.gedit": IsolationLevel.STRICT},
        )

    def test_unavailable_store_falls_back_to_defaults(self, caplog):
        with caplog.at_level("INFO"):
            state = load_policy_state(MemoryPolicyStore({}))
        assert state == PolicyState.defaults()
        assert "using default policy" in caplog.text

    def test_unknown_level_degrades_to_basic(self):
        store = MemoryPolicyStore({ENABLED_KEY: True, LEVEL_KEY: 7, OVERRIDES_KEY: {}})
        assert load_policy_state(store).default_level is IsolationLevel.BASIC

    def test_malformed_overrides_become_empty(self):
        store = MemoryPolicyStore({ENABLED_KEY: True, LEVEL_KEY: 1, OVERRIDES_KEY: "garbage"})
        state = load_policy_state(store)
        assert state.overrides == {}
        assert state.default_level is IsolationLevel.STRICT

    def test_missing_overrides_become_empty(self):
        store = MemoryPolicyStore({ENABLED_KEY: True, LEVEL_KEY: 0})
        assert load_overrides(store) == {}

    def test_invalid_entries_dropped_individually(self, caplog):
        store = MemoryPolicyStore(
            {OVERRIDES_KEY: {"org.gnome.gedit": 5, "org.mozilla.firefox": 99, "x": "1"}}
        )
        assert load_overrides(store) == {"org.mozilla.firefox": BYPASS}
        assert "Dropping override for org.gnome.gedit" in caplog.text


# ======================================================================
# RedisPolicyStore
# ======================================================================


@pytest.fixture
def redis_client() -> mock.MagicMock:
    return mock.MagicMock(spec=redis.Redis)


@pytest.fixture
def redis_store(redis_client) -> RedisPolicyStore:
    return RedisPolicyStore(redis_client, key_prefix="test:")


class TestRedisPolicyStoreReads:
    def test_get_boolean(self, redis_store, redis_client):
        redis_client.get.return_value = b"1"
        assert redis_store.get_boolean(ENABLED_KEY) is True
        redis_client.get.assert_called_with("test:firejail-enabled")

    def test_get_uint(self, redis_store, redis_client):
        redis_client.get.return_value = b"2"
        assert redis_store.get_uint(LEVEL_KEY) == 2

    def test_missing_key_unavailable(self, redis_store, redis_client):
        redis_client.get.return_value = None
        with pytest.raises(ConfigurationUnavailable):
            redis_store.get_boolean(ENABLED_KEY)

    def test_garbage_values_unavailable(self, redis_store, redis_client):
        redis_client.get.return_value = b"maybe"
        with pytest.raises(ConfigurationUnavailable):
            redis_store.get_boolean(ENABLED_KEY)
        with pytest.raises(ConfigurationUnavailable):
            redis_store.get_uint(LEVEL_KEY)

    def test_connection_error_unavailable(self, redis_store, redis_client):
        redis_client.get.side_effect = redis.ConnectionError("refused")
        with pytest.raises(ConfigurationUnavailable):
            redis_store.get_uint(LEVEL_KEY)

    def test_get_mapping(self, redis_store, redis_client):
        redis_client.hgetall.return_value = {b"org.mozilla.firefox": b"99", b"org.gnome.gedit": b"1"}
        assert redis_store.get_mapping(OVERRIDES_KEY) == {
            "org.mozilla.firefox": 99,
            "org.gnome.gedit": 1,
        }
        redis_client.hgetall.assert_called_with("test:app-overrides")

    def test_get_mapping_bad_entry(self, redis_store, redis_client):
        redis_client.hgetall.return_value = {b"org.gnome.gedit": b"high"}
        with pytest.raises(ConfigurationUnavailable):
            redis_store.get_mapping(OVERRIDES_KEY)

    def test_load_policy_state_with_redis_down(self, redis_store, redis_client):
        redis_client.get.side_effect = redis.ConnectionError("refused")
        assert load_policy_state(redis_store) == PolicyState.defaults()


class TestRedisPolicyStoreMalformedData:
    def test_undecodable_scalar_unavailable(self, redis_store, redis_client):
        redis_client.get.return_value = b"\xff"
        with pytest.raises(ConfigurationUnavailable):
            redis_store.get_boolean(ENABLED_KEY)

    @pytest.mark.parametrize("raw", ["²".encode(), "١".encode(), b"-1", b""])
    def test_non_ascii_digits_unavailable(self, redis_store, redis_client, raw):
        redis_client.get.return_value = raw
        with pytest.raises(ConfigurationUnavailable):
            redis_store.get_uint(LEVEL_KEY)

    @pytest.mark.parametrize(
        "raw",
        [
            {b"org.gnome.gedit": b"\xff\xfe"},
            {b"\xff": b"1"},
            {b"org.gnome.gedit": "²".encode()},
        ],
    )
    def test_malformed_hash_unavailable(self, redis_store, redis_client, raw):
        redis_client.hgetall.return_value = raw
        with pytest.raises(ConfigurationUnavailable):
            redis_store.get_mapping(OVERRIDES_KEY)

    def test_undecodable_scalar_falls_back_to_defaults(self, redis_store, redis_client):
        redis_client.get.return_value = b"\xff"
        assert load_policy_state(redis_store) == PolicyState.defaults()

    def test_malformed_overrides_become_empty(self, redis_store, redis_client):
        redis_client.get.side_effect = [b"1", b"2"]
        redis_client.hgetall.return_value = {b"org.gnome.gedit": "²".encode()}
        state = load_policy_state(redis_store)
        assert state.default_level is IsolationLevel.PARANOID
        assert state.overrides == {}

    def test_enable_survives_undecodable_store(self, redis_store, redis_client, spawner):
        redis_client.get.return_value = b"\xff"
        redis_client.hgetall.return_value = {b"org.gnome.gedit": b"\xff\xfe"}
        original = RecordingHandler()
        entry_point = ShellAppLaunch(original)

        with LauncherContext(redis_store, [entry_point], spawner=spawner) as context:
            assert context.state == PolicyState.defaults()
            assert entry_point.handler is not original


class TestRedisPolicyStoreWrites:
    def test_set_boolean_writes_and_publishes(self, redis_store, redis_client):
        pipe = redis_client.pipeline.return_value
        seen: list[str] = []
        redis_store.connect(ENABLED_KEY, seen.append)

        redis_store.set_boolean(ENABLED_KEY, False)

        pipe.set.assert_called_once_with("test:firejail-enabled", "0")
        channel, payload = pipe.publish.call_args.args
        assert channel == "test:changed"
        assert payload.endswith(":firejail-enabled")
        pipe.execute.assert_called_once()
        assert seen == [ENABLED_KEY]

    def test_set_mapping_replaces_hash(self, redis_store, redis_client):
        pipe = redis_client.pipeline.return_value
        redis_store.set_mapping(OVERRIDES_KEY, {"org.gnome.gedit": 2})
        pipe.delete.assert_called_once_with("test:app-overrides")
        pipe.hset.assert_called_once_with("test:app-overrides", mapping={"org.gnome.gedit": "2"})

    def test_set_empty_mapping_only_deletes(self, redis_store, redis_client):
        pipe = redis_client.pipeline.return_value
        redis_store.set_mapping(OVERRIDES_KEY, {})
        pipe.delete.assert_called_once()
        pipe.hset.assert_not_called()

    def test_write_failure_unavailable_and_no_notify(self, redis_store, redis_client):
        redis_client.pipeline.return_value.execute.side_effect = redis.ConnectionError("down")
        seen: list[str] = []
        redis_store.connect(LEVEL_KEY, seen.append)
        with pytest.raises(ConfigurationUnavailable):
            redis_store.set_uint(LEVEL_KEY, 1)
        assert seen == []


class TestRedisPolicyStoreChanges:
    def _messages(self, redis_client, *messages):
        pubsub = redis_client.pubsub.return_value
        pubsub.get_message.side_effect = [*messages, None]
        return pubsub

    def test_connect_subscribes_once(self, redis_store, redis_client):
        redis_store.connect(ENABLED_KEY, lambda key: None)
        redis_store.connect(LEVEL_KEY, lambda key: None)
        redis_client.pubsub.return_value.subscribe.assert_called_once_with("test:changed")

    def test_poll_without_subscribers_is_noop(self, redis_store, redis_client):
        assert redis_store.poll_changes() == 0
        redis_client.pubsub.assert_not_called()

    def test_poll_dispatches_remote_changes(self, redis_store, redis_client):
        seen: list[str] = []
        redis_store.connect(LEVEL_KEY, seen.append)
        self._messages(
            redis_client,
            {"type": "subscribe", "data": 1},
            {"type": "message", "data": b"other-process:sandbox-level"},
        )
        assert redis_store.poll_changes() == 1
        assert seen == [LEVEL_KEY]

    def test_poll_skips_own_publications(self, redis_store, redis_client):
        seen: list[str] = []
        redis_store.connect(ENABLED_KEY, seen.append)
        redis_store.set_boolean(ENABLED_KEY, True)
        own_payload = redis_client.pipeline.return_value.publish.call_args.args[1]
        self._messages(redis_client, {"type": "message", "data": own_payload.encode()})

        assert redis_store.poll_changes() == 0
        assert seen == [ENABLED_KEY]  # only the local notification

    def test_poll_survives_connection_loss(self, redis_store, redis_client):
        redis_store.connect(ENABLED_KEY, lambda key: None)
        redis_client.pubsub.return_value.get_message.side_effect = redis.ConnectionError("gone")
        assert redis_store.poll_changes() == 0

    def test_subscribe_failure_keeps_local_notifications(self, redis_store, redis_client):
        redis_client.pubsub.return_value.subscribe.side_effect = redis.ConnectionError("down")
        seen: list[str] = []
        redis_store.connect(ENABLED_KEY, seen.append)
        assert redis_store.poll_changes() == 0
        redis_store.set_boolean(ENABLED_KEY, False)
        assert seen == [ENABLED_KEY]

    def test_poll_skips_undecodable_payload(self, redis_store, redis_client, caplog):
        seen: list[str] = []
        redis_store.connect(LEVEL_KEY, seen.append)
        self._messages(
            redis_client,
            {"type": "message", "data": b"\xff\xfe"},
            {"type": "message", "data": b"other-process:sandbox-level"},
        )
        assert redis_store.poll_changes() == 1
        assert seen == [LEVEL_KEY]
        assert "Ignoring message" in caplog.text

    def test_close(self, redis_store, redis_client):
        redis_store.connect(ENABLED_KEY, lambda key: None)
        pubsub = redis_client.pubsub.return_value
        redis_store.close()
        pubsub.close.assert_called_once()
        redis_client.close.assert_called_once()


# ======================================================================
# create_store factory
# ======================================================================


class TestCreateStore:
    def test_memory_seeded_from_settings(self):
        store = create_store(Settings(store_backend="memory", default_enabled=False, default_level=2))
        assert isinstance(store, MemoryPolicyStore)
        assert store.get_boolean(ENABLED_KEY) is False
        assert store.get_uint(LEVEL_KEY) == 2

    def test_redis(self):
        with mock.patch("redis.Redis.from_url") as from_url:
            store = create_store(
                Settings(store_backend="redis", redis_url="redis://cache:6379/1", redis_key_prefix="p:")
            )
        assert isinstance(store, RedisPolicyStore)
        assert store.channel == "p:changed"
        from_url.assert_called_once_with("redis://cache:6379/1")

    def test_unknown_backend(self):
        with pytest.raises(ValueError, match="Unsupported store backend"):
            create_store(Settings(store_backend="gsettings"))
