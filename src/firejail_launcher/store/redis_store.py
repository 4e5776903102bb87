"""Policy store persisted in Redis.

Scalars live under plain string keys, the override map under a Redis
hash.  Every write publishes the changed key on a pub/sub channel so that
other processes sharing the store (a preferences tool, a second session)
see the change on their next :meth:`RedisPolicyStore.poll_changes`.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from uuid import uuid4

import redis

from firejail_launcher.errors import ConfigurationUnavailable
from firejail_launcher.store.base import ChangeCallback, PolicyStore

logger = logging.getLogger(__name__)

DEFAULT_KEY_PREFIX = "firejail:policy:"


def _text(raw: bytes | str) -> str:
    if not isinstance(raw, bytes):
        return raw
    try:
        return raw.decode()
    except UnicodeDecodeError as exc:
        raise ConfigurationUnavailable(f"Undecodable value {raw!r}: {exc}") from exc


def _is_uint(text: str) -> bool:
    # str.isdigit() also accepts superscripts and other digits int() rejects.
    return text.isascii() and text.isdigit()


class RedisPolicyStore(PolicyStore):
    """Redis-backed :class:`PolicyStore`.

    Parameters
    ----------
    redis_client:
        A synchronous ``redis.Redis`` instance.  The launch path runs on the
        host's UI thread, so the blocking client is used and every call is a
        single short round trip.
    key_prefix:
        Namespace for all keys and the change channel.
    """

    def __init__(
        self,
        redis_client: redis.Redis,
        key_prefix: str = DEFAULT_KEY_PREFIX,
    ) -> None:
        super().__init__()
        self._redis = redis_client
        self._prefix = key_prefix
        self._channel = f"{key_prefix}changed"
        # Tags our own publications so poll_changes() does not replay them.
        self._origin = uuid4().hex
        self._pubsub: redis.client.PubSub | None = None

    @classmethod
    def from_url(cls, url: str, key_prefix: str = DEFAULT_KEY_PREFIX) -> RedisPolicyStore:
        return cls(redis.Redis.from_url(url), key_prefix=key_prefix)

    @property
    def channel(self) -> str:
        return self._channel

    def _key(self, key: str) -> str:
        return f"{self._prefix}{key}"

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def _get(self, key: str) -> str:
        try:
            raw = self._redis.get(self._key(key))
        except redis.RedisError as exc:
            raise ConfigurationUnavailable(f"Cannot read {key!r}: {exc}") from exc
        if raw is None:
            raise ConfigurationUnavailable(f"No value stored for {key!r}")
        return _text(raw)

    def get_boolean(self, key: str) -> bool:
        value = self._get(key)
        if value not in ("0", "1"):
            raise ConfigurationUnavailable(f"{key!r} holds {value!r}, not a boolean")
        return value == "1"

    def get_uint(self, key: str) -> int:
        value = self._get(key)
        if not _is_uint(value):
            raise ConfigurationUnavailable(
                f"{key!r} holds {value!r}, not an unsigned integer"
            )
        return int(value)

    def get_mapping(self, key: str) -> dict[str, int]:
        try:
            raw: dict = self._redis.hgetall(self._key(key))
        except redis.RedisError as exc:
            # Includes WRONGTYPE when the key is not a hash.
            raise ConfigurationUnavailable(f"Cannot read {key!r}: {exc}") from exc

        mapping: dict[str, int] = {}
        for field, value in raw.items():
            text = _text(value)
            if not _is_uint(text):
                raise ConfigurationUnavailable(
                    f"{key!r} entry {_text(field)!r} holds {text!r}"
                )
            mapping[_text(field)] = int(text)
        return mapping

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def _publish_and_notify(self, pipe: redis.client.Pipeline, key: str) -> None:
        pipe.publish(self._channel, f"{self._origin}:{key}")
        try:
            pipe.execute()
        except redis.RedisError as exc:
            raise ConfigurationUnavailable(f"Cannot write {key!r}: {exc}") from exc
        logger.debug("Stored %s in Redis", key)
        self._notify(key)

    def set_boolean(self, key: str, value: bool) -> None:
        pipe = self._redis.pipeline()
        pipe.set(self._key(key), "1" if value else "0")
        self._publish_and_notify(pipe, key)

    def set_uint(self, key: str, value: int) -> None:
        if value < 0:
            raise ValueError(f"{key!r} must be unsigned, got {value}")
        pipe = self._redis.pipeline()
        pipe.set(self._key(key), str(int(value)))
        self._publish_and_notify(pipe, key)

    def set_mapping(self, key: str, value: Mapping[str, int]) -> None:
        pipe = self._redis.pipeline()
        pipe.delete(self._key(key))
        if value:
            pipe.hset(self._key(key), mapping={k: str(int(v)) for k, v in value.items()})
        self._publish_and_notify(pipe, key)

    # ------------------------------------------------------------------
    # Change notification
    # ------------------------------------------------------------------

    def connect(self, key: str, callback: ChangeCallback) -> int:
        if self._pubsub is None:
            pubsub = self._redis.pubsub()
            try:
                pubsub.subscribe(self._channel)
            except redis.RedisError as exc:
                # Local writes still notify; remote ones are missed until
                # a later connect() subscribes successfully.
                logger.warning("Cannot subscribe to %s: %s", self._channel, exc)
                pubsub.close()
            else:
                self._pubsub = pubsub
                logger.info("Listening for policy changes on %s", self._channel)
        return super().connect(key, callback)

    def poll_changes(self) -> int:
        """Dispatch changes published by other processes.

        Non-blocking: drains whatever is already queued on the channel and
        returns.  Meant to be called from the host's event loop.  Returns
        the number of change notifications dispatched.
        """
        if self._pubsub is None:
            return 0

        dispatched = 0
        while True:
            try:
                message = self._pubsub.get_message(timeout=0.0)
            except redis.RedisError as exc:
                logger.warning("Polling %s failed: %s", self._channel, exc)
                break
            if message is None:
                break
            if message.get("type") != "message":
                continue

            try:
                payload = _text(message["data"])
            except ConfigurationUnavailable as exc:
                logger.warning("Ignoring message on %s: %s", self._channel, exc)
                continue
            origin, _, key = payload.partition(":")
            if not key or origin == self._origin:
                continue
            self._notify(key)
            dispatched += 1
        return dispatched

    def close(self) -> None:
        """Release the pub/sub subscription and the connection."""
        if self._pubsub is not None:
            self._pubsub.close()
            self._pubsub = None
        self._redis.close()
