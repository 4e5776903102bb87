"""Abstract policy store interface and shared helpers."""

from __future__ import annotations

import itertools
import logging
from abc import ABC, abstractmethod
from collections.abc import Callable, Mapping

from firejail_launcher.models.enums import OverrideLevel, encode_override_value

logger = logging.getLogger(__name__)

ENABLED_KEY = "firejail-enabled"
LEVEL_KEY = "sandbox-level"
OVERRIDES_KEY = "app-overrides"

ALL_KEYS: tuple[str, ...] = (ENABLED_KEY, LEVEL_KEY, OVERRIDES_KEY)

ChangeCallback = Callable[[str], None]


class PolicyStore(ABC):
    """Key-value store holding the sandboxing policy.

    Mirrors a desktop settings schema: a boolean (global enable), an
    unsigned integer (default level) and a string-keyed mapping of unsigned
    integers (per-application overrides), plus per-key change notification.
    The launch core depends only on this contract, never on a particular
    persistence mechanism.

    Readers raise :class:`~firejail_launcher.errors.ConfigurationUnavailable`
    when a value cannot be read.
    """

    def __init__(self) -> None:
        self._handler_ids = itertools.count(1)
        self._subscribers: dict[int, tuple[str, ChangeCallback]] = {}

    # ------------------------------------------------------------------
    # Values
    # ------------------------------------------------------------------

    @abstractmethod
    def get_boolean(self, key: str) -> bool: ...

    @abstractmethod
    def set_boolean(self, key: str, value: bool) -> None: ...

    @abstractmethod
    def get_uint(self, key: str) -> int: ...

    @abstractmethod
    def set_uint(self, key: str, value: int) -> None: ...

    @abstractmethod
    def get_mapping(self, key: str) -> dict[str, int]: ...

    @abstractmethod
    def set_mapping(self, key: str, value: Mapping[str, int]) -> None: ...

    # ------------------------------------------------------------------
    # Change notification
    # ------------------------------------------------------------------

    def connect(self, key: str, callback: ChangeCallback) -> int:
        """Subscribe *callback* to changes of *key*; returns a handler id."""
        handler_id = next(self._handler_ids)
        self._subscribers[handler_id] = (key, callback)
        return handler_id

    def disconnect(self, handler_id: int) -> None:
        """Remove a subscription.  Unknown ids are ignored."""
        self._subscribers.pop(handler_id, None)

    def _notify(self, key: str) -> None:
        # Snapshot first: a callback may connect or disconnect handlers.
        for handler_id, (subscribed_key, callback) in list(self._subscribers.items()):
            if subscribed_key != key:
                continue
            try:
                callback(key)
            except Exception:
                logger.exception(
                    "Change handler %d for %s raised; continuing", handler_id, key
                )


# ----------------------------------------------------------------------
# Override editing
# ----------------------------------------------------------------------


def set_app_override(store: PolicyStore, app_id: str, level: OverrideLevel) -> None:
    """Pin *app_id* to *level* (or :data:`~firejail_launcher.models.BYPASS`)."""
    overrides = dict(store.get_mapping(OVERRIDES_KEY))
    overrides[app_id] = encode_override_value(level)
    store.set_mapping(OVERRIDES_KEY, overrides)
    logger.info("Override for %s set to %s", app_id, level.name)


def clear_app_override(store: PolicyStore, app_id: str) -> None:
    """Drop the override for *app_id* so it follows the global policy again."""
    overrides = dict(store.get_mapping(OVERRIDES_KEY))
    if overrides.pop(app_id, None) is None:
        return
    store.set_mapping(OVERRIDES_KEY, overrides)
    logger.info("Override for %s cleared", app_id)
