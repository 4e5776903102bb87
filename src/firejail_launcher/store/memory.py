"""In-process policy store."""

from __future__ import annotations

import copy
import logging
from collections.abc import Mapping

from firejail_launcher.errors import ConfigurationUnavailable
from firejail_launcher.store.base import (
    ENABLED_KEY,
    LEVEL_KEY,
    OVERRIDES_KEY,
    PolicyStore,
)

logger = logging.getLogger(__name__)

DEFAULT_VALUES: dict[str, object] = {
    ENABLED_KEY: True,
    LEVEL_KEY: 0,
    OVERRIDES_KEY: {},
}


class MemoryPolicyStore(PolicyStore):
    """Dict-backed store that notifies subscribers synchronously on write.

    Parameters
    ----------
    values:
        Initial key/value contents.  ``None`` seeds :data:`DEFAULT_VALUES`;
        an explicit mapping is used as-is, so keys left out of it are
        unreadable until written.
    """

    def __init__(self, values: Mapping[str, object] | None = None) -> None:
        super().__init__()
        source = DEFAULT_VALUES if values is None else values
        self._values: dict[str, object] = copy.deepcopy(dict(source))

    def _read(self, key: str) -> object:
        try:
            return self._values[key]
        except KeyError:
            raise ConfigurationUnavailable(f"No value stored for {key!r}") from None

    def _write(self, key: str, value: object) -> None:
        self._values[key] = value
        logger.debug("Stored %s=%r", key, value)
        self._notify(key)

    def get_boolean(self, key: str) -> bool:
        value = self._read(key)
        if not isinstance(value, bool):
            raise ConfigurationUnavailable(f"{key!r} holds {value!r}, not a boolean")
        return value

    def set_boolean(self, key: str, value: bool) -> None:
        self._write(key, bool(value))

    def get_uint(self, key: str) -> int:
        value = self._read(key)
        if isinstance(value, bool) or not isinstance(value, int) or value < 0:
            raise ConfigurationUnavailable(
                f"{key!r} holds {value!r}, not an unsigned integer"
            )
        return value

    def set_uint(self, key: str, value: int) -> None:
        if value < 0:
            raise ValueError(f"{key!r} must be unsigned, got {value}")
        self._write(key, int(value))

    def get_mapping(self, key: str) -> dict[str, int]:
        value = self._read(key)
        if not isinstance(value, Mapping):
            raise ConfigurationUnavailable(f"{key!r} holds {value!r}, not a mapping")
        return dict(value)

    def set_mapping(self, key: str, value: Mapping[str, int]) -> None:
        self._write(key, dict(value))
