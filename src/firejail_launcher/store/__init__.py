"""Policy store subsystem: where the sandboxing policy is persisted.

Use :func:`create_store` to obtain the backend selected in
:class:`~firejail_launcher.config.Settings`.
"""

from __future__ import annotations

from collections.abc import Callable

from firejail_launcher.config import Settings
from firejail_launcher.store.base import (
    ALL_KEYS,
    ENABLED_KEY,
    LEVEL_KEY,
    OVERRIDES_KEY,
    PolicyStore,
    clear_app_override,
    set_app_override,
)
from firejail_launcher.store.loader import load_overrides, load_policy_state
from firejail_launcher.store.memory import MemoryPolicyStore
from firejail_launcher.store.redis_store import RedisPolicyStore

__all__ = [
    "ALL_KEYS",
    "ENABLED_KEY",
    "LEVEL_KEY",
    "MemoryPolicyStore",
    "OVERRIDES_KEY",
    "PolicyStore",
    "RedisPolicyStore",
    "clear_app_override",
    "create_store",
    "load_overrides",
    "load_policy_state",
    "set_app_override",
]


def _memory_store(settings: Settings) -> PolicyStore:
    return MemoryPolicyStore(
        {
            ENABLED_KEY: settings.default_enabled,
            LEVEL_KEY: settings.default_level,
            OVERRIDES_KEY: {},
        }
    )


def _redis_store(settings: Settings) -> PolicyStore:
    return RedisPolicyStore.from_url(settings.redis_url, key_prefix=settings.redis_key_prefix)


_STORE_MAP: dict[str, Callable[[Settings], PolicyStore]] = {
    "memory": _memory_store,
    "redis": _redis_store,
}


def create_store(settings: Settings) -> PolicyStore:
    """Return the policy store backend named by ``settings.store_backend``.

    Raises
    ------
    ValueError
        If the backend is not supported.
    """
    factory = _STORE_MAP.get(settings.store_backend)
    if factory is None:
        raise ValueError(
            f"Unsupported store backend: {settings.store_backend!r}. "
            f"Supported backends: {sorted(_STORE_MAP)}"
        )
    return factory(settings)
