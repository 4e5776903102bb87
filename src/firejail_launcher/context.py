"""Owned lifetime of the launcher: from enable to disable.

A :class:`LauncherContext` bundles everything that used to be loose
process-wide state: the policy snapshot, the store subscriptions and the
launch hooks.  Everything acquired in :meth:`LauncherContext.enable` is
pushed onto an :class:`contextlib.ExitStack`, so :meth:`disable` (or a
failure halfway through enabling) releases it in reverse order.
"""

from __future__ import annotations

import contextlib
import logging
from collections.abc import Iterable, Iterator
from types import MappingProxyType

from firejail_launcher.config import Settings
from firejail_launcher.errors import ConfigurationUnavailable
from firejail_launcher.interceptor import LaunchEntryPoint, LaunchInterceptor
from firejail_launcher.models.state import PolicyState
from firejail_launcher.sandbox.spawn import ProcessSpawner, Spawner
from firejail_launcher.store import (
    ENABLED_KEY,
    LEVEL_KEY,
    OVERRIDES_KEY,
    PolicyStore,
    load_overrides,
    load_policy_state,
)
from firejail_launcher.store.loader import load_default_level, load_enabled

logger = logging.getLogger(__name__)


class LauncherContext:
    """Policy state, store subscriptions and launch hooks for one session.

    Parameters
    ----------
    store:
        Where the policy is persisted.  Not closed by the context.
    entry_points:
        Host launch paths to intercept.
    settings:
        Runtime settings; defaults to ``Settings()`` from the environment.
    spawner:
        Process spawner; defaults to a :class:`ProcessSpawner`.
    """

    def __init__(
        self,
        store: PolicyStore,
        entry_points: Iterable[LaunchEntryPoint],
        settings: Settings | None = None,
        spawner: Spawner | None = None,
    ) -> None:
        self._settings = settings or Settings()
        self._store = store
        self._entry_points = list(entry_points)
        self._state = PolicyState.defaults()
        self._interceptor = LaunchInterceptor(
            state_provider=lambda: self._state,
            spawner=spawner or ProcessSpawner(),
            binary=self._settings.sandbox_binary,
        )
        self._stack: contextlib.ExitStack | None = None

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    @property
    def state(self) -> PolicyState:
        return self._state

    @property
    def store(self) -> PolicyStore:
        return self._store

    @property
    def interceptor(self) -> LaunchInterceptor:
        return self._interceptor

    @property
    def enabled(self) -> bool:
        """Whether the context is active (hooks installed)."""
        return self._stack is not None

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def enable(self) -> None:
        """Load the policy, subscribe to changes and hook every entry point."""
        if self._stack is not None:
            return
        logger.info("Enabling firejail launcher")

        with contextlib.ExitStack() as stack:
            self._state = load_policy_state(self._store)

            for key, handler in (
                (ENABLED_KEY, self._on_enabled_changed),
                (LEVEL_KEY, self._on_level_changed),
                (OVERRIDES_KEY, self._on_overrides_changed),
            ):
                handler_id = self._store.connect(key, handler)
                stack.callback(self._store.disconnect, handler_id)

            for entry_point in self._entry_points:
                self._interceptor.register(entry_point)
                stack.callback(self._interceptor.unregister, entry_point.id)

            # Nothing failed: keep everything for disable().
            self._stack = stack.pop_all()

        logger.info(
            "Firejail launcher enabled (active=%s, level=%s, overrides=%d)",
            self._state.enabled_globally,
            self._state.default_level.name,
            len(self._state.overrides),
        )

    def disable(self) -> None:
        """Restore every entry point and drop all subscriptions."""
        stack, self._stack = self._stack, None
        if stack is None:
            return
        logger.info("Disabling firejail launcher")
        stack.close()

    def __enter__(self) -> LauncherContext:
        self.enable()
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.disable()

    # ------------------------------------------------------------------
    # Policy changes
    # ------------------------------------------------------------------

    def set_enabled(self, enabled: bool) -> None:
        """Toggle sandboxing globally by writing through to the store."""
        self._store.set_boolean(ENABLED_KEY, enabled)

    def _on_enabled_changed(self, _key: str) -> None:
        try:
            enabled = load_enabled(self._store)
        except ConfigurationUnavailable as exc:
            logger.warning("Ignoring unreadable %s change: %s", ENABLED_KEY, exc)
            return
        self._state = self._state.model_copy(update={"enabled_globally": enabled})
        logger.info("Sandboxing %s", "active" if enabled else "disabled")

    def _on_level_changed(self, _key: str) -> None:
        try:
            level = load_default_level(self._store)
        except ConfigurationUnavailable as exc:
            logger.warning("Ignoring unreadable %s change: %s", LEVEL_KEY, exc)
            return
        self._state = self._state.model_copy(update={"default_level": level})
        logger.info("Default sandbox level is now %s", level.name)

    def _on_overrides_changed(self, _key: str) -> None:
        overrides = load_overrides(self._store)
        self._state = self._state.model_copy(update={"overrides": MappingProxyType(overrides)})


@contextlib.contextmanager
def launcher_session(
    store: PolicyStore,
    entry_points: Iterable[LaunchEntryPoint],
    settings: Settings | None = None,
    spawner: Spawner | None = None,
) -> Iterator[LauncherContext]:
    """Run a :class:`LauncherContext` for the duration of a ``with`` block."""
    context = LauncherContext(store, entry_points, settings=settings, spawner=spawner)
    context.enable()
    try:
        yield context
    finally:
        context.disable()
