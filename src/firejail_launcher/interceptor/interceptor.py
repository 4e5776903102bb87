"""Launch interception: route matching launches through the sandbox."""

from __future__ import annotations

import functools
import logging
from collections.abc import Callable
from typing import Any

from firejail_launcher.interceptor.entry_points import LaunchEntryPoint, LaunchHandler
from firejail_launcher.models.enums import EntryPointId
from firejail_launcher.models.state import PolicyState
from firejail_launcher.sandbox.command import DEFAULT_SANDBOX_BINARY, build_command
from firejail_launcher.sandbox.resolver import resolve
from firejail_launcher.sandbox.spawn import SpawnError, Spawner, Started

logger = logging.getLogger(__name__)

StateProvider = Callable[[], PolicyState]


class LaunchInterceptor:
    """Wraps launch entry points with the sandboxing decision.

    For every registered entry point the host's original handler is kept
    in a table keyed by :class:`EntryPointId`.  A wrapped launch either
    starts the application under the sandbox, or calls that original
    handler exactly once and returns its result.  Sandboxing is best
    effort: any problem on the sandbox path falls back to the original.

    Parameters
    ----------
    state_provider:
        Returns the current :class:`PolicyState` snapshot.  Called once per
        launch.
    spawner:
        Starts a :class:`~firejail_launcher.sandbox.CommandInvocation`
        detached and reports the outcome.
    binary:
        Sandbox program placed at the front of every invocation.
    """

    def __init__(
        self,
        state_provider: StateProvider,
        spawner: Spawner,
        binary: str = DEFAULT_SANDBOX_BINARY,
    ) -> None:
        self._state_provider = state_provider
        self._spawner = spawner
        self._binary = binary
        self._originals: dict[EntryPointId, tuple[LaunchEntryPoint, LaunchHandler]] = {}

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    @property
    def registered(self) -> list[EntryPointId]:
        return list(self._originals)

    def original(self, entry_point_id: EntryPointId) -> LaunchHandler | None:
        """The captured pre-hook handler for *entry_point_id*, if hooked."""
        entry = self._originals.get(entry_point_id)
        return entry[1] if entry else None

    def register(self, entry_point: LaunchEntryPoint) -> None:
        """Capture *entry_point*'s handler and install the wrapped one.

        Raises
        ------
        ValueError
            If an entry point with the same id is already registered.
        """
        if entry_point.id in self._originals:
            raise ValueError(f"Entry point {entry_point.id} is already registered")

        original = entry_point.handler
        self._originals[entry_point.id] = (entry_point, original)

        @functools.wraps(original)
        def wrapped(receiver: Any, *args: Any, **kwargs: Any) -> Any:
            return self.intercept(entry_point, original, receiver, *args, **kwargs)

        entry_point.handler = wrapped
        logger.info("Hooked %s", entry_point.id)

    def unregister(self, entry_point_id: EntryPointId) -> None:
        """Restore the original handler.  Unknown ids are a no-op."""
        entry = self._originals.pop(entry_point_id, None)
        if entry is None:
            return
        entry_point, original = entry
        entry_point.handler = original
        logger.info("Restored %s", entry_point_id)

    def unregister_all(self) -> None:
        for entry_point_id in reversed(list(self._originals)):
            self.unregister(entry_point_id)

    # ------------------------------------------------------------------
    # Interception
    # ------------------------------------------------------------------

    def intercept(
        self,
        entry_point: LaunchEntryPoint,
        original: LaunchHandler,
        receiver: Any,
        *args: Any,
        **kwargs: Any,
    ) -> Any:
        """Handle one launch call arriving at *entry_point*."""
        request = entry_point.describe(receiver)
        logger.debug("%s intercepted: %s", request.entry_point, request.app_id)

        state = self._state_provider()
        # The resolver ignores the master switch; it is checked here.
        if not state.enabled_globally:
            return original(receiver, *args, **kwargs)

        decision = resolve(request.app_id, state)
        if not decision.should_sandbox:
            return original(receiver, *args, **kwargs)

        if not request.executable_path:
            logger.warning(
                "No executable for %s; launching without sandbox", request.app_id
            )
            return original(receiver, *args, **kwargs)

        invocation = build_command(request.executable_path, decision, binary=self._binary)
        if invocation is None:
            return original(receiver, *args, **kwargs)

        logger.info(
            "Launching %s with sandbox (%s): %s",
            request.app_id,
            decision.level.name,
            invocation.command_line,
        )
        try:
            result = self._spawner(invocation)
        except Exception:
            logger.exception(
                "Spawner raised for %s, using normal launch", request.app_id
            )
            return original(receiver, *args, **kwargs)

        if isinstance(result, Started):
            logger.info("Sandboxed %s started (pid=%d)", request.app_id, result.pid)
            return entry_point.completed_value

        if isinstance(result, SpawnError):
            logger.error(
                "Sandboxed launch of %s failed, using normal launch: %s",
                request.app_id,
                result.reason,
            )
        else:
            logger.error("Unexpected spawn result %r for %s", result, request.app_id)
        return original(receiver, *args, **kwargs)
