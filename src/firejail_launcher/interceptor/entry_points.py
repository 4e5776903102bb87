"""Application-launch entry points exposed by the desktop host.

The host routes each of its launch calls through a :class:`LaunchEntryPoint`
instead of calling its own implementation directly.  The entry point holds
a replaceable ``handler`` slot; the interceptor swaps that slot, and only
that slot, when it registers.

Handlers are called as ``handler(receiver, *args, **kwargs)`` where
*receiver* is the host object the launch was invoked on (an application
or an app-info object).
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import Callable
from typing import Any

from firejail_launcher.models.enums import EntryPointId
from firejail_launcher.models.launch import LaunchRequest

logger = logging.getLogger(__name__)

LaunchHandler = Callable[..., Any]


def _call_string(obj: Any, method: str) -> str | None:
    """Call a zero-argument getter on *obj*, returning ``None`` on any trouble."""
    getter = getattr(obj, method, None)
    if getter is None:
        return None
    try:
        value = getter()
    except Exception:
        logger.debug("%s.%s() raised", type(obj).__name__, method, exc_info=True)
        return None
    return value if isinstance(value, str) and value else None


class LaunchEntryPoint(ABC):
    """A host launch path that can be intercepted.

    Subclasses set the class attributes ``id`` and ``completed_value`` and
    implement :meth:`describe`.

    Parameters
    ----------
    handler:
        The host's own (unmodified) launch implementation.
    """

    id: EntryPointId
    completed_value: Any = None

    def __init__(self, handler: LaunchHandler) -> None:
        self.handler: LaunchHandler = handler

    def __call__(self, receiver: Any, *args: Any, **kwargs: Any) -> Any:
        return self.handler(receiver, *args, **kwargs)

    @abstractmethod
    def describe(self, receiver: Any) -> LaunchRequest:
        """Extract the application id and executable from *receiver*.

        Must not raise; unavailable metadata is reported as ``None``.
        """
        ...

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.id}>"


class _ShellAppEntryPoint(LaunchEntryPoint):
    """Receiver is a shell application wrapping an app-info object."""

    def describe(self, receiver: Any) -> LaunchRequest:
        app_info = None
        get_app_info = getattr(receiver, "get_app_info", None)
        if get_app_info is not None:
            try:
                app_info = get_app_info()
            except Exception:
                logger.debug("get_app_info() raised", exc_info=True)
        if app_info is None:
            return LaunchRequest(app_id=None, executable_path=None, entry_point=self.id)
        return LaunchRequest(
            app_id=_call_string(app_info, "get_id"),
            executable_path=_call_string(app_info, "get_executable"),
            entry_point=self.id,
        )


class ShellAppLaunch(_ShellAppEntryPoint):
    """``launch(timestamp, workspace, gpu_pref)`` on a shell application."""

    id = EntryPointId.SHELL_APP_LAUNCH
    completed_value = None


class ShellAppActivate(_ShellAppEntryPoint):
    """``activate()`` on a shell application."""

    id = EntryPointId.SHELL_APP_ACTIVATE
    completed_value = None


class AppInfoLaunch(LaunchEntryPoint):
    """``launch(files, context)`` on an app-info object; returns a bool."""

    id = EntryPointId.APP_INFO_LAUNCH
    completed_value = True

    def describe(self, receiver: Any) -> LaunchRequest:
        return LaunchRequest(
            app_id=_call_string(receiver, "get_id"),
            executable_path=_call_string(receiver, "get_executable"),
            entry_point=self.id,
        )


def default_entry_points(
    shell_launch: LaunchHandler,
    shell_activate: LaunchHandler,
    app_info_launch: LaunchHandler,
) -> list[LaunchEntryPoint]:
    """The three launch paths of a GNOME-style shell, wrapping the host's handlers."""
    return [
        ShellAppLaunch(shell_launch),
        ShellAppActivate(shell_activate),
        AppInfoLaunch(app_info_launch),
    ]
