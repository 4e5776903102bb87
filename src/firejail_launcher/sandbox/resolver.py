"""Per-application sandbox policy resolution.

:func:`resolve` is a pure function of the application id and a
:class:`~firejail_launcher.models.PolicyState` snapshot.  Precedence, first
match wins:

1. No application id: never sandboxed.
2. Explicit override: ``BYPASS`` opts out, any level opts in at that level.
   Overrides beat the built-in lists.
3. System-critical applications (:data:`SYSTEM_APPS`): never sandboxed.
4. Known general-purpose applications (:data:`USER_APPS`): sandboxed at the
   global default level.
5. Anything else: not sandboxed.

The global enable flag is *not* consulted here.  Callers check
``state.enabled_globally`` before calling :func:`resolve`.

Both lists match by substring containment so that desktop-id variants
(``org.gnome.Calculator.desktop``) are recognised.  The flip side is that
any id merely containing a listed entry matches as well.
"""

from __future__ import annotations

import logging

from firejail_launcher.models.enums import BYPASS
from firejail_launcher.models.launch import SandboxDecision
from firejail_launcher.models.state import PolicyState

logger = logging.getLogger(__name__)

# Shell components and tools needed to recover a broken session.
SYSTEM_APPS: tuple[str, ...] = (
    "org.gnome.Shell",
    "org.gnome.Settings",
    "org.gnome.SystemMonitor",
    "org.gnome.Terminal",
    "org.gnome.Console",
    "org.gnome.Software",
    "org.gnome.Extensions",
)

USER_APPS: tuple[str, ...] = (
    "org.gnome.Calculator",
    "org.gnome.TextEditor",
    "org.mozilla.firefox",
    "firefox.desktop",
    "org.gnome.Nautilus",
    "org.gnome.gedit",
)


def _matches(app_id: str, candidates: tuple[str, ...]) -> str | None:
    for candidate in candidates:
        if candidate in app_id:
            return candidate
    return None


def is_system_app(app_id: str) -> bool:
    return _matches(app_id, SYSTEM_APPS) is not None


def is_user_app(app_id: str) -> bool:
    return _matches(app_id, USER_APPS) is not None


def resolve(app_id: str | None, state: PolicyState) -> SandboxDecision:
    """Decide whether, and how strictly, to sandbox *app_id*."""
    if not app_id:
        return SandboxDecision.skip()

    override = state.override_for(app_id)
    if override is not None:
        if override is BYPASS:
            logger.debug("Bypassing sandbox for %s (override)", app_id)
            return SandboxDecision.skip()
        logger.debug("Using override for %s: %s", app_id, override.name)
        return SandboxDecision.sandbox(override)

    system_match = _matches(app_id, SYSTEM_APPS)
    if system_match is not None:
        logger.debug("Not sandboxing system application %s (%s)", app_id, system_match)
        return SandboxDecision.skip()

    if _matches(app_id, USER_APPS) is not None:
        return SandboxDecision.sandbox(state.default_level)

    return SandboxDecision.skip()
