"""Translate a sandbox decision into a firejail invocation."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from firejail_launcher.errors import PolicyInvariantViolation
from firejail_launcher.models.enums import IsolationLevel, OverrideLevel
from firejail_launcher.models.launch import SandboxDecision

logger = logging.getLogger(__name__)

DEFAULT_SANDBOX_BINARY = "firejail"

# Applied at every level: no console chatter, no way back to root.
BASE_FLAGS: tuple[str, ...] = ("--quiet", "--noroot")

# Each level keeps every flag of the level below it.
LEVEL_FLAGS: dict[IsolationLevel, tuple[str, ...]] = {
    IsolationLevel.BASIC: (),
    IsolationLevel.STRICT: ("--seccomp", "--disable-mnt"),
    IsolationLevel.PARANOID: ("--seccomp", "--disable-mnt", "--net=none", "--private"),
}


def flags_for_level(level: OverrideLevel | None) -> tuple[str, ...]:
    """Return the full flag set (base + level specific) for *level*.

    Raises:
        PolicyInvariantViolation: If *level* is not an
            :class:`IsolationLevel` (a bypass, or no level at all).
    """
    if not isinstance(level, IsolationLevel):
        raise PolicyInvariantViolation(
            f"Cannot build sandbox flags for level {level!r}"
        )
    return BASE_FLAGS + LEVEL_FLAGS[level]


def _quote(path: str) -> str:
    escaped = path.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


@dataclass(frozen=True)
class CommandInvocation:
    """A fully assembled sandbox command.

    Attributes
    ----------
    binary:
        Sandbox program to run (``firejail``).
    flags:
        Options passed to the sandbox program, in order.
    executable_path:
        Application executable, always the final argument.
    """

    binary: str
    flags: tuple[str, ...]
    executable_path: str

    @property
    def argv(self) -> list[str]:
        """Argument vector for the process spawner."""
        return [self.binary, *self.flags, self.executable_path]

    @property
    def command_line(self) -> str:
        """Single command-line string; the executable is double quoted."""
        return " ".join((self.binary, *self.flags, _quote(self.executable_path)))


def build_command(
    executable_path: str,
    decision: SandboxDecision,
    binary: str = DEFAULT_SANDBOX_BINARY,
) -> CommandInvocation | None:
    """Build the sandboxed invocation for *executable_path*.

    Returns ``None`` when *decision* carries no isolation level, which only
    happens if a bypassed application slipped past policy resolution.  That
    is logged as a policy invariant violation; the caller then launches the
    application unmodified.
    """
    try:
        flags = flags_for_level(decision.level)
    except PolicyInvariantViolation as exc:
        logger.warning("Refusing to build sandbox command for %s: %s", executable_path, exc)
        return None

    return CommandInvocation(binary=binary, flags=flags, executable_path=executable_path)
