"""Detached process spawning with an explicit result instead of exceptions."""

from __future__ import annotations

import logging
import subprocess
from dataclasses import dataclass
from typing import Protocol

from firejail_launcher.errors import SpawnFailure
from firejail_launcher.sandbox.command import CommandInvocation

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Started:
    """The sandbox process was started; it now runs on its own."""

    pid: int


@dataclass(frozen=True)
class SpawnError:
    """The sandbox process could not be started."""

    reason: str
    error: SpawnFailure


SpawnResult = Started | SpawnError


class Spawner(Protocol):
    """Anything that can start a :class:`CommandInvocation` detached.

    Failures are reported as :class:`SpawnError`.  The interceptor still
    falls back to the normal launch if an implementation raises.
    """

    def __call__(self, invocation: CommandInvocation) -> SpawnResult: ...


class ProcessSpawner:
    """Start sandbox commands as detached child processes.

    The spawner never waits for a child: only failure to *start* is
    reported.  Children that have already exited are reaped on later
    spawns (or by calling :meth:`reap`) so they do not linger as zombies.
    """

    def __init__(self) -> None:
        self._children: list[subprocess.Popen] = []

    def __call__(self, invocation: CommandInvocation) -> SpawnResult:
        return self.spawn(invocation)

    def spawn(self, invocation: CommandInvocation) -> SpawnResult:
        self.reap()
        try:
            proc = subprocess.Popen(
                invocation.argv,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.DEVNULL,
                stderr=subprocess.DEVNULL,
                start_new_session=True,
                close_fds=True,
            )
        except (OSError, ValueError, subprocess.SubprocessError) as exc:
            failure = SpawnFailure(f"{invocation.binary}: {exc}")
            failure.__cause__ = exc
            return SpawnError(reason=str(exc), error=failure)

        self._children.append(proc)
        logger.debug("Spawned pid=%d: %s", proc.pid, invocation.command_line)
        return Started(pid=proc.pid)

    def reap(self) -> int:
        """Collect exited children; returns how many are still running."""
        running: list[subprocess.Popen] = []
        for proc in self._children:
            if proc.poll() is None:
                running.append(proc)
            else:
                logger.debug("Sandbox pid=%d exited with %s", proc.pid, proc.returncode)
        self._children = running
        return len(running)

    @property
    def running(self) -> int:
        return len(self._children)
