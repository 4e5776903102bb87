"""Shared fixtures: fake host objects, a recording spawner and stores."""

from __future__ import annotations

from dataclasses import dataclass, field

import pytest

from firejail_launcher.sandbox.command import CommandInvocation
from firejail_launcher.sandbox.spawn import SpawnError, SpawnResult, Started
from firejail_launcher.errors import SpawnFailure
from firejail_launcher.store.memory import MemoryPolicyStore


class FakeAppInfo:
    """Stand-in for a host app-info object."""

    def __init__(self, app_id: str | None, executable: str | None) -> None:
        self._app_id = app_id
        self._executable = executable

    def get_id(self) -> str | None:
        return self._app_id

    def get_executable(self) -> str | None:
        return self._executable


class FakeShellApp:
    """Stand-in for a shell application wrapping an app-info object."""

    def __init__(self, app_info: FakeAppInfo | None) -> None:
        self._app_info = app_info

    def get_app_info(self) -> FakeAppInfo | None:
        return self._app_info


@dataclass
class RecordingSpawner:
    """Spawner double that records invocations instead of starting processes."""

    fail: bool = False
    invocations: list[CommandInvocation] = field(default_factory=list)

    def __call__(self, invocation: CommandInvocation) -> SpawnResult:
        self.invocations.append(invocation)
        if self.fail:
            return SpawnError(
                reason="No such file or directory",
                error=SpawnFailure("firejail: No such file or directory"),
            )
        return Started(pid=4242)


@dataclass
class RecordingHandler:
    """Original launch handler double; counts calls and returns a marker."""

    result: object = "original-result"
    calls: list[tuple] = field(default_factory=list)

    def __call__(self, receiver, *args, **kwargs):
        self.calls.append((receiver, args, kwargs))
        return self.result


def shell_app(app_id: str | None, executable: str | None = "/usr/bin/app") -> FakeShellApp:
    return FakeShellApp(FakeAppInfo(app_id, executable))


@pytest.fixture
def spawner() -> RecordingSpawner:
    return RecordingSpawner()


@pytest.fixture
def failing_spawner() -> RecordingSpawner:
    return RecordingSpawner(fail=True)


@pytest.fixture
def store() -> MemoryPolicyStore:
    """A memory store seeded with the default policy."""
    return MemoryPolicyStore()
