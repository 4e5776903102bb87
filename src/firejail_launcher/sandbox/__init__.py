"""Sandbox subsystem: policy resolution, firejail command assembly, spawning."""

from firejail_launcher.sandbox.command import (
    CommandInvocation,
    build_command,
    flags_for_level,
)
from firejail_launcher.sandbox.resolver import SYSTEM_APPS, USER_APPS, resolve
from firejail_launcher.sandbox.spawn import (
    ProcessSpawner,
    Spawner,
    SpawnError,
    SpawnResult,
    Started,
)

__all__ = [
    "CommandInvocation",
    "ProcessSpawner",
    "SYSTEM_APPS",
    "SpawnError",
    "SpawnResult",
    "Spawner",
    "Started",
    "USER_APPS",
    "build_command",
    "flags_for_level",
    "resolve",
]
