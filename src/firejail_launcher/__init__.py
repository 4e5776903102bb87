"""firejail-launcher: route desktop application launches through firejail.

Public API:

* :class:`LauncherContext` / :func:`launcher_session` -- enable and disable
  interception for a set of host launch entry points.
* :func:`resolve` -- per-application sandbox decision.
* :func:`build_command` -- firejail invocation for a decision.
* :class:`MemoryPolicyStore`, :class:`RedisPolicyStore` -- policy storage.
"""

from firejail_launcher.config import Settings
from firejail_launcher.context import LauncherContext, launcher_session
from firejail_launcher.interceptor import (
    AppInfoLaunch,
    LaunchEntryPoint,
    LaunchInterceptor,
    ShellAppActivate,
    ShellAppLaunch,
    default_entry_points,
)
from firejail_launcher.models import (
    BYPASS,
    EntryPointId,
    IsolationLevel,
    LaunchRequest,
    PolicyState,
    SandboxDecision,
)
from firejail_launcher.sandbox import CommandInvocation, build_command, resolve
from firejail_launcher.store import MemoryPolicyStore, PolicyStore, RedisPolicyStore

__version__ = "0.1.0"

__all__ = [
    "AppInfoLaunch",
    "BYPASS",
    "CommandInvocation",
    "EntryPointId",
    "IsolationLevel",
    "LaunchEntryPoint",
    "LaunchInterceptor",
    "LaunchRequest",
    "LauncherContext",
    "MemoryPolicyStore",
    "PolicyState",
    "PolicyStore",
    "RedisPolicyStore",
    "SandboxDecision",
    "Settings",
    "ShellAppActivate",
    "ShellAppLaunch",
    "build_command",
    "default_entry_points",
    "launcher_session",
    "resolve",
]
