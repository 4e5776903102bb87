"""Launch interception: entry points and the interceptor that wraps them."""

from firejail_launcher.interceptor.entry_points import (
    AppInfoLaunch,
    LaunchEntryPoint,
    LaunchHandler,
    ShellAppActivate,
    ShellAppLaunch,
    default_entry_points,
)
from firejail_launcher.interceptor.interceptor import LaunchInterceptor

__all__ = [
    "AppInfoLaunch",
    "LaunchEntryPoint",
    "LaunchHandler",
    "LaunchInterceptor",
    "ShellAppActivate",
    "ShellAppLaunch",
    "default_entry_points",
]
