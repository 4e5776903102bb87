"""Core domain models for the launch interception core."""

from firejail_launcher.models.enums import (
    BYPASS,
    Bypass,
    EntryPointId,
    IsolationLevel,
    OverrideLevel,
    decode_override_value,
    encode_override_value,
)
from firejail_launcher.models.launch import LaunchRequest, SandboxDecision
from firejail_launcher.models.state import PolicyState

__all__ = [
    "BYPASS",
    "Bypass",
    "EntryPointId",
    "IsolationLevel",
    "LaunchRequest",
    "OverrideLevel",
    "PolicyState",
    "SandboxDecision",
    "decode_override_value",
    "encode_override_value",
]
