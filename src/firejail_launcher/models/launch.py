"""LaunchRequest and SandboxDecision value objects."""

from __future__ import annotations

from dataclasses import dataclass

from firejail_launcher.models.enums import EntryPointId, OverrideLevel


@dataclass(frozen=True)
class LaunchRequest:
    """A single launch attempt as seen by the interceptor.

    Attributes
    ----------
    app_id:
        Application identifier (``org.gnome.Calculator.desktop`` and the
        like).  ``None`` when the host could not supply one.
    executable_path:
        Executable reported by the application metadata.  May be absent.
    entry_point:
        The launch entry point that produced this request.
    """

    app_id: str | None
    executable_path: str | None
    entry_point: EntryPointId


@dataclass(frozen=True)
class SandboxDecision:
    """Outcome of policy resolution for one application."""

    should_sandbox: bool
    level: OverrideLevel | None = None

    @classmethod
    def skip(cls) -> SandboxDecision:
        return cls(should_sandbox=False, level=None)

    @classmethod
    def sandbox(cls, level: OverrideLevel) -> SandboxDecision:
        return cls(should_sandbox=True, level=level)
