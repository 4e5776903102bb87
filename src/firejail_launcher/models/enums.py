"""IsolationLevel, Bypass, and EntryPointId enums."""

from enum import Enum, IntEnum, StrEnum

from firejail_launcher.errors import OverrideDecodeError


class IsolationLevel(IntEnum):
    """Ordered isolation levels applied to sandboxed applications.

    Each level is strictly more restrictive than the one below it:
      BASIC    - Deny root privileges; full network and filesystem access.
      STRICT   - Adds system call filtering and denies mount access.
      PARANOID - Adds a private filesystem and disables networking.
    """

    BASIC = 0
    STRICT = 1
    PARANOID = 2

    @property
    def label(self) -> str:
        return _LABELS[self]

    @property
    def description(self) -> str:
        return _DESCRIPTIONS[self]


_LABELS: dict[IsolationLevel, str] = {
    IsolationLevel.BASIC: "Basic",
    IsolationLevel.STRICT: "Strict",
    IsolationLevel.PARANOID: "Paranoid",
}

_DESCRIPTIONS: dict[IsolationLevel, str] = {
    IsolationLevel.BASIC: (
        "Blocks root privileges and reduces attack surface while keeping "
        "full network and filesystem access."
    ),
    IsolationLevel.STRICT: (
        "System call filtering blocks dangerous operations and prevents "
        "mount access; network connectivity is kept."
    ),
    IsolationLevel.PARANOID: (
        "Complete isolation with a private filesystem and no network "
        "connectivity."
    ),
}


class Bypass(Enum):
    """Out-of-band override meaning "never sandbox this application".

    Deliberately not an ``IntEnum``: a bypass must never compare equal to,
    or be ordered against, an :class:`IsolationLevel`.
    """

    BYPASS = 99


BYPASS = Bypass.BYPASS

OverrideLevel = IsolationLevel | Bypass


def decode_override_value(raw: object) -> OverrideLevel:
    """Map a stored unsigned integer to an :class:`OverrideLevel`.

    Raises:
        OverrideDecodeError: If *raw* is not ``0``-``2`` or ``99``.
    """
    if isinstance(raw, (IsolationLevel, Bypass)):
        return raw
    # bool is an int subclass; a stored True/False is malformed, not a level.
    if isinstance(raw, bool) or not isinstance(raw, int):
        raise OverrideDecodeError(f"Override value {raw!r} is not an integer")
    if raw == BYPASS.value:
        return BYPASS
    try:
        return IsolationLevel(raw)
    except ValueError:
        raise OverrideDecodeError(
            f"Override value {raw!r} is not a known level "
            f"(expected 0-2 or {BYPASS.value})"
        ) from None


def encode_override_value(level: OverrideLevel) -> int:
    """Inverse of :func:`decode_override_value`."""
    return level.value if isinstance(level, Bypass) else int(level)


class EntryPointId(StrEnum):
    """Identity of each application-launch entry point in the host."""

    SHELL_APP_LAUNCH = "SHELL_APP_LAUNCH"
    SHELL_APP_ACTIVATE = "SHELL_APP_ACTIVATE"
    APP_INFO_LAUNCH = "APP_INFO_LAUNCH"
