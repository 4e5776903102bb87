"""Exception hierarchy for the launch interception core.

None of these ever reach the end user.  Each one is recovered where it is
raised: configuration problems fall back to defaults, spawn problems fall
back to the original launch path.
"""


class LauncherError(Exception):
    """Base class for all firejail-launcher errors."""


class ConfigurationUnavailable(LauncherError):
    """The policy store could not be read."""


class OverrideDecodeError(LauncherError):
    """Stored per-application overrides are malformed or unreadable."""


class SpawnFailure(LauncherError):
    """The sandbox process could not be started."""


class PolicyInvariantViolation(LauncherError):
    """A bypassed application reached the command builder."""
