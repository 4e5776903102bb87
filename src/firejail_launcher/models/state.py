"""PolicyState model."""

from __future__ import annotations

from collections.abc import Mapping
from types import MappingProxyType

from pydantic import BaseModel, Field, field_serializer, field_validator

from firejail_launcher.errors import OverrideDecodeError
from firejail_launcher.models.enums import (
    IsolationLevel,
    OverrideLevel,
    decode_override_value,
)


class PolicyState(BaseModel):
    """Snapshot of the sandboxing policy read by every launch interception.

    Instances are immutable.  A configuration change produces a new snapshot
    via :meth:`model_copy`, so a launch in progress always sees one
    consistent view of the policy.
    """

    model_config = {"frozen": True}

    enabled_globally: bool = Field(
        default=True,
        description="Master switch; when false no application is sandboxed.",
    )
    default_level: IsolationLevel = Field(
        default=IsolationLevel.BASIC,
        description="Isolation level applied to allow-listed apps without an override.",
    )
    overrides: Mapping[str, OverrideLevel] = Field(
        default_factory=dict,
        validate_default=True,
        description="Per-application override, keyed by application id.",
    )

    @field_validator("overrides", mode="before")
    @classmethod
    def _decode_overrides(cls, value: object) -> object:
        if not isinstance(value, Mapping):
            return value
        try:
            return {key: decode_override_value(raw) for key, raw in value.items()}
        except OverrideDecodeError as exc:
            raise ValueError(str(exc)) from exc

    @field_validator("overrides")
    @classmethod
    def _freeze_overrides(cls, value: Mapping[str, OverrideLevel]) -> Mapping[str, OverrideLevel]:
        return MappingProxyType(dict(value))

    @field_serializer("overrides")
    def _serialize_overrides(self, value: Mapping[str, OverrideLevel]) -> dict[str, int]:
        return {key: level.value for key, level in value.items()}

    @classmethod
    def defaults(cls) -> PolicyState:
        """The fallback state used when the policy store cannot be read."""
        return cls(enabled_globally=True, default_level=IsolationLevel.BASIC, overrides={})

    def override_for(self, app_id: str) -> OverrideLevel | None:
        """Return the override for *app_id* (exact key match), if any."""
        return self.overrides.get(app_id)
