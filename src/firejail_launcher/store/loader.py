"""Build a :class:`PolicyState` snapshot from a :class:`PolicyStore`."""

from __future__ import annotations

import logging

from firejail_launcher.errors import ConfigurationUnavailable, OverrideDecodeError
from firejail_launcher.models.enums import (
    IsolationLevel,
    OverrideLevel,
    decode_override_value,
)
from firejail_launcher.models.state import PolicyState
from firejail_launcher.store.base import (
    ENABLED_KEY,
    LEVEL_KEY,
    OVERRIDES_KEY,
    PolicyStore,
)

logger = logging.getLogger(__name__)


def load_enabled(store: PolicyStore) -> bool:
    return store.get_boolean(ENABLED_KEY)


def load_default_level(store: PolicyStore) -> IsolationLevel:
    """Read the global default level; unknown values degrade to BASIC."""
    raw = store.get_uint(LEVEL_KEY)
    try:
        return IsolationLevel(raw)
    except ValueError:
        logger.warning("Unknown sandbox level %d, using %s", raw, IsolationLevel.BASIC.name)
        return IsolationLevel.BASIC


def _decode_overrides(store: PolicyStore) -> dict[str, OverrideLevel]:
    try:
        raw = store.get_mapping(OVERRIDES_KEY)
    except ConfigurationUnavailable as exc:
        raise OverrideDecodeError(str(exc)) from exc

    overrides: dict[str, OverrideLevel] = {}
    for app_id, value in raw.items():
        if not isinstance(app_id, str) or not app_id:
            logger.warning("Dropping override with invalid application id %r", app_id)
            continue
        try:
            overrides[app_id] = decode_override_value(value)
        except OverrideDecodeError as exc:
            logger.warning("Dropping override for %s: %s", app_id, exc)
    return overrides


def load_overrides(store: PolicyStore) -> dict[str, OverrideLevel]:
    """Read per-application overrides; malformed data yields an empty map."""
    try:
        overrides = _decode_overrides(store)
    except OverrideDecodeError as exc:
        logger.info("No usable app overrides (%s); using none", exc)
        return {}
    logger.debug("Loaded %d app override(s)", len(overrides))
    return overrides


def load_policy_state(store: PolicyStore) -> PolicyState:
    """Read a full snapshot, falling back to :meth:`PolicyState.defaults`.

    The fallback applies when the enable flag or the default level cannot
    be read.  Override problems are recovered separately and only empty the
    override map.
    """
    try:
        enabled = load_enabled(store)
        level = load_default_level(store)
    except ConfigurationUnavailable as exc:
        logger.info("Policy store unavailable (%s); using default policy", exc)
        return PolicyState.defaults()

    return PolicyState(
        enabled_globally=enabled,
        default_level=level,
        overrides=load_overrides(store),
    )
