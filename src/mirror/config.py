"""Impersonation settings.

Loaded from a mapping (e.g. ``app.config``) or from the environment:

    MIRROR_ENABLED=true
    MIRROR_TTL=3600               # seconds, blank for no limit
    MIRROR_DEFAULT_REDIRECT_URL=/
    MIRROR_GUARD=web              # pin a guard instead of auto-detecting
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Any, Mapping

__all__ = ["MirrorConfig"]

ENV_PREFIX = "MIRROR_"

_TRUE = frozenset({"1", "true", "yes", "on"})
_FALSE = frozenset({"0", "false", "no", "off"})


def _parse_bool(name: str, value: Any) -> bool:
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in _TRUE:
        return True
    if text in _FALSE:
        return False
    raise ValueError(f"Invalid boolean for {name}: {value!r}")


def _parse_ttl(value: Any) -> int | None:
    if value is None:
        return None
    if isinstance(value, str):
        value = value.strip()
        if not value:
            return None
    if isinstance(value, bool):
        raise ValueError(f"Invalid TTL: {value!r}")
    try:
        ttl = int(value)
    except (TypeError, ValueError):
        raise ValueError(f"Invalid TTL: {value!r}") from None
    if ttl < 0:
        raise ValueError(f"TTL must not be negative: {ttl}")
    return ttl


@dataclass(frozen=True)
class MirrorConfig:
    """Read-only impersonation configuration."""

    enabled: bool = True
    # Maximum episode length in seconds; None means no limit
    ttl: int | None = None
    # Where the TTL gate sends users when no leave URL was recorded
    default_redirect_url: str = "/"
    # Guard name to use instead of auto-detection
    guard: str | None = None

    @classmethod
    def from_mapping(cls, mapping: Mapping[str, Any]) -> MirrorConfig:
        """Build from a mapping. Keys may be bare (``ttl``) or prefixed (``MIRROR_TTL``)."""
        values: dict[str, Any] = {}
        for key, value in mapping.items():
            name = key.lower()
            if name.startswith(ENV_PREFIX.lower()):
                name = name[len(ENV_PREFIX) :]
            values[name] = value

        kwargs: dict[str, Any] = {}
        if "enabled" in values:
            kwargs["enabled"] = _parse_bool("enabled", values["enabled"])
        if "ttl" in values:
            kwargs["ttl"] = _parse_ttl(values["ttl"])
        if values.get("default_redirect_url"):
            kwargs["default_redirect_url"] = str(values["default_redirect_url"])
        if values.get("guard"):
            kwargs["guard"] = str(values["guard"])
        return cls(**kwargs)

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> MirrorConfig:
        environ = os.environ if environ is None else environ
        return cls.from_mapping(
            {k: v for k, v in environ.items() if k.startswith(ENV_PREFIX)}
        )
