"""Coercion helpers for values read from the environment and CLI."""
from __future__ import annotations

from typing import Any, Optional


def to_bool(value: Any, *, allow_blank_false: bool = True) -> bool:
    """Best-effort conversion of common truthy/falsey inputs to ``bool``."""

    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return bool(value)
    if isinstance(value, str):
        lowered = value.strip().lower()
        truthy = {"true", "1", "yes", "on"}
        falsy = {"false", "0", "no", "off"}
        if allow_blank_false:
            falsy.add("")
        if lowered in truthy:
            return True
        if lowered in falsy:
            return False
    return False


def to_optional_int(value: Any) -> Optional[int]:
    if value is None:
        return None
    try:
        return int(float(value))
    except (TypeError, ValueError):
        return None


def to_optional_str(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def coerce_port(value: Any, fallback: int) -> int:
    """Return ``value`` as a TCP port number, or ``fallback`` when invalid."""

    port = to_optional_int(value)
    if port is None or not 0 < port < 65536:
        return fallback
    return port


__all__ = [
    "coerce_port",
    "to_bool",
    "to_optional_int",
    "to_optional_str",
]
