"""Utility helpers shared across the dev server."""
from __future__ import annotations

from .coerce import coerce_port, to_bool, to_optional_int, to_optional_str
from .network import local_ip, pick_lan_address

__all__ = [
    "coerce_port",
    "to_bool",
    "to_optional_int",
    "to_optional_str",
    "local_ip",
    "pick_lan_address",
]
