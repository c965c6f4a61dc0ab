"""Messages posted to the dev server's dispatcher loop."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Union

from .watch.runtime import ChangeEvent


@dataclass(frozen=True)
class ClientConnected:
    sid: str


@dataclass(frozen=True)
class ClientDisconnected:
    sid: str


@dataclass(frozen=True)
class Shutdown:
    reason: str = "stop requested"


Message = Union[ChangeEvent, ClientConnected, ClientDisconnected, Shutdown]

__all__ = ["ChangeEvent", "ClientConnected", "ClientDisconnected", "Message", "Shutdown"]
