from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from typing import Union

HEALTHY_TPS = 20.0
UNKNOWN_VERSION = "Unknown"

LOAD_LEVELS = (
    (19.5, "Excellent"),
    (18.0, "Good"),
    (15.0, "Moderate"),
    (10.0, "Heavy"),
)


def describe_load(tps: float) -> str:
    """Map ticks-per-second onto a coarse, human-readable load level."""
    for threshold, label in LOAD_LEVELS:
        if tps >= threshold:
            return label
    return "Critical"


@dataclass(frozen=True, slots=True)
class WhitelistInfo:
    count: int
    players: tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class WhitelistSuccess:
    message: str

    @property
    def ok(self) -> bool:
        return True


@dataclass(frozen=True, slots=True)
class WhitelistFailure:
    reason: str

    @property
    def ok(self) -> bool:
        return False


WhitelistResult = Union[WhitelistSuccess, WhitelistFailure]


@dataclass(frozen=True, slots=True)
class PlayerList:
    online_players: int
    max_players: int
    players: tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class ServerSnapshot:
    online_players: int
    max_players: int
    players: tuple[str, ...]
    ticks_per_second: float = HEALTHY_TPS
    version: str = UNKNOWN_VERSION
    taken_at: datetime | None = field(default=None, compare=False)

    @property
    def load_description(self) -> str:
        return describe_load(self.ticks_per_second)


@dataclass(frozen=True, slots=True)
class Accepted:
    """The gated request may proceed."""


@dataclass(frozen=True, slots=True)
class RejectedFor:
    """The caller is still cooling down for ``remaining``."""

    remaining: timedelta


Admission = Union[Accepted, RejectedFor]


class DeliveryOutcome(str, Enum):
    """What a snapshot sink reports back after a delivery attempt."""

    DELIVERED = "delivered"
    TARGET_GONE = "target_gone"
