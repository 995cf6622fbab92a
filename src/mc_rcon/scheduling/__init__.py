"""Admission control and periodic refresh for RCON operations."""

from .admission import CooldownGate
from .refresh import RefreshScheduler, SnapshotSink, Subscription, SubscriptionRegistry

__all__ = [
    "CooldownGate",
    "RefreshScheduler",
    "SnapshotSink",
    "Subscription",
    "SubscriptionRegistry",
]
