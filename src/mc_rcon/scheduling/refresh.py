"""Periodic status refresh for registered subscriptions."""

from __future__ import annotations

import asyncio
import logging
import threading
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Protocol

from mc_rcon.errors import RconError
from mc_rcon.models import DeliveryOutcome, ServerSnapshot


class SnapshotSink(Protocol):
    """Delivery target for refreshed snapshots (e.g. a pinned status message)."""

    async def deliver(self, snapshot: ServerSnapshot) -> DeliveryOutcome:
        """Publish ``snapshot``; return ``TARGET_GONE`` once the target no longer exists."""


@dataclass(slots=True, eq=False)
class Subscription:
    key: str
    sink: SnapshotSink
    registered_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    last_refreshed_at: datetime | None = None


class SubscriptionRegistry:
    """Thread-safe map of subscription key to :class:`Subscription`."""

    def __init__(self) -> None:
        self._subscriptions: dict[str, Subscription] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._subscriptions)

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._subscriptions

    def register(self, key: str, sink: SnapshotSink) -> bool:
        """Insert or replace the sink for ``key``; return ``True`` if it was new.

        A replacement is a new :class:`Subscription`, so an in-flight refresh of
        the previous one can no longer discard it.
        """
        with self._lock:
            existing = self._subscriptions.get(key)
            if existing is None:
                self._subscriptions[key] = Subscription(key=key, sink=sink)
                return True
            self._subscriptions[key] = Subscription(
                key=key,
                sink=sink,
                registered_at=existing.registered_at,
                last_refreshed_at=existing.last_refreshed_at,
            )
            return False

    def unregister(self, key: str) -> bool:
        with self._lock:
            return self._subscriptions.pop(key, None) is not None

    def get(self, key: str) -> Subscription | None:
        with self._lock:
            return self._subscriptions.get(key)

    def keys(self) -> list[str]:
        with self._lock:
            return list(self._subscriptions)

    def snapshot(self) -> list[Subscription]:
        with self._lock:
            return list(self._subscriptions.values())

    def mark_refreshed(self, subscription: Subscription, at: datetime) -> None:
        with self._lock:
            if self._subscriptions.get(subscription.key) is subscription:
                subscription.last_refreshed_at = at

    def discard(self, subscription: Subscription) -> bool:
        """Remove ``subscription`` only if it is still the current registration for its key."""
        with self._lock:
            if self._subscriptions.get(subscription.key) is subscription:
                del self._subscriptions[subscription.key]
                return True
            return False


class RefreshScheduler:
    """Re-issues a snapshot for every subscription on a fixed interval.

    A failed snapshot keeps the subscription for the next tick; only a sink
    reporting ``TARGET_GONE`` removes it.
    """

    def __init__(
        self,
        snapshot_provider: Callable[[], ServerSnapshot],
        registry: SubscriptionRegistry | None = None,
        *,
        interval_seconds: float,
        timeout_seconds: float | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be positive")

        self._snapshot_provider = snapshot_provider
        self._registry = registry if registry is not None else SubscriptionRegistry()
        self._interval_seconds = interval_seconds
        self._timeout_seconds = timeout_seconds
        self._logger = logger or logging.getLogger("mc_rcon.refresh")
        self._task: asyncio.Task[None] | None = None

    @property
    def registry(self) -> SubscriptionRegistry:
        return self._registry

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def register_subscription(self, key: str, sink: SnapshotSink) -> bool:
        created = self._registry.register(key, sink)
        self._logger.info("subscription_registered", extra={"subscription": key, "new_subscription": created})
        return created

    def unregister_subscription(self, key: str) -> bool:
        removed = self._registry.unregister(key)
        if removed:
            self._logger.info("subscription_unregistered", extra={"subscription": key})
        return removed

    async def start(self) -> None:
        if self.running:
            return

        self._task = asyncio.create_task(self._tick_loop(), name="rcon-refresh-scheduler")
        self._logger.info("refresh_scheduler_started", extra={"interval_seconds": self._interval_seconds})

    async def stop(self) -> None:
        if not self._task:
            return

        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        finally:
            self._task = None

        self._logger.info("refresh_scheduler_stopped")

    async def refresh_all(self) -> None:
        """Refresh every currently registered subscription once."""
        subscriptions = self._registry.snapshot()
        if not subscriptions:
            return

        self._logger.debug("refresh_tick", extra={"subscriptions": len(subscriptions)})
        await asyncio.gather(*(self._refresh(subscription) for subscription in subscriptions))

    async def _tick_loop(self) -> None:
        while True:
            await asyncio.sleep(self._interval_seconds)
            try:
                await self.refresh_all()
            except Exception:  # noqa: BLE001 - a bad tick must not stop the schedule.
                self._logger.exception("refresh_tick_failed")

    async def _refresh(self, subscription: Subscription) -> None:
        try:
            snapshot = await asyncio.wait_for(
                asyncio.to_thread(self._snapshot_provider),
                timeout=self._timeout_seconds,
            )
        except (RconError, asyncio.TimeoutError) as exc:
            self._logger.warning(
                "refresh_snapshot_failed",
                extra={"subscription": subscription.key, "error": f"{type(exc).__name__}: {exc}"},
            )
            return

        try:
            outcome = await subscription.sink.deliver(snapshot)
        except Exception:  # noqa: BLE001 - sink errors are transient unless it reports TARGET_GONE.
            self._logger.exception("refresh_delivery_failed", extra={"subscription": subscription.key})
            return

        if outcome == DeliveryOutcome.TARGET_GONE:
            if self._registry.discard(subscription):
                self._logger.info("subscription_target_gone", extra={"subscription": subscription.key})
            return

        self._registry.mark_refreshed(subscription, datetime.now(timezone.utc))
        self._logger.debug("subscription_refreshed", extra={"subscription": subscription.key})
