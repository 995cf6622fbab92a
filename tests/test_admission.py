from __future__ import annotations

import threading
from datetime import datetime, timedelta, timezone

from mc_rcon.models import Accepted, RejectedFor
from mc_rcon.scheduling import CooldownGate


class FakeClock:
    def __init__(self) -> None:
        self.now = datetime(2024, 1, 1, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


WINDOW = timedelta(minutes=60)


def test_first_request_is_accepted() -> None:
    gate = CooldownGate(clock=FakeClock())

    assert gate.try_admit("user-1", WINDOW) == Accepted()
    assert len(gate) == 1


def test_second_request_within_window_is_rejected_with_remaining_time() -> None:
    clock = FakeClock()
    gate = CooldownGate(clock=clock)
    gate.try_admit("user-1", WINDOW)

    clock.advance(minutes=20)
    admission = gate.try_admit("user-1", WINDOW)

    assert isinstance(admission, RejectedFor)
    assert admission.remaining == timedelta(minutes=40)
    assert timedelta(0) < admission.remaining <= WINDOW


def test_immediate_retry_is_rejected_for_the_full_window() -> None:
    gate = CooldownGate(clock=FakeClock())
    gate.try_admit("user-1", WINDOW)

    assert gate.try_admit("user-1", WINDOW) == RejectedFor(remaining=WINDOW)


def test_rejection_does_not_extend_the_cooldown() -> None:
    clock = FakeClock()
    gate = CooldownGate(clock=clock)
    gate.try_admit("user-1", WINDOW)
    clock.advance(minutes=30)
    gate.try_admit("user-1", WINDOW)

    clock.advance(minutes=30)
    assert gate.try_admit("user-1", WINDOW) == Accepted()


def test_request_after_window_is_accepted() -> None:
    clock = FakeClock()
    gate = CooldownGate(clock=clock)
    gate.try_admit("user-1", WINDOW)

    clock.advance(minutes=61)

    assert gate.try_admit("user-1", WINDOW) == Accepted()
    assert gate.remaining("user-1", WINDOW) == WINDOW


def test_keys_are_independent_and_reset_clears_entry() -> None:
    gate = CooldownGate(clock=FakeClock())
    gate.try_admit("user-1", WINDOW)

    assert gate.try_admit("user-2", WINDOW) == Accepted()
    gate.reset("user-1")
    assert gate.remaining("user-1", WINDOW) is None
    assert gate.try_admit("user-1", WINDOW) == Accepted()


def test_stale_entries_are_collected_only_past_threshold() -> None:
    clock = FakeClock()
    gate = CooldownGate(clock=clock, gc_threshold=3, gc_horizon=timedelta(hours=1))
    for key in ("a", "b", "c"):
        gate.try_admit(key, WINDOW)

    clock.advance(hours=2)
    assert len(gate) == 3

    gate.try_admit("d", WINDOW)

    assert len(gate) == 1
    assert gate.remaining("d", WINDOW) == WINDOW


def test_concurrent_admission_accepts_exactly_once() -> None:
    gate = CooldownGate()
    results: list[object] = []
    lock = threading.Lock()
    barrier = threading.Barrier(16)

    def _attempt() -> None:
        barrier.wait()
        admission = gate.try_admit("user-1", WINDOW)
        with lock:
            results.append(admission)

    threads = [threading.Thread(target=_attempt) for _ in range(16)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert sum(isinstance(result, Accepted) for result in results) == 1
