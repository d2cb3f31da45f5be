"""
Tests for the consumer thread.

Exercises the lifecycle state machine, the take → release → dispatch
cycle, and the guarantee that a failing handle never kills the loop.
"""

from __future__ import annotations

import gc
import threading
import time
from concurrent.futures import Future, ThreadPoolExecutor

import pytest
from structlog.testing import capture_logs

from disposal.consumer import Consumer, ConsumerState, ConsumerStats
from disposal.dispatcher import Dispatcher
from disposal.queue import NotificationQueue
from disposal.registry import Registry


class Target:
    pass


def _wait_for(predicate, timeout: float = 5.0) -> bool:
    """Poll *predicate* until true or *timeout* elapses."""
    done = threading.Event()
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        done.wait(0.01)
    return predicate()


class ExplodingPool:
    """A pool whose submit always fails."""

    def submit(self, fn, /, *args, **kwargs) -> Future:
        raise RuntimeError("pool is gone")


class BlockingPool:
    """A pool whose submit blocks until released."""

    def __init__(self):
        self.entered = threading.Event()
        self.release = threading.Event()

    def submit(self, fn, /, *args, **kwargs) -> Future:
        self.entered.set()
        self.release.wait()
        future: Future = Future()
        future.set_result(fn())
        return future


# ── Fixtures ─────────────────────────────────────────────────────────────


@pytest.fixture
def queue() -> NotificationQueue:
    return NotificationQueue()


@pytest.fixture
def registry(queue) -> Registry:
    return Registry(queue)


@pytest.fixture
def consumer(queue, registry):
    c = Consumer(queue, registry, Dispatcher(), thread_name="consumer-under-test")
    yield c
    c.stop(timeout=2)


@pytest.fixture
def pool():
    executor = ThreadPoolExecutor(max_workers=2, thread_name_prefix="consumer-test-pool")
    yield executor
    executor.shutdown(wait=True)


# ── Lifecycle ────────────────────────────────────────────────────────────


class TestConsumerLifecycle:
    def test_starts_stopped(self, consumer):
        assert consumer.state is ConsumerState.STOPPED
        assert consumer.thread is None

    def test_start_runs_named_daemon_thread(self, consumer):
        assert consumer.start() is True

        assert consumer.state is ConsumerState.RUNNING
        assert consumer.thread.name == "consumer-under-test"
        assert consumer.thread.daemon

    def test_start_is_idempotent(self, consumer):
        consumer.start()
        first_thread = consumer.thread

        assert consumer.start() is False
        assert consumer.thread is first_thread

    def test_stop_returns_to_stopped(self, consumer):
        consumer.start()

        assert consumer.stop(timeout=2) is True
        assert consumer.state is ConsumerState.STOPPED
        assert not consumer.thread.is_alive()

    def test_stop_when_never_started(self, consumer):
        assert consumer.stop(timeout=0.1) is True

    def test_restart_after_stop(self, consumer):
        consumer.start()
        consumer.stop(timeout=2)

        assert consumer.start() is True
        assert consumer.state is ConsumerState.RUNNING

    def test_lifecycle_is_logged(self, consumer):
        with capture_logs() as logs:
            consumer.start()
            consumer.stop(timeout=2)

        events = [e["event"] for e in logs]
        assert "consumer_started" in events
        assert "consumer_stopped" in events

    def test_stop_wait_is_bounded(self, queue, registry):
        blocking = BlockingPool()
        consumer = Consumer(queue, registry, Dispatcher())
        consumer.start()
        target = Target()
        registry.register(target, lambda: None, blocking)
        del target
        gc.collect()
        assert blocking.entered.wait(5)

        with capture_logs() as logs:
            assert consumer.stop(timeout=0.2) is False

        assert consumer.state is ConsumerState.STOPPING
        assert "consumer_stop_timeout" in [e["event"] for e in logs]

        blocking.release.set()
        consumer.thread.join(timeout=5)
        assert consumer.state is ConsumerState.STOPPED

    def test_restart_waits_for_timed_out_thread(self, queue, registry):
        blocking = BlockingPool()
        consumer = Consumer(queue, registry, Dispatcher())
        consumer.start()
        target = Target()
        registry.register(target, lambda: None, blocking)
        del target
        gc.collect()
        assert blocking.entered.wait(5)
        assert consumer.stop(timeout=0.2) is False
        stuck = consumer.thread

        with capture_logs() as logs:
            assert consumer.start() is False

        assert consumer.thread is stuck
        assert "consumer_start_refused" in [e["event"] for e in logs]

        blocking.release.set()
        stuck.join(timeout=5)
        assert consumer.start() is True
        assert consumer.thread is not stuck
        assert consumer.stop(timeout=2) is True


# ── Processing ───────────────────────────────────────────────────────────


class TestConsumerProcessing:
    def test_reclaimed_target_is_dispatched(self, consumer, registry, pool):
        fired = threading.Event()
        consumer.start()
        target = Target()
        registry.register(target, fired.set, pool)

        del target
        gc.collect()

        assert fired.wait(5)
        assert len(registry) == 0

    def test_cancelled_handle_is_skipped(self, consumer, registry, queue, pool):
        fired = threading.Event()
        target = Target()
        handle = registry.register(target, fired.set, pool)
        registry.unregister(target)

        consumer.process(handle)

        assert consumer.stats.skipped == 1
        assert consumer.stats.dispatched == 0
        assert not fired.is_set()

    def test_process_never_raises(self, consumer, registry):
        target = Target()
        handle = registry.register(target, lambda: None, ExplodingPool())

        with capture_logs() as logs:
            consumer.process(handle)

        assert consumer.stats.failed == 1
        failure = [e for e in logs if e["event"] == "consumer_process_failed"]
        assert failure[0]["handle_id"] == handle.handle_id
        assert failure[0]["log_level"] == "error"

    def test_loop_survives_failed_dispatch(self, consumer, registry, pool):
        fired = threading.Event()
        consumer.start()
        broken, healthy = Target(), Target()
        registry.register(broken, lambda: None, ExplodingPool())
        registry.register(healthy, fired.set, pool)

        del broken
        gc.collect()
        del healthy
        gc.collect()

        assert fired.wait(5)
        assert consumer.state is ConsumerState.RUNNING
        assert consumer.stats.failed == 1
        assert _wait_for(lambda: consumer.stats.dispatched == 1)

    def test_callback_never_runs_on_consumer_thread(self, consumer, registry, pool):
        ran_on: list[threading.Thread] = []
        fired = threading.Event()

        def record():
            ran_on.append(threading.current_thread())
            fired.set()

        consumer.start()
        target = Target()
        registry.register(target, record, pool)
        del target
        gc.collect()

        assert fired.wait(5)
        assert ran_on[0] is not consumer.thread


class TestConsumerStats:
    def test_to_dict(self):
        stats = ConsumerStats(dequeued=3, dispatched=2, skipped=1)

        data = stats.to_dict()

        assert data["dequeued"] == 3
        assert data["dispatched"] == 2
        assert data["skipped"] == 1
        assert data["failed"] == 0
        assert data["uptime_seconds"] == 0.0
        assert data["last_dequeued_at"] is None

    def test_counts_after_dispatch(self, consumer, registry, pool):
        fired = threading.Event()
        consumer.start()
        target = Target()
        registry.register(target, fired.set, pool)
        del target
        gc.collect()

        assert fired.wait(5)
        assert consumer.stats.dequeued == 1
        assert _wait_for(lambda: consumer.stats.dispatched == 1)
        assert consumer.stats.last_dequeued_at is not None
