"""Consumer — the single thread that drains the notification queue.

The consumer blocks on :meth:`NotificationQueue.take`, claims each handle
through :meth:`Registry.release`, and hands it to the dispatcher. It is
process infrastructure with no supervisor, so a failure while processing
one handle is logged and the loop carries on.

Usage::

    consumer = Consumer(queue, registry, Dispatcher())
    consumer.start()
    ...
    consumer.stop(timeout=10.0)

State machine::

    STOPPED ──start()──► STARTING ──thread up──► RUNNING
       ▲                                            │
       └──────── thread exits ◄── STOPPING ◄──stop()┘
"""

from __future__ import annotations

import threading
from dataclasses import dataclass
from datetime import UTC, datetime
from enum import Enum
from typing import Any

from .dispatcher import Dispatcher
from .handle import Handle
from .logging import bind_context, clear_context, get_logger
from .queue import NotificationQueue
from .registry import Registry

logger = get_logger(__name__)


def _utcnow() -> datetime:
    return datetime.now(UTC)


class ConsumerState(str, Enum):
    STOPPED = "stopped"
    STARTING = "starting"
    RUNNING = "running"
    STOPPING = "stopping"


@dataclass
class ConsumerStats:
    """Aggregate statistics for a consumer."""

    dequeued: int = 0
    dispatched: int = 0
    skipped: int = 0
    failed: int = 0
    started_at: datetime | None = None
    last_dequeued_at: datetime | None = None

    @property
    def uptime_seconds(self) -> float:
        if self.started_at is None:
            return 0.0
        return (_utcnow() - self.started_at).total_seconds()

    def to_dict(self) -> dict[str, Any]:
        return {
            "dequeued": self.dequeued,
            "dispatched": self.dispatched,
            "skipped": self.skipped,
            "failed": self.failed,
            "uptime_seconds": round(self.uptime_seconds, 2),
            "last_dequeued_at": self.last_dequeued_at.isoformat() if self.last_dequeued_at else None,
        }


class Consumer:
    """Drains reclaimed handles and forwards them to the dispatcher.

    Thread-safety:
        ``start``/``stop`` may be called from any thread; ``process`` runs
        on the consumer thread only (tests may call it directly on a
        stopped consumer).
    """

    def __init__(
        self,
        queue: NotificationQueue,
        registry: Registry,
        dispatcher: Dispatcher,
        thread_name: str = "disposal-consumer",
    ):
        self._queue = queue
        self._registry = registry
        self._dispatcher = dispatcher
        self._thread_name = thread_name
        self._state = ConsumerState.STOPPED
        self._state_lock = threading.Lock()
        self._stopping = threading.Event()
        self._started = threading.Event()
        self._thread: threading.Thread | None = None
        self.stats = ConsumerStats()

    @property
    def state(self) -> ConsumerState:
        return self._state

    @property
    def thread(self) -> threading.Thread | None:
        return self._thread

    # ------------------------------------------------------------------ #
    # Lifecycle
    # ------------------------------------------------------------------ #

    def start(self) -> bool:
        """Start the consumer thread. Returns False if it was already up.

        After a timed-out :meth:`stop` the old thread is still finishing its
        cycle; starting is refused until it exits, so there is never more
        than one consumer thread.
        """
        with self._state_lock:
            if self._state is not ConsumerState.STOPPED:
                if self._state is ConsumerState.STOPPING:
                    logger.warning("consumer_start_refused", state=self._state.value, thread=self._thread_name)
                return False
            self._state = ConsumerState.STARTING
            self._stopping.clear()
            self._started.clear()
            self._thread = threading.Thread(target=self._run, name=self._thread_name, daemon=True)
            self._thread.start()
        self._started.wait()
        return True

    def stop(self, timeout: float | None = None) -> bool:
        """Request shutdown and wait up to *timeout* for the current cycle.

        Returns:
            True once the thread exited, False if it was still busy. The
            state then stays STOPPING until the thread exits on its own.
        """
        with self._state_lock:
            thread = self._thread
            if self._state is ConsumerState.STOPPED or thread is None:
                return True
            self._state = ConsumerState.STOPPING
            self._stopping.set()
            self._queue.wake()

        if thread is not threading.current_thread():
            thread.join(timeout)
        if thread.is_alive():
            logger.error("consumer_stop_timeout", timeout_seconds=timeout, thread=self._thread_name)
            return False
        return True

    # ------------------------------------------------------------------ #
    # Main loop
    # ------------------------------------------------------------------ #

    def _run(self) -> None:
        with self._state_lock:
            if self._state is ConsumerState.STARTING:
                self._state = ConsumerState.RUNNING
        self.stats.started_at = _utcnow()
        self._started.set()

        try:
            bind_context(component="consumer")
            logger.info("consumer_started", thread=self._thread_name)
            while not self._stopping.is_set():
                handle = self._queue.take()
                if handle is None:
                    continue
                self.process(handle)
        finally:
            with self._state_lock:
                self._state = ConsumerState.STOPPED
            logger.info("consumer_stopped", **self.stats.to_dict())
            clear_context()

    def process(self, handle: Handle) -> None:
        """Release one reclaimed handle and dispatch it. Never raises."""
        try:
            self.stats.dequeued += 1
            self.stats.last_dequeued_at = _utcnow()
            logger.debug("handle_dequeued", handle_id=handle.handle_id)

            if not self._registry.release(handle):
                self.stats.skipped += 1
                logger.debug("handle_skipped", handle_id=handle.handle_id, state=handle.state.value)
                return

            self._dispatcher.run(handle)
            self.stats.dispatched += 1
        except Exception:
            self.stats.failed += 1
            logger.exception("consumer_process_failed", handle_id=getattr(handle, "handle_id", None))


__all__ = ["Consumer", "ConsumerState", "ConsumerStats"]
