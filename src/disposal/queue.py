"""Notification queue fed by weak reference clear-hooks.

CPython invokes a weakref callback from whichever thread drops the last
reference, or from inside the cyclic collector. ``enqueue`` therefore does
the bare minimum: flip the handle to ``QUEUED`` and put it on a
:class:`queue.SimpleQueue`, whose ``put`` is reentrant and never blocks.

Handles come out of :meth:`NotificationQueue.take` in reclamation order,
not registration order. There is no bound on the delay between a target
becoming unreachable and its handle being returned.
"""

from __future__ import annotations

import queue

from .handle import Handle

_WAKE = object()


class NotificationQueue:
    """FIFO of handles whose targets have been reclaimed."""

    def __init__(self) -> None:
        self._queue: queue.SimpleQueue = queue.SimpleQueue()

    def enqueue(self, handle: Handle) -> None:
        """Weakref clear-hook. Must not lock, log, or raise."""
        handle.mark_queued()
        self._queue.put(handle)

    def take(self, timeout: float | None = None) -> Handle | None:
        """Block until a handle is available.

        Returns ``None`` when *timeout* expires or :meth:`wake` was called.
        """
        try:
            item = self._queue.get(timeout=timeout)
        except queue.Empty:
            return None
        if item is _WAKE:
            return None
        return item

    def wake(self) -> None:
        """Unblock one pending :meth:`take`."""
        self._queue.put(_WAKE)

    def qsize(self) -> int:
        return self._queue.qsize()

    def empty(self) -> bool:
        return self._queue.empty()


__all__ = ["NotificationQueue"]
