"""Registry — identity-keyed, weak-keyed map of target to pending handle.

The registry is keyed by ``id(target)`` and stores only :class:`Handle`
objects, which are weak references. It never calls ``__eq__`` or
``__hash__`` on a target, so value-equal objects (and unhashable ones)
are tracked independently.

ARCHITECTURE
────────────
::

    Registry
      ├── .register(target, cb, pool)  ─ insert, superseding a live handle
      ├── .unregister(target)          ─ cancel (best effort)
      ├── .release(handle)             ─ at-most-once gate for the consumer
      └── .get(target) / in / len

Identity reuse:
    CPython may hand a reclaimed object's ``id()`` to a new object before
    the consumer has drained the old handle. A slot whose handle points at
    a dead target is therefore overwritten without cancelling it, and
    :meth:`Registry.release` only removes a slot that still maps to the
    exact handle being released.

Thread-safety:
    Every mutation happens under one :class:`threading.Lock`. The weakref
    clear-hook never takes it, so a collection that fires while the lock is
    held cannot deadlock.

Tags:
    disposal, registry, weakref, identity, thread-safe

Doc-Types:
    api-reference
"""

from __future__ import annotations

import threading
from collections.abc import Callable
from typing import Any

from .handle import Handle, HandleState
from .executors.protocol import TaskPool
from .logging import get_logger
from .queue import NotificationQueue

logger = get_logger(__name__)


class Registry:
    """Pending notifications, one per live target."""

    def __init__(self, queue: NotificationQueue, *, log_misses: bool = True):
        self._queue = queue
        self._handles: dict[int, Handle] = {}
        self._lock = threading.Lock()
        self._log_misses = log_misses

    def register(self, target: Any, callback: Callable[[], Any], executor: TaskPool) -> Handle:
        """Create a handle for *target* and store it, replacing any live one.

        Raises:
            TypeError: If *target* does not support weak references
        """
        handle = Handle(target, self._queue.enqueue, callback, executor)
        superseded: Handle | None = None

        with self._lock:
            previous = self._handles.get(handle.key)
            self._handles[handle.key] = handle
            if previous is not None and previous() is target:
                previous.state = HandleState.CANCELLED
                superseded = previous

        if superseded is not None:
            logger.info(
                "handle_superseded",
                handle_id=handle.handle_id,
                previous_handle_id=superseded.handle_id,
                target_type=handle.target_type,
            )
        logger.debug("handle_registered", handle_id=handle.handle_id, target_type=handle.target_type)
        return handle

    def unregister(self, target: Any) -> Handle | None:
        """Cancel the live handle for *target*, if any.

        Dropping the cancelled handle drops the weak reference, so CPython
        never calls its clear-hook. A handle that was already queued before
        this call is left alone and will still fire.
        """
        with self._lock:
            handle = self._handles.get(id(target))
            if handle is None or handle() is not target:
                handle = None
            else:
                del self._handles[handle.key]
                handle.state = HandleState.CANCELLED

        if handle is None:
            if self._log_misses:
                logger.debug("undecorate_missing", target_type=type(target).__qualname__)
            return None

        logger.debug("handle_cancelled", handle_id=handle.handle_id, target_type=handle.target_type)
        return handle

    def release(self, handle: Handle) -> bool:
        """Claim *handle* for dispatch. Returns False if it must not fire."""
        with self._lock:
            if self._handles.get(handle.key) is handle:
                del self._handles[handle.key]
            if handle.state in (HandleState.ACTIVE, HandleState.QUEUED):
                handle.state = HandleState.DISPATCHED
                return True
            return False

    def get(self, target: Any) -> Handle | None:
        """Return the live handle for *target*, or None."""
        with self._lock:
            handle = self._handles.get(id(target))
        if handle is None or handle() is not target:
            return None
        return handle

    def __contains__(self, target: Any) -> bool:
        return self.get(target) is not None

    def __len__(self) -> int:
        with self._lock:
            return len(self._handles)


__all__ = ["Registry"]
