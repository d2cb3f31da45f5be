"""Shared default pool — lazily created, cached-thread ThreadPoolExecutor.

Handles registered without an explicit executor point at the service's
:class:`SharedPool`. The underlying :class:`ThreadPoolExecutor` is built on
the first submission, reuses idle workers, and only grows towards
``max_workers`` under load. :meth:`SharedPool.shutdown` drains it with a
bounded wait; a later submission builds a fresh one.

ARCHITECTURE
────────────
::

    SharedPool(max_workers=64)
      ├── .submit(fn)        ─ create pool on first use, then submit
      ├── .created           ─ has a pool been built since the last shutdown
      └── .shutdown(timeout) ─ drain with a bounded wait

Related modules:
    protocol.py   — TaskPool protocol
    ../service.py — stops the shared pool after the consumer

Tags:
    disposal, executor, thread-pool, shared, lazy

Doc-Types:
    api-reference
"""

from __future__ import annotations

import threading
from collections.abc import Callable
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Any

from ..logging import get_logger

logger = get_logger(__name__)


class SharedPool:
    """Process-wide default pool for reclamation callbacks.

    Example:
        >>> pool = SharedPool(max_workers=8)
        >>> pool.created
        False
        >>> pool.submit(print, "reclaimed").result()
        reclaimed
        >>> pool.shutdown(timeout=5.0)
        True
    """

    def __init__(self, max_workers: int = 64, thread_name_prefix: str = "disposal-pool"):
        self.max_workers = max_workers
        self.thread_name_prefix = thread_name_prefix
        self._pool: ThreadPoolExecutor | None = None
        self._lock = threading.Lock()

    @property
    def created(self) -> bool:
        return self._pool is not None

    def _get_pool(self) -> ThreadPoolExecutor:
        with self._lock:
            if self._pool is None:
                self._pool = ThreadPoolExecutor(
                    max_workers=self.max_workers,
                    thread_name_prefix=self.thread_name_prefix,
                )
                logger.debug(
                    "default_pool_created",
                    max_workers=self.max_workers,
                    thread_name_prefix=self.thread_name_prefix,
                )
            return self._pool

    def submit(self, fn: Callable[..., Any], /, *args: Any, **kwargs: Any) -> Future:
        return self._get_pool().submit(fn, *args, **kwargs)

    def shutdown(self, timeout: float | None = None) -> bool:
        """Stop accepting work and wait up to *timeout* for running callbacks.

        Returns:
            True if the pool drained (or was never created), False on timeout
        """
        with self._lock:
            pool, self._pool = self._pool, None
        if pool is None:
            return True

        # ThreadPoolExecutor.shutdown has no timeout; wait on a helper thread.
        waiter = threading.Thread(
            target=pool.shutdown,
            kwargs={"wait": True},
            name=f"{self.thread_name_prefix}-shutdown",
            daemon=True,
        )
        waiter.start()
        waiter.join(timeout)
        if waiter.is_alive():
            logger.error("default_pool_shutdown_timeout", timeout_seconds=timeout)
            return False
        logger.debug("default_pool_shutdown")
        return True

    def __repr__(self) -> str:
        return f"<SharedPool max_workers={self.max_workers} created={self.created}>"
