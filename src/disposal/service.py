"""DisposalService — lifecycle controller and public entry point.

A service owns one registry, one notification queue, one consumer thread,
one dispatcher and one shared default pool. It is constructed explicitly
and started with :meth:`DisposalService.start`; tests build isolated
instances, applications usually rely on the lazily created default
service behind the module-level :func:`decorate` / :func:`undecorate`.

Manifesto:
    Watching an object must never keep it alive. The service only ever
    holds weak references to targets, and the collector's clear-hook does
    nothing but enqueue. Everything slow (logging, locking, running the
    callback) happens later on the consumer thread or the executor.

Architecture:
    ::

        decorate(target, cb[, pool])
              │
              ▼
        Registry ──weakref(target, queue.enqueue)──► collector
                                                        │ target reclaimed
                                                        ▼
        Consumer thread ◄── take() ── NotificationQueue
              │ registry.release(handle)
              ▼
        Dispatcher.run(handle) ──submit(cb)──► pool / SharedPool

Examples:
    Isolated service:

    >>> with DisposalService() as service:
    ...     service.decorate(obj, lambda: print("obj reclaimed"))
    ...     del obj

    Awaiting reclamation:

    >>> future = decorate_future(obj)
    >>> del obj
    >>> future.result(timeout=5)

Guardrails:
    ❌ DON'T: Capture the target in its own callback (it is never reclaimed)
    ✅ DO: Capture only what the cleanup needs (ids, file handles, sockets)

    ❌ DON'T: Rely on undecorate racing an in-progress collection
    ✅ DO: Treat undecorate as best-effort cancellation

Tags:
    disposal, lifecycle, weakref, gc, service

Doc-Types:
    - API Reference
"""

from __future__ import annotations

import asyncio
import atexit
import threading
from collections.abc import Callable
from concurrent.futures import Future
from typing import Any

from .consumer import Consumer, ConsumerState
from .dispatcher import Dispatcher
from .errors import InvalidArgumentError, ShutdownTimeoutError
from .executors import SharedPool, TaskPool
from .logging import ensure_configured, get_logger
from .queue import NotificationQueue
from .registry import Registry
from .settings import DisposalSettings, get_settings

logger = get_logger(__name__)


class DisposalService:
    """On-reclaim notifications for arbitrary objects.

    Args:
        settings: Configuration; defaults to :func:`get_settings`
        default_pool: Pool for handles registered without an executor;
            defaults to a :class:`SharedPool` built from *settings*. Only a
            :class:`SharedPool` is shut down by :meth:`stop`; any other
            pool stays owned by the caller.

    If the application has not configured structlog, the ``log_level`` and
    ``log_format`` of *settings* are applied on construction.
    """

    def __init__(
        self,
        settings: DisposalSettings | None = None,
        *,
        default_pool: TaskPool | None = None,
    ):
        self.settings = settings if settings is not None else get_settings()
        ensure_configured(self.settings)
        self.queue = NotificationQueue()
        self.registry = Registry(self.queue, log_misses=self.settings.log_undecorate_misses)
        self.dispatcher = Dispatcher()
        self.consumer = Consumer(
            self.queue,
            self.registry,
            self.dispatcher,
            thread_name=self.settings.consumer_thread_name,
        )
        if default_pool is None:
            default_pool = SharedPool(
                max_workers=self.settings.default_pool_max_workers,
                thread_name_prefix=self.settings.default_pool_thread_prefix,
            )
        self.default_pool = default_pool

    # ------------------------------------------------------------------ #
    # Lifecycle
    # ------------------------------------------------------------------ #

    @property
    def running(self) -> bool:
        return self.consumer.state is ConsumerState.RUNNING

    def start(self) -> DisposalService:
        """Start the consumer thread. Safe to call more than once."""
        self.consumer.start()
        return self

    def stop(self, timeout: float | None = None, *, raise_on_timeout: bool = False) -> bool:
        """Stop the consumer, then drain the shared default pool.

        Each step waits at most *timeout* seconds (default
        ``shutdown_timeout_seconds``). A timeout is logged and the stop
        sequence carries on regardless.

        Returns:
            True if both steps finished in time

        Raises:
            ShutdownTimeoutError: Only with ``raise_on_timeout=True``
        """
        if timeout is None:
            timeout = self.settings.shutdown_timeout_seconds

        timed_out: list[str] = []
        if not self.consumer.stop(timeout):
            timed_out.append("consumer")

        if isinstance(self.default_pool, SharedPool) and self.default_pool.created:
            if not self.default_pool.shutdown(timeout):
                timed_out.append("default_pool")

        if timed_out:
            logger.error("shutdown_timeout", components=timed_out, timeout_seconds=timeout)
            if raise_on_timeout:
                raise ShutdownTimeoutError(
                    f"Shutdown exceeded {timeout}s waiting for {', '.join(timed_out)}",
                    context={"components": timed_out, "timeout_seconds": timeout},
                )
            return False
        return True

    def __enter__(self) -> DisposalService:
        return self.start()

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.stop()

    # ------------------------------------------------------------------ #
    # Registration
    # ------------------------------------------------------------------ #

    def decorate(
        self,
        target: Any,
        on_reclaim: Callable[[], Any],
        executor: TaskPool | None = None,
    ) -> None:
        """Run *on_reclaim* on *executor* once *target* has been reclaimed.

        Re-decorating a target replaces its previous callback.

        Raises:
            InvalidArgumentError: ``None`` target, non-callable callback,
                target without weak reference support, or an executor
                without ``submit``
        """
        if target is None:
            raise InvalidArgumentError("target must not be None")
        if on_reclaim is None or not callable(on_reclaim):
            raise InvalidArgumentError(
                "on_reclaim must be a callable",
                context={"on_reclaim_type": type(on_reclaim).__name__},
            )
        if executor is not None and not isinstance(executor, TaskPool):
            raise InvalidArgumentError(
                "executor must provide submit()",
                context={"executor_type": type(executor).__name__},
            )
        if getattr(on_reclaim, "__self__", None) is target:
            logger.warning("callback_retains_target", target_type=type(target).__qualname__)
        if executor is None:
            executor = self.default_pool

        try:
            self.registry.register(target, on_reclaim, executor)
        except TypeError as e:
            raise InvalidArgumentError(
                f"cannot watch {type(target).__qualname__}: it does not support weak references",
                context={"target_type": type(target).__qualname__},
                cause=e,
            ) from e

    def undecorate(self, target: Any) -> None:
        """Cancel the pending notification for *target* (best effort)."""
        if target is None:
            return
        self.registry.unregister(target)

    def decorate_future(self, target: Any, executor: TaskPool | None = None) -> Future:
        """Return a Future that resolves once *target* has been reclaimed.

        The future is completed from *executor* (or the default pool), so
        continuations attached with ``add_done_callback`` run there too.
        """
        future: Future = Future()

        def resolve() -> None:
            if future.set_running_or_notify_cancel():
                future.set_result(None)

        self.decorate(target, resolve, executor)
        return future

    def decorate_async(self, target: Any, executor: TaskPool | None = None) -> asyncio.Future:
        """Like :meth:`decorate_future`, bound to the running event loop.

        Not a coroutine: the target must not be kept alive by an awaiting
        frame, so register first and drop the reference before awaiting.
        """
        return asyncio.wrap_future(self.decorate_future(target, executor))

    # ------------------------------------------------------------------ #
    # Introspection
    # ------------------------------------------------------------------ #

    def is_decorated(self, target: Any) -> bool:
        return target in self.registry

    @property
    def pending(self) -> int:
        """Number of registry slots (live targets plus reclaimed, undrained)."""
        return len(self.registry)

    def stats(self) -> dict[str, Any]:
        return {
            "state": self.consumer.state.value,
            "pending": self.pending,
            "queued": self.queue.qsize(),
            **self.consumer.stats.to_dict(),
        }


# --------------------------------------------------------------------------- #
# Process-wide default service
# --------------------------------------------------------------------------- #

_default_service: DisposalService | None = None
_default_lock = threading.Lock()
_atexit_registered = False


def get_default_service() -> DisposalService:
    """Return the process-wide service, creating and starting it on first use.

    The first call also registers an exit hook that stops the service with
    the configured bounded wait.
    """
    global _default_service, _atexit_registered
    with _default_lock:
        if _default_service is None:
            _default_service = DisposalService().start()
            if not _atexit_registered:
                atexit.register(_shutdown_default_service)
                _atexit_registered = True
        return _default_service


def reset_default_service(timeout: float | None = None) -> None:
    """Stop and discard the default service (primarily for testing)."""
    global _default_service
    with _default_lock:
        service, _default_service = _default_service, None
    if service is not None:
        service.stop(timeout)


def _shutdown_default_service() -> None:
    logger.debug("default_service_shutdown")
    reset_default_service()


def decorate(target: Any, on_reclaim: Callable[[], Any], executor: TaskPool | None = None) -> None:
    """Run *on_reclaim* once *target* is reclaimed (default service)."""
    get_default_service().decorate(target, on_reclaim, executor)


def undecorate(target: Any) -> None:
    """Cancel the pending notification for *target* (default service)."""
    get_default_service().undecorate(target)


def decorate_future(target: Any, executor: TaskPool | None = None) -> Future:
    """Future resolved once *target* is reclaimed (default service)."""
    return get_default_service().decorate_future(target, executor)


def decorate_async(target: Any, executor: TaskPool | None = None) -> asyncio.Future:
    """asyncio Future resolved once *target* is reclaimed (default service)."""
    return get_default_service().decorate_async(target, executor)


__all__ = [
    "DisposalService",
    "get_default_service",
    "reset_default_service",
    "decorate",
    "undecorate",
    "decorate_future",
    "decorate_async",
]
