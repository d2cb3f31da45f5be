"""TaskPool Protocol — where reclamation callbacks run.

Manifesto:
The dispatcher never runs a callback itself; it hands it to a pool.
``TaskPool`` is a ``typing.Protocol`` — any object with a
``concurrent.futures``-style ``submit`` satisfies it, no base class
required. Every :class:`concurrent.futures.Executor` qualifies.

ARCHITECTURE
────────────
::

    TaskPool (Protocol)
      └── .submit(fn, *args, **kwargs) ─ schedule fn, return a Future

    Implementations:
      ThreadPoolExecutor  ─ caller-supplied pools
      SharedPool          ─ the service's lazily created default pool

Tags:
    disposal, executor, protocol, interface

Doc-Types:
    api-reference
"""

from collections.abc import Callable
from concurrent.futures import Future
from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class TaskPool(Protocol):
    """Accepts zero-argument actions for asynchronous execution.

    Example implementation:
        >>> class CurrentThreadPool:
        ...     def submit(self, fn, /, *args, **kwargs):
        ...         future = Future()
        ...         future.set_result(fn(*args, **kwargs))
        ...         return future
    """

    def submit(self, fn: Callable[..., Any], /, *args: Any, **kwargs: Any) -> Future:
        """Schedule *fn* and return a Future for its result.

        Raises:
            RuntimeError: If the pool no longer accepts work
        """
        ...
