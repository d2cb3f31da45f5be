"""Executor adapters for reclamation callbacks.

Any ``concurrent.futures.Executor`` can be passed to ``decorate``; handles
registered without one use the service's :class:`SharedPool`.

Example:
    >>> from concurrent.futures import ThreadPoolExecutor
    >>> from disposal.executors import TaskPool
    >>> isinstance(ThreadPoolExecutor(max_workers=1), TaskPool)
    True

Tags:
    disposal, executors, backend-abstraction

Doc-Types:
    api-reference
"""

from .protocol import TaskPool
from .shared import SharedPool

__all__ = [
    "TaskPool",
    "SharedPool",
]
