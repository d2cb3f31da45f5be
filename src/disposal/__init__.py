"""
disposal - run a callback after an object has been garbage collected.

Attach a zero-argument callback to any object that supports weak
references. Once the collector reclaims the object, the callback runs on a
worker thread. Watching an object never extends its lifetime, and a slow
callback never delays later notifications.

Example:
    >>> import disposal
    >>> class Connection:
    ...     pass
    >>> conn = Connection()
    >>> disposal.decorate(conn, lambda: print("connection reclaimed"))
    >>> del conn  # "connection reclaimed" is printed from a pool thread

Tags:
    disposal, weakref, gc, finalization, callbacks

Doc-Types:
    - API Reference
"""

from .consumer import Consumer, ConsumerState, ConsumerStats
from .dispatcher import Dispatcher
from .errors import (
    DispatchError,
    DisposalError,
    ErrorCategory,
    InvalidArgumentError,
    ShutdownTimeoutError,
)
from .executors import SharedPool, TaskPool
from .handle import Handle, HandleState
from .queue import NotificationQueue
from .registry import Registry
from .service import (
    DisposalService,
    decorate,
    decorate_async,
    decorate_future,
    get_default_service,
    reset_default_service,
    undecorate,
)
from .settings import DisposalSettings, get_settings

__version__ = "0.1.0"

__all__ = [
    # Public API
    "decorate",
    "undecorate",
    "decorate_future",
    "decorate_async",
    "DisposalService",
    "get_default_service",
    "reset_default_service",
    # Components
    "Handle",
    "HandleState",
    "Registry",
    "NotificationQueue",
    "Consumer",
    "ConsumerState",
    "ConsumerStats",
    "Dispatcher",
    "TaskPool",
    "SharedPool",
    # Errors
    "DisposalError",
    "ErrorCategory",
    "InvalidArgumentError",
    "DispatchError",
    "ShutdownTimeoutError",
    # Settings
    "DisposalSettings",
    "get_settings",
]
