"""Handle — one pending on-reclaim notification.

A :class:`Handle` *is* the weak reference to its target: it subclasses
:class:`weakref.ref` and carries the callback, the executor, and a small
state machine. CPython calls the handle's clear-hook with the handle
itself once the target is reclaimed, so the hook never needs to close
over anything that could keep the target alive.

ARCHITECTURE
────────────
::

    HandleState
      ACTIVE ──(target reclaimed)──► QUEUED ──(consumer)──► DISPATCHED
         │
         └──(undecorate / superseded)──► CANCELLED

Tags:
    disposal, weakref, handle, state-machine

Doc-Types:
    api-reference
"""

from __future__ import annotations

import uuid
import weakref
from collections.abc import Callable
from datetime import UTC, datetime
from enum import Enum
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from .executors.protocol import TaskPool


class HandleState(str, Enum):
    """Lifecycle of a :class:`Handle`."""

    ACTIVE = "active"
    QUEUED = "queued"
    DISPATCHED = "dispatched"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in (HandleState.DISPATCHED, HandleState.CANCELLED)


class Handle(weakref.ref):
    """Weak link to a target plus the callback to run once it is reclaimed.

    The handle holds no strong reference to the target. ``key`` is the
    target's ``id()`` at registration time, which is how the registry
    indexes it.

    Comparisons between handles must use ``is``: :class:`weakref.ref`
    equality and hashing delegate to the referent.
    """

    def __new__(
        cls,
        target: Any,
        on_clear: Callable[[Handle], None],
        callback: Callable[[], Any],
        executor: TaskPool,
    ) -> Handle:
        return super().__new__(cls, target, on_clear)

    def __init__(
        self,
        target: Any,
        on_clear: Callable[[Handle], None],
        callback: Callable[[], Any],
        executor: TaskPool,
    ):
        super().__init__(target, on_clear)
        self.key = id(target)
        self.callback = callback
        self.executor = executor
        self.state = HandleState.ACTIVE
        self.handle_id = uuid.uuid4().hex[:8]
        self.created_at = datetime.now(UTC)
        self.target_type = type(target).__qualname__

    @property
    def alive(self) -> bool:
        """True while the target has not been reclaimed."""
        return self() is not None

    def mark_queued(self) -> None:
        # Runs inside the collector; a plain attribute write only.
        if self.state is HandleState.ACTIVE:
            self.state = HandleState.QUEUED

    def to_dict(self) -> dict[str, Any]:
        return {
            "handle_id": self.handle_id,
            "key": self.key,
            "target_type": self.target_type,
            "state": self.state.value,
            "alive": self.alive,
            "created_at": self.created_at.isoformat(),
        }

    def __repr__(self) -> str:
        return (
            f"<Handle {self.handle_id} {self.target_type} "
            f"state={self.state.value} alive={self.alive}>"
        )


__all__ = ["Handle", "HandleState"]
