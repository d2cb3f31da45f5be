"""Dispatcher — hands reclamation callbacks to their executor.

:meth:`Dispatcher.run` is called from the consumer thread and returns as
soon as the executor accepted the callback; it never waits for the
callback itself. A callback that raises does so on the executor's thread,
where a done-callback logs it. Nothing is propagated back to the consumer
or to the code that called ``decorate``.
"""

from __future__ import annotations

from concurrent.futures import Future

from .errors import DispatchError
from .handle import Handle
from .logging import get_logger

logger = get_logger(__name__)


class Dispatcher:
    """Submits ``handle.callback`` to ``handle.executor``."""

    def run(self, handle: Handle) -> Future:
        """Submit the callback of *handle* for asynchronous execution.

        Raises:
            DispatchError: If the executor refused the submission
        """
        try:
            future = handle.executor.submit(handle.callback)
        except Exception as e:
            raise DispatchError(
                f"Executor refused callback for handle {handle.handle_id}",
                context={"handle_id": handle.handle_id, "target_type": handle.target_type},
                cause=e,
            ) from e

        handle_id = handle.handle_id
        future.add_done_callback(lambda f: self._report(handle_id, f))
        logger.debug("handle_dispatched", handle_id=handle_id, executor=type(handle.executor).__name__)
        return future

    @staticmethod
    def _report(handle_id: str, future: Future) -> None:
        if future.cancelled():
            logger.warning("callback_cancelled", handle_id=handle_id)
            return
        exc = future.exception()
        if exc is not None:
            logger.error(
                "callback_failed",
                handle_id=handle_id,
                error_type=type(exc).__name__,
                exc_info=exc,
            )


__all__ = ["Dispatcher"]
