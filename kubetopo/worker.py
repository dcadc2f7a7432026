"""Running CPU-bound topology computations off the event loop.

``run_in_worker`` executes a cancellable function on a worker thread and
ties its CancellationToken to the awaiting task: cancelling the task, or
exceeding *timeout*, cancels the token so the thread stops at its next
check instead of running to completion unobserved.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from typing import Any, TypeVar

from kubetopo.cancellation import CancellationToken
from kubetopo.errors import OperationCancelled
from kubetopo.observability.logging import get_logger

_log = get_logger("worker")

T = TypeVar("T")


def _discard_outcome(future: asyncio.Future[Any]) -> None:
    if not future.cancelled():
        future.exception()


async def run_in_worker(
    fn: Callable[..., T],
    *args: Any,
    operation: str = "computation",
    timeout: float | None = None,
    **kwargs: Any,
) -> T:
    """Await ``fn(*args, cancel=token, **kwargs)`` running on a worker thread.

    Raises:
        OperationCancelled: the timeout elapsed before *fn* finished.
        asyncio.CancelledError: the awaiting task was cancelled; the token
            is cancelled before the error propagates.
    """
    token = CancellationToken()
    future = asyncio.ensure_future(asyncio.to_thread(fn, *args, cancel=token, **kwargs))
    try:
        return await asyncio.wait_for(asyncio.shield(future), timeout=timeout)
    except TimeoutError:
        token.cancel()
        try:
            # The thread may finish between the deadline and the cancel; a
            # complete result is still a valid answer.
            return await future
        except OperationCancelled:
            _log.warning("worker_timed_out", operation=operation, timeout=timeout)
            raise OperationCancelled(operation, reason="timed out") from None
    except asyncio.CancelledError:
        token.cancel()
        # nothing awaits the thread past this point
        future.add_done_callback(_discard_outcome)
        _log.info("worker_cancelled", operation=operation)
        raise
