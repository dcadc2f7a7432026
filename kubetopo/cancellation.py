"""Cooperative cancellation for CPU-bound topology computations.

Long loops (pairwise connectivity, force simulation steps) call
``token.raise_if_cancelled(operation)`` between outer iterations.  Results
are only handed back once the loop completes, so a cancelled computation
never exposes a half-built result.
"""

from __future__ import annotations

import threading
import time

from kubetopo.errors import OperationCancelled
from kubetopo.observability.metrics import computations_cancelled_total


class CancellationToken:
    """Thread-safe cancellation flag with an optional monotonic deadline.

    Args:
        timeout: Seconds from construction after which the token reports
                 itself cancelled.  ``None`` means no deadline.
    """

    def __init__(self, timeout: float | None = None) -> None:
        self._event = threading.Event()
        self._deadline = time.monotonic() + timeout if timeout is not None else None

    def cancel(self) -> None:
        self._event.set()

    @property
    def expired(self) -> bool:
        return self._deadline is not None and time.monotonic() >= self._deadline

    @property
    def cancelled(self) -> bool:
        return self._event.is_set() or self.expired

    def raise_if_cancelled(self, operation: str) -> None:
        """Raise OperationCancelled if the token was cancelled or has expired."""
        if self._event.is_set():
            computations_cancelled_total.labels(operation=operation).inc()
            raise OperationCancelled(operation)
        if self.expired:
            computations_cancelled_total.labels(operation=operation).inc()
            raise OperationCancelled(operation, reason="timed out")


def check(token: CancellationToken | None, operation: str) -> None:
    """Shorthand used inside hot loops where the token is optional."""
    if token is not None:
        token.raise_if_cancelled(operation)
