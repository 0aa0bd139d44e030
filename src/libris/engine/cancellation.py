"""Cooperative cancellation for resolve calls.

A :class:`CancellationToken` is handed to ``ISBNResolver.resolve``. Calling
:meth:`CancellationToken.cancel` (from any thread) cancels the lookups that
are still in flight; the resolver reports each unproduced result as
cancelled and still returns the complete ordered list.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable

from libris.core.exceptions import CancelledLookupError

logger = logging.getLogger(__name__)

CancelCallback = Callable[[], None]


class CancellationToken:
    """Thread-safe cancellation token with cancel callbacks.

    Examples:
        >>> token = CancellationToken()
        >>> token.is_cancelled()
        False
        >>> token.cancel()
        >>> token.is_cancelled()
        True
    """

    def __init__(self) -> None:
        self._is_cancelled = threading.Event()
        self._lock = threading.Lock()
        self._callbacks: list[CancelCallback] = []

    def cancel(self) -> None:
        """Signal that cancellation has been requested."""
        with self._lock:
            if self._is_cancelled.is_set():
                return
            self._is_cancelled.set()
            callbacks = list(self._callbacks)
        for callback in callbacks:
            callback()

    def is_cancelled(self) -> bool:
        return self._is_cancelled.is_set()

    def raise_if_cancelled(self) -> None:
        """Raise ``CancelledLookupError`` once cancellation has been requested."""
        if self.is_cancelled():
            raise CancelledLookupError("Operation cancelled")

    def add_callback(self, callback: CancelCallback) -> Callable[[], None]:
        """Run ``callback`` on cancel (immediately if already cancelled).

        Returns a function that unregisters the callback.
        """
        with self._lock:
            already = self._is_cancelled.is_set()
            if not already:
                self._callbacks.append(callback)
        if already:
            callback()

        def remove() -> None:
            with self._lock:
                try:
                    self._callbacks.remove(callback)
                except ValueError:
                    logger.debug("Cancel callback already removed")

        return remove

    def reset(self) -> None:
        """Reset the token to its initial state.

        This should only be used for testing or when reusing tokens
        in controlled scenarios.
        """
        with self._lock:
            self._is_cancelled.clear()
