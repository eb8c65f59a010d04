"""Cooperative cancellation with optional deadlines."""

import threading
import time
from concurrent.futures import FIRST_EXCEPTION, Future, wait
from typing import Final, Sequence, TypeVar

from .errors import TokenizationCancelled

T = TypeVar("T")

# upper bound on how long a join blocks before re-checking for cancellation
POLL_INTERVAL: Final[float] = 0.05


class CancellationToken:
    """
    Cancellation signal shared between a caller and the work it started.

    A token is cancelled when ``cancel()`` is called on it, when its deadline
    passes, or when its parent is cancelled.
    """

    def __init__(
        self,
        timeout: float | None = None,
        parent: "CancellationToken | None" = None,
    ) -> None:
        self._event = threading.Event()
        self._deadline = time.monotonic() + timeout if timeout is not None else None
        self._parent = parent

    @classmethod
    def linked(
        cls, parent: "CancellationToken | None", timeout: float | None
    ) -> "CancellationToken":
        """Return a child token that fires when ``parent`` fires or ``timeout`` elapses."""
        return cls(timeout=timeout, parent=parent)

    def cancel(self) -> None:
        self._event.set()

    @property
    def timed_out(self) -> bool:
        """True if this token or an ancestor has passed its deadline."""
        if self._deadline is not None and time.monotonic() >= self._deadline:
            return True
        return self._parent is not None and self._parent.timed_out

    @property
    def cancelled(self) -> bool:
        if self._event.is_set() or self.timed_out:
            return True
        return self._parent is not None and self._parent.cancelled

    def remaining(self) -> float | None:
        """Seconds until the nearest deadline in the chain, or None if there is none."""
        own = None
        if self._deadline is not None:
            own = max(0.0, self._deadline - time.monotonic())
        inherited = self._parent.remaining() if self._parent is not None else None
        if own is None:
            return inherited
        if inherited is None:
            return own
        return min(own, inherited)

    def raise_if_cancelled(self) -> None:
        """
        :raises TokenizationCancelled: If the token has fired.
        """
        if self.cancelled:
            raise TokenizationCancelled(timed_out=self.timed_out)


def check(token: CancellationToken | None) -> None:
    """Raise if ``token`` is set and has fired."""
    if token is not None:
        token.raise_if_cancelled()


def wait_all(futures: Sequence[Future[T]], token: CancellationToken) -> list[T]:
    """
    Join all futures and return their results in submission order.

    The wait is sliced so that a cancellation or deadline is noticed while
    workers are still running. On cancellation pending futures are cancelled
    before raising.

    :raises TokenizationCancelled: If ``token`` fires before every future is done.
    """
    pending = set(futures)
    try:
        while pending:
            token.raise_if_cancelled()
            remaining = token.remaining()
            timeout = POLL_INTERVAL if remaining is None else min(POLL_INTERVAL, remaining)
            done, pending = wait(pending, timeout=timeout, return_when=FIRST_EXCEPTION)
            # surface the first worker failure without waiting for the rest
            for fut in done:
                if not fut.cancelled() and fut.exception() is not None:
                    raise fut.exception()
    except BaseException:
        token.cancel()
        for fut in pending:
            fut.cancel()
        raise

    # indexed by submission order, not completion order
    return [fut.result() for fut in futures]


__all__ = ["CancellationToken", "check", "wait_all", "POLL_INTERVAL"]
