"""Cancellation tokens and the blocking/async bridge.

What:
  Provide :class:`CancellationToken`, the single cancellation and deadline
  primitive passed to every store operation, and :func:`run_cancellable`, which
  exposes a blocking operation as an awaitable.

Why:
  ``imapclient`` is synchronous. Each operation is therefore implemented once as
  a blocking call that checks its token at every round-trip boundary, and the
  async forms reuse it from a worker thread instead of duplicating logic.

How:
  Tokens wrap a :class:`threading.Event` plus an optional monotonic deadline.
  :func:`run_cancellable` runs the blocking callable with
  :func:`asyncio.to_thread` and trips the token when the awaiting task is
  cancelled, so the worker aborts at its next check without committing state.

Interfaces:
  :class:`CancellationToken`, :func:`run_cancellable`.
"""
from __future__ import annotations

import asyncio
import functools
import threading
import time
from typing import Any, Callable, Optional, TypeVar

from .errors import OperationCanceledError

T = TypeVar("T")


class CancellationToken:
    """Cooperative cancellation flag with an optional deadline.

    Args:
      timeout: Seconds from construction after which the token counts as
        cancelled. ``None`` disables the deadline.
    """

    def __init__(self, timeout: Optional[float] = None) -> None:
        self._event = threading.Event()
        self._deadline = time.monotonic() + timeout if timeout is not None else None

    @property
    def expired(self) -> bool:
        return self._deadline is not None and time.monotonic() >= self._deadline

    @property
    def cancelled(self) -> bool:
        return self._event.is_set() or self.expired

    def cancel(self) -> None:
        self._event.set()

    def raise_if_cancelled(self) -> None:
        """Raise :class:`OperationCanceledError` if the token was tripped.

        The message distinguishes explicit cancellation from an elapsed
        deadline so callers can log the difference.
        """

        if self._event.is_set():
            raise OperationCanceledError("The operation was canceled")
        if self.expired:
            raise OperationCanceledError("The operation deadline elapsed")


def ensure_token(cancel: Optional[CancellationToken]) -> CancellationToken:
    """Return ``cancel`` or a fresh token that is never tripped."""

    return cancel if cancel is not None else CancellationToken()


async def run_cancellable(
    fn: Callable[..., T],
    *args: Any,
    cancel: Optional[CancellationToken] = None,
    **kwargs: Any,
) -> T:
    """Await a blocking store operation from a worker thread.

    What:
      Execute ``fn(*args, cancel=token, **kwargs)`` off the event loop and
      return its result.

    Why:
      Keeps a single implementation per operation while honouring asyncio task
      cancellation: the caller stops waiting immediately and the worker notices
      the tripped token before it touches shared state.

    How:
      Delegate to :func:`asyncio.to_thread`. On :class:`asyncio.CancelledError`
      the token is cancelled and the error re-raised.

    Args:
      fn: Blocking callable accepting a ``cancel`` keyword.
      *args: Positional arguments for ``fn``.
      cancel: Token shared with the caller; one is created when omitted.
      **kwargs: Keyword arguments for ``fn``.

    Returns:
      Whatever ``fn`` returns.
    """

    token = ensure_token(cancel)
    token.raise_if_cancelled()
    try:
        return await asyncio.to_thread(functools.partial(fn, *args, cancel=token, **kwargs))
    except asyncio.CancelledError:
        token.cancel()
        raise
