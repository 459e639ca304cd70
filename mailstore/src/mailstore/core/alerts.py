"""Publish/subscribe channel for server alerts.

What:
  Deliver ``[ALERT]`` texts pushed by the server to every registered
  subscriber, in arrival order, independently of any in-flight request.

Why:
  Alerts arrive piggy-backed on arbitrary command responses while the store
  holds its connection lock. Running subscriber callbacks on that thread would
  let a slow or re-entrant subscriber stall or deadlock the session, so the
  transport only enqueues and a dedicated dispatcher thread delivers.

How:
  :meth:`AlertChannel.publish` puts an :class:`AlertEvent` on a bounded
  :class:`queue.Queue` without blocking. A daemon thread, started lazily, pops
  events and hands each one to a snapshot of the subscriber list.

Interfaces:
  :class:`AlertEvent`, :class:`AlertChannel`.

Invariants & Safety:
  - At-most-once, FIFO delivery per channel; nothing is persisted. Events with
    no subscriber at delivery time, or beyond ``max_pending``, are dropped.
  - A failing subscriber is logged and does not prevent delivery to others.
"""
from __future__ import annotations

import queue
import threading
import time
from dataclasses import dataclass
from typing import Callable, List, Optional

from ..utils.logging import JsonLogger, get_logger

AlertHandler = Callable[["AlertEvent"], None]

_STOP = object()


@dataclass(frozen=True)
class AlertEvent:
    """A single alert text received from the server."""

    message: str


class AlertChannel:
    """Ordered, best-effort alert dispatcher.

    Args:
      max_pending: Maximum number of undelivered alerts kept in memory.
      logger: Optional logger; defaults to the ``mailstore.alerts`` component.
    """

    def __init__(self, max_pending: int = 256, logger: Optional[JsonLogger] = None) -> None:
        self._subscribers: List[AlertHandler] = []
        self._lock = threading.Lock()
        self._queue: queue.Queue = queue.Queue(maxsize=max_pending)
        self._worker: Optional[threading.Thread] = None
        self._closed = False
        self._logger = logger or get_logger("mailstore.alerts")

    @property
    def closed(self) -> bool:
        return self._closed

    def subscribe(self, handler: AlertHandler) -> Callable[[], None]:
        """Register ``handler`` and return a callable that unregisters it."""

        with self._lock:
            self._subscribers.append(handler)
        return lambda: self.unsubscribe(handler)

    def unsubscribe(self, handler: AlertHandler) -> None:
        with self._lock:
            if handler in self._subscribers:
                self._subscribers.remove(handler)

    def publish(self, message: str) -> bool:
        """Queue an alert for delivery.

        What:
          Wrap ``message`` into an :class:`AlertEvent` and enqueue it.

        Why:
          Called by the transport while a request is in flight; it must never
          block on subscribers.

        How:
          ``put_nowait`` on the bounded queue, starting the dispatcher thread
          the first time an alert arrives. The closed check, the enqueue and
          the thread start happen under one lock that :meth:`close` also
          takes, so nothing is queued or started after close.

        Args:
          message: Alert text as sent by the server.

        Returns:
          ``True`` when queued, ``False`` when dropped because the channel is
          closed or full.
        """

        with self._lock:
            if self._closed:
                return False
            try:
                self._queue.put_nowait(AlertEvent(message=message))
            except queue.Full:
                self._logger.warning("alert dropped", reason="queue full")
                return False
            self._ensure_worker()
        return True

    def drain(self, timeout: Optional[float] = None) -> bool:
        """Wait until every queued alert has been dispatched.

        Returns:
          ``False`` if ``timeout`` elapsed first.
        """

        deadline = time.monotonic() + timeout if timeout is not None else None
        with self._queue.all_tasks_done:
            while self._queue.unfinished_tasks:
                if deadline is None:
                    self._queue.all_tasks_done.wait()
                    continue
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    return False
                self._queue.all_tasks_done.wait(remaining)
        return True

    def close(self) -> None:
        """Stop accepting alerts and shut the dispatcher down."""

        with self._lock:
            if self._closed:
                return
            self._closed = True
            worker = self._worker
        if worker is None:
            return
        self._queue.put(_STOP)
        if worker is not threading.current_thread():
            worker.join()

    def _ensure_worker(self) -> None:
        # Called with _lock held.
        if self._closed or self._worker is not None:
            return
        self._worker = threading.Thread(
            target=self._run, name="mailstore-alerts", daemon=True
        )
        self._worker.start()

    def _run(self) -> None:
        while True:
            event = self._queue.get()
            try:
                if event is _STOP:
                    return
                self._dispatch(event)
            finally:
                self._queue.task_done()

    def _dispatch(self, event: AlertEvent) -> None:
        with self._lock:
            handlers = list(self._subscribers)
        if not handlers:
            self._logger.info("alert dropped", reason="no subscriber")
            return
        for handler in handlers:
            try:
                handler(event)
            except Exception as exc:
                self._logger.error("alert subscriber failed", error=repr(exc))
