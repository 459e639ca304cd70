"""Quick resynchronization mode controller.

What:
  Track whether the ``QRESYNC`` extension has been enabled for the current
  session and enforce the lifecycle rules for enabling it.

Why:
  Quick resync changes how every folder opened afterwards reports removed
  messages (one ``VANISHED`` batch instead of per-message ``EXPUNGE``). Servers
  only accept ``ENABLE QRESYNC`` after login and before any ``SELECT``, so the
  transition is one-way, once per session, and guarded by explicit flags.

How:
  :class:`SessionFlags` carries the facade's lifecycle booleans;
  :class:`QuickResyncController` checks them, asks the transport to send the
  ``ENABLE`` command, validates the reply, and only then flips its state.

Interfaces:
  :class:`ResyncState`, :class:`ExpungeNotification`, :class:`SessionFlags`,
  :class:`QuickResyncController`.

Invariants & Safety:
  - ``DISABLED`` -> ``ENABLED`` at most once per connection; only
    :meth:`QuickResyncController.reset` (called on disconnect) goes back.
  - A failed attempt, or one cancelled before ``ENABLE`` is sent, leaves the
    state ``DISABLED``. An acknowledged ``ENABLE`` is always committed.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Callable, Collection, Iterable

from .cancellation import CancellationToken
from .errors import (
    InvalidOperationError,
    NotSupportedError,
    ObjectDisposedError,
    ProtocolError,
)

QRESYNC = "QRESYNC"


class ResyncState(Enum):
    DISABLED = "disabled"
    ENABLED = "enabled"


class ExpungeNotification(Enum):
    """Strategy a folder uses to report removed messages."""

    EXPUNGE = "expunge"
    VANISHED = "vanished"


@dataclass
class SessionFlags:
    """Lifecycle flags owned and mutated only by the store facade."""

    connected: bool = False
    authenticated: bool = False
    folder_opened: bool = False
    disposed: bool = False

    def check_disposed(self) -> None:
        if self.disposed:
            raise ObjectDisposedError("The mail store has been disposed")

    def check_authenticated(self) -> None:
        self.check_disposed()
        if not self.connected:
            raise InvalidOperationError("The mail store is not connected")
        if not self.authenticated:
            raise InvalidOperationError("The mail store is not authenticated")

    def reset(self) -> None:
        self.connected = False
        self.authenticated = False
        self.folder_opened = False


class QuickResyncController:
    """Two-state machine guarding ``ENABLE QRESYNC``."""

    def __init__(self) -> None:
        self._state = ResyncState.DISABLED

    @property
    def state(self) -> ResyncState:
        return self._state

    @property
    def enabled(self) -> bool:
        return self._state is ResyncState.ENABLED

    @property
    def notification(self) -> ExpungeNotification:
        """Value handed to the folder collaborator when a folder is opened."""

        if self.enabled:
            return ExpungeNotification.VANISHED
        return ExpungeNotification.EXPUNGE

    def enable(
        self,
        flags: SessionFlags,
        capabilities: Collection[str],
        send_enable: Callable[[], Iterable[str]],
        cancel: CancellationToken,
    ) -> None:
        """Switch the session to quick resynchronization.

        What:
          Validate the lifecycle preconditions, send ``ENABLE QRESYNC`` and
          transition to :attr:`ResyncState.ENABLED`.

        Why:
          Enabling after a folder was selected, or twice, is a programming
          error rather than a transient failure, so it is reported before any
          network traffic.

        How:
          Check disposal, connection, authentication, folder usage, current
          state, and capability in that order. Call ``send_enable`` and require
          ``QRESYNC`` among the capabilities it reports as enabled. The token
          is consulted only before the round trip; once the server has
          acknowledged, the server session is in quick resync mode and the
          state is committed regardless of the token.

        Args:
          flags: The facade's lifecycle flags.
          capabilities: Upper-case capability names advertised by the server.
          send_enable: Issues the ``ENABLE`` command and returns the enabled
            capability names.
          cancel: Cancellation token for the round trip.

        Raises:
          ObjectDisposedError: The store was closed.
          InvalidOperationError: Not connected, not authenticated, a folder was
            already opened, or quick resync is already enabled.
          NotSupportedError: The server does not advertise ``QRESYNC``.
          ProtocolError: The server did not acknowledge the extension.
          OperationCanceledError: ``cancel`` was tripped before ``ENABLE`` was
            sent.
        """

        flags.check_authenticated()
        if flags.folder_opened:
            raise InvalidOperationError(
                "Quick resync must be enabled before any folder is opened"
            )
        if self.enabled:
            raise InvalidOperationError("Quick resync is already enabled")
        if QRESYNC not in capabilities:
            raise NotSupportedError("The server does not support quick resynchronization")
        cancel.raise_if_cancelled()
        acknowledged = {name.upper() for name in send_enable()}
        if QRESYNC not in acknowledged:
            raise ProtocolError("The server did not acknowledge ENABLE QRESYNC")
        self._state = ResyncState.ENABLED

    def reset(self) -> None:
        self._state = ResyncState.DISABLED
