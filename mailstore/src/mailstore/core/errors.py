"""Exception taxonomy shared by every mail store component.

What:
  Define the typed failures raised by the namespace model, folder resolver,
  quick-resync controller, and the IMAP-backed store facade.

Why:
  Callers need to tell expected outcomes (a folder that does not exist, a
  capability the server lacks) apart from programming errors and environment
  faults without parsing messages.

How:
  A single :class:`MailStoreError` root with one subclass per failure kind.
  Subclasses also derive from the closest builtin (``ValueError``,
  ``LookupError``, ``OSError``...) so generic handlers keep working.

Invariants & Safety:
  - Errors are surfaced unchanged; no component retries or swallows them.
  - :class:`OperationCanceledError` is only raised when the observable store
    state has been left untouched.
"""
from __future__ import annotations


class MailStoreError(Exception):
    """Root of every error raised by :mod:`mailstore`."""


class InvalidArgumentError(MailStoreError, ValueError):
    """Malformed input such as an empty folder path or unknown folder role."""


class InvalidOperationError(MailStoreError, RuntimeError):
    """Operation attempted in the wrong lifecycle state.

    Raised when the store is not connected or authenticated, when a folder has
    already been opened before quick resync, or when quick resync is already
    enabled.
    """


class ObjectDisposedError(InvalidOperationError):
    """The store was closed and can no longer be used."""


class NotSupportedError(MailStoreError):
    """The remote service does not advertise the required capability."""


class FolderNotFoundError(MailStoreError, LookupError):
    """No folder or namespace matches the request.

    Attributes:
      path: Folder path or namespace prefix that could not be resolved.
    """

    def __init__(self, path: str, message: str | None = None) -> None:
        super().__init__(message or f"Folder not found: {path!r}")
        self.path = path


class OperationCanceledError(MailStoreError):
    """Caller-initiated cancellation or an expired deadline."""


class MailStoreIOError(MailStoreError, OSError):
    """Transport level fault (socket failure, aborted connection)."""


class ProtocolError(MailStoreError):
    """The server reply does not have the expected structure."""


class AuthenticationError(MailStoreError):
    """The server rejected the supplied credentials."""
