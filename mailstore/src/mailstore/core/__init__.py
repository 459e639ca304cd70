"""Protocol-independent mail store model.

What:
  Re-export the namespace model, folder handles, resolver, quick-resync
  controller, alert channel, cancellation primitives, error taxonomy, and the
  abstract :class:`MailStore` contract.

Why:
  Concrete protocol clients (``mailstore.imap``) and callers import from one
  place instead of depending on the module layout.
"""

from .alerts import AlertChannel, AlertEvent
from .cancellation import CancellationToken, run_cancellable
from .errors import (
    AuthenticationError,
    FolderNotFoundError,
    InvalidArgumentError,
    InvalidOperationError,
    MailStoreError,
    MailStoreIOError,
    NotSupportedError,
    ObjectDisposedError,
    OperationCanceledError,
    ProtocolError,
)
from .folders import FolderEntry, MailFolder, OpenedFolder, SpecialFolder
from .namespaces import (
    FolderNamespace,
    FolderNamespaceCollection,
    NamespaceKind,
    NamespaceMatch,
    NamespaceSet,
)
from .resolver import FolderResolver, WellKnownFolders
from .resync import ExpungeNotification, QuickResyncController, ResyncState, SessionFlags
from .store import MailStore

__all__ = [
    "AlertChannel",
    "AlertEvent",
    "AuthenticationError",
    "CancellationToken",
    "ExpungeNotification",
    "FolderEntry",
    "FolderNamespace",
    "FolderNamespaceCollection",
    "FolderNotFoundError",
    "FolderResolver",
    "InvalidArgumentError",
    "InvalidOperationError",
    "MailFolder",
    "MailStore",
    "MailStoreError",
    "MailStoreIOError",
    "NamespaceKind",
    "NamespaceMatch",
    "NamespaceSet",
    "NotSupportedError",
    "ObjectDisposedError",
    "OpenedFolder",
    "OperationCanceledError",
    "ProtocolError",
    "QuickResyncController",
    "ResyncState",
    "SessionFlags",
    "SpecialFolder",
    "WellKnownFolders",
    "run_cancellable",
]
