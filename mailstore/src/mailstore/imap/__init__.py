"""IMAP-backed mail store.

What:
  Surface :class:`ImapConfig` and :class:`ImapMailStore`, the ``imapclient``
  implementation of :class:`mailstore.core.store.MailStore`.

Why:
  Callers should not depend on the transport adapter; it stays an internal
  detail of this package.
"""

from .store import ImapConfig, ImapMailStore

__all__ = ["ImapConfig", "ImapMailStore"]
