"""Thin adapter between the mail store and ``imapclient``.

What:
  Own one :class:`imapclient.IMAPClient` connection and expose the handful of
  commands the store needs (``CAPABILITY``, ``NAMESPACE``, ``LIST``,
  ``XLIST``, ``ENABLE``, ``SELECT``, ``NOOP``) with decoded results.

Why:
  ``imapclient`` mixes bytes and text in its replies and raises its own
  exception hierarchy. Normalising both here keeps the resolver and the store
  free of wire details and lets tests swap the client for an in-memory fake.

How:
  Every command runs inside :meth:`ImapTransport._command`, which maps
  ``imapclient`` failures onto :mod:`mailstore.core.errors` and afterwards
  scans the untagged status responses left by :mod:`imaplib` for ``[ALERT]``
  texts, forwarding each one to the alert sink.

Interfaces:
  :class:`ImapTransport`.

Invariants & Safety:
  - ``LoginError`` becomes ``AuthenticationError``, aborted connections and
    socket failures become ``MailStoreIOError``, a missing capability becomes
    ``NotSupportedError``, any other ``imapclient`` error ``ProtocolError``.
  - Alert responses are consumed once; other untagged data is left in place.
"""
from __future__ import annotations

import contextlib
from typing import Any, Callable, Dict, FrozenSet, Iterator, List, Optional, Sequence, Tuple

from imapclient import IMAPClient
from imapclient.exceptions import (
    CapabilityError,
    IMAPClientAbortError,
    IMAPClientError,
    LoginError,
)

from ..core.errors import (
    AuthenticationError,
    InvalidOperationError,
    MailStoreIOError,
    NotSupportedError,
    ProtocolError,
)
from ..core.folders import FolderEntry
from ..core.namespaces import FolderNamespace

ALERT_CODE = "[ALERT]"

NamespaceTriple = Tuple[List[FolderNamespace], List[FolderNamespace], List[FolderNamespace]]


def _text(value: Any) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    return str(value)


def _namespaces(items: Optional[Sequence[Any]]) -> List[FolderNamespace]:
    result: List[FolderNamespace] = []
    for prefix, delimiter in items or ():
        result.append(FolderNamespace(prefix=_text(prefix) or "", delimiter=_text(delimiter) or None))
    return result


def _entries(rows: Sequence[Any]) -> List[FolderEntry]:
    entries: List[FolderEntry] = []
    for flags, delimiter, name in rows:
        entries.append(
            FolderEntry(
                flags=frozenset((_text(flag) or "").upper() for flag in flags or ()),
                delimiter=_text(delimiter) or None,
                name=_text(name) or "",
            )
        )
    return entries


class ImapTransport:
    """One IMAP connection with decoded replies and alert forwarding.

    Args:
      host: Server hostname.
      port: Server port.
      ssl: Whether to use implicit TLS.
      timeout: Socket timeout in seconds, ``None`` for the library default.
      alert_sink: Called with the text of every ``[ALERT]`` response.
    """

    def __init__(
        self,
        host: str,
        port: int,
        ssl: bool,
        timeout: Optional[float],
        alert_sink: Callable[[str], Any],
    ) -> None:
        self._host = host
        self._port = port
        self._ssl = ssl
        self._timeout = timeout
        self._alert_sink = alert_sink
        self._client: Optional[IMAPClient] = None

    @property
    def connected(self) -> bool:
        return self._client is not None

    @property
    def client(self) -> IMAPClient:
        if self._client is None:
            raise InvalidOperationError("IMAP transport not connected")
        return self._client

    @contextlib.contextmanager
    def _command(self, name: str) -> Iterator[None]:
        """Translate ``imapclient`` failures and collect alerts for ``name``."""

        try:
            yield
        except LoginError as exc:
            raise AuthenticationError(f"{name} rejected: {exc}") from exc
        except IMAPClientAbortError as exc:
            raise MailStoreIOError(f"{name} aborted: {exc}") from exc
        except CapabilityError as exc:
            raise NotSupportedError(f"{name} not supported: {exc}") from exc
        except IMAPClientError as exc:
            raise ProtocolError(f"{name} failed: {exc}") from exc
        except OSError as exc:
            raise MailStoreIOError(f"{name} I/O error: {exc}") from exc
        finally:
            self._collect_alerts()

    def _collect_alerts(self) -> None:
        imap = getattr(self._client, "_imap", None)
        responses: Optional[Dict[str, List[Any]]] = getattr(imap, "untagged_responses", None)
        if responses is None:
            return
        for status in ("OK", "NO", "BAD"):
            items = responses.get(status)
            if not items:
                continue
            kept = []
            for item in items:
                text = _text(item) or ""
                if text.upper().startswith(ALERT_CODE):
                    self._alert_sink(text[len(ALERT_CODE):].strip())
                else:
                    kept.append(item)
            if kept:
                responses[status] = kept
            else:
                del responses[status]
        responses.pop("ALERT", None)

    def connect(self) -> None:
        """Open the connection and forward an alert carried by the greeting."""

        with self._command("connect"):
            self._client = IMAPClient(
                self._host, port=self._port, ssl=self._ssl, timeout=self._timeout
            )
        greeting = _text(getattr(self._client, "welcome", None)) or ""
        index = greeting.upper().find(ALERT_CODE)
        if index >= 0:
            self._alert_sink(greeting[index + len(ALERT_CODE):].strip())

    def login(self, username: str, password: str) -> None:
        with self._command("LOGIN"):
            self.client.login(username, password)

    def logout(self) -> None:
        """Send ``LOGOUT`` and drop the client even if the command fails."""

        if self._client is None:
            return
        try:
            with self._command("LOGOUT"):
                self._client.logout()
        finally:
            self._client = None

    def shutdown(self) -> None:
        """Close the socket without a ``LOGOUT`` exchange."""

        if self._client is None:
            return
        try:
            with self._command("shutdown"):
                self._client.shutdown()
        finally:
            self._client = None

    def capabilities(self) -> FrozenSet[str]:
        with self._command("CAPABILITY"):
            raw = self.client.capabilities()
        return frozenset((_text(item) or "").upper() for item in raw)

    def namespace(self) -> NamespaceTriple:
        """Return ``(personal, shared, other)`` namespaces.

        ``imapclient`` orders its reply personal, other, shared; the result
        here follows the tie-break order used by the resolver instead.
        """

        with self._command("NAMESPACE"):
            reply = self.client.namespace()
        personal, other, shared = reply
        return _namespaces(personal), _namespaces(shared), _namespaces(other)

    def list_folders(self, directory: str = "", pattern: str = "*") -> List[FolderEntry]:
        with self._command("LIST"):
            rows = self.client.list_folders(directory, pattern)
        return _entries(rows)

    def xlist_folders(self, directory: str = "", pattern: str = "*") -> List[FolderEntry]:
        with self._command("XLIST"):
            rows = self.client.xlist_folders(directory, pattern)
        return _entries(rows)

    def enable(self, *capabilities: str) -> List[str]:
        with self._command("ENABLE"):
            enabled = self.client.enable(*capabilities)
        return [(_text(item) or "").upper() for item in enabled]

    def select_folder(self, name: str, readonly: bool = False) -> Dict[str, Any]:
        """Select ``name`` and return the ``SELECT`` data keyed by text."""

        with self._command("SELECT"):
            reply = self.client.select_folder(name, readonly=readonly)
        return {(_text(key) or "").upper(): value for key, value in reply.items()}

    def noop(self) -> None:
        with self._command("NOOP"):
            self.client.noop()
