"""IMAP implementation of the mail store facade.

What:
  Provide :class:`ImapConfig`, the connection parameters with defaults taken
  from ``config.yaml``, and :class:`ImapMailStore`, the
  :class:`~mailstore.core.store.MailStore` backed by ``imapclient``.

Why:
  The store owns every piece of session state (namespaces, Inbox and special
  folder table, quick-resync flag, lifecycle flags) and is the only component
  allowed to mutate it. Concentrating lifecycle and locking here keeps the
  resolver and the resync controller pure.

How:
  One :class:`threading.Lock` serialises all operations on the connection.
  Authentication stages the namespaces, Inbox, and special folders in local
  variables and commits them only after every round trip succeeded.
  Disconnect clears them and resets quick resync. Alerts found by the
  transport are published to the store's :class:`AlertChannel`, whose
  dispatcher thread never takes the connection lock.

Interfaces:
  :class:`ImapConfig`, :class:`ImapMailStore`.

Invariants & Safety:
  - Namespaces are populated exactly once per successful authentication and
    cleared on disconnect; quick resync is ``DISABLED`` on every new
    connection.
  - No two operations run concurrently on the same store.
  - Cancellation is honoured up to each round trip; a cancelled call commits
    nothing.
"""
from __future__ import annotations

import os
import threading
from dataclasses import dataclass, field
from typing import Dict, FrozenSet, List, Optional, Tuple, Union

from ..config.loader import get_runtime_config
from ..config.schema import RuntimeConfig
from ..core.alerts import AlertChannel
from ..core.cancellation import CancellationToken, ensure_token
from ..core.errors import InvalidArgumentError, InvalidOperationError
from ..core.folders import INBOX, MailFolder, OpenedFolder, SpecialFolder
from ..core.namespaces import FolderNamespace, FolderNamespaceCollection, NamespaceSet
from ..core.resolver import FolderResolver, WellKnownFolders, build_folder, build_inbox
from ..core.resync import QRESYNC, QuickResyncController, ResyncState, SessionFlags
from ..core.store import MailStore
from ..utils.logging import get_logger
from .transport import ImapTransport

NAMESPACE_CAPABILITY = "NAMESPACE"
SPECIAL_USE_CAPABILITY = "SPECIAL-USE"
XLIST_CAPABILITY = "XLIST"


@dataclass
class ImapConfig:
    """Connection parameters for an IMAP mail store.

    What:
      Capture the endpoint, credentials, and discovery switches of one
      account.

    Why:
      Callers usually only know the account; everything else comes from
      ``config.yaml``. Tests and the CLI can still pass every field explicitly.

    How:
      :meth:`__post_init__` loads the runtime configuration only when a field
      is missing and fills each unset attribute from it. The password falls
      back to the environment variable named by ``imap.password_env``.

    Attributes:
      host: IMAP hostname.
      username: Login name.
      password: Password or app-specific token.
      port: IMAP port.
      ssl: Whether to use implicit TLS.
      timeout: Socket timeout in seconds.
      detect_special_use: Look up special folders through SPECIAL-USE/XLIST.
      max_pending_alerts: Bound of the alert dispatch queue.
    """

    host: Optional[str] = None
    username: Optional[str] = None
    password: Optional[str] = field(default=None, repr=False)
    port: Optional[int] = None
    ssl: Optional[bool] = None
    timeout: Optional[float] = None
    detect_special_use: Optional[bool] = None
    max_pending_alerts: Optional[int] = None

    def __post_init__(self) -> None:
        required = (self.host, self.port, self.ssl, self.detect_special_use, self.max_pending_alerts)
        if any(value is None for value in required):
            defaults = self.from_settings(get_runtime_config())
            for name in self.__dataclass_fields__:
                if getattr(self, name) is None:
                    setattr(self, name, getattr(defaults, name))

    @classmethod
    def from_settings(cls, settings: RuntimeConfig, **overrides: object) -> "ImapConfig":
        """Build a config from ``settings``; non-``None`` overrides win."""

        imap = settings.imap
        values: Dict[str, object] = {
            "host": imap.host,
            "username": imap.username,
            "password": os.environ.get(imap.password_env),
            "port": imap.port,
            "ssl": imap.ssl,
            "timeout": imap.timeout_s,
            "detect_special_use": settings.folders.detect_special_use,
            "max_pending_alerts": settings.alerts.max_pending,
        }
        values.update({name: value for name, value in overrides.items() if value is not None})
        return cls(**values)  # type: ignore[arg-type]


_Bootstrap = Tuple[
    FrozenSet[str],
    Tuple[List[FolderNamespace], List[FolderNamespace], List[FolderNamespace]],
    MailFolder,
    Dict[SpecialFolder, MailFolder],
]


class ImapMailStore(MailStore):
    """Mail store speaking IMAP through ``imapclient``.

    What:
      Implement every :class:`MailStore` operation on top of
      :class:`~mailstore.imap.transport.ImapTransport`.

    Why:
      Callers need one object that owns the connection lifecycle and answers
      folder questions consistently with what the server advertised at login.

    How:
      Each public operation acquires the connection lock, checks the
      lifecycle flags, and then delegates to the resolver, the resync
      controller, or the transport.

    Args:
      config: Connection parameters.
    """

    def __init__(self, config: ImapConfig) -> None:
        self._config = config
        self._lock = threading.Lock()
        self._flags = SessionFlags()
        self._capabilities: FrozenSet[str] = frozenset()
        self._namespaces = NamespaceSet()
        self._well_known = WellKnownFolders()
        self._resync = QuickResyncController()
        self._logger = get_logger("mailstore.imap")
        self._alerts = AlertChannel(max_pending=config.max_pending_alerts or 256)
        self._transport = ImapTransport(
            config.host or "",
            config.port or 993,
            bool(config.ssl),
            config.timeout,
            alert_sink=self._alerts.publish,
        )
        self._resolver = FolderResolver(self._namespaces, self._well_known, self._transport)
        self._selected: Optional[MailFolder] = None

    @property
    def config(self) -> ImapConfig:
        return self._config

    # Lifecycle ---------------------------------------------------------
    @property
    def is_connected(self) -> bool:
        return self._flags.connected

    @property
    def is_authenticated(self) -> bool:
        return self._flags.authenticated

    @property
    def is_disposed(self) -> bool:
        return self._flags.disposed

    @property
    def capabilities(self) -> FrozenSet[str]:
        return self._capabilities

    def connect(self, *, cancel: Optional[CancellationToken] = None) -> None:
        """Open the connection and read the pre-login capabilities.

        Raises:
          ObjectDisposedError: The store was closed.
          InvalidOperationError: Already connected.
          MailStoreIOError: The server could not be reached.
          OperationCanceledError: ``cancel`` was tripped; no connection is kept.
        """

        token = ensure_token(cancel)
        with self._lock:
            self._flags.check_disposed()
            if self._flags.connected:
                raise InvalidOperationError("The mail store is already connected")
            token.raise_if_cancelled()
            self._transport.connect()
            try:
                capabilities = self._transport.capabilities()
                token.raise_if_cancelled()
            except BaseException:
                self._transport.shutdown()
                raise
            self._capabilities = capabilities
            self._flags.connected = True
            self._logger.info(
                "connected", host=self._config.host, port=self._config.port, ssl=self._config.ssl
            )

    def authenticate(
        self,
        username: Optional[str] = None,
        password: Optional[str] = None,
        *,
        cancel: Optional[CancellationToken] = None,
    ) -> None:
        """Log in and populate namespaces, the Inbox, and special folders.

        What:
          Send ``LOGIN`` and then gather everything folder resolution depends
          on.

        Why:
          Namespaces and well-known folders must describe the authenticated
          session exactly; partial population would make later resolutions
          inconsistent.

        How:
          Credentials default to the configured ones. The token is checked
          before ``LOGIN`` and again once the bootstrap round trips return;
          the results are committed together only if it is still live. If the
          bootstrap fails or the token tripped meanwhile, the connection is
          shut down because the server-side session no longer matches local
          state.

        Args:
          username: Login name, defaults to ``config.username``.
          password: Password, defaults to ``config.password``.
          cancel: Token checked before the login and before committing.

        Raises:
          InvalidArgumentError: No credentials available.
          InvalidOperationError: Not connected or already authenticated.
          AuthenticationError: The server rejected the credentials.
          MailStoreIOError / ProtocolError: Transport or reply failures.
          OperationCanceledError: ``cancel`` was tripped; a session that was
            already logged in is shut down.
        """

        token = ensure_token(cancel)
        with self._lock:
            self._flags.check_disposed()
            if not self._flags.connected:
                raise InvalidOperationError("The mail store is not connected")
            if self._flags.authenticated:
                raise InvalidOperationError("The mail store is already authenticated")
            username = username if username is not None else self._config.username
            password = password if password is not None else self._config.password
            if not username or password is None:
                raise InvalidArgumentError("A username and password are required")
            token.raise_if_cancelled()
            self._transport.login(username, password)
            try:
                capabilities, namespaces, inbox, specials = self._bootstrap()
                token.raise_if_cancelled()
            except BaseException:
                self._logger.error("session bootstrap failed", username=username)
                try:
                    self._transport.shutdown()
                finally:
                    self._reset_session()
                raise
            self._capabilities = capabilities
            self._namespaces._populate(*namespaces)
            self._well_known._populate(inbox, specials)
            self._flags.authenticated = True
            self._logger.info(
                "authenticated",
                username=username,
                personal=len(self._namespaces.personal),
                shared=len(self._namespaces.shared),
                other=len(self._namespaces.other),
                special_folders=sorted(kind.value for kind in specials),
            )

    def _bootstrap(self) -> _Bootstrap:
        capabilities = self._transport.capabilities()
        if NAMESPACE_CAPABILITY in capabilities:
            personal, shared, other = self._transport.namespace()
        else:
            root = self._transport.list_folders("", "")
            delimiter = root[0].delimiter if root else None
            personal, shared, other = [FolderNamespace("", delimiter)], [], []
        staged = NamespaceSet()
        staged._populate(personal, shared, other)

        default_delimiter = personal[0].delimiter if personal else None
        rows = self._transport.list_folders("", INBOX)
        inbox_row = next((row for row in rows if row.name.upper() == INBOX), None)
        inbox = build_inbox(inbox_row, default_delimiter)

        specials = self._detect_special_folders(capabilities, staged)
        return capabilities, (personal, shared, other), inbox, specials

    def _detect_special_folders(
        self, capabilities: FrozenSet[str], staged: NamespaceSet
    ) -> Dict[SpecialFolder, MailFolder]:
        if not self._config.detect_special_use:
            return {}
        if SPECIAL_USE_CAPABILITY in capabilities:
            rows = self._transport.list_folders("", "*")
        elif XLIST_CAPABILITY in capabilities:
            rows = self._transport.xlist_folders("", "*")
        else:
            return {}
        specials: Dict[SpecialFolder, MailFolder] = {}
        for row in rows:
            folder = build_folder(row, staged)
            if folder is None or folder.special is None or folder.is_inbox:
                continue
            specials.setdefault(folder.special, folder)
        return specials

    def disconnect(self) -> None:
        """Log out and clear namespaces, folders, and quick resync."""

        with self._lock:
            self._flags.check_disposed()
            self._disconnect_locked()

    def _disconnect_locked(self) -> None:
        if not self._flags.connected:
            return
        try:
            self._transport.logout()
        finally:
            self._reset_session()
            self._logger.info("disconnected", host=self._config.host)

    def _reset_session(self) -> None:
        self._namespaces._clear()
        self._well_known._clear()
        self._resync.reset()
        self._flags.reset()
        self._capabilities = frozenset()
        self._selected = None

    def close(self) -> None:
        """Disconnect if needed and dispose of the store and its alert channel."""

        with self._lock:
            if self._flags.disposed:
                return
            try:
                self._disconnect_locked()
            finally:
                self._flags.disposed = True
                self._alerts.close()

    # Namespaces --------------------------------------------------------
    @property
    def personal_namespaces(self) -> FolderNamespaceCollection:
        self._flags.check_disposed()
        return self._namespaces.personal

    @property
    def shared_namespaces(self) -> FolderNamespaceCollection:
        self._flags.check_disposed()
        return self._namespaces.shared

    @property
    def other_namespaces(self) -> FolderNamespaceCollection:
        self._flags.check_disposed()
        return self._namespaces.other

    # Folders -----------------------------------------------------------
    @property
    def inbox(self) -> MailFolder:
        """The Inbox; raises ``InvalidOperationError`` before authentication."""

        self._flags.check_authenticated()
        inbox = self._well_known.inbox
        if inbox is None:  # pragma: no cover - populated with the flag
            raise InvalidOperationError("The Inbox is not available")
        return inbox

    @property
    def selected_folder(self) -> Optional[MailFolder]:
        return self._selected

    def get_special_folder(self, kind: Union[SpecialFolder, str]) -> Optional[MailFolder]:
        with self._lock:
            self._flags.check_authenticated()
            return self._resolver.get_special_folder(kind)

    def get_folder(
        self,
        target: Union[str, FolderNamespace],
        *,
        cancel: Optional[CancellationToken] = None,
    ) -> MailFolder:
        """Resolve a path string or the toplevel folder of a namespace.

        Raises:
          InvalidOperationError: Not authenticated.
          InvalidArgumentError: Empty path or ``None``.
          FolderNotFoundError: Unknown namespace or folder.
          OperationCanceledError: ``cancel`` was tripped.
        """

        token = ensure_token(cancel)
        with self._lock:
            self._flags.check_authenticated()
            if isinstance(target, FolderNamespace):
                return self._resolver.get_namespace_folder(target)
            return self._resolver.get_folder(target, token)

    def get_subfolders(
        self,
        folder: MailFolder,
        *,
        cancel: Optional[CancellationToken] = None,
    ) -> List[MailFolder]:
        token = ensure_token(cancel)
        with self._lock:
            self._flags.check_authenticated()
            return self._resolver.get_subfolders(folder, token)

    def open_folder(
        self,
        folder: MailFolder,
        readonly: bool = False,
        *,
        cancel: Optional[CancellationToken] = None,
    ) -> OpenedFolder:
        """Select ``folder`` and hand the resync mode to the folder layer.

        Once ``SELECT`` succeeded the server has a selected mailbox, so the
        ``folder_opened`` flag is set and the result returned even if the
        token trips afterwards.
        """

        token = ensure_token(cancel)
        with self._lock:
            self._flags.check_authenticated()
            if not isinstance(folder, MailFolder):
                raise InvalidArgumentError("folder must be a MailFolder")
            if not folder.can_open:
                raise InvalidOperationError(f"Folder {folder.full_name!r} cannot be selected")
            token.raise_if_cancelled()
            reply = self._transport.select_folder(folder.full_name, readonly=readonly)
            self._flags.folder_opened = True
            self._selected = folder
            notification = self._resync.notification
            self._logger.info(
                "folder opened",
                folder=folder.full_name,
                readonly=readonly,
                notification=notification.value,
            )
            return OpenedFolder(
                folder=folder,
                readonly=readonly,
                notification=notification,
                uidvalidity=_int_or_none(reply.get("UIDVALIDITY")),
                exists=_int_or_none(reply.get("EXISTS")),
            )

    # Quick resync ------------------------------------------------------
    @property
    def resync_state(self) -> ResyncState:
        return self._resync.state

    def enable_quick_resync(self, *, cancel: Optional[CancellationToken] = None) -> None:
        """Enable ``QRESYNC`` for every folder opened from now on.

        See :meth:`mailstore.core.resync.QuickResyncController.enable` for the
        preconditions and failure modes.
        """

        token = ensure_token(cancel)
        with self._lock:
            self._resync.enable(
                self._flags,
                self._capabilities,
                lambda: self._transport.enable(QRESYNC),
                token,
            )
            self._logger.info("quick resync enabled", host=self._config.host)

    # Alerts and keepalive ----------------------------------------------
    @property
    def alerts(self) -> AlertChannel:
        return self._alerts

    def noop(self, *, cancel: Optional[CancellationToken] = None) -> None:
        token = ensure_token(cancel)
        with self._lock:
            self._flags.check_disposed()
            if not self._flags.connected:
                raise InvalidOperationError("The mail store is not connected")
            token.raise_if_cancelled()
            self._transport.noop()


def _int_or_none(value: object) -> Optional[int]:
    if value is None:
        return None
    try:
        return int(value)  # type: ignore[call-overload]
    except (TypeError, ValueError):
        return None
