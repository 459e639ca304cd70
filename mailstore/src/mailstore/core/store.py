"""Protocol-independent mail store contract.

What:
  Declare the operations every remote mail store client offers (namespace
  access, folder resolution, quick resync, alerts) and implement their
  cancellable async forms once for all subclasses.

Why:
  Concrete clients differ in transport and wire parsing only. Sharing the
  async layer guarantees the blocking and async forms cannot drift apart.

How:
  :class:`MailStore` is an :class:`abc.ABC`. Subclasses implement the blocking
  methods, each accepting a ``cancel`` token; the ``*_async`` methods delegate
  to them through :func:`~mailstore.core.cancellation.run_cancellable`.

Interfaces:
  :class:`MailStore`.
"""
from __future__ import annotations

import abc
from typing import List, Optional, Union

from .alerts import AlertChannel
from .cancellation import CancellationToken, run_cancellable
from .folders import MailFolder, OpenedFolder, SpecialFolder
from .namespaces import FolderNamespace, FolderNamespaceCollection
from .resync import ResyncState


class MailStore(abc.ABC):
    """Abstract remote mail store."""

    # Lifecycle ---------------------------------------------------------
    @abc.abstractmethod
    def connect(self, *, cancel: Optional[CancellationToken] = None) -> None:
        """Open the connection to the server."""

    @abc.abstractmethod
    def authenticate(
        self,
        username: Optional[str] = None,
        password: Optional[str] = None,
        *,
        cancel: Optional[CancellationToken] = None,
    ) -> None:
        """Log in and populate namespaces, Inbox, and special folders."""

    @abc.abstractmethod
    def disconnect(self) -> None:
        """Log out and forget every piece of session state."""

    @abc.abstractmethod
    def close(self) -> None:
        """Dispose of the store; later calls raise ``ObjectDisposedError``."""

    @property
    @abc.abstractmethod
    def is_connected(self) -> bool: ...

    @property
    @abc.abstractmethod
    def is_authenticated(self) -> bool: ...

    # Namespaces --------------------------------------------------------
    @property
    @abc.abstractmethod
    def personal_namespaces(self) -> FolderNamespaceCollection: ...

    @property
    @abc.abstractmethod
    def shared_namespaces(self) -> FolderNamespaceCollection: ...

    @property
    @abc.abstractmethod
    def other_namespaces(self) -> FolderNamespaceCollection: ...

    # Folders -----------------------------------------------------------
    @property
    @abc.abstractmethod
    def inbox(self) -> MailFolder: ...

    @abc.abstractmethod
    def get_special_folder(self, kind: Union[SpecialFolder, str]) -> Optional[MailFolder]: ...

    @abc.abstractmethod
    def get_folder(
        self,
        target: Union[str, FolderNamespace],
        *,
        cancel: Optional[CancellationToken] = None,
    ) -> MailFolder: ...

    @abc.abstractmethod
    def get_subfolders(
        self,
        folder: MailFolder,
        *,
        cancel: Optional[CancellationToken] = None,
    ) -> List[MailFolder]: ...

    @abc.abstractmethod
    def open_folder(
        self,
        folder: MailFolder,
        readonly: bool = False,
        *,
        cancel: Optional[CancellationToken] = None,
    ) -> OpenedFolder: ...

    # Quick resync ------------------------------------------------------
    @property
    @abc.abstractmethod
    def resync_state(self) -> ResyncState: ...

    @abc.abstractmethod
    def enable_quick_resync(self, *, cancel: Optional[CancellationToken] = None) -> None: ...

    # Alerts and keepalive ----------------------------------------------
    @property
    @abc.abstractmethod
    def alerts(self) -> AlertChannel: ...

    @abc.abstractmethod
    def noop(self, *, cancel: Optional[CancellationToken] = None) -> None:
        """Round trip that lets pending server alerts arrive."""

    # Async forms -------------------------------------------------------
    async def connect_async(self, *, cancel: Optional[CancellationToken] = None) -> None:
        await run_cancellable(self.connect, cancel=cancel)

    async def authenticate_async(
        self,
        username: Optional[str] = None,
        password: Optional[str] = None,
        *,
        cancel: Optional[CancellationToken] = None,
    ) -> None:
        await run_cancellable(self.authenticate, username, password, cancel=cancel)

    async def enable_quick_resync_async(
        self, *, cancel: Optional[CancellationToken] = None
    ) -> None:
        await run_cancellable(self.enable_quick_resync, cancel=cancel)

    async def get_folder_async(
        self,
        target: Union[str, FolderNamespace],
        *,
        cancel: Optional[CancellationToken] = None,
    ) -> MailFolder:
        return await run_cancellable(self.get_folder, target, cancel=cancel)

    async def get_subfolders_async(
        self,
        folder: MailFolder,
        *,
        cancel: Optional[CancellationToken] = None,
    ) -> List[MailFolder]:
        return await run_cancellable(self.get_subfolders, folder, cancel=cancel)

    async def open_folder_async(
        self,
        folder: MailFolder,
        readonly: bool = False,
        *,
        cancel: Optional[CancellationToken] = None,
    ) -> OpenedFolder:
        return await run_cancellable(self.open_folder, folder, readonly, cancel=cancel)

    async def noop_async(self, *, cancel: Optional[CancellationToken] = None) -> None:
        await run_cancellable(self.noop, cancel=cancel)

    # Context management ------------------------------------------------
    def __enter__(self) -> "MailStore":
        self.connect()
        self.authenticate()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
