"""Folder resolution by role, namespace, or path.

What:
  Turn a :class:`~mailstore.core.folders.SpecialFolder` role, a
  :class:`~mailstore.core.namespaces.FolderNamespace`, or a path string into a
  :class:`~mailstore.core.folders.MailFolder` handle.

Why:
  Path resolution depends on the namespace table and on a server round trip,
  while role and namespace lookups are answered from state gathered at login.
  Keeping the rules in one object lets different protocol clients share them
  and keeps the store facade focused on lifecycle and locking.

How:
  :class:`FolderResolver` reads, but never mutates, the store-owned
  :class:`~mailstore.core.namespaces.NamespaceSet` and
  :class:`WellKnownFolders`, and asks a :class:`FolderLookup` (the transport)
  for ``LIST`` rows when it has to confirm a path.

Interfaces:
  :class:`FolderLookup`, :class:`WellKnownFolders`, :class:`FolderResolver`,
  :func:`build_folder`, :func:`build_inbox`.

Invariants & Safety:
  - ``INBOX`` (any case) is always the distinguished Inbox handle and never
    takes part in namespace matching.
  - Every other handle is rooted in exactly one known namespace.
  - The cancellation token is checked before and after each round trip; a
    cancelled resolution returns nothing.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Protocol

from .cancellation import CancellationToken
from .errors import FolderNotFoundError, InvalidArgumentError
from .folders import INBOX, FolderEntry, MailFolder, SpecialFolder, special_folder_for
from .namespaces import FolderNamespace, NamespaceMatch, NamespaceSet


class FolderLookup(Protocol):
    """The part of the transport the resolver needs."""

    def list_folders(self, directory: str = "", pattern: str = "*") -> List[FolderEntry]:
        """Return the ``LIST`` rows matching ``pattern`` under ``directory``."""


@dataclass
class WellKnownFolders:
    """Inbox and special-folder table populated at authentication."""

    inbox: Optional[MailFolder] = None
    specials: Dict[SpecialFolder, MailFolder] = field(default_factory=dict)

    def _populate(self, inbox: MailFolder, specials: Dict[SpecialFolder, MailFolder]) -> None:
        self.inbox = inbox
        self.specials = dict(specials)

    def _clear(self) -> None:
        self.inbox = None
        self.specials = {}


def _leaf(full_name: str, delimiter: Optional[str]) -> str:
    if not delimiter:
        return full_name
    return full_name.rsplit(delimiter, 1)[-1]


def build_inbox(entry: Optional[FolderEntry], default_delimiter: Optional[str]) -> MailFolder:
    """Build the Inbox handle, with or without the server's ``LIST`` row."""

    if entry is None:
        return MailFolder(
            full_name=INBOX,
            name=INBOX,
            delimiter=default_delimiter,
            special=SpecialFolder.INBOX,
        )
    return MailFolder(
        full_name=entry.name,
        name=entry.name,
        delimiter=entry.delimiter or default_delimiter,
        attributes=entry.flags,
        special=SpecialFolder.INBOX,
    )


def build_folder(
    entry: FolderEntry,
    namespaces: NamespaceSet,
    match: Optional[NamespaceMatch] = None,
) -> Optional[MailFolder]:
    """Convert a ``LIST`` row into a handle.

    Returns ``None`` for rows that no known namespace owns. Rows naming the
    Inbox produce the distinguished Inbox handle.
    """

    if entry.name.upper() == INBOX:
        return build_inbox(entry, None)
    match = match or namespaces.match(entry.name)
    if match is None:
        return None
    delimiter = entry.delimiter or match.namespace.delimiter
    return MailFolder(
        full_name=entry.name,
        name=_leaf(entry.name, delimiter),
        delimiter=delimiter,
        namespace=match.namespace,
        attributes=entry.flags,
        special=special_folder_for(entry.flags),
    )


class FolderResolver:
    """Resolve folder handles against the current session state.

    Args:
      namespaces: Namespace table owned by the store.
      well_known: Inbox and special-folder table owned by the store.
      lookup: Transport used for ``LIST`` round trips.
    """

    def __init__(
        self,
        namespaces: NamespaceSet,
        well_known: WellKnownFolders,
        lookup: FolderLookup,
    ) -> None:
        self._namespaces = namespaces
        self._well_known = well_known
        self._lookup = lookup

    def get_special_folder(self, kind: object) -> Optional[MailFolder]:
        """Return the folder configured for ``kind``.

        What:
          Look the role up in the table filled at authentication.

        Why:
          A server without ``SPECIAL-USE``/``XLIST``, or without a folder for
          a given role, is an expected situation, not an error.

        Args:
          kind: A :class:`SpecialFolder` or its value string.

        Returns:
          The folder, or ``None`` when the server has none for that role.

        Raises:
          InvalidArgumentError: ``kind`` is not a defined role.
        """

        role = SpecialFolder.coerce(kind)
        if role is SpecialFolder.INBOX:
            return self._well_known.inbox
        return self._well_known.specials.get(role)

    def get_namespace_folder(self, namespace: FolderNamespace) -> MailFolder:
        """Return the toplevel folder of a currently known namespace.

        A namespace rooted at ``INBOX`` answers with the distinguished Inbox
        handle so both routes yield the same folder.

        Raises:
          InvalidArgumentError: ``namespace`` is ``None`` or not a namespace.
          FolderNotFoundError: The namespace is unknown, for instance a
            descriptor kept from before a reconnect.
        """

        if namespace is None or not isinstance(namespace, FolderNamespace):
            raise InvalidArgumentError("namespace must be a FolderNamespace")
        if not self._namespaces.contains(namespace):
            raise FolderNotFoundError(
                namespace.prefix, f"Unknown namespace: {namespace.prefix!r}"
            )
        root = namespace.root
        if root.upper() == INBOX and self._well_known.inbox is not None:
            return self._well_known.inbox
        return MailFolder(
            full_name=root,
            name=_leaf(root, namespace.delimiter),
            delimiter=namespace.delimiter,
            namespace=namespace,
        )

    def get_folder(self, path: str, cancel: CancellationToken) -> MailFolder:
        """Resolve an arbitrary folder path.

        What:
          Map ``path`` to its namespace and confirm the folder with the server.

        Why:
          The longest namespace prefix decides the delimiter used to interpret
          the remainder, and only the server knows whether the folder exists.

        How:
          Reject empty input, short-circuit the Inbox, match the namespace,
          answer namespace roots locally, otherwise issue ``LIST "" <path>``
          and require an exact name match.

        Args:
          path: Full folder path.
          cancel: Token checked around the round trip.

        Returns:
          The resolved handle.

        Raises:
          InvalidArgumentError: ``path`` is ``None``, not a string, or blank.
          FolderNotFoundError: No namespace owns the path or the server does
            not list it.
          OperationCanceledError: ``cancel`` was tripped.
        """

        if path is None or not isinstance(path, str) or not path.strip():
            raise InvalidArgumentError("Folder path must be a non-empty string")
        cancel.raise_if_cancelled()
        if path.upper() == INBOX:
            if self._well_known.inbox is None:
                raise FolderNotFoundError(path)
            return self._well_known.inbox
        match = self._namespaces.match(path)
        if match is None:
            raise FolderNotFoundError(path, f"No namespace contains folder {path!r}")
        if not match.subpath:
            return self.get_namespace_folder(match.namespace)
        full_name = match.namespace.prefix + match.subpath
        entries = self._lookup.list_folders("", full_name)
        cancel.raise_if_cancelled()
        for entry in entries:
            if entry.name == full_name:
                folder = build_folder(entry, self._namespaces, match)
                if folder is not None:
                    return folder
        raise FolderNotFoundError(path)

    def get_subfolders(self, folder: MailFolder, cancel: CancellationToken) -> List[MailFolder]:
        """List the direct children of ``folder``.

        Flat folders (no delimiter) have no children. Rows outside every known
        namespace are skipped.
        """

        if folder is None or not isinstance(folder, MailFolder):
            raise InvalidArgumentError("folder must be a MailFolder")
        if folder.delimiter is None:
            return []
        cancel.raise_if_cancelled()
        if folder.full_name:
            pattern = f"{folder.full_name}{folder.delimiter}%"
        else:
            pattern = "%"
        entries = self._lookup.list_folders("", pattern)
        cancel.raise_if_cancelled()
        children: List[MailFolder] = []
        for entry in entries:
            if entry.name == folder.full_name:
                continue
            child = build_folder(entry, self._namespaces)
            if child is not None:
                children.append(child)
        return children
