"""Folder namespace model and longest-prefix matching.

What:
  Represent the personal, shared, and other namespace roots advertised by a
  mail server and map arbitrary folder paths onto the namespace that owns them.

Why:
  A folder path is only meaningful relative to its namespace: the namespace
  prefix says where the subtree is rooted and its delimiter says how the rest of
  the path splits into hierarchy levels. Every resolution goes through this
  lookup, so the matching rules live in one place.

How:
  :class:`FolderNamespace` is an immutable ``(prefix, delimiter)`` pair.
  :class:`FolderNamespaceCollection` keeps them in server order behind a
  read-only sequence interface. :class:`NamespaceSet` owns the three
  collections and implements :meth:`NamespaceSet.match`.

Interfaces:
  :class:`FolderNamespace`, :class:`NamespaceKind`,
  :class:`FolderNamespaceCollection`, :class:`NamespaceMatch`,
  :class:`NamespaceSet`.

Invariants & Safety:
  - The longest matching prefix wins; equal lengths resolve personal, then
    shared, then other, then insertion order inside a collection.
  - A leading ``INBOX`` segment matches in any letter case.
  - Collections are populated once per authentication by the owning store and
    cleared on disconnect; callers only ever read them.
"""
from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Iterator, List, Optional, Tuple, overload

from .errors import InvalidArgumentError

_INBOX = "INBOX"


@dataclass(frozen=True)
class FolderNamespace:
    """Root prefix and hierarchy delimiter of a folder subtree.

    Attributes:
      prefix: Path prefix shared by every folder in the namespace, usually
        ending with the delimiter (``"INBOX."``) or empty.
      delimiter: Single hierarchy delimiter character, or ``None`` for flat
        namespaces.
    """

    prefix: str
    delimiter: Optional[str] = None

    def __post_init__(self) -> None:
        if not isinstance(self.prefix, str):
            raise InvalidArgumentError("namespace prefix must be a string")
        if self.delimiter is not None and (
            not isinstance(self.delimiter, str) or len(self.delimiter) != 1
        ):
            raise InvalidArgumentError(
                f"namespace delimiter must be a single character, got {self.delimiter!r}"
            )

    @property
    def root(self) -> str:
        """Prefix without its trailing delimiter, the toplevel folder name."""

        if self.delimiter and self.prefix.endswith(self.delimiter):
            return self.prefix[: -len(self.delimiter)]
        return self.prefix


class NamespaceKind(Enum):
    """Namespace categories, declared in tie-break order."""

    PERSONAL = "personal"
    SHARED = "shared"
    OTHER = "other"


class FolderNamespaceCollection(Sequence):
    """Ordered, caller read-only collection of :class:`FolderNamespace`.

    Only the owning store calls :meth:`_populate` and :meth:`_clear`.
    """

    def __init__(self, kind: NamespaceKind) -> None:
        self._kind = kind
        self._items: Tuple[FolderNamespace, ...] = ()

    @property
    def kind(self) -> NamespaceKind:
        return self._kind

    @overload
    def __getitem__(self, index: int) -> FolderNamespace: ...

    @overload
    def __getitem__(self, index: slice) -> Tuple[FolderNamespace, ...]: ...

    def __getitem__(self, index):
        return self._items[index]

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[FolderNamespace]:
        return iter(self._items)

    def __repr__(self) -> str:
        return f"FolderNamespaceCollection({self._kind.value}, {list(self._items)!r})"

    def _populate(self, namespaces: Iterable[FolderNamespace]) -> None:
        self._items = tuple(namespaces)

    def _clear(self) -> None:
        self._items = ()


@dataclass(frozen=True)
class NamespaceMatch:
    """Result of matching a path against the known namespaces.

    Attributes:
      namespace: Winning descriptor.
      kind: Category the descriptor belongs to.
      subpath: Remainder of the path after the prefix, without a trailing
        delimiter.
    """

    namespace: FolderNamespace
    kind: NamespaceKind
    subpath: str

    @property
    def segments(self) -> List[str]:
        """Hierarchy levels of :attr:`subpath` split on the namespace delimiter."""

        if not self.subpath:
            return []
        if self.namespace.delimiter is None:
            return [self.subpath]
        return self.subpath.split(self.namespace.delimiter)


class NamespaceSet:
    """The personal/shared/other collections owned by one store session.

    What:
      Bundle the three namespace collections and answer which one owns a
      given folder path.

    Why:
      The resolver, the authentication bootstrap, and special-folder detection
      all need the same matching rules; keeping them next to the data avoids
      divergent interpretations.

    How:
      :meth:`match` walks every descriptor in category order and keeps the
      candidate with the strictly longest prefix, so the first of several
      equally long prefixes wins.
    """

    def __init__(self) -> None:
        self.personal = FolderNamespaceCollection(NamespaceKind.PERSONAL)
        self.shared = FolderNamespaceCollection(NamespaceKind.SHARED)
        self.other = FolderNamespaceCollection(NamespaceKind.OTHER)

    def collections(self) -> Tuple[FolderNamespaceCollection, ...]:
        return (self.personal, self.shared, self.other)

    def is_empty(self) -> bool:
        return not any(self.collections())

    def contains(self, namespace: FolderNamespace) -> bool:
        return any(namespace in collection for collection in self.collections())

    def kind_of(self, namespace: FolderNamespace) -> Optional[NamespaceKind]:
        for collection in self.collections():
            if namespace in collection:
                return collection.kind
        return None

    def match(self, path: str) -> Optional[NamespaceMatch]:
        """Return the namespace owning ``path`` or ``None``.

        What:
          Select the descriptor with the longest prefix that ``path`` starts
          with. A path equal to the prefix minus its trailing delimiter (the
          namespace's toplevel folder) also matches.

        Why:
          Overlapping namespaces are legal (``""`` and ``"#shared/"`` for
          instance); the most specific one decides the delimiter used to read
          the rest of the path.

        How:
          A leading ``INBOX`` segment is compared case-insensitively, as
          servers treat that one name. Iterate in personal, shared, other
          order and replace the current best only on a strictly longer
          prefix. The subpath is the remainder with any trailing delimiter
          removed.

        Args:
          path: Full folder path as used on the wire.

        Returns:
          A :class:`NamespaceMatch`, or ``None`` when no namespace owns it.
        """

        path = self._fold_inbox(path)
        best: Optional[Tuple[FolderNamespace, NamespaceKind]] = None
        best_length = -1
        for collection in self.collections():
            for namespace in collection:
                if path.startswith(namespace.prefix) or path == namespace.root:
                    length = len(namespace.prefix)
                    if length > best_length:
                        best = (namespace, collection.kind)
                        best_length = length
        if best is None:
            return None
        namespace, kind = best
        subpath = path[len(namespace.prefix):] if path.startswith(namespace.prefix) else ""
        delimiter = namespace.delimiter
        if delimiter:
            while subpath.endswith(delimiter):
                subpath = subpath[: -len(delimiter)]
        return NamespaceMatch(namespace=namespace, kind=kind, subpath=subpath)

    def _fold_inbox(self, path: str) -> str:
        """Spell a leading ``INBOX`` segment the way the server reports it."""

        head, rest = path[: len(_INBOX)], path[len(_INBOX):]
        if head == _INBOX or head.upper() != _INBOX:
            return path
        if rest and not any(
            namespace.delimiter and rest.startswith(namespace.delimiter)
            for collection in self.collections()
            for namespace in collection
        ):
            # "Inboxes" and friends are ordinary names.
            return path
        return _INBOX + rest

    def _populate(
        self,
        personal: Iterable[FolderNamespace],
        shared: Iterable[FolderNamespace],
        other: Iterable[FolderNamespace],
    ) -> None:
        self.personal._populate(personal)
        self.shared._populate(shared)
        self.other._populate(other)

    def _clear(self) -> None:
        for collection in self.collections():
            collection._clear()
