"""Folder handles, special folder roles, and raw listing entries.

What:
  Describe the values exchanged between the resolver, the store facade, and
  the folder collaborator: :class:`MailFolder` handles, the closed
  :class:`SpecialFolder` enumeration, decoded ``LIST`` rows
  (:class:`FolderEntry`), and the :class:`OpenedFolder` open-time handoff.

Why:
  Handles are identity plus path; they carry no connection state so they can
  be compared, cached by callers, and passed across threads safely.

How:
  Frozen dataclasses plus a mapping between RFC 6154 / XLIST attributes and
  :class:`SpecialFolder` members.

Interfaces:
  :class:`SpecialFolder`, :func:`special_folder_for`, :class:`FolderEntry`,
  :class:`MailFolder`, :class:`OpenedFolder`.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import FrozenSet, Iterable, Optional

from .errors import InvalidArgumentError
from .namespaces import FolderNamespace
from .resync import ExpungeNotification

INBOX = "INBOX"


class SpecialFolder(Enum):
    """Well-known folder roles."""

    ALL = "all"
    ARCHIVE = "archive"
    DRAFTS = "drafts"
    FLAGGED = "flagged"
    IMPORTANT = "important"
    INBOX = "inbox"
    JUNK = "junk"
    SENT = "sent"
    TRASH = "trash"

    @classmethod
    def coerce(cls, kind: object) -> "SpecialFolder":
        """Accept a member or its value string; reject anything else."""

        if isinstance(kind, cls):
            return kind
        if isinstance(kind, str):
            try:
                return cls(kind.lower())
            except ValueError:
                pass
        raise InvalidArgumentError(f"Unknown special folder kind: {kind!r}")


# RFC 6154 SPECIAL-USE attributes, plus the Gmail XLIST spellings.
_ATTRIBUTE_ROLES = {
    "\\ALL": SpecialFolder.ALL,
    "\\ALLMAIL": SpecialFolder.ALL,
    "\\ARCHIVE": SpecialFolder.ARCHIVE,
    "\\DRAFTS": SpecialFolder.DRAFTS,
    "\\FLAGGED": SpecialFolder.FLAGGED,
    "\\STARRED": SpecialFolder.FLAGGED,
    "\\IMPORTANT": SpecialFolder.IMPORTANT,
    "\\INBOX": SpecialFolder.INBOX,
    "\\JUNK": SpecialFolder.JUNK,
    "\\SPAM": SpecialFolder.JUNK,
    "\\SENT": SpecialFolder.SENT,
    "\\TRASH": SpecialFolder.TRASH,
}


def special_folder_for(attributes: Iterable[str]) -> Optional[SpecialFolder]:
    """Return the role advertised by a folder's attributes, if any."""

    for attribute in attributes:
        role = _ATTRIBUTE_ROLES.get(attribute.upper())
        if role is not None:
            return role
    return None


@dataclass(frozen=True)
class FolderEntry:
    """One decoded ``LIST``/``XLIST`` response row."""

    flags: FrozenSet[str]
    delimiter: Optional[str]
    name: str


@dataclass(frozen=True)
class MailFolder:
    """Opaque handle on a remote folder.

    What:
      Identify a folder by its full wire name together with the namespace it
      was resolved against.

    Why:
      Handles are produced by resolution and later given to the folder
      collaborator; they never hold connection state themselves.

    Attributes:
      full_name: Full path as known by the server.
      name: Last hierarchy level of :attr:`full_name`.
      delimiter: Hierarchy delimiter, ``None`` for flat stores.
      namespace: Owning namespace; ``None`` only for the Inbox.
      attributes: Upper-cased ``LIST`` attributes (``\\HASCHILDREN``...).
      special: Role of the folder when it is a special folder.
    """

    full_name: str
    name: str
    delimiter: Optional[str] = None
    namespace: Optional[FolderNamespace] = None
    attributes: FrozenSet[str] = field(default_factory=frozenset)
    special: Optional[SpecialFolder] = None

    @property
    def is_inbox(self) -> bool:
        return self.special is SpecialFolder.INBOX

    @property
    def is_namespace_root(self) -> bool:
        return self.namespace is not None and self.full_name == self.namespace.root

    @property
    def subpath(self) -> str:
        """Path relative to the namespace prefix."""

        if self.namespace is None or not self.full_name.startswith(self.namespace.prefix):
            return "" if self.is_namespace_root else self.full_name
        return self.full_name[len(self.namespace.prefix):]

    @property
    def can_open(self) -> bool:
        return "\\NOSELECT" not in self.attributes and "\\NONEXISTENT" not in self.attributes


@dataclass(frozen=True)
class OpenedFolder:
    """What the folder collaborator receives when a folder is opened.

    Attributes:
      folder: The selected folder handle.
      readonly: Whether the folder was opened with ``EXAMINE``.
      notification: How removed messages will be reported, fixed by the
        store's quick-resync state at open time.
      uidvalidity: ``UIDVALIDITY`` reported by the server, when present.
      exists: Message count reported by the server, when present.
    """

    folder: MailFolder
    readonly: bool
    notification: ExpungeNotification
    uidvalidity: Optional[int] = None
    exists: Optional[int] = None
