"""
Module: tests/unit/test_namespaces.py

What:
    Exercise the namespace descriptors and the longest-prefix matching used by
    every folder resolution.

Why:
    Overlapping namespaces are legal and the winning descriptor decides the
    delimiter used to read the rest of a path; a wrong tie-break silently
    resolves folders in the wrong subtree.

How:
    Build :class:`NamespaceSet` instances directly and assert on the
    :class:`NamespaceMatch` returned for representative paths.
"""

import pytest

from mailstore.core.errors import InvalidArgumentError
from mailstore.core.namespaces import (
    FolderNamespace,
    FolderNamespaceCollection,
    NamespaceKind,
    NamespaceSet,
)


def _namespaces(personal=(), shared=(), other=()) -> NamespaceSet:
    result = NamespaceSet()
    result._populate(personal, shared, other)
    return result


def test_namespace_root_strips_trailing_delimiter():
    assert FolderNamespace("INBOX.", ".").root == "INBOX"
    assert FolderNamespace("#shared/", "/").root == "#shared"
    assert FolderNamespace("", "/").root == ""
    assert FolderNamespace("Flat", None).root == "Flat"


@pytest.mark.parametrize("delimiter", ["", "//", 5])
def test_namespace_rejects_bad_delimiter(delimiter):
    with pytest.raises(InvalidArgumentError):
        FolderNamespace("Mail/", delimiter)


def test_namespace_rejects_non_string_prefix():
    with pytest.raises(InvalidArgumentError):
        FolderNamespace(None, "/")  # type: ignore[arg-type]


def test_longest_prefix_wins_over_empty_personal_namespace():
    """
    What:
        A shared ``#shared/`` namespace beats the catch-all personal ``""``.

    Why:
        Servers such as Dovecot advertise both; folders below ``#shared/`` must
        be read with the shared delimiter and reported as shared.
    """

    namespaces = _namespaces(
        personal=[FolderNamespace("", "/")],
        shared=[FolderNamespace("#shared/", "/")],
    )

    match = namespaces.match("#shared/team/reports")

    assert match is not None
    assert match.kind is NamespaceKind.SHARED
    assert match.namespace.prefix == "#shared/"
    assert match.subpath == "team/reports"
    assert match.segments == ["team", "reports"]

    personal = namespaces.match("Archive/2023")
    assert personal is not None
    assert personal.kind is NamespaceKind.PERSONAL
    assert personal.subpath == "Archive/2023"


def test_equal_prefixes_prefer_personal_then_shared_then_other():
    personal = FolderNamespace("", "/")
    shared = FolderNamespace("", ".")
    other = FolderNamespace("", "|")
    namespaces = _namespaces(personal=[personal], shared=[shared], other=[other])

    match = namespaces.match("Anything")

    assert match is not None
    assert match.namespace is personal
    assert match.kind is NamespaceKind.PERSONAL


def test_equal_prefixes_inside_collection_keep_server_order():
    first = FolderNamespace("Users/", "/")
    second = FolderNamespace("Users/", ".")
    namespaces = _namespaces(other=[first, second])

    match = namespaces.match("Users/bob")

    assert match is not None
    assert match.namespace is first


def test_toplevel_folder_matches_its_namespace():
    namespace = FolderNamespace("INBOX.", ".")
    namespaces = _namespaces(personal=[namespace])

    match = namespaces.match("INBOX.")
    assert match is not None and match.subpath == ""

    root = namespaces.match("INBOX")
    assert root is not None
    assert root.namespace is namespace
    assert root.subpath == ""


def test_trailing_delimiter_is_removed_from_subpath():
    namespaces = _namespaces(personal=[FolderNamespace("INBOX.", ".")])

    match = namespaces.match("INBOX.Projects.")

    assert match is not None
    assert match.subpath == "Projects"


def test_leading_inbox_segment_matches_in_any_case():
    namespaces = _namespaces(
        personal=[FolderNamespace("INBOX.", ".")],
        shared=[FolderNamespace("#shared.", ".")],
    )

    match = namespaces.match("inbox.Sent")
    assert match is not None
    assert match.namespace.prefix == "INBOX."
    assert match.subpath == "Sent"

    root = namespaces.match("Inbox")
    assert root is not None and root.subpath == ""

    # Only the INBOX name itself is case-insensitive.
    assert namespaces.match("inboxes.Sent") is None
    assert namespaces.match("#SHARED.team") is None


def test_unmatched_path_returns_none():
    namespaces = _namespaces(personal=[FolderNamespace("INBOX.", ".")])

    assert namespaces.match("Archive") is None
    assert _namespaces().match("Archive") is None


def test_flat_namespace_has_single_segment():
    namespaces = _namespaces(personal=[FolderNamespace("", None)])

    match = namespaces.match("a/b")

    assert match is not None
    assert match.segments == ["a/b"]


def test_collection_is_read_only_sequence():
    collection = FolderNamespaceCollection(NamespaceKind.OTHER)
    collection._populate([FolderNamespace("Users/", "/"), FolderNamespace("~", None)])

    assert len(collection) == 2
    assert collection[0].prefix == "Users/"
    assert [ns.prefix for ns in collection] == ["Users/", "~"]
    assert not hasattr(collection, "append")
    with pytest.raises(TypeError):
        collection[0] = FolderNamespace("x/", "/")  # type: ignore[index]


def test_clear_empties_every_collection():
    namespace = FolderNamespace("INBOX.", ".")
    namespaces = _namespaces(personal=[namespace], other=[FolderNamespace("Users/", "/")])

    assert not namespaces.is_empty()
    assert namespaces.contains(namespace)
    assert namespaces.kind_of(namespace) is NamespaceKind.PERSONAL

    namespaces._clear()

    assert namespaces.is_empty()
    assert not namespaces.contains(namespace)
    assert namespaces.kind_of(namespace) is None
