"""Pytest fixtures for unit tests requiring the IMAP fake.

What:
  Make ``tests/unit`` importable and expose ``backend``, ``store`` and
  ``authed_store`` fixtures built on :class:`FakeImapBackend`.

Why:
  Most behaviour of the mail store depends on what the server advertised at
  login. A shared fake keeps those tests free of network access and lets each
  one tweak capabilities or replies before connecting.

How:
  Monkeypatch ``mailstore.imap.transport.IMAPClient`` to return the fake, build
  an :class:`ImapMailStore` from the canned ``config.yaml`` and close it after
  the test so the alert dispatcher thread is joined.

Interfaces:
  :func:`backend`, :func:`store`, :func:`authed_store` (pytest fixtures).

Invariants & Safety:
  - Each test receives a fresh backend and store.
"""

import sys
from pathlib import Path

import pytest

from mailstore.imap.store import ImapConfig, ImapMailStore

UNIT_DIR = Path(__file__).resolve().parent
if str(UNIT_DIR) not in sys.path:
    sys.path.insert(0, str(UNIT_DIR))

from fakes import FakeImapBackend


@pytest.fixture
def backend(monkeypatch: pytest.MonkeyPatch) -> FakeImapBackend:
    """Return the fake server every store created in the test connects to."""

    fake = FakeImapBackend()
    monkeypatch.setattr(
        "mailstore.imap.transport.IMAPClient",
        lambda host, port, ssl, timeout: fake,
    )
    return fake


@pytest.fixture
def store(backend: FakeImapBackend):
    """Yield a disconnected store configured from ``tests/data/config.yaml``."""

    instance = ImapMailStore(ImapConfig())
    try:
        yield instance
    finally:
        instance.close()


@pytest.fixture
def authed_store(store: ImapMailStore) -> ImapMailStore:
    """Return ``store`` after a successful connect and login."""

    store.connect()
    store.authenticate()
    return store
