"""
Module: tests/unit/test_store_lifecycle.py

What:
    Exercise connect, authenticate, disconnect, and close on
    :class:`ImapMailStore`, including transport error mapping and operation
    serialisation.

Why:
    Session state (namespaces, Inbox, special folders, quick resync) must be
    populated exactly once per login and cleared on disconnect, and failures
    from ``imapclient`` must surface as the store's own error types.

How:
    Drive the store against :class:`FakeImapBackend`, injecting rejected
    logins, failing ``LIST`` replies, and unreachable servers.
"""

import threading
import time

import pytest
from imapclient.exceptions import IMAPClientAbortError, IMAPClientError

from mailstore.core.errors import (
    AuthenticationError,
    InvalidArgumentError,
    InvalidOperationError,
    MailStoreIOError,
    ObjectDisposedError,
    ProtocolError,
)
from mailstore.core.folders import MailFolder
from mailstore.core.resync import ResyncState
from mailstore.imap.store import ImapConfig, ImapMailStore


def test_config_defaults_come_from_runtime_config():
    config = ImapConfig()

    assert config.host == "imap.test.invalid"
    assert config.port == 993
    assert config.ssl is True
    assert config.timeout == 5
    assert config.username == "alice"
    assert config.password == "s3cret"
    assert config.max_pending_alerts == 16
    assert "s3cret" not in repr(config)


def test_explicit_config_values_win():
    config = ImapConfig(host="mail.example.org", username="bob", password="pw", port=143, ssl=False)

    assert (config.host, config.username, config.password) == ("mail.example.org", "bob", "pw")
    assert (config.port, config.ssl) == (143, False)
    assert config.detect_special_use is True


def test_authenticate_populates_session(authed_store, backend):
    assert backend.credentials == ("alice", "s3cret")
    assert authed_store.is_connected and authed_store.is_authenticated
    assert [ns.prefix for ns in authed_store.personal_namespaces] == ["INBOX."]
    assert [ns.prefix for ns in authed_store.shared_namespaces] == ["#shared."]
    assert len(authed_store.other_namespaces) == 0
    assert authed_store.inbox.full_name == "INBOX"
    assert "QRESYNC" in authed_store.capabilities


def test_explicit_credentials_override_config(store, backend):
    store.connect()
    store.authenticate("carol", "hunter2")

    assert backend.credentials == ("carol", "hunter2")


def test_authenticate_requires_credentials(backend, monkeypatch):
    monkeypatch.delenv("MAILSTORE_PASSWORD")
    instance = ImapMailStore(ImapConfig())
    try:
        instance.connect()
        with pytest.raises(InvalidArgumentError):
            instance.authenticate()
        assert "LOGIN" not in backend.commands
    finally:
        instance.close()


def test_lifecycle_order_is_enforced(store):
    with pytest.raises(InvalidOperationError):
        store.authenticate()
    store.connect()
    with pytest.raises(InvalidOperationError):
        store.connect()
    store.authenticate()
    with pytest.raises(InvalidOperationError):
        store.authenticate()


def test_rejected_login_keeps_connection(store, backend):
    backend.reject_login = True
    store.connect()

    with pytest.raises(AuthenticationError):
        store.authenticate()

    assert store.is_connected
    assert not store.is_authenticated
    assert len(store.personal_namespaces) == 0


def test_bootstrap_failure_shuts_connection_down(store, backend):
    """
    What:
        A failing ``LIST`` after ``LOGIN`` aborts authentication.

    Why:
        The server session is logged in while local state is empty; keeping
        the connection would let later calls see a half-initialised store.
    """

    store.connect()
    backend.fail_next = IMAPClientError("LIST failed")

    with pytest.raises(ProtocolError):
        store.authenticate()

    assert "SHUTDOWN" in backend.commands
    assert not store.is_connected
    assert not store.is_authenticated
    assert len(store.personal_namespaces) == 0


def test_unreachable_server_is_io_error(store, monkeypatch):
    def refuse(host, port, ssl, timeout):
        raise ConnectionRefusedError("connection refused")

    monkeypatch.setattr("mailstore.imap.transport.IMAPClient", refuse)

    with pytest.raises(MailStoreIOError):
        store.connect()

    assert not store.is_connected


@pytest.mark.parametrize(
    "failure, error",
    [
        (IMAPClientAbortError("socket closed"), MailStoreIOError),
        (OSError("connection reset"), MailStoreIOError),
        (IMAPClientError("BAD command"), ProtocolError),
    ],
)
def test_transport_errors_are_mapped(authed_store, backend, failure, error):
    backend.fail_next = failure

    with pytest.raises(error):
        authed_store.get_folder("INBOX.Sent")


def test_disconnect_clears_session_state(authed_store, backend):
    authed_store.enable_quick_resync()

    authed_store.disconnect()

    assert "LOGOUT" in backend.commands
    assert not authed_store.is_connected
    assert len(authed_store.personal_namespaces) == 0
    assert len(authed_store.shared_namespaces) == 0
    assert authed_store.resync_state is ResyncState.DISABLED
    assert authed_store.capabilities == frozenset()
    with pytest.raises(InvalidOperationError):
        authed_store.inbox

    authed_store.disconnect()
    assert backend.commands.count("LOGOUT") == 1


def test_close_disposes_store(authed_store):
    authed_store.close()

    assert authed_store.is_disposed
    assert authed_store.alerts.closed
    for action in (
        authed_store.connect,
        authed_store.disconnect,
        lambda: authed_store.personal_namespaces,
        lambda: authed_store.get_folder("INBOX"),
    ):
        with pytest.raises(ObjectDisposedError):
            action()
    authed_store.close()


def test_context_manager_connects_and_closes(backend):
    with ImapMailStore(ImapConfig()) as instance:
        assert instance.is_authenticated
    assert instance.is_disposed
    assert "LOGOUT" in backend.commands


def test_open_folder_rejects_unselectable_folder(authed_store, backend):
    folder = MailFolder(full_name="INBOX.Virtual", name="Virtual", attributes=frozenset({"\\NOSELECT"}))

    with pytest.raises(InvalidOperationError):
        authed_store.open_folder(folder)
    with pytest.raises(InvalidArgumentError):
        authed_store.open_folder("INBOX")  # type: ignore[arg-type]
    assert "SELECT" not in backend.commands


def test_noop_requires_connection(store, backend):
    with pytest.raises(InvalidOperationError):
        store.noop()
    store.connect()
    store.noop()
    assert backend.commands[-1] == "NOOP"


def test_operations_are_serialised(authed_store, backend):
    """
    What:
        A second resolution waits while the first one holds the connection.

    How:
        Block the first ``LIST`` with the fake's gate, start a second thread,
        and check that the backend never sees two commands at once.
    """

    started = threading.Event()
    release = threading.Event()
    backend.list_gate = (started, release)
    results = {}
    lists_before = backend.commands.count("LIST")

    def resolve(path):
        results[path] = authed_store.get_folder(path).full_name

    first = threading.Thread(target=resolve, args=("INBOX.Sent",))
    second = threading.Thread(target=resolve, args=("INBOX.Drafts",))
    first.start()
    try:
        assert started.wait(2)
        second.start()
        time.sleep(0.05)
        assert "INBOX.Drafts" not in results
        assert backend.commands.count("LIST") == lists_before + 1
    finally:
        release.set()
        first.join(2)
        if second.ident is not None:
            second.join(2)

    assert results == {"INBOX.Sent": "INBOX.Sent", "INBOX.Drafts": "INBOX.Drafts"}
    assert backend.max_active == 1
