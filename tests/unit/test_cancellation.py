"""
Module: tests/unit/test_cancellation.py

What:
    Check cancellation tokens, deadlines, and the async forms of store
    operations.

Why:
    A cancelled operation must stop at the next round-trip boundary and must
    not leave partially committed session state behind.

How:
    Trip tokens before a call, or block the fake backend's ``LIST`` with a
    gate and cancel the awaiting asyncio task while the worker thread is
    inside the round trip.
"""

import asyncio
import threading
import time

import pytest

from mailstore.core.cancellation import CancellationToken, run_cancellable
from mailstore.core.errors import InvalidOperationError, OperationCanceledError
from mailstore.core.resync import ResyncState


def test_token_distinguishes_cancel_and_deadline():
    token = CancellationToken()
    assert not token.cancelled
    token.raise_if_cancelled()

    token.cancel()
    with pytest.raises(OperationCanceledError, match="canceled"):
        token.raise_if_cancelled()

    expired = CancellationToken(timeout=0.01)
    time.sleep(0.02)
    assert expired.expired
    assert expired.cancelled
    with pytest.raises(OperationCanceledError, match="deadline"):
        expired.raise_if_cancelled()


def test_run_cancellable_passes_token_and_result():
    seen = {}

    def work(value, *, cancel):
        seen["token"] = cancel
        return value * 2

    token = CancellationToken()
    assert asyncio.run(run_cancellable(work, 21, cancel=token)) == 42
    assert seen["token"] is token


def test_run_cancellable_rejects_tripped_token():
    called = []
    token = CancellationToken()
    token.cancel()

    with pytest.raises(OperationCanceledError):
        asyncio.run(run_cancellable(lambda *, cancel: called.append(cancel), cancel=token))

    assert called == []


def test_cancelled_connect_keeps_store_disconnected(store, backend):
    token = CancellationToken()
    token.cancel()

    with pytest.raises(OperationCanceledError):
        store.connect(cancel=token)

    assert not store.is_connected
    assert backend.commands == []


def test_cancelled_authenticate_sends_no_login(store, backend):
    store.connect()
    token = CancellationToken()
    token.cancel()

    with pytest.raises(OperationCanceledError):
        store.authenticate(cancel=token)

    assert "LOGIN" not in backend.commands
    assert store.is_connected
    assert not store.is_authenticated
    assert len(store.personal_namespaces) == 0


def test_expired_deadline_cancels_resolution(authed_store, backend):
    issued = len(backend.commands)
    token = CancellationToken(timeout=0.01)
    time.sleep(0.02)

    with pytest.raises(OperationCanceledError, match="deadline"):
        authed_store.get_folder("INBOX.Sent", cancel=token)

    assert len(backend.commands) == issued


def test_async_cancel_during_round_trip_leaves_state_unchanged(authed_store, backend):
    """
    What:
        Cancel ``get_folder_async`` while its ``LIST`` is in flight.

    Why:
        The awaiting task must stop immediately and the worker must notice the
        tripped token after the round trip instead of returning a handle.

    How:
        Gate the next ``LIST`` in the fake, cancel the task once the gate
        reports the command started, then release the worker and check the
        token and the store afterwards.
    """

    started = threading.Event()
    release = threading.Event()
    backend.list_gate = (started, release)
    token = CancellationToken()

    async def scenario():
        task = asyncio.ensure_future(authed_store.get_folder_async("INBOX.Sent", cancel=token))
        assert await asyncio.to_thread(started.wait, 2)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task
        release.set()

    try:
        asyncio.run(scenario())
    finally:
        release.set()

    assert token.cancelled
    assert authed_store.is_authenticated
    assert authed_store.resync_state is ResyncState.DISABLED
    assert authed_store.get_folder("INBOX.Sent").full_name == "INBOX.Sent"


def test_async_cancel_during_login_bootstrap_drops_the_session(store, backend):
    """
    What:
        Cancel ``authenticate_async`` while the post-login ``LIST`` is in
        flight.

    Why:
        The caller sees the operation as cancelled, so the store must not end
        up authenticated with a logged-in connection nobody asked to keep.
    """

    started = threading.Event()
    release = threading.Event()
    store.connect()
    backend.list_gate = (started, release)
    token = CancellationToken()

    async def scenario():
        task = asyncio.ensure_future(store.authenticate_async(cancel=token))
        assert await asyncio.to_thread(started.wait, 2)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task
        release.set()

    try:
        asyncio.run(scenario())
    finally:
        release.set()

    assert token.cancelled
    assert "LOGIN" in backend.commands
    assert "SHUTDOWN" in backend.commands
    assert not store.is_authenticated
    assert not store.is_connected
    assert len(store.personal_namespaces) == 0
    with pytest.raises(InvalidOperationError):
        store.inbox


def test_async_forms_match_blocking_results(store):
    async def scenario():
        await store.connect_async()
        await store.authenticate_async()
        folder = await store.get_folder_async("INBOX.Projects")
        children = await store.get_subfolders_async(folder)
        await store.enable_quick_resync_async()
        opened = await store.open_folder_async(folder, True)
        await store.noop_async()
        return folder, children, opened

    folder, children, opened = asyncio.run(scenario())

    assert folder.full_name == "INBOX.Projects"
    assert [child.full_name for child in children] == ["INBOX.Projects.Alpha"]
    assert opened.readonly
    assert store.resync_state is ResyncState.ENABLED


def test_async_enable_with_cancelled_token_keeps_disabled(authed_store, backend):
    token = CancellationToken()
    token.cancel()

    with pytest.raises(OperationCanceledError):
        asyncio.run(authed_store.enable_quick_resync_async(cancel=token))

    assert authed_store.resync_state is ResyncState.DISABLED
    assert "ENABLE" not in backend.commands
