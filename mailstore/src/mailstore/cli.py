"""Command-line inspection of a remote mail store.

What:
  Provide a Typer application with ``namespaces``, ``resolve``, and
  ``special`` commands that log in with the configured account and print the
  answer as JSON.

Why:
  Operators debugging folder layouts need to see what the server advertises
  (namespaces, special-use folders) and how a given path resolves, without
  writing code.

How:
  Each command loads ``config.yaml`` (or ``--config``), builds an
  :class:`~mailstore.imap.store.ImapConfig` from it, connects and
  authenticates an :class:`~mailstore.imap.store.ImapMailStore`, and closes it
  when done. Errors are mapped to exit codes by :func:`_run`.

Interfaces:
  ``app`` (Typer application), ``namespaces``, ``resolve``, ``special``.

Invariants & Safety:
  - Exit code ``0`` on success, ``1`` for expected not-found / not-supported
    outcomes, ``2`` for configuration and store failures.
  - Passwords are read from the environment variable named in the config and
    never echoed.
"""
from __future__ import annotations

import contextlib
import json
from typing import Any, Callable, Dict, Iterator, Optional

import typer

from .config.loader import ConfigLoadError, load_runtime_config
from .core.errors import FolderNotFoundError, MailStoreError, NotSupportedError
from .core.folders import MailFolder
from .core.namespaces import FolderNamespaceCollection
from .imap.store import ImapConfig, ImapMailStore
from .utils.logging import get_logger

app = typer.Typer(help="Inspect folders and namespaces of a remote mail store")

LOGGER = get_logger("mailstore.cli")


@contextlib.contextmanager
def _connected_store(config_path: Optional[str]) -> Iterator[ImapMailStore]:
    """Yield an authenticated store built from the runtime configuration."""

    settings = load_runtime_config(config_path)
    store = ImapMailStore(ImapConfig.from_settings(settings))
    try:
        store.connect()
        store.authenticate()
        yield store
    finally:
        store.close()


def _folder_payload(folder: Optional[MailFolder]) -> Optional[Dict[str, Any]]:
    if folder is None:
        return None
    return {
        "full_name": folder.full_name,
        "name": folder.name,
        "delimiter": folder.delimiter,
        "namespace": folder.namespace.prefix if folder.namespace is not None else None,
        "subpath": folder.subpath,
        "special": folder.special.value if folder.special is not None else None,
        "attributes": sorted(folder.attributes),
    }


def _namespace_payload(collection: FolderNamespaceCollection) -> list:
    return [{"prefix": ns.prefix, "delimiter": ns.delimiter} for ns in collection]


def _run(config_path: Optional[str], action: Callable[[ImapMailStore], Any]) -> None:
    """Execute ``action`` against a connected store and print its result.

    What:
      Centralise connection handling, JSON output, and exit codes.

    How:
      Expected outcomes (:class:`FolderNotFoundError`,
      :class:`NotSupportedError`) exit with ``1``; every other store or
      configuration error exits with ``2``. Both are reported on stderr.
    """

    try:
        with _connected_store(config_path) as store:
            payload = action(store)
    except (FolderNotFoundError, NotSupportedError) as exc:
        typer.echo(str(exc), err=True)
        raise typer.Exit(code=1)
    except (MailStoreError, ConfigLoadError) as exc:
        LOGGER.error("command failed", error=str(exc), kind=type(exc).__name__)
        typer.echo(str(exc), err=True)
        raise typer.Exit(code=2)
    typer.echo(json.dumps(payload, sort_keys=True))


@app.command()
def namespaces(
    config: Optional[str] = typer.Option(None, "--config", help="Path to config.yaml"),
) -> None:
    """Print the personal, shared, and other namespaces."""

    _run(
        config,
        lambda store: {
            "personal": _namespace_payload(store.personal_namespaces),
            "shared": _namespace_payload(store.shared_namespaces),
            "other": _namespace_payload(store.other_namespaces),
        },
    )


@app.command()
def resolve(
    path: str = typer.Argument(..., help="Folder path to resolve"),
    config: Optional[str] = typer.Option(None, "--config", help="Path to config.yaml"),
) -> None:
    """Resolve PATH to a folder and print its handle."""

    _run(config, lambda store: _folder_payload(store.get_folder(path)))


@app.command()
def special(
    kind: str = typer.Argument(..., help="Special folder role, e.g. sent or trash"),
    config: Optional[str] = typer.Option(None, "--config", help="Path to config.yaml"),
) -> None:
    """Print the folder serving the KIND role, or null when there is none."""

    _run(
        config,
        lambda store: {"kind": kind.lower(), "folder": _folder_payload(store.get_special_folder(kind))},
    )


if __name__ == "__main__":  # pragma: no cover - manual invocation
    app()
