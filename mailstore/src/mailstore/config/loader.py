"""Discovery, parsing, and caching of ``config.yaml``.

What:
  Locate the runtime configuration file, parse it with PyYAML, validate it
  against :class:`~mailstore.config.schema.RuntimeConfig`, and cache the
  result for the rest of the process.

Why:
  Connection defaults (host, TLS, timeouts, folder discovery switches) are
  read by the IMAP client, the CLI, and the tests. A single loader keeps the
  precedence rules and error messages consistent.

How:
  Candidate paths are tried in order: explicit argument,
  ``MAILSTORE_CONFIG_PATH``, ``./config.yaml``, ``/etc/mailstore/config.yaml``.
  The first existing file is parsed and validated; its model is cached until
  :func:`reset_runtime_config` or ``reload=True``.

Interfaces:
  :class:`ConfigLoadError`, :class:`RuntimeConfigError`,
  :func:`load_runtime_config`, :func:`get_runtime_config`,
  :func:`reset_runtime_config`.

Invariants:
  - Every returned model passed strict validation (unknown keys rejected).
  - Filesystem and YAML failures surface as :class:`RuntimeConfigError` with
    the offending path in the message.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Iterable, Optional, Tuple

import yaml
from pydantic import ValidationError

from .schema import RuntimeConfig


class ConfigLoadError(Exception):
    """Base error for configuration parsing or validation failures."""


class RuntimeConfigError(ConfigLoadError):
    """``config.yaml`` could not be located, parsed, or validated."""


_CONFIG_ENV = "MAILSTORE_CONFIG_PATH"
_DEFAULT_LOCATIONS: Tuple[Path, ...] = (
    Path("config.yaml"),
    Path("/etc/mailstore/config.yaml"),
)
_RUNTIME_CACHE: Optional[Tuple[Path, RuntimeConfig]] = None


def _candidate_paths(path: Optional[Path]) -> Iterable[Path]:
    """Yield configuration file locations in priority order, deduplicated."""

    seen: set[Path] = set()
    explicit = [path] if path is not None else []
    env_path = os.environ.get(_CONFIG_ENV)
    if env_path:
        explicit.append(Path(env_path))
    for candidate in (*explicit, *_DEFAULT_LOCATIONS):
        candidate = candidate.expanduser()
        if candidate not in seen:
            seen.add(candidate)
            yield candidate


def _parse_config_payload(text: str, source: Path) -> dict[str, Any]:
    """Parse YAML text into the mapping handed to validation.

    Raises:
      RuntimeConfigError: The text is not YAML or not a mapping.
    """

    try:
        payload = yaml.safe_load(text) or {}
    except yaml.YAMLError as exc:
        raise RuntimeConfigError(f"Invalid YAML in {source}: {exc}") from exc
    if not isinstance(payload, dict):
        raise RuntimeConfigError("config.yaml must contain a mapping at the top-level")
    return payload


def _load_runtime_from_path(path: Path) -> RuntimeConfig:
    try:
        text = path.read_text()
    except FileNotFoundError as exc:
        raise RuntimeConfigError(f"Configuration file missing: {path}") from exc
    except OSError as exc:  # pragma: no cover - filesystem surface
        raise RuntimeConfigError(f"Unable to read configuration file {path}: {exc}") from exc
    payload = _parse_config_payload(text, path)
    try:
        return RuntimeConfig.model_validate(payload)
    except ValidationError as exc:
        raise RuntimeConfigError(f"Invalid config.yaml: {exc}") from exc


def load_runtime_config(
    path: Optional[Path | str] = None,
    *,
    reload: bool = False,
) -> RuntimeConfig:
    """Resolve, parse, and cache the runtime configuration.

    What:
      Return the validated :class:`RuntimeConfig` for the first configuration
      file found along the precedence chain.

    Why:
      The IMAP client fills unset connection parameters from this model on
      every instantiation; caching avoids re-reading the file each time.

    How:
      Serve the cache unless ``reload`` is requested or a different explicit
      path is given, otherwise walk :func:`_candidate_paths` and cache the
      first successful load.

    Args:
      path: Optional explicit location of ``config.yaml``.
      reload: Bypass the cache.

    Returns:
      The validated runtime configuration.

    Raises:
      RuntimeConfigError: No candidate exists or the file is invalid.
    """

    global _RUNTIME_CACHE

    requested_path = Path(path).expanduser() if isinstance(path, (str, Path)) else None
    if not reload and _RUNTIME_CACHE is not None:
        cached_path, cached_config = _RUNTIME_CACHE
        if requested_path is None or cached_path == requested_path:
            return cached_config

    searched: list[str] = []
    for candidate in _candidate_paths(requested_path):
        if not candidate.exists():
            searched.append(str(candidate))
            continue
        config = _load_runtime_from_path(candidate)
        _RUNTIME_CACHE = (candidate, config)
        return config

    listing = ", ".join(searched) if searched else "<none>"
    raise RuntimeConfigError(f"Unable to locate config.yaml (searched: {listing})")


def get_runtime_config() -> RuntimeConfig:
    """Return the cached runtime configuration, loading it on demand."""

    return load_runtime_config()


def reset_runtime_config() -> None:
    """Forget the cached configuration so the next access reloads it."""

    global _RUNTIME_CACHE
    _RUNTIME_CACHE = None
