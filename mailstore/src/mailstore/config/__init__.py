"""Configuration loading for the mail store runtime.

What:
  Expose the cached ``config.yaml`` loader and the pydantic models it returns.

Interfaces:
  - get_runtime_config / load_runtime_config / reset_runtime_config.
  - ConfigLoadError / RuntimeConfigError.
  - RuntimeConfig and its sections.
"""

from .loader import (
    ConfigLoadError,
    RuntimeConfigError,
    get_runtime_config,
    load_runtime_config,
    reset_runtime_config,
)
from .schema import AlertSettings, FolderSettings, ImapSettings, RuntimeConfig

__all__ = [
    "AlertSettings",
    "ConfigLoadError",
    "FolderSettings",
    "ImapSettings",
    "RuntimeConfig",
    "RuntimeConfigError",
    "get_runtime_config",
    "load_runtime_config",
    "reset_runtime_config",
]
