"""Pydantic models describing the mail store configuration document."""
from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class ImapSettings(BaseModel):
    """Server endpoint and credential lookup."""

    model_config = ConfigDict(extra="forbid")

    host: str
    port: int = Field(default=993, gt=0, lt=65536)
    ssl: bool = True
    timeout_s: Optional[float] = Field(default=None, gt=0)
    username: Optional[str] = None
    password_env: str = "MAILSTORE_PASSWORD"


class FolderSettings(BaseModel):
    """Folder discovery switches applied at authentication."""

    model_config = ConfigDict(extra="forbid")

    detect_special_use: bool = True


class AlertSettings(BaseModel):
    """Alert channel sizing."""

    model_config = ConfigDict(extra="forbid")

    max_pending: int = Field(default=256, gt=0)


class RuntimeConfig(BaseModel):
    """Root configuration loaded from ``config.yaml``."""

    model_config = ConfigDict(extra="forbid")

    version: int = 1
    imap: ImapSettings
    folders: FolderSettings = Field(default_factory=FolderSettings)
    alerts: AlertSettings = Field(default_factory=AlertSettings)
