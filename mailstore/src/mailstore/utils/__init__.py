"""Shared helpers for the mail store packages.

Only the logging facade lives here; components call :func:`get_logger` rather
than instantiating :class:`JsonLogger` themselves.
"""

from .logging import JsonLogger, get_logger

__all__ = ["JsonLogger", "get_logger"]
