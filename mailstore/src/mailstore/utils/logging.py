"""Structured JSON logging with credential redaction.

What:
  Give every mail store component a logger that writes one JSON object per
  line with a timestamp, severity, message and component tag.

Why:
  Store sessions are long-lived and mostly silent; when something goes wrong
  (a rejected login, a dropped alert) operators grep the log stream. A fixed
  schema keeps that trivial and the redaction pass keeps credentials out of it
  even when a caller passes a whole settings mapping as context.

How:
  :class:`JsonLogger` merges the canonical fields with a redacted copy of the
  keyword context and serialises the payload with :mod:`json`, flushing after
  every line. Output goes to ``stderr`` so command output on ``stdout`` stays
  machine readable.

Interfaces:
  :class:`JsonLogger`, :func:`get_logger`.

Invariants & Safety:
  - Keys named ``password``, ``token``, ``access_token`` or ``secret`` are
    replaced by ``[redacted]`` at any nesting depth.
"""
from __future__ import annotations

import json
import sys
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Optional


REDACTED = "[redacted]"
SENSITIVE_KEYS = frozenset({"password", "token", "access_token", "secret"})


@dataclass
class JsonLogger:
    """Single-line JSON logger bound to a component name."""

    stream: Any = field(default_factory=lambda: sys.stderr)
    component: str = "mailstore"

    def log(self, level: str, message: str, *, extra: Optional[Dict[str, Any]] = None) -> None:
        """Emit a structured log entry.

        What:
          Write ``{"ts", "lvl", "msg", "component", **extra}`` as one line.

        How:
          Build the payload, merge the redacted ``extra`` mapping, dump it with
          compact separators and flush. Values that are not JSON serialisable
          fall back to ``str``.

        Args:
          level: Severity name, upper-cased in the output.
          message: Short event description.
          extra: Optional context, redacted recursively.
        """

        payload: Dict[str, Any] = {
            "ts": datetime.now(timezone.utc).isoformat(),
            "lvl": level.upper(),
            "msg": message,
            "component": self.component,
        }
        if extra:
            payload.update(self._redact(extra))
        json.dump(payload, self.stream, separators=(",", ":"), default=str)
        self.stream.write("\n")
        self.stream.flush()

    def debug(self, message: str, **kwargs: Any) -> None:
        self.log("DEBUG", message, extra=kwargs)

    def info(self, message: str, **kwargs: Any) -> None:
        self.log("INFO", message, extra=kwargs)

    def warning(self, message: str, **kwargs: Any) -> None:
        self.log("WARN", message, extra=kwargs)

    def error(self, message: str, **kwargs: Any) -> None:
        self.log("ERROR", message, extra=kwargs)

    @staticmethod
    def _redact(data: Dict[str, Any]) -> Dict[str, Any]:
        result: Dict[str, Any] = {}
        for key, value in data.items():
            if key.lower() in SENSITIVE_KEYS:
                result[key] = REDACTED
            elif isinstance(value, dict):
                result[key] = JsonLogger._redact(value)
            else:
                result[key] = value
        return result


def get_logger(component: str) -> JsonLogger:
    """Return a :class:`JsonLogger` tagged with ``component``."""

    return JsonLogger(component=component)
