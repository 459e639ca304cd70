"""
Module: mailstore.__init__

What:
  Client for remote mail stores: folder namespaces, folder resolution by path,
  namespace or special role, the one-shot quick resynchronization switch, and
  server alerts.

Interfaces:
  - config: ``config.yaml`` discovery and pydantic schema.
  - core: Protocol-independent model, resolver, resync controller, alerts.
  - imap: ``imapclient`` implementation of the store.
  - utils: JSON logging.
"""

__all__ = [
    "config",
    "core",
    "imap",
    "utils",
]

__version__ = "0.1.0"
