"""Test package marker.

What:
  Makes ``tests`` a package so the root ``conftest.py`` is imported under a
  stable name while ``tests/unit`` keeps its own fixtures.

Invariants & Safety:
  - Importing this package has no side effects.
"""
