from __future__ import annotations

"""Adapter interfaces and default implementations for engine persistence.

Currently provides:
- ISaveStore: abstraction for save/load persistence
- ZipSaveStore: ISaveStore backed by a single zip archive
"""

from .storage import ISaveStore, ZipSaveStore  # noqa: F401
