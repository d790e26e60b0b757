"""Storage backends behind one capability interface."""

from cazino.storage.base import Storage, open_storage

__all__ = ["Storage", "open_storage"]
