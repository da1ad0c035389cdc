"""
Errors raised by the shared storage and persistence layers.
"""


class StorageWriteError(Exception):
    """Raised when a blob could not be written to the backing store."""


class PersistenceError(Exception):
    """Raised when the database connection is lost during a write."""
