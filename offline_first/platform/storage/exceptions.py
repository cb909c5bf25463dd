"""Storage exceptions for the offline-first client.

All storage-related exceptions inherit from StorageException. They are never
swallowed by the client: a broken local store invalidates the offline guarantee,
so the failure reaches the caller.
"""


class StorageException(Exception):
    """Base exception for storage operations."""

    pass


class StorageNotFoundError(StorageException):
    """Raised when a requested document is not found in storage."""

    pass


class StorageCorruptionError(StorageException):
    """Raised when a stored document cannot be decoded."""

    def __init__(self, collection: str, key: str, reason: str):
        """Initialize corruption error.

        Args:
            collection: Collection holding the document
            key: Document key
            reason: Decoder error text
        """
        self.collection = collection
        self.key = key
        self.reason = reason
        super().__init__(f"Corrupt document {collection}/{key}: {reason}")
