"""Shared exceptions for service layer operations."""


class StorageError(Exception):
    """
    Raised when the local bookmark store cannot read or write its backing storage.

    Only write paths (adding a bookmark, saving an order) raise; read paths
    degrade to empty results.
    """

    def __init__(self, message: str) -> None:
        super().__init__(message)
