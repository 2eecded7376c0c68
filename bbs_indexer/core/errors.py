"""
Exception types for the board log indexer.
"""


class IndexerError(Exception):
    """Base class for all indexer errors."""
    pass


class TransportError(IndexerError):
    """Raised when the log source cannot be read or a record cannot be decoded."""
    pass


class MalformedPayloadError(IndexerError):
    """Raised when an entry payload is not valid JSON or has the wrong shape."""
    pass


class MissingFieldError(IndexerError):
    """Raised when an entity_id-only operation arrives without entity_id."""
    pass


class ConflictError(IndexerError):
    """Raised when creating an entity whose id already exists."""
    pass


class NotFoundError(IndexerError):
    """Raised when updating an entity that does not exist."""
    pass


class StorageError(IndexerError):
    """Raised when a transaction, query or commit fails in the database."""
    pass


class SignatureError(IndexerError):
    """Raised when in-core entry signature verification fails."""
    pass
