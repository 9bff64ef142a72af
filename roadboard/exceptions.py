"""
Custom exceptions for the Roadboard application.
"""


class RoadboardError(Exception):
    """Base exception for all Roadboard-related errors."""
    pass


class ValidationError(RoadboardError):
    """Raised when validation fails for an item or operation."""
    pass


class InvalidOperationError(RoadboardError):
    """Raised when an operation is not allowed in the current state."""
    pass


class ConfigurationError(RoadboardError):
    """Raised when there's a configuration or setup issue."""
    pass


class StorageError(RoadboardError):
    """Raised when reading or writing the .roadboard/ directory fails."""
    pass


class RemoteStoreError(RoadboardError):
    """Raised when a call to the remote persistence store fails."""
    pass


class NotFoundError(RemoteStoreError):
    """Raised when a requested record is not found."""
    pass


class ImportParseError(RoadboardError):
    """Raised when a CSV import cannot produce any record at all."""
    pass
