# src/bucket_ferry/exceptions.py
"""Custom exceptions for the bucket-ferry application."""


class FerryError(Exception):
    """Base exception for all application-specific errors."""

    pass


class ConfigError(FerryError):
    """Raised for configuration-related issues, including credential setup."""

    pass


class InputFormatError(FerryError):
    """Raised when the work list cannot be read or is structurally malformed."""

    pass


class PipelineInvariantError(FerryError):
    """Raised when the pipeline's internal bookkeeping is violated."""

    pass


class TransferError(FerryError):
    """Raised when a single object transfer fails."""

    pass


class KeyDecodeError(TransferError):
    """Raised when an object key is not validly percent-encoded."""

    pass


class SourceReadError(TransferError):
    """Raised when an object cannot be read from the source store."""

    pass


class ObjectNotFoundError(SourceReadError):
    """Raised when the source object or bucket does not exist."""

    pass


class DestinationWriteError(TransferError):
    """Raised when an object cannot be written to the destination store."""

    pass


class DestinationPermissionError(DestinationWriteError):
    """Raised when the destination rejects our credentials."""

    pass
