"""Exception taxonomy for annkit.

Every error raised by the library derives from :class:`AnnkitError`. Each
subclass also mixes in the closest builtin exception so callers written
against plain ``ValueError``/``IndexError`` handling keep working.
"""

from __future__ import annotations


class AnnkitError(Exception):
    """Base class for all annkit errors."""


class ConfigurationError(AnnkitError, ValueError):
    """Raised for unknown space/method names or malformed parameters."""


class UnsupportedTypeError(AnnkitError, TypeError):
    """Raised for data/distance type combinations this build does not support."""


class DataFormatError(AnnkitError, ValueError):
    """Raised when a point, query or matrix cannot be marshalled."""


class BuildError(AnnkitError, RuntimeError):
    """Raised when the engine fails to construct an index."""


class NotBuiltError(AnnkitError, RuntimeError):
    """Raised when an operation needs a built index and none is present."""


class IndexOutOfRangeError(AnnkitError, IndexError):
    """Raised for data point positions outside the stored collection."""


class IndexIOError(AnnkitError, OSError):
    """Raised when an index file cannot be read or written."""


class IndexFormatError(AnnkitError, ValueError):
    """Raised when an index file is corrupt or does not match the handle."""


class InvalidHandleError(AnnkitError, LookupError):
    """Raised when a token refers to a freed or unknown handle."""


class QueryError(AnnkitError, RuntimeError):
    """Raised when the engine fails while answering a query."""


class QueryCancelledError(QueryError):
    """Raised when a batch query is stopped through its cancel event."""
