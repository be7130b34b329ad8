from typing import Any, Optional


class MisconfigurationException(Exception):
    """Exception used to inform users of misuse with metadata_arrays configuration."""


class MetadataArrayError(Exception):
    """Base class for errors raised by metadata_arrays."""


class MissingMetadataKeyError(MetadataArrayError, KeyError, AttributeError):
    """Raised when metadata is read by key without a default and the key is absent.

    Subclasses both ``KeyError`` (for :func:`~metadata_arrays.metadata` lookups) and ``AttributeError`` (for property
    style access) so ``hasattr`` and ``dict``-style handlers keep working.
    """

    def __init__(self, key: Any, available: Optional[tuple] = None):
        self.key = key
        self.available = tuple(available) if available is not None else ()
        super().__init__(key)

    def __str__(self) -> str:
        return f"Metadata key {self.key!r} not found, available keys: {self.available}"


class MetadataUnsupportedError(MetadataArrayError, TypeError):
    """Raised when metadata is requested from an object that does not carry any."""


class UndecidableStyleError(MetadataArrayError):
    """Raised when the broadcast styles of two operands cannot be combined.

    This is a hard failure, the elementwise operation is never attempted.
    """

    def __init__(self, left: Any, right: Any = None, msg: Optional[str] = None):
        self.left, self.right = left, right
        if msg is None:
            msg = f"Conflicting broadcast styles {left!r} and {right!r}, no common execution style exists."
        super().__init__(msg)


class IncompatibleConversionError(MetadataArrayError, TypeError):
    """Raised by :func:`~metadata_arrays.convert` when the target cannot hold the source's parent or metadata."""
