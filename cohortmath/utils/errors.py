"""Typed exceptions for invalid analysis input and malformed records."""


class InvalidInput(ValueError):
    """Raised when an analysis operation receives input it cannot work with."""


class DimensionMismatch(InvalidInput):
    """Raised when two feature vectors have different lengths."""


class MalformedRecord(ValueError):
    """Raised by the record reader when a row cannot be parsed into an entity."""
