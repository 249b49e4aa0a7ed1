"""
Error taxonomy for the palette engine.

Every error carries the HTTP status a request layer should map it to:
400 for bad input, 422 for input that yields no colors, 500 for internal
failures.
"""

import math


class PaletteError(Exception):
    """Base class for all palette engine errors."""
    http_status = 500


class InputError(PaletteError):
    """Malformed or missing input."""
    http_status = 400


class ExtractionError(PaletteError):
    """Valid input that yields no usable samples or clusters."""
    http_status = 422


class InternalError(PaletteError):
    """An invariant of the engine was violated."""
    http_status = 500


class InvalidColorFormat(InputError, ValueError):
    """A string that is not a 3- or 6-digit hex color."""

    def __init__(self, value):
        super().__init__(f"Invalid hex color: {value!r}")
        self.value = value


class InvalidOptions(InputError, ValueError):
    """Request options with unknown keys or wrong types."""


class InvalidImage(InputError):
    """Image data that cannot be decoded or exceeds the size limits."""


class NoSwatches(InputError):
    """The palette builder was given an empty swatch list."""

    def __init__(self, message: str = "No swatches were provided."):
        super().__init__(message)


class EmptyInput(ExtractionError):
    """No eligible samples survived filtering."""

    def __init__(self, message: str = "Could not extract colors from the provided image."):
        super().__init__(message)


class ClusteringDegenerate(InternalError):
    """Clustering produced no centroids from non-empty input."""

    def __init__(self, message: str = "Unable to build clusters from the sampled colors."):
        super().__init__(message)


def require_number(value, name: str) -> float:
    """Return value as a float, or raise InvalidOptions."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise InvalidOptions(f"'{name}' must be a number, got {value!r}")
    try:
        number = float(value)
    except OverflowError:
        raise InvalidOptions(f"'{name}' is out of range") from None
    if not math.isfinite(number):
        raise InvalidOptions(f"'{name}' must be finite, got {value!r}")
    return number


def require_bool(value, name: str) -> bool:
    if not isinstance(value, bool):
        raise InvalidOptions(f"'{name}' must be true or false, got {value!r}")
    return value
