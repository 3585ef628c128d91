class PerceptionError(Exception):
    """Base class for every error raised by mas_perception."""


class InvalidArgumentError(PerceptionError, ValueError):
    """Malformed tuple/array shape, non-organized cloud, bad normal vector."""


class DimensionMismatchError(InvalidArgumentError):
    """Matrix or array with the wrong dimensions (e.g. a non 4x4 transform)."""


class DeserializationError(PerceptionError, ValueError):
    """Corrupt or truncated serialized message."""


class OutOfRangeError(PerceptionError, IndexError):
    """Degenerate crop rectangle or a point that cannot be projected."""
