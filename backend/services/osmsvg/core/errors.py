"""
Error types for the map rendering pipeline.

Invariant violations are fatal: they abort the offending operation before
any visible side effect. Degenerate-but-valid input (short polylines,
unclassified features) is never an error and is skipped silently.
"""


class InvariantViolation(RuntimeError):
    """Base class for internal invariant violations."""


class InvalidRangeError(InvariantViolation, IndexError):
    """A range reference does not fit inside the geometry store's buffer."""


class NonFiniteCoordinateError(InvariantViolation, ValueError):
    """A coordinate component is NaN or infinite."""


class GeometryError(InvariantViolation, ValueError):
    """A geometry operation received input it cannot be defined on."""


class ClipCycleError(InvariantViolation, ValueError):
    """Clip relations form a cycle or exceed the maximum nesting depth."""
