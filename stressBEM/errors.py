"""
Exception types raised by the BEM core.

Three families are distinguished:
- GeometryError: the boundary geometry cannot be discretized
  (fewer than 3 vertices, zero-length segments, no elements)
- InputValidationError: missing or invalid configuration at a public entry point
- NumericalSingularityError: the numerics broke down (singular pivot,
  non-convergence, non-finite results)

Low-level kernels return zeros for locally recoverable degeneracies and leave
the interpretation to the caller; only public entry points raise.
"""

from typing import Any, Dict, Optional


class BEMError(Exception):
    """Base class for all errors raised by stressBEM."""
    pass


class GeometryError(BEMError, ValueError):
    """Raised when boundary geometry cannot be analyzed as given."""
    pass


class InputValidationError(BEMError, ValueError):
    """Raised when configuration or input arrays are invalid."""
    pass


class NumericalSingularityError(BEMError, RuntimeError):
    """
    Raised when a numerical stage cannot produce a trustworthy result.

    Attributes:
        context: Diagnostic values (dimension, pivot, residual, ...) captured
                 at the point of failure
    """

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.context: Dict[str, Any] = dict(context or {})

    def __str__(self) -> str:
        base = super().__str__()
        if not self.context:
            return base
        details = ", ".join(f"{k}={v}" for k, v in self.context.items())
        return f"{base} ({details})"


class SingularMatrixError(NumericalSingularityError):
    """Raised when the direct factorization meets a zero pivot."""
    pass


class ConvergenceError(NumericalSingularityError):
    """Raised when the iterative solver does not converge or breaks down."""
    pass
