import numpy as np
from typing import Optional


class BoxSolverError(Exception):
    """Base class for all errors raised by boxsolver."""


class DimensionMismatchError(BoxSolverError, ValueError):
    """Starting point or bounds do not share the problem dimension."""


class InfeasibleStartError(BoxSolverError, ValueError):
    """Starting point violates l <= x0 <= u."""


class OracleError(BoxSolverError):
    """
    The objective or gradient oracle returned something unusable
    (non-finite value, wrong shape).

    ``x`` holds the last accepted iterate, if one exists. It is never a
    converged point.
    """
    def __init__(self, message: str, x: Optional[np.ndarray] = None):
        super().__init__(message)
        self.x = x


class SingularMatrixError(BoxSolverError, np.linalg.LinAlgError):
    """A small dense system of the compact representation is singular or ill-conditioned."""
    def __init__(self, message: str, condition: float = np.inf):
        super().__init__(message)
        self.condition = condition


class LineSearchError(BoxSolverError):
    """Backtracking did not find an acceptable step."""
    def __init__(self, message: str, n_evals: int = 0):
        super().__init__(message)
        self.n_evals = n_evals
