"""
Bound-constrained smooth minimization with L-BFGS-B.

    >>> from boxsolver import LBFGSB
    >>> solver = LBFGSB(lower, upper, m=10, tol=1e-5)
    >>> result = solver.solve(x0, fun, jac)
    >>> result.status, result.x
"""

from .errors import (
    BoxSolverError,
    DimensionMismatchError,
    InfeasibleStartError,
    LineSearchError,
    OracleError,
    SingularMatrixError,
)
from .optimizers import OPTIMIZERS
from .optimizers.lbfgsb import LBFGSB, Options, Oracle, SolveResult, Status, minimize_lbfgsb
from .optimizers.scipy import minimize_scipy_lbfgsb

__version__ = "0.1.0"

__all__ = [
    "BoxSolverError",
    "DimensionMismatchError",
    "InfeasibleStartError",
    "LBFGSB",
    "LineSearchError",
    "OPTIMIZERS",
    "Options",
    "Oracle",
    "OracleError",
    "SingularMatrixError",
    "SolveResult",
    "Status",
    "minimize_lbfgsb",
    "minimize_scipy_lbfgsb",
]
