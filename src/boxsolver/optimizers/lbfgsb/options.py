import enum
import numpy as np
from typing import List, NamedTuple, Optional


class Status(enum.Enum):
    """Why a solve stopped."""
    CONVERGED = "converged"
    MAX_ITER_REACHED = "max_iter_reached"
    STALLED = "stalled"
    LINE_SEARCH_FAILED = "line_search_failed"
    NUMERIC_SINGULARITY = "numeric_singularity"


class Options(NamedTuple):
    """
    Immutable configuration of one solve.

    Attributes
    ----------
    tol : float
        Threshold on the infinity norm of the projected gradient.
    functol : float
        Stop (STALLED) once successive objective values differ by less.
    max_iter : int
        Hard iteration cap.
    m : int
        Capacity of the correction history.
    max_backtracks : int
        Number of step reductions the line search may try.
    recover_singular : bool
        Reset the limited memory on a singular compact system instead of
        stopping with NUMERIC_SINGULARITY.
    record_history : bool
        Keep every accepted iterate and objective value on the result.
    """
    tol: float = 1e-4
    functol: float = 1e-8
    max_iter: int = 10000
    m: int = 10
    max_backtracks: int = 100
    recover_singular: bool = True
    record_history: bool = True

    def validate(self) -> "Options":
        if not self.tol > 0:
            raise ValueError(f"tol must be positive, got {self.tol}")
        if not self.functol >= 0:
            raise ValueError(f"functol must be non-negative, got {self.functol}")
        if self.max_iter < 0:
            raise ValueError(f"max_iter must be non-negative, got {self.max_iter}")
        if self.m < 1:
            raise ValueError(f"m must be at least 1, got {self.m}")
        if self.max_backtracks < 1:
            raise ValueError(f"max_backtracks must be at least 1, got {self.max_backtracks}")
        return self


class SolveResult(NamedTuple):
    x: np.ndarray
    fun: float
    grad: np.ndarray
    status: Status
    n_iter: int
    n_fev: int
    n_gev: int
    projected_grad_norm: float
    fun_history: List[float]
    x_history: List[np.ndarray]
    message: Optional[str] = None

    @property
    def success(self) -> bool:
        return self.status is Status.CONVERGED
