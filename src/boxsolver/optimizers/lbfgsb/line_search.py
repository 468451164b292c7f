import numpy as np
from typing import NamedTuple, Optional

from boxsolver.errors import LineSearchError
from .oracle import Oracle

ALPHA_LS = 0.2
BETA_LS = 0.8


class LineSearchResult(NamedTuple):
    x: np.ndarray
    f: float
    g: np.ndarray
    step: float
    n_evals: int


def backtracking_line_search(
    oracle: Oracle,
    x: np.ndarray,
    f0: float,
    g0: np.ndarray,
    dx: np.ndarray,
    lower: np.ndarray,
    upper: np.ndarray,
    target: Optional[np.ndarray] = None,
    max_backtracks: int = 100
) -> LineSearchResult:
    """
    Backtracking-Armijo line search:
      find t in {BETA_LS^k} such that
      f(x + t dx) <= f0 + ALPHA_LS * t * g0^T dx
    then evaluate the gradient at the accepted point.

    Trial points are clipped into the box. ``target`` (x + dx computed
    elsewhere, e.g. the subspace minimizer) is used verbatim as the full-step
    trial so coordinates resting on a bound keep their exact bound value.

    Raises
    ------
    LineSearchError
        If dx is not a descent direction, or no step is accepted after
        ``max_backtracks`` reductions.
    """
    slope = ALPHA_LS * g0.dot(dx)
    if not slope < 0:
        raise LineSearchError(f"not a descent direction (g^T dx = {g0.dot(dx):.3e})")

    t = 1.0
    x_new = np.clip(x + dx, lower, upper) if target is None else target
    f_new = oracle.evaluate(x_new)
    n_evals = 1
    while f_new > f0 + t * slope:
        if n_evals > max_backtracks:
            raise LineSearchError(
                f"no sufficient decrease after {max_backtracks} backtracks (t={t:.3e})",
                n_evals=n_evals
            )
        t *= BETA_LS
        x_new = np.clip(x + t * dx, lower, upper)
        f_new = oracle.evaluate(x_new)
        n_evals += 1

    g_new = oracle.gradient(x_new)
    return LineSearchResult(x_new, f_new, g_new, t, n_evals)
