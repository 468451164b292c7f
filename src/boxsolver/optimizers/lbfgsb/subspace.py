import numpy as np
from typing import NamedTuple

from .cauchy import CauchyPoint
from .compact import CompactRepresentation, checked_solve

TINY = np.finfo(float).tiny


class SubspaceStep(NamedTuple):
    x_bar: np.ndarray
    free: np.ndarray
    alpha: float


def max_feasible_step(
    x_cauchy: np.ndarray,
    du: np.ndarray,
    free: np.ndarray,
    lower: np.ndarray,
    upper: np.ndarray,
    tiny: float = TINY
) -> float:
    """
    Largest alpha in [0, 1] with lower <= x_cauchy + alpha * du <= upper on
    the free coordinates.

    ``du`` is indexed like ``free``. Components with |du_i| <= tiny do not
    limit the step.
    """
    xc = x_cauchy[free]
    alpha = 1.0
    up_move = du > tiny
    down_move = du < -tiny
    with np.errstate(over="ignore"):
        if np.any(up_move):
            alpha = min(alpha, np.min((upper[free][up_move] - xc[up_move]) / du[up_move]))
        if np.any(down_move):
            alpha = min(alpha, np.min((lower[free][down_move] - xc[down_move]) / du[down_move]))
    return float(max(alpha, 0.0))


def subspace_minimization(
    x: np.ndarray,
    g: np.ndarray,
    cauchy: CauchyPoint,
    lower: np.ndarray,
    upper: np.ndarray,
    compact: CompactRepresentation
) -> SubspaceStep:
    """
    Direct primal method: minimize the quadratic model over the variables that
    are free at the Cauchy point, then pull the step back into the box.

    Raises
    ------
    SingularMatrixError
        The reduced system N = I - M W_Z^T W_Z / theta cannot be solved.
    """
    x_cauchy, c = cauchy.x_cauchy, cauchy.c
    free = np.flatnonzero((x_cauchy != lower) & (x_cauchy != upper))
    if free.size == 0:
        return SubspaceStep(x_cauchy.copy(), free, 0.0)

    theta, W, M = compact.theta, compact.W, compact.M
    r = (g + theta * (x_cauchy - x) - W @ (M @ c))[free]

    if W.shape[1] == 0:
        du = -r / theta
    else:
        WZ = W[free, :]
        v = M @ (WZ.T @ r)
        N = np.eye(W.shape[1]) - M @ (WZ.T @ WZ) / theta
        v = checked_solve(N, v, what="reduced subspace matrix")
        du = -r / theta - (WZ @ v) / theta ** 2

    alpha = max_feasible_step(x_cauchy, du, free, lower, upper)

    x_bar = x_cauchy.copy()
    x_bar[free] += alpha * du
    return SubspaceStep(np.clip(x_bar, lower, upper), free, alpha)
