import numpy as np
from typing import Annotated, Callable, Optional
from scipy.optimize import minimize as _scipy_minimize

from boxsolver.utils import Interval, finite_diff_grad


def minimize_scipy_lbfgsb(
    fun: Callable[[np.ndarray], float],
    initial_guess: np.ndarray,
    jac: Optional[Callable[[np.ndarray], np.ndarray]] = None,
    lower: Optional[np.ndarray] = None,
    upper: Optional[np.ndarray] = None,
    m: Annotated[int, Interval(low=3, high=30)] = 10,
    tol: Annotated[float, Interval(low=1e-8, high=1e-3, log=True)] = 1e-6,
    maxiter: int = 15000
) -> np.ndarray:
    """
    SciPy's L-BFGS-B, wrapped with the registry signature. Used as the
    reference the in-house solver is benchmarked against.

    Parameters
    ----------
    fun : Callable[[np.ndarray], float]
        Objective to minimize.
    initial_guess : np.ndarray
        Starting point (shape (n_dim,)).
    jac : Callable[[np.ndarray], np.ndarray], optional
        Gradient; central finite differences when omitted.
    lower, upper : np.ndarray, optional
        Bounds; unbounded when omitted.
    tol : float
        Convergence tolerance on the projected gradient.
    maxiter : int
        Maximum number of iterations.
    m : int
        Number of corrections to store in the limited-memory matrix (history size).

    Returns
    -------
    np.ndarray
        Estimated minimizer.
    """
    x0 = np.array(initial_guess, dtype=float).reshape(-1)
    n = x0.size
    lower = np.full(n, -np.inf) if lower is None else np.asarray(lower, dtype=float)
    upper = np.full(n, np.inf) if upper is None else np.asarray(upper, dtype=float)

    if jac is None:
        def jac(x: np.ndarray) -> np.ndarray:
            return finite_diff_grad(fun, x)

    res = _scipy_minimize(
        fun,
        np.clip(x0, lower, upper),
        method="L-BFGS-B",
        jac=jac,
        bounds=list(zip(lower, upper)),
        tol=tol,
        options={
            "maxiter": maxiter,
            "maxcor": m,
            "ftol": tol,
            "gtol": tol
        }
    )

    return res.x
