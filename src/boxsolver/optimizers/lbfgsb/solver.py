import numpy as np
from typing import Annotated, Callable, Optional, Union

from boxsolver.errors import (
    DimensionMismatchError,
    InfeasibleStartError,
    LineSearchError,
    OracleError,
    SingularMatrixError,
)
from boxsolver.logging_utils import get_logger
from boxsolver.utils import Interval, projected_gradient
from .cauchy import generalized_cauchy_point
from .compact import CompactRepresentation, CorrectionHistory
from .line_search import LineSearchResult, backtracking_line_search
from .options import Options, SolveResult, Status
from .oracle import Oracle
from .subspace import subspace_minimization

logger = get_logger(__name__)


class LBFGSB:
    """
    L-BFGS-B solver for min f(x) subject to lower <= x <= upper.

    Parameters
    ----------
    lower, upper : array_like or None
        Bound vectors of equal length; they fix the problem dimension. Entries
        may be infinite. ``None`` leaves that side unbounded.
    options : Options, optional
        Solver configuration. Keyword overrides are applied on top of it.

    Examples
    --------
    >>> solver = LBFGSB([-np.inf, 0.0], [np.inf, np.inf], tol=1e-6)
    >>> result = solver.solve(np.array([0.3, 0.3]), fun, jac)
    >>> result.status
    <Status.CONVERGED: 'converged'>
    """
    def __init__(
        self,
        lower,
        upper,
        options: Optional[Options] = None,
        **overrides
    ):
        if lower is None and upper is None:
            raise ValueError("at least one of lower/upper is needed to fix the dimension")
        if lower is None:
            lower = np.full(np.shape(upper), -np.inf)
        if upper is None:
            upper = np.full(np.shape(lower), np.inf)
        self.lower = np.array(lower, dtype=float).reshape(-1)
        self.upper = np.array(upper, dtype=float).reshape(-1)
        if self.lower.shape != self.upper.shape:
            raise DimensionMismatchError(
                f"lower bound has {self.lower.size} entries, upper bound has {self.upper.size}"
            )
        if np.any(np.isnan(self.lower)) or np.any(np.isnan(self.upper)):
            raise ValueError("bounds must not contain NaN")
        if np.any(self.lower > self.upper):
            bad = np.flatnonzero(self.lower > self.upper)
            raise ValueError(f"lower bound exceeds upper bound at indices {bad.tolist()}")

        self.options = (options or Options())._replace(**overrides).validate()
        self.n = self.lower.size
        self.history = CorrectionHistory(self.n, self.options.m)
        self.compact = CompactRepresentation(self.n)
        self.x_opt: Optional[np.ndarray] = None

    def projected_grad_norm(self, x: np.ndarray, g: np.ndarray) -> float:
        if self.n == 0:
            return 0.0
        return float(np.linalg.norm(projected_gradient(x, g, self.lower, self.upper), ord=np.inf))

    def _check_start(self, x0) -> np.ndarray:
        x = np.array(x0, dtype=float).reshape(-1)
        if x.size != self.n:
            raise DimensionMismatchError(f"starting point has {x.size} entries, bounds have {self.n}")
        feasible = (self.lower <= x) & (x <= self.upper)
        if not np.all(feasible):
            bad = np.flatnonzero(~feasible)
            raise InfeasibleStartError(f"starting point violates the bounds at indices {bad.tolist()}")
        return x

    def _reset_memory(self) -> None:
        self.history.clear()
        self.compact.reset()

    def _line_search(self, oracle: Oracle, x: np.ndarray, f: float, g: np.ndarray) -> LineSearchResult:
        cauchy = generalized_cauchy_point(x, g, self.lower, self.upper, self.compact)
        step = subspace_minimization(x, g, cauchy, self.lower, self.upper, self.compact)
        return backtracking_line_search(
            oracle, x, f, g, step.x_bar - x, self.lower, self.upper,
            target=step.x_bar, max_backtracks=self.options.max_backtracks
        )

    def _step(self, oracle: Oracle, x: np.ndarray, f: float, g: np.ndarray) -> LineSearchResult:
        # With an empty memory B = theta * I and there is nothing left to reset.
        try:
            return self._line_search(oracle, x, f, g)
        except SingularMatrixError as exc:
            if not self.options.recover_singular or len(self.history) == 0:
                raise
            logger.warning("Resetting limited memory after singular system: %s", exc)
        except LineSearchError as exc:
            if len(self.history) == 0:
                raise
            logger.warning("Resetting limited memory after line search failure: %s", exc)
        self._reset_memory()
        return self._line_search(oracle, x, f, g)

    def _update_memory(self, s: np.ndarray, y: np.ndarray) -> None:
        if not self.history.push(s, y):
            logger.debug("Curvature condition failed (s^T y = %.3e); pair discarded", s.dot(y))
            return
        try:
            self.compact.update(self.history)
        except SingularMatrixError as exc:
            if not self.options.recover_singular:
                raise
            logger.warning("Resetting limited memory after singular update: %s", exc)
            self._reset_memory()

    def solve(
        self,
        x0: np.ndarray,
        objective: Union[Oracle, Callable[[np.ndarray], float]],
        gradient: Optional[Callable[[np.ndarray], np.ndarray]] = None
    ) -> SolveResult:
        """
        Minimize from ``x0``, which is overwritten with the final iterate.

        Only a writable float ndarray or a list can be overwritten. Any other
        ``x0`` (an integer array, a tuple, a read-only view) is left as it
        was; the final iterate is always in ``result.x`` and ``self.x_opt``.

        Parameters
        ----------
        x0 : np.ndarray
            Feasible starting point of length n.
        objective : Oracle or Callable[[np.ndarray], float]
            Objective, or an Oracle bundling objective and gradient.
        gradient : Callable[[np.ndarray], np.ndarray], optional
            Gradient of the objective; finite differences when omitted.

        Returns
        -------
        SolveResult
            Final iterate and the reason the solve stopped.

        Raises
        ------
        DimensionMismatchError, InfeasibleStartError
            Before any oracle call.
        OracleError
            The oracle returned a non-finite or misshapen value; ``.x`` is the
            last accepted iterate. Exceptions raised by the oracle itself
            propagate unchanged.
        """
        if isinstance(objective, Oracle):
            if gradient is not None:
                raise TypeError("pass either an Oracle or objective/gradient callables, not both")
            oracle = objective
        else:
            oracle = Oracle(objective, gradient)

        x = self._check_start(x0)
        opts = self.options
        oracle.reset_counters()
        self._reset_memory()

        try:
            f = oracle.evaluate(x)
            g = oracle.gradient(x)
        except OracleError as exc:
            exc.x = x.copy()
            raise

        fun_history = [f] if opts.record_history else []
        x_history = [x.copy()] if opts.record_history else []
        n_iter = 0
        message = None
        pg_norm = self.projected_grad_norm(x, g)

        while True:
            if pg_norm < opts.tol:
                status = Status.CONVERGED
                break
            if n_iter >= opts.max_iter:
                status = Status.MAX_ITER_REACHED
                message = f"reached max_iter={opts.max_iter}"
                break

            f_old = f
            try:
                step = self._step(oracle, x, f, g)
            except OracleError as exc:
                exc.x = x.copy()
                raise
            except SingularMatrixError as exc:
                status = Status.NUMERIC_SINGULARITY
                message = str(exc)
                break
            except LineSearchError as exc:
                status = Status.LINE_SEARCH_FAILED
                message = str(exc)
                break

            s = step.x - x
            y = step.g - g
            x, f, g = step.x, step.f, step.g
            n_iter += 1
            if opts.record_history:
                fun_history.append(f)
                x_history.append(x.copy())
            pg_norm = self.projected_grad_norm(x, g)
            logger.debug(
                "iter %d: f=%.8e |pg|=%.3e step=%.3e evals=%d pairs=%d",
                n_iter, f, pg_norm, step.step, step.n_evals, len(self.history)
            )

            if pg_norm < opts.tol:
                status = Status.CONVERGED
                break
            try:
                self._update_memory(s, y)
            except SingularMatrixError as exc:
                status = Status.NUMERIC_SINGULARITY
                message = str(exc)
                break
            if abs(f_old - f) < opts.functol:
                status = Status.STALLED
                message = f"|f_old - f| = {abs(f_old - f):.3e} below functol={opts.functol}"
                break

        logger.debug(
            "L-BFGS-B stopped (%s) after %d iterations: f=%.8e |pg|=%.3e",
            status.value, n_iter, f, pg_norm
        )

        self.x_opt = x.copy()
        if isinstance(x0, np.ndarray) and x0.flags.writeable and x0.dtype.kind == "f" and x0.size == x.size:
            x0[...] = x.reshape(x0.shape)
        elif isinstance(x0, list):
            x0[:] = x.tolist()

        return SolveResult(
            x=x.copy(),
            fun=f,
            grad=g.copy(),
            status=status,
            n_iter=n_iter,
            n_fev=oracle.n_fev,
            n_gev=oracle.n_gev,
            projected_grad_norm=pg_norm,
            fun_history=fun_history,
            x_history=x_history,
            message=message,
        )


def minimize_lbfgsb(
    fun: Callable[[np.ndarray], float],
    initial_guess: np.ndarray,
    jac: Optional[Callable[[np.ndarray], np.ndarray]] = None,
    lower: Optional[np.ndarray] = None,
    upper: Optional[np.ndarray] = None,
    m: Annotated[int, Interval(low=3, high=30)] = 10,
    tol: Annotated[float, Interval(low=1e-8, high=1e-3, log=True)] = 1e-4,
    functol: float = 1e-8,
    max_iter: int = 10000
) -> np.ndarray:
    """
    Limited-memory BFGS with box constraints (L-BFGS-B).

    Parameters
    ----------
    fun : Callable[[np.ndarray], float]
        Objective to minimize.
    initial_guess : np.ndarray
        Starting point. It is projected into the box and left unmodified.
    jac : Callable[[np.ndarray], np.ndarray], optional
        Gradient of ``fun``; central finite differences when omitted.
    lower, upper : np.ndarray, optional
        Bounds; unbounded when omitted.
    m : int
        History size (number of (s,y) pairs to keep).
    tol : float
        Convergence tolerance on the projected gradient infinity norm.
    functol : float
        Tolerance on successive objective values.
    max_iter : int
        Maximum number of iterations.

    Returns
    -------
    x : np.ndarray
        The approximate minimizer.
    """
    x = np.array(initial_guess, dtype=float).reshape(-1)
    lower = np.full(x.size, -np.inf) if lower is None else np.asarray(lower, dtype=float)
    upper = np.full(x.size, np.inf) if upper is None else np.asarray(upper, dtype=float)
    x = np.clip(x, lower, upper)

    solver = LBFGSB(lower, upper, m=m, tol=tol, functol=functol, max_iter=max_iter, record_history=False)
    result = solver.solve(x, fun, jac)
    return result.x
