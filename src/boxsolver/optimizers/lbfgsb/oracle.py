import numpy as np
from typing import Callable, Optional

from boxsolver.errors import OracleError
from boxsolver.utils import finite_diff_grad


class Oracle:
    """
    Objective and gradient of a problem, bundled as one value.

    Both callables must be deterministic and free of side effects: the line
    search evaluates the objective several times per iteration and assumes
    equal inputs give equal outputs. Each call receives a private copy of the
    point, so an oracle that writes into its argument cannot corrupt the
    solver state.

    Parameters
    ----------
    fun : Callable[[np.ndarray], float]
        Objective.
    jac : Callable[[np.ndarray], np.ndarray], optional
        Gradient of ``fun``. Central finite differences are used when omitted.
    """
    def __init__(
        self,
        fun: Callable[[np.ndarray], float],
        jac: Optional[Callable[[np.ndarray], np.ndarray]] = None
    ):
        if not callable(fun):
            raise TypeError("objective oracle must be callable")
        if jac is not None and not callable(jac):
            raise TypeError("gradient oracle must be callable")
        self.fun = fun
        self.jac = jac
        self.n_fev = 0
        self.n_gev = 0

    def reset_counters(self) -> None:
        self.n_fev = 0
        self.n_gev = 0

    def evaluate(self, x: np.ndarray) -> float:
        self.n_fev += 1
        value = self.fun(np.array(x, dtype=float))
        try:
            scalar = np.asarray(value, dtype=float)
        except (TypeError, ValueError) as exc:
            raise OracleError(f"objective returned a non-scalar value: {value!r}") from exc
        if scalar.size != 1:
            raise OracleError(f"objective returned a non-scalar value: {value!r}")
        value = scalar.item()
        if not np.isfinite(value):
            raise OracleError(f"objective returned a non-finite value {value} at {x}")
        return value

    def gradient(self, x: np.ndarray) -> np.ndarray:
        self.n_gev += 1
        if self.jac is None:
            g = finite_diff_grad(self.fun, np.array(x, dtype=float))
        else:
            g = self.jac(np.array(x, dtype=float))
        g = np.asarray(g, dtype=float).reshape(-1)
        if g.shape != np.shape(x):
            raise OracleError(f"gradient has shape {g.shape}, expected {np.shape(x)}")
        if not np.all(np.isfinite(g)):
            raise OracleError(f"gradient has non-finite entries at {x}")
        return g
