import numpy as np
from typing import Callable, Annotated, Optional, get_origin, get_args
from boxsolver.function_generators import fun_nonlinear as fun_generator


def finite_diff_grad(
    fun: Callable[[np.ndarray], float],
    x: np.ndarray,
    eps: Optional[float] = None
) -> np.ndarray:
    """Central-difference gradient approximation."""
    n = x.size
    grad = np.zeros(n, dtype=float)
    if eps is None:
        eps = np.sqrt(np.finfo(float).eps) * (1.0 + np.linalg.norm(x))
    for i in range(n):
        dx = np.zeros_like(x)
        dx[i] = eps
        f_plus = fun(x + dx)
        f_minus = fun(x - dx)
        grad[i] = (f_plus - f_minus) / (2 * eps)
    return grad


def projected_gradient(x: np.ndarray, g: np.ndarray, lower: np.ndarray, upper: np.ndarray) -> np.ndarray:
    """clip(x - g, lower, upper) - x; zero exactly at a box-constrained stationary point."""
    return np.clip(x - g, lower, upper) - x


def check_optimizer_annotations(optimizer: Callable):
    import inspect
    sig = inspect.signature(optimizer)

    has_annotated_param = False
    for param_name, param in sig.parameters.items():
        if param_name in ['fun', 'initial_guess']:
            continue

        anno = param.annotation
        if get_origin(anno) is Annotated:
            args = get_args(anno)
            if len(args) >= 2 and isinstance(args[1], Interval):
                has_annotated_param = True
                break

    if not has_annotated_param:
        raise ValueError(f"No Annotated parameters with Interval")


def check_optimizer_function(optimizer: Callable, func_name: str = 'rosenbrock', n_dims: int = 5):
    problem = fun_generator.get_bounded_problem(func_name, n_dims=n_dims)
    initial_guess = problem.initial_guess.copy()
    result_x = optimizer(fun=problem.fun, initial_guess=initial_guess, jac=problem.jac,
                         lower=problem.lower, upper=problem.upper)
    result_f = problem.fun(result_x)
    assert result_x is not None, f"Returned None"
    assert isinstance(result_x, np.ndarray), f"Didn't return numpy array"
    assert result_x.shape == (n_dims,), f"Returned wrong shape"

    # Check for inf values in result
    assert not np.any(np.isinf(result_x)), f"Returned inf values in x estimate"
    assert not np.any(np.isnan(result_x)), f"Returned NaN values in x estimate"

    # Bounds must hold exactly
    assert np.all(result_x >= problem.lower), f"Violated lower bound"
    assert np.all(result_x <= problem.upper), f"Violated upper bound"

    # Check function value at result
    assert not np.isinf(result_f), f"Produced solution with inf function value"
    assert not np.isnan(result_f), f"Produced solution with NaN function value"
    assert result_f <= problem.fun(problem.initial_guess), f"Objective increased"


class Interval:
    """
    Optuna metadata class for use with parameter annotations using typing.Annotated
    Low and high are required, and must be numeric.
    Step is optional, and should be None if log=True.
    """
    def __init__(self, low: int | float, high: int | float, step: int | float | None=None, log: bool=False):
        self.low = low
        self.high = high
        self.step = step
        self.log = log
