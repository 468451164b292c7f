import numpy as np
from typing import Callable, NamedTuple, Optional

import matplotlib.pyplot as plt


# Demonstration problem: min <x, A x> + <b, x> on {x_2 >= 0}
QUADRATIC_A = np.array([[3.0, 3.1], [3.1, 10.0]])
QUADRATIC_B = np.array([1.0, 3.0])
QUADRATIC_LOWER = np.array([-np.inf, 0.0])
QUADRATIC_UPPER = np.array([np.inf, np.inf])
QUADRATIC_X0 = np.array([0.3, 0.3])


class BoundedProblem(NamedTuple):
    fun: Callable[[np.ndarray], float]
    jac: Callable[[np.ndarray], np.ndarray]
    lower: np.ndarray
    upper: np.ndarray
    initial_guess: np.ndarray
    unconstrained_optimum: np.ndarray


def make_quadratic(A: np.ndarray, b: np.ndarray):
    """f(x) = x^T A x + b^T x and its gradient (A + A^T) x + b."""
    A = np.asarray(A, dtype=float)
    b = np.asarray(b, dtype=float)

    def fun(x: np.ndarray) -> float:
        return float(x @ A @ x + b @ x)

    def jac(x: np.ndarray) -> np.ndarray:
        return (A + A.T) @ x + b

    return fun, jac


quadratic, quadratic_grad = make_quadratic(QUADRATIC_A, QUADRATIC_B)


def generate_affine_transformation(n_dims: int, rng: Optional[np.random.Generator] = None):
    rng = rng or np.random.default_rng()
    scale_range = (0.5, 2.0)
    shift_range = (-5.0, 5.0)
    shift = rng.uniform(*shift_range, size=n_dims)
    Q, _ = np.linalg.qr(rng.normal(size=(n_dims, n_dims)))
    scales = rng.uniform(*scale_range, size=n_dims)
    A_mat = Q @ np.diag(scales)
    return A_mat, shift


def generate_transformed_function(func_z: Callable[[np.ndarray], float],
                                  grad_z: Callable[[np.ndarray], np.ndarray],
                                  optimum_z: np.ndarray,
                                  rng: Optional[np.random.Generator] = None):
    n_dims = len(optimum_z)
    A_mat, shift = generate_affine_transformation(n_dims, rng=rng)
    optimum_x = np.linalg.solve(A_mat, optimum_z) + shift

    def transformed_func(x: np.ndarray) -> float:
        x = np.asarray(x)
        z = A_mat @ (x - shift)
        return func_z(z)

    # chain rule: d/dx f(A (x - shift)) = A^T grad f(z)
    def transformed_grad(x: np.ndarray) -> np.ndarray:
        x = np.asarray(x)
        z = A_mat @ (x - shift)
        return A_mat.T @ grad_z(z)

    return transformed_func, transformed_grad, optimum_x


def sphere(x):
    return np.sum(x ** 2)


def sphere_grad(x):
    return 2.0 * x


def rosenbrock(x):
    return np.sum(100.0 * (x[1:] - x[:-1] ** 2) ** 2 + (1 - x[:-1]) ** 2)


def rosenbrock_grad(x):
    grad = np.zeros_like(x, dtype=float)
    inner = x[1:] - x[:-1] ** 2
    grad[:-1] = -400.0 * x[:-1] * inner - 2.0 * (1 - x[:-1])
    grad[1:] += 200.0 * inner
    return grad


def styblinski_tang(z: np.ndarray) -> float:
    return 0.5 * np.sum(z**4 - 16 * z**2 + 5 * z)


def styblinski_tang_grad(z: np.ndarray) -> np.ndarray:
    return 2.0 * z**3 - 16.0 * z + 2.5


FUNCTIONS_AND_OPTIMA = {
    "sphere": (sphere, sphere_grad, lambda n_dims: np.zeros(n_dims)),
    "rosenbrock": (rosenbrock, rosenbrock_grad, lambda n_dims: np.ones(n_dims)),
    "styblinski_tang": (styblinski_tang, styblinski_tang_grad, lambda n_dims: np.ones(n_dims) * -2.903534),
}


def get_function_and_optimum(func_name: str, n_dims: int, rng: Optional[np.random.Generator] = None):
    func_z, grad_z, optimum_gen = FUNCTIONS_AND_OPTIMA[func_name]
    optimum_z = optimum_gen(n_dims)
    return generate_transformed_function(func_z, grad_z, optimum_z, rng=rng)


def get_bounded_problem(func_name: str, n_dims: int, half_width: float = 2.0,
                        transform: bool = False, seed: Optional[int] = None) -> BoundedProblem:
    """
    Box around the unconstrained optimum in which every odd coordinate has its
    upper bound moved below the optimum, so those bounds are active at the
    solution. The start sits at 30% of the box width from the lower bound.
    """
    if transform:
        fun, jac, optimum = get_function_and_optimum(func_name, n_dims, rng=np.random.default_rng(seed))
    else:
        fun, jac, optimum_gen = FUNCTIONS_AND_OPTIMA[func_name]
        optimum = optimum_gen(n_dims)

    lower = optimum - half_width
    upper = optimum + half_width
    upper[1::2] = optimum[1::2] - 0.25 * half_width
    initial_guess = lower + 0.3 * (upper - lower)
    return BoundedProblem(fun, jac, lower, upper, initial_guess, optimum)


def visualize_function(func_x: Callable, lower: np.ndarray, upper: np.ndarray,
                       path: Optional[np.ndarray] = None, optimum: Optional[np.ndarray] = None,
                       title: str = "Function Visualization", save_path: Optional[str] = None):
    """Contour plot of a 2-d objective with its box and an optional iterate path."""
    lo = np.where(np.isfinite(lower), lower, -5.0)
    hi = np.where(np.isfinite(upper), upper, 5.0)
    pad = 0.25 * (hi - lo)
    x1_range = np.linspace(lo[0] - pad[0], hi[0] + pad[0], 100)
    x2_range = np.linspace(lo[1] - pad[1], hi[1] + pad[1], 100)
    X1, X2 = np.meshgrid(x1_range, x2_range)
    Y = np.zeros_like(X1)
    for i in range(X1.shape[0]):
        for j in range(X1.shape[1]):
            Y[i, j] = func_x(np.array([X1[i, j], X2[i, j]]))

    plt.figure(figsize=(10, 10))
    plt.contour(X1, X2, Y, levels=100)
    plt.colorbar()
    plt.plot([lo[0], hi[0], hi[0], lo[0], lo[0]], [lo[1], lo[1], hi[1], hi[1], lo[1]], 'k--', alpha=0.7,
             label='Box')

    if path is not None and len(path) > 0:
        path = np.asarray(path)
        plt.plot(path[:, 0], path[:, 1], 'o-', color="orange", markersize=3, label='Iterates')

    if optimum is not None:
        plt.scatter(optimum[0], optimum[1], color="red", label='Unconstrained optimum')

    plt.title(title)
    plt.legend()
    if save_path is not None:
        plt.savefig(save_path, dpi=150, bbox_inches='tight')
    else:
        plt.show()
    plt.close()
