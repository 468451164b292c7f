import numpy as np
import pytest

from boxsolver.function_generators import fun_nonlinear as fun_generator
from boxsolver.utils import finite_diff_grad, projected_gradient


@pytest.mark.parametrize("func_name", sorted(fun_generator.FUNCTIONS_AND_OPTIMA))
def test_analytic_gradients_match_finite_differences(func_name):
    rng = np.random.default_rng(0)
    fun, grad, _ = fun_generator.FUNCTIONS_AND_OPTIMA[func_name]
    x = rng.uniform(-1.5, 1.5, size=4)
    np.testing.assert_allclose(grad(x), finite_diff_grad(fun, x), rtol=1e-5, atol=1e-4)


@pytest.mark.parametrize("func_name", sorted(fun_generator.FUNCTIONS_AND_OPTIMA))
def test_transformed_gradients_match_finite_differences(func_name):
    rng = np.random.default_rng(1)
    fun, grad, optimum = fun_generator.get_function_and_optimum(func_name, 3, rng=rng)
    x = optimum + rng.uniform(-0.5, 0.5, size=3)
    np.testing.assert_allclose(grad(x), finite_diff_grad(fun, x), rtol=1e-5, atol=1e-4)
    np.testing.assert_allclose(grad(optimum), np.zeros(3), atol=1e-4)


def test_quadratic_gradient():
    x = np.array([0.3, 0.3])
    np.testing.assert_allclose(fun_generator.quadratic_grad(x),
                               finite_diff_grad(fun_generator.quadratic, x), atol=1e-6)


def test_bounded_problem_layout():
    problem = fun_generator.get_bounded_problem('sphere', n_dims=4, half_width=2.0)
    np.testing.assert_array_equal(problem.lower, np.full(4, -2.0))
    np.testing.assert_array_equal(problem.upper, [2.0, -0.5, 2.0, -0.5])
    assert np.all(problem.initial_guess >= problem.lower)
    assert np.all(problem.initial_guess <= problem.upper)
    # capped coordinates exclude the unconstrained optimum
    assert np.all(problem.unconstrained_optimum[1::2] > problem.upper[1::2])


def test_transformed_problem_is_reproducible():
    first = fun_generator.get_bounded_problem('rosenbrock', n_dims=3, transform=True, seed=4)
    second = fun_generator.get_bounded_problem('rosenbrock', n_dims=3, transform=True, seed=4)
    np.testing.assert_array_equal(first.lower, second.lower)
    assert first.fun(first.initial_guess) == second.fun(second.initial_guess)


def test_projected_gradient():
    x = np.array([0.0, 0.5, 1.0])
    g = np.array([1.0, 0.25, -3.0])
    pg = projected_gradient(x, g, np.zeros(3), np.ones(3))
    np.testing.assert_array_equal(pg, [0.0, -0.25, 0.0])


def test_visualize_function_writes_file(tmp_path):
    problem = fun_generator.get_bounded_problem('sphere', n_dims=2)
    target = tmp_path / "contour.png"
    fun_generator.visualize_function(problem.fun, problem.lower, problem.upper,
                                     path=[problem.initial_guess, problem.unconstrained_optimum],
                                     optimum=problem.unconstrained_optimum, save_path=str(target))
    assert target.exists()
