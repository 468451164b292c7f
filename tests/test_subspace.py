import numpy as np

from boxsolver.optimizers.lbfgsb.cauchy import CauchyPoint, generalized_cauchy_point
from boxsolver.optimizers.lbfgsb.compact import CompactRepresentation, CorrectionHistory
from boxsolver.optimizers.lbfgsb.subspace import max_feasible_step, subspace_minimization


def _compact_from_spd(n, n_pairs, seed=0):
    rng = np.random.default_rng(seed)
    Q, _ = np.linalg.qr(rng.normal(size=(n, n)))
    H = Q @ np.diag(rng.uniform(1.0, 5.0, size=n)) @ Q.T
    history = CorrectionHistory(n, 10)
    for _ in range(n_pairs):
        s = rng.normal(size=n)
        history.push(s, H @ s)
    compact = CompactRepresentation(n)
    compact.update(history)
    return compact


def test_max_feasible_step():
    x_cauchy = np.full(3, 0.5)
    free = np.arange(3)
    du = np.array([1.0, -2.0, 0.0])
    alpha = max_feasible_step(x_cauchy, du, free, np.zeros(3), np.ones(3))
    assert alpha == 0.25


def test_max_feasible_step_ignores_tiny_components():
    x_cauchy = np.array([1.0, 0.5])
    free = np.arange(2)
    du = np.array([1e-320, 0.1])
    alpha = max_feasible_step(x_cauchy, du, free, np.zeros(2), np.ones(2))
    assert alpha == 1.0


def test_max_feasible_step_only_looks_at_free_coordinates():
    x_cauchy = np.array([1.0, 0.5, 0.5])
    free = np.array([1, 2])
    du = np.array([0.25, -0.25])
    alpha = max_feasible_step(x_cauchy, du, free, np.zeros(3), np.ones(3))
    assert alpha == 1.0


def test_no_free_variables_returns_cauchy_point():
    compact = CompactRepresentation(2)
    cauchy = CauchyPoint(np.array([0.0, 1.0]), np.zeros(0), 2, 1.0)
    step = subspace_minimization(
        np.array([0.5, 0.5]), np.array([1.0, -1.0]), cauchy, np.zeros(2), np.ones(2), compact
    )
    np.testing.assert_array_equal(step.x_bar, [0.0, 1.0])
    assert step.free.size == 0


def test_identity_model_keeps_unconstrained_cauchy_point():
    compact = CompactRepresentation(3)
    x = np.array([0.1, -0.2, 0.3])
    g = np.array([0.5, 1.0, -0.25])
    lower = np.full(3, -10.0)
    upper = np.full(3, 10.0)
    cauchy = generalized_cauchy_point(x, g, lower, upper, compact)
    step = subspace_minimization(x, g, cauchy, lower, upper, compact)
    np.testing.assert_allclose(step.x_bar, cauchy.x_cauchy)
    np.testing.assert_allclose(step.x_bar, x - g)


def test_all_free_gives_quasi_newton_step():
    n = 5
    compact = _compact_from_spd(n, n_pairs=3)
    rng = np.random.default_rng(3)
    x = rng.normal(size=n)
    g = rng.normal(scale=0.1, size=n)
    lower = np.full(n, -1e3)
    upper = np.full(n, 1e3)

    cauchy = generalized_cauchy_point(x, g, lower, upper, compact)
    assert cauchy.n_pinned == 0
    step = subspace_minimization(x, g, cauchy, lower, upper, compact)

    expected = x - np.linalg.solve(compact.dense(), g)
    np.testing.assert_allclose(step.x_bar, expected, rtol=1e-8, atol=1e-10)
    assert step.alpha == 1.0


def test_fixed_coordinates_keep_their_cauchy_value():
    n = 6
    compact = _compact_from_spd(n, n_pairs=4, seed=11)
    rng = np.random.default_rng(5)
    lower = np.zeros(n)
    upper = np.ones(n)
    for _ in range(20):
        x = rng.uniform(0.0, 1.0, size=n)
        g = rng.normal(scale=3.0, size=n)
        cauchy = generalized_cauchy_point(x, g, lower, upper, compact)
        step = subspace_minimization(x, g, cauchy, lower, upper, compact)

        fixed = np.setdiff1d(np.arange(n), step.free)
        np.testing.assert_array_equal(step.x_bar[fixed], cauchy.x_cauchy[fixed])
        assert np.all(step.x_bar >= lower)
        assert np.all(step.x_bar <= upper)
        assert 0.0 <= step.alpha <= 1.0
