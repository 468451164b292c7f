import numpy as np
import pytest

from boxsolver.optimizers.lbfgsb.cauchy import breakpoints, generalized_cauchy_point
from boxsolver.optimizers.lbfgsb.compact import CompactRepresentation, CorrectionHistory


def _random_compact(n, n_pairs, rng):
    Q, _ = np.linalg.qr(rng.normal(size=(n, n)))
    H = Q @ np.diag(rng.uniform(0.5, 10.0, size=n)) @ Q.T
    history = CorrectionHistory(n, 5)
    for _ in range(n_pairs):
        s = rng.normal(size=n)
        history.push(s, H @ s)
    compact = CompactRepresentation(n)
    compact.update(history)
    return compact


def _model(compact, x, g, z):
    step = z - x
    return g.dot(step) + 0.5 * step.dot(compact.dot(step))


def test_breakpoints():
    x = np.array([0.0, 0.5, 1.0, 0.2])
    g = np.array([1.0, -1.0, 0.0, -2.0])
    lower = np.zeros(4)
    upper = np.array([1.0, 1.0, 1.0, np.inf])
    t, d = breakpoints(x, g, lower, upper)

    np.testing.assert_array_equal(t, [0.0, 0.5, np.inf, np.inf])
    # the first coordinate sits on the bound the gradient pushes against
    np.testing.assert_array_equal(d, [0.0, 1.0, 0.0, 2.0])


def test_identity_model_without_active_bounds_is_steepest_descent():
    compact = CompactRepresentation(2)
    x = np.array([1.0, 1.0])
    g = np.array([2.0, -4.0])
    lower = np.full(2, -10.0)
    upper = np.full(2, 10.0)

    cauchy = generalized_cauchy_point(x, g, lower, upper, compact)
    np.testing.assert_allclose(cauchy.x_cauchy, x - g)
    assert cauchy.n_pinned == 0
    assert cauchy.t == pytest.approx(1.0)
    assert cauchy.c.shape == (0,)


def test_coordinate_is_pinned_exactly_to_its_bound():
    compact = CompactRepresentation(2)
    x = np.array([0.5, 0.5])
    g = np.array([1.0, 0.1])
    lower = np.zeros(2)
    upper = np.ones(2)

    cauchy = generalized_cauchy_point(x, g, lower, upper, compact)
    # with B = I the Cauchy point is the projection of x - g
    assert cauchy.x_cauchy[0] == 0.0
    assert cauchy.x_cauchy[1] == pytest.approx(0.4)
    assert cauchy.n_pinned == 1


def test_all_coordinates_pinned():
    compact = CompactRepresentation(2)
    x = np.array([0.0, 0.0])
    g = np.array([-4.0, 6.0])
    lower = -np.ones(2)
    upper = np.ones(2)

    cauchy = generalized_cauchy_point(x, g, lower, upper, compact)
    np.testing.assert_array_equal(cauchy.x_cauchy, [1.0, -1.0])
    assert cauchy.n_pinned == 2


def test_zero_gradient_returns_starting_point():
    compact = CompactRepresentation(3)
    x = np.array([0.1, 0.2, 0.3])
    cauchy = generalized_cauchy_point(x, np.zeros(3), np.zeros(3), np.ones(3), compact)
    np.testing.assert_array_equal(cauchy.x_cauchy, x)
    assert cauchy.n_pinned == 0


def test_zero_gradient_coordinate_never_reaches_a_bound():
    compact = CompactRepresentation(2)
    x = np.array([0.5, 1.0])
    g = np.array([5.0, 0.0])
    cauchy = generalized_cauchy_point(x, g, np.zeros(2), np.ones(2), compact)
    assert cauchy.x_cauchy[0] == 0.0
    assert cauchy.x_cauchy[1] == 1.0


def test_cauchy_point_is_feasible_and_decreases_the_model():
    rng = np.random.default_rng(42)
    for trial in range(25):
        n = int(rng.integers(4, 9))
        compact = _random_compact(n, n_pairs=int(rng.integers(0, 4)), rng=rng)
        lower = rng.uniform(-2.0, 0.0, size=n)
        upper = lower + rng.uniform(0.1, 3.0, size=n)
        x = lower + rng.uniform(0.0, 1.0, size=n) * (upper - lower)
        # put a few coordinates exactly on a bound
        x[0] = lower[0]
        g = rng.normal(scale=5.0, size=n)

        cauchy = generalized_cauchy_point(x, g, lower, upper, compact)
        assert np.all(cauchy.x_cauchy >= lower)
        assert np.all(cauchy.x_cauchy <= upper)
        assert _model(compact, x, g, cauchy.x_cauchy) <= 1e-12
        np.testing.assert_allclose(cauchy.c, compact.W.T @ (cauchy.x_cauchy - x), atol=1e-8)


def test_cauchy_point_is_reproducible():
    rng = np.random.default_rng(7)
    compact = _random_compact(5, n_pairs=3, rng=rng)
    x = np.full(5, 0.5)
    g = np.array([1.0, 1.0, -1.0, -1.0, 1.0])
    first = generalized_cauchy_point(x, g, np.zeros(5), np.ones(5), compact)
    second = generalized_cauchy_point(x, g, np.zeros(5), np.ones(5), compact)
    np.testing.assert_array_equal(first.x_cauchy, second.x_cauchy)
    np.testing.assert_array_equal(first.c, second.c)
