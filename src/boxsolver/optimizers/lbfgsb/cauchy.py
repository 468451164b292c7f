import numpy as np
from typing import NamedTuple, Tuple

from .compact import EPS, CompactRepresentation


class CauchyPoint(NamedTuple):
    """
    Generalized Cauchy point of the quadratic model.

    Attributes
    ----------
    x_cauchy : np.ndarray
        The point; every coordinate is either untouched, exactly on a bound,
        or moved along -g by the final path parameter ``t``.
    c : np.ndarray
        W^T (x_cauchy - x), accumulated during the sweep (length 2k).
    n_pinned : int
        Number of coordinates pinned while sweeping breakpoints.
    t : float
        Path parameter at which the sweep stopped.
    """
    x_cauchy: np.ndarray
    c: np.ndarray
    n_pinned: int
    t: float


def breakpoints(
    x: np.ndarray,
    g: np.ndarray,
    lower: np.ndarray,
    upper: np.ndarray
) -> Tuple[np.ndarray, np.ndarray]:
    """
    Times at which each coordinate of x - t*g reaches a bound, and the
    initial path direction.

    Coordinates with zero gradient never reach a bound (t = inf). Coordinates
    already sitting on the bound the gradient pushes against (t = 0) get a
    zero direction.
    """
    t = np.full(x.shape, np.inf)
    neg = g < 0
    pos = g > 0
    t[neg] = (x[neg] - upper[neg]) / g[neg]
    t[pos] = (x[pos] - lower[pos]) / g[pos]
    d = np.where(t > 0, -g, 0.0)
    return t, d


def generalized_cauchy_point(
    x: np.ndarray,
    g: np.ndarray,
    lower: np.ndarray,
    upper: np.ndarray,
    compact: CompactRepresentation
) -> CauchyPoint:
    """
    Algorithm CP of Byrd, Lu, Nocedal and Zhu (1995).

    Sweeps the breakpoints of the projected steepest-descent path in
    ascending order (ties broken by coordinate index), tracking the first and
    second derivatives of the piecewise quadratic model along the path, and
    stops at the first segment that contains its own minimizer.
    """
    theta, W, M = compact.theta, compact.W, compact.M
    t, d = breakpoints(x, g, lower, upper)

    x_cauchy = x.copy()
    c = np.zeros(W.shape[1])
    p = W.T @ d
    dtd = d.dot(d)
    f_prime = -dtd
    if f_prime >= 0.0:
        return CauchyPoint(x_cauchy, c, 0, 0.0)

    f_second = theta * dtd - p.dot(M @ p)
    f_second_floor = EPS * theta * dtd
    f_second = max(f_second, f_second_floor)
    dt_min = -f_prime / f_second
    t_old = 0.0

    order = np.argsort(t, kind="stable")
    order = order[(t[order] > 0) & np.isfinite(t[order])]

    n_pinned = 0
    for b in order:
        dt = t[b] - t_old
        if dt_min < dt:
            break
        x_cauchy[b] = upper[b] if d[b] > 0 else lower[b]
        zb = x_cauchy[b] - x[b]
        c += dt * p

        gb = g[b]
        wb = W[b, :]
        f_prime += dt * f_second + gb * gb + theta * gb * zb - gb * wb.dot(M @ c)
        f_second += -theta * gb * gb - 2.0 * gb * wb.dot(M @ p) - gb * gb * wb.dot(M @ wb)
        f_second = max(f_second, f_second_floor)
        p += gb * wb
        d[b] = 0.0
        dt_min = -f_prime / f_second
        t_old = t[b]
        n_pinned += 1

    dt_min = max(dt_min, 0.0)
    t_old += dt_min

    moving = d != 0.0
    x_cauchy[moving] = x[moving] + t_old * d[moving]
    c += dt_min * p

    return CauchyPoint(np.clip(x_cauchy, lower, upper), c, n_pinned, t_old)
