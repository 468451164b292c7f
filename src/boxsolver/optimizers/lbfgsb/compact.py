"""
Limited-memory BFGS matrix in compact form.

The approximation of the Hessian is never formed. It is represented as

    B = theta * I - W M W^T,   W = [Y, theta * S],
    M = [[-D, L^T], [L, theta * S^T S]]^{-1},

with D = diag(S^T Y) and L the strictly lower triangle of S^T Y, where the
columns of S and Y are the stored correction pairs, oldest first.
"""

import numpy as np
import scipy.linalg
from typing import Tuple

from boxsolver.errors import SingularMatrixError

EPS = np.finfo(float).eps
COND_LIMIT = 1.0 / EPS


def checked_solve(a: np.ndarray, b: np.ndarray, assume_a: str = "gen", what: str = "system") -> np.ndarray:
    """
    Solve a small dense system, refusing singular or ill-conditioned matrices.

    Raises
    ------
    SingularMatrixError
        When cond(a) exceeds 1/eps, the factorization fails, or the solution
        is not finite.
    """
    cond = np.linalg.cond(a)
    if not np.isfinite(cond) or cond > COND_LIMIT:
        raise SingularMatrixError(f"{what} is singular (cond={cond:.3e})", condition=cond)
    try:
        x = scipy.linalg.solve(a, b, assume_a=assume_a)
    except np.linalg.LinAlgError as exc:
        raise SingularMatrixError(f"{what} could not be factorized: {exc}", condition=cond) from exc
    if not np.all(np.isfinite(x)):
        raise SingularMatrixError(f"{what} produced a non-finite solution", condition=cond)
    return x


class CorrectionHistory:
    """
    Ring buffer of the ``m`` most recent correction pairs (s, y).

    Storage is allocated once; pushing past capacity overwrites the oldest
    pair. ``S`` and ``Y`` return the stored pairs as columns, oldest first.
    """
    def __init__(self, n: int, m: int):
        if m < 1:
            raise ValueError(f"history capacity must be at least 1, got {m}")
        self._s = np.zeros((n, m))
        self._y = np.zeros((n, m))
        self._start = 0
        self._size = 0

    def __len__(self) -> int:
        return self._size

    @property
    def capacity(self) -> int:
        return self._s.shape[1]

    @staticmethod
    def satisfies_curvature(s: np.ndarray, y: np.ndarray) -> bool:
        return s.dot(y) > EPS * np.linalg.norm(y)

    def push(self, s: np.ndarray, y: np.ndarray) -> bool:
        """Store (s, y) if it passes the curvature test. Returns whether it was stored."""
        if not self.satisfies_curvature(s, y):
            return False
        m = self.capacity
        if self._size < m:
            slot = (self._start + self._size) % m
            self._size += 1
        else:
            slot = self._start
            self._start = (self._start + 1) % m
        self._s[:, slot] = s
        self._y[:, slot] = y
        return True

    def clear(self) -> None:
        self._start = 0
        self._size = 0

    def _order(self) -> np.ndarray:
        return (self._start + np.arange(self._size)) % self.capacity

    @property
    def S(self) -> np.ndarray:
        return self._s[:, self._order()]

    @property
    def Y(self) -> np.ndarray:
        return self._y[:, self._order()]

    def newest(self) -> Tuple[np.ndarray, np.ndarray]:
        if self._size == 0:
            raise IndexError("correction history is empty")
        slot = (self._start + self._size - 1) % self.capacity
        return self._s[:, slot].copy(), self._y[:, slot].copy()


class CompactRepresentation:
    """(theta, W, M) triple; starts as B = I."""
    def __init__(self, n: int):
        self.n = n
        self.reset()

    def reset(self) -> None:
        self.theta = 1.0
        self.W = np.zeros((self.n, 0))
        self.M = np.zeros((0, 0))

    @property
    def n_pairs(self) -> int:
        return self.W.shape[1] // 2

    def update(self, history: CorrectionHistory) -> None:
        """
        Rebuild theta, W and M from scratch out of the current history.

        Nothing is modified when the middle block matrix turns out to be
        singular; SingularMatrixError is raised instead.
        """
        if len(history) == 0:
            self.reset()
            return
        S, Y = history.S, history.Y
        s, y = history.newest()
        theta = y.dot(y) / y.dot(s)

        SY = S.T @ Y
        D = np.diag(np.diag(SY))
        L = np.tril(SY, -1)
        block = np.block([[-D, L.T], [L, theta * (S.T @ S)]])
        M = checked_solve(block, np.eye(block.shape[0]), assume_a="sym", what="compact middle matrix")

        self.theta = theta
        self.W = np.hstack([Y, theta * S])
        self.M = M

    def dot(self, v: np.ndarray) -> np.ndarray:
        """B @ v without forming B."""
        return self.theta * v - self.W @ (self.M @ (self.W.T @ v))

    def dense(self) -> np.ndarray:
        return self.theta * np.eye(self.n) - self.W @ self.M @ self.W.T
