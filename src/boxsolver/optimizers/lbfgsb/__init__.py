from .options import Options, SolveResult, Status
from .oracle import Oracle
from .compact import CompactRepresentation, CorrectionHistory
from .cauchy import CauchyPoint, generalized_cauchy_point
from .subspace import SubspaceStep, max_feasible_step, subspace_minimization
from .line_search import LineSearchResult, backtracking_line_search
from .solver import LBFGSB, minimize_lbfgsb

__all__ = [
    'minimize_lbfgsb',
]
