from .scipy_opt import minimize_scipy_lbfgsb

__all__ = ['minimize_scipy_lbfgsb']
