# Import all optimizers from subdirectories
from .lbfgsb import *
from .scipy import *

# Combine all __all__ lists from subdirectories
__all__ = []

from boxsolver.optimizers.lbfgsb import __all__ as lbfgsb_all
__all__.extend(lbfgsb_all)

from boxsolver.optimizers.scipy import __all__ as scipy_all
__all__.extend(scipy_all)

# Create a mapping of optimizer names to functions
OPTIMIZERS = {}

# Build the mapping from the imported functions
for name in __all__:
    if name.startswith('minimize_'):
        OPTIMIZERS[name] = globals()[name]

# Now you can import any optimizer like:
# from boxsolver.optimizers import minimize_lbfgsb, minimize_scipy_lbfgsb
# Or access the mapping: from boxsolver.optimizers import OPTIMIZERS
