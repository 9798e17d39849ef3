from .solvers.picard import PicardSolver
from .solvers.assembler import CallableAssembler
from .solvers.linear import DirectLinearSolver
from .solvers._interfaces import Assembler, LinearSolver, FactorizationScheme

from .optim.anderson import AndersonMixer, anderson_coefficients
from .optim.history import IterationHistory
from .optim.convergence import ErrorEstimate, relative_error

from .config import SolverConfig
from .result import PicardResult, TerminationReason
from .exceptions import (
    PicardError,
    ConfigurationError,
    LinearSolveFailed,
    MaxIterationsExceeded,
)

from .utils.logger import configure_logging

__version__ = "0.1.0"
