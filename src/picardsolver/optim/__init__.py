from .anderson import AndersonMixer, anderson_coefficients
from .history import IterationHistory
from .convergence import ErrorEstimate, relative_error
