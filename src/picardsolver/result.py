########################################################################################
##
##                              OUTCOME OF A PICARD SOLVE
##                                   (result.py)
##
########################################################################################

# IMPORTS ==============================================================================

from dataclasses import dataclass, field
from enum import Enum

import numpy as np

from .exceptions import LinearSolveFailed, MaxIterationsExceeded


# ENUMS ================================================================================

class TerminationReason(Enum):
    """Why the picard iteration stopped."""

    CONVERGED = "converged"
    MAX_ITERATIONS_EXCEEDED = "max_iterations_exceeded"
    LINEAR_SOLVE_FAILED = "linear_solve_failed"


# CLASS ================================================================================

@dataclass
class PicardResult:
    """Outcome of ``PicardSolver.solve``.

    Reaching the maximum number of iterations is an expected outcome
    that callers often handle by retrying with different settings, so it
    is reported here instead of being raised. The last computed iterate
    is always available as ``x``.

    Attributes
    ----------
    x : array[numeric]
        last computed iterate
    reason : TerminationReason
        why the iteration stopped
    iterations : int
        number of performed iterations
    error : float
        relative error of the last iteration
    errors : list[float]
        relative error of every iteration
    duration : float
        wall clock time of the solve in seconds
    """

    x: np.ndarray
    reason: TerminationReason
    iterations: int
    error: float
    errors: list = field(default_factory=list)
    duration: float = 0.0


    def __bool__(self):
        return self.converged


    def __str__(self):
        status = "Converged" if self.converged else f"Not converged ({self.reason.value})"
        return (
            f"{status} in {self.iterations} iterations\n"
            f"  Relative error: {self.error:.2e}\n"
            f"  Solve time: {self.duration:.4f}s"
        )


    @property
    def converged(self):
        return self.reason == TerminationReason.CONVERGED


    def unwrap(self):
        """Return the solution, raising if the iteration did not converge.

        Returns
        -------
        x : array[numeric]
            converged solution

        Raises
        ------
        MaxIterationsExceeded
            if the iteration stopped at the maximum number of iterations,
            the exception keeps a reference to this result
        LinearSolveFailed
            if the iteration was aborted by a failed linear solve
        """
        if self.reason == TerminationReason.MAX_ITERATIONS_EXCEEDED:
            raise MaxIterationsExceeded(self)
        if self.reason == TerminationReason.LINEAR_SOLVE_FAILED:
            raise LinearSolveFailed(self.iterations)
        return self.x


    def to_dict(self):
        return {
            "converged": self.converged,
            "reason": self.reason.value,
            "niter": self.iterations,
            "error": self.error,
            "errors": list(self.errors),
            "time": self.duration,
        }
