########################################################################################
##
##                         RELATIVE ERROR BETWEEN ITERATES
##                            (optim/convergence.py)
##
########################################################################################

# IMPORTS ==============================================================================

import numpy as np

from dataclasses import dataclass

from .._constants import TOLERANCE


# CLASS ================================================================================

@dataclass(frozen=True)
class ErrorEstimate:
    """Change between two consecutive iterates.

    Attributes
    ----------
    value : float
        relative error, or the absolute error if the previous
        iterate is numerically the zero vector
    abs_error : float
        norm of the change between the iterates
    prev_norm : float
        norm of the previous iterate
    from_zero : bool
        previous iterate was numerically the zero vector
    """

    value: float
    abs_error: float
    prev_norm: float
    from_zero: bool = False


    def converged(self, tol):
        """Check the convergence criterion.

        Starting from the zero vector, the relative error is undefined
        and the iteration only counts as converged if the iterate did
        not move at all.

        Parameters
        ----------
        tol : float
            tolerance for the relative error

        Returns
        -------
        converged : bool
        """
        if self.from_zero:
            return self.abs_error < TOLERANCE
        return self.value < tol


# FUNCTIONS ============================================================================

def relative_error(previous, candidate):
    """Relative error between the previous iterate and the candidate.

    .. math::

        e = \\frac{\\| x_{k+1} - x_k \\|_2}{\\| x_k \\|_2}

    Both norms use the modulus of the entries, so complex vectors
    are handled correctly.

    Parameters
    ----------
    previous : array[numeric]
        previous iterate
    candidate : array[numeric]
        new iterate

    Returns
    -------
    estimate : ErrorEstimate
        error between the iterates
    """

    _prev = np.asarray(previous).ravel()
    _cand = np.asarray(candidate).ravel()

    prev_norm = float(np.linalg.norm(_prev))
    abs_error = float(np.linalg.norm(_cand - _prev))

    #no meaningful relative error with respect to the zero vector
    if prev_norm < TOLERANCE:
        return ErrorEstimate(abs_error, abs_error, prev_norm, from_zero=True)

    return ErrorEstimate(abs_error / prev_norm, abs_error, prev_norm)
