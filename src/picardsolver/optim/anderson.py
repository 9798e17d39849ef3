########################################################################################
##
##                                ANDERSON MIXING
##                               (optim/anderson.py)
##
########################################################################################

# IMPORTS ==============================================================================

import warnings

import numpy as np

from scipy.linalg import lu_factor, lu_solve, LinAlgWarning

from ..exceptions import ConfigurationError

from .._constants import (
    TOLERANCE,
    OPT_HISTORY,
    OPT_BETA
    )


# HELPERS ==============================================================================

def _solve_normal_equations(mat, rhs):
    """Solve the small dense normal equations by LU decomposition with
    partial pivoting. Falls back to the minimum norm least squares
    solution if the LU factor is (numerically) singular, which happens
    when consecutive residuals coincide.

    Parameters
    ----------
    mat : array[numeric]
        hermitian matrix of the normal equations
    rhs : array[numeric]
        right hand side

    Returns
    -------
    x : array[numeric]
        solution
    """

    with warnings.catch_warnings():
        warnings.simplefilter("ignore", LinAlgWarning)
        lu, piv = lu_factor(mat)

    #pivots of the upper triangular factor
    pivots = np.abs(np.diag(lu))
    p_max = pivots.max()

    if p_max > 0.0 and pivots.min() > TOLERANCE * p_max:
        return lu_solve((lu, piv), rhs)

    #degenerate history, minimum norm solution
    x, *_ = np.linalg.lstsq(mat, rhs, rcond=None)
    return x


# FUNCTIONS ============================================================================

def anderson_coefficients(V):
    """Compute the anderson mixing coefficients from the last 'M' iterates.

    With the residuals :math:`r_i = v_{i+1} - v_i` for :math:`i = 0 \\dots n`
    and :math:`n = M - 2`, the coefficients minimise

    .. math::

        \\Bigl\\| r_n - \\sum_{i=0}^{n-1} x_i \\, (r_n - r_i) \\Bigr\\|_2

    which leads to the :math:`n \\times n` normal equations

    .. math::

        \\sum_j \\langle d_i, d_j \\rangle \\, x_j = \\langle d_i, r_n \\rangle
        \\quad\\text{with}\\quad d_i = r_n - r_i

    The inner product conjugates its first argument, so the normal
    equations are hermitian for complex valued problems. The coefficients
    are :math:`c_i = x_i` and :math:`c_n = 1 - \\sum_i x_i`, so they sum
    to one by construction.

    Parameters
    ----------
    V : array[numeric]
        history of shape ``(M, ndof)``, oldest first

    Returns
    -------
    coeffs : array[numeric]
        'M-1' anderson coefficients
    """

    _V = np.asarray(V)

    m = _V.shape[0]

    if m < 2:
        raise ConfigurationError(
            "Picard: Anderson acceleration makes sense only if at least two last iterations are used."
            )

    dtype = np.result_type(_V.dtype, float)

    #only one residual, the coefficient is trivially one
    if m == 2:
        return np.ones(1, dtype=dtype)

    n = m - 2

    #residuals r_0 ... r_n and differences to the newest one
    R = np.diff(_V, axis=0)
    D = R[n] - R[:n]

    #normal equations
    mat = D.conj() @ D.T
    rhs = D.conj() @ R[n]

    x = _solve_normal_equations(mat, rhs)

    coeffs = np.empty(n + 1, dtype=np.result_type(x, dtype))
    coeffs[:n] = x
    coeffs[n] = 1.0 - np.sum(x)

    return coeffs


# CLASS ================================================================================

class AndersonMixer:
    """Anderson mixing of the last iterates of a picard iteration.

    Combines the 'M' most recent iterates :math:`v_0 \\dots v_{M-1}` with
    coefficients that minimise the linearized residual (see
    ``anderson_coefficients``) and relaxes the extrapolation by 'beta'

    .. math::

        \\tilde{x} = \\sum_{j=1}^{M-1} c_j \\, v_j
        - (1 - \\beta) \\, c_j \\, (v_j - v_{j-1})

    For :math:`\\beta = 1` this is the plain linear combination of the
    iterates. Smaller values of :math:`\\beta` damp the update towards the
    older iterates.

    The mixer itself is stateless, the iterates are kept in an
    ``IterationHistory`` that is owned by the solve.

    Parameters
    ----------
    m : int
        history depth (number of iterates used for mixing)
    beta : float
        relaxation parameter in (0, 1]

    References
    ----------
    .. [1] Anderson, D. G. (1965). "Iterative Procedures for Nonlinear
           Integral Equations". Journal of the ACM, 12(4), 547--560.
           :doi:`10.1145/321296.321305`
    .. [2] Walker, H. F., & Ni, P. (2011). "Anderson Acceleration for
           Fixed-Point Iterations". SIAM Journal on Numerical Analysis,
           49(4), 1715--1735. :doi:`10.1137/10078356X`
    """

    def __init__(self, m=OPT_HISTORY, beta=OPT_BETA):

        if m < 2:
            raise ConfigurationError(
                "Picard: Anderson acceleration makes sense only if at least two last iterations are used."
                )

        if not 0.0 < beta <= 1.0:
            raise ConfigurationError(f"Picard: Anderson 'beta' must be in (0, 1], got '{beta}'")

        #number of iterates used for mixing
        self.m = m

        #relaxation of the extrapolation
        self.beta = beta


    def __len__(self):
        return self.m


    def mix(self, V):
        """Compute the mixed iterate from a full history.

        Parameters
        ----------
        V : array[numeric], IterationHistory
            last 'M' iterates, oldest first

        Returns
        -------
        x : array[numeric]
            mixed iterate
        coeffs : array[numeric]
            anderson coefficients used for mixing
        """

        _V = V.vectors() if hasattr(V, "vectors") else np.asarray(V)

        if _V.shape[0] != self.m:
            raise ValueError(f"mixing needs {self.m} iterates, got {_V.shape[0]}")

        coeffs = anderson_coefficients(_V)

        #relaxed update per iterate, v_j - (1 - beta) * (v_j - v_{j-1})
        if self.beta == 1.0:
            U = _V[1:]
        else:
            U = _V[1:] - (1.0 - self.beta) * np.diff(_V, axis=0)

        return coeffs @ U, coeffs
