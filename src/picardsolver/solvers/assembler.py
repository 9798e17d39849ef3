########################################################################################
##
##                         ASSEMBLER FROM PYTHON CALLABLES
##                             (solvers/assembler.py)
##
########################################################################################

# IMPORTS ==============================================================================

import numpy as np

from ._interfaces import Assembler, FactorizationScheme


# CLASS ================================================================================

class CallableAssembler(Assembler):
    """Assembler built from two callables that evaluate the linearization
    of a nonlinear problem :math:`A(x) \\, x = b(x)` at a given iterate.

    .. math::

        A(x_k) \\, x_{k+1} = b(x_k)

    Example
    -------
    .. code-block:: python

        #picard linearization of -(k(u) u')' = f
        A = CallableAssembler(
            jac=lambda u: stiffness(conductivity(u)),
            rhs=lambda u: load,
            ndof=len(load)
            )

    Parameters
    ----------
    jac : callable, array[numeric], sparse matrix
        jacobian (system matrix) as a function of the iterate,
        or a constant matrix
    rhs : callable, array[numeric]
        right hand side as a function of the iterate, or a constant vector
    ndof : int
        number of degrees of freedom

    Attributes
    ----------
    n_jac : int
        number of jacobian evaluations
    n_rhs : int
        number of right hand side evaluations
    """

    def __init__(self, jac, rhs, ndof=None):

        self.jac = jac
        self.rhs = rhs
        self.ndof = ndof

        #evaluation counters
        self.n_jac = 0
        self.n_rhs = 0


    def _eval_jac(self, x):
        self.n_jac += 1
        return self.jac(x) if callable(self.jac) else self.jac


    def _eval_rhs(self, x):
        self.n_rhs += 1
        _b = self.rhs(x) if callable(self.rhs) else self.rhs
        return np.atleast_1d(np.asarray(_b))


    def assemble(self, x, scheme):
        """Evaluate the linearization at 'x', skipping the jacobian
        if its factorization is reused completely.

        Parameters
        ----------
        x : array[numeric]
            current iterate
        scheme : FactorizationScheme
            factorization reuse hint

        Returns
        -------
        jacobian : array[numeric], sparse matrix, None
            system matrix
        residual : array[numeric]
            right hand side
        """

        if scheme == FactorizationScheme.REUSE_FACTORIZATION_COMPLETELY:
            return None, self._eval_rhs(x)

        return self._eval_jac(x), self._eval_rhs(x)
