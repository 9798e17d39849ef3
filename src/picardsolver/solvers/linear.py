########################################################################################
##
##                         DIRECT LINEAR SOLVER (SCIPY LU)
##                              (solvers/linear.py)
##
########################################################################################

# IMPORTS ==============================================================================

import logging
import warnings

import numpy as np
import scipy.sparse as sp
import scipy.sparse.linalg as spla

from scipy.linalg import lu_factor, lu_solve, LinAlgWarning

from ._interfaces import LinearSolver, FactorizationScheme

from .._constants import LOG_NAME


_logger = logging.getLogger(f"{LOG_NAME}.linear")


# CLASS ================================================================================

class DirectLinearSolver(LinearSolver):
    """Direct solver for the linearized systems based on LU factorizations.

    Dense matrices use LAPACK ``getrf`` through ``scipy.linalg.lu_factor``,
    sparse matrices use SuperLU through ``scipy.sparse.linalg.splu``.
    The factorization reuse hints of the picard solver are honoured

    * ``FACTORIZE_FROM_SCRATCH`` computes a new factorization
    * ``REUSE_MATRIX_REORDERING_AND_SCALING`` refactorizes, sparse
      matrices keep the fill reducing column ordering of the last
      factorization from scratch
    * ``REUSE_FACTORIZATION_COMPLETELY`` only performs the triangular
      solves with the cached factors

    Singular systems are reported by returning ``None``.

    Parameters
    ----------
    permc_spec : str
        column ordering used by SuperLU for a factorization from scratch

    Attributes
    ----------
    n_factorizations : int
        number of computed factorizations
    n_solves : int
        number of solved systems
    """

    def __init__(self, permc_spec="COLAMD"):
        super().__init__()

        self.permc_spec = permc_spec

        #cached factorization and column ordering
        self._factor = None
        self._perm_c = None

        #statistics
        self.n_factorizations = 0
        self.n_solves = 0


    def reset(self):
        """Drop cached factorization and ordering."""

        self._factor = None
        self._perm_c = None


    # internal factorizations ----------------------------------------------------------

    def _factorize_dense(self, A):

        with warnings.catch_warnings():
            warnings.simplefilter("ignore", LinAlgWarning)
            lu, piv = lu_factor(A)

        #exactly zero pivot
        if np.any(np.diag(lu) == 0.0):
            return None

        return ("dense", (lu, piv), None)


    def _factorize_sparse(self, A, reuse_ordering):

        A = sp.csc_matrix(A)

        try:
            if reuse_ordering and self._perm_c is not None and len(self._perm_c) == A.shape[1]:

                #permute columns with the cached ordering, then keep it
                q = np.argsort(self._perm_c)
                lu = spla.splu(A[:, q], permc_spec="NATURAL")
                return ("sparse", lu, self._perm_c)

            lu = spla.splu(A, permc_spec=self.permc_spec)
            self._perm_c = lu.perm_c
            return ("sparse", lu, None)

        except RuntimeError as err:
            _logger.debug("sparse LU factorization failed: %s", err)
            return None


    def _factorize(self, jacobian, reuse_ordering=False):

        self.n_factorizations += 1

        if sp.issparse(jacobian):
            return self._factorize_sparse(jacobian, reuse_ordering)

        return self._factorize_dense(np.atleast_2d(np.asarray(jacobian)))


    # solve ----------------------------------------------------------------------------

    def solve(self, jacobian, residual):
        """Solve ``jacobian @ x = residual``.

        Parameters
        ----------
        jacobian : array[numeric], sparse matrix, None
            system matrix, only optional if the cached
            factorization is reused completely
        residual : array[numeric]
            right hand side

        Returns
        -------
        x : array[numeric], None
            solution or ``None`` if the system is singular
        """

        scheme = self.factorization_scheme

        if scheme == FactorizationScheme.REUSE_FACTORIZATION_COMPLETELY and self._factor is not None:
            pass

        elif jacobian is None:
            _logger.warning("no matrix given and no factorization available for reuse")
            return None

        else:
            reuse_ordering = scheme != FactorizationScheme.FACTORIZE_FROM_SCRATCH
            if not reuse_ordering:
                self._perm_c = None
            self._factor = self._factorize(jacobian, reuse_ordering)

        if self._factor is None:
            return None

        self.n_solves += 1

        kind, lu, perm_c = self._factor
        b = np.atleast_1d(np.asarray(residual))

        if kind == "dense":
            x = lu_solve(lu, b)
        elif perm_c is None:
            x = lu.solve(b)
        else:
            x = lu.solve(b)[perm_c]

        if not np.all(np.isfinite(x)):
            return None

        return x
