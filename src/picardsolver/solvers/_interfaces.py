########################################################################################
##
##                       INTERFACES TO EXTERNAL COLLABORATORS
##                            (solvers/_interfaces.py)
##
########################################################################################

# IMPORTS ==============================================================================

from abc import ABC, abstractmethod
from enum import Enum


# ENUMS ================================================================================

class FactorizationScheme(Enum):
    """How much of a previous factorization the linear solver may reuse.

    FACTORIZE_FROM_SCRATCH
        new matrix, factorize from scratch
    REUSE_MATRIX_REORDERING_AND_SCALING
        new matrix values with unchanged sparsity pattern, the fill
        reducing ordering and the scaling may be reused
    REUSE_FACTORIZATION_COMPLETELY
        matrix unchanged, the whole factorization may be reused
    """

    FACTORIZE_FROM_SCRATCH = "from_scratch"
    REUSE_MATRIX_REORDERING_AND_SCALING = "reuse_reordering_and_scaling"
    REUSE_FACTORIZATION_COMPLETELY = "reuse_completely"


# BASE CLASSES =========================================================================

class Assembler(ABC):
    """Assembles the linearized system at the current iterate.

    Implementations wrap the discretization (weak form, spaces, dof
    numbering) of the nonlinear problem. The picard solver only needs
    the linear system ``jacobian @ x_new = residual`` whose solution is
    the next iterate.

    Attributes
    ----------
    ndof : int
        number of degrees of freedom, used when no initial guess is given
    """

    ndof = None

    @abstractmethod
    def assemble(self, x, scheme):
        """Assemble the linear system at the iterate 'x'.

        Parameters
        ----------
        x : array[numeric]
            current iterate
        scheme : FactorizationScheme
            with ``REUSE_FACTORIZATION_COMPLETELY`` only the residual
            needs to be reassembled and the jacobian may be ``None``

        Returns
        -------
        jacobian : array[numeric], sparse matrix, None
            system matrix
        residual : array[numeric]
            right hand side
        """
        pass


class LinearSolver(ABC):
    """Solves the linearized systems produced by an ``Assembler``.

    The picard solver announces through ``set_factorization_scheme``
    how much of the previous factorization may be reused before every
    call to ``solve``. Honouring the hint is optional, it must not
    change the result.
    """

    def __init__(self):
        self.factorization_scheme = FactorizationScheme.FACTORIZE_FROM_SCRATCH


    def set_factorization_scheme(self, scheme):
        """Set the reuse hint for the next solve.

        Parameters
        ----------
        scheme : FactorizationScheme
            factorization reuse hint
        """
        self.factorization_scheme = FactorizationScheme(scheme)


    @abstractmethod
    def solve(self, jacobian, residual):
        """Solve ``jacobian @ x = residual``.

        Parameters
        ----------
        jacobian : array[numeric], sparse matrix, None
            system matrix, may be ``None`` if the factorization
            is reused completely
        residual : array[numeric]
            right hand side

        Returns
        -------
        x : array[numeric], None
            solution or ``None`` if the system could not be solved
        """
        pass
