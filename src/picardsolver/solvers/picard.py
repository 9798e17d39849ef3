########################################################################################
##
##                     PICARD (FIXED-POINT) NONLINEAR SOLVER
##                              (solvers/picard.py)
##
########################################################################################

# IMPORTS ==============================================================================

import numpy as np

from contextlib import contextmanager
from dataclasses import dataclass

from ._interfaces import FactorizationScheme
from .linear import DirectLinearSolver

from ..config import SolverConfig
from ..result import PicardResult, TerminationReason
from ..exceptions import LinearSolveFailed

from ..optim.history import IterationHistory
from ..optim.anderson import AndersonMixer
from ..optim.convergence import relative_error

from ..utils.timer import Timer
from ..utils.logger import get_logger


# HELPERS ==============================================================================

@dataclass
class _Workspace:
    """Buffers owned by a single solve."""
    config: SolverConfig
    previous: np.ndarray
    history: IterationHistory = None
    mixer: AndersonMixer = None


# CLASS ================================================================================

class PicardSolver:
    """Picard (fixed-point) solver for nonlinear algebraic systems with
    optional Anderson acceleration.

    Every iteration assembles the linearization of the problem at the
    previous iterate and solves it. The solution of the linear system
    replaces the previous iterate

    .. math::

        A(x_k) \\, x_{k+1} = b(x_k)

    until the relative change between consecutive iterates drops
    below the tolerance

    .. math::

        \\frac{\\| x_{k+1} - x_k \\|}{\\| x_k \\|} < \\mathrm{tol}

    With Anderson acceleration enabled, the last 'M' iterates are kept in
    a bounded history and once it is full, every new iterate is replaced
    by the Anderson mixture of the history (see ``AndersonMixer``).

    The linear solver is told before every solve how much of the last
    factorization it may reuse. The first iteration always factorizes from
    scratch. Afterwards the ordering and scaling are reused, or, if the
    jacobian is declared constant, the whole factorization and only the
    residual is reassembled.

    Reaching the iteration limit is reported through the returned
    ``PicardResult``. A failed linear solve raises ``LinearSolveFailed``.
    All buffers of a solve are released on every exit path.

    Example
    -------
    .. code-block:: python

        #x = 0.5 * x + 3 in picard form
        A = CallableAssembler(jac=1.0, rhs=lambda x: 0.5 * x + 3.0, ndof=1)

        S = PicardSolver(A, tol=1e-6, anderson_is_on=True)
        result = S.solve()

    Parameters
    ----------
    assembler : Assembler
        assembles the linearized system at the current iterate
    linear_solver : LinearSolver
        solves the linearized system, defaults to ``DirectLinearSolver``
    ndof : int
        number of degrees of freedom, only needed for solving without
        initial guess if the assembler does not provide it
    log : bool
        log progress of the iteration
    callback : callable
        called as ``callback(iteration, x, error)`` after every iteration
    settings : dict
        solver settings, see ``SolverConfig``

    Attributes
    ----------
    config : SolverConfig
        current settings, captured at the start of every solve
    sln_vector : array[numeric]
        last computed iterate, retained after the solve
    result : PicardResult
        outcome of the last solve
    timer : Timer
        wall clock timer of the last solve
    """

    def __init__(
        self,
        assembler,
        linear_solver=None,
        ndof=None,
        log=True,
        callback=None,
        **settings
        ):

        self.assembler = assembler
        self.linear_solver = DirectLinearSolver() if linear_solver is None else linear_solver

        self.ndof = ndof
        self.log = log
        self.callback = callback

        #validated settings
        self.config = SolverConfig(**settings)

        #results of the last solve
        self.sln_vector = None
        self.result = None

        self.timer = Timer()
        self.logger = get_logger("picard")

        #buffers of the solve in flight
        self._workspace = None


    # configuration --------------------------------------------------------------------

    def configure(self, **settings):
        """Change solver settings, validated immediately.

        Parameters
        ----------
        settings : dict
            settings to change, see ``SolverConfig``

        Returns
        -------
        config : SolverConfig
            new configuration

        Raises
        ------
        ConfigurationError
            if the new settings are invalid, the old ones stay active
        """
        self.config = self.config.replace(**settings)
        return self.config


    def set_picard_tol(self, tol):
        self.configure(tol=tol)


    def set_picard_max_iter(self, max_iter):
        self.configure(max_iter=max_iter)


    def set_num_last_vector_used(self, num):
        self.configure(num_last_vectors_used=num)


    def set_anderson_beta(self, beta):
        self.configure(anderson_beta=beta)


    def use_Anderson_acceleration(self, to_set=True):
        self.configure(anderson_is_on=to_set)


    def set_constant_jacobian(self, to_set=True):
        self.configure(constant_jacobian=to_set)


    def get_sln_vector(self):
        """Last computed iterate, also after a failed solve."""
        return self.sln_vector


    # hooks ----------------------------------------------------------------------------

    def on_initialization(self):
        """Called at the start of every solve."""
        pass


    def on_step_begin(self):
        """Called at the start of every iteration, before assembly."""
        pass


    def on_step_end(self):
        """Called after assembly of the linearized system."""
        pass


    def on_finish(self):
        """Called when the solve terminates, regardless of the outcome."""
        pass


    # internals ------------------------------------------------------------------------

    def _info(self, msg, *args):
        if self.log:
            self.logger.info(msg, *args)


    def _initial_vector(self, initial_guess):
        """Copy of the initial guess as a flat vector, or the zero vector"""

        if initial_guess is not None:
            _x0 = np.asarray(initial_guess)
            return np.array(_x0, dtype=np.result_type(_x0.dtype, float)).ravel()

        ndof = self.ndof if self.ndof is not None else getattr(self.assembler, "ndof", None)

        if ndof is None:
            raise ValueError(
                "Picard: number of degrees of freedom unknown, "
                "provide an initial guess or 'ndof'"
                )

        return np.zeros(ndof)


    @contextmanager
    def _allocate(self, config, x0):
        """Acquire the buffers of a solve and release them on exit."""

        if self._workspace is not None:
            raise RuntimeError("Picard: solver is already solving, 'solve' is not reentrant")

        ws = _Workspace(config=config, previous=x0.copy())

        if config.anderson_is_on:
            ws.history = IterationHistory(config.num_last_vectors_used, len(x0), x0.dtype)
            ws.mixer = AndersonMixer(config.num_last_vectors_used, config.anderson_beta)

        self._workspace = ws

        try:
            yield ws
        finally:
            if ws.history is not None:
                ws.history.release()
            ws.history = None
            ws.previous = None
            self._workspace = None


    def _factorization_scheme(self, config, it):
        """Factorization reuse hint for iteration 'it'."""

        if it == 1:
            return FactorizationScheme.FACTORIZE_FROM_SCRATCH

        if config.constant_jacobian:
            return FactorizationScheme.REUSE_FACTORIZATION_COMPLETELY

        return FactorizationScheme.REUSE_MATRIX_REORDERING_AND_SCALING


    def _linear_solve(self, jacobian, residual, scheme, it, ndof):
        """Solve the linearized system, raising on failure."""

        self.linear_solver.set_factorization_scheme(scheme)

        try:
            x = self.linear_solver.solve(jacobian, residual)
        except LinearSolveFailed as err:
            if err.iteration is None:
                raise LinearSolveFailed(it, str(err)) from err
            raise
        except np.linalg.LinAlgError as err:
            raise LinearSolveFailed(it, f"linear solve failed ({err})") from err

        if x is None:
            raise LinearSolveFailed(it)

        #own copy, linear solvers may reuse their output buffer
        _x = np.array(x).ravel()

        if _x.size != ndof:
            raise ValueError(f"Picard: linear solver returned {_x.size} values for {ndof} dofs")

        return _x


    # solve ----------------------------------------------------------------------------

    def solve(self, initial_guess=None):
        """Run the picard iteration.

        Parameters
        ----------
        initial_guess : array[numeric], None
            initial iterate, the zero vector if not given

        Returns
        -------
        result : PicardResult
            converged solution, or the last iterate if the
            maximum number of iterations was reached

        Raises
        ------
        LinearSolveFailed
            if the linearized system could not be solved
        """

        #settings are fixed for the whole solve
        config = self.config

        x0 = self._initial_vector(initial_guess)
        ndof = len(x0)

        it = 0
        errors = []

        with self._allocate(config, x0) as ws:

            self.timer.reset()
            self.timer.tick()

            self.sln_vector = x0.copy()
            self.result = None

            self.on_initialization()

            try:

                #initial iterate is the oldest entry of the history
                if ws.history is not None:
                    ws.history.push(x0)

                while True:

                    it += 1

                    self.on_step_begin()

                    scheme = self._factorization_scheme(config, it)
                    if scheme == FactorizationScheme.REUSE_FACTORIZATION_COMPLETELY:
                        self._info("\tPicard: reusing jacobian.")

                    jacobian, residual = self.assembler.assemble(ws.previous, scheme)

                    self.on_step_end()

                    x = self._linear_solve(jacobian, residual, scheme, it, ndof)

                    #anderson mixing once the history is full
                    if ws.history is not None:
                        ws.history.push(x)
                        if ws.history.is_full:
                            x, _ = ws.mixer.mix(ws.history)

                    self.sln_vector = x

                    err = relative_error(ws.previous, x)
                    errors.append(err.value)

                    if err.from_zero:
                        self._info("\tPicard: iteration %d, nDOFs %d, starting from zero vector.", it, ndof)
                    else:
                        self._info("\tPicard: iteration %d, nDOFs %d, relative error %g%%", it, ndof, err.value * 100)

                    if self.callback is not None:
                        self.callback(it, x, err.value)

                    if err.converged(config.tol):
                        reason = TerminationReason.CONVERGED
                        break

                    if it >= config.max_iter:
                        reason = TerminationReason.MAX_ITERATIONS_EXCEEDED
                        self._info("\tPicard: maximum allowed number of Picard iterations exceeded.")
                        break

                    ws.previous = x

            except LinearSolveFailed:
                self.result = PicardResult(
                    self.sln_vector,
                    TerminationReason.LINEAR_SOLVE_FAILED,
                    it,
                    errors[-1] if errors else np.inf,
                    errors,
                    self.timer.elapsed()
                    )
                raise

            finally:
                self.timer.tick()
                self._info("\tPicard: solution duration: %f s.", self.timer.elapsed())
                self.on_finish()

        self.result = PicardResult(
            self.sln_vector,
            reason,
            it,
            errors[-1],
            errors,
            self.timer.elapsed()
            )

        return self.result
