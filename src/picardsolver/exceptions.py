########################################################################################
##
##                                ERROR TAXONOMY
##                                (exceptions.py)
##
########################################################################################

# CLASSES ==============================================================================

class PicardError(Exception):
    """Base class for all errors raised by ``picardsolver``."""


class ConfigurationError(PicardError, ValueError):
    """Invalid solver settings, e.g. a history depth that is too small
    for Anderson acceleration. Raised when the configuration is set,
    never in the middle of a solve.
    """


class LinearSolveFailed(PicardError, RuntimeError):
    """The linear solver could not produce a solution for the linearized
    system. Aborts the running solve after all per-solve buffers have
    been released.

    Parameters
    ----------
    iteration : int
        picard iteration in which the linear solve failed
    message : str
        description of the failure
    """

    def __init__(self, iteration=None, message="linear solve failed"):

        self.iteration = iteration

        if iteration is not None:
            message = f"Picard: {message} in iteration {iteration}"

        super().__init__(message)


class MaxIterationsExceeded(PicardError, RuntimeError):
    """The iteration reached ``max_iter`` without meeting the tolerance.

    Not raised by ``PicardSolver.solve`` itself, which reports this
    condition through the returned ``PicardResult``. Raised by
    ``PicardResult.unwrap`` for callers that prefer exceptions.

    Parameters
    ----------
    result : PicardResult
        outcome of the solve, holds the last computed iterate
    """

    def __init__(self, result):

        self.result = result

        super().__init__(
            f"Picard: maximum allowed number of Picard iterations exceeded "
            f"({result.iterations} iterations, relative error {result.error:.3e})"
            )
