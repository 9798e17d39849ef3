########################################################################################
##
##                              SOLVER CONFIGURATION
##                                   (config.py)
##
########################################################################################

# IMPORTS ==============================================================================

import dataclasses

from dataclasses import dataclass

from .exceptions import ConfigurationError

from ._constants import (
    PICARD_TOLERANCE,
    PICARD_ITERATIONS_MAX,
    PICARD_CONSTANT_JACOBIAN,
    OPT_HISTORY,
    OPT_BETA,
    OPT_ANDERSON
    )


# CLASS ================================================================================

@dataclass(frozen=True)
class SolverConfig:
    """Immutable settings of the picard iteration.

    A snapshot of this is taken at the start of every solve and passed
    through the iteration loop, so changing the solver configuration
    from a hook or callback never affects a solve that is in flight.

    Parameters
    ----------
    tol : float
        tolerance for the relative error between consecutive iterates
    max_iter : int
        maximum number of picard iterations
    num_last_vectors_used : int
        history depth 'M' for anderson mixing
    anderson_beta : float
        relaxation parameter of the anderson extrapolation in (0, 1]
    anderson_is_on : bool
        enable anderson acceleration
    constant_jacobian : bool
        the jacobian does not change between iterations,
        enables complete reuse of its factorization
    """

    tol: float = PICARD_TOLERANCE
    max_iter: int = PICARD_ITERATIONS_MAX
    num_last_vectors_used: int = OPT_HISTORY
    anderson_beta: float = OPT_BETA
    anderson_is_on: bool = OPT_ANDERSON
    constant_jacobian: bool = PICARD_CONSTANT_JACOBIAN


    def __post_init__(self):
        self.validate()


    def validate(self):
        """Check consistency of the settings.

        Raises
        ------
        ConfigurationError
            if any of the settings is out of range
        """

        if self.num_last_vectors_used < 1:
            raise ConfigurationError(
                "Picard: Bad number of last iterations to be used (must be at least one)."
                )

        if self.anderson_is_on and self.num_last_vectors_used < 2:
            raise ConfigurationError(
                "Picard: Anderson acceleration makes sense only if at least two last iterations are used."
                )

        if not self.tol > 0.0:
            raise ConfigurationError(f"Picard: tolerance must be positive, got '{self.tol}'")

        if self.max_iter < 1:
            raise ConfigurationError(f"Picard: 'max_iter' must be at least one, got '{self.max_iter}'")

        if not 0.0 < self.anderson_beta <= 1.0:
            raise ConfigurationError(
                f"Picard: Anderson 'beta' must be in (0, 1], got '{self.anderson_beta}'"
                )


    def replace(self, **changes):
        """Return a validated copy with some settings changed.

        Parameters
        ----------
        changes : dict
            settings to change

        Returns
        -------
        config : SolverConfig
            new configuration
        """
        unknown = set(changes) - set(self.__dataclass_fields__)
        if unknown:
            raise ConfigurationError(f"Picard: unknown settings {sorted(unknown)}")

        return dataclasses.replace(self, **changes)
