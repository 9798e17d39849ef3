########################################################################################
##
##                              GLOBAL DEFAULT CONSTANTS
##                                  (_constants.py)
##
########################################################################################

# NUMERICS =============================================================================

#norm below which a vector is considered the zero vector
TOLERANCE = 1e-12


# PICARD DRIVER ========================================================================

#relative error tolerance for the picard iteration
PICARD_TOLERANCE = 1e-4

#maximum number of picard iterations
PICARD_ITERATIONS_MAX = 50

#jacobian is constant across iterations (enables complete factorization reuse)
PICARD_CONSTANT_JACOBIAN = False


# ANDERSON MIXING ======================================================================

#number of last iterates used for anderson mixing
OPT_HISTORY = 3

#relaxation parameter for the anderson extrapolation
OPT_BETA = 1.0

#anderson acceleration enabled by default
OPT_ANDERSON = False


# LOGGING ==============================================================================

LOG_NAME = "picardsolver"

LOG_FORMAT = "%(levelname)s : %(message)s"
