#########################################################################################
##
##            Picard iteration of the scalar contraction x = 0.5 * x + 3
##
#########################################################################################

# IMPORTS ===============================================================================

import numpy as np

from picardsolver import (
    PicardSolver,
    CallableAssembler,
    MaxIterationsExceeded,
    configure_logging
)


# SOLVE =================================================================================

configure_logging("info")

assembler = CallableAssembler(jac=1.0, rhs=lambda x: 0.5 * x + 3.0, ndof=1)

plain = PicardSolver(assembler, tol=1e-6).solve(np.zeros(1))
print(plain)

accelerated = PicardSolver(assembler, tol=1e-6, anderson_is_on=True).solve(np.zeros(1))
print(accelerated)

# retry with more iterations if the first attempt does not converge
solver = PicardSolver(assembler, tol=1e-9, max_iter=1)
try:
    solver.solve().unwrap()
except MaxIterationsExceeded as err:
    print(err, "last iterate:", err.result.x)
    solver.configure(max_iter=100)
    print(solver.solve(err.result.x))
