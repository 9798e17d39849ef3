#########################################################################################
##
##          Picard iteration with Anderson acceleration for nonlinear diffusion
##
#########################################################################################

# IMPORTS ===============================================================================

import numpy as np
import scipy.sparse as sp
import matplotlib.pyplot as plt

from picardsolver import (
    PicardSolver,
    CallableAssembler,
    configure_logging
)


# PROBLEM ===============================================================================

# -(k(u) u')' = f on (0, 1) with u(0) = u(1) = 0 and k(u) = 1 + u^2
n = 100
h = 1.0 / (n + 1)
x = np.linspace(h, 1.0 - h, n)
f = 4.0 * np.ones(n)


def stiffness(u):
    _u = np.concatenate([[0.0], u, [0.0]])
    k = 1.0 + (0.5 * (_u[1:] + _u[:-1]))**2
    main = (k[:-1] + k[1:]) / h**2
    off = -k[1:-1] / h**2
    return sp.diags([off, main, off], [-1, 0, 1], format="csr")


assembler = CallableAssembler(jac=stiffness, rhs=f, ndof=n)


# SOLVE =================================================================================

configure_logging("info")

results = {}
for M in [None, 2, 3, 5]:

    settings = dict(tol=1e-10, max_iter=200)
    if M is not None:
        settings.update(anderson_is_on=True, num_last_vectors_used=M)

    solver = PicardSolver(assembler, log=M is None, **settings)
    results["plain" if M is None else f"anderson M={M}"] = solver.solve()


# PLOTTING ==============================================================================

fig, (ax1, ax2) = plt.subplots(1, 2, figsize=(10, 4), tight_layout=True)

for label, res in results.items():
    ax1.semilogy(np.arange(1, res.iterations + 1)[1:], res.errors[1:], ".-", label=label)

ax1.set_xlabel("iteration")
ax1.set_ylabel("relative error")
ax1.legend()

ax2.plot(x, results["anderson M=3"].x)
ax2.set_xlabel("x")
ax2.set_ylabel("u")

plt.show()
