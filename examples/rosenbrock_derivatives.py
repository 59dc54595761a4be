r"""
Derivatives of a simple NLP: Rosenbrock function
================================================

This example illustrates the basic usage of :class:`csocp.Nlp` in computing the
derivatives a numerical solver needs for the parametric (in :math:`r`) constrained
Rosenbrock function

.. math::

    \min_{x}{ (1 - x_1)^2 + (x_2 - x_1^2)^2 } \text{ s.t. } x_1^2 + x_2^2 \leq r.
"""

# %%
# Creating the problem
# --------------------
# The NLP is given as a single CasADi function mapping the primal variables and the
# parameters to the objective and the constraints.

import casadi as cs
import numpy as np

from csocp import Nlp

x = cs.SX.sym("x", 2)
r = cs.SX.sym("r")
f = (1 - x[0]) ** 2 + (x[1] - x[0] ** 2) ** 2
g = cs.sumsqr(x) - r
nlp = Nlp(cs.Function("rosenbrock", [x, r], [f, g], ["x", "p"], ["f", "g"]))
print(nlp)

# %%
# Bounds and initial guess are stored in the NLP, and can be checked for consistency
# before handing them to a solver.

nlp.bounds.update(lbx=-1.5, ubx=1.5, ubg=0, x0=[0.5, 0.5], p=1)
nlp.check_inputs()
nlp.check_initial_bounds()
print(nlp.evaluate())

# %%
# Computing the derivatives
# -------------------------
# Derivative functions are synthesized on first request, and cached afterwards. The
# gradient of the objective also returns the objective and the constraints.

grad, f0, g0 = nlp.grad_f()(nlp.bounds.x0, nlp.bounds.p)
print("gradient of f:", np.asarray(grad).flatten())
assert nlp.grad_f() is nlp.grad_f()

# %%
# The hessian of the Lagrangian :math:`\lambda_f f + \lambda_g^\top g` is the only
# second-order quantity most solvers need. Its sparsity pattern is also available on
# its own, e.g., to preallocate the solver's memory.

hess, *_ = nlp.hess_lag()(nlp.bounds.x0, nlp.bounds.p, 1.0, 0.5)
print("hessian of the Lagrangian:\n", hess.full())
print("nonzeros of its pattern:", nlp.sp_hess_lag().nnz())

# %%
# Finally, constraint violations at any point can be reported in a human-readable way.

x1 = [1.2, 0.9]
_, g1 = nlp.evaluate(x1)
print(nlp.report_constraints(x1, g1))
