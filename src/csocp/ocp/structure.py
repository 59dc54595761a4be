import logging
import warnings
from typing import Optional

import casadi as cs
import numpy as np

from ..core.blt import BltResult, dulmage_mendelsohn
from ..core.data import sparsity2csr, split_list, vertcat_list
from ..core.errors import NewtonConvergenceWarning
from ..core.registry import linsol_plugins
from .scaling import HasScaling
from .variable import Role, Variable

logger = logging.getLogger(__name__)

SMALL_BLOCK_SIZE = 3
"""Affine blocks up to this size are solved by explicit inversion."""


class HasStructure(HasScaling):
    """Class for the structural analysis of the implicit equations of a flat optimal
    control problem, i.e., for their sorting in block-lower-triangular (BLT) form and
    for making explicit the blocks that can be solved for their unknowns. It builds on
    top of :class:`HasScaling`.

    The unknowns of the implicit equations are the highest-order time derivatives of the
    implicit states ``x``, i.e., ``der(x)`` for differential states, and ``x`` itself
    for algebraic ones.

    Parameters
    ----------
    verbose : bool, optional
        If ``True``, the stages of the processing are logged at the ``INFO`` level. By
        default, ``False``.
    linear_solver : str, optional
        Name of the linear solver plugin (see
        :data:`csocp.core.registry.linsol_plugins`) used to solve affine blocks larger
        than :data:`SMALL_BLOCK_SIZE`. By default, ``"qr"``.
    newton_iterations : int, optional
        Number of Newton iterations used to make nonlinear blocks explicit. By default,
        ``3``.
    newton_tol : float, optional
        Tolerance on the residual of nonlinear blocks, evaluated at the start values,
        below which Newton iterations stop early. By default, ``1e-8``.
    exact_newton : bool, optional
        If ``True``, the jacobian of nonlinear blocks is updated at each Newton
        iteration; otherwise, it is frozen at the start values (quasi-Newton). By
        default, ``True``.

    Raises
    ------
    PluginNotFoundError
        Raises if the linear solver is not registered.
    """

    def __init__(
        self,
        verbose: bool = False,
        linear_solver: str = "qr",
        newton_iterations: int = 3,
        newton_tol: float = 1e-8,
        exact_newton: bool = True,
    ) -> None:
        super().__init__(verbose)
        self._inverse = linsol_plugins.create("inverse")
        self._linsol = linsol_plugins.create(linear_solver)
        self.newton_iterations = newton_iterations
        self.newton_tol = newton_tol
        self.exact_newton = exact_newton
        self._blt: Optional[BltResult] = None

    @property
    def blt(self) -> Optional[BltResult]:
        """Gets the BLT decomposition of the implicit equations, if they have been
        sorted and not yet made explicit."""
        return self._blt

    def sort_blt(self, with_x: bool = False) -> BltResult:
        """Sorts the implicit equations and states in block-lower-triangular form, so
        that the equations of each block only depend on the unknowns of the same or of
        previous blocks. Equations and states are permuted in place.

        Parameters
        ----------
        with_x : bool, optional
            If ``True``, each differential state is replaced by ``invtau * der(x)``
            before computing the sparsity pattern, so that the sorting also accounts for
            the dependence on the states themselves. By default, ``False``.

        Returns
        -------
        BltResult
            The decomposition, also available in :attr:`blt`.
        """
        with self._stage("BLT sorting", logger):
            dae = vertcat_list(self.dae)
            if with_x:
                invtau = cs.SX.sym("invtau")
                states = [v for v in self.x if v.has_der]
                if states:
                    dae = cs.substitute(
                        dae,
                        cs.vertcat(*(v.var for v in states)),
                        invtau * cs.vertcat(*(v.der() for v in states)),
                    )
            unknowns = vertcat_list([v.highest() for v in self.x])
            pattern = sparsity2csr(cs.jacobian_sparsity(dae, unknowns))
            blt = dulmage_mendelsohn(pattern)
            self.dae = [self.dae[i] for i in blt.rowperm]
            self.x = [self.x[j] for j in blt.colperm]
            logger.debug(
                "%d blocks found (structural rank %d of %d equations)",
                blt.nb,
                blt.structural_rank,
                len(self.dae),
            )
        self._blt = blt
        return blt

    def make_explicit(self) -> None:
        """Makes explicit the square blocks of the sorted implicit equations, block
        after block. Affine blocks are solved exactly, while nonlinear ones are solved
        approximately with a fixed number of Newton iterations starting from the start
        values. Solved derivatives become explicit ODEs, and solved algebraic states
        become dependent variables (and, if bounded, path constraints). Equations and
        unknowns outside the well-determined part of the decomposition, i.e., the over-
        and under-determined blocks and the structurally singular rows and columns, are
        left implicit. Lastly, the dependent variables are eliminated.

        Raises
        ------
        RuntimeError
            Raises if the equations have not been BLT sorted.
        """
        if self._blt is None:
            raise RuntimeError("Equations have not been BLT sorted; call sort_blt().")
        blt = self._blt

        with self._stage("Making explicit", logger):
            _, guess = self._unknowns_start()
            solved: list[tuple[Variable, bool, cs.SX]] = []
            old: list[cs.SX] = []
            new: list[cs.SX] = []
            x_new: list[Variable] = []
            dae_new: list[cs.SX] = []

            for k in range(blt.nb):
                block_rows, block_cols = blt.block(k)
                rows, cols = blt.welldetermined_block(k)
                x_new.extend(self.x[j] for j in block_cols if j not in cols)
                dae_new.extend(self.dae[i] for i in block_rows if i not in rows)
                if not rows:
                    logger.debug("Block %d is not well-determined, left implicit", k)
                    continue
                if len(rows) != len(block_rows) or len(cols) != len(block_cols):
                    logger.debug("Singular part of block %d left implicit", k)
                vars_b = [self.x[j] for j in cols]
                fb = [self.dae[i] for i in rows]

                vb = cs.vertcat(*(v.highest() for v in vars_b))
                fbv = cs.vertcat(*fb)
                if old:
                    fbv = cs.substitute(fbv, cs.vertcat(*old), cs.vertcat(*new))
                Jb = cs.jacobian(fbv, vb)
                if cs.depends_on(Jb, vb):
                    sol = self._newton(k, vb, fbv, Jb, guess[list(cols)])
                else:
                    fb0 = cs.substitute(fbv, vb, cs.SX.zeros(vb.shape))
                    small = len(rows) <= SMALL_BLOCK_SIZE
                    solve = self._inverse if small else self._linsol
                    sol = solve(Jb, -fb0)
                    logger.debug("Affine block %d of size %d solved", k, len(rows))

                sols = split_list(sol)
                old.extend(split_list(vb))
                new.extend(sols)
                solved.extend((v, v.has_der, s) for v, s in zip(vars_b, sols))

            self.x = x_new
            self.dae = dae_new
            for v, is_der, expr in solved:
                if is_der:
                    self.xd.append(v)
                    self.ode.append(expr)
                    continue
                v.role = Role.DEPENDENT
                self.y.append(v)
                self.dep.append(expr)
                if v.is_bounded:
                    # keep the bounds, which would be lost by the substitution
                    scaled = self.scaled_variables
                    self.path.append(v.var)
                    self.path_min.append(v.scaled_min if scaled else v.min)
                    self.path_max.append(v.scaled_max if scaled else v.max)
            self._blt = None

        self.eliminate_interdependencies()
        self.eliminate_dependent()

    def _unknowns_start(self) -> tuple[cs.SX, np.ndarray]:
        """Internal utility to get the unknowns of the implicit equations and their
        (scaled, if the variables are scaled) start values."""
        scaled = self.scaled_variables
        unknowns = vertcat_list([v.highest() for v in self.x])
        guess = []
        for v in self.x:
            if v.has_der:
                start = v.scaled_derivative_start if scaled else v.derivative_start
                guess.append(start)
            else:
                guess.append(v.scaled_start if scaled else v.start)
        return unknowns, np.asarray(guess, dtype=float)

    def _newton(
        self, k: int, vb: cs.SX, fb: cs.SX, Jb: cs.SX, guess: np.ndarray
    ) -> cs.SX:
        """Internal utility to approximate the solution of a nonlinear block with Newton
        iterations starting from the given guess. The result is a symbolic expression
        of the other variables of the problem."""
        x_k = cs.SX(cs.DM(guess))
        if self.exact_newton:
            step = vb - cs.solve(Jb, fb)
        else:
            Jb0 = cs.substitute(Jb, vb, x_k)
            step = vb - cs.solve(Jb0, fb)

        residual = np.inf
        for i in range(self.newton_iterations):
            x_k = cs.substitute(step, vb, x_k)
            residual = self._residual_at_start(cs.substitute(fb, vb, x_k))
            if residual is not None and residual <= self.newton_tol:
                logger.debug(
                    "Newton on block %d converged in %d iterations", k, i + 1
                )
                break
        else:
            if residual is None:
                logger.debug(
                    "Newton on block %d not checked for convergence, as it depends on "
                    "symbols with no start value",
                    k,
                )
            else:
                warnings.warn(
                    f"Newton iterations on block {k} ({vb}) did not converge: "
                    f"residual {residual:.3e} after {self.newton_iterations} "
                    f"iterations is above the tolerance {self.newton_tol:g}.",
                    NewtonConvergenceWarning,
                    stacklevel=3,
                )
        logger.debug(
            "Using %s Newton iteration to solve block %d for the %d variables %s",
            "an exact" if self.exact_newton else "a quasi-",
            k,
            vb.numel(),
            vb,
        )
        return x_k

    def _residual_at_start(self, fb: cs.SX) -> Optional[float]:
        """Internal utility to evaluate the infinity-norm of a residual at the start
        values, or ``None`` if it depends on symbols with no start value."""
        syms, vals = self.start_point(self.scaled_variables)
        r = cs.substitute(fb, syms, vals)
        if cs.symvar(r):
            return None
        return float(np.max(np.abs(cs.evalf(r).full()), initial=0.0))

    def separate_quadratures(self) -> None:
        """Turns into quadrature states the explicit differential states on which
        nothing but the objective depends."""
        eqs = [
            *self.dae,
            *self.ode,
            *self.alg,
            *self.quad,
            *self.initial,
            *self.path,
            *self.dep,
        ]
        others = vertcat_list(eqs)
        k = 0
        while k < len(self.xd):
            v = self.xd[k]
            if cs.depends_on(others, v.var):
                k += 1
                continue
            logger.debug("State '%s' separated as quadrature", v.name)
            v.role = Role.QUADRATURE
            self.q.append(v)
            self.quad.append(self.ode.pop(k))
            del self.xd[k]
