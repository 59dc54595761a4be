import logging
import warnings
from typing import Optional

import casadi as cs
import numpy as np
import numpy.typing as npt

from ..core.errors import StructuralDegeneracyWarning
from ..core.scaling import NominalScaler, equation_scaling
from .equations import HasEquations, substitute_list

logger = logging.getLogger(__name__)


class HasScaling(HasEquations):
    """Class for the nondimensionalization of a flat optimal control problem. It builds
    on top of :class:`HasEquations`, which handles equations.

    Variables are scaled first, by their nominal values, so that each variable ``v`` is
    replaced by ``nominal(v) * v`` everywhere (see
    :class:`csocp.core.scaling.NominalScaler`). Then, the implicit equations are
    divided by the largest entry of the corresponding row of their jacobian (see
    :func:`csocp.core.scaling.equation_scaling`). Both stages can be run only once, and
    in this order.

    Parameters
    ----------
    verbose : bool, optional
        If ``True``, the stages of the processing are logged at the ``INFO`` level. By
        default, ``False``.
    """

    def __init__(self, verbose: bool = False) -> None:
        super().__init__(verbose)
        self.scaled_variables = False
        self.scaled_equations = False
        self._scaler = NominalScaler()
        self._equation_scaling: Optional[npt.NDArray[np.floating]] = None

    @property
    def scaler(self) -> NominalScaler:
        """Gets the nominal values used to scale the variables."""
        return self._scaler

    @property
    def equation_scaling(self) -> Optional[npt.NDArray[np.floating]]:
        """Gets the scaling factors of the implicit equations, or ``None`` if the
        equations have not been scaled."""
        return self._equation_scaling

    def scale_variables(self) -> None:
        """Scales all the variables by their nominal values, i.e., substitutes each
        variable ``v`` (and its derivative) with ``nominal(v) * v`` in all equations.
        Explicit equations for a variable (ODEs, quadratures and dependent
        definitions) are also divided by the nominal value of that variable. Time is
        not scaled.

        Raises
        ------
        RuntimeError
            Raises if the variables have already been scaled.
        """
        if self.scaled_variables:
            raise RuntimeError("Variables have already been scaled.")

        with self._stage("Scaling variables", logger):
            pairs = []
            for v in self.all_variables():
                if v.name not in self._scaler:
                    self._scaler.register(v.name, v.nominal)
                pairs.append((v.name, v.var))
                if v.has_der:
                    pairs.append((v.name, v.der()))
            old, new = self._scaler.substitution(pairs)
            if old:
                vold = cs.vertcat(*old)
                vnew = cs.vertcat(*new)
                for name in ("dae", "alg", "initial", "path", "mterm", "lterm"):
                    eqs = substitute_list(getattr(self, name), vold, vnew)
                    setattr(self, name, eqs)
                for vars_name, eqs_name in (("xd", "ode"), ("q", "quad"), ("y", "dep")):
                    eqs = substitute_list(getattr(self, eqs_name), vold, vnew)
                    setattr(
                        self,
                        eqs_name,
                        [
                            e if v.nominal == 1.0 else e / v.nominal
                            for v, e in zip(getattr(self, vars_name), eqs)
                        ],
                    )
            self.scaled_variables = True

    def scale_equations(self) -> None:
        """Scales the implicit equations, each by the largest absolute value of the
        (finite) entries in its row of the jacobian w.r.t. the states, their
        derivatives, the algebraic states, the parameters and the controls, evaluated
        at the (scaled) start values. If no such entry is found, the equation is left
        unscaled, and a :class:`csocp.core.errors.StructuralDegeneracyWarning` is
        issued.

        Raises
        ------
        RuntimeError
            Raises if the equations have already been scaled, or if the variables have
            not been scaled yet.
        """
        if self.scaled_equations:
            raise RuntimeError("Equations have already been scaled.")
        if not self.scaled_variables:
            raise RuntimeError(
                "Variables must be scaled before the equations; call scale_variables()."
            )
        if not self.dae:
            self.scaled_equations = True
            return

        with self._stage("Scaling equations", logger):
            wrt = [v.var for v in self.x]
            wrt.extend(v.der() for v in self.x if v.has_der)
            wrt.extend(v.var for v in (*self.xa, *self.p, *self.u))
            dae = cs.vertcat(*self.dae)
            jac = cs.jacobian(dae, cs.vertcat(*wrt)) if wrt else cs.SX(dae.numel(), 0)
            syms, vals = self.start_point(scaled=True)
            J = cs.substitute(jac, syms, vals)
            free = cs.symvar(J)
            if free:
                # entries depending on symbols without a start value are ignored
                logger.debug("No start value for %s", ", ".join(map(str, free)))
                J = cs.substitute(J, cs.vertcat(*free), cs.DM.nan(len(free)))
            J = cs.evalf(J)
            scale, degenerate = equation_scaling(J)
            for i in degenerate:
                warnings.warn(
                    f"Could not generate a scaling factor for equation {i} "
                    f"(0 == {self.dae[i]}), selecting 1.",
                    StructuralDegeneracyWarning,
                    stacklevel=2,
                )
            self.dae = [e / float(s) for e, s in zip(self.dae, scale)]
            self._equation_scaling = scale
            self.scaled_equations = True
