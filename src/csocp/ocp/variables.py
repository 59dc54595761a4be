import logging
import time
from collections.abc import Iterator
from contextlib import contextmanager

import casadi as cs
import numpy as np

from ..core.errors import ModelingError
from .ingestion import QualifiedName, RawVariable, parse_variable, qualified_name
from .variable import Causality, Role, Variability, Variable

logger = logging.getLogger(__name__)


class HasVariables:
    """Class for the creation, storage and classification of the variables of a flat
    optimal control problem.

    Variables are stored by qualified name, and, once classified, also in the lists

    - ``x``: implicit states, i.e., states defined by the implicit equations
    - ``xd``: explicit differential states, i.e., defined by explicit ODEs
    - ``xa``: algebraic states, paired with the algebraic equations
    - ``q``: quadrature states, i.e., states nothing but the objective depends on
    - ``y``: dependent variables, each defined by the expression in ``dep`` at the same
      index (i.e., by a binding equation)
    - ``p``: free parameters
    - ``u``: controls.

    Parameters
    ----------
    verbose : bool, optional
        If ``True``, the stages of the processing of the problem are logged at the
        ``INFO`` level; otherwise, at the ``DEBUG`` level. By default, ``False``.
    """

    def __init__(self, verbose: bool = False) -> None:
        super().__init__()
        self._log_level = logging.INFO if verbose else logging.DEBUG
        self._variables: dict[str, Variable] = {}
        self.t = cs.SX.sym("t")
        self.t0 = np.nan
        self.tf = np.nan
        self.x: list[Variable] = []
        self.xd: list[Variable] = []
        self.xa: list[Variable] = []
        self.q: list[Variable] = []
        self.y: list[Variable] = []
        self.dep: list[cs.SX] = []
        self.p: list[Variable] = []
        self.u: list[Variable] = []

    @property
    def variables(self) -> dict[str, Variable]:
        """Gets all the (non-alias) variables, by qualified name."""
        return self._variables

    def variable(self, name: QualifiedName) -> Variable:
        """Gets a variable by its qualified name (or name parts).

        Raises
        ------
        ModelingError
            Raises if no variable with the given name exists.
        """
        qn = qualified_name(name)
        var = self._variables.get(qn)
        if var is None:
            raise ModelingError(f"No such variable: '{qn}'.")
        return var

    def add_variable(self, var: Variable) -> None:
        """Adds a variable to the problem.

        Raises
        ------
        ModelingError
            Raises if a variable with the same name has already been added.
        """
        if var.name in self._variables:
            raise ModelingError(f"Variable '{var.name}' has already been added.")
        self._variables[var.name] = var

    def _add_model_variables(self, raws: list[RawVariable]) -> None:
        """Internal utility to add the raw variables of a model, skipping aliases."""
        for raw in raws:
            if raw.is_alias:
                logger.debug("Skipping alias variable '%s'", raw.qualified_name)
                continue
            self.add_variable(parse_variable(raw))

    def sort_type(self) -> None:
        """Classifies the variables that are not dependent (i.e., that are not defined
        by a binding equation) according to their variability and causality:

        - free parameters become parameters (non-free ones are not allowed)
        - continuous internal variables become (implicit) differential states
        - continuous inputs become controls
        - constants become dependent, defined by their nominal value.

        Other variables, e.g., discrete ones, are left unclassified.

        Raises
        ------
        ModelingError
            Raises if a parameter is not free.
        """
        for lst in (self.x, self.xd, self.xa, self.u, self.p):
            lst.clear()
        dependent = {v.name for v in self.y}
        for v in self._variables.values():
            if v.name in dependent:
                v.role = Role.DEPENDENT
                continue
            if v.variability is Variability.PARAMETER:
                if not v.free:
                    raise ModelingError(f"Parameter '{v.name}' is not free.")
                v.role = Role.PARAMETER
                self.p.append(v)
            elif v.variability is Variability.CONTINUOUS:
                if v.causality is Causality.INTERNAL:
                    v.role = Role.DIFFERENTIAL
                    self.x.append(v)
                elif v.causality is Causality.INPUT:
                    v.role = Role.CONTROL
                    self.u.append(v)
                else:
                    logger.debug("Continuous output '%s' left unclassified", v.name)
            elif v.variability is Variability.CONSTANT:
                v.role = Role.DEPENDENT
                self.y.append(v)
                self.dep.append(cs.SX(v.nominal))
            else:
                logger.debug("Discrete variable '%s' left unclassified", v.name)

    def all_variables(self) -> Iterator[Variable]:
        """Iterates over all the classified variables, category after category."""
        for lst in (self.x, self.xd, self.xa, self.q, self.y, self.p, self.u):
            yield from lst

    def start_point(self, scaled: bool) -> tuple[cs.SX, cs.DM]:
        """Gets the symbols of the problem (time, the classified variables and their
        derivatives) stacked in a vector, together with their start values, e.g., to
        evaluate expressions numerically. Time starts at ``t0``, or at zero if the start
        time is unknown.

        Parameters
        ----------
        scaled : bool
            Whether to return the scaled start values, i.e., divided by the nominals.
        """
        syms = [self.t]
        vals = [self.t0 if np.isfinite(self.t0) else 0.0]
        for v in self.all_variables():
            syms.append(v.var)
            vals.append(v.scaled_start if scaled else v.start)
            if v.has_der:
                syms.append(v.der())
                vals.append(
                    v.scaled_derivative_start if scaled else v.derivative_start
                )
        return cs.vertcat(*syms), cs.DM(vals)

    @contextmanager
    def _stage(self, what: str, log: logging.Logger) -> Iterator[None]:
        """Internal utility to log the start and the completion (with elapsed time) of a
        stage of the processing."""
        log.log(self._log_level, "%s ...", what)
        t0 = time.perf_counter()
        yield
        log.log(
            self._log_level,
            "... %s complete after %.3f seconds",
            what.lower(),
            time.perf_counter() - t0,
        )
