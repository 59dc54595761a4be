import logging
from collections.abc import Sequence

import casadi as cs

from ..core.data import sparsity2csr, split_list, vertcat_list
from ..core.errors import CyclicDependencyError, ModelingError
from .expressions import ExpressionBuilder
from .ingestion import ModelDescription, path_constraint
from .variable import Role
from .variables import HasVariables

logger = logging.getLogger(__name__)

EQUATION_CATEGORIES = (
    "dae",
    "ode",
    "alg",
    "quad",
    "initial",
    "path",
    "mterm",
    "lterm",
)
"""Categories of equations into which the definitions of the dependent variables are
substituted."""

PAIRED_CATEGORIES = (
    ("x", "dae"),
    ("xd", "ode"),
    ("xa", "alg"),
    ("q", "quad"),
    ("y", "dep"),
)
"""Pairs of variables and equations whose lengths must match."""


def substitute_list(eqs: list[cs.SX], old: cs.SX, new: cs.SX) -> list[cs.SX]:
    """Substitutes ``old`` with ``new`` in a list of scalar expressions. The list is
    returned unchanged if none of its expressions depends on ``old``."""
    if not eqs or old.is_empty():
        return eqs
    ex = cs.vertcat(*eqs)
    if not cs.depends_on(ex, old):
        return eqs
    return split_list(cs.substitute(ex, old, new))


def _resolution_order(deps: Sequence[Sequence[int]], names: Sequence[str]) -> list[int]:
    """Internal utility that sorts the nodes of a dependency graph so that each node
    comes after the nodes it depends on, by means of a depth-first search.

    Raises
    ------
    CyclicDependencyError
        Raises if the graph contains a cycle.
    """
    n = len(deps)
    visiting, done = 1, 2
    state = [0] * n
    order: list[int] = []
    for root in range(n):
        if state[root]:
            continue
        state[root] = visiting
        path = [root]
        stack = [iter(deps[root])]
        while stack:
            for nxt in stack[-1]:
                if state[nxt] == visiting:
                    cycle = path[path.index(nxt) :] + [nxt]
                    raise CyclicDependencyError([names[i] for i in cycle])
                if state[nxt] == 0:
                    state[nxt] = visiting
                    path.append(nxt)
                    stack.append(iter(deps[nxt]))
                    break
            else:
                node = path.pop()
                stack.pop()
                state[node] = done
                order.append(node)
    return order


class HasEquations(HasVariables):
    """Class for the ingestion, storage and manipulation of the equations of a flat
    optimal control problem. It builds on top of :class:`HasVariables`, which handles
    variables.

    Equations are stored as lists of scalar ``SX`` expressions, per category:

    - ``dae``: implicit dynamic equations, i.e., ``0 == dae``
    - ``ode``: explicit ODEs, i.e., ``der(xd) == ode``
    - ``alg``: algebraic equations, i.e., ``0 == alg``, as many as ``xa``
    - ``quad``: quadratures, i.e., ``der(q) == quad``
    - ``initial``: initial equations, i.e., ``0 == initial`` at the start time
    - ``path``: path constraints, i.e., ``path_min <= path <= path_max``
    - ``mterm`` and ``lterm``: Mayer and Lagrange terms of the objective.

    Parameters
    ----------
    verbose : bool, optional
        If ``True``, the stages of the processing are logged at the ``INFO`` level. By
        default, ``False``.
    """

    def __init__(self, verbose: bool = False) -> None:
        super().__init__(verbose)
        self.dae: list[cs.SX] = []
        self.ode: list[cs.SX] = []
        self.alg: list[cs.SX] = []
        self.quad: list[cs.SX] = []
        self.initial: list[cs.SX] = []
        self.path: list[cs.SX] = []
        self.path_min: list[float] = []
        self.path_max: list[float] = []
        self.mterm: list[cs.SX] = []
        self.lterm: list[cs.SX] = []

    def parse(self, description: ModelDescription) -> None:
        """Obtains the symbolic representation of the problem from its description,
        i.e., adds its variables and equations, and classifies the variables.

        Parameters
        ----------
        description : ModelDescription
            The description of the model.

        Raises
        ------
        ConfigurationError
            Raises if a tag of a variable, of an expression or of a constraint is not
            recognized.
        ModelingError
            Raises if variables are duplicated, undefined, or inconsistent, or if the
            number of equations in a category does not match the number of variables.
        """
        with self._stage("Parsing model", logger):
            self._add_model_variables(description.variables)
            build = ExpressionBuilder(self.variable, self.t)

            for name, tree in description.binding:
                var = self.variable(name)
                if any(var is v for v in self.y):
                    raise ModelingError(
                        f"Variable '{var.name}' has more than one binding equation."
                    )
                self.y.append(var)
                self.dep.append(build(tree))
            self.dae.extend(build(tree) for tree in description.dynamic)
            self.initial.extend(build(tree) for tree in description.initial)
            self.mterm.extend(build(tree) for tree in description.mayer)
            self.lterm.extend(build(tree) for tree in description.lagrange)
            for kind, expr, bound in description.constraints:
                residual, lb, ub = path_constraint(kind, build(expr), build(bound))
                self.path.append(residual)
                self.path_min.append(lb)
                self.path_max.append(ub)
            self.t0 = float(description.t0)
            self.tf = float(description.tf)

            self.sort_type()
            self.check_dimensions()

    def check_dimensions(self) -> None:
        """Checks that each category of equations has as many equations as the
        corresponding category of variables.

        Raises
        ------
        ModelingError
            Raises if any of the dimensions is inconsistent.
        """
        for vars_name, eqs_name in PAIRED_CATEGORIES:
            nv = len(getattr(self, vars_name))
            ne = len(getattr(self, eqs_name))
            if nv != ne:
                raise ModelingError(
                    f"Number of '{eqs_name}' equations ({ne}) does not match the number"
                    f" of '{vars_name}' variables ({nv})."
                )

    def eliminate_interdependencies(self) -> None:
        """Substitutes the definitions of the dependent variables into each other, until
        no dependent variable appears in any definition. Constant subexpressions are
        folded.

        Raises
        ------
        CyclicDependencyError
            Raises if the definitions of some dependent variables form a cycle.
        """
        if not self.y:
            return
        with self._stage("Eliminating interdependencies", logger):
            yvars = cs.vertcat(*(v.var for v in self.y))
            pattern = sparsity2csr(
                cs.jacobian_sparsity(vertcat_list(self.dep), yvars)
            )
            deps = [
                pattern.indices[pattern.indptr[i] : pattern.indptr[i + 1]].tolist()
                for i in range(len(self.dep))
            ]
            order = _resolution_order(deps, [v.name for v in self.y])
            resolved = list(self.dep)
            for i in order:
                if not deps[i]:
                    continue
                old = cs.vertcat(*(self.y[j].var for j in deps[i]))
                new = cs.vertcat(*(resolved[j] for j in deps[i]))
                resolved[i] = cs.simplify(cs.substitute(resolved[i], old, new))
            self.dep = resolved

    def eliminate_dependent(self) -> None:
        """Substitutes the definitions of the dependent variables into all the other
        categories of equations (see :data:`EQUATION_CATEGORIES`). Categories that do
        not depend on any dependent variable are left untouched."""
        if not self.y:
            return
        with self._stage("Eliminating dependent variables", logger):
            old = cs.vertcat(*(v.var for v in self.y))
            new = vertcat_list(self.dep)
            for name in EQUATION_CATEGORIES:
                setattr(self, name, substitute_list(getattr(self, name), old, new))

    def make_algebraic(self, name: str) -> None:
        """Turns a differential state into an algebraic one. If the state is explicit,
        its ODE right-hand side becomes an algebraic equation; if it is implicit, its
        derivative is replaced with zero in the implicit equations and forgotten.

        Parameters
        ----------
        name : str
            Qualified name of the state.

        Raises
        ------
        ModelingError
            Raises if the variable does not exist or is not a differential state.
        """
        v = self.variable(name)
        for k, xd in enumerate(self.xd):
            if xd is v:
                self.xa.append(v)
                self.alg.append(self.ode.pop(k))
                del self.xd[k]
                v.role = Role.ALGEBRAIC
                return
        if any(x is v for x in self.x) and v.role is Role.DIFFERENTIAL:
            if v.has_der:
                self.dae = substitute_list(self.dae, v.der(), cs.SX(0))
                v.clear_der()
            v.role = Role.ALGEBRAIC
            return
        raise ModelingError(f"'{v.name}' is not a differential state.")

    def detect_algebraic(self) -> None:
        """Turns into algebraic states all the implicit differential states whose
        derivatives do not appear in the implicit equations."""
        dae = vertcat_list(self.dae)
        for v in list(self.x):
            if v.role is not Role.DIFFERENTIAL:
                continue
            if not v.has_der or not cs.depends_on(dae, v.der()):
                logger.debug("State '%s' detected as algebraic", v.name)
                self.make_algebraic(v.name)

    def _describe_equations(self) -> list[str]:
        """Internal utility to print the equations, category by category."""
        lines = ["Implicit dynamic equations"]
        lines.extend(f"0 == {e}" for e in self.dae)
        lines.extend(("", "Explicit differential equations"))
        lines.extend(f"{v.der()} == {e}" for v, e in zip(self.xd, self.ode))
        lines.extend(("", "Algebraic equations"))
        lines.extend(f"0 == {e}  ({v})" for v, e in zip(self.xa, self.alg))
        lines.extend(("", "Quadrature equations"))
        lines.extend(f"{v.der()} == {e}" for v, e in zip(self.q, self.quad))
        lines.extend(("", "Initial equations"))
        lines.extend(f"0 == {e}" for e in self.initial)
        lines.extend(("", "Dependent equations"))
        lines.extend(f"{v} == {e}" for v, e in zip(self.y, self.dep))
        lines.extend(("", "Mayer objective terms"))
        lines.extend(str(e) for e in self.mterm)
        lines.extend(("", "Lagrange objective terms"))
        lines.extend(str(e) for e in self.lterm)
        lines.extend(("", "Constraint functions"))
        lines.extend(
            f"{lb:g} <= {e} <= {ub:g}"
            for e, lb, ub in zip(self.path, self.path_min, self.path_max)
        )
        return lines
