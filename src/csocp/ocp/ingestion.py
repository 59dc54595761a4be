"""Plain-data description of a flat model, as produced by an external parser, and the
functions to turn its records into :class:`csocp.ocp.variable.Variable` instances and
path constraints. Equations are given as expression trees (see
:mod:`csocp.ocp.expressions`)."""

from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field, fields
from typing import Any, Optional, Union

import casadi as cs
import numpy as np

from ..core.errors import ConfigurationError
from .expressions import ExprTree
from .variable import Alias, Causality, Variability, Variable

NamePart = Union[str, tuple[str, Optional[int]]]
"""A part of a qualified name, i.e., a name with an optional array subscript."""

QualifiedName = Union[str, Sequence[NamePart]]

CONSTRAINT_BOUNDS = {
    "Leq": (-np.inf, 0.0),
    "Geq": (0.0, np.inf),
    "Eq": (0.0, 0.0),
}
"""Bounds on the residual ``expr - bound`` of each kind of path constraint."""


def qualified_name(name: QualifiedName) -> str:
    """Assembles a qualified name from its parts, separated by dots, e.g., the parts
    ``["a", ("b", 2), "c"]`` yield ``"a.b[2].c"``. Strings are returned unchanged.

    Parameters
    ----------
    name : str or sequence of str or (str, int)
        The name, or its parts, each with an optional array subscript.

    Returns
    -------
    str
        The qualified name.
    """
    if isinstance(name, str):
        return name
    parts = []
    for part in name:
        if isinstance(part, str):
            parts.append(part)
        else:
            partname, index = part
            parts.append(partname if index is None else f"{partname}[{index}]")
    return ".".join(parts)


@dataclass
class RawVariable:
    """Metadata of a variable as found in a model description, with tags still in
    string form."""

    name: QualifiedName
    causality: str = "internal"
    variability: str = "continuous"
    alias: str = "noAlias"
    value_reference: int = -1
    unit: str = ""
    display_unit: str = ""
    min: Optional[float] = None
    max: Optional[float] = None
    start: Optional[float] = None
    nominal: Optional[float] = None
    free: bool = False

    @property
    def qualified_name(self) -> str:
        """Gets the qualified name of the variable."""
        return qualified_name(self.name)

    @property
    def is_alias(self) -> bool:
        """Gets whether the variable is an alias, possibly negated, of another one."""
        return Alias.from_tag(self.alias) is not Alias.NO_ALIAS


def parse_variable(raw: RawVariable) -> Variable:
    """Converts the raw metadata of a variable into a :class:`Variable`.

    Parameters
    ----------
    raw : RawVariable
        The metadata of the variable.

    Returns
    -------
    Variable
        The variable, named after the qualified name of the record.

    Raises
    ------
    ConfigurationError
        Raises if the causality, variability or alias tags are not recognized.
    ModelingError
        Raises if the nominal value is zero or not finite.
    """
    variability = Variability.from_tag(raw.variability)
    causality = Causality.from_tag(raw.causality)
    alias = Alias.from_tag(raw.alias)
    return Variable(
        raw.qualified_name,
        value_reference=raw.value_reference,
        causality=causality,
        variability=variability,
        alias=alias,
        unit=raw.unit,
        display_unit=raw.display_unit,
        nominal=1.0 if raw.nominal is None else raw.nominal,
        min=-np.inf if raw.min is None else raw.min,
        max=np.inf if raw.max is None else raw.max,
        start=0.0 if raw.start is None else raw.start,
        free=raw.free,
    )


def path_constraint(kind: str, expr: cs.SX, bound: cs.SX) -> tuple[cs.SX, float, float]:
    """Converts a path constraint to its residual form, i.e., ``expr - bound`` together
    with its lower and upper bounds.

    Parameters
    ----------
    kind : {"Leq", "Geq", "Eq"}
        Kind of constraint, i.e., ``expr <= bound``, ``expr >= bound`` or
        ``expr == bound``. The ``"opt:Constraint"`` prefix is also accepted.
    expr, bound : casadi.SX
        The two sides of the constraint.

    Returns
    -------
    tuple of casadi.SX, float and float
        The residual, and its lower and upper bounds.

    Raises
    ------
    ConfigurationError
        Raises if the kind of constraint is not recognized.
    """
    name = kind[len("opt:Constraint") :] if kind.startswith("opt:Constraint") else kind
    bounds = CONSTRAINT_BOUNDS.get(name)
    if bounds is None:
        raise ConfigurationError(f"Unknown constraint type '{kind}'.")
    return expr - bound, *bounds


@dataclass
class ModelDescription:
    """Description of a flat model, i.e., its variables and its equations sorted by
    category.

    Parameters
    ----------
    variables : list of RawVariable
        The variables of the model, aliases included.
    binding : list of (name, expression tree)
        Binding equations, each defining a variable as an expression of others.
    dynamic : list of expression trees
        Implicit dynamic equations, i.e., residuals ``0 == f(der(x), x, ...)``.
    initial : list of expression trees
        Initial equations, i.e., residuals that hold at the initial time.
    mayer : list of expression trees
        Mayer terms of the objective.
    lagrange : list of expression trees
        Lagrange (integrand) terms of the objective.
    constraints : list of (kind, expression tree, expression tree)
        Path constraints, each given as its kind (see :func:`path_constraint`), the
        constrained expression and its bound.
    t0, tf : float, optional
        Start and final time of the horizon, if known.
    """

    variables: list[RawVariable] = field(default_factory=list)
    binding: list[tuple[QualifiedName, ExprTree]] = field(default_factory=list)
    dynamic: list[ExprTree] = field(default_factory=list)
    initial: list[ExprTree] = field(default_factory=list)
    mayer: list[ExprTree] = field(default_factory=list)
    lagrange: list[ExprTree] = field(default_factory=list)
    constraints: list[tuple[str, ExprTree, ExprTree]] = field(default_factory=list)
    t0: float = np.nan
    tf: float = np.nan

    @classmethod
    def from_dict(cls, d: Mapping[str, Any]) -> "ModelDescription":
        """Builds a description from a plain mapping (e.g., loaded from JSON), whose
        variables are mappings of the fields of :class:`RawVariable`.

        Raises
        ------
        ConfigurationError
            Raises if the mapping or any of its variables contain unknown fields.
        """
        _check_fields(d, cls, "model description")
        kwargs = dict(d)
        kwargs["variables"] = [
            v if isinstance(v, RawVariable) else _raw_variable(v)
            for v in d.get("variables", ())
        ]
        for key in ("binding", "constraints"):
            if key in kwargs:
                kwargs[key] = [tuple(item) for item in kwargs[key]]
        return cls(**kwargs)


def _raw_variable(d: Mapping[str, Any]) -> RawVariable:
    _check_fields(d, RawVariable, "variable")
    return RawVariable(**d)


def _check_fields(d: Iterable[str], cls: type, what: str) -> None:
    known = {f.name for f in fields(cls)}
    unknown = [k for k in d if k not in known]
    if unknown:
        raise ConfigurationError(
            f"Unknown field(s) in {what}: " + ", ".join(map(repr, unknown)) + "."
        )
