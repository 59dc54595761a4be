"""Representation of the variables of a flat optimal control problem, together with the
enumerations of their metadata, i.e., causality, variability, alias and role."""

from enum import Enum
from typing import Optional, Union

import casadi as cs
import numpy as np

from ..core.errors import ConfigurationError, ModelingError


class _TaggedEnum(Enum):
    """Enumeration whose members are identified by the string tags found in model
    descriptions."""

    @classmethod
    def from_tag(cls, tag: Union[str, "_TaggedEnum"]) -> "_TaggedEnum":
        """Gets the member corresponding to the given tag.

        Raises
        ------
        ConfigurationError
            Raises if the tag is not recognized.
        """
        if isinstance(tag, cls):
            return tag
        for member in cls:
            if member.value == tag:
                return member
        raise ConfigurationError(
            f"Unknown {cls.__name__.lower()} '{tag}'; expected one of "
            + ", ".join(repr(m.value) for m in cls)
            + "."
        )


class Causality(_TaggedEnum):
    """Causality of a variable, i.e., how it interfaces with the outside of the
    model."""

    INPUT = "input"
    OUTPUT = "output"
    INTERNAL = "internal"


class Variability(_TaggedEnum):
    """Variability of a variable, i.e., when its value may change."""

    CONSTANT = "constant"
    PARAMETER = "parameter"
    DISCRETE = "discrete"
    CONTINUOUS = "continuous"


class Alias(_TaggedEnum):
    """Whether a variable is an alias (possibly negated) of another one."""

    NO_ALIAS = "noAlias"
    ALIAS = "alias"
    NEGATED_ALIAS = "negatedAlias"


class Role(Enum):
    """Role of a variable in the optimal control problem, assigned by
    classification."""

    PARAMETER = "parameter"
    CONTROL = "control"
    DIFFERENTIAL = "differential-state"
    ALGEBRAIC = "algebraic-state"
    QUADRATURE = "quadrature-state"
    DEPENDENT = "dependent"


class Variable:
    """A scalar variable of the model, which owns its symbol, and lazily creates the
    symbol of its time derivative ``der(name)`` and of its values at given time instants
    ``name(t)``.

    Parameters
    ----------
    name : str
        Qualified name of the variable, which is also the name of its symbol.
    value_reference : int, optional
        Value reference of the variable in the model description, by default ``-1``.
    causality : Causality, optional
        Causality of the variable, by default internal.
    variability : Variability, optional
        Variability of the variable, by default continuous.
    alias : Alias, optional
        Alias kind of the variable, by default no alias.
    unit, display_unit : str, optional
        Units of the variable, by default empty.
    nominal : float, optional
        Nominal value of the variable, by default ``1``. Must be finite and nonzero.
    min, max : float, optional
        Bounds of the variable, by default unbounded.
    start : float, optional
        Start value (i.e., initial guess) of the variable, by default ``0``.
    derivative_start : float, optional
        Start value of the time derivative of the variable, by default ``0``.
    free : bool, optional
        Whether the variable, if a parameter, is free for optimization. By default,
        ``False``.

    Raises
    ------
    ModelingError
        Raises if the nominal value is zero or not finite.
    """

    def __init__(
        self,
        name: str,
        value_reference: int = -1,
        causality: Causality = Causality.INTERNAL,
        variability: Variability = Variability.CONTINUOUS,
        alias: Alias = Alias.NO_ALIAS,
        unit: str = "",
        display_unit: str = "",
        nominal: float = 1.0,
        min: float = -np.inf,
        max: float = np.inf,
        start: float = 0.0,
        derivative_start: float = 0.0,
        free: bool = False,
    ) -> None:
        self.name = name
        self.value_reference = value_reference
        self.causality = causality
        self.variability = variability
        self.alias = alias
        self.unit = unit
        self.display_unit = display_unit
        self.nominal = nominal
        self.min = float(min)
        self.max = float(max)
        self.start = float(start)
        self.derivative_start = float(derivative_start)
        self.free = free
        self.role: Optional[Role] = None
        self._var = cs.SX.sym(name)
        self._der: Optional[cs.SX] = None
        self._timed: dict[float, cs.SX] = {}

    @property
    def nominal(self) -> float:
        """Gets the nominal value of the variable."""
        return self._nominal

    @nominal.setter
    def nominal(self, value: float) -> None:
        value = float(value)
        if value == 0.0 or not np.isfinite(value):
            raise ModelingError(f"Invalid nominal value {value} for '{self.name}'.")
        self._nominal = value

    @property
    def var(self) -> cs.SX:
        """Gets the symbol of the variable."""
        return self._var

    @property
    def has_der(self) -> bool:
        """Gets whether the time derivative of the variable has been created."""
        return self._der is not None

    def der(self) -> cs.SX:
        """Gets the symbol of the time derivative of the variable, creating it if
        needed."""
        if self._der is None:
            self._der = cs.SX.sym(f"der({self.name})")
        return self._der

    def clear_der(self) -> None:
        """Forgets the time derivative of the variable, e.g., when it becomes
        algebraic."""
        self._der = None

    def highest(self) -> cs.SX:
        """Gets the highest-order time derivative of the variable in the model, i.e.,
        its derivative, if any, or the variable itself."""
        return self.var if self._der is None else self._der

    def at_time(self, t: float) -> cs.SX:
        """Gets the symbol of the value of the variable at the time instant ``t``."""
        t = float(t)
        sym = self._timed.get(t)
        if sym is None:
            sym = self._timed[t] = cs.SX.sym(f"{self.name}({t:g})")
        return sym

    @property
    def timed(self) -> dict[float, cs.SX]:
        """Gets the symbols of the values at time instants created so far."""
        return self._timed

    @property
    def scaled_start(self) -> float:
        return self.start / self._nominal

    @property
    def scaled_derivative_start(self) -> float:
        return self.derivative_start / self._nominal

    @property
    def scaled_min(self) -> float:
        return self.min / self._nominal

    @property
    def scaled_max(self) -> float:
        return self.max / self._nominal

    @property
    def is_bounded(self) -> bool:
        """Gets whether any of the bounds of the variable is finite."""
        return bool(np.isfinite(self.min) or np.isfinite(self.max))

    def __str__(self) -> str:
        return self.name

    def __repr__(self) -> str:
        role = "unclassified" if self.role is None else self.role.value
        return f"<{self.__class__.__name__} '{self.name}' ({role})>"
