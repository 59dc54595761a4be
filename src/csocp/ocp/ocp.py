import logging
from collections.abc import Iterator, Mapping
from itertools import count
from types import MappingProxyType
from typing import Any, ClassVar, Optional, Union

from ..core.errors import ConfigurationError
from ..core.options import OptionSpec, validate_options
from .ingestion import ModelDescription
from .structure import HasStructure

logger = logging.getLogger(__name__)

OCP_OPTIONS = MappingProxyType(
    {
        "scale_variables": OptionSpec(
            bool, True, "Scale the variables by their nominal values."
        ),
        "eliminate_dependent": OptionSpec(
            bool, True, "Substitute the dependent variables into all the equations."
        ),
        "scale_equations": OptionSpec(
            bool, True, "Scale the implicit equations by their jacobian at the start."
        ),
        "detect_algebraic": OptionSpec(
            bool, False, "Turn states whose derivative never appears into algebraic."
        ),
        "sort_blt": OptionSpec(
            bool, False, "Sort the implicit equations in block-lower-triangular form."
        ),
        "fully_explicit": OptionSpec(
            bool, False, "Make the implicit equations explicit (implies sort_blt)."
        ),
        "separate_quadratures": OptionSpec(
            bool, False, "Turn states only the objective depends on into quadratures."
        ),
        "linear_solver": OptionSpec(
            str, "qr", "Linear solver plugin for affine blocks larger than 3x3."
        ),
        "newton_iterations": OptionSpec(
            int, 3, "Newton iterations used to make nonlinear blocks explicit."
        ),
        "newton_tol": OptionSpec(
            (float, int), 1e-8, "Residual below which Newton iterations stop early."
        ),
        "exact_newton": OptionSpec(
            bool, True, "Update the jacobian at each Newton iteration."
        ),
        "verbose": OptionSpec(
            bool, False, "Log the stages of the processing at the INFO level."
        ),
    }
)
"""Options recognized by :class:`FlatOcp`."""


class FlatOcp(HasStructure):
    """A flat optimal control problem, i.e., a DAE system given as unordered lists of
    equations over tagged variables, together with its objective and path constraints.
    At construction, the description of the model is ingested and processed by a
    pipeline of stages, each enabled by an option (see :data:`OCP_OPTIONS`), in the
    following order:

    1. parsing and classification of the variables (always)
    2. resolution of the interdependencies of the dependent variables (always)
    3. elimination of the dependent variables (``eliminate_dependent``)
    4. detection of algebraic states (``detect_algebraic``)
    5. scaling of the variables (``scale_variables``) and of the implicit equations
       (``scale_equations``)
    6. sorting of the implicit equations in BLT form (``sort_blt``)
    7. making explicit the implicit equations (``fully_explicit``)
    8. separation of the quadrature states (``separate_quadratures``).

    The stages are also available as methods, e.g., to be run on problems built with
    all options disabled.

    Parameters
    ----------
    description : ModelDescription or dict
        The description of the model, or a mapping that can be converted to one via
        :meth:`ModelDescription.from_dict`.
    opts : dict, optional
        Options of the problem; see :data:`OCP_OPTIONS` for the recognized ones.
    name : str, optional
        Name of the problem. If `None`, it is automatically assigned.

    Raises
    ------
    ConfigurationError
        Raises if the options are inconsistent, or if a tag in the description is not
        recognized.
    ModelingError
        Raises if the model is not consistent (see :meth:`HasEquations.parse`).
    PluginNotFoundError
        Raises if the linear solver is not registered.
    ValueError
        Raises if an option is not recognized.
    TypeError
        Raises if an option has a value of the wrong type.
    """

    __ids: ClassVar[Iterator[int]] = count(0)

    def __init__(
        self,
        description: Union[ModelDescription, Mapping[str, Any]],
        opts: Optional[Mapping[str, Any]] = None,
        name: Optional[str] = None,
    ) -> None:
        id = next(self.__ids)
        self.name = f"{self.__class__.__name__}{id}" if name is None else name
        self.id = id
        opts = validate_options(opts, OCP_OPTIONS)
        if opts["scale_equations"] and not opts["scale_variables"]:
            raise ConfigurationError(
                "Option 'scale_equations' requires option 'scale_variables'."
            )
        if opts["newton_iterations"] < 1:
            raise ConfigurationError(
                "Option 'newton_iterations' must be positive; got "
                f"{opts['newton_iterations']} instead."
            )
        super().__init__(
            opts["verbose"],
            opts["linear_solver"],
            opts["newton_iterations"],
            float(opts["newton_tol"]),
            opts["exact_newton"],
        )
        self._opts = opts
        if not isinstance(description, ModelDescription):
            description = ModelDescription.from_dict(description)
        self._process(description)

    @property
    def opts(self) -> MappingProxyType:
        """Gets the (read-only) options of the problem."""
        return self._opts

    @property
    def dimensions(self) -> dict[str, int]:
        """Gets the number of variables of each category."""
        return {
            name: len(getattr(self, name))
            for name in ("x", "xd", "xa", "q", "y", "p", "u")
        }

    def _process(self, description: ModelDescription) -> None:
        """Internal utility that runs the pipeline of stages enabled by the options."""
        opts = self._opts
        self.parse(description)
        self.eliminate_interdependencies()
        if opts["eliminate_dependent"]:
            self.eliminate_dependent()
        if opts["detect_algebraic"]:
            self.detect_algebraic()
        if opts["scale_variables"]:
            self.scale_variables()
        if opts["scale_equations"]:
            self.scale_equations()
        if opts["sort_blt"] or opts["fully_explicit"]:
            self.sort_blt()
        if opts["fully_explicit"]:
            self.make_explicit()
        if opts["separate_quadratures"]:
            self.separate_quadratures()
        logger.log(self._log_level, "%s processed: %s", self.name, self.dimensions)

    def __str__(self) -> str:
        dims = self.dimensions
        lines = [
            f"{self.name}: "
            + ", ".join(f"{n}: {d}" for n, d in dims.items())
            + f", t0: {self.t0:g}, tf: {self.tf:g}",
            "",
            "Variables",
            f"t = {self.t}",
        ]
        for name in dims:
            variables = getattr(self, name)
            if variables:
                lines.append(f"{name} = [{', '.join(v.name for v in variables)}]")
        lines.append("")
        lines.extend(self._describe_equations())
        return "\n".join(lines)

    def __repr__(self) -> str:
        dims = ",".join(f"{n}={d}" for n, d in self.dimensions.items())
        return f"<{self.__class__.__name__}: {self.name}({dims})>"
