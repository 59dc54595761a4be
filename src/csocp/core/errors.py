"""Exceptions and warnings raised throughout the package. Fatal problems are signalled
by exceptions (all of which derive from the built-in exception that best describes
them, so that they can be caught generically too), while recoverable issues are
reported with :func:`warnings.warn` and the warning categories below."""


class ConfigurationError(ValueError):
    """Raised when an unknown or contradictory tag (variability, causality, alias,
    expression node or constraint kind) is met while ingesting a model."""


class ModelingError(ValueError):
    """Raised when the model is inconsistent, e.g., a variable is defined twice, an
    undefined variable is referenced, or a non-free parameter is found."""


class CyclicDependencyError(ModelingError):
    """Raised when the definitions of the dependent variables reference each other in a
    cycle, so that they cannot be resolved by substitution."""

    def __init__(self, cycle: list[str]) -> None:
        self.cycle = cycle
        super().__init__(
            "Cyclic definition of dependent variables: " + " -> ".join(cycle) + "."
        )


class SignatureMismatchError(ValueError):
    """Raised when a (synthesized or user-supplied) function has a wrong number of
    inputs or outputs."""

    def __init__(self, name: str, what: str, expected: int, actual: int) -> None:
        self.name = name
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Wrong number of {what} to the '{name}' function: expected {expected}, "
            f"got {actual}."
        )


class IllPosedProblemError(ValueError):
    """Raised when the bounds of an NLP are infeasible by construction, i.e., when
    ``lbx > ubx``, ``lbg > ubg`` or when lower (upper) bounds are ``+inf`` (``-inf``).
    """


class PluginNotFoundError(KeyError):
    """Raised when a plugin is requested by a name that was never registered."""

    def __str__(self) -> str:
        # KeyError quotes its argument, which garbles the message
        return str(self.args[0]) if self.args else ""


class StructuralDegeneracyWarning(UserWarning):
    """Warns that no scaling factor could be computed for an equation, and that the
    default factor of ``1.0`` is used instead."""


class NewtonConvergenceWarning(UserWarning):
    """Warns that the fixed number of Newton iterations used to make a nonlinear block
    explicit did not reduce its residual below the requested tolerance."""
