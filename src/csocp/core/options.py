"""Validation of the option dicts accepted by :class:`csocp.Nlp` and
:class:`csocp.FlatOcp`. Each class declares a table of recognized options, mapping the
option name to its expected type(s) and default value."""

from collections.abc import Mapping
from types import MappingProxyType
from typing import Any, NamedTuple, Optional, Union


class OptionSpec(NamedTuple):
    """Specification of a recognized option."""

    types: Union[type, tuple[type, ...]]
    """Accepted type(s) of the option's value."""

    default: Any
    """Default value of the option. ``None`` means the option is unset by default."""

    description: str
    """Human-readable description of the option."""


def validate_options(
    opts: Optional[Mapping[str, Any]], table: Mapping[str, OptionSpec]
) -> MappingProxyType:
    """Validates the given options against a table of recognized ones, and fills in the
    defaults of those that were not given.

    Parameters
    ----------
    opts : mapping of (str, Any), optional
        The user-provided options.
    table : mapping of (str, OptionSpec)
        The recognized options.

    Returns
    -------
    MappingProxyType
        A read-only dict with all the recognized options.

    Raises
    ------
    ValueError
        Raises if an option is not recognized.
    TypeError
        Raises if an option has a value of the wrong type.
    """
    out = {name: spec.default for name, spec in table.items()}
    if opts is None:
        return MappingProxyType(out)
    for name, value in opts.items():
        spec = table.get(name)
        if spec is None:
            raise ValueError(
                f"Unknown option '{name}'; recognized options are: "
                + ", ".join(sorted(table))
                + "."
            )
        # bools are ints, so do not accept them where numbers are expected
        types = spec.types if isinstance(spec.types, tuple) else (spec.types,)
        if (
            value is not None
            and not isinstance(value, types)
            or (isinstance(value, bool) and bool not in types)
        ):
            names = " or ".join(t.__name__ for t in types)
            raise TypeError(
                f"Option '{name}' must be of type {names}; got "
                f"{value.__class__.__name__} instead."
            )
        out[name] = value
    return MappingProxyType(out)


def describe_options(table: Mapping[str, OptionSpec]) -> str:
    """Returns a human-readable description of a table of options."""
    lines = []
    for name, spec in table.items():
        types = spec.types if isinstance(spec.types, tuple) else (spec.types,)
        names = "|".join(t.__name__ for t in types)
        lines.append(f"{name} ({names}, default {spec.default!r}): {spec.description}")
    return "\n".join(lines)
