"""Registries of named plugins. A :class:`Registry` maps a plugin name to a factory that
creates the plugin, so that plugins can be selected by name (e.g., through options).

The module populates at import time the registry of linear solvers,
:data:`linsol_plugins`, whose factories take no arguments and return a function
``solve(A, b)`` that symbolically solves the square linear system ``A x = b``."""

from collections.abc import Iterator
from typing import Callable, Generic, TypeVar, Union

import casadi as cs

from .errors import PluginNotFoundError

PluginType = TypeVar("PluginType")
SymType = TypeVar("SymType", cs.SX, cs.MX)


class Registry(Generic[PluginType]):
    """Explicit mapping from plugin names to factories of plugins.

    Parameters
    ----------
    kind : str
        Kind of plugins stored in the registry, used in error messages.
    """

    def __init__(self, kind: str) -> None:
        self.kind = kind
        self._factories: dict[str, Callable[[], PluginType]] = {}

    def register(
        self, name: str, factory: Union[Callable[[], PluginType], None] = None
    ) -> Callable:
        """Registers a new factory under the given name. Can be used as a decorator.

        Parameters
        ----------
        name : str
            Name of the plugin.
        factory : callable, optional
            The factory of the plugin. If ``None``, a decorator is returned instead.

        Raises
        ------
        ValueError
            Raises if a plugin with the same name is already registered.
        """

        def decorating_function(
            factory: Callable[[], PluginType],
        ) -> Callable[[], PluginType]:
            if name in self._factories:
                raise ValueError(f"{self.kind} plugin '{name}' already registered.")
            self._factories[name] = factory
            return factory

        if factory is None:
            return decorating_function
        return decorating_function(factory)

    def has(self, name: str) -> bool:
        """Checks whether a plugin is registered under ``name``."""
        return name in self._factories

    def create(self, name: str) -> PluginType:
        """Creates an instance of the plugin registered under ``name``.

        Raises
        ------
        PluginNotFoundError
            Raises if no plugin is registered under ``name``.
        """
        factory = self._factories.get(name)
        if factory is None:
            available = ", ".join(sorted(self._factories)) or "none"
            raise PluginNotFoundError(
                f"No {self.kind} plugin named '{name}' (available: {available})."
            )
        return factory()

    def __contains__(self, name: object) -> bool:
        return name in self._factories

    def __iter__(self) -> Iterator[str]:
        return iter(self._factories)

    def __len__(self) -> int:
        return len(self._factories)

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__}({self.kind}): {sorted(self._factories)}>"


LinsolType = Callable[[SymType, SymType], SymType]

linsol_plugins: Registry[LinsolType] = Registry("linsol")
"""Registry of symbolic linear solvers, i.e., factories of ``solve(A, b)``."""


@linsol_plugins.register("inverse")
def _inverse() -> LinsolType:
    """Explicit inversion, only advisable for very small systems."""
    return lambda A, b: cs.mtimes(cs.inv(A), b)


@linsol_plugins.register("qr")
def _qr() -> LinsolType:
    """CasADi's default symbolic solve, i.e., a QR factorization for ``SX``."""
    return lambda A, b: cs.solve(A, b)


@linsol_plugins.register("symbolicqr")
def _symbolicqr() -> LinsolType:
    """QR factorization with sparsity-based reordering without partial pivoting, via
    the ``symbolicqr`` linear solver plugin of CasADi. Requires ``MX`` expressions."""
    return lambda A, b: cs.solve(A, b, "symbolicqr", {})
