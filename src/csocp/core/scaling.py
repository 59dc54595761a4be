"""A collection of classes and functions to nondimensionalize the variables and the
equations of a model. Variables are scaled by their nominal value, i.e.,

.. math:: v = v_{nom} \\, v_{scaled},

so that :math:`v_{scaled}` is expected to be of unit order of magnitude, while each
equation is divided by the largest absolute entry of its row in the jacobian."""

from collections.abc import Iterable
from typing import Optional, Union

import casadi as cs
import numpy as np
import numpy.typing as npt

from .errors import ModelingError


class NominalScaler(dict[str, float]):
    r"""Class for scaling of model variables by their nominal values. It suffices to
    register the nominal value of each variable, and then it can be easily (un-)scaled
    according to

    .. math:: v_{scaled} = \frac{v}{v_{nom}}.

    Quantities need not be numerical, and can be of any type that supports basic
    algebraic operations, e.g., CasADi symbols.

    Parameters
    ----------
    d : dict of (str, float), optional
        A possible non-empty dict of variable names with the corresponding nominals.
    """

    def __init__(self, d: Optional[dict[str, float]] = None) -> None:
        super().__init__()
        if d is not None:
            for k, v in d.items():
                self.register(k, v)

    def register(self, name: str, nominal: float = 1.0) -> None:
        """Registers the nominal value of the variable ``name``.

        Parameters
        ----------
        name : str
            Name of the variable.
        nominal : float, optional
            Nominal value, by default ``1.0``.

        Raises
        ------
        KeyError
            Raises if ``name`` is duplicated.
        ModelingError
            Raises if the nominal value is zero or not finite.
        """
        if name in self:
            raise KeyError(f"'{name}' already registered for scaling.")
        if nominal == 0 or not np.isfinite(nominal):
            raise ModelingError(f"Invalid nominal value {nominal} for '{name}'.")
        self[name] = float(nominal)

    def scale(self, name: str, v: npt.ArrayLike) -> npt.ArrayLike:
        """Scales the value ``v`` of variable ``name``, i.e., divides it by the
        nominal."""
        return v / self[name]  # type: ignore[operator]

    def unscale(self, name: str, v: npt.ArrayLike) -> npt.ArrayLike:
        """Unscales the value ``v`` of variable ``name``, i.e., multiplies it by the
        nominal."""
        return v * self[name]  # type: ignore[operator]

    def substitution(
        self, symbols: Iterable[tuple[str, Union[cs.SX, cs.MX]]]
    ) -> tuple[list[Union[cs.SX, cs.MX]], list[Union[cs.SX, cs.MX]]]:
        """Builds the lists of old and new expressions to pass to
        :func:`casadi.substitute` to express each symbol in terms of its scaled
        counterpart, i.e., ``v -> nominal * v``. Symbols whose nominal is ``1`` are
        skipped.

        Parameters
        ----------
        symbols : iterable of (str, casadi.SX or MX)
            Pairs of registered name and symbol to scale with that name's nominal.

        Returns
        -------
        tuple of 2 lists
            The old symbols and their replacements.
        """
        old, new = [], []
        for name, sym in symbols:
            nominal = self[name]
            if nominal != 1.0:
                old.append(sym)
                new.append(nominal * sym)
        return old, new

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__}: {super().__repr__()}>"


def equation_scaling(
    jac: Union[npt.ArrayLike, cs.DM],
) -> tuple[npt.NDArray[np.floating], npt.NDArray[np.int_]]:
    """Computes the scaling factor of each equation as the maximum absolute value of the
    finite entries in the corresponding row of the jacobian. Not-a-number and infinite
    entries are ignored.

    Parameters
    ----------
    jac : array_like or casadi.DM
        The numerical jacobian of the equations (rows) w.r.t. the variables (columns).

    Returns
    -------
    tuple of 2 arrays
        The positive scaling factors, one per row, and the indices of the rows for which
        no finite nonzero entry was found. For these rows, the factor defaults to ``1``.
    """
    J = jac.full() if isinstance(jac, cs.DM) else np.asarray(jac, dtype=float)
    J = np.atleast_2d(J)
    absJ = np.where(np.isfinite(J), np.abs(J), 0.0)
    scale = absJ.max(axis=1, initial=0.0)
    degenerate = np.flatnonzero(scale == 0.0)
    scale[degenerate] = 1.0
    return scale, degenerate
