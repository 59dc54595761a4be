"""Classes and functions to store and validate the numerical inputs of an NLP solver,
i.e., the bounds on the primal variables and on the constraints, the initial guesses of
the primal and dual variables, and the values of the parameters."""

import warnings
from typing import Union

import casadi as cs
import numpy as np
import numpy.typing as npt

from ..core.data import to_vector
from ..core.errors import IllPosedProblemError

_FIELDS = {
    # name: (dimension, default)
    "x0": ("nx", 0.0),
    "lbx": ("nx", -np.inf),
    "ubx": ("nx", np.inf),
    "lbg": ("ng", -np.inf),
    "ubg": ("ng", np.inf),
    "lam_x0": ("nx", 0.0),
    "lam_g0": ("ng", 0.0),
    "p": ("np", 0.0),
}


class NlpBounds:
    """Numerical inputs to an NLP solver, each stored as a 1D float vector matching the
    number of primal variables ``nx``, of constraints ``ng`` or of parameters ``np``.

    Parameters
    ----------
    nx, ng, np : int
        Number of primal variables, constraints and parameters, respectively.
    ignore_check_vec : bool, optional
        If ``True``, values that are matrices (and not vectors) are accepted as long as
        their number of elements is right. By default, ``False``.
    **values : array_like
        Initial values for any of ``x0``, ``lbx``, ``ubx``, ``lbg``, ``ubg``,
        ``lam_x0``, ``lam_g0`` and ``p``. By default, bounds are infinite, and initial
        guesses and parameters are zero.
    """

    def __init__(
        self,
        nx: int,
        ng: int,
        np: int,
        ignore_check_vec: bool = False,
        **values: Union[npt.ArrayLike, cs.DM],
    ) -> None:
        self.nx = nx
        self.ng = ng
        self.np = np
        self.ignore_check_vec = ignore_check_vec
        self._data: dict[str, npt.NDArray[np.floating]] = {}
        for name, (dim, default) in _FIELDS.items():
            self._data[name] = to_vector(default, getattr(self, dim), name)
        self.update(**values)

    def update(self, **values: Union[npt.ArrayLike, cs.DM]) -> None:
        """Sets the values of some of the inputs.

        Raises
        ------
        KeyError
            Raises if the name of an input is not recognized.
        ValueError
            Raises if a value has the wrong number of elements.
        """
        for name, value in values.items():
            if name not in _FIELDS:
                raise KeyError(f"Unknown NLP input '{name}'.")
            n = getattr(self, _FIELDS[name][0])
            self._data[name] = to_vector(
                value, n, name, strict=not self.ignore_check_vec
            )

    def __getattr__(self, name: str) -> npt.NDArray[np.floating]:
        if name in _FIELDS:
            return self.__dict__["_data"][name]
        raise AttributeError(
            f"'{self.__class__.__name__}' object has no attribute '{name}'"
        )

    def __setattr__(self, name: str, value: object) -> None:
        if name in _FIELDS:
            self.update(**{name: value})
        else:
            super().__setattr__(name, value)

    def as_dict(self) -> dict[str, npt.NDArray[np.floating]]:
        """Gets the inputs in a dict, e.g., to be passed as keyword arguments to a
        CasADi NLP solver."""
        return {k: v.copy() for k, v in self._data.items()}

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}(nx={self.nx}, ng={self.ng}, np={self.np})"
        )


def _scan_ill_posed(
    lb: npt.NDArray[np.floating], ub: npt.NDArray[np.floating], what: str
) -> list[str]:
    """Internal utility that returns the violations of a pair of bound arrays."""
    LB, UB = f"LB{what}", f"UB{what}"
    violations = []
    for i, (lo, up) in enumerate(zip(lb, ub)):
        if lo == np.inf:
            violations.append(f"{LB}=+inf at index {i}")
        elif lo > up:
            violations.append(
                f"{LB}<={UB} violated at index {i} ({LB}[{i}]={lo}, {UB}[{i}]={up})"
            )
        elif up == -np.inf:
            violations.append(f"{UB}=-inf at index {i}")
    return violations


def check_initial_bounds(bounds: NlpBounds, warn_initial_bounds: bool = False) -> None:
    """Detects ill-posed problems, i.e., problems whose bounds on the primal variables
    or on the constraints are infeasible by construction. Both bound arrays are scanned
    completely before reporting.

    Parameters
    ----------
    bounds : NlpBounds
        The inputs to check.
    warn_initial_bounds : bool, optional
        If ``True``, warns if the initial guess ``x0`` does not satisfy ``lbx`` and
        ``ubx``. By default, ``False``.

    Raises
    ------
    IllPosedProblemError
        Raises if any lower bound is ``+inf``, any upper bound is ``-inf``, or any lower
        bound is greater than the corresponding upper bound.
    """
    x_violations = _scan_ill_posed(bounds.lbx, bounds.ubx, "X")
    g_violations = _scan_ill_posed(bounds.lbg, bounds.ubg, "G")
    if x_violations or g_violations:
        msgs = []
        if x_violations:
            msgs.append(
                "Ill-posed problem detected (x bounds): " + "; ".join(x_violations)
            )
        if g_violations:
            msgs.append(
                "Ill-posed problem detected (g bounds): " + "; ".join(g_violations)
            )
        raise IllPosedProblemError("\n".join(msgs))

    if warn_initial_bounds and np.any(
        (bounds.x0 > bounds.ubx) | (bounds.x0 < bounds.lbx)
    ):
        warnings.warn(
            "The initial guess does not satisfy LBX and UBX. Option "
            "'warn_initial_bounds' controls this warning.",
            stacklevel=2,
        )


def _first_violation(
    lb: npt.NDArray[np.floating], ub: npt.NDArray[np.floating], what: str
) -> Union[str, None]:
    """Internal utility that returns the message of the first ``lb > ub`` entry."""
    idx = np.flatnonzero(~(lb <= ub))
    if idx.size == 0:
        return None
    i = idx[0]
    return (
        f"LB{what}<=UB{what} violated at index {i}: got LB{what}[{i}]={lb[i]} and "
        f"UB{what}[{i}]={ub[i]}."
    )


def check_inputs(bounds: NlpBounds) -> None:
    """Checks that ``lbx <= ubx`` and ``lbg <= ubg`` element-wise. The two pairs of
    arrays are checked independently of each other.

    Parameters
    ----------
    bounds : NlpBounds
        The inputs to check.

    Raises
    ------
    IllPosedProblemError
        Raises naming, for each pair of arrays, the first index at which the lower bound
        exceeds the upper bound, together with both values.
    """
    msgs = [
        m
        for m in (
            _first_violation(bounds.lbx, bounds.ubx, "X"),
            _first_violation(bounds.lbg, bounds.ubg, "G"),
        )
        if m is not None
    ]
    if msgs:
        raise IllPosedProblemError("\n".join(msgs))


def report_constraints(
    values: Union[npt.ArrayLike, cs.DM],
    lb: npt.ArrayLike,
    ub: npt.ArrayLike,
    name: str = "constraints",
    tol: float = 1e-8,
) -> str:
    """Reports which entries of ``values`` violate their bounds by more than ``tol``.

    Parameters
    ----------
    values : array_like or casadi.DM
        Values to check, e.g., the optimal primal variables or constraints.
    lb, ub : array_like
        Lower and upper bounds of the values.
    name : str, optional
        Name of the values in the report, by default ``"constraints"``.
    tol : float, optional
        Tolerance on the violation, by default ``1e-8``.

    Returns
    -------
    str
        A multi-line report, listing one violation per line.
    """
    if isinstance(values, cs.DM):
        values = values.full()
    v = np.asarray(values, dtype=float).reshape(-1, order="F")
    lb = np.broadcast_to(np.asarray(lb, dtype=float).reshape(-1), v.shape)
    ub = np.broadcast_to(np.asarray(ub, dtype=float).reshape(-1), v.shape)
    lines = [f"Reporting {name} ({v.size} entries, tolerance {tol:g})"]
    violated = np.flatnonzero((v < lb - tol) | (v > ub + tol))
    for i in violated:
        lines.append(f"  {i}: {lb[i]:g} <= {v[i]:g} <= {ub[i]:g} violated")
    if violated.size == 0:
        lines.append("  all entries satisfy their bounds")
    return "\n".join(lines)
