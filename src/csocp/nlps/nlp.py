import logging
import warnings
from collections.abc import Iterator, Mapping
from itertools import count
from types import MappingProxyType
from typing import Any, ClassVar, Optional, Union

import casadi as cs
import numpy as np
import numpy.typing as npt

from ..core.options import OptionSpec, validate_options
from .bounds import NlpBounds, check_initial_bounds, check_inputs, report_constraints
from .derivatives import NlpDerivatives, check_arity

logger = logging.getLogger(__name__)

FloatArray = npt.NDArray[np.floating]

NLP_OPTIONS = MappingProxyType(
    {
        "expand": OptionSpec(
            bool, False, "Re-express the NLP in scalar operations (SX) at construction."
        ),
        "hess_lag": OptionSpec(
            cs.Function, None, "User-provided hessian of the Lagrangian."
        ),
        "grad_lag": OptionSpec(
            cs.Function, None, "User-provided gradient of the Lagrangian."
        ),
        "jac_g": OptionSpec(
            cs.Function, None, "User-provided jacobian of the constraints."
        ),
        "grad_f": OptionSpec(
            cs.Function, None, "User-provided gradient of the objective."
        ),
        "jac_f": OptionSpec(
            cs.Function, None, "User-provided jacobian of the objective."
        ),
        "warn_initial_bounds": OptionSpec(
            bool, False, "Warn if the initial guess does not satisfy LBX and UBX."
        ),
        "eval_errors_fatal": OptionSpec(
            bool, False, "Raise, instead of warning, on non-finite evaluations."
        ),
        "ignore_check_vec": OptionSpec(
            bool, False, "Accept matrices in place of vectors as numerical inputs."
        ),
    }
)
"""Options recognized by :class:`Nlp`."""


class Nlp:
    r"""A nonlinear program given as a single symbolic function ``(x, p) -> (f, g)``,
    where ``x`` are the primal variables, ``p`` the parameters, ``f`` the scalar
    objective and ``g`` the constraints, i.e.,

    .. math::
        \min_x f(x, p) \quad \text{s.t.} \quad
        lbx \leq x \leq ubx, \; lbg \leq g(x,p) \leq ubg.

    This class does not solve the problem, but provides the sensitivities and the input
    checks a numerical solver needs.

    Parameters
    ----------
    nlp : casadi.Function
        The NLP function, with exactly two inputs ``(x, p)`` and two outputs ``(f, g)``.
    opts : dict, optional
        Options of the NLP; see :data:`NLP_OPTIONS` for the recognized ones.
    name : str, optional
        Name of the NLP. If `None`, it is automatically assigned.

    Raises
    ------
    SignatureMismatchError
        Raises if the function does not have two inputs and two outputs.
    ValueError
        Raises if the objective is not scalar, or if an option is not recognized.
    TypeError
        Raises if an option has a value of the wrong type.
    """

    __ids: ClassVar[Iterator[int]] = count(0)

    def __init__(
        self,
        nlp: cs.Function,
        opts: Optional[Mapping[str, Any]] = None,
        name: Optional[str] = None,
    ) -> None:
        id = next(self.__ids)
        self.name = f"{self.__class__.__name__}{id}" if name is None else name
        self.id = id
        self._opts = validate_options(opts, NLP_OPTIONS)
        check_arity("nlp", nlp, 2, 2)
        if not nlp.sparsity_out(0).is_scalar():
            raise ValueError(
                f"Objective must be scalar; got shape {nlp.size_out(0)} instead."
            )
        if self._opts["expand"]:
            if nlp.is_a("MXFunction"):
                logger.info("Expanding NLP function in scalar operations")
                nlp = nlp.expand()
            else:
                warnings.warn(
                    "Cannot expand the NLP as it is not an MX function.",
                    stacklevel=2,
                )
        self._function = nlp
        self._derivatives = NlpDerivatives(self)
        self._bounds = NlpBounds(
            self.nx, self.ng, self.np, self._opts["ignore_check_vec"]
        )

    @property
    def function(self) -> cs.Function:
        """Gets the NLP function ``(x, p) -> (f, g)``."""
        return self._function

    @property
    def opts(self) -> MappingProxyType:
        """Gets the (read-only) options of the NLP."""
        return self._opts

    @property
    def nx(self) -> int:
        """Number of primal variables."""
        return self._function.nnz_in(0)

    @property
    def np(self) -> int:
        """Number of parameters."""
        return self._function.nnz_in(1)

    @property
    def ng(self) -> int:
        """Number of constraints."""
        return self._function.nnz_out(1)

    @property
    def bounds(self) -> NlpBounds:
        """Gets the numerical inputs, i.e., bounds, initial guesses and parameters."""
        return self._bounds

    @property
    def derivatives(self) -> NlpDerivatives:
        """Gets the cache of derivative functions of this NLP."""
        return self._derivatives

    def grad_f(self) -> cs.Function:
        """See :meth:`csocp.nlps.derivatives.NlpDerivatives.grad_f`."""
        return self._derivatives.grad_f()

    def jac_f(self) -> cs.Function:
        """See :meth:`csocp.nlps.derivatives.NlpDerivatives.jac_f`."""
        return self._derivatives.jac_f()

    def jac_g(self) -> Optional[cs.Function]:
        """See :meth:`csocp.nlps.derivatives.NlpDerivatives.jac_g`."""
        return self._derivatives.jac_g()

    def grad_lag(self) -> cs.Function:
        """See :meth:`csocp.nlps.derivatives.NlpDerivatives.grad_lag`."""
        return self._derivatives.grad_lag()

    def hess_lag(self) -> cs.Function:
        """See :meth:`csocp.nlps.derivatives.NlpDerivatives.hess_lag`."""
        return self._derivatives.hess_lag()

    def sp_hess_lag(self) -> cs.Sparsity:
        """See :meth:`csocp.nlps.derivatives.NlpDerivatives.sp_hess_lag`."""
        return self._derivatives.sp_hess_lag()

    def check_initial_bounds(self) -> None:
        """Detects whether the problem is ill-posed because of its bounds. See
        :func:`csocp.nlps.bounds.check_initial_bounds`."""
        check_initial_bounds(self._bounds, self._opts["warn_initial_bounds"])

    def check_inputs(self) -> None:
        """Checks the consistency of the bounds. See
        :func:`csocp.nlps.bounds.check_inputs`."""
        check_inputs(self._bounds)

    def evaluate(
        self,
        x: Union[None, npt.ArrayLike, cs.DM] = None,
        p: Union[None, npt.ArrayLike, cs.DM] = None,
    ) -> tuple[float, FloatArray]:
        """Evaluates the objective and the constraints numerically.

        Parameters
        ----------
        x, p : array_like, optional
            Primal variables and parameters. By default, the initial guess ``x0`` and
            the parameters ``p`` stored in :meth:`bounds` are used.

        Returns
        -------
        tuple of float and array
            The objective and the constraints.

        Raises
        ------
        ValueError
            Raises if the evaluation yields non-finite values and option
            ``eval_errors_fatal`` is set; otherwise, a warning is issued.
        """
        x = self._bounds.x0 if x is None else x
        p = self._bounds.p if p is None else p
        f, g = self._function(x, p)
        f = float(f)
        g = g.full().reshape(-1, order="F")
        if not (np.isfinite(f) and np.isfinite(g).all()):
            msg = f"Non-finite evaluation of NLP '{self.name}'."
            if self._opts["eval_errors_fatal"]:
                raise ValueError(msg)
            warnings.warn(msg, RuntimeWarning, stacklevel=2)
        return f, g

    def report_constraints(
        self,
        x: Union[npt.ArrayLike, cs.DM],
        g: Union[npt.ArrayLike, cs.DM],
        tol: float = 1e-8,
    ) -> str:
        """Reports the violations of the bounds on the primal variables ``x`` and on the
        constraints ``g``, e.g., at the solution returned by a solver.

        Parameters
        ----------
        x, g : array_like or casadi.DM
            Values of the primal variables and of the constraints.
        tol : float, optional
            Tolerance on the violations, by default ``1e-8``.

        Returns
        -------
        str
            The report.
        """
        b = self._bounds
        return "\n".join(
            (
                report_constraints(x, b.lbx, b.ubx, "decision bounds", tol),
                report_constraints(g, b.lbg, b.ubg, "constraints", tol),
            )
        )

    def __str__(self) -> str:
        """Returns the NLP name and a short description."""
        return f"{self.name}(nx={self.nx}, ng={self.ng}, np={self.np})"

    def __repr__(self) -> str:
        """Returns the string representation of the NLP."""
        return (
            f"{self.__class__.__name__} {{\n  name: {self.name}\n"
            f"  function: {self._function}\n}}"
        )
