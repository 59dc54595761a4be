"""Lazy synthesis and caching of the sensitivity functions an NLP solver needs, i.e.,
the gradient and jacobian of the objective, the jacobian of the constraints, and the
gradient, hessian and hessian sparsity of the Lagrangian. Each of them is built at most
once per :class:`csocp.Nlp` instance, either from a user-provided function or by
automatic differentiation of the NLP function, and validated against a fixed
signature."""

import logging
import weakref
from types import MappingProxyType
from typing import TYPE_CHECKING, Callable, Optional, Union

import casadi as cs

from ..core.cache import LazySlots
from ..core.errors import SignatureMismatchError

if TYPE_CHECKING:
    from .nlp import Nlp

logger = logging.getLogger(__name__)

SIGNATURES = MappingProxyType(
    {
        "grad_f": (("x", "p"), ("grad", "f", "g")),
        "jac_f": (("x", "p"), ("jac", "f", "g")),
        "jac_g": (("x", "p"), ("jac", "f", "g")),
        "grad_lag": (("x", "p", "lam_f", "lam_g"), ("f", "g", "grad_x", "grad_p")),
        "hess_lag": (
            ("x", "p", "lam_f", "lam_g"),
            ("hess", "f", "g", "grad_x", "grad_p"),
        ),
    }
)
"""Canonical input and output names of each derivative function. Their number is the
arity every (synthesized or user-provided) function must have."""


def symbolic_inputs(func: cs.Function) -> list[Union[cs.SX, cs.MX]]:
    """Creates symbolic inputs for the given function, in ``SX`` if the function is an
    ``SX`` function, and in ``MX`` otherwise."""
    return func.sx_in() if func.is_a("SXFunction") else func.mx_in()


def check_arity(name: str, func: cs.Function, n_in: int, n_out: int) -> None:
    """Checks that the function has the expected number of inputs and outputs.

    Raises
    ------
    SignatureMismatchError
        Raises if the number of inputs or outputs is not the expected one.
    """
    if func.n_in() != n_in:
        raise SignatureMismatchError(name, "inputs", n_in, func.n_in())
    if func.n_out() != n_out:
        raise SignatureMismatchError(name, "outputs", n_out, func.n_out())


def canonicalize(role: str, func: cs.Function) -> cs.Function:
    """Validates the arity of ``func`` against the signature of ``role`` (see
    :data:`SIGNATURES`), and returns it wrapped in a function named after the role and
    with the canonical input and output names.

    Raises
    ------
    SignatureMismatchError
        Raises if the function has a wrong number of inputs or outputs.
    """
    names_in, names_out = SIGNATURES[role]
    check_arity(role, func, len(names_in), len(names_out))
    ins = symbolic_inputs(func)
    outs = func.call(ins)
    return cs.Function(role, ins, outs, list(names_in), list(names_out))


class NlpDerivatives:
    """Derivative functions of an NLP, built lazily and cached.

    Parameters
    ----------
    nlp : Nlp
        The NLP whose derivatives are computed. Only a weak reference to it is kept, so
        that the NLP, which owns this object, can be garbage-collected.

    Notes
    -----
    The signatures of the functions are (see also :data:`SIGNATURES`)

    - ``grad_f(x, p) -> (grad, f, g)``
    - ``jac_f(x, p) -> (jac, f, g)``
    - ``jac_g(x, p) -> (jac, f, g)``
    - ``grad_lag(x, p, lam_f, lam_g) -> (f, g, grad_x, grad_p)``
    - ``hess_lag(x, p, lam_f, lam_g) -> (hess, f, g, grad_x, grad_p)``

    where the Lagrangian is ``lam_f * f + lam_g' * g``.
    """

    def __init__(self, nlp: "Nlp") -> None:
        self._nlp = weakref.proxy(nlp)
        self._slots = LazySlots((*SIGNATURES, "sp_hess_lag"))

    @property
    def slots(self) -> LazySlots:
        """Gets the slots holding the built functions."""
        return self._slots

    def grad_f(self) -> cs.Function:
        """Gets the gradient of the objective w.r.t. the primal variables (as a
        column)."""
        return self._slots.get("grad_f", self._build_grad_f)

    def jac_f(self) -> cs.Function:
        """Gets the jacobian of the objective w.r.t. the primal variables (as a sparse
        row)."""
        return self._slots.get("jac_f", self._build_jac_f)

    def jac_g(self) -> Optional[cs.Function]:
        """Gets the jacobian of the constraints w.r.t. the primal variables, or ``None``
        if the NLP has no constraints, in which case no jacobian is required."""
        return self._slots.get("jac_g", self._build_jac_g)

    def grad_lag(self) -> cs.Function:
        """Gets the gradient of the Lagrangian w.r.t. the primal variables and the
        parameters."""
        return self._slots.get("grad_lag", self._build_grad_lag)

    def hess_lag(self) -> cs.Function:
        """Gets the hessian of the Lagrangian w.r.t. the primal variables."""
        return self._slots.get("hess_lag", self._build_hess_lag)

    def sp_hess_lag(self) -> cs.Sparsity:
        """Gets the sparsity pattern of the hessian of the Lagrangian w.r.t. the primal
        variables, without computing the hessian itself."""
        return self._slots.get("sp_hess_lag", self._build_sp_hess_lag)

    def _override_or(
        self, role: str, what: str, synthesize: Callable[[], cs.Function]
    ) -> cs.Function:
        """Internal utility to adopt the user-provided function for ``role``, if any, or
        to synthesize it otherwise, and then to canonicalize it."""
        func: Optional[cs.Function] = self._nlp.opts[role]
        if func is None:
            logger.info("Generating %s", what)
            func = synthesize()
            logger.info("%s generated", what.capitalize())
        else:
            logger.info("Using user-provided %s", what)
        func = canonicalize(role, func)
        logger.debug("Function '%s' initialized", role)
        return func

    def _nlp_expressions(self) -> tuple[Union[cs.SX, cs.MX], ...]:
        """Internal utility to get symbolic ``x, p`` and the corresponding ``f, g``."""
        func = self._nlp.function
        x, p = symbolic_inputs(func)
        f, g = func.call([x, p])
        return x, p, f, g

    def _build_grad_f(self) -> cs.Function:
        def synthesize() -> cs.Function:
            x, p, f, g = self._nlp_expressions()
            return cs.Function("grad_f", [x, p], [cs.gradient(f, x), f, g])

        return self._override_or("grad_f", "objective gradient", synthesize)

    def _build_jac_f(self) -> cs.Function:
        def synthesize() -> cs.Function:
            x, p, f, g = self._nlp_expressions()
            return cs.Function("jac_f", [x, p], [cs.jacobian(f, x), f, g])

        return self._override_or("jac_f", "objective jacobian", synthesize)

    def _build_jac_g(self) -> Optional[cs.Function]:
        if self._nlp.ng == 0:
            logger.debug("No constraints, so no constraint jacobian is required")
            return None

        def synthesize() -> cs.Function:
            x, p, f, g = self._nlp_expressions()
            return cs.Function("jac_g", [x, p], [cs.jacobian(g, x), f, g])

        return self._override_or("jac_g", "constraint jacobian", synthesize)

    def _build_grad_lag(self) -> cs.Function:
        def synthesize() -> cs.Function:
            x, p, f, g = self._nlp_expressions()
            sym = type(x)
            lam_f = sym.sym("lam_f", f.sparsity())
            lam_g = sym.sym("lam_g", g.sparsity())
            lag = cs.dot(lam_f, f) + cs.dot(lam_g, g)
            return cs.Function(
                "grad_lag",
                [x, p, lam_f, lam_g],
                [f, g, cs.gradient(lag, x), cs.gradient(lag, p)],
            )

        return self._override_or("grad_lag", "Lagrangian gradient", synthesize)

    def _build_hess_lag(self) -> cs.Function:
        def synthesize() -> cs.Function:
            grad_lag = self.grad_lag()
            ins = symbolic_inputs(grad_lag)
            outs = grad_lag.call(ins)
            hess = cs.jacobian(outs[2], ins[0], {"symmetric": True})
            return cs.Function("hess_lag", ins, [hess, *outs])

        return self._override_or("hess_lag", "Lagrangian hessian", synthesize)

    def _build_sp_hess_lag(self) -> cs.Sparsity:
        grad_lag = self.grad_lag()
        logger.info("Generating Lagrangian hessian sparsity pattern")
        ins = symbolic_inputs(grad_lag)
        grad_x = grad_lag.call(ins)[2]
        pattern = cs.DM(cs.jacobian_sparsity(grad_x, ins[0]), 1.0)
        sp = (pattern + pattern.T).sparsity()
        logger.info("Lagrangian hessian sparsity pattern generated")
        return sp

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__}: {self._slots!r}>"
