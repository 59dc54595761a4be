"""A collection of functions for manipulating data in CasADi, in particular, on how to
convert lists of scalar expressions to and from CasADi column vectors, how to convert
CasADi sparsity patterns to :mod:`scipy.sparse` matrices, and how to substitute and
evaluate symbolic expressions."""

from collections.abc import Iterable, Sequence
from typing import Union

import casadi as cs
import numpy as np
import numpy.typing as npt
from scipy import sparse as sps


def vertcat_list(exprs: Sequence[cs.SX], sym_type: type = cs.SX) -> cs.SX:
    """Stacks a sequence of scalar expressions in a column vector (of size ``0x1`` if
    the sequence is empty, so that it can still be used in jacobians and functions).

    Parameters
    ----------
    exprs : sequence of casadi.SX or MX
        The scalar expressions to stack.
    sym_type : type, optional
        Type of the empty vector to return when ``exprs`` is empty, by default
        :class:`casadi.SX`.

    Returns
    -------
    casadi.SX or MX
        The column vector.
    """
    if len(exprs) == 0:
        return sym_type(0, 1)
    return cs.vertcat(*exprs)


def split_list(x: Union[cs.SX, cs.MX, cs.DM]) -> list[Union[cs.SX, cs.MX, cs.DM]]:
    """Splits a (column) vector into the list of its scalar entries, i.e., the opposite
    of :func:`vertcat_list`.

    Parameters
    ----------
    x : casadi.SX, MX or DM
        The vector to split. Matrices are split in column-major order.

    Returns
    -------
    list of casadi.SX, MX or DM
        The scalar entries.
    """
    x = cs.vec(x)
    return [x[i] for i in range(x.shape[0])]


def sparsity2csr(sp: cs.Sparsity) -> sps.csr_array:
    """Converts a CasADi sparsity pattern to a boolean :class:`scipy.sparse.csr_array`
    with ones at the structural nonzeros.

    Parameters
    ----------
    sp : casadi.Sparsity
        The sparsity pattern.

    Returns
    -------
    scipy.sparse.csr_array
        The pattern as a sparse boolean matrix of the same shape.
    """
    rows, cols = sp.get_triplet()
    data = np.ones(len(rows), dtype=bool)
    return sps.csr_array((data, (rows, cols)), shape=sp.shape, dtype=bool)


def to_vector(
    value: Union[npt.ArrayLike, cs.DM], n: int, name: str, strict: bool = True
) -> npt.NDArray[np.floating]:
    """Converts a value to a 1D float vector of ``n`` elements. Scalars are broadcast.

    Parameters
    ----------
    value : array_like or casadi.DM
        The value to convert.
    n : int
        Expected number of elements.
    name : str
        Name of the value, used in error messages.
    strict : bool, optional
        If ``True``, matrices that are not vectors are rejected even if their number of
        elements is ``n``. By default, ``True``.

    Returns
    -------
    1D array of floats
        The converted vector.

    Raises
    ------
    ValueError
        Raises if the number of elements does not match, or if ``strict=True`` and the
        value is not a vector.
    """
    if isinstance(value, cs.DM):
        value = value.full()
    arr = np.asarray(value, dtype=float)
    if arr.size == 1 and n != 1:
        return np.full(n, arr.item())
    if strict and arr.ndim > 1 and sum(d != 1 for d in arr.shape) > 1:
        raise ValueError(f"'{name}' must be a vector; got shape {arr.shape} instead.")
    if arr.size != n:
        raise ValueError(
            f"'{name}' has wrong number of elements: expected {n}, got {arr.size}."
        )
    return arr.reshape(-1, order="F")


def subsevalf(
    expr: Union[cs.SX, cs.MX],
    old: Union[cs.SX, cs.MX, Iterable[Union[cs.SX, cs.MX]]],
    new: Union[cs.SX, cs.MX, cs.DM, npt.ArrayLike, Iterable],
    eval: bool = True,
) -> Union[cs.SX, cs.MX, cs.DM]:
    """Substitutes the old variables with the new ones in the symbolic expression,
    and evaluates it, if required.

    Parameters
    ----------
    expr : casadi.SX or MX
        Expression for substitution and, possibly, evaluation.
    old : casadi.SX or MX, or iterable of these
        Old variable(s) to be substituted.
    new : casadi.SX, MX, DM, array_like, or iterable of these
        New variable(s) that substitute the old one(s). If an iterable, it must match
        ``old`` element-wise.
    eval : bool, optional
        Evaluates numerically the new expression. By default, ``True``.

    Returns
    -------
    casadi.SX, MX or DM
        New expression after substitution and, possibly, evaluation.

    Raises
    ------
    RuntimeError
        Raises if ``eval=True`` but there are symbolic variables that are still free,
        i.e., the expression cannot be evaluated numerically.
    """
    if isinstance(expr, cs.DM):
        return expr
    if not isinstance(old, (cs.SX, cs.MX)):
        old = list(old)
        new = list(new)
        old = cs.vvcat(old) if old else cs.SX(0, 1)
        new = cs.vvcat(new) if new else cs.SX(0, 1)
    elif isinstance(new, (int, float, np.ndarray)):
        new = cs.DM(new) if np.size(new) == old.numel() else cs.DM.ones(old.shape) * new
    new_expr = cs.substitute(expr, old, new)
    return cs.evalf(new_expr) if eval else new_expr
