r"""Conversion of expression trees, as found in model descriptions, into CasADi ``SX``
expressions. A tree is either a bare number (a literal) or a tuple ``(tag, *children)``,
where the tag names one of the operators in :class:`ExprNode`, e.g.,

.. code-block:: python

    ("Add", ("Identifier", "x"), ("Mul", 2, ("Der", "y")))

stands for :math:`x + 2 \dot{y}`. Each operator has exactly one handler; that no
operator is left without one is checked when this module is imported."""

import operator
from collections.abc import Sequence
from enum import Enum
from typing import Any, Callable, Union

import casadi as cs

from ..core.errors import ConfigurationError, ModelingError
from .variable import Variable

ExprTree = Union[int, float, tuple]
VariableLookup = Callable[[Any], Variable]


class ExprNode(Enum):
    """The closed set of operators that can appear in an expression tree."""

    ADD = "Add"
    ACOS = "Acos"
    ASIN = "Asin"
    ATAN = "Atan"
    COS = "Cos"
    DER = "Der"
    DIV = "Div"
    EXP = "Exp"
    IDENTIFIER = "Identifier"
    INTEGER_LITERAL = "IntegerLiteral"
    INSTANT = "Instant"
    LOG = "Log"
    LOG_LT = "LogLt"
    LOG_GT = "LogGt"
    MUL = "Mul"
    NEG = "Neg"
    NO_EVENT = "NoEvent"
    POW = "Pow"
    REAL_LITERAL = "RealLiteral"
    SIN = "Sin"
    SQRT = "Sqrt"
    STRING_LITERAL = "StringLiteral"
    SUB = "Sub"
    TAN = "Tan"
    TIME = "Time"
    TIMED_VARIABLE = "TimedVariable"

    @classmethod
    def from_tag(cls, tag: Union[str, "ExprNode"]) -> "ExprNode":
        """Gets the operator for the given tag. Tags may carry the ``"exp:"`` namespace
        prefix.

        Raises
        ------
        ConfigurationError
            Raises if the tag is not recognized.
        """
        if isinstance(tag, cls):
            return tag
        if isinstance(tag, str):
            name = tag[4:] if tag.startswith("exp:") else tag
            for member in cls:
                if member.value == name:
                    return member
        raise ConfigurationError(f"Unknown expression node '{tag}'.")


class ExpressionBuilder:
    """Builds ``SX`` expressions from expression trees.

    Parameters
    ----------
    lookup : callable
        A function that, given a (qualified) variable name, returns the corresponding
        :class:`csocp.ocp.variable.Variable`, or raises if it does not exist.
    t : casadi.SX
        The symbol of time.
    """

    def __init__(self, lookup: VariableLookup, t: cs.SX) -> None:
        self.lookup = lookup
        self.t = t

    def __call__(self, tree: ExprTree) -> cs.SX:
        """Converts the given expression tree to an ``SX`` expression.

        Raises
        ------
        ConfigurationError
            Raises if the tree is malformed or contains an unknown operator.
        ModelingError
            Raises if the tree has an operator with the wrong number of operands, a
            string literal, or references an unknown variable.
        """
        if isinstance(tree, (int, float)) and not isinstance(tree, bool):
            return cs.SX(tree)
        if not isinstance(tree, Sequence) or isinstance(tree, str) or not tree:
            raise ConfigurationError(f"Malformed expression tree {tree!r}.")
        node = ExprNode.from_tag(tree[0])
        return _HANDLERS[node](self, node, tree[1:])


Handler = Callable[[ExpressionBuilder, ExprNode, Sequence], cs.SX]


def _check_operands(node: ExprNode, args: Sequence, n: int) -> None:
    if len(args) != n:
        raise ModelingError(
            f"Expression node '{node.value}' expects {n} operand(s), got {len(args)}."
        )


def _unary(func: Callable[[cs.SX], cs.SX]) -> Handler:
    def handler(build: ExpressionBuilder, node: ExprNode, args: Sequence) -> cs.SX:
        _check_operands(node, args, 1)
        return func(build(args[0]))

    return handler


def _binary(func: Callable[[cs.SX, cs.SX], cs.SX]) -> Handler:
    def handler(build: ExpressionBuilder, node: ExprNode, args: Sequence) -> cs.SX:
        _check_operands(node, args, 2)
        return func(build(args[0]), build(args[1]))

    return handler


def _literal(cast: Callable[[Any], float]) -> Handler:
    def handler(_: ExpressionBuilder, node: ExprNode, args: Sequence) -> cs.SX:
        _check_operands(node, args, 1)
        return cs.SX(cast(args[0]))

    return handler


def _identifier(build: ExpressionBuilder, node: ExprNode, args: Sequence) -> cs.SX:
    _check_operands(node, args, 1)
    return build.lookup(args[0]).var


def _der(build: ExpressionBuilder, node: ExprNode, args: Sequence) -> cs.SX:
    _check_operands(node, args, 1)
    return build.lookup(args[0]).der()


def _timed_variable(
    build: ExpressionBuilder, node: ExprNode, args: Sequence
) -> cs.SX:
    _check_operands(node, args, 2)
    return build.lookup(args[0]).at_time(float(args[1]))


def _time(build: ExpressionBuilder, node: ExprNode, args: Sequence) -> cs.SX:
    _check_operands(node, args, 0)
    return build.t


def _no_event(build: ExpressionBuilder, node: ExprNode, args: Sequence) -> cs.SX:
    # a chain of (condition, value) pairs followed by the default value
    if len(args) % 2 != 1:
        raise ModelingError(
            f"Expression node '{node.value}' expects an odd number of operands, got "
            f"{len(args)}."
        )
    ex = build(args[-1])
    for i in range(len(args) - 3, -1, -2):
        ex = cs.if_else(build(args[i]), build(args[i + 1]), ex)
    return ex


def _string_literal(_: ExpressionBuilder, node: ExprNode, args: Sequence) -> cs.SX:
    text = args[0] if args else ""
    raise ModelingError(f"String literal '{text}' in a symbolic expression.")


_HANDLERS: dict[ExprNode, Handler] = {
    ExprNode.ADD: _binary(operator.add),
    ExprNode.ACOS: _unary(cs.acos),
    ExprNode.ASIN: _unary(cs.asin),
    ExprNode.ATAN: _unary(cs.atan),
    ExprNode.COS: _unary(cs.cos),
    ExprNode.DER: _der,
    ExprNode.DIV: _binary(operator.truediv),
    ExprNode.EXP: _unary(cs.exp),
    ExprNode.IDENTIFIER: _identifier,
    ExprNode.INTEGER_LITERAL: _literal(int),
    ExprNode.INSTANT: _literal(float),
    ExprNode.LOG: _unary(cs.log),
    ExprNode.LOG_LT: _binary(operator.lt),
    ExprNode.LOG_GT: _binary(operator.gt),
    ExprNode.MUL: _binary(operator.mul),
    ExprNode.NEG: _unary(operator.neg),
    ExprNode.NO_EVENT: _no_event,
    ExprNode.POW: _binary(cs.power),
    ExprNode.REAL_LITERAL: _literal(float),
    ExprNode.SIN: _unary(cs.sin),
    ExprNode.SQRT: _unary(cs.sqrt),
    ExprNode.STRING_LITERAL: _string_literal,
    ExprNode.SUB: _binary(operator.sub),
    ExprNode.TAN: _unary(cs.tan),
    ExprNode.TIME: _time,
    ExprNode.TIMED_VARIABLE: _timed_variable,
}

_missing = set(ExprNode).difference(_HANDLERS)
if _missing:
    raise RuntimeError(
        "No handler for expression node(s): "
        + ", ".join(sorted(n.value for n in _missing))
        + "."
    )
del _missing
