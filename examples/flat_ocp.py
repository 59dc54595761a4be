r"""
Processing a flat optimal control problem
=========================================

This example shows how :class:`csocp.FlatOcp` turns a DAE model, given as unordered
lists of equations over tagged variables, into a problem ready for transcription.
Consider a mass :math:`m` pushed by a force :math:`u` against a damper with
coefficient :math:`c`

.. math::

    \dot{s} = v, \quad m \dot{v} = u - c v, \quad P = u v,

where the power :math:`P` is defined by a binding equation, and the energy consumed,
:math:`\dot{E} = P`, is to be minimized at the final time.
"""

# %%
# Describing the model
# --------------------
# Models are usually produced by a parser; here, we write the description by hand as a
# plain dict. Equations are expression trees, and names refer to the variables.

from csocp import FlatOcp


def I(name):
    return ("Identifier", name)


def D(name):
    return ("Der", name)


description = {
    "variables": [
        {"name": "s", "start": 0.0, "nominal": 10.0},
        {"name": "v", "start": 1.0, "min": 0.0, "max": 5.0},
        {"name": "E"},
        {"name": "P"},
        {"name": "u", "causality": "input", "min": -2.0, "max": 2.0},
        {"name": "m", "variability": "parameter", "free": True, "start": 2.0},
        {"name": "c", "variability": "constant", "nominal": 0.5},
    ],
    "binding": [["P", ("Mul", I("u"), I("v"))]],
    "dynamic": [
        ("Sub", D("s"), I("v")),
        ("Sub", ("Mul", I("m"), D("v")), ("Sub", I("u"), ("Mul", I("c"), I("v")))),
        ("Sub", D("E"), I("P")),
    ],
    "mayer": [I("E")],
    "constraints": [["Leq", I("s"), 100]],
    "t0": 0.0,
    "tf": 10.0,
}

# %%
# Processing the model
# --------------------
# By default, dependent variables are eliminated and the problem is scaled. Asking for
# a fully explicit problem also sorts the implicit equations in block-lower-triangular
# form and solves each block for its unknowns. Lastly, the energy, on which nothing but
# the objective depends, can be separated as a quadrature.

ocp = FlatOcp(description, {"fully_explicit": True, "separate_quadratures": True})
print(repr(ocp))
print(ocp)
