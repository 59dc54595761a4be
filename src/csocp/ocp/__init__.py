"""A module for the DAE side of the package, i.e., for flat optimal control problems
given as unordered lists of equations over tagged variables. The problem is assembled
by a chain of classes, each building on top of the previous one:

- :class:`csocp.ocp.variables.HasVariables`: creation, storage and classification of
  the variables
- :class:`csocp.ocp.equations.HasEquations`: ingestion of the equations and
  elimination of the dependent variables
- :class:`csocp.ocp.scaling.HasScaling`: scaling of variables and equations
- :class:`csocp.ocp.structure.HasStructure`: BLT sorting of the implicit equations and
  their conversion to explicit ones
- :class:`csocp.FlatOcp`: the problem itself, which runs the stages above according to
  its options.

The description of the model is given as a :class:`csocp.ocp.ModelDescription`, whose
equations are expression trees (see :mod:`csocp.ocp.expressions`).
"""

__all__ = [
    "OCP_OPTIONS",
    "FlatOcp",
    "ModelDescription",
    "RawVariable",
    "Role",
    "Variable",
]

from .ingestion import ModelDescription, RawVariable
from .ocp import OCP_OPTIONS, FlatOcp
from .variable import Role, Variable
