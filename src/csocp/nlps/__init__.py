"""A module for the NLP side of the package, i.e., for problems given as a single
symbolic function ``(x, p) -> (f, g)``. Its building blocks are:

- :class:`csocp.nlps.NlpBounds`: the numerical inputs of a solver (bounds, initial
  guesses and parameters), together with the functions that detect ill-posed bounds
- :class:`csocp.nlps.NlpDerivatives`: the lazy, build-once cache of the derivative
  functions a solver needs, synthesized by automatic differentiation or provided by the
  user, and validated against fixed signatures
- :class:`csocp.Nlp`: a class that combines the above building blocks around the NLP
  function.
"""

__all__ = ["NLP_OPTIONS", "Nlp", "NlpBounds", "NlpDerivatives"]

from .bounds import NlpBounds
from .derivatives import NlpDerivatives
from .nlp import NLP_OPTIONS, Nlp
