r"""This module contains the core components, aside :class:`csocp.Nlp` and
:class:`csocp.FlatOcp`, that are used to build the package.

Overview
========

It contains the following submodules:

- :mod:`csocp.core.blt`: the Dulmage-Mendelsohn decomposition of sparsity patterns in
  block-lower-triangular form, which tells in which order a set of equations can be
  solved for a set of unknowns.
- :mod:`csocp.core.cache`: lazy, build-once slots (in either the unbuilt or the built
  state) used to cache expensive quantities such as derivative functions.
- :mod:`csocp.core.data`: a collection of functions for manipulating data in CasADi,
  e.g., converting lists of scalars to and from vectors, sparsity patterns to
  :mod:`scipy.sparse` matrices, and substituting and evaluating expressions.
- :mod:`csocp.core.errors`: the exceptions and warnings raised by the package.
- :mod:`csocp.core.options`: validation of the option dicts accepted by the NLP and
  the OCP classes against tables of recognized options.
- :mod:`csocp.core.registry`: registries of named plugins, among which the symbolic
  linear solvers used to make blocks of equations explicit.
- :mod:`csocp.core.scaling`: nominal-value scaling of variables and jacobian-based
  scaling of equations.

Submodules
==========

.. autosummary::
   :toctree: generated
   :template: module.rst

   blt
   cache
   data
   errors
   options
   registry
   scaling
"""
