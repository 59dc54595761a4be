r"""**C**\ a\ **s**\ ADi-**OCP**\  (**csocp**, for short) is a library that provides
the symbolic machinery between a modelling front-end and a numerical solver: lazily
synthesized and cached derivatives of nonlinear programmes (NLPs), and the structural
processing (classification, elimination, scaling, BLT sorting and explicit extraction)
of flat optimal control problems given as DAE systems.
"""

__version__ = "0.1.0"

__all__ = [
    "FlatOcp",
    "ModelDescription",
    "Nlp",
    "RawVariable",
    "errors",
]

from .core import errors
from .nlps.nlp import Nlp
from .ocp.ingestion import ModelDescription, RawVariable
from .ocp.ocp import FlatOcp
