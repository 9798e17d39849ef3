from ._interfaces import Assembler, LinearSolver, FactorizationScheme
from .assembler import CallableAssembler
from .linear import DirectLinearSolver
from .picard import PicardSolver
