from .crystal import CrystalStructure, UnitCell, CellSymmetry
from .grow import grow_symmetry, SymmetryGrower

__version__ = "0.1.0"
