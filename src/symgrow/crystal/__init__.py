"""
This module implements the model of a crystal structure given as its
asymmetric unit (`CrystalStructure`): unit cells (`UnitCell`), positions,
displacement parameters (`UIso`, `UAniso`), symmetry operations in fractional
coordinates (`SymmetryOperation`), site symmetry codes (`SymmetryCode`,
`CellSymmetry`), atoms, bonds and hydrogen bonds.
"""

from .adp import UAniso, UIso, ellipsoid_transform
from .bonds import Bond, HBond, validate_bonds
from .cell_symmetry import CellSymmetry, SymmetryCode
from .position import CartesianPosition, FractionalPosition, to_cartesian
from .structure import (
    Atom,
    ConnectedGroup,
    CrystalStructure,
    StructureConsistencyError,
    infer_element_from_label,
)
from .symmetry_operation import SymmetryOperation
from .unit_cell import UnitCell

__all__ = [
    "Atom",
    "Bond",
    "CartesianPosition",
    "CellSymmetry",
    "ConnectedGroup",
    "CrystalStructure",
    "FractionalPosition",
    "HBond",
    "StructureConsistencyError",
    "SymmetryCode",
    "SymmetryOperation",
    "UAniso",
    "UIso",
    "UnitCell",
    "ellipsoid_transform",
    "infer_element_from_label",
    "to_cartesian",
    "validate_bonds",
]
