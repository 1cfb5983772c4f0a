"""
Growing an asymmetric unit across symmetry: exploring the network of
symmetry instances connected by bonds (`create_connectivity`) and
materializing their atoms, bonds and hydrogen bonds (`grow_symmetry`).
"""

from .connectivity import (
    ConnectingBond,
    ConnectingBondGroup,
    Connectivity,
    ConnectionKey,
    SeedConnection,
    SymmetryInstance,
    create_connectivity,
    get_seed_connections,
)
from .grow_symmetry import (
    collect_symmetry_requirements,
    generate_symmetry_atoms,
    generate_symmetry_bonds,
    generate_symmetry_hbonds,
    grow_symmetry,
    process_translation_links,
)
from .labels import (
    create_bond_identifier,
    create_hbond_identifier,
    create_sym_atom_label,
    split_sym_atom_label,
)
from .modifier import SymmetryGrower

__all__ = [
    "ConnectingBond",
    "ConnectingBondGroup",
    "Connectivity",
    "ConnectionKey",
    "SeedConnection",
    "SymmetryInstance",
    "SymmetryGrower",
    "collect_symmetry_requirements",
    "create_bond_identifier",
    "create_connectivity",
    "create_hbond_identifier",
    "create_sym_atom_label",
    "generate_symmetry_atoms",
    "generate_symmetry_bonds",
    "generate_symmetry_hbonds",
    "get_seed_connections",
    "grow_symmetry",
    "process_translation_links",
    "split_sym_atom_label",
]
