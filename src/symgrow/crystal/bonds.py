from dataclasses import dataclass
from typing import Optional

NO_SYMMETRY = "."


@dataclass(frozen=True)
class Bond:
    """
    A covalent bond between two atoms, referenced by label. The second atom
    sits at `atom2_site_symmetry` relative to the asymmetric unit; '.' means
    both atoms are already present as listed.
    """

    atom1_label: str
    atom2_label: str
    bond_length: Optional[float] = None
    bond_length_su: Optional[float] = None
    atom2_site_symmetry: str = NO_SYMMETRY

    @property
    def symmetry(self) -> str:
        return self.atom2_site_symmetry

    @property
    def labels(self):
        return (self.atom1_label, self.atom2_label)


@dataclass(frozen=True)
class HBond:
    """
    A hydrogen bond D-H...A, with the acceptor at `acceptor_atom_symmetry`
    relative to the asymmetric unit.
    """

    donor_atom_label: str
    hydrogen_atom_label: str
    acceptor_atom_label: str
    donor_hydrogen_distance: Optional[float] = None
    donor_hydrogen_distance_su: Optional[float] = None
    acceptor_hydrogen_distance: Optional[float] = None
    acceptor_hydrogen_distance_su: Optional[float] = None
    donor_acceptor_distance: Optional[float] = None
    donor_acceptor_distance_su: Optional[float] = None
    hbond_angle: Optional[float] = None
    hbond_angle_su: Optional[float] = None
    acceptor_atom_symmetry: str = NO_SYMMETRY

    @property
    def symmetry(self) -> str:
        return self.acceptor_atom_symmetry

    @property
    def labels(self):
        return (self.donor_atom_label, self.hydrogen_atom_label, self.acceptor_atom_label)


def validate_bonds(atom_labels, bonds=(), hbonds=(), symmetry=None):
    """
    Check that bonds and hydrogen bonds only reference existing atoms
    and, if `symmetry` is given, valid symmetry codes.

    Args:
        atom_labels (Iterable[str]): labels of the available atoms
        bonds (Iterable[Bond]): bonds to check
        hbonds (Iterable[HBond]): hydrogen bonds to check
        symmetry (CellSymmetry, optional): used to check site symmetry codes

    Returns:
        List[str]: a description of each problem found, empty if all are valid
    """
    labels = set(atom_labels)
    problems = []
    for bond in bonds:
        for label in bond.labels:
            if label not in labels:
                problems.append(
                    f"Non-existent atom in bond: {bond.atom1_label}-{bond.atom2_label}, "
                    f"non-existent atom: {label}"
                )
        problems.extend(_check_symmetry(bond.atom2_site_symmetry, symmetry, bond))
    for hbond in hbonds:
        for role, label in zip(("donor", "hydrogen", "acceptor"), hbond.labels):
            if label not in labels:
                problems.append(
                    "Non-existent atom in H-bond: {}-{}...{}, non-existent {}: {}".format(
                        *hbond.labels, role, label
                    )
                )
        problems.extend(_check_symmetry(hbond.acceptor_atom_symmetry, symmetry, hbond))
    return problems


def _check_symmetry(code, symmetry, item):
    if symmetry is None or code == NO_SYMMETRY:
        return []
    try:
        symmetry.parse_code(code)
    except ValueError as e:
        return [f"Invalid symmetry in {item}: {e}"]
    return []
