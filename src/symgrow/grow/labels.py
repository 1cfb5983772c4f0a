"""
Labels of symmetry generated atoms and the keys used to detect
duplicate bonds and hydrogen bonds.

A generated atom is labelled '<label>@<code>', e.g. 'N1@2_555' is the
image of N1 under symmetry code 2_555.
"""
from collections import namedtuple
from symgrow.crystal.bonds import NO_SYMMETRY

SYMMETRY_LABEL_SEPARATOR = "@"

BondKey = namedtuple("BondKey", "labels symmetry")
HBondKey = namedtuple("HBondKey", "donor hydrogen acceptor symmetry")


def split_sym_atom_label(label):
    """
    Split a label into the label of the atom in the asymmetric unit and
    its symmetry code string, None for atoms of the asymmetric unit.

    >>> split_sym_atom_label("N1@2_555")
    ('N1', '2_555')
    >>> split_sym_atom_label("C1")
    ('C1', None)
    """
    base, sep, code = label.partition(SYMMETRY_LABEL_SEPARATOR)
    return base, (code if sep else None)


def create_sym_atom_label(label, code, symmetry):
    """
    The label of the image of atom `label` under `code`. Labels of
    atoms that are already images have their codes composed, and the
    identity maps back to the plain label.

    Args:
        label (str): the label of the atom being transformed
        code (str | SymmetryCode): the symmetry code applied
        symmetry (CellSymmetry): used to compose and recognise codes

    Returns:
        str: the new label
    """
    base, existing = split_sym_atom_label(label)
    code = symmetry.parse_code(code)
    if existing is not None:
        code = symmetry.combine(code, existing)
    if symmetry.is_identity(code):
        return base
    return f"{base}{SYMMETRY_LABEL_SEPARATOR}{code}"


def create_bond_identifier(bond) -> BondKey:
    """
    Key identifying a bond irrespective of the order of its atoms. Bonds
    to symmetry equivalent atoms keep their order, as the code only
    applies to the second atom.
    """
    labels = (bond.atom1_label, bond.atom2_label)
    if bond.atom2_site_symmetry == NO_SYMMETRY:
        labels = tuple(sorted(labels))
    return BondKey(labels, bond.atom2_site_symmetry)


def create_hbond_identifier(hbond) -> HBondKey:
    "Key identifying a hydrogen bond, the D-H...A roles are never swapped"
    return HBondKey(
        hbond.donor_atom_label,
        hbond.hydrogen_atom_label,
        hbond.acceptor_atom_label,
        hbond.acceptor_atom_symmetry,
    )
