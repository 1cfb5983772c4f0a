import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Tuple, Union
import numpy as np
from scipy.sparse import dok_matrix
import scipy.sparse.csgraph as csgraph
from symgrow.fmt.cif import Cif
from .adp import UAniso, UIso
from .bonds import NO_SYMMETRY, Bond, HBond, validate_bonds
from .cell_symmetry import CellSymmetry
from .position import CartesianPosition, FractionalPosition, Position
from .unit_cell import UnitCell

LOG = logging.getLogger(__name__)

_TWO_LETTER_ELEMENTS = (
    "HE LI BE NE NA MG AL SI CL AR CA SC TI CR MN FE CO NI CU ZN GA GE AS SE BR KR "
    "RB SR ZR NB MO TC RU RH PD AG CD IN SN SB TE XE CS BA LA CE PR ND PM SM EU GD "
    "TB DY HO ER TM YB LU HF TA RE OS IR PT AU HG TL PB BI PO AT RN FR RA AC TH PA "
    "NP PU AM CM"
).split()
_TWO_LETTER_REGEX = re.compile("^({})".format("|".join(_TWO_LETTER_ELEMENTS)))
_ONE_LETTER_REGEX = re.compile("^(H|B|C|N|O|F|P|S|K|V|Y|I|W|U|D)")
_DUMMY_TYPES = (".", "?")


class StructureConsistencyError(KeyError):
    "A bond or hydrogen bond references an atom that is not in the structure"


def infer_element_from_label(label: str) -> str:
    """
    Guess the element symbol from an atom label, trying two letter
    symbols before one letter symbols.

    >>> infer_element_from_label("CL1A")
    'Cl'
    >>> infer_element_from_label("C12")
    'C'
    """
    upper = label.upper()
    match = _TWO_LETTER_REGEX.match(upper) or _ONE_LETTER_REGEX.match(upper)
    if not match:
        raise ValueError(f"Could not infer element from atom label: {label}")
    symbol = match.group(1)
    return symbol[0] + symbol[1:].lower()


@dataclass(frozen=True)
class Atom:
    """
    A single atomic site.

    Attributes:
        label: unique label of the site within a structure
        element: element symbol, inferred from the label when not given
        position: fractional or Cartesian position
        adp: displacement parameter, if any
        disorder_group: 0 for sites compatible with any group, positive values
            for mutually exclusive alternatives
    """

    label: str
    element: Optional[str]
    position: Position
    adp: Optional[Union[UIso, UAniso]] = None
    disorder_group: int = 0

    def __post_init__(self):
        if self.element is None:
            object.__setattr__(self, "element", infer_element_from_label(self.label))


@dataclass(frozen=True)
class ConnectedGroup:
    """
    Atoms of the asymmetric unit joined by bonds and hydrogen bonds that
    need no symmetry, with the bonds (symmetry '.') and hydrogen bonds (any
    symmetry) whose first atom belongs to the group.
    """

    atoms: Tuple[Atom, ...]
    bonds: Tuple[Bond, ...]
    hbonds: Tuple[HBond, ...]

    @property
    def labels(self):
        return tuple(a.label for a in self.atoms)


class CrystalStructure:
    """
    Storage class for a crystal structure given as its asymmetric unit.

    Attributes:
        unit_cell: the translational symmetry
        atoms: the atoms of the asymmetric unit (plus any grown atoms)
        bonds: covalent bonds, possibly to symmetry equivalent atoms
        hbonds: hydrogen bonds, possibly to symmetry equivalent acceptors
        symmetry: the symmetry operations addressed by site symmetry codes
    """

    def __init__(self, unit_cell, atoms, bonds=(), hbonds=(), symmetry=None):
        self.unit_cell = unit_cell
        self.atoms = tuple(atoms)
        self.bonds = tuple(bonds)
        self.hbonds = tuple(hbonds)
        self.symmetry = (
            symmetry
            if symmetry is not None
            else CellSymmetry(["x,y,z"], space_group_name="None")
        )
        self._label_index = {}
        for i, atom in enumerate(self.atoms):
            if atom.label in self._label_index:
                raise ValueError(f"Duplicate atom label: {atom.label}")
            self._label_index[atom.label] = i
        self._connected_groups = None
        self._atom_group = None

    @property
    def cell(self):
        return self.unit_cell

    @property
    def labels(self):
        return tuple(a.label for a in self.atoms)

    def get_atom_by_label(self, label) -> Atom:
        """
        Raises:
            StructureConsistencyError: if there is no atom with that label
        """
        return self.atoms[self._index(label)]

    def _index(self, label):
        idx = self._label_index.get(label)
        if idx is None:
            raise StructureConsistencyError(
                f"Could not find atom with label: {label}, "
                f"available are: {', '.join(self._label_index)}"
            )
        return idx

    def validate(self):
        """
        Check bonds and hydrogen bonds against the atoms and symmetry of
        this structure.

        Raises:
            StructureConsistencyError: listing every problem found
        """
        problems = validate_bonds(self._label_index, self.bonds, self.hbonds, self.symmetry)
        if problems:
            raise StructureConsistencyError(
                "There were errors in the bond or H-bond creation\n" + "\n".join(problems)
            )

    def _calculate_connected_groups(self):
        n = len(self.atoms)
        if n == 0:
            self._connected_groups, self._atom_group = (), {}
            return
        graph = dok_matrix((n, n), dtype=np.int8)
        for bond in self.bonds:
            i, j = self._index(bond.atom1_label), self._index(bond.atom2_label)
            if bond.atom2_site_symmetry == NO_SYMMETRY:
                graph[i, j] = 1
        for hbond in self.hbonds:
            d = self._index(hbond.donor_atom_label)
            h = self._index(hbond.hydrogen_atom_label)
            a = self._index(hbond.acceptor_atom_label)
            graph[d, h] = 1
            if hbond.acceptor_atom_symmetry == NO_SYMMETRY:
                graph[h, a] = 1
        n_groups, atom_group = csgraph.connected_components(
            csgraph=graph.tocsr(), directed=False, return_labels=True
        )
        LOG.debug("Found %d connected groups for %d atoms", n_groups, n)
        groups = []
        for group_index in range(n_groups):
            members = set(np.flatnonzero(atom_group == group_index))
            groups.append(
                ConnectedGroup(
                    atoms=tuple(self.atoms[i] for i in sorted(members)),
                    bonds=tuple(
                        b
                        for b in self.bonds
                        if b.atom2_site_symmetry == NO_SYMMETRY
                        and self._label_index[b.atom1_label] in members
                    ),
                    hbonds=tuple(
                        hb
                        for hb in self.hbonds
                        if self._label_index[hb.donor_atom_label] in members
                    ),
                )
            )
        self._connected_groups = tuple(groups)
        self._atom_group = {
            atom.label: int(atom_group[i]) for i, atom in enumerate(self.atoms)
        }

    @property
    def connected_groups(self):
        """
        The asymmetric unit partitioned into groups of atoms joined by
        bonds and hydrogen bonds with no symmetry, ordered by their first atom.
        Unbonded atoms form their own group.

        Raises:
            StructureConsistencyError: if a bond references a missing atom
        """
        if self._connected_groups is None:
            self._calculate_connected_groups()
        return self._connected_groups

    def group_index_of(self, label) -> int:
        """
        Index into `connected_groups` of the group containing `label`.

        Raises:
            StructureConsistencyError: if no group contains the label
        """
        if self._atom_group is None:
            self._calculate_connected_groups()
        if label not in self._atom_group:
            raise StructureConsistencyError(
                f"Atom {label} is not part of any connected group"
            )
        return self._atom_group[label]

    def with_contents(self, atoms, bonds, hbonds):
        "A new structure sharing the unit cell and symmetry of this one"
        return CrystalStructure(self.unit_cell, atoms, bonds, hbonds, self.symmetry)

    def __repr__(self):
        return (
            f"<CrystalStructure: {len(self.atoms)} atoms, {len(self.bonds)} bonds, "
            f"{len(self.hbonds)} hbonds, {self.symmetry.space_group_name}>"
        )

    @classmethod
    def from_cif_data(cls, cif_data, uncertainties=None):
        """
        Initialize a crystal structure from a dictionary of CIF data.

        Arguments:
            cif_data (dict): the parsed contents of a CIF data block
            uncertainties (dict, optional): standard uncertainties matching
                `cif_data`, used for bond lengths and angles

        Returns:
            CrystalStructure: the asymmetric unit with its bonds and hydrogen bonds

        Raises:
            KeyError: if mandatory cell or atom site entries are missing
            StructureConsistencyError: if bonds reference missing atoms
        """
        uncertainties = uncertainties or {}
        unit_cell = UnitCell.from_cif_data(cif_data)
        symmetry = CellSymmetry.from_cif_data(cif_data)
        atoms = _atoms_from_cif_data(cif_data)
        if not atoms:
            raise ValueError("The CIF data contains no valid atoms")
        bonds = _bonds_from_cif_data(cif_data, uncertainties)
        hbonds = _hbonds_from_cif_data(cif_data, uncertainties)
        structure = cls(unit_cell, atoms, bonds, hbonds, symmetry)
        structure.validate()
        return structure

    @classmethod
    def from_cif_file(cls, filename, data_block_name=None):
        """
        Initialize a crystal structure from a CIF file. The first data block
        is used unless `data_block_name` is given.
        """
        return cls._from_cif(Cif.from_file(filename), data_block_name, Path(filename).name)

    @classmethod
    def from_cif_string(cls, contents, data_block_name=None):
        "Initialize a crystal structure from the text of a CIF"
        return cls._from_cif(Cif.from_string(contents), data_block_name, "<string>")

    @classmethod
    def _from_cif(cls, cif, data_block_name, source):
        if not cif.data:
            raise ValueError(f"No data blocks found in {source}")
        if data_block_name is None:
            data_block_name = next(iter(cif.data))
        LOG.debug("Reading data block %s from %s", data_block_name, source)
        return cls.from_cif_data(
            cif.data[data_block_name], cif.uncertainties.get(data_block_name)
        )


def _as_list(value):
    return value if isinstance(value, list) else [value]


def _column(cif_data, key, n, default=None):
    if key not in cif_data:
        return [default] * n
    return _as_list(cif_data[key])


def _optional_float(value):
    if value in _DUMMY_TYPES or value is None:
        return None
    return float(value)


def _adps_from_cif_data(cif_data, labels):
    adps = {}
    n_site = len(labels)
    uiso = _column(cif_data, "atom_site_U_iso_or_equiv", n_site)
    biso = _column(cif_data, "atom_site_B_iso_or_equiv", n_site)
    for label, u, b in zip(labels, uiso, biso):
        if _optional_float(u) is not None:
            adps[label] = UIso(u)
        elif _optional_float(b) is not None:
            adps[label] = UIso.from_biso(b)

    for prefix, factory in (("U", UAniso), ("B", UAniso.from_bani)):
        keys = [f"atom_site_aniso_{prefix}_{ij}" for ij in ("11", "22", "33", "12", "13", "23")]
        if "atom_site_aniso_label" not in cif_data or keys[0] not in cif_data:
            continue
        aniso_labels = _as_list(cif_data["atom_site_aniso_label"])
        columns = [_column(cif_data, k, len(aniso_labels)) for k in keys]
        for label, *values in zip(aniso_labels, *columns):
            values = [_optional_float(v) for v in values]
            if any(v is None for v in values):
                continue
            adps[label] = factory(*values)
    return adps


def _atoms_from_cif_data(cif_data):
    labels = [str(x) for x in _as_list(cif_data["atom_site_label"])]
    n = len(labels)
    types = _column(cif_data, "atom_site_type_symbol", n)
    disorder = _column(cif_data, "atom_site_disorder_group", n, ".")
    if "atom_site_fract_x" in cif_data:
        columns = [_as_list(cif_data[f"atom_site_fract_{x}"]) for x in "xyz"]
        position_type = FractionalPosition
    else:
        columns = [_as_list(cif_data[f"atom_site_Cartn_{x}"]) for x in "xyz"]
        position_type = CartesianPosition
    adps = _adps_from_cif_data(cif_data, labels)

    atoms = []
    for i, label in enumerate(labels):
        element = types[i]
        if element in _DUMMY_TYPES:
            LOG.debug("Skipping dummy atom %s", label)
            continue
        coords = [_optional_float(c[i]) for c in columns]
        if any(c is None for c in coords):
            LOG.warning("Skipping atom %s without coordinates", label)
            continue
        group = disorder[i]
        atoms.append(
            Atom(
                label,
                str(element) if element is not None else None,
                position_type(coords),
                adp=adps.get(label),
                disorder_group=0 if group in _DUMMY_TYPES else int(group),
            )
        )
    return atoms


def _bonds_from_cif_data(cif_data, uncertainties):
    if "geom_bond_atom_site_label_1" not in cif_data:
        return []
    first = _as_list(cif_data["geom_bond_atom_site_label_1"])
    n = len(first)
    second = _column(cif_data, "geom_bond_atom_site_label_2", n)
    distance = _column(cif_data, "geom_bond_distance", n)
    distance_su = _column(uncertainties, "geom_bond_distance", n)
    symmetry = _column(cif_data, "geom_bond_site_symmetry_2", n, NO_SYMMETRY)
    return [
        Bond(str(a1), str(a2), _optional_float(d), su, _symmetry_code(s))
        for a1, a2, d, su, s in zip(first, second, distance, distance_su, symmetry)
    ]


def _hbonds_from_cif_data(cif_data, uncertainties):
    if "geom_hbond_atom_site_label_D" not in cif_data:
        return []
    donors = _as_list(cif_data["geom_hbond_atom_site_label_D"])
    n = len(donors)
    hydrogens = _column(cif_data, "geom_hbond_atom_site_label_H", n)
    acceptors = _column(cif_data, "geom_hbond_atom_site_label_A", n)
    values = {}
    for name in ("distance_DH", "distance_HA", "distance_DA", "angle_DHA"):
        values[name] = [_optional_float(x) for x in _column(cif_data, f"geom_hbond_{name}", n)]
        values[name + "_su"] = _column(uncertainties, f"geom_hbond_{name}", n)
    symmetry = _column(cif_data, "geom_hbond_site_symmetry_A", n, NO_SYMMETRY)
    return [
        HBond(
            str(donors[i]),
            str(hydrogens[i]),
            str(acceptors[i]),
            values["distance_DH"][i],
            values["distance_DH_su"][i],
            values["distance_HA"][i],
            values["distance_HA_su"][i],
            values["distance_DA"][i],
            values["distance_DA_su"][i],
            values["angle_DHA"][i],
            values["angle_DHA_su"][i],
            _symmetry_code(symmetry[i]),
        )
        for i in range(n)
    ]


def _symmetry_code(value):
    if value is None or value in _DUMMY_TYPES:
        return NO_SYMMETRY
    return str(value)
