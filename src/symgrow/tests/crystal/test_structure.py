import logging
import unittest
from symgrow.crystal import (
    Atom,
    Bond,
    CellSymmetry,
    CrystalStructure,
    FractionalPosition,
    HBond,
    StructureConsistencyError,
    UnitCell,
    infer_element_from_label,
    validate_bonds,
)

LOG = logging.getLogger(__name__)


def _atom(label, x=0.0, y=0.0, z=0.0):
    return Atom(label, None, FractionalPosition(x, y, z))


class InferElementTestCase(unittest.TestCase):
    def test_labels(self):
        self.assertEqual(infer_element_from_label("CL1"), "Cl")
        self.assertEqual(infer_element_from_label("Ca1"), "Ca")
        self.assertEqual(infer_element_from_label("C12A"), "C")
        self.assertEqual(infer_element_from_label("H1"), "H")
        with self.assertRaises(ValueError):
            infer_element_from_label("1A")

    def test_atom_element(self):
        self.assertEqual(_atom("N3").element, "N")
        self.assertEqual(Atom("X1", "O", FractionalPosition(0, 0, 0)).element, "O")


class CrystalStructureTestCase(unittest.TestCase):
    cell = UnitCell.cubic(10.0)
    symmetry = CellSymmetry(["x,y,z", "-x,y+1/2,-z+1/2"])

    def test_duplicate_labels(self):
        with self.assertRaises(ValueError):
            CrystalStructure(self.cell, [_atom("C1"), _atom("C1")])

    def test_default_symmetry(self):
        s = CrystalStructure(self.cell, [_atom("C1")])
        self.assertEqual(len(s.symmetry), 1)
        self.assertEqual(s.get_atom_by_label("C1").element, "C")
        with self.assertRaises(StructureConsistencyError):
            s.get_atom_by_label("C2")

    def test_connected_groups(self):
        atoms = [_atom(x) for x in ("C1", "C2", "N1", "O1", "H1", "O2")]
        bonds = [
            Bond("C1", "C2"),
            Bond("C2", "N1", atom2_site_symmetry="2_555"),
            Bond("O1", "H1"),
        ]
        hbonds = [HBond("O1", "H1", "O2", acceptor_atom_symmetry="2_565")]
        s = CrystalStructure(self.cell, atoms, bonds, hbonds, self.symmetry)
        groups = s.connected_groups
        self.assertEqual([g.labels for g in groups], [("C1", "C2"), ("N1",), ("O1", "H1"), ("O2",)])
        self.assertEqual(groups[0].bonds, (bonds[0],))
        self.assertEqual(groups[2].hbonds, (hbonds[0],))
        self.assertEqual(s.group_index_of("H1"), 2)
        self.assertEqual(s.group_index_of("O2"), 3)
        with self.assertRaises(StructureConsistencyError):
            s.group_index_of("X1")

    def test_hbonds_join_groups(self):
        atoms = [_atom(x) for x in ("O1", "H1", "N1")]
        hbonds = [HBond("O1", "H1", "N1")]
        s = CrystalStructure(self.cell, atoms, hbonds=hbonds)
        self.assertEqual(len(s.connected_groups), 1)
        self.assertEqual(s.connected_groups[0].labels, ("O1", "H1", "N1"))

    def test_empty(self):
        s = CrystalStructure(self.cell, [])
        self.assertEqual(s.connected_groups, ())

    def test_missing_atom(self):
        s = CrystalStructure(self.cell, [_atom("C1")], [Bond("C1", "N9")])
        with self.assertRaises(StructureConsistencyError):
            s.connected_groups
        with self.assertRaises(KeyError):
            s.validate()

    def test_validate(self):
        atoms = [_atom("C1"), _atom("N1")]
        s = CrystalStructure(
            self.cell, atoms, [Bond("C1", "N1", atom2_site_symmetry="7_555")], (), self.symmetry
        )
        with self.assertRaises(StructureConsistencyError):
            s.validate()
        problems = validate_bonds(
            ["O1", "H1"], hbonds=[HBond("O1", "H1", "N2", acceptor_atom_symmetry="2_555")]
        )
        self.assertEqual(len(problems), 1)
        self.assertIn("acceptor: N2", problems[0])

    def test_with_contents(self):
        s = CrystalStructure(self.cell, [_atom("C1")], symmetry=self.symmetry)
        t = s.with_contents([_atom("C1"), _atom("C2")], [Bond("C1", "C2")], [])
        self.assertIs(t.symmetry, s.symmetry)
        self.assertEqual(t.labels, ("C1", "C2"))
        self.assertEqual(s.labels, ("C1",))
