import logging
import unittest
from symgrow.crystal import (
    Atom,
    Bond,
    CellSymmetry,
    CrystalStructure,
    FractionalPosition,
    UnitCell,
)
from symgrow.grow import SymmetryGrower
from symgrow.tests import TEST_FILES

LOG = logging.getLogger(__name__)


def _bonded_structure():
    return CrystalStructure(
        UnitCell.cubic(10.0),
        [
            Atom("C1", "C", FractionalPosition(0.1, 0.2, 0.3)),
            Atom("N1", "N", FractionalPosition(0.2, 0.3, 0.4)),
        ],
        [Bond("C1", "N1", atom2_site_symmetry="2_555")],
        symmetry=CellSymmetry(["x,y,z", "-x,y+1/2,-z+1/2"]),
    )


class SymmetryGrowerTestCase(unittest.TestCase):
    def test_modes(self):
        grower = SymmetryGrower()
        self.assertEqual(grower.mode, "bonds-no-hbonds-no")
        self.assertEqual(len(SymmetryGrower.MODES), 9)
        grower.mode = "Bonds_Yes_HBonds_No"
        self.assertEqual(grower.mode, "bonds-yes-hbonds-no")
        self.assertTrue(grower.follow_bonds)
        self.assertFalse(grower.follow_hbonds)
        with self.assertRaises(ValueError):
            grower.mode = "bonds-maybe-hbonds-no"
        with self.assertRaises(ValueError):
            SymmetryGrower("grow-everything")

    def test_applicable_modes(self):
        grower = SymmetryGrower()
        s = _bonded_structure()
        self.assertEqual(
            grower.applicable_modes(s), ["bonds-yes-hbonds-none", "bonds-no-hbonds-none"]
        )
        cif = CrystalStructure.from_cif_file(TEST_FILES["amide_p21c.cif"])
        self.assertEqual(
            grower.applicable_modes(cif), ["bonds-none-hbonds-yes", "bonds-none-hbonds-no"]
        )

    def test_fallback(self):
        grower = SymmetryGrower()
        grower.ensure_valid_mode(_bonded_structure())
        self.assertEqual(grower.mode, "bonds-no-hbonds-none")
        cif = CrystalStructure.from_cif_file(TEST_FILES["amide_p21c.cif"])
        grower.ensure_valid_mode(cif)
        self.assertEqual(grower.mode, "bonds-none-hbonds-no")
        bare = CrystalStructure(UnitCell.cubic(5.0), [Atom("C1", "C", FractionalPosition(0, 0, 0))])
        grower.ensure_valid_mode(bare)
        self.assertEqual(grower.mode, "bonds-none-hbonds-none")

    def test_cycle_mode(self):
        grower = SymmetryGrower()
        s = _bonded_structure()
        self.assertEqual(grower.cycle_mode(s), "bonds-yes-hbonds-none")
        self.assertEqual(grower.cycle_mode(s), "bonds-no-hbonds-none")

    def test_apply(self):
        s = _bonded_structure()
        self.assertIs(SymmetryGrower().apply(s), s)
        grown = SymmetryGrower("bonds-yes-hbonds-none").apply(s)
        self.assertEqual(grown.labels, ("C1", "N1", "N1@2_555"))

    def test_apply_hbonds(self):
        cif = CrystalStructure.from_cif_file(TEST_FILES["amide_p21c.cif"])
        grown = SymmetryGrower("bonds-none-hbonds-yes").apply(cif)
        self.assertEqual(len(grown.atoms), 8)
        with self.assertLogs("symgrow.grow.connectivity", level="WARNING"):
            partial = SymmetryGrower("bonds-none-hbonds-yes", max_iterations=0).apply(cif)
        self.assertEqual(len(partial.atoms), 4)
