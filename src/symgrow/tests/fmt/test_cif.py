import logging
import unittest
from symgrow.crystal import CrystalStructure, UAniso, UIso
from symgrow.fmt.cif import Cif, parse_value, parse_quote
from symgrow.tests import TEST_FILES

LOG = logging.getLogger(__name__)

_WRAPPED_LOOP = """data_first
_cell_length_a 5.0
_cell.length_b 6.0
loop_
_a
_b
_c
1 2.5(3) 'a b'
4
 5 six
loop_
_d
;
multi
line
;
x
data_second
_cell_length_a 7.0
"""


class ParseValueTestCase(unittest.TestCase):
    def test_numbers(self):
        self.assertEqual(parse_value("12"), 12)
        self.assertIsInstance(parse_value("12"), int)
        self.assertAlmostEqual(parse_value("-0.25"), -0.25)
        self.assertIsInstance(parse_value("1.0"), float)

    def test_uncertainty(self):
        value, su = parse_value("2.34(12)", with_uncertainty=True)
        self.assertAlmostEqual(value, 2.34)
        self.assertAlmostEqual(su, 0.12)
        value, su = parse_value("1.2412(19)", with_uncertainty=True)
        self.assertAlmostEqual(su, 0.0019)
        value, su = parse_value("1.5e-3(2)", with_uncertainty=True)
        self.assertAlmostEqual(value, 0.0015)
        self.assertAlmostEqual(su, 0.0002)
        self.assertEqual(parse_value("12(3)", with_uncertainty=True), (12, 3))
        self.assertEqual(parse_value("0.88", with_uncertainty=True), (0.88, None))

    def test_strings(self):
        self.assertEqual(parse_value("4_554"), "4_554")
        self.assertEqual(parse_value("."), ".")
        self.assertEqual(parse_value("'-x, y+1/2, -z'"), "-x, y+1/2, -z")
        self.assertEqual(parse_value("abc", with_uncertainty=True), ("abc", None))
        self.assertEqual(parse_quote(";quote text;"), "quote text")


class CifTestCase(unittest.TestCase):
    def test_loops_and_blocks(self):
        cif = Cif.from_string(_WRAPPED_LOOP)
        self.assertEqual(list(cif.data), ["first", "second"])
        first = cif.data["first"]
        self.assertEqual(first["cell_length_b"], 6.0)
        self.assertEqual(first["a"], [1, 4])
        self.assertEqual(first["b"][0], 2.5)
        self.assertEqual(first["b"][1], 5)
        self.assertEqual(first["c"], ["a b", "six"])
        self.assertEqual(first["d"], ["multi\nline", "x"])
        self.assertAlmostEqual(cif.uncertainties["first"]["b"][0], 0.3)
        self.assertIsNone(cif.uncertainties["first"]["b"][1])
        self.assertEqual(cif.data["second"]["cell_length_a"], 7.0)

    def test_bad_loop(self):
        with self.assertRaises(ValueError):
            Cif.from_string("data_x\nloop_\n_a\n_b\n1 2 3\n")
        with self.assertRaises(ValueError):
            Cif.from_string("data_x\n_a\n;\nunterminated\n")

    def test_text_field(self):
        cif = Cif.from_file(TEST_FILES["amide_p21c.cif"])
        data = cif.data["amide_p21c"]
        self.assertEqual(
            data["publ_section_comment"],
            "Small hydrogen bonded amide fragment\nin P 21/c, used in tests.",
        )
        self.assertEqual(data["space_group_name_H-M_alt"], "P 1 21/c 1")
        self.assertAlmostEqual(cif.uncertainties["amide_p21c"]["cell_angle_beta"], 0.002)


class CifStructureTestCase(unittest.TestCase):
    def setUp(self):
        self.structure = CrystalStructure.from_cif_file(TEST_FILES["amide_p21c.cif"])

    def test_atoms(self):
        s = self.structure
        self.assertEqual(s.labels, ("O1", "C1", "N1", "H1"))
        self.assertIsInstance(s.get_atom_by_label("O1").adp, UAniso)
        self.assertAlmostEqual(s.get_atom_by_label("O1").adp.u23, -0.0012)
        self.assertEqual(s.get_atom_by_label("C1").adp, UIso(0.025))
        self.assertEqual(s.get_atom_by_label("H1").element, "H")
        self.assertAlmostEqual(s.unit_cell.beta_deg, 100.125)

    def test_bonds(self):
        s = self.structure
        self.assertEqual(len(s.bonds), 3)
        self.assertEqual(s.bonds[0].labels, ("O1", "C1"))
        self.assertAlmostEqual(s.bonds[0].bond_length, 1.2412)
        self.assertAlmostEqual(s.bonds[0].bond_length_su, 0.0019)
        self.assertEqual(s.bonds[2].atom2_site_symmetry, ".")
        self.assertIsNone(s.bonds[2].bond_length_su)
        self.assertEqual(len(s.hbonds), 1)
        hbond = s.hbonds[0]
        self.assertEqual(hbond.labels, ("N1", "H1", "O1"))
        self.assertEqual(hbond.acceptor_atom_symmetry, "4_554")
        self.assertAlmostEqual(hbond.donor_acceptor_distance_su, 0.0018)
        self.assertAlmostEqual(hbond.hbond_angle, 162.1)

    def test_symmetry(self):
        s = self.structure
        self.assertEqual(len(s.symmetry), 4)
        self.assertEqual(s.symmetry.space_group_number, 14)
        self.assertEqual(str(s.symmetry.combine("4_554", "4_554")), "1_554")
        self.assertEqual(len(s.connected_groups), 1)

    def test_from_string(self):
        contents = TEST_FILES["amide_p21c.cif"].read_text()
        s = CrystalStructure.from_cif_string(contents)
        self.assertEqual(s.labels, self.structure.labels)
        with self.assertRaises(ValueError):
            CrystalStructure.from_cif_string("# nothing here\n")
        with self.assertRaises(KeyError):
            CrystalStructure.from_cif_string(contents.replace("_cell_length_b", "_cell_len_b"))
