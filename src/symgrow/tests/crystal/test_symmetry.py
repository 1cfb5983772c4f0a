import logging
import unittest
import numpy as np
from symgrow.crystal import (
    Atom,
    CellSymmetry,
    FractionalPosition,
    SymmetryCode,
    SymmetryOperation,
    UAniso,
    UIso,
    UnitCell,
)
from symgrow.crystal.symmetry_operation import decode_symm_str, encode_symm_str

LOG = logging.getLogger(__name__)

P21_C = ["x,y,z", "-x,y+1/2,-z+1/2", "-x,-y,-z", "x,-y+1/2,z+1/2"]


class SymmetryOperationTestCase(unittest.TestCase):
    def test_decode(self):
        rot, trans = decode_symm_str("-x,y+1/2,-z")
        np.testing.assert_allclose(rot, np.diag([-1, 1, -1]))
        np.testing.assert_allclose(trans, [0, 0.5, 0])
        rot, trans = decode_symm_str("1/2 - x, y-0.25, x-y")
        np.testing.assert_allclose(rot, [[-1, 0, 0], [0, 1, 0], [1, -1, 0]])
        np.testing.assert_allclose(trans, [0.5, -0.25, 0])

    def test_translation_not_reduced(self):
        op = SymmetryOperation.from_string_code("1-x,y,z")
        np.testing.assert_allclose(op.translation, [1, 0, 0])

    def test_invalid(self):
        for s in ("x,y", "a,b,c", "x,,z", "x*2,y,z"):
            with self.assertRaises(ValueError):
                decode_symm_str(s)

    def test_encode(self):
        self.assertEqual(
            encode_symm_str(((-1, 0, 0), (0, 0, 1), (0, 1, 0)), (0, 0.5, 1 / 3)),
            "-x,1/2+z,1/3+y",
        )

    def test_compose_and_invert(self):
        op = SymmetryOperation.from_string_code("-x,y+1/2,-z")
        twice = op.compose(op)
        np.testing.assert_allclose(twice.rotation, np.eye(3))
        np.testing.assert_allclose(twice.translation, [0, 1, 0])
        self.assertTrue(op.compose(op.inverted()).is_identity())
        self.assertEqual(op.integer_offset_to(op + np.array([1, -2, 0])), (1, -2, 0))
        self.assertIsNone(op.integer_offset_to(SymmetryOperation.identity()))

    def test_apply(self):
        op = SymmetryOperation.from_string_code("-x,y+1/2,-z")
        np.testing.assert_allclose(op([[0.1, 0.2, 0.3]]), [[-0.1, 0.7, -0.3]])
        np.testing.assert_allclose(op.apply(np.array([0.1, 0.2, 0.3])), [-0.1, 0.7, -0.3])


class SymmetryCodeTestCase(unittest.TestCase):
    def test_parse(self):
        code = SymmetryCode.from_string("3_456")
        self.assertEqual(code.operation_id, "3")
        self.assertEqual(code.translation, (-1, 0, 1))
        self.assertEqual(str(code), "3_456")
        self.assertEqual(SymmetryCode.from_string("4"), SymmetryCode("4", (0, 0, 0)))

    def test_large_translation(self):
        code = SymmetryCode("1", (6, 0, -7))
        self.assertEqual(str(code), "1_565043")
        self.assertEqual(SymmetryCode.from_string(str(code)), code)
        with self.assertRaises(ValueError):
            str(SymmetryCode("1", (60, 0, 0)))

    def test_invalid(self):
        for s in ("2_55", "_555", "2_5555", ""):
            with self.assertRaises(ValueError):
                SymmetryCode.from_string(s)


class CellSymmetryTestCase(unittest.TestCase):
    def setUp(self):
        self.sym = CellSymmetry(["x,y,z", "-x,y+1/2,-z"])

    def test_identity(self):
        self.assertEqual(self.sym.identity_operation_id, "1")
        self.assertEqual(str(self.sym.identity_code), "1_555")
        self.assertEqual(self.sym.parse_code("."), self.sym.identity_code)
        self.assertTrue(self.sym.is_identity("1_555"))
        self.assertFalse(self.sym.is_identity("1_565"))

    def test_custom_ids(self):
        sym = CellSymmetry(["-x,-y,-z", "x,y,z"], operation_ids=["a", "b"])
        self.assertEqual(sym.identity_operation_id, "b")
        self.assertEqual(str(sym.combine("a_555", "a_555")), "b_555")
        with self.assertRaises(ValueError):
            CellSymmetry(["x,y,z", "-x,-y,-z"], operation_ids=["1", "1"])
        with self.assertRaises(ValueError):
            CellSymmetry(["x,y,z"], operation_ids=["1", "2"])

    def test_no_identity(self):
        with self.assertRaises(ValueError):
            CellSymmetry(["-x,-y,-z"])

    def test_combine(self):
        self.assertEqual(str(self.sym.combine("2_565", "2_555")), "1_575")
        self.assertEqual(str(self.sym.combine("2_555", "2_565")), "1_575")
        self.assertEqual(str(self.sym.combine("1_555", "2_456")), "2_456")
        self.assertEqual(str(self.sym.combine("2_555", "1_655")), "2_455")
        self.assertEqual(str(self.sym.combine(".", "2_555")), "2_555")

    def test_combine_is_ordered(self):
        sym = CellSymmetry(P21_C)
        a, b = "2_655", "4_555"
        self.assertEqual(str(sym.combine(a, b)), "3_665")
        self.assertEqual(str(sym.combine(b, a)), "3_656")

    def test_combine_is_associative(self):
        sym = CellSymmetry(P21_C)
        a, b, c = "2_565", "3_656", "4_554"
        self.assertEqual(
            sym.combine(a, sym.combine(b, c)), sym.combine(sym.combine(a, b), c)
        )

    def test_combine_invalid(self):
        with self.assertRaises(ValueError):
            self.sym.combine("7_555", "1_555")
        sym = CellSymmetry(["x,y,z", "-x,y+1/2,-z", "-x+1/2,y,-z+1/2"])
        with self.assertRaises(ValueError):
            sym.combine("2_555", "3_555")

    def test_apply(self):
        atoms = [
            Atom("C1", "C", FractionalPosition(0.1, 0.2, 0.3), UAniso(0.01, 0.02, 0.03, 0.004, 0.005, 0.006)),
            Atom("N1", "N", FractionalPosition(0.0, 0.0, 0.0), UIso(0.02)),
        ]
        result = self.sym.apply("2_565", atoms)
        self.assertEqual([a.label for a in result], ["C1", "N1"])
        np.testing.assert_allclose(result[0].position.coordinates, [-0.1, 1.7, -0.3])
        np.testing.assert_allclose(
            result[0].adp.components, [0.01, 0.02, 0.03, -0.004, 0.005, -0.006]
        )
        self.assertEqual(result[1].adp, UIso(0.02))
        np.testing.assert_allclose(atoms[0].position.coordinates, [0.1, 0.2, 0.3])

    def test_apply_cartesian(self):
        from symgrow.crystal import CartesianPosition

        atoms = [Atom("C1", "C", CartesianPosition(1.0, 2.0, 3.0))]
        with self.assertRaises(ValueError):
            self.sym.apply("2_555", atoms)
        result = self.sym.apply("2_555", atoms, unit_cell=UnitCell.cubic(10.0))
        np.testing.assert_allclose(result[0].position.coordinates, [-0.1, 0.7, -0.3])

    def test_from_cif_data(self):
        sym = CellSymmetry.from_cif_data(
            {
                "symmetry_equiv_pos_as_xyz": ["x,y,z", "-x,-y,-z"],
                "symmetry_space_group_name_H-M": "P -1",
            }
        )
        self.assertEqual(len(sym), 2)
        self.assertEqual(sym.space_group_name, "P -1")
        self.assertEqual(str(sym.combine("2_555", "2_655")), "1_455")
        with self.assertLogs("symgrow.crystal.cell_symmetry", level="WARNING"):
            p1 = CellSymmetry.from_cif_data({})
        self.assertEqual(len(p1), 1)
