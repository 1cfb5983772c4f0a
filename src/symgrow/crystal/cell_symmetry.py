import dataclasses
import logging
import re
from collections import namedtuple
import numpy as np
from .bonds import NO_SYMMETRY
from .position import FractionalPosition
from .symmetry_operation import SymmetryOperation

LOG = logging.getLogger(__name__)

SYMMETRY_CODE_REGEX = re.compile(r"^\s*([^_\s]+)(?:_(\d{3}|\d{6}))?\s*$")
SYMOP_CIF_KEYS = (
    ("space_group_symop_operation_xyz", "space_group_symop_id"),
    ("symmetry_equiv_pos_as_xyz", "symmetry_equiv_pos_site_id"),
)


class SymmetryCode(namedtuple("SymmetryCode", "operation_id translation")):
    """
    A site symmetry code such as '2_565': the id of a symmetry operation
    plus an integer lattice translation.

    `translation` holds the integer offsets, i.e. '2_565' has a translation
    of (0, 1, 0). Offsets in [-5, 4] use the conventional three digit form,
    larger ones the six digit form with two digits per axis offset by 50.
    """

    __slots__ = ()

    @classmethod
    def from_string(cls, code):
        """
        Parse a symmetry code e.g. '2_555', '3_456', '4' (no translation)
        or '2_505150'.

        Raises:
            ValueError: if `code` is not a valid symmetry code
        """
        match = SYMMETRY_CODE_REGEX.match(code)
        if not match:
            raise ValueError(f"Invalid symmetry code: '{code}'")
        op_id, digits = match.groups()
        if digits is None:
            return cls(op_id, (0, 0, 0))
        if len(digits) == 3:
            return cls(op_id, tuple(int(d) - 5 for d in digits))
        return cls(op_id, tuple(int(digits[i : i + 2]) - 50 for i in (0, 2, 4)))

    @property
    def translation_digits(self) -> str:
        if all(-5 <= t <= 4 for t in self.translation):
            return "".join(str(t + 5) for t in self.translation)
        if all(-50 <= t <= 49 for t in self.translation):
            return "".join(f"{t + 50:02d}" for t in self.translation)
        raise ValueError(f"Lattice translation {self.translation} is too large to encode")

    def __str__(self):
        return f"{self.operation_id}_{self.translation_digits}"


class CellSymmetry:
    """
    The symmetry operations of a crystal, each addressable by the id
    used in site symmetry codes (e.g. the '2' in '2_555').

    Attributes:
        space_group_name (str): Hermann-Mauguin symbol, informational only
        space_group_number (int): international tables number, informational only
        symmetry_operations (List[SymmetryOperation]): the operations
        operation_ids (Dict[str, int]): map from operation id to index in
            `symmetry_operations`
        identity_operation_id (str): id of the identity operation
    """

    def __init__(
        self,
        symmetry_operations,
        operation_ids=None,
        space_group_name="Unknown",
        space_group_number=0,
    ):
        """
        Args:
            symmetry_operations (List[SymmetryOperation | str]): the operations,
                either as objects or xyz strings
            operation_ids (List[str], optional): the id of each operation,
                defaults to '1', '2', ...

        Raises:
            ValueError: if ids are duplicated, their number does not match the
                number of operations, or there is no identity operation
        """
        self.space_group_name = space_group_name
        self.space_group_number = space_group_number
        self.symmetry_operations = [
            x if isinstance(x, SymmetryOperation) else SymmetryOperation.from_string_code(x)
            for x in symmetry_operations
        ]
        if operation_ids is None:
            operation_ids = [str(i + 1) for i in range(len(self.symmetry_operations))]
        operation_ids = [str(x) for x in operation_ids]
        if len(operation_ids) != len(self.symmetry_operations):
            raise ValueError(
                f"Got {len(operation_ids)} operation ids for "
                f"{len(self.symmetry_operations)} symmetry operations"
            )
        if len(set(operation_ids)) != len(operation_ids):
            raise ValueError(f"Duplicate symmetry operation ids in {operation_ids}")
        self.operation_ids = {op_id: i for i, op_id in enumerate(operation_ids)}
        self.identity_operation_id = None
        for op_id, idx in self.operation_ids.items():
            op = self.symmetry_operations[idx]
            if op.integer_offset_to(SymmetryOperation.identity()) is not None:
                self.identity_operation_id = op_id
                break
        else:
            raise ValueError("Symmetry operations do not contain the identity x,y,z")

    @property
    def identity_code(self) -> SymmetryCode:
        "The code meaning 'no transform' i.e. '<identity id>_555'"
        idx = self.operation_ids[self.identity_operation_id]
        t = self.symmetry_operations[idx].integer_offset_to(SymmetryOperation.identity())
        return SymmetryCode(self.identity_operation_id, t)

    def operation(self, operation_id) -> SymmetryOperation:
        """
        Look up a symmetry operation by id.

        Raises:
            ValueError: if there is no operation with that id
        """
        idx = self.operation_ids.get(str(operation_id))
        if idx is None:
            raise ValueError(
                f"Unknown symmetry operation id '{operation_id}', "
                f"available are: {', '.join(self.operation_ids)}"
            )
        return self.symmetry_operations[idx]

    def parse_code(self, code) -> SymmetryCode:
        """
        Normalize `code` to a `SymmetryCode`, validating the operation id.
        The no-symmetry marker '.' maps to the identity code.
        """
        if isinstance(code, SymmetryCode):
            result = code
        elif code is None or code == NO_SYMMETRY:
            return self.identity_code
        else:
            result = SymmetryCode.from_string(code)
        self.operation(result.operation_id)
        return result

    def is_identity(self, code) -> bool:
        return self.parse_code(code) == self.identity_code

    def code_as_operation(self, code) -> SymmetryOperation:
        "The full operation a code stands for, lattice translation included"
        code = self.parse_code(code)
        return self.operation(code.operation_id) + np.array(code.translation)

    def combine(self, code_a, code_b) -> SymmetryCode:
        """
        The symmetry code equivalent to applying `code_b` first and then
        `code_a`, i.e. the composition code_a o code_b.

        >>> sym = CellSymmetry(["x,y,z", "-x,y+1/2,-z"])
        >>> str(sym.combine("2_565", "2_555"))
        '1_575'

        Args:
            code_a (str | SymmetryCode): the outer operation
            code_b (str | SymmetryCode): the inner operation

        Returns:
            SymmetryCode: the composed code

        Raises:
            ValueError: if either code is invalid, or the composition is not
                among the listed operations (i.e. they do not form a group)
        """
        composed = self.code_as_operation(code_a).compose(self.code_as_operation(code_b))
        for op_id, idx in self.operation_ids.items():
            offset = self.symmetry_operations[idx].integer_offset_to(composed)
            if offset is not None:
                return SymmetryCode(op_id, offset)
        raise ValueError(
            f"Composition of {code_a} and {code_b} ({composed}) "
            "is not one of the symmetry operations"
        )

    def apply(self, code, atoms, unit_cell=None):
        """
        Apply the operation described by `code` to each atom, transforming
        positions and displacement parameters. Labels are left unchanged.

        Args:
            code (str | SymmetryCode): the symmetry code
            atoms (Iterable[Atom]): the atoms to transform
            unit_cell (UnitCell, optional): required only for atoms with
                Cartesian positions

        Returns:
            List[Atom]: transformed copies of the atoms
        """
        op = self.code_as_operation(code)
        result = []
        for atom in atoms:
            position = atom.position
            if position.kind != "fractional":
                if unit_cell is None:
                    raise ValueError(
                        f"Atom {atom.label} has a Cartesian position, "
                        "a unit cell is needed to apply symmetry"
                    )
                position = position.to_fractional(unit_cell)
            new_position = FractionalPosition(op.apply(position.coordinates))
            adp = atom.adp.transformed(op.rotation) if atom.adp is not None else None
            result.append(dataclasses.replace(atom, position=new_position, adp=adp))
        return result

    @classmethod
    def from_cif_data(cls, cif_data):
        """
        Construct from a parsed CIF data block, using either the modern
        `space_group_symop_*` or the older `symmetry_equiv_pos_*` loops.
        Without any operations the result is P1.
        """
        for ops_key, ids_key in SYMOP_CIF_KEYS:
            if ops_key in cif_data:
                ops = cif_data[ops_key]
                ids = cif_data.get(ids_key)
                break
        else:
            LOG.warning("No symmetry operations found in CIF, assuming P1")
            ops, ids = ["x,y,z"], None
        if isinstance(ops, str):
            ops = [ops]
        if ids is not None and not isinstance(ids, list):
            ids = [ids]
        name = cif_data.get(
            "space_group_name_H-M_alt", cif_data.get("symmetry_space_group_name_H-M", "Unknown")
        )
        number = cif_data.get(
            "space_group_IT_number", cif_data.get("symmetry_Int_Tables_number", 0)
        )
        return cls(ops, operation_ids=ids, space_group_name=name, space_group_number=number)

    def __len__(self):
        return len(self.symmetry_operations)

    def __repr__(self):
        return f"<CellSymmetry: {self.space_group_name} ({len(self)} operations)>"
