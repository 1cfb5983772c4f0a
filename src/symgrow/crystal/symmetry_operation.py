from fractions import Fraction
import logging
import re
import numpy as np

LOG = logging.getLogger(__name__)


SYMM_STR_SYMBOL_REGEX = re.compile(r"([+-]?(?:[xyz]|[0-9]*\.?[0-9]+(?:/[0-9]+)?))")


def encode_symm_str(rotation, translation):
    """
    Encode a rotation matrix (of -1, 0, 1s) and (rational) translation vector
    into string form e.g. 1/2-x,z-1/3,-y-1/6

    >>> encode_symm_str(((-1, 0, 0), (0, 0, 1), (0, 1, 0)), (0, 0.5, 1/3))
    '-x,1/2+z,1/3+y'
    >>> encode_symm_str(((1, 0, 0), (0, 1, 0), (0, 0, 1)), (1, 0, 0))
    '1+x,+y,+z'

    Args:
        rotation (array_like): (3,3) matrix of -1, 0, or 1s encoding the rotation component
            of the symmetry operation
        translation (array_like): (3) vector of rational numbers encoding the translation component
            of the symmetry operation

    Returns:
        str: the encoded symmetry operation
    """
    symbols = "xyz"
    res = []
    for i in (0, 1, 2):
        t = Fraction(float(translation[i])).limit_denominator(12)
        v = ""
        if t != 0:
            v += str(t)
        for j in range(0, 3):
            c = rotation[i][j]
            if c != 0:
                s = "-" if c < 0 else "+"
                v += s + symbols[j]
        res.append(v)
    return ",".join(res)


def decode_symm_str(s):
    """
    Decode a symmetry operation represented in the string
    form e.g. '1/2 + x, y, -z -0.25' into a rotation matrix
    and translation vector. Translations are kept as written,
    i.e. '1-x' keeps its translation of 1.

    >>> encode_symm_str(*decode_symm_str("x,y,z"))
    '+x,+y,+z'
    >>> encode_symm_str(*decode_symm_str("-x,y+1/2,-z"))
    '-x,1/2+y,-z'

    Args:
        s (str): the encoded symmetry operation string

    Returns:
        Tuple[np.ndarray, np.ndarray]: a (3,3) rotation matrix and a (3) translation vector

    Raises:
        ValueError: if the string is not a valid xyz symmetry operation
    """
    rotation = np.zeros((3, 3), dtype=np.float64)
    translation = np.zeros((3,), dtype=np.float64)
    tokens = s.lower().replace(" ", "").replace("'", "").split(",")
    if len(tokens) != 3:
        raise ValueError(f"Symmetry operation '{s}' needs three comma separated parts")
    for i, row in enumerate(tokens):
        if not row or SYMM_STR_SYMBOL_REGEX.sub("", row):
            raise ValueError(f"Could not parse '{row}' in symmetry operation '{s}'")
        for symbol in SYMM_STR_SYMBOL_REGEX.findall(row):
            axis = symbol[-1]
            if axis in "xyz":
                idx = "xyz".index(axis)
                rotation[i, idx] = -1 if symbol.startswith("-") else 1
            else:
                translation[i] += float(Fraction(symbol))
    return rotation, translation


class SymmetryOperation:
    """
    Class to represent a crystallographic symmetry operation,
    composed of a rotation and a translation, acting on
    fractional coordinates.

    Attributes:
        rotation (np.ndarray): (3, 3) rotation matrix in fractional coordinates
        translation (np.ndarray): (3) translation vector in fractional coordinates
    """

    rotation: np.ndarray
    translation: np.ndarray

    def __init__(self, rotation, translation):
        """
        Construct a new symmetry operation from a rotation matrix and
        a translation vector

        Arguments:
            rotation (np.ndarray): (3, 3) rotation matrix
            translation (np.ndarray): (3) translation vector
        """
        self.rotation = np.asarray(rotation, dtype=np.float64)
        self.translation = np.asarray(translation, dtype=np.float64)

    @property
    def seitz_matrix(self) -> np.ndarray:
        "The Seitz matrix form of this SymmetryOperation"
        s = np.eye(4, dtype=np.float64)
        s[:3, :3] = self.rotation
        s[:3, 3] = self.translation
        return s

    @property
    def cif_form(self) -> str:
        "Represent this SymmetryOperation in string form e.g. '+x,+y,+z'"
        return str(self)

    def compose(self, other):
        """
        The operation equivalent to applying `other` first, then this
        operation i.e. self o other.

        Returns:
            SymmetryOperation: the composed operation
        """
        s = self.seitz_matrix @ other.seitz_matrix
        return SymmetryOperation(s[:3, :3], s[:3, 3])

    def inverted(self):
        """
        The inverse of this operation, such that
        `op.compose(op.inverted())` is the identity.
        """
        r = np.linalg.inv(self.rotation)
        return SymmetryOperation(np.round(r), -np.round(r) @ self.translation)

    def __add__(self, value: np.ndarray):
        """
        Add a vector to this symmetry operation's translation vector.

        Returns:
            SymmetryOperation: a copy of this symmetry operation under additional translation
        """
        return SymmetryOperation(self.rotation, self.translation + value)

    def __sub__(self, value: np.ndarray):
        return SymmetryOperation(self.rotation, self.translation - value)

    def apply(self, coordinates: np.ndarray) -> np.ndarray:
        """
        Apply this symmetry operation to a set of fractional coordinates.

        Args:
            coordinates (np.ndarray): (N,3) or (3,) array of fractional coordinates

        Returns:
            np.ndarray: array of transformed coordinates with the same shape
        """
        return np.dot(coordinates, self.rotation.T) + self.translation

    def integer_offset_to(self, other):
        """
        If `other` differs from this operation only by a lattice
        translation, return that translation as integers, otherwise None.
        """
        if not np.allclose(self.rotation, other.rotation):
            return None
        diff = other.translation - self.translation
        rounded = np.round(diff)
        if not np.allclose(diff, rounded, atol=1e-6):
            return None
        return tuple(int(x) for x in rounded)

    def is_identity(self) -> bool:
        "Returns true if this is the identity symmetry operation '+x,+y,+z'"
        return np.allclose(self.rotation, np.eye(3)) and np.allclose(
            self.translation, 0
        )

    def __str__(self):
        if not hasattr(self, "_string_code"):
            setattr(
                self, "_string_code", encode_symm_str(self.rotation, self.translation)
            )
        return getattr(self, "_string_code")

    def __eq__(self, other):
        if not isinstance(other, SymmetryOperation):
            return NotImplemented
        return np.allclose(self.rotation, other.rotation) and np.allclose(
            self.translation, other.translation
        )

    def __hash__(self):
        return hash(
            (
                tuple(np.round(self.rotation).astype(int).ravel()),
                tuple(np.round(self.translation * 12).astype(int)),
            )
        )

    def __repr__(self):
        return "<{}: {}>".format(self.__class__.__name__, self)

    def __call__(self, coordinates):
        return self.apply(coordinates)

    @classmethod
    def from_string_code(cls, code: str):
        """
        Alternative constructor from a string encoded
        symmetry operation e.g. '+x,+y,+z'.

        See also the `encode_symm_str`, `decode_symm_str` methods.

        Args:
            code (str): string-encoded symmetry operation

        Returns:
            SymmetryOperation: a new symmetry operation from the provided string code
        """
        rot, trans = decode_symm_str(code)
        s = SymmetryOperation(rot, trans)
        setattr(s, "_string_code", code)
        return s

    @classmethod
    def identity(cls):
        "Alternative constructor for the the identity symop i.e. x,y,z"
        return cls.from_string_code("x,y,z")
