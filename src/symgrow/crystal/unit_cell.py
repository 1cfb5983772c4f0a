import logging
import numpy as np

LOG = logging.getLogger(__name__)


class UnitCell:
    """
    Storage class for the lattice parameters of a crystal i.e. its unit cell.

    Lengths are in Angstroms, angles are stored internally in radians.

    Attributes:
        direct (np.ndarray): the direct matrix of this unit cell
            i.e. the lattice vectors, row major
        inverse (np.ndarray): the inverse of `direct`, used to go from
            Cartesian to fractional coordinates
    """

    def __init__(self, lengths, angles, unit="degrees"):
        """
        Create a UnitCell from the side lengths and angles of the
        parallelepiped.

        Args:
            lengths (array_like): (a, b, c) in Angstroms, strictly positive
            angles (array_like): (alpha, beta, gamma), each strictly between
                0 and 180 degrees
            unit (str, optional): unit of `angles`, either 'degrees' (default)
                or 'radians'

        Raises:
            ValueError: if any of the parameters are out of range, or the angles
                cannot form a parallelepiped
        """
        if unit == "radians":
            if np.any(np.abs(angles) > np.pi):
                LOG.warning(
                    "Large angle in UnitCell with unit='radians', "
                    "are you sure your angles are not in degrees?"
                )
            angles = np.degrees(angles)
        self.set_lengths_and_angles(lengths, angles)

    @staticmethod
    def _validate(lengths, angles):
        if len(lengths) != 3 or len(angles) != 3:
            raise ValueError("A unit cell needs exactly three lengths and three angles")
        for name, value in zip("abc", lengths):
            if not np.isfinite(value) or value <= 0:
                raise ValueError(f"Unit cell length {name} must be positive, got {value}")
        for name, value in zip(("alpha", "beta", "gamma"), angles):
            if not np.isfinite(value) or value <= 0 or value >= 180:
                raise ValueError(
                    f"Unit cell angle {name} must be between 0 and 180 degrees, got {value}"
                )

    def set_lengths_and_angles(self, lengths, angles):
        """
        Modify this unit cell by setting the lattice parameters, the
        fractional to Cartesian matrix is recalculated.

        Args:
            lengths (array_like): array of (a, b, c), the unit cell side lengths in Angstroms.
            angles (array_like): array of (alpha, beta, gamma) in degrees.
        """
        lengths = tuple(float(x) for x in lengths)
        angles = tuple(float(x) for x in angles)
        self._validate(lengths, angles)
        self._lengths = lengths
        self._angles = tuple(np.radians(angles))
        a, b, c = self._lengths
        ca, cb, cg = np.cos(self._angles)
        sg = np.sin(self._angles[2])
        v = self.volume()
        if not np.isfinite(v) or v <= 0:
            raise ValueError(f"Unit cell angles {angles} do not form a valid cell")
        self.direct = np.array(
            (
                (a, 0, 0),
                (b * cg, b * sg, 0),
                (c * cb, c * (ca - cb * cg) / sg, v / (a * b * sg)),
            )
        )
        self.inverse = np.array(
            (
                (1.0 / a, 0.0, 0.0),
                (-cg / (a * sg), 1 / (b * sg), 0),
                (
                    b * c * (ca * cg - cb) / v / sg,
                    a * c * (cb * cg - ca) / v / sg,
                    a * b * sg / v,
                ),
            )
        )

    @property
    def lengths(self):
        "(a, b, c) in Angstroms"
        return self._lengths

    @property
    def angles(self):
        "(alpha, beta, gamma) in radians"
        return self._angles

    @property
    def fractional_to_cartesian_matrix(self) -> np.ndarray:
        "Column form of the direct matrix, i.e. cartesian = M @ fractional"
        return self.direct.T

    @property
    def reciprocal_lengths(self) -> np.ndarray:
        "Lengths of the reciprocal lattice vectors (a*, b*, c*)"
        return np.linalg.norm(self.inverse, axis=0)

    def to_cartesian(self, coords: np.ndarray) -> np.ndarray:
        """
        Transform coordinates from fractional space (a, b, c)
        to Cartesian space (x, y, z). The x-direction will be aligned
        along lattice vector A.

        Args:
            coords (array_like): (N, 3) or (3,) array of fractional coordinates

        Returns:
            np.ndarray: array of Cartesian coordinates with the same shape
        """
        return np.dot(coords, self.direct)

    def to_fractional(self, coords: np.ndarray) -> np.ndarray:
        """
        Transform coordinates from Cartesian space (x, y, z)
        to fractional space (a, b, c).

        Args:
            coords (array_like): (N, 3) or (3,) array of Cartesian coordinates

        Returns:
            np.ndarray: array of fractional coordinates with the same shape
        """
        return np.dot(coords, self.inverse)

    def volume(self) -> float:
        """The volume of the unit cell, in cubic Angstroms"""
        a, b, c = self._lengths
        ca, cb, cg = np.cos(self._angles)
        return a * b * c * np.sqrt(1 - ca * ca - cb * cb - cg * cg + 2 * ca * cb * cg)

    @property
    def a(self) -> float:
        "Length of lattice vector a"
        return self._lengths[0]

    @property
    def b(self) -> float:
        "Length of lattice vector b"
        return self._lengths[1]

    @property
    def c(self) -> float:
        "Length of lattice vector c"
        return self._lengths[2]

    @property
    def alpha(self) -> float:
        "Angle between lattice vectors b and c"
        return self._angles[0]

    @property
    def beta(self) -> float:
        "Angle between lattice vectors a and c"
        return self._angles[1]

    @property
    def gamma(self) -> float:
        "Angle between lattice vectors a and b"
        return self._angles[2]

    @property
    def alpha_deg(self) -> float:
        return np.degrees(self._angles[0])

    @property
    def beta_deg(self) -> float:
        return np.degrees(self._angles[1])

    @property
    def gamma_deg(self) -> float:
        return np.degrees(self._angles[2])

    @property
    def parameters(self) -> np.ndarray:
        "single vector of lattice side lengths and angles in degrees"
        return np.hstack((self._lengths, np.degrees(self._angles)))

    @classmethod
    def from_lengths_and_angles(cls, lengths, angles, unit="degrees"):
        """
        Construct a new UnitCell from the provided lengths and angles.

        Args:
            lengths (array_like): Lattice side lengths (a, b, c) in Angstroms.
            angles (array_like): Lattice angles (alpha, beta, gamma) in provided units
            unit (str, optional): Unit for angles i.e. 'radians' or 'degrees' (default degrees).

        Returns:
            UnitCell: A new unit cell object representing the provided lattice.
        """
        return cls(lengths, angles, unit=unit)

    @classmethod
    def cubic(cls, length):
        "Construct a new cubic UnitCell from the provided side length."
        return cls((length,) * 3, (90.0,) * 3)

    @classmethod
    def from_cif_data(cls, cif_data):
        """
        Construct a UnitCell from the `cell_length_*` and `cell_angle_*`
        entries of a parsed CIF data block.

        Raises:
            KeyError: if one of the six cell parameters is missing
        """
        lengths = [cif_data[f"cell_length_{x}"] for x in "abc"]
        angles = [cif_data[f"cell_angle_{x}"] for x in ("alpha", "beta", "gamma")]
        return cls(lengths, angles, unit="degrees")

    def __eq__(self, other):
        if not isinstance(other, UnitCell):
            return NotImplemented
        return np.allclose(self.parameters, other.parameters)

    def __repr__(self):
        a, b, c = self._lengths
        alpha, beta, gamma = np.degrees(self._angles)
        return (
            f"<UnitCell: a={a:.3f} b={b:.3f} c={c:.3f} "
            f"alpha={alpha:.2f} beta={beta:.2f} gamma={gamma:.2f}>"
        )
