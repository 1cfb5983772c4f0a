"""
Atomic displacement parameters (ADPs), either isotropic (`UIso`) or
anisotropic (`UAniso`), and the ellipsoid transform used to draw them.

Anisotropic tensors are stored in the CIF convention, i.e. components of U
referred to the reciprocal-scaled crystal axes, and only converted to the
Cartesian frame on request.
"""
import logging
import numpy as np

LOG = logging.getLogger(__name__)

# Angstrom^2, used for atoms without usable displacement parameters
DEFAULT_UISO = 0.01
_B_TO_U = 1.0 / (8.0 * np.pi**2)


class UIso:
    "Isotropic displacement parameter"

    def __init__(self, uiso):
        uiso = float(uiso)
        if not np.isfinite(uiso) or uiso < 0:
            raise ValueError(f"Isotropic displacement must be >= 0, got {uiso}")
        self.uiso = uiso

    @classmethod
    def from_biso(cls, biso):
        "Construct from an isotropic B value, B = 8 pi^2 U"
        return cls(biso * _B_TO_U)

    def transformed(self, rotation):
        "Isotropic displacements are invariant under symmetry"
        return self

    def u_equiv(self, unit_cell=None) -> float:
        return self.uiso

    def __eq__(self, other):
        if not isinstance(other, UIso):
            return NotImplemented
        return np.isclose(self.uiso, other.uiso)

    def __repr__(self):
        return f"<UIso: {self.uiso:.5f}>"


class UAniso:
    """
    Anisotropic displacement parameter with the six independent
    components U11, U22, U33, U12, U13, U23.
    """

    def __init__(self, u11, u22, u33, u12, u13, u23):
        self.u11 = float(u11)
        self.u22 = float(u22)
        self.u33 = float(u33)
        self.u12 = float(u12)
        self.u13 = float(u13)
        self.u23 = float(u23)

    @classmethod
    def from_bani(cls, b11, b22, b33, b12, b13, b23):
        "Construct from anisotropic B values, each component divided by 8 pi^2"
        return cls(*(x * _B_TO_U for x in (b11, b22, b33, b12, b13, b23)))

    @classmethod
    def from_matrix(cls, u):
        u = np.asarray(u)
        return cls(u[0, 0], u[1, 1], u[2, 2], u[0, 1], u[0, 2], u[1, 2])

    @property
    def components(self):
        return (self.u11, self.u22, self.u33, self.u12, self.u13, self.u23)

    @property
    def matrix(self) -> np.ndarray:
        "Symmetric (3, 3) form of the tensor in the CIF frame"
        return np.array(
            (
                (self.u11, self.u12, self.u13),
                (self.u12, self.u22, self.u23),
                (self.u13, self.u23, self.u33),
            )
        )

    def transformed(self, rotation):
        """
        Apply the rotation part of a symmetry operation (in fractional
        coordinates) to this tensor, i.e. R U R^T.

        Args:
            rotation (np.ndarray): (3, 3) rotation matrix

        Returns:
            UAniso: the transformed displacement parameter
        """
        rotation = np.asarray(rotation)
        return UAniso.from_matrix(rotation @ self.matrix @ rotation.T)

    def u_cart(self, unit_cell) -> np.ndarray:
        """
        The tensor in the Cartesian frame of `unit_cell`.

        Args:
            unit_cell (UnitCell): the unit cell these parameters refer to

        Returns:
            np.ndarray: (3, 3) symmetric matrix in Angstrom^2
        """
        m = unit_cell.fractional_to_cartesian_matrix
        n = np.diag(unit_cell.reciprocal_lengths)
        return m @ n @ self.matrix @ n @ m.T

    def u_equiv(self, unit_cell) -> float:
        return np.trace(self.u_cart(unit_cell)) / 3

    def ellipsoid_matrix(self, unit_cell) -> np.ndarray:
        """
        The matrix taking a unit sphere to the displacement ellipsoid:
        eigenvectors of the Cartesian tensor scaled by the square root of
        their eigenvalues. The eigenvector basis is made right handed so the
        result is a proper rotation times a scale.

        Args:
            unit_cell (UnitCell): the unit cell these parameters refer to

        Returns:
            np.ndarray: (3, 3) transformation matrix

        Raises:
            ValueError: if the tensor is not positive definite
        """
        values, vectors = np.linalg.eigh(self.u_cart(unit_cell))
        if np.any(values <= 0):
            raise ValueError(
                f"Displacement tensor is not positive definite, eigenvalues {values}"
            )
        det = np.linalg.det(vectors)
        if abs(det - 1) > 1e-10:
            vectors = vectors / det
        return vectors @ np.diag(np.sqrt(values))

    def __eq__(self, other):
        if not isinstance(other, UAniso):
            return NotImplemented
        return np.allclose(self.components, other.components)

    def __repr__(self):
        return "<UAniso: {}>".format(", ".join(f"{x:.5f}" for x in self.components))


def ellipsoid_transform(adp, unit_cell, default_uiso=DEFAULT_UISO) -> np.ndarray:
    """
    The ellipsoid (or sphere) transform for any displacement parameter.

    Non positive definite anisotropic tensors and missing parameters fall
    back to an isotropic sphere rather than raising.

    Args:
        adp (UIso | UAniso | None): the displacement parameter
        unit_cell (UnitCell): the unit cell the parameters refer to
        default_uiso (float, optional): isotropic U used when nothing better
            is available

    Returns:
        np.ndarray: (3, 3) transformation matrix with determinant > 0
    """
    if isinstance(adp, UAniso):
        try:
            return adp.ellipsoid_matrix(unit_cell)
        except ValueError as e:
            ueq = adp.u_equiv(unit_cell)
            LOG.warning("Falling back to isotropic displacement: %s", e)
            if ueq <= 0:
                ueq = default_uiso
            return np.sqrt(ueq) * np.eye(3)
    if isinstance(adp, UIso) and adp.uiso > 0:
        return np.sqrt(adp.uiso) * np.eye(3)
    return np.sqrt(default_uiso) * np.eye(3)
