import numpy as np


class Position:
    """
    A 3-component coordinate tagged with the frame it is expressed in.

    Subclasses set `kind` to either 'fractional' or 'cartesian'.
    """

    kind = None

    def __init__(self, x, y=None, z=None):
        if y is None and z is None:
            coords = np.array(x, dtype=np.float64)
        else:
            coords = np.array((x, y, z), dtype=np.float64)
        if coords.shape != (3,):
            raise ValueError(f"A position needs exactly 3 components, got {coords.shape}")
        self._coords = coords
        self._coords.setflags(write=False)

    @property
    def coordinates(self) -> np.ndarray:
        return self._coords

    @property
    def x(self) -> float:
        return self._coords[0]

    @property
    def y(self) -> float:
        return self._coords[1]

    @property
    def z(self) -> float:
        return self._coords[2]

    def __iter__(self):
        return iter(self._coords)

    def __eq__(self, other):
        if not isinstance(other, Position):
            return NotImplemented
        return self.kind == other.kind and np.allclose(self._coords, other._coords)

    def __repr__(self):
        x, y, z = self._coords
        return f"<{self.__class__.__name__}: ({x:.5f}, {y:.5f}, {z:.5f})>"


class FractionalPosition(Position):
    "Position in fractional coordinates of the owning unit cell"

    kind = "fractional"

    def to_cartesian(self, unit_cell) -> "CartesianPosition":
        return CartesianPosition(unit_cell.to_cartesian(self._coords))

    def to_fractional(self, unit_cell) -> "FractionalPosition":
        return self


class CartesianPosition(Position):
    "Position in Cartesian coordinates (Angstroms), already in final form"

    kind = "cartesian"

    def to_cartesian(self, unit_cell) -> "CartesianPosition":
        return self

    def to_fractional(self, unit_cell) -> FractionalPosition:
        return FractionalPosition(unit_cell.to_fractional(self._coords))


def to_cartesian(position, unit_cell) -> CartesianPosition:
    """
    Convert a position to Cartesian coordinates using the given unit cell.
    Cartesian positions are returned unchanged.

    Args:
        position (Position): the position to convert
        unit_cell (UnitCell): the unit cell the position is expressed in

    Returns:
        CartesianPosition: the Cartesian position
    """
    return position.to_cartesian(unit_cell)
