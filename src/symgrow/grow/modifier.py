import logging
from itertools import product
from symgrow.crystal.bonds import NO_SYMMETRY
from .grow_symmetry import grow_symmetry

LOG = logging.getLogger(__name__)


class StructureModifier:
    """
    Base class for modifiers that transform a structure according to a
    mode chosen from a fixed set, some of which may not apply to a given
    structure.
    """

    MODES = ()
    PREFERRED_FALLBACK_ORDER = ()
    DEFAULT_MODE = None

    def __init__(self, mode=None):
        self._mode = None
        self.mode = mode if mode is not None else self.DEFAULT_MODE

    @property
    def mode(self):
        return self._mode

    @mode.setter
    def mode(self, value):
        used = value.lower().replace("_", "-")
        if used not in self.MODES:
            raise ValueError(
                f'Invalid {self.__class__.__name__} mode: "{value}". '
                f"Valid modes are: {', '.join(self.MODES)}"
            )
        self._mode = used

    def applicable_modes(self, structure):
        raise NotImplementedError

    def ensure_valid_mode(self, structure):
        "Switch to the preferred fallback if the current mode does not apply"
        valid = self.applicable_modes(structure)
        if self._mode not in valid:
            fallback = next((m for m in self.PREFERRED_FALLBACK_ORDER if m in valid), valid[0])
            LOG.debug("Mode %s does not apply, using %s", self._mode, fallback)
            self._mode = fallback

    def cycle_mode(self, structure):
        "Advance to the next applicable mode and return it"
        modes = self.applicable_modes(structure)
        self.ensure_valid_mode(structure)
        self._mode = modes[(modes.index(self._mode) + 1) % len(modes)]
        return self._mode

    def apply(self, structure):
        raise NotImplementedError


class SymmetryGrower(StructureModifier):
    """
    Grow a structure along its bonds and/or hydrogen bonds to symmetry
    equivalent atoms.

    Modes are 'bonds-<x>-hbonds-<y>' where each of x, y is 'yes' (grow along
    them), 'no' (keep them as bonds to symmetry codes) or 'none' (the
    structure has none of them).
    """

    MODES = tuple(
        f"bonds-{b}-hbonds-{h}" for b, h in product(("yes", "no", "none"), repeat=2)
    )
    PREFERRED_FALLBACK_ORDER = (
        "bonds-no-hbonds-no",
        "bonds-no-hbonds-none",
        "bonds-none-hbonds-no",
    )
    DEFAULT_MODE = "bonds-no-hbonds-no"

    def __init__(self, mode=None, **grow_kwargs):
        super().__init__(mode)
        self.grow_kwargs = grow_kwargs

    def applicable_modes(self, structure):
        has_bonds = any(b.atom2_site_symmetry != NO_SYMMETRY for b in structure.bonds)
        has_hbonds = any(hb.acceptor_atom_symmetry != NO_SYMMETRY for hb in structure.hbonds)
        bond_options = ("yes", "no") if has_bonds else ("none",)
        hbond_options = ("yes", "no") if has_hbonds else ("none",)
        return [
            f"bonds-{b}-hbonds-{h}" for b, h in product(bond_options, hbond_options)
        ]

    @property
    def follow_bonds(self):
        return self._mode.startswith("bonds-yes")

    @property
    def follow_hbonds(self):
        return self._mode.endswith("hbonds-yes")

    def apply(self, structure):
        """
        Grow `structure` according to the current mode.

        Returns:
            CrystalStructure: the grown structure, or `structure` itself if
                the mode grows along nothing
        """
        self.ensure_valid_mode(structure)
        if not (self.follow_bonds or self.follow_hbonds):
            return structure
        return grow_symmetry(
            structure,
            follow_bonds=self.follow_bonds,
            follow_hbonds=self.follow_hbonds,
            **self.grow_kwargs,
        )
