"""
Connections between the connected groups of an asymmetric unit through
bonds and hydrogen bonds that need symmetry, and the breadth first
exploration of the resulting network of symmetry instances.

Exploration stops at translations: a group reached again with an
operation already seen from the same starting group, differing only by a
lattice translation, is recorded as a translation link and not expanded.
"""
import logging
from collections import deque, namedtuple
from dataclasses import dataclass
from typing import Tuple
from symgrow.crystal.bonds import NO_SYMMETRY, HBond
from symgrow.crystal.cell_symmetry import SymmetryCode

LOG = logging.getLogger(__name__)

MAX_EXPLORATION_ITERATIONS = 10000


class SymmetryInstance(namedtuple("SymmetryInstance", "group_index symmetry")):
    "One copy of a connected group, placed by a symmetry code"

    __slots__ = ()

    def is_translational_duplicate_of(self, other) -> bool:
        """
        True if both are the same group under the same operation, only
        differing by a lattice translation.
        """
        return (
            self.group_index == other.group_index
            and self.symmetry.operation_id == other.symmetry.operation_id
            and self.symmetry.translation != other.symmetry.translation
        )

    def __str__(self):
        return f"{self.group_index}@{self.symmetry}"


class ConnectionKey(namedtuple("ConnectionKey", "first second")):
    """
    Key of a connection between two symmetry instances, the same in
    either direction.
    """

    __slots__ = ()

    @classmethod
    def between(cls, origin, target):
        first, second = sorted((origin, target))
        return cls(first, second)


ConnectingBond = namedtuple("ConnectingBond", "origin_atom target_atom bond")
ConnectingBond.__doc__ = """
One bond or hydrogen bond bridging two groups. For hydrogen bonds the
origin atom is the donor and the target atom the acceptor; `bond` is the
original Bond or HBond with its distances, angle and uncertainties.
"""

SeedConnection = namedtuple(
    "SeedConnection", "origin_index target_index symmetry connecting_bonds"
)
SeedConnection.__doc__ = """
All bonds from group `origin_index` to the image of group
`target_index` under `symmetry`, relative to the asymmetric unit.
"""


@dataclass(frozen=True)
class ConnectingBondGroup:
    """
    A connection between two symmetry instances found during exploration.

    Attributes:
        origin_index: group the connection leaves from
        origin_symmetry: code placing the origin group
        target_index: group the connection leads to
        connecting_symmetry: code of the connecting bonds, relative to
            the origin group
        target_symmetry: code placing the target group, i.e.
            connecting_symmetry o origin_symmetry
        connecting_bonds: the bonds making up this connection
        creation_origin_index: group the exploration path started from
    """

    origin_index: int
    origin_symmetry: SymmetryCode
    target_index: int
    connecting_symmetry: SymmetryCode
    target_symmetry: SymmetryCode
    connecting_bonds: Tuple[ConnectingBond, ...]
    creation_origin_index: int

    @property
    def origin(self) -> SymmetryInstance:
        return SymmetryInstance(self.origin_index, self.origin_symmetry)

    @property
    def target(self) -> SymmetryInstance:
        return SymmetryInstance(self.target_index, self.target_symmetry)

    @property
    def key(self) -> ConnectionKey:
        return ConnectionKey.between(self.origin, self.target)

    @classmethod
    def from_seed(cls, seed, origin_symmetry, creation_origin_index, symmetry):
        return cls(
            origin_index=seed.origin_index,
            origin_symmetry=origin_symmetry,
            target_index=seed.target_index,
            connecting_symmetry=seed.symmetry,
            target_symmetry=symmetry.combine(seed.symmetry, origin_symmetry),
            connecting_bonds=seed.connecting_bonds,
            creation_origin_index=creation_origin_index,
        )


Connectivity = namedtuple(
    "Connectivity", "network_connections translation_links discovered_groups"
)


def get_seed_connections(structure, follow_bonds=True, follow_hbonds=True):
    """
    Collect the bonds and hydrogen bonds needing symmetry, grouped by
    origin group, target group and symmetry code.

    Args:
        structure (CrystalStructure): the asymmetric unit
        follow_bonds (bool, optional): include covalent bonds
        follow_hbonds (bool, optional): include hydrogen bonds

    Returns:
        List[List[SeedConnection]]: the seed connections leaving each group

    Raises:
        StructureConsistencyError: if a bond references an atom missing
            from every connected group
    """
    symmetry = structure.symmetry
    grouped = {}

    def add(origin_atom, target_atom, code, bond):
        origin = structure.group_index_of(origin_atom)
        target = structure.group_index_of(target_atom)
        key = (origin, target, symmetry.parse_code(code))
        grouped.setdefault(key, []).append(ConnectingBond(origin_atom, target_atom, bond))

    if follow_bonds:
        for bond in structure.bonds:
            if bond.atom2_site_symmetry != NO_SYMMETRY:
                add(bond.atom1_label, bond.atom2_label, bond.atom2_site_symmetry, bond)
    if follow_hbonds:
        for hbond in structure.hbonds:
            if hbond.acceptor_atom_symmetry != NO_SYMMETRY:
                add(
                    hbond.donor_atom_label,
                    hbond.acceptor_atom_label,
                    hbond.acceptor_atom_symmetry,
                    hbond,
                )

    seeds = [[] for _ in structure.connected_groups]
    for (origin, target, code), members in grouped.items():
        seeds[origin].append(SeedConnection(origin, target, code, tuple(members)))
    LOG.debug("Found %d seed connections", len(grouped))
    return seeds


class ExplorationState:
    """
    Mutable state of one exploration: the queue of connections still to
    follow, the keys already handled, and the instances discovered from
    each starting group.
    """

    def __init__(self, n_groups, identity):
        self.queue = deque()
        self.processed = set()
        self.discovered = [{SymmetryInstance(i, identity)} for i in range(n_groups)]
        self.network_connections = []
        self.translation_links = []

    def add_connection(self, connection) -> bool:
        """
        Queue `connection` unless its key was handled already. Connections
        that only reach a translated copy of a discovered instance become
        translation links instead.

        Returns:
            bool: True if the connection was new
        """
        key = connection.key
        if key in self.processed:
            return False
        self.processed.add(key)
        target = connection.target
        discovered = self.discovered[connection.creation_origin_index]
        if any(target.is_translational_duplicate_of(d) for d in discovered):
            LOG.debug("Translation link %s -> %s", connection.origin, target)
            self.translation_links.append(connection)
        else:
            self.queue.append(connection)
        return True


def initialize_exploration(structure, seeds) -> ExplorationState:
    "Start an exploration from the untransformed copy of every group"
    symmetry = structure.symmetry
    identity = symmetry.identity_code
    state = ExplorationState(len(seeds), identity)
    for group_index, group_seeds in enumerate(seeds):
        for seed in group_seeds:
            state.add_connection(
                ConnectingBondGroup.from_seed(seed, identity, group_index, symmetry)
            )
    return state


def explore_connection(state, seeds, symmetry):
    """
    Follow the next queued connection: record the instance it reaches and
    queue every connection leaving that instance.
    """
    connection = state.queue.popleft()
    state.network_connections.append(connection)
    reached = connection.target
    state.discovered[connection.creation_origin_index].add(reached)
    for seed in seeds[reached.group_index]:
        state.add_connection(
            ConnectingBondGroup.from_seed(
                seed, reached.symmetry, connection.creation_origin_index, symmetry
            )
        )


def create_connectivity(
    structure,
    follow_bonds=True,
    follow_hbonds=True,
    max_iterations=MAX_EXPLORATION_ITERATIONS,
) -> Connectivity:
    """
    Explore the network of symmetry instances reachable from the
    asymmetric unit through bonds (and hydrogen bonds) needing symmetry.

    Args:
        structure (CrystalStructure): the asymmetric unit
        follow_bonds (bool, optional): follow covalent bonds
        follow_hbonds (bool, optional): follow hydrogen bonds
        max_iterations (int, optional): stop after this many connections
            have been followed, returning what was found so far

    Returns:
        Connectivity: connections followed, translation links found and the
            instances discovered from each starting group
    """
    seeds = get_seed_connections(structure, follow_bonds, follow_hbonds)
    state = initialize_exploration(structure, seeds)
    iterations = 0
    while state.queue:
        if iterations >= max_iterations:
            LOG.warning(
                "Symmetry exploration stopped after %d iterations with %d "
                "connections left, the grown structure will be incomplete",
                iterations,
                len(state.queue),
            )
            break
        explore_connection(state, seeds, structure.symmetry)
        iterations += 1
    LOG.debug(
        "Explored %d connections, %d translation links",
        len(state.network_connections),
        len(state.translation_links),
    )
    return Connectivity(
        state.network_connections, state.translation_links, state.discovered
    )


def is_hbond_connection(connecting_bond) -> bool:
    return isinstance(connecting_bond.bond, HBond)
