"""
Grow an asymmetric unit into chemically complete fragments by adding the
symmetry equivalent atoms, bonds and hydrogen bonds reachable through
bonds that need symmetry.
"""
import dataclasses
import logging
from collections import namedtuple
import numpy as np
from symgrow.crystal.bonds import NO_SYMMETRY
from .connectivity import (
    MAX_EXPLORATION_ITERATIONS,
    SymmetryInstance,
    create_connectivity,
    is_hbond_connection,
)
from .labels import create_bond_identifier, create_hbond_identifier, create_sym_atom_label

LOG = logging.getLogger(__name__)

# Angstrom, per cell axis
SPECIAL_POSITION_TOLERANCE = 1e-5

SymmetryRequirements = namedtuple("SymmetryRequirements", "instances bonds hbonds")
SymmetryRequirements.__doc__ = """
Symmetry instances needed by the followed connections, in order of
discovery, and the bonds/hydrogen bonds between them with generated labels.
"""


def collect_symmetry_requirements(structure, connectivity) -> SymmetryRequirements:
    """
    Gather every symmetry instance touched by a followed connection, and
    turn the bonds of each connection into bonds between generated labels.

    Args:
        structure (CrystalStructure): the asymmetric unit
        connectivity (Connectivity): result of `create_connectivity`

    Returns:
        SymmetryRequirements: instances, bonds and hydrogen bonds
    """
    symmetry = structure.symmetry
    instances = {}
    bonds = []
    hbonds = []
    for connection in connectivity.network_connections:
        instances.setdefault(connection.origin, None)
        instances.setdefault(connection.target, None)
        for member in connection.connecting_bonds:
            origin_code = connection.origin_symmetry
            target_label = create_sym_atom_label(
                member.target_atom, connection.target_symmetry, symmetry
            )
            bond = member.bond
            if is_hbond_connection(member):
                hbonds.append(
                    dataclasses.replace(
                        bond,
                        donor_atom_label=create_sym_atom_label(
                            bond.donor_atom_label, origin_code, symmetry
                        ),
                        hydrogen_atom_label=create_sym_atom_label(
                            bond.hydrogen_atom_label, origin_code, symmetry
                        ),
                        acceptor_atom_label=target_label,
                        acceptor_atom_symmetry=NO_SYMMETRY,
                    )
                )
            else:
                bonds.append(
                    dataclasses.replace(
                        bond,
                        atom1_label=create_sym_atom_label(
                            member.origin_atom, origin_code, symmetry
                        ),
                        atom2_label=target_label,
                        atom2_site_symmetry=NO_SYMMETRY,
                    )
                )
    return SymmetryRequirements(tuple(instances), bonds, hbonds)


def _grown_instances(structure, instances):
    "The required instances plus the untransformed copy of every group"
    identity = structure.symmetry.identity_code
    result = {SymmetryInstance(i, identity): None for i in range(len(structure.connected_groups))}
    result.update((x, None) for x in instances)
    return tuple(result)


def _is_present(instance, instances, identity):
    return instance.symmetry == identity or instance in instances


def generate_symmetry_atoms(structure, instances, tolerance=SPECIAL_POSITION_TOLERANCE):
    """
    Create the atoms of every non-identity instance, collapsing copies of
    an atom that land on the same site (special positions).

    Two copies coincide if their fractional coordinates, scaled by the cell
    lengths, differ by less than `tolerance` along each axis. The first copy
    (the untransformed atom if it is among them) is kept.

    Args:
        structure (CrystalStructure): the asymmetric unit
        instances (Iterable[SymmetryInstance]): the instances to generate
        tolerance (float, optional): per axis tolerance in Angstroms

    Returns:
        Tuple[List[Atom], Dict[str, str]]: all atoms, original first, and
            the label substitutions for collapsed copies
    """
    symmetry = structure.symmetry
    unit_cell = structure.unit_cell
    identity = symmetry.identity_code
    groups = structure.connected_groups
    lengths = np.array(unit_cell.lengths)
    existing = set(structure.labels)

    codes_by_group = {}
    for instance in instances:
        if instance.symmetry != identity:
            codes_by_group.setdefault(instance.group_index, []).append(instance.symmetry)

    generated = {}
    substitutions = {}
    for group_index, codes in codes_by_group.items():
        group = groups[group_index]
        copies = []
        for code in codes:
            transformed = symmetry.apply(code, group.atoms, unit_cell)
            copies.append(
                [
                    dataclasses.replace(
                        atom, label=create_sym_atom_label(original.label, code, symmetry)
                    )
                    for original, atom in zip(group.atoms, transformed)
                ]
            )
        for k, original in enumerate(group.atoms):
            kept = [original]
            kept_positions = [original.position.to_fractional(unit_cell).coordinates]
            for code, atoms in zip(codes, copies):
                atom = atoms[k]
                position = atom.position.coordinates
                for other, other_position in zip(kept, kept_positions):
                    if np.all(np.abs(position - other_position) * lengths < tolerance):
                        if atom.label != other.label:
                            LOG.debug("%s is on a special position, same as %s", atom.label, other.label)
                            substitutions[atom.label] = other.label
                        break
                else:
                    kept.append(atom)
                    kept_positions.append(position)
                    generated[(group_index, code, k)] = atom

    new_atoms = list(structure.atoms)
    labels = set(existing)
    for group_index, codes in codes_by_group.items():
        for code in codes:
            for k in range(len(groups[group_index].atoms)):
                atom = generated.get((group_index, code, k))
                if atom is not None and atom.label not in labels:
                    labels.add(atom.label)
                    new_atoms.append(atom)
    LOG.debug(
        "Generated %d atoms, %d collapsed on special positions",
        len(new_atoms) - len(structure.atoms),
        len(substitutions),
    )
    return new_atoms, substitutions


def _substitute_bond(bond, substitutions):
    return dataclasses.replace(
        bond,
        atom1_label=substitutions.get(bond.atom1_label, bond.atom1_label),
        atom2_label=substitutions.get(bond.atom2_label, bond.atom2_label),
    )


def _substitute_hbond(hbond, substitutions):
    return dataclasses.replace(
        hbond,
        donor_atom_label=substitutions.get(hbond.donor_atom_label, hbond.donor_atom_label),
        hydrogen_atom_label=substitutions.get(
            hbond.hydrogen_atom_label, hbond.hydrogen_atom_label
        ),
        acceptor_atom_label=substitutions.get(
            hbond.acceptor_atom_label, hbond.acceptor_atom_label
        ),
    )


class _UniqueBonds:
    "Ordered collection of bonds or hydrogen bonds without duplicates"

    def __init__(self, identifier, substitute, substitutions, initial=()):
        self.identifier = identifier
        self.substitute = substitute
        self.substitutions = substitutions
        self.items = []
        self.seen = set()
        for item in initial:
            self.add(item)

    def add(self, item):
        item = self.substitute(item, self.substitutions)
        if item.symmetry == NO_SYMMETRY and item.labels[0] == item.labels[-1]:
            return
        key = self.identifier(item)
        if key in self.seen:
            return
        self.seen.add(key)
        self.items.append(item)

    def extend(self, items):
        for item in items:
            self.add(item)


def _external_target(structure, item, code, required):
    """
    Where the last atom of a bond needing symmetry ends up when its first
    atom is placed by `code`: the generated label with symmetry '.' if that
    instance exists, otherwise the plain label with the composed code.
    """
    symmetry = structure.symmetry
    last = item.labels[-1]
    target_code = symmetry.combine(item.symmetry, code)
    target = SymmetryInstance(structure.group_index_of(last), target_code)
    if _is_present(target, required, symmetry.identity_code):
        return create_sym_atom_label(last, target_code, symmetry), NO_SYMMETRY
    return last, str(target_code)


def _instance_bonds(structure, instances):
    """
    Relabelled copies of the bonds of each instance, including those
    needing symmetry, which become internal where possible.
    """
    symmetry = structure.symmetry
    groups = structure.connected_groups
    required = set(instances)
    external = [b for b in structure.bonds if b.atom2_site_symmetry != NO_SYMMETRY]
    for group_index, code in _grown_instances(structure, instances):
        if code != symmetry.identity_code:
            for bond in groups[group_index].bonds:
                yield dataclasses.replace(
                    bond,
                    atom1_label=create_sym_atom_label(bond.atom1_label, code, symmetry),
                    atom2_label=create_sym_atom_label(bond.atom2_label, code, symmetry),
                )
        for bond in external:
            if structure.group_index_of(bond.atom1_label) != group_index:
                continue
            label, site_symmetry = _external_target(structure, bond, code, required)
            yield dataclasses.replace(
                bond,
                atom1_label=create_sym_atom_label(bond.atom1_label, code, symmetry),
                atom2_label=label,
                atom2_site_symmetry=site_symmetry,
            )


def _instance_hbonds(structure, instances):
    "As `_instance_bonds`, for hydrogen bonds keyed on their donor"
    symmetry = structure.symmetry
    groups = structure.connected_groups
    required = set(instances)
    for group_index, code in _grown_instances(structure, instances):
        for hbond in groups[group_index].hbonds:
            if hbond.acceptor_atom_symmetry == NO_SYMMETRY:
                if code == symmetry.identity_code:
                    continue
                label = create_sym_atom_label(hbond.acceptor_atom_label, code, symmetry)
                site_symmetry = NO_SYMMETRY
            else:
                label, site_symmetry = _external_target(structure, hbond, code, required)
            yield dataclasses.replace(
                hbond,
                donor_atom_label=create_sym_atom_label(hbond.donor_atom_label, code, symmetry),
                hydrogen_atom_label=create_sym_atom_label(
                    hbond.hydrogen_atom_label, code, symmetry
                ),
                acceptor_atom_label=label,
                acceptor_atom_symmetry=site_symmetry,
            )


def generate_symmetry_bonds(structure, requirements, substitutions):
    """
    The bonds of the grown structure, apart from translation link bonds:
    bonds of the asymmetric unit, their copies in each instance and the
    bonds between instances. Bonds needing symmetry are made internal
    where the instance they reach was generated.

    Args:
        structure (CrystalStructure): the asymmetric unit
        requirements (SymmetryRequirements): from `collect_symmetry_requirements`
        substitutions (Dict[str, str]): label substitutions for special positions

    Returns:
        List[Bond]: bonds without duplicates
    """
    bonds = _UniqueBonds(
        create_bond_identifier,
        _substitute_bond,
        substitutions,
        initial=(b for b in structure.bonds if b.atom2_site_symmetry == NO_SYMMETRY),
    )
    bonds.extend(_instance_bonds(structure, requirements.instances))
    bonds.extend(requirements.bonds)
    return bonds.items


def generate_symmetry_hbonds(structure, requirements, substitutions):
    """
    The hydrogen bonds of the grown structure, apart from translation link
    hydrogen bonds. A hydrogen bond whose acceptor lies in another group
    becomes internal if the acceptor's instance was generated, otherwise
    it is kept as an external hydrogen bond with the composed code.

    Args:
        structure (CrystalStructure): the asymmetric unit
        requirements (SymmetryRequirements): from `collect_symmetry_requirements`
        substitutions (Dict[str, str]): label substitutions for special positions

    Returns:
        List[HBond]: hydrogen bonds without duplicates
    """
    hbonds = _UniqueBonds(
        create_hbond_identifier,
        _substitute_hbond,
        substitutions,
        initial=(hb for hb in structure.hbonds if hb.acceptor_atom_symmetry == NO_SYMMETRY),
    )
    hbonds.extend(_instance_hbonds(structure, requirements.instances))
    hbonds.extend(requirements.hbonds)
    return hbonds.items


def process_translation_links(structure, translation_links, instances=()):
    """
    Bonds closing rings and networks across lattice translations. Each
    bond of a translation link connects the generated origin atom to the
    target atom: the generated copy with symmetry '.' if the target instance
    was grown from another starting group, otherwise the existing atom with
    the link's composed code as site symmetry.

    Args:
        structure (CrystalStructure): the asymmetric unit
        translation_links (List[ConnectingBondGroup]): links found by
            `create_connectivity`
        instances (Iterable[SymmetryInstance], optional): the generated instances

    Returns:
        Tuple[List[Bond], List[HBond]]: the completion bonds and hydrogen bonds
    """
    symmetry = structure.symmetry
    required = set(instances)
    bonds = []
    hbonds = []
    for link in translation_links:
        code = link.origin_symmetry
        for member in link.connecting_bonds:
            bond = member.bond
            label, site_symmetry = _external_target(structure, bond, code, required)
            if is_hbond_connection(member):
                hbonds.append(
                    dataclasses.replace(
                        bond,
                        donor_atom_label=create_sym_atom_label(bond.donor_atom_label, code, symmetry),
                        hydrogen_atom_label=create_sym_atom_label(
                            bond.hydrogen_atom_label, code, symmetry
                        ),
                        acceptor_atom_label=label,
                        acceptor_atom_symmetry=site_symmetry,
                    )
                )
            else:
                bonds.append(
                    dataclasses.replace(
                        bond,
                        atom1_label=create_sym_atom_label(member.origin_atom, code, symmetry),
                        atom2_label=label,
                        atom2_site_symmetry=site_symmetry,
                    )
                )
    return bonds, hbonds


def grow_symmetry(
    structure,
    follow_bonds=True,
    follow_hbonds=True,
    tolerance=SPECIAL_POSITION_TOLERANCE,
    max_iterations=MAX_EXPLORATION_ITERATIONS,
):
    """
    Grow the asymmetric unit so that fragments connected through symmetry
    are complete. The input structure is not modified.

    Args:
        structure (CrystalStructure): the asymmetric unit
        follow_bonds (bool, optional): grow along bonds needing symmetry
        follow_hbonds (bool, optional): grow along hydrogen bonds needing symmetry
        tolerance (float, optional): per axis tolerance in Angstroms for
            copies to count as the same site
        max_iterations (int, optional): limit on the exploration

    Returns:
        CrystalStructure: a new structure with the original and the generated
            atoms, bonds and hydrogen bonds

    Raises:
        StructureConsistencyError: if a bond references an atom that is not
            part of the structure
    """
    connectivity = create_connectivity(
        structure,
        follow_bonds=follow_bonds,
        follow_hbonds=follow_hbonds,
        max_iterations=max_iterations,
    )
    requirements = collect_symmetry_requirements(structure, connectivity)
    atoms, substitutions = generate_symmetry_atoms(
        structure, requirements.instances, tolerance=tolerance
    )
    bonds = generate_symmetry_bonds(structure, requirements, substitutions)
    hbonds = generate_symmetry_hbonds(structure, requirements, substitutions)

    link_bonds, link_hbonds = process_translation_links(
        structure, connectivity.translation_links, requirements.instances
    )
    bonds = _UniqueBonds(create_bond_identifier, _substitute_bond, substitutions, bonds)
    bonds.extend(link_bonds)
    hbonds = _UniqueBonds(create_hbond_identifier, _substitute_hbond, substitutions, hbonds)
    hbonds.extend(link_hbonds)

    LOG.info(
        "Grown structure has %d atoms (%d new), %d bonds, %d hbonds",
        len(atoms),
        len(atoms) - len(structure.atoms),
        len(bonds.items),
        len(hbonds.items),
    )
    return structure.with_contents(atoms, bonds.items, hbonds.items)
