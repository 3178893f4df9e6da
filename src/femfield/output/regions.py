"""Region node numbering for piece-wise export.

Each exported piece gets its own contiguous local node numbering. The maps
are rebuilt for every time step; they only reference domain objects.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Sequence

import numpy as np

from femfield.output.cells import give_cell_type


@dataclass
class RegionMaps:
    """Index maps and element list of one exported (virtual) region.

    Attributes
    ----------
    region : int
        Region (or virtual region) number.
    global_to_local : np.ndarray
        Indexed by ``global_number - 1``; local number or 0 if the node is
        not in the region.
    local_to_global : np.ndarray
        Indexed by ``local_number - offset - 1``; global node number.
    n_nodes : int
        Number of distinct nodes referenced by the region's elements.
    n_cells : int
        Cell count, composite elements counted by their sub-cells.
    elements : list
        Exported elements in iteration order.
    skipped : list
        Elements left out because their geometry has no cell type.
    offset : int
        Base of the local numbering (first local number is ``offset + 1``).
    """

    region: int
    global_to_local: np.ndarray
    local_to_global: np.ndarray
    n_nodes: int
    n_cells: int
    elements: List = field(default_factory=list)
    skipped: List = field(default_factory=list)
    offset: int = 0

    def local(self, global_number: int) -> int:
        return int(self.global_to_local[int(global_number) - 1])

    def global_number(self, local_number: int) -> int:
        return int(self.local_to_global[int(local_number) - self.offset - 1])

    def local_index(self, global_number: int) -> int:
        """0-based position of a node in this piece's point list."""
        return self.local(global_number) - self.offset - 1

    def contains(self, global_number: int) -> bool:
        return self.local(global_number) > 0


def _is_exportable(elem) -> bool:
    if elem.capabilities.composite_export:
        return True
    return give_cell_type(elem.geometry_type) is not None


def _cell_count(elem) -> int:
    if elem.capabilities.composite_export:
        return int(elem.number_of_export_cells())
    return 1


def select_region_elements(
    domain,
    region: int,
    regions_to_skip: Iterable[int] = (),
    vrmap: Optional[Dict[int, int]] = None,
) -> List:
    """Elements of a (virtual) region, excluding elements of skipped regions.

    With ``vrmap`` (element number -> virtual region), ``region`` is a
    virtual region number and membership comes from the map.
    """
    skip = set(int(r) for r in regions_to_skip)
    if vrmap is None:
        candidates = domain.elements_in_region(region)
    else:
        candidates = [e for e in domain.elements() if int(vrmap.get(e.number, 0)) == region]
    return [e for e in candidates if e.region not in skip]


def init_region_node_numbering(
    domain,
    region: int,
    regions_to_skip: Iterable[int] = (),
    vrmap: Optional[Dict[int, int]] = None,
    offset: int = 0,
) -> RegionMaps:
    """Assemble the global<->local node maps of one region.

    Nodes are numbered in first-seen order while iterating the region's
    elements, starting from ``offset + 1``.
    """
    n_global = domain.n_nodes
    g2l = np.zeros(n_global, dtype=int)
    l2g: List[int] = []
    n_cells = 0
    exported = []
    skipped = []

    for elem in select_region_elements(domain, region, regions_to_skip, vrmap):
        if not _is_exportable(elem):
            skipped.append(elem)
            continue
        exported.append(elem)
        n_cells += _cell_count(elem)
        for g in elem.node_numbers:
            if g2l[g - 1] == 0:
                l2g.append(int(g))
                g2l[g - 1] = offset + len(l2g)

    return RegionMaps(
        region=int(region),
        global_to_local=g2l,
        local_to_global=np.array(l2g, dtype=int),
        n_nodes=len(l2g),
        n_cells=n_cells,
        elements=exported,
        skipped=skipped,
        offset=int(offset),
    )


def give_export_regions(domain, regions_to_skip: Sequence[int] = (), nvr: int = 0) -> List[int]:
    """Region numbers exported as pieces, in order.

    With virtual regions (``nvr > 0``) these are ``1..nvr``; skipped real
    regions are filtered element-wise instead.
    """
    if nvr > 0:
        return list(range(1, int(nvr) + 1))
    skip = set(int(r) for r in regions_to_skip)
    return [r for r in domain.region_numbers() if r not in skip]


def build_region_maps(
    domain,
    regions_to_skip: Sequence[int] = (),
    nvr: int = 0,
    vrmap: Optional[Dict[int, int]] = None,
    chain_offsets: bool = False,
) -> List[RegionMaps]:
    """Maps for every exported piece.

    With ``chain_offsets`` the local numbering continues across pieces
    (each piece starts where the previous one ended); otherwise each piece
    is numbered from 1.
    """
    maps = []
    offset = 0
    use_vrmap = vrmap if nvr > 0 else None
    for reg in give_export_regions(domain, regions_to_skip, nvr):
        m = init_region_node_numbering(domain, reg, regions_to_skip, use_vrmap, offset)
        maps.append(m)
        if chain_offsets:
            offset += m.n_nodes
    return maps
