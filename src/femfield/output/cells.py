"""Element geometry -> VTK cell type and node ordering."""

from __future__ import annotations

from typing import Dict, Optional, Tuple

import numpy as np

from femfield.fem.element import ElementGeometryType

VTK_VERTEX = 1
VTK_LINE = 3
VTK_TRIANGLE = 5
VTK_QUAD = 9
VTK_TETRA = 10
VTK_HEXAHEDRON = 12
VTK_WEDGE = 13
VTK_PYRAMID = 14
VTK_QUADRATIC_EDGE = 21
VTK_QUADRATIC_TRIANGLE = 22
VTK_QUADRATIC_QUAD = 23
VTK_QUADRATIC_TETRA = 24
VTK_QUADRATIC_HEXAHEDRON = 25

CELL_TYPES: Dict[ElementGeometryType, int] = {
    ElementGeometryType.POINT: VTK_VERTEX,
    ElementGeometryType.LINE_1: VTK_LINE,
    ElementGeometryType.LINE_2: VTK_QUADRATIC_EDGE,
    ElementGeometryType.TRIANGLE_1: VTK_TRIANGLE,
    ElementGeometryType.TRIANGLE_2: VTK_QUADRATIC_TRIANGLE,
    ElementGeometryType.QUAD_1: VTK_QUAD,
    ElementGeometryType.QUAD_2: VTK_QUADRATIC_QUAD,
    ElementGeometryType.TETRA_1: VTK_TETRA,
    ElementGeometryType.TETRA_2: VTK_QUADRATIC_TETRA,
    ElementGeometryType.HEXA_1: VTK_HEXAHEDRON,
    ElementGeometryType.HEXA_2: VTK_QUADRATIC_HEXAHEDRON,
    ElementGeometryType.WEDGE_1: VTK_WEDGE,
    ElementGeometryType.PYRAMID_1: VTK_PYRAMID,
}

NODES_PER_CELL: Dict[int, int] = {
    VTK_VERTEX: 1,
    VTK_LINE: 2,
    VTK_TRIANGLE: 3,
    VTK_QUAD: 4,
    VTK_TETRA: 4,
    VTK_HEXAHEDRON: 8,
    VTK_WEDGE: 6,
    VTK_PYRAMID: 5,
    VTK_QUADRATIC_EDGE: 3,
    VTK_QUADRATIC_TRIANGLE: 6,
    VTK_QUADRATIC_QUAD: 8,
    VTK_QUADRATIC_TETRA: 10,
    VTK_QUADRATIC_HEXAHEDRON: 20,
}

# element node order -> VTK node order (0-based positions in the element list)
_NODE_ORDER: Dict[ElementGeometryType, Tuple[int, ...]] = {
    ElementGeometryType.HEXA_1: (4, 5, 6, 7, 0, 1, 2, 3),
}


def give_cell_type(geometry: ElementGeometryType) -> Optional[int]:
    """VTK cell type for a single-cell geometry, None if unsupported."""
    return CELL_TYPES.get(geometry)


def give_element_cell(geometry: ElementGeometryType, node_numbers) -> np.ndarray:
    """Element nodes in VTK order."""
    nodes = np.asarray(node_numbers, dtype=int)
    order = _NODE_ORDER.get(geometry)
    if order is None:
        return nodes.copy()
    return nodes[list(order)]
