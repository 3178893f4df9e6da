"""Mesh container: nodes with DOF values, elements grouped by region.

Numbering follows the usual FE convention: node and element numbers are
1-based and contiguous. Regions are identified by positive integers; an
element belongs to exactly one region.
"""

from __future__ import annotations

from collections import defaultdict
from typing import Dict, Iterable, Iterator, List, Optional, Sequence

import numpy as np

from femfield.value_types import DofID, UnknownType


class Node:
    """Node (DOF manager) with coordinates and per-unknown DOF values."""

    def __init__(self, number: int, coords: Sequence[float], dofs: Iterable[DofID] = (DofID.D_u, DofID.D_v, DofID.D_w)):
        c = np.zeros(3, dtype=float)
        xyz = np.asarray(coords, dtype=float).reshape(-1)
        if xyz.size > 3:
            raise ValueError(f"Node {number}: at most 3 coordinates, got {xyz.size}")
        c[: xyz.size] = xyz
        self.number = int(number)
        self.coords = c
        self.dofs = tuple(dofs)
        self._values: Dict[UnknownType, Dict[DofID, float]] = {}

    def has_dof(self, dof: DofID) -> bool:
        return dof in self.dofs

    def set_unknown(self, utype: UnknownType, values: Dict[DofID, float]) -> None:
        """Store the values of ``utype`` for the current step."""
        for dof in values:
            if dof not in self.dofs:
                raise ValueError(f"Node {self.number} has no DOF {dof.value}")
        self._values.setdefault(utype, {}).update({d: float(v) for d, v in values.items()})

    def give_unknown(self, utype: UnknownType, dof: DofID) -> float:
        return float(self._values.get(utype, {}).get(dof, 0.0))

    def give_unknown_vector(self, utype: UnknownType, dofs: Sequence[DofID]) -> np.ndarray:
        return np.array([self.give_unknown(utype, d) for d in dofs], dtype=float)

    def __repr__(self) -> str:
        return f"Node({self.number}, {self.coords.tolist()})"


class Domain:
    """Owns nodes and elements; the export pipeline only references them."""

    def __init__(self) -> None:
        self._nodes: List[Node] = []
        self._elements: List = []

    # ---- construction ----

    def add_node(self, coords: Sequence[float], dofs: Iterable[DofID] = (DofID.D_u, DofID.D_v, DofID.D_w)) -> Node:
        node = Node(len(self._nodes) + 1, coords, dofs)
        self._nodes.append(node)
        return node

    def add_element(self, element) -> None:
        if element.number != len(self._elements) + 1:
            raise ValueError(
                f"Element numbers must be contiguous: expected {len(self._elements) + 1}, got {element.number}"
            )
        for n in element.node_numbers:
            if not (1 <= n <= len(self._nodes)):
                raise ValueError(f"Element {element.number} references unknown node {n}")
        element.domain = self
        self._elements.append(element)

    # ---- queries ----

    @property
    def n_nodes(self) -> int:
        return len(self._nodes)

    @property
    def n_elements(self) -> int:
        return len(self._elements)

    def node(self, number: int) -> Node:
        return self._nodes[number - 1]

    def element(self, number: int):
        return self._elements[number - 1]

    def nodes(self) -> Iterator[Node]:
        return iter(self._nodes)

    def elements(self) -> Iterator:
        return iter(self._elements)

    def region_numbers(self) -> List[int]:
        return sorted({int(e.region) for e in self._elements})

    @property
    def n_regions(self) -> int:
        regs = self.region_numbers()
        return max(regs) if regs else 0

    def elements_in_region(self, region: int) -> List:
        return [e for e in self._elements if e.region == region]

    def node_element_table(self, elements: Optional[Iterable] = None) -> Dict[int, List]:
        """Global node number -> elements (from ``elements``) containing it."""
        table: Dict[int, List] = defaultdict(list)
        for e in self._elements if elements is None else elements:
            for n in e.node_numbers:
                table[int(n)].append(e)
        return table
