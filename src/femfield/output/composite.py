"""Composite-cell export capability.

Elements whose visualization geometry is not a single VTK cell (subdivided,
cut or layered elements) implement :class:`CompositeExportInterface`. The
exporter asks such an element for a :class:`CompositeExportData` block and
appends it to the piece being built without interpreting its contents.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Dict, List, Sequence

import numpy as np

from femfield.timestep import TimeStep
from femfield.value_types import InternalStateType, UnknownType


@dataclass
class CompositeExportData:
    """Points, sub-cells and values an element supplies for one time step.

    Attributes
    ----------
    node_coords : np.ndarray
        Point coordinates (n_points, 3).
    cell_nodes : list of np.ndarray
        Per sub-cell, 0-based indices into ``node_coords``.
    cell_types : list of int
        VTK cell type code per sub-cell.
    primary_values : dict
        Unknown type -> values (n_points, ncomp) in full (exported) form.
    internal_values : dict
        Internal variable -> point values (n_points, ncomp) in full form.
    cell_values : dict
        Internal variable -> sub-cell values (n_cells, ncomp) in full form.
    """

    node_coords: np.ndarray
    cell_nodes: List[np.ndarray]
    cell_types: List[int]
    primary_values: Dict[UnknownType, np.ndarray] = field(default_factory=dict)
    internal_values: Dict[InternalStateType, np.ndarray] = field(default_factory=dict)
    cell_values: Dict[InternalStateType, np.ndarray] = field(default_factory=dict)

    @property
    def n_points(self) -> int:
        return int(np.asarray(self.node_coords).shape[0])

    @property
    def n_cells(self) -> int:
        return len(self.cell_nodes)

    def validate(self) -> None:
        """Check block sizes; raises ValueError on mismatch."""
        if len(self.cell_types) != self.n_cells:
            raise ValueError("Composite export: one cell type per sub-cell is required")
        for cell in self.cell_nodes:
            c = np.asarray(cell, dtype=int)
            if c.size and (c.min() < 0 or c.max() >= self.n_points):
                raise ValueError("Composite export: sub-cell references a point outside the element block")
        for name, block in list(self.primary_values.items()) + list(self.internal_values.items()):
            if np.asarray(block).shape[0] != self.n_points:
                raise ValueError(f"Composite export: point block '{name}' does not match point count")
        for name, block in self.cell_values.items():
            if np.asarray(block).shape[0] != self.n_cells:
                raise ValueError(f"Composite export: cell block '{name}' does not match sub-cell count")


class CompositeExportInterface(ABC):
    """Implemented by elements exported as several sub-cells."""

    @abstractmethod
    def number_of_export_cells(self) -> int:
        """Number of sub-cells the element contributes to a piece."""

    @abstractmethod
    def give_composite_export_data(
        self,
        primary_vars: Sequence[UnknownType],
        internal_vars: Sequence[InternalStateType],
        cell_vars: Sequence[InternalStateType],
        tstep: TimeStep,
    ) -> CompositeExportData:
        """Build the element's export block for ``tstep``."""
