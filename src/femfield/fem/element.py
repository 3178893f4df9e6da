"""Element base class and the element capability record.

Optional behaviours (composite export, the recovery interfaces, primary
field mapping) are declared once per element class in an
:class:`ElementCapabilities` record. Export code queries that record instead
of probing the element for methods.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Sequence

import numpy as np

from femfield.material_point import IntegrationPoint
from femfield.timestep import TimeStep
from femfield.value_types import UNKNOWN_DOFS, InternalStateType, MaterialMode, UnknownType


class ElementGeometryType(Enum):
    POINT = "point"
    LINE_1 = "line_1"
    LINE_2 = "line_2"
    TRIANGLE_1 = "triangle_1"
    TRIANGLE_2 = "triangle_2"
    QUAD_1 = "quad_1"
    QUAD_2 = "quad_2"
    TETRA_1 = "tetra_1"
    TETRA_2 = "tetra_2"
    HEXA_1 = "hexa_1"
    HEXA_2 = "hexa_2"
    WEDGE_1 = "wedge_1"
    PYRAMID_1 = "pyramid_1"
    COMPOSITE = "composite"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class ElementCapabilities:
    """Which optional behaviours an element class implements.

    Attributes
    ----------
    composite_export : bool
        Element supplies its own visualization sub-cells.
    nodal_averaging : bool
        ``nodal_averaging_value`` gives the element's estimate at its nodes.
    patch_recovery : bool
        Integration-point samples may enter a least-squares patch fit.
    zz_recovery : bool
        ``zz_interpolation`` / ``volume_around`` are available.
    primary_field_mapping : bool
        ``primary_value_at`` can interpolate a primary field at a point.
    patch_dim : int
        Dimension of the polynomial space used in patch fits (1, 2 or 3).
    """

    composite_export: bool = False
    nodal_averaging: bool = False
    patch_recovery: bool = False
    zz_recovery: bool = False
    primary_field_mapping: bool = False
    patch_dim: int = 3


class Element:
    """Common element data. Subclasses build their integration rule."""

    geometry_type: ElementGeometryType = ElementGeometryType.UNKNOWN
    material_mode: MaterialMode = MaterialMode.MODE_3D
    capabilities: ElementCapabilities = ElementCapabilities()
    approx_order: int = 1
    n_element_nodes: int = 0
    # parent-space node positions, one row per element node
    natural_node_coords: Optional[np.ndarray] = None

    def __init__(self, number: int, node_numbers: Sequence[int], material, region: int = 1):
        nodes = tuple(int(n) for n in node_numbers)
        if self.n_element_nodes and len(nodes) != self.n_element_nodes:
            raise ValueError(
                f"{type(self).__name__} {number}: expected {self.n_element_nodes} nodes, got {len(nodes)}"
            )
        if material is not None and not material.has_mode_capability(self.material_mode):
            raise ValueError(f"Material does not support mode {self.material_mode.value}")
        self.number = int(number)
        self.node_numbers = nodes
        self.material = material
        self.region = int(region)
        self.domain = None
        self.integration_points: List[IntegrationPoint] = self.compute_gauss_points()

    # ---- geometry ----

    def compute_gauss_points(self) -> List[IntegrationPoint]:
        return []

    def give_node_coords(self) -> np.ndarray:
        """Node coordinates (n_nodes, 3)."""
        if self.domain is None:
            raise RuntimeError(f"Element {self.number} is not attached to a domain")
        return np.array([self.domain.node(n).coords for n in self.node_numbers], dtype=float)

    def compute_global_coordinates(self, natural: np.ndarray) -> np.ndarray:
        raise NotImplementedError

    def give_ip_coords(self) -> np.ndarray:
        """Global coordinates of all integration points (n_ip, 3)."""
        return np.array([self.compute_global_coordinates(ip.natural_coords) for ip in self.integration_points])

    # ---- values ----

    def give_ip_value(self, ip: IntegrationPoint, var: InternalStateType, tstep: TimeStep) -> Optional[np.ndarray]:
        if self.material is None:
            return None
        return self.material.give_ip_value(ip, var)

    def cell_value(self, var: InternalStateType, tstep: TimeStep) -> Optional[np.ndarray]:
        """Representative value for cell output: the first integration point."""
        if not self.integration_points:
            return None
        return self.give_ip_value(self.integration_points[0], var, tstep)

    def nodal_averaging_value(self, inode: int, var: InternalStateType, tstep: TimeStep) -> Optional[np.ndarray]:
        raise NotImplementedError(f"{type(self).__name__} does not support nodal averaging")

    def zz_interpolation(self, ip: IntegrationPoint) -> np.ndarray:
        raise NotImplementedError(f"{type(self).__name__} does not support ZZ recovery")

    def volume_around(self, ip: IntegrationPoint) -> float:
        raise NotImplementedError

    def primary_value_at(self, coords: np.ndarray, utype: UnknownType, tstep: TimeStep) -> Optional[np.ndarray]:
        raise NotImplementedError(f"{type(self).__name__} does not map primary fields")

    def map_primary_value(self, natural: np.ndarray, N: np.ndarray, utype: UnknownType) -> Optional[np.ndarray]:
        """Value of ``utype`` at ``natural`` from the nodes that carry its DOFs.

        The shape functions ``N`` (evaluated at ``natural``) are renormalised
        over the carrying nodes. Where they vanish on all of them, e.g. at a
        node without the DOFs, a linear least-squares fit in natural
        coordinates through the carrying nodes is evaluated instead, reduced
        to their mean when too few nodes carry the unknown to fix the fit.
        Returns None when no node of the element carries the unknown.
        """
        dofs = UNKNOWN_DOFS[utype]
        nodes = [self.domain.node(n) for n in self.node_numbers]
        carry = np.array([any(nd.has_dof(d) for d in dofs) for nd in nodes])
        if not carry.any():
            return None
        ve = np.array([nd.give_unknown_vector(utype, dofs) for nd in nodes])[carry]

        w = np.asarray(N, dtype=float).reshape(-1)[carry]
        if w.sum() > 1e-8:
            return w @ ve / w.sum()

        if self.natural_node_coords is None:
            return ve.mean(axis=0)
        P = np.asarray(self.natural_node_coords, dtype=float)[carry]
        A = np.column_stack([np.ones(P.shape[0]), P])
        if P.shape[0] >= A.shape[1] and np.linalg.matrix_rank(A) == A.shape[1]:
            coef, _, _, _ = np.linalg.lstsq(A, ve, rcond=None)
            return np.concatenate([[1.0], np.asarray(natural, dtype=float).reshape(-1)]) @ coef
        return ve.mean(axis=0)

    def update_internal_state(self, tstep: TimeStep) -> None:
        """Evaluate strains and stresses at integration points from nodal DOFs."""
        raise NotImplementedError

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.number}, nodes={list(self.node_numbers)}, region={self.region})"
