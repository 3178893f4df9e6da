"""Q4 shape functions and bilinear plane-stress quadrilaterals.

:class:`Quad4PlaneStress` is a standard four-node isoparametric element with a
2x2 Gauss rule. :class:`Quad4Subcells` is the same formulation exported as
four sub-quads, one per Gauss point, so cell data shows the raw Gauss point
values instead of a single representative value.

Gauss points are numbered in the same counter-clockwise order as the corner
nodes, which keeps corner extrapolation a plain shape-function evaluation.
"""

from __future__ import annotations

import math
from typing import List, Optional, Sequence, Tuple

import numpy as np

from femfield.fem.element import Element, ElementCapabilities, ElementGeometryType
from femfield.material_point import IntegrationPoint
from femfield.output.composite import CompositeExportData, CompositeExportInterface
from femfield.output.tensor import make_full_form
from femfield.timestep import TimeStep
from femfield.value_types import (
    DofID,
    InternalStateType,
    MaterialMode,
    UNKNOWN_VALUE_TYPES,
    UnknownType,
    full_component_count,
    give_value_type,
    reduced_index_map,
)

_G = 1.0 / math.sqrt(3.0)
# corner natural coordinates, counter-clockwise
_CORNERS = np.array([[-1.0, -1.0], [1.0, -1.0], [1.0, 1.0], [-1.0, 1.0]])


def q4_shape(xi: float, eta: float):
    # N1..N4 (counter-clockwise)
    N = 0.25 * np.array(
        [(1 - xi) * (1 - eta),
         (1 + xi) * (1 - eta),
         (1 + xi) * (1 + eta),
         (1 - xi) * (1 + eta)],
        dtype=float,
    )
    dN_dxi = 0.25 * np.array(
        [-(1 - eta), (1 - eta), (1 + eta), -(1 + eta)], dtype=float
    )
    dN_deta = 0.25 * np.array(
        [-(1 - xi), -(1 + xi), (1 + xi), (1 - xi)], dtype=float
    )
    return N, dN_dxi, dN_deta


def element_dN_dxdy(dN_dxi: np.ndarray, dN_deta: np.ndarray, xe: np.ndarray):
    """Compute global shape function gradients and detJ."""
    J = np.zeros((2, 2), dtype=float)
    J[0, 0] = float(np.dot(dN_dxi, xe[:, 0]))
    J[0, 1] = float(np.dot(dN_dxi, xe[:, 1]))
    J[1, 0] = float(np.dot(dN_deta, xe[:, 0]))
    J[1, 1] = float(np.dot(dN_deta, xe[:, 1]))
    detJ = float(np.linalg.det(J))
    if detJ <= 0.0:
        raise ValueError(f"Non-positive Jacobian determinant ({detJ:.3e}); check node ordering")
    invJ = np.linalg.inv(J)
    dN_dx = invJ[0, 0] * dN_dxi + invJ[0, 1] * dN_deta
    dN_dy = invJ[1, 0] * dN_dxi + invJ[1, 1] * dN_deta
    return dN_dx, dN_dy, detJ


def map_global_to_parent_Q4(x: float, y: float, xe: np.ndarray, maxit: int = 20, tol: float = 1e-12) -> Tuple[float, float]:
    """Inverse isoparametric mapping (x,y)->(xi,eta) by Newton iteration."""
    xi, eta = 0.0, 0.0
    target = np.array([float(x), float(y)])
    for _ in range(maxit):
        N, dN_dxi, dN_deta = q4_shape(xi, eta)
        r = target - N @ xe[:, :2]
        if float(np.linalg.norm(r)) <= tol * max(1.0, float(np.abs(xe).max())):
            break
        J = np.array([[dN_dxi @ xe[:, 0], dN_deta @ xe[:, 0]], [dN_dxi @ xe[:, 1], dN_deta @ xe[:, 1]]])
        d = np.linalg.solve(J, r)
        xi += float(d[0])
        eta += float(d[1])
    return xi, eta


class Quad4PlaneStress(Element):
    geometry_type = ElementGeometryType.QUAD_1
    material_mode = MaterialMode.PLANE_STRESS
    approx_order = 1
    n_element_nodes = 4
    natural_node_coords = _CORNERS
    capabilities = ElementCapabilities(
        nodal_averaging=True,
        patch_recovery=True,
        zz_recovery=True,
        primary_field_mapping=True,
        patch_dim=2,
    )

    def __init__(self, number: int, node_numbers: Sequence[int], material, thickness: float = 1.0, region: int = 1):
        super().__init__(number, node_numbers, material, region)
        self.thickness = float(thickness)

    def compute_gauss_points(self) -> List[IntegrationPoint]:
        return [
            IntegrationPoint(i + 1, _G * _CORNERS[i], 1.0, self.material_mode)
            for i in range(4)
        ]

    def compute_global_coordinates(self, natural: np.ndarray) -> np.ndarray:
        xi, eta = np.asarray(natural, dtype=float).reshape(2)
        N, _, _ = q4_shape(xi, eta)
        return N @ self.give_node_coords()

    def volume_around(self, ip: IntegrationPoint) -> float:
        xi, eta = ip.natural_coords
        _, dN_dxi, dN_deta = q4_shape(xi, eta)
        _, _, detJ = element_dN_dxdy(dN_dxi, dN_deta, self.give_node_coords())
        return detJ * float(ip.weight) * self.thickness

    def compute_B_matrix(self, ip: IntegrationPoint) -> np.ndarray:
        xi, eta = ip.natural_coords
        _, dN_dxi, dN_deta = q4_shape(xi, eta)
        dN_dx, dN_dy, _ = element_dN_dxdy(dN_dxi, dN_deta, self.give_node_coords())
        B = np.zeros((3, 8), dtype=float)
        B[0, 0::2] = dN_dx
        B[1, 1::2] = dN_dy
        B[2, 0::2] = dN_dy
        B[2, 1::2] = dN_dx
        return B

    def stiffness_matrix(self) -> np.ndarray:
        D = self.material.stiffness_matrix(self.material_mode)
        K = np.zeros((8, 8), dtype=float)
        for ip in self.integration_points:
            B = self.compute_B_matrix(ip)
            K += B.T @ D @ B * self.volume_around(ip)
        return K

    def give_displacements(self) -> np.ndarray:
        dofs = (DofID.D_u, DofID.D_v)
        return np.concatenate(
            [self.domain.node(n).give_unknown_vector(UnknownType.DISPLACEMENT_VECTOR, dofs) for n in self.node_numbers]
        )

    def update_internal_state(self, tstep: TimeStep, dT: float = 0.0) -> None:
        ue = self.give_displacements()
        for ip in self.integration_points:
            self.material.integrate(ip, self.compute_B_matrix(ip) @ ue, dT)

    # ---- recovery interfaces ----

    def _gp_values(self, var: InternalStateType, tstep: TimeStep) -> Optional[np.ndarray]:
        vals = [self.give_ip_value(ip, var, tstep) for ip in self.integration_points]
        if any(v is None for v in vals):
            return None
        return np.array(vals, dtype=float)

    def _extrapolate(self, gp_vals: np.ndarray, xi: float, eta: float) -> np.ndarray:
        # bilinear field through the Gauss points, evaluated at (xi, eta)
        N, _, _ = q4_shape(xi / _G, eta / _G)
        return N @ gp_vals

    def nodal_averaging_value(self, inode: int, var: InternalStateType, tstep: TimeStep) -> Optional[np.ndarray]:
        gp_vals = self._gp_values(var, tstep)
        if gp_vals is None:
            return None
        xi, eta = _CORNERS[inode]
        return self._extrapolate(gp_vals, xi, eta)

    def zz_interpolation(self, ip: IntegrationPoint) -> np.ndarray:
        xi, eta = ip.natural_coords
        N, _, _ = q4_shape(xi, eta)
        return N

    def primary_value_at(self, coords: np.ndarray, utype: UnknownType, tstep: TimeStep) -> Optional[np.ndarray]:
        xe = self.give_node_coords()
        c = np.asarray(coords, dtype=float).reshape(3)
        xi, eta = map_global_to_parent_Q4(c[0], c[1], xe)
        if abs(xi) > 1.0 + 1e-9 or abs(eta) > 1.0 + 1e-9:
            return None
        N, _, _ = q4_shape(xi, eta)
        return self.map_primary_value(np.array([xi, eta]), N, utype)


# sub-point natural coordinates: corners, edge mid-points, centre
_SUBPOINTS = np.array(
    [
        [-1.0, -1.0], [1.0, -1.0], [1.0, 1.0], [-1.0, 1.0],
        [0.0, -1.0], [1.0, 0.0], [0.0, 1.0], [-1.0, 0.0],
        [0.0, 0.0],
    ]
)
# one sub-quad per Gauss point (same order as the integration points)
_SUBCELLS = (
    np.array([0, 4, 8, 7]),
    np.array([4, 1, 5, 8]),
    np.array([8, 5, 2, 6]),
    np.array([7, 8, 6, 3]),
)
_VTK_QUAD = 9


class Quad4Subcells(Quad4PlaneStress, CompositeExportInterface):
    """Quad4PlaneStress exported as one sub-quad per Gauss point."""

    geometry_type = ElementGeometryType.COMPOSITE
    capabilities = ElementCapabilities(
        composite_export=True,
        nodal_averaging=True,
        patch_recovery=True,
        zz_recovery=True,
        primary_field_mapping=True,
        patch_dim=2,
    )

    def number_of_export_cells(self) -> int:
        return len(_SUBCELLS)

    def _full(self, value: np.ndarray, var: InternalStateType) -> np.ndarray:
        return make_full_form(value, give_value_type(var), reduced_index_map(self.material_mode))

    def give_composite_export_data(self, primary_vars, internal_vars, cell_vars, tstep: TimeStep) -> CompositeExportData:
        xe = self.give_node_coords()
        shape = np.array([q4_shape(xi, eta)[0] for xi, eta in _SUBPOINTS])
        data = CompositeExportData(
            node_coords=shape @ xe,
            cell_nodes=[c.copy() for c in _SUBCELLS],
            cell_types=[_VTK_QUAD] * len(_SUBCELLS),
        )
        npts = len(_SUBPOINTS)

        for utype in primary_vars:
            ncomp = full_component_count(UNKNOWN_VALUE_TYPES[utype])
            block = np.zeros((npts, ncomp), dtype=float)
            for k, natural in enumerate(_SUBPOINTS):
                v = self.map_primary_value(natural, shape[k], utype)
                if v is not None:
                    block[k, : v.size] = v
            data.primary_values[utype] = block

        for var in internal_vars:
            ncomp = full_component_count(give_value_type(var))
            gp_vals = self._gp_values(var, tstep)
            block = np.zeros((npts, ncomp), dtype=float)
            if gp_vals is not None:
                for k, (xi, eta) in enumerate(_SUBPOINTS):
                    block[k] = self._full(self._extrapolate(gp_vals, xi, eta), var)
            data.internal_values[var] = block

        for var in cell_vars:
            ncomp = full_component_count(give_value_type(var))
            block = np.zeros((len(_SUBCELLS), ncomp), dtype=float)
            for k, ip in enumerate(self.integration_points):
                v = self.give_ip_value(ip, var, tstep)
                if v is not None:
                    block[k] = self._full(v, var)
            data.cell_values[var] = block

        return data
