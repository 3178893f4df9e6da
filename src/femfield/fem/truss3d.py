"""Two-node truss bar for three-dimensional analysis.

Linear displacement interpolation along the bar, DOFs ``u, v, w`` per node
(6 per element), one Gauss point, uniaxial (1D) material mode. The single
Gauss point makes strain and stress constant along the element, so the
nodal-averaging estimate at either node is the Gauss point value.
"""

from __future__ import annotations

from typing import List, Optional, Sequence

import numpy as np

from femfield.fem.element import Element, ElementCapabilities, ElementGeometryType
from femfield.material_point import IntegrationPoint
from femfield.timestep import TimeStep
from femfield.value_types import (
    DofID,
    InternalStateType,
    MaterialMode,
    UnknownType,
)

_DOFS = (DofID.D_u, DofID.D_v, DofID.D_w)


class Truss3d(Element):
    geometry_type = ElementGeometryType.LINE_1
    material_mode = MaterialMode.MODE_1D
    approx_order = 1
    n_element_nodes = 2
    natural_node_coords = np.array([[-1.0], [1.0]])
    capabilities = ElementCapabilities(
        nodal_averaging=True,
        patch_recovery=True,
        zz_recovery=True,
        primary_field_mapping=True,
        patch_dim=1,
    )

    def __init__(self, number: int, node_numbers: Sequence[int], material, area: float, region: int = 1):
        super().__init__(number, node_numbers, material, region)
        if float(area) <= 0.0:
            raise ValueError(f"Truss3d {number}: cross-section area must be positive")
        self.area = float(area)

    def compute_gauss_points(self) -> List[IntegrationPoint]:
        return [IntegrationPoint(1, np.array([0.0]), 2.0, self.material_mode)]

    # ---- geometry ----

    def give_length(self) -> float:
        xe = self.give_node_coords()
        L = float(np.linalg.norm(xe[1] - xe[0]))
        if L <= 0.0:
            raise ValueError(f"Truss3d {self.number}: zero length")
        return L

    def direction(self) -> np.ndarray:
        xe = self.give_node_coords()
        return (xe[1] - xe[0]) / self.give_length()

    def give_local_coordinate_system(self) -> np.ndarray:
        """Rows are the local x (along the bar), y and z unit vectors."""
        ex = self.direction()
        helper = np.array([0.0, 0.0, 1.0]) if abs(ex[2]) < 0.9 else np.array([0.0, 1.0, 0.0])
        ey = np.cross(helper, ex)
        ey /= np.linalg.norm(ey)
        ez = np.cross(ex, ey)
        return np.vstack([ex, ey, ez])

    def shape_functions(self, xi: float) -> np.ndarray:
        return np.array([0.5 * (1.0 - xi), 0.5 * (1.0 + xi)], dtype=float)

    def compute_global_coordinates(self, natural: np.ndarray) -> np.ndarray:
        xi = float(np.asarray(natural, dtype=float).reshape(-1)[0])
        return self.shape_functions(xi) @ self.give_node_coords()

    def compute_local_coordinate(self, coords: np.ndarray) -> float:
        """Natural coordinate of the projection of ``coords`` on the bar axis."""
        xe = self.give_node_coords()
        s = float(np.dot(np.asarray(coords, dtype=float).reshape(3) - xe[0], self.direction()))
        return 2.0 * s / self.give_length() - 1.0

    def volume_around(self, ip: IntegrationPoint) -> float:
        return self.area * 0.5 * self.give_length() * float(ip.weight)

    # ---- matrices ----

    def compute_B_matrix(self) -> np.ndarray:
        """Strain-displacement row (1, 6)."""
        d = self.direction()
        return np.concatenate([-d, d]).reshape(1, 6) / self.give_length()

    def compute_N_matrix(self, xi: float) -> np.ndarray:
        N1, N2 = self.shape_functions(xi)
        I = np.eye(3)
        return np.hstack([N1 * I, N2 * I])

    def stiffness_matrix(self) -> np.ndarray:
        B = self.compute_B_matrix()
        D = self.material.stiffness_matrix(self.material_mode)
        K = np.zeros((6, 6), dtype=float)
        for ip in self.integration_points:
            K += B.T @ D @ B * self.volume_around(ip)
        return K

    def lumped_mass_matrix(self) -> np.ndarray:
        m = float(self.material.give("rho")) * self.area * self.give_length() / 2.0
        return m * np.eye(6)

    # ---- state ----

    def give_displacements(self, utype: UnknownType = UnknownType.DISPLACEMENT_VECTOR) -> np.ndarray:
        return np.concatenate(
            [self.domain.node(n).give_unknown_vector(utype, _DOFS) for n in self.node_numbers]
        )

    def update_internal_state(self, tstep: TimeStep, dT: float = 0.0) -> None:
        eps = self.compute_B_matrix() @ self.give_displacements()
        for ip in self.integration_points:
            self.material.integrate(ip, eps, dT)

    # ---- recovery interfaces ----

    def nodal_averaging_value(self, inode: int, var: InternalStateType, tstep: TimeStep) -> Optional[np.ndarray]:
        return self.give_ip_value(self.integration_points[0], var, tstep)

    def zz_interpolation(self, ip: IntegrationPoint) -> np.ndarray:
        return self.shape_functions(float(ip.natural_coords[0]))

    def primary_value_at(self, coords: np.ndarray, utype: UnknownType, tstep: TimeStep) -> Optional[np.ndarray]:
        xi = self.compute_local_coordinate(coords)
        if xi < -1.0 - 1e-9 or xi > 1.0 + 1e-9:
            return None
        return self.map_primary_value(np.array([xi]), self.shape_functions(xi), utype)
