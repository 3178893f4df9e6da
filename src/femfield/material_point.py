"""Material-point (integration-point) state containers.

An :class:`IntegrationPoint` is owned by its element. It carries its parent
(natural) coordinates, quadrature weight, the material mode that defines the
reduced storage of its stress/strain vectors, and a :class:`MaterialStatus`
holding the converged response of the current time step.

The export pipeline only reads these objects.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

import numpy as np

from femfield.value_types import MaterialMode, VOIGT_MASKS


def _zeros_for(mode: MaterialMode) -> np.ndarray:
    return np.zeros(len(VOIGT_MASKS.get(mode, (0,))), dtype=float)


@dataclass
class MaterialStatus:
    """History variables at one integration point.

    ``strain`` and ``stress`` are stored in the reduced Voigt form of the
    point's material mode. ``thermal_strain`` follows the same storage.
    """

    strain: np.ndarray
    stress: np.ndarray
    thermal_strain: np.ndarray

    @classmethod
    def empty(cls, mode: MaterialMode) -> "MaterialStatus":
        return cls(strain=_zeros_for(mode), stress=_zeros_for(mode), thermal_strain=_zeros_for(mode))


@dataclass
class IntegrationPoint:
    """Sample location inside an element.

    Attributes
    ----------
    number : int
        1-based index inside the element's integration rule.
    natural_coords : np.ndarray
        Parent-space coordinates (length = element parametric dimension).
    weight : float
        Quadrature weight in parent space.
    material_mode : MaterialMode
        Determines the reduced storage of the stress/strain vectors.
    """

    number: int
    natural_coords: np.ndarray
    weight: float
    material_mode: MaterialMode
    status: Optional[MaterialStatus] = None

    def give_status(self) -> MaterialStatus:
        if self.status is None:
            self.status = MaterialStatus.empty(self.material_mode)
        return self.status
