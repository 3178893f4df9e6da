"""Isotropic linear-elastic material.

Elements call the material through a small interface: :meth:`integrate`
takes an :class:`~femfield.material_point.IntegrationPoint` and a strain
vector in the reduced storage of the point's material mode and returns the
stress vector, updating the point status in place. Export code reads values
back through :meth:`give_ip_value`.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Protocol

import numpy as np

from femfield.linear_elastic import (
    beam_2d_C,
    beam_3d_C,
    bulk_modulus,
    iso_3d_C,
    plane_strain_C,
    plane_stress_C,
    shear_modulus,
    uniaxial_C,
)
from femfield.material_point import IntegrationPoint
from femfield.value_types import InternalStateType, MaterialMode, VOIGT_MASKS


# ----------------------------
# Utilities (Voigt <-> tensor)
# ----------------------------


def reduced_to_voigt6(reduced: np.ndarray, mode: MaterialMode) -> np.ndarray:
    """Scatter a reduced vector into Voigt6, absent components set to zero."""
    v6 = np.zeros(6, dtype=float)
    v6[list(VOIGT_MASKS[mode])] = np.asarray(reduced, dtype=float).reshape(-1)
    return v6


def stress6_to_tensor(sig6: np.ndarray) -> np.ndarray:
    """Stress Voigt6 -> symmetric stress tensor (no factor for shear)."""
    s = np.asarray(sig6, dtype=float).reshape(6)
    S = np.zeros((3, 3), dtype=float)
    S[0, 0] = s[0]
    S[1, 1] = s[1]
    S[2, 2] = s[2]
    S[1, 2] = S[2, 1] = s[3]
    S[0, 2] = S[2, 0] = s[4]
    S[0, 1] = S[1, 0] = s[5]
    return S


def von_mises(sig6: np.ndarray) -> float:
    s = np.asarray(sig6, dtype=float).reshape(6)
    j2 = ((s[0] - s[1]) ** 2 + (s[1] - s[2]) ** 2 + (s[2] - s[0]) ** 2) / 6.0
    j2 += s[3] ** 2 + s[4] ** 2 + s[5] ** 2
    return float(np.sqrt(3.0 * j2))


def principal_stresses(sig6: np.ndarray) -> np.ndarray:
    """Principal values, sorted descending."""
    return np.sort(np.linalg.eigvalsh(stress6_to_tensor(sig6)))[::-1].copy()


# ----------------------------
# Protocol
# ----------------------------


class ConstitutiveModel(Protocol):
    number: int

    def integrate(self, ip: IntegrationPoint, strain: np.ndarray, dT: float = 0.0) -> np.ndarray:
        """Return stress and update ``ip`` status in-place."""

    def give_ip_value(self, ip: IntegrationPoint, var: InternalStateType) -> Optional[np.ndarray]:
        """Reduced value of ``var`` at ``ip`` or None if unsupported."""


@dataclass
class IsotropicLinearElasticMaterial:
    """Isotropic linear elasticity with thermal dilatation.

    Parameters
    ----------
    E : float
        Young's modulus.
    nu : float
        Poisson's ratio.
    talpha : float
        Coefficient of thermal dilatation (same in every direction).
    rho : float
        Mass density, used by lumped mass matrices.
    number : int
        Material number in the domain (exported as MATERIAL_NUMBER).
    """

    E: float
    nu: float
    talpha: float = 0.0
    rho: float = 0.0
    number: int = 1

    def __post_init__(self) -> None:
        self.E = float(self.E)
        self.nu = float(self.nu)
        self.talpha = float(self.talpha)
        if self.E <= 0.0:
            raise ValueError(f"Young's modulus must be positive, got E={self.E}")
        if not (-1.0 < self.nu < 0.5):
            raise ValueError(f"Poisson's ratio must satisfy -1 < nu < 0.5, got nu={self.nu}")
        self.G = shear_modulus(self.E, self.nu)

    @staticmethod
    def compute_bulk_modulus_from_young_and_poisson(young: float, nu: float) -> float:
        return bulk_modulus(young, nu)

    @staticmethod
    def compute_shear_modulus_from_young_and_poisson(young: float, nu: float) -> float:
        return shear_modulus(young, nu)

    @property
    def K(self) -> float:
        return bulk_modulus(self.E, self.nu)

    def give(self, prop: str) -> float:
        key = prop.strip()
        if key == "E":
            return self.E
        if key in ("n", "nu"):
            return self.nu
        if key == "G":
            return self.G
        if key == "K":
            return self.K
        if key in ("talpha", "tAlpha"):
            return self.talpha
        if key in ("d", "rho"):
            return float(self.rho)
        raise KeyError(f"IsotropicLinearElasticMaterial has no property '{prop}'")

    def has_mode_capability(self, mode: MaterialMode) -> bool:
        return mode in (
            MaterialMode.MODE_3D,
            MaterialMode.PLANE_STRESS,
            MaterialMode.PLANE_STRAIN,
            MaterialMode.MODE_1D,
            MaterialMode.BEAM_2D,
            MaterialMode.BEAM_3D,
        )

    def stiffness_matrix(self, mode: MaterialMode) -> np.ndarray:
        if mode is MaterialMode.MODE_3D:
            return iso_3d_C(self.E, self.nu)
        if mode is MaterialMode.PLANE_STRESS:
            return plane_stress_C(self.E, self.nu)
        if mode is MaterialMode.PLANE_STRAIN:
            return plane_strain_C(self.E, self.nu)
        if mode is MaterialMode.MODE_1D:
            return uniaxial_C(self.E)
        if mode is MaterialMode.BEAM_2D:
            return beam_2d_C(self.E, self.nu)
        if mode is MaterialMode.BEAM_3D:
            return beam_3d_C(self.E, self.nu)
        raise ValueError(f"Unsupported material mode {mode}")

    def thermal_dilatation_vector(self, mode: MaterialMode) -> np.ndarray:
        """Thermal dilatation coefficients reduced to ``mode`` (zero on shear)."""
        full = np.array([self.talpha, self.talpha, self.talpha, 0.0, 0.0, 0.0], dtype=float)
        if mode not in VOIGT_MASKS:
            raise ValueError(f"Unsupported material mode {mode}")
        return full[list(VOIGT_MASKS[mode])].copy()

    def integrate(self, ip: IntegrationPoint, strain: np.ndarray, dT: float = 0.0) -> np.ndarray:
        mode = ip.material_mode
        eps = np.asarray(strain, dtype=float).reshape(-1)
        eps_th = self.thermal_dilatation_vector(mode) * float(dT)
        if mode is MaterialMode.PLANE_STRAIN:
            # zz strain is constrained to zero, the thermal part still loads szz
            eps = eps.copy()
            eps[2] = 0.0
        D = self.stiffness_matrix(mode)
        sig = D @ (eps - eps_th)
        st = ip.give_status()
        st.strain = eps.copy()
        st.stress = sig
        st.thermal_strain = eps_th
        return sig

    def give_ip_value(self, ip: IntegrationPoint, var: InternalStateType) -> Optional[np.ndarray]:
        st = ip.status
        if st is None:
            return None
        mode = ip.material_mode
        if var is InternalStateType.STRESS_TENSOR:
            return np.array(st.stress, dtype=float)
        if var is InternalStateType.STRAIN_TENSOR:
            return np.array(st.strain, dtype=float)
        if var is InternalStateType.THERMAL_STRAIN_TENSOR:
            return np.array(st.thermal_strain, dtype=float)
        if mode not in VOIGT_MASKS:
            return None
        if var is InternalStateType.VON_MISES_STRESS:
            return np.array([von_mises(reduced_to_voigt6(st.stress, mode))])
        if var is InternalStateType.PRINCIPAL_STRESS:
            return principal_stresses(reduced_to_voigt6(st.stress, mode))
        return None
