"""Linear-elastic helpers shared across the package.

Placed at top-level so both :mod:`femfield.constitutive` and the element
formulations can use them without importing each other.

All matrices use the Voigt ordering ``[xx, yy, zz, yz, xz, xy]`` reduced to
the components the material mode stores, with engineering shear strains.
"""

from __future__ import annotations

from typing import Tuple

import numpy as np


def shear_modulus(E: float, nu: float) -> float:
    """G = E / (2 (1 + nu))."""
    return float(E) / (2.0 * (1.0 + float(nu)))


def bulk_modulus(E: float, nu: float) -> float:
    """K = E / (3 (1 - 2 nu))."""
    return float(E) / (3.0 * (1.0 - 2.0 * float(nu)))


def lame(E: float, nu: float) -> Tuple[float, float]:
    """Return (lambda, mu)."""
    E = float(E)
    nu = float(nu)
    mu = E / (2.0 * (1.0 + nu))
    lam = E * nu / ((1.0 + nu) * (1.0 - 2.0 * nu))
    return lam, mu


def iso_3d_C(E: float, nu: float) -> np.ndarray:
    """3D isotropic stiffness (6,6) in engineering-strain Voigt6."""
    lam, mu = lame(E, nu)
    C = np.zeros((6, 6), dtype=float)
    C[:3, :3] = lam
    C[0, 0] = C[1, 1] = C[2, 2] = lam + 2.0 * mu
    C[3, 3] = C[4, 4] = C[5, 5] = mu
    return C


def plane_stress_C(E: float, nu: float) -> np.ndarray:
    """Plane-stress constitutive matrix for isotropic linear elasticity.

    Parameters
    ----------
    E:
        Young's modulus.
    nu:
        Poisson's ratio.

    Returns
    -------
    C : (3,3) ndarray
        Plane-stress matrix in Voigt ordering [xx, yy, xy].
    """

    c = float(E) / (1.0 - float(nu) * float(nu))
    C = c * np.array(
        [[1.0, float(nu), 0.0], [float(nu), 1.0, 0.0], [0.0, 0.0, 0.5 * (1.0 - float(nu))]],
        dtype=float,
    )
    return C


def plane_strain_C(E: float, nu: float) -> np.ndarray:
    """Plane-strain matrix (4,4) in ordering [xx, yy, zz, xy].

    The zz row gives the out-of-plane stress; the zz column multiplies a
    strain that is zero in a plane-strain state.
    """
    C6 = iso_3d_C(E, nu)
    idx = [0, 1, 2, 5]
    return C6[np.ix_(idx, idx)].copy()


def uniaxial_C(E: float) -> np.ndarray:
    """1D stiffness [[E]]."""
    return np.array([[float(E)]], dtype=float)


def beam_2d_C(E: float, nu: float) -> np.ndarray:
    """Section-level 2D beam stiffness: axial, bending, shear (diag E, E, G)."""
    return np.diag([float(E), float(E), shear_modulus(E, nu)])


def beam_3d_C(E: float, nu: float) -> np.ndarray:
    """Section-level 3D beam stiffness: diag(E, G, G, G, E, E)."""
    G = shear_modulus(E, nu)
    return np.diag([float(E), G, G, G, float(E), float(E)])
