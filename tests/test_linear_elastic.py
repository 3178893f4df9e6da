"""Isotropic linear elastic material: properties, stiffness per mode, integration."""

import numpy as np
import pytest

from femfield.constitutive import IsotropicLinearElasticMaterial, principal_stresses, von_mises
from femfield.linear_elastic import iso_3d_C, plane_strain_C, plane_stress_C
from femfield.material_point import IntegrationPoint
from femfield.value_types import InternalStateType, MaterialMode


def _ip(mode):
    return IntegrationPoint(1, np.zeros(1), 1.0, mode)


def test_derived_moduli():
    mat = IsotropicLinearElasticMaterial(E=200e9, nu=0.3)
    assert mat.G == pytest.approx(200e9 / 2.6)
    assert mat.K == pytest.approx(200e9 / 1.2)
    assert mat.give("E") == 200e9
    assert mat.give("n") == 0.3
    assert mat.give("G") == pytest.approx(mat.G)
    assert IsotropicLinearElasticMaterial.compute_shear_modulus_from_young_and_poisson(10.0, 0.25) == pytest.approx(4.0)


def test_unknown_property_raises():
    mat = IsotropicLinearElasticMaterial(E=1.0, nu=0.2)
    with pytest.raises(KeyError):
        mat.give("yield_stress")


@pytest.mark.parametrize("E,nu", [(0.0, 0.2), (-1.0, 0.2), (1.0, 0.5), (1.0, -1.0)])
def test_invalid_parameters_rejected(E, nu):
    with pytest.raises(ValueError):
        IsotropicLinearElasticMaterial(E=E, nu=nu)


def test_stiffness_shapes_per_mode():
    mat = IsotropicLinearElasticMaterial(E=1.0, nu=0.25)
    assert mat.stiffness_matrix(MaterialMode.MODE_3D).shape == (6, 6)
    assert mat.stiffness_matrix(MaterialMode.PLANE_STRESS).shape == (3, 3)
    assert mat.stiffness_matrix(MaterialMode.PLANE_STRAIN).shape == (4, 4)
    assert mat.stiffness_matrix(MaterialMode.MODE_1D).shape == (1, 1)
    assert mat.stiffness_matrix(MaterialMode.BEAM_2D).shape == (3, 3)
    assert mat.stiffness_matrix(MaterialMode.BEAM_3D).shape == (6, 6)


def test_plane_matrices_consistent_with_3d():
    E, nu = 30e3, 0.2
    C = iso_3d_C(E, nu)
    np.testing.assert_allclose(plane_strain_C(E, nu), C[np.ix_([0, 1, 2, 5], [0, 1, 2, 5])])
    # plane stress = static condensation of szz = 0
    idx = [0, 1, 5]
    Cc = C[np.ix_(idx, idx)] - np.outer(C[idx, 2], C[2, idx]) / C[2, 2]
    np.testing.assert_allclose(plane_stress_C(E, nu), Cc, rtol=1e-12)


def test_uniaxial_integration_with_temperature():
    mat = IsotropicLinearElasticMaterial(E=100.0, nu=0.3, talpha=1e-3)
    ip = _ip(MaterialMode.MODE_1D)
    sig = mat.integrate(ip, np.array([2e-3]), dT=1.0)
    assert sig[0] == pytest.approx(100.0 * (2e-3 - 1e-3))
    np.testing.assert_allclose(mat.give_ip_value(ip, InternalStateType.STRAIN_TENSOR), [2e-3])
    np.testing.assert_allclose(mat.give_ip_value(ip, InternalStateType.THERMAL_STRAIN_TENSOR), [1e-3])


def test_plane_strain_zz_stress():
    E, nu = 1.0, 0.25
    mat = IsotropicLinearElasticMaterial(E=E, nu=nu)
    ip = _ip(MaterialMode.PLANE_STRAIN)
    sig = mat.integrate(ip, np.array([1e-3, 0.0, 0.0, 0.0]))
    lam, mu = E * nu / ((1 + nu) * (1 - 2 * nu)), E / (2 * (1 + nu))
    assert sig[0] == pytest.approx((lam + 2 * mu) * 1e-3)
    assert sig[2] == pytest.approx(lam * 1e-3)


def test_ip_value_without_status_is_none():
    mat = IsotropicLinearElasticMaterial(E=1.0, nu=0.2)
    assert mat.give_ip_value(_ip(MaterialMode.MODE_1D), InternalStateType.STRESS_TENSOR) is None


def test_derived_stress_measures():
    sig6 = np.array([3.0, 1.0, 0.0, 0.0, 0.0, 0.0])
    np.testing.assert_allclose(principal_stresses(sig6), [3.0, 1.0, 0.0])
    assert von_mises(np.array([5.0, 0, 0, 0, 0, 0])) == pytest.approx(5.0)

    mat = IsotropicLinearElasticMaterial(E=1.0, nu=0.2)
    ip = _ip(MaterialMode.MODE_1D)
    mat.integrate(ip, np.array([2.0]))
    np.testing.assert_allclose(mat.give_ip_value(ip, InternalStateType.VON_MISES_STRESS), [2.0])
    np.testing.assert_allclose(mat.give_ip_value(ip, InternalStateType.PRINCIPAL_STRESS), [2.0, 0.0, 0.0])
