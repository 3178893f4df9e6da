"""Truss3d: geometry, stiffness and state update."""

import numpy as np
import pytest

from femfield.constitutive import IsotropicLinearElasticMaterial
from femfield.fem.domain import Domain
from femfield.fem.truss3d import Truss3d
from femfield.value_types import DofID, InternalStateType, UnknownType

from conftest import make_truss_chain, stretch


def _inclined_bar(material, area=2.0):
    dom = Domain()
    dom.add_node([0.0, 0.0, 0.0])
    dom.add_node([3.0, 4.0, 0.0])
    bar = Truss3d(1, [1, 2], material, area=area)
    dom.add_element(bar)
    return dom, bar


def test_length_and_direction(steel):
    _, bar = _inclined_bar(steel)
    assert bar.give_length() == pytest.approx(5.0)
    np.testing.assert_allclose(bar.direction(), [0.6, 0.8, 0.0])
    R = bar.give_local_coordinate_system()
    np.testing.assert_allclose(R @ R.T, np.eye(3), atol=1e-12)


def test_stiffness_matrix_axial(steel):
    _, bar = _inclined_bar(steel, area=2.0)
    K = bar.stiffness_matrix()
    k = steel.E * 2.0 / 5.0
    d = np.array([0.6, 0.8, 0.0])
    np.testing.assert_allclose(K[:3, :3], k * np.outer(d, d))
    np.testing.assert_allclose(K[:3, 3:], -k * np.outer(d, d))
    # rigid translation carries no force
    np.testing.assert_allclose(K @ np.tile([1.0, -2.0, 0.5], 2), 0.0, atol=1e-6 * k)


def test_update_internal_state_gives_axial_stress(steel, tstep):
    dom, bar = _inclined_bar(steel)
    dom.node(2).set_unknown(UnknownType.DISPLACEMENT_VECTOR, {DofID.D_u: 0.6e-3, DofID.D_v: 0.8e-3})
    bar.update_internal_state(tstep)
    sig = bar.give_ip_value(bar.integration_points[0], InternalStateType.STRESS_TENSOR, tstep)
    assert sig.shape == (1,)
    assert sig[0] == pytest.approx(steel.E * 1e-3 / 5.0)


def test_thermal_load_of_free_bar(tstep):
    mat = IsotropicLinearElasticMaterial(E=100.0, nu=0.3, talpha=1e-5)
    dom = make_truss_chain(mat, n_elements=1)
    bar = dom.element(1)
    bar.update_internal_state(tstep, dT=10.0)
    sig = bar.give_ip_value(bar.integration_points[0], InternalStateType.STRESS_TENSOR, tstep)
    assert sig[0] == pytest.approx(-100.0 * 1e-4)


def test_nodal_value_equals_gauss_point_value(steel, tstep):
    dom = make_truss_chain(steel, n_elements=1)
    stretch(dom, 1e-3)
    bar = dom.element(1)
    bar.update_internal_state(tstep)
    for inode in range(2):
        v = bar.nodal_averaging_value(inode, InternalStateType.STRESS_TENSOR, tstep)
        assert v[0] == pytest.approx(steel.E * 1e-3)


def test_primary_value_interpolation(steel, tstep):
    dom = make_truss_chain(steel, n_elements=1, length=2.0)
    stretch(dom, 1e-3)
    bar = dom.element(1)
    u = bar.primary_value_at(np.array([0.5, 0.0, 0.0]), UnknownType.DISPLACEMENT_VECTOR, tstep)
    np.testing.assert_allclose(u, [0.5e-3, 0.0, 0.0])
    assert bar.primary_value_at(np.array([3.0, 0.0, 0.0]), UnknownType.DISPLACEMENT_VECTOR, tstep) is None


def test_primary_value_uses_only_nodes_carrying_the_dof(steel, tstep):
    dom = Domain()
    dom.add_node([0.0, 0.0, 0.0], dofs=(DofID.D_u, DofID.D_v, DofID.D_w, DofID.T_f))
    dom.add_node([1.0, 0.0, 0.0])
    bar = Truss3d(1, [1, 2], steel, area=1.0)
    dom.add_element(bar)
    dom.node(1).set_unknown(UnknownType.TEMPERATURE, {DofID.T_f: 25.0})

    # node 2 has no temperature DOF: the bar reports node 1's value everywhere
    for x in (0.0, 0.4, 1.0):
        t = bar.primary_value_at(np.array([x, 0.0, 0.0]), UnknownType.TEMPERATURE, tstep)
        np.testing.assert_allclose(t, [25.0])


def test_primary_value_none_without_carrying_nodes(steel, tstep):
    dom = make_truss_chain(steel, n_elements=1)
    bar = dom.element(1)
    assert bar.primary_value_at(np.array([0.5, 0.0, 0.0]), UnknownType.TEMPERATURE, tstep) is None


def test_lumped_mass():
    mat = IsotropicLinearElasticMaterial(E=1.0, nu=0.2, rho=7850.0)
    dom = make_truss_chain(mat, n_elements=1, length=2.0, area=0.5)
    M = dom.element(1).lumped_mass_matrix()
    np.testing.assert_allclose(np.diag(M), 7850.0 * 0.5 * 2.0 / 2.0)


def test_invalid_construction(steel):
    with pytest.raises(ValueError):
        Truss3d(1, [1, 2, 3], steel, area=1.0)
    with pytest.raises(ValueError):
        Truss3d(1, [1, 2], steel, area=0.0)
