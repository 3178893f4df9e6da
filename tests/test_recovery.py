"""Nodal recovery: averaging, SPR and ZZ on patches with exactly representable fields."""

import numpy as np
import pytest

from femfield.constitutive import IsotropicLinearElasticMaterial
from femfield.config import normalize_stype
from femfield.fem.truss3d import Truss3d
from femfield.output.recovery import (
    NodalAveragingRecoveryModel,
    SPRNodalRecoveryModel,
    ZZNodalRecoveryModel,
    create_recovery_model,
    polynomial_basis,
    to_record,
)
from femfield.output.regions import init_region_node_numbering
from femfield.value_types import DofID, InternalStateType, InternalStateValueType, MaterialMode, UnknownType

from conftest import make_quad_patch, make_truss_chain, stretch, update_all

STRATEGIES = [NodalAveragingRecoveryModel, SPRNodalRecoveryModel, ZZNodalRecoveryModel]


def _bilinear_patch(material, tstep, c=1e-3):
    """3x3 patch loaded with u = c*x*y: stresses linear in x and y."""
    dom = make_quad_patch(material, nx=3, ny=3, lx=3.0, ly=3.0)
    for node in dom.nodes():
        x, y, _ = node.coords
        node.set_unknown(UnknownType.DISPLACEMENT_VECTOR, {DofID.D_u: c * x * y, DofID.D_v: 0.0})
    update_all(dom, tstep)
    return dom


def _exact_stress_record(material, coords, c=1e-3):
    D = material.stiffness_matrix(MaterialMode.PLANE_STRESS)
    x, y, _ = coords
    s = D @ np.array([c * y, 0.0, c * x])
    return np.array([s[0], s[1], 0.0, 0.0, 0.0, s[2]])


@pytest.mark.parametrize("model_cls", STRATEGIES)
def test_uniform_bar_stress_recovered_exactly(steel, tstep, model_cls):
    dom = make_truss_chain(steel, n_elements=3, length=3.0)
    stretch(dom, 1e-3)
    update_all(dom, tstep)
    maps = init_region_node_numbering(dom, 1)

    rec = model_cls().recover(InternalStateType.STRESS_TENSOR, maps, tstep)

    assert rec.values.shape == (4, 6)
    np.testing.assert_allclose(rec.values[:, 0], steel.E * 1e-3, rtol=1e-10)
    np.testing.assert_allclose(rec.values[:, 1:], 0.0, atol=1e-6)
    assert list(rec.counts) == [1, 2, 2, 1]


@pytest.mark.parametrize("model_cls", STRATEGIES)
def test_linear_stress_field_recovered_exactly(steel, tstep, model_cls):
    dom = _bilinear_patch(steel, tstep)
    maps = init_region_node_numbering(dom, 1)

    rec = model_cls().recover(InternalStateType.STRESS_TENSOR, maps, tstep)

    scale = steel.E * 1e-3 * 3.0
    for k, g in enumerate(maps.local_to_global):
        expected = _exact_stress_record(steel, dom.node(int(g)).coords)
        np.testing.assert_allclose(rec.values[k], expected, rtol=1e-8, atol=1e-9 * scale)
    assert rec.n_fallbacks == 0


def test_interior_node_counts_every_adjacent_element(steel, tstep):
    dom = _bilinear_patch(steel, tstep)
    maps = init_region_node_numbering(dom, 1)
    rec = NodalAveragingRecoveryModel().recover(InternalStateType.STRESS_TENSOR, maps, tstep)
    # node 6 sits at (1, 1), shared by four quads
    assert rec.counts[maps.local_index(6)] == 4
    assert rec.counts[maps.local_index(1)] == 1


def test_spr_fallback_hook_at_bar_ends(steel, tstep):
    dom = make_truss_chain(steel, n_elements=3, length=3.0)
    stretch(dom, 1e-3)
    update_all(dom, tstep)
    maps = init_region_node_numbering(dom, 1)
    calls = []

    model = SPRNodalRecoveryModel(on_fallback=lambda node, var: calls.append((node, var)))
    rec = model.recover(InternalStateType.STRESS_TENSOR, maps, tstep)

    # a single sample cannot determine a linear fit
    assert sorted(n for n, _ in calls) == [1, 4]
    assert all(v is InternalStateType.STRESS_TENSOR for _, v in calls)
    assert rec.n_fallbacks == 2
    np.testing.assert_allclose(rec.values[:, 0], steel.E * 1e-3, rtol=1e-10)


def test_zz_singular_projection_falls_back_to_averaging(steel, tstep):
    # one Gauss point per bar cannot fix a linear nodal field
    dom = make_truss_chain(steel, n_elements=2)
    stretch(dom, 2e-3)
    update_all(dom, tstep)
    maps = init_region_node_numbering(dom, 1)
    calls = []

    rec = ZZNodalRecoveryModel(on_fallback=lambda node, var: calls.append(node)).recover(
        InternalStateType.STRESS_TENSOR, maps, tstep
    )

    assert sorted(calls) == [1, 2, 3]
    np.testing.assert_allclose(rec.values[:, 0], steel.E * 2e-3, rtol=1e-10)


def test_recovery_is_independent_of_element_order(steel, tstep):
    dom = _bilinear_patch(steel, tstep)
    maps = init_region_node_numbering(dom, 1)
    ref = SPRNodalRecoveryModel().recover(InternalStateType.STRESS_TENSOR, maps, tstep).values
    maps.elements = list(reversed(maps.elements))
    rev = SPRNodalRecoveryModel().recover(InternalStateType.STRESS_TENSOR, maps, tstep).values
    np.testing.assert_allclose(ref, rev, rtol=1e-9, atol=1e-3)


def test_mixed_storage_modes_share_nodes(tstep):
    # a bar glued along the bottom edge of a quad: both contribute sxx at nodes 1 and 2
    mat = IsotropicLinearElasticMaterial(E=1.0, nu=0.0)
    dom = make_quad_patch(mat, nx=1, ny=1)
    dom.add_element(Truss3d(2, [1, 2], mat, area=1.0))
    stretch(dom, 1e-3)
    update_all(dom, tstep)
    maps = init_region_node_numbering(dom, 1)

    rec = NodalAveragingRecoveryModel().recover(InternalStateType.STRESS_TENSOR, maps, tstep)
    np.testing.assert_allclose(rec.values[:, 0], 1e-3, rtol=1e-10)
    assert rec.counts[maps.local_index(1)] == 2


def test_to_record_scatters_reduced_storage(steel):
    dom = make_quad_patch(steel, nx=1, ny=1)
    rec = to_record([1.0, 2.0, 3.0], InternalStateValueType.TENSOR_S3, dom.element(1))
    np.testing.assert_allclose(rec, [1.0, 2.0, 0.0, 0.0, 0.0, 3.0])
    np.testing.assert_allclose(to_record([4.0], InternalStateValueType.SCALAR, dom.element(1)), [4.0])


def test_polynomial_basis_sizes():
    P = np.zeros((5, 2))
    assert polynomial_basis(P, 1).shape == (5, 3)
    assert polynomial_basis(P, 2).shape == (5, 6)
    assert polynomial_basis(np.zeros((5, 3)), 2).shape == (5, 10)


@pytest.mark.parametrize(
    "alias,name",
    [(0, "nodal_averaging"), ("1", "zz"), (2, "spr"), ("patch", "spr"), ("ZZ", "zz"), ("avg", "nodal_averaging")],
)
def test_smoother_aliases(alias, name):
    assert normalize_stype(alias) == name
    assert create_recovery_model(alias).name == name


def test_unknown_smoother_rejected():
    with pytest.raises(ValueError):
        create_recovery_model("kriging")
