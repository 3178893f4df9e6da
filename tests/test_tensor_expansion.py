"""Full-form expansion of reduced tensor storage."""

import numpy as np
import pytest

from femfield.output.tensor import make_full_form
from femfield.value_types import (
    InternalStateType,
    InternalStateValueType,
    MaterialMode,
    UnknownType,
    give_value_type,
    parse_enum,
    reduced_index_map,
)


def test_reduced_index_maps():
    assert reduced_index_map(MaterialMode.MODE_3D) == (1, 2, 3, 4, 5, 6)
    assert reduced_index_map(MaterialMode.PLANE_STRESS) == (1, 2, 0, 0, 0, 3)
    assert reduced_index_map(MaterialMode.PLANE_STRAIN) == (1, 2, 3, 0, 0, 4)
    assert reduced_index_map(MaterialMode.MODE_1D) == (1, 0, 0, 0, 0, 0)
    with pytest.raises(ValueError):
        reduced_index_map(MaterialMode.BEAM_2D)


def test_symmetric_stress_plane_stress():
    full = make_full_form([10.0, 20.0, 5.0], InternalStateValueType.TENSOR_S3, reduced_index_map(MaterialMode.PLANE_STRESS))
    np.testing.assert_allclose(full.reshape(3, 3), [[10.0, 5.0, 0.0], [5.0, 20.0, 0.0], [0.0, 0.0, 0.0]])


def test_engineering_shear_is_halved():
    gamma = 2e-3
    full = make_full_form(
        [1e-3, 0.0, 0.0, 0.0, 0.0, gamma],
        InternalStateValueType.TENSOR_S3E,
        reduced_index_map(MaterialMode.MODE_3D),
    ).reshape(3, 3)
    assert full[0, 1] == pytest.approx(gamma / 2)
    assert full[1, 0] == pytest.approx(gamma / 2)
    assert full[0, 0] == pytest.approx(1e-3)


def test_full_3d_stress_mirrors_every_shear():
    v = [1.0, 2.0, 3.0, 4.0, 5.0, 6.0]
    full = make_full_form(v, InternalStateValueType.TENSOR_S3, reduced_index_map(MaterialMode.MODE_3D)).reshape(3, 3)
    np.testing.assert_allclose(full, [[1, 6, 5], [6, 2, 4], [5, 4, 3]])
    np.testing.assert_allclose(full, full.T)


def test_uniaxial_stress():
    full = make_full_form([7.0], InternalStateValueType.TENSOR_S3, reduced_index_map(MaterialMode.MODE_1D))
    expected = np.zeros(9)
    expected[0] = 7.0
    np.testing.assert_allclose(full, expected)


def test_scalars_vectors_and_general_tensors_pass_through():
    np.testing.assert_allclose(make_full_form([3.0], InternalStateValueType.SCALAR, ()), [3.0])
    np.testing.assert_allclose(make_full_form([1.0, 2.0, 3.0], InternalStateValueType.VECTOR, ()), [1.0, 2.0, 3.0])
    g = np.arange(9.0)
    np.testing.assert_allclose(make_full_form(g, InternalStateValueType.TENSOR_G, ()), g)
    with pytest.raises(ValueError):
        make_full_form(np.arange(6.0), InternalStateValueType.TENSOR_G, ())
    with pytest.raises(ValueError):
        make_full_form([1.0], InternalStateValueType.UNDEFINED, ())


def test_value_types_are_fixed_metadata():
    assert give_value_type(InternalStateType.STRESS_TENSOR) is InternalStateValueType.TENSOR_S3
    assert give_value_type(InternalStateType.STRAIN_TENSOR) is InternalStateValueType.TENSOR_S3E
    assert give_value_type(InternalStateType.VON_MISES_STRESS) is InternalStateValueType.SCALAR


def test_enum_parsing_with_aliases():
    assert parse_enum(InternalStateType, "stress") is InternalStateType.STRESS_TENSOR
    assert parse_enum(InternalStateType, "STRAIN_TENSOR") is InternalStateType.STRAIN_TENSOR
    assert parse_enum(UnknownType, "u") is UnknownType.DISPLACEMENT_VECTOR
    assert parse_enum(UnknownType, UnknownType.TEMPERATURE) is UnknownType.TEMPERATURE
    with pytest.raises(ValueError):
        parse_enum(InternalStateType, "plastic_strain")
