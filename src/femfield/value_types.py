"""Identifiers and constant metadata for exported quantities.

Internal state variables (integration-point quantities), primary unknowns
(nodal DOF fields) and material modes are plain enums. The value type of an
internal variable is fixed metadata looked up from :data:`VALUE_TYPES`; the
exporter and the smoothers never recompute it.

Reduced (Voigt) storage uses the ordering ``[xx, yy, zz, yz, xz, xy]`` with
engineering shear for strains. A material mode stores a subset of these,
described by :data:`VOIGT_MASKS` (0-based positions in the full Voigt6 vector).
"""

from __future__ import annotations

from enum import Enum
from typing import Dict, Tuple, Union


class InternalStateValueType(Enum):
    """Semantic type of a value, determines the expansion rule on export."""

    SCALAR = "scalar"
    VECTOR = "vector"
    TENSOR_S3 = "tensor_s3"      # symmetric 3x3, shear stored as tensor component
    TENSOR_S3E = "tensor_s3e"    # symmetric 3x3, shear stored as engineering strain
    TENSOR_G = "tensor_g"        # general 3x3, stored row-major
    UNDEFINED = "undefined"


class InternalStateType(Enum):
    STRESS_TENSOR = "stress_tensor"
    STRAIN_TENSOR = "strain_tensor"
    THERMAL_STRAIN_TENSOR = "thermal_strain_tensor"
    VON_MISES_STRESS = "von_mises_stress"
    PRINCIPAL_STRESS = "principal_stress"
    ELEMENT_NUMBER = "element_number"
    MATERIAL_NUMBER = "material_number"
    REGION_NUMBER = "region_number"


class UnknownType(Enum):
    DISPLACEMENT_VECTOR = "displacement_vector"
    VELOCITY_VECTOR = "velocity_vector"
    TEMPERATURE = "temperature"


class DofID(Enum):
    D_u = "u"
    D_v = "v"
    D_w = "w"
    T_f = "T"


class MaterialMode(Enum):
    MODE_3D = "3d"
    PLANE_STRESS = "plane_stress"
    PLANE_STRAIN = "plane_strain"
    MODE_1D = "1d"
    BEAM_2D = "beam_2d"
    BEAM_3D = "beam_3d"


VALUE_TYPES: Dict[InternalStateType, InternalStateValueType] = {
    InternalStateType.STRESS_TENSOR: InternalStateValueType.TENSOR_S3,
    InternalStateType.STRAIN_TENSOR: InternalStateValueType.TENSOR_S3E,
    InternalStateType.THERMAL_STRAIN_TENSOR: InternalStateValueType.TENSOR_S3E,
    InternalStateType.VON_MISES_STRESS: InternalStateValueType.SCALAR,
    InternalStateType.PRINCIPAL_STRESS: InternalStateValueType.VECTOR,
    InternalStateType.ELEMENT_NUMBER: InternalStateValueType.SCALAR,
    InternalStateType.MATERIAL_NUMBER: InternalStateValueType.SCALAR,
    InternalStateType.REGION_NUMBER: InternalStateValueType.SCALAR,
}

UNKNOWN_VALUE_TYPES: Dict[UnknownType, InternalStateValueType] = {
    UnknownType.DISPLACEMENT_VECTOR: InternalStateValueType.VECTOR,
    UnknownType.VELOCITY_VECTOR: InternalStateValueType.VECTOR,
    UnknownType.TEMPERATURE: InternalStateValueType.SCALAR,
}

UNKNOWN_DOFS: Dict[UnknownType, Tuple[DofID, ...]] = {
    UnknownType.DISPLACEMENT_VECTOR: (DofID.D_u, DofID.D_v, DofID.D_w),
    UnknownType.VELOCITY_VECTOR: (DofID.D_u, DofID.D_v, DofID.D_w),
    UnknownType.TEMPERATURE: (DofID.T_f,),
}

# Positions (0-based, Voigt6 [xx, yy, zz, yz, xz, xy]) stored by each mode.
VOIGT_MASKS: Dict[MaterialMode, Tuple[int, ...]] = {
    MaterialMode.MODE_3D: (0, 1, 2, 3, 4, 5),
    MaterialMode.PLANE_STRESS: (0, 1, 5),
    MaterialMode.PLANE_STRAIN: (0, 1, 2, 5),
    MaterialMode.MODE_1D: (0,),
}


def give_value_type(var: InternalStateType) -> InternalStateValueType:
    """Value type of an internal variable (UNDEFINED if not tabulated)."""
    return VALUE_TYPES.get(var, InternalStateValueType.UNDEFINED)


def full_component_count(vtype: InternalStateValueType) -> int:
    """Number of components written to the output for a value type."""
    if vtype is InternalStateValueType.SCALAR:
        return 1
    if vtype is InternalStateValueType.VECTOR:
        return 3
    if vtype in (
        InternalStateValueType.TENSOR_S3,
        InternalStateValueType.TENSOR_S3E,
        InternalStateValueType.TENSOR_G,
    ):
        return 9
    return 0


def is_symmetric_tensor(vtype: InternalStateValueType) -> bool:
    return vtype in (InternalStateValueType.TENSOR_S3, InternalStateValueType.TENSOR_S3E)


def reduced_index_map(mode: MaterialMode) -> Tuple[int, ...]:
    """Map from full Voigt6 position to 1-based reduced index (0 = absent).

    This is the fixed table the tensor expansion uses for a given storage
    mode; it never changes between calls.
    """
    if mode not in VOIGT_MASKS:
        raise ValueError(f"Material mode {mode} has no symmetric-tensor storage.")
    red = [0] * 6
    for i, pos in enumerate(VOIGT_MASKS[mode]):
        red[pos] = i + 1
    return tuple(red)


_ALIASES: Dict[str, str] = {
    "stress": "stress_tensor",
    "strain": "strain_tensor",
    "vonmises": "von_mises_stress",
    "mises": "von_mises_stress",
    "principal": "principal_stress",
    "displacement": "displacement_vector",
    "displacements": "displacement_vector",
    "u": "displacement_vector",
    "velocity": "velocity_vector",
    "t": "temperature",
    "element": "element_number",
    "material": "material_number",
    "region": "region_number",
}


def parse_enum(cls, value: Union[str, Enum]):
    """Parse an enum member from a member, its name or value (case-insensitive)."""
    if isinstance(value, cls):
        return value
    key = str(value).strip().lower().replace("-", "_")
    for candidate in (key, _ALIASES.get(key)):
        for member in cls:
            if str(member.value).lower() == candidate or member.name.lower() == candidate:
                return member
    names = ", ".join(m.value for m in cls)
    raise ValueError(f"Unknown {cls.__name__} '{value}'. Use one of: {names}.")
