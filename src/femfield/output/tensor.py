"""Expansion of symmetrically stored tensors to full 3x3 form for export."""

from __future__ import annotations

from typing import Sequence

import numpy as np

from femfield.value_types import InternalStateValueType

# Voigt6 position -> (row, col) of the full tensor, [xx, yy, zz, yz, xz, xy]
VOIGT_PAIRS = ((0, 0), (1, 1), (2, 2), (1, 2), (0, 2), (0, 1))


def make_full_form(
    reduced: Sequence[float],
    vtype: InternalStateValueType,
    red_index: Sequence[int],
) -> np.ndarray:
    """Full form of a value given in reduced storage.

    Parameters
    ----------
    reduced : sequence of float
        Components in reduced storage.
    vtype : InternalStateValueType
        Value type; selects the expansion rule.
    red_index : sequence of int
        For each Voigt6 position, the 1-based index into ``reduced`` or 0 if
        the component is not stored. Only used for symmetric tensors.

    Returns
    -------
    full : np.ndarray
        Scalars and vectors are returned unchanged. Symmetric tensors become
        9 components (3x3 row-major); every stored component is written to
        its position and to its mirror, absent components are zero. For
        ``TENSOR_S3E`` the stored shear components are engineering strains
        and are halved.
    """
    r = np.asarray(reduced, dtype=float).reshape(-1)
    if vtype in (InternalStateValueType.SCALAR, InternalStateValueType.VECTOR):
        return r.copy()
    if vtype is InternalStateValueType.TENSOR_G:
        if r.size != 9:
            raise ValueError(f"General tensor needs 9 components, got {r.size}")
        return r.copy()
    if vtype not in (InternalStateValueType.TENSOR_S3, InternalStateValueType.TENSOR_S3E):
        raise ValueError(f"Cannot expand value of type {vtype}")

    if len(red_index) != 6:
        raise ValueError("Reduced index map must have 6 entries")
    full = np.zeros((3, 3), dtype=float)
    for pos, (a, b) in enumerate(VOIGT_PAIRS):
        k = int(red_index[pos])
        if k == 0:
            continue
        val = float(r[k - 1])
        if a != b and vtype is InternalStateValueType.TENSOR_S3E:
            val *= 0.5
        full[a, b] = val
        full[b, a] = val
    return full.reshape(9)
