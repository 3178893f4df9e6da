"""Nodal recovery (smoothing) of integration-point quantities.

Three interchangeable strategies reconstruct nodal values of an internal
variable over one exported region:

* :class:`NodalAveragingRecoveryModel`: every element sharing a node gives
  its own estimate at that node; the nodal value is their arithmetic mean.
* :class:`SPRNodalRecoveryModel`: superconvergent patch recovery. The
  integration-point samples of all elements around a node are fitted with a
  polynomial of the elements' interpolation order (least squares) and the
  fit is evaluated at the node. Under-determined or singular fits fall back
  to the mean of the patch samples for that node.
* :class:`ZZNodalRecoveryModel`: Zienkiewicz-Zhu global L2 projection,
  ``M s = R`` with ``M = sum(N^T N dV)`` and ``R = sum(N^T v dV)``.

Values are accumulated in "record" form so that elements with different
reduced storage can share a node: symmetric tensors are scattered to the
full Voigt6 vector ``[xx, yy, zz, yz, xz, xy]`` (absent components zero),
vectors are padded to 3 components. All accumulations are sums over
elements, hence independent of element order up to rounding.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Union

import numpy as np
import scipy.linalg as sla
import scipy.sparse as sp
import scipy.sparse.linalg as spla

from femfield.config import normalize_stype
from femfield.output.regions import RegionMaps
from femfield.timestep import TimeStep
from femfield.value_types import (
    InternalStateType,
    InternalStateValueType,
    VOIGT_MASKS,
    give_value_type,
    is_symmetric_tensor,
)

# Voigt6 record storage -> 1-based reduced index for the tensor expansion
RECORD_INDEX_MAP = (1, 2, 3, 4, 5, 6)

FallbackHook = Callable[[int, InternalStateType], None]


def record_size(vtype: InternalStateValueType) -> int:
    if vtype is InternalStateValueType.SCALAR:
        return 1
    if vtype is InternalStateValueType.VECTOR:
        return 3
    if is_symmetric_tensor(vtype):
        return 6
    if vtype is InternalStateValueType.TENSOR_G:
        return 9
    raise ValueError(f"Variable of type {vtype} cannot be recovered")


def to_record(value: np.ndarray, vtype: InternalStateValueType, elem) -> np.ndarray:
    """Element value (reduced storage of ``elem``) -> record form."""
    v = np.asarray(value, dtype=float).reshape(-1)
    out = np.zeros(record_size(vtype), dtype=float)
    if is_symmetric_tensor(vtype):
        out[list(VOIGT_MASKS[elem.material_mode])] = v
    else:
        n = min(v.size, out.size)
        out[:n] = v[:n]
    return out


@dataclass
class RecoveredField:
    """Recovered nodal values of one variable over one region.

    ``values`` is (n_nodes, record_size) in the piece's local order,
    ``counts`` the number of contributing elements per node (0 means the
    node received the neutral value).
    """

    variable: InternalStateType
    value_type: InternalStateValueType
    values: np.ndarray
    counts: np.ndarray
    unsupported: List = field(default_factory=list)
    n_fallbacks: int = 0

    @property
    def red_index(self):
        return RECORD_INDEX_MAP


class NodalRecoveryModel:
    """Base class of the smoothers.

    A smoother holds no per-variable state; one instance serves every
    variable, region and time step. ``on_fallback(global_node, variable)``
    is called whenever a node falls back to plain averaging.
    """

    name = "base"
    capability = ""

    def __init__(self, on_fallback: Optional[FallbackHook] = None):
        self.on_fallback = on_fallback
        self.n_fallbacks = 0

    def _report_fallback(self, node: int, var: InternalStateType) -> None:
        self.n_fallbacks += 1
        if self.on_fallback is not None:
            self.on_fallback(int(node), var)

    def _split_supported(self, maps: RegionMaps):
        ok, bad = [], []
        for elem in maps.elements:
            (ok if getattr(elem.capabilities, self.capability) else bad).append(elem)
        return ok, bad

    def recover(self, var: InternalStateType, maps: RegionMaps, tstep: TimeStep) -> RecoveredField:
        raise NotImplementedError


def _average_elements(elements, var, vtype, maps: RegionMaps, tstep: TimeStep):
    n = maps.n_nodes
    size = record_size(vtype)
    nodal_sum = np.zeros((n, size), dtype=float)
    nodal_count = np.zeros(n, dtype=float)
    for elem in elements:
        for inode, g in enumerate(elem.node_numbers):
            v = elem.nodal_averaging_value(inode, var, tstep)
            if v is None:
                continue
            k = maps.local_index(g)
            nodal_sum[k] += to_record(v, vtype, elem)
            nodal_count[k] += 1.0

    values = np.divide(
        nodal_sum,
        nodal_count[:, None],
        out=np.zeros_like(nodal_sum),
        where=nodal_count[:, None] > 0,
    )
    return values, nodal_count.astype(int)


class NodalAveragingRecoveryModel(NodalRecoveryModel):
    name = "nodal_averaging"
    capability = "nodal_averaging"

    def recover(self, var: InternalStateType, maps: RegionMaps, tstep: TimeStep) -> RecoveredField:
        vtype = give_value_type(var)
        supported, unsupported = self._split_supported(maps)
        values, counts = _average_elements(supported, var, vtype, maps, tstep)
        return RecoveredField(var, vtype, values, counts, unsupported)


def polynomial_basis(P: np.ndarray, order: int) -> np.ndarray:
    """Complete polynomial basis of given order evaluated at rows of ``P``."""
    npts, dim = P.shape
    cols = [np.ones(npts)]
    for i in range(dim):
        cols.append(P[:, i])
    if order >= 2:
        for i in range(dim):
            for j in range(i, dim):
                cols.append(P[:, i] * P[:, j])
    return np.column_stack(cols)


class SPRNodalRecoveryModel(NodalRecoveryModel):
    """Least-squares patch fit around every node."""

    name = "spr"
    capability = "patch_recovery"

    def recover(self, var: InternalStateType, maps: RegionMaps, tstep: TimeStep) -> RecoveredField:
        vtype = give_value_type(var)
        size = record_size(vtype)
        supported, unsupported = self._split_supported(maps)

        # samples per element, gathered once
        samples: Dict[int, tuple] = {}
        for elem in supported:
            pts, vals = [], []
            ip_coords = elem.give_ip_coords()
            for ip, xyz in zip(elem.integration_points, ip_coords):
                v = elem.give_ip_value(ip, var, tstep)
                if v is None:
                    continue
                pts.append(xyz)
                vals.append(to_record(v, vtype, elem))
            if pts:
                samples[elem.number] = (np.array(pts), np.array(vals))

        patches: Dict[int, List] = {}
        for elem in supported:
            if elem.number not in samples:
                continue
            for g in elem.node_numbers:
                patches.setdefault(int(g), []).append(elem)

        n = maps.n_nodes
        values = np.zeros((n, size), dtype=float)
        counts = np.zeros(n, dtype=int)
        fallbacks = 0
        domain = maps.elements[0].domain if maps.elements else None

        for g, patch in patches.items():
            k = maps.local_index(g)
            pts = np.vstack([samples[e.number][0] for e in patch])
            vals = np.vstack([samples[e.number][1] for e in patch])
            counts[k] = len(patch)
            order = max(int(e.approx_order) for e in patch)
            dim = max(int(e.capabilities.patch_dim) for e in patch)
            fitted = self._fit(pts, vals, domain.node(g).coords, order, dim)
            if fitted is None:
                fitted = vals.mean(axis=0)
                fallbacks += 1
                self._report_fallback(g, var)
            values[k] = fitted

        return RecoveredField(var, vtype, values, counts, unsupported, fallbacks)

    @staticmethod
    def _fit(pts: np.ndarray, vals: np.ndarray, node_xyz: np.ndarray, order: int, dim: int) -> Optional[np.ndarray]:
        """Fitted value at the node, None if the fit is not determined."""
        n_terms = polynomial_basis(np.zeros((1, dim)), order).shape[1]
        if pts.shape[0] < n_terms:
            return None
        # local frame spanned by the patch, origin at the node
        centred = pts - pts.mean(axis=0)
        _, _, vh = np.linalg.svd(centred, full_matrices=True)
        P = (pts - node_xyz) @ vh[:dim].T
        scale = float(np.abs(P).max())
        if scale > 0.0:
            P = P / scale
        A = polynomial_basis(P, order)
        coef, _, rank, _ = sla.lstsq(A, vals)
        if rank < n_terms:
            return None
        return np.asarray(coef[0], dtype=float)


class ZZNodalRecoveryModel(NodalRecoveryModel):
    """Global L2 projection over the region."""

    name = "zz"
    capability = "zz_recovery"

    def recover(self, var: InternalStateType, maps: RegionMaps, tstep: TimeStep) -> RecoveredField:
        vtype = give_value_type(var)
        size = record_size(vtype)
        supported, unsupported = self._split_supported(maps)
        n = maps.n_nodes

        rows: List[np.ndarray] = []
        cols: List[np.ndarray] = []
        data: List[np.ndarray] = []
        rhs = np.zeros((n, size), dtype=float)
        n_samples = 0
        counts = np.zeros(n, dtype=int)

        for elem in supported:
            idx = np.array([maps.local_index(g) for g in elem.node_numbers], dtype=int)
            contributed = False
            for ip in elem.integration_points:
                v = elem.give_ip_value(ip, var, tstep)
                if v is None:
                    continue
                N = np.asarray(elem.zz_interpolation(ip), dtype=float)
                dV = float(elem.volume_around(ip))
                rows.append(np.repeat(idx, idx.size))
                cols.append(np.tile(idx, idx.size))
                data.append(np.outer(N, N).reshape(-1) * dV)
                rhs[idx] += np.outer(N, to_record(v, vtype, elem)) * dV
                n_samples += 1
                contributed = True
            if contributed:
                counts[idx] += 1

        values = np.zeros((n, size), dtype=float)
        active = np.flatnonzero(counts > 0)
        if active.size == 0:
            return RecoveredField(var, vtype, values, counts, unsupported)

        M = sp.coo_matrix(
            (np.concatenate(data), (np.concatenate(rows), np.concatenate(cols))), shape=(n, n)
        ).tocsc()
        M_aa = M[active][:, active].tocsc()
        sol = None
        # every sample adds a rank-one term to M
        if n_samples >= active.size:
            try:
                sol = spla.splu(M_aa).solve(rhs[active])
            except RuntimeError:
                sol = None
        if sol is not None and np.all(np.isfinite(sol)):
            resid = np.linalg.norm(M_aa @ sol - rhs[active])
            if resid > 1e-8 * max(np.linalg.norm(rhs[active]), 1e-300):
                sol = None
        if sol is None or not np.all(np.isfinite(sol)):
            # singular projection: fall back to averaging for the whole region
            for k in active:
                self._report_fallback(maps.global_number(k + maps.offset + 1), var)
            avg_elems = [e for e in supported if e.capabilities.nodal_averaging]
            values, avg_counts = _average_elements(avg_elems, var, vtype, maps, tstep)
            return RecoveredField(var, vtype, values, avg_counts, unsupported, int(active.size))

        values[active] = np.asarray(sol, dtype=float).reshape(active.size, size)
        return RecoveredField(var, vtype, values, counts, unsupported)


_STYPES = {
    "nodal_averaging": NodalAveragingRecoveryModel,
    "zz": ZZNodalRecoveryModel,
    "spr": SPRNodalRecoveryModel,
}


def create_recovery_model(stype: Union[str, int], on_fallback: Optional[FallbackHook] = None) -> NodalRecoveryModel:
    return _STYPES[normalize_stype(stype)](on_fallback=on_fallback)
