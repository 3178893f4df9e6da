"""VTK XML export module.

Exports analysis results region by region: every (virtual) region becomes
one ``<Piece>`` of the step's ``.vtu`` file, so internal variables that are
not smooth across region boundaries are recovered per region. Elements with
composite geometry supply their own sub-cells and values through
:class:`~femfield.output.composite.CompositeExportInterface`; their blocks
are appended after the region's regular cells.

Lifecycle::

    IDLE -> INITIALIZED -> EXPORTING (once per region) -> FINALIZING -> INITIALIZED ...
                        -> TERMINATED

A step file is moved into place only after it was completely written; only
then is it added to the ``.pvd`` collection.
"""

from __future__ import annotations

import os
import warnings
from dataclasses import replace
from enum import Enum
from pathlib import Path
from typing import List, Optional, Set, Tuple

import numpy as np

from femfield.config import ExportConfig
from femfield.output.cells import give_cell_type, give_element_cell
from femfield.output.collection import CollectionWriter
from femfield.output.composite import CompositeExportData
from femfield.output.recovery import FallbackHook, NodalRecoveryModel, create_recovery_model
from femfield.output.regions import RegionMaps, build_region_maps
from femfield.output.tensor import make_full_form
from femfield.output.vtu_writer import Piece, write_piece, write_vtu_footer, write_vtu_header
from femfield.timestep import TimeStep
from femfield.value_types import (
    UNKNOWN_DOFS,
    UNKNOWN_VALUE_TYPES,
    InternalStateType,
    UnknownType,
    full_component_count,
    give_value_type,
    is_symmetric_tensor,
    reduced_index_map,
)


class ExportState(Enum):
    IDLE = "idle"
    INITIALIZED = "initialized"
    EXPORTING = "exporting"
    FINALIZING = "finalizing"
    TERMINATED = "terminated"


_TRANSITIONS = {
    ExportState.IDLE: {ExportState.INITIALIZED},
    ExportState.INITIALIZED: {ExportState.EXPORTING, ExportState.TERMINATED},
    ExportState.EXPORTING: {ExportState.EXPORTING, ExportState.FINALIZING},
    ExportState.FINALIZING: {ExportState.INITIALIZED},
    ExportState.TERMINATED: set(),
}

# answered by the exporter, not by the material
_ELEMENT_CELL_VARS = (
    InternalStateType.ELEMENT_NUMBER,
    InternalStateType.MATERIAL_NUMBER,
    InternalStateType.REGION_NUMBER,
)


def element_full_value(elem, value: np.ndarray, var: InternalStateType) -> np.ndarray:
    """Full (exported) form of a value given in the element's reduced storage."""
    vtype = give_value_type(var)
    if is_symmetric_tensor(vtype):
        return make_full_form(value, vtype, reduced_index_map(elem.material_mode))
    out = np.zeros(full_component_count(vtype), dtype=float)
    v = np.asarray(value, dtype=float).reshape(-1)
    n = min(v.size, out.size)
    out[:n] = v[:n]
    return out


def _element_property(elem, var: InternalStateType) -> float:
    if var is InternalStateType.ELEMENT_NUMBER:
        return float(elem.number)
    if var is InternalStateType.MATERIAL_NUMBER:
        return float(getattr(elem.material, "number", 0))
    return float(elem.region)


class VTKXMLExporter:
    """Per-step, per-region VTU export with a time-series collection.

    Parameters
    ----------
    domain : Domain
        Mesh and results; only read.
    config : ExportConfig
        Export request, copied at :meth:`initialize`.
    on_fallback : callable, optional
        ``on_fallback(global_node, variable)`` called when the smoother
        falls back to averaging at a node.
    """

    def __init__(self, domain, config: Optional[ExportConfig] = None, on_fallback: Optional[FallbackHook] = None):
        self.domain = domain
        self.config = config if config is not None else ExportConfig()
        self.state = ExportState.IDLE
        self.collection: Optional[CollectionWriter] = None
        self.pieces: List[Piece] = []
        self.on_fallback = on_fallback
        self._smoother: Optional[NodalRecoveryModel] = None
        self._warned: Set[Tuple[str, str]] = set()

    # ---- lifecycle ----

    def _transition(self, new: ExportState) -> None:
        if new not in _TRANSITIONS[self.state]:
            raise RuntimeError(f"Illegal export transition {self.state.value} -> {new.value}")
        self.state = new

    def initialize(self) -> None:
        if self.state is not ExportState.IDLE:
            raise RuntimeError(f"Exporter already initialized (state={self.state.value})")
        # later edits of the caller's config do not reach this exporter
        self.config = replace(self.config)
        self.config.check_domain(self.domain)
        out = Path(self.config.output_dir)
        out.mkdir(parents=True, exist_ok=True)
        self.collection = CollectionWriter(out / f"{self.config.basename}.pvd")
        self._transition(ExportState.INITIALIZED)
        self._log(f"initialized: output={out} smoother={self.config.stype}")

    def terminate(self) -> Path:
        """Write the collection file. Calling it again rewrites the same file."""
        if self.state is not ExportState.TERMINATED:
            self._transition(ExportState.TERMINATED)
        path = self.collection.write()
        self._log(f"collection written: {path} ({len(self.collection)} steps)")
        return path

    # ---- helpers ----

    def _log(self, msg: str) -> None:
        if self.config.verbose:
            print(f"[vtkxml] {msg}")

    def _warn_once(self, elem, reason: str, message: str) -> None:
        key = (type(elem).__name__, reason)
        if key in self._warned:
            return
        self._warned.add(key)
        warnings.warn(message, RuntimeWarning, stacklevel=3)

    def give_smoother(self) -> NodalRecoveryModel:
        """Smoother, constructed on first use and reused afterwards."""
        if self._smoother is None:
            self._smoother = create_recovery_model(self.config.stype, on_fallback=self.on_fallback)
        return self._smoother

    def give_output_file_name(self, tstep: TimeStep) -> Path:
        return Path(self.config.output_dir) / f"{self.config.basename}.{tstep.number}.vtu"

    def give_region_maps(self) -> List[RegionMaps]:
        return build_region_maps(
            self.domain,
            regions_to_skip=self.config.regions_to_skip,
            nvr=self.config.nvr,
            vrmap=self.config.vrmap,
        )

    # ---- export ----

    def do_output(self, tstep: TimeStep) -> Path:
        """Export one time step; returns the written .vtu path."""
        if self.state is not ExportState.INITIALIZED:
            raise RuntimeError(f"do_output requires an initialized exporter (state={self.state.value})")

        time = tstep.target_time * self.config.time_scale
        entries = self.collection.entries
        if entries and time < entries[-1].time:
            raise ValueError(f"Step {tstep.number}: time {time} precedes the last exported time {entries[-1].time}")

        path = self.give_output_file_name(tstep)
        tmp = path.with_name(path.name + ".part")
        self.pieces = []
        self._transition(ExportState.EXPORTING)
        try:
            with open(tmp, "w") as f:
                write_vtu_header(f)
                for maps in self.give_region_maps():
                    self._transition(ExportState.EXPORTING)
                    for elem in maps.skipped:
                        self._warn_once(
                            elem,
                            "geometry",
                            f"{type(elem).__name__} {elem.number}: geometry "
                            f"'{elem.geometry_type.value}' has no VTK cell type, element skipped",
                        )
                    if not maps.elements:
                        continue
                    piece = self.build_piece(maps, tstep)
                    write_piece(f, piece)
                    self.pieces.append(piece)
                    self._log(
                        f"step {tstep.number} region {maps.region}: "
                        f"{piece.n_points} points, {piece.n_cells} cells"
                    )
                write_vtu_footer(f)
                self._transition(ExportState.FINALIZING)
            os.replace(tmp, path)
        except BaseException:
            if tmp.exists():
                tmp.unlink()
            self.state = ExportState.INITIALIZED
            raise

        self.collection.append(path.name, time)
        self._transition(ExportState.INITIALIZED)
        return path

    def build_piece(self, maps: RegionMaps, tstep: TimeStep) -> Piece:
        """Points, point data, cells and cell data of one region."""
        regular = [e for e in maps.elements if not e.capabilities.composite_export]
        composite: List[Tuple[object, CompositeExportData]] = []
        for e in maps.elements:
            if e.capabilities.composite_export:
                data = e.give_composite_export_data(
                    self.config.primvars, self.config.vars, self.config.cellvars, tstep
                )
                data.validate()
                if data.n_cells != e.number_of_export_cells():
                    raise ValueError(
                        f"{type(e).__name__} {e.number}: announced {e.number_of_export_cells()} "
                        f"export cells, supplied {data.n_cells}"
                    )
                composite.append((e, data))

        n_reg = maps.n_nodes
        points = [np.array([self.domain.node(g).coords for g in maps.local_to_global]).reshape(-1, 3)]
        connectivity: List[np.ndarray] = []
        cell_types: List[int] = []

        for e in regular:
            local = [maps.local_index(g) for g in e.node_numbers]
            connectivity.append(give_element_cell(e.geometry_type, local))
            cell_types.append(give_cell_type(e.geometry_type))

        offset = n_reg
        for e, data in composite:
            points.append(np.asarray(data.node_coords, dtype=float).reshape(-1, 3))
            for cell, ctype in zip(data.cell_nodes, data.cell_types):
                connectivity.append(np.asarray(cell, dtype=int) + offset)
                cell_types.append(int(ctype))
            offset += data.n_points

        piece = Piece(
            region=maps.region,
            points=np.vstack(points),
            connectivity=connectivity,
            cell_types=cell_types,
        )
        for utype in self.config.primvars:
            block = self.export_primary_values(maps, utype, tstep)
            piece.point_data[utype.value] = self._append_composite(block, composite, "primary_values", utype)
        for var in self.config.vars:
            block = self.export_internal_values(maps, var, tstep)
            piece.point_data[var.value] = self._append_composite(block, composite, "internal_values", var)
        for var in self.config.cellvars:
            piece.cell_data[var.value] = self.export_cell_values(regular, composite, var, tstep)
        return piece

    @staticmethod
    def _append_composite(block: np.ndarray, composite, attr: str, key) -> np.ndarray:
        blocks = [block]
        ncomp = block.shape[1]
        for _, data in composite:
            vals = getattr(data, attr).get(key)
            if vals is None:
                vals = np.zeros((data.n_points, ncomp), dtype=float)
            blocks.append(np.asarray(vals, dtype=float).reshape(data.n_points, ncomp))
        return np.vstack(blocks)

    def export_primary_values(self, maps: RegionMaps, utype: UnknownType, tstep: TimeStep) -> np.ndarray:
        """Nodal values of a primary unknown in local node order.

        Nodes without any DOF of the unknown get the average of what the
        region's elements interpolate at the node position.
        """
        dofs = UNKNOWN_DOFS[utype]
        ncomp = full_component_count(UNKNOWN_VALUE_TYPES[utype])
        values = np.zeros((maps.n_nodes, ncomp), dtype=float)
        node_elems = None
        for k, g in enumerate(maps.local_to_global):
            node = self.domain.node(int(g))
            if any(node.has_dof(d) for d in dofs):
                values[k, : len(dofs)] = node.give_unknown_vector(utype, dofs)
                continue
            if node_elems is None:
                node_elems = self.domain.node_element_table(maps.elements)
            found = []
            for e in node_elems.get(int(g), []):
                if not e.capabilities.primary_field_mapping:
                    continue
                v = e.primary_value_at(node.coords, utype, tstep)
                if v is not None:
                    found.append(np.asarray(v, dtype=float).reshape(-1)[:ncomp])
            if found:
                avg = np.mean(found, axis=0)
                values[k, : avg.size] = avg
        return values

    def export_internal_values(self, maps: RegionMaps, var: InternalStateType, tstep: TimeStep) -> np.ndarray:
        """Recovered nodal values of ``var`` in full form."""
        ncomp = full_component_count(give_value_type(var))
        if ncomp == 0:
            raise ValueError(f"Internal variable {var.value} has no exportable value type")
        recovered = self.give_smoother().recover(var, maps, tstep)
        for elem in recovered.unsupported:
            self._warn_once(
                elem,
                f"recovery-{self.config.stype}",
                f"{type(elem).__name__} does not support '{self.config.stype}' recovery; "
                f"it contributes nothing to recovered fields",
            )
        out = np.zeros((maps.n_nodes, ncomp), dtype=float)
        for k in range(maps.n_nodes):
            out[k] = make_full_form(recovered.values[k], recovered.value_type, recovered.red_index)
        return out

    def export_cell_values(self, regular, composite, var: InternalStateType, tstep: TimeStep) -> np.ndarray:
        """One unsmoothed value per cell, composite sub-cells included."""
        ncomp = full_component_count(give_value_type(var))
        rows = []
        for e in regular:
            row = np.zeros(ncomp, dtype=float)
            if var in _ELEMENT_CELL_VARS:
                row[0] = _element_property(e, var)
            else:
                v = e.cell_value(var, tstep)
                if v is not None:
                    row = element_full_value(e, v, var)
            rows.append(row)
        for e, data in composite:
            if var in _ELEMENT_CELL_VARS:
                block = np.zeros((data.n_cells, ncomp), dtype=float)
                block[:, 0] = _element_property(e, var)
            else:
                block = data.cell_values.get(var)
                if block is None:
                    block = np.zeros((data.n_cells, ncomp), dtype=float)
            rows.extend(np.asarray(block, dtype=float).reshape(data.n_cells, ncomp))
        if not rows:
            return np.zeros((0, ncomp), dtype=float)
        return np.vstack(rows)
