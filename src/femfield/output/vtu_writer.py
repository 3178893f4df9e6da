"""VTK XML UnstructuredGrid (.vtu) pieces and their ASCII serialization.

A :class:`Piece` is the in-memory form of one exported region for one time
step. :func:`write_vtu` writes a list of pieces to an open text stream.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Sequence, TextIO

import numpy as np


@dataclass
class Piece:
    """Point set, point data, cells and cell data of one exported region."""

    region: int
    points: np.ndarray
    connectivity: List[np.ndarray] = field(default_factory=list)
    cell_types: List[int] = field(default_factory=list)
    point_data: Dict[str, np.ndarray] = field(default_factory=dict)
    cell_data: Dict[str, np.ndarray] = field(default_factory=dict)

    @property
    def n_points(self) -> int:
        return int(np.asarray(self.points).shape[0])

    @property
    def n_cells(self) -> int:
        return len(self.connectivity)

    def offsets(self) -> np.ndarray:
        return np.cumsum([len(c) for c in self.connectivity], dtype=int)

    def check(self) -> None:
        """Raise ValueError when arrays are not aligned with points / cells."""
        if len(self.cell_types) != self.n_cells:
            raise ValueError(f"Piece {self.region}: {len(self.cell_types)} cell types for {self.n_cells} cells")
        for name, arr in self.point_data.items():
            if np.asarray(arr).shape[0] != self.n_points:
                raise ValueError(f"Piece {self.region}: point array '{name}' has wrong size")
        for name, arr in self.cell_data.items():
            if np.asarray(arr).shape[0] != self.n_cells:
                raise ValueError(f"Piece {self.region}: cell array '{name}' has wrong size")


def _write_values(f: TextIO, values: np.ndarray, fmt: str) -> None:
    arr = np.asarray(values)
    if arr.ndim == 1:
        arr = arr.reshape(-1, 1)
    for row in arr:
        f.write(" ".join(fmt.format(x) for x in row))
        f.write("\n")


def _write_data_array(f: TextIO, name: str, values: np.ndarray) -> None:
    arr = np.asarray(values, dtype=float)
    ncomp = 1 if arr.ndim == 1 else arr.shape[1]
    f.write(f'<DataArray type="Float64" Name="{name}" NumberOfComponents="{ncomp}" format="ascii">\n')
    _write_values(f, arr, "{:.8e}")
    f.write("</DataArray>\n")


def _data_header(tag: str, data: Dict[str, np.ndarray]) -> str:
    kinds: Dict[str, List[str]] = {"Scalars": [], "Vectors": [], "Tensors": []}
    for name, arr in data.items():
        a = np.asarray(arr)
        ncomp = 1 if a.ndim == 1 else a.shape[1]
        key = {1: "Scalars", 3: "Vectors", 9: "Tensors"}.get(ncomp)
        if key:
            kinds[key].append(name)
    attrs = "".join(f' {k}="{" ".join(v)}"' for k, v in kinds.items() if v)
    return f"<{tag}{attrs}>\n"


def write_piece(f: TextIO, piece: Piece) -> None:
    piece.check()
    f.write(f'<Piece NumberOfPoints="{piece.n_points}" NumberOfCells="{piece.n_cells}">\n')

    f.write("<Points>\n")
    f.write('<DataArray type="Float64" NumberOfComponents="3" format="ascii">\n')
    _write_values(f, piece.points, "{:.8e}")
    f.write("</DataArray>\n</Points>\n")

    f.write("<Cells>\n")
    f.write('<DataArray type="Int32" Name="connectivity" format="ascii">\n')
    for cell in piece.connectivity:
        f.write(" ".join(str(int(i)) for i in cell))
        f.write("\n")
    f.write("</DataArray>\n")
    f.write('<DataArray type="Int32" Name="offsets" format="ascii">\n')
    f.write(" ".join(str(int(o)) for o in piece.offsets()))
    f.write("\n</DataArray>\n")
    f.write('<DataArray type="UInt8" Name="types" format="ascii">\n')
    f.write(" ".join(str(int(t)) for t in piece.cell_types))
    f.write("\n</DataArray>\n</Cells>\n")

    f.write(_data_header("PointData", piece.point_data))
    for name, arr in piece.point_data.items():
        _write_data_array(f, name, arr)
    f.write("</PointData>\n")

    f.write(_data_header("CellData", piece.cell_data))
    for name, arr in piece.cell_data.items():
        _write_data_array(f, name, arr)
    f.write("</CellData>\n")

    f.write("</Piece>\n")


def write_vtu_header(f: TextIO) -> None:
    f.write('<?xml version="1.0"?>\n')
    f.write('<VTKFile type="UnstructuredGrid" version="0.1" byte_order="LittleEndian">\n')
    f.write("<UnstructuredGrid>\n")


def write_vtu_footer(f: TextIO) -> None:
    f.write("</UnstructuredGrid>\n")
    f.write("</VTKFile>\n")


def write_vtu(f: TextIO, pieces: Sequence[Piece]) -> None:
    """Write a complete .vtu document holding ``pieces``."""
    write_vtu_header(f)
    for piece in pieces:
        write_piece(f, piece)
    write_vtu_footer(f)
