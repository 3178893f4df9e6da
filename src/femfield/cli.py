"""Demo driver: export a loaded truss chain as a VTU time series.

A straight chain of ``Truss3d`` bars along x is clamped at node 1 and the
free end is pulled, so every bar carries the same axial stress. Each time
step scales the end displacement linearly and is exported through
:class:`~femfield.output.exporter.VTKXMLExporter`.
"""

from __future__ import annotations

import argparse
from pathlib import Path
from typing import Optional, Sequence

from femfield.config import ExportConfig
from femfield.constitutive import IsotropicLinearElasticMaterial
from femfield.fem.domain import Domain
from femfield.fem.truss3d import Truss3d
from femfield.output.exporter import VTKXMLExporter
from femfield.timestep import TimeStep
from femfield.value_types import DofID, InternalStateType, UnknownType


def build_truss_chain(
    n_elements: int = 4,
    length: float = 1.0,
    area: float = 1.0e-4,
    E: float = 210e9,
    nu: float = 0.3,
    regions: int = 1,
) -> Domain:
    """Chain of bars; element i belongs to region ``1 + i * regions // n_elements``."""
    if n_elements < 1:
        raise ValueError(f"n_elements must be >= 1, got {n_elements}")
    mat = IsotropicLinearElasticMaterial(E=E, nu=nu)
    dom = Domain()
    h = length / n_elements
    for i in range(n_elements + 1):
        dom.add_node([i * h, 0.0, 0.0])
    for i in range(n_elements):
        region = 1 + (i * max(int(regions), 1)) // n_elements
        dom.add_element(Truss3d(i + 1, [i + 1, i + 2], mat, area=area, region=region))
    return dom


def apply_end_displacement(dom: Domain, u_end: float) -> None:
    """Linear axial displacement field with ``u(0) = 0`` and ``u(L) = u_end``."""
    nodes = list(dom.nodes())
    x0 = nodes[0].coords[0]
    L = nodes[-1].coords[0] - x0
    for node in nodes:
        u = u_end * (node.coords[0] - x0) / L
        node.set_unknown(UnknownType.DISPLACEMENT_VECTOR, {DofID.D_u: u, DofID.D_v: 0.0, DofID.D_w: 0.0})


def run_demo(
    config: ExportConfig,
    steps: int = 3,
    n_elements: int = 4,
    u_max: float = 1.0e-3,
    dt: float = 1.0,
) -> Path:
    """Solve-free demo: impose displacements, update states, export every step."""
    dom = build_truss_chain(n_elements=n_elements)
    exporter = VTKXMLExporter(dom, config)
    exporter.initialize()
    for k in range(1, steps + 1):
        tstep = TimeStep(k, k * dt, dt)
        apply_end_displacement(dom, u_max * k / steps)
        for elem in dom.elements():
            elem.update_internal_state(tstep)
        path = exporter.do_output(tstep)
        print(f"[demo] step {k}: wrote {path}")
    return exporter.terminate()


def main(argv: Optional[Sequence[str]] = None) -> None:
    parser = argparse.ArgumentParser(description="Export a loaded truss chain to VTK XML.")
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Export configuration (.json / .yaml).",
    )
    parser.add_argument(
        "--steps",
        type=int,
        default=3,
        help="Number of time steps to export (default: 3).",
    )
    parser.add_argument(
        "--elements",
        type=int,
        default=4,
        help="Number of bars in the chain (default: 4).",
    )
    parser.add_argument(
        "--stype",
        default=None,
        help="Override the smoother: nodal_averaging, zz or spr.",
    )
    parser.add_argument(
        "--out",
        type=Path,
        default=None,
        help="Output directory (overrides the config).",
    )
    args = parser.parse_args(argv)

    if args.config is not None:
        config = ExportConfig.load(str(args.config))
    else:
        config = ExportConfig(
            vars=[InternalStateType.STRESS_TENSOR],
            primvars=[UnknownType.DISPLACEMENT_VECTOR],
            cellvars=[InternalStateType.STRESS_TENSOR, InternalStateType.ELEMENT_NUMBER],
            basename="truss",
        )
    if args.stype is not None:
        config = ExportConfig.from_dict({**config.to_dict(), "stype": args.stype})
    if args.out is not None:
        config.output_dir = str(args.out)

    pvd = run_demo(config, steps=args.steps, n_elements=args.elements)
    print(f"[demo] collection: {pvd}")


if __name__ == "__main__":
    main()
