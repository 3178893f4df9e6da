"""
Pytest configuration for femfield tests.

Adds src/ to sys.path so tests can import femfield without installing it,
and provides small meshes shared by the test modules.
"""

import sys
import os

import pytest

repo_root = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
src_path = os.path.join(repo_root, 'src')

if src_path not in sys.path:
    sys.path.insert(0, src_path)

from femfield.constitutive import IsotropicLinearElasticMaterial  # noqa: E402
from femfield.fem.domain import Domain  # noqa: E402
from femfield.fem.q4 import Quad4PlaneStress  # noqa: E402
from femfield.fem.truss3d import Truss3d  # noqa: E402
from femfield.timestep import TimeStep  # noqa: E402
from femfield.value_types import DofID, UnknownType  # noqa: E402


E_STEEL = 200e9
NU = 0.3


@pytest.fixture
def steel():
    return IsotropicLinearElasticMaterial(E=E_STEEL, nu=NU)


@pytest.fixture
def tstep():
    return TimeStep(1, 1.0, 1.0)


def make_truss_chain(material, n_elements=2, length=2.0, area=1.0, regions=None):
    """Bars along x; ``regions`` gives one region number per element."""
    dom = Domain()
    h = length / n_elements
    for i in range(n_elements + 1):
        dom.add_node([i * h, 0.0, 0.0])
    for i in range(n_elements):
        reg = 1 if regions is None else regions[i]
        dom.add_element(Truss3d(i + 1, [i + 1, i + 2], material, area=area, region=reg))
    return dom


def stretch(dom, strain):
    """Uniform axial strain along x."""
    for node in dom.nodes():
        node.set_unknown(
            UnknownType.DISPLACEMENT_VECTOR,
            {DofID.D_u: strain * node.coords[0], DofID.D_v: 0.0, DofID.D_w: 0.0},
        )


def make_quad_patch(material, nx=2, ny=2, lx=2.0, ly=2.0, element_cls=Quad4PlaneStress, regions=None):
    """Structured nx x ny grid of quads in the xy-plane."""
    dom = Domain()
    for j in range(ny + 1):
        for i in range(nx + 1):
            dom.add_node([lx * i / nx, ly * j / ny, 0.0])
    num = 0
    for j in range(ny):
        for i in range(nx):
            n1 = j * (nx + 1) + i + 1
            conn = [n1, n1 + 1, n1 + nx + 2, n1 + nx + 1]
            reg = 1 if regions is None else regions[num]
            num += 1
            dom.add_element(element_cls(num, conn, material, region=reg))
    return dom


def impose_linear_field(dom, a=1e-3, b=0.0, c=0.0, d=0.0):
    """u = a*x + b*y, v = c*x + d*y."""
    for node in dom.nodes():
        x, y, _ = node.coords
        node.set_unknown(
            UnknownType.DISPLACEMENT_VECTOR,
            {DofID.D_u: a * x + b * y, DofID.D_v: c * x + d * y, DofID.D_w: 0.0},
        )


def update_all(dom, tstep):
    for elem in dom.elements():
        elem.update_internal_state(tstep)
