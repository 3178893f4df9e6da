"""Mesh container and element library."""

from .domain import Domain, Node
from .element import Element, ElementCapabilities, ElementGeometryType
from .truss3d import Truss3d
from .q4 import Quad4PlaneStress, Quad4Subcells

__all__ = [
    "Domain", "Node",
    "Element", "ElementCapabilities", "ElementGeometryType",
    "Truss3d", "Quad4PlaneStress", "Quad4Subcells",
]
