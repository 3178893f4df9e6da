"""femfield: finite element result recovery and VTK XML export."""

from .value_types import (
    DofID,
    InternalStateType,
    InternalStateValueType,
    MaterialMode,
    UnknownType,
)
from .timestep import TimeStep
from .material_point import IntegrationPoint, MaterialStatus
from .constitutive import IsotropicLinearElasticMaterial
from .config import ExportConfig
from .fem import Domain, Node, Element, ElementCapabilities, ElementGeometryType, Truss3d, Quad4PlaneStress, Quad4Subcells
from .output import VTKXMLExporter, ExportState, CollectionWriter, create_recovery_model

__version__ = "0.1.0"

__all__ = [
    "DofID", "InternalStateType", "InternalStateValueType", "MaterialMode", "UnknownType",
    "TimeStep",
    "IntegrationPoint", "MaterialStatus",
    "IsotropicLinearElasticMaterial",
    "ExportConfig",
    "Domain", "Node", "Element", "ElementCapabilities", "ElementGeometryType",
    "Truss3d", "Quad4PlaneStress", "Quad4Subcells",
    "VTKXMLExporter", "ExportState", "CollectionWriter", "create_recovery_model",
]
