"""Result export: region maps, nodal recovery, VTU pieces and collections."""

from .cells import give_cell_type, give_element_cell
from .collection import CollectionEntry, CollectionWriter
from .composite import CompositeExportData, CompositeExportInterface
from .tensor import make_full_form
from .regions import RegionMaps, build_region_maps, init_region_node_numbering
from .recovery import (
    NodalAveragingRecoveryModel,
    NodalRecoveryModel,
    RecoveredField,
    SPRNodalRecoveryModel,
    ZZNodalRecoveryModel,
    create_recovery_model,
)
from .vtu_writer import Piece, write_vtu
from .exporter import ExportState, VTKXMLExporter

__all__ = [
    "give_cell_type", "give_element_cell",
    "CollectionEntry", "CollectionWriter",
    "CompositeExportData", "CompositeExportInterface",
    "make_full_form",
    "RegionMaps", "build_region_maps", "init_region_node_numbering",
    "NodalRecoveryModel", "NodalAveragingRecoveryModel", "SPRNodalRecoveryModel",
    "ZZNodalRecoveryModel", "RecoveredField", "create_recovery_model",
    "Piece", "write_vtu",
    "ExportState", "VTKXMLExporter",
]
