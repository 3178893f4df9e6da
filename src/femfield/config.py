"""Export configuration.

:class:`ExportConfig` collects everything the export module reads at
initialization: selected variables, the smoother, region handling, time
scaling and output location. It round-trips through plain dictionaries,
JSON and YAML.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Dict, List, Union

import yaml

from femfield.value_types import InternalStateType, UnknownType, parse_enum

SMOOTHER_TYPES = ("nodal_averaging", "zz", "spr")

_STYPE_ALIASES = {
    "0": "nodal_averaging",
    "avg": "nodal_averaging",
    "averaging": "nodal_averaging",
    "nodalaveraging": "nodal_averaging",
    "1": "zz",
    "l2": "zz",
    "2": "spr",
    "patch": "spr",
}


def normalize_stype(stype: Union[str, int]) -> str:
    """Canonical smoother name from a name, alias or numeric code."""
    key = str(stype).strip().lower().replace("-", "_")
    key = _STYPE_ALIASES.get(key, key)
    if key not in SMOOTHER_TYPES:
        raise ValueError(f"Unknown smoother type '{stype}'. Use 'nodal_averaging', 'zz' or 'spr'.")
    return key


@dataclass
class ExportConfig:
    """Configuration of the VTK XML export module.

    Attributes
    ----------
    vars : list
        Internal variables exported as recovered point data.
    primvars : list
        Primary unknowns exported as point data.
    cellvars : list
        Internal variables exported as (unsmoothed) cell data.
    stype : str
        Smoother: "nodal_averaging", "zz" or "spr" (aliases 0, 1, 2).
    regions_to_skip : list of int
        Regions left out of the export.
    nvr : int
        Number of virtual regions (0 = export real regions).
    vrmap : dict
        Element number -> virtual region (1..nvr); required when nvr > 0.
    time_scale : float
        Factor applied to simulation time in the collection file.
    output_dir, basename : str
        Step files are ``<output_dir>/<basename>.<step>.vtu``.
    """

    vars: List[InternalStateType] = field(default_factory=list)
    primvars: List[UnknownType] = field(default_factory=list)
    cellvars: List[InternalStateType] = field(default_factory=list)
    stype: str = "nodal_averaging"
    regions_to_skip: List[int] = field(default_factory=list)
    nvr: int = 0
    vrmap: Dict[int, int] = field(default_factory=dict)
    time_scale: float = 1.0
    output_dir: str = "."
    basename: str = "output"
    verbose: bool = False

    def __post_init__(self) -> None:
        self.vars = [parse_enum(InternalStateType, v) for v in self.vars]
        self.primvars = [parse_enum(UnknownType, v) for v in self.primvars]
        self.cellvars = [parse_enum(InternalStateType, v) for v in self.cellvars]
        self.stype = normalize_stype(self.stype)
        self.regions_to_skip = [int(r) for r in self.regions_to_skip]
        self.nvr = int(self.nvr)
        self.vrmap = {int(k): int(v) for k, v in dict(self.vrmap).items()}
        self.time_scale = float(self.time_scale)

        if self.time_scale <= 0.0:
            raise ValueError(f"time_scale must be positive, got {self.time_scale}")
        if self.nvr < 0:
            raise ValueError(f"nvr must be >= 0, got {self.nvr}")
        if self.nvr > 0:
            if not self.vrmap:
                raise ValueError("Virtual regions requested (nvr > 0) but vrmap is empty.")
            bad = {k: v for k, v in self.vrmap.items() if not (1 <= v <= self.nvr)}
            if bad:
                raise ValueError(f"vrmap values must lie in 1..{self.nvr}, got {bad}")

    def check_domain(self, domain) -> None:
        """With virtual regions every element must be mapped."""
        if self.nvr > 0:
            missing = [e.number for e in domain.elements() if e.number not in self.vrmap]
            if missing:
                raise ValueError(f"vrmap does not assign elements {missing} to a virtual region")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "vars": [v.value for v in self.vars],
            "primvars": [v.value for v in self.primvars],
            "cellvars": [v.value for v in self.cellvars],
            "stype": self.stype,
            "regions_to_skip": list(self.regions_to_skip),
            "nvr": self.nvr,
            "vrmap": {str(k): v for k, v in self.vrmap.items()},
            "time_scale": self.time_scale,
            "output_dir": self.output_dir,
            "basename": self.basename,
            "verbose": self.verbose,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ExportConfig":
        """Construct from dictionary (inverse of to_dict)"""
        known = set(cls.__dataclass_fields__)
        unknown = set(data) - known
        if unknown:
            raise ValueError(f"Unknown export config keys: {sorted(unknown)}")
        return cls(**data)

    def save_json(self, filepath: str):
        """Save to JSON file"""
        with open(filepath, "w") as f:
            json.dump(self.to_dict(), f, indent=2)

    def save_yaml(self, filepath: str):
        """Save to YAML file"""
        with open(filepath, "w") as f:
            yaml.dump(self.to_dict(), f, default_flow_style=False)

    @classmethod
    def load_json(cls, filepath: str) -> "ExportConfig":
        """Load from JSON file"""
        with open(filepath, "r") as f:
            data = json.load(f)
        return cls.from_dict(data)

    @classmethod
    def load_yaml(cls, filepath: str) -> "ExportConfig":
        """Load from YAML file"""
        with open(filepath, "r") as f:
            data = yaml.safe_load(f) or {}
        return cls.from_dict(data)

    @classmethod
    def load(cls, filepath: str) -> "ExportConfig":
        """Load from .json / .yaml / .yml by extension."""
        if str(filepath).lower().endswith((".yaml", ".yml")):
            return cls.load_yaml(filepath)
        return cls.load_json(filepath)
