"""
Configuration and problem setup.

Loads an excavation analysis from a YAML or JSON file:

    material:
      young_modulus: 10000.0
      poisson_ratio: 0.25

    geometry:
      - type: circle
        radius: 5.0
        center: [0.0, 0.0]
        n_vertices: 32
      - type: rectangle
        kind: external
        x_range: [-30.0, 30.0]
        y_range: [-30.0, 30.0]

    far_field:
      sigma1: -10.0
      sigma3: -5.0
      angle: 0.0

    solver:          # optional, maps onto SolverOptions
      target_element_count: 64

    bem:             # optional, maps onto BEMConfiguration
      use_half_space: false

    grid:            # output StressGrid
      xmin: -15.0
      ymin: -15.0
      xmax: 15.0
      ymax: 15.0
      nx: 61
      ny: 61

Geometry entry types: circle, ellipse, rectangle, polygon (vertices).
Each entry may set kind: excavation (default) or external.
"""

import json
import logging
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Dict, List

import numpy as np
import yaml

from ..config import BEMConfiguration, ElementType, FarFieldStress, PlaneStrainType, SolverOptions
from ..errors import InputValidationError
from ..geometry.boundary import Boundary, BoundaryKind
from ..geometry.primitives import make_circle, make_ellipse, make_rectangle
from ..materials import IsotropicMaterial
from ..postprocess.sampling import StressGrid

logger = logging.getLogger(__name__)

REQUIRED_SECTIONS = ("material", "geometry", "grid")


@dataclass
class AnalysisProblem:
    """Everything needed for BoundaryElementSolver.solve()."""
    boundaries: List[Boundary]
    material: IsotropicMaterial
    options: SolverOptions
    bem_config: BEMConfiguration
    grid: StressGrid


def load_config(filename: str) -> Dict[str, Any]:
    """
    Load analysis configuration from a YAML or JSON file.

    Parameters:
        filename: Path ending in .yaml, .yml or .json

    Returns:
        Configuration dictionary

    Raises:
        FileNotFoundError: If the file does not exist
        InputValidationError: Unknown suffix or non-mapping content
    """
    path = Path(filename)
    if not path.exists():
        raise FileNotFoundError(f"Configuration file not found: {path}")

    suffix = path.suffix.lower()
    text = path.read_text(encoding="utf-8")
    if suffix == ".json":
        data = json.loads(text)
    elif suffix in (".yaml", ".yml"):
        data = yaml.safe_load(text)
    else:
        raise InputValidationError(
            f"Unsupported configuration format {suffix!r}; use .yaml, .yml or .json"
        )

    if not isinstance(data, dict):
        raise InputValidationError(f"Configuration in {path} must be a mapping")
    logger.debug("Loaded configuration from %s", path)
    return data


def _dataclass_kwargs(cls, section: Dict[str, Any], name: str) -> Dict[str, Any]:
    known = {f.name for f in fields(cls)}
    unknown = set(section) - known
    if unknown:
        raise InputValidationError(f"Unknown keys in '{name}' section: {sorted(unknown)}")
    return dict(section)


def _parse_kind(entry: Dict[str, Any]) -> BoundaryKind:
    kind = str(entry.get("kind", "excavation")).lower()
    try:
        return BoundaryKind[kind.upper()]
    except KeyError:
        raise InputValidationError(f"Unknown boundary kind {kind!r}") from None


def _parse_boundary(entry: Dict[str, Any], boundary_id: int) -> Boundary:
    if not isinstance(entry, dict) or "type" not in entry:
        raise InputValidationError(f"Geometry entry {boundary_id} needs a 'type'")
    kind = _parse_kind(entry)
    shape = str(entry["type"]).lower()

    if shape == "circle":
        return make_circle(radius=float(entry.get("radius", 1.0)),
                           center=tuple(entry.get("center", (0.0, 0.0))),
                           n_vertices=int(entry.get("n_vertices", 32)),
                           kind=kind, boundary_id=boundary_id)
    if shape == "ellipse":
        return make_ellipse(float(entry["semi_axis_x"]), float(entry["semi_axis_y"]),
                            center=tuple(entry.get("center", (0.0, 0.0))),
                            n_vertices=int(entry.get("n_vertices", 32)),
                            rotation=float(entry.get("rotation", 0.0)),
                            kind=kind, boundary_id=boundary_id)
    if shape == "rectangle":
        return make_rectangle(x_range=tuple(entry["x_range"]),
                              y_range=tuple(entry["y_range"]),
                              kind=kind, boundary_id=boundary_id)
    if shape == "polygon":
        vertices = np.asarray(entry["vertices"], dtype=float)
        if vertices.ndim != 2 or vertices.shape[1] != 2:
            raise InputValidationError(
                f"Polygon vertices must be a list of [x, y] pairs, got shape {vertices.shape}"
            )
        return Boundary(vertices=vertices, kind=kind, boundary_id=boundary_id)

    raise InputValidationError(f"Unknown geometry type {shape!r}")


def setup_problem_from_config(config: Dict[str, Any]) -> AnalysisProblem:
    """
    Set up boundaries, material, options and output grid from configuration.

    Parameters:
        config: Dictionary as returned by load_config()

    Returns:
        AnalysisProblem

    Raises:
        InputValidationError: Missing sections or invalid values
    """
    if config is None:
        raise InputValidationError("Configuration is required")
    missing = [name for name in REQUIRED_SECTIONS if name not in config]
    if missing:
        raise InputValidationError(f"Missing configuration sections: {missing}")

    material_cfg = config["material"]
    try:
        material = IsotropicMaterial(young_modulus=float(material_cfg["young_modulus"]),
                                     poisson_ratio=float(material_cfg["poisson_ratio"]))
    except KeyError as exc:
        raise InputValidationError(f"Material is missing {exc.args[0]!r}") from None

    geometry = config["geometry"]
    if not isinstance(geometry, list) or not geometry:
        raise InputValidationError("'geometry' must be a non-empty list")
    try:
        boundaries = [_parse_boundary(entry, i) for i, entry in enumerate(geometry)]
    except KeyError as exc:
        raise InputValidationError(f"Geometry entry is missing {exc.args[0]!r}") from None

    far_field = FarFieldStress(**_dataclass_kwargs(
        FarFieldStress, config.get("far_field") or {}, "far_field"))

    solver_cfg = _dataclass_kwargs(SolverOptions, config.get("solver") or {}, "solver")
    if "plane_strain_type" in solver_cfg:
        solver_cfg["plane_strain_type"] = PlaneStrainType(solver_cfg["plane_strain_type"])
    if "element_type" in solver_cfg:
        solver_cfg["element_type"] = ElementType(solver_cfg["element_type"])
    solver_cfg.pop("far_field", None)
    options = SolverOptions(far_field=far_field, **solver_cfg)
    options.validate()

    bem_config = BEMConfiguration(**_dataclass_kwargs(
        BEMConfiguration, config.get("bem") or {}, "bem"))
    bem_config.validate()

    grid_cfg = config["grid"]
    try:
        grid = StressGrid(xmin=float(grid_cfg["xmin"]), ymin=float(grid_cfg["ymin"]),
                          xmax=float(grid_cfg["xmax"]), ymax=float(grid_cfg["ymax"]),
                          nx=int(grid_cfg["nx"]), ny=int(grid_cfg["ny"]))
    except KeyError as exc:
        raise InputValidationError(f"Grid is missing {exc.args[0]!r}") from None
    grid.validate()

    logger.info("Problem set up: %d boundaries, grid %dx%d",
                len(boundaries), grid.nx, grid.ny)
    return AnalysisProblem(boundaries=boundaries, material=material, options=options,
                           bem_config=bem_config, grid=grid)
