"""
Tests for configuration loading, problem setup and logging setup.
"""

import json
import logging

import pytest
import numpy as np
from numpy.testing import assert_almost_equal

from stressBEM.config import (
    BEMConfiguration, ElementType, FarFieldStress, PlaneStrainType, SolverOptions
)
from stressBEM.errors import InputValidationError
from stressBEM.geometry.boundary import BoundaryKind
from stressBEM.io.config import load_config, setup_problem_from_config
from stressBEM.logging_config import setup_logging


YAML_TEXT = """
material:
  young_modulus: 20000.0
  poisson_ratio: 0.2

geometry:
  - type: circle
    radius: 3.0
    center: [1.0, -2.0]
    n_vertices: 24
  - type: rectangle
    kind: external
    x_range: [-30.0, 30.0]
    y_range: [-30.0, 30.0]

far_field:
  sigma1: -20.0
  sigma3: -8.0
  angle: 45.0

solver:
  target_element_count: 48
  plane_strain_type: complete_plane_strain

bem:
  use_half_space: false
  grid_resolution: 30

grid:
  xmin: -10.0
  ymin: -10.0
  xmax: 10.0
  ymax: 10.0
  nx: 21
  ny: 11
"""


def _minimal_config():
    return {
        "material": {"young_modulus": 10000.0, "poisson_ratio": 0.25},
        "geometry": [{"type": "circle", "radius": 2.0}],
        "grid": {"xmin": -5.0, "ymin": -5.0, "xmax": 5.0, "ymax": 5.0, "nx": 5, "ny": 5},
    }


class TestLoadConfig:
    """Reading YAML and JSON files."""

    def test_yaml(self, tmp_path):
        path = tmp_path / "problem.yaml"
        path.write_text(YAML_TEXT)
        data = load_config(str(path))
        assert data["material"]["poisson_ratio"] == 0.2
        assert data["geometry"][1]["kind"] == "external"

    def test_yml_suffix(self, tmp_path):
        path = tmp_path / "problem.yml"
        path.write_text(YAML_TEXT)
        assert "grid" in load_config(str(path))

    def test_json(self, tmp_path):
        path = tmp_path / "problem.json"
        path.write_text(json.dumps(_minimal_config()))
        data = load_config(str(path))
        assert data["geometry"][0]["type"] == "circle"

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_config(str(tmp_path / "missing.yaml"))

    def test_bad_suffix(self, tmp_path):
        """Test that unknown formats are rejected."""
        path = tmp_path / "problem.toml"
        path.write_text("x = 1")
        with pytest.raises(InputValidationError):
            load_config(str(path))

    def test_not_a_mapping(self, tmp_path):
        """Test that a top-level list is rejected."""
        path = tmp_path / "problem.yaml"
        path.write_text("- 1\n- 2\n")
        with pytest.raises(InputValidationError):
            load_config(str(path))


class TestSetupProblem:
    """Building solver inputs from a configuration dictionary."""

    def test_full_yaml_problem(self, tmp_path):
        """Test every section of a complete configuration."""
        path = tmp_path / "problem.yaml"
        path.write_text(YAML_TEXT)
        problem = setup_problem_from_config(load_config(str(path)))

        assert problem.material.young_modulus == 20000.0
        assert len(problem.boundaries) == 2
        hole, outer = problem.boundaries
        assert hole.kind is BoundaryKind.EXCAVATION
        assert hole.n_vertices == 24
        assert_almost_equal(hole.vertices.mean(axis=0), [1.0, -2.0])
        assert outer.kind is BoundaryKind.EXTERNAL
        assert outer.boundary_id == 1

        assert problem.options.target_element_count == 48
        assert problem.options.plane_strain_type is PlaneStrainType.COMPLETE_PLANE_STRAIN
        assert problem.options.far_field == FarFieldStress(-20.0, -8.0, 45.0)
        assert problem.bem_config == BEMConfiguration(use_half_space=False, grid_resolution=30)
        assert (problem.grid.nx, problem.grid.ny) == (21, 11)

    def test_defaults(self):
        """Test that optional sections fall back to defaults."""
        problem = setup_problem_from_config(_minimal_config())
        assert problem.options == SolverOptions()
        assert problem.bem_config == BEMConfiguration()
        assert problem.boundaries[0].n_vertices == 32

    def test_polygon_and_ellipse(self):
        config = _minimal_config()
        config["geometry"] = [
            {"type": "polygon", "vertices": [[0, 0], [2, 0], [2, 1], [0, 1]]},
            {"type": "ellipse", "semi_axis_x": 2.0, "semi_axis_y": 1.0,
             "center": [6.0, 0.0], "rotation": 30.0, "n_vertices": 16},
        ]
        problem = setup_problem_from_config(config)
        polygon, ellipse = problem.boundaries
        assert polygon.n_vertices == 4
        assert ellipse.n_vertices == 16
        assert_almost_equal(ellipse.vertices.mean(axis=0), [6.0, 0.0])

    def test_missing_section(self):
        config = _minimal_config()
        del config["grid"]
        with pytest.raises(InputValidationError, match="grid"):
            setup_problem_from_config(config)

    def test_missing_keys(self):
        """Test that missing required values are reported as input errors."""
        config = _minimal_config()
        del config["material"]["poisson_ratio"]
        with pytest.raises(InputValidationError, match="poisson_ratio"):
            setup_problem_from_config(config)

        config = _minimal_config()
        config["geometry"] = [{"type": "rectangle", "x_range": [0, 1]}]
        with pytest.raises(InputValidationError, match="y_range"):
            setup_problem_from_config(config)

    def test_unknown_keys(self):
        config = _minimal_config()
        config["bem"] = {"use_half_spcae": False}
        with pytest.raises(InputValidationError, match="use_half_spcae"):
            setup_problem_from_config(config)

    def test_unknown_geometry(self):
        """Test unknown shapes and boundary kinds."""
        config = _minimal_config()
        config["geometry"] = [{"type": "triangle"}]
        with pytest.raises(InputValidationError):
            setup_problem_from_config(config)

        config["geometry"] = [{"type": "circle", "kind": "inner"}]
        with pytest.raises(InputValidationError):
            setup_problem_from_config(config)

    def test_unsupported_element_type(self):
        config = _minimal_config()
        config["solver"] = {"element_type": ElementType.LINEAR.value}
        with pytest.raises(InputValidationError):
            setup_problem_from_config(config)

    def test_invalid_material(self):
        config = _minimal_config()
        config["material"]["poisson_ratio"] = 0.5
        with pytest.raises(InputValidationError):
            setup_problem_from_config(config)

    def test_invalid_grid(self):
        config = _minimal_config()
        config["grid"]["nx"] = 0
        with pytest.raises(InputValidationError):
            setup_problem_from_config(config)


class TestFarFieldStress:
    """Conversion of principal in-situ stresses."""

    def test_aligned(self):
        assert_almost_equal(FarFieldStress(-10.0, -5.0, 0.0).to_cartesian(), (-10.0, -5.0, 0.0))

    def test_rotated(self):
        """Test that 90 degrees swaps the axes and 45 degrees gives pure shear deviator."""
        assert_almost_equal(FarFieldStress(-10.0, -5.0, 90.0).to_cartesian(), (-5.0, -10.0, 0.0))
        sxx, syy, sxy = FarFieldStress(-10.0, -6.0, 45.0).to_cartesian()
        assert_almost_equal([sxx, syy, sxy], [-8.0, -8.0, -2.0])

    def test_invariants(self):
        sxx, syy, sxy = FarFieldStress(-12.0, -3.0, 37.0).to_cartesian()
        assert_almost_equal(sxx + syy, -15.0)
        assert_almost_equal(sxx * syy - sxy ** 2, 36.0)

    def test_non_finite(self):
        with pytest.raises(InputValidationError):
            FarFieldStress(np.nan, -5.0, 0.0).validate()


class TestSetupLogging:
    """Package logger configuration."""

    def test_replaces_handlers(self, tmp_path):
        """Test that repeated calls do not stack handlers."""
        log_file = tmp_path / "run.log"
        logger = setup_logging(logging.DEBUG, str(log_file))
        assert logger.name == "stressBEM"
        assert len(logger.handlers) == 2

        logger = setup_logging(logging.WARNING)
        assert len(logger.handlers) == 1
        assert logger.level == logging.WARNING
        logger.handlers.clear()

    def test_file_output(self, tmp_path):
        log_file = tmp_path / "run.log"
        logger = setup_logging(logging.INFO, str(log_file))
        logging.getLogger("stressBEM.solver.bem").info("assembled")
        for handler in logger.handlers:
            handler.flush()
        assert "assembled" in log_file.read_text(encoding="utf-8")
        for handler in list(logger.handlers):
            handler.close()
        logger.handlers.clear()
