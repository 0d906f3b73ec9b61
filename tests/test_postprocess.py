"""
Unit tests for stress post-processing and output grid sampling.
"""

import pytest
import numpy as np
from numpy.testing import assert_almost_equal, assert_array_almost_equal

from stressBEM.errors import InputValidationError
from stressBEM.discretization.grid import FieldPointSet
from stressBEM.postprocess.stress import (
    principal_stresses_2d, principal_stresses_3d, stress_invariants
)
from stressBEM.postprocess.strength import StrengthCriterion
from stressBEM.postprocess.sampling import StressField, StressGrid, interpolate_to_grid


class TestPrincipalStresses2D:
    """Tests for in-plane principal stresses."""

    def test_axis_aligned(self):
        """Test a state already in principal axes."""
        s1, s3, angle = principal_stresses_2d(-5.0, -10.0, 0.0)
        assert_almost_equal(s1, -5.0)
        assert_almost_equal(s3, -10.0)
        assert_almost_equal(angle, 0.0)

    def test_rotated(self):
        """Test that sigma1 along y gives 90 degrees."""
        s1, s3, angle = principal_stresses_2d(-10.0, -5.0, 0.0)
        assert_almost_equal(s1, -5.0)
        assert_almost_equal(angle, 90.0)

    def test_pure_shear(self):
        """Test pure shear: principal values +-tau at 45 degrees."""
        s1, s3, angle = principal_stresses_2d(0.0, 0.0, 2.0)
        assert_almost_equal(s1, 2.0)
        assert_almost_equal(s3, -2.0)
        assert_almost_equal(angle, 45.0)

    def test_isotropic_angle_zero(self):
        """Test that a hydrostatic state reports angle 0."""
        _, _, angle = principal_stresses_2d(-7.0, -7.0, 0.0)
        assert angle == 0.0

    def test_angle_range(self):
        """Test that angles lie in [0, 180)."""
        rng = np.random.default_rng(0)
        sx, sy, txy = rng.normal(size=(3, 200))
        _, _, angle = principal_stresses_2d(sx, sy, txy)
        assert np.all(angle >= 0.0)
        assert np.all(angle < 180.0)


class TestInvariants:
    """Tests for invariants and 3D principal stresses."""

    def test_hydrostatic(self):
        """Test I1 and vanishing J2 and Lode angle for hydrostatic stress."""
        i1, j2, lode = stress_invariants(-3.0, -3.0, -3.0, 0.0, 0.0, 0.0)
        assert_almost_equal(i1, -9.0)
        assert_almost_equal(j2, 0.0)
        assert lode == 0.0

    def test_uniaxial(self):
        """Test J2 = s^2/3 and the Lode angle bound for uniaxial stress."""
        i1, j2, lode = stress_invariants(6.0, 0.0, 0.0, 0.0, 0.0, 0.0)
        assert_almost_equal(i1, 6.0)
        assert_almost_equal(j2, 12.0)
        assert_almost_equal(abs(lode), np.pi / 6)

    def test_principal_3d_diagonal(self):
        """Test principal stresses of a diagonal tensor are its sorted entries."""
        s1, s2, s3 = principal_stresses_3d(-2.0, -8.0, -5.0, 0.0, 0.0, 0.0)
        assert_almost_equal(s1, -2.0)
        assert_almost_equal(s2, -5.0)
        assert_almost_equal(s3, -8.0)

    def test_principal_3d_matches_eigvalsh(self):
        """Test against numpy eigenvalues for random tensors."""
        rng = np.random.default_rng(1)
        comps = rng.normal(size=(6, 50))
        s1, s2, s3 = principal_stresses_3d(*comps)
        for k in range(50):
            sx, sy, sz, txy, tyz, txz = comps[:, k]
            tensor = np.array([[sx, txy, txz], [txy, sy, tyz], [txz, tyz, sz]])
            eig = np.sort(np.linalg.eigvalsh(tensor))[::-1]
            assert_array_almost_equal([s1[k], s2[k], s3[k]], eig, decimal=8)

    def test_plane_strain_consistent_with_2d(self):
        """Test that in-plane principal values appear among the 3D ones."""
        sx, sy, txy = -12.0, -4.0, 3.0
        sz = 0.25 * (sx + sy)
        p1, p3, _ = principal_stresses_2d(sx, sy, txy)
        s = principal_stresses_3d(sx, sy, sz, txy, 0.0, 0.0)
        assert_array_almost_equal(sorted([float(v) for v in s]), sorted([p1, p3, sz]))


class ConstantCriterion(StrengthCriterion):
    """Test criterion: strength 10 over stress difference."""

    @property
    def name(self) -> str:
        return "constant"

    def strength_factor(self, sigma1, sigma3):
        return 10.0 / np.maximum(np.asarray(sigma1) - np.asarray(sigma3), 1e-12)


class TestStrengthCriterion:
    """Tests for the criterion interface."""

    def test_abstract(self):
        """Test that the interface cannot be instantiated."""
        with pytest.raises(TypeError):
            StrengthCriterion()

    def test_is_failure(self):
        """Test failure when the factor drops below one."""
        criterion = ConstantCriterion()
        assert criterion.name == "constant"
        assert not criterion.is_failure(0.0, -5.0)
        assert criterion.is_failure(0.0, -20.0)


class TestStressGrid:
    """Tests for the regular output grid."""

    def test_points(self):
        """Test point count, ordering and lookup."""
        grid = StressGrid(0.0, 0.0, 2.0, 1.0, 3, 2)
        assert grid.point_count == 6
        assert_array_almost_equal(grid.x_points, [0.0, 1.0, 2.0])
        assert_array_almost_equal(grid.y_points, [0.0, 1.0])
        pts = grid.points()
        assert pts.shape == (6, 2)
        assert grid.get_point(4) == (1.0, 1.0)
        assert_array_almost_equal(pts[4], grid.get_point(4))
        with pytest.raises(IndexError):
            grid.get_point(6)

    def test_validate(self):
        """Test rejection of empty grids."""
        with pytest.raises(InputValidationError):
            StressGrid(0.0, 0.0, 1.0, 1.0, 0, 5).validate()

    def test_stress_field_defaults(self):
        """Test zero-filled field arrays."""
        grid = StressGrid(0.0, 0.0, 1.0, 1.0, 4, 3)
        field = StressField(grid)
        assert field.sigma1.shape == (12,)
        assert field.displacements.shape == (12, 2)
        X, Y, s1, s3, theta = field.as_arrays()
        assert X.shape == (3, 4)


def _field_points(locations, values):
    n = len(locations)
    fps = FieldPointSet(locations=np.asarray(locations, dtype=float),
                        levels=np.zeros(n, dtype=int),
                        inside=np.zeros(n, dtype=bool),
                        too_close=np.zeros(n, dtype=bool))
    for name in ("sigma1", "sigma3", "principal_angle", "ux", "uy"):
        fps.results[name][:] = values
    return fps


class TestInterpolation:
    """Tests for inverse-distance interpolation onto the output grid."""

    def test_exact_match(self):
        """Test that coincident grid and field points copy the value."""
        xs, ys = np.meshgrid(np.linspace(0.0, 4.0, 5), np.linspace(0.0, 4.0, 5))
        locations = np.column_stack([xs.ravel(), ys.ravel()])
        values = locations[:, 0] + 10.0 * locations[:, 1]
        fps = _field_points(locations, values)

        grid = StressGrid(0.0, 0.0, 4.0, 4.0, 5, 5)
        field = interpolate_to_grid(fps, grid)
        assert_array_almost_equal(field.sigma1, values)
        assert_array_almost_equal(field.displacements[:, 0], values)

    def test_constant_field(self):
        """Test that a constant field is reproduced everywhere it is covered."""
        rng = np.random.default_rng(2)
        xs, ys = np.meshgrid(np.linspace(0.0, 10.0, 20), np.linspace(0.0, 10.0, 20))
        locations = np.column_stack([xs.ravel(), ys.ravel()]) + rng.uniform(-0.1, 0.1, size=(400, 2))
        fps = _field_points(locations, np.full(400, -7.5))
        grid = StressGrid(1.0, 1.0, 9.0, 9.0, 9, 9)
        field = interpolate_to_grid(fps, grid)
        assert_array_almost_equal(field.sigma3, np.full(81, -7.5))

    def test_invalid_points_ignored(self):
        """Test that invalid field points do not contribute."""
        fps = _field_points([[0.0, 0.0], [1.0, 0.0]], np.array([1.0, 100.0]))
        fps.inside[1] = True
        grid = StressGrid(0.5, 0.0, 0.5, 0.0, 1, 1)
        field = interpolate_to_grid(fps, grid)
        assert_almost_equal(field.sigma1[0], 1.0)

    def test_grid_beyond_field_points(self):
        """Test that grid cells outside the field-point region take the edge values."""
        xs, ys = np.meshgrid(np.linspace(0.0, 1.0, 10), np.linspace(0.0, 1.0, 10))
        locations = np.column_stack([xs.ravel(), ys.ravel()])
        fps = _field_points(locations, np.full(100, 3.0))
        grid = StressGrid(-50.0, -50.0, 60.0, 60.0, 6, 6)
        field = interpolate_to_grid(fps, grid)
        assert_array_almost_equal(field.sigma1, np.full(36, 3.0))
        assert_array_almost_equal(field.displacements[:, 1], np.full(36, 3.0))

    def test_edge_values_follow_side(self):
        """Test that a point beyond one side sees that side of the field."""
        xs, ys = np.meshgrid(np.linspace(0.0, 10.0, 11), np.linspace(0.0, 10.0, 11))
        locations = np.column_stack([xs.ravel(), ys.ravel()])
        fps = _field_points(locations, locations[:, 0])
        grid = StressGrid(-100.0, 5.0, 100.0, 5.0, 2, 1)
        field = interpolate_to_grid(fps, grid)
        assert field.sigma1[0] < 1.0
        assert field.sigma1[1] > 9.0

    def test_angle_wraps(self):
        """Test that directions at 179 and 1 degrees average to 0, not 90."""
        fps = _field_points([[0.0, 0.0], [2.0, 0.0]], np.zeros(2))
        fps.results["principal_angle"][:] = [179.0, 1.0]
        grid = StressGrid(1.0, 0.0, 1.0, 0.0, 1, 1)
        field = interpolate_to_grid(fps, grid)
        theta = field.theta[0]
        assert 0.0 <= theta < 180.0
        assert min(theta, 180.0 - theta) < 1e-6

    def test_angle_constant(self):
        """Test that a uniform direction is reproduced between field points."""
        xs, ys = np.meshgrid(np.linspace(0.0, 4.0, 5), np.linspace(0.0, 4.0, 5))
        locations = np.column_stack([xs.ravel(), ys.ravel()])
        fps = _field_points(locations, np.zeros(25))
        fps.results["principal_angle"][:] = 37.0
        grid = StressGrid(0.5, 0.5, 3.5, 3.5, 4, 4)
        field = interpolate_to_grid(fps, grid)
        assert_array_almost_equal(field.theta, np.full(16, 37.0))
