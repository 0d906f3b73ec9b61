"""
Unit tests for influence matrix assembly.
"""

import pytest
import numpy as np
from numpy.testing import assert_allclose, assert_almost_equal, assert_array_almost_equal

from stressBEM.errors import GeometryError
from stressBEM.discretization.discretizer import discretize_boundaries
from stressBEM.discretization.element import BoundaryConditionType, BoundaryElement
from stressBEM.geometry.primitives import make_circle
from stressBEM.solver.influence import (
    InfluenceMatrixBuilder, compute_geometry_hash, project_rows
)
from stressBEM.solver.integrator import ElementIntegrator, UX, UY, SXX, SYY, SXY


def _circle_elements(count, radius=5.0):
    boundary = make_circle(radius=radius, n_vertices=count)
    return discretize_boundaries([boundary], target_element_count=count,
                                 use_adaptive_sizing=False)


@pytest.fixture
def builder(material):
    return InfluenceMatrixBuilder(ElementIntegrator(material))


class TestMatrixSanity:
    """Tests for the assembled matrix of a circular excavation."""

    def test_half_space_circle(self, builder):
        """Test shape, finiteness and conditioning (32 elements, ground at y=10)."""
        elements = _circle_elements(32)
        A = builder.build_matrix(elements, ground_surface_y=10.0, is_half_space=True)
        assert A.shape == (64, 64)
        assert np.all(np.isfinite(A))
        assert np.linalg.cond(A) < 1e12
        assert builder.last_build_stats.condition_number < 1e12

    def test_condition_growth(self, builder):
        """Test that conditioning grows no faster than count^2.5."""
        conds = {}
        for count in (16, 32, 64):
            A = builder.build_matrix(_circle_elements(count), 10.0, True)
            conds[count] = np.linalg.cond(A)
        assert conds[32] <= conds[16] * 2.0 ** 2.5
        assert conds[64] <= conds[16] * 4.0 ** 2.5

    def test_self_term_diagonal(self, builder):
        """Test the 1/2 diagonal of traction rows in full space."""
        elements = _circle_elements(32)
        A = builder.build_matrix(elements)
        assert_array_almost_equal(np.diag(A), np.full(64, 0.5), decimal=10)

    def test_read_only(self, builder):
        """Test that the returned matrix cannot be modified."""
        A = builder.build_matrix(_circle_elements(8))
        with pytest.raises(ValueError):
            A[0, 0] = 1.0

    def test_empty(self, builder):
        """Test rejection of an empty element list."""
        with pytest.raises(GeometryError):
            builder.build_matrix([])

    def test_displacement_rows(self, material):
        """Test that displacement-specified elements use displacement influence."""
        integrator = ElementIntegrator(material)
        builder = InfluenceMatrixBuilder(integrator)
        elements = _circle_elements(8)
        elements[0].bc_type = BoundaryConditionType.DISPLACEMENT
        A = builder.build_matrix(elements)

        collocation = elements[0]
        source = elements[3]
        infl = integrator.compute_influence(collocation.midpoint, source).as_array()
        c, s = collocation.cos, collocation.sin
        # column 2*3 is the shear source of element 3
        assert_almost_equal(A[0, 6], infl[0, UX] * c + infl[0, UY] * s)
        assert_almost_equal(A[1, 6], -infl[0, UX] * s + infl[0, UY] * c)
        assert_almost_equal(A[1, 7], -infl[1, UX] * s + infl[1, UY] * c)


class TestProjection:
    """Tests for projecting global responses onto element frames."""

    def test_traction_projection(self):
        """Test normal and shear traction of a uniaxial stress state."""
        responses = np.zeros((1, 2, 5))
        responses[0, :, SXX] = 1.0
        # Element at 90 degrees: normal along -x
        rows = project_rows(responses, np.array([0.0]), np.array([1.0]),
                            np.array([int(BoundaryConditionType.TRACTION)]))
        assert_array_almost_equal(rows[0], [0.0, 0.0])
        assert_array_almost_equal(rows[1], [1.0, 1.0])

    def test_displacement_projection(self):
        """Test projection of a displacement onto the element frame."""
        responses = np.zeros((1, 2, 5))
        responses[0, :, UX] = 2.0
        c, s = np.cos(0.3), np.sin(0.3)
        rows = project_rows(responses, np.array([c]), np.array([s]),
                            np.array([int(BoundaryConditionType.DISPLACEMENT)]))
        assert_array_almost_equal(rows[:, 0], [2.0 * c, -2.0 * s])


class TestMatrixCache:
    """Tests for the geometry-hash matrix cache."""

    def test_hit_and_invalidate(self, builder):
        """Test reuse, explicit invalidation and validity checks."""
        elements = _circle_elements(16)
        A1 = builder.build_matrix(elements, 10.0, True)
        assert not builder.last_build_stats.cache_hit
        assert builder.is_cache_valid(elements, 10.0, True)
        assert not builder.is_cache_valid(elements, 10.0, False)

        A2 = builder.build_matrix(elements, 10.0, True)
        assert builder.last_build_stats.cache_hit
        assert A2 is A1

        builder.invalidate_cache()
        assert not builder.has_cached_matrix
        builder.build_matrix(elements, 10.0, True)
        assert not builder.last_build_stats.cache_hit

    def test_moved_vertex_misses(self, builder):
        """Test that moving one element by a tiny amount changes the key."""
        elements = _circle_elements(16)
        h1 = compute_geometry_hash(elements, 0.0, False)
        moved = list(elements)
        e = moved[3]
        moved[3] = BoundaryElement(start=(e.start[0] + 1e-12, e.start[1]), end=e.end)
        assert compute_geometry_hash(moved, 0.0, False) != h1

        builder.build_matrix(elements)
        builder.build_matrix(moved)
        assert not builder.last_build_stats.cache_hit

    def test_caching_disabled(self, material):
        """Test that a disabled cache always rebuilds."""
        builder = InfluenceMatrixBuilder(ElementIntegrator(material), enable_caching=False)
        elements = _circle_elements(8)
        builder.build_matrix(elements)
        builder.build_matrix(elements)
        assert not builder.last_build_stats.cache_hit


class TestFieldPointMatrix:
    """Tests for raw field-point influences."""

    def test_shape_and_values(self, material):
        """Test layout against single-point integration."""
        integrator = ElementIntegrator(material)
        builder = InfluenceMatrixBuilder(integrator)
        elements = _circle_elements(8)
        points = np.array([[10.0, 0.0], [0.0, -12.0], [7.0, 7.0]])
        F = builder.build_field_point_matrix(points, elements)
        assert F.shape == (15, 16)
        infl = integrator.compute_influence(points[1], elements[2]).as_array()
        assert_allclose(F[5:10, 4], infl[0])
        assert_allclose(F[5:10, 5], infl[1])
