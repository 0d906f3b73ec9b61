"""
Unit tests for boundary polygons and primitive shapes.
"""

import pytest
import numpy as np
from numpy.testing import assert_almost_equal, assert_array_almost_equal

from stressBEM.errors import GeometryError
from stressBEM.geometry.boundary import Boundary, BoundaryKind, combined_bounds, total_perimeter
from stressBEM.geometry.primitives import make_circle, make_ellipse, make_rectangle


class TestBoundary:
    """Tests for the Boundary polygon."""

    def test_square_properties(self):
        """Test bounds, perimeter and area of a unit square."""
        square = make_rectangle((0.0, 1.0), (0.0, 1.0))
        assert square.n_vertices == 4
        assert square.bounds == (0.0, 0.0, 1.0, 1.0)
        assert_almost_equal(square.perimeter, 4.0)
        assert_almost_equal(square.signed_area, 1.0)
        assert square.is_counter_clockwise

    def test_closing_vertex_dropped(self):
        """Test that a repeated first vertex is removed."""
        b = Boundary([[0, 0], [1, 0], [1, 1], [0, 0]])
        assert b.n_vertices == 3

    def test_vertices_read_only(self):
        """Test that vertices cannot be modified in place."""
        b = make_rectangle()
        with pytest.raises(ValueError):
            b.vertices[0, 0] = 5.0

    def test_oriented(self):
        """Test winding reversal."""
        square = make_rectangle((0.0, 2.0), (0.0, 1.0))
        cw = square.oriented(counter_clockwise=False)
        assert not cw.is_counter_clockwise
        assert_almost_equal(cw.signed_area, -2.0)
        assert cw.oriented(True).is_counter_clockwise

    def test_segments(self):
        """Test that segments include the closing edge."""
        square = make_rectangle()
        segs = list(square.segments())
        assert len(segs) == 4
        assert_array_almost_equal(segs[-1][1], square.vertices[0])

    def test_validate_too_few_vertices(self):
        """Test rejection of a two-vertex polygon."""
        b = Boundary([[0.0, 0.0], [1.0, 0.0]])
        with pytest.raises(GeometryError):
            b.validate()

    def test_validate_zero_length_segment(self):
        """Test rejection of repeated consecutive vertices."""
        b = Boundary([[0.0, 0.0], [1.0, 0.0], [1.0, 0.0], [0.0, 1.0]])
        with pytest.raises(GeometryError):
            b.validate()

    def test_bad_shape(self):
        """Test rejection of non-(n, 2) vertex arrays."""
        with pytest.raises(GeometryError):
            Boundary(np.zeros((4, 3)))

    def test_contains_points(self):
        """Test ray casting for inside and outside points."""
        circle = make_circle(radius=2.0, n_vertices=64)
        pts = np.array([[0.0, 0.0], [1.0, 1.0], [3.0, 0.0], [0.0, -2.5]])
        assert list(circle.contains_points(pts)) == [True, True, False, False]

    def test_distance_to_points(self):
        """Test distance to the nearest edge."""
        square = make_rectangle((0.0, 2.0), (0.0, 2.0))
        pts = np.array([[1.0, 1.0], [3.0, 1.0], [3.0, 3.0]])
        assert_array_almost_equal(square.distance_to_points(pts),
                                  [1.0, 1.0, np.sqrt(2.0)])

    def test_interior_angles_rectangle(self):
        """Test that a rectangle has four right angles in either winding."""
        square = make_rectangle()
        assert_array_almost_equal(square.interior_angles(), np.full(4, np.pi / 2))
        assert_array_almost_equal(square.oriented(False).interior_angles(),
                                  np.full(4, np.pi / 2))

    def test_interior_angles_reflex(self):
        """Test a reflex vertex of an L-shaped polygon."""
        l_shape = Boundary([[0, 0], [2, 0], [2, 1], [1, 1], [1, 2], [0, 2]])
        angles = l_shape.interior_angles()
        assert_almost_equal(angles[3], 1.5 * np.pi)
        assert_almost_equal(np.sum(angles), (6 - 2) * np.pi)


class TestPrimitives:
    """Tests for primitive factories."""

    def test_circle(self):
        """Test vertex count, radius and orientation of a circle."""
        circle = make_circle(radius=5.0, center=(1.0, -2.0), n_vertices=32)
        assert circle.n_vertices == 32
        radii = np.hypot(circle.vertices[:, 0] - 1.0, circle.vertices[:, 1] + 2.0)
        assert_array_almost_equal(radii, np.full(32, 5.0))
        assert circle.is_counter_clockwise
        assert circle.kind is BoundaryKind.EXCAVATION

    def test_ellipse_rotation(self):
        """Test that a 90 degree rotation swaps the bounding extents."""
        ellipse = make_ellipse(4.0, 1.0, n_vertices=4, rotation=90.0)
        xmin, ymin, xmax, ymax = ellipse.bounds
        assert_almost_equal(xmax - xmin, 2.0)
        assert_almost_equal(ymax - ymin, 8.0)

    def test_invalid_inputs(self):
        """Test rejection of degenerate primitives."""
        with pytest.raises(GeometryError):
            make_circle(radius=0.0)
        with pytest.raises(GeometryError):
            make_rectangle((1.0, 0.0), (0.0, 1.0))

    def test_combined(self):
        """Test combined bounds and perimeter of several boundaries."""
        a = make_rectangle((0.0, 1.0), (0.0, 1.0))
        b = make_rectangle((3.0, 4.0), (-1.0, 2.0), boundary_id=1)
        assert combined_bounds([a, b]) == (0.0, -1.0, 4.0, 2.0)
        assert_almost_equal(total_perimeter([a, b]), 4.0 + 8.0)
        with pytest.raises(GeometryError):
            combined_bounds([])
