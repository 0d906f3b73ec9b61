"""
Primitive boundary factory functions.

This module provides factory functions for common excavation shapes:
- Circles (regular polygons inscribed in a circle)
- Ellipses
- Rectangles

All factories return counter-clockwise polygons.
"""

import numpy as np
from typing import Tuple

from ..errors import GeometryError
from .boundary import Boundary, BoundaryKind


def make_circle(radius: float = 1.0,
                center: Tuple[float, float] = (0.0, 0.0),
                n_vertices: int = 32,
                kind: BoundaryKind = BoundaryKind.EXCAVATION,
                boundary_id: int = 0) -> Boundary:
    """
    Create a regular polygon inscribed in a circle.

    The first vertex lies on the positive x-axis relative to the center.

    Parameters:
        radius: Circle radius
        center: Center coordinates (x, y)
        n_vertices: Number of polygon vertices (>= 3)
        kind: Boundary role
        boundary_id: Identifier for the boundary

    Returns:
        Boundary approximating the circle
    """
    return make_ellipse(radius, radius, center, n_vertices, kind=kind, boundary_id=boundary_id)


def make_ellipse(semi_axis_x: float,
                 semi_axis_y: float,
                 center: Tuple[float, float] = (0.0, 0.0),
                 n_vertices: int = 32,
                 rotation: float = 0.0,
                 kind: BoundaryKind = BoundaryKind.EXCAVATION,
                 boundary_id: int = 0) -> Boundary:
    """
    Create a polygon inscribed in an ellipse.

    Parameters:
        semi_axis_x: Semi-axis along the (unrotated) x direction
        semi_axis_y: Semi-axis along the (unrotated) y direction
        center: Center coordinates (x, y)
        n_vertices: Number of polygon vertices (>= 3)
        rotation: Counter-clockwise rotation of the axes in degrees
        kind: Boundary role
        boundary_id: Identifier for the boundary

    Returns:
        Boundary approximating the ellipse
    """
    if semi_axis_x <= 0.0 or semi_axis_y <= 0.0:
        raise GeometryError(f"Semi-axes must be positive, got ({semi_axis_x}, {semi_axis_y})")

    t = 2.0 * np.pi * np.arange(n_vertices) / n_vertices
    local = np.column_stack([semi_axis_x * np.cos(t), semi_axis_y * np.sin(t)])

    phi = np.radians(rotation)
    rot = np.array([[np.cos(phi), -np.sin(phi)],
                    [np.sin(phi), np.cos(phi)]])
    vertices = local @ rot.T + np.asarray(center, dtype=float)

    return Boundary(vertices, kind=kind, boundary_id=boundary_id)


def make_rectangle(x_range: Tuple[float, float] = (0.0, 1.0),
                   y_range: Tuple[float, float] = (0.0, 1.0),
                   kind: BoundaryKind = BoundaryKind.EXCAVATION,
                   boundary_id: int = 0) -> Boundary:
    """
    Create an axis-aligned rectangle.

    Parameters:
        x_range: (x_min, x_max)
        y_range: (y_min, y_max)
        kind: Boundary role
        boundary_id: Identifier for the boundary

    Returns:
        Boundary with four counter-clockwise vertices
    """
    x_min, x_max = x_range
    y_min, y_max = y_range
    if x_max <= x_min or y_max <= y_min:
        raise GeometryError(f"Empty rectangle: x_range={x_range}, y_range={y_range}")

    vertices = np.array([
        [x_min, y_min],
        [x_max, y_min],
        [x_max, y_max],
        [x_min, y_max],
    ])
    return Boundary(vertices, kind=kind, boundary_id=boundary_id)
