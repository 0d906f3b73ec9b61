"""
Geometry module for boundary polygons.
"""

from .boundary import Boundary, BoundaryKind, combined_bounds, total_perimeter
from .primitives import make_circle, make_ellipse, make_rectangle
