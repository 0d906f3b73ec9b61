"""
Discretization module for BEM.

Provides:
- BoundaryElement: Constant straight boundary element
- discretize_boundaries: Boundary polygons -> elements
- AdaptiveGridGenerator: Multi-level field-point grid
- FieldPointSet: Field points with their result arrays
"""

from .element import BoundaryConditionType, BoundaryElement, element_values
from .discretizer import discretize_boundaries, discretize_boundary, vertex_refinement_factors
from .grid import (
    AdaptiveGridGenerator,
    FieldPoint,
    FieldPointSet,
    GridLevel,
    GridStatistics,
    padded_region,
)
