"""
Boundary discretization.

Splits excavation polygons into constant boundary elements:

    base_size = total_perimeter / target_element_count
    size(edge) = base_size / f(edge)
    n_sub(edge) = ceil(edge_length / size(edge))

With adaptive sizing enabled, f is the larger refinement factor of the
edge's two end vertices:

    f(vertex) = 1 + (max_refinement_factor - 1) * turning_angle / pi

so straight runs keep the base size and a vertex where the boundary turns
back on itself gets elements up to max_refinement_factor times smaller.

External boundaries are not meshed; they only bound the field-point region.
"""

import logging
import math
from typing import List, Sequence

import numpy as np

from ..errors import GeometryError
from ..geometry.boundary import Boundary, BoundaryKind, total_perimeter
from .element import BoundaryConditionType, BoundaryElement

logger = logging.getLogger(__name__)

# Tolerance on the edge/size ratio so exact multiples do not round up
_RATIO_TOLERANCE = 1e-9


def vertex_refinement_factors(boundary: Boundary, max_refinement_factor: float) -> np.ndarray:
    """
    Element size reduction factor at each vertex.

    Parameters:
        boundary: Polygon boundary
        max_refinement_factor: Factor reached for a full reversal (turning angle pi)

    Returns:
        Array of factors in [1, max_refinement_factor], one per vertex
    """
    turning = np.abs(np.pi - boundary.interior_angles())
    turning = np.clip(turning, 0.0, np.pi)
    return 1.0 + (max_refinement_factor - 1.0) * turning / np.pi


def discretize_boundary(boundary: Boundary,
                        element_size: float,
                        use_adaptive_sizing: bool = True,
                        max_refinement_factor: float = 4.0) -> List[BoundaryElement]:
    """
    Discretize a single excavation boundary.

    The polygon is re-oriented counter-clockwise first so the medium lies
    on the right-hand side of every element.

    Parameters:
        boundary: Excavation boundary (validated)
        element_size: Base element size
        use_adaptive_sizing: Refine near sharp vertices
        max_refinement_factor: Largest refinement factor

    Returns:
        Elements in boundary order
    """
    if element_size <= 0.0:
        raise GeometryError(f"Element size must be positive, got {element_size}")

    ccw = boundary.oriented(counter_clockwise=True)
    vertices = ccw.vertices
    n = len(vertices)

    if use_adaptive_sizing:
        factors = vertex_refinement_factors(ccw, max_refinement_factor)
    else:
        factors = np.ones(n)

    elements = []
    for i in range(n):
        p0 = vertices[i]
        p1 = vertices[(i + 1) % n]
        edge_length = float(np.hypot(*(p1 - p0)))
        size = element_size / max(factors[i], factors[(i + 1) % n])
        n_sub = max(1, math.ceil(edge_length / size - _RATIO_TOLERANCE))

        for k in range(n_sub):
            a = p0 + (p1 - p0) * (k / n_sub)
            b = p0 + (p1 - p0) * ((k + 1) / n_sub)
            elements.append(BoundaryElement(
                start=(a[0], a[1]),
                end=(b[0], b[1]),
                boundary_id=boundary.boundary_id,
                bc_type=BoundaryConditionType.TRACTION,
            ))
    return elements


def discretize_boundaries(boundaries: Sequence[Boundary],
                          target_element_count: int = 100,
                          use_adaptive_sizing: bool = True,
                          max_refinement_factor: float = 4.0) -> List[BoundaryElement]:
    """
    Discretize all excavation boundaries into constant elements.

    Parameters:
        boundaries: Boundaries; only EXCAVATION boundaries are meshed
        target_element_count: Desired element count (before refinement)
        use_adaptive_sizing: Refine near sharp vertices
        max_refinement_factor: Largest refinement factor

    Returns:
        List of BoundaryElement with traction-free boundary conditions

    Raises:
        GeometryError: If a boundary is degenerate or nothing is meshed
    """
    excavations = [b for b in boundaries if b.kind is BoundaryKind.EXCAVATION]
    if not excavations:
        raise GeometryError("No excavation boundaries to discretize")
    for boundary in excavations:
        boundary.validate()
    if target_element_count < 1:
        raise GeometryError(f"target_element_count must be positive, got {target_element_count}")

    perimeter = total_perimeter(excavations)
    element_size = perimeter / target_element_count

    elements: List[BoundaryElement] = []
    for boundary in excavations:
        elements.extend(discretize_boundary(
            boundary, element_size, use_adaptive_sizing, max_refinement_factor))

    logger.debug("Discretized %d boundaries (perimeter %.4g) into %d elements",
                 len(excavations), perimeter, len(elements))
    return elements
