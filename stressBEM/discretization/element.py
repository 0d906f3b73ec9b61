"""
Boundary element abstraction for BEM.

A boundary element is a straight segment of an excavation boundary carrying
a uniform (constant) fictitious traction in its local frame:
- Local x axis along the element: (cos, sin)
- Local y axis (normal): (-sin, cos)

Each element:
- Has immutable geometry (start, end, midpoint, length, direction cosines)
- Carries a boundary-condition type (traction- or displacement-specified)
- Holds a shear/normal boundary value: the prescribed value before the solve,
  overwritten once per solve with the solved source density
- Knows the id of the boundary it was cut from

DOF layout for N constant elements (2N unknowns):
    2*j     -> shear (tangential) component of element j
    2*j + 1 -> normal component of element j
"""

import math
from enum import IntEnum
from typing import List, Tuple

import numpy as np

from ..config import ElementType
from ..errors import GeometryError


class BoundaryConditionType(IntEnum):
    """Which quantity is prescribed on the element."""
    TRACTION = 1
    DISPLACEMENT = 2


class BoundaryElement:
    """
    Straight constant boundary element.

    Parameters:
        start: Start point (x, y)
        end: End point (x, y)
        boundary_id: Id of the owning boundary
        bc_type: Prescribed quantity type
        shear_value: Prescribed (or solved) tangential value
        normal_value: Prescribed (or solved) normal value
        element_type: Interpolation order (constant only)

    Design notes:
        - Geometry is fixed at construction and exposed through read-only properties
        - assign_solution() is the only mutation performed by the solver
    """

    def __init__(self,
                 start: Tuple[float, float],
                 end: Tuple[float, float],
                 boundary_id: int = 0,
                 bc_type: BoundaryConditionType = BoundaryConditionType.TRACTION,
                 shear_value: float = 0.0,
                 normal_value: float = 0.0,
                 element_type: ElementType = ElementType.CONSTANT):
        self._start = (float(start[0]), float(start[1]))
        self._end = (float(end[0]), float(end[1]))
        dx = self._end[0] - self._start[0]
        dy = self._end[1] - self._start[1]
        length = math.hypot(dx, dy)
        if not length > 0.0:
            raise GeometryError(f"Zero-length element at {self._start}")
        self._length = length
        self._cos = dx / length
        self._sin = dy / length
        self._midpoint = (0.5 * (self._start[0] + self._end[0]),
                          0.5 * (self._start[1] + self._end[1]))

        self.boundary_id = boundary_id
        self.bc_type = bc_type
        self.shear_value = shear_value
        self.normal_value = normal_value
        self.element_type = element_type

    @property
    def start(self) -> Tuple[float, float]:
        return self._start

    @property
    def end(self) -> Tuple[float, float]:
        return self._end

    @property
    def midpoint(self) -> Tuple[float, float]:
        """Collocation point of the constant element."""
        return self._midpoint

    @property
    def length(self) -> float:
        return self._length

    @property
    def half_length(self) -> float:
        return 0.5 * self._length

    @property
    def cos(self) -> float:
        """Direction cosine of the element axis."""
        return self._cos

    @property
    def sin(self) -> float:
        """Direction sine of the element axis."""
        return self._sin

    @property
    def normal(self) -> Tuple[float, float]:
        """Unit normal (-sin, cos), pointing to the left of the element."""
        return -self._sin, self._cos

    def assign_solution(self, shear: float, normal: float):
        """Overwrite boundary values with the solved source densities."""
        self.shear_value = float(shear)
        self.normal_value = float(normal)

    def __repr__(self) -> str:
        return (f"BoundaryElement(start={self._start}, end={self._end}, "
                f"boundary_id={self.boundary_id}, bc_type={self.bc_type.name}, "
                f"shear_value={self.shear_value}, normal_value={self.normal_value})")


def element_geometry_arrays(elements: List[BoundaryElement]) -> Tuple[np.ndarray, ...]:
    """
    Pack element geometry into arrays.

    Returns:
        (midpoints, half_lengths, cos, sin) with shapes (N, 2), (N,), (N,), (N,)
    """
    midpoints = np.array([e.midpoint for e in elements], dtype=float).reshape(-1, 2)
    half_lengths = np.array([e.half_length for e in elements], dtype=float)
    cos = np.array([e.cos for e in elements], dtype=float)
    sin = np.array([e.sin for e in elements], dtype=float)
    return midpoints, half_lengths, cos, sin


def element_values(elements: List[BoundaryElement]) -> np.ndarray:
    """Boundary values in DOF order [shear_0, normal_0, shear_1, normal_1, ...]."""
    values = np.zeros(2 * len(elements))
    for j, element in enumerate(elements):
        values[2 * j] = element.shear_value
        values[2 * j + 1] = element.normal_value
    return values
