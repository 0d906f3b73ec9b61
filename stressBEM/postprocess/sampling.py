"""
Output grid sampling.

Field-point results live on an irregular multi-level point set. The caller
asks for a regular StressGrid; values are transferred by inverse-distance
weighting (weight 1/d^2) over the valid field points.

Neighbour search uses a uniform bucket grid of int(sqrt(M)) + 1 cells per
side over the bounding box of the valid field points. A grid point looks at
the 3x3 block of buckets around its own cell, clamped into the bucket grid,
so points outside the field-point region take the values of the nearest edge
buckets. A grid point closer than 1e-5 to a field point (d^2 < 1e-10) copies
that field point directly.

The principal angle is axial (0 and 180 degrees are the same direction), so
it is averaged through (cos 2theta, sin 2theta) and mapped back to [0, 180).
"""

from dataclasses import dataclass, field
from typing import Tuple

import numpy as np

from ..discretization.grid import FieldPointSet
from ..errors import InputValidationError

_EXACT_MATCH_SQ = 1e-10


@dataclass(frozen=True)
class StressGrid:
    """
    Regular output grid, stored row by row (x varies fastest).

    Attributes:
        xmin, ymin, xmax, ymax: Grid extent
        nx, ny: Number of points per direction
    """
    xmin: float
    ymin: float
    xmax: float
    ymax: float
    nx: int
    ny: int

    def validate(self):
        if self.nx < 1 or self.ny < 1:
            raise InputValidationError(f"Grid needs at least one point per direction, got {self.nx}x{self.ny}")
        if self.xmax < self.xmin or self.ymax < self.ymin:
            raise InputValidationError("Grid maximum must not be below its minimum")

    @property
    def x_points(self) -> np.ndarray:
        return np.linspace(self.xmin, self.xmax, self.nx)

    @property
    def y_points(self) -> np.ndarray:
        return np.linspace(self.ymin, self.ymax, self.ny)

    @property
    def point_count(self) -> int:
        return self.nx * self.ny

    def get_point(self, index: int) -> Tuple[float, float]:
        row, col = divmod(index, self.nx)
        if not (0 <= row < self.ny):
            raise IndexError(f"Grid point {index} out of range")
        return float(self.x_points[col]), float(self.y_points[row])

    def points(self) -> np.ndarray:
        """All grid points, shape (nx*ny, 2)."""
        xx, yy = np.meshgrid(self.x_points, self.y_points)
        return np.column_stack([xx.ravel(), yy.ravel()])


@dataclass
class StressField:
    """
    Results sampled on a StressGrid.

    Attributes:
        grid: The output grid
        sigma1, sigma3: Major and minor principal stress per grid point
        theta: In-plane principal direction in degrees per grid point
        displacements: (ux, uy) per grid point, shape (P, 2)
    """
    grid: StressGrid
    sigma1: np.ndarray = field(default=None)
    sigma3: np.ndarray = field(default=None)
    theta: np.ndarray = field(default=None)
    displacements: np.ndarray = field(default=None)

    def __post_init__(self):
        p = self.grid.point_count
        if self.sigma1 is None:
            self.sigma1 = np.zeros(p)
        if self.sigma3 is None:
            self.sigma3 = np.zeros(p)
        if self.theta is None:
            self.theta = np.zeros(p)
        if self.displacements is None:
            self.displacements = np.zeros((p, 2))

    def as_arrays(self):
        """(X, Y, sigma1, sigma3, theta) reshaped to (ny, nx)."""
        shape = (self.grid.ny, self.grid.nx)
        pts = self.grid.points()
        return (pts[:, 0].reshape(shape), pts[:, 1].reshape(shape),
                self.sigma1.reshape(shape), self.sigma3.reshape(shape),
                self.theta.reshape(shape))


def interpolate_to_grid(field_points: FieldPointSet, grid: StressGrid) -> StressField:
    """
    Transfer field-point results onto a regular grid.

    Parameters:
        field_points: Evaluated field points (only valid points are used)
        grid: Output grid

    Returns:
        StressField with sigma1/sigma3 from the 3D principal stresses, theta
        from the in-plane principal angle and (ux, uy)
    """
    grid.validate()
    result = StressField(grid=grid)

    valid = field_points.valid_indices
    if len(valid) == 0:
        return result

    locations = field_points.locations[valid]
    theta = field_points.results["principal_angle"][valid]
    doubled = np.radians(2.0 * theta)
    values = np.column_stack([
        field_points.results["sigma1"][valid],
        field_points.results["sigma3"][valid],
        theta,
        field_points.results["ux"][valid],
        field_points.results["uy"][valid],
        np.cos(doubled),
        np.sin(doubled),
    ])

    m = len(locations)
    n_buckets = int(np.sqrt(m)) + 1
    lo = locations.min(axis=0)
    hi = locations.max(axis=0)
    size = np.where(hi > lo, (hi - lo) / n_buckets, 1.0)

    cells = np.clip(((locations - lo) / size).astype(int), 0, n_buckets - 1)
    buckets = {}
    for k, (cx, cy) in enumerate(cells):
        buckets.setdefault((cx, cy), []).append(k)

    grid_points = grid.points()
    grid_cells = np.clip(np.floor((grid_points - lo) / size), 0, n_buckets - 1).astype(int)

    out = np.zeros((grid.point_count, values.shape[1]))
    averaged = np.zeros(grid.point_count, dtype=bool)
    for i, point in enumerate(grid_points):
        gx, gy = grid_cells[i]
        candidates = []
        for bx in range(gx - 1, gx + 2):
            for by in range(gy - 1, gy + 2):
                candidates.extend(buckets.get((bx, by), ()))
        if not candidates:
            continue

        idx = np.array(candidates)
        d2 = np.sum((locations[idx] - point) ** 2, axis=1)
        nearest = np.argmin(d2)
        if d2[nearest] < _EXACT_MATCH_SQ:
            out[i] = values[idx[nearest]]
            continue
        weights = 1.0 / d2
        out[i] = weights @ values[idx] / weights.sum()
        averaged[i] = True

    # Principal directions are axial: average on the doubled angle
    blended = np.degrees(0.5 * np.arctan2(out[averaged, 6], out[averaged, 5]))
    out[averaged, 2] = np.mod(blended, 180.0)

    result.sigma1 = out[:, 0]
    result.sigma3 = out[:, 1]
    result.theta = out[:, 2]
    result.displacements = out[:, 3:5].copy()
    return result
