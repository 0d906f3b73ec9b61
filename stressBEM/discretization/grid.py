"""
Adaptive field-point grid generation.

Field points are where stresses and displacements are evaluated after the
boundary solve. Three lattice levels are combined:

- COARSE: resolution x resolution points over the analysis region
- MEDIUM: 2x density inside each boundary's bounding box, inflated by
          medium_padding
- FINE:   4x density within fine_radius of every sharp corner
          (interior angle below sharp_corner_angle)

All points live on integer indices of the finest lattice (spacing h/4), so
overlapping regions merge without duplicates and the point order is
deterministic (sorted by row, then column).

Points inside an excavation or closer than min_boundary_distance to a
boundary segment are kept but flagged invalid; they are skipped by the
evaluation and the interpolation.
"""

import logging
import time
from dataclasses import dataclass, field
from enum import IntEnum
from typing import List, Sequence, Tuple

import numpy as np

from ..errors import InputValidationError
from ..geometry.boundary import Boundary, BoundaryKind

logger = logging.getLogger(__name__)

_FINE_PER_COARSE = 4


class GridLevel(IntEnum):
    COARSE = 0
    MEDIUM = 1
    FINE = 2


@dataclass
class GridStatistics:
    """Counts and timing of the last generate() call."""
    coarse_points: int = 0
    medium_points: int = 0
    fine_points: int = 0
    invalid_points: int = 0
    generation_time: float = 0.0

    @property
    def total_points(self) -> int:
        return self.coarse_points + self.medium_points + self.fine_points


@dataclass
class FieldPoint:
    """Snapshot of the results at a single field point."""
    x: float
    y: float
    ux: float = 0.0
    uy: float = 0.0
    uz: float = 0.0
    sigma_x: float = 0.0
    sigma_y: float = 0.0
    sigma_z: float = 0.0
    tau_xy: float = 0.0
    tau_xz: float = 0.0
    tau_yz: float = 0.0
    sigma1: float = 0.0
    sigma2: float = 0.0
    sigma3: float = 0.0
    in_plane_sigma1: float = 0.0
    in_plane_sigma3: float = 0.0
    principal_angle: float = 0.0
    i1: float = 0.0
    j2: float = 0.0
    lode_angle: float = 0.0
    strength_factor: float = 0.0
    is_inside_excavation: bool = False
    is_too_close: bool = False

    @property
    def is_valid(self) -> bool:
        return not (self.is_inside_excavation or self.is_too_close)


# Result arrays stored per field point
RESULT_FIELDS = (
    "ux", "uy", "uz",
    "sigma_x", "sigma_y", "sigma_z", "tau_xy", "tau_xz", "tau_yz",
    "sigma1", "sigma2", "sigma3", "in_plane_sigma1", "in_plane_sigma3",
    "principal_angle", "i1", "j2", "lode_angle", "strength_factor",
)


@dataclass
class FieldPointSet:
    """
    Field points and their results, stored as parallel arrays.

    Attributes:
        locations: Point coordinates, shape (M, 2)
        levels: GridLevel of each point
        inside: True where the point lies inside an excavation
        too_close: True where the point is too close to a boundary
        results: Result arrays keyed by RESULT_FIELDS, each shape (M,)
    """
    locations: np.ndarray
    levels: np.ndarray
    inside: np.ndarray
    too_close: np.ndarray
    results: dict = field(default_factory=dict)

    def __post_init__(self):
        m = len(self.locations)
        for name in RESULT_FIELDS:
            if name not in self.results:
                self.results[name] = np.zeros(m)

    def __len__(self) -> int:
        return len(self.locations)

    @property
    def valid(self) -> np.ndarray:
        return ~(self.inside | self.too_close)

    @property
    def valid_indices(self) -> np.ndarray:
        return np.nonzero(self.valid)[0]

    def __getattr__(self, name):
        # Expose result arrays as attributes (fps.sigma_x, fps.ux, ...)
        results = self.__dict__.get("results")
        if results is not None and name in results:
            return results[name]
        raise AttributeError(name)

    def point(self, index: int) -> FieldPoint:
        """Result record of one field point."""
        x, y = self.locations[index]
        values = {name: float(self.results[name][index]) for name in RESULT_FIELDS}
        return FieldPoint(x=float(x), y=float(y),
                          is_inside_excavation=bool(self.inside[index]),
                          is_too_close=bool(self.too_close[index]),
                          **values)


class AdaptiveGridGenerator:
    """
    Multi-level field-point grid generator.

    Parameters:
        resolution: Coarse lattice points per direction
        medium_padding: Inflation of boundary bounding boxes for the medium level
        fine_radius: Radius around sharp corners for the fine level
        sharp_corner_angle: Interior angle (degrees) below which a corner is sharp
        min_boundary_distance: Points closer than this to a boundary are invalid
    """

    def __init__(self, resolution: int = 50,
                 medium_padding: float = 5.0,
                 fine_radius: float = 2.0,
                 sharp_corner_angle: float = 135.0,
                 min_boundary_distance: float = 0.1):
        if resolution < 2:
            raise InputValidationError(f"Grid resolution must be at least 2, got {resolution}")
        self.resolution = resolution
        self.medium_padding = medium_padding
        self.fine_radius = fine_radius
        self.sharp_corner_angle = sharp_corner_angle
        self.min_boundary_distance = min_boundary_distance
        self.last_statistics = GridStatistics()

    def generate(self, region: Tuple[float, float, float, float],
                 boundaries: Sequence[Boundary]) -> FieldPointSet:
        """
        Generate field points over a rectangular region.

        Parameters:
            region: (xmin, ymin, xmax, ymax) of the analysis region
            boundaries: Boundaries used for refinement and validity checks

        Returns:
            FieldPointSet with deterministic point order
        """
        t0 = time.perf_counter()
        xmin, ymin, xmax, ymax = region
        if not (xmax > xmin and ymax > ymin):
            raise InputValidationError(f"Degenerate analysis region {region}")

        n = self.resolution
        fine = _FINE_PER_COARSE
        hx = (xmax - xmin) / ((n - 1) * fine)
        hy = (ymax - ymin) / ((n - 1) * fine)
        n_fine = (n - 1) * fine + 1

        blocks = [self._lattice(0, n_fine - 1, 0, n_fine - 1, fine)]

        for boundary in boundaries:
            if boundary.kind is not BoundaryKind.EXCAVATION:
                continue
            bx0, by0, bx1, by1 = boundary.bounds
            pad = self.medium_padding
            blocks.append(self._lattice(*self._index_box(
                bx0 - pad, by0 - pad, bx1 + pad, by1 + pad,
                xmin, ymin, hx, hy, n_fine), fine // 2))

        for corner in self._sharp_corners(boundaries):
            r = self.fine_radius
            box = self._index_box(corner[0] - r, corner[1] - r, corner[0] + r, corner[1] + r,
                                  xmin, ymin, hx, hy, n_fine)
            ij = self._lattice(*box, 1)
            pts = np.column_stack([xmin + ij[:, 1] * hx, ymin + ij[:, 0] * hy])
            near = np.hypot(pts[:, 0] - corner[0], pts[:, 1] - corner[1]) <= r
            blocks.append(ij[near])

        indices = np.unique(np.vstack(blocks), axis=0)
        rows, cols = indices[:, 0], indices[:, 1]
        locations = np.column_stack([xmin + cols * hx, ymin + rows * hy])

        levels = np.full(len(indices), GridLevel.FINE, dtype=int)
        levels[(rows % 2 == 0) & (cols % 2 == 0)] = GridLevel.MEDIUM
        levels[(rows % fine == 0) & (cols % fine == 0)] = GridLevel.COARSE

        inside = np.zeros(len(locations), dtype=bool)
        too_close = np.zeros(len(locations), dtype=bool)
        for boundary in boundaries:
            if boundary.kind is BoundaryKind.EXCAVATION:
                inside |= boundary.contains_points(locations)
            else:
                # Outside the external boundary is excluded like an opening
                inside |= ~boundary.contains_points(locations)
            too_close |= boundary.distance_to_points(locations) < self.min_boundary_distance

        fps = FieldPointSet(locations=locations, levels=levels, inside=inside, too_close=too_close)

        stats = GridStatistics(
            coarse_points=int(np.count_nonzero(levels == GridLevel.COARSE)),
            medium_points=int(np.count_nonzero(levels == GridLevel.MEDIUM)),
            fine_points=int(np.count_nonzero(levels == GridLevel.FINE)),
            invalid_points=int(np.count_nonzero(~fps.valid)),
            generation_time=time.perf_counter() - t0,
        )
        self.last_statistics = stats
        logger.debug("Generated %d field points (%d coarse, %d medium, %d fine, %d invalid)",
                     stats.total_points, stats.coarse_points, stats.medium_points,
                     stats.fine_points, stats.invalid_points)
        return fps

    @staticmethod
    def _index_box(x0, y0, x1, y1, xmin, ymin, hx, hy, n_fine):
        """Clip a physical box to fine-lattice index bounds (i0, i1, j0, j1)."""
        j0 = max(0, int(np.ceil((x0 - xmin) / hx)))
        j1 = min(n_fine - 1, int(np.floor((x1 - xmin) / hx)))
        i0 = max(0, int(np.ceil((y0 - ymin) / hy)))
        i1 = min(n_fine - 1, int(np.floor((y1 - ymin) / hy)))
        return i0, i1, j0, j1

    @staticmethod
    def _lattice(i0: int, i1: int, j0: int, j1: int, step: int) -> np.ndarray:
        """(row, col) fine-lattice indices that are multiples of step inside a box."""
        first_i = -(-i0 // step) * step
        first_j = -(-j0 // step) * step
        rows = np.arange(first_i, i1 + 1, step)
        cols = np.arange(first_j, j1 + 1, step)
        if len(rows) == 0 or len(cols) == 0:
            return np.empty((0, 2), dtype=int)
        rr, cc = np.meshgrid(rows, cols, indexing="ij")
        return np.column_stack([rr.ravel(), cc.ravel()])

    def _sharp_corners(self, boundaries: Sequence[Boundary]) -> List[np.ndarray]:
        limit = np.radians(self.sharp_corner_angle)
        corners = []
        for boundary in boundaries:
            if boundary.kind is not BoundaryKind.EXCAVATION or boundary.n_vertices < 3:
                continue
            angles = boundary.interior_angles()
            corners.extend(boundary.vertices[angles < limit])
        return corners


def padded_region(bounds: Tuple[float, float, float, float],
                  padding: float = 0.2) -> Tuple[float, float, float, float]:
    """Analysis region: bounds inflated by a fraction of their size on each side."""
    xmin, ymin, xmax, ymax = bounds
    px = (xmax - xmin) * padding
    py = (ymax - ymin) * padding
    return xmin - px, ymin - py, xmax + px, ymax + py
