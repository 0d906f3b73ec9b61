"""
Boundary polygons.

A Boundary is the only geometric input the BEM core needs: an ordered
vertex list, a closed flag and a kind. Excavation boundaries are discretized
into elements; an external boundary only delimits the analysis region.

Orientation convention:
    Excavations are meshed counter-clockwise so that the rock lies on the
    right-hand side of every element (local normal (-sin, cos) points into
    the opening). Boundary.oriented() produces that winding on request.

Point queries (contains_points, distance_to_points) are vectorised over an
(M, 2) array of points and are used by the field-point grid generator.
"""

import numpy as np
from dataclasses import dataclass
from enum import Enum
from typing import Iterator, List, Tuple

from ..errors import GeometryError


class BoundaryKind(Enum):
    """Role of a boundary in the analysis."""
    EXCAVATION = "excavation"
    EXTERNAL = "external"


@dataclass
class Boundary:
    """
    Closed polygon boundary.

    Attributes:
        vertices: Vertex coordinates, shape (n, 2); the closing edge
                  from the last vertex back to the first is implicit
        kind: Excavation (meshed) or external (analysis region only)
        boundary_id: Identifier copied onto every element of this boundary
        closed: Whether the polygon is closed (always True for analysis)
    """
    vertices: np.ndarray
    kind: BoundaryKind = BoundaryKind.EXCAVATION
    boundary_id: int = 0
    closed: bool = True

    def __post_init__(self):
        verts = np.array(self.vertices, dtype=float)
        if verts.ndim != 2 or verts.shape[1] != 2:
            raise GeometryError(
                f"Boundary vertices must have shape (n, 2), got {verts.shape}"
            )
        # Drop an explicit closing vertex that repeats the first one
        if len(verts) > 1 and np.array_equal(verts[0], verts[-1]):
            verts = verts[:-1]
        verts.setflags(write=False)
        self.vertices = verts

    @property
    def n_vertices(self) -> int:
        return len(self.vertices)

    @property
    def bounds(self) -> Tuple[float, float, float, float]:
        """Axis-aligned bounds (xmin, ymin, xmax, ymax)."""
        xmin, ymin = self.vertices.min(axis=0)
        xmax, ymax = self.vertices.max(axis=0)
        return float(xmin), float(ymin), float(xmax), float(ymax)

    def segments(self) -> Iterator[Tuple[np.ndarray, np.ndarray]]:
        """Yield (start, end) pairs of every edge, including the closing edge."""
        n = self.n_vertices
        n_edges = n if self.closed else n - 1
        for i in range(n_edges):
            yield self.vertices[i], self.vertices[(i + 1) % n]

    def segment_arrays(self) -> Tuple[np.ndarray, np.ndarray]:
        """Edge start and end points as two (n_edges, 2) arrays."""
        starts = self.vertices
        ends = np.roll(self.vertices, -1, axis=0)
        if not self.closed:
            starts, ends = starts[:-1], ends[:-1]
        return starts, ends

    @property
    def perimeter(self) -> float:
        starts, ends = self.segment_arrays()
        return float(np.sum(np.linalg.norm(ends - starts, axis=1)))

    @property
    def signed_area(self) -> float:
        """Shoelace area, positive for counter-clockwise winding."""
        x = self.vertices[:, 0]
        y = self.vertices[:, 1]
        return 0.5 * float(np.sum(x * np.roll(y, -1) - np.roll(x, -1) * y))

    @property
    def is_counter_clockwise(self) -> bool:
        return self.signed_area > 0.0

    def oriented(self, counter_clockwise: bool = True) -> "Boundary":
        """Return a copy with the requested winding direction."""
        verts = self.vertices
        if self.is_counter_clockwise != counter_clockwise:
            verts = verts[::-1]
        return Boundary(np.array(verts), self.kind, self.boundary_id, self.closed)

    def validate(self):
        """
        Check that the boundary can be discretized.

        Raises:
            GeometryError: Fewer than 3 vertices or a zero-length segment
        """
        if self.n_vertices < 3:
            raise GeometryError(
                f"Boundary {self.boundary_id} has {self.n_vertices} vertices; at least 3 required"
            )
        starts, ends = self.segment_arrays()
        lengths = np.linalg.norm(ends - starts, axis=1)
        scale = max(float(np.max(np.abs(self.vertices))), 1.0)
        degenerate = np.nonzero(lengths <= 1e-12 * scale)[0]
        if len(degenerate) > 0:
            raise GeometryError(
                f"Boundary {self.boundary_id} has a zero-length segment at vertex {int(degenerate[0])}"
            )

    def contains_points(self, points: np.ndarray) -> np.ndarray:
        """
        Even-odd ray casting test.

        Parameters:
            points: Query points, shape (M, 2)

        Returns:
            Boolean array of shape (M,), True where the point is inside
        """
        points = np.atleast_2d(np.asarray(points, dtype=float))
        px = points[:, 0][:, None]
        py = points[:, 1][:, None]
        starts, ends = self.segment_arrays()
        x1, y1 = starts[:, 0][None, :], starts[:, 1][None, :]
        x2, y2 = ends[:, 0][None, :], ends[:, 1][None, :]

        straddles = (y1 > py) != (y2 > py)
        dy = np.where(straddles, y2 - y1, 1.0)
        x_cross = x1 + (py - y1) * (x2 - x1) / dy
        crossings = straddles & (px < x_cross)
        return (np.count_nonzero(crossings, axis=1) % 2) == 1

    def distance_to_points(self, points: np.ndarray) -> np.ndarray:
        """
        Minimum Euclidean distance from each point to any edge.

        Parameters:
            points: Query points, shape (M, 2)

        Returns:
            Distances, shape (M,)
        """
        points = np.atleast_2d(np.asarray(points, dtype=float))
        starts, ends = self.segment_arrays()
        seg = ends - starts
        seg_len_sq = np.einsum("ij,ij->i", seg, seg)
        seg_len_sq = np.where(seg_len_sq > 0.0, seg_len_sq, 1.0)

        rel = points[:, None, :] - starts[None, :, :]
        t = np.einsum("mij,ij->mi", rel, seg) / seg_len_sq[None, :]
        t = np.clip(t, 0.0, 1.0)
        closest = starts[None, :, :] + t[:, :, None] * seg[None, :, :]
        dist = np.linalg.norm(points[:, None, :] - closest, axis=2)
        return dist.min(axis=1)

    def interior_angles(self) -> np.ndarray:
        """
        Interior angle at each vertex in radians, measured on the polygon
        interior side (counter-clockwise winding assumed after orientation).
        """
        ccw = self.oriented(True).vertices
        if not self.is_counter_clockwise:
            # Map back to the caller's vertex order
            ccw_angles = _interior_angles_ccw(ccw)
            return ccw_angles[::-1].copy()
        return _interior_angles_ccw(ccw)


def _interior_angles_ccw(vertices: np.ndarray) -> np.ndarray:
    prev_pts = np.roll(vertices, 1, axis=0)
    next_pts = np.roll(vertices, -1, axis=0)
    d_in = vertices - prev_pts
    d_out = next_pts - vertices
    cross = d_in[:, 0] * d_out[:, 1] - d_in[:, 1] * d_out[:, 0]
    dot = np.einsum("ij,ij->i", d_in, d_out)
    turning = np.arctan2(cross, dot)  # positive for a left (convex) turn
    return np.pi - turning


def total_perimeter(boundaries: List[Boundary]) -> float:
    return float(sum(b.perimeter for b in boundaries))


def combined_bounds(boundaries: List[Boundary]) -> Tuple[float, float, float, float]:
    """Union of the bounds of all boundaries."""
    if not boundaries:
        raise GeometryError("No boundaries provided")
    all_bounds = np.array([b.bounds for b in boundaries])
    return (float(all_bounds[:, 0].min()), float(all_bounds[:, 1].min()),
            float(all_bounds[:, 2].max()), float(all_bounds[:, 3].max()))
