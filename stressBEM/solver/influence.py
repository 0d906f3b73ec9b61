"""
Influence matrix assembly.

Builds the dense 2N x 2N system matrix relating the fictitious tractions on
N constant elements to the boundary conditions at their collocation points
(element midpoints).

DOF layout (rows and columns follow the input element order):
    column 2j   : unit shear traction on element j
    column 2j+1 : unit normal traction on element j
    row 2i      : shear equation of element i
    row 2i+1    : normal equation of element i

Row content depends on the boundary-condition type of element i:
    traction-specified    -> traction in the frame of element i
        shear  = (syy - sxx) c s + sxy (c^2 - s^2)
        normal = sxx s^2 - 2 sxy c s + syy c^2
    displacement-specified -> displacement in the frame of element i
        shear  =  ux c + uy s
        normal = -ux s + uy c

The assembly loops over source elements: each column pair is one batched
integrator call over all collocation points.

The most recently built matrix is cached under a SHA-256 hash of the
element geometry (full-precision coordinates, element type, boundary id
and boundary-condition type), the ground surface elevation and the
half-space flag.
"""

import hashlib
import logging
import time
from dataclasses import dataclass
from typing import List, Optional

import numpy as np

from ..discretization.element import BoundaryConditionType, BoundaryElement, element_geometry_arrays
from ..errors import GeometryError
from .integrator import ElementIntegrator, SHEAR, NORMAL, UX, UY, SXX, SYY, SXY, N_RESPONSES

logger = logging.getLogger(__name__)

# Condition numbers above this are reported as ill-conditioned
CONDITION_WARNING = 1e10


@dataclass
class MatrixBuildStats:
    """Diagnostics of the last build_matrix() call."""
    assembly_time: float = 0.0
    hash_time: float = 0.0
    cache_hit: bool = False
    element_count: int = 0
    dof_count: int = 0
    condition_number: Optional[float] = None


def compute_geometry_hash(elements: List[BoundaryElement],
                          ground_surface_y: float,
                          is_half_space: bool) -> str:
    """
    SHA-256 over the exact element geometry, boundary-condition types and
    half-space settings.

    Floats are hashed via repr() so any change above the last bit of
    precision produces a different key.
    """
    h = hashlib.sha256()
    h.update(f"N={len(elements)};".encode())
    for e in elements:
        h.update((f"{e.start[0]!r},{e.start[1]!r},{e.end[0]!r},{e.end[1]!r},"
                  f"{e.element_type.value},{e.boundary_id},{int(e.bc_type)};").encode())
    h.update(f"G={float(ground_surface_y)!r};HS={bool(is_half_space)}".encode())
    return h.hexdigest()


def project_rows(responses: np.ndarray, c: np.ndarray, s: np.ndarray,
                 bc_types: np.ndarray) -> np.ndarray:
    """
    Project global responses onto the collocation element frames.

    Parameters:
        responses: Shape (N, 2, 5), responses at N collocation points for
                   the two load types of one source element
        c, s: Direction cosines of the collocation elements, shape (N,)
        bc_types: BoundaryConditionType value per collocation element

    Returns:
        Array of shape (2N, 2): rows in DOF order, columns [shear, normal] load
    """
    sxx = responses[..., SXX]
    syy = responses[..., SYY]
    sxy = responses[..., SXY]
    ux = responses[..., UX]
    uy = responses[..., UY]
    c = c[:, None]
    s = s[:, None]

    traction_shear = (syy - sxx) * c * s + sxy * (c * c - s * s)
    traction_normal = sxx * s * s - 2.0 * sxy * c * s + syy * c * c
    disp_shear = ux * c + uy * s
    disp_normal = -ux * s + uy * c

    is_traction = (bc_types == int(BoundaryConditionType.TRACTION))[:, None]
    shear_rows = np.where(is_traction, traction_shear, disp_shear)
    normal_rows = np.where(is_traction, traction_normal, disp_normal)

    rows = np.empty((2 * len(c), 2))
    rows[0::2] = shear_rows
    rows[1::2] = normal_rows
    return rows


class InfluenceMatrixBuilder:
    """
    Dense influence matrix assembly with a single-entry geometry cache.

    Not safe for concurrent builds on the same instance.

    Parameters:
        integrator: Element integrator used for every (point, element) pair
        enable_caching: Keep the last matrix and reuse it on a hash match
        condition_check_limit: Estimate the condition number when the DOF
                               count does not exceed this value
    """

    def __init__(self, integrator: ElementIntegrator,
                 enable_caching: bool = True,
                 condition_check_limit: int = 2000):
        self.integrator = integrator
        self.enable_caching = enable_caching
        self.condition_check_limit = condition_check_limit

        self._cached_hash: Optional[str] = None
        self._cached_matrix: Optional[np.ndarray] = None
        self.last_build_stats = MatrixBuildStats()

    def build_matrix(self, elements: List[BoundaryElement],
                     ground_surface_y: float = 0.0,
                     is_half_space: bool = False) -> np.ndarray:
        """
        Assemble the 2N x 2N influence matrix.

        Parameters:
            elements: Boundary elements (order defines DOF order)
            ground_surface_y: Free surface elevation
            is_half_space: Include the free-surface image correction

        Returns:
            Read-only dense matrix of shape (2N, 2N)

        Raises:
            GeometryError: If the element list is empty
        """
        if not elements:
            raise GeometryError("Cannot build an influence matrix without elements")

        stats = MatrixBuildStats(element_count=len(elements), dof_count=2 * len(elements))

        t0 = time.perf_counter()
        geometry_hash = compute_geometry_hash(elements, ground_surface_y, is_half_space)
        stats.hash_time = time.perf_counter() - t0

        if self.enable_caching and geometry_hash == self._cached_hash:
            stats.cache_hit = True
            stats.condition_number = self.last_build_stats.condition_number
            self.last_build_stats = stats
            logger.debug("Influence matrix cache hit (%d elements)", len(elements))
            return self._cached_matrix

        t0 = time.perf_counter()
        matrix = self._assemble(elements, ground_surface_y, is_half_space)
        stats.assembly_time = time.perf_counter() - t0

        if stats.dof_count <= self.condition_check_limit:
            stats.condition_number = float(np.linalg.cond(matrix))
            if not np.isfinite(stats.condition_number) or stats.condition_number > CONDITION_WARNING:
                logger.warning("Influence matrix is ill-conditioned (cond=%.3e, %d DOF)",
                               stats.condition_number, stats.dof_count)
            else:
                logger.debug("Influence matrix condition number %.3e", stats.condition_number)

        matrix.setflags(write=False)
        if self.enable_caching:
            self._cached_hash = geometry_hash
            self._cached_matrix = matrix

        logger.info("Assembled %dx%d influence matrix in %.3fs (half-space=%s)",
                    stats.dof_count, stats.dof_count, stats.assembly_time, is_half_space)
        self.last_build_stats = stats
        return matrix

    def _assemble(self, elements: List[BoundaryElement], ground_surface_y: float,
                  is_half_space: bool) -> np.ndarray:
        n = len(elements)
        midpoints, _, cos, sin = element_geometry_arrays(elements)
        bc_types = np.array([int(e.bc_type) for e in elements])

        matrix = np.empty((2 * n, 2 * n))
        for j, source in enumerate(elements):
            responses = self.integrator.compute_influence_batch(
                midpoints, source, ground_surface_y, is_half_space)
            rows = project_rows(responses, cos, sin, bc_types)
            matrix[:, 2 * j] = rows[:, SHEAR]
            matrix[:, 2 * j + 1] = rows[:, NORMAL]
        return matrix

    def build_field_point_matrix(self, points: np.ndarray,
                                 elements: List[BoundaryElement],
                                 ground_surface_y: float = 0.0,
                                 is_half_space: bool = False) -> np.ndarray:
        """
        Raw global influences of every element on every field point.

        Parameters:
            points: Field points, shape (M, 2)
            elements: Source elements

        Returns:
            Array of shape (5M, 2N): rows [ux, uy, sxx, syy, sxy] per point,
            columns in DOF order
        """
        if not elements:
            raise GeometryError("Cannot build a field point matrix without elements")
        points = np.asarray(points, dtype=float).reshape(-1, 2)
        m = len(points)
        out = np.empty((N_RESPONSES * m, 2 * len(elements)))
        for j, source in enumerate(elements):
            responses = self.integrator.compute_influence_batch(
                points, source, ground_surface_y, is_half_space)
            out[:, 2 * j] = responses[:, SHEAR, :].reshape(-1)
            out[:, 2 * j + 1] = responses[:, NORMAL, :].reshape(-1)
        return out

    @property
    def has_cached_matrix(self) -> bool:
        return self._cached_matrix is not None

    def is_cache_valid(self, elements: List[BoundaryElement],
                       ground_surface_y: float = 0.0,
                       is_half_space: bool = False) -> bool:
        """True if build_matrix() would return the cached matrix."""
        if self._cached_hash is None:
            return False
        return compute_geometry_hash(elements, ground_surface_y, is_half_space) == self._cached_hash

    def invalidate_cache(self):
        """Drop the cached matrix."""
        self._cached_hash = None
        self._cached_matrix = None
