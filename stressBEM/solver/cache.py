"""
Top-level result cache.

Holds the most recent BEMSolution under a SHA-256 hash of everything that
determines it: boundary geometry at full precision, material, solver
options, the result-affecting engine configuration and the output grid.
Any change in one of those produces a different key, so a stale entry is
never returned.
"""

import hashlib
import logging
from typing import Any, Optional, Sequence

from ..config import BEMConfiguration, SolverOptions
from ..geometry.boundary import Boundary
from ..materials import IsotropicMaterial

logger = logging.getLogger(__name__)


def compute_configuration_hash(boundaries: Sequence[Boundary],
                               options: SolverOptions,
                               config: BEMConfiguration,
                               grid,
                               material: Optional[IsotropicMaterial] = None) -> str:
    """
    SHA-256 over the complete solve input.

    Parameters:
        boundaries: Boundary polygons (vertex floats hashed via repr)
        options: Solver options including the far-field stress
        config: Engine configuration
        grid: Output StressGrid
        material: Elastic medium

    Returns:
        Hex digest
    """
    h = hashlib.sha256()
    h.update(f"boundaries={len(boundaries)};".encode())
    for boundary in boundaries:
        h.update(f"{boundary.kind.value},{boundary.boundary_id},{boundary.closed}:".encode())
        for x, y in boundary.vertices:
            h.update(f"{float(x)!r},{float(y)!r};".encode())

    ff = options.far_field
    h.update((f"options={options.plane_strain_type.value},{options.element_type.value},"
              f"{options.target_element_count},{options.tolerance!r},{options.max_iterations},"
              f"{ff.sigma1!r},{ff.sigma3!r},{ff.angle!r};").encode())

    h.update((f"config={config.direct_solver_threshold},{config.use_adaptive_element_sizing},"
              f"{config.max_refinement_factor!r},{config.use_half_space},"
              f"{config.half_space_element_threshold},{config.ground_surface_y!r},"
              f"{config.ground_surface_offset!r},{config.grid_resolution};").encode())

    h.update((f"grid={grid.xmin!r},{grid.ymin!r},{grid.xmax!r},{grid.ymax!r},"
              f"{grid.nx},{grid.ny};").encode())

    if material is not None:
        h.update(f"material={material.young_modulus!r},{material.poisson_ratio!r}".encode())
    return h.hexdigest()


class BEMResultCache:
    """
    Single-entry cache of the most recent solve result.

    One solver instance per logical session: the cache is not locked.
    """

    def __init__(self):
        self._hash: Optional[str] = None
        self._value: Any = None

    @staticmethod
    def compute_hash(boundaries: Sequence[Boundary], options: SolverOptions,
                     config: BEMConfiguration, grid,
                     material: Optional[IsotropicMaterial] = None) -> str:
        return compute_configuration_hash(boundaries, options, config, grid, material)

    @property
    def has_entry(self) -> bool:
        return self._hash is not None

    def is_valid(self, key: str) -> bool:
        return self._hash is not None and key == self._hash

    def get(self, key: str) -> Any:
        """Cached value for key, or None on a miss."""
        if self.is_valid(key):
            logger.debug("Result cache hit")
            return self._value
        return None

    def store(self, key: str, value: Any):
        self._hash = key
        self._value = value

    def invalidate(self):
        self._hash = None
        self._value = None
