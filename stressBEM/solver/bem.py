"""
Boundary element solver for excavations.

Pipeline of BoundaryElementSolver.solve(), each stage timed:

    1. result cache check
    2. discretize excavation boundaries into constant elements
    3. choose half-space/full-space and build the influence matrix
    4. right-hand side: prescribed value - far-field traction (element frame)
    5. solve for the fictitious source densities
    6. assign the densities to the elements
    7. generate field points over the padded boundary bounding box
    8. evaluate displacement and total stress at valid field points
    9. principal stresses, invariants and strength factor
   10. interpolate onto the caller's StressGrid
   11. store in the result cache

Stages 8 and 9 run over fixed-size chunks of field points in a thread pool.
The chunking does not depend on the worker count and every point's sum runs
over the elements in the same order, so results are identical for any
number of workers.

Failures in stages 2-10 are logged, recorded in last_statistics and
re-raised; nothing partial is cached or returned.

Plane strain: sigma_z = nu (sigma_x + sigma_y), out-of-plane shear is zero.
"""

import logging
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field, replace
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

import numpy as np

from ..config import BEMConfiguration, SolverOptions
from ..discretization.discretizer import discretize_boundaries
from ..discretization.element import (
    BoundaryConditionType,
    BoundaryElement,
    element_geometry_arrays,
    element_values,
)
from ..discretization.grid import AdaptiveGridGenerator, FieldPointSet, padded_region
from ..errors import GeometryError, InputValidationError
from ..geometry.boundary import Boundary, BoundaryKind, combined_bounds
from ..materials import IsotropicMaterial
from ..postprocess.sampling import StressField, StressGrid, interpolate_to_grid
from ..postprocess.strength import StrengthCriterion
from ..postprocess.stress import principal_stresses_2d, principal_stresses_3d, stress_invariants
from .base import Solver
from .cache import BEMResultCache
from .influence import InfluenceMatrixBuilder
from .integrator import ElementIntegrator, NORMAL, SHEAR, SXX, SXY, SYY, UX, UY
from .linear import MatrixSolverService

logger = logging.getLogger(__name__)

# Field points per work unit of the parallel stages
FIELD_CHUNK_SIZE = 256

# Relative padding of the field-point region around all boundaries
REGION_PADDING = 0.2


@dataclass
class SolverStatistics:
    """Diagnostics of one solve() call."""
    success: bool = False
    cache_hit: bool = False
    matrix_cache_hit: bool = False
    used_half_space: bool = False
    element_count: int = 0
    dof_count: int = 0
    field_point_count: int = 0
    valid_field_point_count: int = 0
    discretization_time: float = 0.0
    matrix_time: float = 0.0
    rhs_time: float = 0.0
    solve_time: float = 0.0
    field_time: float = 0.0
    postprocess_time: float = 0.0
    interpolation_time: float = 0.0
    total_time: float = 0.0
    solver_method: str = ""
    error_message: Optional[str] = None

    def summary(self) -> str:
        status = "success" if self.success else f"FAILED: {self.error_message}"
        lines = [
            f"BEM solve {status}",
            f"  elements: {self.element_count} ({self.dof_count} DOF), "
            f"half-space: {self.used_half_space}",
            f"  field points: {self.valid_field_point_count} valid of {self.field_point_count}",
            f"  cache hit: {self.cache_hit}, matrix cache hit: {self.matrix_cache_hit}, "
            f"solver: {self.solver_method or '-'}",
            f"  discretization {self.discretization_time:.4f}s, matrix {self.matrix_time:.4f}s, "
            f"rhs {self.rhs_time:.4f}s, solve {self.solve_time:.4f}s",
            f"  field {self.field_time:.4f}s, postprocess {self.postprocess_time:.4f}s, "
            f"interpolation {self.interpolation_time:.4f}s",
            f"  total {self.total_time:.4f}s",
        ]
        return "\n".join(lines)


@dataclass
class BEMSolution:
    """
    Result of a solve.

    Attributes:
        stress_field: Results on the caller's output grid
        elements: Elements carrying the solved source densities
        field_points: Field points with all result arrays
        solution: Solved densities in DOF order, shape (2N,)
        ground_surface_y: Free surface elevation used
        used_half_space: Whether the image correction was applied
        statistics: Diagnostics of the solve that produced this result
    """
    stress_field: StressField
    elements: List[BoundaryElement]
    field_points: FieldPointSet
    solution: np.ndarray
    ground_surface_y: float
    used_half_space: bool
    statistics: SolverStatistics = field(default_factory=SolverStatistics)


def far_field_tractions(elements: List[BoundaryElement],
                        sxx: float, syy: float, sxy: float) -> Tuple[np.ndarray, np.ndarray]:
    """
    Far-field traction in each element frame.

    Returns:
        (shear, normal) arrays of shape (N,)
    """
    _, _, c, s = element_geometry_arrays(elements)
    shear = (syy - sxx) * c * s + sxy * (c * c - s * s)
    normal = sxx * s * s - 2.0 * sxy * c * s + syy * c * c
    return shear, normal


def build_rhs(elements: List[BoundaryElement], options: SolverOptions) -> np.ndarray:
    """
    Right-hand side in DOF order.

    Traction-specified elements get the prescribed traction minus the
    far-field traction; displacement-specified elements get the prescribed
    displacement.
    """
    sxx, syy, sxy = options.far_field.to_cartesian()
    ff_shear, ff_normal = far_field_tractions(elements, sxx, syy, sxy)

    b = np.empty(2 * len(elements))
    for j, element in enumerate(elements):
        if element.bc_type == BoundaryConditionType.TRACTION:
            b[2 * j] = element.shear_value - ff_shear[j]
            b[2 * j + 1] = element.normal_value - ff_normal[j]
        else:
            b[2 * j] = element.shear_value
            b[2 * j + 1] = element.normal_value
    return b


def chunk_slices(n: int, chunk_size: int = FIELD_CHUNK_SIZE) -> List[slice]:
    """Fixed partition of range(n) into consecutive slices."""
    return [slice(i, min(i + chunk_size, n)) for i in range(0, n, chunk_size)]


def map_chunks(func: Callable[[slice], Any], n: int,
               max_workers: Optional[int] = None) -> List[Any]:
    """Apply func to every chunk slice of range(n) in a thread pool, in order."""
    slices = chunk_slices(n)
    if not slices:
        return []
    if max_workers == 1 or len(slices) == 1:
        return [func(sl) for sl in slices]
    with ThreadPoolExecutor(max_workers=max_workers) as pool:
        return list(pool.map(func, slices))


def evaluate_field_points(integrator: ElementIntegrator,
                          elements: List[BoundaryElement],
                          points: np.ndarray,
                          far_field: Tuple[float, float, float],
                          ground_surface_y: float = 0.0,
                          is_half_space: bool = False,
                          max_workers: Optional[int] = None) -> np.ndarray:
    """
    Superpose element contributions and the far field at field points.

    Parameters:
        integrator: Element integrator
        elements: Elements carrying solved source densities
        points: Field points, shape (M, 2)
        far_field: (sxx, syy, sxy) in-situ stress
        ground_surface_y, is_half_space: Half-space settings of the solve
        max_workers: Thread count (None = executor default)

    Returns:
        Array of shape (M, 5): [ux, uy, sxx, syy, sxy] (stress total, displacement induced)
    """
    points = np.asarray(points, dtype=float).reshape(-1, 2)
    densities = element_values(elements)
    shear = densities[0::2]
    normal = densities[1::2]

    def evaluate(sl: slice) -> np.ndarray:
        chunk = points[sl]
        out = np.zeros((len(chunk), 5))
        for j, element in enumerate(elements):
            responses = integrator.compute_influence_batch(
                chunk, element, ground_surface_y, is_half_space)
            out += responses[:, SHEAR, :] * shear[j] + responses[:, NORMAL, :] * normal[j]
        return out

    parts = map_chunks(evaluate, len(points), max_workers)
    result = np.vstack(parts) if parts else np.zeros((0, 5))
    result[:, SXX] += far_field[0]
    result[:, SYY] += far_field[1]
    result[:, SXY] += far_field[2]
    return result


class BoundaryElementSolver(Solver):
    """
    Fictitious-stress BEM solver for excavations in an elastic medium.

    One instance per logical session: the matrix, solution and result
    caches are single-writer.

    Parameters:
        material: Elastic medium
        config: Engine configuration
        integrator: Element integrator (default: built from material)
        grid_generator: Field-point generator (default: config.grid_resolution)
        strength_criterion: Optional criterion for the strength factor
    """

    def __init__(self, material: IsotropicMaterial,
                 config: Optional[BEMConfiguration] = None,
                 integrator: Optional[ElementIntegrator] = None,
                 grid_generator: Optional[AdaptiveGridGenerator] = None,
                 strength_criterion: Optional[StrengthCriterion] = None):
        if material is None:
            raise InputValidationError("A material is required")
        config = config or BEMConfiguration()
        config.validate()
        super().__init__(material, config)

        self.integrator = integrator or ElementIntegrator(material)
        self.grid_generator = grid_generator or AdaptiveGridGenerator(
            resolution=config.grid_resolution)
        self.strength_criterion = strength_criterion

        self.matrix_builder = InfluenceMatrixBuilder(
            self.integrator,
            enable_caching=config.enable_caching,
            condition_check_limit=config.condition_check_limit,
        )
        self.solver_service = MatrixSolverService(
            direct_threshold=config.direct_solver_threshold,
            enable_caching=config.enable_caching,
        )
        self.result_cache = BEMResultCache()
        self._last_statistics = SolverStatistics()

    @property
    def last_statistics(self) -> SolverStatistics:
        return self._last_statistics

    # ------------------------------------------------------------------
    # Capability check
    # ------------------------------------------------------------------

    def can_solve(self, boundaries: Sequence[Boundary], options: SolverOptions) -> bool:
        if options is None or not boundaries:
            return False
        try:
            options.validate()
            for boundary in boundaries:
                boundary.validate()
        except (InputValidationError, GeometryError) as exc:
            logger.debug("Cannot solve: %s", exc)
            return False
        return any(b.kind is BoundaryKind.EXCAVATION for b in boundaries)

    # ------------------------------------------------------------------
    # Pipeline
    # ------------------------------------------------------------------

    def solve(self, boundaries: Sequence[Boundary], options: SolverOptions,
              grid: StressGrid) -> BEMSolution:
        """
        Run the full analysis.

        Parameters:
            boundaries: Excavation (and optional external) boundaries
            options: Solver options
            grid: Output grid

        Returns:
            BEMSolution

        Raises:
            InputValidationError: Missing or invalid options/grid
            GeometryError: Degenerate or missing excavation geometry
            NumericalSingularityError: Singular system or no convergence
        """
        if options is None:
            raise InputValidationError("Solver options are required")
        if grid is None:
            raise InputValidationError("An output grid is required")
        if not boundaries:
            raise GeometryError("At least one boundary is required")
        options.validate()
        grid.validate()

        t_start = time.perf_counter()
        stats = SolverStatistics()

        cache_key = None
        if self.config.enable_caching:
            cache_key = self.result_cache.compute_hash(
                boundaries, options, self.config, grid, self.material)
            cached = self.result_cache.get(cache_key)
            if cached is not None:
                stats = replace(cached.statistics, cache_hit=True,
                                total_time=time.perf_counter() - t_start)
                self._last_statistics = stats
                logger.info("Returning cached BEM result")
                return replace(cached, statistics=stats)

        try:
            solution = self._run_pipeline(boundaries, options, grid, stats, t_start)
        except Exception as exc:
            stats.success = False
            stats.error_message = str(exc)
            stats.total_time = time.perf_counter() - t_start
            self._last_statistics = stats
            logger.error("BEM solve failed after %.3fs: %s", stats.total_time, exc)
            raise

        if cache_key is not None:
            self.result_cache.store(cache_key, solution)
        self._last_statistics = stats
        logger.info("BEM solve finished in %.3fs (%d elements, %d field points)",
                    stats.total_time, stats.element_count, stats.valid_field_point_count)
        return solution

    def _run_pipeline(self, boundaries: Sequence[Boundary], options: SolverOptions,
                      grid: StressGrid, stats: SolverStatistics, t_start: float) -> BEMSolution:
        config = self.config

        t0 = time.perf_counter()
        elements = discretize_boundaries(
            boundaries,
            target_element_count=options.target_element_count,
            use_adaptive_sizing=config.use_adaptive_element_sizing,
            max_refinement_factor=config.max_refinement_factor,
        )
        stats.element_count = len(elements)
        stats.dof_count = 2 * len(elements)
        stats.discretization_time = time.perf_counter() - t0

        t0 = time.perf_counter()
        use_half_space = self._use_half_space(len(elements))
        ground_surface_y = self._ground_surface(elements)
        matrix = self.matrix_builder.build_matrix(elements, ground_surface_y, use_half_space)
        stats.used_half_space = use_half_space
        stats.matrix_cache_hit = self.matrix_builder.last_build_stats.cache_hit
        stats.matrix_time = time.perf_counter() - t0

        t0 = time.perf_counter()
        rhs = build_rhs(elements, options)
        stats.rhs_time = time.perf_counter() - t0

        t0 = time.perf_counter()
        self.solver_service.tolerance = options.tolerance
        self.solver_service.max_iterations = options.max_iterations
        x = self.solver_service.solve(matrix, rhs)
        stats.solver_method = self.solver_service.last_info.method
        for j, element in enumerate(elements):
            element.assign_solution(x[2 * j], x[2 * j + 1])
        stats.solve_time = time.perf_counter() - t0

        t0 = time.perf_counter()
        region = padded_region(combined_bounds(boundaries), REGION_PADDING)
        field_points = self.grid_generator.generate(region, boundaries)
        valid = field_points.valid_indices
        stats.field_point_count = len(field_points)
        stats.valid_field_point_count = len(valid)

        far_field = options.far_field.to_cartesian()
        values = evaluate_field_points(
            self.integrator, elements, field_points.locations[valid], far_field,
            ground_surface_y, use_half_space, config.max_workers)
        self._store_field_values(field_points, valid, values)
        stats.field_time = time.perf_counter() - t0

        t0 = time.perf_counter()
        self._postprocess(field_points, valid)
        stats.postprocess_time = time.perf_counter() - t0

        t0 = time.perf_counter()
        stress_field = interpolate_to_grid(field_points, grid)
        stats.interpolation_time = time.perf_counter() - t0

        stats.success = True
        stats.total_time = time.perf_counter() - t_start
        logger.debug("Stage timings:\n%s", stats.summary())

        return BEMSolution(
            stress_field=stress_field,
            elements=elements,
            field_points=field_points,
            solution=x,
            ground_surface_y=ground_surface_y,
            used_half_space=use_half_space,
            statistics=stats,
        )

    def _use_half_space(self, element_count: int) -> bool:
        if not self.config.use_half_space:
            return False
        if element_count >= self.config.half_space_element_threshold:
            logger.warning("Half-space correction disabled: %d elements >= threshold %d",
                           element_count, self.config.half_space_element_threshold)
            return False
        return True

    def _ground_surface(self, elements: List[BoundaryElement]) -> float:
        if self.config.ground_surface_y is not None:
            return float(self.config.ground_surface_y)
        top = max(max(e.start[1], e.end[1]) for e in elements)
        return float(top + self.config.ground_surface_offset)

    def _store_field_values(self, field_points: FieldPointSet, valid: np.ndarray,
                            values: np.ndarray):
        nu = self.material.poisson_ratio
        results = field_points.results
        results["ux"][valid] = values[:, UX]
        results["uy"][valid] = values[:, UY]
        results["sigma_x"][valid] = values[:, SXX]
        results["sigma_y"][valid] = values[:, SYY]
        results["tau_xy"][valid] = values[:, SXY]
        results["sigma_z"][valid] = nu * (values[:, SXX] + values[:, SYY])

    def _postprocess(self, field_points: FieldPointSet, valid: np.ndarray):
        results = field_points.results
        sx = results["sigma_x"][valid]
        sy = results["sigma_y"][valid]
        sz = results["sigma_z"][valid]
        txy = results["tau_xy"][valid]
        tyz = results["tau_yz"][valid]
        txz = results["tau_xz"][valid]
        criterion = self.strength_criterion

        def process(sl: slice) -> Dict[str, np.ndarray]:
            s1_2d, s3_2d, angle = principal_stresses_2d(sx[sl], sy[sl], txy[sl])
            s1, s2, s3 = principal_stresses_3d(sx[sl], sy[sl], sz[sl], txy[sl], tyz[sl], txz[sl])
            i1, j2, lode = stress_invariants(sx[sl], sy[sl], sz[sl], txy[sl], tyz[sl], txz[sl])
            if criterion is not None:
                factor = np.asarray(criterion.strength_factor(s1, s3), dtype=float)
            else:
                factor = np.ones_like(s1)
            return {
                "in_plane_sigma1": s1_2d, "in_plane_sigma3": s3_2d, "principal_angle": angle,
                "sigma1": s1, "sigma2": s2, "sigma3": s3,
                "i1": i1, "j2": j2, "lode_angle": lode, "strength_factor": factor,
            }

        parts = map_chunks(process, len(valid), self.config.max_workers)
        if not parts:
            return
        for name in parts[0]:
            results[name][valid] = np.concatenate([p[name] for p in parts])

    # ------------------------------------------------------------------
    # Cache control
    # ------------------------------------------------------------------

    def clear_cache(self):
        """Drop the result, matrix and solution caches."""
        self.result_cache.invalidate()
        self.matrix_builder.invalidate_cache()
        self.solver_service.clear_cache()

    def cache_status(self) -> Dict[str, Any]:
        return {
            "caching_enabled": self.config.enable_caching,
            "result_cached": self.result_cache.has_entry,
            "matrix_cached": self.matrix_builder.has_cached_matrix,
            "solver": self.solver_service.cache_stats(),
            "last_matrix_build": self.matrix_builder.last_build_stats,
        }
