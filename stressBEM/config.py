"""
Solver options and BEM configuration.

Two records drive a solve:
- SolverOptions: problem-level choices (plane strain type, element type,
  target element count, iterative tolerance, far-field stress)
- BEMConfiguration: engine-level choices (caching, direct/iterative
  threshold, adaptive element sizing, half-space policy, field grid density)

Both are frozen dataclasses so they can be hashed into cache keys and
shared between threads. Use dataclasses.replace() to derive variants.
"""

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Tuple

from .errors import InputValidationError


class PlaneStrainType(Enum):
    """Out-of-plane condition used to recover sigma_z."""
    PLANE_STRAIN = "plane_strain"
    COMPLETE_PLANE_STRAIN = "complete_plane_strain"


class ElementType(Enum):
    """Boundary element interpolation order. Only CONSTANT is implemented."""
    CONSTANT = "constant"
    LINEAR = "linear"
    QUADRATIC = "quadratic"


@dataclass(frozen=True)
class FarFieldStress:
    """
    In-situ principal stresses before excavation.

    Attributes:
        sigma1: Major principal stress (compression negative)
        sigma3: Minor principal stress (compression negative)
        angle: Angle from the x axis to sigma1, in degrees
    """
    sigma1: float = -10.0
    sigma3: float = -5.0
    angle: float = 0.0

    def to_cartesian(self) -> Tuple[float, float, float]:
        """
        Convert to Cartesian components.

        Returns:
            (sxx, syy, sxy)
        """
        theta = math.radians(self.angle)
        mean = 0.5 * (self.sigma1 + self.sigma3)
        dev = 0.5 * (self.sigma1 - self.sigma3)
        sxx = mean + dev * math.cos(2.0 * theta)
        syy = mean - dev * math.cos(2.0 * theta)
        sxy = dev * math.sin(2.0 * theta)
        return sxx, syy, sxy

    def validate(self):
        for name in ("sigma1", "sigma3", "angle"):
            if not math.isfinite(getattr(self, name)):
                raise InputValidationError(f"Far-field {name} must be finite")


@dataclass(frozen=True)
class SolverOptions:
    """
    Problem-level solver options.

    Attributes:
        plane_strain_type: Out-of-plane condition
        element_type: Boundary element order (constant only)
        target_element_count: Desired number of boundary elements
        tolerance: Relative residual tolerance for the iterative solver
        max_iterations: Iteration cap for the iterative solver
        far_field: In-situ stress state
    """
    plane_strain_type: PlaneStrainType = PlaneStrainType.PLANE_STRAIN
    element_type: ElementType = ElementType.CONSTANT
    target_element_count: int = 100
    tolerance: float = 1e-6
    max_iterations: int = 1000
    far_field: FarFieldStress = field(default_factory=FarFieldStress)

    def validate(self):
        if self.element_type is not ElementType.CONSTANT:
            raise InputValidationError(
                f"Element type {self.element_type.value!r} is not supported; "
                f"only constant elements are implemented"
            )
        if self.target_element_count < 1:
            raise InputValidationError(
                f"target_element_count must be positive, got {self.target_element_count}"
            )
        if not (self.tolerance > 0.0):
            raise InputValidationError(f"tolerance must be positive, got {self.tolerance}")
        if self.max_iterations < 1:
            raise InputValidationError(
                f"max_iterations must be positive, got {self.max_iterations}"
            )
        self.far_field.validate()


@dataclass(frozen=True)
class BEMConfiguration:
    """
    Engine-level configuration.

    Attributes:
        enable_caching: Reuse matrix, solution and result caches
        direct_solver_threshold: DOF count at which the iterative solver takes over
        use_adaptive_element_sizing: Refine elements near sharp vertices
        max_refinement_factor: Largest element size reduction at a vertex
        use_half_space: Allow the free-surface image correction
        half_space_element_threshold: Half-space is only used below this element count
        ground_surface_y: Free surface elevation; None places it
                          ground_surface_offset above the highest element
        ground_surface_offset: Offset used when ground_surface_y is None
        grid_resolution: Coarse field-point lattice size per direction
        max_workers: Worker threads for field evaluation (None = executor default)
        condition_check_limit: Largest DOF count for which the condition
                               number is estimated after assembly
    """
    enable_caching: bool = True
    direct_solver_threshold: int = 2000
    use_adaptive_element_sizing: bool = True
    max_refinement_factor: float = 4.0
    use_half_space: bool = True
    half_space_element_threshold: int = 100
    ground_surface_y: Optional[float] = None
    ground_surface_offset: float = 5.0
    grid_resolution: int = 50
    max_workers: Optional[int] = None
    condition_check_limit: int = 2000

    def validate(self):
        if self.direct_solver_threshold < 1:
            raise InputValidationError("direct_solver_threshold must be positive")
        if self.max_refinement_factor < 1.0:
            raise InputValidationError(
                f"max_refinement_factor must be >= 1, got {self.max_refinement_factor}"
            )
        if self.half_space_element_threshold < 0:
            raise InputValidationError("half_space_element_threshold must be non-negative")
        if self.ground_surface_y is not None and not math.isfinite(self.ground_surface_y):
            raise InputValidationError("ground_surface_y must be finite")
        if self.grid_resolution < 2:
            raise InputValidationError(
                f"grid_resolution must be at least 2, got {self.grid_resolution}"
            )
        if self.max_workers is not None and self.max_workers < 1:
            raise InputValidationError("max_workers must be positive")
