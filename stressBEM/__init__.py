"""
stressBEM - Boundary Element stress analysis around excavations

A 2D fictitious-stress Boundary Element Method for induced stress and
displacement in an isotropic elastic medium, with constant elements,
closed-form Kelvin integration and an optional half-space image correction
for a horizontal free surface.

Key modules:
- geometry: Boundary polygons and primitive shapes
- discretization: Boundary elements, discretizer, field-point grid
- quadrature: Gauss-Legendre rules for the image kernel
- solver: Integrator, influence matrix, linear solver, pipeline
- postprocess: Principal stresses, invariants, output grid sampling
- io: YAML/JSON problem definitions

Quick start:
    from stressBEM import (BoundaryElementSolver, IsotropicMaterial,
                           SolverOptions, FarFieldStress, StressGrid,
                           make_circle)

    material = IsotropicMaterial(young_modulus=10000.0, poisson_ratio=0.25)
    solver = BoundaryElementSolver(material)

    tunnel = make_circle(radius=5.0, n_vertices=32)
    options = SolverOptions(far_field=FarFieldStress(-10.0, -5.0, 0.0))
    grid = StressGrid(-15.0, -15.0, 15.0, 15.0, 31, 31)

    result = solver.solve([tunnel], options, grid)
    print(result.statistics.summary())
"""

__version__ = "0.1.0"

# Core imports for convenience
from .config import BEMConfiguration, ElementType, FarFieldStress, PlaneStrainType, SolverOptions
from .errors import (
    BEMError,
    ConvergenceError,
    GeometryError,
    InputValidationError,
    NumericalSingularityError,
    SingularMatrixError,
)
from .materials import IsotropicMaterial
from .geometry import Boundary, BoundaryKind, make_circle, make_ellipse, make_rectangle
from .postprocess.sampling import StressField, StressGrid
from .solver.bem import BEMSolution, BoundaryElementSolver, SolverStatistics
from .logging_config import setup_logging
