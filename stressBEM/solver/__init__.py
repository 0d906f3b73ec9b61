"""
BEM solver module.

Provides:
- ElementIntegrator: Influence of one element on field points
- InfluenceMatrixBuilder: Dense influence matrix with geometry cache
- MatrixSolverService: Direct/iterative linear solve with solution cache
- BoundaryElementSolver: Full excavation analysis pipeline
- BEMResultCache: Most-recent result cache
"""

from .integrator import ElementIntegrator, InfluenceCoefficients, IntegratorSettings
from .influence import InfluenceMatrixBuilder, MatrixBuildStats, compute_geometry_hash
from .linear import MatrixSolverService, SolveInfo
from .cache import BEMResultCache, compute_configuration_hash
from .bem import BEMSolution, BoundaryElementSolver, SolverStatistics, evaluate_field_points
