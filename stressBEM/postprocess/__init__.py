"""
Post-processing module for BEM.

Provides:
- principal_stresses_2d / principal_stresses_3d / stress_invariants
- StrengthCriterion: Interface for external strength criteria
- StressGrid, StressField, interpolate_to_grid: Output grid sampling
"""

from .stress import principal_stresses_2d, principal_stresses_3d, stress_invariants
from .strength import StrengthCriterion
from .sampling import StressField, StressGrid, interpolate_to_grid
