"""
Pytest configuration and shared fixtures for BEM tests.
"""

import pytest
import numpy as np
import sys
from pathlib import Path

# Add the parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from stressBEM.materials import IsotropicMaterial
from stressBEM.geometry.primitives import make_circle


@pytest.fixture
def tolerance():
    """Default tolerance for floating point comparisons."""
    return 1e-12


@pytest.fixture
def loose_tolerance():
    """Looser tolerance for numerical integration tests."""
    return 1e-8


@pytest.fixture
def material():
    """Rock mass used by most tests (E = 10000 MPa, nu = 0.25)."""
    return IsotropicMaterial(young_modulus=10000.0, poisson_ratio=0.25)


@pytest.fixture
def circle_boundary():
    """Circular excavation of radius 5 at the origin, 32 vertices."""
    return make_circle(radius=5.0, center=(0.0, 0.0), n_vertices=32)


@pytest.fixture
def circle_boundaries(circle_boundary):
    return [circle_boundary]
