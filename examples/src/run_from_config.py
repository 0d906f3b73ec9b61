#!/usr/bin/env python3
"""
Example: Run an excavation analysis described by a YAML or JSON file.

This example demonstrates:
1. Loading a problem definition (examples/configs/*.yaml)
2. Setting up boundaries, material, options and the output grid
3. Solving with a simple principal stress difference criterion
4. Repeating the solve to show the result cache

Usage:
    ./examples/src/run_from_config.py examples/configs/circular_tunnel.yaml
    ./examples/src/run_from_config.py examples/configs/twin_openings.yaml --debug

Created: 2026-10-19
"""

import logging
import sys
from pathlib import Path

import numpy as np

# Add project root to path (two levels up from examples/src/)
sys.path.insert(0, str(Path(__file__).parent.parent.parent))

from stressBEM.io.config import load_config, setup_problem_from_config
from stressBEM.logging_config import setup_logging
from stressBEM.postprocess.strength import StrengthCriterion
from stressBEM.solver.bem import BoundaryElementSolver


class MaxShearCriterion(StrengthCriterion):
    """Tresca-type criterion: strength / (sigma1 - sigma3)."""

    def __init__(self, strength: float):
        self.strength = strength

    @property
    def name(self) -> str:
        return f"max shear ({self.strength})"

    def strength_factor(self, sigma1, sigma3):
        return self.strength / np.maximum(sigma1 - sigma3, 1e-12)


def run(config_file: str, strength: float = 40.0, verbose: bool = True):
    """
    Solve the problem in config_file.

    Parameters:
        config_file: Path to a .yaml, .yml or .json problem file
        strength: Strength used by the max shear criterion
        verbose: Print progress information

    Returns:
        BEMSolution of the first solve
    """
    problem = setup_problem_from_config(load_config(config_file))
    solver = BoundaryElementSolver(problem.material, problem.bem_config,
                                   strength_criterion=MaxShearCriterion(strength))

    if verbose:
        print("=" * 60)
        print(f"Problem: {config_file}")
        print("=" * 60)
        print(f"  Boundaries: {len(problem.boundaries)}")
        print(f"  Target elements: {problem.options.target_element_count}")
        print(f"  Output grid: {problem.grid.nx} x {problem.grid.ny}")
        print()

    result = solver.solve(problem.boundaries, problem.options, problem.grid)

    fps = result.field_points
    valid = fps.valid_indices
    factor = fps.strength_factor[valid]
    if verbose:
        print(result.statistics.summary())
        print()
        print(f"  Half-space: {result.used_half_space} (surface y = {result.ground_surface_y:.3f})")
        print(f"  sigma1 range: [{fps.sigma1[valid].min():.3f}, {fps.sigma1[valid].max():.3f}]")
        print(f"  sigma3 range: [{fps.sigma3[valid].min():.3f}, {fps.sigma3[valid].max():.3f}]")
        print(f"  Min strength factor: {factor.min():.3f}")
        print(f"  Points below 1.0: {int(np.count_nonzero(factor < 1.0))}")
        print()

    # Same input again: served from the result cache
    again = solver.solve(problem.boundaries, problem.options, problem.grid)
    if verbose:
        print(f"Second solve cache hit: {again.statistics.cache_hit} "
              f"({again.statistics.total_time:.6f}s)")

    return result


if __name__ == "__main__":
    import argparse

    parser = argparse.ArgumentParser(description="Run a BEM excavation analysis from a file")
    parser.add_argument("config", help="Problem file (.yaml, .yml or .json)")
    parser.add_argument("--strength", "-s", type=float, default=40.0,
                        help="Strength for the max shear criterion (default: 40)")
    parser.add_argument("--debug", action="store_true",
                        help="Enable debug logging")

    args = parser.parse_args()
    setup_logging(logging.DEBUG if args.debug else logging.INFO)
    run(args.config, strength=args.strength)
