#!/usr/bin/env python3
"""
Example: Stresses around a circular tunnel compared with the Kirsch solution.

This example demonstrates the complete BEM pipeline:
1. Create a polygonal circular excavation
2. Discretize it into constant boundary elements
3. Solve for the fictitious tractions under a far-field stress
4. Evaluate stresses on the field-point grid and the output grid
5. Compare with the analytical solution for a hole in an infinite plate

Problem:
    Circular hole of radius a in an infinite elastic medium,
    far-field stresses sxx = p_x, syy = p_y, traction-free wall

Kirsch solution on the x axis (r >= a), load p_y acting along y:
    sigma_theta = p_y/2 (2 + a^2/r^2 + 3 a^4/r^4) - p_x/2 (3 a^4/r^4 - a^2/r^2)

Usage:
    ./examples/src/circular_excavation.py
    ./examples/src/circular_excavation.py --elements 128 --convergence

Created: 2026-10-19
"""

import numpy as np
import sys
from pathlib import Path

# Add project root to path (two levels up from examples/src/)
sys.path.insert(0, str(Path(__file__).parent.parent.parent))

from stressBEM.config import BEMConfiguration, FarFieldStress, SolverOptions
from stressBEM.geometry.primitives import make_circle
from stressBEM.materials import IsotropicMaterial
from stressBEM.postprocess.sampling import StressGrid
from stressBEM.solver.bem import BoundaryElementSolver, evaluate_field_points
from stressBEM.solver.integrator import SXX, SYY


def kirsch_on_x_axis(r, a, p_x, p_y):
    """Radial (sxx) and hoop (syy) stress on the positive x axis."""
    q2 = (a / r) ** 2
    q4 = q2 ** 2
    sigma_r = 0.5 * (p_x + p_y) * (1.0 - q2) + 0.5 * (p_x - p_y) * (1.0 - 4.0 * q2 + 3.0 * q4)
    sigma_t = 0.5 * (p_x + p_y) * (1.0 + q2) - 0.5 * (p_x - p_y) * (1.0 + 3.0 * q4)
    return sigma_r, sigma_t


def run(radius: float = 1.0,
        n_elements: int = 64,
        p_x: float = -5.0,
        p_y: float = -10.0,
        verbose: bool = True):
    """
    Run the circular excavation example.

    Parameters:
        radius: Tunnel radius
        n_elements: Number of boundary elements
        p_x, p_y: Far-field stresses (compression negative)
        verbose: Print progress information

    Returns:
        Dictionary with results (solution, errors, statistics)
    """
    if verbose:
        print("=" * 60)
        print("BEM Circular Excavation Example")
        print("=" * 60)
        print(f"Radius: {radius}")
        print(f"Elements: {n_elements}")
        print(f"Far field: sxx = {p_x}, syy = {p_y}")
        print()

    # ==========================================================================
    # 1. Geometry and material
    # ==========================================================================
    hole = make_circle(radius=radius, n_vertices=n_elements)
    material = IsotropicMaterial(young_modulus=10000.0, poisson_ratio=0.25)

    # sigma1 is the larger (less compressive) principal stress
    if p_x >= p_y:
        far_field = FarFieldStress(sigma1=p_x, sigma3=p_y, angle=0.0)
    else:
        far_field = FarFieldStress(sigma1=p_y, sigma3=p_x, angle=90.0)

    # ==========================================================================
    # 2. Solve (infinite medium)
    # ==========================================================================
    config = BEMConfiguration(use_half_space=False, use_adaptive_element_sizing=False,
                              grid_resolution=30)
    options = SolverOptions(target_element_count=n_elements, far_field=far_field)
    grid = StressGrid(-4.0 * radius, -4.0 * radius, 4.0 * radius, 4.0 * radius, 41, 41)

    if verbose:
        print("Solving...")
    solver = BoundaryElementSolver(material, config)
    result = solver.solve([hole], options, grid)
    if verbose:
        print(result.statistics.summary())
        print()

    # ==========================================================================
    # 3. Compare with Kirsch along the x axis
    # ==========================================================================
    r = radius * np.linspace(1.1, 4.0, 12)
    points = np.column_stack([r, np.zeros_like(r)])
    values = evaluate_field_points(solver.integrator, result.elements, points,
                                   far_field.to_cartesian(),
                                   result.ground_surface_y, result.used_half_space)
    sigma_r, sigma_t = kirsch_on_x_axis(r, radius, p_x, p_y)
    err_r = np.abs(values[:, SXX] - sigma_r)
    err_t = np.abs(values[:, SYY] - sigma_t)

    if verbose:
        print(f"{'r/a':>6} {'sxx BEM':>12} {'sxx Kirsch':>12} {'syy BEM':>12} {'syy Kirsch':>12}")
        print("-" * 58)
        for k in range(len(r)):
            print(f"{r[k] / radius:>6.2f} {values[k, SXX]:>12.4f} {sigma_r[k]:>12.4f} "
                  f"{values[k, SYY]:>12.4f} {sigma_t[k]:>12.4f}")
        print()

    # ==========================================================================
    # 4. Summary
    # ==========================================================================
    field = result.stress_field
    scale = max(abs(p_x), abs(p_y))
    if verbose:
        print("=" * 60)
        print("Summary")
        print("=" * 60)
        print(f"  Elements: {len(result.elements)}")
        print(f"  Max relative error (radial): {err_r.max() / scale:.3e}")
        print(f"  Max relative error (hoop):   {err_t.max() / scale:.3e}")
        print(f"  sigma1 range on grid: [{field.sigma1.min():.3f}, {field.sigma1.max():.3f}]")
        print(f"  sigma3 range on grid: [{field.sigma3.min():.3f}, {field.sigma3.max():.3f}]")
        print("=" * 60)

    return {
        'solution': result.solution,
        'radial_error': err_r.max() / scale,
        'hoop_error': err_t.max() / scale,
        'statistics': result.statistics,
        'stress_field': field,
    }


def convergence_study(element_counts: list = None):
    """
    Run convergence study over boundary refinements.

    Parameters:
        element_counts: List of boundary element counts
    """
    if element_counts is None:
        element_counts = [16, 32, 64, 128]

    print("=" * 50)
    print("Convergence Study: Circular Excavation")
    print("=" * 50)
    print(f"{'elements':>10} {'radial err':>15} {'hoop err':>15}")
    print("-" * 42)

    results = {}
    for n in element_counts:
        out = run(n_elements=n, verbose=False)
        results[n] = out
        print(f"{n:>10} {out['radial_error']:>15.6e} {out['hoop_error']:>15.6e}")

    return results


if __name__ == "__main__":
    import argparse

    parser = argparse.ArgumentParser(description="BEM circular excavation example")
    parser.add_argument("--elements", "-n", type=int, default=64,
                        help="Number of boundary elements (default: 64)")
    parser.add_argument("--convergence", "-c", action="store_true",
                        help="Run convergence study")

    args = parser.parse_args()

    if args.convergence:
        convergence_study()
    else:
        run(n_elements=args.elements)
