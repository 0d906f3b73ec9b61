"""
Gauss-Legendre quadrature for boundary element integration.

Gauss quadrature provides optimal polynomial integration:
n points integrate exactly polynomials up to degree 2n-1.

The half-space image kernel is smooth along a source element but varies
quickly when the field point is close to it, so the rule order is chosen
from the ratio of the field-point distance to the element length
(QuadratureSelector). Rules are used on the symmetric reference segment
[-1, 1], which maps onto an element as  x(zeta) = midpoint + zeta * half_length * t.

Usage:
    points, weights = gauss_legendre_symmetric(n)   # rule on [-1, 1]
    selector = QuadratureSelector()
    order = selector.select_order(distance_sq, element_length)
"""

import numpy as np
from dataclasses import dataclass
from functools import lru_cache
from typing import Tuple

from ..errors import InputValidationError


@lru_cache(maxsize=16)
def gauss_legendre_symmetric(n: int) -> Tuple[np.ndarray, np.ndarray]:
    """
    Gauss-Legendre quadrature points and weights on [-1, 1].

    Parameters:
        n: Number of quadrature points

    Returns:
        (points, weights) where weights sum to 2
    """
    if n < 1:
        raise InputValidationError("Need at least 1 quadrature point")
    points, weights = np.polynomial.legendre.leggauss(n)
    points.setflags(write=False)
    weights.setflags(write=False)
    return points, weights


@dataclass(frozen=True)
class QuadratureSelector:
    """
    Distance-based choice of the Gauss rule order.

    With L the element length and r the distance from the field point to
    the element midpoint, the rule is orders[i] for the first i with

        r^2 <= (distance_factors[i] * L)^2

    and orders[-1] when the point is further away than every factor.

    Attributes:
        orders: Available rule orders, from nearest to farthest band
        distance_factors: Band limits in element lengths (one fewer than orders)
    """
    orders: Tuple[int, ...] = (15, 10, 5, 3)
    distance_factors: Tuple[float, ...] = (4.0, 6.0, 12.0)

    def __post_init__(self):
        if len(self.orders) != len(self.distance_factors) + 1:
            raise InputValidationError(
                "QuadratureSelector needs exactly one more order than distance factors"
            )
        if any(n < 1 for n in self.orders):
            raise InputValidationError(f"Invalid quadrature orders {self.orders}")
        if list(self.distance_factors) != sorted(self.distance_factors):
            raise InputValidationError("distance_factors must be increasing")

    def select_order(self, distance_sq: float, element_length: float) -> int:
        """Rule order for a single field point."""
        for factor, order in zip(self.distance_factors, self.orders):
            if distance_sq <= (factor * element_length) ** 2:
                return order
        return self.orders[-1]

    def select_orders(self, distance_sq: np.ndarray, element_length: float) -> np.ndarray:
        """Vectorised select_order over an array of squared distances."""
        distance_sq = np.asarray(distance_sq, dtype=float)
        result = np.full(distance_sq.shape, self.orders[-1], dtype=int)
        # Fill from the farthest band inwards so nearer bands win
        for factor, order in reversed(list(zip(self.distance_factors, self.orders))):
            result[distance_sq <= (factor * element_length) ** 2] = order
        return result

    def rule(self, order: int) -> Tuple[np.ndarray, np.ndarray]:
        """
        Rule of the given order on [-1, 1].

        Raises:
            InputValidationError: If the order is not one of self.orders
        """
        if order not in self.orders:
            raise InputValidationError(
                f"Quadrature order {order} not available; expected one of {self.orders}"
            )
        return gauss_legendre_symmetric(order)
