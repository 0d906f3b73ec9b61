"""
Isotropic linear elastic material.
"""

import math
from dataclasses import dataclass

from .errors import InputValidationError


@dataclass(frozen=True)
class IsotropicMaterial:
    """
    Homogeneous isotropic elastic medium.

    Attributes:
        young_modulus: Young's modulus E (e.g. MPa)
        poisson_ratio: Poisson's ratio nu, 0 <= nu < 0.5
    """
    young_modulus: float
    poisson_ratio: float

    def __post_init__(self):
        self.validate()

    def validate(self):
        if not (math.isfinite(self.young_modulus) and self.young_modulus > 0.0):
            raise InputValidationError(
                f"Young's modulus must be positive, got {self.young_modulus}"
            )
        if not (0.0 <= self.poisson_ratio < 0.5):
            raise InputValidationError(
                f"Poisson's ratio must lie in [0, 0.5), got {self.poisson_ratio}"
            )

    @property
    def shear_modulus(self) -> float:
        """G = E / (2(1 + nu))."""
        return self.young_modulus / (2.0 * (1.0 + self.poisson_ratio))

    @property
    def kappa(self) -> float:
        """Kolosov constant for plane strain, 3 - 4 nu."""
        return 3.0 - 4.0 * self.poisson_ratio

    @property
    def stress_coefficient(self) -> float:
        """1 / (8 pi (1 - nu)), the Kelvin stress kernel factor."""
        return 1.0 / (8.0 * math.pi * (1.0 - self.poisson_ratio))

    @property
    def displacement_coefficient(self) -> float:
        """Kelvin displacement kernel factor, equal to the stress factor / G."""
        return self.stress_coefficient * 2.0 * (1.0 + self.poisson_ratio) / self.young_modulus
