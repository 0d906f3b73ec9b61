"""
Strength criterion interface.

Concrete criteria (Mohr-Coulomb, Hoek-Brown, ...) live outside this package;
the solver only calls strength_factor() on the principal stresses of each
valid field point.
"""

from abc import ABC, abstractmethod

import numpy as np


class StrengthCriterion(ABC):
    """
    Abstract rock/soil strength criterion.

    Subclasses implement:
    - name: Human readable identifier
    - strength_factor: Ratio of strength to stress (< 1 means failure)
    """

    @property
    @abstractmethod
    def name(self) -> str:
        pass

    @abstractmethod
    def strength_factor(self, sigma1, sigma3):
        """
        Strength factor for the given principal stresses.

        Parameters:
            sigma1: Major principal stress (scalar or array)
            sigma3: Minor principal stress (scalar or array)

        Returns:
            Strength factor with the shape of the inputs
        """
        pass

    def is_failure(self, sigma1, sigma3):
        return np.asarray(self.strength_factor(sigma1, sigma3)) < 1.0
