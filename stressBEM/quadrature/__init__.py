"""
Gauss-Legendre quadrature and distance-based order selection.
"""

from .gauss import QuadratureSelector, gauss_legendre_symmetric
