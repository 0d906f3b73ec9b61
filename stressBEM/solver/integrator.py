"""
Influence coefficients of a constant boundary element.

For a straight element carrying a uniform unit traction (shear along the
element, or normal to it) this module evaluates the displacement and stress
produced at arbitrary field points in a plane-strain elastic medium.

Two contributions are summed:

1. Full-space (Kelvin) part, integrated in closed form along the element.
   In the element frame (x along the element, y = left normal), with
   half length a, xmat = x - a, xmab = x + a:

       r2t = xmat^2 + y^2            r2b = xmab^2 + y^2
       ttd = atan(xmat/y) - atan(xmab/y)
       lgrd = ln(sqrt(r2t)) - ln(sqrt(r2b))

   and the ten responses are polynomial combinations of these terms scaled
   by the stress factor 1/(8 pi (1-nu)) or the displacement factor
   (stress factor / G), with kappa = 3 - 4 nu.
   On the element line (|y| small) the angular term takes its limit from
   the right-hand side of the element, which is where the medium lies for
   counter-clockwise excavations. A point on an element's own midpoint
   therefore sees the self-stress 1/2 per unit traction.

2. Half-space image part (optional). A horizontal traction-free surface at
   y = ground_surface_y is enforced with a Melan-type image kernel. The
   kernel is integrated with Gauss quadrature in a depth-positive frame,
   with an order chosen from the field-point distance (QuadratureSelector).
   An element lying on the surface, observed from a point on the surface,
   uses closed-form expressions instead.

Local results are rotated to global coordinates:
    u = R u'
    sxx = s'xx c^2 + s'yy s^2 - 2 s'xy s c
    syy = s'xx s^2 + s'yy c^2 + 2 s'xy s c
    sxy = s c (s'xx - s'yy) + s'xy (c^2 - s^2)

Array layout used throughout (see compute_influence_batch):
    axis -2: load type      SHEAR = 0, NORMAL = 1
    axis -1: response       UX, UY, SXX, SYY, SXY = 0..4

A field point that coincides with an element endpoint is singular for that
element; its contribution is returned as zero rather than NaN.
"""

import numpy as np
from dataclasses import dataclass
from typing import Optional, Sequence

from ..config import ElementType
from ..discretization.element import BoundaryElement
from ..errors import InputValidationError
from ..materials import IsotropicMaterial
from ..quadrature.gauss import QuadratureSelector

# Load-type and response indices of the influence arrays
SHEAR, NORMAL = 0, 1
UX, UY, SXX, SYY, SXY = 0, 1, 2, 3, 4
N_RESPONSES = 5


@dataclass(frozen=True)
class IntegratorSettings:
    """
    Numerical tolerances of the element integrator.

    Attributes:
        singular_tolerance: Squared distance to an endpoint below which the
                            element contributes nothing to a field point
        on_line_tolerance: |y| below which a point is treated as lying on
                           the element line (limit form of the angle term)
        surface_tolerance: Distance within which an element or a field
                           point counts as lying on the free surface
        image_tolerance: Distance from the image point below which a
                         quadrature point is skipped
    """
    singular_tolerance: float = 1e-8
    on_line_tolerance: float = 1e-4
    surface_tolerance: float = 1e-4
    image_tolerance: float = 1e-8


@dataclass(frozen=True)
class InfluenceCoefficients:
    """
    Global displacement and stress at one field point produced by unit
    normal and unit shear traction on one element.
    """
    ux_from_normal: float
    uy_from_normal: float
    sxx_from_normal: float
    syy_from_normal: float
    sxy_from_normal: float
    ux_from_shear: float
    uy_from_shear: float
    sxx_from_shear: float
    syy_from_shear: float
    sxy_from_shear: float

    @classmethod
    def from_array(cls, values: np.ndarray) -> "InfluenceCoefficients":
        """Build from a (2, 5) array in [SHEAR, NORMAL] x [UX..SXY] layout."""
        normal = values[NORMAL]
        shear = values[SHEAR]
        return cls(*(float(v) for v in normal), *(float(v) for v in shear))

    def as_array(self) -> np.ndarray:
        """(2, 5) array in [SHEAR, NORMAL] x [UX..SXY] layout."""
        return np.array([
            [self.ux_from_shear, self.uy_from_shear, self.sxx_from_shear,
             self.syy_from_shear, self.sxy_from_shear],
            [self.ux_from_normal, self.uy_from_normal, self.sxx_from_normal,
             self.syy_from_normal, self.sxy_from_normal],
        ])

    def is_finite(self) -> bool:
        return bool(np.all(np.isfinite(self.as_array())))


def rotate_to_global(local: np.ndarray, c: float, s: float) -> np.ndarray:
    """
    Rotate responses from a frame with axis (c, s) to global coordinates.

    Parameters:
        local: Array with responses on the last axis (UX..SXY)
        c, s: Cosine and sine of the frame axis

    Returns:
        Array of the same shape in global coordinates
    """
    out = np.empty_like(local)
    ux, uy = local[..., UX], local[..., UY]
    sxx, syy, sxy = local[..., SXX], local[..., SYY], local[..., SXY]
    out[..., UX] = ux * c - uy * s
    out[..., UY] = ux * s + uy * c
    out[..., SXX] = sxx * c * c + syy * s * s - 2.0 * sxy * s * c
    out[..., SYY] = sxx * s * s + syy * c * c + 2.0 * sxy * s * c
    out[..., SXY] = s * c * (sxx - syy) + sxy * (c * c - s * s)
    return out


class ElementIntegrator:
    """
    Closed-form Kelvin integration plus half-space image correction.

    The integrator is stateless after construction and safe to share
    between threads.

    Parameters:
        material: Isotropic elastic medium
        settings: Numerical tolerances
        quadrature: Gauss order selection for the image kernel
    """

    def __init__(self, material: IsotropicMaterial,
                 settings: Optional[IntegratorSettings] = None,
                 quadrature: Optional[QuadratureSelector] = None):
        self.material = material
        self.settings = settings or IntegratorSettings()
        self.quadrature = quadrature or QuadratureSelector()

        self._kappa = material.kappa
        self._str = material.stress_coefficient
        self._dsp = material.displacement_coefficient

    # ------------------------------------------------------------------
    # Public interface
    # ------------------------------------------------------------------

    def compute_influence(self, point: Sequence[float], element: BoundaryElement,
                          ground_surface_y: float = 0.0,
                          is_half_space: bool = False) -> InfluenceCoefficients:
        """
        Influence of one element on one field point, in global coordinates.

        Parameters:
            point: Field point (x, y)
            element: Source element
            ground_surface_y: Elevation of the free surface
            is_half_space: Add the free-surface image correction

        Returns:
            InfluenceCoefficients (zeros if the point is an element endpoint)
        """
        values = self.compute_influence_batch(
            np.asarray(point, dtype=float).reshape(1, 2), element,
            ground_surface_y, is_half_space)
        return InfluenceCoefficients.from_array(values[0])

    def compute_influence_batch(self, points: np.ndarray, element: BoundaryElement,
                                ground_surface_y: float = 0.0,
                                is_half_space: bool = False) -> np.ndarray:
        """
        Influence of one element on many field points.

        Parameters:
            points: Field points, shape (M, 2)
            element: Source element
            ground_surface_y: Elevation of the free surface
            is_half_space: Add the free-surface image correction

        Returns:
            Array of shape (M, 2, 5): [point, load (SHEAR/NORMAL), response]
        """
        if element.element_type is not ElementType.CONSTANT:
            raise InputValidationError(
                f"Only constant elements are supported, got {element.element_type.value!r}"
            )
        points = np.asarray(points, dtype=float).reshape(-1, 2)

        c, s = element.cos, element.sin
        cx, cy = element.midpoint
        dl = element.half_length

        dx = points[:, 0] - cx
        dy = points[:, 1] - cy
        x_local = dx * c + dy * s
        y_local = -dx * s + dy * c

        local = self.full_space_local(x_local, y_local, dl)
        singular = self._singular_mask(x_local, y_local, dl)

        if is_half_space:
            on_surface = self._surface_points(element, points, ground_surface_y)
            if np.any(on_surface):
                local[on_surface] += self._surface_image_local(
                    x_local[on_surface], points[on_surface, 1] - ground_surface_y, dl)

        result = rotate_to_global(local, c, s)

        if is_half_space:
            numerical = ~on_surface
            if np.any(numerical):
                result[numerical] += self._numerical_image_global(
                    points[numerical], element, ground_surface_y)

        result[singular] = 0.0
        return result

    # ------------------------------------------------------------------
    # Full-space part
    # ------------------------------------------------------------------

    def _singular_mask(self, x_local: np.ndarray, y_local: np.ndarray, dl: float) -> np.ndarray:
        r2t = (x_local - dl) ** 2 + y_local ** 2
        r2b = (x_local + dl) ** 2 + y_local ** 2
        tol = self.settings.singular_tolerance
        return (r2t < tol) | (r2b < tol)

    def full_space_local(self, x_local: np.ndarray, y_local: np.ndarray,
                         dl: float) -> np.ndarray:
        """
        Kelvin influence in the element frame.

        Parameters:
            x_local: Field point coordinate along the element, shape (M,)
            y_local: Field point coordinate along the left normal, shape (M,)
            dl: Element half length

        Returns:
            Array of shape (M, 2, 5), zero where the point hits an endpoint
        """
        x = np.asarray(x_local, dtype=float)
        y = np.asarray(y_local, dtype=float)
        kappa = self._kappa
        str_c = self._str
        dsp_c = self._dsp

        xmat = x - dl
        xmab = x + dl
        r2t = xmat * xmat + y * y
        r2b = xmab * xmab + y * y

        singular = self._singular_mask(x, y, dl)
        r2t = np.where(singular, 1.0, r2t)
        r2b = np.where(singular, 1.0, r2b)

        on_line = np.abs(y) <= self.settings.on_line_tolerance
        y_div = np.where(on_line, 1.0, y)
        ttd = np.where(
            on_line,
            0.5 * (np.copysign(np.pi, xmab) - np.copysign(np.pi, xmat)),
            np.arctan(xmat / y_div) - np.arctan(xmab / y_div),
        )

        lgrt = 0.5 * np.log(r2t)
        lgrb = 0.5 * np.log(r2b)
        lgrd = lgrt - lgrb
        xyr2d = 2.0 * y * (xmat / r2t - xmab / r2b)
        y2r2d = 2.0 * (y * y / r2t - y * y / r2b)

        out = np.empty(x.shape + (2, N_RESPONSES))

        # Unit normal traction
        out[..., NORMAL, UX] = -y * lgrd * dsp_c
        out[..., NORMAL, UY] = (kappa * (xmat * (lgrt - 1.0) - xmab * (lgrb - 1.0))
                                + y * (kappa - 1.0) * ttd) * dsp_c
        out[..., NORMAL, SXX] = ((3.0 - kappa) * ttd - xyr2d) * str_c
        out[..., NORMAL, SYY] = ((kappa + 1.0) * ttd + xyr2d) * str_c
        out[..., NORMAL, SXY] = ((kappa - 1.0) * lgrd - y2r2d) * str_c

        # Unit shear traction
        out[..., SHEAR, UX] = (kappa * (xmat * lgrt - xmab * lgrb)
                               + (kappa + 1.0) * (y * ttd - (xmat - xmab))) * dsp_c
        out[..., SHEAR, UY] = -y * lgrd * dsp_c
        out[..., SHEAR, SXX] = ((kappa + 3.0) * lgrd + y2r2d) * str_c
        out[..., SHEAR, SYY] = (-(kappa - 1.0) * lgrd - y2r2d) * str_c
        out[..., SHEAR, SXY] = ((kappa + 1.0) * ttd - xyr2d) * str_c

        out[singular] = 0.0
        return out

    # ------------------------------------------------------------------
    # Half-space image part
    # ------------------------------------------------------------------

    def _surface_points(self, element: BoundaryElement, points: np.ndarray,
                        ground_surface_y: float) -> np.ndarray:
        """Mask of points handled by the closed-form surface image."""
        tol = self.settings.surface_tolerance
        element_on_surface = (abs(element.sin) <= tol
                              and element.cos > 0.0
                              and abs(element.midpoint[1] - ground_surface_y) <= tol)
        if not element_on_surface:
            return np.zeros(len(points), dtype=bool)
        return np.abs(points[:, 1] - ground_surface_y) <= tol

    def _surface_image_local(self, x_local: np.ndarray, height: np.ndarray,
                             dl: float) -> np.ndarray:
        """
        Closed-form image for an element on the free surface seen from a
        point on the surface, in the element frame.

        Parameters:
            x_local: Field point coordinate along the element
            height: Field point elevation above the surface (y - ground)
            dl: Element half length
        """
        kappa = self._kappa
        str_c = self._str
        dsp_c = self._dsp
        tol = self.settings.on_line_tolerance

        out = np.zeros(x_local.shape + (2, N_RESPONSES))
        for ns in (1.0, -1.0):
            xma = x_local - ns * dl
            r1 = np.sqrt(xma * xma + height * height)
            valid = r1 >= self.settings.image_tolerance
            r1_safe = np.where(valid, r1, 1.0)
            lgr1 = np.log(r1_safe)
            h_div = np.where(np.abs(height) <= tol, 1.0, height)
            t1 = np.where(np.abs(height) <= tol,
                          -0.5 * np.copysign(np.pi, xma),
                          np.arctan(xma / h_div))

            term = np.zeros_like(out)
            term[..., NORMAL, UY] = (kappa * kappa + 1.0) * xma * (lgr1 - 1.0) * 0.5 * dsp_c
            term[..., NORMAL, SXX] = (3.0 * kappa - 1.0) * t1 * str_c
            term[..., NORMAL, SYY] = (kappa + 1.0) * t1 * str_c
            term[..., NORMAL, SXY] = -(kappa - 1.0) * lgr1 * str_c

            term[..., SHEAR, UX] = ((kappa * kappa + 1.0) * xma * lgr1 * 0.5
                                    - (kappa + 1.0) * xma) * dsp_c
            term[..., SHEAR, SXX] = (3.0 * kappa + 1.0) * lgr1 * str_c
            term[..., SHEAR, SYY] = (kappa - 1.0) * lgr1 * str_c
            term[..., SHEAR, SXY] = (kappa + 1.0) * t1 * str_c

            term[~valid] = 0.0
            # Integral over the element is F(x - a) - F(x + a)
            out += ns * term
        return out

    def _numerical_image_global(self, points: np.ndarray, element: BoundaryElement,
                                ground_surface_y: float) -> np.ndarray:
        """
        Melan image correction integrated with Gauss quadrature.

        The kernel is evaluated in a frame whose y axis points down into
        the medium (depth positive): frame axis (-1, 0). Results are
        rotated back to global coordinates.

        Returns:
            Array of shape (M, 2, 5) in global coordinates
        """
        cx, cy = element.midpoint
        dl = element.half_length
        length = element.length

        # Element direction expressed in the depth frame
        cosa = -element.cos
        sina = -element.sin

        dist_sq = (points[:, 0] - cx) ** 2 + (points[:, 1] - cy) ** 2
        orders = self.quadrature.select_orders(dist_sq, length)

        frame = np.zeros((len(points), 2, N_RESPONSES))
        for order in np.unique(orders):
            idx = np.nonzero(orders == order)[0]
            zeta, weights = self.quadrature.rule(int(order))
            frame[idx] = self._melan_integral(points[idx], element, ground_surface_y,
                                              zeta, weights, dl, cosa, sina)

        return rotate_to_global(frame, -1.0, 0.0)

    def _melan_integral(self, points: np.ndarray, element: BoundaryElement,
                        ground_surface_y: float, zeta: np.ndarray, weights: np.ndarray,
                        dl: float, cosa: float, sina: float) -> np.ndarray:
        kappa = self._kappa
        km1 = kappa - 1.0
        cx, cy = element.midpoint

        # Quadrature points along the element, shape (1, Q)
        xi = (cx + zeta * dl * element.cos)[None, :]
        yi = (cy + zeta * dl * element.sin)[None, :]

        x = points[:, 0][:, None]
        y = points[:, 1][:, None]

        # Depth-frame coordinates: horizontal offset, source depth, field depth
        xce = -(x - xi)
        yp = ground_surface_y - yi
        yy = ground_surface_y - y
        ypc = yy + yp
        ymc = yy - yp

        r1 = np.sqrt(xce * xce + ypc * ypc)
        valid = r1 >= self.settings.image_tolerance
        r1 = np.where(valid, r1, 1.0)
        r2 = r1 * r1
        r4 = r2 * r2
        r6 = r4 * r2
        log_r1 = np.log(r1)

        # Half angle from the image point, continuous inside the medium
        t = 0.5 * np.arctan2(xce, ypc)

        ut21 = (
            (2.0 * yp * yy + kappa * xce * xce) / r2
            - 4.0 * yp * xce * xce * yy / r4
            - (kappa * kappa + 1.0) / 2.0 * log_r1
            + (1.0 - kappa * kappa) / 2.0,

            kappa * xce * ymc / r2
            - 4.0 * yp * xce * yy * ypc / r4
            - (1.0 - kappa * kappa) * t,

            xce * km1 / r2
            - 4.0 * xce * (kappa * yp * ypc + 3.0 * yp * ymc + kappa * xce * xce) / r4
            + 32.0 * yp * xce ** 3 * yy / r6,

            -xce * km1 / r2
            - 4.0 * xce * (kappa * yy * ypc + yp * ymc) / r4
            + 32.0 * yp * xce * yy * ypc * ypc / r6,

            km1 * (ypc - 2.0 * yp) / r2
            - 4.0 * (2.0 * yp * yy * ypc + xce * xce * (kappa * yy + yp)) / r4
            + 32.0 * yp * xce * xce * yy * ypc / r6,
        )

        ut11 = (
            4.0 * yp * xce * yy * ypc / r4
            + kappa * xce * ymc / r2
            + (1.0 - kappa * kappa) * t,

            (kappa * ypc * ypc - 2.0 * yp * yy) / r2
            + 4.0 * yp * yy * ypc * ypc / r4
            - (kappa * kappa + 1.0) / 2.0 * log_r1,

            -4.0 * kappa * xce * xce * ymc / r4
            + 4.0 * yp * ypc * (ypc * km1 - 2.0 * yp) / r4
            - km1 * (ypc + 6.0 * yp) / r2,

            km1 * (ypc - 2.0 * yp) / r2
            - 4.0 * ypc * ((kappa * yy + yp) * ypc - 6.0 * yp * yy) / r4
            - 32.0 * yp * yy * ypc ** 3 / r6,

            km1 * xce / r2
            - 4.0 * xce * ((kappa * yy - yp) * ypc - 2.0 * yp * yy) / r4
            - 32.0 * yp * xce * yy * ypc * ypc / r6,
        )

        w = np.where(valid, weights[None, :] * dl, 0.0)
        out = np.empty((len(points), 2, N_RESPONSES))
        for j in range(N_RESPONSES):
            coef = self._dsp if j < 2 else self._str
            shear = (ut21[j] * cosa + ut11[j] * sina) * w
            normal = (-ut21[j] * sina + ut11[j] * cosa) * w
            out[:, SHEAR, j] = shear.sum(axis=1) * coef
            out[:, NORMAL, j] = normal.sum(axis=1) * coef
        return out
