"""
Stress invariants and principal stresses.

Pure, vectorised functions: every argument may be a scalar or a numpy array
of matching shape. Compression is negative, so sigma1 is the algebraically
largest principal stress.
"""

import numpy as np

# Below this J2 the Lode angle is undefined and reported as 0
_J2_TOLERANCE = 1e-10


def principal_stresses_2d(sx, sy, txy):
    """
    In-plane principal stresses and direction.

    Parameters:
        sx, sy, txy: In-plane stress components

    Returns:
        (sigma1, sigma3, angle) with angle in degrees in [0, 180), measured
        from the x axis to the sigma1 direction; 0 when the state is
        (nearly) isotropic
    """
    sx = np.asarray(sx, dtype=float)
    sy = np.asarray(sy, dtype=float)
    txy = np.asarray(txy, dtype=float)

    avg = 0.5 * (sx + sy)
    tau_max = np.sqrt((0.5 * (sx - sy)) ** 2 + txy ** 2)
    sigma1 = avg + tau_max
    sigma3 = avg - tau_max

    angle = np.degrees(np.arctan2(sigma1 - sx, txy))
    angle = np.where(angle < 0.0, angle + 180.0, angle)
    angle = np.where(angle >= 180.0, angle - 180.0, angle)
    isotropic = (sigma1 - sigma3) < 0.01 * (np.abs(sigma1) + np.abs(sigma3))
    angle = np.where(isotropic, 0.0, angle)
    return sigma1, sigma3, angle


def stress_invariants(sx, sy, sz, txy, tyz, txz):
    """
    First stress invariant, second deviatoric invariant and Lode angle.

    Returns:
        (I1, J2, lode) with the Lode angle in radians in [-pi/6, pi/6]
    """
    sx = np.asarray(sx, dtype=float)
    sy = np.asarray(sy, dtype=float)
    sz = np.asarray(sz, dtype=float)
    txy = np.asarray(txy, dtype=float)
    tyz = np.asarray(tyz, dtype=float)
    txz = np.asarray(txz, dtype=float)

    i1 = sx + sy + sz
    mean = i1 / 3.0
    dx, dy, dz = sx - mean, sy - mean, sz - mean

    j2 = 0.5 * (dx * dx + dy * dy + dz * dz) + txy ** 2 + tyz ** 2 + txz ** 2
    j3 = (dx * dy * dz + 2.0 * txy * tyz * txz
          - dx * tyz ** 2 - dy * txz ** 2 - dz * txy ** 2)

    safe_j2 = np.where(j2 < _J2_TOLERANCE, 1.0, j2)
    arg = np.clip(-1.5 * np.sqrt(3.0) * j3 / safe_j2 ** 1.5, -1.0, 1.0)
    lode = np.where(j2 < _J2_TOLERANCE, 0.0, np.arcsin(arg) / 3.0)
    return i1, j2, lode


def principal_stresses_3d(sx, sy, sz, txy, tyz, txz):
    """
    Principal stresses of the full 3D tensor from its invariants.

    Returns:
        (sigma1, sigma2, sigma3) sorted so that sigma1 >= sigma2 >= sigma3
    """
    i1, j2, lode = stress_invariants(sx, sy, sz, txy, tyz, txz)
    mean = i1 / 3.0
    radius = 2.0 * np.sqrt(np.maximum(j2, 0.0) / 3.0)

    s_a = mean + radius * np.sin(lode + 2.0 * np.pi / 3.0)
    s_b = mean + radius * np.sin(lode)
    s_c = mean + radius * np.sin(lode - 2.0 * np.pi / 3.0)

    stacked = np.sort(np.stack([s_a, s_b, s_c]), axis=0)
    return stacked[2], stacked[1], stacked[0]
