"""
===============================================================================
HELIOSIM - Orbital Reference Frame (RSW)
===============================================================================
The RSW frame (radial / along-track / cross-track, also called LVLH or Hill)
is the frame in which manoeuvre delta-V is planned:

    R-hat (radial)   = r / |r|                  away from the central body
    W-hat (normal)   = (R-hat x v-hat) / |...|  orbit normal
    S-hat (prograde) = (W-hat x R-hat) / |...|  direction of motion

A burn expressed as [radial, prograde, normal] components is converted to
an inertial delta-V by the linear combination of the three basis vectors.

Degenerate geometry
-------------------
When the velocity is zero or parallel to the position (a purely radial
trajectory) the orbit normal is undefined.  The fallback normal is the
ecliptic pole +Z projected perpendicular to R-hat, or +X projected the same
way when R-hat itself lies along Z.  A zero position falls back to
R-hat = +X.  The basis stays orthonormal and right-handed in every case.
===============================================================================
"""

from typing import NamedTuple

import numpy as np

_DEGENERATE_TOLERANCE = 1e-12


class OrbitalFrame(NamedTuple):
    """Unit basis vectors of the RSW frame, expressed in inertial axes."""
    radial: np.ndarray
    prograde: np.ndarray
    normal: np.ndarray

    def as_matrix(self) -> np.ndarray:
        """Rows are the basis vectors, so ``M @ v_inertial = v_rsw``."""
        return np.vstack([self.radial, self.prograde, self.normal])


def _unit(v: np.ndarray):
    n = np.linalg.norm(v)
    if n < _DEGENERATE_TOLERANCE or not np.isfinite(n):
        return None
    return v / n


def _fallback_normal(radial: np.ndarray) -> np.ndarray:
    z_pole = np.array([0.0, 0.0, 1.0])
    x_pole = np.array([1.0, 0.0, 0.0])
    projected = z_pole - np.dot(z_pole, radial) * radial
    if np.linalg.norm(projected) < 1e-6:
        projected = x_pole - np.dot(x_pole, radial) * radial
    return projected / np.linalg.norm(projected)


def get_orbital_reference_frame(position: np.ndarray,
                                velocity: np.ndarray) -> OrbitalFrame:
    """
    Build the RSW basis for a heliocentric state.

    Parameters
    ----------
    position : np.ndarray
        Position relative to the central body (any length unit).
    velocity : np.ndarray
        Velocity (any speed unit; only its direction is used).

    Returns
    -------
    OrbitalFrame
        Orthonormal (radial, prograde, normal) triple.
    """
    r = np.asarray(position, dtype=np.float64)
    v = np.asarray(velocity, dtype=np.float64)

    radial = _unit(r)
    if radial is None:
        radial = np.array([1.0, 0.0, 0.0])

    normal = None
    v_hat = _unit(v)
    if v_hat is not None:
        normal = _unit(np.cross(radial, v_hat))
    if normal is None:
        normal = _fallback_normal(radial)

    prograde = _unit(np.cross(normal, radial))
    return OrbitalFrame(radial=radial, prograde=prograde, normal=normal)


def convert_delta_v(delta_v_rsw: np.ndarray, position: np.ndarray,
                    velocity: np.ndarray) -> np.ndarray:
    """
    Convert [radial, prograde, normal] burn components to an inertial vector.

    Parameters
    ----------
    delta_v_rsw : np.ndarray
        Burn components in the RSW frame (km/s).
    position, velocity : np.ndarray
        Current state defining the frame.

    Returns
    -------
    np.ndarray
        Inertial delta-V (km/s).
    """
    dv = np.asarray(delta_v_rsw, dtype=np.float64)
    frame = get_orbital_reference_frame(position, velocity)
    return dv[0] * frame.radial + dv[1] * frame.prograde + dv[2] * frame.normal


def inertial_to_rsw(vector: np.ndarray, position: np.ndarray,
                    velocity: np.ndarray) -> np.ndarray:
    """Project an inertial vector onto the RSW axes of the given state."""
    frame = get_orbital_reference_frame(position, velocity)
    return frame.as_matrix() @ np.asarray(vector, dtype=np.float64)
