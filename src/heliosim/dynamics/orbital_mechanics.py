"""
===============================================================================
HELIOSIM - Orbital Mechanics
===============================================================================
Heliocentric two-body relations used by every other part of the simulation:

    - classical orbital elements from state vectors
    - point-mass gravitational acceleration from N bodies
    - Kepler's equation and analytic two-body propagation
    - energy / Kepler-period consistency checks

Units follow the project convention: positions in AU, velocities in km/s,
accelerations in m/s^2, gravitational parameters in km^3/s^2.

Every function here is pure.  Degenerate inputs (zero radius, zero mu,
non-finite arithmetic) never raise: elements collapse to zeros and
gravity contributions are skipped.
===============================================================================
"""

import logging
import math
from dataclasses import dataclass, asdict
from typing import Dict, Iterable, Optional, Tuple

import numpy as np
from scipy.optimize import newton

from heliosim.core.constants import (
    AU_TO_KM,
    AU_TO_METERS,
    MIN_BODY_DISTANCE_AU,
    RAD2DEG,
    SECONDS_PER_DAY,
    SUN_MU,
    TWO_PI,
)

logger = logging.getLogger(__name__)


# =============================================================================
# ORBITAL ELEMENTS
# =============================================================================

@dataclass(frozen=True)
class OrbitalElements:
    """
    Classical elements derived from a state vector.

    Attributes
    ----------
    semi_major_axis : float
        AU (negative for hyperbolic trajectories).
    eccentricity : float
        Dimensionless, >= 0.
    inclination : float
        Degrees, relative to the ecliptic (XY) plane.
    periapsis, apoapsis : float
        AU.
    period : float
        Days; 0 for open (a <= 0) trajectories.
    specific_energy : float
        km^2/s^2.
    """
    semi_major_axis: float = 0.0
    eccentricity: float = 0.0
    inclination: float = 0.0
    periapsis: float = 0.0
    apoapsis: float = 0.0
    period: float = 0.0
    specific_energy: float = 0.0

    @property
    def is_bound(self) -> bool:
        return self.eccentricity < 1.0 and self.semi_major_axis > 0.0

    def to_dict(self) -> Dict[str, float]:
        return asdict(self)


def _finite_or_zero(value: float) -> float:
    value = float(value)
    return value if math.isfinite(value) else 0.0


def calculate_orbital_elements(position: np.ndarray, velocity: np.ndarray,
                               mu: float = SUN_MU) -> OrbitalElements:
    """
    Derive classical orbital elements from a heliocentric state.

    Equations (r in km, v in km/s):
        energy  = v^2/2 - mu/r
        a       = -mu / (2 * energy)
        h       = r x v
        e_vec   = (v x h)/mu - r/|r|
        i       = acos(clamp(h_z/|h|, -1, 1))
        T       = 2*pi*sqrt(a^3/mu)           (a > 0 only)
        r_p,r_a = a(1 -/+ e)

    Args:
        position: Position relative to the central body (AU).
        velocity: Velocity (km/s).
        mu: Gravitational parameter (km^3/s^2).

    Returns:
        OrbitalElements; all zeros for degenerate input.
    """
    if position is None or velocity is None or not mu:
        return OrbitalElements()

    r_vec = np.asarray(position, dtype=np.float64) * AU_TO_KM
    v_vec = np.asarray(velocity, dtype=np.float64)
    r = float(np.linalg.norm(r_vec))
    v = float(np.linalg.norm(v_vec))

    if r == 0.0 or not math.isfinite(r) or not math.isfinite(v):
        return OrbitalElements()

    energy = 0.5 * v * v - mu / r
    with np.errstate(divide='ignore', invalid='ignore'):
        a = -mu / (2.0 * energy) if energy != 0.0 else math.inf

        h_vec = np.cross(r_vec, v_vec)
        h = float(np.linalg.norm(h_vec))
        e_vec = np.cross(v_vec, h_vec) / mu - r_vec / r
        e = float(np.linalg.norm(e_vec))

        if h > 0.0:
            inclination = math.acos(min(1.0, max(-1.0, h_vec[2] / h))) * RAD2DEG
        else:
            inclination = 0.0

        period = TWO_PI * math.sqrt(a * a * a / mu) / SECONDS_PER_DAY if a > 0 else 0.0

    return OrbitalElements(
        semi_major_axis=_finite_or_zero(a / AU_TO_KM),
        eccentricity=_finite_or_zero(e),
        inclination=_finite_or_zero(inclination),
        periapsis=_finite_or_zero(a * (1.0 - e) / AU_TO_KM),
        apoapsis=_finite_or_zero(a * (1.0 + e) / AU_TO_KM),
        period=_finite_or_zero(period),
        specific_energy=_finite_or_zero(energy),
    )


# =============================================================================
# GRAVITY
# =============================================================================

def gravitational_acceleration(position: np.ndarray, bodies: Iterable,
                               time: float = 0.0) -> np.ndarray:
    """
    Sum point-mass accelerations from every body.

    a = sum_i mu_i / d_i^2 * d_hat_i, with d_i the spacecraft-to-body vector
    in meters and mu_i converted to m^3/s^2.  Bodies closer than
    MIN_BODY_DISTANCE_AU, and any non-finite contribution, are skipped.

    Args:
        position: Spacecraft position (AU).
        bodies: Objects exposing ``position(time)`` (AU) and
            ``gravitational_parameter`` (km^3/s^2).
        time: Simulation epoch passed to ``position``.

    Returns:
        Acceleration vector (m/s^2).
    """
    position = np.asarray(position, dtype=np.float64)
    acceleration = np.zeros(3, dtype=np.float64)

    for body in bodies:
        mu = getattr(body, 'gravitational_parameter', 0.0)
        if not mu:
            continue

        separation = np.asarray(body.position(time), dtype=np.float64) - position
        distance_au = float(np.linalg.norm(separation))
        if not math.isfinite(distance_au) or distance_au < MIN_BODY_DISTANCE_AU:
            continue

        distance_m = distance_au * AU_TO_METERS
        magnitude = mu * 1e9 / (distance_m * distance_m)
        if not math.isfinite(magnitude):
            continue

        acceleration += separation / distance_au * magnitude

    return acceleration


# =============================================================================
# KEPLER PROPAGATION
# =============================================================================

def solve_kepler(mean_anomaly: float, eccentricity: float,
                 tol: float = 1e-6) -> float:
    """
    Solve Kepler's equation M = E - e*sin(E) for the eccentric anomaly.

    Newton-Raphson with the analytic derivative 1 - e*cos(E).  The mean
    anomaly is wrapped to [0, 2*pi) and the starting guess is M for
    moderate eccentricity, pi otherwise.

    Args:
        mean_anomaly: M (rad).
        eccentricity: e, 0 <= e < 1.
        tol: Absolute convergence tolerance on E.

    Returns:
        Eccentric anomaly E (rad).
    """
    m = float(np.mod(mean_anomaly, TWO_PI))
    e = float(eccentricity)
    guess = m if e < 0.8 else math.pi

    return float(newton(
        lambda E: E - e * math.sin(E) - m,
        guess,
        fprime=lambda E: 1.0 - e * math.cos(E),
        tol=tol,
        maxiter=100,
        disp=False,
    ))


def propagate_kepler(position: np.ndarray, velocity: np.ndarray, dt: float,
                     mu: float = SUN_MU) -> Tuple[np.ndarray, np.ndarray]:
    """
    Advance a heliocentric state by ``dt`` seconds along its two-body orbit.

    The state is converted to the perifocal basis (P toward periapsis, Q in
    plane, W along angular momentum), the mean anomaly is advanced by
    n*dt, Kepler's equation is solved, and the new perifocal position and
    velocity are rotated back to inertial axes.  Near-circular orbits take
    the current radial direction as the P axis.

    Open (e >= 1) or radial (h = 0) trajectories cannot be handled by the
    elliptic solver and are extrapolated in a straight line.

    Args:
        position: Position (AU).
        velocity: Velocity (km/s).
        dt: Propagation time (s).
        mu: Gravitational parameter (km^3/s^2).

    Returns:
        (position, velocity) at t + dt in AU and km/s.
    """
    pos = np.asarray(position, dtype=np.float64)
    vel = np.asarray(velocity, dtype=np.float64)
    r_vec = pos * AU_TO_KM
    r = float(np.linalg.norm(r_vec))

    if r == 0.0 or not np.all(np.isfinite(r_vec)) or not np.all(np.isfinite(vel)):
        return pos.copy(), vel.copy()

    h_vec = np.cross(r_vec, vel)
    h = float(np.linalg.norm(h_vec))
    energy = 0.5 * float(np.dot(vel, vel)) - mu / r
    e_vec = np.cross(vel, h_vec) / mu - r_vec / r
    e = float(np.linalg.norm(e_vec))

    if h < 1e-9 or energy >= 0.0 or e >= 1.0:
        return pos + vel * dt / AU_TO_KM, vel.copy()

    a = -mu / (2.0 * energy)
    w_hat = h_vec / h
    p_hat = e_vec / e if e > 1e-10 else r_vec / r
    q_hat = np.cross(w_hat, p_hat)

    nu0 = math.atan2(float(np.dot(r_vec, q_hat)), float(np.dot(r_vec, p_hat)))
    e_anom0 = 2.0 * math.atan2(math.sqrt(1.0 - e) * math.sin(nu0 / 2.0),
                               math.sqrt(1.0 + e) * math.cos(nu0 / 2.0))
    mean0 = e_anom0 - e * math.sin(e_anom0)
    mean_motion = math.sqrt(mu / (a * a * a))

    e_anom = solve_kepler(mean0 + mean_motion * dt, e)
    nu = 2.0 * math.atan2(math.sqrt(1.0 + e) * math.sin(e_anom / 2.0),
                          math.sqrt(1.0 - e) * math.cos(e_anom / 2.0))

    radius = a * (1.0 - e * math.cos(e_anom))
    semi_latus = a * (1.0 - e * e)
    speed_scale = math.sqrt(mu / semi_latus)

    r_new = radius * (math.cos(nu) * p_hat + math.sin(nu) * q_hat)
    v_new = speed_scale * (-math.sin(nu) * p_hat + (e + math.cos(nu)) * q_hat)
    return r_new / AU_TO_KM, v_new


# =============================================================================
# PHYSICS VALIDATION
# =============================================================================

@dataclass(frozen=True)
class PhysicsValidation:
    """Relative errors are reported in percent."""
    energy_error: float
    kepler_error: float
    tolerance: float = 1.0

    @property
    def energy_conserved(self) -> bool:
        return self.energy_error < self.tolerance

    @property
    def kepler_valid(self) -> bool:
        return self.kepler_error < self.tolerance

    @property
    def overall_valid(self) -> bool:
        return self.energy_conserved and self.kepler_valid


def _relative_error_percent(value: float, reference: float) -> float:
    if reference == 0.0 or not math.isfinite(reference) or not math.isfinite(value):
        return math.inf
    return abs(value - reference) / abs(reference) * 100.0


def validate_physics(position: np.ndarray, velocity: np.ndarray,
                     mu: float = SUN_MU,
                     reference_energy: Optional[float] = None,
                     measured_period: Optional[float] = None) -> PhysicsValidation:
    """
    Check a state against energy conservation and Kepler's third law.

    Args:
        position: Current position (AU).
        velocity: Current velocity (km/s).
        mu: Gravitational parameter (km^3/s^2).
        reference_energy: Energy (km^2/s^2) the orbit should still have,
            typically the value at launch.  Defaults to -mu/(2a) of the
            current elements.
        measured_period: Orbital period observed in a run (days).  Defaults
            to the element period.

    Returns:
        PhysicsValidation with percent errors.
    """
    elements = calculate_orbital_elements(position, velocity, mu)
    a_km = elements.semi_major_axis * AU_TO_KM

    if reference_energy is None:
        reference_energy = -mu / (2.0 * a_km) if a_km else 0.0
    energy_error = _relative_error_percent(elements.specific_energy, reference_energy)

    predicted_period = (TWO_PI * math.sqrt(a_km * a_km * a_km / mu) / SECONDS_PER_DAY
                        if a_km > 0 else 0.0)
    if measured_period is None:
        measured_period = elements.period
    kepler_error = _relative_error_percent(predicted_period, measured_period)

    logger.debug("Physics validation: energy err=%.4f%%, kepler err=%.4f%%",
                 energy_error, kepler_error)
    return PhysicsValidation(energy_error=energy_error, kepler_error=kepler_error)
