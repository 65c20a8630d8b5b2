"""
===============================================================================
HELIOSIM - Analytic Ephemeris
===============================================================================
Minimal celestial-body providers for the simulation core.

Every body satisfies the CelestialBodyRef protocol:

    name                    -- display name
    gravitational_parameter -- mu (km^3/s^2)
    position(time)          -- heliocentric position (AU) at ``time`` seconds
                               past the simulation epoch

FixedBody keeps the Sun at the origin.  CircularOrbitBody moves a planet
on a circular orbit in the ecliptic (XY) plane at the Keplerian rate

    omega = sqrt(mu_sun / a^3)
===============================================================================
"""

import math
from typing import List, Optional, Protocol

import numpy as np

from heliosim.core.constants import AU_TO_KM, CELESTIAL_BODIES, SUN_MU


class CelestialBodyRef(Protocol):
    name: str
    gravitational_parameter: float

    def position(self, time: float) -> np.ndarray:
        ...


class FixedBody:
    """A body pinned at a constant position (the Sun)."""

    def __init__(self, name: str, mu: float, location=None,
                 mass: float = 0.0, radius: float = 0.0):
        self.name = name
        self.gravitational_parameter = float(mu)
        self.mass = float(mass)
        self.radius = float(radius)
        self.semi_major_axis = 0.0
        self._location = (np.zeros(3) if location is None
                          else np.asarray(location, dtype=float))

    def position(self, time: float = 0.0) -> np.ndarray:
        return self._location.copy()

    def __repr__(self) -> str:
        return f"FixedBody({self.name!r})"


class CircularOrbitBody:
    """
    Planet on a circular heliocentric orbit.

    Parameters
    ----------
    name : str
    mu : float
        Gravitational parameter (km^3/s^2).
    semi_major_axis : float
        Orbit radius (AU).
    mass : float
        kg.
    radius : float
        Body radius (km).
    phase : float
        Ecliptic longitude at the epoch (rad).
    """

    def __init__(self, name: str, mu: float, semi_major_axis: float,
                 mass: float = 0.0, radius: float = 0.0, phase: float = 0.0):
        self.name = name
        self.gravitational_parameter = float(mu)
        self.semi_major_axis = float(semi_major_axis)
        self.mass = float(mass)
        self.radius = float(radius)
        self.phase = float(phase)

        a_km = self.semi_major_axis * AU_TO_KM
        self.mean_motion = math.sqrt(SUN_MU / (a_km * a_km * a_km))   # rad/s

    @property
    def orbital_speed(self) -> float:
        """Circular orbital speed (km/s)."""
        return math.sqrt(SUN_MU / (self.semi_major_axis * AU_TO_KM))

    @property
    def period_days(self) -> float:
        return 2.0 * math.pi / self.mean_motion / 86400.0

    def position(self, time: float = 0.0) -> np.ndarray:
        angle = self.phase + self.mean_motion * time
        return self.semi_major_axis * np.array([math.cos(angle), math.sin(angle), 0.0])

    def velocity(self, time: float = 0.0) -> np.ndarray:
        angle = self.phase + self.mean_motion * time
        return self.orbital_speed * np.array([-math.sin(angle), math.cos(angle), 0.0])

    def __repr__(self) -> str:
        return f"CircularOrbitBody({self.name!r}, a={self.semi_major_axis} AU)"


def body_velocity(body, time: float = 0.0, h: float = 60.0) -> np.ndarray:
    """
    Heliocentric velocity (km/s) of any body by central finite difference
    of ``position`` over ``h`` seconds.
    """
    p_plus = np.asarray(body.position(time + h), dtype=float)
    p_minus = np.asarray(body.position(time - h), dtype=float)
    return (p_plus - p_minus) * AU_TO_KM / (2.0 * h)


def default_solar_system(phases: Optional[dict] = None) -> List:
    """
    The Sun plus the eight planets from CELESTIAL_BODIES.

    Args:
        phases: Optional mapping of lower-case planet name to epoch
            longitude (rad); unspecified planets start on the +X axis.
    """
    phases = phases or {}
    bodies = []
    for key, data in CELESTIAL_BODIES.items():
        if key == 'sun':
            bodies.append(FixedBody(data['name'], data['mu'],
                                    mass=data['mass'], radius=data['radius']))
            continue
        bodies.append(CircularOrbitBody(
            data['name'], data['mu'], data['semi_major_axis'],
            mass=data['mass'], radius=data['radius'],
            phase=phases.get(key, 0.0),
        ))
    return bodies


def sun_only() -> List:
    """Body list with just the Sun, for pure two-body runs."""
    data = CELESTIAL_BODIES['sun']
    return [FixedBody(data['name'], data['mu'], mass=data['mass'], radius=data['radius'])]
