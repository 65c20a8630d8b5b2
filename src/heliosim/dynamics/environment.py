"""
===============================================================================
HELIOSIM - Space Environment
===============================================================================
Local environment seen by a spacecraft at a heliocentric position:

    - solar distance and flux    S = S0 / d^2       (d floored at 0.01 AU)
    - equilibrium-style external temperature
                                 T = 2.7 + 278 / sqrt(d)   (K)
    - distance to Earth for the communications link budget

When no Sun is among the supplied bodies (ephemeris not loaded yet) the
1 AU defaults are used: 1361 W/m^2, 278 K, Earth at 1 AU.
===============================================================================
"""

import logging
import math
from dataclasses import dataclass
from typing import Iterable, Optional

import numpy as np

from heliosim.core.constants import (
    COSMIC_BACKGROUND_TEMP,
    MIN_BODY_DISTANCE_AU,
    SOLAR_CONSTANT,
)

logger = logging.getLogger(__name__)

DEFAULT_EXTERNAL_TEMP = 278.0       # K
DEFAULT_EARTH_DISTANCE = 1.0        # AU


@dataclass
class EnvironmentSample:
    """Environment at one spacecraft position and epoch."""
    sun_distance: float = 1.0                       # AU
    solar_intensity: float = SOLAR_CONSTANT         # W/m^2
    external_temp: float = DEFAULT_EXTERNAL_TEMP    # K
    earth_distance: float = DEFAULT_EARTH_DISTANCE  # AU


def find_body(bodies: Iterable, name: str):
    """Return the first body whose ``name`` matches (case-insensitive)."""
    wanted = name.lower()
    for body in bodies:
        if str(getattr(body, 'name', '')).lower() == wanted:
            return body
    return None


def solar_intensity(distance_au: float) -> float:
    """Solar flux (W/m^2) at ``distance_au``, floored at 0.01 AU."""
    d = max(distance_au, MIN_BODY_DISTANCE_AU)
    return SOLAR_CONSTANT / (d * d)


def external_temperature(distance_au: float) -> float:
    """Simplified external temperature (K) at ``distance_au``."""
    d = max(distance_au, MIN_BODY_DISTANCE_AU)
    return COSMIC_BACKGROUND_TEMP + DEFAULT_EXTERNAL_TEMP * d ** -0.5


def sample_environment(position: np.ndarray, bodies: Optional[Iterable],
                       time: float = 0.0) -> EnvironmentSample:
    """
    Evaluate the environment for a spacecraft.

    Args:
        position: Spacecraft position (AU).
        bodies: Body collection; the Sun and Earth are looked up by name.
        time: Epoch for ``body.position(time)``.

    Returns:
        EnvironmentSample
    """
    bodies = list(bodies or [])
    sample = EnvironmentSample()
    position = np.asarray(position, dtype=np.float64)

    sun = find_body(bodies, 'sun')
    if sun is None:
        return sample

    distance = float(np.linalg.norm(position - np.asarray(sun.position(time))))
    safe_distance = max(distance, MIN_BODY_DISTANCE_AU)
    if not math.isfinite(safe_distance):
        logger.warning("Invalid distance to sun, using default environment")
    else:
        sample.sun_distance = safe_distance
        sample.solar_intensity = solar_intensity(safe_distance)
        sample.external_temp = external_temperature(safe_distance)

    earth = find_body(bodies, 'earth')
    if earth is not None:
        earth_distance = float(np.linalg.norm(position - np.asarray(earth.position(time))))
        if math.isfinite(earth_distance):
            sample.earth_distance = earth_distance

    return sample
