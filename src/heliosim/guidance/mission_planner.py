"""
===============================================================================
HELIOSIM - Mission Phase Logic
===============================================================================
Classifies an enhanced spacecraft's mission phase relative to its target
body on every tick:

    CRUISE     far from the target
    APPROACH   within 10 spheres of influence
    ENCOUNTER  inside the target's sphere of influence
    ESCAPE     on an open (e >= 1) heliocentric trajectory

The sphere-of-influence radius is the Laplace approximation

    r_SOI = a * (m / M_sun)^(2/5)
===============================================================================
"""

from enum import IntEnum
from typing import Optional

from heliosim.core.constants import SUN_MASS

DEFAULT_SOI_AU = 0.1
APPROACH_SOI_MULTIPLE = 10.0


class MissionPhase(IntEnum):
    """Mission phases in nominal order."""
    CRUISE = 0
    APPROACH = 1
    ENCOUNTER = 2
    ESCAPE = 3


def sphere_of_influence(body) -> float:
    """
    Laplace sphere-of-influence radius (AU) of a body.

    Falls back to 0.1 AU when the body has no mass or orbit radius.
    """
    mass = getattr(body, 'mass', None)
    semi_major_axis = getattr(body, 'semi_major_axis', None)
    if not mass or not semi_major_axis:
        return DEFAULT_SOI_AU
    return semi_major_axis * (mass / SUN_MASS) ** 0.4


def determine_phase(distance: Optional[float], soi: float,
                    eccentricity: float) -> MissionPhase:
    """
    Mission phase from the target distance (AU), its SOI (AU) and the
    heliocentric eccentricity.  ``distance`` is None when no target is set.
    """
    if eccentricity >= 1.0:
        return MissionPhase.ESCAPE
    if distance is None:
        return MissionPhase.CRUISE
    if distance < soi:
        return MissionPhase.ENCOUNTER
    if distance < APPROACH_SOI_MULTIPLE * soi:
        return MissionPhase.APPROACH
    return MissionPhase.CRUISE
