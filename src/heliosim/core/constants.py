"""
===============================================================================
HELIOSIM - Physical and Astronomical Constants
===============================================================================
Central repository for the constants used by the heliocentric simulation.

Unit conventions differ from pure SI because the simulation works at solar
system scale:

    - Positions in astronomical units (AU), heliocentric
    - Velocities in km/s
    - Accelerations in m/s^2
    - Masses in kg
    - Gravitational parameters in km^3/s^2 (multiply by 1e9 for m^3/s^2)
    - Time in seconds internally, days at the reporting boundary
===============================================================================
"""

import numpy as np


# =============================================================================
# MATHEMATICAL CONSTANTS
# =============================================================================
PI = np.pi
TWO_PI = 2.0 * np.pi
DEG2RAD = PI / 180.0
RAD2DEG = 180.0 / PI

# =============================================================================
# FUNDAMENTAL PHYSICAL CONSTANTS
# =============================================================================
SPEED_OF_LIGHT = 299792458.0           # m/s
GRAVITATIONAL_CONSTANT = 6.67430e-11   # m^3 / (kg * s^2)
STEFAN_BOLTZMANN = 5.67e-8             # W / (m^2 * K^4)
G0 = 9.81                              # m/s^2, rocket-equation gravity
SOLAR_CONSTANT = 1361.0                # W/m^2 at 1 AU
COSMIC_BACKGROUND_TEMP = 2.7           # K

# =============================================================================
# DISTANCE AND TIME CONVERSIONS
# =============================================================================
AU_TO_METERS = 149597870700.0
AU_TO_KM = 149597870.7
KM_TO_METERS = 1000.0

SECONDS_PER_MINUTE = 60.0
SECONDS_PER_HOUR = 3600.0
SECONDS_PER_DAY = 86400.0
DAYS_PER_YEAR = 365.25
SECONDS_PER_YEAR = 31557600.0

# =============================================================================
# SUN
# =============================================================================
SUN_MASS = 1.989e30                    # kg
SUN_RADIUS_KM = 696340.0
SUN_MU = 1.32712440018e11              # km^3/s^2

# =============================================================================
# SOLAR SYSTEM BODY TABLE
# =============================================================================
# mu in km^3/s^2, mass in kg, radius in km, semi_major_axis in AU.
CELESTIAL_BODIES = {
    'sun': {
        'name': 'Sun', 'mu': SUN_MU, 'mass': SUN_MASS,
        'radius': SUN_RADIUS_KM, 'semi_major_axis': 0.0,
    },
    'mercury': {
        'name': 'Mercury', 'mu': 2.2032e4, 'mass': 3.301e23,
        'radius': 2439.7, 'semi_major_axis': 0.387,
    },
    'venus': {
        'name': 'Venus', 'mu': 3.257e5, 'mass': 4.867e24,
        'radius': 6051.8, 'semi_major_axis': 0.723,
    },
    'earth': {
        'name': 'Earth', 'mu': 3.986004418e5, 'mass': 5.972e24,
        'radius': 6371.0, 'semi_major_axis': 1.000,
    },
    'mars': {
        'name': 'Mars', 'mu': 4.282837e4, 'mass': 6.417e23,
        'radius': 3389.5, 'semi_major_axis': 1.524,
    },
    'jupiter': {
        'name': 'Jupiter', 'mu': 1.26686534e8, 'mass': 1.899e27,
        'radius': 69911.0, 'semi_major_axis': 5.203,
    },
    'saturn': {
        'name': 'Saturn', 'mu': 3.7931187e7, 'mass': 5.685e26,
        'radius': 58232.0, 'semi_major_axis': 9.537,
    },
    'uranus': {
        'name': 'Uranus', 'mu': 5.793939e6, 'mass': 8.682e25,
        'radius': 25362.0, 'semi_major_axis': 19.191,
    },
    'neptune': {
        'name': 'Neptune', 'mu': 6.836529e6, 'mass': 1.024e26,
        'radius': 24622.0, 'semi_major_axis': 30.069,
    },
}

# =============================================================================
# SPACECRAFT DEFAULTS
# =============================================================================
SPACECRAFT_DEFAULTS = {
    'mass': 1000.0,             # kg, dry
    'fuel_mass': 500.0,         # kg
    'exhaust_velocity': 3000.0,  # m/s
    'thrust_power': 50000.0,    # N
}

# =============================================================================
# SIMULATION LIMITS
# =============================================================================
MIN_BODY_DISTANCE_AU = 0.01            # gravity singularity floor
TRAIL_LENGTH = 5000                    # trajectory ring buffer capacity
TELEMETRY_HISTORY_LENGTH = 1000        # enhanced telemetry records kept


def get_body_mu(body_name: str) -> float:
    """
    Look up gravitational parameter by body name.

    Args:
        body_name: Any key of CELESTIAL_BODIES (case-insensitive).

    Returns:
        Gravitational parameter mu in km^3/s^2

    Raises:
        ValueError: If body_name is not recognized
    """
    key = body_name.lower()
    if key not in CELESTIAL_BODIES:
        raise ValueError(
            f"Unknown body: {body_name}. Valid: {list(CELESTIAL_BODIES.keys())}"
        )
    return CELESTIAL_BODIES[key]['mu']


def get_body_radius(body_name: str) -> float:
    """
    Look up mean radius (km) by body name.

    Raises:
        ValueError: If body_name is not recognized
    """
    key = body_name.lower()
    if key not in CELESTIAL_BODIES:
        raise ValueError(
            f"Unknown body: {body_name}. Valid: {list(CELESTIAL_BODIES.keys())}"
        )
    return CELESTIAL_BODIES[key]['radius']
