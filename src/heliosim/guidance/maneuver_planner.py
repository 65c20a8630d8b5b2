"""
===============================================================================
HELIOSIM - Maneuver Planner
===============================================================================
Delta-V and propellant calculations for heliocentric transfers.

The two pure functions at module level are used by the simulation core:

    calculate_hohmann_transfer  -- two-burn transfer between circular orbits
    calculate_fuel_required     -- Tsiolkovsky rocket equation

ManeuverPlanner builds on them for mission-level planning between planets:
escape and capture burns from parking orbits, a direct-transfer estimate,
and propellant budgets for standard propulsion profiles.

Sign conventions and units:
    - Orbit radii in km
    - Velocities in km/s
    - Masses in kg
    - Gravitational parameters in km^3/s^2
    - Specific impulse in seconds, g0 = 9.81 m/s^2
===============================================================================
"""

import logging
import math
from dataclasses import dataclass, field
from typing import Dict, List

from heliosim.core.constants import (
    AU_TO_KM,
    CELESTIAL_BODIES,
    G0,
    SECONDS_PER_DAY,
    SUN_MU,
    get_body_mu,
    get_body_radius,
)
from heliosim.core.errors import ConfigurationError

logger = logging.getLogger(__name__)

# Propulsion profiles for mission-level propellant budgets.
PROPULSION_PROFILES: Dict[str, Dict[str, float]] = {
    'chemical': {'isp': 450.0, 'dry_mass': 1000.0},
    'ion': {'isp': 3000.0, 'dry_mass': 800.0},
    'nuclear': {'isp': 900.0, 'dry_mass': 2000.0},
}

DIRECT_TRANSFER_DV_FACTOR = 1.3
DIRECT_TRANSFER_TIME_FACTOR = 0.6


@dataclass(frozen=True)
class HohmannTransfer:
    """Result of a two-burn Hohmann transfer (km/s, days)."""
    departure_delta_v: float = 0.0
    arrival_delta_v: float = 0.0
    total_delta_v: float = 0.0
    transfer_time_days: float = 0.0


def calculate_hohmann_transfer(r1: float, r2: float,
                               mu: float = SUN_MU) -> HohmannTransfer:
    """
    Two-impulse Hohmann transfer between coplanar circular orbits.

    Equations:
        a_t  = (r1 + r2) / 2
        v1   = sqrt(mu / r1),  v2 = sqrt(mu / r2)
        v_t1 = sqrt(mu * (2/r1 - 1/a_t))
        v_t2 = sqrt(mu * (2/r2 - 1/a_t))
        dv1  = v_t1 - v1        (positive = prograde)
        dv2  = v2 - v_t2
        T    = pi * sqrt(a_t^3 / mu)

    Args:
        r1: Radius of the departure orbit (km).
        r2: Radius of the arrival orbit (km).
        mu: Gravitational parameter of the central body (km^3/s^2).

    Returns:
        HohmannTransfer; all zeros if either radius is non-positive or
        non-finite.
    """
    if not (r1 > 0.0 and r2 > 0.0 and math.isfinite(r1) and math.isfinite(r2)):
        return HohmannTransfer()

    a_transfer = 0.5 * (r1 + r2)
    v1 = math.sqrt(mu / r1)
    v2 = math.sqrt(mu / r2)
    v_transfer_1 = math.sqrt(mu * (2.0 / r1 - 1.0 / a_transfer))
    v_transfer_2 = math.sqrt(mu * (2.0 / r2 - 1.0 / a_transfer))

    dv1 = v_transfer_1 - v1
    dv2 = v2 - v_transfer_2
    transfer_time = math.pi * math.sqrt(a_transfer ** 3 / mu) / SECONDS_PER_DAY

    logger.debug(
        "Hohmann transfer: r1=%.0f km, r2=%.0f km, dv1=%.3f km/s, dv2=%.3f km/s",
        r1, r2, dv1, dv2,
    )
    return HohmannTransfer(
        departure_delta_v=dv1,
        arrival_delta_v=dv2,
        total_delta_v=abs(dv1) + abs(dv2),
        transfer_time_days=transfer_time,
    )


def calculate_fuel_required(delta_v: float, total_mass: float,
                            exhaust_velocity: float) -> float:
    """
    Propellant needed for a burn, from the rocket equation.

        m_fuel = m_total * (1 - exp(-dv / v_e))

    Args:
        delta_v: Burn magnitude (km/s); the sign is ignored.
        total_mass: Mass before the burn (kg).
        exhaust_velocity: Effective exhaust velocity (km/s).

    Returns:
        Propellant mass (kg), in [0, total_mass].  Zero for non-physical
        or non-finite inputs.
    """
    if exhaust_velocity <= 0.0 or total_mass <= 0.0:
        return 0.0

    fuel = total_mass * -math.expm1(-abs(delta_v) / exhaust_velocity)
    if not math.isfinite(fuel):
        return 0.0
    return min(max(fuel, 0.0), total_mass)


def exhaust_velocity_from_isp(isp: float) -> float:
    """Effective exhaust velocity (km/s) for a specific impulse (s)."""
    return isp * G0 / 1000.0


# =============================================================================
# MISSION-LEVEL PLANNING
# =============================================================================

@dataclass(frozen=True)
class PlannedBurn:
    """One burn of a mission plan."""
    time_days: float
    location: str
    delta_v: float
    direction: str


@dataclass(frozen=True)
class InterplanetaryTransfer:
    """Departure / arrival burn budget for a planet-to-planet transfer."""
    departure: str
    arrival: str
    launch_delta_v: float
    arrival_delta_v: float
    transfer_time_days: float
    maneuvers: List[PlannedBurn] = field(default_factory=list)

    @property
    def total_delta_v(self) -> float:
        return self.launch_delta_v + self.arrival_delta_v


class ManeuverPlanner:
    """
    Computes transfer budgets between solar-system bodies.

    The planner is stateless: every input is an argument.

    Typical usage:
        planner = ManeuverPlanner()
        plan = planner.interplanetary_transfer('earth', 'mars')
        fuel = planner.propellant_estimate(plan.total_delta_v, 'chemical')
    """

    def interplanetary_transfer(
        self,
        departure: str,
        arrival: str,
        departure_altitude: float = 200.0,
        arrival_altitude: float = 200.0,
    ) -> InterplanetaryTransfer:
        """
        Hohmann transfer between two planets including parking-orbit burns.

        The heliocentric Hohmann burns become hyperbolic excess speeds at
        each planet; the burn from (or into) a circular parking orbit of
        radius r_p around a planet with parameter mu_p is

            dv = sqrt(v_esc^2 + v_inf^2) - sqrt(mu_p / r_p),
            v_esc = sqrt(2 * mu_p / r_p)

        Args:
            departure: Departure body name, e.g. 'earth'.
            arrival: Arrival body name, e.g. 'mars'.
            departure_altitude: Parking-orbit altitude at departure (km).
            arrival_altitude: Parking-orbit altitude at arrival (km).

        Returns:
            InterplanetaryTransfer with a prograde launch burn and a
            retrograde capture burn.

        Raises:
            ConfigurationError: If a body name is unknown or is the Sun.
        """
        r1 = self._orbit_radius_km(departure)
        r2 = self._orbit_radius_km(arrival)
        hohmann = calculate_hohmann_transfer(r1, r2)

        mu_dep = get_body_mu(departure)
        mu_arr = get_body_mu(arrival)
        r_park_dep = get_body_radius(departure) + departure_altitude
        r_park_arr = get_body_radius(arrival) + arrival_altitude

        dv_launch = self._hyperbolic_burn(mu_dep, r_park_dep,
                                          abs(hohmann.departure_delta_v))
        dv_capture = self._hyperbolic_burn(mu_arr, r_park_arr,
                                           abs(hohmann.arrival_delta_v))

        logger.debug("Interplanetary %s -> %s: launch %.3f km/s, capture %.3f km/s",
                     departure, arrival, dv_launch, dv_capture)

        return InterplanetaryTransfer(
            departure=departure,
            arrival=arrival,
            launch_delta_v=dv_launch,
            arrival_delta_v=dv_capture,
            transfer_time_days=hohmann.transfer_time_days,
            maneuvers=[
                PlannedBurn(0.0, f"{departure} orbit", dv_launch, 'Prograde'),
                PlannedBurn(hohmann.transfer_time_days, f"{arrival} orbit",
                            dv_capture, 'Retrograde'),
            ],
        )

    def direct_transfer(
        self,
        departure: str,
        arrival: str,
        departure_altitude: float = 200.0,
        arrival_altitude: float = 200.0,
    ) -> InterplanetaryTransfer:
        """
        Faster-than-Hohmann estimate: 1.3x the delta-V for 0.6x the time.
        """
        base = self.interplanetary_transfer(departure, arrival,
                                            departure_altitude, arrival_altitude)
        time_days = base.transfer_time_days * DIRECT_TRANSFER_TIME_FACTOR
        return InterplanetaryTransfer(
            departure=departure,
            arrival=arrival,
            launch_delta_v=base.launch_delta_v * DIRECT_TRANSFER_DV_FACTOR,
            arrival_delta_v=base.arrival_delta_v * DIRECT_TRANSFER_DV_FACTOR,
            transfer_time_days=time_days,
            maneuvers=[
                PlannedBurn(0.0 if i == 0 else time_days, m.location,
                            m.delta_v * DIRECT_TRANSFER_DV_FACTOR, m.direction)
                for i, m in enumerate(base.maneuvers)
            ],
        )

    def propellant_estimate(self, delta_v: float, propulsion: str = 'chemical') -> float:
        """
        Propellant for ``delta_v`` (km/s) with a standard propulsion profile.

            m_prop = m_dry * (exp(dv / v_e) - 1)

        Returns 0 when the mass ratio is non-finite or not above 1.

        Raises:
            ConfigurationError: If ``propulsion`` is not a known profile.
        """
        profile = PROPULSION_PROFILES.get(propulsion.lower())
        if profile is None:
            raise ConfigurationError(
                f"Unknown propulsion profile: {propulsion}. "
                f"Valid: {list(PROPULSION_PROFILES.keys())}"
            )

        exhaust_velocity = exhaust_velocity_from_isp(profile['isp'])
        try:
            mass_ratio = math.exp(delta_v / exhaust_velocity)
        except OverflowError:
            return 0.0
        if not math.isfinite(mass_ratio) or mass_ratio <= 1.0:
            return 0.0
        return profile['dry_mass'] * (mass_ratio - 1.0)

    # -------------------------------------------------------------------------

    @staticmethod
    def _orbit_radius_km(body: str) -> float:
        data = CELESTIAL_BODIES.get(body.lower())
        if data is None or data['semi_major_axis'] <= 0.0:
            raise ConfigurationError(f"Not a planet with a heliocentric orbit: {body}")
        return data['semi_major_axis'] * AU_TO_KM

    @staticmethod
    def _hyperbolic_burn(mu: float, parking_radius: float, v_infinity: float) -> float:
        v_escape = math.sqrt(2.0 * mu / parking_radius)
        v_circular = math.sqrt(mu / parking_radius)
        return math.sqrt(v_escape ** 2 + v_infinity ** 2) - v_circular
