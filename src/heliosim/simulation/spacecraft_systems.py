"""
===============================================================================
HELIOSIM - Spacecraft Subsystem Model
===============================================================================
Power, thermal, communications, attitude, propulsion and health models of an
enhanced spacecraft, advanced once per simulation tick before the orbit is
integrated.

Update order (SpacecraftSystems.update):
    1. environment   solar distance / intensity, Earth distance
    2. propulsion    main-engine burn countdown (simulated time)
    3. power         generation, consumer loads, battery
    4. thermal       waste heat + solar heating - radiator cooling
    5. comms         link budget to Earth
    6. attitude      pointing controller, wheel / RCS arbitration
    7. health        degradation with mission time
    8. constraints   warning list

Burn requests go through execute_burn(), which reports resource exhaustion
as a BurnResult instead of raising.
===============================================================================
"""

import logging
import math
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Iterable, List, Optional

import numpy as np

from heliosim.control.actuators import (
    PropulsionSystem,
    RCSThrusters,
    ReactionWheelAssembly,
    build_propulsion,
)
from heliosim.control.attitude_control import AttitudeControlSystem, AttitudeMode
from heliosim.core.constants import SECONDS_PER_DAY, STEFAN_BOLTZMANN
from heliosim.dynamics.environment import EnvironmentSample, sample_environment
from heliosim.guidance.maneuver_planner import calculate_fuel_required
from heliosim.navigation.signal_model import CommunicationsLink

logger = logging.getLogger(__name__)

MIN_BURN_BATTERY_KWH = 10.0
LOW_FUEL_KG = 50.0


# =============================================================================
# POWER
# =============================================================================

class PowerSystem:
    """
    Solar arrays, battery and power consumers.

    Parameters
    ----------
    panel_efficiency : float
        Solar cell efficiency (0-1).
    panel_area : float
        Array area (m^2).
    battery_capacity : float
        Battery capacity (kWh); the battery starts full.
    """

    BASELOAD = 500.0        # W, always on
    PROPULSION = 2000.0     # W, main engine throttle > 0
    COMMUNICATIONS = 800.0  # W, while in contact
    INSTRUMENTS = 300.0     # W, when instruments are on

    def __init__(self, panel_efficiency: float = 0.3, panel_area: float = 20.0,
                 battery_capacity: float = 100.0):
        self.panel_efficiency = float(panel_efficiency)
        self.panel_area = float(panel_area)
        self.battery_capacity = float(battery_capacity)
        self.battery_charge = float(battery_capacity)
        self.generation = 0.0
        self.consumption = 0.0
        self.loads: Dict[str, float] = {}

    @property
    def battery_fraction(self) -> float:
        if self.battery_capacity <= 0.0:
            return 0.0
        return self.battery_charge / self.battery_capacity

    def update(self, solar_intensity: float, loads: Dict[str, float], dt: float,
               panel_degradation: float = 0.0, battery_degradation: float = 0.0) -> None:
        """
        Integrate the battery over ``dt`` seconds.

        Degradations are percentages.  The usable battery capacity shrinks
        with battery degradation and the charge is clamped to it.
        """
        efficiency = self.panel_efficiency * (1.0 - panel_degradation / 100.0)
        self.generation = solar_intensity * self.panel_area * efficiency
        self.loads = dict(loads)
        self.consumption = sum(self.loads.values())

        balance = self.generation - self.consumption
        self.battery_charge += balance * dt / 3600.0 / 1000.0

        max_charge = self.battery_capacity * (1.0 - battery_degradation / 100.0)
        self.battery_charge = min(max(self.battery_charge, 0.0), max(max_charge, 0.0))

    def status(self) -> dict:
        return {
            'generation': self.generation,
            'consumption': self.consumption,
            'battery': self.battery_charge,
            'battery_percent': self.battery_fraction * 100.0,
            'loads': dict(self.loads),
        }


# =============================================================================
# THERMAL
# =============================================================================

class ThermalStatus(Enum):
    COLD = 'COLD'
    HOT = 'HOT'
    NOMINAL = 'NOMINAL'
    MANAGING = 'MANAGING'


class ThermalSystem:
    """
    Single-node thermal balance.

        dT/dt = (P_waste + 2 m^2 * S - eps * sigma * A_rad * T^4) / C

    Integrated in sub-steps of at most ``MAX_SUBSTEP`` seconds.  The
    temperature is held inside the [100, 400] K safety range; the soft
    operating limits are [253, 323] K around a 293 K setpoint.
    """

    SAFETY_MIN = 100.0
    SAFETY_MAX = 400.0
    LIMIT_MIN = 253.0
    LIMIT_MAX = 323.0
    OPTIMAL = 293.0
    SOLAR_CROSS_SECTION = 2.0   # m^2
    MAX_SUBSTEP = 60.0          # s

    def __init__(self, heat_capacity: float = 50000.0, radiator_area: float = 10.0,
                 emissivity: float = 0.9):
        self.heat_capacity = float(heat_capacity)
        self.radiator_area = float(radiator_area)
        self.emissivity = float(emissivity)
        self.internal_temp = self.OPTIMAL
        self.external_temp = 0.0

    @property
    def control_power(self) -> float:
        """Active thermal-control heater/pump load (W)."""
        return 200.0 + 10.0 * abs(self.internal_temp - self.OPTIMAL)

    @property
    def in_limits(self) -> bool:
        return self.LIMIT_MIN <= self.internal_temp <= self.LIMIT_MAX

    def radiative_cooling(self, temperature: float) -> float:
        return self.emissivity * self.radiator_area * STEFAN_BOLTZMANN * temperature ** 4

    def update(self, waste_heat: float, solar_intensity: float, dt: float,
               external_temp: Optional[float] = None) -> None:
        if external_temp is not None:
            self.external_temp = external_temp
        if not math.isfinite(self.internal_temp) or self.internal_temp < 0.0:
            self.internal_temp = self.OPTIMAL

        solar_heating = solar_intensity * self.SOLAR_CROSS_SECTION
        remaining = max(dt, 0.0)
        while remaining > 0.0:
            h = min(remaining, self.MAX_SUBSTEP)
            net_heat = waste_heat + solar_heating - self.radiative_cooling(self.internal_temp)
            self.internal_temp += net_heat * h / self.heat_capacity
            self.internal_temp = min(max(self.internal_temp, self.SAFETY_MIN), self.SAFETY_MAX)
            remaining -= h

    def thermal_status(self) -> ThermalStatus:
        temp = self.internal_temp
        if temp < self.LIMIT_MIN:
            return ThermalStatus.COLD
        if temp > self.LIMIT_MAX:
            return ThermalStatus.HOT
        if abs(temp - self.OPTIMAL) < 10.0:
            return ThermalStatus.NOMINAL
        return ThermalStatus.MANAGING

    def status(self) -> dict:
        return {
            'internal': self.internal_temp - 273.0,
            'external': self.external_temp - 273.0,
            'status': self.thermal_status().value,
        }


# =============================================================================
# HEALTH
# =============================================================================

@dataclass
class SystemHealth:
    """Cumulative degradation (percent) with mission time."""
    solar_panels: float = 0.0
    battery: float = 0.0
    reaction_wheels: float = 0.0
    overall: float = 100.0

    # % per year
    RATES = {'solar_panels': 0.5, 'battery': 2.0, 'reaction_wheels': 1.0}

    def update(self, dt: float) -> None:
        years = dt / SECONDS_PER_DAY / 365.0
        self.solar_panels += self.RATES['solar_panels'] * years
        self.battery += self.RATES['battery'] * years
        self.reaction_wheels += self.RATES['reaction_wheels'] * years
        self.overall = 100.0 - (0.3 * self.solar_panels
                                + 0.4 * self.battery
                                + 0.3 * self.reaction_wheels)

    def status(self) -> dict:
        return {
            'overall': self.overall,
            'solar_degradation': self.solar_panels,
            'battery_degradation': self.battery,
            'wheel_degradation': self.reaction_wheels,
        }


# =============================================================================
# BURN EXECUTION
# =============================================================================

class BurnFailure(Enum):
    NO_IGNITIONS_REMAINING = 'No ignitions remaining'
    INSUFFICIENT_FUEL = 'Insufficient fuel'
    INSUFFICIENT_POWER = 'Insufficient power'


@dataclass(frozen=True)
class BurnResult:
    success: bool
    reason: Optional[BurnFailure] = None
    fuel_required: float = 0.0


# =============================================================================
# SUBSYSTEM AGGREGATE
# =============================================================================

class SpacecraftSystems:
    """
    All subsystems of an enhanced spacecraft.

    Args:
        config: Flat dict of subsystem parameters, read with defaults:
            solar_panel_efficiency, solar_panel_area, battery_capacity,
            radiator_area, dish_diameter, transmit_power, rcs_fuel,
            engine_type, fuel_capacity, oxidizer_capacity,
            main_engine_thrust, main_engine_isp, max_ignitions,
            xenon_capacity.

    Attributes:
        power, thermal, comms, attitude, propulsion, health: Subsystems.
        environment: Last EnvironmentSample.
        warnings: Constraint warnings from the last update.
        instruments_active: Science instrument load switch.
    """

    def __init__(self, config: Optional[dict] = None):
        config = dict(config or {})
        self.config = config

        self.power = PowerSystem(
            panel_efficiency=config.get('solar_panel_efficiency', 0.3),
            panel_area=config.get('solar_panel_area', 20.0),
            battery_capacity=config.get('battery_capacity', 100.0),
        )
        self.thermal = ThermalSystem(radiator_area=config.get('radiator_area', 10.0))
        self.comms = CommunicationsLink(
            dish_size=config.get('dish_diameter', 2.0),
            transmit_power=config.get('transmit_power', 100.0),
        )
        self.attitude = AttitudeControlSystem(
            wheels=ReactionWheelAssembly(),
            rcs=RCSThrusters(fuel=config.get('rcs_fuel', 50.0)),
        )
        self.propulsion: PropulsionSystem = build_propulsion(config)
        self.health = SystemHealth()

        self.environment = EnvironmentSample()
        self.instruments_active = False
        self.warnings: List[str] = []

    # ----- tick -----

    def update(self, spacecraft, bodies: Optional[Iterable], dt: float,
               time: float = 0.0) -> None:
        """
        Advance every subsystem by ``dt`` seconds.

        Args:
            spacecraft: Owning craft (position AU, velocity km/s).
            bodies: Gravitating bodies; the Sun and Earth are looked up by name.
            dt: Simulated step (s).
            time: Epoch for body positions.
        """
        self.environment = sample_environment(spacecraft.position, bodies, time)
        self.propulsion.main.countdown(dt)

        self.power.update(
            self.environment.solar_intensity,
            self._power_loads(),
            dt,
            panel_degradation=self.health.solar_panels,
            battery_degradation=self.health.battery,
        )
        self.thermal.update(self.power.consumption, self.environment.solar_intensity,
                            dt, external_temp=self.environment.external_temp)
        self.comms.update(self.environment.earth_distance)
        self.attitude.update(spacecraft.position, spacecraft.velocity, dt)
        self.health.update(dt)
        self.warnings = self.check_system_constraints()

    def _power_loads(self) -> Dict[str, float]:
        loads = {'baseload': PowerSystem.BASELOAD}
        if self.propulsion.main.throttle > 0.0:
            loads['propulsion'] = PowerSystem.PROPULSION
        if self.comms.state.in_contact:
            loads['communications'] = PowerSystem.COMMUNICATIONS
        if self.instruments_active:
            loads['instruments'] = PowerSystem.INSTRUMENTS
        loads['thermal_control'] = self.thermal.control_power
        if self.propulsion.ion.active:
            loads['ion_engine'] = self.propulsion.ion.power
        return loads

    # ----- constraints -----

    def check_system_constraints(self) -> List[str]:
        """
        Human-readable warnings, in a fixed order: battery, power balance,
        thermal, reaction wheels, fuel.
        """
        warnings = []

        if self.power.battery_charge < self.power.battery_capacity * 0.2:
            warnings.append(f"LOW BATTERY: {self.power.battery_charge:.1f} kWh")

        if self.power.consumption > self.power.generation * 1.5:
            deficit = self.power.consumption - self.power.generation
            warnings.append(f"POWER DEFICIT: {deficit:.0f} W")

        if not self.thermal.in_limits:
            warnings.append(
                f"THERMAL VIOLATION: {self.thermal.internal_temp - 273.0:.1f}°C")

        saturation = self.attitude.wheels.saturation_fraction
        if saturation > self.attitude.saturation_threshold:
            warnings.append(f"REACTION WHEELS SATURATING: {saturation * 100.0:.0f}%")

        if self.propulsion.main.fuel < LOW_FUEL_KG:
            warnings.append(f"LOW FUEL: {self.propulsion.main.fuel:.1f} kg")

        return warnings

    # ----- propulsion commands -----

    def fuel_required(self, delta_v: float, spacecraft) -> float:
        """Main-engine propellant (kg) for ``delta_v`` km/s from the craft's current mass."""
        total_mass = spacecraft.mass + self.propulsion.main.fuel
        return calculate_fuel_required(delta_v, total_mass,
                                       self.propulsion.main.exhaust_velocity)

    def execute_burn(self, delta_v, duration: float, spacecraft) -> BurnResult:
        """
        Start a main-engine burn.

        Args:
            delta_v: Burn magnitude (km/s) or a delta-V vector.
            duration: Burn length (s); the throttle drops back to 0 once
                this much simulated time has elapsed.
            spacecraft: Craft providing the dry mass.

        Returns:
            BurnResult; on failure the engine state is unchanged.
        """
        magnitude = float(np.linalg.norm(np.atleast_1d(np.asarray(delta_v, dtype=float))))
        main = self.propulsion.main

        if main.ignitions_used >= main.ignitions:
            return BurnResult(False, BurnFailure.NO_IGNITIONS_REMAINING)

        fuel_required = self.fuel_required(magnitude, spacecraft)
        if fuel_required > main.fuel:
            return BurnResult(False, BurnFailure.INSUFFICIENT_FUEL, fuel_required)

        if self.power.battery_charge < MIN_BURN_BATTERY_KWH:
            return BurnResult(False, BurnFailure.INSUFFICIENT_POWER, fuel_required)

        main.ignite(duration)
        return BurnResult(True, None, fuel_required)

    def set_ion_engine(self, active: bool) -> bool:
        """Switch the ion engine; it will not start with an empty xenon tank."""
        ion = self.propulsion.ion
        ion.active = bool(active) and ion.xenon > 0.0
        return ion.active

    def set_attitude_mode(self, mode) -> None:
        self.attitude.set_mode(AttitudeMode(mode))

    # ----- status -----

    def get_thermal_status(self) -> str:
        return self.thermal.thermal_status().value

    def get_system_status(self) -> dict:
        return {
            'power': self.power.status(),
            'thermal': self.thermal.status(),
            'comms': self.comms.status(),
            'attitude': self.attitude.status(),
            'propulsion': self.propulsion.status(),
            'health': self.health.status(),
            'environment': {
                'sun_distance': self.environment.sun_distance,
                'solar_intensity': self.environment.solar_intensity,
                'earth_distance': self.environment.earth_distance,
            },
            'warnings': list(self.warnings),
        }
