"""
===============================================================================
HELIOSIM - Spacecraft Integrator
===============================================================================
State and per-tick integration of a spacecraft in heliocentric space.

Two variants share the integrator:

    BasicSpacecraft     -- point mass with a manually commanded engine
    EnhancedSpacecraft  -- adds the subsystem model, a manoeuvre queue,
                           mission-phase tracking and telemetry history

Tick (dt seconds):
    1. gravity      sum of point-mass accelerations of the supplied bodies
    2. thrust       manual engine (fuel at F / (v_e * g0) kg/s) and, on an
                    enhanced craft, the executing manoeuvre / ion engine
    3. integrate    semi-implicit Euler
                        v += a * dt / 1000          (m/s^2 -> km/s)
                        x += v * dt / AU_TO_KM      (km -> AU)
    4. trail        position appended to a fixed-capacity ring buffer,
                    only when finite

Conventions
-----------
    - Position in AU (heliocentric ecliptic), velocity in km/s,
      acceleration in m/s^2, masses in kg, time in seconds.
    - ``mass`` is the dry mass; total mass is mass + fuel_mass.
===============================================================================
"""

from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass, field
from typing import Deque, Dict, Iterable, List, Optional

import numpy as np
import pandas as pd

from heliosim.core.constants import (
    AU_TO_KM,
    G0,
    SECONDS_PER_DAY,
    SPACECRAFT_DEFAULTS,
    SUN_MU,
    TELEMETRY_HISTORY_LENGTH,
    TRAIL_LENGTH,
)
from heliosim.core.data_structures import StateHistory
from heliosim.core.frames import convert_delta_v
from heliosim.dynamics.environment import find_body
from heliosim.dynamics.orbital_mechanics import (
    OrbitalElements,
    calculate_orbital_elements,
    gravitational_acceleration,
)
from heliosim.guidance.manoeuvre_node import ManoeuvreNode, ManoeuvreState
from heliosim.guidance.mission_planner import (
    MissionPhase,
    determine_phase,
    sphere_of_influence,
)
from heliosim.simulation.spacecraft_systems import SpacecraftSystems

logger = logging.getLogger(__name__)


# ============================================================================
#  STATE
# ============================================================================

@dataclass
class SpacecraftState:
    """
    Initial or snapshot state of a spacecraft.

    Parameters
    ----------
    position : ndarray (3,)
        Heliocentric position (AU).
    velocity : ndarray (3,)
        km/s.
    acceleration : ndarray (3,)
        m/s^2, recomputed every tick.
    mass : float
        Dry mass (kg).
    fuel_mass : float
        kg.
    mission_elapsed_time : float
        s.
    """
    position: np.ndarray = field(default_factory=lambda: np.array([1.0, 0.0, 0.0]))
    velocity: np.ndarray = field(default_factory=lambda: np.array([0.0, 30.0, 0.0]))
    acceleration: np.ndarray = field(default_factory=lambda: np.zeros(3))
    mass: float = SPACECRAFT_DEFAULTS['mass']
    fuel_mass: float = SPACECRAFT_DEFAULTS['fuel_mass']
    mission_elapsed_time: float = 0.0


# ============================================================================
#  BASIC SPACECRAFT
# ============================================================================

class BasicSpacecraft:
    """
    Point-mass spacecraft with a manually commanded engine.

    Parameters
    ----------
    name : str
    initial_state : SpacecraftState, optional
        A zero position is moved to 1 AU on +X.
    exhaust_velocity : float
        Engine exhaust velocity (m/s).
    thrust_power : float
        Engine thrust (N).
    trail_length : int
        Capacity of the trajectory ring buffer.
    """

    def __init__(
        self,
        name: str,
        initial_state: Optional[SpacecraftState] = None,
        exhaust_velocity: float = SPACECRAFT_DEFAULTS['exhaust_velocity'],
        thrust_power: float = SPACECRAFT_DEFAULTS['thrust_power'],
        trail_length: int = TRAIL_LENGTH,
    ) -> None:
        state = initial_state if initial_state is not None else SpacecraftState()

        self.name = name
        self.position = np.array(state.position, dtype=float)
        if not np.any(self.position):
            self.position = np.array([1.0, 0.0, 0.0])
        self.velocity = np.array(state.velocity, dtype=float)
        self.acceleration = np.array(state.acceleration, dtype=float)
        self.mass = float(state.mass)
        self.fuel_mass = float(state.fuel_mass)
        self.initial_fuel_mass = float(state.fuel_mass)
        self.mission_elapsed_time = float(state.mission_elapsed_time)

        self.exhaust_velocity = float(exhaust_velocity)
        self.thrust_power = float(thrust_power)
        self.engine_on = False
        self.thrust_direction = np.array([0.0, 1.0, 0.0])

        self._trail = StateHistory(trail_length, 3)
        self._invalid_position_logged = False
        self._record_trajectory()

    # ------------------------------------------------------------------ #
    #  Properties
    # ------------------------------------------------------------------ #
    @property
    def total_mass(self) -> float:
        return self.mass + self.fuel_mass

    @property
    def speed(self) -> float:
        return float(np.linalg.norm(self.velocity))

    @property
    def trajectory(self) -> np.ndarray:
        """Trail positions (AU), oldest first, shape (n, 3)."""
        return self._trail.to_array()[1]

    @property
    def trajectory_times(self) -> np.ndarray:
        return self._trail.to_array()[0]

    @property
    def fuel_percent(self) -> float:
        if self.initial_fuel_mass <= 0.0:
            return 0.0
        return self.fuel_mass / self.initial_fuel_mass * 100.0

    # ------------------------------------------------------------------ #
    #  Tick
    # ------------------------------------------------------------------ #
    def tick(self, dt: float, bodies: Iterable, time: float = 0.0) -> None:
        """
        Advance the spacecraft by ``dt`` seconds.

        Parameters
        ----------
        dt : float
            Step (s).
        bodies : iterable of CelestialBodyRef
            Gravitating bodies.
        time : float
            Epoch (s) at which body positions are evaluated.
        """
        bodies = list(bodies)
        self.mission_elapsed_time += dt
        self.acceleration = self._total_acceleration(bodies, dt, time)
        self._integrate(dt)
        self._record_trajectory()

    def _total_acceleration(self, bodies: List, dt: float, time: float) -> np.ndarray:
        acceleration = gravitational_acceleration(self.position, bodies, time)
        if self.engine_on:
            acceleration = acceleration + self._engine_acceleration(dt)
        return acceleration

    def _engine_acceleration(self, dt: float) -> np.ndarray:
        """Manual-engine acceleration (m/s^2); consumes fuel."""
        if self.fuel_mass <= 0.0:
            self.engine_on = False
            return np.zeros(3)

        burn_rate = self.thrust_power / (self.exhaust_velocity * G0)
        self.fuel_mass = max(0.0, self.fuel_mass - min(burn_rate * dt, self.fuel_mass))

        direction = self.thrust_direction
        norm = np.linalg.norm(direction)
        if norm == 0.0:
            return np.zeros(3)
        return direction / norm * (self.thrust_power / self.total_mass)

    def _integrate(self, dt: float) -> None:
        self.velocity = self.velocity + self.acceleration * dt / 1000.0
        self.position = self.position + self.velocity * dt / AU_TO_KM

    def _record_trajectory(self) -> None:
        if not np.all(np.isfinite(self.position)):
            if not self._invalid_position_logged:
                logger.warning("Invalid position detected for %s, skipping trajectory update",
                               self.name)
                self._invalid_position_logged = True
            return
        self._invalid_position_logged = False
        self._trail.append(self.mission_elapsed_time, self.position)

    # ------------------------------------------------------------------ #
    #  Commands
    # ------------------------------------------------------------------ #
    def set_thrust(self, direction: Optional[np.ndarray] = None, on: bool = True) -> None:
        """Point the manual engine and switch it on or off."""
        if direction is not None:
            self.thrust_direction = np.asarray(direction, dtype=float)
        self.engine_on = bool(on) and self.fuel_mass > 0.0

    def apply_maneuver(self, delta_v: float, direction: np.ndarray) -> None:
        """Instantaneous impulse of ``delta_v`` km/s along ``direction``."""
        direction = np.asarray(direction, dtype=float)
        norm = np.linalg.norm(direction)
        if norm == 0.0:
            return
        self.velocity = self.velocity + direction / norm * delta_v

    def clear_trajectory(self) -> None:
        self._trail.clear()

    # ------------------------------------------------------------------ #
    #  Queries
    # ------------------------------------------------------------------ #
    def get_orbital_elements(self, central_position: Optional[np.ndarray] = None,
                             mu: float = SUN_MU) -> OrbitalElements:
        """Heliocentric elements (relative to ``central_position``, default the origin)."""
        position = self.position
        if central_position is not None:
            position = position - np.asarray(central_position, dtype=float)
        return calculate_orbital_elements(position, self.velocity, mu)

    def get_telemetry(self) -> Dict:
        elements = self.get_orbital_elements()
        telemetry = {
            'name': self.name,
            'mission_time_days': self.mission_elapsed_time / SECONDS_PER_DAY,
            'distance_au': float(np.linalg.norm(self.position)),
            'position_au': self.position.tolist(),
            'speed': self.speed,
            'mass': self.total_mass,
            'fuel_percent': self.fuel_percent,
            'engine_status': 'ON' if self.engine_on else 'OFF',
        }
        telemetry.update(elements.to_dict())
        return telemetry

    def dispose(self) -> None:
        """Release the trail; the craft is inert afterwards."""
        self.engine_on = False
        self._trail.clear()

    def __repr__(self) -> str:
        return (f"{type(self).__name__}({self.name!r}, r={np.linalg.norm(self.position):.3f} AU, "
                f"v={self.speed:.2f} km/s)")


# ============================================================================
#  ENHANCED SPACECRAFT
# ============================================================================

class EnhancedSpacecraft(BasicSpacecraft):
    """
    Spacecraft with subsystems, manoeuvre planning and telemetry.

    The main-engine tank of the subsystem model is the craft's fuel store:
    ``fuel_mass`` reads and writes ``systems.propulsion.main.fuel``.

    Parameters
    ----------
    name : str
    initial_state : SpacecraftState, optional
        Defaults to the standard state with the configured main fuel load.
    config : dict, optional
        Subsystem configuration (see SpacecraftSystems).
    """

    def __init__(
        self,
        name: str,
        initial_state: Optional[SpacecraftState] = None,
        config: Optional[dict] = None,
        trail_length: int = TRAIL_LENGTH,
    ) -> None:
        self.systems = SpacecraftSystems(config)
        main = self.systems.propulsion.main
        if initial_state is None:
            initial_state = SpacecraftState(fuel_mass=main.fuel)

        super().__init__(
            name,
            initial_state,
            exhaust_velocity=main.isp * G0,
            thrust_power=main.thrust,
            trail_length=trail_length,
        )

        self.manoeuvre_nodes: List[ManoeuvreNode] = []
        self.executing_manoeuvre: Optional[ManoeuvreNode] = None
        self._burn_direction = np.zeros(3)
        self.mission_phase = MissionPhase.CRUISE
        self.target_body = None
        self.telemetry_history: Deque[Dict] = deque(maxlen=TELEMETRY_HISTORY_LENGTH)

    @property
    def fuel_mass(self) -> float:
        return self.systems.propulsion.main.fuel

    @fuel_mass.setter
    def fuel_mass(self, value: float) -> None:
        self.systems.propulsion.main.fuel = max(0.0, float(value))

    # ------------------------------------------------------------------ #
    #  Tick
    # ------------------------------------------------------------------ #
    def tick(self, dt: float, bodies: Iterable, time: float = 0.0) -> None:
        bodies = list(bodies)
        self.mission_elapsed_time += dt

        self.systems.update(self, bodies, dt, time)
        self._check_manoeuvre_execution(dt)

        acceleration = self._total_acceleration(bodies, dt, time)
        if self.executing_manoeuvre is not None:
            acceleration = acceleration + self._manoeuvre_acceleration(dt)
        acceleration = acceleration + self._ion_acceleration(dt)
        self.acceleration = acceleration

        self._integrate(dt)
        self._record_trajectory()
        self._record_telemetry()
        self._update_mission_phase(time)

    def _check_manoeuvre_execution(self, dt: float) -> None:
        # Every planned node keeps counting; only ignition waits for the engine.
        due = [node for node in self.manoeuvre_nodes if node.countdown(dt)]
        if due and self.executing_manoeuvre is None:
            self._start_manoeuvre(due[0])

    def _start_manoeuvre(self, node: ManoeuvreNode) -> None:
        node.recalculate_burn()
        if node.delta_v_magnitude <= 0.0:
            node.complete()
            self._discard_node(node)
            logger.info("Empty manoeuvre for %s completed without ignition", self.name)
            return

        result = self.systems.execute_burn(node.delta_v_magnitude, node.burn_duration, self)
        if not result.success:
            logger.error("Manoeuvre failed for %s: %s", self.name, result.reason.value)
            node.cancel()
            self._discard_node(node)
            return

        direction = convert_delta_v(node.delta_v, self.position, self.velocity)
        norm = np.linalg.norm(direction)
        self._burn_direction = direction / norm if norm > 0.0 else np.zeros(3)
        node.start()
        self.executing_manoeuvre = node
        logger.info("Starting manoeuvre for %s: %.3f km/s", self.name, node.delta_v_magnitude)

        if node.time_remaining <= 0.0:
            self._complete_manoeuvre()

    def _manoeuvre_acceleration(self, dt: float) -> np.ndarray:
        """Acceleration (m/s^2) of the executing burn, averaged over the tick."""
        node = self.executing_manoeuvre
        main = self.systems.propulsion.main
        burn_time = min(dt, node.time_remaining)

        acceleration = np.zeros(3)
        if burn_time > 0.0 and dt > 0.0:
            total_mass = self.mass + main.fuel
            thrust = main.fire(burn_time)
            acceleration = self._burn_direction * (thrust / total_mass) * (burn_time / dt)

        node.time_remaining -= dt
        if node.time_remaining <= 0.0:
            self._complete_manoeuvre()
        return acceleration

    def _complete_manoeuvre(self) -> None:
        node = self.executing_manoeuvre
        self.systems.propulsion.main.shutdown()
        node.complete()
        self._discard_node(node)
        self.executing_manoeuvre = None
        logger.info("Manoeuvre complete for %s", self.name)

    def _ion_acceleration(self, dt: float) -> np.ndarray:
        thrust = self.systems.propulsion.ion.consume(dt)
        if thrust <= 0.0 or self.speed == 0.0:
            return np.zeros(3)
        return self.velocity / self.speed * (thrust / self.total_mass)

    def _record_telemetry(self) -> None:
        self.telemetry_history.append({
            'time': self.mission_elapsed_time,
            'x': self.position[0],
            'y': self.position[1],
            'z': self.position[2],
            'speed': self.speed,
            'fuel': self.fuel_mass,
            'battery': self.systems.power.battery_charge,
            'temperature': self.systems.thermal.internal_temp,
        })

    def _update_mission_phase(self, time: float) -> None:
        eccentricity = self.get_orbital_elements().eccentricity
        distance, soi = None, 0.0
        if self.target_body is not None:
            target_position = np.asarray(self.target_body.position(time), dtype=float)
            distance = float(np.linalg.norm(self.position - target_position))
            soi = sphere_of_influence(self.target_body)
        self.mission_phase = determine_phase(distance, soi, eccentricity)

    # ------------------------------------------------------------------ #
    #  Manoeuvre queue
    # ------------------------------------------------------------------ #
    def add_manoeuvre_node(self, time_from_now: float) -> ManoeuvreNode:
        """Plan a burn ``time_from_now`` seconds ahead; the queue stays time-ordered."""
        node = ManoeuvreNode(self, time_from_now)
        self.manoeuvre_nodes.append(node)
        self.sort_manoeuvre_nodes()
        return node

    def sort_manoeuvre_nodes(self) -> None:
        """Restore ignition order; called whenever a node is retimed."""
        self.manoeuvre_nodes.sort(key=lambda n: n.time_from_now)

    def remove_manoeuvre_node(self, node: ManoeuvreNode) -> None:
        """Remove a node in any state; an executing burn is shut down."""
        if node is self.executing_manoeuvre:
            self.systems.propulsion.main.shutdown()
            self.executing_manoeuvre = None
        if node.state in (ManoeuvreState.PLANNED, ManoeuvreState.EXECUTING):
            node.cancel()
        self._discard_node(node)

    def _discard_node(self, node: ManoeuvreNode) -> None:
        if node in self.manoeuvre_nodes:
            self.manoeuvre_nodes.remove(node)

    # ------------------------------------------------------------------ #
    #  Mission
    # ------------------------------------------------------------------ #
    def set_target(self, body_name: str, bodies: Iterable) -> bool:
        """Select the target body by name; returns False if it is not found."""
        body = find_body(bodies, body_name)
        if body is None:
            logger.warning("Target body %s not found", body_name)
            return False
        self.target_body = body
        return True

    def telemetry_frame(self) -> pd.DataFrame:
        """Telemetry history as a DataFrame indexed by mission time (s)."""
        frame = pd.DataFrame(list(self.telemetry_history))
        if not frame.empty:
            frame = frame.set_index('time')
        return frame

    def get_telemetry(self) -> Dict:
        telemetry = super().get_telemetry()
        telemetry['engine_status'] = (
            'ON' if self.engine_on or self.systems.propulsion.main.is_firing else 'OFF')
        telemetry.update({
            'phase': self.mission_phase.name,
            'systems': self.systems.get_system_status(),
            'manoeuvres': len(self.manoeuvre_nodes),
            'next_manoeuvre_days': (self.manoeuvre_nodes[0].time_from_now / SECONDS_PER_DAY
                                    if self.manoeuvre_nodes else None),
            'executing': self.executing_manoeuvre is not None,
        })
        return telemetry

    def dispose(self) -> None:
        for node in list(self.manoeuvre_nodes):
            self.remove_manoeuvre_node(node)
        self.telemetry_history.clear()
        super().dispose()
