"""
===============================================================================
HELIOSIM - Simulation Engine
===============================================================================
Owns the celestial bodies, the simulation clock and a fleet of spacecraft,
and advances all of them in fixed sub-steps.  Telemetry for every craft is
logged to a pandas DataFrame for post-run analysis.

Each step:

    1. split the requested interval into sub-steps of at most ``max_step``
    2. tick every spacecraft against the bodies at the sub-step epoch
    3. log one telemetry record per spacecraft

Typical use:

    engine = SimulationEngine({'max_step': 3600.0})
    craft = engine.launch('Voyager', from_body='earth', delta_v=(0, 3, 0))
    engine.run(365.25 * 86400, dt=3600.0)
    df = engine.get_telemetry(craft)
===============================================================================
"""

import logging
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional, Sequence

import numpy as np
import pandas as pd

from heliosim.core.constants import SECONDS_PER_DAY
from heliosim.core.errors import ConfigurationError
from heliosim.dynamics.environment import find_body
from heliosim.dynamics.spacecraft import BasicSpacecraft, EnhancedSpacecraft
from heliosim.simulation.ephemeris import body_velocity, default_solar_system
from heliosim.simulation.factory import SpacecraftFactory
from heliosim.simulation.time_controller import TimeController

logger = logging.getLogger(__name__)


class SimulationEngine:
    """
    Fleet-level orchestrator.

    Parameters
    ----------
    config : dict, optional
        - 'max_step'   : float -- largest integration sub-step (s), default 3600
        - 'time_scale' : float -- days per real second for ``advance``, default 1
        - 'epoch'      : str   -- ISO date of simulation start
    bodies : list, optional
        CelestialBodyRef objects; defaults to ``default_solar_system()``.
    factory : SpacecraftFactory, optional

    Attributes
    ----------
    current_time : float
        Simulated seconds since the epoch.
    spacecraft : list
        Active spacecraft, in launch order.
    """

    def __init__(self, config: Optional[Dict[str, Any]] = None,
                 bodies: Optional[Sequence] = None,
                 factory: Optional[SpacecraftFactory] = None) -> None:
        self.config = dict(config or {})
        self.max_step: float = float(self.config.get('max_step', 3600.0))
        if self.max_step <= 0.0:
            raise ConfigurationError(f"max_step must be positive, got {self.max_step}")

        epoch = self.config.get('epoch')
        self.time_controller = TimeController(
            epoch=datetime.fromisoformat(epoch) if epoch else None,
            time_scale=self.config.get('time_scale', 1.0),
        )
        self.bodies: List = list(bodies) if bodies is not None else default_solar_system()
        self.factory = factory if factory is not None else SpacecraftFactory()

        self.current_time: float = 0.0
        self.spacecraft: List[BasicSpacecraft] = []
        self._telemetry: Dict[str, List[Dict[str, Any]]] = {}
        self._initial_fuel: Dict[str, float] = {}

        logger.info("Simulation engine created: %d bodies, max step %.0f s",
                    len(self.bodies), self.max_step)

    # =========================================================================
    # FLEET MANAGEMENT
    # =========================================================================

    def launch(self, name: str, from_body: str = 'earth',
               delta_v: Sequence[float] = (0.0, 0.0, 0.0),
               preset: Optional[str] = None) -> BasicSpacecraft:
        """
        Place a spacecraft at a body with the body's orbital velocity plus
        ``delta_v`` (km/s, inertial).

        Parameters
        ----------
        name : str
        from_body : str
            Launch body name (case-insensitive).
        delta_v : sequence of 3 floats
            Velocity added to the body's heliocentric velocity (km/s).
        preset : str, optional
            Factory preset; a default basic craft when omitted.

        Raises
        ------
        ConfigurationError
            If the body or preset is unknown, or the name is already
            taken by a craft of this engine.
        """
        self._check_name_free(name)
        body = find_body(self.bodies, from_body)
        if body is None:
            raise ConfigurationError(f"Unknown launch body: {from_body}")

        position = np.asarray(body.position(self.current_time), dtype=float)
        planet_velocity = body_velocity(body, self.current_time)
        boost = np.asarray(delta_v, dtype=float)
        velocity = planet_velocity + boost

        state = {'position': position, 'velocity': velocity}
        if preset is None:
            craft = self.factory.create_basic(name, state)
        else:
            craft = self.factory.create_from_preset(preset, name, state)

        self._register(craft)

        logger.info(
            "Launched %s from %s: position [%.3f, %.3f, %.3f] AU, planet speed %.2f km/s, "
            "total speed %.2f km/s, delta-V %.2f km/s",
            craft.name, body.name, position[0], position[1], position[2],
            float(np.linalg.norm(planet_velocity)), craft.speed,
            float(np.linalg.norm(boost)),
        )
        return craft

    def add_spacecraft(self, craft: BasicSpacecraft) -> BasicSpacecraft:
        """Adopt an already constructed spacecraft."""
        self._check_name_free(craft.name)
        self._register(craft)
        return craft

    def _check_name_free(self, name: str) -> None:
        # Telemetry is keyed by name and outlives removal, so names are never reused.
        if name in self._telemetry:
            raise ConfigurationError(f"Spacecraft name already in use: {name}")

    def _register(self, craft: BasicSpacecraft) -> None:
        self.spacecraft.append(craft)
        self._telemetry[craft.name] = []
        self._initial_fuel[craft.name] = craft.fuel_mass

    def remove_spacecraft(self, craft: BasicSpacecraft) -> bool:
        """Remove and dispose a spacecraft; its logged telemetry is kept."""
        if craft not in self.spacecraft:
            return False
        self.spacecraft.remove(craft)
        craft.dispose()
        logger.info("Removed spacecraft %s", craft.name)
        return True

    # =========================================================================
    # TIME STEPPING
    # =========================================================================

    def step(self, dt: float) -> None:
        """Advance every spacecraft by ``dt`` seconds in sub-steps of at most max_step."""
        remaining = float(dt)
        while remaining > 0.0:
            h = min(remaining, self.max_step)
            for craft in self.spacecraft:
                craft.tick(h, self.bodies, self.current_time)
            self.current_time += h
            remaining -= h
            self._log_telemetry()

    def run(self, duration: float, dt: Optional[float] = None) -> pd.DataFrame:
        """
        Advance by ``duration`` seconds in steps of ``dt`` (default max_step).

        Returns
        -------
        pd.DataFrame
            Telemetry of the whole fleet.
        """
        dt = float(dt) if dt else self.max_step
        end_time = self.current_time + duration
        steps = 0
        while self.current_time < end_time - 1e-9:
            self.step(min(dt, end_time - self.current_time))
            steps += 1
        logger.info("Run complete: %d steps, %.2f days simulated", steps,
                    duration / SECONDS_PER_DAY)
        return self.get_telemetry()

    def advance(self, real_seconds: float) -> float:
        """
        Advance by wall-clock time through the time controller.

        Returns
        -------
        float
            Simulated seconds elapsed.
        """
        sim_seconds = self.time_controller.update(real_seconds)
        if sim_seconds > 0.0:
            self.step(sim_seconds)
        return sim_seconds

    @property
    def current_date(self) -> datetime:
        return self.time_controller.start_date + timedelta(seconds=self.current_time)

    # =========================================================================
    # TELEMETRY
    # =========================================================================

    def _log_telemetry(self) -> None:
        for craft in self.spacecraft:
            elements = craft.get_orbital_elements()
            record = {
                'time': self.current_time,
                'pos_x': craft.position[0],
                'pos_y': craft.position[1],
                'pos_z': craft.position[2],
                'vel_x': craft.velocity[0],
                'vel_y': craft.velocity[1],
                'vel_z': craft.velocity[2],
                'speed': craft.speed,
                'distance_au': float(np.linalg.norm(craft.position)),
                'fuel': craft.fuel_mass,
                'engine_on': craft.engine_on,
                'semi_major_axis': elements.semi_major_axis,
                'eccentricity': elements.eccentricity,
                'specific_energy': elements.specific_energy,
            }
            if isinstance(craft, EnhancedSpacecraft):
                record['phase'] = craft.mission_phase.name
                record['battery'] = craft.systems.power.battery_charge
                record['temperature'] = craft.systems.thermal.internal_temp
            self._telemetry.setdefault(craft.name, []).append(record)

    def get_telemetry(self, craft: Optional[BasicSpacecraft] = None) -> pd.DataFrame:
        """
        Telemetry as a DataFrame indexed by simulation time (s).

        Parameters
        ----------
        craft : spacecraft, optional
            One craft; every craft (with a 'spacecraft' column) when omitted.
        """
        if craft is not None:
            records = self._telemetry.get(craft.name, [])
        else:
            records = [dict(r, spacecraft=name)
                       for name, rows in self._telemetry.items() for r in rows]

        if not records:
            logger.warning("No telemetry recorded.")
            return pd.DataFrame()

        df = pd.DataFrame(records)
        df.set_index('time', inplace=True)
        return df

    def save_telemetry(self, craft: Optional[BasicSpacecraft], filepath: str) -> None:
        """Write telemetry of one craft (or the whole fleet for None) to CSV."""
        df = self.get_telemetry(craft)
        df.to_csv(filepath)
        logger.info("Telemetry saved to %s  (%d records)", filepath, len(df))

    # =========================================================================
    # MISSION SUMMARY
    # =========================================================================

    def get_mission_summary(self) -> Dict[str, Any]:
        """
        Per-craft summary of the run so far.

        Returns
        -------
        dict
            total_time_days : float
            spacecraft      : dict of name -> {distance_au, speed, fuel_consumed,
                              eccentricity, semi_major_axis, phase}
        """
        fleet = {}
        for craft in self.spacecraft:
            elements = craft.get_orbital_elements()
            fleet[craft.name] = {
                'distance_au': float(np.linalg.norm(craft.position)),
                'speed': craft.speed,
                'fuel_consumed': self._initial_fuel.get(craft.name, 0.0) - craft.fuel_mass,
                'eccentricity': elements.eccentricity,
                'semi_major_axis': elements.semi_major_axis,
                'phase': (craft.mission_phase.name
                          if isinstance(craft, EnhancedSpacecraft) else None),
            }

        summary = {
            'total_time_days': self.current_time / SECONDS_PER_DAY,
            'spacecraft': fleet,
        }

        logger.info("Mission Summary: %.2f days, %d spacecraft",
                    summary['total_time_days'], len(fleet))
        for name, values in fleet.items():
            logger.info("  %-20s r=%.3f AU  v=%.2f km/s  e=%.4f",
                        name, values['distance_au'], values['speed'], values['eccentricity'])
        return summary

    def __repr__(self) -> str:
        return (
            f"SimulationEngine(t={self.current_time / SECONDS_PER_DAY:.2f} d, "
            f"spacecraft={len(self.spacecraft)}, bodies={len(self.bodies)})"
        )
