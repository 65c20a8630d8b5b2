"""
===============================================================================
HELIOSIM - Manoeuvre Node
===============================================================================
A scheduled main-engine burn owned by one enhanced spacecraft.

Life cycle:

    PLANNED  --countdown reaches 0-->  EXECUTING  --burn time elapses-->  COMPLETED
       |                                   |
       +-------------- removed ------------+-->  CANCELLED

The node stores its delta-V in the RSW frame of the burn point (radial,
prograde, normal; km/s).  Burn duration and propellant are derived with the
rocket equation from the owning craft's main engine, and the burn point is
predicted with two-body Kepler propagation.  Every setter recomputes the
derived values.
===============================================================================
"""

import logging
from enum import Enum
from typing import Optional

import numpy as np

from heliosim.core.constants import SUN_MU
from heliosim.core.frames import convert_delta_v
from heliosim.dynamics.orbital_mechanics import propagate_kepler
from heliosim.guidance.maneuver_planner import calculate_fuel_required
from heliosim.control.actuators import mass_flow_rate

logger = logging.getLogger(__name__)


class ManoeuvreState(Enum):
    PLANNED = 'PLANNED'
    EXECUTING = 'EXECUTING'
    COMPLETED = 'COMPLETED'
    CANCELLED = 'CANCELLED'


class ManoeuvreNode:
    """
    Planned burn.

    Args:
        spacecraft: Owning EnhancedSpacecraft.
        time_from_now: Countdown to ignition (s).

    Attributes:
        delta_v: RSW delta-V [radial, prograde, normal] (km/s).
        burn_duration: Derived burn length (s).
        fuel_required: Derived main-engine propellant (kg).
        predicted_position: Position at ignition (AU).
        predicted_velocity: Velocity at ignition (km/s).
        time_remaining: Burn countdown while EXECUTING (s).
    """

    def __init__(self, spacecraft, time_from_now: float = 0.0):
        self.spacecraft = spacecraft
        self.time_from_now = max(0.0, float(time_from_now))
        self.delta_v = np.zeros(3)
        self.burn_duration = 0.0
        self.fuel_required = 0.0
        self.time_remaining = 0.0
        self.state = ManoeuvreState.PLANNED
        self.predicted_position = np.array(spacecraft.position, dtype=float)
        self.predicted_velocity = np.array(spacecraft.velocity, dtype=float)
        self.update_prediction()

    # ----- properties -----

    @property
    def delta_v_magnitude(self) -> float:
        return float(np.linalg.norm(self.delta_v))

    @property
    def is_executing(self) -> bool:
        return self.state == ManoeuvreState.EXECUTING

    @property
    def is_finished(self) -> bool:
        return self.state in (ManoeuvreState.COMPLETED, ManoeuvreState.CANCELLED)

    # ----- planning -----

    def set_delta_v(self, radial: float = 0.0, prograde: float = 0.0,
                    normal: float = 0.0) -> None:
        """Set the RSW burn components (km/s) and recompute the burn budget."""
        self.delta_v = np.array([radial, prograde, normal], dtype=float)
        self.recalculate_burn()

    def set_time_from_now(self, seconds: float) -> None:
        """Retime the ignition; the owner's queue is re-sorted."""
        self.time_from_now = max(0.0, float(seconds))
        self.update_prediction()
        self.recalculate_burn()
        self.spacecraft.sort_manoeuvre_nodes()

    def recalculate_burn(self) -> None:
        main = self.spacecraft.systems.propulsion.main
        total_mass = self.spacecraft.mass + main.fuel
        self.fuel_required = calculate_fuel_required(
            self.delta_v_magnitude, total_mass, main.exhaust_velocity)
        flow = mass_flow_rate(main.thrust, main.isp)
        self.burn_duration = self.fuel_required / flow if flow > 0.0 else 0.0

    def update_prediction(self) -> None:
        """Predict the spacecraft state at ignition."""
        self.predicted_position, self.predicted_velocity = propagate_kepler(
            self.spacecraft.position, self.spacecraft.velocity,
            self.time_from_now, SUN_MU)

    def inertial_delta_v(self, position: Optional[np.ndarray] = None,
                         velocity: Optional[np.ndarray] = None) -> np.ndarray:
        """Delta-V (km/s) in inertial axes, by default at the predicted burn point."""
        if position is None:
            position = self.predicted_position
        if velocity is None:
            velocity = self.predicted_velocity
        return convert_delta_v(self.delta_v, position, velocity)

    def preview_trajectory(self, steps: int = 100,
                           step_seconds: float = 86400.0) -> np.ndarray:
        """
        Positions (AU) along the post-burn orbit, starting at the burn point.

        Returns:
            Array of shape (steps, 3).
        """
        position = np.array(self.predicted_position, dtype=float)
        velocity = self.predicted_velocity + self.inertial_delta_v()
        points = np.zeros((max(steps, 0), 3))
        for k in range(points.shape[0]):
            points[k] = position
            position, velocity = propagate_kepler(position, velocity, step_seconds, SUN_MU)
        return points

    # ----- state machine -----

    def countdown(self, dt: float) -> bool:
        """
        Advance the ignition countdown.

        Returns:
            True once the node is due for ignition.
        """
        if self.state != ManoeuvreState.PLANNED:
            return False
        self.time_from_now = max(0.0, self.time_from_now - dt)
        return self.time_from_now <= 0.0

    def start(self) -> None:
        self.state = ManoeuvreState.EXECUTING
        self.time_remaining = self.burn_duration

    def complete(self) -> None:
        self.state = ManoeuvreState.COMPLETED
        self.time_remaining = 0.0

    def cancel(self) -> None:
        self.state = ManoeuvreState.CANCELLED
        self.time_remaining = 0.0

    def summary(self) -> dict:
        return {
            'state': self.state.value,
            'time_from_now': self.time_from_now,
            'delta_v': self.delta_v.tolist(),
            'delta_v_magnitude': self.delta_v_magnitude,
            'burn_duration': self.burn_duration,
            'fuel_required': self.fuel_required,
        }

    def __repr__(self) -> str:
        return (f"ManoeuvreNode({self.state.value}, T-{self.time_from_now:.0f} s, "
                f"dv={self.delta_v_magnitude:.3f} km/s)")
