"""
Attitude Control System
=======================

Pointing controller for an enhanced spacecraft.

Pointing modes:
  - INERTIAL      hold the current orientation (controller idle)
  - PROGRADE      body +Y along the velocity vector
  - RETROGRADE    body +Y against the velocity vector
  - RADIAL        body +Y away from the Sun
  - NORMAL        body +Y along the orbit normal r x v
  - SUN_POINTING  body +X toward the Sun (solar panels)

Control law:
  The attitude error is the rotation q_err = q_target * q^-1.  Outside a
  0.01 rad deadband a proportional torque tau = Kp * angle * axis (limited
  to the wheel torque authority) is absorbed by the reaction wheels and the
  body slews about the error axis, never past the target.

Momentum management:
  Once stored wheel momentum reaches 80 % of capacity the wheels take no
  further torque.  Every active tick is then spent dumping momentum through
  the RCS, which costs RCS propellant each tick until the wheels recover.
"""

import logging
from enum import Enum
from typing import Optional

import numpy as np

from heliosim.control.actuators import RCSThrusters, ReactionWheelAssembly
from heliosim.core.quaternion import Quaternion

logger = logging.getLogger(__name__)

BODY_X = np.array([1.0, 0.0, 0.0])
BODY_Y = np.array([0.0, 1.0, 0.0])


class AttitudeMode(Enum):
    INERTIAL = 'INERTIAL'
    PROGRADE = 'PROGRADE'
    RETROGRADE = 'RETROGRADE'
    RADIAL = 'RADIAL'
    NORMAL = 'NORMAL'
    SUN_POINTING = 'SUN_POINTING'


class AttitudeControlSystem:
    """
    Proportional pointing controller with wheel/RCS actuator arbitration.

    Parameters
    ----------
    wheels : ReactionWheelAssembly, optional
    rcs : RCSThrusters, optional
    kp : float
        Proportional gain (N m / rad).
    deadband : float
        Pointing error (rad) below which no torque is commanded.
    saturation_threshold : float
        Wheel momentum fraction above which the RCS takes over.
    """

    RATE_GAIN = 0.1     # rad/s of body rate per N m of commanded torque

    def __init__(
        self,
        wheels: Optional[ReactionWheelAssembly] = None,
        rcs: Optional[RCSThrusters] = None,
        kp: float = 0.1,
        deadband: float = 0.01,
        saturation_threshold: float = 0.8,
    ):
        self.wheels = wheels if wheels is not None else ReactionWheelAssembly()
        self.rcs = rcs if rcs is not None else RCSThrusters()
        self.kp = kp
        self.deadband = deadband
        self.saturation_threshold = saturation_threshold

        self.mode = AttitudeMode.INERTIAL
        self.orientation = Quaternion.identity()
        self.angular_velocity = np.zeros(3)
        self.pointing_error = 0.0

    # ----- public API -----

    def set_mode(self, mode: AttitudeMode) -> None:
        if mode != self.mode:
            logger.debug("Attitude mode %s -> %s", self.mode.value, mode.value)
        self.mode = mode

    @property
    def is_active(self) -> bool:
        return self.mode != AttitudeMode.INERTIAL

    @property
    def wheels_near_saturation(self) -> bool:
        return self.wheels.saturation_fraction >= self.saturation_threshold

    def target_orientation(self, position: np.ndarray,
                           velocity: np.ndarray) -> Optional[Quaternion]:
        """
        Orientation that satisfies the current pointing mode.

        Returns None in INERTIAL mode.
        """
        r = np.asarray(position, dtype=float)
        v = np.asarray(velocity, dtype=float)

        if self.mode == AttitudeMode.PROGRADE:
            return Quaternion.from_two_vectors(BODY_Y, v)
        if self.mode == AttitudeMode.RETROGRADE:
            return Quaternion.from_two_vectors(BODY_Y, -v)
        if self.mode == AttitudeMode.RADIAL:
            return Quaternion.from_two_vectors(BODY_Y, r)
        if self.mode == AttitudeMode.NORMAL:
            return Quaternion.from_two_vectors(BODY_Y, np.cross(r, v))
        if self.mode == AttitudeMode.SUN_POINTING:
            return Quaternion.from_two_vectors(BODY_X, -r)
        return None

    def update(self, position: np.ndarray, velocity: np.ndarray, dt: float) -> None:
        """
        Advance the controller by ``dt`` seconds.

        Parameters
        ----------
        position : ndarray (3,)
            Heliocentric position (AU); the Sun direction is -position.
        velocity : ndarray (3,)
            Heliocentric velocity (km/s).
        dt : float
            Simulated step (s).
        """
        if not self.is_active or dt <= 0.0:
            self.angular_velocity = np.zeros(3)
            return

        if self.wheels_near_saturation:
            self.rcs.desaturate(self.wheels, dt)
            self.angular_velocity = np.zeros(3)
            return

        target = self.target_orientation(position, velocity)
        error = target * self.orientation.inverse()
        angle = error.rotation_angle
        self.pointing_error = angle
        if angle < self.deadband:
            self.angular_velocity = np.zeros(3)
            return

        axis = error.rotation_axis
        torque = self.kp * angle * axis
        torque_mag = np.linalg.norm(torque)
        if torque_mag > self.wheels.max_torque:
            torque *= self.wheels.max_torque / torque_mag

        self.wheels.absorb(torque, dt)
        self.angular_velocity = torque * self.RATE_GAIN

        step = min(float(np.linalg.norm(self.angular_velocity)) * dt, angle)
        self.orientation = Quaternion.from_axis_angle(axis, step) * self.orientation
        self.pointing_error = self.orientation.angle_to(target)

    def status(self) -> dict:
        return {
            'mode': self.mode.value,
            'pointing_error': self.pointing_error,
            'wheel_momentum': self.wheels.momentum_magnitude,
            'wheel_saturation': self.wheels.saturation_fraction,
            'rcs_fuel': self.rcs.fuel,
        }
