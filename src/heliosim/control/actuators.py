"""
===============================================================================
HELIOSIM - Actuator Models
===============================================================================
Lumped actuator models carried by an enhanced spacecraft:

    ReactionWheelAssembly -- three-axis momentum store with a magnitude cap
    RCSThrusters          -- small hydrazine thrusters used to dump wheel
                             momentum
    MainEngine            -- chemical (or ion-class) main engine with an
                             ignition budget and a burn countdown
    IonEngine             -- low-thrust, high-Isp engine with continuous
                             xenon draw

Propellant flow follows the rocket relation mdot = F / (Isp * g0).

All units are SI except where noted: Newtons, seconds, kilograms, N m s.
===============================================================================
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

import numpy as np

from heliosim.core.constants import G0
from heliosim.core.errors import ConfigurationError

logger = logging.getLogger(__name__)


def mass_flow_rate(thrust: float, isp: float) -> float:
    """Propellant mass flow (kg/s) for ``thrust`` (N) at ``isp`` (s)."""
    if isp <= 0.0:
        return 0.0
    return thrust / (isp * G0)


# =============================================================================
# REACTION WHEELS
# =============================================================================

class ReactionWheelAssembly:
    """
    Three-axis reaction wheel set treated as a single momentum vector.

    The stored momentum magnitude can never exceed ``max_momentum``: any
    torque that would push past the cap is clipped by rescaling the vector
    back onto the limit sphere.

    Parameters
    ----------
    max_momentum : float
        Momentum capacity (N m s).
    max_torque : float
        Torque authority (N m).
    """

    def __init__(self, max_momentum: float = 50.0, max_torque: float = 0.1):
        self.max_momentum = float(max_momentum)
        self.max_torque = float(max_torque)
        self.momentum = np.zeros(3)

    @property
    def momentum_magnitude(self) -> float:
        return float(np.linalg.norm(self.momentum))

    @property
    def saturation_fraction(self) -> float:
        """Stored momentum as a fraction of capacity, in [0, 1]."""
        if self.max_momentum <= 0.0:
            return 1.0
        return self.momentum_magnitude / self.max_momentum

    def absorb(self, torque: np.ndarray, dt: float) -> None:
        """Integrate a body torque into wheel momentum, clamped to the cap."""
        self.momentum = self.momentum + np.asarray(torque, dtype=float) * dt
        self._clamp()

    def scale_momentum(self, factor: float) -> None:
        self.momentum = self.momentum * factor
        self._clamp()

    def _clamp(self) -> None:
        magnitude = self.momentum_magnitude
        if magnitude > self.max_momentum:
            self.momentum = self.momentum * (self.max_momentum / magnitude)

    def __repr__(self) -> str:
        return (f"ReactionWheelAssembly(|H|={self.momentum_magnitude:.2f}/"
                f"{self.max_momentum:.1f} Nms)")


# =============================================================================
# REACTION CONTROL SYSTEM
# =============================================================================

class RCSThrusters:
    """
    Reaction control thrusters used for momentum dumping.

    Each desaturation step burns ``fuel_rate * dt`` kg of propellant (never
    below zero) and bleeds 1 % of the wheel momentum per call.  An empty tank
    leaves the wheels untouched.
    """

    DESAT_FUEL_RATE = 0.01      # kg/s while dumping
    DESAT_MOMENTUM_DECAY = 0.99

    def __init__(self, fuel: float = 50.0, thrust: float = 10.0, isp: float = 220.0):
        self.fuel = float(fuel)
        self.thrust = float(thrust)
        self.isp = float(isp)

    def desaturate(self, wheels: ReactionWheelAssembly, dt: float) -> float:
        """
        Dump wheel momentum with the thrusters.

        Returns
        -------
        float
            Propellant consumed (kg).
        """
        if self.fuel <= 0.0:
            return 0.0
        used = min(self.fuel, self.DESAT_FUEL_RATE * dt)
        self.fuel = max(0.0, self.fuel - used)
        wheels.scale_momentum(self.DESAT_MOMENTUM_DECAY)
        return used

    def __repr__(self) -> str:
        return f"RCSThrusters(fuel={self.fuel:.2f} kg)"


# =============================================================================
# MAIN ENGINE
# =============================================================================

class EngineType(Enum):
    CHEMICAL = 'CHEMICAL'
    ION = 'ION'


class MainEngine:
    """
    Main propulsion engine.

    State variables:
        fuel, oxidizer        -- propellant loads (kg)
        throttle              -- 0 (off) to 1 (full)
        ignitions_used        -- count against ``ignitions``
        burn_time_remaining   -- countdown (s) of the commanded burn, advanced
                                 by simulated time only

    Parameters
    ----------
    engine_type : EngineType
    fuel, oxidizer : float
        kg.
    thrust : float
        Full-throttle thrust (N).
    isp : float
        Specific impulse (s).
    ignitions : int
        Restart budget.
    """

    def __init__(
        self,
        engine_type: EngineType = EngineType.CHEMICAL,
        fuel: float = 500.0,
        oxidizer: float = 800.0,
        thrust: float = 50000.0,
        isp: float = 350.0,
        ignitions: int = 10,
    ):
        self.engine_type = engine_type
        self.fuel = float(fuel)
        self.oxidizer = float(oxidizer)
        self.thrust = float(thrust)
        self.isp = float(isp)
        self.ignitions = int(ignitions)
        self.ignitions_used = 0
        self.throttle = 0.0
        self.burn_time_remaining = 0.0

    @property
    def exhaust_velocity(self) -> float:
        """Effective exhaust velocity (km/s)."""
        return self.isp * G0 / 1000.0

    @property
    def ignitions_remaining(self) -> int:
        return max(0, self.ignitions - self.ignitions_used)

    @property
    def is_firing(self) -> bool:
        return self.throttle > 0.0

    def ignite(self, duration: float) -> None:
        self.throttle = 1.0
        self.ignitions_used += 1
        self.burn_time_remaining = max(0.0, float(duration))

    def fire(self, dt: float) -> float:
        """
        Run the engine at the current throttle for ``dt`` seconds.

        Fuel is drawn at F / (Isp * g0), capped at what remains; thrust is
        scaled down in proportion when the tank runs dry mid-step.

        Returns
        -------
        float
            Average thrust delivered over ``dt`` (N).
        """
        if dt <= 0.0 or self.throttle <= 0.0 or self.fuel <= 0.0:
            return 0.0

        commanded = self.thrust * self.throttle
        wanted = mass_flow_rate(commanded, self.isp) * dt
        used = min(wanted, self.fuel)
        self.fuel = max(0.0, self.fuel - used)
        return commanded * (used / wanted) if wanted > 0.0 else 0.0

    def countdown(self, dt: float) -> None:
        """Advance the burn countdown; the throttle drops to 0 when it expires."""
        if self.throttle <= 0.0:
            return
        self.burn_time_remaining -= dt
        if self.burn_time_remaining <= 0.0:
            self.shutdown()

    def shutdown(self) -> None:
        self.throttle = 0.0
        self.burn_time_remaining = 0.0

    def __repr__(self) -> str:
        return (f"MainEngine({self.engine_type.value}, fuel={self.fuel:.1f} kg, "
                f"ignitions={self.ignitions_used}/{self.ignitions})")


# =============================================================================
# ION ENGINE
# =============================================================================

class IonEngine:
    """
    Gridded ion thruster with continuous xenon consumption.

    Parameters
    ----------
    xenon : float
        Propellant load (kg).
    thrust : float
        N.
    isp : float
        s.
    power : float
        Electrical load while active (W).
    """

    def __init__(self, xenon: float = 100.0, thrust: float = 0.09,
                 isp: float = 3000.0, power: float = 2000.0):
        self.xenon = float(xenon)
        self.thrust = float(thrust)
        self.isp = float(isp)
        self.power = float(power)
        self.active = False

    def consume(self, dt: float) -> float:
        """
        Draw xenon for ``dt`` seconds of operation.

        The engine switches itself off when the tank is empty.

        Returns
        -------
        float
            Average thrust delivered (N).
        """
        if not self.active or dt <= 0.0:
            return 0.0
        if self.xenon <= 0.0:
            self.active = False
            logger.info("Ion engine shut down: xenon depleted")
            return 0.0

        wanted = mass_flow_rate(self.thrust, self.isp) * dt
        used = min(wanted, self.xenon)
        self.xenon = max(0.0, self.xenon - used)
        return self.thrust * (used / wanted) if wanted > 0.0 else 0.0

    def __repr__(self) -> str:
        state = 'ON' if self.active else 'OFF'
        return f"IonEngine({state}, xenon={self.xenon:.2f} kg)"


@dataclass
class PropulsionSystem:
    """The two independent propulsion stores of an enhanced spacecraft."""
    main: MainEngine = field(default_factory=MainEngine)
    ion: IonEngine = field(default_factory=IonEngine)

    def status(self) -> dict:
        return {
            'engine_type': self.main.engine_type.value,
            'fuel': self.main.fuel,
            'oxidizer': self.main.oxidizer,
            'throttle': self.main.throttle,
            'ignitions_remaining': self.main.ignitions_remaining,
            'burn_time_remaining': self.main.burn_time_remaining,
            'xenon': self.ion.xenon,
            'ion_active': self.ion.active,
        }


def build_propulsion(config: Optional[dict] = None) -> PropulsionSystem:
    """Create a PropulsionSystem from a flat subsystem config dict."""
    config = config or {}
    name = str(config.get('engine_type', 'CHEMICAL')).upper()
    try:
        engine_type = EngineType(name)
    except ValueError:
        raise ConfigurationError(f"Unknown engine type: {name}") from None
    main = MainEngine(
        engine_type=engine_type,
        fuel=config.get('fuel_capacity', 500.0),
        oxidizer=config.get('oxidizer_capacity', 800.0),
        thrust=config.get('main_engine_thrust', 50000.0),
        isp=config.get('main_engine_isp', 350.0),
        ignitions=config.get('max_ignitions', 10),
    )
    ion = IonEngine(
        xenon=config.get('xenon_capacity', 100.0),
        thrust=config.get('ion_thrust', 0.09),
        isp=config.get('ion_isp', 3000.0),
        power=config.get('ion_power', 2000.0),
    )
    return PropulsionSystem(main=main, ion=ion)
