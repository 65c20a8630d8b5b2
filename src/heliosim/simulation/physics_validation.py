"""
===============================================================================
HELIOSIM - Physics Validation Scenarios
===============================================================================
Reference scenarios that check the integrator and the orbital-element
derivation against known two-body results.  Every scenario starts a basic
spacecraft at Earth's position with Earth's orbital velocity plus a
tangential (+Y at the epoch) delta-V:

    Scenario            Boost          Pass criteria
    ----------------    -----------    ------------------------------------
    Circular Orbit      0              after one year: |a - a0| < 0.001 AU,
                                       e < 0.02
    Prograde Boost      +5 km/s        apoapsis > 1.5 AU,
                                       |periapsis - 1| < 0.1 AU, e > 0.2
    Retrograde Boost    -5 km/s        periapsis < 0.8 AU,
                                       |apoapsis - 1| < 0.1 AU, e > 0.2
    Hohmann Transfer    dv1(1 -> 1.524 AU)
                                       |apoapsis - 1.524| < 0.05 AU,
                                       |periapsis - 1| < 0.05 AU
    Escape Velocity     +12.3 km/s     e >= 0.98

Only the circular scenario is integrated; the boosted scenarios inspect the
elements right after the impulse.  Gravity comes from the Sun alone so the
launch planet does not perturb the reference orbit.
===============================================================================
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence

import numpy as np
import pandas as pd

from heliosim.core.constants import AU_TO_KM, CELESTIAL_BODIES, SECONDS_PER_DAY, DAYS_PER_YEAR
from heliosim.dynamics.orbital_mechanics import OrbitalElements
from heliosim.dynamics.spacecraft import BasicSpacecraft, SpacecraftState
from heliosim.guidance.maneuver_planner import calculate_hohmann_transfer
from heliosim.simulation.ephemeris import CircularOrbitBody, sun_only

logger = logging.getLogger(__name__)

MARS_ORBIT_AU = 1.524
ESCAPE_BOOST = 12.3         # km/s
BOOST = 5.0                 # km/s


@dataclass
class ScenarioResult:
    """Outcome of one validation scenario."""
    test: str
    expected: str
    actual: str
    passed: bool
    elements: Optional[OrbitalElements] = None
    metrics: Dict[str, float] = field(default_factory=dict)


class PhysicsValidator:
    """
    Runs the reference scenarios.

    Parameters
    ----------
    dt : float
        Integration step (s) for the circular-orbit scenario.
    duration_days : float
        Length of the circular-orbit run.
    bodies : sequence, optional
        Gravitating bodies; the Sun alone by default.
    """

    def __init__(self, dt: float = 3600.0, duration_days: float = DAYS_PER_YEAR,
                 bodies: Optional[Sequence] = None):
        self.dt = float(dt)
        self.duration_days = float(duration_days)
        self.bodies = list(bodies) if bodies is not None else sun_only()

        earth = CELESTIAL_BODIES['earth']
        self.earth = CircularOrbitBody(earth['name'], earth['mu'], earth['semi_major_axis'],
                                       mass=earth['mass'], radius=earth['radius'])
        self.results: List[ScenarioResult] = []

    # ----- helpers ---------------------------------------------------------

    def _launch(self, name: str, prograde_boost: float) -> BasicSpacecraft:
        """Craft at Earth (t = 0) with Earth's velocity plus a +Y boost (km/s)."""
        state = SpacecraftState(
            position=self.earth.position(0.0),
            velocity=self.earth.velocity(0.0) + np.array([0.0, prograde_boost, 0.0]),
        )
        return BasicSpacecraft(name, state)

    def _record(self, result: ScenarioResult) -> ScenarioResult:
        self.results.append(result)
        logger.info("%-18s %s  (%s)", result.test, 'PASS' if result.passed else 'FAIL',
                    result.actual)
        return result

    # ----- scenarios -------------------------------------------------------

    def check_circular_orbit(self) -> ScenarioResult:
        craft = self._launch('Circular-Test', 0.0)
        initial = craft.get_orbital_elements()

        steps = int(round(self.duration_days * SECONDS_PER_DAY / self.dt))
        time = 0.0
        for _ in range(steps):
            craft.tick(self.dt, self.bodies, time)
            time += self.dt

        final = craft.get_orbital_elements()
        drift = abs(final.semi_major_axis - initial.semi_major_axis)
        passed = drift < 0.001 and final.eccentricity < 0.02
        return self._record(ScenarioResult(
            test='Circular Orbit',
            expected='Maintain 1.0 AU circular orbit',
            actual=f"a={final.semi_major_axis:.3f} AU, e={final.eccentricity:.4f}",
            passed=passed,
            elements=final,
            metrics={'drift_au': drift, 'days': steps * self.dt / SECONDS_PER_DAY},
        ))

    def check_prograde_boost(self) -> ScenarioResult:
        elements = self._launch('Prograde-Test', BOOST).get_orbital_elements()
        passed = (elements.apoapsis > 1.5
                  and abs(elements.periapsis - 1.0) < 0.1
                  and elements.eccentricity > 0.2)
        return self._record(ScenarioResult(
            test='Prograde Boost',
            expected='Raise apoapsis, periapsis ~ 1 AU',
            actual=(f"Ap={elements.apoapsis:.2f} AU, Pe={elements.periapsis:.2f} AU, "
                    f"e={elements.eccentricity:.3f}"),
            passed=passed,
            elements=elements,
        ))

    def check_retrograde_boost(self) -> ScenarioResult:
        elements = self._launch('Retrograde-Test', -BOOST).get_orbital_elements()
        passed = (elements.periapsis < 0.8
                  and abs(elements.apoapsis - 1.0) < 0.1
                  and elements.eccentricity > 0.2)
        return self._record(ScenarioResult(
            test='Retrograde Boost',
            expected='Lower periapsis, apoapsis ~ 1 AU',
            actual=(f"Ap={elements.apoapsis:.2f} AU, Pe={elements.periapsis:.2f} AU, "
                    f"e={elements.eccentricity:.3f}"),
            passed=passed,
            elements=elements,
        ))

    def check_hohmann_transfer(self) -> ScenarioResult:
        transfer = calculate_hohmann_transfer(1.0 * AU_TO_KM, MARS_ORBIT_AU * AU_TO_KM)
        elements = self._launch('Mars-Transfer', transfer.departure_delta_v).get_orbital_elements()
        passed = (abs(elements.apoapsis - MARS_ORBIT_AU) < 0.05
                  and abs(elements.periapsis - 1.0) < 0.05)
        return self._record(ScenarioResult(
            test='Hohmann Transfer',
            expected=f"Pe=1.0 AU, Ap={MARS_ORBIT_AU} AU",
            actual=f"Pe={elements.periapsis:.3f} AU, Ap={elements.apoapsis:.3f} AU",
            passed=passed,
            elements=elements,
            metrics={'departure_delta_v': transfer.departure_delta_v,
                     'transfer_time_days': transfer.transfer_time_days},
        ))

    def check_escape_velocity(self) -> ScenarioResult:
        elements = self._launch('Escape-Test', ESCAPE_BOOST).get_orbital_elements()
        return self._record(ScenarioResult(
            test='Escape Velocity',
            expected='e >= 1.0 (escape trajectory)',
            actual=f"e={elements.eccentricity:.3f}",
            passed=elements.eccentricity >= 0.98,
            elements=elements,
        ))

    # ----- suite -----------------------------------------------------------

    def run_all(self) -> pd.DataFrame:
        """
        Run every scenario in order.

        Returns
        -------
        pd.DataFrame
            One row per scenario (see ``get_summary_table``).
        """
        self.results = []
        self.check_circular_orbit()
        self.check_prograde_boost()
        self.check_retrograde_boost()
        self.check_hohmann_transfer()
        self.check_escape_velocity()

        passed = sum(r.passed for r in self.results)
        if passed == len(self.results):
            logger.info("All physics tests passed (%d/%d)", passed, len(self.results))
        else:
            logger.warning("Physics tests: %d/%d passed", passed, len(self.results))
        return self.get_summary_table()

    @property
    def all_passed(self) -> bool:
        return bool(self.results) and all(r.passed for r in self.results)

    def get_summary_table(self) -> pd.DataFrame:
        """Scenario name, expectation, observed values and pass flag."""
        rows = [{
            'test': r.test,
            'expected': r.expected,
            'actual': r.actual,
            'pass': r.passed,
        } for r in self.results]
        return pd.DataFrame(rows, columns=['test', 'expected', 'actual', 'pass'])
