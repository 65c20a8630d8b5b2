"""
===============================================================================
HELIOSIM - Spacecraft Integrator Test Suite
===============================================================================
Tests for BasicSpacecraft and EnhancedSpacecraft: the semi-implicit Euler
step, the manual engine, impulsive manoeuvres, the trajectory trail,
telemetry, the manoeuvre queue and mission-phase tracking.
===============================================================================
"""

import sys
import os

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

import logging
import math

import numpy as np
import pytest
from numpy.testing import assert_allclose

from heliosim.core.constants import AU_TO_KM, G0, SUN_MU
from heliosim.dynamics.orbital_mechanics import gravitational_acceleration, validate_physics
from heliosim.dynamics.spacecraft import BasicSpacecraft, EnhancedSpacecraft, SpacecraftState
from heliosim.guidance.manoeuvre_node import ManoeuvreState
from heliosim.guidance.mission_planner import MissionPhase
from heliosim.simulation.ephemeris import default_solar_system, sun_only


# =============================================================================
# Fixtures
# =============================================================================

@pytest.fixture
def circular_speed():
    return math.sqrt(SUN_MU / AU_TO_KM)


@pytest.fixture
def sun_bodies():
    return sun_only()


@pytest.fixture
def basic_craft(circular_speed):
    state = SpacecraftState(position=np.array([1.0, 0.0, 0.0]),
                            velocity=np.array([0.0, circular_speed, 0.0]))
    return BasicSpacecraft('Probe', state)


@pytest.fixture
def enhanced_craft(circular_speed):
    state = SpacecraftState(position=np.array([1.0, 0.0, 0.0]),
                            velocity=np.array([0.0, circular_speed, 0.0]),
                            mass=1000.0, fuel_mass=500.0)
    return EnhancedSpacecraft('Explorer', state)


# =============================================================================
# Integration step
# =============================================================================

class TestIntegrator:

    def test_default_state(self):
        craft = BasicSpacecraft('Default')
        assert_allclose(craft.position, [1.0, 0.0, 0.0])
        assert_allclose(craft.velocity, [0.0, 30.0, 0.0])
        assert craft.total_mass == pytest.approx(1500.0)
        assert len(craft.trajectory) == 1

    def test_zero_position_moved_to_one_au(self):
        craft = BasicSpacecraft('Origin', SpacecraftState(position=np.zeros(3)))
        assert_allclose(craft.position, [1.0, 0.0, 0.0])

    def test_coasting_without_bodies(self):
        craft = BasicSpacecraft('Coast', SpacecraftState(velocity=np.array([1.0, 2.0, 3.0])))
        craft.tick(1000.0, [])
        assert_allclose(craft.velocity, [1.0, 2.0, 3.0])
        assert_allclose(craft.position, [1.0 + 1000.0 / AU_TO_KM,
                                         2000.0 / AU_TO_KM,
                                         3000.0 / AU_TO_KM])

    def test_semi_implicit_euler(self, basic_craft, sun_bodies):
        x0 = basic_craft.position.copy()
        v0 = basic_craft.velocity.copy()
        dt = 3600.0
        a0 = gravitational_acceleration(x0, sun_bodies)

        basic_craft.tick(dt, sun_bodies)

        v1 = v0 + a0 * dt / 1000.0
        assert_allclose(basic_craft.acceleration, a0)
        assert_allclose(basic_craft.velocity, v1, rtol=1e-12)
        assert_allclose(basic_craft.position, x0 + v1 * dt / AU_TO_KM, rtol=1e-12)
        assert basic_craft.mission_elapsed_time == dt

    def test_circular_orbit_stays_circular(self, basic_craft, sun_bodies):
        for _ in range(24 * 90):
            basic_craft.tick(3600.0, sun_bodies)
        elements = basic_craft.get_orbital_elements()
        assert elements.semi_major_axis == pytest.approx(1.0, abs=1e-3)
        assert elements.eccentricity < 0.02
        assert np.linalg.norm(basic_craft.position) == pytest.approx(1.0, abs=2e-3)

    def test_specific_energy_conserved(self, circular_speed, sun_bodies):
        craft = BasicSpacecraft('Elliptic', SpacecraftState(
            position=np.array([1.0, 0.0, 0.0]),
            velocity=np.array([0.0, 1.1 * circular_speed, 0.0])))
        energy0 = craft.get_orbital_elements().specific_energy
        assert energy0 < 0.0
        for _ in range(365):
            for _ in range(24):
                craft.tick(3600.0, sun_bodies)
            energy = craft.get_orbital_elements().specific_energy
            assert energy == pytest.approx(energy0, rel=0.01)

    def test_measured_period_matches_kepler(self, basic_craft, sun_bodies):
        predicted = basic_craft.get_orbital_elements().period
        position0 = basic_craft.position.copy()
        velocity0 = basic_craft.velocity.copy()
        dt = 3600.0
        measured = None
        previous_y = basic_craft.position[1]
        for step in range(1, 24 * 400):
            basic_craft.tick(dt, sun_bodies)
            y = basic_craft.position[1]
            if previous_y < 0.0 <= y:
                fraction = -previous_y / (y - previous_y)
                measured = (step - 1 + fraction) * dt / 86400.0
                break
            previous_y = y

        assert measured is not None
        assert measured == pytest.approx(predicted, rel=0.01)
        result = validate_physics(position0, velocity0, SUN_MU, measured_period=measured)
        assert result.kepler_valid

    def test_elements_relative_to_central_position(self, circular_speed):
        craft = BasicSpacecraft('Offset', SpacecraftState(
            position=np.array([3.0, 0.0, 0.0]), velocity=np.array([0.0, circular_speed, 0.0])))
        elements = craft.get_orbital_elements(central_position=np.array([2.0, 0.0, 0.0]))
        assert elements.semi_major_axis == pytest.approx(1.0, rel=1e-9)


# =============================================================================
# Manual engine and impulses
# =============================================================================

class TestManualEngine:

    def test_burn_consumes_fuel_and_accelerates(self):
        craft = BasicSpacecraft('Burner', SpacecraftState(velocity=np.zeros(3)),
                                exhaust_velocity=3000.0, thrust_power=50000.0)
        craft.set_thrust(np.array([0.0, 2.0, 0.0]), on=True)
        craft.tick(10.0, [])

        used = 50000.0 / (3000.0 * G0) * 10.0
        assert craft.fuel_mass == pytest.approx(500.0 - used)
        expected_dv = 50000.0 / (1000.0 + craft.fuel_mass) * 10.0 / 1000.0
        assert_allclose(craft.velocity, [0.0, expected_dv, 0.0], rtol=1e-12)
        assert craft.engine_on

    def test_engine_shuts_down_when_dry(self):
        craft = BasicSpacecraft('Dry', SpacecraftState(fuel_mass=1.0))
        craft.set_thrust(np.array([0.0, 1.0, 0.0]))
        craft.tick(10.0, [])
        assert craft.fuel_mass == 0.0
        craft.tick(10.0, [])
        assert not craft.engine_on
        assert craft.fuel_percent == 0.0

    def test_cannot_ignite_without_fuel(self):
        craft = BasicSpacecraft('Empty', SpacecraftState(fuel_mass=0.0))
        craft.set_thrust(np.array([0.0, 1.0, 0.0]), on=True)
        assert not craft.engine_on

    def test_apply_maneuver(self, basic_craft):
        v0 = basic_craft.velocity.copy()
        basic_craft.apply_maneuver(2.0, np.array([0.0, 0.0, 5.0]))
        assert_allclose(basic_craft.velocity, v0 + [0.0, 0.0, 2.0])

    def test_apply_maneuver_zero_direction_is_ignored(self, basic_craft):
        v0 = basic_craft.velocity.copy()
        basic_craft.apply_maneuver(2.0, np.zeros(3))
        assert_allclose(basic_craft.velocity, v0)


# =============================================================================
# Trajectory trail
# =============================================================================

class TestTrajectory:

    def test_trail_is_bounded(self, sun_bodies):
        craft = BasicSpacecraft('Trail', trail_length=5)
        for _ in range(10):
            craft.tick(60.0, sun_bodies)
        assert craft.trajectory.shape == (5, 3)
        assert_allclose(craft.trajectory[-1], craft.position)
        assert craft.trajectory_times[-1] == pytest.approx(600.0)

    def test_clear_trajectory(self, basic_craft):
        basic_craft.clear_trajectory()
        assert basic_craft.trajectory.shape == (0, 3)

    def test_invalid_position_logged_once(self, basic_craft, sun_bodies, caplog):
        basic_craft.position = np.array([np.nan, 0.0, 0.0])
        with caplog.at_level(logging.WARNING, logger='heliosim.dynamics.spacecraft'):
            basic_craft.tick(60.0, sun_bodies)
            basic_craft.tick(60.0, sun_bodies)
        warnings = [r for r in caplog.records if 'Invalid position' in r.getMessage()]
        assert len(warnings) == 1
        assert len(basic_craft.trajectory) == 1


# =============================================================================
# Telemetry
# =============================================================================

class TestTelemetry:

    def test_basic_telemetry(self, basic_craft):
        telemetry = basic_craft.get_telemetry()
        assert telemetry['name'] == 'Probe'
        assert telemetry['distance_au'] == pytest.approx(1.0)
        assert telemetry['fuel_percent'] == pytest.approx(100.0)
        assert telemetry['engine_status'] == 'OFF'
        assert telemetry['mass'] == pytest.approx(1500.0)
        assert telemetry['semi_major_axis'] == pytest.approx(1.0, rel=1e-9)
        assert 'eccentricity' in telemetry and 'period' in telemetry

    def test_enhanced_telemetry(self, enhanced_craft, sun_bodies):
        enhanced_craft.add_manoeuvre_node(2.0 * 86400.0)
        enhanced_craft.tick(60.0, sun_bodies)
        telemetry = enhanced_craft.get_telemetry()
        assert telemetry['phase'] == 'CRUISE'
        assert telemetry['manoeuvres'] == 1
        assert telemetry['next_manoeuvre_days'] == pytest.approx(2.0 - 60.0 / 86400.0)
        assert not telemetry['executing']
        assert set(telemetry['systems']) >= {'power', 'thermal', 'comms', 'attitude',
                                             'propulsion', 'health'}

    def test_telemetry_history_frame(self, enhanced_craft, sun_bodies):
        for _ in range(5):
            enhanced_craft.tick(60.0, sun_bodies)
        frame = enhanced_craft.telemetry_frame()
        assert len(frame) == 5
        assert frame.index.name == 'time'
        assert list(frame.index) == [60.0, 120.0, 180.0, 240.0, 300.0]
        assert {'speed', 'fuel', 'battery', 'temperature'} <= set(frame.columns)


# =============================================================================
# Enhanced spacecraft
# =============================================================================

class TestEnhancedSpacecraft:

    def test_fuel_store_is_main_tank(self, enhanced_craft):
        assert enhanced_craft.fuel_mass == enhanced_craft.systems.propulsion.main.fuel == 500.0
        enhanced_craft.fuel_mass = 120.0
        assert enhanced_craft.systems.propulsion.main.fuel == 120.0
        enhanced_craft.fuel_mass = -5.0
        assert enhanced_craft.fuel_mass == 0.0

    def test_default_state_uses_configured_fuel(self):
        craft = EnhancedSpacecraft('Tanked', config={'fuel_capacity': 750.0})
        assert craft.fuel_mass == 750.0
        assert craft.fuel_percent == pytest.approx(100.0)

    def test_tick_updates_subsystems(self, enhanced_craft, sun_bodies):
        enhanced_craft.tick(3600.0, sun_bodies)
        systems = enhanced_craft.systems
        assert systems.power.generation > 0.0
        assert systems.environment.sun_distance == pytest.approx(1.0, abs=1e-3)
        assert systems.health.overall < 100.0

    def test_manoeuvre_executes_prograde_burn(self, enhanced_craft, circular_speed):
        twin = BasicSpacecraft('Twin', SpacecraftState(
            position=np.array([1.0, 0.0, 0.0]), velocity=np.array([0.0, circular_speed, 0.0])))
        node = enhanced_craft.add_manoeuvre_node(100.0)
        node.set_delta_v(prograde=0.01)
        expected_fuel = node.fuel_required

        bodies = sun_only()
        for _ in range(2):
            enhanced_craft.tick(60.0, bodies)
            twin.tick(60.0, bodies)

        assert node.state == ManoeuvreState.COMPLETED
        assert enhanced_craft.manoeuvre_nodes == []
        assert enhanced_craft.executing_manoeuvre is None
        assert not enhanced_craft.systems.propulsion.main.is_firing
        assert enhanced_craft.systems.propulsion.main.ignitions_used == 1
        assert enhanced_craft.fuel_mass == pytest.approx(500.0 - expected_fuel, rel=1e-3)
        assert_allclose(enhanced_craft.velocity - twin.velocity, [0.0, 0.01, 0.0], atol=1e-4)

    def test_long_burn_spans_several_ticks(self, enhanced_craft, sun_bodies):
        node = enhanced_craft.add_manoeuvre_node(0.0)
        node.set_delta_v(prograde=1.0)
        assert node.burn_duration > 10.0

        enhanced_craft.tick(1.0, sun_bodies)
        assert node.state == ManoeuvreState.EXECUTING
        assert enhanced_craft.executing_manoeuvre is node
        assert enhanced_craft.get_telemetry()['executing']

        for _ in range(int(node.burn_duration) + 2):
            enhanced_craft.tick(1.0, sun_bodies)
        assert node.state == ManoeuvreState.COMPLETED
        assert enhanced_craft.executing_manoeuvre is None

    def test_failed_manoeuvre_is_cancelled(self, circular_speed, sun_bodies, caplog):
        craft = EnhancedSpacecraft('NoStarts', SpacecraftState(
            position=np.array([1.0, 0.0, 0.0]), velocity=np.array([0.0, circular_speed, 0.0])),
            config={'max_ignitions': 0})
        node = craft.add_manoeuvre_node(0.0)
        node.set_delta_v(prograde=0.5)

        with caplog.at_level(logging.ERROR, logger='heliosim.dynamics.spacecraft'):
            craft.tick(60.0, sun_bodies)

        assert node.state == ManoeuvreState.CANCELLED
        assert craft.manoeuvre_nodes == []
        assert any('No ignitions remaining' in r.getMessage() for r in caplog.records)

    def test_insufficient_fuel_cancels(self, enhanced_craft, sun_bodies):
        enhanced_craft.fuel_mass = 1.0
        node = enhanced_craft.add_manoeuvre_node(0.0)
        node.set_delta_v(prograde=5.0)
        enhanced_craft.tick(60.0, sun_bodies)
        assert node.state == ManoeuvreState.CANCELLED
        assert enhanced_craft.fuel_mass == 1.0

    def test_ion_engine_thrusts_along_velocity(self, enhanced_craft, sun_bodies, circular_speed):
        twin = EnhancedSpacecraft('Twin', SpacecraftState(
            position=np.array([1.0, 0.0, 0.0]), velocity=np.array([0.0, circular_speed, 0.0])))
        ion = enhanced_craft.systems.propulsion.ion
        xenon0 = ion.xenon
        assert enhanced_craft.systems.set_ion_engine(True)

        enhanced_craft.tick(3600.0, sun_bodies)
        twin.tick(3600.0, sun_bodies)

        assert ion.xenon == pytest.approx(xenon0 - ion.thrust / (ion.isp * G0) * 3600.0)
        assert enhanced_craft.systems.power.loads['ion_engine'] == ion.power
        assert enhanced_craft.speed > twin.speed

    def test_dispose_clears_queue(self, enhanced_craft, sun_bodies):
        node = enhanced_craft.add_manoeuvre_node(1000.0)
        enhanced_craft.tick(60.0, sun_bodies)
        enhanced_craft.dispose()
        assert node.state == ManoeuvreState.CANCELLED
        assert enhanced_craft.manoeuvre_nodes == []
        assert len(enhanced_craft.telemetry_history) == 0
        assert len(enhanced_craft.trajectory) == 0


# =============================================================================
# Mission phase
# =============================================================================

class TestMissionPhase:

    @pytest.fixture
    def solar_system(self):
        return default_solar_system()

    def _craft_near_mars(self, offset_au, solar_system):
        mars = next(b for b in solar_system if b.name == 'Mars')
        state = SpacecraftState(position=mars.position(0.0) + np.array([offset_au, 0.0, 0.0]),
                                velocity=mars.velocity(0.0))
        craft = EnhancedSpacecraft('Seeker', state)
        assert craft.set_target('mars', solar_system)
        return craft

    def test_cruise_without_target(self, enhanced_craft, sun_bodies):
        enhanced_craft.tick(60.0, sun_bodies)
        assert enhanced_craft.mission_phase == MissionPhase.CRUISE

    def test_far_from_target_is_cruise(self, enhanced_craft, solar_system):
        assert enhanced_craft.set_target('Mars', solar_system)
        enhanced_craft.tick(1.0, solar_system)
        assert enhanced_craft.mission_phase == MissionPhase.CRUISE

    def test_encounter_inside_soi(self, solar_system):
        craft = self._craft_near_mars(0.001, solar_system)
        craft.tick(1.0, solar_system)
        assert craft.mission_phase == MissionPhase.ENCOUNTER

    def test_approach_within_ten_soi(self, solar_system):
        craft = self._craft_near_mars(0.02, solar_system)
        craft.tick(1.0, solar_system)
        assert craft.mission_phase == MissionPhase.APPROACH

    def test_escape_trajectory(self, solar_system):
        craft = EnhancedSpacecraft('Runner', SpacecraftState(velocity=np.array([0.0, 50.0, 0.0])))
        craft.set_target('mars', solar_system)
        craft.tick(1.0, solar_system)
        assert craft.mission_phase == MissionPhase.ESCAPE

    def test_unknown_target(self, enhanced_craft, solar_system):
        assert not enhanced_craft.set_target('vulcan', solar_system)
        assert enhanced_craft.target_body is None
