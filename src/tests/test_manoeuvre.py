"""
===============================================================================
HELIOSIM - Manoeuvre Node Test Suite
===============================================================================
Tests for the manoeuvre node life cycle, burn budgeting, burn-point
prediction, post-burn preview and the spacecraft's manoeuvre queue.
===============================================================================
"""

import sys
import os

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

import math

import numpy as np
import pytest
from numpy.testing import assert_allclose

from heliosim.control.actuators import mass_flow_rate
from heliosim.core.constants import AU_TO_KM, SUN_MU
from heliosim.dynamics.orbital_mechanics import calculate_orbital_elements, propagate_kepler
from heliosim.dynamics.spacecraft import EnhancedSpacecraft, SpacecraftState
from heliosim.guidance.maneuver_planner import calculate_fuel_required
from heliosim.guidance.manoeuvre_node import ManoeuvreNode, ManoeuvreState
from heliosim.simulation.ephemeris import sun_only


# =============================================================================
# Fixtures
# =============================================================================

@pytest.fixture
def craft():
    speed = math.sqrt(SUN_MU / AU_TO_KM)
    return EnhancedSpacecraft('Navigator', SpacecraftState(
        position=np.array([1.0, 0.0, 0.0]),
        velocity=np.array([0.0, speed, 0.0]),
        mass=1000.0, fuel_mass=500.0,
    ))


@pytest.fixture
def node(craft):
    return ManoeuvreNode(craft, 3600.0)


# =============================================================================
# Node planning
# =============================================================================

class TestNodePlanning:

    def test_new_node_is_planned(self, node):
        assert node.state == ManoeuvreState.PLANNED
        assert node.delta_v_magnitude == 0.0
        assert node.burn_duration == 0.0
        assert not node.is_executing
        assert not node.is_finished

    def test_prediction_uses_kepler_propagation(self, node, craft):
        position, velocity = propagate_kepler(craft.position, craft.velocity, 3600.0, SUN_MU)
        assert_allclose(node.predicted_position, position)
        assert_allclose(node.predicted_velocity, velocity)
        assert np.linalg.norm(node.predicted_position) == pytest.approx(1.0, abs=1e-9)

    def test_burn_budget_from_rocket_equation(self, node, craft):
        node.set_delta_v(radial=0.3, prograde=0.4)
        main = craft.systems.propulsion.main
        expected_fuel = calculate_fuel_required(0.5, 1500.0, main.exhaust_velocity)
        assert node.delta_v_magnitude == pytest.approx(0.5)
        assert node.fuel_required == pytest.approx(expected_fuel)
        assert node.burn_duration == pytest.approx(
            expected_fuel / mass_flow_rate(main.thrust, main.isp))

    def test_set_time_from_now_moves_prediction(self, node, craft):
        node.set_time_from_now(86400.0)
        position, _ = propagate_kepler(craft.position, craft.velocity, 86400.0, SUN_MU)
        assert node.time_from_now == 86400.0
        assert_allclose(node.predicted_position, position)

    def test_negative_time_clamped(self, node):
        node.set_time_from_now(-50.0)
        assert node.time_from_now == 0.0

    def test_inertial_delta_v_is_prograde(self, node):
        node.set_delta_v(prograde=1.0)
        dv = node.inertial_delta_v()
        v_hat = node.predicted_velocity / np.linalg.norm(node.predicted_velocity)
        assert_allclose(dv, v_hat, atol=1e-9)

    def test_summary(self, node):
        node.set_delta_v(normal=0.2)
        summary = node.summary()
        assert summary['state'] == 'PLANNED'
        assert summary['delta_v'] == [0.0, 0.0, 0.2]
        assert summary['fuel_required'] > 0.0
        assert 'PLANNED' in repr(node)


# =============================================================================
# Post-burn preview
# =============================================================================

class TestPreview:

    def test_shape_and_start_point(self, node):
        points = node.preview_trajectory(steps=20)
        assert points.shape == (20, 3)
        assert_allclose(points[0], node.predicted_position)

    def test_no_burn_stays_on_circle(self, node):
        radii = np.linalg.norm(node.preview_trajectory(steps=50), axis=1)
        assert_allclose(radii, 1.0, atol=1e-6)

    def test_prograde_burn_raises_orbit(self, node):
        node.set_delta_v(prograde=3.0)
        points = node.preview_trajectory(steps=400)
        radii = np.linalg.norm(points, axis=1)
        post_burn = calculate_orbital_elements(
            node.predicted_position, node.predicted_velocity + node.inertial_delta_v())
        assert radii.max() > 1.2
        assert radii.max() <= post_burn.apoapsis + 1e-6
        assert radii.min() == pytest.approx(1.0, abs=1e-3)

    def test_zero_steps(self, node):
        assert node.preview_trajectory(steps=0).shape == (0, 3)


# =============================================================================
# State machine
# =============================================================================

class TestStateMachine:

    def test_countdown(self, node):
        assert not node.countdown(1800.0)
        assert node.time_from_now == pytest.approx(1800.0)
        assert node.countdown(1800.0)
        assert node.time_from_now == 0.0

    def test_countdown_only_while_planned(self, node):
        node.start()
        assert not node.countdown(7200.0)
        assert node.time_from_now == 3600.0

    def test_start_complete(self, node):
        node.set_delta_v(prograde=0.2)
        node.start()
        assert node.is_executing
        assert node.time_remaining == pytest.approx(node.burn_duration)
        node.complete()
        assert node.state == ManoeuvreState.COMPLETED
        assert node.is_finished
        assert node.time_remaining == 0.0

    def test_cancel(self, node):
        node.cancel()
        assert node.state == ManoeuvreState.CANCELLED
        assert node.is_finished


# =============================================================================
# Spacecraft manoeuvre queue
# =============================================================================

class TestManoeuvreQueue:

    def test_queue_is_time_ordered(self, craft):
        late = craft.add_manoeuvre_node(500.0)
        early = craft.add_manoeuvre_node(100.0)
        middle = craft.add_manoeuvre_node(300.0)
        assert craft.manoeuvre_nodes == [early, middle, late]

    def test_all_planned_nodes_count_down(self, craft):
        first = craft.add_manoeuvre_node(1000.0)
        second = craft.add_manoeuvre_node(2000.0)
        craft.tick(60.0, sun_only())
        assert first.time_from_now == pytest.approx(940.0)
        assert second.time_from_now == pytest.approx(1940.0)

    def test_remove_planned_node(self, craft):
        node = craft.add_manoeuvre_node(1000.0)
        craft.remove_manoeuvre_node(node)
        assert node.state == ManoeuvreState.CANCELLED
        assert craft.manoeuvre_nodes == []

    def test_remove_executing_node_shuts_engine(self, craft):
        node = craft.add_manoeuvre_node(0.0)
        node.set_delta_v(prograde=1.0)
        craft.tick(1.0, sun_only())
        assert craft.executing_manoeuvre is node
        assert craft.systems.propulsion.main.is_firing

        craft.remove_manoeuvre_node(node)
        assert node.state == ManoeuvreState.CANCELLED
        assert craft.executing_manoeuvre is None
        assert not craft.systems.propulsion.main.is_firing

    def test_next_node_waits_for_executing_burn(self, craft):
        first = craft.add_manoeuvre_node(0.0)
        first.set_delta_v(prograde=1.0)
        second = craft.add_manoeuvre_node(0.0)
        second.set_delta_v(prograde=0.1)

        craft.tick(1.0, sun_only())
        assert craft.executing_manoeuvre is first
        assert second.state == ManoeuvreState.PLANNED

        while first.state == ManoeuvreState.EXECUTING:
            craft.tick(1.0, sun_only())
        craft.tick(1.0, sun_only())
        assert second.state in (ManoeuvreState.EXECUTING, ManoeuvreState.COMPLETED)
        assert craft.systems.propulsion.main.ignitions_used == 2

    def test_zero_delta_v_node_completes_without_ignition(self, craft):
        node = craft.add_manoeuvre_node(0.0)
        craft.tick(60.0, sun_only())
        main = craft.systems.propulsion.main
        assert node.state == ManoeuvreState.COMPLETED
        assert craft.executing_manoeuvre is None
        assert craft.manoeuvre_nodes == []
        assert main.ignitions_used == 0
        assert not main.is_firing

    def test_retimed_node_moves_to_front(self, craft):
        first = craft.add_manoeuvre_node(1000.0)
        second = craft.add_manoeuvre_node(5000.0)
        second.set_time_from_now(100.0)
        assert craft.manoeuvre_nodes == [second, first]
        assert craft.get_telemetry()['next_manoeuvre_days'] == pytest.approx(100.0 / 86400.0)

    def test_retimed_node_moves_back(self, craft):
        first = craft.add_manoeuvre_node(1000.0)
        craft.add_manoeuvre_node(5000.0)
        first.set_time_from_now(9000.0)
        assert [n.time_from_now for n in craft.manoeuvre_nodes] == [5000.0, 9000.0]

    def test_planned_nodes_count_down_during_long_burn(self):
        speed = math.sqrt(SUN_MU / AU_TO_KM)
        craft = EnhancedSpacecraft('Tug', SpacecraftState(
            position=np.array([1.0, 0.0, 0.0]),
            velocity=np.array([0.0, speed, 0.0]),
            mass=1000.0, fuel_mass=500.0,
        ), config={'main_engine_thrust': 500.0})
        first = craft.add_manoeuvre_node(0.0)
        first.set_delta_v(prograde=1.0)
        second = craft.add_manoeuvre_node(1000.0)
        second.set_delta_v(prograde=0.1)
        assert first.burn_duration > 2000.0

        bodies = sun_only()
        for _ in range(501):
            craft.tick(1.0, bodies)
        assert first.is_executing
        assert second.time_from_now == pytest.approx(499.0)

        for _ in range(600):
            craft.tick(1.0, bodies)
        assert first.is_executing
        assert second.state == ManoeuvreState.PLANNED
        assert second.time_from_now == 0.0

        ticks = 0
        while first.is_executing and ticks < 5000:
            craft.tick(1.0, bodies)
            ticks += 1
        assert first.state == ManoeuvreState.COMPLETED
        craft.tick(1.0, bodies)
        assert second.state in (ManoeuvreState.EXECUTING, ManoeuvreState.COMPLETED)
        assert craft.systems.propulsion.main.ignitions_used == 2
