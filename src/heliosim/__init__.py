"""
===============================================================================
HELIOSIM - Heliocentric Spacecraft Simulation
===============================================================================
Spacecraft flying through a simplified solar system under point-mass
gravity, with optional subsystem models (power, thermal, communications,
attitude, propulsion) and scheduled manoeuvre burns.

Subpackages:
    core        -- constants, quaternion, RSW frame, ring buffer
    dynamics    -- orbital mechanics, environment, spacecraft integrator
    guidance    -- transfer planning, manoeuvre nodes, mission phases
    control     -- actuators and attitude control
    navigation  -- communications link budget
    simulation  -- subsystem model, ephemeris, factory, engine, validation
===============================================================================
"""

__version__ = "0.1.0"
