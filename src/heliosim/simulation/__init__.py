"""
===============================================================================
HELIOSIM - Simulation Package
===============================================================================
Everything needed to run a mission around the spacecraft integrator.

Modules:
    spacecraft_systems -- Power, thermal, comms, attitude, propulsion, health
    ephemeris          -- Sun and planet position providers
    factory            -- Spacecraft presets and mission profiles
    time_controller    -- Scalable, pausable simulation clock
    sim_engine         -- Fleet orchestration and telemetry logging
    physics_validation -- Reference orbit scenarios
===============================================================================
"""
