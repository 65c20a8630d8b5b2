"""
===============================================================================
HELIOSIM - Dynamics Package
===============================================================================
Physical dynamics of a spacecraft in heliocentric space.

Submodules:
    orbital_mechanics -- Elements from state vectors, N-body gravity, Kepler
                         propagation, energy / period checks
    environment       -- Solar distance, flux, temperature, Earth distance
    spacecraft        -- Basic and enhanced spacecraft integrators
===============================================================================
"""
