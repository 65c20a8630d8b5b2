"""
===============================================================================
HELIOSIM - Spacecraft Factory
===============================================================================
Builds basic and enhanced spacecraft from plain config dicts, named presets
and mission profiles.

Presets and mission profiles live in the package data file
``heliosim/data/spacecraft_presets.yaml``:

    enhanced_defaults   subsystem defaults merged under every enhanced craft
    presets             probe, orbiter, lander, ion_craft
    missions            mars, venus, outer_planets, asteroid

Unknown preset or mission names raise ConfigurationError.
===============================================================================
"""

import logging
import uuid
from pathlib import Path
from typing import Optional, Union

import numpy as np
import yaml

from heliosim.core.errors import ConfigurationError
from heliosim.dynamics.spacecraft import BasicSpacecraft, EnhancedSpacecraft, SpacecraftState

logger = logging.getLogger(__name__)

PRESETS_PATH = Path(__file__).resolve().parent.parent / 'data' / 'spacecraft_presets.yaml'

__all__ = ['ConfigurationError', 'SpacecraftFactory', 'load_presets']


def load_presets(path: Optional[Union[str, Path]] = None) -> dict:
    """
    Load the preset file.

    Args:
        path: Alternative YAML file; defaults to the packaged presets.

    Returns:
        Dict with ``enhanced_defaults``, ``presets`` and ``missions``.
    """
    path = Path(path) if path is not None else PRESETS_PATH
    with open(path, 'r') as f:
        data = yaml.safe_load(f) or {}
    data.setdefault('enhanced_defaults', {})
    data.setdefault('presets', {})
    data.setdefault('missions', {})
    return data


def _unique_name(prefix: str) -> str:
    return f"{prefix}-{uuid.uuid4().hex[:6].upper()}"


def _build_state(initial_state: Optional[dict], default_fuel: float) -> SpacecraftState:
    initial_state = initial_state or {}
    state = SpacecraftState(fuel_mass=default_fuel)
    if 'position' in initial_state:
        state.position = np.asarray(initial_state['position'], dtype=float)
    if 'velocity' in initial_state:
        state.velocity = np.asarray(initial_state['velocity'], dtype=float)
    state.mass = float(initial_state.get('mass', state.mass))
    state.fuel_mass = float(initial_state.get('fuel_mass', state.fuel_mass))
    return state


class SpacecraftFactory:
    """
    Spacecraft construction from configuration.

    Args:
        presets: Preset data as returned by ``load_presets``; loaded from
            the packaged YAML file when omitted.
    """

    def __init__(self, presets: Optional[dict] = None):
        self.presets = presets if presets is not None else load_presets()

    # -------------------------------------------------------------------------

    def create_basic(self, name: str, initial_state: Optional[dict] = None) -> BasicSpacecraft:
        """
        Lightweight craft without subsystems.

        ``initial_state`` keys: position, velocity, mass, fuel_mass,
        exhaust_velocity, thrust_power.
        """
        initial_state = initial_state or {}
        state = _build_state(initial_state, SpacecraftState().fuel_mass)
        craft = BasicSpacecraft(
            name,
            state,
            exhaust_velocity=initial_state.get('exhaust_velocity', 3000.0),
            thrust_power=initial_state.get('thrust_power', 50000.0),
        )
        logger.debug("Created basic spacecraft %s", name)
        return craft

    def create_enhanced(self, name: str, initial_state: Optional[dict] = None,
                        system_config: Optional[dict] = None) -> EnhancedSpacecraft:
        """Craft with the full subsystem model; ``system_config`` overrides the defaults."""
        config = dict(self.presets['enhanced_defaults'])
        config.update(system_config or {})

        state = _build_state(initial_state, float(config.get('fuel_capacity', 500.0)))
        craft = EnhancedSpacecraft(name, state, config=config)
        logger.debug("Created enhanced spacecraft %s (%s engine)", name,
                     craft.systems.propulsion.main.engine_type.value)
        return craft

    def create_from_preset(self, preset: str, name: Optional[str] = None,
                           initial_state: Optional[dict] = None):
        """
        Build a named preset (probe, orbiter, lander, ion_craft).

        Raises:
            ConfigurationError: If the preset is unknown.
        """
        config = self.presets['presets'].get(preset)
        if config is None:
            raise ConfigurationError(
                f"Unknown spacecraft preset: {preset}. "
                f"Valid: {sorted(self.presets['presets'].keys())}"
            )
        name = name or _unique_name(preset.upper())

        state = dict(initial_state or {})
        state.setdefault('mass', config.get('mass', 1000.0))
        if config.get('type', 'enhanced') == 'basic':
            for key in ('fuel_mass', 'exhaust_velocity', 'thrust_power'):
                if key in config:
                    state.setdefault(key, config[key])
            return self.create_basic(name, state)
        return self.create_enhanced(name, state, config.get('systems'))

    def create_for_mission(self, mission: str, name: Optional[str] = None,
                           initial_state: Optional[dict] = None) -> EnhancedSpacecraft:
        """
        Build an enhanced craft sized for a mission profile.

        Raises:
            ConfigurationError: If the mission is unknown.
        """
        config = self.presets['missions'].get(mission)
        if config is None:
            raise ConfigurationError(
                f"Unknown mission type: {mission}. "
                f"Valid: {sorted(self.presets['missions'].keys())}"
            )
        name = name or _unique_name(config.get('name', mission))
        return self.create_enhanced(name, initial_state, config.get('systems'))
