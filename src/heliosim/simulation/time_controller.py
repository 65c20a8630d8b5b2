"""
Simulation clock.

The time scale is expressed in simulated days per real second and is
clamped to [0.001, 100000].  ``update(real_seconds)`` converts elapsed
wall-clock time into simulated seconds; the caller owns the wall clock,
so the controller never reads it itself.
"""

import logging
from datetime import datetime, timedelta
from typing import Optional

from heliosim.core.constants import SECONDS_PER_DAY

logger = logging.getLogger(__name__)

MIN_TIME_SCALE = 0.001
MAX_TIME_SCALE = 100000.0

TIME_SCALE_PRESETS = {
    'realtime': 1.0 / SECONDS_PER_DAY,
    'minute': 60.0 / SECONDS_PER_DAY,
    'hour': 1.0 / 24.0,
    'day': 1.0,
    'week': 7.0,
    'month': 30.0,
    'year': 365.25,
    'decade': 3652.5,
    'century': 36525.0,
}


class TimeController:
    """
    Pausable, scalable simulation clock.

    Attributes:
        time_scale: Simulated days per real second.
        is_paused: Whether ``update`` advances time.
        elapsed_seconds: Total simulated time since the epoch (s).
        real_time_elapsed: Total real time fed to ``update`` while running (s).
    """

    def __init__(self, epoch: Optional[datetime] = None, time_scale: float = 1.0):
        self.start_date = epoch if epoch is not None else datetime(2000, 1, 1, 12, 0, 0)
        self.time_scale = 1.0
        self.is_paused = False
        self.elapsed_seconds = 0.0
        self.real_time_elapsed = 0.0
        self.set_time_scale(time_scale)

    @property
    def current_date(self) -> datetime:
        return self.start_date + timedelta(seconds=self.elapsed_seconds)

    @property
    def elapsed_days(self) -> float:
        return self.elapsed_seconds / SECONDS_PER_DAY

    def update(self, real_seconds: float) -> float:
        """
        Advance by ``real_seconds`` of wall-clock time.

        Returns:
            Simulated seconds elapsed (0 while paused).
        """
        if self.is_paused or real_seconds <= 0.0:
            return 0.0
        self.real_time_elapsed += real_seconds
        sim_seconds = real_seconds * self.time_scale * SECONDS_PER_DAY
        self.elapsed_seconds += sim_seconds
        return sim_seconds

    def reset(self) -> None:
        self.elapsed_seconds = 0.0
        self.real_time_elapsed = 0.0

    # ----- playback -----

    def pause(self) -> None:
        self.is_paused = True

    def play(self) -> None:
        self.is_paused = False

    def toggle_pause(self) -> bool:
        self.is_paused = not self.is_paused
        return self.is_paused

    # ----- speed -----

    def set_time_scale(self, scale: float) -> float:
        self.time_scale = min(max(float(scale), MIN_TIME_SCALE), MAX_TIME_SCALE)
        return self.time_scale

    def increase_speed(self) -> float:
        return self.set_time_scale(self.time_scale * 2.0)

    def decrease_speed(self) -> float:
        return self.set_time_scale(self.time_scale / 2.0)

    def set_preset_speed(self, preset: str) -> float:
        if preset not in TIME_SCALE_PRESETS:
            logger.warning("Unknown time scale preset: %s", preset)
            return self.time_scale
        return self.set_time_scale(TIME_SCALE_PRESETS[preset])

    def describe(self) -> str:
        """Human-readable time scale, e.g. '2.00 days/second'."""
        sim_seconds = self.time_scale * SECONDS_PER_DAY
        days = self.time_scale
        if sim_seconds < 60.0:
            return f"{sim_seconds:.2f} seconds/second"
        if sim_seconds < 3600.0:
            return f"{sim_seconds / 60.0:.2f} minutes/second"
        if days < 1.0:
            return f"{sim_seconds / 3600.0:.2f} hours/second"
        if days < 7.0:
            return f"{days:.2f} days/second"
        if days < 30.0:
            return f"{days / 7.0:.2f} weeks/second"
        if days < 365.25:
            return f"{days / 30.0:.2f} months/second"
        if days < 3652.5:
            return f"{days / 365.25:.2f} years/second"
        return f"{days / 3652.5:.1f} decades/second"

    def __repr__(self) -> str:
        state = 'paused' if self.is_paused else 'running'
        return f"TimeController({self.describe()}, {state})"
