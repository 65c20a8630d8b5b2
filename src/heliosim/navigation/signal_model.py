"""
===============================================================================
HELIOSIM - Communications Link Budget
===============================================================================

Simplified deep-space downlink between the spacecraft and Earth.

Physical Background
-------------------
Free-space path loss for a link of length d at frequency f:

    L = (4 * pi * d * f / c)^2

Received power uses a lumped antenna term proportional to the dish area:

    P_r = P_t * D^2 * 4900 / L

and the achievable data rate a Shannon-style capacity over a fixed
20 kHz bandwidth and 1e-20 W noise floor:

    R = 20000 * log2(1 + P_r / 1e-20)      (bits/s)

One-way light time is d / c.  There is no occlusion model: the spacecraft
is always in contact.
===============================================================================
"""

import logging
import math
from dataclasses import dataclass

from heliosim.core.constants import AU_TO_METERS, SPEED_OF_LIGHT, get_body_radius

logger = logging.getLogger(__name__)

EARTH_RADIUS_M = get_body_radius('earth') * 1000.0
LINK_BANDWIDTH = 20000.0        # Hz
NOISE_POWER = 1e-20             # W
ANTENNA_FACTOR = 4900.0


@dataclass
class LinkState:
    """Result of the most recent link evaluation."""
    earth_distance: float = 1.0     # AU
    data_rate: float = 0.0          # bits/s
    signal_delay: float = 0.0       # s
    in_contact: bool = True


class CommunicationsLink:
    """
    High-gain antenna link to Earth.

    Parameters
    ----------
    dish_size : float
        Antenna diameter (m).
    transmit_power : float
        RF transmit power (W).
    frequency : float
        Carrier frequency (Hz), X-band by default.
    """

    def __init__(self, dish_size: float = 2.0, transmit_power: float = 100.0,
                 frequency: float = 8.4e9):
        self.dish_size = float(dish_size)
        self.transmit_power = float(transmit_power)
        self.frequency = float(frequency)
        self.state = LinkState()

    # =========================================================================
    # LINK BUDGET
    # =========================================================================

    @staticmethod
    def link_distance(earth_distance_au: float) -> float:
        """Link length in meters, never shorter than one Earth radius."""
        return max(earth_distance_au * AU_TO_METERS, EARTH_RADIUS_M)

    def path_loss(self, distance_m: float) -> float:
        """Free-space path loss as a linear power ratio."""
        return (4.0 * math.pi * distance_m * self.frequency / SPEED_OF_LIGHT) ** 2

    def received_power(self, distance_m: float) -> float:
        """Received signal power (W)."""
        return (self.transmit_power * self.dish_size ** 2 * ANTENNA_FACTOR
                / self.path_loss(distance_m))

    def data_rate(self, earth_distance_au: float) -> float:
        """Achievable downlink rate (bits/s) at ``earth_distance_au``."""
        distance = self.link_distance(earth_distance_au)
        snr = self.received_power(distance) / NOISE_POWER
        return LINK_BANDWIDTH * math.log2(1.0 + snr)

    def signal_delay(self, earth_distance_au: float) -> float:
        """One-way light time (s)."""
        return self.link_distance(earth_distance_au) / SPEED_OF_LIGHT

    def update(self, earth_distance_au: float) -> LinkState:
        """Re-evaluate the link for the current Earth distance."""
        if not math.isfinite(earth_distance_au):
            return self.state
        self.state = LinkState(
            earth_distance=earth_distance_au,
            data_rate=self.data_rate(earth_distance_au),
            signal_delay=self.signal_delay(earth_distance_au),
            in_contact=True,
        )
        return self.state

    def status(self) -> dict:
        return {
            'earth_distance': self.state.earth_distance,
            'data_rate': self.state.data_rate,
            'data_rate_text': format_data_rate(self.state.data_rate),
            'signal_delay': self.state.signal_delay,
            'signal_delay_text': format_delay(self.state.signal_delay),
            'in_contact': self.state.in_contact,
        }


# =============================================================================
# FORMATTING
# =============================================================================

def format_data_rate(bits_per_second: float) -> str:
    """e.g. 2.5 Mbps, 120.0 kbps, 35 bps."""
    if bits_per_second >= 1e6:
        return f"{bits_per_second / 1e6:.1f} Mbps"
    if bits_per_second >= 1e3:
        return f"{bits_per_second / 1e3:.1f} kbps"
    return f"{bits_per_second:.0f} bps"


def format_delay(seconds: float) -> str:
    """e.g. 8.3 min, 1.2 h, 45.0 s."""
    if seconds >= 3600.0:
        return f"{seconds / 3600.0:.1f} h"
    if seconds >= 60.0:
        return f"{seconds / 60.0:.1f} min"
    return f"{seconds:.1f} s"
