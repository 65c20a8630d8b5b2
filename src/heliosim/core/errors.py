"""
Exception types shared across heliosim.

Numerical degeneracy is never raised (it is recovered locally) and
resource exhaustion is reported through result objects, so the only
dedicated exception is for invalid configuration.
"""


class ConfigurationError(ValueError):
    """Unknown preset, mission, body or propulsion profile name."""
