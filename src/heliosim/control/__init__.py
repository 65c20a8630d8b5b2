"""
control - Actuators and attitude control for an enhanced spacecraft.

    actuators         : reaction wheels, RCS thrusters, main and ion engines
    attitude_control  : pointing modes and the proportional controller
"""
