"""
===============================================================================
HELIOSIM - Guidance Package
===============================================================================
Burn planning and mission phase management.

Modules:
    maneuver_planner : Hohmann transfers, rocket equation, interplanetary
                       delta-V and propellant budgets
    manoeuvre_node   : Scheduled burn with its PLANNED / EXECUTING /
                       COMPLETED / CANCELLED life cycle
    mission_planner  : Mission phases and sphere-of-influence radius
===============================================================================
"""
