"""
===============================================================================
HELIOSIM - Core Package
===============================================================================
Shared building blocks with no simulation state of their own.

Modules:
    constants        : Physical constants, unit conversions, body table
    quaternion       : Scalar-first unit quaternion for attitude
    frames           : RSW orbital reference frame and delta-V conversion
    data_structures  : Fixed-capacity ring buffer for state history
    errors           : Configuration error type
===============================================================================
"""
