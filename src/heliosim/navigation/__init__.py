"""
===============================================================================
HELIOSIM - Navigation Package
===============================================================================
Modules:
    signal_model  -- Deep-space downlink budget (data rate, light time)
===============================================================================
"""
