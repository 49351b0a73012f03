"""Loyalty promotions for solar-inverter installers"""

__version__ = "1.0.0"
