"""
Data Generation Module
"""
from .generators import BeaconGenerator, SyntheticBeacon

__all__ = [
    "BeaconGenerator",
    "SyntheticBeacon",
]
