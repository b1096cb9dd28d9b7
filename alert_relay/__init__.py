"""
Citizen alert relay and geospatial correlation service.
"""

__version__ = "0.1.0"
