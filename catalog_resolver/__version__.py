"""Version information for the catalog resolver"""

__version__ = "0.3.0"
