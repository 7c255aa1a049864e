"""
CV Studio
Coordinate-based recruitment CV templates and PDF composition
"""

__version__ = "1.0.0"
