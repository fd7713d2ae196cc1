"""
py-scatter: layered procedural object placement over 2D terrain.
"""

__version__ = "0.1.0"
