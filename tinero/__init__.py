"""
Erosion and sediment transport engine for landscape evolution models built on triangulated irregular networks.
"""
__version__ = "0.1.0"
