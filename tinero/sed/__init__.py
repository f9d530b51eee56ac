"""
This directory combines:

- Stratigraphic columns and the erosion/deposition contract of each node.
- Sediment erosion, transport and deposition from hillslope processes.
"""
from .stratplex import Layer
from .stratplex import LayerStack
from .hillslope import hillSLP
