"""
Flow network ordering, flow accumulation and hydraulic geometry.
"""
from .streamnet import StreamNet
