"""
Input methods declaration and tectonic forcing.
"""
from .inputparser import ReadYaml
from .inputparser import readItem
from .forcing import Uplift
