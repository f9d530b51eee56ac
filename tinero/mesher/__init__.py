"""
Definition of the unstructured mesh properties.
"""
from .unstructuredmesh import UnstMesh
