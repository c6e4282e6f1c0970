"""Tetrahedral meshing of room geometry."""

from room_modes.mesh.grid import LatticeGrid
from room_modes.mesh.tetra import (
    MeshGenerationError,
    TetMesh,
    mesh_solid,
    signed_volumes,
    tet_quality,
)

__all__ = [
    "LatticeGrid",
    "TetMesh",
    "MeshGenerationError",
    "mesh_solid",
    "signed_volumes",
    "tet_quality",
]
