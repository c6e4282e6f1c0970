"""
Room Modes - acoustic resonances of rooms by finite elements.

Main exports:
- Cuboid, Prism, Hexahedron: Room building blocks
- Union, Intersection, Difference, Translate: CSG operations
- mesh_solid, TetMesh: Tetrahedral meshing
- assemble_system, solve_eigenmodes: Finite-element eigenproblem
- ModalAnalysis, ModalAnalysisConfig: End-to-end pipeline
- RoomModes: Frequencies and mode shapes
"""

from room_modes.analysis import (
    SPEED_OF_SOUND,
    RoomModes,
    eigenvalue_to_frequency,
    rectangular_room_modes,
)
from room_modes.config import ModalAnalysisConfig
from room_modes.core.modal import ModalAnalysis
from room_modes.fem import EigenPair, EigenSolverError, assemble_system, solve_eigenmodes

# Re-export geometry classes for room scripts
from room_modes.geometry import (
    Cuboid,
    Difference,
    Hexahedron,
    Intersection,
    Prism,
    SDFPrimitive,
    Translate,
    Union,
    estimate_volume,
)
from room_modes.mesh import LatticeGrid, MeshGenerationError, TetMesh, mesh_solid

# Submodules for more specific imports
from . import analysis, fem, geometry, io, mesh

__version__ = "0.1.0"

__all__ = [
    # Geometry
    "SDFPrimitive",
    "Cuboid",
    "Prism",
    "Hexahedron",
    "Union",
    "Intersection",
    "Difference",
    "Translate",
    "estimate_volume",
    # Meshing
    "LatticeGrid",
    "TetMesh",
    "MeshGenerationError",
    "mesh_solid",
    # Finite elements
    "assemble_system",
    "solve_eigenmodes",
    "EigenPair",
    "EigenSolverError",
    # Pipeline and results
    "ModalAnalysis",
    "ModalAnalysisConfig",
    "RoomModes",
    "SPEED_OF_SOUND",
    "eigenvalue_to_frequency",
    "rectangular_room_modes",
    # Submodules
    "analysis",
    "fem",
    "geometry",
    "io",
    "mesh",
]
