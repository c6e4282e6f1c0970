"""Finite-element discretization and eigensolver."""

from room_modes.fem.assembly import (
    assemble_mass,
    assemble_stiffness,
    assemble_system,
    shape_gradients,
)
from room_modes.fem.eigensolver import EigenPair, EigenSolverError, solve_eigenmodes

__all__ = [
    "shape_gradients",
    "assemble_stiffness",
    "assemble_mass",
    "assemble_system",
    "EigenPair",
    "EigenSolverError",
    "solve_eigenmodes",
]
