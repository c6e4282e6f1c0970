"""Room geometry as CSG trees of SDF solids."""

from room_modes.geometry.solids import (
    # CSG operations
    ConvexPolyhedron,
    CSGNode,
    # Primitives
    Cuboid,
    Difference,
    Hexahedron,
    Intersection,
    Prism,
    # Base SDF class
    SDFPrimitive,
    # Transformations
    Translate,
    Union,
    estimate_volume,
)

__all__ = [
    "SDFPrimitive",
    "Cuboid",
    "ConvexPolyhedron",
    "Prism",
    "Hexahedron",
    "CSGNode",
    "Union",
    "Intersection",
    "Difference",
    "Translate",
    "estimate_volume",
]
