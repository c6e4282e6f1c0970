"""Post-processing of computed room modes."""

# Eigenvalue/frequency conversion and analytic references
from room_modes.analysis.frequencies import (
    SPEED_OF_SOUND,
    AnalyticMode,
    RoomModes,
    eigenvalue_to_frequency,
    frequency_to_eigenvalue,
    rectangular_room_modes,
)

# Evaluation of mode shapes inside the room
from room_modes.analysis.sampling import (
    MeshInterpolator,
    axis_index,
    boundary_normal_derivative,
    element_gradients,
    sample_plane,
    sample_volume,
)

__all__ = [
    "SPEED_OF_SOUND",
    "AnalyticMode",
    "RoomModes",
    "eigenvalue_to_frequency",
    "frequency_to_eigenvalue",
    "rectangular_room_modes",
    "MeshInterpolator",
    "axis_index",
    "sample_plane",
    "sample_volume",
    "element_gradients",
    "boundary_normal_derivative",
]
