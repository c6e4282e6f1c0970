"""
Parameters of a modal analysis.

Room scripts configure an analysis by defining module-level variables
next to ``room``; the CLI then applies its own options on top:

    # my_room.py
    room = Union(Cuboid(...), Prism(...))
    n_modes = 12
    max_cell_volume = 0.02

    $ room-modes my_room.py --speed-of-sound 340
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Mapping

import numpy as np

from room_modes.analysis.frequencies import SPEED_OF_SOUND

if TYPE_CHECKING:
    from room_modes.geometry.solids import SDFPrimitive

#: Default number of lattice cells' worth of tetrahedra per bounding box
DEFAULT_CELL_DIVISOR = 4000

_SOLVERS = ("auto", "dense", "sparse")


@dataclass(frozen=True)
class ModalAnalysisConfig:
    """Validated parameters for ``ModalAnalysis``.

    Args:
        speed_of_sound: c in m/s (length unit of the room per second)
        n_modes: Number of lowest modes to compute, constant mode included
        max_cell_volume: Upper bound on tetrahedron volume. None picks
            the room's bounding-box volume / 4000.
        quality_goal: Minimum element quality boundary snapping may create
        accuracy_goal: Eigensolver accuracy in decimal digits
        snap_boundary: Project boundary vertices onto slanted walls
        lumped_mass: Use a diagonal (lumped) mass matrix
        solver: "auto", "dense" or "sparse"
        view_elevation: Elevation of 3D plots in degrees
        view_azimuth: Azimuth of 3D plots in degrees
    """

    speed_of_sound: float = SPEED_OF_SOUND
    n_modes: int = 10
    max_cell_volume: float | None = None
    quality_goal: float = 0.1
    accuracy_goal: int = 8
    snap_boundary: bool = True
    lumped_mass: bool = False
    solver: str = "auto"
    view_elevation: float = 20.0
    view_azimuth: float = -60.0

    def __post_init__(self):
        """Validate parameters."""
        if self.speed_of_sound <= 0:
            raise ValueError(f"speed_of_sound must be positive, got {self.speed_of_sound}")
        if isinstance(self.n_modes, bool) or int(self.n_modes) != self.n_modes or self.n_modes < 1:
            raise ValueError(f"n_modes must be a positive integer, got {self.n_modes}")
        if self.max_cell_volume is not None and self.max_cell_volume <= 0:
            raise ValueError(f"max_cell_volume must be positive, got {self.max_cell_volume}")
        if not 0 <= self.quality_goal < 1:
            raise ValueError(f"quality_goal must be in [0, 1), got {self.quality_goal}")
        if int(self.accuracy_goal) != self.accuracy_goal or not 1 <= self.accuracy_goal <= 15:
            raise ValueError(f"accuracy_goal must be an integer in [1, 15], got {self.accuracy_goal}")
        if self.solver not in _SOLVERS:
            raise ValueError(f"solver must be one of {_SOLVERS}, got {self.solver!r}")

    @property
    def view(self) -> tuple[float, float]:
        """(elevation, azimuth) for 3D plots."""
        return (self.view_elevation, self.view_azimuth)

    def resolve_cell_volume(self, solid: SDFPrimitive) -> float:
        """Maximum tetrahedron volume to mesh ``solid`` with."""
        if self.max_cell_volume is not None:
            return float(self.max_cell_volume)
        lo, hi = solid.bounding_box
        extent = np.asarray(hi) - np.asarray(lo)
        if not np.all(np.isfinite(extent)) or np.any(extent <= 0):
            raise ValueError("Cannot derive max_cell_volume from an empty or unbounded solid")
        return float(np.prod(extent)) / DEFAULT_CELL_DIVISOR

    def replace(self, **overrides: Any) -> ModalAnalysisConfig:
        """Copy with overrides applied; None values are ignored."""
        changes = {k: v for k, v in overrides.items() if v is not None}
        return dataclasses.replace(self, **changes)

    @classmethod
    def field_names(cls) -> tuple[str, ...]:
        return tuple(f.name for f in dataclasses.fields(cls))

    @classmethod
    def from_namespace(
        cls, namespace: Mapping[str, Any], base: ModalAnalysisConfig | None = None
    ) -> ModalAnalysisConfig:
        """Build a config from the variables a room script defined.

        A ``config`` variable holding a ModalAnalysisConfig is used as the
        starting point; individual variables named like config fields
        override it.
        """
        start = namespace.get("config")
        if start is not None and not isinstance(start, cls):
            raise ValueError(
                f"'config' must be a {cls.__name__}, got {type(start).__name__}"
            )
        config = start or base or cls()
        overrides = {name: namespace[name] for name in cls.field_names() if name in namespace}
        return config.replace(**overrides)

    def to_dict(self) -> dict[str, Any]:
        return dataclasses.asdict(self)
