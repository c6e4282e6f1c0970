"""
End-to-end modal analysis of a room.

The pipeline has three stages, each available on its own so that
intermediate results can be inspected or reused:

1. ``build_mesh``: tetrahedralize the room solid
2. ``assemble``: stiffness and mass matrices with rigid walls
3. ``solve``: lowest eigenpairs, converted to frequencies

Example:
    >>> from room_modes import Cuboid, Prism, Union, ModalAnalysis
    >>> room = Union(
    ...     Cuboid(min_corner=(0, 0, 0), max_corner=(4, 3, 2.5)),
    ...     Prism([(4, 0, 0), (5, 0, 0), (4, 3, 0),
    ...            (4, 0, 2.5), (5, 0, 2.5), (4, 3, 2.5)]),
    ... )
    >>> analysis = ModalAnalysis(room, ModalAnalysisConfig(n_modes=8))
    >>> modes = analysis.run()
    >>> modes.frequencies  # Hz, ascending, first one ≈ 0
"""

from __future__ import annotations

import time
from typing import Callable

from scipy import sparse

from room_modes.analysis.frequencies import RoomModes
from room_modes.config import ModalAnalysisConfig
from room_modes.fem.assembly import assemble_system
from room_modes.fem.eigensolver import EigenPair, solve_eigenmodes
from room_modes.geometry.solids import SDFPrimitive
from room_modes.mesh.tetra import TetMesh, mesh_solid

#: Pipeline stages in execution order
STAGES = ("mesh", "assemble", "solve")

StageCallback = Callable[[str, float], None]


class ModalAnalysis:
    """Acoustic modes of a room with rigid walls.

    Args:
        room: Room geometry
        config: Analysis parameters (defaults to ModalAnalysisConfig())

    Attributes:
        mesh: Mesh after ``build_mesh``
        stiffness: K after ``assemble``
        mass: M after ``assemble``
        eigenpairs: Modes after ``solve``
        timings: Seconds spent in each completed stage
    """

    def __init__(self, room: SDFPrimitive, config: ModalAnalysisConfig | None = None):
        if not isinstance(room, SDFPrimitive):
            raise TypeError(f"room must be an SDFPrimitive, got {type(room).__name__}")
        self.room = room
        self.config = config if config is not None else ModalAnalysisConfig()

        self.mesh: TetMesh | None = None
        self.stiffness: sparse.csr_matrix | None = None
        self.mass: sparse.csr_matrix | None = None
        self.eigenpairs: list[EigenPair] | None = None
        self.timings: dict[str, float] = {}

    @property
    def max_cell_volume(self) -> float:
        return self.config.resolve_cell_volume(self.room)

    def build_mesh(self) -> TetMesh:
        start = time.perf_counter()
        self.mesh = mesh_solid(
            self.room,
            self.max_cell_volume,
            quality_goal=self.config.quality_goal,
            snap_boundary=self.config.snap_boundary,
        )
        self.timings["mesh"] = time.perf_counter() - start
        # Matrices and modes belong to the previous mesh
        self.stiffness = self.mass = None
        self.eigenpairs = None
        return self.mesh

    def assemble(self) -> tuple[sparse.csr_matrix, sparse.csr_matrix]:
        if self.mesh is None:
            self.build_mesh()
        start = time.perf_counter()
        self.stiffness, self.mass = assemble_system(self.mesh, lumped_mass=self.config.lumped_mass)
        self.timings["assemble"] = time.perf_counter() - start
        self.eigenpairs = None
        return self.stiffness, self.mass

    def solve(self) -> list[EigenPair]:
        if self.stiffness is None or self.mass is None:
            self.assemble()

        n = self.stiffness.shape[0]
        if self.config.n_modes > n:
            raise ValueError(
                f"Requested {self.config.n_modes} modes but the mesh has only {n} vertices; "
                "use a smaller max_cell_volume"
            )

        start = time.perf_counter()
        self.eigenpairs = solve_eigenmodes(
            self.stiffness,
            self.mass,
            self.config.n_modes,
            accuracy_goal=self.config.accuracy_goal,
            method=self.config.solver,
        )
        self.timings["solve"] = time.perf_counter() - start
        return self.eigenpairs

    def result(self) -> RoomModes:
        """Modes of the last ``solve`` as a RoomModes."""
        if self.eigenpairs is None:
            raise RuntimeError("No modes computed yet. Call solve() or run() first.")
        return RoomModes(
            mesh=self.mesh,
            eigenpairs=self.eigenpairs,
            speed_of_sound=self.config.speed_of_sound,
            timings=dict(self.timings),
        )

    def run(self, callback: StageCallback | None = None) -> RoomModes:
        """Run all stages.

        Args:
            callback: Called as ``callback(stage, elapsed_seconds)`` after
                each stage, with stage one of ``STAGES``

        Returns:
            RoomModes with mesh, modes and timings
        """
        for stage, step in zip(STAGES, (self.build_mesh, self.assemble, self.solve)):
            step()
            if callback is not None:
                callback(stage, self.timings[stage])
        return self.result()

    def __repr__(self) -> str:
        return f"ModalAnalysis(room={self.room!r}, config={self.config!r})"
