"""
Background lattice for tetrahedral meshing.

The mesher starts from an axis-aligned lattice of box cells covering the
room's bounding box. Each cell that lies inside the room is later split into
six tetrahedra, so the lattice spacing controls the element size.

Classes:
    LatticeGrid: Axis-aligned lattice with per-axis spacing

Example:
    >>> from room_modes.mesh import LatticeGrid
    >>>
    >>> # Tetrahedra no larger than 0.01 m^3 over a 5 x 4 x 2.5 m room
    >>> grid = LatticeGrid.from_bounds((0, 0, 0), (5, 4, 2.5), max_cell_volume=0.01)
    >>> grid.shape
    (13, 11, 7)
"""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np
from numpy.typing import NDArray

#: Number of tetrahedra each lattice cell is split into
TETS_PER_CELL = 6


@dataclass
class LatticeGrid:
    """Axis-aligned lattice of box cells.

    Args:
        origin: (x, y, z) position of the lattice's minimum corner node
        spacing: (dx, dy, dz) cell edge lengths
        shape: Number of cells (nx, ny, nz) along each axis

    Attributes:
        node_shape: Number of nodes along each axis, ``shape + 1``
        x_nodes, y_nodes, z_nodes: 1D node coordinates
        x_coords, y_coords, z_coords: 1D cell center coordinates
        cell_volume: Volume of one lattice cell
        min_spacing: Smallest cell edge length

    Example:
        >>> grid = LatticeGrid(origin=(0, 0, 0), spacing=(0.5, 0.5, 0.5), shape=(4, 2, 2))
        >>> grid.num_nodes
        45
    """

    origin: tuple[float, float, float]
    spacing: tuple[float, float, float]
    shape: tuple[int, int, int]

    def __post_init__(self):
        self.origin = tuple(float(v) for v in self.origin)
        self.spacing = tuple(float(v) for v in self.spacing)
        self.shape = tuple(int(n) for n in self.shape)

        if len(self.origin) != 3 or len(self.spacing) != 3 or len(self.shape) != 3:
            raise ValueError("origin, spacing and shape must all have 3 components")
        if any(h <= 0 for h in self.spacing):
            raise ValueError(f"spacing must be positive, got {self.spacing}")
        if any(n < 1 for n in self.shape):
            raise ValueError(f"shape must have at least one cell per axis, got {self.shape}")

        self._nodes = tuple(
            o + h * np.arange(n + 1, dtype=np.float64)
            for o, h, n in zip(self.origin, self.spacing, self.shape)
        )

    @property
    def node_shape(self) -> tuple[int, int, int]:
        return tuple(n + 1 for n in self.shape)

    @property
    def num_cells(self) -> int:
        return int(np.prod(self.shape))

    @property
    def num_nodes(self) -> int:
        return int(np.prod(self.node_shape))

    @property
    def x_nodes(self) -> NDArray[np.float64]:
        return self._nodes[0]

    @property
    def y_nodes(self) -> NDArray[np.float64]:
        return self._nodes[1]

    @property
    def z_nodes(self) -> NDArray[np.float64]:
        return self._nodes[2]

    @property
    def x_coords(self) -> NDArray[np.float64]:
        """Cell center x-coordinates."""
        return self._nodes[0][:-1] + self.spacing[0] / 2

    @property
    def y_coords(self) -> NDArray[np.float64]:
        """Cell center y-coordinates."""
        return self._nodes[1][:-1] + self.spacing[1] / 2

    @property
    def z_coords(self) -> NDArray[np.float64]:
        """Cell center z-coordinates."""
        return self._nodes[2][:-1] + self.spacing[2] / 2

    @property
    def cell_volume(self) -> float:
        return float(np.prod(self.spacing))

    @property
    def cell_diagonal(self) -> float:
        return float(np.linalg.norm(self.spacing))

    @property
    def min_spacing(self) -> float:
        return min(self.spacing)

    @property
    def max_spacing(self) -> float:
        return max(self.spacing)

    @property
    def is_uniform(self) -> bool:
        return bool(np.allclose(self.spacing, self.spacing[0]))

    def physical_extent(self) -> tuple[float, float, float]:
        """Get lattice size (Lx, Ly, Lz)."""
        return tuple(h * n for h, n in zip(self.spacing, self.shape))

    def node_index(
        self, i: NDArray[np.integer], j: NDArray[np.integer], k: NDArray[np.integer]
    ) -> NDArray[np.int64]:
        """Flat index of node (i, j, k) in C order."""
        _, ny, nz = self.node_shape
        return (np.asarray(i, dtype=np.int64) * ny + j) * nz + k

    def node_positions(self) -> NDArray[np.float64]:
        """All node coordinates as a (num_nodes, 3) array in C order."""
        X, Y, Z = np.meshgrid(self.x_nodes, self.y_nodes, self.z_nodes, indexing="ij")
        return np.stack([X.ravel(), Y.ravel(), Z.ravel()], axis=1)

    def cell_centers(self) -> NDArray[np.float64]:
        """All cell centers as a (num_cells, 3) array in C order."""
        X, Y, Z = np.meshgrid(self.x_coords, self.y_coords, self.z_coords, indexing="ij")
        return np.stack([X.ravel(), Y.ravel(), Z.ravel()], axis=1)

    @classmethod
    def from_bounds(
        cls,
        min_corner: tuple[float, float, float] | NDArray[np.floating],
        max_corner: tuple[float, float, float] | NDArray[np.floating],
        max_cell_volume: float,
    ) -> LatticeGrid:
        """Lattice fitted to a bounding box for a target tetrahedron size.

        Each cell holds six tetrahedra of equal volume, so the cell edge
        target is ``(6 * max_cell_volume) ** (1/3)``. Cell counts are rounded
        up and the spacing shrunk per axis so that the box faces land exactly
        on lattice planes; no tetrahedron exceeds ``max_cell_volume``.

        Args:
            min_corner: Minimum corner of the region to cover
            max_corner: Maximum corner of the region to cover
            max_cell_volume: Upper bound on tetrahedron volume

        Returns:
            LatticeGrid covering the box
        """
        if max_cell_volume <= 0:
            raise ValueError(f"max_cell_volume must be positive, got {max_cell_volume}")

        lo = np.asarray(min_corner, dtype=np.float64)
        hi = np.asarray(max_corner, dtype=np.float64)
        if not (np.all(np.isfinite(lo)) and np.all(np.isfinite(hi))):
            raise ValueError("Bounding box must be finite (is the solid empty?)")
        extent = hi - lo
        if np.any(extent <= 0):
            raise ValueError(f"Bounding box must have positive extent, got {extent}")

        target = (TETS_PER_CELL * max_cell_volume) ** (1.0 / 3.0)
        shape = np.maximum(1, np.ceil(extent / target - 1e-9)).astype(int)
        spacing = extent / shape

        return cls(origin=tuple(lo), spacing=tuple(spacing), shape=tuple(shape))

    @classmethod
    def from_resolution(
        cls,
        min_corner: tuple[float, float, float] | NDArray[np.floating],
        max_corner: tuple[float, float, float] | NDArray[np.floating],
        resolution: float,
    ) -> LatticeGrid:
        """Lattice with cell edges no longer than ``resolution``."""
        if resolution <= 0:
            raise ValueError(f"resolution must be positive, got {resolution}")
        return cls.from_bounds(min_corner, max_corner, resolution**3 / TETS_PER_CELL)

    def __repr__(self) -> str:
        return (
            f"LatticeGrid(shape={self.shape}, "
            f"spacing=({', '.join(f'{h:.4g}' for h in self.spacing)}), "
            f"origin=({', '.join(f'{o:.4g}' for o in self.origin)}))"
        )
