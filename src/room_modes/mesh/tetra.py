"""
Conforming tetrahedral meshes of CSG rooms.

The mesher works in three passes over a background lattice:

1. **Cell selection**: lattice cells whose centers lie inside the solid are
   kept. The result is a staircase approximation of the room.
2. **Kuhn split**: every kept cell is cut into six tetrahedra along paths
   from its minimum to its maximum corner. All cells use the same six paths,
   so neighbouring cells agree on their shared faces and the mesh is
   conforming without any stitching.
3. **Boundary snapping**: vertices on the staircase surface are projected
   onto the solid's zero level set. Moves that would spoil element quality
   are halved until the element is acceptable again, and abandoned if that
   does not help.

Walls that lie on lattice planes (all walls of an axis-aligned cuboid room
fitted to its bounding box, for instance) are reproduced exactly; slanted
walls are approximated to within the snapping result.

Example:
    >>> from room_modes.geometry import Cuboid
    >>> from room_modes.mesh import mesh_solid
    >>>
    >>> room = Cuboid(min_corner=(0, 0, 0), max_corner=(5.0, 4.0, 2.5))
    >>> mesh = mesh_solid(room, max_cell_volume=0.05)
    >>> round(mesh.volume, 6)
    50.0
"""

from __future__ import annotations

import itertools
import warnings
from dataclasses import dataclass, field
from functools import cached_property
from typing import TYPE_CHECKING, Any

import numpy as np
from numpy.typing import NDArray
from scipy import sparse
from scipy.sparse.csgraph import connected_components

from room_modes.mesh.grid import LatticeGrid

if TYPE_CHECKING:
    from room_modes.geometry.solids import SDFPrimitive


class MeshGenerationError(RuntimeError):
    """Raised when a solid cannot be meshed."""

    pass


# Local vertex indices of the face opposite each tetrahedron vertex
_FACE_LOCAL = np.array([[1, 2, 3], [0, 2, 3], [0, 1, 3], [0, 1, 2]])


def _kuhn_offsets() -> NDArray[np.int64]:
    """Corner offsets (6, 4, 3) of the six Kuhn tetrahedra of a unit cell."""
    offsets = []
    for order in itertools.permutations(range(3)):
        corner = np.zeros(3, dtype=np.int64)
        path = [corner.copy()]
        for axis in order:
            corner[axis] = 1
            path.append(corner.copy())
        offsets.append(path)
    return np.array(offsets)


_KUHN_OFFSETS = _kuhn_offsets()


def signed_volumes(vertices: NDArray[np.floating], tetrahedra: NDArray[np.integer]) -> NDArray[np.float64]:
    """Signed volume of each tetrahedron (positive for right-handed order)."""
    p = vertices[tetrahedra]
    edges = p[:, 1:] - p[:, :1]
    return np.linalg.det(edges) / 6.0


def tet_quality(vertices: NDArray[np.floating], tetrahedra: NDArray[np.integer]) -> NDArray[np.float64]:
    """Signed shape quality of each tetrahedron.

    Uses ``6 * sqrt(2) * V / l_rms**3`` where ``l_rms`` is the root mean
    square edge length. A regular tetrahedron scores 1, a lattice Kuhn
    tetrahedron about 0.66, flat or inverted elements 0 or less.
    """
    p = vertices[tetrahedra]
    pairs = [(0, 1), (0, 2), (0, 3), (1, 2), (1, 3), (2, 3)]
    sq = np.stack([np.sum((p[:, a] - p[:, b]) ** 2, axis=1) for a, b in pairs], axis=1)
    l_rms = np.sqrt(np.mean(sq, axis=1))
    return 6.0 * np.sqrt(2.0) * signed_volumes(vertices, tetrahedra) / l_rms**3


def _orient(vertices: NDArray[np.floating], tetrahedra: NDArray[np.integer]) -> NDArray[np.int64]:
    tets = np.array(tetrahedra, dtype=np.int64, copy=True)
    negative = signed_volumes(vertices, tets) < 0
    tets[negative, 2], tets[negative, 3] = tets[negative, 3], tets[negative, 2].copy()
    return tets


def _face_table(tetrahedra: NDArray[np.integer]) -> tuple[NDArray, NDArray, NDArray, NDArray]:
    """All element faces with their owners and a shared-face key.

    Returns:
        faces: (4E, 3) vertex ids, face j of element e at row 4e + j
        owners: (4E,) owning element of each face
        opposite: (4E,) local index of the vertex opposite each face
        key: (4E,) id shared by both copies of an interior face
    """
    n_tets = len(tetrahedra)
    faces = tetrahedra[:, _FACE_LOCAL].reshape(-1, 3)
    owners = np.repeat(np.arange(n_tets), 4)
    opposite = np.tile(np.arange(4), n_tets)
    _, key = np.unique(np.sort(faces, axis=1), axis=0, return_inverse=True)
    return faces, owners, opposite, key.reshape(-1)


@dataclass
class TetMesh:
    """Linear tetrahedral mesh with its boundary surface.

    Args:
        vertices: (V, 3) vertex coordinates
        tetrahedra: (E, 4) vertex ids, positively oriented
        boundary_faces: (F, 3) vertex ids of surface triangles, ordered so
            that their right-hand normal points out of the mesh
        boundary_tets: (F,) element owning each boundary face
        grid: Background lattice the mesh was cut from, if any
        info: Free-form mesher statistics

    Use ``TetMesh.from_tetrahedra`` to build a mesh from raw connectivity;
    it orients the elements and extracts the boundary.
    """

    vertices: NDArray[np.float64]
    tetrahedra: NDArray[np.int64]
    boundary_faces: NDArray[np.int64]
    boundary_tets: NDArray[np.int64]
    grid: LatticeGrid | None = None
    info: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        self.vertices = np.asarray(self.vertices, dtype=np.float64)
        self.tetrahedra = np.asarray(self.tetrahedra, dtype=np.int64)
        self.boundary_faces = np.asarray(self.boundary_faces, dtype=np.int64).reshape(-1, 3)
        self.boundary_tets = np.asarray(self.boundary_tets, dtype=np.int64).reshape(-1)

        if self.vertices.ndim != 2 or self.vertices.shape[1] != 3:
            raise ValueError(f"vertices must be Vx3 array, got shape {self.vertices.shape}")
        if self.tetrahedra.ndim != 2 or self.tetrahedra.shape[1] != 4:
            raise ValueError(f"tetrahedra must be Ex4 array, got shape {self.tetrahedra.shape}")
        if len(self.boundary_faces) != len(self.boundary_tets):
            raise ValueError("boundary_faces and boundary_tets must have equal length")
        if self.tetrahedra.size and (
            self.tetrahedra.min() < 0 or self.tetrahedra.max() >= len(self.vertices)
        ):
            raise ValueError("tetrahedra reference vertices out of range")

    @classmethod
    def from_tetrahedra(
        cls,
        vertices: NDArray[np.floating],
        tetrahedra: NDArray[np.integer],
        grid: LatticeGrid | None = None,
    ) -> TetMesh:
        """Build a mesh from vertices and element connectivity.

        Elements are reoriented to positive volume, and faces used by
        exactly one element become the boundary, oriented outward.
        """
        vertices = np.asarray(vertices, dtype=np.float64)
        tets = _orient(vertices, np.asarray(tetrahedra, dtype=np.int64))
        if np.any(np.isclose(signed_volumes(vertices, tets), 0.0, atol=1e-15)):
            raise ValueError("Mesh contains degenerate (zero-volume) tetrahedra")

        faces, owners, opposite, key = _face_table(tets)
        counts = np.bincount(key)
        if np.any(counts > 2):
            raise ValueError("Mesh is not manifold: a face is shared by more than two elements")

        on_boundary = counts[key] == 1
        b_faces = faces[on_boundary].copy()
        b_tets = owners[on_boundary]
        b_opposite = tets[b_tets, opposite[on_boundary]]

        # Flip faces whose normal points toward the opposite vertex
        p0, p1, p2 = (vertices[b_faces[:, i]] for i in range(3))
        normal = np.cross(p1 - p0, p2 - p0)
        inward = np.einsum("ij,ij->i", normal, vertices[b_opposite] - p0) > 0
        b_faces[inward, 1], b_faces[inward, 2] = b_faces[inward, 2], b_faces[inward, 1].copy()

        return cls(
            vertices=vertices,
            tetrahedra=tets,
            boundary_faces=b_faces,
            boundary_tets=b_tets,
            grid=grid,
        )

    def with_vertices(self, vertices: NDArray[np.floating]) -> TetMesh:
        """Same connectivity with moved vertices."""
        return TetMesh(
            vertices=vertices,
            tetrahedra=self.tetrahedra,
            boundary_faces=self.boundary_faces,
            boundary_tets=self.boundary_tets,
            grid=self.grid,
            info=dict(self.info),
        )

    @property
    def num_vertices(self) -> int:
        return len(self.vertices)

    @property
    def num_elements(self) -> int:
        return len(self.tetrahedra)

    @property
    def num_boundary_faces(self) -> int:
        return len(self.boundary_faces)

    @cached_property
    def element_volumes(self) -> NDArray[np.float64]:
        return signed_volumes(self.vertices, self.tetrahedra)

    @property
    def volume(self) -> float:
        """Total mesh volume."""
        return float(np.sum(self.element_volumes))

    @cached_property
    def centroids(self) -> NDArray[np.float64]:
        return self.vertices[self.tetrahedra].mean(axis=1)

    @cached_property
    def boundary_vertices(self) -> NDArray[np.int64]:
        """Sorted ids of vertices on the boundary surface."""
        return np.unique(self.boundary_faces)

    @cached_property
    def _face_geometry(self) -> tuple[NDArray[np.float64], NDArray[np.float64]]:
        p0, p1, p2 = (self.vertices[self.boundary_faces[:, i]] for i in range(3))
        cross = np.cross(p1 - p0, p2 - p0)
        area2 = np.linalg.norm(cross, axis=1)
        return cross / area2[:, np.newaxis], area2 / 2

    @property
    def face_normals(self) -> NDArray[np.float64]:
        """Unit outward normals of the boundary faces."""
        return self._face_geometry[0]

    @property
    def face_areas(self) -> NDArray[np.float64]:
        return self._face_geometry[1]

    @property
    def boundary_area(self) -> float:
        return float(np.sum(self.face_areas))

    @property
    def bounding_box(self) -> tuple[NDArray[np.float64], NDArray[np.float64]]:
        return self.vertices.min(axis=0), self.vertices.max(axis=0)

    def quality(self) -> NDArray[np.float64]:
        """Shape quality of every element, see ``tet_quality``."""
        return tet_quality(self.vertices, self.tetrahedra)

    def connected_components(self) -> tuple[int, NDArray[np.int32]]:
        """Number of face-connected element groups and each element's label."""
        _, owners, _, key = _face_table(self.tetrahedra)
        order = np.argsort(key, kind="stable")
        sorted_key = key[order]
        shared = np.nonzero(sorted_key[1:] == sorted_key[:-1])[0]
        a, b = owners[order[shared]], owners[order[shared + 1]]
        n = self.num_elements
        graph = sparse.coo_matrix((np.ones(len(a)), (a, b)), shape=(n, n))
        return connected_components(graph, directed=False)

    def summary(self) -> dict[str, Any]:
        """Mesh statistics for display."""
        quality = self.quality()
        return {
            "vertices": self.num_vertices,
            "elements": self.num_elements,
            "boundary_faces": self.num_boundary_faces,
            "volume": self.volume,
            "boundary_area": self.boundary_area,
            "min_quality": float(quality.min()) if len(quality) else float("nan"),
            "mean_quality": float(quality.mean()) if len(quality) else float("nan"),
            "max_element_volume": float(self.element_volumes.max()) if self.num_elements else 0.0,
            **self.info,
        }

    def __repr__(self) -> str:
        return (
            f"TetMesh(vertices={self.num_vertices}, elements={self.num_elements}, "
            f"boundary_faces={self.num_boundary_faces}, volume={self.volume:.4g})"
        )


def _snap_boundary(
    solid: SDFPrimitive,
    mesh: TetMesh,
    grid: LatticeGrid,
    quality_goal: float,
    projection_steps: int = 4,
    max_halvings: int = 6,
) -> tuple[NDArray[np.float64], dict[str, int]]:
    """Move boundary vertices onto the solid surface without spoiling elements."""
    tets = mesh.tetrahedra
    original = mesh.vertices
    bverts = mesh.boundary_vertices

    target = solid.project(original[bverts], iterations=projection_steps)
    displacement = target - original[bverts]

    # A staircase vertex is never more than half a cell diagonal from the wall
    reach = np.linalg.norm(displacement, axis=1)
    unreachable = ~np.isfinite(reach) | (reach > 0.5 * grid.cell_diagonal * (1 + 1e-6))
    displacement[unreachable] = 0.0

    threshold = np.minimum(quality_goal, tet_quality(original, tets))
    scale = np.ones(len(bverts))

    def moved(s: NDArray[np.float64]) -> NDArray[np.float64]:
        vertices = original.copy()
        vertices[bverts] += s[:, np.newaxis] * displacement
        return vertices

    for _ in range(max_halvings):
        bad = tet_quality(moved(scale), tets) < threshold
        if not np.any(bad):
            break
        scale[np.isin(bverts, tets[bad])] *= 0.5

    # Give up on whatever is still bad; the unmoved lattice is always valid
    reverted = np.zeros(len(bverts), dtype=bool)
    while True:
        bad = tet_quality(moved(scale), tets) < threshold
        if not np.any(bad):
            break
        culprits = np.isin(bverts, tets[bad]) & (scale > 0)
        scale[culprits] = 0.0
        reverted |= culprits

    stats = {
        "snapped_vertices": int(np.count_nonzero((scale > 0) & (reach > 0) & ~unreachable)),
        "reverted_vertices": int(np.count_nonzero(reverted | unreachable)),
    }
    return moved(scale), stats


def _check_grid_covers(solid: SDFPrimitive, grid: LatticeGrid) -> None:
    lo, hi = solid.bounding_box
    if not (np.all(np.isfinite(lo)) and np.all(np.isfinite(hi))) or np.any(hi <= lo):
        raise MeshGenerationError("Solid has an empty or unbounded bounding box")
    grid_lo = np.array([grid.x_nodes[0], grid.y_nodes[0], grid.z_nodes[0]])
    grid_hi = np.array([grid.x_nodes[-1], grid.y_nodes[-1], grid.z_nodes[-1]])
    tol = 1e-9 * float(np.max(grid_hi - grid_lo))
    if np.any(lo < grid_lo - tol) or np.any(hi > grid_hi + tol):
        raise ValueError(
            f"grid spans {tuple(grid_lo)} to {tuple(grid_hi)} but the solid's bounding box "
            f"is {tuple(lo)} to {tuple(hi)}; parts outside the grid would be dropped"
        )


def mesh_solid(
    solid: SDFPrimitive,
    max_cell_volume: float | None = None,
    *,
    grid: LatticeGrid | None = None,
    quality_goal: float = 0.1,
    snap_boundary: bool = True,
) -> TetMesh:
    """Tetrahedralize a solid.

    Args:
        solid: Room geometry
        max_cell_volume: Upper bound on tetrahedron volume. Ignored when
            ``grid`` is given.
        grid: Explicit background lattice. Must cover the solid's
            bounding box.
        quality_goal: Minimum element quality that boundary snapping may
            produce (elements already worse on the lattice are only
            prevented from getting worse)
        snap_boundary: Project boundary vertices onto the surface

    Returns:
        TetMesh with ``info`` holding snapping statistics

    Raises:
        ValueError: If neither ``max_cell_volume`` nor ``grid`` is given,
            ``grid`` does not cover the solid, or parameters are out of range
        MeshGenerationError: If no lattice cell lies inside the solid
    """
    if not 0 <= quality_goal < 1:
        raise ValueError(f"quality_goal must be in [0, 1), got {quality_goal}")

    if grid is None:
        if max_cell_volume is None:
            raise ValueError("Either max_cell_volume or grid must be provided")
        lo, hi = solid.bounding_box
        if not (np.all(np.isfinite(lo)) and np.all(np.isfinite(hi))) or np.any(hi <= lo):
            raise MeshGenerationError("Solid has an empty or unbounded bounding box")
        grid = LatticeGrid.from_bounds(lo, hi, max_cell_volume)
    else:
        _check_grid_covers(solid, grid)

    inside = solid.contains(grid.cell_centers()).reshape(grid.shape)
    if not np.any(inside):
        raise MeshGenerationError(
            f"No lattice cell center lies inside the solid ({grid!r}); "
            "use a smaller max_cell_volume"
        )

    ci, cj, ck = np.nonzero(inside)
    ijk = [c[:, np.newaxis, np.newaxis] + _KUHN_OFFSETS[np.newaxis, :, :, axis]
           for axis, c in enumerate((ci, cj, ck))]
    lattice_tets = grid.node_index(*ijk).reshape(-1, 4)

    used, local = np.unique(lattice_tets, return_inverse=True)
    tets = local.reshape(-1, 4)
    node_ijk = np.unravel_index(used, grid.node_shape)
    vertices = np.stack(
        [grid.x_nodes[node_ijk[0]], grid.y_nodes[node_ijk[1]], grid.z_nodes[node_ijk[2]]],
        axis=1,
    )

    mesh = TetMesh.from_tetrahedra(vertices, tets, grid=grid)
    mesh.info["lattice_cells"] = int(np.count_nonzero(inside))

    if snap_boundary:
        snapped, stats = _snap_boundary(solid, mesh, grid, quality_goal)
        mesh = mesh.with_vertices(snapped)
        mesh.info.update(stats)

    n_components, _ = mesh.connected_components()
    mesh.info["components"] = int(n_components)
    if n_components > 1:
        warnings.warn(
            f"Mesh has {n_components} disconnected parts, connected only through edges "
            "or vertices, or not at all. Refine the mesh or check that the solids overlap.",
            UserWarning,
            stacklevel=2,
        )

    return mesh
