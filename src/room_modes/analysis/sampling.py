"""
Sampling of piecewise-linear mode shapes.

Eigenfunctions are stored as values at mesh vertices and vary linearly
inside each tetrahedron. This module evaluates them anywhere in the room,
on slice planes for density plots, and checks the rigid-wall condition
through the normal derivative on the boundary.

Point location uses a k-d tree over element centroids: for each query
point the nearest few elements are tested with barycentric coordinates,
which finds the containing element for any reasonably shaped mesh without
building a full spatial hierarchy.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Literal

import numpy as np
from numpy.typing import NDArray
from scipy.spatial import cKDTree

from room_modes.fem.assembly import shape_gradients

if TYPE_CHECKING:
    from room_modes.mesh.tetra import TetMesh

Axis = Literal["x", "y", "z"]
_AXES = {"x": 0, "y": 1, "z": 2}


def axis_index(axis: Axis | int) -> int:
    """Map "x"/"y"/"z" (or 0/1/2) to an array axis."""
    if isinstance(axis, str):
        if axis.lower() not in _AXES:
            raise ValueError(f"Invalid axis: {axis!r}. Must be 'x', 'y' or 'z'")
        return _AXES[axis.lower()]
    if axis not in (0, 1, 2):
        raise ValueError(f"Invalid axis: {axis}. Must be 0, 1 or 2")
    return int(axis)


class MeshInterpolator:
    """Evaluate vertex fields of a tetrahedral mesh at arbitrary points.

    Args:
        mesh: Tetrahedral mesh
        candidates: Number of nearest elements tested per point
        tolerance: Barycentric slack for points on element faces

    Example:
        >>> interp = MeshInterpolator(mesh)
        >>> values = interp.interpolate(mode.eigenfunction, points)
        >>> np.isnan(values)  # True where a point is outside the room
    """

    def __init__(self, mesh: TetMesh, candidates: int = 16, tolerance: float = 1e-9):
        if mesh.num_elements == 0:
            raise ValueError("Cannot interpolate on an empty mesh")
        self.mesh = mesh
        self.candidates = int(min(candidates, mesh.num_elements))
        self.tolerance = tolerance
        self._tree = cKDTree(mesh.centroids)

        p = mesh.vertices[mesh.tetrahedra]
        self._origin = p[:, 0]
        self._inverse = np.linalg.inv(p[:, 1:] - p[:, :1])

    def _barycentric(
        self, elements: NDArray[np.integer], points: NDArray[np.float64]
    ) -> NDArray[np.float64]:
        local = np.einsum("nj,nji->ni", points - self._origin[elements], self._inverse[elements])
        return np.column_stack([1.0 - local.sum(axis=1), local])

    def locate(self, points: NDArray[np.floating]) -> tuple[NDArray[np.int64], NDArray[np.float64]]:
        """Find the element containing each point.

        Args:
            points: (N, 3) query points

        Returns:
            Tuple (elements, barycentric) where elements is (N,) with -1 for
            points outside the mesh and barycentric is (N, 4)
        """
        points = np.asarray(points, dtype=np.float64)
        if points.ndim != 2 or points.shape[1] != 3:
            raise ValueError(f"points must be Nx3 array, got shape {points.shape}")

        n = len(points)
        found = np.full(n, -1, dtype=np.int64)
        bary = np.full((n, 4), np.nan)
        if n == 0:
            return found, bary

        _, nearest = self._tree.query(points, k=self.candidates)
        nearest = nearest.reshape(n, -1)

        for column in range(nearest.shape[1]):
            pending = np.nonzero(found < 0)[0]
            if len(pending) == 0:
                break
            elements = nearest[pending, column]
            weights = self._barycentric(elements, points[pending])
            hit = np.all(weights >= -self.tolerance, axis=1)
            found[pending[hit]] = elements[hit]
            bary[pending[hit]] = weights[hit]

        return found, bary

    def interpolate(
        self, values: NDArray[np.floating], points: NDArray[np.floating]
    ) -> NDArray[np.float64]:
        """Linear interpolation of a vertex field; NaN outside the mesh."""
        values = np.asarray(values, dtype=np.float64)
        if values.shape != (self.mesh.num_vertices,):
            raise ValueError(
                f"values must have one entry per vertex ({self.mesh.num_vertices}), "
                f"got shape {values.shape}"
            )
        elements, bary = self.locate(points)
        result = np.full(len(elements), np.nan)
        inside = elements >= 0
        vertex_values = values[self.mesh.tetrahedra[elements[inside]]]
        result[inside] = np.sum(vertex_values * bary[inside], axis=1)
        return result


def sample_plane(
    mesh: TetMesh,
    values: NDArray[np.floating],
    axis: Axis | int = "z",
    position: float | None = None,
    resolution: int = 100,
    interpolator: MeshInterpolator | None = None,
) -> tuple[NDArray[np.float64], NDArray[np.float64], NDArray[np.float64]]:
    """Sample a vertex field on an axis-aligned slice plane.

    Args:
        mesh: Tetrahedral mesh
        values: Field at mesh vertices
        axis: Plane normal ("x", "y" or "z")
        position: Plane coordinate along ``axis``; defaults to mid-height
            of the mesh bounding box
        resolution: Samples along the longer in-plane side
        interpolator: Reuse an existing interpolator for the mesh

    Returns:
        Tuple (U, V, field) of 2D arrays; U and V are the in-plane
        coordinates in axis order, field is NaN outside the room
    """
    a = axis_index(axis)
    if resolution < 2:
        raise ValueError(f"resolution must be at least 2, got {resolution}")

    lo, hi = mesh.bounding_box
    if position is None:
        position = float((lo[a] + hi[a]) / 2)

    u_axis, v_axis = [i for i in range(3) if i != a]
    longest = max(hi[u_axis] - lo[u_axis], hi[v_axis] - lo[v_axis])
    step = longest / (resolution - 1)
    nu = max(2, int(round((hi[u_axis] - lo[u_axis]) / step)) + 1)
    nv = max(2, int(round((hi[v_axis] - lo[v_axis]) / step)) + 1)

    U, V = np.meshgrid(
        np.linspace(lo[u_axis], hi[u_axis], nu),
        np.linspace(lo[v_axis], hi[v_axis], nv),
        indexing="ij",
    )
    points = np.empty((U.size, 3))
    points[:, a] = position
    points[:, u_axis] = U.ravel()
    points[:, v_axis] = V.ravel()

    interp = interpolator if interpolator is not None else MeshInterpolator(mesh)
    field = interp.interpolate(values, points).reshape(U.shape)
    return U, V, field


def sample_volume(
    mesh: TetMesh,
    values: NDArray[np.floating],
    resolution: int = 30,
    interpolator: MeshInterpolator | None = None,
) -> tuple[NDArray[np.float64], NDArray[np.float64], NDArray[np.float64], NDArray[np.float64]]:
    """Sample a vertex field on a regular 3D grid over the mesh bounding box.

    Returns:
        Tuple (X, Y, Z, field) of 3D arrays with NaN outside the room
    """
    if resolution < 2:
        raise ValueError(f"resolution must be at least 2, got {resolution}")

    lo, hi = mesh.bounding_box
    step = float(np.max(hi - lo)) / (resolution - 1)
    counts = [max(2, int(round((hi[i] - lo[i]) / step)) + 1) for i in range(3)]
    X, Y, Z = np.meshgrid(
        *(np.linspace(lo[i], hi[i], counts[i]) for i in range(3)), indexing="ij"
    )
    points = np.stack([X.ravel(), Y.ravel(), Z.ravel()], axis=1)

    interp = interpolator if interpolator is not None else MeshInterpolator(mesh)
    field = interp.interpolate(values, points).reshape(X.shape)
    return X, Y, Z, field


def element_gradients(mesh: TetMesh, values: NDArray[np.floating]) -> NDArray[np.float64]:
    """Constant gradient of a vertex field inside each element, shape (E, 3)."""
    values = np.asarray(values, dtype=np.float64)
    grads, _ = shape_gradients(mesh)
    return np.einsum("ei,eik->ek", values[mesh.tetrahedra], grads)


def boundary_normal_derivative(mesh: TetMesh, values: NDArray[np.floating]) -> NDArray[np.float64]:
    """Outward normal derivative ∂u/∂n on each boundary face.

    For rigid walls the exact modes have ∂p/∂n = 0. The finite-element
    solution satisfies this only weakly, so the values shrink with mesh
    refinement rather than vanish.
    """
    gradients = element_gradients(mesh, values)[mesh.boundary_tets]
    return np.einsum("fk,fk->f", gradients, mesh.face_normals)
