"""
Signed Distance Function (SDF) solids for room geometry.

Rooms are described as CSG trees of simple convex solids. Every solid answers
signed-distance queries, which the mesher uses both to decide which lattice
cells lie inside the room and to pull boundary vertices onto the walls.

Classes:
    SDFPrimitive: Abstract base class for all SDF solids
    Cuboid: Axis-aligned box
    ConvexPolyhedron: Convex hull of a point set
    Prism: Convex polyhedron spanned by two triangles (6 points)
    Hexahedron: Convex polyhedron with 8 corner points
    Union, Intersection, Difference: CSG operations
    Translate: Rigid translation of any solid

Example:
    >>> from room_modes.geometry import Cuboid, Prism, Union
    >>>
    >>> main = Cuboid(min_corner=(0, 0, 0), max_corner=(5, 4, 2.5))
    >>> bay = Prism([(5, 1, 0), (6, 2, 0), (5, 3, 0),
    ...              (5, 1, 2.5), (6, 2, 2.5), (5, 3, 2.5)])
    >>> room = Union(main, bay)
    >>> room.contains(np.array([[5.5, 2.0, 1.0]]))
    array([ True])

Sign convention: negative inside, positive outside, zero on the surface.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from functools import cached_property

import numpy as np
from numpy.typing import NDArray
from scipy.spatial import ConvexHull, QhullError
from scipy.stats import qmc


def _as_points(points: NDArray[np.floating]) -> NDArray[np.float64]:
    points = np.asarray(points, dtype=np.float64)
    if points.ndim != 2 or points.shape[1] != 3:
        raise ValueError(f"points must be Nx3 array, got shape {points.shape}")
    return points


def _empty_edges() -> NDArray[np.float64]:
    return np.zeros((0, 2, 3), dtype=np.float64)


class SDFPrimitive(ABC):
    """Base class for Signed Distance Function solids.

    Subclasses implement:
    - sdf(): Evaluate signed distance at points
    - bounding_box: Axis-aligned bounding box

    Everything else (containment, surface normals, projection onto the
    surface) is derived from those two.
    """

    @abstractmethod
    def sdf(self, points: NDArray[np.floating]) -> NDArray[np.floating]:
        """Evaluate SDF at Nx3 array of points.

        Args:
            points: (N, 3) array of (x, y, z) coordinates

        Returns:
            (N,) array of signed distances (negative = inside)
        """

    @property
    @abstractmethod
    def bounding_box(self) -> tuple[NDArray[np.floating], NDArray[np.floating]]:
        """Return (min_corner, max_corner) axis-aligned bounding box."""

    def edges(self) -> NDArray[np.floating]:
        """Feature edges as an (M, 2, 3) array of segment endpoints.

        Used for wireframe drawing only. Solids without sharp edges return
        an empty array.
        """
        return _empty_edges()

    def contains(self, points: NDArray[np.floating]) -> NDArray[np.bool_]:
        """Check if points are inside the solid (surface counts as inside)."""
        return self.sdf(points) <= 0

    def _length_scale(self) -> float:
        lo, hi = self.bounding_box
        extent = hi - lo
        if not np.all(np.isfinite(extent)) or np.any(extent < 0):
            return 1.0
        return float(max(np.max(extent), 1e-12))

    def gradient(
        self, points: NDArray[np.floating], eps: float | None = None
    ) -> NDArray[np.floating]:
        """Unit SDF gradient (outward surface normal) by central differences.

        Args:
            points: (N, 3) array of query points
            eps: Finite-difference step. Defaults to 1e-6 of the solid's
                largest extent.

        Returns:
            (N, 3) array of unit vectors. Rows where the gradient vanishes
            are returned as zeros.
        """
        points = _as_points(points)
        if eps is None:
            eps = 1e-6 * self._length_scale()

        grad = np.empty_like(points)
        for axis in range(3):
            step = np.zeros(3)
            step[axis] = eps
            grad[:, axis] = (self.sdf(points + step) - self.sdf(points - step)) / (2 * eps)

        norm = np.linalg.norm(grad, axis=1)
        safe = norm > 0
        grad[safe] /= norm[safe, np.newaxis]
        grad[~safe] = 0.0
        return grad

    def project(
        self, points: NDArray[np.floating], iterations: int = 4
    ) -> NDArray[np.floating]:
        """Move points onto the zero level set by repeated SDF steps.

        One step is exact for a point near a single planar face. Repeating
        the step walks points near edges and corners onto the intersection
        of the adjacent faces.

        Args:
            points: (N, 3) array of points near the surface
            iterations: Number of projection steps

        Returns:
            (N, 3) array of projected points
        """
        projected = _as_points(points).copy()
        for _ in range(iterations):
            distance = self.sdf(projected)
            if not np.any(np.abs(distance) > 0):
                break
            normal = self.gradient(projected)
            projected -= distance[:, np.newaxis] * normal
        return projected

    # === Fluent API ===

    def translate(self, offset: tuple[float, float, float] | NDArray[np.floating]) -> SDFPrimitive:
        """Translate this solid by an offset vector.

        Example:
            >>> alcove = Cuboid(min_corner=(0, 0, 0), max_corner=(1, 1, 2))
            >>> moved = alcove.translate((4.0, 0.0, 0.0))
        """
        return Translate(self, offset)

    def union(self, *others: SDFPrimitive) -> SDFPrimitive:
        """Union of this solid with other solids."""
        return Union(self, *others)


class Cuboid(SDFPrimitive):
    """Axis-aligned cuboid.

    Can be constructed using either:
    - min_corner and max_corner, or
    - center and size

    Args:
        min_corner: (x_min, y_min, z_min) corner
        max_corner: (x_max, y_max, z_max) corner
        center: (x, y, z) center position
        size: (width, depth, height) dimensions

    Example:
        >>> room = Cuboid(min_corner=(0, 0, 0), max_corner=(5.0, 4.0, 2.5))
        >>> room.volume
        50.0
    """

    def __init__(
        self,
        min_corner: tuple[float, float, float] | None = None,
        max_corner: tuple[float, float, float] | None = None,
        center: tuple[float, float, float] | None = None,
        size: tuple[float, float, float] | None = None,
    ):
        if min_corner is not None and max_corner is not None and center is None and size is None:
            min_c = np.array(min_corner, dtype=np.float64)
            max_c = np.array(max_corner, dtype=np.float64)
            self.center = (min_c + max_c) / 2
            self.size = max_c - min_c
        elif center is not None and size is not None and min_corner is None and max_corner is None:
            self.center = np.array(center, dtype=np.float64)
            self.size = np.array(size, dtype=np.float64)
        else:
            raise ValueError("Must provide either (min_corner, max_corner) or (center, size)")

        if self.center.shape != (3,) or self.size.shape != (3,):
            raise ValueError("Cuboid corners, center and size must be 3-vectors")
        if np.any(self.size <= 0):
            raise ValueError(f"Cuboid size must be positive, got {self.size}")

    @property
    def min_corner(self) -> NDArray[np.floating]:
        return self.center - self.size / 2

    @property
    def max_corner(self) -> NDArray[np.floating]:
        return self.center + self.size / 2

    @property
    def dimensions(self) -> tuple[float, float, float]:
        """Edge lengths (Lx, Ly, Lz)."""
        return tuple(float(s) for s in self.size)

    @property
    def volume(self) -> float:
        return float(np.prod(self.size))

    def sdf(self, points: NDArray[np.floating]) -> NDArray[np.floating]:
        """Exact box SDF."""
        points = _as_points(points)

        q = np.abs(points - self.center) - self.size / 2
        outside = np.linalg.norm(np.maximum(q, 0), axis=1)
        inside = np.minimum(np.max(q, axis=1), 0)

        return outside + inside

    @property
    def bounding_box(self) -> tuple[NDArray[np.floating], NDArray[np.floating]]:
        return self.min_corner, self.max_corner

    def edges(self) -> NDArray[np.floating]:
        lo, hi = self.min_corner, self.max_corner
        corners = np.array(
            [[(hi if (i >> a) & 1 else lo)[a] for a in range(3)] for i in range(8)]
        )
        # Corners i and j share an edge when their bit patterns differ in one bit
        pairs = [(i, i | (1 << a)) for i in range(8) for a in range(3) if not (i >> a) & 1]
        return np.array([[corners[i], corners[j]] for i, j in pairs])

    def __repr__(self) -> str:
        return (
            f"Cuboid(min_corner={tuple(self.min_corner.round(6))}, "
            f"max_corner={tuple(self.max_corner.round(6))})"
        )


class ConvexPolyhedron(SDFPrimitive):
    """Convex polyhedron given by its corner points.

    The hull is computed with Qhull. Every given point must be a hull
    vertex: interior points or a non-convex corner ordering are rejected so
    that a typo in a room description fails loudly instead of silently
    producing a different shape.

    Inside the solid the SDF is exact. Outside it is the largest face-plane
    distance, which underestimates the true distance near edges and corners
    but has the correct sign and zero set.

    Args:
        points: (N, 3) corner points, N >= 4
    """

    #: Required number of points, or None for any count
    n_points: int | None = None

    def __init__(self, points: NDArray[np.floating] | list):
        pts = np.asarray(points, dtype=np.float64)
        if pts.ndim != 2 or pts.shape[1] != 3:
            raise ValueError(f"points must be Nx3 array, got shape {pts.shape}")
        if self.n_points is not None and len(pts) != self.n_points:
            raise ValueError(
                f"{type(self).__name__} needs exactly {self.n_points} points, got {len(pts)}"
            )
        if len(pts) < 4:
            raise ValueError(f"A polyhedron needs at least 4 points, got {len(pts)}")

        try:
            hull = ConvexHull(pts)
        except QhullError as e:
            raise ValueError(f"{type(self).__name__} points are degenerate (coplanar?)") from e

        if len(np.unique(hull.vertices)) != len(pts):
            missing = sorted(set(range(len(pts))) - set(hull.vertices.tolist()))
            raise ValueError(
                f"{type(self).__name__} is not convex: points {missing} lie inside the hull"
            )

        self.points = pts
        self._hull = hull
        self.normals = hull.equations[:, :3]
        self.offsets = hull.equations[:, 3]

    @property
    def volume(self) -> float:
        return float(self._hull.volume)

    @property
    def surface_area(self) -> float:
        return float(self._hull.area)

    def sdf(self, points: NDArray[np.floating]) -> NDArray[np.floating]:
        points = _as_points(points)
        return np.max(points @ self.normals.T + self.offsets, axis=1)

    @property
    def bounding_box(self) -> tuple[NDArray[np.floating], NDArray[np.floating]]:
        return self.points.min(axis=0), self.points.max(axis=0)

    @cached_property
    def _feature_edges(self) -> NDArray[np.floating]:
        # Qhull triangulates faces; keep only edges between non-coplanar facets
        simplices = self._hull.simplices
        neighbors = self._hull.neighbors
        segments = []
        for i, simplex in enumerate(simplices):
            for j in range(3):
                nb = neighbors[i, j]
                if nb < i:
                    continue
                if np.dot(self.normals[i], self.normals[nb]) > 1 - 1e-9:
                    continue
                a, b = np.delete(simplex, j)
                segments.append([self.points[a], self.points[b]])
        if not segments:
            return _empty_edges()
        return np.array(segments)

    def edges(self) -> NDArray[np.floating]:
        return self._feature_edges

    def __repr__(self) -> str:
        return f"{type(self).__name__}(n_points={len(self.points)}, volume={self.volume:.4g})"


class Prism(ConvexPolyhedron):
    """Prism spanned by two triangles.

    Args:
        points: Six points; the first three form one triangle, the last
            three the opposite triangle. The triangles need not be parallel
            or congruent, but the resulting solid must be convex.

    Example:
        >>> # Triangular bay window on the x = 5 wall, full room height
        >>> bay = Prism([(5, 1, 0), (6, 2, 0), (5, 3, 0),
        ...              (5, 1, 2.5), (6, 2, 2.5), (5, 3, 2.5)])
    """

    n_points = 6


class Hexahedron(ConvexPolyhedron):
    """Hexahedron with eight corners.

    Points follow the usual FEM ordering: bottom face 0-1-2-3, then top
    face 4-5-6-7 with point 4 above point 0. Only the point set matters for
    the solid, since the hull is computed from it.

    Example:
        >>> # Alcove with a sloped ceiling
        >>> alcove = Hexahedron([(0, 4, 0), (2, 4, 0), (2, 5, 0), (0, 5, 0),
        ...                      (0, 4, 2.5), (2, 4, 2.5), (2, 5, 2.0), (0, 5, 2.0)])
    """

    n_points = 8


# === CSG Operations ===


class CSGNode(SDFPrimitive):
    """Base class for CSG operations on SDF solids."""

    children: tuple[SDFPrimitive, ...] = ()

    def edges(self) -> NDArray[np.floating]:
        parts = [child.edges() for child in self.children]
        parts = [p for p in parts if len(p)]
        if not parts:
            return _empty_edges()
        return np.concatenate(parts, axis=0)


class Union(CSGNode):
    """
    Union of multiple solids (logical OR).

    SDF implementation: min(d1, d2, ..., dn). The result is exact outside
    the solid and a bound inside overlapping regions, which is all that
    containment and surface projection need.
    """

    def __init__(self, *children: SDFPrimitive):
        self.children = children

    def sdf(self, points: NDArray[np.floating]) -> NDArray[np.floating]:
        points = _as_points(points)
        if not self.children:
            return np.full(len(points), np.inf, dtype=np.float64)

        return np.minimum.reduce([child.sdf(points) for child in self.children])

    @cached_property
    def bounding_box(self) -> tuple[NDArray[np.floating], NDArray[np.floating]]:
        if not self.children:
            return (
                np.array([np.inf, np.inf, np.inf]),
                np.array([-np.inf, -np.inf, -np.inf]),
            )

        mins = [child.bounding_box[0] for child in self.children]
        maxs = [child.bounding_box[1] for child in self.children]
        return np.minimum.reduce(mins), np.maximum.reduce(maxs)

    def __repr__(self) -> str:
        return f"Union({', '.join(repr(c) for c in self.children)})"


class Intersection(CSGNode):
    """
    Intersection of multiple solids (logical AND).

    SDF implementation: max(d1, d2, ..., dn)
    """

    def __init__(self, *children: SDFPrimitive):
        self.children = children

    def sdf(self, points: NDArray[np.floating]) -> NDArray[np.floating]:
        points = _as_points(points)
        if not self.children:
            return np.full(len(points), -np.inf, dtype=np.float64)

        return np.maximum.reduce([child.sdf(points) for child in self.children])

    @cached_property
    def bounding_box(self) -> tuple[NDArray[np.floating], NDArray[np.floating]]:
        """Intersection of child boxes (conservative)."""
        if not self.children:
            return (
                np.array([-np.inf, -np.inf, -np.inf]),
                np.array([np.inf, np.inf, np.inf]),
            )

        bb_min = np.maximum.reduce([child.bounding_box[0] for child in self.children])
        bb_max = np.minimum.reduce([child.bounding_box[1] for child in self.children])

        if np.any(bb_min > bb_max):
            return (
                np.array([np.inf, np.inf, np.inf]),
                np.array([-np.inf, -np.inf, -np.inf]),
            )

        return bb_min, bb_max


class Difference(CSGNode):
    """
    Subtract solids from a base solid, e.g. a pillar from a room.

    SDF implementation: max(base_sdf, -cut1_sdf, -cut2_sdf, ...)
    """

    def __init__(self, base: SDFPrimitive, *subtracted: SDFPrimitive):
        self.base = base
        self.subtracted = subtracted
        self.children = (base, *subtracted)

    def sdf(self, points: NDArray[np.floating]) -> NDArray[np.floating]:
        result = self.base.sdf(points)
        for shape in self.subtracted:
            result = np.maximum(result, -shape.sdf(points))
        return result

    @cached_property
    def bounding_box(self) -> tuple[NDArray[np.floating], NDArray[np.floating]]:
        """Same as the base: subtracting never grows the solid."""
        return self.base.bounding_box


class Translate(SDFPrimitive):
    """Translate a solid by an offset.

    Args:
        child: Solid to move
        offset: (x, y, z) translation vector
    """

    def __init__(
        self,
        child: SDFPrimitive,
        offset: tuple[float, float, float] | NDArray[np.floating],
    ):
        self.child = child
        self.offset = np.asarray(offset, dtype=np.float64)
        if self.offset.shape != (3,):
            raise ValueError(f"offset must be a 3-vector, got shape {self.offset.shape}")

    def sdf(self, points: NDArray[np.floating]) -> NDArray[np.floating]:
        return self.child.sdf(_as_points(points) - self.offset)

    @property
    def bounding_box(self) -> tuple[NDArray[np.floating], NDArray[np.floating]]:
        lo, hi = self.child.bounding_box
        return lo + self.offset, hi + self.offset

    def edges(self) -> NDArray[np.floating]:
        return self.child.edges() + self.offset

    @property
    def volume(self) -> float:
        return self.child.volume  # type: ignore[attr-defined]


def estimate_volume(solid: SDFPrimitive, n_samples: int = 2**15, seed: int | None = 0) -> float:
    """Estimate the volume of any solid by quasi-Monte Carlo sampling.

    Samples a scrambled Sobol sequence over the bounding box, which
    converges much faster than plain random sampling for the piecewise
    constant indicator function of a solid. Exact volumes of primitives are
    available as ``solid.volume``; this function covers CSG trees, whose
    overlaps make closed-form volumes impractical.

    Args:
        solid: Any SDF solid
        n_samples: Number of samples (rounded up to a power of two)
        seed: Seed for the scrambling

    Returns:
        Estimated volume in cubic length units
    """
    if n_samples < 1:
        raise ValueError(f"n_samples must be positive, got {n_samples}")

    lo, hi = solid.bounding_box
    if not (np.all(np.isfinite(lo)) and np.all(np.isfinite(hi))) or np.any(hi <= lo):
        return 0.0

    m = int(np.ceil(np.log2(n_samples)))
    sampler = qmc.Sobol(d=3, scramble=True, seed=seed)
    samples = qmc.scale(sampler.random_base2(m), lo, hi)

    inside_fraction = float(np.mean(solid.contains(samples)))
    return inside_fraction * float(np.prod(hi - lo))
