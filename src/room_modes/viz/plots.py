"""
Matplotlib figures for room geometry, meshes and pressure modes.

All functions return a ``matplotlib.figure.Figure`` and never call
``plt.show()``, so they work the same under a GUI backend, in notebooks and
headless with Agg. Pass ``ax`` to draw into an existing axes instead of a
new figure.

Example:
    >>> from room_modes.viz import plot_mode_density
    >>> fig = plot_mode_density(modes.mesh, modes.mode(2).scaled(), axis="z")
    >>> fig.savefig("mode_2.png", dpi=150)
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Sequence

import matplotlib.pyplot as plt
import numpy as np
from matplotlib import colormaps
from matplotlib.colors import Normalize
from mpl_toolkits.mplot3d.art3d import Line3DCollection, Poly3DCollection
from numpy.typing import NDArray

from room_modes.analysis.sampling import Axis, MeshInterpolator, axis_index, sample_plane

if TYPE_CHECKING:
    from matplotlib.axes import Axes
    from matplotlib.figure import Figure

    from room_modes.analysis.frequencies import RoomModes
    from room_modes.geometry.solids import SDFPrimitive
    from room_modes.mesh.tetra import TetMesh

#: Default 3D viewpoint (elevation, azimuth) in degrees
DEFAULT_VIEW = (20.0, -60.0)

_AXIS_LABELS = ("x (m)", "y (m)", "z (m)")
_MODE_CMAP = "RdBu_r"


def _axes_3d(ax: Axes | None, view: tuple[float, float]) -> tuple[Figure, Axes]:
    if ax is None:
        fig = plt.figure(figsize=(8, 6))
        ax = fig.add_subplot(projection="3d")
    else:
        fig = ax.get_figure()
    ax.view_init(elev=view[0], azim=view[1])
    ax.set_xlabel(_AXIS_LABELS[0])
    ax.set_ylabel(_AXIS_LABELS[1])
    ax.set_zlabel(_AXIS_LABELS[2])
    return fig, ax


def _set_box(ax: Axes, lo: NDArray[np.floating], hi: NDArray[np.floating]) -> None:
    ax.set_xlim(lo[0], hi[0])
    ax.set_ylim(lo[1], hi[1])
    ax.set_zlim(lo[2], hi[2])
    ax.set_box_aspect(np.maximum(hi - lo, 1e-12))


def _symmetric_limit(values: NDArray[np.floating]) -> float:
    finite = np.abs(values[np.isfinite(values)])
    peak = float(finite.max()) if finite.size else 0.0
    return peak if peak > 0 else 1.0


def plot_wireframe(
    solid: SDFPrimitive,
    view: tuple[float, float] = DEFAULT_VIEW,
    ax: Axes | None = None,
    color: str = "k",
    title: str | None = "Room geometry",
) -> Figure:
    """Draw the feature edges of every primitive in a CSG tree.

    Edges are drawn per primitive, so edges hidden inside a union stay
    visible. That is usually what one wants when checking how a room was
    assembled.
    """
    fig, ax = _axes_3d(ax, view)
    edges = solid.edges()
    if len(edges):
        ax.add_collection3d(Line3DCollection(edges, colors=color, linewidths=1.0))

    lo, hi = solid.bounding_box
    if np.all(np.isfinite(lo)) and np.all(np.isfinite(hi)):
        _set_box(ax, lo, hi)
    if title:
        ax.set_title(title)
    return fig


def plot_mesh(
    mesh: TetMesh,
    view: tuple[float, float] = DEFAULT_VIEW,
    ax: Axes | None = None,
    facecolor: str = "lightsteelblue",
    edgecolor: str = "0.3",
    alpha: float = 0.35,
    title: str | None = None,
) -> Figure:
    """Draw the boundary surface of a tetrahedral mesh."""
    fig, ax = _axes_3d(ax, view)
    triangles = mesh.vertices[mesh.boundary_faces]
    surface = Poly3DCollection(
        triangles, facecolors=facecolor, edgecolors=edgecolor, linewidths=0.3, alpha=alpha
    )
    ax.add_collection3d(surface)

    lo, hi = mesh.bounding_box
    _set_box(ax, lo, hi)
    if title is None:
        title = f"Mesh: {mesh.num_vertices} vertices, {mesh.num_elements} tetrahedra"
    if title:
        ax.set_title(title)
    return fig


def plot_mode_density(
    mesh: TetMesh,
    values: NDArray[np.floating],
    axis: Axis | int = "z",
    position: float | None = None,
    resolution: int = 120,
    ax: Axes | None = None,
    title: str | None = None,
    nodal_lines: bool = True,
    colorbar: bool = True,
    interpolator: MeshInterpolator | None = None,
) -> Figure:
    """Density plot of a mode on one axis-aligned slice plane.

    The color scale is symmetric around zero so that pressure maxima and
    minima read as equally strong. Points outside the room are left blank.

    Args:
        mesh: Mesh the mode is defined on
        values: Mode values at mesh vertices
        axis: Normal of the slice plane
        position: Plane coordinate; defaults to the middle of the room
        resolution: Samples along the longer side of the plane
        ax: Existing 2D axes to draw into
        title: Axes title
        nodal_lines: Overlay the zero-pressure contour
        colorbar: Add a colorbar
        interpolator: Reuse an interpolator built for ``mesh``
    """
    a = axis_index(axis)
    U, V, field = sample_plane(
        mesh, values, axis=a, position=position, resolution=resolution, interpolator=interpolator
    )

    if ax is None:
        fig, ax = plt.subplots(figsize=(7, 5))
    else:
        fig = ax.get_figure()

    limit = _symmetric_limit(field)
    masked = np.ma.masked_invalid(field)
    mesh_artist = ax.pcolormesh(
        U, V, masked, cmap=_MODE_CMAP, vmin=-limit, vmax=limit, shading="auto"
    )
    if nodal_lines and np.nanmin(field) < 0 < np.nanmax(field):
        ax.contour(U, V, masked, levels=[0.0], colors="k", linewidths=0.8)

    u_axis, v_axis = [i for i in range(3) if i != a]
    ax.set_xlabel(_AXIS_LABELS[u_axis])
    ax.set_ylabel(_AXIS_LABELS[v_axis])
    ax.set_aspect("equal")
    if title:
        ax.set_title(title)
    if colorbar:
        fig.colorbar(mesh_artist, ax=ax, label="Relative pressure")
    return fig


def plot_mode_slices(
    mesh: TetMesh,
    values: NDArray[np.floating],
    slices: Sequence[tuple[Axis | int, float]] | None = None,
    view: tuple[float, float] = DEFAULT_VIEW,
    resolution: int = 60,
    ax: Axes | None = None,
    title: str | None = None,
) -> Figure:
    """Draw a mode on several slice planes in one 3D view.

    Args:
        mesh: Mesh the mode is defined on
        values: Mode values at mesh vertices
        slices: (axis, position) pairs; defaults to the three mid-planes
        view: (elevation, azimuth) in degrees
        resolution: Samples along the longer side of each plane
        ax: Existing 3D axes to draw into
        title: Axes title
    """
    fig, ax = _axes_3d(ax, view)
    lo, hi = mesh.bounding_box
    if slices is None:
        center = (lo + hi) / 2
        slices = [("x", center[0]), ("y", center[1]), ("z", center[2])]

    interp = MeshInterpolator(mesh)
    sampled = []
    for axis, position in slices:
        a = axis_index(axis)
        sampled.append((a, position, *sample_plane(
            mesh, values, axis=a, position=position, resolution=resolution, interpolator=interp
        )))

    limit = max(_symmetric_limit(field) for *_, field in sampled) if sampled else 1.0
    norm = Normalize(vmin=-limit, vmax=limit)
    cmap = colormaps[_MODE_CMAP]

    for a, position, U, V, field in sampled:
        coords = [None, None, None]
        u_axis, v_axis = [i for i in range(3) if i != a]
        coords[a] = np.full_like(U, position)
        coords[u_axis] = U
        coords[v_axis] = V

        colors = cmap(norm(np.nan_to_num(field)))
        colors[~np.isfinite(field)] = (0.0, 0.0, 0.0, 0.0)
        ax.plot_surface(
            *coords, facecolors=colors, rstride=1, cstride=1, shade=False, linewidth=0
        )

    _set_box(ax, lo, hi)
    mappable = plt.cm.ScalarMappable(norm=norm, cmap=cmap)
    fig.colorbar(mappable, ax=ax, shrink=0.6, label="Relative pressure")
    if title:
        ax.set_title(title)
    return fig


def plot_mode_gallery(
    room_modes: RoomModes,
    modes: Sequence[int] | None = None,
    axis: Axis | int = "z",
    position: float | None = None,
    ncols: int = 3,
    resolution: int = 80,
) -> Figure:
    """Grid of density plots, one per mode, titled with frequency.

    Args:
        room_modes: Computed modes
        modes: 1-based mode numbers; defaults to all
        axis: Normal of the slice plane
        position: Plane coordinate; defaults to the middle of the room
        ncols: Number of columns
        resolution: Samples along the longer side of the plane
    """
    if modes is None:
        modes = [pair.index for pair in room_modes.eigenpairs]
    if not modes:
        raise ValueError("No modes to plot")

    ncols = max(1, min(ncols, len(modes)))
    nrows = -(-len(modes) // ncols)
    fig, axes = plt.subplots(nrows, ncols, figsize=(4 * ncols, 3.2 * nrows), squeeze=False)

    interp = MeshInterpolator(room_modes.mesh)
    frequencies = room_modes.frequencies
    for ax, number in zip(axes.flat, modes):
        pair = room_modes.mode(number)
        plot_mode_density(
            room_modes.mesh,
            pair.scaled(),
            axis=axis,
            position=position,
            resolution=resolution,
            ax=ax,
            title=f"Mode {number}: {frequencies[number - 1]:.1f} Hz",
            colorbar=False,
            interpolator=interp,
        )
    for ax in axes.flat[len(modes):]:
        ax.set_visible(False)

    fig.tight_layout()
    return fig
