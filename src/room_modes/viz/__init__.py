"""Plots of room geometry, meshes and pressure modes."""

from room_modes.viz.plots import (
    DEFAULT_VIEW,
    plot_mesh,
    plot_mode_density,
    plot_mode_gallery,
    plot_mode_slices,
    plot_wireframe,
)

__all__ = [
    "DEFAULT_VIEW",
    "plot_wireframe",
    "plot_mesh",
    "plot_mode_density",
    "plot_mode_slices",
    "plot_mode_gallery",
]
