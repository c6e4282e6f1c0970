"""Pytest configuration for the room-modes test suite.

Forces a non-interactive matplotlib backend before any test imports
pyplot, and provides small rooms and meshes shared across test modules.
"""

import matplotlib

# Plot tests must run headless; set before pyplot is imported anywhere
matplotlib.use("Agg")

import pytest  # noqa: E402

from room_modes.geometry import Cuboid, Hexahedron, Prism, Union  # noqa: E402
from room_modes.mesh import mesh_solid  # noqa: E402

# Small box used throughout; analytic modes are known in closed form
BOX_DIMENSIONS = (1.0, 0.8, 0.6)


@pytest.fixture
def box():
    """1 x 0.8 x 0.6 axis-aligned room at the origin."""
    return Cuboid(min_corner=(0, 0, 0), max_corner=BOX_DIMENSIONS)


@pytest.fixture
def box_mesh(box):
    """Coarse mesh of the box (fast enough for every test)."""
    return mesh_solid(box, max_cell_volume=0.002)


@pytest.fixture
def wedge():
    """Triangular prism with a slanted wall."""
    return Prism(
        [
            (0.0, 0.0, 0.0),
            (1.0, 0.0, 0.0),
            (0.0, 1.0, 0.0),
            (0.0, 0.0, 0.5),
            (1.0, 0.0, 0.5),
            (0.0, 1.0, 0.5),
        ]
    )


@pytest.fixture
def l_room():
    """L-shaped room: main box, a side alcove and a slanted bay."""
    main = Cuboid(min_corner=(0, 0, 0), max_corner=(2.0, 1.5, 1.0))
    alcove = Cuboid(min_corner=(0, 1.5, 0), max_corner=(0.8, 2.3, 1.0))
    bay = Hexahedron(
        [
            (2.0, 0.2, 0.0),
            (2.5, 0.4, 0.0),
            (2.5, 1.1, 0.0),
            (2.0, 1.3, 0.0),
            (2.0, 0.2, 1.0),
            (2.5, 0.4, 1.0),
            (2.5, 1.1, 1.0),
            (2.0, 1.3, 1.0),
        ]
    )
    return Union(main, alcove, bay)
