"""
Example: Attic Room under a Pitched Roof
========================================
A 6 m long attic whose cross-section is a rectangle (knee walls) topped by
a triangular gable. The lower part is a Cuboid, the roof a Prism, and a
dormer on one side is a Hexahedron with a sloped ceiling.

The gable raises the ridge to 3.2 m while the knee walls are 1.2 m high,
which splits the height modes of a plain box into several modes with
curved nodal surfaces.

Run with:
    room-modes examples/attic_room.py -n 8 --solver sparse

Expected runtime: ~10 seconds
"""

from room_modes import Cuboid, Hexahedron, Prism, Union

LENGTH = 6.0
WIDTH = 4.0
KNEE = 1.2
RIDGE = 3.2

walls = Cuboid(min_corner=(0, 0, 0), max_corner=(LENGTH, WIDTH, KNEE))

# Triangle in the y-z plane, extruded along x
roof = Prism(
    [
        (0, 0, KNEE),
        (0, WIDTH, KNEE),
        (0, WIDTH / 2, RIDGE),
        (LENGTH, 0, KNEE),
        (LENGTH, WIDTH, KNEE),
        (LENGTH, WIDTH / 2, RIDGE),
    ]
)

# Dormer: 1.5 m wide, flat floor, ceiling sloping down towards the window
x0, x1 = 2.0, 3.5
dormer = Hexahedron(
    [
        (x0, -0.5, 0),
        (x1, -0.5, 0),
        (x1, 0.5, 0),
        (x0, 0.5, 0),
        (x0, -0.5, 2.2),
        (x1, -0.5, 2.2),
        (x1, 0.5, 2.6),
        (x0, 0.5, 2.6),
    ]
)

room = Union(walls, roof, dormer)

n_modes = 8
max_cell_volume = 0.03
