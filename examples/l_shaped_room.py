"""
Example: L-Shaped Room with a Bay Window
========================================
A main room, a side alcove and a slanted bay built from the three room
primitives and combined with a union:

- Cuboid: 5 m × 4 m main room and a 2 m × 1.5 m alcove along its back wall
- Hexahedron: trapezoidal bay window with splayed side walls
- Prism: triangular corner niche

Pieces overlap or touch along shared walls; the union fills the seams.

Run with:
    room-modes examples/l_shaped_room.py --plots l_room_plots

Expected runtime: ~10 seconds
Output: modes_<hash>.h5 and PNG plots of geometry, mesh and every mode
"""

from room_modes import Cuboid, Hexahedron, Prism, Union

HEIGHT = 2.5

main = Cuboid(min_corner=(0, 0, 0), max_corner=(5.0, 4.0, HEIGHT))
alcove = Cuboid(min_corner=(0, 4.0, 0), max_corner=(2.0, 5.5, HEIGHT))

# Bay: 2.4 m wide at the wall, 1.6 m at the window, 0.8 m deep
bay = Hexahedron(
    [
        (5.0, 0.8, 0),
        (5.8, 1.2, 0),
        (5.8, 2.8, 0),
        (5.0, 3.2, 0),
        (5.0, 0.8, HEIGHT),
        (5.8, 1.2, HEIGHT),
        (5.8, 2.8, HEIGHT),
        (5.0, 3.2, HEIGHT),
    ]
)

# Niche between the alcove and the main room's right half
niche = Prism(
    [
        (2.0, 4.0, 0),
        (3.0, 4.0, 0),
        (2.0, 5.0, 0),
        (2.0, 4.0, HEIGHT),
        (3.0, 4.0, HEIGHT),
        (2.0, 5.0, HEIGHT),
    ]
)

room = Union(main, alcove, bay, niche)

n_modes = 10
max_cell_volume = 0.03
