"""
Unit tests for the background meshing lattice.

Tests verify:
- Construction and validation
- Node and cell center coordinates
- Fitting a lattice to a bounding box for a target element volume
"""

import numpy as np
import pytest

from room_modes.mesh import LatticeGrid
from room_modes.mesh.grid import TETS_PER_CELL


class TestLatticeGrid:
    def test_basic_construction(self):
        """Test basic lattice construction."""
        grid = LatticeGrid(origin=(0, 0, 0), spacing=(0.5, 0.5, 0.5), shape=(4, 2, 2))

        assert grid.shape == (4, 2, 2)
        assert grid.node_shape == (5, 3, 3)
        assert grid.num_cells == 16
        assert grid.num_nodes == 45
        assert grid.is_uniform is True
        assert grid.cell_volume == pytest.approx(0.125)

    def test_anisotropic_spacing(self):
        grid = LatticeGrid(origin=(0, 0, 0), spacing=(0.1, 0.2, 0.3), shape=(2, 2, 2))

        assert grid.is_uniform is False
        assert grid.min_spacing == pytest.approx(0.1)
        assert grid.max_spacing == pytest.approx(0.3)
        assert grid.cell_diagonal == pytest.approx(np.sqrt(0.14))

    def test_coordinate_arrays(self):
        """Nodes at origin + i*h, cell centers halfway between."""
        grid = LatticeGrid(origin=(1.0, 0, 0), spacing=(0.5, 1, 1), shape=(3, 1, 1))

        np.testing.assert_allclose(grid.x_nodes, [1.0, 1.5, 2.0, 2.5])
        np.testing.assert_allclose(grid.x_coords, [1.25, 1.75, 2.25])

    def test_node_index_matches_positions(self):
        grid = LatticeGrid(origin=(0, 0, 0), spacing=(1, 2, 3), shape=(2, 3, 4))
        positions = grid.node_positions()
        idx = grid.node_index(np.array([1]), np.array([2]), np.array([3]))[0]

        np.testing.assert_allclose(positions[idx], [1.0, 4.0, 9.0])
        assert len(positions) == grid.num_nodes

    def test_cell_centers_order(self):
        grid = LatticeGrid(origin=(0, 0, 0), spacing=(1, 1, 1), shape=(2, 2, 2))
        centers = grid.cell_centers()

        assert centers.shape == (8, 3)
        np.testing.assert_allclose(centers[0], [0.5, 0.5, 0.5])
        np.testing.assert_allclose(centers[1], [0.5, 0.5, 1.5])

    def test_physical_extent(self):
        grid = LatticeGrid(origin=(0, 0, 0), spacing=(0.5, 0.25, 1.0), shape=(4, 8, 2))

        Lx, Ly, Lz = grid.physical_extent()
        assert Lx == pytest.approx(2.0)
        assert Ly == pytest.approx(2.0)
        assert Lz == pytest.approx(2.0)

    def test_invalid_parameters(self):
        with pytest.raises(ValueError, match="spacing"):
            LatticeGrid(origin=(0, 0, 0), spacing=(0, 1, 1), shape=(1, 1, 1))
        with pytest.raises(ValueError, match="shape"):
            LatticeGrid(origin=(0, 0, 0), spacing=(1, 1, 1), shape=(0, 1, 1))


class TestFromBounds:
    def test_room_example(self):
        grid = LatticeGrid.from_bounds((0, 0, 0), (5, 4, 2.5), max_cell_volume=0.01)
        assert grid.shape == (13, 11, 7)

    def test_fits_box_exactly(self):
        """Box faces land on lattice planes."""
        grid = LatticeGrid.from_bounds((-1, 0, 2), (2, 1.3, 2.7), max_cell_volume=0.001)

        assert grid.x_nodes[0] == pytest.approx(-1)
        assert grid.x_nodes[-1] == pytest.approx(2)
        assert grid.y_nodes[-1] == pytest.approx(1.3)
        assert grid.z_nodes[-1] == pytest.approx(2.7)

    def test_element_volume_bound(self):
        """No Kuhn tetrahedron exceeds the requested volume."""
        for volume in (0.5, 0.01, 1e-4):
            grid = LatticeGrid.from_bounds((0, 0, 0), (1.0, 0.7, 0.3), max_cell_volume=volume)
            assert grid.cell_volume / TETS_PER_CELL <= volume * (1 + 1e-12)

    def test_large_volume_gives_single_cell(self):
        grid = LatticeGrid.from_bounds((0, 0, 0), (1, 1, 1), max_cell_volume=100.0)
        assert grid.shape == (1, 1, 1)

    def test_from_resolution(self):
        grid = LatticeGrid.from_resolution((0, 0, 0), (1, 1, 1), resolution=0.25)
        assert grid.shape == (4, 4, 4)
        assert grid.max_spacing == pytest.approx(0.25)

    def test_invalid_bounds(self):
        with pytest.raises(ValueError, match="positive extent"):
            LatticeGrid.from_bounds((0, 0, 0), (1, 0, 1), max_cell_volume=0.1)
        with pytest.raises(ValueError, match="finite"):
            LatticeGrid.from_bounds((np.inf,) * 3, (-np.inf,) * 3, max_cell_volume=0.1)
        with pytest.raises(ValueError, match="max_cell_volume"):
            LatticeGrid.from_bounds((0, 0, 0), (1, 1, 1), max_cell_volume=0)
