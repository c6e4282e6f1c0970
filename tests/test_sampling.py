"""
Tests for sampling mode shapes on the mesh.

Tests verify:
- Point location and exact interpolation of linear fields
- NaN outside the room
- Slice plane and volume sample shapes
- Normal derivative on the boundary
"""

import numpy as np
import pytest

from room_modes.analysis import (
    MeshInterpolator,
    axis_index,
    boundary_normal_derivative,
    element_gradients,
    sample_plane,
    sample_volume,
)
from room_modes.fem import assemble_system, solve_eigenmodes
from room_modes.mesh import mesh_solid

LINEAR = np.array([0.5, -2.0, 3.0])


@pytest.fixture
def linear_field(box_mesh):
    return box_mesh.vertices @ LINEAR + 1.0


class TestAxisIndex:
    def test_names_and_numbers(self):
        assert axis_index("x") == 0
        assert axis_index("Z") == 2
        assert axis_index(1) == 1

    def test_invalid(self):
        with pytest.raises(ValueError, match="Invalid axis"):
            axis_index("w")
        with pytest.raises(ValueError, match="Invalid axis"):
            axis_index(3)


class TestMeshInterpolator:
    def test_linear_field_is_exact(self, box_mesh, linear_field):
        points = np.random.default_rng(3).uniform((0, 0, 0), (1.0, 0.8, 0.6), size=(200, 3))
        values = MeshInterpolator(box_mesh).interpolate(linear_field, points)

        np.testing.assert_allclose(values, points @ LINEAR + 1.0, atol=1e-9)

    def test_vertices_reproduce_values(self, box_mesh, linear_field):
        values = MeshInterpolator(box_mesh).interpolate(linear_field, box_mesh.vertices)
        np.testing.assert_allclose(values, linear_field, atol=1e-9)

    def test_outside_is_nan(self, box_mesh, linear_field):
        points = np.array([[0.5, 0.4, 0.3], [1.5, 0.4, 0.3], [0.5, -0.1, 0.3]])
        interp = MeshInterpolator(box_mesh)
        elements, bary = interp.locate(points)
        values = interp.interpolate(linear_field, points)

        assert elements[0] >= 0
        np.testing.assert_array_equal(elements[1:], [-1, -1])
        assert np.all(np.isnan(bary[1:]))
        assert np.isfinite(values[0])
        assert np.all(np.isnan(values[1:]))

    def test_barycentric_sums_to_one(self, box_mesh):
        points = np.random.default_rng(4).uniform((0, 0, 0), (1.0, 0.8, 0.6), size=(50, 3))
        _, bary = MeshInterpolator(box_mesh).locate(points)

        np.testing.assert_allclose(bary.sum(axis=1), 1.0)
        assert np.all(bary >= -1e-9)

    def test_wrong_value_count(self, box_mesh):
        with pytest.raises(ValueError, match="one entry per vertex"):
            MeshInterpolator(box_mesh).interpolate(np.zeros(3), np.zeros((1, 3)))


class TestSamplePlane:
    def test_shapes_and_coordinates(self, box_mesh, linear_field):
        U, V, field = sample_plane(box_mesh, linear_field, axis="z", resolution=11)

        # 1.0 x 0.8 plane, step 0.1
        assert U.shape == V.shape == field.shape == (11, 9)
        np.testing.assert_allclose(U[:, 0], np.linspace(0, 1.0, 11))
        np.testing.assert_allclose(V[0], np.linspace(0, 0.8, 9))

    def test_default_position_is_mid_height(self, box_mesh, linear_field):
        U, V, field = sample_plane(box_mesh, linear_field, axis="z", resolution=11)
        expected = LINEAR[0] * U + LINEAR[1] * V + LINEAR[2] * 0.3 + 1.0

        np.testing.assert_allclose(field, expected, atol=1e-9)

    def test_plane_outside_room_is_nan(self, box_mesh, linear_field):
        _, _, field = sample_plane(box_mesh, linear_field, axis="x", position=2.0, resolution=5)
        assert np.all(np.isnan(field))

    def test_invalid_resolution(self, box_mesh, linear_field):
        with pytest.raises(ValueError, match="resolution"):
            sample_plane(box_mesh, linear_field, resolution=1)


class TestSampleVolume:
    def test_shapes(self, box_mesh, linear_field):
        X, Y, Z, field = sample_volume(box_mesh, linear_field, resolution=6)

        assert X.shape == Y.shape == Z.shape == field.shape == (6, 5, 4)
        np.testing.assert_allclose(field, LINEAR[0] * X + LINEAR[1] * Y + LINEAR[2] * Z + 1.0, atol=1e-9)


class TestGradients:
    def test_element_gradients_of_linear_field(self, box_mesh, linear_field):
        grads = element_gradients(box_mesh, linear_field)

        assert grads.shape == (box_mesh.num_elements, 3)
        np.testing.assert_allclose(grads, np.broadcast_to(LINEAR, grads.shape), atol=1e-9)

    def test_normal_derivative_of_linear_field(self, box_mesh):
        """For u = x, ∂u/∂n is the x component of the outward normal."""
        dudn = boundary_normal_derivative(box_mesh, box_mesh.vertices[:, 0])
        np.testing.assert_allclose(dudn, box_mesh.face_normals[:, 0], atol=1e-9)

    def test_modes_nearly_satisfy_rigid_walls(self, box):
        """∂p/∂n on the walls is small compared to interior gradients."""
        mesh = mesh_solid(box, max_cell_volume=5e-4)
        K, M = assemble_system(mesh)
        mode = solve_eigenmodes(K, M, n_modes=3)[1].eigenfunction

        dudn = boundary_normal_derivative(mesh, mode)
        grads = element_gradients(mesh, mode)
        wall_rms = np.sqrt(np.mean(dudn**2))
        interior_rms = np.sqrt(np.mean(np.sum(grads**2, axis=1)))

        assert wall_rms < 0.3 * interior_rms
