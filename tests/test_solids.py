"""
Unit tests for room solids and CSG operations.

Tests verify:
- SDF sign and values for Cuboid, Prism and Hexahedron
- Rejection of invalid input (wrong point count, degenerate, non-convex)
- Union/Intersection/Difference semantics and bounding boxes
- Feature edges for wireframes
- Surface projection and normals
- Volume estimation of CSG trees
"""

import numpy as np
import pytest

from room_modes.geometry import (
    Cuboid,
    Difference,
    Hexahedron,
    Intersection,
    Prism,
    Translate,
    Union,
    estimate_volume,
)

UNIT_CUBE_POINTS = [
    (0, 0, 0),
    (1, 0, 0),
    (1, 1, 0),
    (0, 1, 0),
    (0, 0, 1),
    (1, 0, 1),
    (1, 1, 1),
    (0, 1, 1),
]


class TestCuboid:
    """Tests for axis-aligned cuboids."""

    def test_corner_construction(self):
        room = Cuboid(min_corner=(0, 0, 0), max_corner=(5.0, 4.0, 2.5))

        np.testing.assert_allclose(room.center, [2.5, 2.0, 1.25])
        assert room.dimensions == (5.0, 4.0, 2.5)
        assert room.volume == pytest.approx(50.0)

    def test_center_construction(self):
        room = Cuboid(center=(0, 0, 0), size=(2, 2, 2))

        np.testing.assert_allclose(room.min_corner, [-1, -1, -1])
        np.testing.assert_allclose(room.max_corner, [1, 1, 1])

    def test_ambiguous_arguments_rejected(self):
        with pytest.raises(ValueError, match="Must provide"):
            Cuboid(min_corner=(0, 0, 0), max_corner=(1, 1, 1), center=(0, 0, 0))
        with pytest.raises(ValueError, match="Must provide"):
            Cuboid(min_corner=(0, 0, 0))

    def test_non_positive_size_rejected(self):
        with pytest.raises(ValueError, match="positive"):
            Cuboid(min_corner=(0, 0, 0), max_corner=(1, 0, 1))

    def test_sdf_values(self):
        """Exact distances inside, on and outside the box."""
        box = Cuboid(center=(0, 0, 0), size=(2, 2, 2))
        points = np.array(
            [
                [0.0, 0.0, 0.0],  # center
                [1.0, 0.0, 0.0],  # face
                [2.0, 0.0, 0.0],  # outside face
                [2.0, 2.0, 1.0],  # outside edge
            ]
        )
        d = box.sdf(points)

        assert d[0] == pytest.approx(-1.0)
        assert d[1] == pytest.approx(0.0)
        assert d[2] == pytest.approx(1.0)
        assert d[3] == pytest.approx(np.sqrt(2.0))

    def test_contains_includes_surface(self):
        box = Cuboid(min_corner=(0, 0, 0), max_corner=(1, 1, 1))
        inside = box.contains(np.array([[0.5, 0.5, 0.5], [1.0, 0.5, 0.5], [1.1, 0.5, 0.5]]))
        np.testing.assert_array_equal(inside, [True, True, False])

    def test_edges(self):
        """Twelve edges of the right lengths."""
        box = Cuboid(min_corner=(0, 0, 0), max_corner=(3, 2, 1))
        edges = box.edges()

        assert edges.shape == (12, 2, 3)
        lengths = np.sort(np.linalg.norm(edges[:, 1] - edges[:, 0], axis=1))
        np.testing.assert_allclose(lengths, [1] * 4 + [2] * 4 + [3] * 4)

    def test_rejects_bad_points_shape(self):
        box = Cuboid(center=(0, 0, 0), size=(1, 1, 1))
        with pytest.raises(ValueError, match="Nx3"):
            box.sdf(np.zeros((4, 2)))


class TestConvexPolyhedra:
    """Tests for Prism and Hexahedron."""

    def test_prism_volume_and_sign(self, wedge):
        # Right triangle with legs 1 x 1, extruded 0.5
        assert wedge.volume == pytest.approx(0.25)
        assert wedge.contains(np.array([[0.2, 0.2, 0.25]]))[0]
        assert not wedge.contains(np.array([[0.6, 0.6, 0.25]]))[0]

    def test_prism_slanted_face_distance(self, wedge):
        """Distance to the hypotenuse face x + y = 1."""
        point = np.array([[0.25, 0.25, 0.25]])
        # Nearest wall is the slanted one: (1 - 0.5) / sqrt(2)
        expected = -min(0.5 / np.sqrt(2), 0.25, 0.25)
        assert wedge.sdf(point)[0] == pytest.approx(expected)

    def test_prism_needs_six_points(self):
        with pytest.raises(ValueError, match="exactly 6"):
            Prism(UNIT_CUBE_POINTS)

    def test_hexahedron_unit_cube(self):
        cube = Hexahedron(UNIT_CUBE_POINTS)

        assert cube.volume == pytest.approx(1.0)
        assert cube.surface_area == pytest.approx(6.0)
        lo, hi = cube.bounding_box
        np.testing.assert_allclose(lo, [0, 0, 0])
        np.testing.assert_allclose(hi, [1, 1, 1])

    def test_hexahedron_matches_cuboid_inside(self):
        """Inside the solid the plane SDF is exact."""
        cube = Hexahedron(UNIT_CUBE_POINTS)
        box = Cuboid(min_corner=(0, 0, 0), max_corner=(1, 1, 1))
        rng = np.random.default_rng(1)
        points = rng.uniform(0.01, 0.99, size=(200, 3))

        np.testing.assert_allclose(cube.sdf(points), box.sdf(points), atol=1e-12)

    def test_hexahedron_feature_edges(self):
        """Triangulated faces are merged: a cube has twelve feature edges."""
        cube = Hexahedron(UNIT_CUBE_POINTS)
        assert cube.edges().shape == (12, 2, 3)

    def test_hexahedron_needs_eight_points(self):
        with pytest.raises(ValueError, match="exactly 8"):
            Hexahedron(UNIT_CUBE_POINTS[:6])

    def test_degenerate_points_rejected(self):
        flat = [(x, y, 0.0) for x, y, _ in UNIT_CUBE_POINTS]
        with pytest.raises(ValueError, match="degenerate"):
            Hexahedron(flat)

    def test_non_convex_rejected(self):
        """A corner pushed inside the hull is reported."""
        points = list(UNIT_CUBE_POINTS)
        points[6] = (0.6, 0.6, 0.6)
        with pytest.raises(ValueError, match="not convex"):
            Hexahedron(points)

    def test_sloped_ceiling(self):
        alcove = Hexahedron(
            [
                (0, 0, 0),
                (2, 0, 0),
                (2, 1, 0),
                (0, 1, 0),
                (0, 0, 2.5),
                (2, 0, 2.5),
                (2, 1, 2.0),
                (0, 1, 2.0),
            ]
        )
        # Trapezoid cross-section (2.5 + 2.0) / 2 * 1, extruded 2
        assert alcove.volume == pytest.approx(4.5)
        assert alcove.contains(np.array([[1.0, 0.1, 2.4]]))[0]
        assert not alcove.contains(np.array([[1.0, 0.9, 2.4]]))[0]


class TestCSG:
    """Tests for Union, Intersection, Difference and Translate."""

    def test_union_is_min(self):
        a = Cuboid(min_corner=(0, 0, 0), max_corner=(1, 1, 1))
        b = Cuboid(min_corner=(0.5, 0, 0), max_corner=(2, 1, 1))
        union = Union(a, b)
        points = np.random.default_rng(0).uniform(-0.5, 2.5, size=(100, 3))

        np.testing.assert_allclose(union.sdf(points), np.minimum(a.sdf(points), b.sdf(points)))

    def test_union_bounding_box(self):
        a = Cuboid(min_corner=(0, 0, 0), max_corner=(1, 1, 1))
        b = Cuboid(min_corner=(-1, 0.5, 0), max_corner=(0, 3, 2))
        lo, hi = Union(a, b).bounding_box

        np.testing.assert_allclose(lo, [-1, 0, 0])
        np.testing.assert_allclose(hi, [1, 3, 2])

    def test_empty_union(self):
        """An empty union contains nothing and has an inverted box."""
        union = Union()
        distances = union.sdf(np.array([[0.0, 0.0, 0.0]]))
        lo, hi = union.bounding_box

        assert np.isposinf(distances[0])
        assert np.all(lo > hi)
        assert estimate_volume(union) == 0.0

    def test_fluent_union(self):
        a = Cuboid(min_corner=(0, 0, 0), max_corner=(1, 1, 1))
        b = Cuboid(min_corner=(1, 0, 0), max_corner=(2, 1, 1))
        union = a.union(b)

        assert isinstance(union, Union)
        assert union.contains(np.array([[1.5, 0.5, 0.5]]))[0]

    def test_union_edges_collects_children(self, l_room):
        # Two cuboids (12 each) plus the hexahedron (12)
        assert l_room.edges().shape == (36, 2, 3)

    def test_intersection(self):
        a = Cuboid(min_corner=(0, 0, 0), max_corner=(2, 2, 2))
        b = Cuboid(min_corner=(1, 1, 1), max_corner=(3, 3, 3))
        both = Intersection(a, b)

        assert both.contains(np.array([[1.5, 1.5, 1.5]]))[0]
        assert not both.contains(np.array([[0.5, 0.5, 0.5]]))[0]
        lo, hi = both.bounding_box
        np.testing.assert_allclose(lo, [1, 1, 1])
        np.testing.assert_allclose(hi, [2, 2, 2])

    def test_difference(self):
        room = Cuboid(min_corner=(0, 0, 0), max_corner=(4, 4, 2))
        pillar = Cuboid(center=(2, 2, 1), size=(0.5, 0.5, 3))
        shape = Difference(room, pillar)

        assert not shape.contains(np.array([[2.0, 2.0, 1.0]]))[0]
        assert shape.contains(np.array([[0.5, 0.5, 1.0]]))[0]
        assert shape.children == (room, pillar)
        np.testing.assert_allclose(shape.bounding_box[1], [4, 4, 2])

    def test_translate(self):
        box = Cuboid(min_corner=(0, 0, 0), max_corner=(1, 1, 1))
        moved = box.translate((2, 0, 0))

        assert isinstance(moved, Translate)
        assert moved.contains(np.array([[2.5, 0.5, 0.5]]))[0]
        assert not moved.contains(np.array([[0.5, 0.5, 0.5]]))[0]
        assert moved.volume == pytest.approx(1.0)
        np.testing.assert_allclose(moved.edges().min(axis=(0, 1)), [2, 0, 0])

    def test_translate_rejects_bad_offset(self):
        box = Cuboid(min_corner=(0, 0, 0), max_corner=(1, 1, 1))
        with pytest.raises(ValueError, match="3-vector"):
            Translate(box, (1, 2))


class TestSurfaceOperations:
    """Tests for gradient and projection onto the surface."""

    def test_gradient_is_outward_normal(self):
        box = Cuboid(min_corner=(0, 0, 0), max_corner=(1, 1, 1))
        normals = box.gradient(np.array([[0.9, 0.5, 0.5], [0.5, 0.5, 0.05]]))

        np.testing.assert_allclose(normals[0], [1, 0, 0], atol=1e-6)
        np.testing.assert_allclose(normals[1], [0, 0, -1], atol=1e-6)

    def test_project_onto_slanted_face(self, wedge):
        points = np.array([[0.6, 0.6, 0.25], [0.45, 0.45, 0.1]])
        projected = wedge.project(points)

        np.testing.assert_allclose(wedge.sdf(projected), 0.0, atol=1e-9)
        np.testing.assert_allclose(projected[:, 0] + projected[:, 1], 1.0, atol=1e-9)

    def test_project_into_corner(self):
        """Repeated steps reach the corner of two faces."""
        box = Cuboid(min_corner=(0, 0, 0), max_corner=(1, 1, 1))
        projected = box.project(np.array([[1.2, 1.3, 0.5]]))

        np.testing.assert_allclose(projected[0], [1.0, 1.0, 0.5], atol=1e-6)


class TestEstimateVolume:
    """Tests for quasi-Monte Carlo volume estimation."""

    def test_single_cuboid(self):
        box = Cuboid(min_corner=(0, 0, 0), max_corner=(2, 1, 1))
        # The box fills its bounding box exactly
        assert estimate_volume(box, n_samples=1024) == pytest.approx(2.0)

    def test_overlapping_union(self):
        a = Cuboid(min_corner=(0, 0, 0), max_corner=(1, 1, 1))
        b = Cuboid(min_corner=(0.5, 0, 0), max_corner=(1.5, 1, 1))
        # Overlap counted once: 1.5
        assert estimate_volume(Union(a, b)) == pytest.approx(1.5, rel=0.01)

    def test_l_room(self, l_room):
        main, alcove, bay = l_room.children
        expected = main.volume + alcove.volume + bay.volume
        assert estimate_volume(l_room) == pytest.approx(expected, rel=0.02)

    def test_invalid_sample_count(self):
        box = Cuboid(min_corner=(0, 0, 0), max_corner=(1, 1, 1))
        with pytest.raises(ValueError):
            estimate_volume(box, n_samples=0)
