"""
Unit tests for the geometric and mesh primitives.

This test suite covers:
- `almost_equal`, `half` and precision resolution (`numeric.py`).
- The `Vector2` point type.
- Direction-independent edge equality, scalar and batched (`edge.py`).
- Circumcircle details and the non-strict containment predicate (`triangle.py`).
"""
import math
import unittest

import torch

from ..numeric import DEFAULT_DTYPE, almost_equal, half, resolve_dtype
from ..vector2 import Vector2, points_to_tensor, tensor_to_points
from ..edge import Edge, edge_equality_matrix, edges_equal
from ..triangle import (
    Triangle, circumcircle_details_batch, get_triangle_circumcircle_details_2d,
    limit_circumcircle_contains, limit_orientation,
)


class TestNumeric(unittest.TestCase):
    """Tests for the near-equality comparator and friends."""

    def test_almost_equal_identical_and_neighbours(self):
        self.assertTrue(almost_equal(1.0, 1.0))
        self.assertTrue(almost_equal(1.0, 1.0 + 2.220446049250313e-16), "One ULP apart should be equal.")
        self.assertFalse(almost_equal(1.0, 1.0 + 1e-12))
        self.assertTrue(almost_equal(-3.5, -3.5))

    def test_almost_equal_near_zero(self):
        self.assertTrue(almost_equal(0.0, 0.0))
        self.assertTrue(almost_equal(0.0, 1e-320), "Differences below the smallest normal count as equal.")
        self.assertFalse(almost_equal(0.0, 1e-300))

    def test_almost_equal_precision(self):
        # 1 + 1e-7 rounds to the float32 neighbour of 1.0
        self.assertTrue(almost_equal(1.0, 1.0 + 1e-7, dtype=torch.float32))
        self.assertFalse(almost_equal(1.0, 1.0 + 1e-7, dtype=torch.float64))
        self.assertFalse(almost_equal(1.0, 1.0 + 1e-5, dtype="float32"))

    def test_almost_equal_ulp_tolerance(self):
        x = 1.0
        y = 1.0 + 8 * 2.220446049250313e-16
        self.assertFalse(almost_equal(x, y, ulp=2))
        self.assertTrue(almost_equal(x, y, ulp=4))

    def test_almost_equal_tensors(self):
        result = almost_equal(torch.tensor([1.0, 2.0, 0.0], dtype=torch.float64),
                              torch.tensor([1.0, 2.1, 0.0], dtype=torch.float64))
        self.assertIsInstance(result, torch.Tensor)
        self.assertEqual(result.tolist(), [True, False, True])

    def test_half(self):
        self.assertEqual(half(3.0), 1.5)
        self.assertTrue(torch.equal(half(torch.tensor([2.0, 4.0])), torch.tensor([1.0, 2.0])))

    def test_resolve_dtype(self):
        self.assertIs(resolve_dtype(None), DEFAULT_DTYPE)
        self.assertIs(resolve_dtype("float32"), torch.float32)
        self.assertIs(resolve_dtype("double"), torch.float64)
        self.assertIs(resolve_dtype(torch.float32), torch.float32)
        with self.assertRaises(ValueError):
            resolve_dtype(torch.int64)
        with self.assertRaises(ValueError):
            resolve_dtype("quad")


class TestVector2(unittest.TestCase):

    def test_squared_distance(self):
        a = Vector2(1.0, 2.0)
        b = Vector2(4.0, 6.0)
        self.assertEqual(a.dist2(b), 25.0)
        self.assertEqual(b.dist2(a), 25.0)
        self.assertEqual(str(a), "(1.0, 2.0)")

    def test_almost_equal(self):
        a = Vector2(0.1 + 0.2, 1.0)
        b = Vector2(0.3, 1.0)
        self.assertNotEqual(a, b, "Exact equality must see the rounding difference.")
        self.assertTrue(a.almost_equal(b))
        self.assertFalse(a.almost_equal(Vector2(0.3, 1.001)))

    def test_tensor_conversion(self):
        points = [Vector2(0.0, 1.0), Vector2(2.0, 3.0)]
        tensor = points_to_tensor(points)
        self.assertEqual(tensor.shape, (2, 2))
        self.assertEqual(tensor_to_points(tensor), points)
        self.assertEqual(points_to_tensor([]).shape, (0, 2))
        self.assertEqual(points_to_tensor([(1, 2)], dtype=torch.float32).tolist(), [[1.0, 2.0]])


class TestEdge(unittest.TestCase):

    def test_equal_in_either_direction(self):
        a, b = Vector2(0.0, 0.0), Vector2(1.0, 2.0)
        self.assertTrue(edges_equal(Edge(a, b), Edge(a, b)))
        self.assertTrue(edges_equal(Edge(a, b), Edge(b, a)))
        self.assertTrue(Edge(b, a).almost_equal(Edge(a, b)))

    def test_not_equal(self):
        a, b, c = Vector2(0.0, 0.0), Vector2(1.0, 2.0), Vector2(1.0, 2.5)
        self.assertFalse(edges_equal(Edge(a, b), Edge(a, c)))
        self.assertFalse(edges_equal(Edge(a, b), Edge(b, c)))

    def test_near_equal_endpoints(self):
        e = Edge(Vector2(0.1 + 0.2, 0.0), Vector2(1.0, 1.0))
        f = Edge(Vector2(1.0, 1.0), Vector2(0.3, 0.0))
        self.assertTrue(edges_equal(e, f))

    def test_equality_matrix(self):
        a, b, c = Vector2(0.0, 0.0), Vector2(1.0, 0.0), Vector2(0.0, 1.0)
        edges = [Edge(a, b), Edge(b, c), Edge(b, a), Edge(c, a)]
        coords = torch.tensor([e.coords() for e in edges], dtype=torch.float64)
        matrix = edge_equality_matrix(coords)
        self.assertEqual(matrix.shape, (4, 4))
        self.assertTrue(bool(matrix.diagonal().all()))
        self.assertTrue(bool(matrix[0, 2]) and bool(matrix[2, 0]))
        self.assertFalse(bool(matrix[0, 1]))
        self.assertFalse(bool(matrix[1, 3]))
        for i in range(4):
            for j in range(4):
                self.assertEqual(bool(matrix[i, j]), edges_equal(edges[i], edges[j]))

    def test_coords_and_iteration(self):
        e = Edge(Vector2(0.0, 0.0), Vector2(3.0, 4.0))
        self.assertEqual(e.coords(), [0.0, 0.0, 3.0, 4.0])
        self.assertEqual(list(e), [Vector2(0.0, 0.0), Vector2(3.0, 4.0)])


class TestTriangleCircumcircle(unittest.TestCase):
    """
    Tests for circumcircle calculation and the point-in-circumcircle predicate.
    """

    def test_circumcircle_right_angle(self):
        """Tests circumcircle calculation for a simple right-angled triangle."""
        center, sq_radius = get_triangle_circumcircle_details_2d(Vector2(0., 0.), Vector2(2., 0.), Vector2(0., 2.))
        self.assertIsNotNone(center, "Circumcenter should be found for a valid triangle.")
        self.assertEqual(center, Vector2(1.0, 1.0))
        self.assertAlmostEqual(sq_radius, 2.0)

    def test_circumcircle_equilateral(self):
        """Tests circumcircle calculation for an equilateral triangle."""
        center, sq_radius = get_triangle_circumcircle_details_2d(
            Vector2(0., 0.), Vector2(2., 0.), Vector2(1., math.sqrt(3.0)))
        self.assertAlmostEqual(center.x, 1.0)
        self.assertAlmostEqual(center.y, 1.0 / math.sqrt(3.0))
        self.assertAlmostEqual(sq_radius, 4.0 / 3.0, places=12)

    def test_circumcircle_collinear(self):
        """Collinear points have no circumcircle."""
        center, sq_radius = get_triangle_circumcircle_details_2d(Vector2(0., 0.), Vector2(1., 1.), Vector2(2., 2.))
        self.assertIsNone(center)
        self.assertIsNone(sq_radius)

    def test_batch_matches_single(self):
        vertices = torch.tensor([
            [[0., 0.], [2., 0.], [0., 2.]],
            [[0., 0.], [1., 1.], [2., 2.]],
            [[1., 1.], [4., 1.], [1., 5.]],
        ], dtype=torch.float64)
        centers, sq_radii, valid = circumcircle_details_batch(vertices)
        self.assertEqual(valid.tolist(), [True, False, True])
        self.assertEqual(centers[1].tolist(), [0.0, 0.0])
        self.assertEqual(centers[2].tolist(), [2.5, 3.0])
        self.assertAlmostEqual(sq_radii[2].item(), 6.25)

    def test_triangle_edges_and_vertices(self):
        p1, p2, p3 = Vector2(0., 0.), Vector2(1., 0.), Vector2(0., 1.)
        tri = Triangle(p1, p2, p3)
        self.assertEqual(tri.vertices, (p1, p2, p3))
        self.assertEqual([(e.p1, e.p2) for e in tri.edges], [(p1, p2), (p2, p3), (p3, p1)])
        self.assertFalse(tri.is_degenerate)

    def test_contains_vertex_is_exact(self):
        tri = Triangle(Vector2(0.1 + 0.2, 0.), Vector2(1., 0.), Vector2(0., 1.))
        self.assertTrue(tri.contains_vertex(Vector2(0.1 + 0.2, 0.)))
        self.assertFalse(tri.contains_vertex(Vector2(0.3, 0.)))
        self.assertTrue(any(p.almost_equal(Vector2(0.3, 0.)) for p in tri.vertices))

    def test_is_point_in_circumcircle_inside(self):
        tri = Triangle(Vector2(0., 0.), Vector2(2., 0.), Vector2(1., 1.))
        self.assertTrue(tri.circum_circle_contains(Vector2(1.0, 0.1)))

    def test_is_point_in_circumcircle_outside(self):
        tri = Triangle(Vector2(0., 0.), Vector2(2., 0.), Vector2(1., 1.))
        self.assertFalse(tri.circum_circle_contains(Vector2(1.0, 2.0)))

    def test_is_point_in_circumcircle_on_circle(self):
        """A point on the circumcircle counts as contained."""
        tri = Triangle(Vector2(0., 0.), Vector2(2., 0.), Vector2(0., 2.))
        self.assertTrue(tri.circum_circle_contains(Vector2(2.0, 2.0)))
        # Vertices themselves lie on the circle
        self.assertTrue(tri.circum_circle_contains(Vector2(2.0, 0.0)))

    def test_is_point_in_circumcircle_collinear_triangle(self):
        """A degenerate triangle never contains a point."""
        tri = Triangle(Vector2(0., 0.), Vector2(1., 1.), Vector2(2., 2.))
        self.assertTrue(tri.is_degenerate)
        self.assertFalse(tri.circum_circle_contains(Vector2(0.5, 0.5)))
        self.assertFalse(tri.circum_circle_contains(Vector2(1.0, 1.0)))

    def test_float32_triangle(self):
        tri = Triangle(Vector2(0., 0.), Vector2(2., 0.), Vector2(0., 2.), dtype=torch.float32)
        self.assertIs(tri.dtype, torch.float32)
        self.assertIs(tri.e1.dtype, torch.float32)
        self.assertTrue(tri.circum_circle_contains(Vector2(2.0, 2.0)))
        self.assertFalse(tri.circum_circle_contains(Vector2(2.0, 2.01)))


def _limit_coeffs(*vertices):
    """Packs ((bx, by), (dx, dy)) vertices of one triangle into a (1, 3, 2, 2) tensor."""
    return torch.tensor([[[[b[0], d[0]], [b[1], d[1]]] for b, d in vertices]], dtype=torch.float64)


class TestLimitCircumcircle(unittest.TestCase):
    """
    Tests for the in-circle test against triangles with vertices at infinity.
    """

    FIXED = (0.0, 0.0)

    def _contains(self, coeffs, point):
        orientation = limit_orientation(coeffs)
        return bool(limit_circumcircle_contains(coeffs, orientation, torch.tensor(point, dtype=torch.float64))[0])

    def test_one_vertex_at_infinity_is_a_half_plane(self):
        # Edge (0,0)-(10,0) with the third vertex going down to infinity
        coeffs = _limit_coeffs(((0., 0.), self.FIXED), ((10., 0.), self.FIXED), ((5., -1.), (0., -1.)))
        self.assertEqual(limit_orientation(coeffs).tolist(), [-1.0])
        self.assertTrue(self._contains(coeffs, (5.0, -0.001)))
        self.assertTrue(self._contains(coeffs, (500.0, -3.0)))
        # Just above the edge: inside any finite circumcircle through (5, -21), not in the limit
        finite = Triangle(Vector2(0., 0.), Vector2(10., 0.), Vector2(5., -21.))
        self.assertTrue(finite.circum_circle_contains(Vector2(5.0, 0.001)))
        self.assertFalse(self._contains(coeffs, (5.0, 0.001)))

    def test_one_vertex_at_infinity_on_edge_line(self):
        coeffs = _limit_coeffs(((0., 0.), self.FIXED), ((10., 0.), self.FIXED), ((5., -1.), (0., -1.)))
        self.assertTrue(self._contains(coeffs, (5.0, 0.0)), "Points on the edge count as inside.")
        self.assertTrue(self._contains(coeffs, (0.0, 0.0)))
        self.assertFalse(self._contains(coeffs, (20.0, 0.0)))
        self.assertFalse(self._contains(coeffs, (-3.0, 0.0)))

    def test_two_vertices_at_infinity(self):
        # Apex (0, 5) with vertices running off to the left and right along y = -1
        coeffs = _limit_coeffs(((0., 5.), self.FIXED), ((0., -1.), (-1., 0.)), ((0., -1.), (1., 0.)))
        self.assertEqual(limit_orientation(coeffs).tolist(), [1.0])
        self.assertTrue(self._contains(coeffs, (100.0, 4.0)))
        self.assertTrue(self._contains(coeffs, (-7.0, -50.0)))
        self.assertFalse(self._contains(coeffs, (0.0, 6.0)))

    def test_all_vertices_at_infinity_contain_everything(self):
        coeffs = _limit_coeffs(((0., -1.), (-1., 0.)), ((0., 0.), (0., 1.)), ((0., -1.), (1., 0.)))
        self.assertEqual(limit_orientation(coeffs).tolist(), [-1.0])
        for point in [(0.0, 0.0), (0.3, 0.2), (1000.0, 1000.0), (-1e6, 3.0)]:
            self.assertTrue(self._contains(coeffs, point), f"{point} should be inside.")

    def test_batch_and_flat_triangle(self):
        half_plane = _limit_coeffs(((0., 0.), self.FIXED), ((10., 0.), self.FIXED), ((5., -1.), (0., -1.)))
        # The moving vertex runs along the line through the fixed ones
        flat = _limit_coeffs(((0., 0.), self.FIXED), ((1., 0.), self.FIXED), ((2., 0.), (1., 0.)))
        coeffs = torch.cat([half_plane, flat])
        orientation = limit_orientation(coeffs)
        self.assertEqual(orientation.tolist(), [-1.0, 0.0])
        inside = limit_circumcircle_contains(coeffs, orientation, torch.tensor([5.0, -1.0], dtype=torch.float64))
        self.assertEqual(inside.tolist(), [True, False])


if __name__ == '__main__':
    unittest.main()
