"""
Computes 2D Delaunay triangulations using the Bowyer-Watson algorithm.

Points are inserted one at a time, in input order, into a triangulation that
starts as a single "super-triangle" enclosing every input point. For each new
point, every triangle whose circumcircle contains it (on-circle counts) is
removed; the edges shared by two removed triangles are interior to the
resulting cavity and are dropped, and the point is connected to each remaining
boundary edge. Triangles still touching a super-triangle vertex are discarded
at the end.

The super-triangle vertices are placed at `SUPER_TRIANGLE_SCALE` bounding-box
sizes from the centre and serve as exact labels, but triangles touching them
are tested as if the scale were unbounded (`limit_circumcircle_contains`).
Otherwise a super vertex can sit inside the circumcircle of a nearly flat
hull triangle, the hull edge is lost and the hull is left partly untriangulated.

The working set is kept as an arena: a list of `Triangle` objects together with
parallel tensors of their circles. Each insertion scans the whole arena in one
batched predicate call and builds the next arena by filtering, so no
per-triangle or per-edge flag outlives a step.

All predicates run in one floating-point precision (`dtype`), chosen per call.
"""
from typing import NamedTuple

import numpy as np
import torch

from .numeric import DEFAULT_ULP, half, resolve_dtype
from .vector2 import Vector2, points_to_tensor, tensor_to_points
from .edge import edge_equality_matrix
from .triangle import (
    Triangle, circumcircle_contains, circumcircle_details_batch,
    limit_circumcircle_contains, limit_orientation,
)
from .logging_utils import get_logger

logger = get_logger(__name__)

# Super-triangle vertices are placed this many bounding-box sizes from the centre.
SUPER_TRIANGLE_SCALE = 20.0


class Triangulation(NamedTuple):
    """
    Result of `delaunay_triangulation_2d`.

    Attributes:
        triangles (list[Triangle]): Retained Delaunay triangles, super-triangle free.
        vertices (list[Vector2]): The input points as consumed, in input order.
        edges (list[Edge]): The three edges of every retained triangle, concatenated
                            without deduplication (interior edges appear twice).
    """
    triangles: list
    vertices: list
    edges: list

    @property
    def num_triangles(self) -> int:
        return len(self.triangles)

    @property
    def num_edges(self) -> int:
        return len(self.edges)

    def triangle_coords(self, dtype=None) -> torch.Tensor:
        """Tensor of shape (M, 3, 2) with the vertex coordinates of every triangle."""
        dtype = resolve_dtype(dtype)
        if not self.triangles:
            return torch.empty((0, 3, 2), dtype=dtype)
        return torch.tensor([[[p.x, p.y] for p in t.vertices] for t in self.triangles], dtype=dtype)

    def edge_coords(self, dtype=None) -> torch.Tensor:
        """Tensor of shape (E, 2, 2) with the endpoint coordinates of every edge."""
        dtype = resolve_dtype(dtype)
        if not self.edges:
            return torch.empty((0, 2, 2), dtype=dtype)
        return torch.tensor([[[e.p1.x, e.p1.y], [e.p2.x, e.p2.y]] for e in self.edges], dtype=dtype)

    def triangle_indices(self) -> torch.Tensor:
        """
        Tensor of shape (M, 3) mapping triangle vertices back to input indices.

        Vertices are matched by exact coordinates; when the input holds duplicate
        points the first occurrence wins.
        """
        index_of = {}
        for i, v in enumerate(self.vertices):
            index_of.setdefault(v, i)
        if not self.triangles:
            return torch.empty((0, 3), dtype=torch.long)
        return torch.tensor([[index_of[p] for p in t.vertices] for t in self.triangles], dtype=torch.long)


def _as_point_tensor(points, dtype: torch.dtype) -> torch.Tensor:
    if isinstance(points, torch.Tensor):
        tensor = points.detach().to(device="cpu", dtype=dtype)
    elif isinstance(points, np.ndarray):
        tensor = torch.from_numpy(np.asarray(points, dtype=np.float64)).to(dtype)
    else:
        tensor = points_to_tensor(list(points), dtype)

    if tensor.numel() == 0:
        return tensor.reshape(0, 2)
    if tensor.ndim != 2 or tensor.shape[1] != 2:
        raise ValueError(f"Input points must have shape (N, 2), got {tuple(tensor.shape)}.")
    if not torch.isfinite(tensor).all():
        raise ValueError("Input points must have finite coordinates.")
    return tensor


def _super_frame(points: torch.Tensor):
    """
    Base points and directions of the super-triangle vertices, `vertex = base + scale * direction`.

    Returns:
        Tuple[torch.Tensor, torch.Tensor]: Two (3, 2) tensors in `points.dtype`.
    """
    min_coords, _ = torch.min(points, dim=0)
    max_coords, _ = torch.max(points, dim=0)
    delta = torch.max(max_coords - min_coords)
    if delta == 0:
        delta = torch.ones((), dtype=points.dtype)
    mid = half(min_coords + max_coords)
    zero = torch.zeros((), dtype=points.dtype)

    bases = torch.stack([
        torch.stack([mid[0], mid[1] - delta]),
        mid,
        torch.stack([mid[0], mid[1] - delta]),
    ])
    directions = torch.stack([
        torch.stack([-delta, zero]),
        torch.stack([zero, delta]),
        torch.stack([delta, zero]),
    ])
    return bases, directions


def super_triangle(points: torch.Tensor, scale: float = SUPER_TRIANGLE_SCALE):
    """
    Builds the three vertices of a triangle enclosing all `points`.

    With bounding-box midpoint (mx, my) and delta = max(width, height), the
    vertices are (mx - scale*delta, my - delta), (mx, my + scale*delta) and
    (mx + scale*delta, my - delta). A zero delta (coincident points) is
    replaced by 1 so the triangle is never degenerate.

    Args:
        points (torch.Tensor): Tensor of shape (N, 2), N >= 1.
        scale (float): Distance factor for the apexes. Defaults to `SUPER_TRIANGLE_SCALE`.

    Returns:
        Tuple[Vector2, Vector2, Vector2]: The super-triangle vertices, exact in `points.dtype`.
    """
    bases, directions = _super_frame(points)
    p1, p2, p3 = tensor_to_points(bases + scale * directions)
    return p1, p2, p3


class _Arena(NamedTuple):
    """Working triangles and their circles, index-aligned."""
    triangles: list
    centers: torch.Tensor       # (M, 2)
    squared_radii: torch.Tensor # (M,)
    finite: torch.Tensor        # (M,) usable finite circle: non-degenerate, no super vertex
    at_infinity: torch.Tensor   # (M,) has a super vertex
    coeffs: torch.Tensor        # (M, 3, 2, 2) vertex coordinates as (base, direction)
    orientation: torch.Tensor   # (M,) limit orientation sign

    def conflicts(self, point: torch.Tensor, ulp: int) -> torch.Tensor:
        """Boolean mask of the triangles whose circumcircle contains `point`."""
        bad = circumcircle_contains(self.centers, self.squared_radii, self.finite, point, ulp)
        idx = self.at_infinity.nonzero(as_tuple=True)[0]
        if idx.numel() > 0:
            bad[idx] = limit_circumcircle_contains(self.coeffs[idx], self.orientation[idx], point, ulp)
        return bad

    def select(self, keep: torch.Tensor) -> "_Arena":
        flags = keep.tolist()
        triangles = [t for t, k in zip(self.triangles, flags) if k]
        return _Arena(triangles, *(field[keep] for field in self[1:]))

    def extend(self, other: "_Arena") -> "_Arena":
        return _Arena(self.triangles + other.triangles,
                      *(torch.cat([a, b]) for a, b in zip(self[1:], other[1:])))


def _build_triangles(vertex_triples: list, dtype: torch.dtype, frame: dict, ulp: int) -> _Arena:
    """
    Creates triangles for a list of (a, b, c) triples with one batched circumcircle pass.

    `frame` maps each super-triangle vertex to its `(base, direction)` pair.
    """
    if not vertex_triples:
        return _Arena([], torch.empty((0, 2), dtype=dtype), torch.empty((0,), dtype=dtype),
                      torch.empty((0,), dtype=torch.bool), torch.empty((0,), dtype=torch.bool),
                      torch.empty((0, 3, 2, 2), dtype=dtype), torch.empty((0,), dtype=dtype))
    coords = torch.tensor([[[p.x, p.y] for p in triple] for triple in vertex_triples], dtype=dtype)
    centers, squared_radii, valid = circumcircle_details_batch(coords)

    triangles = []
    for triple, center, r2, ok in zip(vertex_triples, centers.tolist(), squared_radii.tolist(), valid.tolist()):
        circle = (Vector2(center[0], center[1]), r2) if ok else (None, None)
        triangles.append(Triangle(*triple, dtype=dtype, circumcircle=circle))

    rows = []
    for triple in vertex_triples:
        row = []
        for p in triple:
            base, direction = frame.get(p, ((p.x, p.y), (0.0, 0.0)))
            row.append([[base[0], direction[0]], [base[1], direction[1]]])
        rows.append(row)
    coeffs = torch.tensor(rows, dtype=dtype)
    at_infinity = (coeffs[..., 1] != 0).flatten(1).any(dim=1)

    orientation = torch.zeros(len(vertex_triples), dtype=dtype)
    if bool(at_infinity.any()):
        orientation[at_infinity] = limit_orientation(coeffs[at_infinity], ulp)

    return _Arena(triangles, centers, squared_radii, valid & ~at_infinity, at_infinity, coeffs, orientation)


def _cavity_boundary(polygon: list, ulp: int, dtype: torch.dtype) -> list:
    """Drops every edge that equals another collected edge; what remains bounds the cavity."""
    if len(polygon) < 2:
        return list(polygon)
    coords = torch.tensor([e.coords() for e in polygon], dtype=dtype)
    shared = edge_equality_matrix(coords, ulp, dtype)
    shared.fill_diagonal_(False)
    duplicated = shared.any(dim=1).tolist()
    return [e for e, dup in zip(polygon, duplicated) if not dup]


def delaunay_triangulation_2d(points, dtype=None, ulp: int = DEFAULT_ULP,
                              super_triangle_scale: float = SUPER_TRIANGLE_SCALE) -> Triangulation:
    """
    Computes the 2D Delaunay triangulation of a point set with Bowyer-Watson insertion.

    Points are inserted in the given order. Duplicate points are not removed
    (see `convex_hull.unique_points`), and an all-collinear input yields no
    triangles.

    Args:
        points (torch.Tensor | np.ndarray | Sequence): N points, as an (N, 2) tensor or
            array, or a sequence of (x, y) pairs / `Vector2`. N >= 3 is required for a
            triangulation to exist.
        dtype (torch.dtype | str | None): Working precision, `torch.float32` or
            `torch.float64`. Defaults to `DEFAULT_DTYPE`.
        ulp (int): Near-equality tolerance used by every predicate. Defaults to `DEFAULT_ULP`.
        super_triangle_scale (float): Placement of the super-triangle vertices, see
            `super_triangle`. It labels the vertices only; conflicts with triangles
            touching them are decided in the unbounded limit.

    Returns:
        Triangulation: Retained triangles, the consumed vertices and the flattened edges.
                       For N < 3 the algorithm is not run and the triangle and edge
                       lists are empty.

    Raises:
        ValueError: If `points` is not an (N, 2) point set or has non-finite coordinates.
    """
    dtype = resolve_dtype(dtype)
    point_tensor = _as_point_tensor(points, dtype)
    vertices = tensor_to_points(point_tensor)
    n_points = len(vertices)

    if n_points < 3:
        logger.warning("Delaunay triangulation needs at least 3 points, got %d; nothing to do.", n_points)
        return Triangulation([], vertices, [])

    bases, directions = _super_frame(point_tensor)
    st_p1, st_p2, st_p3 = super_triangle(point_tensor, super_triangle_scale)
    frame = dict(zip((st_p1, st_p2, st_p3), zip(bases.tolist(), directions.tolist())))
    logger.debug("Triangulating %d points (%s), super triangle %s %s %s",
                 n_points, dtype, st_p1, st_p2, st_p3)

    arena = _build_triangles([(st_p1, st_p2, st_p3)], dtype, frame, ulp)
    largest_cavity = 0

    for i, p in enumerate(vertices):
        bad = arena.conflicts(point_tensor[i], ulp)

        polygon = []
        for t, is_bad in zip(arena.triangles, bad.tolist()):
            if is_bad:
                polygon.extend(t.edges)
        largest_cavity = max(largest_cavity, len(polygon) // 3)

        boundary = _cavity_boundary(polygon, ulp, dtype)
        new_arena = _build_triangles([(e.p1, e.p2, p) for e in boundary], dtype, frame, ulp)
        arena = arena.select(~bad).extend(new_arena)

    # Exact membership against the constructed super-triangle vertices
    result_triangles = [
        t for t in arena.triangles
        if not (t.contains_vertex(st_p1) or t.contains_vertex(st_p2) or t.contains_vertex(st_p3))
        and not t.is_degenerate
    ]
    edges = [e for t in result_triangles for e in t.edges]

    logger.debug("Delaunay triangulation: %d points -> %d triangles, %d edges (largest cavity %d triangles)",
                 n_points, len(result_triangles), len(edges), largest_cavity)
    if not result_triangles:
        logger.warning("Delaunay triangulation of %d points produced no triangles (collinear input?).", n_points)

    return Triangulation(result_triangles, vertices, edges)


class Delaunay:
    """
    Object wrapper around `delaunay_triangulation_2d` that keeps the last result.

    Every call to `triangulate` recomputes the triangulation from scratch.
    """

    def __init__(self, dtype=None, ulp: int = DEFAULT_ULP, super_triangle_scale: float = SUPER_TRIANGLE_SCALE):
        self.dtype = resolve_dtype(dtype)
        self.ulp = ulp
        self.super_triangle_scale = super_triangle_scale
        self._result = Triangulation([], [], [])

    def triangulate(self, points) -> list:
        self._result = delaunay_triangulation_2d(points, self.dtype, self.ulp, self.super_triangle_scale)
        return self._result.triangles

    @property
    def result(self) -> Triangulation:
        return self._result

    def get_triangles(self) -> list:
        return self._result.triangles

    def get_edges(self) -> list:
        return self._result.edges

    def get_vertices(self) -> list:
        return self._result.vertices
