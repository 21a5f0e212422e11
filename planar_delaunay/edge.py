"""
Undirected triangle edges and their near-equality.

Two edges are the same edge when each endpoint of one is near-equal to an
endpoint of the other, in either order: the two triangles that share an edge
may store its endpoints in opposite directions.
"""
import torch

from .numeric import DEFAULT_ULP, almost_equal, resolve_dtype
from .vector2 import Vector2


class Edge:
    """An unordered pair of points (`p1`, `p2`)."""

    __slots__ = ("p1", "p2", "dtype")

    def __init__(self, p1: Vector2, p2: Vector2, dtype=None):
        self.p1 = p1
        self.p2 = p2
        self.dtype = resolve_dtype(dtype)

    def __repr__(self):
        return f"Edge({self.p1}, {self.p2})"

    def __iter__(self):
        yield self.p1
        yield self.p2

    def almost_equal(self, other, ulp: int = DEFAULT_ULP) -> bool:
        return edges_equal(self, other, ulp, self.dtype)

    def coords(self) -> list:
        """Flat `[x1, y1, x2, y2]` list."""
        return [self.p1.x, self.p1.y, self.p2.x, self.p2.y]


def edges_equal(e: Edge, f: Edge, ulp: int = DEFAULT_ULP, dtype=None) -> bool:
    """
    Direction-independent near-equality of two edges.

    Args:
        e, f (Edge): The edges to compare.
        ulp (int): Tolerance passed on to `almost_equal` for every coordinate.
        dtype (torch.dtype | None): Working precision. Defaults to `e.dtype`.

    Returns:
        bool: True if the endpoints match pairwise in the same or the opposite order.
    """
    if dtype is None:
        dtype = e.dtype
    return ((e.p1.almost_equal(f.p1, ulp, dtype) and e.p2.almost_equal(f.p2, ulp, dtype))
            or (e.p1.almost_equal(f.p2, ulp, dtype) and e.p2.almost_equal(f.p1, ulp, dtype)))


def edge_equality_matrix(edge_coords: torch.Tensor, ulp: int = DEFAULT_ULP, dtype=None) -> torch.Tensor:
    """
    Pairwise `edges_equal` for a batch of edges.

    Args:
        edge_coords (torch.Tensor): Tensor of shape (K, 4), one `[x1, y1, x2, y2]` row per edge.
        ulp (int): Tolerance in units in the last place.
        dtype (torch.dtype | None): Working precision. Defaults to the tensor's dtype.

    Returns:
        torch.Tensor: Boolean tensor of shape (K, K); entry (i, j) is True when edge i
                      equals edge j. The diagonal is always True.
    """
    if dtype is None:
        dtype = edge_coords.dtype
    c = edge_coords.to(resolve_dtype(dtype))
    a = c.unsqueeze(1) # (K, 1, 4)
    b = c.unsqueeze(0) # (1, K, 4)

    def _pt_eq(i, j):
        # Endpoint i of the row edge against endpoint j of the column edge
        return (almost_equal(a[..., 2 * i], b[..., 2 * j], ulp, dtype)
                & almost_equal(a[..., 2 * i + 1], b[..., 2 * j + 1], ulp, dtype))

    same_order = _pt_eq(0, 0) & _pt_eq(1, 1)
    reversed_order = _pt_eq(0, 1) & _pt_eq(1, 0)
    return same_order | reversed_order
