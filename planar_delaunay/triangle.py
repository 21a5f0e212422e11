"""
Triangles and the circumcircle predicate that drives Bowyer-Watson insertion.

The circumcenter and squared circumradius of a triangle are derived once, at
construction, from the perpendicular-bisector determinant formula. Containment
is non-strict: a point lying on the circumcircle (within `almost_equal`
tolerance of the squared radius) counts as inside. This decides which
triangles are rebuilt when four or more input points are cocircular.

Both the per-triangle method `Triangle.circum_circle_contains` and the batched
scan used by the triangulation driver go through `circumcircle_contains`, so
the two can never disagree.

Triangles that still use a super-triangle vertex are tested with
`limit_circumcircle_contains` instead, which treats those vertices as points
at infinity.
"""
import torch
import torch.nn.functional as F

from .numeric import DEFAULT_ULP, almost_equal, resolve_dtype
from .vector2 import Vector2
from .edge import Edge


def circumcircle_details_batch(vertices: torch.Tensor):
    """
    Computes circumcenters and squared circumradii for a batch of triangles.

    Using the standard formula with denominator
    D = 2 * (x1(y2-y3) + x2(y3-y1) + x3(y1-y2)). A triangle is degenerate when
    D is `almost_equal` to zero in the tensor's precision (collinear vertices)
    or when the resulting center is not finite.

    Args:
        vertices (torch.Tensor): Tensor of shape (M, 3, 2) holding the vertices of M triangles.

    Returns:
        Tuple[torch.Tensor, torch.Tensor, torch.Tensor]:
            - centers (torch.Tensor): Shape (M, 2). Zero for degenerate triangles.
            - squared_radii (torch.Tensor): Shape (M,). Zero for degenerate triangles.
            - valid (torch.Tensor): Boolean tensor of shape (M,), False for degenerate triangles.
    """
    x1, y1 = vertices[:, 0, 0], vertices[:, 0, 1]
    x2, y2 = vertices[:, 1, 0], vertices[:, 1, 1]
    x3, y3 = vertices[:, 2, 0], vertices[:, 2, 1]

    d_val = 2 * (x1 * (y2 - y3) + x2 * (y3 - y1) + x3 * (y1 - y2))
    degenerate = almost_equal(d_val, torch.zeros_like(d_val), dtype=vertices.dtype)
    safe_d = torch.where(degenerate, torch.ones_like(d_val), d_val)

    p1_sq = x1**2 + y1**2
    p2_sq = x2**2 + y2**2
    p3_sq = x3**2 + y3**2

    ux = (p1_sq * (y2 - y3) + p2_sq * (y3 - y1) + p3_sq * (y1 - y2)) / safe_d
    uy = (p1_sq * (x3 - x2) + p2_sq * (x1 - x3) + p3_sq * (x2 - x1)) / safe_d
    centers = torch.stack([ux, uy], dim=1)
    squared_radii = (x1 - ux)**2 + (y1 - uy)**2

    valid = ~degenerate & torch.isfinite(centers).all(dim=1) & torch.isfinite(squared_radii)
    centers = torch.where(valid.unsqueeze(1), centers, torch.zeros_like(centers))
    squared_radii = torch.where(valid, squared_radii, torch.zeros_like(squared_radii))
    return centers, squared_radii, valid


def circumcircle_contains(centers: torch.Tensor, squared_radii: torch.Tensor, valid: torch.Tensor,
                          point: torch.Tensor, ulp: int = DEFAULT_ULP) -> torch.Tensor:
    """
    Non-strict point-in-circumcircle test against a batch of precomputed circles.

    Args:
        centers (torch.Tensor): Shape (M, 2) circumcenters.
        squared_radii (torch.Tensor): Shape (M,) squared circumradii.
        valid (torch.Tensor): Shape (M,) mask; invalid (degenerate) circles never contain anything.
        point (torch.Tensor): Shape (2,) query point, same dtype as `centers`.
        ulp (int): Tolerance for treating a point on the circle as inside.

    Returns:
        torch.Tensor: Boolean tensor of shape (M,).
    """
    dist_sq = torch.sum((centers - point.unsqueeze(0))**2, dim=1)
    on_or_inside = (dist_sq <= squared_radii) | almost_equal(dist_sq, squared_radii, ulp, centers.dtype)
    return valid & on_or_inside


# Rounding allowance of the expanded limit determinants, in units of eps * ulp
LIMIT_ERROR_FACTOR = 16.0


def _poly_mul(p: torch.Tensor, q: torch.Tensor) -> torch.Tensor:
    # Coefficients along the last axis, lowest power first
    out = p.new_zeros(p.shape[:-1] + (p.shape[-1] + q.shape[-1] - 1,))
    for i in range(p.shape[-1]):
        out[..., i:i + q.shape[-1]] += p[..., i:i + 1] * q
    return out


def _poly_add(p: torch.Tensor, q: torch.Tensor, sign: float = 1.0) -> torch.Tensor:
    n = max(p.shape[-1], q.shape[-1])
    p = F.pad(p, (0, n - p.shape[-1]))
    q = F.pad(q, (0, n - q.shape[-1]))
    return p + sign * q


def _leading_sign(value: torch.Tensor, bound: torch.Tensor, ulp: int) -> torch.Tensor:
    """
    Sign of a polynomial in the scale `k` as `k` grows without bound.

    A coefficient counts only when it exceeds the rounding bound derived from
    `bound` (the same expansion over absolute values). Returns 0 where no
    coefficient is significant.
    """
    tol = torch.finfo(value.dtype).eps * ulp * LIMIT_ERROR_FACTOR * bound
    significant = value.abs() > tol
    powers = torch.arange(value.shape[-1]).expand(value.shape)
    top = torch.where(significant, powers, torch.full_like(powers, -1)).max(dim=-1).values
    lead = value.gather(-1, top.clamp(min=0).unsqueeze(-1)).squeeze(-1)
    return torch.where(top >= 0, torch.sign(lead), torch.zeros_like(lead))


def _incircle_poly(x: torch.Tensor, y: torch.Tensor, sign: float) -> torch.Tensor:
    # x, y: (M, 3, 2) vertex offsets from the query point; sign=+1 expands the absolute bound
    z = _poly_add(_poly_mul(x, x), _poly_mul(y, y))
    xa, xb, xc = x.unbind(1)
    ya, yb, yc = y.unbind(1)
    za, zb, zc = z.unbind(1)
    t1 = _poly_mul(xa, _poly_add(_poly_mul(yb, zc), _poly_mul(zb, yc), sign))
    t2 = _poly_mul(ya, _poly_add(_poly_mul(xb, zc), _poly_mul(zb, xc), sign))
    t3 = _poly_mul(za, _poly_add(_poly_mul(xb, yc), _poly_mul(yb, xc), sign))
    return _poly_add(_poly_add(t1, t2, sign), t3)


def limit_orientation(coeffs: torch.Tensor, ulp: int = DEFAULT_ULP) -> torch.Tensor:
    """
    Orientation of triangles whose vertices move as `base + k * direction`, for `k` -> infinity.

    Args:
        coeffs (torch.Tensor): Shape (M, 3, 2, 2): per triangle, vertex and axis the
            pair `(base, direction)`. Fixed vertices have a zero direction.
        ulp (int): Tolerance for treating a coefficient as zero.

    Returns:
        torch.Tensor: Shape (M,), +1 for counter-clockwise, -1 for clockwise, 0 when flat.
    """
    rel = coeffs[:, 1:] - coeffs[:, :1]
    ux, uy = rel[:, 0, 0], rel[:, 0, 1]
    vx, vy = rel[:, 1, 0], rel[:, 1, 1]
    value = _poly_add(_poly_mul(ux, vy), _poly_mul(uy, vx), -1.0)
    bound = _poly_add(_poly_mul(ux.abs(), vy.abs()), _poly_mul(uy.abs(), vx.abs()))
    return _leading_sign(value, bound, ulp)


def limit_circumcircle_contains(coeffs: torch.Tensor, orientation: torch.Tensor,
                                point: torch.Tensor, ulp: int = DEFAULT_ULP) -> torch.Tensor:
    """
    Point-in-circumcircle test for triangles with vertices at infinity.

    The super-triangle vertices are `base + k * direction`; the answer is the
    one the ordinary in-circle determinant gives for every sufficiently large
    `k`. A triangle with one such vertex then behaves like the open half-plane
    beyond its finite edge (plus the edge itself), so a near-flat hull edge is
    never cut by the finite placement of the super triangle. As in
    `circumcircle_contains`, a zero determinant counts as inside and a flat
    triangle contains nothing.

    Args:
        coeffs (torch.Tensor): Shape (M, 3, 2, 2), see `limit_orientation`.
        orientation (torch.Tensor): Shape (M,), the result of `limit_orientation`.
        point (torch.Tensor): Shape (2,) query point.
        ulp (int): Tolerance for treating a coefficient as zero.

    Returns:
        torch.Tensor: Boolean tensor of shape (M,).
    """
    rel = coeffs - F.pad(point.to(coeffs.dtype).reshape(1, 1, 2, 1), (0, 1))
    x, y = rel[:, :, 0], rel[:, :, 1]
    value = _incircle_poly(x, y, -1.0)
    bound = _incircle_poly(x.abs(), y.abs(), 1.0)
    det_sign = _leading_sign(value, bound, ulp)
    return (orientation != 0) & ((det_sign * orientation > 0) | (det_sign == 0))


def get_triangle_circumcircle_details_2d(p1: Vector2, p2: Vector2, p3: Vector2, dtype=None):
    """
    Computes the circumcenter and squared circumradius of a single triangle.

    Args:
        p1, p2, p3 (Vector2): The triangle's vertices.
        dtype (torch.dtype | None): Working precision. Defaults to `DEFAULT_DTYPE`.

    Returns:
        Tuple[Vector2 | None, float | None]:
            - circumcenter: Center of the circumcircle, or `None` if the points are collinear.
            - squared_radius: Squared circumradius, or `None` if the points are collinear.
    """
    dtype = resolve_dtype(dtype)
    vertices = torch.tensor([[[p1.x, p1.y], [p2.x, p2.y], [p3.x, p3.y]]], dtype=dtype)
    centers, squared_radii, valid = circumcircle_details_batch(vertices)
    if not bool(valid[0]):
        return None, None
    cx, cy = centers[0].tolist()
    return Vector2(cx, cy), squared_radii[0].item()


class Triangle:
    """
    Three points plus their boundary edges and precomputed circumcircle.

    Attributes:
        p1, p2, p3 (Vector2): Vertices in construction order.
        e1, e2, e3 (Edge): Edges (p1, p2), (p2, p3), (p3, p1).
        circumcenter (Vector2 | None): `None` for a degenerate (collinear) triangle.
        circumradius2 (float | None): Squared circumradius, `None` when degenerate.
        dtype (torch.dtype): Precision used for the circumcircle and all predicates.
    """

    __slots__ = ("p1", "p2", "p3", "e1", "e2", "e3", "circumcenter", "circumradius2", "dtype")

    def __init__(self, p1: Vector2, p2: Vector2, p3: Vector2, dtype=None, circumcircle=None):
        self.dtype = resolve_dtype(dtype)
        self.p1 = p1
        self.p2 = p2
        self.p3 = p3
        self.e1 = Edge(p1, p2, self.dtype)
        self.e2 = Edge(p2, p3, self.dtype)
        self.e3 = Edge(p3, p1, self.dtype)
        # The driver computes circumcircles in batches and hands them over here
        if circumcircle is None:
            circumcircle = get_triangle_circumcircle_details_2d(p1, p2, p3, self.dtype)
        self.circumcenter, self.circumradius2 = circumcircle

    def __repr__(self):
        return f"Triangle({self.p1}, {self.p2}, {self.p3})"

    @property
    def vertices(self):
        return (self.p1, self.p2, self.p3)

    @property
    def edges(self):
        return (self.e1, self.e2, self.e3)

    @property
    def is_degenerate(self) -> bool:
        return self.circumcenter is None

    def contains_vertex(self, v: Vector2) -> bool:
        """Exact coordinate membership, meant for constructed (not measured) points."""
        return self.p1 == v or self.p2 == v or self.p3 == v

    def circum_circle_contains(self, v: Vector2, ulp: int = DEFAULT_ULP) -> bool:
        """
        True if `v` lies inside or on this triangle's circumcircle.

        A degenerate triangle has no circumcircle and never contains a point.
        """
        if self.circumcenter is None:
            return False
        centers = torch.tensor([[self.circumcenter.x, self.circumcenter.y]], dtype=self.dtype)
        squared_radii = torch.tensor([self.circumradius2], dtype=self.dtype)
        valid = torch.ones(1, dtype=torch.bool)
        point = torch.tensor([v.x, v.y], dtype=self.dtype)
        return bool(circumcircle_contains(centers, squared_radii, valid, point, ulp)[0])
