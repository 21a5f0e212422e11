"""
Convex hull and point-set cleanup for 2D inputs.

The triangulation driver does not remove duplicate points; `unique_points`
is the caller-side filter to apply first. `monotone_chain_2d` returns the hull
that the triangle-count relation T = 2N - H - 2 refers to.
"""
import torch

from .numeric import DEFAULT_DTYPE

DUPLICATE_TOL = 1e-9 # Absolute per-coordinate distance below which two points are duplicates


def _check_points(points: torch.Tensor):
    if not isinstance(points, torch.Tensor):
        raise ValueError("Input points must be a PyTorch tensor.")
    if points.ndim != 2 or points.shape[1] != 2:
        raise ValueError("Input points tensor must be 2-dimensional with shape (N, 2).")


def unique_points(points: torch.Tensor, tol: float = DUPLICATE_TOL) -> torch.Tensor:
    """
    Removes near-duplicate points, keeping the first occurrence of each.

    Args:
        points (torch.Tensor): Tensor of shape (N, 2).
        tol (float): Two points are duplicates when both coordinate differences
                     are below `tol`. Defaults to `DUPLICATE_TOL`.

    Returns:
        torch.Tensor: Tensor of shape (K, 2), K <= N, in original order.
    """
    _check_points(points)
    if points.shape[0] < 2:
        return points.clone()
    close = (torch.abs(points.unsqueeze(1) - points.unsqueeze(0)) < tol).all(dim=2)
    # Only earlier points count as originals
    earlier = torch.tril(close, diagonal=-1)
    keep = ~earlier.any(dim=1)
    return points[keep]


def _cross(o: torch.Tensor, a: torch.Tensor, b: torch.Tensor) -> float:
    # > 0 for a counter-clockwise turn o -> a -> b
    return ((a[0] - o[0]) * (b[1] - o[1]) - (a[1] - o[1]) * (b[0] - o[0])).item()


def monotone_chain_2d(points: torch.Tensor, tol: float = 0.0):
    """
    Computes the convex hull of 2D points using the Monotone Chain algorithm.

    Points are sorted lexicographically, then lower and upper chains are built
    keeping only strict left turns, so collinear boundary points are not hull
    vertices.

    Args:
        points (torch.Tensor): Tensor of shape (N, 2).
        tol (float, optional): Turns with cross product <= `tol` are treated as
                               non-left. Defaults to 0.

    Returns:
        Tuple[torch.Tensor, torch.Tensor]:
            - hull_vertices_indices (torch.Tensor): Long tensor of shape (H,) with indices
              into `points`, counter-clockwise, starting at the lexicographically
              smallest point.
            - hull_simplices (torch.Tensor): Long tensor of shape (H, 2) of hull edges
              (a single edge when H == 2, none when H < 2).
    """
    _check_points(points)
    n_points = points.shape[0]
    if n_points == 0:
        return torch.empty((0,), dtype=torch.long), torch.empty((0, 2), dtype=torch.long)

    pts = points if points.dtype.is_floating_point else points.to(DEFAULT_DTYPE)
    order = sorted(range(n_points), key=lambda i: (pts[i, 0].item(), pts[i, 1].item()))

    lower = []
    for idx in order:
        while len(lower) >= 2 and _cross(pts[lower[-2]], pts[lower[-1]], pts[idx]) <= tol:
            lower.pop()
        lower.append(idx)

    upper = []
    for idx in reversed(order):
        while len(upper) >= 2 and _cross(pts[upper[-2]], pts[upper[-1]], pts[idx]) <= tol:
            upper.pop()
        upper.append(idx)

    # Endpoints of each chain are shared with the other one
    hull = list(dict.fromkeys(lower[:-1] + upper[:-1]))
    if not hull:
        hull = [order[0]]
    hull_indices = torch.tensor(hull, dtype=torch.long)

    h = len(hull)
    if h < 2:
        simplices = torch.empty((0, 2), dtype=torch.long)
    elif h == 2:
        simplices = torch.tensor([[hull[0], hull[1]]], dtype=torch.long)
    else:
        simplices = torch.tensor([[hull[i], hull[(i + 1) % h]] for i in range(h)], dtype=torch.long)
    return hull_indices, simplices
